"""
Financeiro engine configuration.

All values come from the environment (``.env`` is loaded from the project
root) with defaults matching the production deployment in Brasília time.
"""
import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone, tzinfo
from pathlib import Path

from dotenv import load_dotenv

from scripts.lib.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_STATE_PATH = PROJECT_ROOT / "data" / "cache" / "financeiro_state.json"


@dataclass(frozen=True)
class FinanceConfig:
    # Fixed civil offset used for every calendar computation (no DST)
    utc_offset_hours: float = -3.0
    ai_cache_ttl_hours: float = 24.0
    ai_cooldown_seconds: float = 60.0
    ai_min_quotes: int = 5
    ai_provider: str = None
    ai_timeout_seconds: float = 30.0
    insight_limit: int = 5
    state_path: Path = field(default=DEFAULT_STATE_PATH)

    @property
    def tz(self) -> tzinfo:
        return timezone(timedelta(hours=self.utc_offset_hours))


def _env_number(name: str, default: float, cast=float, minimum: float = None):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}", setting=name)
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}", setting=name)
    return value


def load_config() -> FinanceConfig:
    """Build a FinanceConfig from environment variables."""
    offset = _env_number("FINANCE_UTC_OFFSET_HOURS", -3.0)
    if not -14 <= offset <= 14:
        raise ConfigError(
            f"FINANCE_UTC_OFFSET_HOURS out of range: {offset}",
            setting="FINANCE_UTC_OFFSET_HOURS",
        )

    return FinanceConfig(
        utc_offset_hours=offset,
        ai_cache_ttl_hours=_env_number("FINANCE_AI_CACHE_TTL_HOURS", 24.0, minimum=0),
        ai_cooldown_seconds=_env_number("FINANCE_AI_COOLDOWN_SECONDS", 60.0, minimum=0),
        ai_min_quotes=_env_number("FINANCE_AI_MIN_QUOTES", 5, cast=int, minimum=0),
        ai_provider=os.getenv("FINANCE_AI_PROVIDER") or None,
        ai_timeout_seconds=_env_number("FINANCE_AI_TIMEOUT_SECONDS", 30.0, minimum=1),
        insight_limit=_env_number("FINANCE_INSIGHT_LIMIT", 5, cast=int, minimum=1),
        state_path=Path(os.getenv("FINANCE_STATE_PATH") or DEFAULT_STATE_PATH),
    )


# Brasília civil time, UTC-3 year round
DEFAULT_TZ = FinanceConfig().tz
