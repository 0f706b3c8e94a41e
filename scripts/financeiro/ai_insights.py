"""
Financeiro — AI-Augmented Insights
=====================================

Sends the conversion funnel to the inference provider and turns the reply
into extra insights for the dashboard, behind a fingerprinted cache and a
call cooldown. Both live in an injected key-value store.

Flow:
    1. Fewer than ``min_quotes`` relevant quotes  -> [] (no call)
    2. Cached entry younger than the TTL with the same fingerprint -> cached list
    3. Cooldown still running                     -> [] (skipped, cache miss or not)
    4. Mark the attempt, call once; any failure   -> []
    5. Normalise the reply and write the cache

The fingerprint only looks at (total quotes, overall conversion rounded to
one decimal, number of service types). Two different funnels can share it
and serve each other's cached insights; that is accepted in exchange for a
trivially cheap freshness check.

Usage:
    fetcher = AIInsightFetcher(JsonFileStore(path))
    insights = await fetcher.fetch(conversion_data)
"""
from __future__ import annotations

import json
import time
import zlib
from typing import Any, Awaitable, Callable, List, Optional

from models.financeiro_models import ConversionData, Insight, InsightKind
from scripts.financeiro.config import FinanceConfig
from scripts.financeiro.formatting import to_fixed
from scripts.lib.ai_provider import AIResponse, ai_complete
from scripts.lib.cooldown import Cooldown
from scripts.lib.errors import FinanceError, MalformedResponseError
from scripts.lib.kv_store import KeyValueStore
from scripts.lib.logger import setup_logger

logger = setup_logger("ai_insights")

CACHE_KEY = "financeiro_ai_insights_cache"
LAST_CALL_KEY = "financeiro_ai_insights_last_call"

FALLBACK_TITLE = "Insight"
FALLBACK_DESCRIPTION = "No details provided."

SYSTEM_PROMPT = (
    "You are a financial analyst for a home-improvement installation business. "
    "You receive quote conversion statistics as JSON. Reply with JSON of the form "
    '{"insights": [{"kind": "success|warning|info|danger", "title": "...", '
    '"description": "...", "action": "..."}]} with at most 4 short, concrete insights.'
)

CompleteFn = Callable[..., Awaitable[AIResponse]]


def fingerprint(data: ConversionData) -> str:
    """Cheap digest of the funnel's headline figures (collisions accepted)."""
    raw = f"{data.total_quotes}|{to_fixed(data.overall_conversion_rate, 1)}|{len(data.by_service_type)}"
    return f"{zlib.crc32(raw.encode('utf-8')):08x}"


def _extract_items(content: str) -> List[Any]:
    """Pull the insight list out of a JSON reply (object or bare list)."""
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Reply is not JSON: {e}")

    if isinstance(payload, dict):
        payload = payload.get("insights")
    if not isinstance(payload, list):
        raise MalformedResponseError("Reply has no insight list")
    return payload


def normalize_insight(item: Any, index: int) -> Optional[Insight]:
    """Coerce one reply item into an Insight; non-objects are dropped."""
    if not isinstance(item, dict):
        return None
    try:
        kind = InsightKind(str(item.get("kind") or item.get("tipo") or "").lower())
    except ValueError:
        kind = InsightKind.INFO

    title = item.get("title") or item.get("titulo")
    description = item.get("description") or item.get("descricao")
    action = item.get("action") or item.get("acao")
    return Insight(
        id=str(item.get("id") or f"ai-{index}"),
        kind=kind,
        title=str(title) if title else FALLBACK_TITLE,
        description=str(description) if description else FALLBACK_DESCRIPTION,
        action=str(action) if action else None,
    )


class AIInsightFetcher:
    """Cached, cooled-down AI insight lookups over a conversion funnel."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[FinanceConfig] = None,
        complete: CompleteFn = ai_complete,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config or FinanceConfig()
        self.complete = complete
        self.clock = clock
        self.cooldown = Cooldown(
            store, LAST_CALL_KEY, seconds=self.config.ai_cooldown_seconds, clock=clock,
        )

    # ─── Cache ──────────────────────────────────────────────

    def cached(self, current_fingerprint: str) -> Optional[List[Insight]]:
        """Cached insights if fresh and matching, else None."""
        result = self.store.get(CACHE_KEY)
        if not result.ok:
            logger.warning("AI insight cache unreadable, treating as miss: %s", result.error)
            return None
        entry = result.value
        if not isinstance(entry, dict):
            return None

        try:
            age_ms = self.clock() * 1000 - float(entry.get("timestamp", 0))
        except (TypeError, ValueError):
            return None
        if age_ms < 0:
            logger.warning("AI insight cache timestamp is in the future, treating as miss")
            return None
        if age_ms >= self.config.ai_cache_ttl_hours * 3600 * 1000:
            logger.debug("AI insight cache expired (age %.0fs)", age_ms / 1000)
            return None
        if entry.get("fingerprint") != current_fingerprint:
            logger.debug("AI insight cache fingerprint mismatch")
            return None

        items = entry.get("insights")
        if not isinstance(items, list):
            return None
        insights = [normalize_insight(item, i) for i, item in enumerate(items)]
        return [i for i in insights if i is not None]

    def _write_cache(self, insights: List[Insight], current_fingerprint: str) -> None:
        result = self.store.set(CACHE_KEY, {
            "insights": [i.model_dump(mode="json") for i in insights],
            "timestamp": int(self.clock() * 1000),
            "fingerprint": current_fingerprint,
        })
        if not result.ok:
            logger.warning("AI insight cache not written: %s", result.error)

    # ─── Fetch ──────────────────────────────────────────────

    async def fetch(self, data: ConversionData) -> List[Insight]:
        """Supplementary insights for ``data``; never raises."""
        if data.total_quotes < self.config.ai_min_quotes:
            logger.debug(
                "Skipping AI insights: %d quotes (< %d)",
                data.total_quotes, self.config.ai_min_quotes,
            )
            return []

        current_fingerprint = fingerprint(data)
        hit = self.cached(current_fingerprint)
        if hit is not None:
            logger.info("AI insights served from cache (%d items)", len(hit))
            return hit

        if not self.cooldown.ready():
            return []
        self.cooldown.mark()

        try:
            response = await self.complete(
                task="financeiro_insights",
                system_prompt=SYSTEM_PROMPT,
                user_prompt=data.model_dump_json(),
                provider=self.config.ai_provider,
                timeout=self.config.ai_timeout_seconds,
                json_mode=True,
            )
            items = _extract_items(response.content)
        except FinanceError as e:
            logger.warning("AI insights unavailable: %s", e)
            return []
        except Exception as e:
            logger.error("AI insights call failed unexpectedly: %s", e)
            return []

        insights = [normalize_insight(item, i) for i, item in enumerate(items)]
        insights = [i for i in insights if i is not None]
        self._write_cache(insights, current_fingerprint)
        logger.info("AI insights fetched (%d items)", len(insights))
        return insights
