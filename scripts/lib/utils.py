"""
Utility functions for the Financeiro engine.
Atomic JSON file writes, zero-safe arithmetic, and lenient value parsing.

Usage:
    from scripts.lib.utils import atomic_write_json, safe_div, parse_ts
"""
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)


def atomic_write_json(data: Dict, file_path: str | Path, indent: int = 2) -> None:
    """
    Write JSON data to file atomically using temp file + rename.
    Prevents a half-written file if the process dies during write.

    Args:
        data: Dictionary to serialize as JSON.
        file_path: Target file path.
        indent: JSON indentation level.

    Raises:
        OSError / TypeError: The caller decides how to report the failure.
    """
    file_path = Path(file_path)
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    file_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent, default=str)
        os.replace(temp_path, file_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    logger.debug("Atomically wrote JSON to %s", file_path)


def read_json(file_path: str | Path) -> Optional[Dict]:
    """Load a JSON file, returning None when it doesn't exist."""
    file_path = Path(file_path)
    if not file_path.exists():
        return None
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Zero-safe division."""
    if denominator == 0:
        return default
    return numerator / denominator


def safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert a value to float."""
    if val is None:
        return default
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


def parse_ts(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or datetime) into an aware UTC datetime.

    Naive values are assumed to already be UTC, which is how the data
    store serialises ``timestamptz`` columns without an offset.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_utc() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)
