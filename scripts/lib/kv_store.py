"""
Key-value persistence for small pieces of engine state.

Stores never raise on I/O problems: every call returns a ``StoreResult``
and the caller branches on ``result.ok``. A storage outage therefore
degrades to "nothing stored" instead of breaking a report.

Usage:
    from scripts.lib.kv_store import JsonFileStore
    store = JsonFileStore("data/cache/financeiro_state.json")
    result = store.get("some_key")
    if result.ok and result.value is not None:
        ...
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from scripts.lib.errors import StorageError
from scripts.lib.logger import setup_logger
from scripts.lib.utils import atomic_write_json, read_json

logger = setup_logger(__name__)


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store operation. ``value`` is None for a missing key."""
    ok: bool
    value: Any = None
    error: Optional[StorageError] = None

    @classmethod
    def success(cls, value: Any = None) -> "StoreResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: StorageError) -> "StoreResult":
        return cls(ok=False, error=error)


class KeyValueStore(Protocol):
    def get(self, key: str) -> StoreResult: ...

    def set(self, key: str, value: Any) -> StoreResult: ...


class InMemoryStore:
    """Process-local store. Values are JSON round-tripped to match file semantics."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value, default=str)

    def get(self, key: str) -> StoreResult:
        raw = self._data.get(key)
        if raw is None:
            return StoreResult.success(None)
        return StoreResult.success(json.loads(raw))

    def set(self, key: str, value: Any) -> StoreResult:
        try:
            self._data[key] = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            return StoreResult.failure(StorageError(f"Value not serialisable: {e}", key=key))
        return StoreResult.success(value)


class JsonFileStore:
    """All keys live in one JSON document, rewritten atomically on every set.

    Shared by every process pointing at the same path. Two writers can
    still interleave read-modify-write cycles; last writer wins.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        data = read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return data

    def get(self, key: str) -> StoreResult:
        try:
            data = self._load()
        except (OSError, ValueError) as e:
            logger.warning("State file %s unreadable: %s", self.path, e)
            return StoreResult.failure(StorageError(str(e), key=key))
        return StoreResult.success(data.get(key))

    def set(self, key: str, value: Any) -> StoreResult:
        try:
            data = self._load()
        except (OSError, ValueError) as e:
            logger.warning("State file %s unreadable, rewriting: %s", self.path, e)
            data = {}
        data[key] = value
        try:
            atomic_write_json(data, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("State file %s not writable: %s", self.path, e)
            return StoreResult.failure(StorageError(str(e), key=key))
        return StoreResult.success(value)


class UnavailableStore:
    """Store that always fails. Used when persistence is disabled."""

    def __init__(self, reason: str = "storage unavailable"):
        self.reason = reason

    def get(self, key: str) -> StoreResult:
        return StoreResult.failure(StorageError(self.reason, key=key))

    def set(self, key: str, value: Any) -> StoreResult:
        return StoreResult.failure(StorageError(self.reason, key=key))
