"""
Persisted call cooldown for external services.
Blocks a new attempt until ``seconds`` have passed since the last one.

Usage:
    from scripts.lib.cooldown import Cooldown

    cooldown = Cooldown(store, "ai_last_call", seconds=60)
    if cooldown.ready():
        cooldown.mark()
        make_api_call()

``ready()`` and ``mark()`` are separate round-trips to the store, so two
callers can both see ``ready() is True`` before either marks. The result
is a duplicate call, which is accepted; nothing here locks.
"""
import time
from typing import Callable, Optional

from scripts.lib.kv_store import KeyValueStore
from scripts.lib.logger import setup_logger
from scripts.lib.utils import safe_float

logger = setup_logger(__name__)


class Cooldown:
    """
    Cooldown keyed by a single timestamp in a key-value store.

    The marker is epoch milliseconds. Unreadable or missing markers count as
    "never called", so a broken store never blocks the caller.
    """

    def __init__(self, store: KeyValueStore, key: str, seconds: float = 60,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.key = key
        self.seconds = seconds
        self.clock = clock

    def last_attempt(self) -> Optional[float]:
        """Epoch seconds of the last recorded attempt, or None."""
        result = self.store.get(self.key)
        if not result.ok:
            logger.warning("Cooldown marker '%s' unreadable: %s", self.key, result.error)
            return None
        if result.value is None:
            return None
        millis = safe_float(result.value, default=-1.0)
        if millis < 0:
            return None
        return millis / 1000.0

    def remaining(self) -> float:
        """Seconds left before another attempt is allowed (0 if ready)."""
        last = self.last_attempt()
        if last is None:
            return 0.0
        elapsed = self.clock() - last
        if elapsed < 0:
            logger.warning("Cooldown marker '%s' is in the future, ignoring it", self.key)
            return 0.0
        return max(0.0, self.seconds - elapsed)

    def ready(self) -> bool:
        """True if no attempt happened in the last ``seconds``."""
        left = self.remaining()
        if left > 0:
            logger.info("Cooldown '%s' active, %.0fs remaining", self.key, left)
            return False
        return True

    def mark(self) -> bool:
        """Record an attempt now. Returns False if the store rejected it."""
        result = self.store.set(self.key, int(self.clock() * 1000))
        if not result.ok:
            logger.warning("Cooldown marker '%s' not written: %s", self.key, result.error)
        return result.ok
