"""Webhook deduplication: process-local TTL set.

Contract:
- Key is (inventory_item_id, location_id, observed available); the same
  item/location with a different quantity is new information, not a retry
- Entries expire ``ttl`` seconds after first sight (default 5 minutes)
- Expired entries are swept lazily on every ``is_duplicate`` call
- ``forget`` removes an entry early; used when a correction failed
- Best effort: a restart forgets everything, which is fine because the
  correction it guards (set on-hand to an absolute value) is idempotent
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

DedupeKey = tuple[str, str, int]


class DedupeCache:
    """Recently seen webhook observations."""

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] | None = None):
        self.ttl = ttl
        self._clock = clock
        self._seen: dict[DedupeKey, float] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return self._clock() if self._clock else time.monotonic()

    @staticmethod
    def key(item_id: str, location_id: str, available: int) -> DedupeKey:
        return (str(item_id), str(location_id), int(available))

    def _sweep(self, now: float) -> None:
        expired = [k for k, seen_at in self._seen.items() if now - seen_at > self.ttl]
        for k in expired:
            del self._seen[k]
        if expired:
            logger.debug("Dedupe sweep removed %d entries", len(expired))

    def is_duplicate(self, item_id: str, location_id: str, available: int) -> bool:
        """Sweep expired entries, then report whether this observation was seen."""
        with self._lock:
            self._sweep(self._now())
            return self.key(item_id, location_id, available) in self._seen

    def mark_seen(self, item_id: str, location_id: str, available: int) -> None:
        """Record the observation; an existing entry keeps its first-seen time."""
        with self._lock:
            self._seen.setdefault(self.key(item_id, location_id, available), self._now())

    def check_and_mark(self, item_id: str, location_id: str, available: int) -> bool:
        """Atomic ``is_duplicate`` + ``mark_seen``. True if already seen."""
        with self._lock:
            now = self._now()
            self._sweep(now)
            key = self.key(item_id, location_id, available)
            if key in self._seen:
                return True
            self._seen[key] = now
            return False

    def forget(self, item_id: str, location_id: str, available: int) -> None:
        """Drop one observation so the next identical event is processed again."""
        with self._lock:
            self._seen.pop(self.key(item_id, location_id, available), None)

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        return len(self._seen)
