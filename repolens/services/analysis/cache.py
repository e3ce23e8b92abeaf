"""
Time- and capacity-bounded cache for computed results.

Entries are immutable: storing a key again replaces its entry and moves it to
the back of the eviction order. Reads never evict; an entry older than the
TTL simply reports `found=False` until the next cleanup sweeps it.

Cleanup runs before every store, in two phases:
1. Drop every entry older than the TTL.
2. If still over capacity, drop the oldest-stored entries.

Phase 2 is carried by cachetools' FIFOCache, whose eviction order is the
order keys were (re)stored.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, NamedTuple, TypeVar

from cachetools import FIFOCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 600.0  # 10 minutes
DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: str
    value: T
    stored_at: float


class CacheLookup(NamedTuple, Generic[T]):
    """Result of ResultCache.get, unpackable as (value, found, age)."""

    value: T | None
    found: bool
    age: float | None  # Seconds since the entry was stored


class ResultCache(Generic[T]):
    """
    Key -> value store bounded by age and by entry count.

    The cache knows nothing about what it stores; callers normalize keys.

    Args:
        ttl: Maximum age in seconds for an entry to be served
        capacity: Maximum number of entries kept after a cleanup
        timer: Clock returning seconds (injectable for tests, like cachetools' TTLCache)
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.ttl = ttl
        self.capacity = capacity
        self.timer = timer
        self._entries: FIFOCache[str, CacheEntry[T]] = FIFOCache(maxsize=capacity)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.stored_at > self.ttl

    def get(self, key: str) -> CacheLookup[T]:
        """Look up a key without side effects."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(None, False, None)

        now = self.timer()
        if self._is_expired(entry, now):
            return CacheLookup(None, False, None)
        return CacheLookup(entry.value, True, now - entry.stored_at)

    def set(self, key: str, value: T) -> None:
        """Store a value, replacing any previous entry for the key."""
        with self._lock:
            self.cleanup()
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self.timer())
        logger.debug(f"Cache STORE: {key} (size {len(self._entries)}/{self.capacity})")

    def cleanup(self) -> int:
        """
        Drop expired entries, then the oldest-stored ones beyond capacity.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self.timer()
            expired = [
                key for key, entry in self._entries.items() if self._is_expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]

            evicted = 0
            while len(self._entries) > self.capacity:
                self._entries.popitem()
                evicted += 1

        removed = len(expired) + evicted
        if removed:
            logger.debug(f"Cache cleanup removed {removed} entries ({len(expired)} expired)")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Current size and limits, for monitoring."""
        return {"size": len(self._entries), "maxsize": self.capacity, "ttl": self.ttl}
