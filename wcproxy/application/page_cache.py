"""Bounded in-memory page cache with TTL expiry and LRU eviction."""

import time
from typing import Any, Callable, Dict, Optional

from cachetools import TTLCache

from ..constants import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL_MS


class CacheStatistics:
    """Tracks page cache hit/miss counters."""

    def __init__(self):
        self.cache_hits = 0
        self.cache_misses = 0
        self.stores = 0
        self.start_time = time.time()

    def record_hit(self):
        self.cache_hits += 1

    def record_miss(self):
        self.cache_misses += 1

    def record_store(self):
        self.stores += 1

    @property
    def hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": round(self.hit_rate, 3),
            "stores": self.stores,
            "uptime_seconds": round(self.uptime_seconds, 1),
        }

    def reset(self):
        self.cache_hits = 0
        self.cache_misses = 0
        self.stores = 0
        self.start_time = time.time()


class PageCache:
    """
    Cache of webcache page bodies keyed by normalized target URL.

    Entries expire ``ttl_seconds`` after they are stored. When the cache is
    full the least recently used entry is evicted. A successful :meth:`get`
    refreshes the entry's recency but never its expiry. Entries are replaced,
    never mutated.

    All access happens on the event loop thread, so no locking is done here.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_CACHE_TTL_MS / 1000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds
        self._store: TTLCache = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer
        )
        self._statistics = CacheStatistics()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, target_url: str) -> Optional[str]:
        """Return the cached body for *target_url*, or ``None`` on a miss."""
        body = self._store.get(target_url)
        if body is None:
            self._statistics.record_miss()
        else:
            self._statistics.record_hit()
        return body

    def set(self, target_url: str, body: str) -> None:
        self._store[target_url] = body
        self._statistics.record_store()

    def __contains__(self, target_url: object) -> bool:
        return target_url in self._store

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()

    def get_stats(self) -> Dict[str, Any]:
        stats = self._statistics.get_stats()
        stats.update(
            {
                "entries": len(self._store),
                "max_entries": self._max_entries,
                "ttl_seconds": self._ttl_seconds,
            }
        )
        return stats
