"""Tests for the TTL + LRU page cache."""

import pytest

from wcproxy.application.page_cache import CacheStatistics, PageCache


class FakeTimer:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def timer():
    return FakeTimer()


class TestPageCache:
    """Test PageCache storage, expiry and eviction."""

    def test_defaults(self):
        cache = PageCache()
        assert cache.max_entries == 100
        assert cache.ttl_seconds == 3600
        assert len(cache) == 0

    def test_get_missing_returns_none(self):
        cache = PageCache()
        assert cache.get("https://example.com") is None

    def test_set_then_get(self):
        cache = PageCache()
        cache.set("https://example.com", "<html>ok</html>")

        assert cache.get("https://example.com") == "<html>ok</html>"
        assert "https://example.com" in cache
        assert len(cache) == 1

    def test_empty_body_is_a_hit(self):
        cache = PageCache()
        cache.set("https://example.com", "")
        assert cache.get("https://example.com") == ""

    def test_entry_expires_after_ttl(self, timer):
        cache = PageCache(max_entries=10, ttl_seconds=60, timer=timer)
        cache.set("https://example.com", "<html>ok</html>")

        timer.advance(59)
        assert cache.get("https://example.com") == "<html>ok</html>"

        timer.advance(2)
        assert cache.get("https://example.com") is None
        assert "https://example.com" not in cache

    def test_get_does_not_extend_ttl(self, timer):
        cache = PageCache(max_entries=10, ttl_seconds=60, timer=timer)
        cache.set("a.com", "a")

        timer.advance(50)
        assert cache.get("a.com") == "a"
        timer.advance(20)
        assert cache.get("a.com") is None

    def test_least_recently_used_entry_evicted_at_capacity(self, timer):
        cache = PageCache(max_entries=2, ttl_seconds=60, timer=timer)
        cache.set("a.com", "a")
        cache.set("b.com", "b")
        cache.set("c.com", "c")

        assert "a.com" not in cache
        assert cache.get("b.com") == "b"
        assert cache.get("c.com") == "c"
        assert len(cache) == 2

    def test_get_refreshes_recency(self, timer):
        cache = PageCache(max_entries=2, ttl_seconds=60, timer=timer)
        cache.set("a.com", "a")
        cache.set("b.com", "b")

        assert cache.get("a.com") == "a"
        cache.set("c.com", "c")

        assert cache.get("a.com") == "a"
        assert "b.com" not in cache

    def test_set_replaces_existing_entry(self):
        cache = PageCache()
        cache.set("a.com", "old")
        cache.set("a.com", "new")

        assert cache.get("a.com") == "new"
        assert len(cache) == 1

    def test_clear(self):
        cache = PageCache()
        cache.set("a.com", "a")
        cache.clear()
        assert len(cache) == 0

    def test_stats_track_hits_misses_and_stores(self):
        cache = PageCache(max_entries=5, ttl_seconds=30)
        cache.get("a.com")
        cache.set("a.com", "a")
        cache.get("a.com")
        cache.get("a.com")

        stats = cache.get_stats()
        assert stats["cache_hits"] == 2
        assert stats["cache_misses"] == 1
        assert stats["stores"] == 1
        assert stats["hit_rate"] == pytest.approx(0.667, abs=1e-3)
        assert stats["entries"] == 1
        assert stats["max_entries"] == 5
        assert stats["ttl_seconds"] == 30


class TestCacheStatistics:
    """Test CacheStatistics counters."""

    def test_hit_rate_without_lookups(self):
        assert CacheStatistics().hit_rate == 0.0

    def test_reset(self):
        stats = CacheStatistics()
        stats.record_hit()
        stats.record_miss()
        stats.record_store()
        stats.reset()

        assert stats.get_stats()["cache_hits"] == 0
        assert stats.get_stats()["cache_misses"] == 0
        assert stats.get_stats()["stores"] == 0
