"""Unit tests for RequestCache."""

import asyncio
from unittest.mock import patch

import pytest

from resilient_data_access.exceptions import ConfigurationError
from resilient_data_access.network.cache import CacheEntry, RequestCache, canonical_json
from resilient_data_access.observability import (
    CACHE_EVICTIONS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
    UnifiedMetricsCollector,
)


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})

    def test_compact_separators(self):
        assert canonical_json({"a": [1, 2]}) == '{"a":[1,2]}'


class TestGenerateKey:
    def test_method_is_uppercased(self):
        assert RequestCache.generate_key("get", "/users") == "GET::/users"

    def test_body_is_appended_canonically(self):
        key1 = RequestCache.generate_key("POST", "/search", {"q": "x", "page": 1})
        key2 = RequestCache.generate_key("POST", "/search", {"page": 1, "q": "x"})
        assert key1 == key2
        assert key1 == 'POST::/search::{"page":1,"q":"x"}'

    def test_different_bodies_give_different_keys(self):
        assert RequestCache.generate_key("POST", "/s", {"q": 1}) != RequestCache.generate_key(
            "POST", "/s", {"q": 2}
        )


class TestRequestCacheInit:
    def test_rejects_zero_max_size(self):
        with pytest.raises(ConfigurationError):
            RequestCache(max_size=0)

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ConfigurationError):
            RequestCache(default_ttl=0)


class TestRequestCacheGetSet:
    def test_miss_returns_none(self):
        cache = RequestCache()
        assert cache.get("missing") is None
        assert cache.stats.misses == 1

    def test_hit_returns_value(self):
        cache = RequestCache()
        cache.set("k", {"a": 1})
        assert cache.get("k") == {"a": 1}
        assert cache.stats.hits == 1

    def test_falsy_values_are_hits(self):
        cache = RequestCache()
        cache.set("zero", 0)
        cache.set("empty", [])
        assert cache.get("zero") == 0
        assert cache.get("empty") == []
        assert cache.stats.hits == 2

    def test_entry_expires_after_ttl(self):
        cache = RequestCache(default_ttl=10.0)
        with patch("time.time", return_value=1000.0):
            cache.set("k", "v")
        with patch("time.time", return_value=1010.0):
            assert cache.get("k") == "v"
        with patch("time.time", return_value=1010.5):
            assert cache.get("k") is None
        assert "k" not in cache

    def test_explicit_ttl_overrides_default(self):
        cache = RequestCache(default_ttl=300.0)
        with patch("time.time", return_value=1000.0):
            cache.set("k", "v", ttl=1.0)
        with patch("time.time", return_value=1002.0):
            assert cache.get("k") is None

    def test_lru_eviction_drops_least_recently_used(self):
        cache = RequestCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert cache.stats.evictions == 1

    def test_overwrite_does_not_evict(self):
        cache = RequestCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert len(cache) == 2
        assert cache.stats.evictions == 0
        assert cache.keys() == ["b", "a"]

    def test_size_never_exceeds_max(self):
        cache = RequestCache(max_size=3)
        for i in range(10):
            cache.set(f"k{i}", i)
        assert len(cache) == 3
        assert cache.keys() == ["k7", "k8", "k9"]


class TestRequestCacheRemoval:
    def test_invalidate_by_pattern(self):
        cache = RequestCache()
        cache.set("GET::/users/1", 1)
        cache.set("GET::/users/2", 2)
        cache.set("GET::/posts/1", 3)

        removed = cache.invalidate(r"/users/")

        assert removed == 2
        assert cache.keys() == ["GET::/posts/1"]

    def test_invalidate_without_matches(self):
        cache = RequestCache()
        cache.set("a", 1)
        assert cache.invalidate("zzz") == 0
        assert len(cache) == 1

    def test_prune_removes_only_expired(self):
        cache = RequestCache()
        with patch("time.time", return_value=1000.0):
            cache.set("short", 1, ttl=1.0)
            cache.set("long", 2, ttl=100.0)
        with patch("time.time", return_value=1005.0):
            assert cache.prune() == 1
        assert cache.keys() == ["long"]

    def test_clear_keeps_counters(self):
        cache = RequestCache()
        cache.set("a", 1)
        cache.get("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats.hits == 1

    def test_get_stats(self):
        cache = RequestCache(max_size=5)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.get_stats()
        assert stats == {
            "size": 1,
            "max_size": 5,
            "hits": 1,
            "misses": 1,
            "evictions": 0,
            "hit_rate": 0.5,
        }


class TestCacheEntry:
    def test_is_expired(self):
        entry = CacheEntry(key="k", response=1, cached_at=0.0, expires_at=10.0)
        with patch("time.time", return_value=10.0):
            assert entry.is_expired is False
        with patch("time.time", return_value=10.1):
            assert entry.is_expired is True


class TestRequestCacheLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        cache = RequestCache(cleanup_interval=60.0)
        await cache.start()
        assert cache.running is True
        await cache.stop()
        assert cache.running is False
        await cache.stop()

    @pytest.mark.asyncio
    async def test_background_prune(self):
        cache = RequestCache(cleanup_interval=0.01)
        cache.set("k", "v", ttl=0.001)
        async with cache:
            await asyncio.sleep(0.05)
        assert "k" not in cache


class TestRequestCacheMetrics:
    def test_reports_to_collector(self):
        collector = UnifiedMetricsCollector(enable_prometheus=False)
        cache = RequestCache(max_size=1, metrics_collector=collector)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")
        cache.set("b", 2)

        assert collector.get_counter(CACHE_HITS_TOTAL) == 1
        assert collector.get_counter(CACHE_MISSES_TOTAL) == 1
        assert collector.get_counter(CACHE_EVICTIONS_TOTAL) == 1
