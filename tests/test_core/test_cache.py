"""Tests for the analysis result cache."""

import pytest

from pianocoach.core.cache import CacheManager, create_cache_manager


class TestCacheManager:
    def test_get_set(self, performance):
        cache = CacheManager(max_size=4)
        assert cache.get("abc") is None
        cache.set("abc", performance)
        assert cache.get("abc") is performance
        assert "abc" in cache
        assert len(cache) == 1

    def test_lru_eviction(self, make_result):
        cache = CacheManager(max_size=2)
        a, b, c = (make_result(tempo=t) for t in (100.0, 110.0, 120.0))
        cache.set("a", a)
        cache.set("b", b)
        # Touch "a" so that "b" becomes least recently used
        assert cache.get("a") is a
        cache.set("c", c)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_overwrite_does_not_evict(self, performance):
        cache = CacheManager(max_size=2)
        cache.set("a", performance)
        cache.set("b", performance)
        cache.set("a", performance)
        assert len(cache) == 2

    def test_ttl_expiry(self, performance, monkeypatch):
        cache = CacheManager(max_size=2, ttl=10)
        clock = [1000.0]
        monkeypatch.setattr("pianocoach.core.cache.time.time", lambda: clock[0])

        cache.set("a", performance)
        clock[0] += 5
        assert cache.get("a") is performance
        clock[0] += 6
        assert "a" not in cache
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_stats(self, performance):
        cache = CacheManager(max_size=2)
        cache.get("missing")
        cache.set("a", performance)
        cache.get("a")
        cache.get("a")

        stats = cache.get_stats()
        assert stats['hits'] == 2
        assert stats['misses'] == 1
        assert stats['size'] == 1
        assert stats['hit_ratio'] == pytest.approx(2 / 3)

    def test_clear(self, performance):
        cache = CacheManager()
        cache.set("a", performance)
        cache.set("b", performance)
        cache.clear()
        assert len(cache) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            CacheManager(max_size=0)


class TestCreateCacheManager:
    def test_disabled(self):
        assert create_cache_manager({'enabled': False}) is None

    def test_from_config(self):
        cache = create_cache_manager({'max_size': 3, 'ttl': 60})
        assert cache.max_size == 3
        assert cache.ttl == 60

    def test_defaults(self):
        assert create_cache_manager().max_size == 64
