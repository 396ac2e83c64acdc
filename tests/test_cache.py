"""Tests for the LRU interpretation cache."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from taskparse.services.cache import DEFAULT_CAPACITY, InterpretationCache
from taskparse.services.intent import CacheEntry, StrategyTag, Task

NOW = datetime(2025, 1, 15, 10, 30, tzinfo=ZoneInfo("UTC"))


def make_entry(title: str, confidence: float = 0.95) -> CacheEntry:
    return CacheEntry(
        intent=Task(title=title),
        strategy=StrategyTag.RULE_ENGINE,
        confidence=confidence,
        created_at=NOW,
    )


class TestInterpretationCache:
    def test_default_capacity(self):
        assert InterpretationCache().capacity == DEFAULT_CAPACITY == 1000

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            InterpretationCache(0)

    def test_get_missing(self):
        assert InterpretationCache(2).get("nothing") is None

    def test_put_and_get(self):
        cache = InterpretationCache(2)
        entry = make_entry("Buy milk")
        cache.put("buy milk", entry)
        assert cache.get("buy milk") is entry
        assert "buy milk" in cache
        assert len(cache) == 1

    def test_evicts_least_recently_used(self):
        cache = InterpretationCache(2)
        cache.put("a", make_entry("a"))
        cache.put("b", make_entry("b"))
        cache.put("c", make_entry("c"))

        assert "a" not in cache
        assert len(cache) == 2

    def test_get_refreshes_recency(self):
        cache = InterpretationCache(2)
        cache.put("a", make_entry("a"))
        cache.put("b", make_entry("b"))
        cache.get("a")
        cache.put("c", make_entry("c"))

        assert "a" in cache
        assert "b" not in cache

    def test_put_replaces_existing(self):
        cache = InterpretationCache(2)
        cache.put("a", make_entry("first"))
        cache.put("a", make_entry("second"))

        assert len(cache) == 1
        assert cache.get("a").intent.title == "second"

    def test_iterate_is_a_snapshot_in_recency_order(self):
        cache = InterpretationCache(3)
        cache.put("a", make_entry("a"))
        cache.put("b", make_entry("b"))
        cache.get("a")

        snapshot = cache.iterate()
        cache.put("c", make_entry("c"))

        assert [key for key, _ in snapshot] == ["b", "a"]

    def test_stats(self):
        cache = InterpretationCache(5)
        cache.put("a", make_entry("a"))
        assert cache.stats() == (1, 5)

    def test_clear(self):
        cache = InterpretationCache(5)
        cache.put("a", make_entry("a"))
        cache.clear()
        assert len(cache) == 0
