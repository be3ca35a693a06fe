"""Tests for the LRU completion cache."""

from __future__ import annotations

import pytest

from completion_cache import CacheEntry, LRUCache


def test_capacity_two_evicts_oldest_insert() -> None:
    cache = LRUCache(2)
    cache.set("A", 1)
    cache.set("B", 2)
    cache.set("C", 3)

    assert cache.get("A") is None
    assert cache.get("B") == 2
    assert cache.get("C") == 3
    assert len(cache) == 2


def test_get_promotes_entry_past_next_eviction() -> None:
    cache = LRUCache(3)
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())

    assert cache.get("a") == "A"
    cache.set("d", "D")

    assert cache.has("a")
    assert not cache.has("b")
    assert cache.has("c") and cache.has("d")


def test_has_does_not_count_as_use() -> None:
    cache = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.has("a")

    cache.set("c", 3)
    assert not cache.has("a")


def test_overwriting_existing_key_on_full_cache_keeps_others() -> None:
    cache = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)

    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_clear_empties_store_and_restarts_recency() -> None:
    cache = LRUCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()

    assert len(cache) == 0
    assert cache.get("a") is None

    cache.set("x", 1)
    cache.set("y", 2)
    cache.get("x")
    cache.set("z", 3)
    assert cache.has("x")
    assert not cache.has("y")


def test_stale_entry_is_still_a_hit_for_the_cache() -> None:
    cache = LRUCache(4)
    cache.set("k", CacheEntry(completion_text="old", created_at=0.0))
    assert cache.get("k") == CacheEntry(completion_text="old", created_at=0.0)


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        LRUCache(0)
