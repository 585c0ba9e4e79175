"""Tests for the TTL cache and the read-through helper."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from stofhamp.services.cache import Cache, read_through


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_get_missing_key():
    """Test that a key that was never set is absent."""
    cache = Cache()
    assert cache.get("nonexistent") is None


def test_set_and_get():
    """Test basic set and get."""
    cache = Cache()
    cache.set("key1", "value1")
    assert cache.get("key1") == "value1"


def test_overwrite():
    """Test that the latest set wins."""
    cache = Cache()
    cache.set("key1", "old_value")
    cache.set("key1", "new_value")
    assert cache.get("key1") == "new_value"


def test_keys_are_independent():
    """Test that setting one key does not touch another."""
    cache = Cache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 3)

    assert cache.get("a") == 3
    assert cache.get("b") == 2


def test_categories_payload_round_trip():
    """Test that a category list comes back unchanged."""
    cache = Cache()
    categories = [{"id": "1", "name": "Metal"}]

    cache.set("categories", categories)

    assert cache.get("categories") == [{"id": "1", "name": "Metal"}]


def test_composite_material_key_does_not_affect_base_key():
    """Test that a per-category materials miss leaves the base key alone."""
    cache = Cache()
    materials = [{"id": "m1", "name": "Çelik"}]
    cache.set("materials", materials)

    assert cache.get("materials_cat123") is None
    assert cache.get("materials") == materials


def test_repeated_get_is_stable():
    """Test that reads have no side effects on a live entry."""
    cache = Cache()
    cache.set("key1", {"x": 1})

    first = cache.get("key1")
    second = cache.get("key1")

    assert first == second == {"x": 1}


def test_different_types():
    """Test caching different value types."""
    cache = Cache()
    cache.set("string", "hello")
    cache.set("int", 42)
    cache.set("list", [1, 2, 3])
    cache.set("dict", {"a": 1})

    assert cache.get("string") == "hello"
    assert cache.get("int") == 42
    assert cache.get("list") == [1, 2, 3]
    assert cache.get("dict") == {"a": 1}


def test_expiration_with_default_ttl():
    """Test that entries expire after the default TTL."""
    clock = FakeClock()
    cache = Cache(default_ttl=300, clock=clock)
    cache.set("key1", "value1")

    clock.advance(300)
    assert cache.get("key1") == "value1"

    clock.advance(1)
    assert cache.get("key1") is None
    assert "key1" not in cache.keys()


def test_custom_ttl():
    """Test that a per-entry TTL overrides the default."""
    clock = FakeClock()
    cache = Cache(default_ttl=300, clock=clock)
    cache.set("short", "val", ttl=10)
    cache.set("long", "val")

    clock.advance(11)

    assert cache.get("short") is None
    assert cache.get("long") == "val"


def test_set_refreshes_timestamp():
    """Test that overwriting an entry restarts its TTL."""
    clock = FakeClock()
    cache = Cache(default_ttl=60, clock=clock)
    cache.set("key1", "v1")

    clock.advance(50)
    cache.set("key1", "v2")
    clock.advance(50)

    assert cache.get("key1") == "v2"


def test_invalidate():
    """Test manual invalidation."""
    cache = Cache()
    cache.set("key1", "value1")

    cache.invalidate("key1")

    assert cache.get("key1") is None


def test_invalidate_nonexistent():
    """Test that invalidating a nonexistent key doesn't raise."""
    cache = Cache()
    cache.invalidate("nonexistent")


def test_invalidate_by_prefix():
    """Test that only keys with the prefix are dropped."""
    cache = Cache()
    cache.set("materials", [])
    cache.set("materials_cat1", [])
    cache.set("materials_cat2", [])
    cache.set("categories", [])

    removed = cache.invalidate_by_prefix("materials")

    assert removed == 3
    assert cache.keys() == ["categories"]


def test_clear():
    """Test clearing the entire cache."""
    cache = Cache()
    cache.set("key1", "val1")
    cache.set("key2", "val2")

    cache.clear()

    assert len(cache) == 0
    assert cache.get("key1") is None


def test_contains():
    cache = Cache()
    cache.set("present", "x")

    assert "present" in cache
    assert "absent" not in cache


def test_composite_key_ignores_empty_filters_and_sorts_names():
    """Test that filter order and empty values do not change the key."""
    first = Cache.composite_key(
        "listings", 2, "priceAsc", {"search": "sac", "category": "c1", "material": None}
    )
    second = Cache.composite_key(
        "listings", 2, "priceAsc", {"category": "c1", "location": "", "search": "sac"}
    )

    assert first == second == "listings_2_priceAsc_category:c1_search:sac"


def test_composite_key_escapes_separators_in_values():
    """Test that a value containing separators cannot mimic another filter."""
    single = Cache.composite_key("listings", 1, "newest", {"location": "stanbul_search:steel"})
    pair = Cache.composite_key("listings", 1, "newest", {"location": "stanbul", "search": "steel"})

    assert single != pair
    assert single == "listings_1_newest_location:stanbul%5Fsearch%3Asteel"


def test_composite_entries_use_composite_ttl():
    """Test that composite entries expire after the composite TTL."""
    clock = FakeClock()
    cache = Cache(default_ttl=300, composite_ttl=120, clock=clock)
    cache.set_composite("listings", 1, "newest", {}, {"items": []})

    assert cache.get_composite("listings", 1, "newest", {}) == {"items": []}

    clock.advance(121)
    assert cache.get_composite("listings", 1, "newest", {}) is None


def test_batch_key_is_order_independent():
    """Test that batch keys do not depend on item order."""
    items = ["b", "a", "c"]

    key = Cache.batch_key("batch_favorites", "u1", items)

    assert key == Cache.batch_key("batch_favorites", "u1", ["c", "b", "a"])
    assert key == "batch_favorites_u1_a_b_c"
    assert items == ["b", "a", "c"]


def test_batch_key_escapes_separators_in_items():
    joined = Cache.batch_key("batch_favorites", "u1", ["a_b"])

    assert joined != Cache.batch_key("batch_favorites", "u1", ["a", "b"])
    assert joined == "batch_favorites_u1_a%5Fb"


def test_batch_entries_use_batch_ttl():
    clock = FakeClock()
    cache = Cache(batch_ttl=30, clock=clock)
    cache.set_batch("batch_favorites", "u1", ["l1"], ["l1"])

    clock.advance(30)
    assert cache.get_batch("batch_favorites", "u1", ["l1"]) == ["l1"]

    clock.advance(1)
    assert cache.get_batch("batch_favorites", "u1", ["l1"]) is None


def test_message_pages_invalidated_per_conversation():
    """Test that invalidating one conversation keeps the others."""
    cache = Cache()
    cache.set_messages("c1", 1, 20, ["m1"])
    cache.set_messages("c1", 2, 20, ["m0"])
    cache.set_messages("c10", 1, 20, ["other"])

    removed = cache.invalidate_messages("c1")

    assert removed == 2
    assert cache.get_messages("c1", 1, 20) is None
    assert cache.get_messages("c10", 1, 20) == ["other"]
    assert Cache.message_key("c1", 1, 20) == "messages_c1_1_20"


@pytest.mark.asyncio
async def test_read_through_miss_loads_and_stores():
    """Test that a miss calls the loader once and caches its result."""
    cache = Cache()
    loader = AsyncMock(return_value=[{"id": "1", "name": "Metal"}])

    first = await read_through(cache, "categories", loader)
    second = await read_through(cache, "categories", loader)

    assert first == second == [{"id": "1", "name": "Metal"}]
    loader.assert_awaited_once()


@pytest.mark.asyncio
async def test_read_through_caches_empty_list():
    """Test that an empty result is a hit on the next read."""
    cache = Cache()
    loader = AsyncMock(return_value=[])

    await read_through(cache, "materials", loader)
    await read_through(cache, "materials", loader)

    loader.assert_awaited_once()


@pytest.mark.asyncio
async def test_read_through_respects_ttl_argument():
    clock = FakeClock()
    cache = Cache(default_ttl=300, clock=clock)
    loader = AsyncMock(return_value=3)

    await read_through(cache, "unread_count_u1", loader, ttl=30)
    clock.advance(31)
    await read_through(cache, "unread_count_u1", loader, ttl=30)

    assert loader.await_count == 2


@pytest.mark.asyncio
async def test_read_through_loader_error_propagates():
    """Test that a failing loader raises and stores nothing."""
    cache = Cache()
    loader = AsyncMock(side_effect=RuntimeError("database down"))

    with pytest.raises(RuntimeError):
        await read_through(cache, "categories", loader)

    assert cache.get("categories") is None


@pytest.mark.asyncio
async def test_read_through_broken_cache_falls_back_to_loader():
    """Test that cache errors are treated as a miss."""
    broken = MagicMock()
    broken.get.side_effect = RuntimeError("cache unavailable")
    broken.set.side_effect = RuntimeError("cache unavailable")
    loader = AsyncMock(return_value=["fresh"])

    result = await read_through(broken, "categories", loader)

    assert result == ["fresh"]
    loader.assert_awaited_once()
