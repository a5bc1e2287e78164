"""Tests for the viewed-itineraries cache"""
import asyncio
import json

from tripmatch.discovery.viewed_cache import VIEWED_STORAGE_KEY, ViewedCache
from tripmatch.utils.storage import MemoryStorage


class FailingStorage(MemoryStorage):
    async def set_item(self, key, value):
        raise OSError("disk full")


def test_add_twice_writes_once():
    storage = MemoryStorage()
    cache = ViewedCache(storage)

    async def scenario():
        await cache.add("itin_1")
        await cache.add("itin_1")
        return await cache.count()

    assert asyncio.run(scenario()) == 1
    assert storage.writes == 1
    assert json.loads(storage.items[VIEWED_STORAGE_KEY]) == ["itin_1"]


def test_hydrate_normalizes_legacy_entries():
    raw = json.dumps(["a", {"id": "b"}, None, "", {"other": 1}, "a"])
    cache = ViewedCache(MemoryStorage({VIEWED_STORAGE_KEY: raw}))

    async def scenario():
        return await cache.snapshot()

    assert asyncio.run(scenario()) == frozenset({"a", "b"})


def test_corrupt_state_degrades_to_empty():
    cache = ViewedCache(MemoryStorage({VIEWED_STORAGE_KEY: "{not json"}))
    assert asyncio.run(cache.count()) == 0
    assert cache.hydrated


def test_non_list_state_degrades_to_empty():
    cache = ViewedCache(MemoryStorage({VIEWED_STORAGE_KEY: json.dumps({"a": 1})}))
    assert asyncio.run(cache.count()) == 0


def test_add_all_single_write_and_skips_known():
    storage = MemoryStorage()
    cache = ViewedCache(storage)

    async def scenario():
        await cache.add_all(["a", "b", "a"])
        await cache.add_all(["a", "b"])
        await cache.add_all(["b", "c"])

    asyncio.run(scenario())
    assert storage.writes == 2
    assert json.loads(storage.items[VIEWED_STORAGE_KEY]) == ["a", "b", "c"]


def test_invalid_ids_are_ignored():
    storage = MemoryStorage()
    cache = ViewedCache(storage)

    async def scenario():
        await cache.add("")
        await cache.add("   ")
        await cache.add(None)
        return await cache.has("")

    assert asyncio.run(scenario()) is False
    assert storage.writes == 0


def test_mirror_is_authoritative_until_invalidated():
    storage = MemoryStorage({VIEWED_STORAGE_KEY: json.dumps(["a"])})
    cache = ViewedCache(storage)

    async def scenario():
        assert await cache.has("a")
        storage.items[VIEWED_STORAGE_KEY] = json.dumps(["b"])
        stale = await cache.has("b")
        cache.invalidate()
        fresh = await cache.has("b")
        return stale, fresh

    assert asyncio.run(scenario()) == (False, True)


def test_write_failure_keeps_mirror():
    cache = ViewedCache(FailingStorage())

    async def scenario():
        await cache.add("a")
        return await cache.has("a")

    assert asyncio.run(scenario()) is True


def test_clear_removes_persisted_state():
    storage = MemoryStorage({VIEWED_STORAGE_KEY: json.dumps(["a", "b"])})
    cache = ViewedCache(storage)

    async def scenario():
        await cache.clear()
        return await cache.count()

    assert asyncio.run(scenario()) == 0
    assert VIEWED_STORAGE_KEY not in storage.items


def test_json_file_storage_round_trip(tmp_path):
    from tripmatch.utils.storage import JsonFileStorage

    path = tmp_path / "state" / "viewed.json"
    cache = ViewedCache(JsonFileStorage(str(path)), key="VIEWED_ITINERARIES:alice")

    async def scenario():
        await cache.add_all(["x", "y"])
        reloaded = ViewedCache(JsonFileStorage(str(path)), key="VIEWED_ITINERARIES:alice")
        return await reloaded.snapshot()

    assert asyncio.run(scenario()) == frozenset({"x", "y"})
    assert path.exists()
