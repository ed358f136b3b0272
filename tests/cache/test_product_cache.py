from __future__ import annotations

import asyncio
import json

from productcache import CACHE_TTL_MS, CachedRow, FlatStorage, ProductCache


def run_async(coro):
    return asyncio.run(coro)


class _Clock:
    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class _MemoryStore:
    backend_id = "memory"

    def __init__(self, *, fail_open: bool = False) -> None:
        self.rows: dict[str, CachedRow] = {}
        self.clears = 0
        self._fail_open = fail_open

    async def open(self) -> None:
        if self._fail_open:
            raise ConnectionError("structured store unavailable")

    async def close(self) -> None:
        return None

    async def get(self, key: str) -> CachedRow | None:
        return self.rows.get(key)

    async def set(self, row: CachedRow) -> None:
        self.rows[row.key] = row

    async def delete(self, key: str) -> None:
        self.rows.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self.rows)

    async def clear(self) -> int:
        self.clears += 1
        count = len(self.rows)
        self.rows.clear()
        return count


SHIRTS = [{"id": 1, "name": "Oxford shirt", "price": 49.5, "discount": 10}]


def test_set_then_get_round_trips_with_consent():
    async def scenario() -> None:
        store = _MemoryStore()
        cache = ProductCache(FlatStorage(), structured=store)
        cache.consent.set_permission("accepted")

        await cache.set("shirts", SHIRTS)
        assert await cache.get("shirts") == SHIRTS
        assert "shirts" in store.rows

        await cache.set("shirts", [])
        assert await cache.get("shirts") == []

    run_async(scenario())


def test_without_consent_get_and_set_are_noops():
    async def scenario() -> None:
        store = _MemoryStore()
        cache = ProductCache(FlatStorage(), structured=store)

        await cache.set("shirts", SHIRTS)
        assert store.rows == {}
        assert await cache.get("shirts") is None

        store.rows["shirts"] = CachedRow(key="shirts", data=SHIRTS, timestamp=0)
        assert await cache.get("shirts") is None

    run_async(scenario())


def test_entry_expires_exactly_at_ttl_and_is_deleted():
    async def scenario() -> None:
        clock = _Clock()
        store = _MemoryStore()
        cache = ProductCache(FlatStorage(), structured=store, clock=clock)
        cache.consent.set_permission("accepted")
        await cache.set("shirts", SHIRTS)

        clock.now += CACHE_TTL_MS - 1
        assert await cache.get("shirts") == SHIRTS

        clock.now += 1
        assert await cache.get("shirts") is None
        await cache.drain()
        assert store.rows == {}

    run_async(scenario())


def test_reject_purges_cached_entries():
    async def scenario() -> None:
        store = _MemoryStore()
        storage = FlatStorage()
        cache = ProductCache(storage, structured=store)
        cache.consent.set_permission("accepted")
        await cache.set("shirts", SHIRTS)
        await cache.flat.set(CachedRow(key="shoes", data=[{"id": 2}], timestamp=1))

        cache.consent.set_permission("rejected")
        assert await cache.flat.keys() == []
        assert await cache.get("shirts") is None
        await cache.drain()
        assert store.rows == {}

        cache.consent.set_permission("accepted")
        assert await cache.get("shirts") is None
        assert await cache.get("shoes") is None

    run_async(scenario())


def test_reject_outside_event_loop_finishes_purge_on_next_call():
    store = _MemoryStore()
    cache = ProductCache(FlatStorage(), structured=store)
    cache.consent.set_permission("accepted")
    run_async(cache.set("shirts", SHIRTS))

    cache.consent.set_permission("rejected")
    assert "shirts" in store.rows

    cache.consent.set_permission("accepted")
    assert run_async(cache.get("shirts")) is None
    assert store.rows == {}
    assert store.clears == 1


def test_structured_open_failure_round_trips_through_flat_store():
    async def scenario() -> None:
        storage = FlatStorage()
        cache = ProductCache(storage, structured=_MemoryStore(fail_open=True))
        cache.consent.set_permission("accepted")

        await cache.set("shirts", SHIRTS)
        assert await cache.get("shirts") == SHIRTS
        stored = json.loads(storage.get_item("productcache:shirts") or "{}")
        assert stored["key"] == "shirts"
        assert stored["data"] == SHIRTS

    run_async(scenario())


def test_malformed_flat_entry_is_a_miss():
    async def scenario() -> None:
        storage = FlatStorage()
        cache = ProductCache(storage)
        cache.consent.set_permission("accepted")
        storage.set_item("productcache:shirts", "not-json")
        assert await cache.get("shirts") is None
        assert storage.get_item("productcache:shirts") is None

    run_async(scenario())


def test_unserializable_payload_is_dropped_quietly():
    async def scenario() -> None:
        storage = FlatStorage()
        cache = ProductCache(storage)
        cache.consent.set_permission("accepted")
        await cache.set("shirts", {"bad": object()})  # type: ignore[dict-item]
        assert await cache.get("shirts") is None

    run_async(scenario())


def test_clear_product_cache_keeps_consent_and_other_keys():
    async def scenario() -> None:
        store = _MemoryStore()
        storage = FlatStorage()
        storage.set_item("theme", "dark")
        cache = ProductCache(storage, structured=store)
        cache.consent.set_permission("accepted")
        await cache.set("shirts", SHIRTS)
        await cache.flat.set(CachedRow(key="shoes", data=[], timestamp=1))

        assert await cache.clear_product_cache() is True
        assert store.rows == {}
        assert await cache.flat.keys() == []
        assert storage.get_item("theme") == "dark"
        assert cache.consent.has_permission() is True

    run_async(scenario())


def test_delete_removes_key_everywhere():
    async def scenario() -> None:
        store = _MemoryStore()
        cache = ProductCache(FlatStorage(), structured=store)
        cache.consent.set_permission("accepted")
        await cache.set("shirts", SHIRTS)
        await cache.flat.set(CachedRow(key="shirts", data=SHIRTS, timestamp=1))

        await cache.delete("shirts")
        assert store.rows == {}
        assert await cache.flat.keys() == []

    run_async(scenario())


def test_purge_expired_sweeps_only_stale_rows():
    async def scenario() -> None:
        clock = _Clock()
        store = _MemoryStore()
        storage = FlatStorage()
        cache = ProductCache(storage, structured=store, clock=clock)
        cache.consent.set_permission("accepted")

        await cache.set("old", SHIRTS)
        clock.now += CACHE_TTL_MS
        await cache.set("fresh", SHIRTS)
        await cache.flat.set(CachedRow(key="stale-flat", data=[], timestamp=0))
        storage.set_item("productcache:broken", "{")

        assert await cache.purge_expired() == 3
        assert list(store.rows) == ["fresh"]
        assert await cache.flat.keys() == []

    run_async(scenario())


def test_shopper_scenario_accept_cache_reject():
    async def scenario() -> None:
        cache = ProductCache(FlatStorage(), structured=_MemoryStore())
        assert cache.consent.should_prompt_for_consent() is True

        cache.consent.set_permission("accepted")
        assert cache.consent.should_prompt_for_consent() is False
        products = [{"id": 1, "name": "Linen shirt"}]
        await cache.set("shirts", products)
        assert await cache.get("shirts") == products

        cache.consent.set_permission("rejected")
        assert await cache.get("shirts") is None
        await cache.aclose()

    run_async(scenario())


def test_reject_outside_event_loop_purges_structured_rows_after_restart(tmp_path):
    path = tmp_path / "flat.json"
    store = _MemoryStore()
    before = ProductCache(FlatStorage(path), structured=store)
    before.consent.set_permission("accepted")
    run_async(before.set("shirts", [{"id": 1}]))
    assert "shirts" in store.rows

    before.consent.set_permission("rejected")

    after = ProductCache(FlatStorage(path), structured=store)
    after.consent.set_permission("accepted")
    assert run_async(after.get("shirts")) is None
    assert store.rows == {}
    assert FlatStorage(path).get_item("cache_purge_pending") is None


def test_pending_purge_survives_until_structured_store_is_reachable(tmp_path):
    path = tmp_path / "flat.json"
    store = _MemoryStore()
    storage = FlatStorage(path)
    cache = ProductCache(storage, structured=store)
    cache.consent.set_permission("accepted")
    run_async(cache.set("shirts", SHIRTS))
    cache.consent.set_permission("rejected")

    offline = ProductCache(FlatStorage(path), structured=_MemoryStore(fail_open=True))
    offline.consent.set_permission("accepted")
    assert run_async(offline.get("shirts")) is None
    assert FlatStorage(path).get_item("cache_purge_pending") is not None

    online = ProductCache(FlatStorage(path), structured=store)
    assert run_async(online.get("shirts")) is None
    assert store.rows == {}
    assert FlatStorage(path).get_item("cache_purge_pending") is None


def test_purge_expired_checks_each_backend_separately():
    async def scenario() -> None:
        clock = _Clock()
        store = _MemoryStore()
        cache = ProductCache(FlatStorage(), structured=store, clock=clock)
        cache.consent.set_permission("accepted")
        await cache.flat.set(CachedRow(key="shirts", data=[{"id": 0}], timestamp=0))
        await cache.set("shirts", SHIRTS)

        assert await cache.purge_expired() == 1
        assert list(store.rows) == ["shirts"]
        assert await cache.flat.keys() == []
        assert await cache.get("shirts") == SHIRTS

    run_async(scenario())
