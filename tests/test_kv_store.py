import asyncio

from storage.kv_store import InMemoryKeyValueStore, get_default_store


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_set_then_get_until_expiry():
    clock = Clock()
    store = InMemoryKeyValueStore(clock=clock)

    async def scenario():
        await store.set("k", "v", ttl_seconds=10)
        assert await store.get("k") == "v"
        clock.now += 10
        assert await store.get("k") is None

    asyncio.run(scenario())


def test_missing_key_is_none():
    assert asyncio.run(InMemoryKeyValueStore().get("nope")) is None


def test_incr_with_expiry_counts_and_refreshes_ttl():
    clock = Clock()
    store = InMemoryKeyValueStore(clock=clock)

    async def scenario():
        assert await store.incr_with_expiry("c", 5) == 1
        clock.now += 4
        assert await store.incr_with_expiry("c", 5) == 2
        clock.now += 4
        # Second increment pushed expiry out
        assert await store.get("c") == "2"
        clock.now += 2
        assert await store.get("c") is None
        assert await store.incr_with_expiry("c", 5) == 1

    asyncio.run(scenario())


def test_concurrent_increments_are_not_lost():
    store = InMemoryKeyValueStore()

    async def scenario():
        await asyncio.gather(*(store.incr_with_expiry("c", 60) for _ in range(50)))
        return await store.get("c")

    assert asyncio.run(scenario()) == "50"


def test_clear_drops_everything():
    store = InMemoryKeyValueStore()
    asyncio.run(store.set("k", "v", 60))
    store.clear()
    assert asyncio.run(store.get("k")) is None


def test_default_store_is_shared():
    assert get_default_store() is get_default_store()
