import asyncio

from tools.web.cache import MemoizingCache, make_cache_key, memoize

from fakes import FailingStore


def test_cache_key_is_deterministic_and_namespaced():
    a = make_cache_key("summarize-url", ["q", {"b": 1, "a": 2}])
    b = make_cache_key("summarize-url", ["q", {"a": 2, "b": 1}])
    assert a == b
    assert a.startswith("summarize-url:")
    assert a != make_cache_key("other-op", ["q", {"a": 2, "b": 1}])
    assert a != make_cache_key("summarize-url", ["q2", {"a": 2, "b": 1}])


def test_get_or_compute_computes_once(store):
    cache = MemoizingCache(store)
    calls = []

    async def compute():
        calls.append(1)
        return {"text": "hello"}

    async def scenario():
        first = await cache.get_or_compute("k", 60, compute)
        second = await cache.get_or_compute("k", 60, compute)
        return first, second

    first, second = asyncio.run(scenario())
    assert first == ({"text": "hello"}, False)
    assert second == ({"text": "hello"}, True)
    assert len(calls) == 1


def test_store_outage_still_computes():
    cache = MemoizingCache(FailingStore())
    calls = []

    async def compute():
        calls.append(1)
        return "value"

    async def scenario():
        return [await cache.get_or_compute("k", 60, compute) for _ in range(2)]

    assert asyncio.run(scenario()) == [("value", False), ("value", False)]
    assert len(calls) == 2


def test_corrupt_entry_is_recomputed(store):
    cache = MemoizingCache(store)

    async def compute():
        return "fresh"

    async def scenario():
        await store.set("k", "{not json", 60)
        value = await cache.get_or_compute("k", 60, compute)
        return value, await store.get("k")

    value, raw = asyncio.run(scenario())
    assert value == ("fresh", False)
    assert raw == '"fresh"'


def test_memoize_decorator_uses_key_args(store):
    cache = MemoizingCache(store)
    calls = []

    @memoize(cache, "lookup", 60, key_args=lambda topic, verbose=False: [topic])
    async def lookup(topic, verbose=False):
        calls.append((topic, verbose))
        return topic.upper()

    async def scenario():
        return [await lookup("paris"), await lookup("paris", verbose=True), await lookup("rome")]

    assert asyncio.run(scenario()) == ["PARIS", "PARIS", "ROME"]
    assert calls == [("paris", False), ("rome", False)]
