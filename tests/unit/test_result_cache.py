"""Unit tests for the per-worker result cache."""

from __future__ import annotations

import asyncio

import pytest

from local_instantsearch.services.result_cache import ResultCache, with_cache


class CountingSearch:
    """Async callable that records every invocation."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def __call__(self, query: str, page: int = 0) -> dict:
        self.calls.append((query, page))
        return {"query": query, "page": page}


@pytest.mark.asyncio
async def test_repeated_call_is_served_from_cache() -> None:
    search = CountingSearch()
    cached = with_cache(search, ResultCache("docs"))

    first = await cached("foo", 0)
    second = await cached("foo", 0)

    assert first == second
    assert first is not second
    assert search.calls == [("foo", 0)]
    assert cached.cache.hits == 1
    assert cached.cache.misses == 1


@pytest.mark.asyncio
async def test_distinct_arguments_are_cached_separately() -> None:
    search = CountingSearch()
    cached = with_cache(search, ResultCache())

    await cached("foo", 0)
    await cached("foo", 1)
    await cached("bar", 0)

    assert len(search.calls) == 3
    assert len(cached.cache) == 3


@pytest.mark.asyncio
async def test_namespaces_share_a_cache_without_sharing_entries() -> None:
    search = CountingSearch()
    cache = ResultCache()
    hits = with_cache(search, cache, namespace="hits")
    facets = with_cache(search, cache, namespace="facets")

    await hits("foo", 0)
    await facets("foo", 0)

    assert len(search.calls) == 2
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_concurrent_misses_compute_once() -> None:
    release = asyncio.Event()
    calls = 0

    async def slow_search(query: str) -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return query.upper()

    cached = with_cache(slow_search, ResultCache())
    tasks = [asyncio.create_task(cached("foo")) for _ in range(5)]
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.gather(*tasks) == ["FOO"] * 5
    assert calls == 1


@pytest.mark.asyncio
async def test_failures_are_not_cached() -> None:
    attempts = 0

    async def flaky(query: str) -> str:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("boom")
        return query

    cached = with_cache(flaky, ResultCache())

    with pytest.raises(RuntimeError, match="boom"):
        await cached("foo")
    assert len(cached.cache) == 0

    assert await cached("foo") == "foo"
    assert attempts == 2


@pytest.mark.asyncio
async def test_concurrent_waiters_see_the_failure() -> None:
    release = asyncio.Event()

    async def failing(query: str) -> str:
        await release.wait()
        raise RuntimeError(query)

    cached = with_cache(failing, ResultCache())
    tasks = [asyncio.create_task(cached("foo")) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()

    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(result, RuntimeError) for result in results)
    assert len(cached.cache) == 0


def test_make_key_depends_on_argument_order_and_namespace() -> None:
    assert ResultCache.make_key(("a", 1)) == ResultCache.make_key(("a", 1))
    assert ResultCache.make_key(("a", 1)) != ResultCache.make_key((1, "a"))
    assert ResultCache.make_key(("a",), namespace="hits") != ResultCache.make_key(("a",), namespace="facets")


def test_make_key_handles_nested_filters() -> None:
    key = ResultCache.make_key(("foo", None, [["category:x", "category:y"]], 0, 20))

    assert key == ResultCache.make_key(("foo", None, [["category:x", "category:y"]], 0, 20))


@pytest.mark.asyncio
async def test_clear_drops_entries() -> None:
    search = CountingSearch()
    cached = with_cache(search, ResultCache())
    await cached("foo")

    cached.cache.clear()
    await cached("foo")

    assert len(search.calls) == 2


@pytest.mark.asyncio
async def test_mutating_a_result_leaves_the_cache_intact() -> None:
    cached = with_cache(CountingSearch(), ResultCache())

    first = await cached("foo", 0)
    first["query"] = "changed"
    first["extra"] = True

    assert await cached("foo", 0) == {"query": "foo", "page": 0}


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_waiters() -> None:
    release = asyncio.Event()
    calls = 0

    async def slow_search(query: str) -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return query

    cached = with_cache(slow_search, ResultCache())
    leader = asyncio.create_task(cached("foo"))
    await asyncio.sleep(0)
    waiter = asyncio.create_task(cached("foo"))
    await asyncio.sleep(0)

    leader.cancel()
    await asyncio.sleep(0)
    release.set()

    assert await waiter == "foo"
    assert leader.cancelled()
    assert calls == 1
    assert len(cached.cache) == 1
