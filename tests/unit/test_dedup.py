"""Unit tests for GET de-duplication and caching"""

import asyncio

import pytest
from bizbooks.infrastructure.clients.dedup import RequestDeduplicator


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def counting_factory(calls: list, value="result"):
    async def factory():
        calls.append(1)
        await asyncio.sleep(0)
        return value

    return factory


def test_key_is_order_independent():
    assert RequestDeduplicator.key("get", "/sales", {"b": 2, "a": 1}, "c1") == RequestDeduplicator.key(
        "GET", "/sales", {"a": 1, "b": 2}, "c1"
    )
    assert RequestDeduplicator.key("GET", "/sales", {}, "c1") != RequestDeduplicator.key("GET", "/sales", {}, "c2")


async def test_concurrent_calls_share_one_factory_run():
    calls = []
    dedup = RequestDeduplicator(ttl_seconds=0)
    factory = counting_factory(calls)

    results = await asyncio.gather(*(dedup.run("k", factory) for _ in range(5)))

    assert results == ["result"] * 5
    assert len(calls) == 1


async def test_results_cached_until_ttl_expires():
    calls = []
    clock = FakeClock()
    dedup = RequestDeduplicator(ttl_seconds=30, clock=clock)
    factory = counting_factory(calls)

    await dedup.run("k", factory)
    clock.now += 29
    await dedup.run("k", factory)
    assert len(calls) == 1

    clock.now += 2
    await dedup.run("k", factory)
    assert len(calls) == 2


async def test_failures_are_not_cached():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("backend down")
        return "ok"

    dedup = RequestDeduplicator(ttl_seconds=30)

    with pytest.raises(RuntimeError):
        await dedup.run("k", flaky)
    assert await dedup.run("k", flaky) == "ok"
    assert dedup.cached_keys == ["k"]


async def test_clear_by_pattern():
    dedup = RequestDeduplicator(ttl_seconds=30)
    await dedup.run("GET /sales?#c1", counting_factory([]))
    await dedup.run("GET /purchases?#c1", counting_factory([]))

    dedup.clear("/sales")
    assert dedup.cached_keys == ["GET /purchases?#c1"]

    dedup.clear()
    assert dedup.cached_keys == []


async def test_clear_while_in_flight_keeps_result_out_of_cache():
    """Test a read that started before a write cannot repopulate the cache"""
    release = asyncio.Event()
    calls = []

    async def read():
        calls.append(1)
        if len(calls) == 1:
            await release.wait()
            return "before write"
        return "after write"

    dedup = RequestDeduplicator(ttl_seconds=30)
    stale = asyncio.ensure_future(dedup.run("k", read))
    while not calls:
        await asyncio.sleep(0)

    dedup.clear()
    fresh = await dedup.run("k", read)
    release.set()

    assert await stale == "before write"
    assert fresh == "after write"
    assert await dedup.run("k", read) == "after write"
    assert len(calls) == 2
    assert dedup.cached_keys == ["k"]
