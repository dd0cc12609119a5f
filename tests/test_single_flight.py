"""Tests for the single-flight memo cache."""

import asyncio

import pytest

from reviewflow.core.single_flight import SingleFlightCache


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_build():
    cache: SingleFlightCache[str, dict] = SingleFlightCache("test")
    calls = 0
    release = asyncio.Event()

    async def build():
        nonlocal calls
        calls += 1
        await release.wait()
        return {"org": "acme"}

    waiters = [asyncio.create_task(cache.get_or_build("acme", build)) for _ in range(10)]
    await asyncio.sleep(0)
    assert cache.is_building("acme")

    release.set()
    results = await asyncio.gather(*waiters)

    assert calls == 1
    assert all(result is results[0] for result in results)
    assert not cache.is_building("acme")
    assert "acme" in cache
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_memoized_value_is_returned_without_rebuilding():
    cache: SingleFlightCache[int, str] = SingleFlightCache("test")
    calls = []

    async def build():
        calls.append(1)
        return "value"

    assert await cache.get_or_build(1, build) == "value"
    assert await cache.get_or_build(1, build) == "value"
    assert cache.get(1) == "value"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failed_build_propagates_to_all_waiters_and_is_retried():
    cache: SingleFlightCache[str, str] = SingleFlightCache("test")
    attempts = 0
    release = asyncio.Event()

    async def failing_build():
        nonlocal attempts
        attempts += 1
        await release.wait()
        raise RuntimeError("labels endpoint down")

    waiters = [asyncio.create_task(cache.get_or_build("acme", failing_build)) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert attempts == 1
    assert all(isinstance(result, RuntimeError) for result in results)
    assert "acme" not in cache
    assert not cache.is_building("acme")

    async def working_build():
        return "ok"

    assert await cache.get_or_build("acme", working_build) == "ok"


@pytest.mark.asyncio
async def test_keys_are_built_independently():
    cache: SingleFlightCache[str, str] = SingleFlightCache("test")

    async def build_for(key):
        await asyncio.sleep(0)
        return key.upper()

    a, b = await asyncio.gather(
        cache.get_or_build("a", lambda: build_for("a")),
        cache.get_or_build("b", lambda: build_for("b")),
    )

    assert (a, b) == ("A", "B")
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_cancelling_one_waiter_does_not_cancel_the_build():
    cache: SingleFlightCache[str, str] = SingleFlightCache("test")
    release = asyncio.Event()

    async def build():
        await release.wait()
        return "built"

    first = asyncio.create_task(cache.get_or_build("k", build))
    second = asyncio.create_task(cache.get_or_build("k", build))
    await asyncio.sleep(0)

    first.cancel()
    release.set()

    assert await second == "built"
    with pytest.raises(asyncio.CancelledError):
        await first
    assert cache.get("k") == "built"
