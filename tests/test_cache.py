from __future__ import annotations

import asyncio

import pytest

from devbadge.shared.cache import MISSING, AsyncTTLCache, cached


class _Upstream:
    def __init__(self) -> None:
        self.calls = 0
        self.fail = False

    async def fetch(self, user_id: str) -> list[str]:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("discord unreachable")
        return [f"guild-of-{user_id}-{self.calls}"]


def _wrap(upstream: _Upstream, cache: AsyncTTLCache):
    return cached(cache, key_func=lambda user_id: f"guilds:{user_id}")(upstream.fetch)


def test_fresh_value_is_reused() -> None:
    upstream = _Upstream()
    fetch = _wrap(upstream, AsyncTTLCache(ttl=60))

    async def scenario() -> None:
        assert await fetch("1") == ["guild-of-1-1"]
        assert await fetch("1") == ["guild-of-1-1"]
        assert await fetch("2") == ["guild-of-2-2"]

    asyncio.run(scenario())
    assert upstream.calls == 2


def test_concurrent_callers_share_one_upstream_call() -> None:
    upstream = _Upstream()
    fetch = _wrap(upstream, AsyncTTLCache(ttl=60))

    async def scenario() -> list[list[str]]:
        return await asyncio.gather(*(fetch("1") for _ in range(5)))

    results = asyncio.run(scenario())
    assert upstream.calls == 1
    assert all(r == ["guild-of-1-1"] for r in results)


def test_stale_value_returned_when_upstream_fails() -> None:
    upstream = _Upstream()
    cache = AsyncTTLCache(ttl=60)
    fetch = _wrap(upstream, cache)

    async def scenario() -> None:
        await fetch("1")
        cache.invalidate("guilds:1")
        upstream.fail = True
        assert await fetch("1") == ["guild-of-1-1"]
        with pytest.raises(ConnectionError):
            await fetch("2")

    asyncio.run(scenario())


def test_cache_get_set_and_clear() -> None:
    cache = AsyncTTLCache(maxsize=2, ttl=60)
    assert cache.get("a") is MISSING

    cache.set("a", None)
    assert cache.get("a") is None
    cache.set("b", 1)
    cache.set("c", 2)
    assert cache.get_stale("a") is MISSING
    assert cache.get_stale("c") == 2

    cache.clear()
    assert cache.size == 0
    assert cache.get_stale("b") == 1


def test_cancelled_caller_does_not_cancel_shared_fetch() -> None:
    cache = AsyncTTLCache(ttl=60)
    release = asyncio.Event()
    calls = 0

    async def fetch() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return "guilds"

    async def scenario() -> str:
        impatient = asyncio.create_task(cache.get_or_fetch("guilds:1", fetch))
        patient = asyncio.create_task(cache.get_or_fetch("guilds:1", fetch))
        await asyncio.sleep(0)
        impatient.cancel()
        release.set()
        return await patient

    assert asyncio.run(scenario()) == "guilds"
    assert calls == 1
    assert cache.get("guilds:1") == "guilds"
