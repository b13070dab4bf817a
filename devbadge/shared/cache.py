"""Per-user cache for Discord REST lookups made by the dashboard.

Fresh values live for ``ttl`` seconds. The last value fetched successfully is
kept longer (LRU-bounded) and served when Discord is unreachable or
rate-limits us. Concurrent misses for one key share a single fetch.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from cachetools import LRUCache, TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached None
MISSING = object()


class AsyncTTLCache:
    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._last_good: LRUCache = LRUCache(maxsize=maxsize)
        self._pending: dict[str, asyncio.Task] = {}

    @property
    def size(self) -> int:
        return len(self._fresh)

    def get(self, key: str) -> Any:
        return self._fresh.get(key, MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._last_good[key] = value

    def get_stale(self, key: str) -> Any:
        return self._last_good.get(key, MISSING)

    def invalidate(self, key: str) -> None:
        """Expire the fresh value now; the last good value is kept."""
        self._fresh.pop(key, None)

    def clear(self) -> None:
        self._fresh.clear()

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value = self.get(key)
        if value is not MISSING:
            return value

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, fetch))
            self._pending[key] = task
            task.add_done_callback(lambda _: self._pending.pop(key, None))
        # One caller giving up must not cancel the fetch the others wait on
        return await asyncio.shield(task)

    async def _refresh(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await fetch()
        except Exception as e:
            stale = self.get_stale(key)
            if stale is MISSING:
                raise
            logger.warning(f"Serving last good value for {key}: {type(e).__name__}: {e}")
            return stale
        self.set(key, value)
        return value


def cached(cache: AsyncTTLCache, key_func: Callable[..., str]):
    """Route an async function through *cache*, keyed by ``key_func(*args, **kwargs)``"""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await cache.get_or_fetch(key_func(*args, **kwargs), lambda: func(*args, **kwargs))

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
