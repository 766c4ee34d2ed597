"""In-flight de-duplication and short-lived caching of GET responses"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple


class RequestDeduplicator:
    """
    Share one backend round-trip between identical concurrent GETs.

    Successful results are kept for `ttl_seconds` (0 disables the cache);
    failures are never cached. `clear()` bumps a generation counter: a request
    that was already in flight when the cache was cleared still answers its own
    callers, but its result is not stored.
    """

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._generation = 0
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}
        self._cache: Dict[str, Tuple[float, Any]] = {}

    @staticmethod
    def key(method: str, path: str, params: Optional[Dict[str, Any]] = None, scope: Optional[str] = None) -> str:
        query = "&".join(f"{k}={params[k]}" for k in sorted(params or {}))
        return f"{method.upper()} {path}?{query}#{scope or ''}"

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        cached = self._cache.get(key)
        if cached is not None:
            expires_at, value = cached
            if expires_at > self._clock():
                return value
            del self._cache[key]

        pending = self._in_flight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        generation = self._generation
        task = asyncio.ensure_future(factory())
        self._in_flight[key] = task
        try:
            result = await task
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

        if self.ttl_seconds > 0 and generation == self._generation:
            self._cache[key] = (self._clock() + self.ttl_seconds, result)
        return result

    def clear(self, pattern: Optional[str] = None) -> None:
        """Drop cached and in-flight entries whose key contains `pattern` (all when None)"""
        self._generation += 1
        if pattern is None:
            self._cache.clear()
            self._in_flight.clear()
            return
        for store in (self._cache, self._in_flight):
            for key in [k for k in store if pattern in k]:
                del store[key]

    @property
    def cached_keys(self) -> List[str]:
        return list(self._cache)
