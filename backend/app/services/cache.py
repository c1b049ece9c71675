"""
Caching Service.

Statement cache behind a small backend interface so the policy (store,
TTL) is injected rather than held in module-level state.
"""

import time
from typing import Any, Callable, Dict, Optional, Tuple

from backend.app.core.config import settings


class CacheBackend:
    """Minimal async cache interface."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def incr(self, key: str) -> int:
        raise NotImplementedError

    async def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError


class MemoryCache(CacheBackend):
    """
    In-process cache with per-key expiry.

    Expired items are swept on every write, so keys that are never read
    again do not accumulate. The clock is injectable so tests can move
    time forward.
    """

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}

    def _alive(self, key: str):
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._store[key]
            return None
        return item

    async def get(self, key: str) -> Optional[str]:
        item = self._alive(key)
        return item[0] if item else None

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        self._sweep()
        self._store[key] = (value, self._clock() + ttl if ttl else None)

    def _sweep(self):
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at is not None and now >= expires_at]
        for k in expired:
            del self._store[k]

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._store if k.startswith(prefix)]
        for k in doomed:
            del self._store[k]
        return len(doomed)

    async def incr(self, key: str) -> int:
        item = self._alive(key)
        value = int(item[0]) + 1 if item else 1
        # counters never expire
        self._store[key] = (str(value), None)
        return value

    async def clear(self) -> None:
        self._store.clear()


class RedisCache(CacheBackend):
    """Cache backed by redis.asyncio."""

    def __init__(self, client, default_ttl: int = 300):
        self.client = client
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl:
            await self.client.set(key, value, ex=ttl)
        else:
            await self.client.set(key, value)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def incr(self, key: str) -> int:
        return int(await self.client.incr(key))

    async def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        async for key in self.client.scan_iter(match=f"{prefix}*"):
            deleted += await self.client.delete(key)
        return deleted


def build_cache(backend: str = None) -> CacheBackend:
    """Create the cache backend named in settings ("memory" or "redis")."""
    backend = (backend or settings.cache_backend).lower()
    if backend == "memory":
        return MemoryCache(default_ttl=settings.statement_cache_ttl_seconds)
    if backend == "redis":
        from backend.app.core.redis_client import redis_client
        return RedisCache(redis_client, default_ttl=settings.statement_cache_ttl_seconds)
    raise ValueError(f"Unknown cache backend: {backend}")


_cache: Optional[CacheBackend] = None


async def get_cache() -> CacheBackend:
    """
    FastAPI dependency returning the configured cache backend.

    Override in tests via app.dependency_overrides[get_cache].
    """
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache
