"""Injectable cache backends with an invalidate-by-key contract."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Protocol

import redis.asyncio as redis

from wardrobe_share.config.settings import Settings

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Minimal cache contract used by services.

    Every mutating call on collections, suggestions and grants deletes the keys
    it affects; readers tolerate a miss at any time.
    """

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    async def delete(self, *keys: str) -> None: ...


class NullCache:
    """Backend that never stores anything."""

    async def get(self, key: str) -> Any | None:
        return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        return None

    async def delete(self, *keys: str) -> None:
        return None


class InMemoryCache:
    """Instance-scoped dictionary cache with per-key expiry."""

    def __init__(self, default_ttl: int = 300) -> None:
        self._default_ttl = default_ttl
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        lifetime = ttl if ttl is not None else self._default_ttl
        self._entries[key] = (time.monotonic() + lifetime, json.dumps(value))

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class RedisCache:
    """Redis-backed cache; connection errors degrade to cache misses."""

    def __init__(self, client: redis.Redis, default_ttl: int = 300) -> None:
        self._client = client
        self._default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, default_ttl: int = 300) -> RedisCache:
        client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        return cls(client, default_ttl=default_ttl)

    async def get(self, key: str) -> Any | None:
        try:
            value = await self._client.get(key)
        except redis.RedisError:
            logger.warning("Cache get failed for key %s", key, exc_info=True)
            return None
        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        lifetime = ttl if ttl is not None else self._default_ttl
        try:
            await self._client.setex(key, lifetime, json.dumps(value))
        except redis.RedisError:
            logger.warning("Cache set failed for key %s", key, exc_info=True)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*keys)
        except redis.RedisError:
            logger.warning("Cache invalidation failed for keys %s", keys, exc_info=True)

    async def close(self) -> None:
        await self._client.aclose()


def build_cache(settings: Settings) -> CacheBackend:
    """Select a backend from ``CACHE_BACKEND``."""

    if settings.cache_backend == "redis":
        return RedisCache.from_url(settings.redis_url, default_ttl=settings.cache_ttl_seconds)
    if settings.cache_backend == "none":
        return NullCache()
    return InMemoryCache(default_ttl=settings.cache_ttl_seconds)
