"""Cache collaborators."""

from .backend import CacheBackend, InMemoryCache, NullCache, RedisCache, build_cache

__all__ = [
    "CacheBackend",
    "InMemoryCache",
    "NullCache",
    "RedisCache",
    "build_cache",
]
