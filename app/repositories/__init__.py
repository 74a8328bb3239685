"""
Repositories Module

Cache adapters shared by the retention services. Document-store repositories
live in app.domains.retention.infrastructure.repositories.
"""

from app.config.settings import Settings
from app.core.interfaces.cache import CacheBackend, ICache

from .async_redis_cache import AsyncRedisCache
from .in_memory_cache import InMemoryCache


def create_cache(settings: Settings) -> ICache:
    """Build the cache adapter selected by CACHE_BACKEND."""
    if settings.CACHE_BACKEND == CacheBackend.IN_MEMORY.value:
        return InMemoryCache()
    return AsyncRedisCache(prefix=settings.CACHE_KEY_PREFIX, settings=settings)


__all__ = [
    "AsyncRedisCache",
    "InMemoryCache",
    "create_cache",
]
