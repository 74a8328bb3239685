import copy
import logging
import time
from collections.abc import Callable
from typing import Any

from app.core.interfaces.cache import CacheBackend

logger = logging.getLogger(__name__)


class InMemoryCache:
    """
    Process-local cache with the same contract as AsyncRedisCache.

    Used when CACHE_BACKEND=in_memory (local development) and in tests. TTLs
    are evaluated against `clock`, a callable returning epoch seconds.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        self._clock = clock or time.time
        self.local_storage: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}
        self._sorted_sets: dict[str, dict[str, float]] = {}
        logger.debug("Using in-memory cache storage")

    @property
    def backend(self) -> CacheBackend:
        return CacheBackend.IN_MEMORY

    def _purge_if_expired(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self.local_storage.pop(key, None)
            self._expires_at.pop(key, None)

    async def get(self, key: str) -> Any:
        self._purge_if_expired(key)
        return copy.deepcopy(self.local_storage.get(key))

    async def set(self, key: str, value: Any) -> bool:
        self.local_storage[key] = copy.deepcopy(value)
        self._expires_at.pop(key, None)
        return True

    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> bool:
        self.local_storage[key] = copy.deepcopy(value)
        self._expires_at[key] = self._clock() + ttl_seconds
        return True

    async def set_if_not_exists(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        self._purge_if_expired(key)
        if key in self.local_storage:
            return False
        if ttl_seconds is None:
            return await self.set(key, value)
        return await self.set_with_ttl(key, value, ttl_seconds)

    async def delete(self, key: str) -> bool:
        self._purge_if_expired(key)
        self._expires_at.pop(key, None)
        existed = self.local_storage.pop(key, None) is not None
        return self._sorted_sets.pop(key, None) is not None or existed

    async def increment(self, key: str, delta: float = 1) -> float:
        self._purge_if_expired(key)
        current = self.local_storage.get(key, 0)
        self.local_storage[key] = current + delta
        return self.local_storage[key]

    async def sorted_set_add(self, key: str, score: float, member: str) -> int:
        members = self._sorted_sets.setdefault(key, {})
        added = 0 if member in members else 1
        members[member] = score
        return added

    async def sorted_set_range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        members = self._sorted_sets.get(key, {})
        in_range = [(score, member) for member, score in members.items() if min_score <= score <= max_score]
        return [member for _, member in sorted(in_range)]

    async def sorted_set_remove_range_by_score(
        self, key: str, min_score: float, max_score: float, exclusive_max: bool = False
    ) -> int:
        members = self._sorted_sets.get(key, {})
        doomed = [
            member
            for member, score in members.items()
            if min_score <= score and (score < max_score if exclusive_max else score <= max_score)
        ]
        for member in doomed:
            del members[member]
        return len(doomed)

    async def sorted_set_remove(self, key: str, *members: str) -> int:
        existing = self._sorted_sets.get(key, {})
        removed = 0
        for member in members:
            if existing.pop(member, None) is not None:
                removed += 1
        return removed

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self.local_storage.clear()
        self._expires_at.clear()
        self._sorted_sets.clear()
