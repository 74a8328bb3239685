"""
Cache interfaces

Contract for the key-value cache shared by segmentation, the real-time sales
window and cart recovery (Redis in production, in-memory for development).
"""

from abc import abstractmethod
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class CacheBackend(str, Enum):
    """Supported cache backends"""

    REDIS = "redis"
    IN_MEMORY = "in_memory"


@runtime_checkable
class ICache(Protocol):
    """
    Key-value cache with TTLs, atomic counters and score-ordered sets.

    Values passed to `get`/`set` are JSON-serializable; sorted-set members are
    plain strings. Implementations raise `DataAccessError` when the backend
    cannot be reached.

    Example:
        ```python
        segments = await cache.get("customer:42:segments")
        if segments is None:
            segments = await engine.compute(customer)
            await cache.set_with_ttl("customer:42:segments", segments, 3600)
        ```
    """

    @property
    @abstractmethod
    def backend(self) -> CacheBackend:
        """Cache backend type"""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value from the cache.

        Returns:
            Decoded value, or None if missing or expired
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """Store a value without expiration."""
        ...

    @abstractmethod
    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store a value that expires after `ttl_seconds`."""
        ...

    @abstractmethod
    async def set_if_not_exists(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """
        Store a value only when the key is absent (atomic SET NX).

        Returns:
            True if this call wrote the value, False if the key already existed
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if it existed
        """
        ...

    @abstractmethod
    async def increment(self, key: str, delta: float = 1) -> float:
        """
        Atomically add `delta` to a numeric counter, creating it at 0.

        Returns:
            The new counter value
        """
        ...

    @abstractmethod
    async def sorted_set_add(self, key: str, score: float, member: str) -> int:
        """Add `member` with `score` to the sorted set at `key`."""
        ...

    @abstractmethod
    async def sorted_set_range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        """Members with `min_score <= score <= max_score`, in ascending score order."""
        ...

    @abstractmethod
    async def sorted_set_remove_range_by_score(
        self, key: str, min_score: float, max_score: float, exclusive_max: bool = False
    ) -> int:
        """
        Remove members with `min_score <= score <= max_score`, or
        `score < max_score` when `exclusive_max` is set.

        Returns:
            Number of removed members
        """
        ...

    @abstractmethod
    async def sorted_set_remove(self, key: str, *members: str) -> int:
        """Remove specific members from a sorted set."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check backend connectivity."""
        ...
