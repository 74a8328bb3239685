"""
Async Redis Cache

ICache implementation on redis.asyncio. Values are stored as JSON; sorted-set
members are stored as given. Every Redis failure is raised as DataAccessError.
"""

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis
from pydantic import BaseModel

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import DataAccessError
from app.core.interfaces.cache import CacheBackend

logger = logging.getLogger(__name__)


def _serialize(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=lambda dt: dt.isoformat())


def _deserialize(data: str | bytes | None) -> Any:
    if data is None:
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data


class AsyncRedisCache:
    """
    Async cache backed by Redis.

    Usage:
        cache = AsyncRedisCache(prefix="retention")
        await cache.connect()

        await cache.set_with_ttl("customer:42:segments", ["active"], 3600)
        await cache.sorted_set_add("sales:realtime", 1700000000.0, event_json)
    """

    def __init__(
        self,
        prefix: str = "",
        settings: Settings | None = None,
        client: aioredis.Redis | None = None,
    ):
        self.settings = settings or get_settings()
        self.prefix = prefix
        self._redis_client: aioredis.Redis | None = client

    @property
    def backend(self) -> CacheBackend:
        return CacheBackend.REDIS

    async def connect(self, max_retries: int = 3, retry_delay: float = 1.0) -> None:
        """Initialize the Redis connection with retries."""
        retries = 0
        last_error: Exception | None = None

        while retries < max_retries:
            try:
                self._redis_client = aioredis.Redis(
                    host=self.settings.REDIS_HOST,
                    port=self.settings.REDIS_PORT,
                    db=self.settings.REDIS_DB,
                    password=self.settings.REDIS_PASSWORD,
                    decode_responses=True,
                    socket_timeout=5.0,
                    socket_connect_timeout=5.0,
                )
                await self._redis_client.ping()
                logger.info(
                    f"Async Redis connection established: "
                    f"{self.settings.REDIS_HOST}:{self.settings.REDIS_PORT}"
                )
                return
            except (aioredis.ConnectionError, aioredis.TimeoutError) as e:
                retries += 1
                last_error = e
                logger.warning(f"Async Redis connection attempt {retries}/{max_retries} failed: {e}")
                if retries < max_retries:
                    await asyncio.sleep(retry_delay)

        self._redis_client = None
        logger.error(f"Could not establish async Redis connection after {max_retries} attempts: {last_error}")
        raise DataAccessError("cache", "connect", f"Redis unreachable: {last_error}") from last_error

    async def _client(self) -> aioredis.Redis:
        """Return the connected client, connecting lazily."""
        if self._redis_client is None:
            await self.connect()
        assert self._redis_client is not None
        return self._redis_client

    async def get_client(self) -> aioredis.Redis:
        """Underlying client, shared with the notification bus."""
        return await self._client()

    def _get_key(self, key: str) -> str:
        """Build full key with prefix."""
        return f"{self.prefix}:{key}" if self.prefix else key

    async def get(self, key: str) -> Any:
        try:
            client = await self._client()
            data = await client.get(self._get_key(key))
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "get", f"Error reading {key}: {e}") from e
        return _deserialize(data)

    async def set(self, key: str, value: Any) -> bool:
        try:
            client = await self._client()
            return bool(await client.set(self._get_key(key), _serialize(value)))
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "set", f"Error writing {key}: {e}") from e

    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            client = await self._client()
            return bool(await client.set(self._get_key(key), _serialize(value), ex=ttl_seconds))
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "set_with_ttl", f"Error writing {key}: {e}") from e

    async def set_if_not_exists(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        try:
            client = await self._client()
            result = await client.set(self._get_key(key), _serialize(value), ex=ttl_seconds, nx=True)
            return bool(result)
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "set_if_not_exists", f"Error writing {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            client = await self._client()
            return bool(await client.delete(self._get_key(key)))
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "delete", f"Error deleting {key}: {e}") from e

    async def increment(self, key: str, delta: float = 1) -> float:
        try:
            client = await self._client()
            if isinstance(delta, int):
                return await client.incrby(self._get_key(key), delta)
            return await client.incrbyfloat(self._get_key(key), delta)
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "increment", f"Error incrementing {key}: {e}") from e

    async def sorted_set_add(self, key: str, score: float, member: str) -> int:
        try:
            client = await self._client()
            return await client.zadd(self._get_key(key), {member: score})
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "sorted_set_add", f"Error adding to {key}: {e}") from e

    async def sorted_set_range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        try:
            client = await self._client()
            return list(await client.zrangebyscore(self._get_key(key), min_score, max_score))
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "sorted_set_range_by_score", f"Error reading {key}: {e}") from e

    async def sorted_set_remove_range_by_score(
        self, key: str, min_score: float, max_score: float, exclusive_max: bool = False
    ) -> int:
        upper = f"({max_score}" if exclusive_max else max_score
        try:
            client = await self._client()
            return await client.zremrangebyscore(self._get_key(key), min_score, upper)
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "sorted_set_remove_range_by_score", f"Error pruning {key}: {e}") from e

    async def sorted_set_remove(self, key: str, *members: str) -> int:
        if not members:
            return 0
        try:
            client = await self._client()
            return await client.zrem(self._get_key(key), *members)
        except aioredis.RedisError as e:
            raise DataAccessError("cache", "sorted_set_remove", f"Error removing from {key}: {e}") from e

    async def ping(self) -> bool:
        try:
            client = await self._client()
            return bool(await client.ping())
        except (aioredis.RedisError, DataAccessError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis_client is not None:
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("Async Redis connection closed")
