"""
Tests for the cache adapters.

InMemoryCache is exercised directly; AsyncRedisCache is checked against a
mocked redis.asyncio client.
"""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as aioredis

from app.core.domain.exceptions import DataAccessError
from app.core.interfaces.cache import CacheBackend
from app.repositories import AsyncRedisCache, InMemoryCache, create_cache


class TestInMemoryCache:
    @pytest.mark.asyncio
    async def test_values_are_copied(self, cache):
        value = {"segments": ["a"]}
        await cache.set("k", value)
        value["segments"].append("b")

        stored = await cache.get("k")
        stored["segments"].append("c")

        assert await cache.get("k") == {"segments": ["a"]}

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, cache, clock):
        await cache.set_with_ttl("k", 1, 10)
        clock.advance(seconds=9)
        assert await cache.get("k") == 1

        clock.advance(seconds=1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_if_not_exists(self, cache, clock):
        assert await cache.set_if_not_exists("lock", "a", 5) is True
        assert await cache.set_if_not_exists("lock", "b", 5) is False
        assert await cache.get("lock") == "a"

        clock.advance(seconds=5)
        assert await cache.set_if_not_exists("lock", "c", 5) is True

    @pytest.mark.asyncio
    async def test_increment(self, cache):
        assert await cache.increment("n") == 1
        assert await cache.increment("n", 4) == 5
        assert await cache.increment("f", 1.5) == 1.5

    @pytest.mark.asyncio
    async def test_sorted_set_operations(self, cache):
        await cache.sorted_set_add("z", 3, "c")
        await cache.sorted_set_add("z", 1, "a")
        await cache.sorted_set_add("z", 2, "b")

        assert await cache.sorted_set_range_by_score("z", 1, 2) == ["a", "b"]
        assert await cache.sorted_set_remove_range_by_score("z", 0, 1) == 1
        assert await cache.sorted_set_remove("z", "c", "missing") == 1
        assert await cache.sorted_set_range_by_score("z", 0, 10) == ["b"]

    @pytest.mark.asyncio
    async def test_remove_range_with_exclusive_max(self, cache):
        await cache.sorted_set_add("z", 1, "a")
        await cache.sorted_set_add("z", 2, "b")

        assert await cache.sorted_set_remove_range_by_score("z", 0, 2, exclusive_max=True) == 1
        assert await cache.sorted_set_range_by_score("z", 0, 10) == ["b"]

    @pytest.mark.asyncio
    async def test_delete_covers_sorted_sets(self, cache):
        await cache.sorted_set_add("z", 1, "a")
        assert await cache.delete("z") is True
        assert await cache.delete("z") is False


class TestAsyncRedisCache:
    """Commands map one-to-one onto redis.asyncio calls."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.fixture
    def redis_cache(self, client, settings):
        return AsyncRedisCache(prefix="ret", settings=settings, client=client)

    @pytest.mark.asyncio
    async def test_get_deserializes_json(self, redis_cache, client):
        client.get.return_value = '["active", "high_value"]'

        assert await redis_cache.get("customer:1:segments") == ["active", "high_value"]
        client.get.assert_awaited_once_with("ret:customer:1:segments")

    @pytest.mark.asyncio
    async def test_set_with_ttl_serializes(self, redis_cache, client):
        client.set.return_value = True

        await redis_cache.set_with_ttl("k", {"a": 1}, 60)

        client.set.assert_awaited_once_with("ret:k", '{"a": 1}', ex=60)

    @pytest.mark.asyncio
    async def test_set_if_not_exists_uses_nx(self, redis_cache, client):
        client.set.return_value = None

        assert await redis_cache.set_if_not_exists("lock", "x", 30) is False
        client.set.assert_awaited_once_with("ret:lock", '"x"', ex=30, nx=True)

    @pytest.mark.asyncio
    async def test_increment_float_uses_incrbyfloat(self, redis_cache, client):
        client.incrbyfloat.return_value = 10.5

        assert await redis_cache.increment("rev", 10.5) == 10.5
        client.incrby.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sorted_set_add(self, redis_cache, client):
        client.zadd.return_value = 1

        await redis_cache.sorted_set_add("sales:realtime", 100.0, "m")

        client.zadd.assert_awaited_once_with("ret:sales:realtime", {"m": 100.0})

    @pytest.mark.asyncio
    async def test_exclusive_prune_uses_open_interval(self, redis_cache, client):
        client.zremrangebyscore.return_value = 2

        assert await redis_cache.sorted_set_remove_range_by_score("sales:realtime", 0, 700.5, exclusive_max=True) == 2
        client.zremrangebyscore.assert_awaited_once_with("ret:sales:realtime", 0, "(700.5")

    @pytest.mark.asyncio
    async def test_redis_errors_become_data_access_errors(self, redis_cache, client):
        client.get.side_effect = aioredis.ConnectionError("down")

        with pytest.raises(DataAccessError) as exc_info:
            await redis_cache.get("k")
        assert exc_info.value.details["resource"] == "cache"

    @pytest.mark.asyncio
    async def test_ping_failure_is_reported(self, redis_cache, client):
        client.ping.side_effect = aioredis.ConnectionError("down")
        assert await redis_cache.ping() is False


def test_create_cache_selects_backend(settings):
    assert create_cache(settings).backend == CacheBackend.IN_MEMORY
    redis_settings = settings.model_copy(update={"CACHE_BACKEND": "redis"})
    assert isinstance(create_cache(redis_settings), AsyncRedisCache)
