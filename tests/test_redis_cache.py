"""Unit tests for RedisCache (shared profile cache backend)."""

import pytest
from unittest.mock import AsyncMock

from common.cache import RedisCache


@pytest.fixture
def redis_client():
    return AsyncMock()


@pytest.fixture
def cache(redis_client):
    return RedisCache(client=redis_client)


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_set_passes_ttl_as_expiry(self, cache, redis_client):
        await cache.set("profile:1", b"{}", ttl_seconds=300)

        redis_client.set.assert_awaited_once_with("profile:1", b"{}", ex=300)

    @pytest.mark.asyncio
    async def test_get_returns_stored_bytes(self, cache, redis_client):
        redis_client.get.return_value = b"{}"

        assert await cache.get("profile:1") == b"{}"

    @pytest.mark.asyncio
    async def test_get_miss(self, cache, redis_client):
        redis_client.get.return_value = None

        assert await cache.get("profile:1") is None

    @pytest.mark.asyncio
    async def test_delete(self, cache, redis_client):
        await cache.delete("profile:1")

        redis_client.delete.assert_awaited_once_with("profile:1")

    @pytest.mark.asyncio
    async def test_close_releases_client(self, cache, redis_client):
        await cache.close()

        redis_client.aclose.assert_awaited_once()
        assert not cache.is_connected

    @pytest.mark.asyncio
    async def test_use_before_connect(self):
        with pytest.raises(RuntimeError):
            await RedisCache().get("profile:1")

    @pytest.mark.asyncio
    async def test_ping_unconnected_is_false(self):
        assert await RedisCache().ping() is False

    @pytest.mark.asyncio
    async def test_ping_swallows_connection_error(self, cache, redis_client):
        redis_client.ping.side_effect = ConnectionError("down")

        assert await cache.ping() is False
