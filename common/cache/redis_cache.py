"""
Generic Redis cache connection manager.

Wraps an async Redis client behind a small bytes-in/bytes-out interface so
several service instances can share one cache. The connection is opened and
closed by the process entry point, mirroring ``common.database.MongoDB``.

Example:
    from common.cache import RedisCache

    cache = RedisCache()
    await cache.connect("redis://localhost:6379/0")
    await cache.set("key", b"value", ttl_seconds=300)
    value = await cache.get("key")   # b"value" or None
    await cache.close()
"""

import logging
from typing import Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class RedisCache:
    """Async Redis-backed key/value cache with per-key ttl."""

    def __init__(self, client: Optional[Redis] = None):
        """
        Initialize the cache.

        Args:
            client: Optional pre-built Redis client (used by tests); when
                omitted, ``connect`` builds one from a URL.
        """
        self._client: Optional[Redis] = client

    async def connect(self, url: str) -> None:
        """
        Open the Redis connection and verify it with PING.

        Args:
            url: Redis connection URL
        """
        masked_url = url.split("@")[-1] if "@" in url else url
        logger.info(f"Connecting to Redis: {masked_url}")
        try:
            self._client = Redis.from_url(url)
            await self._client.ping()
            logger.info("Successfully connected to Redis")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            logger.info("Disconnecting from Redis")
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if a client is available."""
        return self._client is not None

    @property
    def client(self) -> Redis:
        """The underlying client, for components that need more than get/set."""
        return self._require_client()

    async def ping(self) -> bool:
        """Round-trip to the server; False when disconnected or unreachable."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def _require_client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Cache not connected")
        return self._client

    async def get(self, key: str) -> Optional[bytes]:
        """Return the stored bytes for key, or None on a miss."""
        return await self._require_client().get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Store value under key, replacing any existing entry, expiring after ttl."""
        await self._require_client().set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        await self._require_client().delete(key)
