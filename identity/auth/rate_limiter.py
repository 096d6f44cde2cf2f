"""
Sliding window rate limiters for the unauthenticated auth routes.

``RedisSlidingWindowRateLimiter`` keeps its windows in the shared Redis so
every service instance draws from the same budget. ``SlidingWindowRateLimiter``
is the single-process fallback used when no Redis client is available.
"""

import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, Final

from redis.asyncio import Redis
from redis.exceptions import ResponseError

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Thread-safe in-memory sliding window rate limiter keyed by client."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._events: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    @property
    def window_seconds(self) -> int:
        return self._window

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        return len(self._events)

    async def allow(self, key: str) -> bool:
        """Return ``True`` when the request is within the configured rate limit."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep(now)

            queue = self._events.setdefault(key, deque())
            self._expire(queue, now)
            if len(queue) >= self._max_requests:
                return False
            queue.append(now)
            return True

    def _expire(self, queue: Deque[float], now: float) -> None:
        while queue and now - queue[0] >= self._window:
            queue.popleft()

    def _sweep(self, now: float) -> None:
        # Drop clients whose whole window has lapsed
        for key in list(self._events):
            queue = self._events[key]
            self._expire(queue, now)
            if not queue:
                del self._events[key]
        self._last_sweep = now

    def reset(self) -> None:
        """Forget every recorded request."""
        with self._lock:
            self._events.clear()


class RedisSlidingWindowRateLimiter:
    """Distributed sliding window limiter implemented with Redis sorted sets."""

    _LUA_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local counter_key = key .. ':seq'
    local window_ms = tonumber(ARGV[1])
    local max_requests = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])

    redis.call('ZREMRANGEBYSCORE', key, 0, now_ms - window_ms)
    if redis.call('ZCARD', key) >= max_requests then
        return 0
    end
    local seq = redis.call('INCR', counter_key)
    redis.call('PEXPIRE', counter_key, window_ms)
    redis.call('ZADD', key, now_ms, tostring(now_ms) .. ':' .. tostring(seq))
    redis.call('PEXPIRE', key, window_ms)
    return 1
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "ratelimit:auth",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the limiter.

        Args:
            client: Async Redis client shared with the profile cache
            max_requests: Requests allowed per client within one window
            window_seconds: Window length
            key_prefix: Namespace of the per-client sorted sets
            clock: Wall-clock source in seconds
        """
        self._client = client
        self._max_requests = max_requests
        self._window = window_seconds
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._clock = clock
        self._script = client.register_script(self._LUA_SCRIPT)

    @property
    def window_seconds(self) -> int:
        return self._window

    async def allow(self, key: str) -> bool:
        """Return ``True`` when the key is still within the shared rate limit."""
        now_ms = int(self._clock() * 1000)
        redis_key = f"{self._key_prefix}:{key}"
        try:
            result = await self._script(
                keys=[redis_key],
                args=[self._window_ms, self._max_requests, now_ms],
            )
            return int(result) == 1
        except ResponseError as e:
            message = str(e).lower()
            if "unknown command" in message and "eval" in message:
                logger.warning("Redis scripting unavailable, using command fallback")
                return await self._allow_fallback(redis_key, now_ms)
            raise

    async def _allow_fallback(self, redis_key: str, now_ms: int) -> bool:
        """Same window logic issued as individual commands (not atomic)."""
        await self._client.zremrangebyscore(redis_key, 0, now_ms - self._window_ms)
        if await self._client.zcard(redis_key) >= self._max_requests:
            return False
        seq = await self._client.incr(f"{redis_key}:seq")
        await self._client.pexpire(f"{redis_key}:seq", self._window_ms)
        await self._client.zadd(redis_key, {f"{now_ms}:{seq}": now_ms})
        await self._client.pexpire(redis_key, self._window_ms)
        return True
