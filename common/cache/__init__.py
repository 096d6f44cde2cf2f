"""
Cache module - Shared async key/value cache backed by Redis.
"""

from common.cache.redis_cache import RedisCache

__all__ = ["RedisCache"]
