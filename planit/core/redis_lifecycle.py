# planit/core/redis_lifecycle.py
import redis.asyncio as redis
from planit.core.config import settings
from planit.core.cache import RedisCache
from planit.services.realtime.redis_feed import RedisChangeFeed
from typing import AsyncGenerator, Optional

_redis_client: Optional[redis.Redis] = None
_cache_instance: Optional[RedisCache] = None
_feed_instance: Optional[RedisChangeFeed] = None


async def init_redis_client() -> redis.Redis:
    """Initialize and return a Redis client (for startup)."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        try:
            await _redis_client.ping()
        except redis.ConnectionError:
            _redis_client = None
            raise RuntimeError("Could not connect to Redis server") from None

    return _redis_client


async def get_cache() -> AsyncGenerator[RedisCache, None]:
    """FastAPI dependency injection for RedisCache."""
    global _cache_instance

    if _cache_instance is None:
        client = await init_redis_client()
        _cache_instance = RedisCache(client)

    yield _cache_instance


async def init_change_feed() -> RedisChangeFeed:
    global _feed_instance

    if _feed_instance is None:
        client = await init_redis_client()
        _feed_instance = RedisChangeFeed(client)
    return _feed_instance


async def get_change_feed() -> AsyncGenerator[RedisChangeFeed, None]:
    """FastAPI dependency injection for the process-wide change feed."""
    yield await init_change_feed()


async def close_redis():
    """Close the change feed and the Redis connection on application shutdown."""
    global _redis_client, _cache_instance, _feed_instance
    if _feed_instance is not None:
        await _feed_instance.close()
        _feed_instance = None
    _cache_instance = None
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
