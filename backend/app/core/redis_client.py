"""
Redis client initialization.

Used by the statement cache when settings.cache_backend is "redis".
redis.asyncio connects lazily, so importing this module opens no socket.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from backend.app.core.config import settings

logger = logging.getLogger("distribution")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
