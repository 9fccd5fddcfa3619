import logging

import redis.asyncio as redis
from jotter.core.config import settings

logger = logging.getLogger(__name__)

redis_client = None


async def get_redis() -> redis.Redis:
    """Get Redis client"""
    return redis_client


async def init_redis():
    """Initialize Redis connection"""
    global redis_client
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

    # Test connection
    try:
        await redis_client.ping()
        logger.info("Redis connection established")
    except Exception:
        logger.exception("Redis connection failed")
        raise


async def close_redis():
    """Close the Redis connection pool"""
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None


def access_token_key(user_id: str) -> str:
    return f"access_token:{user_id}"


def refresh_token_key(user_id: str) -> str:
    return f"refresh_token:{user_id}"
