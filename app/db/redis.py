# app/db/redis.py
import logging

import redis.asyncio as redis
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)
redis_client: redis.Redis | None = None


async def connect():
    """
    Connect Redis when REDIS_URL is set.
    Redis is optional: when missing or unreachable we log a warning and
    the app runs without the creation lock and with a no-op notifier.
    """
    global redis_client
    if not settings.REDIS_URL:
        logger.warning("No REDIS_URL configured, skipping Redis connection.")
        redis_client = None
        return

    try:
        logger.info("Connecting to Redis at %s", settings.REDIS_URL)
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        await redis_client.ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.warning("Failed to connect to Redis: %s", e)
        redis_client = None


async def disconnect():
    """Close the Redis connection if any."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> redis.Redis | None:
    """
    Redis getter. Returns None when Redis is not configured or unavailable;
    callers handle that case.
    """
    return redis_client
