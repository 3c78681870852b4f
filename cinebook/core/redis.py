"""
Redis client for the per-showtime commit lock, with async support
"""
import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from cinebook.core.config import REDIS_SOCKET_TIMEOUT, REDIS_URL

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """
    Return the singleton async Redis connection, connecting on first use.
    Raises RuntimeError when REDIS_URL is unset.
    """
    global _redis_client

    if _redis_client is None:
        if not REDIS_URL:
            raise RuntimeError("REDIS_URL not set")
        client = aioredis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT,
            socket_timeout=REDIS_SOCKET_TIMEOUT,
            health_check_interval=30,
            max_connections=50,
        )
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise
        _redis_client = client
        logger.info("✓ Redis connected: %s", REDIS_URL.split("@")[-1])

    return _redis_client


async def get_redis_optional() -> Optional[Redis]:
    """
    FastAPI dependency: the Redis client, or None when Redis is not configured
    or unreachable. Booking still works without it, only the cross-process
    commit lock is skipped.
    """
    if not REDIS_URL:
        return None
    try:
        return await get_redis()
    except Exception as e:
        logger.warning("⚠ Redis unavailable, commit lock disabled: %s", e)
        return None


async def close_redis():
    """Close Redis connection on shutdown"""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("✓ Redis connection closed")


async def health_check_redis() -> dict:
    """
    Connection status and latency for the health endpoint
    """
    if not REDIS_URL:
        return {"status": "disabled"}
    try:
        redis = await get_redis()
        start = time.time()
        await redis.ping()
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "url": REDIS_URL.split("@")[-1],
        }
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
