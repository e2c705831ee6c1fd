"""
Redis Connection Module

Async Redis connection management for:
1. Cross-process realtime fan-out (REALTIME_BACKEND="redis")
2. Health checks

With the 'local' realtime backend the API never talks to Redis
outside of the health check.
"""

import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from zord.core.config import settings

# ============================================================
# Logging Setup
# ============================================================
logger = logging.getLogger(__name__)

# ============================================================
# Redis Connection Pool
# ============================================================

# Global connection pool - initialized once, reused everywhere
_redis_pool: Optional[ConnectionPool] = None

def get_redis_pool() -> ConnectionPool:
    """
    Get or create the Redis connection pool.

    Uses singleton pattern - creates pool once, reuses thereafter.
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=10,      # Max simultaneous connections
            decode_responses=False,  # Return bytes; subscribers decode
        )
        logger.info(f"Redis connection pool created: {settings.REDIS_URL}")

    return _redis_pool


async def get_redis() -> Redis:
    """
    Redis client on the shared pool.

    ConnectionManager calls this for publishing and for its
    pattern subscriber.
    """
    pool = get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool():
    """
    Close Redis connection pool during app shutdown.

    Called from FastAPI lifespan events to clean up resources.
    """
    global _redis_pool

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis connection pool closed")


# ============================================================
# Health Check
# ============================================================

async def check_redis_connection() -> bool:
    """
    Check if Redis is reachable.

    Used for health checks and startup verification.

    Returns:
        True if Redis responds to PING, False otherwise
    """
    try:
        redis = await get_redis()
        response = await redis.ping()
        logger.info("Redis health check: OK")
        return response
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
