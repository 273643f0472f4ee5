"""
Redis Configuration

Redis backs the rate limiter and nothing else. It is optional outside
production: when it is unreachable at startup the rate limiter keeps its
windows in process memory instead.

Keys are namespaced with REDIS_KEY_PREFIX so several services can share one
Redis database. Socket timeouts are short because every rate-limited admin
action waits on Redis.
"""

import logging

from redis.asyncio import Redis, from_url

from apply4me.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None


def namespaced(key: str) -> str:
    """Prefix a key with this service's namespace."""
    return f"{settings.redis_key_prefix}:{key}"


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup. If the server cannot be pinged the
    client is closed and the error is re-raised, leaving Redis unavailable.
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise

    redis_client = client
    logger.info("Redis connection established")
    return redis_client


async def get_redis() -> Redis | None:
    """Get the Redis client, or None if Redis is not available."""
    return redis_client


def is_redis_available() -> bool:
    """Check if Redis client is initialized and available."""
    return redis_client is not None


async def ping_redis() -> dict[str, str]:
    """
    Report Redis health for the readiness and debug endpoints.

    Returns:
        {"redis": "connected"}, {"redis": "not initialized"} (rate limits are
        in memory) or {"redis": "error", "message": ...}
    """
    if redis_client is None:
        return {"redis": "not initialized"}
    try:
        await redis_client.ping()
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        return {"redis": "error", "message": str(e)}
    return {"redis": "connected"}


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
