"""Redis caching utilities for KPIBoard.

Aggregations over large entry histories are the expensive reads in this
service; their results are cached in Redis and invalidated whenever the
underlying KPI's entries change.

Only cache *below* authorization: callers check permissions first and
then call the cached function, so a cache hit never skips an access check.

Invalidation is tied to the session's transaction: writers queue patterns
with `invalidate_on_commit(session, pattern)`, and the code that commits
the session runs `run_pending_invalidations(session)` afterwards (see
`kpiboard.database.commit`). A rolled-back session drops its queue.
"""

import functools
import json
import logging
from typing import Callable, Optional

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None

PENDING_INVALIDATIONS = "pending_cache_invalidations"


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cached(ttl: int, prefix: str, key_builder: Callable):
    """Decorator to cache JSON-serialisable results in Redis.

    Args:
        ttl: Time-to-live in seconds
        prefix: Cache key prefix for namespacing
        key_builder: Builds the key suffix from the call's args/kwargs

    Cache keys: {prefix}:{key_builder(...)}

    If Redis is unreachable the wrapped function runs uncached.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.cache_enabled:
                return await func(*args, **kwargs)

            key = f"{prefix}:{key_builder(*args, **kwargs)}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
                if cached_value is not None:
                    logger.debug("Cache HIT: %s", key)
                    return json.loads(cached_value)
                logger.debug("Cache MISS: %s", key)
            except redis.RedisError as e:
                logger.warning("Redis error (falling back to uncached): %s", e)
                return await func(*args, **kwargs)

            result = await func(*args, **kwargs)

            try:
                await redis_client.setex(key, ttl, json.dumps(result))
            except redis.RedisError as e:
                logger.warning("Failed to store cache key %s: %s", key, e)

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete every cache key matching a Redis glob pattern.

    Example:
        await invalidate_cache(f"kpi_aggregate:{kpi_id}:*")
    """
    if not settings.cache_enabled:
        return
    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.info("Invalidated %d cache keys matching %s", len(keys), pattern)
    except redis.RedisError as e:
        logger.warning("Failed to invalidate cache: %s", e)


# ── Transaction-bound invalidation ──────────────────────────

def invalidate_on_commit(session: AsyncSession, pattern: str) -> None:
    """Queue `pattern` for invalidation after `session` commits."""
    session.info.setdefault(PENDING_INVALIDATIONS, set()).add(pattern)


async def run_pending_invalidations(session: AsyncSession) -> None:
    for pattern in sorted(session.info.pop(PENDING_INVALIDATIONS, ())):
        await invalidate_cache(pattern)


def discard_pending_invalidations(session: AsyncSession) -> None:
    session.info.pop(PENDING_INVALIDATIONS, None)
