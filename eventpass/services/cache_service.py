"""
Redis caching service for template library listings.

CACHING STRATEGY
================

What we cache:
  - Template listing responses (JSON-serialized lists of templates)
  - Cache key pattern: "templates:list:category={category}&creator={creator}&public={public}"

Why:
  - The template picker is opened every time an organizer generates a ticket
  - Public templates change rarely (only on insert/delete)

Invalidation strategy:
  - On template insert or delete: delete every "templates:list:*" key
  - TTL-based expiry as safety net

Why NOT cache tickets:
  - Redemption needs the live row; a stale used_benefits list is exactly the
    lost update the conditional UPDATE exists to prevent

Redis is optional. If it is disabled or unreachable every call degrades to
a miss and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from eventpass.core.config import get_settings
from eventpass.core.logging import get_logger
from eventpass.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

TEMPLATE_LIST_PREFIX = "templates:list:"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_template_list_key(category: Optional[str], creator_id: Optional[str], include_public: bool) -> str:
    return f"{TEMPLATE_LIST_PREFIX}category={category or '*'}&creator={creator_id or '*'}&public={include_public}"


async def get_cached_templates(key: str) -> Optional[list]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_templates(key: str, data: list) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_template_cache() -> None:
    """Drop every cached template listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{TEMPLATE_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
