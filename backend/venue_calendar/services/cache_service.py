"""
Redis caching for per-org event listings.

What we cache:
  - The stored fields of an org's event list, keyed "events:list:org={org_id}".
  - Never the derived status: it depends on the clock, so readers re-derive it
    from the cached publication window on every hit.

Invalidation:
  - Any event write for an org deletes that org's key.
  - TTL-based expiry as safety net.

Redis is advisory. When disabled or unreachable, every call degrades to a
miss or a no-op and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis
from venue_calendar.core.config import get_settings
from venue_calendar.core.logging import get_logger
from venue_calendar.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


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


def _make_event_list_key(org_id: str) -> str:
    return f"events:list:org={org_id}"


async def get_cached_events(org_id: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_event_list_key(org_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_events(org_id: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_event_list_key(org_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache(org_id: str) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_event_list_key(org_id)
    try:
        deleted = await client.delete(key)
        logger.info("cache_invalidated", key=key, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """
    Cache reachability for /health. A single PING; hit/miss counts are in
    the cache_operations_total metric.
    """
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        await client.ping()
        return {"status": "connected"}
    except Exception as e:
        return {"status": "error", "error": str(e)}
