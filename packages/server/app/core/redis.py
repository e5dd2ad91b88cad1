"""Shared Redis client (rate-limit counters)."""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Return the process-wide Redis client, creating it on first use."""
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def redis_available() -> bool:
    """True if Redis answers PING. Used by the readiness probe."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except redis.RedisError:
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
