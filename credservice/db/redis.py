"""Redis connection management.

Mirrors engine.py: with REDIS_URL set, a shared connection pool backs
the rate limiter so every API instance counts against the same
windows; with it unset, redis_pool is None and the process-local
limiter is used instead.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from credservice.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


async def ping_redis() -> bool:
    if redis_pool is None:
        return False
    await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
    return True


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook: check connectivity, close the pool on exit."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, rate limiting is process-local")
        yield
        return

    try:
        await ping_redis()
        logger.info("Redis connected")
    except Exception:
        # Keep serving; /health reports redis as degraded until it recovers.
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")
