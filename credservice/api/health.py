"""Health and readiness endpoints.

  /health (liveness): the process answers.  Always 200; the body's
    ``status`` is "degraded" when a configured backing service is
    unreachable.
  /ready (readiness): 503 while the database, when configured, cannot
    be reached.  Redis only backs the auth rate limiter, so it does
    not gate readiness.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from credservice.db.engine import engine, ping_database
from credservice.db.redis import ping_redis, redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_check() -> str:
    if engine is None:
        return "not_configured"
    try:
        await ping_database()
        return "ok"
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"


async def _redis_check() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await ping_redis()
        return "ok"
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _database_check(),
        "redis": await _redis_check(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_check() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
