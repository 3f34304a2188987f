"""Rate limiting dependency for FastAPI routes.

A dependency rather than middleware, so only the routes that declare it
are limited: POST /auth is, while /health and /metrics never are.

Keys are per client network address.  Behind a proxy the first
X-Forwarded-For hop is the original client; X-Real-IP is the fallback
for proxies that set only that header.
"""

from __future__ import annotations

import logging

from fastapi import Request

from credservice.core.config import SETTINGS
from credservice.core.errors import RateLimitError
from credservice.core.metrics import RATE_LIMIT_HITS
from credservice.db.redis import redis_pool
from credservice.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton: Redis when configured, else process-local
# ---------------------------------------------------------------------------

rate_limiter: RateLimiter
if redis_pool is not None:
    rate_limiter = RedisRateLimiter(redis_pool)
else:
    rate_limiter = InMemoryRateLimiter()


AUTH_RATE_LIMIT = RateLimitConfig(
    max_attempts=SETTINGS.auth_rate_limit_max,
    window_seconds=SETTINGS.auth_rate_limit_window_seconds,
)


def require_rate_limit(config: RateLimitConfig, *, scope: str):
    """Dependency factory: enforce ``config`` on a route.

    @router.post("/auth", dependencies=[Depends(require_rate_limit(
        AUTH_RATE_LIMIT, scope="auth"))])
    """

    async def _check(request: Request) -> None:
        key = client_key(request)
        result: RateLimitResult = await rate_limiter.check(key, config)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(scope=scope).inc()
            logger.warning(
                "Rate limit exceeded  scope=%s key=%s retry_after=%.0fs",
                scope,
                key,
                result.retry_after,
            )
            raise RateLimitError(
                "Too many attempts. Try again later.",
                retry_after=result.retry_after,
            )

    return _check


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return f"ip:{first_hop}"

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return f"ip:{real_ip}"

    return f"ip:{request.client.host if request.client else 'unknown'}"
