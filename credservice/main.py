from __future__ import annotations

import logging
import math
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from credservice.api import ratelimit
from credservice.api.auth import router as auth_router
from credservice.api.credentials import router as credentials_router
from credservice.api.health import router as health_router
from credservice.api.identities import router as identities_router
from credservice.api.metrics_endpoint import router as metrics_router
from credservice.api.proofs import router as proofs_router
from credservice.api.templates import router as templates_router
from credservice.api.verifications import router as verifications_router
from credservice.core.config import SETTINGS
from credservice.core.errors import DomainError, InternalError, RateLimitError
from credservice.core.logging import setup_logging
from credservice.db.engine import lifespan_db
from credservice.db.redis import lifespan_redis
from credservice.middleware.metrics import MetricsMiddleware
from credservice.middleware.request_context import RequestContextMiddleware
from credservice.services.rate_limiter import RateLimitSweeper

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Torn down in reverse order: sweeper, redis, database.
    async with lifespan_db():
        async with lifespan_redis():
            sweeper = RateLimitSweeper(
                ratelimit.rate_limiter, SETTINGS.rate_limit_sweep_seconds
            )
            sweeper.start()
            try:
                yield
            finally:
                await sweeper.stop()


app = FastAPI(
    title="credential-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# ---------------------------------------------------------------------------
# Error rendering: {"error": {"code", "message", "details"?}}
# ---------------------------------------------------------------------------


@app.exception_handler(DomainError)
async def _domain_error(_request: Request, exc: DomainError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict()},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_error(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Location and message only; the offending input is not echoed back.
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "validation_error",
                "message": "Request body failed validation",
                "details": {"errors": errors},
            }
        },
    )


@app.exception_handler(Exception)
async def _unhandled_error(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc)
    error = InternalError("Internal server error")
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(credentials_router)
app.include_router(templates_router)
app.include_router(proofs_router)
app.include_router(verifications_router)
app.include_router(identities_router)

logger.info(
    "credential-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
