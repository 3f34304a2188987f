"""Request context middleware — assigns a unique ID to every request.

The request ID lives in a ContextVar so any log line emitted while the
request is being served can carry it, without threading it through
every call.  ``require_user`` fills ``identity_id_var`` once the bearer
token is decoded, so authenticated log lines also name the caller.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from credservice.core.logging import identity_id_var, request_id_var

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log a summary line.

    The client may supply X-Request-ID; otherwise a UUID is generated.
    The ID is echoed on the response for correlation.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_token = request_id_var.set(req_id)
        identity_token = identity_id_var.set(None)

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            identity_id_var.reset(identity_token)
            request_id_var.reset(request_id_token)

        response.headers["X-Request-ID"] = req_id
        return response
