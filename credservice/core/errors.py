"""Domain error taxonomy.

Services raise these; the handlers registered in ``credservice.main``
turn them into ``{"error": {"code", "message", "details"?}}`` responses
with the matching HTTP status.  Messages are written for end users, so
they never carry stack traces or storage internals.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    code = "error"
    status_code = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError):
    code = "validation_error"
    status_code = 400


class AuthenticationError(DomainError):
    code = "authentication_required"
    status_code = 401


class AuthorizationError(DomainError):
    code = "forbidden"
    status_code = 403


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404


class ConflictError(DomainError):
    code = "conflict"
    status_code = 409


class RateLimitError(DomainError):
    code = "rate_limited"
    status_code = 429

    def __init__(self, message: str, *, retry_after: float) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(DomainError):
    code = "internal_error"
    status_code = 500
