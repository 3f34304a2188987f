from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from credservice.core.errors import AuthenticationError, AuthorizationError
from credservice.core.logging import identity_id_var
from credservice.db.engine import async_session_factory, session_scope
from credservice.models.identity import Identity, Role
from credservice.models.principal import Principal
from credservice.repos.bundle import Repos, memory_repos, pg_repos
from credservice.services import token_service
from credservice.services.trust import AcceptAllSignatureVerifier, SignatureVerifier
from credservice.services.verification_service import TrustCapabilities

logger = logging.getLogger(__name__)

# auto_error=False: a missing header should produce our 401 error body,
# not FastAPI's default one.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth", auto_error=False)

# ---------------------------------------------------------------------------
# Composition root for the pluggable trust capabilities
# ---------------------------------------------------------------------------

_signature_verifier: SignatureVerifier = AcceptAllSignatureVerifier()
_trust_capabilities = TrustCapabilities()


def get_signature_verifier() -> SignatureVerifier:
    return _signature_verifier


def get_trust_capabilities() -> TrustCapabilities:
    return _trust_capabilities


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


async def get_repos() -> AsyncGenerator[Repos, None]:
    """One repository bundle per request.

    PostgreSQL: the bundle shares a session that commits when the
    handler returns and rolls back if it raises.
    """
    if async_session_factory is None:
        yield memory_repos()
        return
    async with session_scope() as session:
        yield pg_repos(session)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def require_user(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the bearer token.  Returns a Principal.

    Async so the identity ContextVar it sets is visible to the handler
    and to log lines emitted while serving the request.
    """
    if not raw_token:
        raise AuthenticationError("Authentication required")
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise AuthenticationError("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise AuthenticationError("Invalid token") from None

    roles = claims.get("roles") or []
    try:
        principal = Principal(
            identity_id=UUID(claims["sub"]),
            role=roles[0],
            did=claims.get("did", ""),
        )
    except (ValueError, IndexError):
        logger.warning("Token with malformed claims rejected")
        raise AuthenticationError("Invalid token") from None

    identity_id_var.set(str(principal.identity_id))
    logger.debug(
        "Token validated for identity=%s role=%s", principal.identity_id, principal.role
    )
    return principal


async def require_identity(
    principal: Annotated[Principal, Depends(require_user)],
    repos: Annotated[Repos, Depends(get_repos)],
) -> Identity:
    """Load the caller's stored identity; a token for a vanished identity is a 401."""
    identity = await repos.identities.get_by_id(principal.identity_id)
    if identity is None:
        logger.warning("Token for unknown identity=%s", principal.identity_id)
        raise AuthenticationError("Unknown identity")
    return identity


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("ISSUER"))
    Returns the caller's Identity if the role matches, else 403.
    """

    async def _guard(
        identity: Annotated[Identity, Depends(require_identity)],
    ) -> Identity:
        if identity.role != role:
            logger.warning(
                "Access denied: identity=%s role=%s required=%s",
                identity.id,
                identity.role,
                role,
            )
            raise AuthorizationError(f"This action requires the {role} role")
        return identity

    return _guard


CurrentIdentity = Annotated[Identity, Depends(require_identity)]
Holder = Annotated[Identity, Depends(require_role("HOLDER"))]
Issuer = Annotated[Identity, Depends(require_role("ISSUER"))]
Verifier = Annotated[Identity, Depends(require_role("VERIFIER"))]
RepoBundle = Annotated[Repos, Depends(get_repos)]
