"""Wallet sign-in (POST /auth).

The client signs a challenge with its wallet and posts the address and
signature.  The first successful sign-in creates the identity (with the
requested role, HOLDER by default); later sign-ins return the same
identity with its original role.

Returns { user: { id, walletAddress, role, did }, accessToken }.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from credservice.api.dependencies import RepoBundle, get_signature_verifier
from credservice.api.ratelimit import AUTH_RATE_LIMIT, require_rate_limit
from credservice.core.config import SETTINGS
from credservice.models.identity import Role
from credservice.services import auth_service, token_service
from credservice.services.trust import SignatureVerifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class AuthIn(BaseModel):
    walletAddress: str = Field(min_length=32, max_length=44)
    signature: str = Field(min_length=10)
    role: Role | None = None


class AuthUserOut(BaseModel):
    id: str
    walletAddress: str
    role: Role
    did: str


class AuthOut(BaseModel):
    user: AuthUserOut
    accessToken: str


@router.post(
    "/auth",
    response_model=AuthOut,
    dependencies=[Depends(require_rate_limit(AUTH_RATE_LIMIT, scope="auth"))],
)
async def authenticate(
    payload: AuthIn,
    repos: RepoBundle,
    verifier: Annotated[SignatureVerifier, Depends(get_signature_verifier)],
) -> AuthOut:
    identity, _created = await auth_service.authenticate(
        repos.identities,
        verifier,
        payload.walletAddress.strip(),
        payload.signature,
        payload.role,
        did_prefix=SETTINGS.did_prefix,
    )

    access_token = token_service.create_access_token(
        sub=str(identity.id), role=identity.role, did=identity.did
    )
    return AuthOut(
        user=AuthUserOut(
            id=str(identity.id),
            walletAddress=identity.wallet_address,
            role=identity.role,
            did=identity.did,
        ),
        accessToken=access_token,
    )
