"""Credential endpoints.

- GET  /credentials              — credentials held by the caller
- GET  /credentials/issued       — credentials the caller issued (ISSUER)
- GET  /credentials/revoked      — the caller's revoked issuances (ISSUER)
- POST /credentials/issue        — issue to a subject DID (ISSUER)
- POST /credentials/import       — store an external W3C credential
- POST /credentials/verify       — verify by document, holder DID or id
- POST /credentials/{id}/revoke  — revoke (issuing identity only)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from credservice.api.dependencies import (
    CurrentIdentity,
    Issuer,
    RepoBundle,
    get_trust_capabilities,
)
from credservice.core.config import SETTINGS
from credservice.core.errors import ValidationError
from credservice.models.credential import Credential, CredentialRecord
from credservice.models.verification import VerificationResult
from credservice.services import credential_service, verification_service
from credservice.services.verification_service import TrustCapabilities

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credentials", tags=["credentials"])


# --- Request / Response schemas -------------------------------------------


class CredentialOut(BaseModel):
    id: str
    type: str
    issuerId: str
    holderId: str | None
    issuerDid: str | None
    subjectDid: str
    claims: dict[str, Any]
    status: str
    isExpired: bool
    issuedAt: datetime
    expiresAt: datetime | None
    revokedAt: datetime | None
    revocationReason: str | None
    proof: dict[str, Any] | None


class IssuedCredentialOut(CredentialOut):
    recipient: str
    verificationCount: int
    lastVerified: datetime | None


class IssueIn(BaseModel):
    subjectDid: str = Field(min_length=1)
    type: str = Field(min_length=1)
    claims: dict[str, Any] = Field(default_factory=dict)
    expiresAt: datetime | None = None


class RevokeIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class VerifyIn(BaseModel):
    credentialJson: dict[str, Any] | str | None = None
    holderDid: str | None = None
    credentialType: str | None = None
    credentialId: UUID | None = None


class CredentialViewOut(BaseModel):
    id: str
    type: str
    holder: str
    holderDID: str
    issuer: str
    issuerDID: str
    issuedDate: datetime | str
    expiryDate: datetime | str
    credentialSubject: dict[str, Any]
    proof: dict[str, Any]


class VerifyOut(BaseModel):
    status: str
    credential: CredentialViewOut
    verification: dict[str, bool]
    trustScore: int
    verifiedAt: datetime
    credentialId: str | None = None


def credential_out(credential: Credential, *, is_expired: bool = False) -> CredentialOut:
    return CredentialOut(
        id=str(credential.id),
        type=credential.type,
        issuerId=str(credential.issuer_id),
        holderId=str(credential.holder_id) if credential.holder_id else None,
        issuerDid=credential.issuer_did,
        subjectDid=credential.subject_did,
        claims=credential.claims,
        status="EXPIRED" if is_expired else credential.status,
        isExpired=is_expired,
        issuedAt=credential.issued_at,
        expiresAt=credential.expires_at,
        revokedAt=credential.revoked_at,
        revocationReason=credential.revocation_reason,
        proof=credential.proof,
    )


def _record_out(record: CredentialRecord) -> CredentialOut:
    return credential_out(record.credential, is_expired=record.is_expired)


def _issued_out(record: CredentialRecord) -> IssuedCredentialOut:
    base = _record_out(record)
    return IssuedCredentialOut(
        **base.model_dump(),
        recipient=(
            record.holder.display_name() if record.holder else record.credential.subject_did
        ),
        verificationCount=record.verification_count,
        lastVerified=record.last_verified,
    )


def verify_out(result: VerificationResult) -> VerifyOut:
    view = result.credential
    return VerifyOut(
        status=result.status,
        credential=CredentialViewOut(
            id=view.id,
            type=view.type,
            holder=view.holder,
            holderDID=view.holder_did,
            issuer=view.issuer,
            issuerDID=view.issuer_did,
            issuedDate=view.issued_date,
            expiryDate=view.expiry_date,
            credentialSubject=view.credential_subject,
            proof=view.proof,
        ),
        verification=result.checks.to_dict(),
        trustScore=result.trust_score,
        verifiedAt=result.verified_at,
        credentialId=str(result.credential_id) if result.credential_id else None,
    )


# --- listings -------------------------------------------------------------


@router.get("", response_model=list[CredentialOut])
async def list_held(identity: CurrentIdentity, repos: RepoBundle) -> list[CredentialOut]:
    records = await credential_service.list_for_holder(repos, identity)
    return [_record_out(r) for r in records]


@router.get("/issued", response_model=list[IssuedCredentialOut])
async def list_issued(issuer: Issuer, repos: RepoBundle) -> list[IssuedCredentialOut]:
    records = await credential_service.list_issued_by(repos, issuer)
    return [_issued_out(r) for r in records]


@router.get("/revoked", response_model=list[IssuedCredentialOut])
async def list_revoked(issuer: Issuer, repos: RepoBundle) -> list[IssuedCredentialOut]:
    records = await credential_service.list_revoked_by(repos, issuer)
    return [_issued_out(r) for r in records]


# --- writes ---------------------------------------------------------------


@router.post("/issue", response_model=CredentialOut, status_code=status.HTTP_201_CREATED)
async def issue_credential(
    payload: IssueIn, issuer: Issuer, repos: RepoBundle
) -> CredentialOut:
    expires_at = credential_service.parse_datetime(payload.expiresAt, "expiresAt")
    credential = await credential_service.issue(
        repos,
        issuer,
        subject_did=payload.subjectDid,
        type=payload.type,
        claims=payload.claims,
        expires_at=expires_at,
        strict_templates=SETTINGS.strict_template_claims,
    )
    return credential_out(credential)


@router.post("/import", response_model=CredentialOut, status_code=status.HTTP_201_CREATED)
async def import_credential(
    document: Annotated[Any, Body()],
    identity: CurrentIdentity,
    repos: RepoBundle,
) -> CredentialOut:
    credential = await credential_service.import_credential(repos, identity, document)
    return credential_out(credential)


@router.post("/{credential_id}/revoke", response_model=CredentialOut)
async def revoke_credential(
    credential_id: UUID,
    identity: CurrentIdentity,
    repos: RepoBundle,
    payload: Annotated[RevokeIn | None, Body()] = None,
) -> CredentialOut:
    credential = await credential_service.revoke(
        repos, identity, credential_id, payload.reason if payload else None
    )
    return credential_out(credential)


# --- verification ---------------------------------------------------------


@router.post("/verify", response_model=VerifyOut)
async def verify_credential(
    payload: VerifyIn,
    _identity: CurrentIdentity,
    repos: RepoBundle,
    capabilities: Annotated[TrustCapabilities, Depends(get_trust_capabilities)],
) -> VerifyOut:
    modes = [
        payload.credentialJson is not None,
        bool(payload.holderDid),
        payload.credentialId is not None,
    ]
    if sum(modes) != 1:
        raise ValidationError(
            "Provide exactly one of credentialJson, holderDid or credentialId"
        )

    if payload.credentialJson is not None:
        result = verification_service.verify_external(payload.credentialJson)
    elif payload.holderDid:
        result = await verification_service.verify_by_did(
            repos,
            payload.holderDid.strip(),
            payload.credentialType,
            capabilities=capabilities,
        )
    else:
        result = await verification_service.verify_by_id(
            repos, payload.credentialId, capabilities=capabilities  # type: ignore[arg-type]
        )
    return verify_out(result)
