"""Saved verification reports (VERIFIER only).

- POST /verifications — save the outcome of a /credentials/verify call
- GET  /verifications — the caller's history, newest first
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from credservice.api.dependencies import RepoBundle, Verifier
from credservice.models.verification import Verification
from credservice.services import credential_service, verification_service

router = APIRouter(prefix="/verifications", tags=["verifications"])


class VerificationIn(BaseModel):
    credentialId: UUID | None = None
    verification: dict[str, bool] | None = None
    trustScore: int = Field(ge=0, le=100)
    verifiedAt: datetime | None = None


class VerificationOut(BaseModel):
    id: str
    credentialId: str
    verifierId: str
    status: str
    trustScore: int
    verifiedAt: datetime
    failureReason: str | None


def _out(report: Verification) -> VerificationOut:
    return VerificationOut(
        id=str(report.id),
        credentialId=str(report.credential_id),
        verifierId=str(report.verifier_id),
        status=report.status,
        trustScore=report.trust_score,
        verifiedAt=report.verified_at,
        failureReason=report.failure_reason,
    )


@router.post("", response_model=VerificationOut, status_code=status.HTTP_201_CREATED)
async def save_verification(
    payload: VerificationIn, verifier: Verifier, repos: RepoBundle
) -> VerificationOut:
    report = await verification_service.record_verification(
        repos,
        verifier,
        payload.credentialId,
        checks=payload.verification,
        trust_score=payload.trustScore,
        verified_at=credential_service.parse_datetime(payload.verifiedAt, "verifiedAt"),
    )
    return _out(report)


@router.get("", response_model=list[VerificationOut])
async def list_verifications(verifier: Verifier, repos: RepoBundle) -> list[VerificationOut]:
    return [_out(r) for r in await verification_service.list_verifications(repos, verifier)]
