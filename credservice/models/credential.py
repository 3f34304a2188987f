from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from credservice.models.identity import Identity

CredentialStatus = Literal["ACTIVE", "EXPIRED", "REVOKED"]


@dataclass(frozen=True, slots=True)
class Credential:
    """A claim set issued by one identity about a subject DID.

    ``status`` is what the store holds.  EXPIRED is normally derived at
    read time through ``is_expired``; nothing sweeps stored rows.
    """

    id: UUID
    type: str
    issuer_id: UUID
    holder_id: UUID | None
    issuer_did: str | None
    subject_did: str
    claims: dict[str, Any] = field(default_factory=dict)
    status: CredentialStatus = "ACTIVE"
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    revoked_at: datetime | None = None
    revocation_reason: str | None = None
    proof: dict[str, Any] | None = None

    @staticmethod
    def new(
        *,
        type: str,
        issuer_id: UUID,
        holder_id: UUID | None,
        issuer_did: str | None,
        subject_did: str,
        claims: dict[str, Any],
        issued_at: datetime | None = None,
        expires_at: datetime | None = None,
        proof: dict[str, Any] | None = None,
    ) -> Credential:
        return Credential(
            id=uuid4(),
            type=type,
            issuer_id=issuer_id,
            holder_id=holder_id,
            issuer_did=issuer_did,
            subject_did=subject_did,
            claims=dict(claims),
            issued_at=issued_at or datetime.now(UTC),
            expires_at=expires_at,
            proof=proof,
        )

    @property
    def is_revoked(self) -> bool:
        return self.status == "REVOKED"

    def is_expired(self, now: datetime) -> bool:
        return (
            self.status == "ACTIVE"
            and self.expires_at is not None
            and self.expires_at < now
        )

    def revoked(self, at: datetime, reason: str | None = None) -> Credential:
        return replace(self, status="REVOKED", revoked_at=at, revocation_reason=reason)


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """Read-side view: a stored credential plus its read-time expiry flag."""

    credential: Credential
    is_expired: bool
    holder: Identity | None = None
    verification_count: int = 0
    last_verified: datetime | None = None
