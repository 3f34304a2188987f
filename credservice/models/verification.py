from __future__ import annotations

from dataclasses import astuple, dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

VerificationStatus = Literal["verified", "failed"]
ReportStatus = Literal["VERIFIED", "FAILED"]


@dataclass(frozen=True, slots=True)
class VerificationChecks:
    """The five checks behind every trust score, in reporting order."""

    signature_valid: bool
    issuer_trusted: bool
    not_expired: bool
    not_revoked: bool
    chain_anchor_valid: bool

    @property
    def total(self) -> int:
        return len(astuple(self))

    @property
    def passed(self) -> int:
        return sum(1 for check in astuple(self) if check)

    @property
    def all_passed(self) -> bool:
        return self.passed == self.total

    def to_dict(self) -> dict[str, bool]:
        return {
            "signatureValid": self.signature_valid,
            "issuerTrusted": self.issuer_trusted,
            "notExpired": self.not_expired,
            "notRevoked": self.not_revoked,
            "chainAnchorValid": self.chain_anchor_valid,
        }


@dataclass(frozen=True, slots=True)
class CredentialView:
    """Source-independent rendering of a verified credential."""

    id: str
    type: str
    holder: str
    holder_did: str
    issuer: str
    issuer_did: str
    issued_date: datetime | str
    expiry_date: datetime | str
    credential_subject: dict[str, Any]
    proof: dict[str, Any]


@dataclass(frozen=True, slots=True)
class VerificationResult:
    status: VerificationStatus
    credential: CredentialView
    checks: VerificationChecks
    trust_score: int
    verified_at: datetime
    # Set only when the credential came from the store.
    credential_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class Verification:
    """A saved verification report against a stored credential."""

    id: UUID
    credential_id: UUID
    verifier_id: UUID
    status: ReportStatus
    trust_score: int
    verified_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    failure_reason: str | None = None

    @staticmethod
    def new(
        *,
        credential_id: UUID,
        verifier_id: UUID,
        status: ReportStatus,
        trust_score: int,
        verified_at: datetime | None = None,
        failure_reason: str | None = None,
    ) -> Verification:
        return Verification(
            id=uuid4(),
            credential_id=credential_id,
            verifier_id=verifier_id,
            status=status,
            trust_score=trust_score,
            verified_at=verified_at or datetime.now(UTC),
            failure_reason=failure_reason,
        )
