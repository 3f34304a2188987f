"""Credential verification and trust scoring.

Every verification runs the same five checks in a fixed order and
scores them as ``round(100 * passed / 5)``.  A credential is
"verified" only when all five pass.

Two sources:

  external — a credential document supplied by the caller.  Only expiry
    can be judged locally; the other checks pass by policy.
  stored   — a credential in this service's store.  Expiry and
    revocation come from stored state; signature, issuer trust and
    chain anchoring are delegated to the injected capabilities in
    ``credservice.services.trust``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from credservice.core.errors import NotFoundError, ValidationError
from credservice.core.metrics import VERIFICATIONS
from credservice.models.credential import Credential
from credservice.models.identity import Identity
from credservice.models.verification import (
    CredentialView,
    Verification,
    VerificationChecks,
    VerificationResult,
)
from credservice.repos.bundle import Repos
from credservice.services.trust import (
    AcceptAllAnchorVerifier,
    AcceptAllSignatureVerifier,
    AcceptAllTrustRegistry,
    AnchorVerifier,
    SignatureVerifier,
    TrustRegistry,
)

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY = timedelta(days=365)
DEFAULT_PROOF_TYPE = "Ed25519Signature2020"


@dataclass(frozen=True, slots=True)
class TrustCapabilities:
    signatures: SignatureVerifier = field(default_factory=AcceptAllSignatureVerifier)
    registry: TrustRegistry = field(default_factory=AcceptAllTrustRegistry)
    anchors: AnchorVerifier = field(default_factory=AcceptAllAnchorVerifier)


def score(checks: VerificationChecks) -> tuple[int, str]:
    """Return (trust_score, status) for a set of checks."""
    trust_score = round(100 * checks.passed / checks.total)
    return trust_score, "verified" if checks.all_passed else "failed"


def _default_proof(created: datetime | str, issuer_did: str) -> dict[str, Any]:
    if isinstance(created, datetime):
        created = created.isoformat()
    return {
        "type": DEFAULT_PROOF_TYPE,
        "created": created,
        "verificationMethod": f"{issuer_did}#key-1",
    }


def _expired(raw: Any, now: datetime) -> bool:
    if raw is None or raw == "":
        return False
    try:
        parsed = datetime.fromisoformat(str(raw).strip())
    except ValueError:
        return True
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed <= now


# --- external documents -----------------------------------------------------


def parse_credential_json(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("credentialJson is not valid JSON") from None
    if not isinstance(raw, dict):
        raise ValidationError("credentialJson must be a JSON object")
    return raw


def _text(value: Any, default: str) -> str:
    """A display string from a W3C field: strings as-is, objects by ``id``."""
    if isinstance(value, dict):
        value = value.get("id") or value.get("did")
    if isinstance(value, bool) or value is None or isinstance(value, (list, dict)):
        return default
    text = str(value).strip()
    return text or default


def _subject(doc: dict[str, Any]) -> dict[str, Any]:
    # credentialSubject may be one object or a list of them
    subject = doc.get("credentialSubject") or doc.get("claims") or {}
    if isinstance(subject, list):
        subject = next((s for s in subject if isinstance(s, dict)), {})
    return subject if isinstance(subject, dict) else {}


def _document_type(raw: Any) -> str:
    if isinstance(raw, list):
        names = [t for t in raw if isinstance(t, str) and t.strip()]
        specific = [t for t in names if t != "VerifiableCredential"]
        return (specific or names or ["Unknown Type"])[0]
    return _text(raw, "Unknown Type")


def _external_view(doc: dict[str, Any], now: datetime) -> CredentialView:
    subject = _subject(doc)
    issuer = doc.get("issuer")
    issuer_did = _text(issuer, "did:unknown")
    if isinstance(issuer, dict):
        issuer_name = _text(issuer.get("name") or issuer.get("issuerName"), "Unknown Issuer")
    else:
        issuer_name = "Unknown Issuer"

    issued = _text(doc.get("issuanceDate") or doc.get("issuedAt"), now.isoformat())
    expiry = _text(
        doc.get("expirationDate") or doc.get("expiresAt"),
        (now + DEFAULT_VALIDITY).isoformat(),
    )
    proof = doc.get("proof")
    return CredentialView(
        id=_text(doc.get("id"), "unknown"),
        type=_document_type(doc.get("type")),
        holder=_text(subject.get("name") or subject.get("holderName"), "Unknown Holder"),
        holder_did=_text(doc.get("holder"), "") or _text(subject.get("id"), "did:unknown"),
        issuer=issuer_name,
        issuer_did=issuer_did,
        issued_date=issued,
        expiry_date=expiry,
        credential_subject=dict(subject),
        proof=proof if isinstance(proof, dict) and proof else _default_proof(issued, issuer_did),
    )


def verify_external(raw: Any, *, now: datetime | None = None) -> VerificationResult:
    now = now or datetime.now(UTC)
    doc = parse_credential_json(raw)
    checks = VerificationChecks(
        signature_valid=True,
        issuer_trusted=True,
        not_expired=not _expired(doc.get("expirationDate") or doc.get("expiresAt"), now),
        not_revoked=True,
        chain_anchor_valid=True,
    )
    trust_score, status = score(checks)
    VERIFICATIONS.labels(source="external", status=status).inc()
    logger.info("External credential verified  status=%s score=%d", status, trust_score)
    return VerificationResult(
        status=status,  # type: ignore[arg-type]
        credential=_external_view(doc, now),
        checks=checks,
        trust_score=trust_score,
        verified_at=now,
    )


# --- stored credentials -----------------------------------------------------


async def view(repos: Repos, credential: Credential, now: datetime) -> CredentialView:
    if credential.holder_id:
        holder = await repos.identities.get_by_id(credential.holder_id)
    else:
        holder = await repos.identities.get_by_did(credential.subject_did)
    issuer = await repos.identities.get_by_id(credential.issuer_id)
    issuer_did = credential.issuer_did or (issuer.did if issuer else "did:unknown")
    return CredentialView(
        id=str(credential.id),
        type=credential.type,
        holder=holder.display_name() if holder else "Unknown Holder",
        holder_did=credential.subject_did,
        issuer=issuer.display_name() if issuer else "Unknown Issuer",
        issuer_did=issuer_did,
        issued_date=credential.issued_at,
        expiry_date=credential.expires_at or now + DEFAULT_VALIDITY,
        credential_subject=dict(credential.claims),
        proof=credential.proof or _default_proof(credential.issued_at, issuer_did),
    )


async def _verify_stored(
    repos: Repos,
    credential: Credential,
    capabilities: TrustCapabilities,
    now: datetime,
) -> VerificationResult:
    checks = VerificationChecks(
        signature_valid=capabilities.signatures.verify_credential(credential),
        issuer_trusted=capabilities.registry.is_trusted_issuer(credential.issuer_did),
        not_expired=credential.expires_at is None or credential.expires_at > now,
        not_revoked=not credential.is_revoked,
        chain_anchor_valid=capabilities.anchors.is_anchored(credential),
    )
    trust_score, status = score(checks)
    VERIFICATIONS.labels(source="stored", status=status).inc()
    logger.info(
        "Stored credential verified  credential_id=%s status=%s score=%d",
        credential.id,
        status,
        trust_score,
    )
    return VerificationResult(
        status=status,  # type: ignore[arg-type]
        credential=await view(repos, credential, now),
        checks=checks,
        trust_score=trust_score,
        verified_at=now,
        credential_id=credential.id,
    )


async def verify_by_did(
    repos: Repos,
    holder_did: str,
    credential_type: str | None = None,
    *,
    capabilities: TrustCapabilities | None = None,
    now: datetime | None = None,
) -> VerificationResult:
    """Verify the newest ACTIVE credential issued to ``holder_did``."""
    now = now or datetime.now(UTC)
    credential = await repos.credentials.latest_active_for_subject(
        holder_did, credential_type or None
    )
    if credential is None:
        everything = await repos.credentials.list_by_subject(holder_did)
        if everything:
            message = (
                "No active credential found for the provided DID. "
                f"Found {len(everything)} total credentials."
            )
        else:
            message = "No credentials found for the provided DID."
        raise NotFoundError(
            message,
            details={
                "did": holder_did,
                "totalCredentials": len(everything),
                "credentialStatuses": [
                    {"status": c.status, "type": c.type} for c in everything
                ],
            },
        )
    return await _verify_stored(repos, credential, capabilities or TrustCapabilities(), now)


async def verify_by_id(
    repos: Repos,
    credential_id: UUID,
    *,
    capabilities: TrustCapabilities | None = None,
    now: datetime | None = None,
) -> VerificationResult:
    """Verify a stored credential by id, whatever its status."""
    now = now or datetime.now(UTC)
    credential = await repos.credentials.get(credential_id)
    if credential is None:
        raise NotFoundError("Credential not found")
    return await _verify_stored(repos, credential, capabilities or TrustCapabilities(), now)


# --- verification reports ---------------------------------------------------


async def record_verification(
    repos: Repos,
    verifier: Identity,
    credential_id: UUID | None,
    *,
    checks: dict[str, bool] | None,
    trust_score: int,
    verified_at: datetime | None = None,
) -> Verification:
    """Persist the outcome of a verification against a stored credential."""
    if credential_id is None:
        raise ValidationError(
            "Cannot save reports for external credentials without an internal credential id"
        )
    if await repos.credentials.get(credential_id) is None:
        raise NotFoundError("Credential not found")
    if not 0 <= trust_score <= 100:
        raise ValidationError("trustScore must be between 0 and 100")

    passed = bool(checks) and all(checks.values())
    status = "VERIFIED" if passed else "FAILED"
    failure_reason = (
        None
        if passed
        else json.dumps({"verification": checks or {}, "trustScore": trust_score})
    )
    report = Verification.new(
        credential_id=credential_id,
        verifier_id=verifier.id,
        status=status,
        trust_score=trust_score,
        verified_at=verified_at,
        failure_reason=failure_reason,
    )
    await repos.verifications.add(report)
    logger.info(
        "Verification report saved  report_id=%s credential_id=%s status=%s",
        report.id,
        credential_id,
        status,
    )
    return report


async def list_verifications(repos: Repos, verifier: Identity) -> list[Verification]:
    return await repos.verifications.list_by_verifier(verifier.id)
