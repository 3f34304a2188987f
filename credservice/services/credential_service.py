"""Credential lifecycle: issue, import, revoke and list.

State machine::

    (issue | import) -> ACTIVE -> REVOKED        (terminal)
                          |
                          +-> EXPIRED            (derived when read)

Stored status only ever moves ACTIVE -> REVOKED.  Expiry is computed on
every read from ``expires_at`` so no background job has to sweep rows.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from credservice.core.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from credservice.core.metrics import CREDENTIALS_ISSUED, CREDENTIALS_REVOKED
from credservice.models.credential import Credential, CredentialRecord
from credservice.models.identity import Identity
from credservice.repos.bundle import Repos
from credservice.repos.credential_repo import newest_first
from credservice.services import template_service

logger = logging.getLogger(__name__)

_DID_RE = re.compile(r"^did:[a-z0-9]+:.+$")

_GENERIC_VC_TYPE = "VerifiableCredential"
IMPORTED_TYPE = "ImportedCredential"


def is_valid_did(value: str) -> bool:
    return bool(_DID_RE.match(value))


def is_held_by(credential: Credential, identity: Identity) -> bool:
    """Held by ``identity``, including credentials issued to its DID before
    the identity existed (stored with no holder)."""
    if credential.holder_id is not None:
        return credential.holder_id == identity.id
    return credential.subject_did == identity.did


def parse_datetime(value: Any, field: str) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime) as aware UTC.

    Naive values are taken to be UTC.  Raises ValidationError when the
    value cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"{field} is not a valid ISO-8601 date") from None
    else:
        raise ValidationError(f"{field} must be an ISO-8601 string")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# --- issue ------------------------------------------------------------------


async def issue(
    repos: Repos,
    issuer: Identity,
    *,
    subject_did: str,
    type: str,
    claims: dict[str, Any],
    expires_at: datetime | None = None,
    strict_templates: bool = False,
) -> Credential:
    if issuer.role != "ISSUER":
        raise AuthorizationError("Only issuers can issue credentials")

    subject_did = subject_did.strip()
    if not is_valid_did(subject_did):
        raise ValidationError(
            "Invalid subject DID format. Expected: did:<method>:<identifier>",
            details={"subjectDid": subject_did},
        )

    type = type.strip()
    if not type:
        raise ValidationError("Credential type is required")

    now = datetime.now(UTC)
    if expires_at is not None and expires_at <= now:
        raise ValidationError("expiresAt must be in the future")

    template = await template_service.find_for_type(repos, type, issuer.id)
    if template is not None:
        missing = template_service.missing_required(template.schema, claims)
        if missing:
            if strict_templates:
                raise ValidationError(
                    f"Claims missing required template fields for {type}",
                    details={"missing": missing},
                )
            logger.warning(
                "Issuing %s without template-required claims  missing=%s",
                type,
                missing,
            )

    holder = await repos.identities.get_by_did(subject_did)

    credential = Credential.new(
        type=type,
        issuer_id=issuer.id,
        holder_id=holder.id if holder else None,
        issuer_did=issuer.did,
        subject_did=subject_did,
        claims=claims,
        issued_at=now,
        expires_at=expires_at,
    )
    await repos.credentials.add(credential)

    CREDENTIALS_ISSUED.labels(origin="issued").inc()
    logger.info(
        "Credential issued  credential_id=%s type=%s issuer=%s holder=%s",
        credential.id,
        credential.type,
        issuer.id,
        credential.holder_id,
    )
    return credential


# --- import -----------------------------------------------------------------


def _import_type(raw: Any) -> str:
    if isinstance(raw, list):
        specific = [t for t in raw if isinstance(t, str) and t and t != _GENERIC_VC_TYPE]
        return specific[0] if specific else IMPORTED_TYPE
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return IMPORTED_TYPE


def _import_issuer_did(raw: Any) -> str | None:
    if isinstance(raw, str):
        return raw or None
    if isinstance(raw, dict):
        return raw.get("id") or raw.get("did") or None
    return None


async def _resolve_issuer(repos: Repos, issuer_did: str | None) -> Identity | None:
    if not issuer_did:
        return None
    identity = await repos.identities.get_by_did(issuer_did)
    if identity is not None:
        return identity
    # did:<method>:<wallet> from another deployment's prefix
    parts = issuer_did.split(":")
    if len(parts) == 3 and parts[0] == "did":
        return await repos.identities.get_by_wallet(parts[2])
    return None


async def import_credential(
    repos: Repos, owner: Identity, document: Any
) -> Credential:
    """Store an externally issued W3C-shaped credential for ``owner``.

    The importer becomes both holder and subject.  When the issuer DID
    does not resolve to a known identity, the importer is recorded as
    the issuing identity too.
    """
    if not isinstance(document, dict):
        raise ValidationError("Credential document must be a JSON object")

    issuer_did = _import_issuer_did(document.get("issuer"))
    issuer = await _resolve_issuer(repos, issuer_did)

    claims = document.get("credentialSubject") or {}
    if not isinstance(claims, dict):
        raise ValidationError("credentialSubject must be an object")
    proof = document.get("proof")
    if proof is not None and not isinstance(proof, dict):
        raise ValidationError("proof must be an object")

    credential = Credential.new(
        type=_import_type(document.get("type")),
        issuer_id=issuer.id if issuer else owner.id,
        holder_id=owner.id,
        issuer_did=issuer_did,
        subject_did=owner.did,
        claims=claims,
        issued_at=parse_datetime(document.get("issuanceDate"), "issuanceDate"),
        expires_at=parse_datetime(document.get("expirationDate"), "expirationDate"),
        proof=proof or {},
    )
    await repos.credentials.add(credential)

    CREDENTIALS_ISSUED.labels(origin="imported").inc()
    logger.info(
        "Credential imported  credential_id=%s type=%s holder=%s issuer_resolved=%s",
        credential.id,
        credential.type,
        owner.id,
        issuer is not None,
    )
    return credential


# --- revoke -----------------------------------------------------------------


async def revoke(
    repos: Repos,
    issuer: Identity,
    credential_id: UUID,
    reason: str | None = None,
) -> Credential:
    credential = await repos.credentials.get(credential_id)
    if credential is None:
        raise NotFoundError("Credential not found")
    if credential.issuer_id != issuer.id:
        logger.warning(
            "Revoke denied  credential_id=%s identity=%s", credential_id, issuer.id
        )
        raise AuthorizationError("Not authorized to revoke this credential")

    if credential.is_revoked:
        logger.info("Credential already revoked  credential_id=%s", credential_id)
        return credential

    revoked = credential.revoked(datetime.now(UTC), reason)
    await repos.credentials.save(revoked)

    CREDENTIALS_REVOKED.inc()
    logger.info("Credential revoked  credential_id=%s", credential_id)
    return revoked


# --- listings ---------------------------------------------------------------


async def _records(
    repos: Repos, credentials: Iterable[Credential], *, with_holders: bool = False
) -> list[CredentialRecord]:
    credentials = list(credentials)
    now = datetime.now(UTC)
    stats = await repos.verifications.stats_for(c.id for c in credentials)

    holders: dict[UUID, Identity | None] = {}
    if with_holders:
        for holder_id in {c.holder_id for c in credentials if c.holder_id}:
            holders[holder_id] = await repos.identities.get_by_id(holder_id)

    records = []
    for c in credentials:
        count, latest = stats.get(c.id, (0, None))
        records.append(
            CredentialRecord(
                credential=c,
                is_expired=c.is_expired(now),
                holder=holders.get(c.holder_id) if c.holder_id else None,
                verification_count=count,
                last_verified=latest,
            )
        )
    return records


async def list_for_holder(repos: Repos, holder: Identity) -> list[CredentialRecord]:
    held = await repos.credentials.list_by_holder(holder.id)
    unlinked = [
        c for c in await repos.credentials.list_by_subject(holder.did) if c.holder_id is None
    ]
    return await _records(repos, newest_first(held + unlinked))


async def list_issued_by(repos: Repos, issuer: Identity) -> list[CredentialRecord]:
    issued = await repos.credentials.list_by_issuer(issuer.id)
    return await _records(repos, issued, with_holders=True)


async def list_revoked_by(repos: Repos, issuer: Identity) -> list[CredentialRecord]:
    revoked = await repos.credentials.list_by_issuer(issuer.id, status="REVOKED")
    revoked.sort(
        key=lambda c: c.revoked_at or datetime.min.replace(tzinfo=UTC), reverse=True
    )
    return await _records(repos, revoked, with_holders=True)
