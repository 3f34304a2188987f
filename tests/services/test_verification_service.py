from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime, timedelta

import pytest

from credservice.core.errors import NotFoundError, ValidationError
from credservice.models.credential import Credential
from credservice.models.identity import Identity
from credservice.models.verification import VerificationChecks
from credservice.repos.bundle import Repos, in_memory_repos
from credservice.services import verification_service
from credservice.services.verification_service import TrustCapabilities

NOW = datetime(2025, 6, 1, tzinfo=UTC)


@pytest.mark.parametrize("passed", range(6))
def test_score_is_twenty_points_per_check(passed: int) -> None:
    for flags in itertools.combinations(range(5), passed):
        checks = VerificationChecks(*(i in flags for i in range(5)))
        trust_score, status = verification_service.score(checks)
        assert trust_score == round(100 * passed / 5)
        assert status == ("verified" if passed == 5 else "failed")


def test_external_document_with_future_expiry_is_verified() -> None:
    result = verification_service.verify_external(
        {"type": "Badge", "expirationDate": "2030-01-01T00:00:00"}, now=NOW
    )
    assert result.status == "verified"
    assert result.credential_id is None
    # The document's own date string is reported as given.
    assert result.credential.expiry_date == "2030-01-01T00:00:00"


def test_external_document_with_unparseable_expiry_counts_as_expired() -> None:
    result = verification_service.verify_external(
        {"expirationDate": "someday"}, now=NOW
    )
    assert result.checks.not_expired is False
    assert result.trust_score == 80


def test_external_defaults_fill_the_view() -> None:
    result = verification_service.verify_external({}, now=NOW)
    view = result.credential
    assert view.type == "Unknown Type"
    assert view.holder == "Unknown Holder"
    assert view.issuer == "Unknown Issuer"
    assert view.issuer_did == "did:unknown"
    assert view.expiry_date == (NOW + timedelta(days=365)).isoformat()
    assert view.proof["verificationMethod"] == "did:unknown#key-1"


@pytest.mark.parametrize("raw", ["[1, 2]", "nope", 42])
def test_parse_credential_json_rejects_non_objects(raw) -> None:
    with pytest.raises(ValidationError):
        verification_service.parse_credential_json(raw)


def _seed(repos: Repos, **overrides) -> tuple[Identity, Credential]:
    issuer = Identity.new(wallet_address="B" * 40, did_prefix="did:solana:", role="ISSUER")
    asyncio.run(repos.identities.add(issuer))
    fields = dict(
        type="DegreeCert",
        issuer_id=issuer.id,
        holder_id=None,
        issuer_did=issuer.did,
        subject_did="did:web:someone.example",
        claims={"degree": "BSc"},
        issued_at=NOW - timedelta(days=10),
    )
    fields.update(overrides)
    credential = Credential.new(**fields)
    asyncio.run(repos.credentials.add(credential))
    return issuer, credential


def test_stored_credential_without_holder_renders_unknown_holder() -> None:
    repos = in_memory_repos()
    _issuer, credential = _seed(repos)
    result = asyncio.run(verification_service.verify_by_id(repos, credential.id, now=NOW))
    assert result.status == "verified"
    assert result.credential.holder == "Unknown Holder"
    assert result.credential.holder_did == "did:web:someone.example"
    assert result.credential.expiry_date == NOW + timedelta(days=365)


def test_expiry_exactly_now_is_expired() -> None:
    repos = in_memory_repos()
    _issuer, credential = _seed(repos, expires_at=NOW)
    result = asyncio.run(verification_service.verify_by_id(repos, credential.id, now=NOW))
    assert result.checks.not_expired is False


class _Unanchored:
    def is_anchored(self, credential: Credential) -> bool:
        return False


class _BadSignatures:
    def verify_wallet_signature(self, wallet_address: str, signature: str) -> bool:
        return False

    def verify_credential(self, credential: Credential) -> bool:
        return False


def test_capabilities_are_consulted_for_stored_credentials() -> None:
    repos = in_memory_repos()
    _issuer, credential = _seed(repos)
    capabilities = TrustCapabilities(signatures=_BadSignatures(), anchors=_Unanchored())
    result = asyncio.run(
        verification_service.verify_by_id(
            repos, credential.id, capabilities=capabilities, now=NOW
        )
    )
    assert result.checks.signature_valid is False
    assert result.checks.chain_anchor_valid is False
    assert result.trust_score == 60


def test_verify_by_did_error_lists_statuses() -> None:
    repos = in_memory_repos()
    _issuer, credential = _seed(repos)
    asyncio.run(repos.credentials.save(credential.revoked(NOW)))

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(
            verification_service.verify_by_did(repos, credential.subject_did, now=NOW)
        )
    assert excinfo.value.details == {
        "did": credential.subject_did,
        "totalCredentials": 1,
        "credentialStatuses": [{"status": "REVOKED", "type": "DegreeCert"}],
    }


def test_record_verification_all_checks_passed() -> None:
    repos = in_memory_repos()
    _issuer, credential = _seed(repos)
    verifier = Identity.new(wallet_address="C" * 40, did_prefix="did:solana:", role="VERIFIER")
    report = asyncio.run(
        verification_service.record_verification(
            repos,
            verifier,
            credential.id,
            checks={"a": True, "b": True},
            trust_score=100,
        )
    )
    assert report.status == "VERIFIED"
    assert report.failure_reason is None
    listed = asyncio.run(verification_service.list_verifications(repos, verifier))
    assert [r.id for r in listed] == [report.id]


def test_external_non_string_fields_are_coerced() -> None:
    result = verification_service.verify_external(
        {
            "id": 42,
            "type": {"name": "Badge"},
            "issuer": {"did": "did:web:issuer.example"},
            "holder": {"type": "Person"},
            "credentialSubject": ["not an object", {"id": "did:web:h.example"}],
            "issuanceDate": 1700000000,
            "proof": "jws-compact",
        },
        now=NOW,
    )
    view = result.credential
    assert view.id == "42"
    assert view.type == "Unknown Type"
    assert view.issuer_did == "did:web:issuer.example"
    assert view.holder_did == "did:web:h.example"
    assert view.issued_date == "1700000000"
    assert view.credential_subject == {"id": "did:web:h.example"}
    assert view.proof["verificationMethod"] == "did:web:issuer.example#key-1"


def test_external_scalar_subject_becomes_empty_claims() -> None:
    result = verification_service.verify_external({"credentialSubject": "x"}, now=NOW)
    assert result.credential.credential_subject == {}
    assert result.credential.holder_did == "did:unknown"
