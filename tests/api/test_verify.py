"""POST /credentials/verify and the saved verification reports."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from credservice.api import dependencies
from credservice.main import app
from credservice.models.credential import Credential
from credservice.models.identity import Identity
from credservice.repos.bundle import Repos
from credservice.services.verification_service import TrustCapabilities
from tests.conftest import auth

ALL_PASS = {
    "signatureValid": True,
    "issuerTrusted": True,
    "notExpired": True,
    "notRevoked": True,
    "chainAnchorValid": True,
}


def _issue(client: TestClient, issuer: Identity, subject_did: str, type: str = "DegreeCert"):
    resp = client.post(
        "/credentials/issue",
        json={"subjectDid": subject_did, "type": type, "claims": {"gpa": 3.9}},
        headers=auth(issuer),
    )
    assert resp.status_code == 201
    return resp.json()


def _verify(client: TestClient, caller: Identity, **body):
    return client.post("/credentials/verify", json=body, headers=auth(caller))


# ---- request shape ----


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"holderDid": "did:solana:abc", "credentialId": "00000000-0000-0000-0000-000000000000"},
        {"credentialJson": {}, "holderDid": "did:solana:abc"},
    ],
    ids=["none", "did+id", "json+did"],
)
def test_exactly_one_mode_is_required(
    client: TestClient, verifier: Identity, body: dict
) -> None:
    resp = _verify(client, verifier, **body)
    assert resp.status_code == 400


def test_verify_requires_authentication(client: TestClient) -> None:
    resp = client.post("/credentials/verify", json={"holderDid": "did:solana:abc"})
    assert resp.status_code == 401


# ---- by holder DID ----


def test_verify_by_did_picks_newest_active(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    _issue(client, issuer, holder.did)
    newest = _issue(client, issuer, holder.did)

    resp = _verify(client, verifier, holderDid=holder.did)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "verified"
    assert body["trustScore"] == 100
    assert body["verification"] == ALL_PASS
    assert body["credentialId"] == newest["id"]
    assert body["credential"]["holder"] == "Alice Smith"
    assert body["credential"]["issuer"] == "State University"
    assert body["credential"]["holderDID"] == holder.did
    assert body["credential"]["issuerDID"] == issuer.did
    assert body["credential"]["proof"]["verificationMethod"] == f"{issuer.did}#key-1"


def test_verify_by_did_filters_on_type(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    degree = _issue(client, issuer, holder.did, type="DegreeCert")
    _issue(client, issuer, holder.did, type="Transcript")

    body = _verify(
        client, verifier, holderDid=holder.did, credentialType="DegreeCert"
    ).json()
    assert body["credentialId"] == degree["id"]


def test_verify_by_did_skips_revoked(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    older = _issue(client, issuer, holder.did)
    newer = _issue(client, issuer, holder.did)
    client.post(f"/credentials/{newer['id']}/revoke", headers=auth(issuer))

    body = _verify(client, verifier, holderDid=holder.did).json()
    assert body["credentialId"] == older["id"]


def test_verify_by_did_with_only_revoked_is_404_with_details(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    client.post(f"/credentials/{cred['id']}/revoke", headers=auth(issuer))

    resp = _verify(client, verifier, holderDid=holder.did)
    assert resp.status_code == 404
    error = resp.json()["error"]
    assert "Found 1 total credentials" in error["message"]
    assert error["details"]["did"] == holder.did
    assert error["details"]["totalCredentials"] == 1
    assert error["details"]["credentialStatuses"] == [
        {"status": "REVOKED", "type": "DegreeCert"}
    ]


def test_verify_by_unknown_did_is_404(client: TestClient, verifier: Identity) -> None:
    resp = _verify(client, verifier, holderDid="did:solana:nobody")
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "No credentials found for the provided DID."


# ---- by credential id ----


def test_verify_revoked_by_id_scores_80(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    client.post(f"/credentials/{cred['id']}/revoke", headers=auth(issuer))

    body = _verify(client, verifier, credentialId=cred["id"]).json()
    assert body["status"] == "failed"
    assert body["trustScore"] == 80
    assert body["verification"]["notRevoked"] is False


def test_verify_expired_by_id_fails_expiry_check(
    client: TestClient, repos: Repos, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    stale = Credential.new(
        type="DegreeCert",
        issuer_id=issuer.id,
        holder_id=holder.id,
        issuer_did=issuer.did,
        subject_did=holder.did,
        claims={},
        expires_at=datetime.now(UTC) - timedelta(days=1),
    )
    asyncio.run(repos.credentials.add(stale))

    body = _verify(client, verifier, credentialId=str(stale.id)).json()
    assert body["verification"]["notExpired"] is False
    assert body["trustScore"] == 80


def test_verify_unknown_id_is_404(client: TestClient, verifier: Identity) -> None:
    resp = _verify(client, verifier, credentialId="00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


class _DistrustingRegistry:
    def is_trusted_issuer(self, issuer_did: str | None) -> bool:
        return False


def test_injected_trust_registry_drives_issuer_check(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    app.dependency_overrides[dependencies.get_trust_capabilities] = lambda: (
        TrustCapabilities(registry=_DistrustingRegistry())
    )
    try:
        body = _verify(client, verifier, credentialId=cred["id"]).json()
    finally:
        app.dependency_overrides.clear()

    assert body["verification"]["issuerTrusted"] is False
    assert body["trustScore"] == 80
    assert body["status"] == "failed"


# ---- external documents ----


def test_external_document_passes_by_policy(client: TestClient, holder: Identity) -> None:
    document = {
        "id": "urn:uuid:1234",
        "type": ["VerifiableCredential", "AlumniCard"],
        "issuer": {"id": "did:web:alma.example", "name": "Alma Mater"},
        "credentialSubject": {"id": "did:web:bob.example", "name": "Bob"},
    }
    body = _verify(client, holder, credentialJson=document).json()
    assert body["status"] == "verified"
    assert body["trustScore"] == 100
    assert body["credentialId"] is None
    assert body["credential"]["type"] == "AlumniCard"
    assert body["credential"]["issuer"] == "Alma Mater"
    assert body["credential"]["holder"] == "Bob"
    assert body["credential"]["holderDID"] == "did:web:bob.example"


def test_external_document_as_string_with_past_expiry(
    client: TestClient, holder: Identity
) -> None:
    document = json.dumps({"type": "Badge", "expirationDate": "2001-01-01T00:00:00Z"})
    body = _verify(client, holder, credentialJson=document).json()
    assert body["status"] == "failed"
    assert body["trustScore"] == 80
    assert body["verification"]["notExpired"] is False


def test_external_document_with_subject_list_and_holder_object(
    client: TestClient, holder: Identity
) -> None:
    document = {
        "type": ["VerifiableCredential", "DegreeCert"],
        "issuer": "did:web:uni.example",
        "holder": {"id": "did:example:a", "type": "Person"},
        "credentialSubject": [
            {"id": "did:example:a", "name": "Ada", "degree": "BSc"},
            {"id": "did:example:b"},
        ],
    }
    resp = _verify(client, holder, credentialJson=document)
    assert resp.status_code == 200
    view = resp.json()["credential"]
    assert view["holderDID"] == "did:example:a"
    assert view["holder"] == "Ada"
    assert view["credentialSubject"]["degree"] == "BSc"
    assert view["type"] == "DegreeCert"


def test_external_document_that_is_not_json_is_400(
    client: TestClient, holder: Identity
) -> None:
    resp = _verify(client, holder, credentialJson="{not json")
    assert resp.status_code == 400


# ---- saved reports ----


def test_save_report_after_passing_verification(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    result = _verify(client, verifier, credentialId=cred["id"]).json()

    resp = client.post(
        "/verifications",
        json={
            "credentialId": result["credentialId"],
            "verification": result["verification"],
            "trustScore": result["trustScore"],
            "verifiedAt": result["verifiedAt"],
        },
        headers=auth(verifier),
    )
    assert resp.status_code == 201
    report = resp.json()
    assert report["status"] == "VERIFIED"
    assert report["failureReason"] is None
    assert report["verifierId"] == str(verifier.id)

    history = client.get("/verifications", headers=auth(verifier)).json()
    assert [r["id"] for r in history] == [report["id"]]


def test_save_report_for_failed_checks_records_reason(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    checks = dict(ALL_PASS, notRevoked=False)
    report = client.post(
        "/verifications",
        json={"credentialId": cred["id"], "verification": checks, "trustScore": 80},
        headers=auth(verifier),
    ).json()

    assert report["status"] == "FAILED"
    reason = json.loads(report["failureReason"])
    assert reason["trustScore"] == 80
    assert reason["verification"]["notRevoked"] is False


def test_save_report_without_credential_id_is_400(
    client: TestClient, verifier: Identity
) -> None:
    resp = client.post(
        "/verifications",
        json={"verification": ALL_PASS, "trustScore": 100},
        headers=auth(verifier),
    )
    assert resp.status_code == 400


def test_save_report_for_unknown_credential_is_404(
    client: TestClient, verifier: Identity
) -> None:
    resp = client.post(
        "/verifications",
        json={"credentialId": "00000000-0000-0000-0000-000000000000", "trustScore": 50},
        headers=auth(verifier),
    )
    assert resp.status_code == 404


def test_trust_score_out_of_range_is_400(
    client: TestClient, issuer: Identity, holder: Identity, verifier: Identity
) -> None:
    cred = _issue(client, issuer, holder.did)
    resp = client.post(
        "/verifications",
        json={"credentialId": cred["id"], "trustScore": 101},
        headers=auth(verifier),
    )
    assert resp.status_code == 400


def test_reports_are_verifier_only(client: TestClient, holder: Identity) -> None:
    assert client.get("/verifications", headers=auth(holder)).status_code == 403
