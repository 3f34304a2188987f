"""End-to-end: issue a degree, request proof of it, present it, accept it.

Every participant signs in through POST /auth, so this also checks that
tokens from the real sign-in flow drive the whole protocol.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import make_wallet


def _sign_in(client: TestClient, role: str) -> tuple[dict, dict[str, str]]:
    resp = client.post(
        "/auth",
        json={"walletAddress": make_wallet(), "signature": "signed-challenge", "role": role},
    )
    assert resp.status_code == 200
    body = resp.json()
    return body["user"], {"Authorization": f"Bearer {body['accessToken']}"}


def test_degree_certificate_round_trip(client: TestClient) -> None:
    _issuer, as_issuer = _sign_in(client, "ISSUER")
    holder, as_holder = _sign_in(client, "HOLDER")
    _verifier, as_verifier = _sign_in(client, "VERIFIER")

    # Issuer issues the degree to the holder's DID.
    cred = client.post(
        "/credentials/issue",
        json={"subjectDid": holder["did"], "type": "DegreeCert", "claims": {"degree": "BSc"}},
        headers=as_issuer,
    ).json()
    assert cred["holderId"] == holder["id"]

    # Verifier broadcasts a request for DegreeCert.
    request = client.post(
        "/proof-requests",
        json={"title": "Graduate hiring", "requestedTypes": ["DegreeCert"]},
        headers=as_verifier,
    ).json()
    assert request["targetHolders"] is None

    # Holder sees it and presents the credential.
    available = client.get("/proof-requests/available", headers=as_holder).json()
    assert [r["id"] for r in available] == [request["id"]]

    response = client.post(
        "/proof-responses",
        json={"proofRequestId": request["id"], "presentedCredentials": [cred["id"]]},
        headers=as_holder,
    )
    assert response.status_code == 201
    response_id = response.json()["id"]

    # Verifier checks the credential, then accepts the response.
    verdict = client.post(
        "/credentials/verify", json={"holderDid": holder["did"]}, headers=as_verifier
    ).json()
    assert verdict["status"] == "verified"
    assert verdict["verification"]["notExpired"] is True
    assert verdict["verification"]["notRevoked"] is True
    assert verdict["credentialId"] == cred["id"]

    settled = client.patch(
        "/proof-responses",
        json={"id": response_id, "status": "ACCEPTED"},
        headers=as_verifier,
    )
    assert settled.status_code == 200

    fetched = client.get(f"/proof-requests/{request['id']}", headers=as_verifier).json()
    assert len(fetched["responses"]) == 1
    assert fetched["responses"][0]["status"] == "ACCEPTED"
    assert fetched["responses"][0]["presentedCredentials"] == [cred["id"]]
    # The only holder has answered.
    assert fetched["status"] == "COMPLETED"

    # The holder no longer sees the request as open.
    assert client.get("/proof-requests/available", headers=as_holder).json() == []

    # Issuer revokes; the only credential for the DID is no longer active.
    client.post(f"/credentials/{cred['id']}/revoke", headers=as_issuer)
    gone = client.post(
        "/credentials/verify", json={"holderDid": holder["did"]}, headers=as_verifier
    )
    assert gone.status_code == 404
