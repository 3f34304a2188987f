"""Assert that signatures, tokens and full wallet addresses never appear in logs.

These tests exercise endpoints that handle sensitive data and verify
the log records contain no leaked secrets.
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from credservice.models.identity import Identity
from tests.conftest import make_wallet, mint_token

SIGNATURE = "sup3r-s3cret-wallet-signature-value"


def _all_log_text(caplog: pytest.LogCaptureFixture) -> str:
    return "\n".join(r.getMessage() for r in caplog.records)


def test_sign_in_does_not_log_signature_or_full_wallet(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    wallet = make_wallet()
    with caplog.at_level(logging.DEBUG):
        resp = client.post("/auth", json={"walletAddress": wallet, "signature": SIGNATURE})
    assert resp.status_code == 200

    text = _all_log_text(caplog)
    assert SIGNATURE not in text
    assert wallet not in text
    assert f"{wallet[:4]}...{wallet[-4:]}" in text


def test_issued_token_is_not_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.DEBUG):
        resp = client.post(
            "/auth", json={"walletAddress": make_wallet(), "signature": SIGNATURE}
        )
    token = resp.json()["accessToken"]
    assert token not in _all_log_text(caplog)


def test_rejected_token_is_not_logged(
    client: TestClient, holder: Identity, caplog: pytest.LogCaptureFixture
) -> None:
    token = mint_token(holder)
    tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")
    with caplog.at_level(logging.DEBUG):
        resp = client.get("/credentials", headers={"Authorization": f"Bearer {tampered}"})
    assert resp.status_code == 401
    assert tampered not in _all_log_text(caplog)


def test_malformed_wallet_is_masked_in_warning(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    bad_wallet = "0O" * 20
    with caplog.at_level(logging.DEBUG):
        client.post("/auth", json={"walletAddress": bad_wallet, "signature": SIGNATURE})
    assert bad_wallet not in _all_log_text(caplog)
