"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- Request timing logged
"""

from __future__ import annotations

import logging
import uuid

from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/credentials")  # No auth token → 401
    assert resp.headers.get("x-request-id") is not None
    assert resp.status_code == 401


def test_log_records_carry_request_id(client: TestClient, caplog) -> None:
    """Log lines emitted while serving a request carry its ID."""
    with caplog.at_level(logging.INFO):
        client.get("/health", headers={"X-Request-ID": "trace-me-42"})
    summary = [r for r in caplog.records if r.name.endswith("request_context")]
    assert summary
    assert summary[-1].request_id == "trace-me-42"
