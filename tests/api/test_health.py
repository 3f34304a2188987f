from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from credservice.api import health


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # In tests neither backing service is configured.
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_health_needs_no_authentication(client: TestClient) -> None:
    resp = client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200


def test_unreachable_database_degrades_health_and_readiness(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _down() -> bool:
        raise ConnectionRefusedError("db down")

    monkeypatch.setattr(health, "engine", object())
    monkeypatch.setattr(health, "ping_database", _down)

    data = client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "degraded"
    assert client.get("/ready").status_code == 503
