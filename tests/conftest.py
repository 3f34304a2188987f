from __future__ import annotations

import asyncio
import random
import sys
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from credservice.api import ratelimit
from credservice.main import app
from credservice.models.identity import Identity, Role
from credservice.repos import bundle
from credservice.repos.bundle import Repos
from credservice.services import token_service
from credservice.services.rate_limiter import InMemoryRateLimiter

# Ensure repo root is on sys.path so `import credservice` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DID_PREFIX = "did:solana:"
_BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


@pytest.fixture(autouse=True)
def repos() -> Repos:
    """Fresh in-memory store for every test."""
    return bundle.reset_memory_repos()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """New limiter per test so sign-in attempts don't bleed."""
    ratelimit.rate_limiter = InMemoryRateLimiter()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def make_wallet() -> str:
    """A random 44-character base58 string shaped like a wallet address."""
    return "".join(random.choice(_BASE58) for _ in range(44))


def seed_identity(repos: Repos, role: Role = "HOLDER", **names: str) -> Identity:
    """Create and persist an identity in the in-memory store."""
    identity = Identity.new(wallet_address=make_wallet(), did_prefix=DID_PREFIX, role=role)
    if names:
        identity = replace(identity, **names)
    asyncio.run(repos.identities.add(identity))
    return identity


def mint_token(identity: Identity) -> str:
    """Create a valid ES256 access token for ``identity``."""
    return token_service.create_access_token(
        sub=str(identity.id), role=identity.role, did=identity.did
    )


def auth(identity: Identity | None) -> dict[str, str]:
    if identity is None:
        return {}
    return {"Authorization": f"Bearer {mint_token(identity)}"}


@pytest.fixture
def holder(repos: Repos) -> Identity:
    return seed_identity(repos, "HOLDER", first_name="Alice", last_name="Smith")


@pytest.fixture
def issuer(repos: Repos) -> Identity:
    return seed_identity(repos, "ISSUER", institution_name="State University")


@pytest.fixture
def verifier(repos: Repos) -> Identity:
    return seed_identity(repos, "VERIFIER", institution_name="Acme Hiring")
