from __future__ import annotations

import asyncio

import pytest

from credservice.core.errors import AuthenticationError, ValidationError
from credservice.repos.identity_repo import InMemoryIdentityRepo
from credservice.services.auth_service import authenticate, is_valid_wallet_address
from credservice.services.trust import AcceptAllSignatureVerifier

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


class _Rejecting(AcceptAllSignatureVerifier):
    def verify_wallet_signature(self, wallet_address: str, signature: str) -> bool:
        return False


@pytest.mark.parametrize(
    "address,ok",
    [
        (WALLET, True),
        ("1" * 32, True),
        ("1" * 31, False),
        ("1" * 45, False),
        ("0" * 40, False),
        ("l" * 40, False),
    ],
)
def test_wallet_address_format(address: str, ok: bool) -> None:
    assert is_valid_wallet_address(address) is ok


def test_repeat_authentication_creates_once_and_keeps_role() -> None:
    repo = InMemoryIdentityRepo()
    verifier = AcceptAllSignatureVerifier()

    async def scenario():
        first, created_first = await authenticate(
            repo, verifier, WALLET, "sig-0123456789", "ISSUER", did_prefix="did:solana:"
        )
        second, created_second = await authenticate(
            repo, verifier, WALLET, "sig-0123456789", "VERIFIER", did_prefix="did:solana:"
        )
        return first, created_first, second, created_second

    first, created_first, second, created_second = asyncio.run(scenario())
    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert second.role == "ISSUER"
    assert first.did == f"did:solana:{WALLET}"
    assert len(asyncio.run(repo.list_by_role("ISSUER"))) == 1


def test_bad_signature_raises_authentication_error() -> None:
    repo = InMemoryIdentityRepo()
    with pytest.raises(AuthenticationError):
        asyncio.run(
            authenticate(repo, _Rejecting(), WALLET, "sig", did_prefix="did:solana:")
        )
    assert asyncio.run(repo.get_by_wallet(WALLET)) is None


def test_malformed_address_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        asyncio.run(
            authenticate(
                InMemoryIdentityRepo(),
                AcceptAllSignatureVerifier(),
                "not-a-wallet",
                "sig",
                did_prefix="did:solana:",
            )
        )
