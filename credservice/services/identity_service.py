"""Identity directory and DID document resolution."""

from __future__ import annotations

import logging
from typing import Any

from credservice.core.errors import NotFoundError, ValidationError
from credservice.models.identity import Identity
from credservice.repos.bundle import Repos

logger = logging.getLogger(__name__)

DID_CONTEXT = "https://www.w3.org/ns/did/v1"
KEY_TYPE = "Ed25519VerificationKey2018"


async def list_holders(repos: Repos) -> list[Identity]:
    """Every HOLDER, ordered by first name (unnamed last), then wallet."""
    holders = await repos.identities.list_by_role("HOLDER")
    return sorted(
        holders,
        key=lambda h: (h.first_name is None, h.first_name or "", h.wallet_address),
    )


async def resolve_did(repos: Repos, did: str, *, did_prefix: str) -> dict[str, Any]:
    """Build the W3C DID document for a wallet-derived DID."""
    if not did.startswith(did_prefix):
        raise ValidationError(
            "Invalid DID format", details={"expected": f"{did_prefix}<walletAddress>"}
        )
    public_key = did[len(did_prefix):]
    if not public_key or ":" in public_key:
        raise ValidationError("Invalid DID public key")

    identity = await repos.identities.get_by_wallet(public_key)
    if identity is None:
        raise NotFoundError("DID not found")

    key_id = f"{did}#key-1"
    document: dict[str, Any] = {
        "@context": DID_CONTEXT,
        "id": did,
        "controller": did,
        "verificationMethod": [
            {
                "id": key_id,
                "type": KEY_TYPE,
                "controller": did,
                "publicKeyBase58": public_key,
            }
        ],
        "authentication": [key_id],
        "assertionMethod": [key_id],
    }
    method = did.split(":")[1]
    if method == "solana":
        document["service"] = [
            {
                "id": f"{did}#solana-service",
                "type": "SolanaService",
                "serviceEndpoint": f"https://explorer.solana.com/address/{public_key}",
            }
        ]
    return document
