from __future__ import annotations

import logging
import re

from credservice.core.errors import AuthenticationError, ValidationError
from credservice.core.logging import mask_wallet
from credservice.core.metrics import AUTH_ATTEMPTS
from credservice.models.identity import Identity, Role
from credservice.repos.identity_repo import IdentityRepo
from credservice.services.trust import SignatureVerifier

logger = logging.getLogger(__name__)

# Base58 alphabet (no 0, O, I, l), 32-44 chars: an ed25519 public key.
_WALLET_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_wallet_address(address: str) -> bool:
    return bool(_WALLET_RE.match(address))


async def authenticate(
    repo: IdentityRepo,
    verifier: SignatureVerifier,
    wallet_address: str,
    signature: str,
    requested_role: Role | None = None,
    *,
    did_prefix: str,
) -> tuple[Identity, bool]:
    """Check the wallet signature and upsert the identity.

    Returns (identity, created).  An existing identity keeps its role
    even if a different one is requested.
    """
    masked = mask_wallet(wallet_address)
    logger.info("Authentication attempt  wallet=%s", masked)

    if not is_valid_wallet_address(wallet_address):
        AUTH_ATTEMPTS.labels(result="invalid_address").inc()
        logger.warning("Rejected malformed wallet address  wallet=%s", masked)
        raise ValidationError("Invalid wallet address format")

    if not verifier.verify_wallet_signature(wallet_address, signature):
        AUTH_ATTEMPTS.labels(result="bad_signature").inc()
        logger.warning("Signature verification failed  wallet=%s", masked)
        raise AuthenticationError("Signature verification failed")

    candidate = Identity.new(
        wallet_address=wallet_address,
        did_prefix=did_prefix,
        role=requested_role or "HOLDER",
    )
    identity, created = await repo.upsert_login(candidate)

    if not created and requested_role is not None and requested_role != identity.role:
        logger.info(
            "Ignoring requested role=%s for existing identity=%s role=%s",
            requested_role,
            identity.id,
            identity.role,
        )

    AUTH_ATTEMPTS.labels(result="created" if created else "existing").inc()
    logger.info(
        "Authenticated  identity_id=%s wallet=%s role=%s created=%s",
        identity.id,
        masked,
        identity.role,
        created,
    )
    return identity, created
