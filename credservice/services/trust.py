"""Pluggable cryptographic and trust capabilities.

Wallet signature checking, issuer trust lookup and on-chain anchor
validation are not implemented by this service.  Each is a Protocol
with an accept-all placeholder so the checks that depend on them pass
by policy until a real backend is wired in at the composition root
(``credservice.api.dependencies``).
"""

from __future__ import annotations

from typing import Protocol

from credservice.models.credential import Credential


class SignatureVerifier(Protocol):
    def verify_wallet_signature(self, wallet_address: str, signature: str) -> bool: ...
    def verify_credential(self, credential: Credential) -> bool: ...


class TrustRegistry(Protocol):
    def is_trusted_issuer(self, issuer_did: str | None) -> bool: ...


class AnchorVerifier(Protocol):
    def is_anchored(self, credential: Credential) -> bool: ...


class AcceptAllSignatureVerifier:
    def verify_wallet_signature(self, wallet_address: str, signature: str) -> bool:
        return True

    def verify_credential(self, credential: Credential) -> bool:
        return True


class AcceptAllTrustRegistry:
    def is_trusted_issuer(self, issuer_did: str | None) -> bool:
        return True


class AcceptAllAnchorVerifier:
    def is_anchored(self, credential: Credential) -> bool:
        return True
