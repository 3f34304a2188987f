from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

Role = Literal["HOLDER", "ISSUER", "VERIFIER"]
ROLES: tuple[Role, ...] = ("HOLDER", "ISSUER", "VERIFIER")


@dataclass(frozen=True, slots=True)
class Identity:
    """A wallet-anchored participant.  Role is fixed at creation."""

    id: UUID
    wallet_address: str
    did: str
    role: Role
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    institution_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(*, wallet_address: str, did_prefix: str, role: Role = "HOLDER") -> Identity:
        now = datetime.now(UTC)
        return Identity(
            id=uuid4(),
            wallet_address=wallet_address,
            did=f"{did_prefix}{wallet_address}",
            role=role,
            created_at=now,
            updated_at=now,
        )

    def short_wallet(self) -> str:
        return f"{self.wallet_address[:8]}..."

    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        if self.institution_name:
            return self.institution_name
        if self.username:
            return self.username
        return self.short_wallet()
