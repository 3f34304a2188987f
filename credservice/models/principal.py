from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from credservice.models.identity import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated access token.

    Carried through the request via FastAPI's dependency system, so
    endpoints receive this instead of re-reading the token.
    """

    identity_id: UUID
    role: Role
    did: str

    def has_role(self, role: Role) -> bool:
        return self.role == role

    def has_any_role(self, roles: set[str]) -> bool:
        return self.role in roles
