from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from credservice.models.identity import Identity, Role


class IdentityRepo(Protocol):
    async def get_by_id(self, identity_id: UUID) -> Identity | None: ...
    async def get_by_wallet(self, wallet_address: str) -> Identity | None: ...
    async def get_by_did(self, did: str) -> Identity | None: ...
    async def add(self, identity: Identity) -> None: ...
    async def upsert_login(self, candidate: Identity) -> tuple[Identity, bool]: ...
    async def list_by_role(self, role: Role) -> list[Identity]: ...


class InMemoryIdentityRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Identity] = {}
        self._by_wallet: dict[str, Identity] = {}

    async def get_by_id(self, identity_id: UUID) -> Identity | None:
        return self._by_id.get(identity_id)

    async def get_by_wallet(self, wallet_address: str) -> Identity | None:
        return self._by_wallet.get(wallet_address)

    async def get_by_did(self, did: str) -> Identity | None:
        return next((i for i in self._by_id.values() if i.did == did), None)

    async def add(self, identity: Identity) -> None:
        if identity.wallet_address in self._by_wallet:
            raise ValueError("wallet address already registered")
        self._by_wallet[identity.wallet_address] = identity
        self._by_id[identity.id] = identity

    async def upsert_login(self, candidate: Identity) -> tuple[Identity, bool]:
        """Insert ``candidate`` or touch the existing row for its wallet.

        Returns (stored identity, created).  No await between the lookup
        and the write, so concurrent logins for one wallet cannot both
        insert.
        """
        existing = self._by_wallet.get(candidate.wallet_address)
        if existing is None:
            self._by_wallet[candidate.wallet_address] = candidate
            self._by_id[candidate.id] = candidate
            return candidate, True

        touched = replace(existing, updated_at=datetime.now(UTC))
        self._by_wallet[touched.wallet_address] = touched
        self._by_id[touched.id] = touched
        return touched, False

    async def list_by_role(self, role: Role) -> list[Identity]:
        return [i for i in self._by_id.values() if i.role == role]
