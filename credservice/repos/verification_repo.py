from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from credservice.models.verification import Verification


class VerificationRepo(Protocol):
    async def add(self, verification: Verification) -> None: ...
    async def list_by_verifier(self, verifier_id: UUID) -> list[Verification]: ...
    async def stats_for(
        self, credential_ids: Iterable[UUID]
    ) -> dict[UUID, tuple[int, datetime | None]]: ...


class InMemoryVerificationRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Verification] = {}

    async def add(self, verification: Verification) -> None:
        self._store[verification.id] = verification

    async def list_by_verifier(self, verifier_id: UUID) -> list[Verification]:
        mine = [v for v in self._store.values() if v.verifier_id == verifier_id]
        return sorted(mine, key=lambda v: v.verified_at, reverse=True)

    async def stats_for(
        self, credential_ids: Iterable[UUID]
    ) -> dict[UUID, tuple[int, datetime | None]]:
        """Map credential id -> (verification count, latest verified_at)."""
        wanted = set(credential_ids)
        stats: dict[UUID, tuple[int, datetime | None]] = {}
        for v in self._store.values():
            if v.credential_id not in wanted:
                continue
            count, latest = stats.get(v.credential_id, (0, None))
            if latest is None or v.verified_at > latest:
                latest = v.verified_at
            stats[v.credential_id] = (count + 1, latest)
        return stats
