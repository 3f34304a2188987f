from __future__ import annotations

from typing import Protocol
from uuid import UUID

from credservice.models.credential import Credential, CredentialStatus


class CredentialRepo(Protocol):
    async def get(self, credential_id: UUID) -> Credential | None: ...
    async def add(self, credential: Credential) -> None: ...
    async def save(self, credential: Credential) -> None: ...
    async def list_by_holder(self, holder_id: UUID) -> list[Credential]: ...
    async def list_by_issuer(
        self, issuer_id: UUID, status: CredentialStatus | None = None
    ) -> list[Credential]: ...
    async def list_by_subject(self, subject_did: str) -> list[Credential]: ...
    async def latest_active_for_subject(
        self, subject_did: str, type: str | None = None
    ) -> Credential | None: ...


def newest_first(credentials: list[Credential]) -> list[Credential]:
    """Order by issued_at desc with id as a stable tiebreak."""
    return sorted(credentials, key=lambda c: (c.issued_at, str(c.id)), reverse=True)


class InMemoryCredentialRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Credential] = {}

    async def get(self, credential_id: UUID) -> Credential | None:
        return self._store.get(credential_id)

    async def add(self, credential: Credential) -> None:
        if credential.id in self._store:
            raise ValueError("credential id already exists")
        self._store[credential.id] = credential

    async def save(self, credential: Credential) -> None:
        if credential.id not in self._store:
            raise KeyError("credential not found")
        self._store[credential.id] = credential

    async def list_by_holder(self, holder_id: UUID) -> list[Credential]:
        return newest_first([c for c in self._store.values() if c.holder_id == holder_id])

    async def list_by_issuer(
        self, issuer_id: UUID, status: CredentialStatus | None = None
    ) -> list[Credential]:
        return newest_first(
            [
                c
                for c in self._store.values()
                if c.issuer_id == issuer_id and (status is None or c.status == status)
            ]
        )

    async def list_by_subject(self, subject_did: str) -> list[Credential]:
        return newest_first(
            [c for c in self._store.values() if c.subject_did == subject_did]
        )

    async def latest_active_for_subject(
        self, subject_did: str, type: str | None = None
    ) -> Credential | None:
        candidates = [
            c
            for c in self._store.values()
            if c.subject_did == subject_did
            and c.status == "ACTIVE"
            and (type is None or c.type == type)
        ]
        ordered = newest_first(candidates)
        return ordered[0] if ordered else None
