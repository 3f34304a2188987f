from __future__ import annotations

from typing import Protocol
from uuid import UUID

from credservice.models.template import CredentialTemplate


class TemplateRepo(Protocol):
    async def get(self, template_id: UUID) -> CredentialTemplate | None: ...
    async def add(self, template: CredentialTemplate) -> None: ...
    async def save(self, template: CredentialTemplate) -> None: ...
    async def delete(self, template_id: UUID) -> None: ...
    async def list_by_owner(self, owner_id: UUID) -> list[CredentialTemplate]: ...
    async def find_by_name(self, name: str) -> list[CredentialTemplate]: ...
    async def list_names(self) -> set[str]: ...


class InMemoryTemplateRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, CredentialTemplate] = {}

    async def get(self, template_id: UUID) -> CredentialTemplate | None:
        return self._store.get(template_id)

    async def add(self, template: CredentialTemplate) -> None:
        self._store[template.id] = template

    async def save(self, template: CredentialTemplate) -> None:
        if template.id not in self._store:
            raise KeyError("template not found")
        self._store[template.id] = template

    async def delete(self, template_id: UUID) -> None:
        self._store.pop(template_id, None)

    async def list_by_owner(self, owner_id: UUID) -> list[CredentialTemplate]:
        owned = [t for t in self._store.values() if t.created_by_id == owner_id]
        return sorted(owned, key=lambda t: t.updated_at, reverse=True)

    async def find_by_name(self, name: str) -> list[CredentialTemplate]:
        return [t for t in self._store.values() if t.name == name]

    async def list_names(self) -> set[str]:
        return {t.name for t in self._store.values()}
