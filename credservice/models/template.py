from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CredentialTemplate:
    """Issuer-owned claim schema; its ``name`` doubles as a credential type."""

    id: UUID
    name: str
    category: str
    created_by_id: UUID
    schema: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        name: str,
        category: str,
        created_by_id: UUID,
        schema: dict[str, Any],
        description: str | None = None,
    ) -> CredentialTemplate:
        now = datetime.now(UTC)
        return CredentialTemplate(
            id=uuid4(),
            name=name,
            category=category,
            created_by_id=created_by_id,
            schema=schema,
            description=description,
            created_at=now,
            updated_at=now,
        )

    @property
    def required_fields(self) -> list[str]:
        return list(self.schema.get("required", []))
