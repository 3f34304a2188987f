"""PostgreSQL implementation of TemplateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credservice.db.tables import CredentialTemplateRow
from credservice.models.template import CredentialTemplate


class PgTemplateRepo:
    """Satisfies the TemplateRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, template_id: UUID) -> CredentialTemplate | None:
        stmt = select(CredentialTemplateRow).where(CredentialTemplateRow.id == template_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_template(row) if row is not None else None

    async def add(self, template: CredentialTemplate) -> None:
        self._session.add(
            CredentialTemplateRow(
                id=template.id,
                name=template.name,
                category=template.category,
                description=template.description,
                schema=template.schema,
                created_by_id=template.created_by_id,
                created_at=template.created_at,
                updated_at=template.updated_at,
            )
        )
        await self._session.flush()

    async def save(self, template: CredentialTemplate) -> None:
        stmt = (
            update(CredentialTemplateRow)
            .where(CredentialTemplateRow.id == template.id)
            .values(
                name=template.name,
                category=template.category,
                description=template.description,
                schema=template.schema,
                updated_at=template.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("template not found")

    async def delete(self, template_id: UUID) -> None:
        await self._session.execute(
            delete(CredentialTemplateRow).where(CredentialTemplateRow.id == template_id)
        )

    async def list_by_owner(self, owner_id: UUID) -> list[CredentialTemplate]:
        stmt = (
            select(CredentialTemplateRow)
            .where(CredentialTemplateRow.created_by_id == owner_id)
            .order_by(CredentialTemplateRow.updated_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_template(r) for r in rows]

    async def find_by_name(self, name: str) -> list[CredentialTemplate]:
        stmt = select(CredentialTemplateRow).where(CredentialTemplateRow.name == name)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_template(r) for r in rows]

    async def list_names(self) -> set[str]:
        stmt = select(CredentialTemplateRow.name).distinct()
        return set((await self._session.execute(stmt)).scalars().all())


def _row_to_template(row: CredentialTemplateRow) -> CredentialTemplate:
    return CredentialTemplate(
        id=row.id,
        name=row.name,
        category=row.category,
        created_by_id=row.created_by_id,
        schema=dict(row.schema or {}),
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
