"""PostgreSQL implementation of IdentityRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from credservice.db.tables import IdentityRow
from credservice.models.identity import Identity, Role


class PgIdentityRepo:
    """Satisfies the IdentityRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, identity_id: UUID) -> Identity | None:
        stmt = select(IdentityRow).where(IdentityRow.id == identity_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_identity(row) if row is not None else None

    async def get_by_wallet(self, wallet_address: str) -> Identity | None:
        stmt = select(IdentityRow).where(IdentityRow.wallet_address == wallet_address)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_identity(row) if row is not None else None

    async def get_by_did(self, did: str) -> Identity | None:
        stmt = select(IdentityRow).where(IdentityRow.did == did)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_identity(row) if row is not None else None

    async def add(self, identity: Identity) -> None:
        self._session.add(_identity_to_row(identity))
        await self._session.flush()

    async def upsert_login(self, candidate: Identity) -> tuple[Identity, bool]:
        # Single statement: the unique index on wallet_address decides
        # between insert and touch, so concurrent logins cannot race.
        now = datetime.now(UTC)
        stmt = (
            insert(IdentityRow)
            .values(
                id=candidate.id,
                wallet_address=candidate.wallet_address,
                did=candidate.did,
                role=candidate.role,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=[IdentityRow.wallet_address],
                set_={"updated_at": now},
            )
            .returning(IdentityRow)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one()
        identity = _row_to_identity(row)
        return identity, identity.id == candidate.id

    async def list_by_role(self, role: Role) -> list[Identity]:
        stmt = select(IdentityRow).where(IdentityRow.role == role)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_identity(r) for r in rows]


def _identity_to_row(identity: Identity) -> IdentityRow:
    now = datetime.now(UTC)
    return IdentityRow(
        id=identity.id,
        wallet_address=identity.wallet_address,
        did=identity.did,
        role=identity.role,
        first_name=identity.first_name,
        last_name=identity.last_name,
        username=identity.username,
        institution_name=identity.institution_name,
        created_at=identity.created_at or now,
        updated_at=identity.updated_at or now,
    )


def _row_to_identity(row: IdentityRow) -> Identity:
    return Identity(
        id=row.id,
        wallet_address=row.wallet_address,
        did=row.did,
        role=row.role,  # type: ignore[arg-type]
        first_name=row.first_name,
        last_name=row.last_name,
        username=row.username,
        institution_name=row.institution_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
