"""PostgreSQL implementation of CredentialRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credservice.db.tables import CredentialRow
from credservice.models.credential import Credential, CredentialStatus

_NEWEST_FIRST = (CredentialRow.issued_at.desc(), CredentialRow.id.desc())


class PgCredentialRepo:
    """Satisfies the CredentialRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, credential_id: UUID) -> Credential | None:
        stmt = select(CredentialRow).where(CredentialRow.id == credential_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_credential(row) if row is not None else None

    async def add(self, credential: Credential) -> None:
        self._session.add(
            CredentialRow(
                id=credential.id,
                type=credential.type,
                issuer_id=credential.issuer_id,
                holder_id=credential.holder_id,
                issuer_did=credential.issuer_did,
                subject_did=credential.subject_did,
                claims=credential.claims,
                status=credential.status,
                issued_at=credential.issued_at,
                expires_at=credential.expires_at,
                revoked_at=credential.revoked_at,
                revocation_reason=credential.revocation_reason,
                proof=credential.proof,
            )
        )
        await self._session.flush()

    async def save(self, credential: Credential) -> None:
        stmt = (
            update(CredentialRow)
            .where(CredentialRow.id == credential.id)
            .values(
                status=credential.status,
                revoked_at=credential.revoked_at,
                revocation_reason=credential.revocation_reason,
                expires_at=credential.expires_at,
                claims=credential.claims,
                proof=credential.proof,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("credential not found")

    async def list_by_holder(self, holder_id: UUID) -> list[Credential]:
        stmt = (
            select(CredentialRow)
            .where(CredentialRow.holder_id == holder_id)
            .order_by(*_NEWEST_FIRST)
        )
        return await self._all(stmt)

    async def list_by_issuer(
        self, issuer_id: UUID, status: CredentialStatus | None = None
    ) -> list[Credential]:
        stmt = select(CredentialRow).where(CredentialRow.issuer_id == issuer_id)
        if status is not None:
            stmt = stmt.where(CredentialRow.status == status)
        return await self._all(stmt.order_by(*_NEWEST_FIRST))

    async def list_by_subject(self, subject_did: str) -> list[Credential]:
        stmt = (
            select(CredentialRow)
            .where(CredentialRow.subject_did == subject_did)
            .order_by(*_NEWEST_FIRST)
        )
        return await self._all(stmt)

    async def latest_active_for_subject(
        self, subject_did: str, type: str | None = None
    ) -> Credential | None:
        stmt = select(CredentialRow).where(
            CredentialRow.subject_did == subject_did,
            CredentialRow.status == "ACTIVE",
        )
        if type is not None:
            stmt = stmt.where(CredentialRow.type == type)
        stmt = stmt.order_by(*_NEWEST_FIRST).limit(1)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_credential(row) if row is not None else None

    async def _all(self, stmt) -> list[Credential]:
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_credential(r) for r in rows]


def _row_to_credential(row: CredentialRow) -> Credential:
    return Credential(
        id=row.id,
        type=row.type,
        issuer_id=row.issuer_id,
        holder_id=row.holder_id,
        issuer_did=row.issuer_did,
        subject_did=row.subject_did,
        claims=dict(row.claims or {}),
        status=row.status,  # type: ignore[arg-type]
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        revoked_at=row.revoked_at,
        revocation_reason=row.revocation_reason,
        proof=row.proof,
    )
