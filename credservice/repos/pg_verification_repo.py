"""PostgreSQL implementation of VerificationRepo."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from credservice.db.tables import VerificationRow
from credservice.models.verification import Verification


class PgVerificationRepo:
    """Satisfies the VerificationRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, verification: Verification) -> None:
        self._session.add(
            VerificationRow(
                id=verification.id,
                credential_id=verification.credential_id,
                verifier_id=verification.verifier_id,
                status=verification.status,
                trust_score=verification.trust_score,
                verified_at=verification.verified_at,
                failure_reason=verification.failure_reason,
            )
        )
        await self._session.flush()

    async def list_by_verifier(self, verifier_id: UUID) -> list[Verification]:
        stmt = (
            select(VerificationRow)
            .where(VerificationRow.verifier_id == verifier_id)
            .order_by(VerificationRow.verified_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Verification(
                id=r.id,
                credential_id=r.credential_id,
                verifier_id=r.verifier_id,
                status=r.status,  # type: ignore[arg-type]
                trust_score=r.trust_score,
                verified_at=r.verified_at,
                failure_reason=r.failure_reason,
            )
            for r in rows
        ]

    async def stats_for(
        self, credential_ids: Iterable[UUID]
    ) -> dict[UUID, tuple[int, datetime | None]]:
        ids = list(credential_ids)
        if not ids:
            return {}
        stmt = (
            select(
                VerificationRow.credential_id,
                func.count(VerificationRow.id),
                func.max(VerificationRow.verified_at),
            )
            .where(VerificationRow.credential_id.in_(ids))
            .group_by(VerificationRow.credential_id)
        )
        rows = (await self._session.execute(stmt)).all()
        return {cred_id: (count, latest) for cred_id, count, latest in rows}
