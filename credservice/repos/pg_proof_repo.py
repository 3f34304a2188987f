"""PostgreSQL implementation of ProofRepo.

The (proof_request_id, holder_id) unique constraint on proof_responses
is the real guard against double responses; an IntegrityError on insert
is surfaced as DuplicateResponseError so the service maps it the same
way as the in-memory repo.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from credservice.db.tables import ProofRequestRow, ProofResponseRow
from credservice.models.proof import ProofRequest, ProofResponse
from credservice.repos.proof_repo import DuplicateResponseError


class PgProofRepo:
    """Satisfies the ProofRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- requests ---------------------------------------------------------

    async def add_request(self, request: ProofRequest) -> None:
        self._session.add(
            ProofRequestRow(
                id=request.id,
                title=request.title,
                description=request.description,
                verifier_id=request.verifier_id,
                requested_types=list(request.requested_types),
                status=request.status,
                expires_at=request.expires_at,
                target_holders=(
                    [str(h) for h in request.target_holders]
                    if request.target_holders is not None
                    else None
                ),
                requirements=request.requirements,
                created_at=request.created_at,
            )
        )
        await self._session.flush()

    async def get_request(self, request_id: UUID) -> ProofRequest | None:
        stmt = select(ProofRequestRow).where(ProofRequestRow.id == request_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_request(row) if row is not None else None

    async def list_requests_by_verifier(self, verifier_id: UUID) -> list[ProofRequest]:
        stmt = (
            select(ProofRequestRow)
            .where(ProofRequestRow.verifier_id == verifier_id)
            .order_by(ProofRequestRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_request(r) for r in rows]

    async def list_active_requests(self) -> list[ProofRequest]:
        stmt = (
            select(ProofRequestRow)
            .where(ProofRequestRow.status == "ACTIVE")
            .order_by(ProofRequestRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_request(r) for r in rows]

    # --- responses --------------------------------------------------------

    async def add_response(self, response: ProofResponse) -> None:
        self._session.add(
            ProofResponseRow(
                id=response.id,
                proof_request_id=response.proof_request_id,
                holder_id=response.holder_id,
                status=response.status,
                submitted_at=response.submitted_at,
                presented_credentials=[str(c) for c in response.presented_credentials],
                proof_data=response.proof_data,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            raise DuplicateResponseError(
                "holder already responded to this request"
            ) from None

    async def get_response(self, response_id: UUID) -> ProofResponse | None:
        stmt = select(ProofResponseRow).where(ProofResponseRow.id == response_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_response(row) if row is not None else None

    async def save_response(self, response: ProofResponse) -> None:
        stmt = (
            update(ProofResponseRow)
            .where(ProofResponseRow.id == response.id)
            .values(status=response.status)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("proof response not found")

    async def find_response(
        self, request_id: UUID, holder_id: UUID
    ) -> ProofResponse | None:
        stmt = select(ProofResponseRow).where(
            ProofResponseRow.proof_request_id == request_id,
            ProofResponseRow.holder_id == holder_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_response(row) if row is not None else None

    async def list_responses_for_request(self, request_id: UUID) -> list[ProofResponse]:
        stmt = (
            select(ProofResponseRow)
            .where(ProofResponseRow.proof_request_id == request_id)
            .order_by(ProofResponseRow.submitted_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_response(r) for r in rows]

    async def list_responses_by_holder(self, holder_id: UUID) -> list[ProofResponse]:
        stmt = (
            select(ProofResponseRow)
            .where(ProofResponseRow.holder_id == holder_id)
            .order_by(ProofResponseRow.submitted_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_response(r) for r in rows]


def _row_to_request(row: ProofRequestRow) -> ProofRequest:
    return ProofRequest(
        id=row.id,
        title=row.title,
        verifier_id=row.verifier_id,
        requested_types=tuple(row.requested_types or ()),
        description=row.description,
        status=row.status,  # type: ignore[arg-type]
        expires_at=row.expires_at,
        target_holders=(
            tuple(UUID(h) for h in row.target_holders)
            if row.target_holders is not None
            else None
        ),
        requirements=row.requirements,
        created_at=row.created_at,
    )


def _row_to_response(row: ProofResponseRow) -> ProofResponse:
    return ProofResponse(
        id=row.id,
        proof_request_id=row.proof_request_id,
        holder_id=row.holder_id,
        status=row.status,  # type: ignore[arg-type]
        presented_credentials=tuple(UUID(c) for c in row.presented_credentials or ()),
        proof_data=row.proof_data,
        submitted_at=row.submitted_at,
    )
