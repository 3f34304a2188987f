from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from credservice.models.identity import Identity

RequestStatus = Literal["ACTIVE", "COMPLETED", "EXPIRED"]
ResponseStatus = Literal["SUBMITTED", "ACCEPTED", "REJECTED"]

TERMINAL_RESPONSE_STATUSES: frozenset[str] = frozenset({"ACCEPTED", "REJECTED"})


@dataclass(frozen=True, slots=True)
class ProofRequest:
    """A verifier's solicitation for credentials of the requested types.

    ``target_holders`` None means the request is broadcast to every
    holder.  Stored status stays ACTIVE; COMPLETED and EXPIRED are
    derived when read.
    """

    id: UUID
    title: str
    verifier_id: UUID
    requested_types: tuple[str, ...]
    description: str | None = None
    status: RequestStatus = "ACTIVE"
    expires_at: datetime | None = None
    target_holders: tuple[UUID, ...] | None = None
    requirements: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        title: str,
        verifier_id: UUID,
        requested_types: tuple[str, ...],
        description: str | None = None,
        expires_at: datetime | None = None,
        target_holders: tuple[UUID, ...] | None = None,
        requirements: dict[str, Any] | None = None,
    ) -> ProofRequest:
        return ProofRequest(
            id=uuid4(),
            title=title,
            verifier_id=verifier_id,
            requested_types=requested_types,
            description=description,
            expires_at=expires_at,
            target_holders=target_holders,
            requirements=requirements,
        )

    @property
    def is_broadcast(self) -> bool:
        return self.target_holders is None

    def targets(self, holder_id: UUID) -> bool:
        return self.target_holders is None or holder_id in self.target_holders


@dataclass(frozen=True, slots=True)
class ProofResponse:
    """A holder's reply.  At most one per (proof_request_id, holder_id)."""

    id: UUID
    proof_request_id: UUID
    holder_id: UUID
    status: ResponseStatus = "SUBMITTED"
    presented_credentials: tuple[UUID, ...] = ()
    proof_data: Any = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        proof_request_id: UUID,
        holder_id: UUID,
        status: ResponseStatus,
        presented_credentials: tuple[UUID, ...],
        proof_data: Any = None,
    ) -> ProofResponse:
        return ProofResponse(
            id=uuid4(),
            proof_request_id=proof_request_id,
            holder_id=holder_id,
            status=status,
            presented_credentials=presented_credentials,
            proof_data=proof_data,
        )


@dataclass(frozen=True, slots=True)
class ProofResponseView:
    """A response joined with the holder who sent it and the request it answers."""

    response: ProofResponse
    holder: Identity | None = None
    request: ProofRequest | None = None


@dataclass(frozen=True, slots=True)
class ProofRequestView:
    """A request with its status as of read time."""

    request: ProofRequest
    status: RequestStatus
    verifier: Identity | None = None
    responses: tuple[ProofResponseView, ...] = ()
