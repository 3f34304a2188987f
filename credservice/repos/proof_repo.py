from __future__ import annotations

from typing import Protocol
from uuid import UUID

from credservice.models.proof import ProofRequest, ProofResponse


class DuplicateResponseError(ValueError):
    """A response already exists for this (proof request, holder) pair."""


class ProofRepo(Protocol):
    async def add_request(self, request: ProofRequest) -> None: ...
    async def get_request(self, request_id: UUID) -> ProofRequest | None: ...
    async def list_requests_by_verifier(self, verifier_id: UUID) -> list[ProofRequest]: ...
    async def list_active_requests(self) -> list[ProofRequest]: ...

    async def add_response(self, response: ProofResponse) -> None: ...
    async def get_response(self, response_id: UUID) -> ProofResponse | None: ...
    async def save_response(self, response: ProofResponse) -> None: ...
    async def find_response(
        self, request_id: UUID, holder_id: UUID
    ) -> ProofResponse | None: ...
    async def list_responses_for_request(self, request_id: UUID) -> list[ProofResponse]: ...
    async def list_responses_by_holder(self, holder_id: UUID) -> list[ProofResponse]: ...


class InMemoryProofRepo:
    def __init__(self) -> None:
        self._requests: dict[UUID, ProofRequest] = {}
        self._responses: dict[UUID, ProofResponse] = {}
        # (proof_request_id, holder_id) -> response id; the uniqueness index
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    # --- requests ---------------------------------------------------------

    async def add_request(self, request: ProofRequest) -> None:
        self._requests[request.id] = request

    async def get_request(self, request_id: UUID) -> ProofRequest | None:
        return self._requests.get(request_id)

    async def list_requests_by_verifier(self, verifier_id: UUID) -> list[ProofRequest]:
        owned = [r for r in self._requests.values() if r.verifier_id == verifier_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    async def list_active_requests(self) -> list[ProofRequest]:
        active = [r for r in self._requests.values() if r.status == "ACTIVE"]
        return sorted(active, key=lambda r: r.created_at, reverse=True)

    # --- responses --------------------------------------------------------

    async def add_response(self, response: ProofResponse) -> None:
        pair = (response.proof_request_id, response.holder_id)
        if pair in self._by_pair:
            raise DuplicateResponseError("holder already responded to this request")
        self._by_pair[pair] = response.id
        self._responses[response.id] = response

    async def get_response(self, response_id: UUID) -> ProofResponse | None:
        return self._responses.get(response_id)

    async def save_response(self, response: ProofResponse) -> None:
        if response.id not in self._responses:
            raise KeyError("proof response not found")
        self._responses[response.id] = response

    async def find_response(
        self, request_id: UUID, holder_id: UUID
    ) -> ProofResponse | None:
        response_id = self._by_pair.get((request_id, holder_id))
        return self._responses.get(response_id) if response_id else None

    async def list_responses_for_request(self, request_id: UUID) -> list[ProofResponse]:
        matching = [
            r for r in self._responses.values() if r.proof_request_id == request_id
        ]
        return sorted(matching, key=lambda r: r.submitted_at)

    async def list_responses_by_holder(self, holder_id: UUID) -> list[ProofResponse]:
        mine = [r for r in self._responses.values() if r.holder_id == holder_id]
        return sorted(mine, key=lambda r: r.submitted_at, reverse=True)
