"""Proof-request and proof-response endpoints.

Verifier side:
- GET   /proof-requests           — own requests with responses
- POST  /proof-requests           — create (broadcast or targeted)
- GET   /proof-requests/{id}      — one own request with responses
- PATCH /proof-responses          — accept / reject a submitted response

Holder side:
- GET  /proof-requests/available  — requests still open to the caller
- GET  /proof-responses           — own responses
- POST /proof-responses           — submit or decline
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from credservice.api.dependencies import Holder, RepoBundle, Verifier
from credservice.models.identity import Identity
from credservice.models.proof import (
    ProofRequest,
    ProofRequestView,
    ProofResponse,
    ProofResponseView,
)
from credservice.services import credential_service, proof_service

router = APIRouter(tags=["proofs"])


# --- Request / Response schemas -------------------------------------------


class ProofRequestIn(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str | None = None
    requestedTypes: list[str] = Field(min_length=1)
    expiresAt: datetime | None = None
    targetHolders: list[UUID] | None = None
    requirements: dict[str, Any] | None = None


class ProofResponseIn(BaseModel):
    proofRequestId: UUID
    presentedCredentials: list[UUID] = Field(default_factory=list)
    status: str = "SUBMITTED"
    proofData: Any = None


class ResponseStatusIn(BaseModel):
    id: UUID
    status: str


class PartyOut(BaseModel):
    id: str
    walletAddress: str
    did: str
    name: str


class RequestSummaryOut(BaseModel):
    id: str
    title: str
    description: str | None


class ProofResponseOut(BaseModel):
    id: str
    proofRequestId: str
    holderId: str
    status: str
    submittedAt: datetime
    presentedCredentials: list[str]
    proofData: Any = None
    holder: PartyOut | None = None
    proofRequest: RequestSummaryOut | None = None


class ProofRequestOut(BaseModel):
    id: str
    title: str
    description: str | None
    verifierId: str
    requestedTypes: list[str]
    status: str
    expiresAt: datetime | None
    targetHolders: list[str] | None
    requirements: dict[str, Any] | None
    createdAt: datetime
    verifier: PartyOut | None = None
    responses: list[ProofResponseOut] = Field(default_factory=list)


def _party(identity: Identity | None) -> PartyOut | None:
    if identity is None:
        return None
    return PartyOut(
        id=str(identity.id),
        walletAddress=identity.wallet_address,
        did=identity.did,
        name=identity.display_name(),
    )


def _response_out(
    response: ProofResponse,
    holder: Identity | None = None,
    request: ProofRequest | None = None,
) -> ProofResponseOut:
    return ProofResponseOut(
        id=str(response.id),
        proofRequestId=str(response.proof_request_id),
        holderId=str(response.holder_id),
        status=response.status,
        submittedAt=response.submitted_at,
        presentedCredentials=[str(c) for c in response.presented_credentials],
        proofData=response.proof_data,
        holder=_party(holder),
        proofRequest=(
            RequestSummaryOut(
                id=str(request.id), title=request.title, description=request.description
            )
            if request
            else None
        ),
    )


def _response_view_out(view: ProofResponseView) -> ProofResponseOut:
    return _response_out(view.response, view.holder, view.request)


def _request_out(
    request: ProofRequest,
    status: str | None = None,
    verifier: Identity | None = None,
    responses: tuple[ProofResponseView, ...] = (),
) -> ProofRequestOut:
    return ProofRequestOut(
        id=str(request.id),
        title=request.title,
        description=request.description,
        verifierId=str(request.verifier_id),
        requestedTypes=list(request.requested_types),
        status=status or request.status,
        expiresAt=request.expires_at,
        targetHolders=(
            [str(h) for h in request.target_holders]
            if request.target_holders is not None
            else None
        ),
        requirements=request.requirements,
        createdAt=request.created_at,
        verifier=_party(verifier),
        responses=[_response_view_out(r) for r in responses],
    )


def _view_out(view: ProofRequestView) -> ProofRequestOut:
    return _request_out(view.request, view.status, view.verifier, view.responses)


# --- proof requests -------------------------------------------------------


@router.get("/proof-requests", response_model=list[ProofRequestOut])
async def list_requests(verifier: Verifier, repos: RepoBundle) -> list[ProofRequestOut]:
    return [_view_out(v) for v in await proof_service.list_for_verifier(repos, verifier)]


@router.post(
    "/proof-requests",
    response_model=ProofRequestOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    payload: ProofRequestIn, verifier: Verifier, repos: RepoBundle
) -> ProofRequestOut:
    request = await proof_service.create_request(
        repos,
        verifier,
        title=payload.title,
        requested_types=payload.requestedTypes,
        description=payload.description,
        expires_at=credential_service.parse_datetime(payload.expiresAt, "expiresAt"),
        target_holders=payload.targetHolders,
        requirements=payload.requirements,
    )
    return _request_out(request, verifier=verifier)


# Declared before /proof-requests/{request_id} so "available" is not read as an id.
@router.get("/proof-requests/available", response_model=list[ProofRequestOut])
async def list_available(holder: Holder, repos: RepoBundle) -> list[ProofRequestOut]:
    return [_view_out(v) for v in await proof_service.list_available(repos, holder)]


@router.get("/proof-requests/{request_id}", response_model=ProofRequestOut)
async def get_request(
    request_id: UUID, verifier: Verifier, repos: RepoBundle
) -> ProofRequestOut:
    return _view_out(await proof_service.get_request(repos, verifier, request_id))


# --- proof responses ------------------------------------------------------


@router.get("/proof-responses", response_model=list[ProofResponseOut])
async def list_responses(holder: Holder, repos: RepoBundle) -> list[ProofResponseOut]:
    views = await proof_service.list_responses_for_holder(repos, holder)
    return [_response_view_out(v) for v in views]


@router.post(
    "/proof-responses",
    response_model=ProofResponseOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_response(
    payload: ProofResponseIn, holder: Holder, repos: RepoBundle
) -> ProofResponseOut:
    response = await proof_service.respond(
        repos,
        holder,
        proof_request_id=payload.proofRequestId,
        presented_credentials=payload.presentedCredentials,
        status=payload.status,
        proof_data=payload.proofData,
    )
    request = await repos.proofs.get_request(response.proof_request_id)
    return _response_out(response, holder, request)


@router.patch("/proof-responses", response_model=ProofResponseOut)
async def settle_response(
    payload: ResponseStatusIn, verifier: Verifier, repos: RepoBundle
) -> ProofResponseOut:
    response = await proof_service.update_response_status(
        repos, verifier, payload.id, payload.status.upper()
    )
    holder = await repos.identities.get_by_id(response.holder_id)
    return _response_out(response, holder)
