"""Proof-request / proof-response protocol.

A VERIFIER publishes a request for credential types, either broadcast
(every holder) or targeted (an explicit list of holders).  Each HOLDER
answers at most once, by presenting credentials (SUBMITTED) or
declining (REJECTED).  The verifier then settles a SUBMITTED response
as ACCEPTED or REJECTED; both are terminal.

Request status is stored as ACTIVE and derived when read:

    stored non-ACTIVE         -> stored value
    expires_at in the past    -> EXPIRED     (wins over COMPLETED)
    every audience member
      has responded           -> COMPLETED
    otherwise                 -> ACTIVE

The audience of a broadcast request is every HOLDER at read time.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from credservice.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from credservice.core.metrics import PROOF_RESPONSES
from credservice.models.identity import Identity
from credservice.models.proof import (
    TERMINAL_RESPONSE_STATUSES,
    ProofRequest,
    ProofRequestView,
    ProofResponse,
    ProofResponseView,
    RequestStatus,
    ResponseStatus,
)
from credservice.repos.bundle import Repos
from credservice.repos.proof_repo import DuplicateResponseError
from credservice.services import credential_service, template_service

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100

# PENDING is what older clients send for a fresh submission.
_RESPONSE_INPUT_ALIASES: dict[str, ResponseStatus] = {
    "SUBMITTED": "SUBMITTED",
    "PENDING": "SUBMITTED",
    "REJECTED": "REJECTED",
}


def effective_status(
    request: ProofRequest,
    responded_holder_ids: Collection[UUID],
    audience: Collection[UUID],
    now: datetime,
) -> RequestStatus:
    if request.status != "ACTIVE":
        return request.status
    if request.expires_at is not None and request.expires_at < now:
        return "EXPIRED"
    if audience and all(holder_id in responded_holder_ids for holder_id in audience):
        return "COMPLETED"
    return "ACTIVE"


async def _audience(repos: Repos, request: ProofRequest) -> list[UUID]:
    if request.target_holders is not None:
        return list(request.target_holders)
    return [h.id for h in await repos.identities.list_by_role("HOLDER")]


async def _status_of(
    repos: Repos,
    request: ProofRequest,
    responses: Iterable[ProofResponse],
    now: datetime,
    broadcast_audience: list[UUID] | None = None,
) -> RequestStatus:
    if request.target_holders is None and broadcast_audience is not None:
        audience = broadcast_audience
    else:
        audience = await _audience(repos, request)
    responded = {r.holder_id for r in responses}
    return effective_status(request, responded, audience, now)


def _require(identity: Identity, role: str, action: str) -> None:
    if identity.role != role:
        raise AuthorizationError(f"Only {role.lower()}s can {action}")


# --- verifier side ----------------------------------------------------------


async def create_request(
    repos: Repos,
    verifier: Identity,
    *,
    title: str,
    requested_types: list[str],
    description: str | None = None,
    expires_at: datetime | None = None,
    target_holders: list[UUID] | None = None,
    requirements: dict[str, Any] | None = None,
) -> ProofRequest:
    _require(verifier, "VERIFIER", "create proof requests")

    title = title.strip()
    if not title or len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"title must be 1-{TITLE_MAX_LENGTH} characters")

    wanted = list(dict.fromkeys(t.strip() for t in requested_types if t and t.strip()))
    if not wanted:
        raise ValidationError("requestedTypes must name at least one credential type")

    known = await template_service.known_type_names(repos)
    if known:
        kept = [t for t in wanted if t in known]
        dropped = [t for t in wanted if t not in known]
        if dropped:
            logger.info("Dropping unknown requested types  types=%s", dropped)
        if not kept:
            raise ValidationError(
                "None of the requested credential types are known",
                details={"unknownTypes": dropped},
            )
        wanted = kept

    if expires_at is not None and expires_at <= datetime.now(UTC):
        raise ValidationError("expiresAt must be in the future")

    targets: tuple[UUID, ...] | None = None
    if target_holders:
        targets = tuple(dict.fromkeys(target_holders))
        invalid = []
        for holder_id in targets:
            identity = await repos.identities.get_by_id(holder_id)
            if identity is None or identity.role != "HOLDER":
                invalid.append(str(holder_id))
        if invalid:
            raise ValidationError(
                "targetHolders must reference existing holders",
                details={"invalidHolders": invalid},
            )

    request = ProofRequest.new(
        title=title,
        verifier_id=verifier.id,
        requested_types=tuple(wanted),
        description=description,
        expires_at=expires_at,
        target_holders=targets,
        requirements=requirements,
    )
    await repos.proofs.add_request(request)
    logger.info(
        "Proof request created  request_id=%s verifier=%s types=%s targeted=%s",
        request.id,
        verifier.id,
        list(request.requested_types),
        targets is not None,
    )
    return request


async def _response_views(
    repos: Repos, responses: Iterable[ProofResponse]
) -> tuple[ProofResponseView, ...]:
    return tuple(
        [
            ProofResponseView(
                response=r, holder=await repos.identities.get_by_id(r.holder_id)
            )
            for r in responses
        ]
    )


async def list_for_verifier(repos: Repos, verifier: Identity) -> list[ProofRequestView]:
    _require(verifier, "VERIFIER", "list proof requests")
    now = datetime.now(UTC)
    holders = [h.id for h in await repos.identities.list_by_role("HOLDER")]

    views = []
    for request in await repos.proofs.list_requests_by_verifier(verifier.id):
        responses = await repos.proofs.list_responses_for_request(request.id)
        views.append(
            ProofRequestView(
                request=request,
                status=await _status_of(repos, request, responses, now, holders),
                verifier=verifier,
                responses=await _response_views(repos, responses),
            )
        )
    return views


async def get_request(
    repos: Repos, verifier: Identity, request_id: UUID
) -> ProofRequestView:
    _require(verifier, "VERIFIER", "view proof requests")
    request = await repos.proofs.get_request(request_id)
    if request is None:
        raise NotFoundError("Proof request not found")
    if request.verifier_id != verifier.id:
        raise AuthorizationError("Proof request belongs to another verifier")

    responses = await repos.proofs.list_responses_for_request(request.id)
    return ProofRequestView(
        request=request,
        status=await _status_of(repos, request, responses, datetime.now(UTC)),
        verifier=verifier,
        responses=await _response_views(repos, responses),
    )


async def update_response_status(
    repos: Repos, verifier: Identity, response_id: UUID, new_status: str
) -> ProofResponse:
    _require(verifier, "VERIFIER", "settle proof responses")
    if new_status not in TERMINAL_RESPONSE_STATUSES:
        raise ValidationError("status must be ACCEPTED or REJECTED")

    response = await repos.proofs.get_response(response_id)
    if response is None:
        raise NotFoundError("Proof response not found")

    request = await repos.proofs.get_request(response.proof_request_id)
    if request is None or request.verifier_id != verifier.id:
        logger.warning(
            "Response settle denied  response_id=%s verifier=%s", response_id, verifier.id
        )
        raise AuthorizationError("Proof response belongs to another verifier's request")

    if response.status != "SUBMITTED":
        raise ConflictError(
            f"Proof response is already {response.status}",
            details={"status": response.status},
        )

    settled = replace(response, status=new_status)  # type: ignore[arg-type]
    await repos.proofs.save_response(settled)
    PROOF_RESPONSES.labels(status=new_status).inc()
    logger.info("Proof response settled  response_id=%s status=%s", response_id, new_status)
    return settled


# --- holder side ------------------------------------------------------------


async def respond(
    repos: Repos,
    holder: Identity,
    *,
    proof_request_id: UUID,
    presented_credentials: list[UUID],
    status: str = "SUBMITTED",
    proof_data: Any = None,
) -> ProofResponse:
    _require(holder, "HOLDER", "respond to proof requests")

    normalized = _RESPONSE_INPUT_ALIASES.get(status.upper())
    if normalized is None:
        raise ValidationError("status must be SUBMITTED or REJECTED")

    request = await repos.proofs.get_request(proof_request_id)
    if request is None:
        raise NotFoundError("Proof request not found")

    # Checked before the derived status: an answered request may read COMPLETED.
    if await repos.proofs.find_response(request.id, holder.id) is not None:
        raise ConflictError("Already responded to this proof request")

    now = datetime.now(UTC)
    responses = await repos.proofs.list_responses_for_request(request.id)
    current = await _status_of(repos, request, responses, now)
    if current == "EXPIRED":
        raise ValidationError("Proof request has expired")
    if current != "ACTIVE":
        raise ValidationError("Proof request is not active", details={"status": current})

    if not request.targets(holder.id):
        logger.warning(
            "Response from untargeted holder  request_id=%s holder=%s",
            request.id,
            holder.id,
        )
        raise AuthorizationError("This proof request is not addressed to you")

    presented = tuple(dict.fromkeys(presented_credentials))
    if normalized == "SUBMITTED" and not presented:
        raise ValidationError("A submission must present at least one credential")
    not_held = []
    for credential_id in presented:
        credential = await repos.credentials.get(credential_id)
        if credential is None or not credential_service.is_held_by(credential, holder):
            not_held.append(str(credential_id))
    if not_held:
        raise ValidationError(
            "Presented credentials must belong to you",
            details={"credentials": not_held},
        )

    response = ProofResponse.new(
        proof_request_id=request.id,
        holder_id=holder.id,
        status=normalized,
        presented_credentials=presented,
        proof_data=proof_data,
    )
    try:
        await repos.proofs.add_response(response)
    except DuplicateResponseError:
        raise ConflictError("Already responded to this proof request") from None

    PROOF_RESPONSES.labels(status=normalized).inc()
    logger.info(
        "Proof response recorded  response_id=%s request_id=%s holder=%s status=%s",
        response.id,
        request.id,
        holder.id,
        normalized,
    )
    return response


async def list_available(repos: Repos, holder: Identity) -> list[ProofRequestView]:
    """Requests this holder can still answer, newest first."""
    _require(holder, "HOLDER", "browse proof requests")
    now = datetime.now(UTC)
    holders = [h.id for h in await repos.identities.list_by_role("HOLDER")]

    available = []
    for request in await repos.proofs.list_active_requests():
        if not request.targets(holder.id):
            continue
        responses = await repos.proofs.list_responses_for_request(request.id)
        if any(r.holder_id == holder.id for r in responses):
            continue
        status = await _status_of(repos, request, responses, now, holders)
        if status != "ACTIVE":
            continue
        available.append(
            ProofRequestView(
                request=request,
                status=status,
                verifier=await repos.identities.get_by_id(request.verifier_id),
            )
        )
    return available


async def list_responses_for_holder(
    repos: Repos, holder: Identity
) -> list[ProofResponseView]:
    _require(holder, "HOLDER", "list proof responses")
    return [
        ProofResponseView(
            response=r,
            holder=holder,
            request=await repos.proofs.get_request(r.proof_request_id),
        )
        for r in await repos.proofs.list_responses_by_holder(holder.id)
    ]
