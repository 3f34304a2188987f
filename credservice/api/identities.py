from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from credservice.api.dependencies import CurrentIdentity, RepoBundle
from credservice.core.config import SETTINGS
from credservice.services import identity_service

router = APIRouter(tags=["identities"])


class HolderOut(BaseModel):
    id: str
    did: str
    walletAddress: str
    firstName: str | None
    lastName: str | None
    institutionName: str | None
    name: str


@router.get("/users", response_model=list[HolderOut])
async def list_holders(_identity: CurrentIdentity, repos: RepoBundle) -> list[HolderOut]:
    return [
        HolderOut(
            id=str(h.id),
            did=h.did,
            walletAddress=h.wallet_address,
            firstName=h.first_name,
            lastName=h.last_name,
            institutionName=h.institution_name,
            name=h.display_name(),
        )
        for h in await identity_service.list_holders(repos)
    ]


@router.get("/did/{did}")
async def resolve_did(did: str, repos: RepoBundle) -> dict:
    """Public W3C DID document; no authentication required."""
    return await identity_service.resolve_did(repos, did, did_prefix=SETTINGS.did_prefix)
