"""Credential template endpoints (ISSUER only, owner-scoped)."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict, Field

from credservice.api.dependencies import Issuer, RepoBundle
from credservice.models.template import CredentialTemplate
from credservice.services import template_service

router = APIRouter(prefix="/templates", tags=["templates"])


class TemplateIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    description: str | None = None
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")


class TemplatePatchIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    schema_: dict[str, Any] | None = Field(default=None, alias="schema")


class TemplateOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    category: str
    description: str | None
    schema_: dict[str, Any] = Field(alias="schema")
    createdById: str
    createdAt: datetime
    updatedAt: datetime


def _out(template: CredentialTemplate) -> TemplateOut:
    return TemplateOut(
        id=str(template.id),
        name=template.name,
        category=template.category,
        description=template.description,
        schema=template.schema,
        createdById=str(template.created_by_id),
        createdAt=template.created_at,
        updatedAt=template.updated_at,
    )


@router.get("", response_model=list[TemplateOut], response_model_by_alias=True)
async def list_templates(issuer: Issuer, repos: RepoBundle) -> list[TemplateOut]:
    return [_out(t) for t in await template_service.list_templates(repos, issuer)]


@router.post(
    "",
    response_model=TemplateOut,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    payload: TemplateIn, issuer: Issuer, repos: RepoBundle
) -> TemplateOut:
    template = await template_service.create_template(
        repos,
        issuer,
        name=payload.name,
        category=payload.category,
        description=payload.description,
        schema=payload.schema_,
    )
    return _out(template)


@router.get("/{template_id}", response_model=TemplateOut, response_model_by_alias=True)
async def get_template(template_id: UUID, issuer: Issuer, repos: RepoBundle) -> TemplateOut:
    return _out(await template_service.get_template(repos, issuer, template_id))


@router.put("/{template_id}", response_model=TemplateOut, response_model_by_alias=True)
async def update_template(
    template_id: UUID, payload: TemplatePatchIn, issuer: Issuer, repos: RepoBundle
) -> TemplateOut:
    template = await template_service.update_template(
        repos,
        issuer,
        template_id,
        name=payload.name,
        category=payload.category,
        description=payload.description,
        schema=payload.schema_,
    )
    return _out(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: UUID, issuer: Issuer, repos: RepoBundle) -> Response:
    await template_service.delete_template(repos, issuer, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{template_id}/duplicate",
    response_model=TemplateOut,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_template(
    template_id: UUID, issuer: Issuer, repos: RepoBundle
) -> TemplateOut:
    return _out(await template_service.duplicate_template(repos, issuer, template_id))
