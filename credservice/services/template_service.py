"""Credential templates: schema shape validation and issuer-owned CRUD.

A template's ``name`` is also a credential type name.  The set of all
template names is what proof requests may ask for.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from credservice.core.errors import AuthorizationError, NotFoundError, ValidationError
from credservice.models.identity import Identity
from credservice.models.template import CredentialTemplate
from credservice.repos.bundle import Repos

logger = logging.getLogger(__name__)

FIELD_TYPES = frozenset(
    {"string", "number", "integer", "boolean", "date", "array", "object"}
)


def validate_schema(schema: Any) -> dict[str, Any]:
    """Check the shape of a template schema and return a normalized copy.

    Expected shape::

        {"properties": {"<field>": {"type": "string", ...}, ...},
         "required": ["<field>", ...]}

    Raises ValidationError with per-field ``details`` on failure.
    """
    if not isinstance(schema, dict):
        raise ValidationError("Template schema must be an object")

    properties = schema.get("properties", {})
    if not isinstance(properties, dict):
        raise ValidationError("Template schema 'properties' must be an object")

    problems: dict[str, str] = {}
    for field_name, definition in properties.items():
        if not isinstance(definition, dict):
            problems[field_name] = "field definition must be an object"
            continue
        field_type = definition.get("type")
        if field_type is not None and field_type not in FIELD_TYPES:
            problems[field_name] = f"unsupported type {field_type!r}"
            continue
        enum = definition.get("enum")
        if enum is not None and (not isinstance(enum, list) or not enum):
            problems[field_name] = "enum must be a non-empty list"

    required = schema.get("required", [])
    if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
        raise ValidationError("Template schema 'required' must be a list of strings")
    for field_name in required:
        if field_name not in properties:
            problems[field_name] = "required field is not declared in properties"

    if problems:
        raise ValidationError("Invalid template schema", details={"fields": problems})

    normalized = dict(schema)
    normalized["properties"] = dict(properties)
    normalized["required"] = list(dict.fromkeys(required))
    return normalized


def missing_required(schema: dict[str, Any], claims: dict[str, Any]) -> list[str]:
    return [
        name
        for name in schema.get("required", [])
        if claims.get(name) is None or claims.get(name) == ""
    ]


async def known_type_names(repos: Repos) -> set[str]:
    return await repos.templates.list_names()


async def find_for_type(
    repos: Repos, type_name: str, preferred_owner: UUID | None = None
) -> CredentialTemplate | None:
    """The template named ``type_name``, preferring one owned by ``preferred_owner``."""
    matches = await repos.templates.find_by_name(type_name)
    if not matches:
        return None
    own = [t for t in matches if t.created_by_id == preferred_owner]
    return (own or matches)[0]


# --- CRUD -------------------------------------------------------------------


def _clean_text(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


async def create_template(
    repos: Repos,
    owner: Identity,
    *,
    name: str,
    category: str,
    schema: Any,
    description: str | None = None,
) -> CredentialTemplate:
    template = CredentialTemplate.new(
        name=_clean_text(name, "name"),
        category=_clean_text(category, "category"),
        created_by_id=owner.id,
        schema=validate_schema(schema),
        description=description,
    )
    await repos.templates.add(template)
    logger.info(
        "Template created  template_id=%s name=%s owner=%s",
        template.id,
        template.name,
        owner.id,
    )
    return template


async def list_templates(repos: Repos, owner: Identity) -> list[CredentialTemplate]:
    return await repos.templates.list_by_owner(owner.id)


async def get_template(
    repos: Repos, owner: Identity, template_id: UUID
) -> CredentialTemplate:
    template = await repos.templates.get(template_id)
    if template is None:
        raise NotFoundError("Template not found")
    if template.created_by_id != owner.id:
        logger.warning(
            "Template access denied  template_id=%s identity=%s", template_id, owner.id
        )
        raise AuthorizationError("Template belongs to another issuer")
    return template


async def update_template(
    repos: Repos,
    owner: Identity,
    template_id: UUID,
    *,
    name: str | None = None,
    category: str | None = None,
    description: str | None = None,
    schema: Any = None,
) -> CredentialTemplate:
    """Partial update; omitted fields keep their stored values."""
    template = await get_template(repos, owner, template_id)
    updated = replace(
        template,
        name=_clean_text(name, "name") if name is not None else template.name,
        category=(
            _clean_text(category, "category") if category is not None else template.category
        ),
        description=description if description is not None else template.description,
        schema=validate_schema(schema) if schema is not None else template.schema,
        updated_at=datetime.now(UTC),
    )
    await repos.templates.save(updated)
    logger.info("Template updated  template_id=%s", template_id)
    return updated


async def delete_template(repos: Repos, owner: Identity, template_id: UUID) -> None:
    await get_template(repos, owner, template_id)
    await repos.templates.delete(template_id)
    logger.info("Template deleted  template_id=%s", template_id)


async def duplicate_template(
    repos: Repos, owner: Identity, template_id: UUID
) -> CredentialTemplate:
    source = await get_template(repos, owner, template_id)
    copy = CredentialTemplate.new(
        name=f"{source.name} (Copy)",
        category=source.category,
        created_by_id=owner.id,
        schema=dict(source.schema),
        description=source.description,
    )
    await repos.templates.add(copy)
    logger.info("Template duplicated  source=%s copy=%s", source.id, copy.id)
    return copy
