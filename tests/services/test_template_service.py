from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from credservice.core.errors import ValidationError
from credservice.models.template import CredentialTemplate
from credservice.repos.bundle import in_memory_repos
from credservice.services import template_service


def test_valid_schema_is_normalized() -> None:
    schema = {
        "properties": {"degree": {"type": "string"}, "year": {"type": "integer"}},
        "required": ["degree", "degree"],
        "title": "Degree",
    }
    normalized = template_service.validate_schema(schema)
    assert normalized["required"] == ["degree"]
    assert normalized["title"] == "Degree"


def test_empty_schema_is_allowed() -> None:
    assert template_service.validate_schema({}) == {"properties": {}, "required": []}


@pytest.mark.parametrize(
    "schema",
    [
        "not an object",
        {"properties": []},
        {"properties": {}, "required": "degree"},
        {"properties": {}, "required": [1]},
    ],
)
def test_malformed_schema_shapes(schema) -> None:
    with pytest.raises(ValidationError):
        template_service.validate_schema(schema)


def test_field_problems_are_collected() -> None:
    schema = {
        "properties": {
            "a": "string",
            "b": {"type": "uuid"},
            "c": {"type": "string", "enum": []},
        },
        "required": ["d"],
    }
    with pytest.raises(ValidationError) as excinfo:
        template_service.validate_schema(schema)
    assert set(excinfo.value.details["fields"]) == {"a", "b", "c", "d"}


def test_missing_required_treats_empty_as_missing() -> None:
    schema = {"properties": {}, "required": ["degree", "gpa", "year"]}
    claims = {"degree": "", "gpa": None, "year": 2020}
    assert template_service.missing_required(schema, claims) == ["degree", "gpa"]


def test_find_for_type_prefers_callers_template() -> None:
    repos = in_memory_repos()
    mine, theirs = uuid4(), uuid4()
    foreign = CredentialTemplate.new(
        name="DegreeCert", category="edu", created_by_id=theirs, schema={}
    )
    own = CredentialTemplate.new(
        name="DegreeCert", category="edu", created_by_id=mine, schema={}
    )
    asyncio.run(repos.templates.add(foreign))
    asyncio.run(repos.templates.add(own))

    found = asyncio.run(template_service.find_for_type(repos, "DegreeCert", mine))
    assert found is not None and found.id == own.id
    anyone = asyncio.run(template_service.find_for_type(repos, "DegreeCert", uuid4()))
    assert anyone is not None
    assert asyncio.run(template_service.find_for_type(repos, "Other")) is None
