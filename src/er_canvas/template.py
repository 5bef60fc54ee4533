"""Template and position documents: conversion, validation and change detection."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .types import ERTemplate, Point, Relationship


class TemplateError(ValueError):
    """Raised when template text cannot be used as a template."""


# ============================================================================
# Lenient conversion -- dict documents <-> ERTemplate
# ============================================================================


def template_from_dict(data: Mapping[str, Any]) -> ERTemplate:
    """Build a template from a decoded document without validating it.

    Missing keys default to empty values; descriptors are coerced to str.
    """
    entities: dict[str, dict[str, str]] = {}
    for entity_name, fields in (data.get("entities") or {}).items():
        entities[str(entity_name)] = {
            str(name): str(definition) for name, definition in (fields or {}).items()
        }

    relations = [
        Relationship(
            name=str(rel.get("name", "")),
            from_ref=str(rel.get("from", "")),
            to_ref=str(rel.get("to", "")),
            type=rel.get("type"),
            description=rel.get("description"),
        )
        for rel in (data.get("relations") or [])
    ]
    return ERTemplate(entities=entities, relations=relations)


def template_to_dict(template: ERTemplate) -> dict[str, Any]:
    relations: list[dict[str, Any]] = []
    for rel in template.relations:
        item: dict[str, Any] = {"name": rel.name, "from": rel.from_ref, "to": rel.to_ref}
        if rel.type is not None:
            item["type"] = rel.type
        if rel.description is not None:
            item["description"] = rel.description
        relations.append(item)

    return {
        "entities": {name: dict(fields) for name, fields in template.entities.items()},
        "relations": relations,
    }


# ============================================================================
# Strict loading -- the editing boundary
# ============================================================================


class _RelationModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    from_ref: str = Field(alias="from")
    to_ref: str = Field(alias="to")
    type: str | None = None
    description: str | None = None


class _TemplateModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entities: dict[str, dict[str, str]] = Field(default_factory=dict)
    relations: list[_RelationModel] = Field(default_factory=list)


def _format_validation_error(err: ValidationError) -> str:
    first = err.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "template"
    return f"{location}: {first['msg']}"


def load_template(text: str) -> ERTemplate:
    """Parse and validate template JSON text.

    Raises TemplateError for malformed JSON or an unexpected document shape.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise TemplateError(f"Invalid JSON: {err.msg} (line {err.lineno}, column {err.colno})") from err

    if not isinstance(data, dict):
        raise TemplateError("Template must be a JSON object")

    try:
        model = _TemplateModel.model_validate(data)
    except ValidationError as err:
        raise TemplateError(f"Invalid template: {_format_validation_error(err)}") from err

    return ERTemplate(
        entities={name: dict(fields) for name, fields in model.entities.items()},
        relations=[
            Relationship(
                name=rel.name,
                from_ref=rel.from_ref,
                to_ref=rel.to_ref,
                type=rel.type,
                description=rel.description,
            )
            for rel in model.relations
        ],
    )


# ============================================================================
# Change detection
# ============================================================================


def template_fingerprint(template: ERTemplate) -> str:
    """Content hash of a template.

    Entity, field and relation order are part of the content: reordering
    entities moves grid positions and reordering relations changes edge ids.
    """
    canonical = json.dumps(
        template_to_dict(template),
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class TemplateChangeDetector:
    """Tracks the fingerprint of the last committed template."""

    def __init__(self) -> None:
        self.committed: str | None = None

    def changed(self, template: ERTemplate) -> bool:
        """True (and commit) if `template` differs from the last commit."""
        fingerprint = template_fingerprint(template)
        if fingerprint == self.committed:
            return False
        self.committed = fingerprint
        return True


# ============================================================================
# Positions -- {entity: {"x": .., "y": ..}}
# ============================================================================


def positions_from_dict(data: Any) -> dict[str, Point]:
    """Decode persisted positions; entries without numeric x/y are skipped.

    Anything other than a mapping decodes to no positions.
    """
    positions: dict[str, Point] = {}
    if not isinstance(data, Mapping):
        return positions
    for name, value in data.items():
        if not isinstance(value, Mapping):
            continue
        x, y = value.get("x"), value.get("y")
        if isinstance(x, (int, float)) and isinstance(y, (int, float)):
            positions[name] = Point(x=x, y=y)
    return positions


def positions_to_dict(positions: Mapping[str, Point]) -> dict[str, dict[str, float]]:
    return {name: {"x": p.x, "y": p.y} for name, p in positions.items()}
