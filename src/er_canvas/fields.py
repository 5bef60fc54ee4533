from __future__ import annotations

import re

from .types import ERTemplate, ParsedField
from .relations import is_relation_target

# ============================================================================
# Field definition parser
#
# Parses a compact per-field descriptor into structured attributes.
#
# Supported tokens (case-insensitive, whitespace-separated):
#   <type>        first token, free-form (defaults to "varchar")
#   primary-key
#   foreign-key
#   not-null
#   unique
#
# Example: "Int not-null primary-key unique"
# ============================================================================

PRIMARY_KEY = "primary-key"
FOREIGN_KEY = "foreign-key"
NOT_NULL = "not-null"
UNIQUE = "unique"

DEFAULT_TYPE = "varchar"


def parse_field_definition(
    definition: str,
    template: ERTemplate | None = None,
    entity_name: str | None = None,
    field_name: str | None = None,
) -> ParsedField:
    """Parse a field descriptor string.

    With template context, a field that is the `to` end of any relation is
    flagged as a foreign key even without the `foreign-key` token.
    Malformed descriptors degrade to defaults; nothing is raised.
    """
    # Leading whitespace yields an empty first token, which falls back to
    # the default type
    parts = re.split(r"\s+", definition.lower())

    foreign_key = FOREIGN_KEY in parts
    if template is not None and entity_name and field_name and not foreign_key:
        foreign_key = is_relation_target(template, entity_name, field_name)

    return ParsedField(
        # Taken unconditionally, even when it is a modifier keyword
        type=parts[0] or DEFAULT_TYPE,
        primary_key=PRIMARY_KEY in parts,
        foreign_key=foreign_key,
        nullable=NOT_NULL not in parts,
        unique=UNIQUE in parts,
    )


def parse_entity_fields(template: ERTemplate, entity_name: str) -> dict[str, ParsedField]:
    """Parse every field of one entity, with relation context."""
    fields = template.entities.get(entity_name, {})
    return {
        name: parse_field_definition(definition, template, entity_name, name)
        for name, definition in fields.items()
    }
