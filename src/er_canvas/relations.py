from __future__ import annotations

from .types import ERTemplate

# ============================================================================
# Relationship resolver
#
# Decides which fields take part in a foreign-key relationship, either as
# the `to` end of a declared relation or through the `<entity>_id` naming
# convention.
# ============================================================================

FOREIGN_KEY_SUFFIX = "_id"
REFERENCED_FIELD = "id"


def split_reference(ref: str) -> tuple[str, str]:
    """Split a dotted `entity.field` reference.

    Only the first two segments are used. A reference without a dot yields
    an empty field name.
    """
    parts = ref.split(".")
    entity = parts[0]
    field_name = parts[1] if len(parts) > 1 else ""
    return entity, field_name


def is_relation_target(template: ERTemplate, entity_name: str, field_name: str) -> bool:
    """True if any relation's `to` end is exactly `entity_name.field_name`."""
    for relation in template.relations:
        to_entity, to_field = split_reference(relation.to_ref)
        if to_entity == entity_name and to_field == field_name:
            return True
    return False


def infer_referenced_entity(template: ERTemplate, field_name: str) -> str | None:
    """Resolve `<base>_id` to the entity named `<base>`, if it exists."""
    if not field_name.endswith(FOREIGN_KEY_SUFFIX):
        return None
    candidate = field_name.removesuffix(FOREIGN_KEY_SUFFIX)
    if candidate in template.entities:
        return candidate
    return None
