from __future__ import annotations

from collections.abc import Mapping

import structlog

from .types import (
    DiagramEdge,
    DiagramNode,
    DiagramOptions,
    ERTemplate,
    Point,
    Relationship,
)
from .fields import parse_entity_fields
from .relations import REFERENCED_FIELD, infer_referenced_entity, split_reference
from .styles import (
    ARROW_MARKER,
    FONT_WEIGHTS,
    FOREIGN_KEY_COLOR,
    FOREIGN_KEY_DASHARRAY,
    FOREIGN_KEY_LABEL_FONT_SIZE,
    GRID_CELL_SIZE,
    GRID_COLUMNS,
    RELATION_COLOR,
    STROKE_WIDTHS,
)

log = structlog.get_logger()

# ============================================================================
# Edge synthesis
#
# Turns a template into draft nodes and the full edge list:
#   1. One node per entity (persisted position or grid fallback)
#   2. One relation edge per declared relation, in relation order
#   3. One foreign-key edge per convention-resolved foreign key, in
#      entity-then-field order
#
# Nothing is validated here: dangling references pass through as edges to
# nodes that do not exist.
# ============================================================================

RELATION_EDGE_PREFIX = "rel-"
FOREIGN_KEY_EDGE_PREFIX = "fk-"


def handle_id(entity: str, field_name: str, role: str) -> str:
    return f"{entity}-{field_name}-{role}"


def grid_position(index: int, options: DiagramOptions | None = None) -> Point:
    """Deterministic fallback position for the entity at `index`."""
    columns = (options.grid_columns if options else None) or GRID_COLUMNS
    cell = (options.grid_cell_size if options else None) or GRID_CELL_SIZE
    return Point(x=(index % columns) * cell, y=(index // columns) * cell)


def build_nodes(
    template: ERTemplate,
    positions: Mapping[str, Point] | None = None,
    options: DiagramOptions | None = None,
) -> list[DiagramNode]:
    """Create one draft node per entity, in insertion order."""
    positions = positions or {}
    nodes: list[DiagramNode] = []

    for index, (entity_name, fields) in enumerate(template.entities.items()):
        saved = positions.get(entity_name)
        if saved is not None:
            position = Point(x=saved.x, y=saved.y)
        else:
            position = grid_position(index, options)

        nodes.append(
            DiagramNode(
                id=entity_name,
                position=position,
                fields=dict(fields),
                parsed_fields=parse_entity_fields(template, entity_name),
            )
        )
    return nodes


def build_relation_edge(relationship: Relationship, index: int) -> DiagramEdge:
    """Edge for an explicitly declared relation (animated, curved)."""
    from_entity, from_field = split_reference(relationship.from_ref)
    to_entity, to_field = split_reference(relationship.to_ref)

    return DiagramEdge(
        id=f"{RELATION_EDGE_PREFIX}{relationship.name}-{index}",
        kind="relation",
        source=from_entity,
        target=to_entity,
        source_handle=handle_id(from_entity, from_field, "source"),
        target_handle=handle_id(to_entity, to_field, "target"),
        source_field=from_field,
        target_field=to_field,
        label=relationship.name,
        type="smoothstep",
        animated=True,
        style={"stroke": RELATION_COLOR, "strokeWidth": STROKE_WIDTHS["edge"]},
        label_style={"fill": RELATION_COLOR, "fontWeight": FONT_WEIGHTS["relation_label"]},
        marker_end={**ARROW_MARKER, "color": RELATION_COLOR},
    )


def build_foreign_key_edge(entity_name: str, field_name: str, referenced_entity: str) -> DiagramEdge:
    """Edge for a convention-inferred foreign key (dashed, straight).

    Handle roles are inverted: the foreign-key field attaches through its
    target handle, the referenced key through its source handle.
    """
    return DiagramEdge(
        id=(
            f"{FOREIGN_KEY_EDGE_PREFIX}{entity_name}-{field_name}"
            f"-{referenced_entity}-{REFERENCED_FIELD}"
        ),
        kind="foreignKey",
        source=entity_name,
        target=referenced_entity,
        source_handle=handle_id(entity_name, field_name, "target"),
        target_handle=handle_id(referenced_entity, REFERENCED_FIELD, "source"),
        source_field=field_name,
        target_field=REFERENCED_FIELD,
        label=f"{field_name} → {REFERENCED_FIELD}",
        type="straight",
        animated=False,
        style={
            "stroke": FOREIGN_KEY_COLOR,
            "strokeWidth": STROKE_WIDTHS["edge"],
            "strokeDasharray": FOREIGN_KEY_DASHARRAY,
        },
        label_style={
            "fill": FOREIGN_KEY_COLOR,
            "fontWeight": FONT_WEIGHTS["foreign_key_label"],
            "fontSize": FOREIGN_KEY_LABEL_FONT_SIZE,
        },
        marker_end={**ARROW_MARKER, "color": FOREIGN_KEY_COLOR},
    )


def build_edges(template: ERTemplate, nodes: list[DiagramNode] | None = None) -> list[DiagramEdge]:
    """Relation edges (relation order) followed by foreign-key edges."""
    edges = [
        build_relation_edge(relationship, index)
        for index, relationship in enumerate(template.relations)
    ]

    if nodes is None:
        parsed_by_entity = {
            name: parse_entity_fields(template, name) for name in template.entities
        }
    else:
        parsed_by_entity = {node.id: node.parsed_fields for node in nodes}

    for entity_name in template.entities:
        for field_name, parsed in parsed_by_entity.get(entity_name, {}).items():
            if not parsed.foreign_key:
                continue
            referenced = infer_referenced_entity(template, field_name)
            if referenced is None:
                log.debug("fk_inference_skipped", entity=entity_name, field=field_name)
                continue
            edges.append(build_foreign_key_edge(entity_name, field_name, referenced))

    return edges


def synthesize(
    template: ERTemplate,
    positions: Mapping[str, Point] | None = None,
    options: DiagramOptions | None = None,
) -> tuple[list[DiagramNode], list[DiagramEdge]]:
    """Build draft nodes and the full edge list for a template."""
    nodes = build_nodes(template, positions, options)
    edges = build_edges(template, nodes)
    log.debug("edges_synthesized", nodes=len(nodes), edges=len(edges))
    return nodes, edges
