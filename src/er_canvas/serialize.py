from __future__ import annotations

from typing import Any

from .types import Diagram, DiagramEdge, DiagramNode, HandlePositionInfo, ParsedField

# ============================================================================
# Diagram payload
#
# Converts the diagram graph into the JSON-ready, camelCase document a
# node-and-edge rendering surface consumes. Optional presentation keys are
# only emitted once selection styling has set them.
# ============================================================================


def parsed_field_to_dict(parsed: ParsedField) -> dict[str, Any]:
    return {
        "type": parsed.type,
        "primaryKey": parsed.primary_key,
        "foreignKey": parsed.foreign_key,
        "nullable": parsed.nullable,
        "unique": parsed.unique,
    }


def handle_position_to_dict(info: HandlePositionInfo) -> dict[str, Any]:
    return {
        "fieldName": info.field_name,
        "sourcePosition": info.source_side,
        "targetPosition": info.target_side,
        "showSourceHandle": info.show_source_handle,
        "showTargetHandle": info.show_target_handle,
    }


def node_to_dict(node: DiagramNode) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": node.id,
        "type": node.type,
        "position": {"x": node.position.x, "y": node.position.y},
        "data": {
            "name": node.name,
            "fields": dict(node.fields),
            "parsedFields": {
                name: parsed_field_to_dict(parsed) for name, parsed in node.parsed_fields.items()
            },
            "handlePositions": [handle_position_to_dict(h) for h in node.handle_positions],
        },
    }
    if node.width is not None and node.height is not None:
        out["measured"] = {"width": node.width, "height": node.height}
    if node.style:
        out["style"] = dict(node.style)
    return out


def edge_to_dict(edge: DiagramEdge) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "sourceHandle": edge.source_handle,
        "targetHandle": edge.target_handle,
        "label": edge.label,
        "type": edge.type,
        "animated": edge.animated,
        "style": dict(edge.style),
        "labelStyle": dict(edge.label_style),
        "markerEnd": dict(edge.marker_end),
        "data": {"kind": edge.kind},
    }
    if edge.label_bg_style is not None:
        out["labelBgStyle"] = dict(edge.label_bg_style)
    if edge.interaction_width is not None:
        out["interactionWidth"] = edge.interaction_width
    if edge.selectable is not None:
        out["selectable"] = edge.selectable
    if edge.focusable is not None:
        out["focusable"] = edge.focusable
    return out


def diagram_to_dict(diagram: Diagram) -> dict[str, Any]:
    return {
        "nodes": [node_to_dict(node) for node in diagram.nodes],
        "edges": [edge_to_dict(edge) for edge in diagram.edges],
    }
