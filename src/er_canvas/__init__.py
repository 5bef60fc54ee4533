"""er-canvas -- Derive interactive node-and-edge diagrams from ER templates."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .types import (
    Diagram,
    DiagramEdge,
    DiagramNode,
    DiagramOptions,
    ERTemplate,
    HandlePositionInfo,
    ParsedField,
    Point,
    Relationship,
)
from .fields import parse_field_definition
from .edges import synthesize
from .routing import calculate_optimal_edge_positions, aggregate_handle_positions
from .assembly import assemble, positions_from_nodes
from .selection import apply_selection, update_edge_styles, update_node_styles
from .template import (
    TemplateError,
    load_template,
    positions_from_dict,
    template_fingerprint,
    template_from_dict,
)
from .serialize import diagram_to_dict
from .session import DiagramSession

__all__ = [
    "generate_diagram",
    "assemble",
    "synthesize",
    "parse_field_definition",
    "calculate_optimal_edge_positions",
    "aggregate_handle_positions",
    "positions_from_nodes",
    "apply_selection",
    "update_edge_styles",
    "update_node_styles",
    "load_template",
    "template_from_dict",
    "positions_from_dict",
    "template_fingerprint",
    "diagram_to_dict",
    "DiagramSession",
    "TemplateError",
    "Diagram",
    "DiagramEdge",
    "DiagramNode",
    "DiagramOptions",
    "ERTemplate",
    "HandlePositionInfo",
    "ParsedField",
    "Point",
    "Relationship",
]


def generate_diagram(
    template: ERTemplate | Mapping[str, Any],
    positions: Mapping[str, Any] | None = None,
    sizes: Mapping[str, tuple[float, float]] | None = None,
    options: DiagramOptions | None = None,
    selected: str | None = None,
) -> dict[str, Any]:
    """Generate the diagram payload for a template document.

    Accepts either an ERTemplate or a decoded template document, and
    positions as Points or as {"x", "y"} mappings.
    """
    if not isinstance(template, ERTemplate):
        template = template_from_dict(template)

    points: dict[str, Point] = {}
    raw: dict[str, Any] = {}
    for name, value in (positions or {}).items():
        if isinstance(value, Point):
            points[name] = value
        else:
            raw[name] = value
    points.update(positions_from_dict(raw))

    diagram = assemble(template, points, sizes, options)
    if selected is not None:
        diagram = apply_selection(diagram, selected)
    return diagram_to_dict(diagram)
