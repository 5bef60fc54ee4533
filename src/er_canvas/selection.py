from __future__ import annotations

from dataclasses import replace

from .types import Diagram, DiagramEdge, DiagramNode
from .edges import FOREIGN_KEY_EDGE_PREFIX
from .styles import (
    DEFAULT_INTERACTION_WIDTH,
    DIMMED_COLOR,
    FONT_WEIGHTS,
    HIGHLIGHT_COLORS,
    HIGHLIGHT_STROKE_SCALE,
    LABEL_BG_COLOR,
    LABEL_BG_DIMMED_COLOR,
    NODE_DIMMED_OPACITY,
    STROKE_WIDTHS,
)

# ============================================================================
# Selection styling
#
# Presentation layer applied on top of an assembled diagram when a node is
# selected. Edges touching the selected node get a color from the
# highlight palette, cycled by their index among connected edges
# (foreign-key edges are shifted by one). All other edges are hidden and
# made non-interactive; unrelated nodes are dimmed.
#
# Inputs are never mutated; styled copies are returned.
# ============================================================================


def highlight_colors(edges: list[DiagramEdge], selected_id: str) -> dict[str, str]:
    """Palette color for every edge connected to the selected node."""
    connected = [e for e in edges if e.source == selected_id or e.target == selected_id]
    colors: dict[str, str] = {}
    for index, edge in enumerate(connected):
        color_index = index % len(HIGHLIGHT_COLORS)
        # Foreign-key edges are offset by one palette entry
        if edge.id.startswith(FOREIGN_KEY_EDGE_PREFIX):
            color_index = (index + 1) % len(HIGHLIGHT_COLORS)
        colors[edge.id] = HIGHLIGHT_COLORS[color_index]
    return colors


def _unselected_edge(edge: DiagramEdge) -> DiagramEdge:
    return replace(
        edge,
        style={**edge.style, "opacity": 1},
        label_style={**edge.label_style, "opacity": 1},
    )


def update_edge_styles(edges: list[DiagramEdge], selected_id: str | None) -> list[DiagramEdge]:
    """Return edge copies styled for the current selection."""
    if selected_id is None:
        return [_unselected_edge(edge) for edge in edges]

    colors = highlight_colors(edges, selected_id)
    styled: list[DiagramEdge] = []

    for edge in edges:
        highlighted = edge.source == selected_id or edge.target == selected_id
        highlight = colors.get(edge.id)

        if highlighted:
            stroke = highlight or edge.style.get("stroke")
            label_color = highlight or edge.label_style.get("fill")
            marker_color = highlight or edge.marker_end.get("color", stroke)
            stroke_width = (edge.style.get("strokeWidth") or STROKE_WIDTHS["edge"]) * HIGHLIGHT_STROKE_SCALE
        else:
            stroke = label_color = marker_color = DIMMED_COLOR
            stroke_width = STROKE_WIDTHS["dimmed"]

        pointer_events = "auto" if highlighted else "none"
        opacity = 1 if highlighted else 0

        styled.append(
            replace(
                edge,
                style={
                    **edge.style,
                    "opacity": opacity,
                    "stroke": stroke,
                    "strokeWidth": stroke_width,
                    "pointerEvents": pointer_events,
                },
                label_style={
                    **edge.label_style,
                    "opacity": opacity,
                    "fill": label_color,
                    "fontWeight": FONT_WEIGHTS["highlighted_label" if highlighted else "dimmed_label"],
                    "pointerEvents": pointer_events,
                },
                label_bg_style={
                    **(edge.label_bg_style or {}),
                    "fill": LABEL_BG_COLOR if highlighted else LABEL_BG_DIMMED_COLOR,
                    "stroke": label_color,
                    "strokeWidth": 1 if highlighted else 0.5,
                    "fillOpacity": 0.95 if highlighted else 0,
                    "strokeOpacity": opacity,
                },
                marker_end={**edge.marker_end, "color": marker_color} if edge.marker_end else {},
                interaction_width=(edge.interaction_width or DEFAULT_INTERACTION_WIDTH) if highlighted else 0,
                selectable=highlighted,
                focusable=highlighted,
            )
        )

    return styled


def update_node_styles(
    nodes: list[DiagramNode],
    edges: list[DiagramEdge],
    selected_id: str | None,
) -> list[DiagramNode]:
    """Return node copies; nodes not adjacent to the selection are dimmed."""
    if selected_id is None:
        return [replace(node, style={**node.style, "opacity": 1}) for node in nodes]

    related = {selected_id}
    for edge in edges:
        if edge.source == selected_id:
            related.add(edge.target)
        elif edge.target == selected_id:
            related.add(edge.source)

    return [
        replace(
            node,
            style={**node.style, "opacity": 1 if node.id in related else NODE_DIMMED_OPACITY},
        )
        for node in nodes
    ]


def apply_selection(diagram: Diagram, selected_id: str | None) -> Diagram:
    return Diagram(
        nodes=update_node_styles(diagram.nodes, diagram.edges, selected_id),
        edges=update_edge_styles(diagram.edges, selected_id),
    )
