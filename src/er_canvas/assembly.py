from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

import structlog

from .types import Diagram, DiagramNode, DiagramOptions, ERTemplate, Point
from .edges import synthesize
from .routing import aggregate_handle_positions, calculate_optimal_edge_positions

log = structlog.get_logger()

# ============================================================================
# Diagram assembly
#
# Composition root: template + persisted positions (+ measured sizes) ->
# nodes with per-field handle hints and styled edges.
#
#   1. Synthesize draft nodes and edges
#   2. Apply measured sizes
#   3. Route every edge (left/right side selection)
#   4. Attach aggregated handle records to each node
#
# A pure function of its inputs: identical inputs give identical output.
# ============================================================================


def assemble(
    template: ERTemplate,
    positions: Mapping[str, Point] | None = None,
    sizes: Mapping[str, tuple[float, float]] | None = None,
    options: DiagramOptions | None = None,
) -> Diagram:
    """Build the renderable diagram for a template."""
    nodes, edges = synthesize(template, positions, options)

    if sizes:
        for node in nodes:
            size = sizes.get(node.id)
            if size is not None:
                node.width, node.height = size

    diagram = reroute(Diagram(nodes=nodes, edges=edges), options)
    log.debug("diagram_assembled", nodes=len(diagram.nodes), edges=len(diagram.edges))
    return diagram


def reroute(diagram: Diagram, options: DiagramOptions | None = None) -> Diagram:
    """Recompute handle side hints for the diagram's current geometry.

    Returns a new diagram; the input nodes are not modified.
    """
    routes = calculate_optimal_edge_positions(diagram.nodes, diagram.edges, options)
    handle_positions = aggregate_handle_positions(routes, options)

    nodes = [
        replace(node, handle_positions=handle_positions.get(node.id, []))
        for node in diagram.nodes
    ]
    return Diagram(nodes=nodes, edges=list(diagram.edges))


def positions_from_nodes(nodes: list[DiagramNode]) -> dict[str, Point]:
    """Current node positions, keyed by entity name (the persisted layout)."""
    return {node.id: Point(x=node.position.x, y=node.position.y) for node in nodes}
