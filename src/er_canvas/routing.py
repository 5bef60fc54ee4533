from __future__ import annotations

import math

from .types import (
    DiagramEdge,
    DiagramNode,
    DiagramOptions,
    EdgeRoute,
    HandlePositionInfo,
    HandleRole,
    NodeBox,
    OptimalConnection,
    Point,
    Side,
)
from .styles import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH

# ============================================================================
# Endpoint-side router
#
# Picks, for each edge, the node side (left or right) at each end that
# gives the shortest straight line between attachment points. Top and
# bottom sides are never used: field-level handles sit on the row edges.
#
# Per-edge decisions are then folded into per-field handle records. Each
# field has one source-role slot and one target-role slot.
# ============================================================================

# Enumeration order doubles as the tie-break order
SIDES: tuple[Side, Side] = ("left", "right")

DEFAULT_SOURCE_SIDE: Side = "right"
DEFAULT_TARGET_SIDE: Side = "left"


def node_box(node: DiagramNode, options: DiagramOptions | None = None) -> NodeBox:
    """Bounding box of a node; unmeasured (or zero) sizes use the defaults."""
    default_w = (options.default_node_width if options else None) or DEFAULT_NODE_WIDTH
    default_h = (options.default_node_height if options else None) or DEFAULT_NODE_HEIGHT
    return NodeBox(
        x=node.position.x,
        y=node.position.y,
        width=node.width or default_w,
        height=node.height or default_h,
    )


def attachment_point(box: NodeBox, side: Side) -> Point:
    """Vertical midpoint of the given side of the box."""
    x = box.x if side == "left" else box.x + box.width
    return Point(x=x, y=box.y + box.height / 2)


def calculate_optimal_handle_positions(source: NodeBox, target: NodeBox) -> OptimalConnection:
    """Choose the side pair with the shortest distance between attachment points.

    Ties keep the first pair in (left, right) x (left, right) order.
    """
    shortest = math.inf
    best_source = DEFAULT_SOURCE_SIDE
    best_target = DEFAULT_TARGET_SIDE

    for source_side in SIDES:
        sp = attachment_point(source, source_side)
        for target_side in SIDES:
            tp = attachment_point(target, target_side)
            distance = math.hypot(tp.x - sp.x, tp.y - sp.y)
            if distance < shortest:
                shortest = distance
                best_source = source_side
                best_target = target_side

    return OptimalConnection(source_side=best_source, target_side=best_target, distance=shortest)


def calculate_optimal_edge_positions(
    nodes: list[DiagramNode],
    edges: list[DiagramEdge],
    options: DiagramOptions | None = None,
) -> list[EdgeRoute]:
    """Route every edge; dangling edges get the right -> left default."""
    node_map = {node.id: node for node in nodes}
    routes: list[EdgeRoute] = []

    for edge in edges:
        source_node = node_map.get(edge.source)
        target_node = node_map.get(edge.target)

        if source_node is None or target_node is None:
            routes.append(
                EdgeRoute(
                    edge=edge,
                    source_side=DEFAULT_SOURCE_SIDE,
                    target_side=DEFAULT_TARGET_SIDE,
                )
            )
            continue

        optimal = calculate_optimal_handle_positions(
            node_box(source_node, options),
            node_box(target_node, options),
        )
        routes.append(
            EdgeRoute(
                edge=edge,
                source_side=optimal.source_side,
                target_side=optimal.target_side,
                distance=optimal.distance,
            )
        )

    return routes


def _assign_slot(
    info: HandlePositionInfo,
    role: HandleRole,
    side: Side,
    first_write_wins: bool,
) -> None:
    if role == "source":
        if first_write_wins and info.show_source_handle:
            return
        info.source_side = side
        info.show_source_handle = True
    else:
        if first_write_wins and info.show_target_handle:
            return
        info.target_side = side
        info.show_target_handle = True


def aggregate_handle_positions(
    routes: list[EdgeRoute],
    options: DiagramOptions | None = None,
) -> dict[str, list[HandlePositionInfo]]:
    """Fold per-edge sides into per-(entity, field) handle records.

    Each endpoint writes the side chosen at its own node into the slot of
    its handle's role. Relation edges write the source slot of the `from`
    field and the target slot of the `to` field; foreign-key edges write
    the target slot of the foreign-key field and the source slot of the
    referenced key. When several edges write the same slot, the last one
    wins unless the policy is "first-write-wins".

    Records are listed per entity in order of first touch.
    """
    policy = (options.handle_slot_policy if options else None) or "last-write-wins"
    first_write_wins = policy == "first-write-wins"

    records: dict[str, dict[str, HandlePositionInfo]] = {}

    for route in routes:
        edge = route.edge
        endpoints = (
            (edge.source, edge.source_field, edge.source_role, route.source_side),
            (edge.target, edge.target_field, edge.target_role, route.target_side),
        )
        for entity_name, field_name, role, side in endpoints:
            entity_records = records.setdefault(entity_name, {})
            info = entity_records.get(field_name)
            if info is None:
                info = HandlePositionInfo(field_name=field_name)
                entity_records[field_name] = info
            _assign_slot(info, role, side, first_write_wins)

    return {entity: list(fields.values()) for entity, fields in records.items()}
