from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ============================================================================
# ER template -- the source-of-truth document edited by the user
# ============================================================================

# Field descriptors are whitespace-separated token lists,
# e.g. "int not-null primary-key unique"
EntityFields = dict[str, str]


@dataclass(slots=True)
class Relationship:
    """An explicit, named connection between two `entity.field` references."""

    name: str
    # Dotted reference, e.g. "user.id"
    from_ref: str
    to_ref: str
    type: str | None = None
    description: str | None = None


@dataclass(slots=True)
class ERTemplate:
    # Insertion order of entities and fields is significant (grid placement,
    # foreign-key edge order)
    entities: dict[str, EntityFields] = field(default_factory=dict)
    relations: list[Relationship] = field(default_factory=list)


@dataclass(slots=True)
class ParsedField:
    type: str
    primary_key: bool
    foreign_key: bool
    nullable: bool
    unique: bool


# ============================================================================
# Diagram graph -- output consumed by a rendering surface
# ============================================================================

Side = Literal["left", "right"]

EdgeKind = Literal["relation", "foreignKey"]

HandleRole = Literal["source", "target"]

HandleSlotPolicy = Literal["last-write-wins", "first-write-wins"]


@dataclass(slots=True)
class Point:
    x: float
    y: float


@dataclass(slots=True)
class HandlePositionInfo:
    """Side hints for the two handles (source role, target role) of one field."""

    field_name: str
    source_side: Side | None = None
    target_side: Side | None = None
    show_source_handle: bool = False
    show_target_handle: bool = False


@dataclass(slots=True)
class DiagramNode:
    id: str
    position: Point
    # Raw field descriptors, in template order
    fields: EntityFields
    parsed_fields: dict[str, ParsedField] = field(default_factory=dict)
    handle_positions: list[HandlePositionInfo] = field(default_factory=list)
    type: str = "erNode"
    # Measured size; None until the rendering surface reports a layout
    width: float | None = None
    height: float | None = None
    style: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.id


@dataclass(slots=True)
class DiagramEdge:
    id: str
    kind: EdgeKind
    # Node ids (entity names); may reference entities that do not exist
    source: str
    target: str
    # Handle names: "{entity}-{field}-{role}"
    source_handle: str
    target_handle: str
    # Field names the handles belong to
    source_field: str
    target_field: str
    label: str
    # Routing style understood by the rendering surface
    type: str
    animated: bool
    style: dict[str, Any] = field(default_factory=dict)
    label_style: dict[str, Any] = field(default_factory=dict)
    marker_end: dict[str, Any] = field(default_factory=dict)
    label_bg_style: dict[str, Any] | None = None
    interaction_width: float | None = None
    selectable: bool | None = None
    focusable: bool | None = None

    @property
    def source_role(self) -> HandleRole:
        return "target" if self.source_handle.endswith("-target") else "source"

    @property
    def target_role(self) -> HandleRole:
        return "source" if self.target_handle.endswith("-source") else "target"


@dataclass(slots=True)
class Diagram:
    nodes: list[DiagramNode] = field(default_factory=list)
    edges: list[DiagramEdge] = field(default_factory=list)


# ============================================================================
# Routing
# ============================================================================


@dataclass(slots=True)
class NodeBox:
    """Axis-aligned bounding box of a node -- uses top-left coordinates."""

    x: float
    y: float
    width: float
    height: float


@dataclass(slots=True)
class OptimalConnection:
    source_side: Side
    target_side: Side
    distance: float


@dataclass(slots=True)
class EdgeRoute:
    """Per-edge side decision made by the router."""

    edge: DiagramEdge
    source_side: Side
    target_side: Side
    # None when an endpoint node is missing and the default was used
    distance: float | None = None


# ============================================================================
# Diagram options -- user-facing configuration
# ============================================================================


@dataclass(slots=True)
class DiagramOptions:
    grid_columns: int | None = None
    grid_cell_size: float | None = None
    default_node_width: float | None = None
    default_node_height: float | None = None
    handle_slot_policy: HandleSlotPolicy | None = None
