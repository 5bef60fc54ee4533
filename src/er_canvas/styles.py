from __future__ import annotations

# ============================================================================
# Edge role palette -- colors assigned statically at synthesis time
# ============================================================================

RELATION_COLOR = "#8b5cf6"
FOREIGN_KEY_COLOR = "#10b981"

# Cycled by index among edges touching the selected node
HIGHLIGHT_COLORS = [
    "#8b5cf6",  # purple (relation color)
    "#10b981",  # green (foreign key color)
    "#f59e0b",  # amber
    "#ef4444",  # red
    "#3b82f6",  # blue
    "#06b6d4",  # cyan
    "#ec4899",  # pink
    "#84cc16",  # lime
    "#f97316",  # orange
    "#6366f1",  # indigo
]

DIMMED_COLOR = "#9ca3af"
LABEL_BG_COLOR = "#ffffff"
LABEL_BG_DIMMED_COLOR = "#f5f5f5"

# ============================================================================
# Stroke & marker constants
# ============================================================================

STROKE_WIDTHS = {
    "edge": 2,
    "dimmed": 1,
}

HIGHLIGHT_STROKE_SCALE = 1.5

FOREIGN_KEY_DASHARRAY = "5,5"

ARROW_MARKER = {
    "type": "arrowclosed",
    "width": 20,
    "height": 20,
}

FONT_WEIGHTS = {
    "relation_label": 700,
    "foreign_key_label": 600,
    "highlighted_label": 700,
    "dimmed_label": 400,
}

FOREIGN_KEY_LABEL_FONT_SIZE = 12

DEFAULT_INTERACTION_WIDTH = 20

NODE_DIMMED_OPACITY = 0.6

# ============================================================================
# Geometry defaults
# ============================================================================

# Router size for nodes the rendering surface has not measured yet
DEFAULT_NODE_WIDTH = 250
DEFAULT_NODE_HEIGHT = 100

# Fallback placement for entities without a persisted position
GRID_COLUMNS = 3
GRID_CELL_SIZE = 400
