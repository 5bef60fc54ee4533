"""Editing session: draft/committed template, selection and layout persistence."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

import structlog

from .types import Diagram, DiagramOptions, ERTemplate, Point
from .assembly import assemble, positions_from_nodes, reroute
from .selection import apply_selection
from .store import ProjectStore
from .template import TemplateChangeDetector, TemplateError, load_template

log = structlog.get_logger()


class DiagramSession:
    """Holds the committed template and the diagram regenerated from it.

    A draft (template text being edited) is only committed when it parses
    and validates; otherwise the last good template and diagram are kept
    and the message is exposed as `error`.
    """

    def __init__(
        self,
        template: ERTemplate,
        positions: Mapping[str, Point] | None = None,
        options: DiagramOptions | None = None,
        store: ProjectStore | None = None,
        project_id: str | None = None,
    ) -> None:
        self.options = options
        self.store = store
        self.project_id = project_id
        self.positions: dict[str, Point] = dict(positions or {})
        self.sizes: dict[str, tuple[float, float]] = {}
        self.selected: str | None = None
        self.error: str | None = None
        self._detector = TemplateChangeDetector()
        self.template = template
        self._base = Diagram()
        self.commit(template)

    @classmethod
    def open(
        cls,
        store: ProjectStore,
        project_id: str,
        options: DiagramOptions | None = None,
    ) -> DiagramSession:
        """Start a session on a stored project."""
        record = store.get(project_id)
        return cls(
            record.template,
            positions=record.positions,
            options=options,
            store=store,
            project_id=project_id,
        )

    @property
    def diagram(self) -> Diagram:
        """The current diagram with selection styling applied."""
        return apply_selection(self._base, self.selected)

    def commit(self, template: ERTemplate) -> bool:
        """Regenerate the diagram if the template content changed."""
        if not self._detector.changed(template):
            return False
        self.template = template
        # Only loaded or moved positions are pinned; everything else re-grids
        self._base = assemble(template, self.positions, self.sizes, self.options)
        log.info("diagram_regenerated", entities=len(template.entities), relations=len(template.relations))
        return True

    def apply_draft(self, text: str) -> bool:
        """Parse draft template text and commit it.

        Returns False, keeping the committed template, when the text is
        invalid or unchanged.
        """
        try:
            template = load_template(text)
        except TemplateError as err:
            self.error = str(err)
            log.warning("draft_rejected", error=self.error)
            return False
        self.error = None
        return self.commit(template)

    def select(self, node_id: str | None) -> None:
        """Toggle selection: selecting the selected node clears it."""
        self.selected = None if node_id == self.selected else node_id

    def clear_selection(self) -> None:
        self.selected = None

    def move_node(self, node_id: str, position: Point) -> None:
        """Move a node and re-route the handles touching it."""
        nodes = [
            replace(node, position=Point(x=position.x, y=position.y)) if node.id == node_id else node
            for node in self._base.nodes
        ]
        self._base = reroute(Diagram(nodes=nodes, edges=self._base.edges), self.options)
        self.positions[node_id] = Point(x=position.x, y=position.y)

    def measure(self, sizes: Mapping[str, tuple[float, float]]) -> None:
        """Record node sizes reported by the rendering surface and re-route."""
        self.sizes.update(sizes)
        nodes = []
        for node in self._base.nodes:
            size = self.sizes.get(node.id)
            if size is not None:
                node = replace(node, width=size[0], height=size[1])
            nodes.append(node)
        self._base = reroute(Diagram(nodes=nodes, edges=self._base.edges), self.options)

    def save_positions(self) -> dict[str, Point]:
        """Persist current node positions to the bound project, if any."""
        positions = positions_from_nodes(self._base.nodes)
        self.positions.update(positions)
        if self.store is not None and self.project_id is not None:
            self.store.save_positions(self.project_id, self.positions)
            log.info("positions_saved", project_id=self.project_id, count=len(self.positions))
        return positions
