"""Tests for the editing session -- draft commits, selection, layout changes."""
from __future__ import annotations

import json

from er_canvas.session import DiagramSession
from er_canvas.store import InMemoryProjectStore
from er_canvas.template import template_from_dict
from er_canvas.types import Point

DOCUMENT = {
    "entities": {
        "user": {"id": "int primary-key"},
        "post": {"id": "int primary-key", "user_id": "int foreign-key"},
    },
    "relations": [],
}


def session() -> DiagramSession:
    return DiagramSession(template_from_dict(DOCUMENT))


# ============================================================================
# Draft vs committed template
# ============================================================================


class TestApplyDraft:
    def test_initial_diagram_is_generated(self):
        s = session()
        assert [n.id for n in s.diagram.nodes] == ["user", "post"]
        assert [e.id for e in s.diagram.edges] == ["fk-post-user_id-user-id"]

    def test_invalid_draft_keeps_committed_template(self):
        s = session()
        before = s.diagram
        assert s.apply_draft('{"entities": ') is False
        assert s.error is not None
        assert "Invalid JSON" in s.error
        assert s.diagram == before
        assert s.template == template_from_dict(DOCUMENT)

    def test_valid_draft_regenerates(self):
        s = session()
        doc = json.loads(json.dumps(DOCUMENT))
        doc["entities"]["tag"] = {"id": "int"}
        assert s.apply_draft(json.dumps(doc)) is True
        assert [n.id for n in s.diagram.nodes] == ["user", "post", "tag"]
        assert s.error is None

    def test_unchanged_draft_does_not_regenerate(self):
        s = session()
        assert s.apply_draft(json.dumps(DOCUMENT)) is False
        assert s.error is None

    def test_error_clears_after_valid_draft(self):
        s = session()
        s.apply_draft("nope")
        doc = json.loads(json.dumps(DOCUMENT))
        doc["relations"] = [{"name": "writes", "from": "user.id", "to": "post.user_id"}]
        assert s.apply_draft(json.dumps(doc)) is True
        assert s.error is None

    def test_moved_nodes_keep_position_across_regeneration(self):
        s = session()
        s.move_node("post", Point(x=-400, y=50))
        doc = json.loads(json.dumps(DOCUMENT))
        doc["entities"]["tag"] = {"id": "int"}
        s.apply_draft(json.dumps(doc))
        positions = {n.id: n.position for n in s.diagram.nodes}
        assert positions["post"] == Point(x=-400, y=50)
        assert positions["tag"] == Point(x=800, y=0)

    def test_unmoved_nodes_regrid_after_an_entity_is_removed(self):
        s = DiagramSession(template_from_dict({"entities": {"a": {}, "b": {}, "c": {}}}))
        assert s.apply_draft(json.dumps({"entities": {"b": {}, "c": {}}})) is True
        positions = {n.id: n.position for n in s.diagram.nodes}
        assert positions == {"b": Point(x=0, y=0), "c": Point(x=400, y=0)}
        assert s.positions == {}

    def test_stored_positions_stay_pinned_across_regeneration(self):
        s = DiagramSession(
            template_from_dict({"entities": {"a": {}, "b": {}, "c": {}}}),
            positions={"c": Point(x=5, y=5)},
        )
        s.apply_draft(json.dumps({"entities": {"b": {}, "c": {}}}))
        positions = {n.id: n.position for n in s.diagram.nodes}
        assert positions == {"b": Point(x=0, y=0), "c": Point(x=5, y=5)}


# ============================================================================
# Selection and geometry
# ============================================================================


class TestSelection:
    def test_select_toggles(self):
        s = session()
        s.select("user")
        assert s.selected == "user"
        s.select("user")
        assert s.selected is None

    def test_selection_styles_the_diagram(self):
        s = session()
        s.select("user")
        assert s.diagram.edges[0].style["opacity"] == 1
        s.clear_selection()
        assert s.selected is None


class TestGeometry:
    def test_move_node_reroutes_handles(self):
        s = session()
        post = s.diagram.nodes[1]
        (fk,) = [h for h in post.handle_positions if h.field_name == "user_id"]
        # post sits right of user on the grid
        assert fk.target_side == "left"

        s.move_node("post", Point(x=-1000, y=0))
        post = s.diagram.nodes[1]
        (fk,) = [h for h in post.handle_positions if h.field_name == "user_id"]
        assert fk.target_side == "right"

    def test_measure_applies_sizes(self):
        s = session()
        s.measure({"user": (300.0, 120.0)})
        assert (s.diagram.nodes[0].width, s.diagram.nodes[0].height) == (300.0, 120.0)


# ============================================================================
# Persistence
# ============================================================================


class TestPersistence:
    def test_open_uses_stored_positions(self):
        store = InMemoryProjectStore()
        record = store.create("Blog", template_from_dict(DOCUMENT), positions={"user": Point(x=7, y=8)})
        s = DiagramSession.open(store, record.id)
        assert s.diagram.nodes[0].position == Point(x=7, y=8)

    def test_save_positions_writes_to_store(self):
        store = InMemoryProjectStore()
        record = store.create("Blog", template_from_dict(DOCUMENT))
        s = DiagramSession.open(store, record.id)
        s.move_node("user", Point(x=90, y=10))
        s.save_positions()
        assert store.load_positions(record.id) == {
            "user": Point(x=90, y=10),
            "post": Point(x=400, y=0),
        }

    def test_save_positions_without_store(self):
        s = session()
        assert s.save_positions() == {"user": Point(x=0, y=0), "post": Point(x=400, y=0)}
