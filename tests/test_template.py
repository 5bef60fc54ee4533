"""Tests for template documents -- lenient/strict loading, fingerprints, positions."""
from __future__ import annotations

import json

import pytest

from er_canvas.template import (
    TemplateChangeDetector,
    TemplateError,
    load_template,
    positions_from_dict,
    positions_to_dict,
    template_fingerprint,
    template_from_dict,
    template_to_dict,
)
from er_canvas.types import ERTemplate, Point, Relationship

DOCUMENT = {
    "entities": {
        "user": {"id": "int primary-key", "email": "varchar unique"},
        "order": {"id": "int primary-key", "user_id": "int foreign-key"},
    },
    "relations": [
        {"name": "places", "from": "user.id", "to": "order.user_id", "type": "one-to-many"},
    ],
}


# ============================================================================
# Lenient conversion
# ============================================================================


class TestTemplateFromDict:
    def test_converts_entities_and_relations(self):
        t = template_from_dict(DOCUMENT)
        assert list(t.entities) == ["user", "order"]
        assert t.relations == [
            Relationship(name="places", from_ref="user.id", to_ref="order.user_id", type="one-to-many")
        ]

    def test_missing_keys_default_to_empty(self):
        assert template_from_dict({}) == ERTemplate()

    def test_partial_relation(self):
        t = template_from_dict({"relations": [{"name": "x"}]})
        assert t.relations[0].from_ref == ""
        assert t.relations[0].to_ref == ""

    def test_round_trips_to_dict(self):
        assert template_to_dict(template_from_dict(DOCUMENT)) == DOCUMENT


# ============================================================================
# Strict loading
# ============================================================================


class TestLoadTemplate:
    def test_loads_valid_json(self):
        t = load_template(json.dumps(DOCUMENT))
        assert t == template_from_dict(DOCUMENT)

    def test_missing_sections_are_empty(self):
        assert load_template("{}") == ERTemplate()

    def test_malformed_json(self):
        with pytest.raises(TemplateError, match="Invalid JSON"):
            load_template('{"entities": {')

    def test_top_level_must_be_an_object(self):
        with pytest.raises(TemplateError, match="JSON object"):
            load_template("[1, 2, 3]")

    def test_descriptor_must_be_a_string(self):
        with pytest.raises(TemplateError, match="entities.user.id"):
            load_template('{"entities": {"user": {"id": 5}}}')

    def test_relation_requires_endpoints(self):
        with pytest.raises(TemplateError, match="relations.0.to"):
            load_template('{"relations": [{"name": "x", "from": "a.id"}]}')

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            load_template("not json")


# ============================================================================
# Change detection
# ============================================================================


class TestFingerprint:
    def test_equal_content_equal_fingerprint(self):
        assert template_fingerprint(template_from_dict(DOCUMENT)) == template_fingerprint(
            template_from_dict(json.loads(json.dumps(DOCUMENT)))
        )

    def test_field_change_changes_fingerprint(self):
        changed = template_from_dict(DOCUMENT)
        changed.entities["user"]["email"] = "varchar"
        assert template_fingerprint(changed) != template_fingerprint(template_from_dict(DOCUMENT))

    def test_entity_order_is_significant(self):
        reordered = template_from_dict(
            {"entities": dict(reversed(list(DOCUMENT["entities"].items()))), "relations": DOCUMENT["relations"]}
        )
        assert template_fingerprint(reordered) != template_fingerprint(template_from_dict(DOCUMENT))


class TestTemplateChangeDetector:
    def test_first_template_is_a_change(self):
        assert TemplateChangeDetector().changed(template_from_dict(DOCUMENT)) is True

    def test_same_content_is_not_a_change(self):
        detector = TemplateChangeDetector()
        detector.changed(template_from_dict(DOCUMENT))
        assert detector.changed(template_from_dict(DOCUMENT)) is False

    def test_new_content_is_committed(self):
        detector = TemplateChangeDetector()
        detector.changed(template_from_dict(DOCUMENT))
        assert detector.changed(ERTemplate()) is True
        assert detector.changed(ERTemplate()) is False


# ============================================================================
# Positions
# ============================================================================


class TestPositions:
    def test_decodes_points(self):
        assert positions_from_dict({"user": {"x": 10, "y": 20.5}}) == {"user": Point(x=10, y=20.5)}

    def test_skips_malformed_entries(self):
        data = {"a": {"x": 1}, "b": "nope", "c": {"x": "1", "y": 2}, "d": {"x": 0, "y": 0}}
        assert positions_from_dict(data) == {"d": Point(x=0, y=0)}

    def test_none_is_empty(self):
        assert positions_from_dict(None) == {}

    @pytest.mark.parametrize("data", [[1, 2], "positions", 3])
    def test_non_mapping_document_is_empty(self, data):
        assert positions_from_dict(data) == {}

    def test_encodes_points(self):
        assert positions_to_dict({"a": Point(x=1, y=2)}) == {"a": {"x": 1, "y": 2}}
