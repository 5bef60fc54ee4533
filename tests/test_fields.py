"""Tests for the field definition parser and the relationship resolver.

Covers: type extraction, modifier flags, case-insensitivity, degenerate
descriptors, relation-implied foreign keys, reference splitting and the
`<entity>_id` naming convention.
"""
from __future__ import annotations

import pytest

from er_canvas.fields import parse_field_definition, parse_entity_fields
from er_canvas.relations import infer_referenced_entity, is_relation_target, split_reference
from er_canvas.types import ERTemplate, Relationship


def profile_template() -> ERTemplate:
    return ERTemplate(
        entities={
            "user": {"id": "int primary-key"},
            "profile": {"id": "int primary-key", "bio": "text"},
        },
        relations=[Relationship(name="has", from_ref="user.id", to_ref="profile.id")],
    )


# ============================================================================
# Descriptor parsing
# ============================================================================


class TestParseFieldDefinition:
    def test_parses_type_and_primary_key(self):
        f = parse_field_definition("int primary-key")
        assert f.type == "int"
        assert f.primary_key is True
        assert f.foreign_key is False
        assert f.nullable is True
        assert f.unique is False

    def test_sets_all_flags_at_once(self):
        f = parse_field_definition("Int not-null primary-key unique foreign-key")
        assert f.type == "int"
        assert f.primary_key is True
        assert f.foreign_key is True
        assert f.nullable is False
        assert f.unique is True

    def test_is_case_insensitive(self):
        f = parse_field_definition("VARCHAR NOT-NULL UNIQUE")
        assert f.type == "varchar"
        assert f.nullable is False
        assert f.unique is True

    def test_foreign_key_token(self):
        assert parse_field_definition("int foreign-key").foreign_key is True

    def test_empty_descriptor_defaults_to_varchar(self):
        f = parse_field_definition("")
        assert f.type == "varchar"
        assert f.primary_key is False
        assert f.nullable is True

    def test_leading_whitespace_yields_default_type(self):
        assert parse_field_definition("  int").type == "varchar"

    def test_first_token_is_type_even_when_it_is_a_modifier(self):
        f = parse_field_definition("primary-key")
        assert f.type == "primary-key"
        assert f.primary_key is True

    def test_tokens_match_whole_words_only(self):
        f = parse_field_definition("text not-nullable")
        assert f.nullable is True

    def test_multiple_spaces_between_tokens(self):
        f = parse_field_definition("uuid    unique")
        assert f.type == "uuid"
        assert f.unique is True


# ============================================================================
# Relation-implied foreign keys
# ============================================================================


class TestRelationImpliedForeignKey:
    def test_relation_target_is_flagged_without_token(self):
        t = profile_template()
        f = parse_field_definition("int primary-key", t, "profile", "id")
        assert f.foreign_key is True

    def test_without_context_the_token_decides(self):
        assert parse_field_definition("int primary-key").foreign_key is False

    def test_relation_source_is_not_flagged(self):
        t = profile_template()
        assert parse_field_definition("int primary-key", t, "user", "id").foreign_key is False

    def test_other_field_of_target_entity_is_not_flagged(self):
        t = profile_template()
        assert parse_field_definition("text", t, "profile", "bio").foreign_key is False

    def test_empty_entity_name_skips_relation_check(self):
        t = profile_template()
        assert parse_field_definition("int", t, "", "id").foreign_key is False

    def test_parse_entity_fields_keeps_field_order(self):
        parsed = parse_entity_fields(profile_template(), "profile")
        assert list(parsed) == ["id", "bio"]
        assert parsed["id"].foreign_key is True

    def test_parse_entity_fields_for_unknown_entity(self):
        assert parse_entity_fields(profile_template(), "missing") == {}


# ============================================================================
# Relationship resolver
# ============================================================================


class TestSplitReference:
    def test_splits_entity_and_field(self):
        assert split_reference("user.id") == ("user", "id")

    def test_missing_dot_gives_empty_field(self):
        assert split_reference("user") == ("user", "")

    def test_extra_segments_are_ignored(self):
        assert split_reference("schema.user.id") == ("schema", "user")


class TestIsRelationTarget:
    def test_matches_exact_pair(self):
        t = profile_template()
        assert is_relation_target(t, "profile", "id") is True
        assert is_relation_target(t, "profile", "bio") is False
        assert is_relation_target(t, "user", "id") is False

    def test_no_relations(self):
        assert is_relation_target(ERTemplate(), "a", "b") is False


class TestInferReferencedEntity:
    @pytest.mark.parametrize(
        "field_name, expected",
        [
            ("user_id", "user"),
            ("profile_id", "profile"),
            ("owner_ref", None),
            ("account_id", None),
            ("userid", None),
        ],
    )
    def test_naming_convention(self, field_name, expected):
        assert infer_referenced_entity(profile_template(), field_name) == expected

    def test_strips_only_the_trailing_suffix(self):
        t = ERTemplate(entities={"user_id": {"id": "int"}})
        assert infer_referenced_entity(t, "user_id_id") == "user_id"
