"""Tests for $ref resolution of ROADMAP schema documents."""

import pytest

from roadmap_cards.errors import SchemaSectionMissing, UnknownCardKind
from roadmap_cards.schema_resolver import contains_ref, max_node_depth, normalize_card_kind, resolve, section_name


def _document(defs, kind="model"):
    return {"$defs": defs, "properties": {kind.capitalize(): {"$ref": f"#/$defs/{kind}"}}}


class TestSectionLookup:
    def test_missing_section_raises(self):
        """A document without $defs.<kind> fails before any resolution."""
        doc = _document({"other": {"type": "object"}})
        with pytest.raises(SchemaSectionMissing):
            resolve(doc, "model")

    def test_card_kind_is_case_normalized(self):
        doc = _document({"model": {"properties": {"Name": {"type": "string"}}, "required": ["Name"]}})
        node = resolve(doc, "  MODEL ")
        assert node["title"] == "Model Information"
        assert node["required"] == ["Name"]

    def test_unknown_kind(self):
        with pytest.raises(UnknownCardKind):
            normalize_card_kind("project")

    def test_section_name(self):
        assert section_name("dataset") == "Dataset"

    def test_legacy_definitions_keyword(self):
        """`definitions` is accepted when `$defs` is absent."""
        doc = {"definitions": {"model": {"properties": {"Name": {"type": "string"}}}}}
        assert "Name" in resolve(doc, "model")["properties"]


class TestReferences:
    def test_refs_are_inlined(self):
        doc = _document(
            {
                "model": {"properties": {"License": {"$ref": "#/$defs/license", "title": "Licence"}}},
                "license": {"type": "object", "title": "License", "properties": {"Text": {"type": "string"}}},
            }
        )
        node = resolve(doc, "model")
        lic = node["properties"]["License"]
        assert lic["type"] == "object"
        assert lic["title"] == "Licence"
        assert "Text" in lic["properties"]
        assert not contains_ref(node)

    def test_self_reference_terminates(self):
        """A definition that refers to itself becomes a string node on the second visit."""
        doc = _document(
            {
                "model": {"properties": {"Parent": {"$ref": "#/$defs/node"}}},
                "node": {"type": "object", "properties": {"Child": {"$ref": "#/$defs/node"}}},
            }
        )
        node = resolve(doc, "model")
        child = node["properties"]["Parent"]["properties"]["Child"]
        assert child["type"] == "string"
        assert "circular reference avoided" in child["description"]
        assert not contains_ref(node)

    def test_siblings_may_reuse_a_reference(self):
        """The visited set is per path, so two siblings both resolve fully."""
        doc = _document(
            {
                "model": {
                    "properties": {
                        "Author": {"$ref": "#/$defs/person"},
                        "Contact": {"$ref": "#/$defs/person"},
                    }
                },
                "person": {"type": "object", "properties": {"Name": {"type": "string"}}},
            }
        )
        props = resolve(doc, "model")["properties"]
        assert props["Author"]["type"] == "object"
        assert props["Contact"]["type"] == "object"

    def test_missing_target_becomes_text_field(self):
        doc = _document({"model": {"properties": {"Ghost": {"$ref": "#/$defs/nowhere"}}}})
        ghost = resolve(doc, "model")["properties"]["Ghost"]
        assert ghost["type"] == "string"
        assert not contains_ref(ghost)

    def test_depth_is_bounded(self):
        """A long non-cyclic chain is truncated to an empty object past the ceiling."""
        defs = {"model": {"properties": {"Level": {"$ref": "#/$defs/l0"}}}}
        for i in range(30):
            defs[f"l{i}"] = {"type": "object", "properties": {"Next": {"$ref": f"#/$defs/l{i + 1}"}}}
        defs["l30"] = {"type": "string"}
        node = resolve(_document(defs), "model", max_depth=10)
        assert not contains_ref(node)
        assert max_node_depth(node) <= 12

    def test_packaged_schemas_resolve(self, model_schema, dataset_schema):
        for raw, kind in ((model_schema, "model"), (dataset_schema, "dataset")):
            node = resolve(raw, kind)
            assert node["properties"]
            assert "Name" in node["required"]
            assert not contains_ref(node)
