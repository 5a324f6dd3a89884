"""Tests for form field listing, defaults and example lookup."""

from roadmap_cards.paths import split_path
from roadmap_cards.schema_loader import build_form_schema
from roadmap_cards.schema_utils import (
    build_default_record,
    build_tree_from_keys,
    find_field_examples,
    list_form_fields,
    merge_defaults,
    schema_field_names,
)


class TestFormFields:
    def test_nested_objects_are_expanded(self, dataset_schema):
        form = build_form_schema(dataset_schema, "dataset")
        paths = [f.path for f in list_form_fields(form)]
        assert "Name" in paths
        assert "Composition.Number of instances" in paths
        assert "Imaging.Modality" in paths

    def test_required_flag(self, model_schema):
        form = build_form_schema(model_schema, "model")
        name = next(f for f in list_form_fields(form) if f.path == "Name")
        assert name.required

    def test_checkbox_field(self, dataset_schema):
        form = build_form_schema(dataset_schema, "dataset")
        modality = next(f for f in list_form_fields(form) if f.path == "Imaging.Modality")
        assert modality.checkbox
        assert "Ultrasound" in modality.enum

    def test_array_of_objects_is_structured(self, model_schema):
        form = build_form_schema(model_schema, "model")
        results = next(f for f in list_form_fields(form) if f.path == "Results")
        assert results.structured

    def test_simplified_field_is_flagged(self, model_schema):
        form = build_form_schema(model_schema, "model")
        contact = next(f for f in list_form_fields(form) if f.path == "Contact")
        assert contact.simplified
        assert contact.type == "string"


class TestTree:
    def test_order_and_nesting(self):
        tree = build_tree_from_keys(["Name", "Use.Intended", "Use.Out-of-scope", "Comments"])
        assert list(tree) == ["Name", "Use", "Comments"]
        assert tree["Use"] == {"Intended": "Use.Intended", "Out-of-scope": "Use.Out-of-scope"}

    def test_leaf_and_branch(self):
        tree = build_tree_from_keys(["a", "a.b"])
        assert tree["a"] == {"__self__": "a", "b": "a.b"}

    def test_escaped_dots(self):
        tree = build_tree_from_keys(["Version 1\\.0"])
        assert split_path(tree["Version 1.0"]) == ["Version 1.0"]


class TestDefaults:
    def test_default_record(self, model_schema):
        record = build_default_record(build_form_schema(model_schema, "model"))
        assert record["Name"] == ""
        assert record["Results"] == []
        assert isinstance(record["Use"], dict)

    def test_merge_keeps_values(self, model_schema):
        form = build_form_schema(model_schema, "model")
        merged = merge_defaults(form, {"Name": "X", "Use": {"Intended": ["Detection"]}})
        assert merged["Name"] == "X"
        assert merged["Use"]["Intended"] == ["Detection"]
        assert "Out-of-scope" in merged["Use"]


class TestSchemaLookups:
    def test_field_names_in_declared_order(self, model_schema):
        names = schema_field_names(model_schema, "model", limit=3)
        assert names == list(model_schema["$defs"]["model"]["properties"])[:3]

    def test_field_names_without_section(self):
        assert schema_field_names({"$defs": {}}, "model") == []

    def test_examples_through_ref(self, dataset_schema):
        examples = find_field_examples(dataset_schema, "dataset", "Imaging.File format")
        assert examples
        assert "DICOM" in examples

    def test_examples_direct(self, dataset_schema):
        assert find_field_examples(dataset_schema, "dataset", "License.Text") == ["CC BY 4.0", "Research use only"]

    def test_no_examples(self, model_schema):
        assert find_field_examples(model_schema, "model", "Nope") is None
