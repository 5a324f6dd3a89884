"""Tests for conversion between legacy TXT cards and canonical ROADMAP records."""

import pytest

from roadmap_cards.converter import (
    consolidate_sections,
    decompose_sections,
    detect_card_kind,
    detect_file_format,
    infer_kind_from_record,
    load_card_data,
    to_canonical,
    to_legacy,
    unwrap_canonical,
)
from roadmap_cards.errors import UnknownCardKind
from roadmap_cards.mappings import DATASET_COMMENTS, MODEL_COMMENTS, TO_CANONICAL, TO_LEGACY, mapping_rows


class TestToCanonical:
    def test_model_results(self):
        """Legacy results map element-wise with Metric wrapped in a list."""
        legacy = {"model_name": "X", "results": [{"result_metric": "AUC", "result_value": "0.9"}]}
        result = to_canonical(legacy, "model")
        assert result.record["Name"] == "X"
        assert result.record["Results"][0]["Metric"] == ["AUC"]
        assert result.record["Results"][0]["Value"] == "0.9"

    def test_missing_fields_get_defaults(self):
        result = to_canonical({"model_name": "X"}, "model")
        assert result.record["Use"]["Intended"] == []
        assert result.record["Results"] == []
        assert result.record["Funding"] == ""
        assert "Technical Details" not in result.record

    def test_technical_details_kept_when_any_value(self):
        record = to_canonical({"model_name": "X", "time_to_train": "4 h"}, "model").record
        assert record["Technical Details"]["Training Time"] == "4 h"
        assert record["Technical Details"]["Hardware Requirements"] == "NA"

    def test_missing_name_is_a_warning(self):
        result = to_canonical({"results": []}, "model")
        assert any(w.field == "model_name" for w in result.warnings)

    def test_never_raises_on_garbage(self):
        result = to_canonical("not a card", "dataset")
        assert result.record["Name"] == ""
        assert result.warnings

    def test_unknown_kind_raises(self):
        with pytest.raises(UnknownCardKind):
            to_canonical({"model_name": "X"}, "project")
        with pytest.raises(UnknownCardKind):
            to_legacy({"Name": "X"}, "project")

    def test_unparsable_count(self):
        result = to_canonical({"dataset_name": "D", "number_of_instances": "many"}, "dataset")
        assert result.record["Composition"]["Number of instances"] == 0
        assert any("Number of instances" in w.field for w in result.warnings)

    def test_numeric_count(self):
        record = to_canonical({"dataset_name": "D", "number_of_instances": "1,200"}, "dataset").record
        assert record["Composition"]["Number of instances"] == 1200

    def test_content_codes_inferred(self):
        record = to_canonical({"dataset_name": "D", "imaging_details": ["Chest CT", "1 mm slices"]}, "dataset").record
        assert record["Indexing code"]["Content"] == ["CT - Computed Tomography"]
        assert record["Imaging"]["Pre-processing"] == "Chest CT; 1 mm slices"

    def test_free_text_consolidation(self):
        legacy = {"dataset_name": "D", "motivation": "Benchmarking", "external_data": "", "dataset_availability": "Public"}
        record = to_canonical(legacy, "dataset").record
        assert record["Comments"] == "Motivation: Benchmarking\n\nAvailability: Public"

    def test_empty_partitions_omitted(self):
        record = to_canonical({"dataset_name": "D", "partitions": []}, "dataset").record
        assert "Subsets" not in record

    def test_partitions_mapped_per_item(self):
        """Counts fall back to patient_count and missing demographics read 'Not specified'."""
        legacy = {
            "dataset_name": "D",
            "partitions": [
                {"subset_name": "test", "subset_description": "Held out", "patient_count": 120},
                {"subset_name": "train", "number_instances": "800", "patient_count": "700", "age": "18-90", "sex": "F"},
            ],
        }
        test, train = to_canonical(legacy, "dataset").record["Subsets"]
        assert test["Subset name"] == "test"
        assert test["Subset description"] == "Held out"
        assert test["Number of instances"] == "120"
        assert test["Patient count"] == "120"
        assert test["Age"] == "Not specified"
        assert test["Sex"] == "Not specified"
        assert train["Number of instances"] == "800"
        assert train["Patient count"] == "700"
        assert (train["Age"], train["Sex"]) == ("18-90", "F")

    def test_imaging_placeholder_is_empty(self):
        record = to_canonical({"dataset_name": "D", "imaging_details": ["Image data"]}, "dataset").record
        assert record["Imaging"]["Pre-processing"] == ""


class TestToLegacy:
    def test_scalar_metric(self):
        canonical = {"Name": "X", "Results": [{"Metric": ["AUC"], "Value": "0.9"}]}
        legacy = to_legacy(canonical, "model").record
        assert legacy["model_name"] == "X"
        assert legacy["results"][0]["result_metric"] == "AUC"
        assert legacy["model_code_availability"] == "NA"

    def test_labels_decomposed(self):
        canonical = {"Name": "X", "Comments": "Lung nodules on CT\n\nCode Availability: github.com/x\n\nHardware: 1 GPU"}
        legacy = to_legacy(canonical, "model").record
        assert legacy["medical_task"] == "Lung nodules on CT"
        assert legacy["model_code_availability"] == "github.com/x"
        assert legacy["hardware_requirements"] == "1 GPU"

    def test_technical_details_override_free_text(self):
        canonical = {
            "Name": "X",
            "Comments": "Training Time: 3 days",
            "Technical Details": {"Training Time": "72 h"},
        }
        assert to_legacy(canonical, "model").record["time_to_train"] == "72 h"

    def test_subsets_default_site_count(self):
        canonical = {"Name": "D", "Subsets": [{"Subset name": "train", "Number of instances": "80"}]}
        partition = to_legacy(canonical, "dataset").record["partitions"][0]
        assert partition["site_count"] == "1"
        assert partition["patient_count"] == "80"


class TestRoundTrip:
    def test_model_direct_fields_preserved(self):
        canonical = {
            "Name": "ChestNet",
            "Indexing code": {"Content": ["CT - Computed Tomography"]},
            "Date": {"Created": "2024-01-02"},
            "License": {"Text": "MIT"},
            "Funding": "NIH",
            "Input": "Chest CT",
            "Use": {"Intended": ["Detection"]},
            "User": {"Intended": ["Radiologist"]},
            "Results": [{"Result Information": "internal", "Metric": ["Sensitivity"], "Value": "0.9", "Subset": "test"}],
            "Limitations": "Single site",
            "Technical Details": {
                "Code Availability": "github",
                "Sustainability": "NA",
                "Training Time": "2 h",
                "Inference Time": "NA",
                "Hardware Requirements": "NA",
            },
        }
        back = to_canonical(to_legacy(canonical, "model").record, "model").record
        for key in ("Name", "Indexing code", "Date", "License", "Funding", "Input", "Use", "User", "Limitations", "Technical Details"):
            assert back[key] == canonical[key], key
        assert back["Results"][0]["Metric"] == ["Sensitivity"]
        assert back["Results"][0]["Value"] == "0.9"
        assert back["Results"][0]["Subset"] == "test"

    def test_model_without_details_stays_clean(self):
        """NA placeholders written on export do not come back as Comments text."""
        back = to_canonical(to_legacy({"Name": "X", "Comments": ""}, "model").record, "model").record
        assert back["Comments"] == ""
        assert "Technical Details" not in back

    def test_dataset_direct_fields_preserved(self):
        canonical = {
            "Name": "LIDC",
            "Comments": "Purpose: Screening research",
            "Composition": {
                "Number of instances": 1018,
                "Representativeness": {"Population": "Adults", "Sample type": "Consecutive", "Verification": "Biopsy"},
            },
            "Imaging": {
                "File format": ["DICOM"],
                "Resolution": "0.7 mm",
                "Burned-in PHI": "No",
                "Pre-processing": "Resampled; Windowed",
            },
            "Collection process": "Seven academic sites",
            "Labeling": "Four thoracic radiologists",
            "Confidentiality": "De-identified",
            "License": {"Text": "CC BY 3.0"},
            "Subsets": [
                {
                    "Subset name": "train",
                    "Subset description": "Training split",
                    "Number of instances": "800",
                    "Site count": "5",
                    "Patient count": "700",
                    "Age": "18-90",
                    "Sex": "Mixed",
                    "Demographic": "US adults",
                    "Criterion": "Nodule over 3 mm",
                }
            ],
        }
        back = to_canonical(to_legacy(canonical, "dataset").record, "dataset").record
        for key in ("Name", "Comments", "Imaging", "Collection process", "Labeling", "Confidentiality", "License", "Subsets"):
            assert back[key] == canonical[key], key
        assert back["Composition"]["Number of instances"] == 1018
        assert back["Composition"]["Representativeness"] == canonical["Composition"]["Representativeness"]

    def test_dataset_shared_legacy_keys(self):
        """Ethical review and Sample Size Calculation have no legacy key of their own."""
        canonical = {
            "Name": "D",
            "Ethical review": "IRB 2021-44 approved",
            "Confidentiality": "De-identified",
            "Composition": {"Sample Size Calculation": "Power analysis", "Representativeness": {"Sample type": "Consecutive"}},
        }
        back = to_canonical(to_legacy(canonical, "dataset").record, "dataset").record
        assert back["Ethical review"] == "De-identified"
        assert back["Composition"]["Sample Size Calculation"] == "Consecutive"

    def test_empty_pre_processing_stays_empty(self):
        legacy = to_legacy({"Name": "D"}, "dataset").record
        assert legacy["imaging_details"] == ["Image data"]
        assert to_canonical(legacy, "dataset").record["Imaging"]["Pre-processing"] == ""

    def test_labeled_sections_survive(self):
        legacy = {"dataset_name": "D", "motivation": "Benchmark", "purpose": "Training", "dataset_availability": "Public"}
        canonical = to_canonical(legacy, "dataset").record
        back = to_legacy(canonical, "dataset").record
        assert back["motivation"] == "Benchmark"
        assert back["purpose"] == "Training"
        assert back["dataset_availability"] == "Public"


class TestFreeText:
    def test_capture_stops_at_newline(self):
        text = "Code Availability: on request\nsecond line"
        assert decompose_sections(text, MODEL_COMMENTS.sections)["model_code_availability"] == "on request"

    def test_labels_case_insensitive(self):
        out = decompose_sections("MOTIVATION: x", DATASET_COMMENTS.sections)
        assert out["motivation"] == "x"
        assert out["purpose"] == ""

    def test_lead_paragraph_skips_labeled(self):
        text = "Sustainability: low\n\nSegment the liver"
        assert decompose_sections(text, MODEL_COMMENTS.sections)["medical_task"] == "Segment the liver"

    def test_consolidate_skips_empty(self):
        assert consolidate_sections({"motivation": "", "purpose": "P"}, DATASET_COMMENTS.sections) == "Purpose: P"


class TestDetection:
    def test_file_format_by_extension(self):
        assert detect_file_format("card.TXT", {"Model": {}}) == "txt"
        assert detect_file_format("card.json", {"model_name": "x"}) == "json"

    def test_file_format_by_content(self):
        assert detect_file_format(None, {"dataset_name": "x"}) == "txt"
        assert detect_file_format("upload", {"Dataset": {}}) == "json"

    def test_card_kind(self):
        assert detect_card_kind({"Model": {}}) == "model"
        assert detect_card_kind({"dataset_name": "x"}) == "dataset"
        assert detect_card_kind({"foo": 1}) is None

    def test_bare_record_kind(self):
        assert infer_kind_from_record({"Name": "LIDC", "Composition": {}, "Labeling": "manual"}) == "dataset"
        assert infer_kind_from_record({"Name": "ChestNet", "Results": []}) == "model"
        assert infer_kind_from_record({"foo": 1}) is None

    def test_unwrap(self):
        assert unwrap_canonical({"Model": {"Name": "X"}}, "model") == {"Name": "X"}
        assert unwrap_canonical({"Dataset": {}}, "model") == {}

    def test_load_legacy(self):
        kind, record, warnings, fmt = load_card_data({"model_name": "X"}, "card.txt")
        assert (kind, fmt) == ("model", "txt")
        assert record["Name"] == "X"

    def test_load_canonical(self):
        kind, record, _, fmt = load_card_data({"$schema": "ROADMAP-dataset-2025-05.json", "Dataset": {"Name": "D"}}, "d.json")
        assert (kind, record, fmt) == ("dataset", {"Name": "D"}, "json")


class TestMappingRows:
    def test_rows_cover_every_direction(self):
        for kind in ("model", "dataset"):
            for direction in (TO_CANONICAL, TO_LEGACY):
                rows = mapping_rows(kind, direction)
                assert rows
                assert all(len(row) == 3 for row in rows)
