"""Tests for the editor-facing Gradio handlers."""

import asyncio
import json

from roadmap_cards.handlers_editor import (
    MAPPING_COLUMNS,
    create_card_handler,
    download_json_handler,
    download_txt_handler,
    legacy_mapping_frame,
    start_over_handler,
    update_field_handler,
    validate_handler,
)


def _new(kind, base_schemas):
    session, preview, status, info = asyncio.run(create_card_handler(kind, "", base_schemas))
    return session


class TestCreate:
    def test_new_card(self, base_schemas):
        session, preview, status, info = asyncio.run(create_card_handler("dataset", "", base_schemas))
        assert session.card_kind == "dataset"
        assert preview["Name"] == ""
        assert "Base schema" in info

    def test_no_kind(self, base_schemas):
        session, _, status, _ = asyncio.run(create_card_handler("", "", base_schemas))
        assert session is None
        assert "Select a card type" in status


class TestEditing:
    def test_update_and_validate(self, base_schemas):
        session = _new("model", base_schemas)
        assert "root.Name" in validate_handler(session)
        session, preview, status = update_field_handler("Name", "ChestNet", session)
        assert preview["Name"] == "ChestNet"
        assert status == ""
        assert "passed" in validate_handler(session)

    def test_infinite_number_reported(self, base_schemas):
        session = _new("dataset", base_schemas)
        session, _, status = update_field_handler("Composition.Number of instances", float("inf"), session)
        assert status.startswith("Composition.Number of instances:")

    def test_bad_input_reported(self, base_schemas):
        session = _new("model", base_schemas)
        session, _, status = update_field_handler("Results", "not json", session)
        assert status.startswith("Results:")

    def test_no_session(self):
        assert validate_handler(None) == "No card loaded."
        assert update_field_handler("Name", "x", None)[2] == "No card loaded."

    def test_start_over(self, base_schemas):
        session = _new("model", base_schemas)
        assert start_over_handler(session)[0] is None


class TestDownloads:
    def test_json_envelope(self, base_schemas, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.gettempdir", lambda: str(tmp_path))
        session = _new("model", base_schemas)
        update_field_handler("Name", "ChestNet", session)
        path, status = download_json_handler(session)
        assert path.endswith(".json")
        with open(path, encoding="utf-8") as f:
            envelope = json.load(f)
        assert envelope["$schema"].startswith("ROADMAP-model-")
        assert envelope["Model"]["Name"] == "ChestNet"

    def test_txt_legacy(self, base_schemas, tmp_path, monkeypatch):
        monkeypatch.setattr("tempfile.gettempdir", lambda: str(tmp_path))
        session = _new("dataset", base_schemas)
        update_field_handler("Name", "LIDC", session)
        path, status = download_txt_handler(session)
        assert path.endswith(".txt")
        with open(path, encoding="utf-8") as f:
            assert json.load(f)["dataset_name"] == "LIDC"


class TestMappingFrame:
    def test_columns_and_rows(self):
        frame = legacy_mapping_frame("model")
        assert list(frame.columns) == MAPPING_COLUMNS
        assert set(frame["Direction"]) == {"TXT → JSON", "JSON → TXT"}
        assert "model_name" in set(frame["Source Field"])
