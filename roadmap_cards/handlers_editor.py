from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from .config import settings
from .errors import CardBuilderError
from .io_utils import write_download
from .mappings import TO_CANONICAL, TO_LEGACY, mapping_rows
from .schema_loader import SchemaInfo, base_schema_info, fetch_custom_schema
from .session import (
    EditorSession,
    download_file_name,
    end_session,
    export_envelope,
    export_legacy,
    format_validation_message,
    start_session,
    validate_record,
)

logger = logging.getLogger(__name__)

MAPPING_COLUMNS = ["Direction", "Source Field", "Target Field", "Transform"]


def schema_info_markdown(info: Optional[SchemaInfo]) -> str:
    if info is None:
        return ""
    lines = [f"**{info.label}**"]
    if info.description:
        lines.append(info.description)
    return "\n\n".join(lines)


async def create_card_handler(card_kind: str, schema_url: str, base_schemas: Mapping[str, Dict[str, Any]]):
    """Start a new empty card. Returns (session, preview, status, schema info)."""
    if not card_kind:
        return None, None, "Select a card type first.", ""
    try:
        raw_schema = base_schemas[card_kind]
        info = base_schema_info(raw_schema)
        if schema_url and schema_url.strip():
            raw_schema, info = await fetch_custom_schema(schema_url.strip(), card_kind, raw_schema)
        session = start_session(card_kind, raw_schema, info)
    except (KeyError, CardBuilderError) as e:
        logger.error("Could not start %s card: %s", card_kind, e)
        return None, None, f"Error starting card: {e}", ""

    status = f"New {card_kind} card ready ({len(session.fields)} fields)."
    if not info.is_custom and schema_url and schema_url.strip():
        status += " Custom schema could not be loaded, using the base schema."
    return session, session.preview(), status, schema_info_markdown(info)


def update_field_handler(path: str, value: Any, session: Optional[EditorSession]):
    """Returns (session, preview, status)."""
    if session is None:
        return None, None, "No card loaded."
    try:
        preview = session.update_field(path, value)
    except ValueError as e:
        return session, session.preview(), f"{path}: {e}"
    return session, preview, ""


def validate_handler(session: Optional[EditorSession]) -> str:
    if session is None:
        return "No card loaded."
    issues = validate_record(session.form_schema, session.record)
    logger.info("Validation of %s card: %d issue(s)", session.card_kind, len(issues))
    return format_validation_message(issues)


def download_json_handler(session: Optional[EditorSession]):
    """Returns (file path, status)."""
    if session is None:
        return None, "No card loaded."
    payload = export_envelope(session, settings.schema_version_tag)
    file_name = download_file_name(session.card_kind, 'json')
    try:
        path = write_download(payload, file_name)
    except OSError as e:
        logger.error("JSON export failed: %s", e)
        return None, f"Error during export: {e}"
    return path, f"Export successful! Saved to {path}"


def download_txt_handler(session: Optional[EditorSession]):
    """Legacy TXT export. Returns (file path, status)."""
    if session is None:
        return None, "No card loaded."
    result = export_legacy(session)
    file_name = download_file_name(session.card_kind, 'txt')
    try:
        path = write_download(result.record, file_name, compact=True)
    except OSError as e:
        logger.error("TXT export failed: %s", e)
        return None, f"Error during export: {e}"

    status = f"Export successful! Saved to {path}"
    if result.warnings:
        status += f"\n{len(result.warnings)} conversion warning(s):\n" + "\n".join(f"• {w}" for w in result.warnings)
    return path, status


def start_over_handler(session: Optional[EditorSession]):
    """Returns (session, preview, status, schema info)."""
    end_session(session)
    return None, None, "Start over: choose a card type, load a file or upload a PDF.", ""


def legacy_mapping_frame(card_kind: str) -> pd.DataFrame:
    """Both mapping tables of a card kind as one display table."""
    rows = []
    for direction, label in ((TO_CANONICAL, "TXT → JSON"), (TO_LEGACY, "JSON → TXT")):
        for source, target, transform in mapping_rows(card_kind, direction):
            rows.append([label, source, target, transform])
    return pd.DataFrame(rows, columns=MAPPING_COLUMNS)
