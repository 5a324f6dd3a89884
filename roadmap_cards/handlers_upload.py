from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional

from .config import settings
from .converter import infer_kind_from_record, load_card_data, unwrap_canonical
from .errors import CardBuilderError
from .extraction import ExtractionPipeline
from .handlers_editor import schema_info_markdown
from .io_utils import check_upload_size, extract_pdf_text, read_json_content, upload_path
from .llm_client import TextGenerator, check_connection
from .session import start_session

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[[], TextGenerator]


def _started(kind: str, record: Dict[str, Any], base_schemas: Mapping[str, Dict[str, Any]], warnings=None):
    raw_schema = base_schemas[kind]
    session = start_session(kind, raw_schema, record=record, warnings=warnings)
    return session, session.preview(), schema_info_markdown(session.schema_info)


def load_card_file_handler(file_obj, base_schemas: Mapping[str, Dict[str, Any]], max_bytes: Optional[int] = None):
    """Load a previously exported JSON card or a legacy TXT card.

    Returns (session, preview, status, schema info).
    """
    try:
        check_upload_size(file_obj, max_bytes or settings.max_upload_bytes)
        data = read_json_content(file_obj)
    except CardBuilderError as e:
        return None, None, str(e), ""
    except (OSError, ValueError) as e:
        return None, None, f"Error parsing file: {str(e)}", ""

    file_name = os.path.basename(upload_path(file_obj))
    kind, record, warnings, file_format = load_card_data(data, file_name)
    if kind is None:
        kind = infer_kind_from_record(data)
        if kind is None:
            return None, None, "Unable to determine card type (expected a Model or Dataset card).", ""
        record = dict(data)

    session, preview, info = _started(kind, record, base_schemas, warnings)
    status = f"Loaded {kind} card from {file_format.upper()} file."
    if warnings:
        status += f"\n{len(warnings)} conversion warning(s):\n" + "\n".join(f"• {w}" for w in warnings)
    return session, preview, status, info


async def process_pdf_handler(
    file_obj,
    base_schemas: Mapping[str, Dict[str, Any]],
    generator_factory: GeneratorFactory,
    max_bytes: Optional[int] = None,
):
    """Extract a card from a journal article PDF.

    Returns (session, preview, status, schema info, classification reasoning).
    """
    try:
        check_upload_size(file_obj, max_bytes or settings.max_upload_bytes)
        text = extract_pdf_text(file_obj)
        if not text.strip():
            return None, None, "No text could be extracted from the PDF.", "", ""
        generator = generator_factory()
    except CardBuilderError as e:
        logger.error("PDF upload rejected: %s", e)
        return None, None, str(e), "", ""

    pipeline = ExtractionPipeline(generator, base_schemas)
    outcome = await pipeline.extract(text)
    reasoning = outcome.artifact.classification.reasoning if outcome.artifact.classification else ""
    if not outcome.succeeded:
        return None, None, f"Failed to process PDF with AI. {outcome.failure}", "", reasoning

    kind = outcome.card_kind
    record = unwrap_canonical(outcome.structured, kind)
    session, preview, info = _started(kind, record, base_schemas)
    return session, preview, f"PDF processed: extracted a {kind} card. Review every field before exporting.", info, reasoning


async def check_connection_handler(generator_factory: GeneratorFactory) -> str:
    try:
        reply = await check_connection(generator_factory())
    except CardBuilderError as e:
        return f"Connection failed: {e}"
    return f"Connection OK: {reply}"
