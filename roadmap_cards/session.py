"""Editing session for one card.

An `EditorSession` is created by `start_session` (new card, loaded file or
extracted PDF) and dropped by `end_session` (start over). It owns the only
mutable state of the editor: the live canonical record.
"""
from __future__ import annotations

import datetime
import json
import logging
import math
import re
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft202012Validator

from .accessors import delete_value_by_path, get_value_by_path, is_empty, set_value_by_path
from .converter import ConversionResult, to_legacy
from .errors import ConversionWarning
from .paths import display_path, split_path
from .schema_loader import SchemaInfo, base_schema_info, build_form_schema
from .schema_resolver import SchemaNode, normalize_card_kind, section_name
from .schema_utils import FormField, find_field_examples, list_form_fields, merge_defaults

logger = logging.getLogger(__name__)

VALIDATION_MESSAGE_LIMIT = 5
_REQUIRED_MESSAGE = re.compile(r"^'(?P<name>.+)' is a required property$")


@dataclass
class EditorSession:
    card_kind: str
    form_schema: SchemaNode
    raw_schema: Dict[str, Any]
    record: Dict[str, Any]
    schema_info: SchemaInfo
    fields: List[FormField] = field(default_factory=list)
    warnings: List[ConversionWarning] = field(default_factory=list)

    def field_at(self, path: str) -> Optional[FormField]:
        for form_field in self.fields:
            if form_field.path == path:
                return form_field
        return None

    def value_at(self, path: str) -> Any:
        return get_value_by_path(self.record, path)

    def examples_for(self, path: str) -> Optional[List[Any]]:
        return find_field_examples(self.raw_schema, self.card_kind, path)

    def preview(self) -> Dict[str, Any]:
        return deepcopy(self.record)

    def update_field(self, path: str, raw_value: Any) -> Dict[str, Any]:
        """Store one UI input at `path` and return the new preview.

        Raises ValueError when the input cannot be coerced to the field type;
        the record is left unchanged in that case.
        """
        form_field = self.field_at(path)
        value = coerce_value(form_field, raw_value) if form_field else raw_value
        if value is None:
            delete_value_by_path(self.record, path)
        else:
            set_value_by_path(self.record, path, value)
        logger.debug("Field %s updated", path)
        return self.preview()


def start_session(
    card_kind: str,
    raw_schema: Mapping[str, Any],
    schema_info: Optional[SchemaInfo] = None,
    record: Optional[Mapping[str, Any]] = None,
    warnings: Optional[List[ConversionWarning]] = None,
) -> EditorSession:
    kind = normalize_card_kind(card_kind)
    form_schema = build_form_schema(raw_schema, kind)
    session = EditorSession(
        card_kind=kind,
        form_schema=form_schema,
        raw_schema=dict(raw_schema),
        record=merge_defaults(form_schema, deepcopy(record) if record else {}),
        schema_info=schema_info or base_schema_info(raw_schema),
        fields=list_form_fields(form_schema),
        warnings=list(warnings or []),
    )
    logger.info("Editor session started: %s card, %d fields", kind, len(session.fields))
    return session


def end_session(session: Optional[EditorSession]) -> None:
    if session is not None:
        logger.info("Editor session ended: %s card", session.card_kind)
    return None


# --- Input coercion -------------------------------------------------------------

def coerce_value(form_field: FormField, raw_value: Any) -> Any:
    """Convert a raw UI value to the type the schema declares. None means 'unset'."""
    kind = form_field.type
    if kind in ('integer', 'number'):
        if raw_value is None or (isinstance(raw_value, str) and not raw_value.strip()):
            return None
        number = float(raw_value)
        if not math.isfinite(number):
            raise ValueError(f"{form_field.title} must be a finite number")
        if kind == 'integer':
            if number != int(number):
                raise ValueError(f"{form_field.title} must be a whole number")
            return int(number)
        return number

    if kind == 'boolean':
        return bool(raw_value)

    if form_field.structured:
        empty = [] if kind == 'array' else {}
        if raw_value is None or (isinstance(raw_value, str) and not raw_value.strip()):
            return empty
        if not isinstance(raw_value, str):
            return raw_value
        try:
            value = json.loads(raw_value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{form_field.title} must be valid JSON ({exc.msg})") from exc
        if not isinstance(value, type(empty)):
            raise ValueError(f"{form_field.title} must be a JSON {'list' if kind == 'array' else 'object'}")
        return value

    if kind == 'array':
        if raw_value is None:
            return []
        if isinstance(raw_value, list):
            return list(raw_value)
        return [line.strip() for line in str(raw_value).splitlines() if line.strip()]

    return '' if raw_value is None else str(raw_value)


def display_value(form_field: FormField, value: Any) -> Any:
    """Inverse of `coerce_value`: the value a UI input shows for a stored value."""
    if form_field.structured:
        if is_empty(value):
            return ''
        return json.dumps(value, indent=2, ensure_ascii=False)
    if form_field.type == 'array':
        values = value if isinstance(value, list) else ([] if is_empty(value) else [value])
        if form_field.enum:
            return [v for v in values if v in form_field.enum]
        return '\n'.join(str(v) for v in values)
    if form_field.type in ('integer', 'number'):
        return value if isinstance(value, (int, float)) and not isinstance(value, bool) else None
    if form_field.type == 'boolean':
        return bool(value)
    return '' if value is None else value


# --- Validation ------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def prune_empty(value: Any) -> Any:
    """Drop unanswered fields ('' / None / [] / {}) so they validate as absent."""
    if isinstance(value, dict):
        pruned = {k: prune_empty(v) for k, v in value.items()}
        return {k: v for k, v in pruned.items() if not is_empty(v)}
    if isinstance(value, list):
        return [prune_empty(v) for v in value]
    if isinstance(value, str):
        return value if value.strip() else ''
    return value


def validate_record(form_schema: Mapping[str, Any], record: Any) -> List[ValidationIssue]:
    validator = Draft202012Validator(form_schema)
    issues: List[ValidationIssue] = []
    for error in validator.iter_errors(prune_empty(record)):
        parts = list(error.absolute_path)
        if error.validator == 'required':
            match = _REQUIRED_MESSAGE.match(error.message)
            if match:
                parts.append(match.group('name'))
        issues.append(ValidationIssue(display_path(parts), error.message))
    issues.sort(key=lambda issue: split_path(issue.path))
    return issues


def format_validation_message(issues: List[ValidationIssue], limit: int = VALIDATION_MESSAGE_LIMIT) -> str:
    if not issues:
        return "Validation passed. The card matches the schema."
    lines = [f"Validation failed with {len(issues)} error(s):"]
    lines.extend(f"• {issue}" for issue in issues[:limit])
    if len(issues) > limit:
        lines.append(f"... and {len(issues) - limit} more errors")
    return "\n".join(lines)


# --- Export ----------------------------------------------------------------------

def schema_tag(card_kind: str, version_tag: str) -> str:
    return f"ROADMAP-{normalize_card_kind(card_kind)}-{version_tag}.json"


def export_envelope(session: EditorSession, version_tag: str) -> Dict[str, Any]:
    return {
        '$schema': schema_tag(session.card_kind, version_tag),
        section_name(session.card_kind): deepcopy(session.record),
    }


def export_legacy(session: EditorSession) -> ConversionResult:
    return to_legacy(session.record, session.card_kind)


def download_file_name(card_kind: str, extension: str, today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return f"roadmap-{normalize_card_kind(card_kind)}-{today.isoformat()}.{extension}"
