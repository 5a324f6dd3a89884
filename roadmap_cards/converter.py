from __future__ import annotations

import logging
import re
from copy import deepcopy
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from . import CARD_KINDS
from .accessors import delete_value_by_path, first_value, get_value_by_path, is_empty, set_value_by_path
from .errors import ConversionWarning
from .mappings import (
    IMAGING_PLACEHOLDER,
    LEGACY_NAME_KEYS,
    NOT_AVAILABLE,
    TABLES,
    TO_CANONICAL,
    TO_LEGACY,
    ArrayMapping,
    FieldMapping,
    FreeTextMapping,
    GroupMapping,
    Section,
)
from .schema_resolver import normalize_card_kind, section_name

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = '\n\n'


@dataclass
class ConversionResult:
    record: Dict[str, Any]
    warnings: List[ConversionWarning] = dc_field(default_factory=list)


# --- Transforms ----------------------------------------------------------------
# Each transform receives a non-empty value and a `warn(message)` callback.

def _identity(value, warn):
    return deepcopy(value)


def _as_list(value, warn):
    if isinstance(value, list):
        return [v for v in value if not is_empty(v)]
    return [value]


def _as_scalar_or_list(value, warn):
    if isinstance(value, list):
        values = [v for v in value if not is_empty(v)]
        if len(values) == 1:
            return values[0]
        return values or ''
    return value


def _as_text(value, warn):
    return value if isinstance(value, str) else str(value)


def _to_int(value, warn):
    if isinstance(value, bool):
        warn(f"expected an integer, got {value!r}")
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        as_float = float(str(value).replace(',', '').strip())
        as_int = int(as_float)
    except (ValueError, OverflowError):
        warn(f"could not parse {value!r} as an integer, using 0")
        return 0
    if as_float != as_int:
        warn(f"truncated {value!r} to an integer")
    return as_int


def _join_semicolon(value, warn):
    if isinstance(value, list):
        return '; '.join(str(v) for v in value if not is_empty(v))
    return str(value)


def _join_imaging_details(value, warn):
    parts = value if isinstance(value, list) else [value]
    return _join_semicolon([p for p in parts if p != IMAGING_PLACEHOLDER], warn)


def _split_semicolon(value, warn):
    if isinstance(value, list):
        return list(value)
    return [part for part in str(value).split('; ') if part]


def _infer_content_codes(value, warn):
    details = ' '.join(str(v) for v in value) if isinstance(value, list) else str(value)
    codes = []
    if 'CT' in details or 'computed tomography' in details:
        codes.append('CT - Computed Tomography')
    if 'MRI' in details or 'magnetic resonance' in details:
        codes.append('MR - Magnetic Resonance')
    return codes or ['OT - Other']


TRANSFORMS: Dict[str, Callable[[Any, Callable[[str], None]], Any]] = {
    'identity': _identity,
    'as_list': _as_list,
    'as_scalar_or_list': _as_scalar_or_list,
    'as_text': _as_text,
    'to_int': _to_int,
    'join_semicolon': _join_semicolon,
    'join_imaging_details': _join_imaging_details,
    'split_semicolon': _split_semicolon,
    'infer_content_codes': _infer_content_codes,
}


# --- Free text -----------------------------------------------------------------

def consolidate_sections(source: Mapping[str, Any], sections: Sequence[Section]) -> str:
    """Join the non-empty sections as paragraphs; labeled ones read 'Label: value'."""
    paragraphs = []
    for section in sections:
        value = source.get(section.key) if isinstance(source, Mapping) else None
        if is_empty(value) or value == NOT_AVAILABLE:
            continue
        text = ', '.join(str(v) for v in value) if isinstance(value, list) else str(value)
        paragraphs.append(f"{section.label}: {text}" if section.label else text)
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def extract_labeled(text: str, label: str) -> str:
    """Text after 'Label:' on the first line starting with that label, up to end of line."""
    if not text:
        return ''
    match = re.search(rf"^[ \t]*{re.escape(label)}:[ \t]*([^\n]*)", text, flags=re.IGNORECASE | re.MULTILINE)
    return match.group(1).strip() if match else ''


def decompose_sections(text: Any, sections: Sequence[Section]) -> Dict[str, str]:
    """Best-effort inverse of `consolidate_sections`."""
    if not isinstance(text, str):
        text = '' if text is None else str(text)

    out: Dict[str, str] = {}
    labels = [s.label for s in sections if s.label]
    for section in sections:
        if section.label:
            out[section.key] = extract_labeled(text, section.label)

    lead_sections = [s for s in sections if not s.label]
    if lead_sections:
        label_start = re.compile(
            rf"^[ \t]*(?:{'|'.join(re.escape(lbl) for lbl in labels)}):" if labels else r"(?!)",
            flags=re.IGNORECASE,
        )
        paragraphs = [p.strip() for p in re.split(r"\n[ \t]*\n", text) if p.strip()]
        unlabeled = [p for p in paragraphs if not label_start.match(p)]
        for index, section in enumerate(lead_sections):
            out[section.key] = unlabeled[index] if index < len(unlabeled) else ''
    return out


# --- Table interpretation -------------------------------------------------------

class _Converter:
    def __init__(self, direction: str, card_kind: str):
        self.direction = direction
        self.card_kind = card_kind
        self.warnings: List[ConversionWarning] = []

    def warn(self, field_name: str, message: str) -> None:
        logger.warning("Conversion warning (%s %s) %s: %s", self.card_kind, self.direction, field_name, message)
        self.warnings.append(ConversionWarning(field_name, message))

    def run(self, table, source: Mapping[str, Any]) -> Dict[str, Any]:
        target: Dict[str, Any] = {}
        for entry in table:
            if isinstance(entry, FieldMapping):
                self.apply_field(entry, source, target)
            elif isinstance(entry, FreeTextMapping):
                self.apply_free_text(entry, source, target)
            elif isinstance(entry, ArrayMapping):
                self.apply_array(entry, source, target)
            elif isinstance(entry, GroupMapping):
                self.apply_group(entry, source, target)
        return target

    def transform(self, mapping: FieldMapping, value: Any, field_name: str) -> Any:
        fn = TRANSFORMS.get(mapping.transform)
        if fn is None:
            self.warn(field_name, f"unknown transform {mapping.transform!r}, value copied")
            return deepcopy(value)
        try:
            return fn(value, lambda message: self.warn(field_name, message))
        except (TypeError, ValueError) as exc:
            self.warn(field_name, f"{mapping.transform} failed ({exc}), using default")
            return deepcopy(mapping.default)

    def apply_field(self, mapping: FieldMapping, source: Any, target: Dict[str, Any], label: Optional[str] = None) -> None:
        name = label or mapping.target
        value = first_value(source, mapping.source)
        if not is_empty(value):
            value = self.transform(mapping, value, name)
            if not is_empty(value):
                set_value_by_path(target, mapping.target, value)
                return
        # Direct mappings only override what free text already produced when they have a value.
        if is_empty(get_value_by_path(target, mapping.target)):
            set_value_by_path(target, mapping.target, deepcopy(mapping.default))

    def apply_free_text(self, mapping: FreeTextMapping, source: Mapping[str, Any], target: Dict[str, Any]) -> None:
        if self.direction == TO_CANONICAL:
            set_value_by_path(target, mapping.field, consolidate_sections(source, mapping.sections))
            return
        for key, value in decompose_sections(get_value_by_path(source, mapping.field), mapping.sections).items():
            target[key] = value

    def apply_array(self, mapping: ArrayMapping, source: Any, target: Dict[str, Any]) -> None:
        items = get_value_by_path(source, mapping.source)
        if is_empty(items):
            items = []
        elif isinstance(items, Mapping):
            self.warn(mapping.source, "expected a list, wrapped a single entry")
            items = [items]
        elif not isinstance(items, list):
            self.warn(mapping.source, f"expected a list, got {type(items).__name__}; dropped")
            items = []

        converted = []
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                self.warn(f"{mapping.source}.{index}", "entry is not an object; skipped")
                continue
            out: Dict[str, Any] = {}
            for item_mapping in mapping.items:
                self.apply_field(item_mapping, item, out, f"{mapping.target}.{index}.{item_mapping.target}")
            converted.append(out)

        if not converted and mapping.omit_when_empty:
            delete_value_by_path(target, mapping.target)
            return
        set_value_by_path(target, mapping.target, converted)

    def apply_group(self, mapping: GroupMapping, source: Any, target: Dict[str, Any]) -> None:
        group: Dict[str, Any] = {}
        for item in mapping.fields:
            self.apply_field(item, source, group, f"{mapping.target}.{item.target}")
        if mapping.omit_when_placeholder and all(
            is_empty(v) or v == mapping.placeholder for v in group.values()
        ):
            delete_value_by_path(target, mapping.target)
            return
        set_value_by_path(target, mapping.target, group)


def to_canonical(legacy: Any, card_kind: str) -> ConversionResult:
    """Map a legacy TXT card onto the canonical nested record.

    Never raises for a valid card kind: problems with the card itself become
    warnings. An unknown `card_kind` raises `UnknownCardKind`.
    """
    kind = normalize_card_kind(card_kind)
    converter = _Converter(TO_CANONICAL, kind)
    if not isinstance(legacy, Mapping):
        converter.warn('(root)', f"expected an object, got {type(legacy).__name__}")
        legacy = {}
    name_key = LEGACY_NAME_KEYS[kind]
    if is_empty(legacy.get(name_key)):
        converter.warn(name_key, "required legacy field is missing")
    record = converter.run(TABLES[(kind, TO_CANONICAL)], legacy)
    return ConversionResult(record, converter.warnings)


def to_legacy(canonical: Any, card_kind: str) -> ConversionResult:
    """Map a canonical record onto the flat legacy TXT shape.

    Same contract as `to_canonical`: only an unknown `card_kind` raises.
    """
    kind = normalize_card_kind(card_kind)
    converter = _Converter(TO_LEGACY, kind)
    if not isinstance(canonical, Mapping):
        converter.warn('(root)', f"expected an object, got {type(canonical).__name__}")
        canonical = {}
    if is_empty(canonical.get('Name')):
        converter.warn('Name', "card has no name")
    record = converter.run(TABLES[(kind, TO_LEGACY)], canonical)
    return ConversionResult(record, converter.warnings)


# --- Format detection -----------------------------------------------------------

def detect_file_format(file_name: Optional[str], data: Any) -> str:
    """'txt' for legacy flat cards, 'json' for canonical ROADMAP exports."""
    lowered = (file_name or '').lower()
    if lowered.endswith('.txt'):
        return 'txt'
    if lowered.endswith('.json'):
        return 'json'
    if isinstance(data, Mapping):
        if any(key in data for key in LEGACY_NAME_KEYS.values()):
            return 'txt'
    return 'json'


def detect_card_kind(data: Any) -> Optional[str]:
    if not isinstance(data, Mapping):
        return None
    for kind in CARD_KINDS:
        if section_name(kind) in data or LEGACY_NAME_KEYS[kind] in data:
            return kind
    return None


def unwrap_canonical(data: Any, card_kind: str) -> Dict[str, Any]:
    """The `Model`/`Dataset` section of an export envelope, or `{}`."""
    if not isinstance(data, Mapping):
        return {}
    section = data.get(section_name(card_kind))
    return deepcopy(section) if isinstance(section, Mapping) else {}


def infer_kind_from_record(record: Any) -> Optional[str]:
    """Kind of a bare (unwrapped) canonical record, from its characteristic keys."""
    if not isinstance(record, Mapping):
        return None
    # Dataset keys first: `Name` is shared by both kinds.
    if any(key in record for key in ('Composition', 'Imaging', 'Labeling', 'Subsets')):
        return 'dataset'
    if any(key in record for key in ('Name', 'Input', 'Output', 'Results')):
        return 'model'
    return None


def load_card_data(data: Any, file_name: Optional[str] = None):
    """Turn an uploaded card file into `(kind, canonical_record, warnings, file_format)`.

    Returns `kind=None` when the card kind cannot be determined. A canonical
    `Model`/`Dataset` section wins over the file extension.
    """
    file_format = detect_file_format(file_name, data)
    kind = detect_card_kind(data)
    if kind is None:
        return None, {}, [], file_format
    if section_name(kind) in data:
        return kind, unwrap_canonical(data, kind), [], 'json'
    result = to_canonical(data, kind)
    return kind, result.record, result.warnings, 'txt'
