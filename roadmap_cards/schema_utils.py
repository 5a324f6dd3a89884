from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .paths import child_path, split_path
from .schema_resolver import definitions_table, normalize_card_kind, ref_name
from .schema_simplifier import SIMPLIFIED_FLAG

logger = logging.getLogger(__name__)


@dataclass
class FormField:
    """One renderable input of a form schema."""

    path: str
    title: str
    type: str
    description: str = ''
    enum: List[Any] = field(default_factory=list)
    format: str = ''
    item_type: str = ''
    required: bool = False
    default: Any = None
    simplified: bool = False

    @property
    def multiselect(self) -> bool:
        return self.type == 'array' and bool(self.enum)

    @property
    def checkbox(self) -> bool:
        return self.multiselect and self.format == 'checkbox'

    @property
    def structured(self) -> bool:
        """Arrays of objects and free objects are edited as JSON text."""
        return self.item_type == 'object' or (self.type == 'object')


def list_form_fields(form_schema: Mapping[str, Any], parent_key: str = '') -> List[FormField]:
    """Walk a simplified schema and return one field per leaf, in declaration order.

    Objects with properties are expanded; every other node (arrays included)
    is a leaf.
    """
    fields: List[FormField] = []
    properties = form_schema.get('properties') or {}
    required = set(form_schema.get('required') or [])

    for name, prop in properties.items():
        path = child_path(parent_key, name)
        if not isinstance(prop, Mapping):
            continue
        if prop.get('type') == 'object' and prop.get('properties'):
            fields.extend(list_form_fields(prop, path))
            continue

        items = prop.get('items') if isinstance(prop.get('items'), Mapping) else {}
        fields.append(
            FormField(
                path=path,
                title=prop.get('title') or name,
                type=prop.get('type') or 'string',
                description=prop.get('description') or '',
                enum=list(items.get('enum') or prop.get('enum') or []),
                format=prop.get('format') or '',
                item_type=items.get('type') or '',
                required=name in required,
                default=prop.get('default'),
                simplified=bool(prop.get(SIMPLIFIED_FLAG)),
            )
        )
    return fields


def build_tree_from_keys(keys: List[str]) -> Dict[str, Any]:
    """Convert dot-notation field paths into a nested dictionary tree.

    Leaf nodes are strings (the full path), branch nodes are dictionaries.
    Insertion order of `keys` is kept so the form follows the schema order.
    If a node is both a leaf and a branch (e.g. 'a' and 'a.b'),
    the value for 'a' is stored in the dictionary under '__self__'.
    """
    tree: Dict[str, Any] = {}
    for key in keys:
        parts = split_path(key)
        if not parts:
            continue
        current = tree
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            if isinstance(current[part], str):
                current[part] = {'__self__': current[part]}
            current = current[part]

        last_part = parts[-1]
        if isinstance(current.get(last_part), dict):
            current[last_part]['__self__'] = key
        else:
            current[last_part] = key
    return tree


def build_default_record(form_schema: Mapping[str, Any]) -> Dict[str, Any]:
    """Initial record for a new card, built from the schema defaults."""
    record: Dict[str, Any] = {}
    for name, prop in (form_schema.get('properties') or {}).items():
        if not isinstance(prop, Mapping):
            continue
        if prop.get('type') == 'object' and prop.get('properties'):
            record[name] = build_default_record(prop)
        elif 'default' in prop:
            record[name] = _copy_default(prop['default'])
    return record


def merge_defaults(form_schema: Mapping[str, Any], record: Any) -> Dict[str, Any]:
    """Fill keys missing from `record` with schema defaults; present values are kept."""
    merged = build_default_record(form_schema)
    if not isinstance(record, Mapping):
        return merged
    for key, value in record.items():
        prop = (form_schema.get('properties') or {}).get(key)
        if isinstance(prop, Mapping) and prop.get('properties') and isinstance(value, Mapping):
            merged[key] = merge_defaults(prop, value)
        else:
            merged[key] = value
    return merged


def schema_field_names(raw_schema: Mapping[str, Any], card_kind: str, limit: int = 20) -> List[str]:
    """First `limit` top-level property names of a kind's section, as declared."""
    section = definitions_table(raw_schema).get(normalize_card_kind(card_kind))
    if not isinstance(section, Mapping):
        logger.warning("No %s section in schema; extracting without a field list", card_kind)
        return []
    return list((section.get('properties') or {}).keys())[:limit]


def find_field_examples(raw_schema: Mapping[str, Any], card_kind: str, path: str, limit: int = 5) -> Optional[List[Any]]:
    """Example values for the field at `path`, looked up in the unresolved schema."""
    defs = definitions_table(raw_schema)
    section = defs.get(normalize_card_kind(card_kind))
    if not isinstance(section, Mapping) or not section.get('properties'):
        return None

    parts = [p for p in split_path(path) if not p.isdigit()]
    if not parts:
        return None

    field_def = _descend(section, parts, defs)
    if field_def is None:
        field_def = _find_nested_field(defs, parts[-1])
    if field_def is None:
        return None

    examples = _examples_from_definition(field_def, defs, limit)
    return examples or None


def _descend(node: Mapping[str, Any], parts: List[str], defs: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    current: Any = node
    for part in parts:
        current = _deref(current, defs)
        if isinstance(current, Mapping) and current.get('type') == 'array':
            current = _deref(current.get('items') or {}, defs)
        props = current.get('properties') if isinstance(current, Mapping) else None
        if not isinstance(props, Mapping) or part not in props:
            return None
        current = props[part]
    return current if isinstance(current, Mapping) else None


def _find_nested_field(defs: Mapping[str, Any], name: str) -> Optional[Mapping[str, Any]]:
    for def_name, definition in defs.items():
        props = definition.get('properties') if isinstance(definition, Mapping) else None
        if isinstance(props, Mapping) and name in props:
            logger.debug("Found %s in $defs.%s", name, def_name)
            return props[name]
    return None


def _deref(node: Any, defs: Mapping[str, Any], seen: Optional[set] = None) -> Any:
    seen = seen or set()
    while isinstance(node, Mapping) and '$ref' in node:
        name = ref_name(node['$ref'])
        if name in seen or not isinstance(defs.get(name), Mapping):
            return node
        seen.add(name)
        node = defs[name]
    return node


def _examples_from_definition(field_def: Mapping[str, Any], defs: Mapping[str, Any], limit: int) -> List[Any]:
    if field_def.get('examples'):
        return list(field_def['examples'])

    if '$ref' in field_def:
        target = _deref(field_def, defs)
        if target is field_def:
            return []
        return _examples_from_definition(target, defs, limit)

    if field_def.get('type') == 'array' and isinstance(field_def.get('items'), Mapping):
        items = field_def['items']
        if items.get('examples'):
            return list(items['examples'])
        target = _deref(items, defs)
        if isinstance(target, Mapping):
            if target.get('examples'):
                return list(target['examples'])
            if target.get('enum'):
                return list(target['enum'])[:limit]

    if field_def.get('type') == 'object' and isinstance(field_def.get('properties'), Mapping):
        lines = []
        for prop_name, prop_def in field_def['properties'].items():
            if isinstance(prop_def, Mapping) and prop_def.get('examples'):
                lines.append(f"{prop_name}: {prop_def['examples'][0]}")
        if lines:
            return lines

    if field_def.get('enum'):
        return list(field_def['enum'])[:limit]

    return []


def _copy_default(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy_default(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy_default(v) for v in value]
    return value
