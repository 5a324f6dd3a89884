from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

SchemaNode = Dict[str, Any]

# Arrays whose item enum is longer than this render as a checkbox group.
CHECKBOX_ENUM_THRESHOLD = 5

SIMPLIFIED_FLAG = 'x-simplified'

_TYPE_DEFAULTS = {
    'string': '',
    'array': [],
    'object': {},
}


def is_complex(node: Mapping[str, Any]) -> bool:
    """True when the form renderer cannot present `node` safely."""
    if not isinstance(node, Mapping):
        return False
    if any(k in node for k in ('anyOf', 'oneOf', 'allOf')):
        return True
    if any(k in node for k in ('if', 'then', 'else')):
        return True
    if 'patternProperties' in node:
        return True
    if isinstance(node.get('additionalProperties'), Mapping):
        return True
    return False


def simplified_field(node: Mapping[str, Any]) -> SchemaNode:
    """String fallback that keeps only the title and description of `node`."""
    return {
        'type': 'string',
        'title': node.get('title') or 'Complex Field',
        'description': node.get('description') or 'This field has been simplified for form display',
        'default': '',
        SIMPLIFIED_FLAG: True,
    }


def simplify(node: Mapping[str, Any]) -> SchemaNode:
    """Return a copy of a resolved schema tree the form renderer can present.

    Pure: `node` is not modified.
    """
    if not isinstance(node, Mapping):
        return node

    if is_complex(node):
        logger.debug("Simplified complex schema construct %r", node.get('title'))
        return simplified_field(node)

    out: SchemaNode = {k: _copy(v) for k, v in node.items() if k not in ('items', 'properties')}
    node_type = node.get('type')

    if node_type == 'array' and isinstance(node.get('items'), Mapping):
        items = node['items']
        out['items'] = simplify(items)
        enum = items.get('enum') if not is_complex(items) else None
        if enum and len(enum) > CHECKBOX_ENUM_THRESHOLD:
            out['format'] = 'checkbox'
            out['uniqueItems'] = True
    elif 'items' in node:
        out['items'] = _copy(node['items'])

    if isinstance(node.get('properties'), Mapping):
        out['properties'] = {name: simplify(prop) for name, prop in node['properties'].items()}

    if 'default' not in out and node_type in _TYPE_DEFAULTS:
        out['default'] = _copy(_TYPE_DEFAULTS[node_type])

    return out


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy(v) for v in value]
    return value
