"""Inline `$ref` pointers of a ROADMAP schema document into a form-renderable tree.

A ROADMAP document keeps one section per card kind in its shared definitions
table (`$defs.model`, `$defs.dataset`) and references further shared
definitions with `{"$ref": "#/$defs/<name>"}`. `resolve` substitutes every
reference with the content it points to, so the returned tree never contains
`$ref`. Cycles are cut per path (sibling branches may reuse a definition) and
nesting is capped at a fixed depth.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Mapping

from . import CARD_KINDS
from .errors import SchemaSectionMissing, UnknownCardKind

logger = logging.getLogger(__name__)

SchemaNode = Dict[str, Any]

MAX_DEPTH = 10

# Keywords holding a single subschema, a name->subschema map, or a list of subschemas.
_SINGLE_KEYWORDS = ('items', 'additionalProperties', 'if', 'then', 'else', 'not', 'contains')
_MAP_KEYWORDS = ('properties', 'patternProperties')
_LIST_KEYWORDS = ('anyOf', 'oneOf', 'allOf', 'prefixItems')


def normalize_card_kind(card_kind: str) -> str:
    kind = (card_kind or '').strip().lower()
    if kind not in CARD_KINDS:
        raise UnknownCardKind(card_kind)
    return kind


def section_name(card_kind: str) -> str:
    """'model' -> 'Model'; the key used in exports and in `properties` of the document."""
    kind = normalize_card_kind(card_kind)
    return kind[:1].upper() + kind[1:]


def definitions_table(raw_schema: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(raw_schema, Mapping):
        return {}
    defs = raw_schema.get('$defs')
    if not isinstance(defs, Mapping):
        defs = raw_schema.get('definitions')
    return defs if isinstance(defs, Mapping) else {}


def ref_name(ref: str) -> str:
    """'#/$defs/metric' -> 'metric'."""
    return ref.rsplit('/', 1)[-1] if isinstance(ref, str) else ''


def resolve(raw_schema: Mapping[str, Any], card_kind: str, max_depth: int = MAX_DEPTH) -> SchemaNode:
    """Resolve the section for `card_kind` into a reference-free object node.

    Raises `SchemaSectionMissing` before doing any work when the document has
    no definition for the requested kind.
    """
    kind = normalize_card_kind(card_kind)
    defs = definitions_table(raw_schema)
    section = defs.get(kind)
    if not isinstance(section, Mapping):
        raise SchemaSectionMissing(kind)

    resolver = _Resolver(defs, max_depth)
    properties = resolver.resolve_properties(section.get('properties') or {}, frozenset(), 0)

    node: SchemaNode = {
        'type': 'object',
        'title': f"{section_name(kind)} Information",
        'properties': properties,
        'required': list(section.get('required') or []),
    }
    if section.get('description'):
        node['description'] = section['description']
    return node


class _Resolver:
    def __init__(self, defs: Mapping[str, Any], max_depth: int):
        self.defs = defs
        self.max_depth = max_depth

    def resolve_properties(self, properties: Mapping[str, Any], visited: FrozenSet[str], depth: int) -> Dict[str, SchemaNode]:
        # Insertion order of the source document is kept for rendering.
        return {name: self.resolve_node(prop, visited, depth + 1) for name, prop in properties.items()}

    def resolve_node(self, node: Any, visited: FrozenSet[str], depth: int) -> Any:
        if not isinstance(node, Mapping):
            return node

        if depth > self.max_depth:
            logger.warning("Maximum schema depth %d exceeded, truncating subtree", self.max_depth)
            return {'type': 'object', 'properties': {}}

        if '$ref' in node:
            return self._resolve_ref(node, visited, depth)

        out: SchemaNode = dict(node)
        for key in _SINGLE_KEYWORDS:
            if isinstance(node.get(key), Mapping):
                out[key] = self.resolve_node(node[key], visited, depth + 1)
        for key in _MAP_KEYWORDS:
            if isinstance(node.get(key), Mapping):
                out[key] = self.resolve_properties(node[key], visited, depth)
        for key in _LIST_KEYWORDS:
            if isinstance(node.get(key), list):
                out[key] = [self.resolve_node(sub, visited, depth + 1) for sub in node[key]]
        return out

    def _resolve_ref(self, node: Mapping[str, Any], visited: FrozenSet[str], depth: int) -> SchemaNode:
        name = ref_name(node['$ref'])
        siblings = {k: v for k, v in node.items() if k != '$ref'}

        if name in visited:
            logger.warning("Circular reference avoided: %s", name)
            return {
                'type': 'string',
                'title': siblings.get('title') or name,
                'description': f"Reference to {name} (circular reference avoided)",
                'default': '',
            }

        target = self.defs.get(name)
        if not isinstance(target, Mapping):
            logger.warning("Unresolvable reference %r, using a text field", node['$ref'])
            return {
                'type': 'string',
                'title': siblings.get('title') or name or 'Reference',
                'description': siblings.get('description') or f"Unresolved reference {node['$ref']}",
                'default': '',
            }

        # Keywords written next to the $ref (title, description) win over the target's.
        merged = {**target, **siblings}
        return self.resolve_node(merged, visited | {name}, depth + 1)


def contains_ref(node: Any) -> bool:
    if isinstance(node, Mapping):
        return '$ref' in node or any(contains_ref(v) for v in node.values())
    if isinstance(node, list):
        return any(contains_ref(v) for v in node)
    return False


def max_node_depth(node: Any) -> int:
    """Nesting depth counted in schema nodes (used to check the depth bound)."""
    if not isinstance(node, Mapping):
        return 0
    children = []
    for key in _SINGLE_KEYWORDS:
        if isinstance(node.get(key), Mapping):
            children.append(node[key])
    for key in _MAP_KEYWORDS:
        if isinstance(node.get(key), Mapping):
            children.extend(node[key].values())
    for key in _LIST_KEYWORDS:
        if isinstance(node.get(key), list):
            children.extend(node[key])
    return 1 + max((max_node_depth(c) for c in children), default=0)
