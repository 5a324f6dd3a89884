from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from . import CARD_KINDS
from .errors import SchemaSectionMissing, UpstreamUnavailable
from .io_utils import read_json_content
from .schema_resolver import SchemaNode, definitions_table, normalize_card_kind, resolve, section_name
from .schema_simplifier import simplify

logger = logging.getLogger(__name__)

BASE_SCHEMA_FILES = {
    'model': 'base-model-schema.json',
    'dataset': 'base-dataset-schema.json',
}


@dataclass(frozen=True)
class SchemaInfo:
    source: str
    version: str
    description: str
    is_custom: bool

    @property
    def label(self) -> str:
        origin = 'Custom schema' if self.is_custom else 'Base schema'
        return f"{origin}: {self.source} (version {self.version})"


def base_schema_info(raw_schema: Mapping[str, Any]) -> SchemaInfo:
    return SchemaInfo(
        source='Base Schema',
        version=str(raw_schema.get('$id') or 'Unknown'),
        description=str(raw_schema.get('description') or ''),
        is_custom=False,
    )


def load_schema_file(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        return read_json_content(str(path))
    except (OSError, ValueError) as exc:
        raise UpstreamUnavailable("schema document", f"{path}: {exc}") from exc


async def load_base_schemas(directory: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Read the base schema document of every card kind.

    The reads are independent, so both documents are loaded concurrently.
    """
    directory = Path(directory)
    kinds = list(CARD_KINDS)
    documents = await asyncio.gather(
        *(asyncio.to_thread(load_schema_file, directory / BASE_SCHEMA_FILES[kind]) for kind in kinds)
    )
    logger.info("Base schemas loaded from %s", directory)
    return dict(zip(kinds, documents))


def validate_schema_shape(raw_schema: Any, card_kind: str) -> bool:
    """True when `raw_schema` has `$defs.<kind>` and `properties.<Kind>`."""
    if not isinstance(raw_schema, Mapping):
        return False
    kind = normalize_card_kind(card_kind)
    properties = raw_schema.get('properties')
    return (
        isinstance(definitions_table(raw_schema).get(kind), Mapping)
        and isinstance(properties, Mapping)
        and section_name(kind) in properties
    )


async def fetch_custom_schema(
    url: str,
    card_kind: str,
    base_schema: Mapping[str, Any],
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
):
    """Fetch a schema document from `url`, falling back to `base_schema` on any failure.

    Returns `(raw_schema, SchemaInfo)`.
    """
    kind = normalize_card_kind(card_kind)
    logger.info("Loading custom %s schema from %s", kind, url)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.get(url)
        else:
            response = await client.get(url)
        response.raise_for_status()
        document = response.json()
        if not validate_schema_shape(document, kind):
            raise ValueError("Invalid ROADMAP schema structure")
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Failed to load custom schema from %s, falling back to base: %s", url, exc)
        return base_schema, base_schema_info(base_schema)

    info = SchemaInfo(
        source=url,
        version=str(document.get('$id') or 'Unknown'),
        description=str(document.get('description') or ''),
        is_custom=True,
    )
    return document, info


def minimal_form_schema(card_kind: str) -> SchemaNode:
    """One-field schema used when a document has no section for the kind."""
    title = section_name(card_kind)
    return {
        'type': 'object',
        'title': f"{title} Information",
        'properties': {
            'Name': {
                'type': 'string',
                'title': f"{title} Name",
                'description': f"Enter the name of your {title.lower()}",
                'default': '',
            }
        },
        'required': ['Name'],
    }


def build_form_schema(raw_schema: Mapping[str, Any], card_kind: str) -> SchemaNode:
    """Resolve then simplify; a missing section degrades to `minimal_form_schema`."""
    try:
        form_schema = simplify(resolve(raw_schema, card_kind))
    except SchemaSectionMissing as exc:
        logger.error("Schema conversion failed: %s", exc)
        return minimal_form_schema(card_kind)
    logger.info("Schema converted for %s", card_kind)
    return form_schema
