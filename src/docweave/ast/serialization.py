#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/serialization.py
"""JSON serialization and deserialization for the document IR.

The JSON format preserves node kinds, properties (in insertion order),
children, spans, document metadata, source information and embedded
resources (base64-encoded). Documents round-trip exactly:
``document_from_json(document_to_json(doc)) == doc``.

Examples
--------
    >>> from docweave.ast.serialization import document_from_json, document_to_json
    >>> payload = document_to_json(doc, indent=2)
    >>> restored = document_from_json(payload)

"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional

from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.nodes import Node, Properties, Span
from docweave.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def _invalid(message: str, original_error: Optional[Exception] = None) -> InvalidInputError:
    return InvalidInputError(message, parsing_stage="deserialization", original_error=original_error)


def node_to_dict(node: Node) -> dict[str, Any]:
    """Serialize a node and its descendants to plain Python data."""
    result: dict[str, Any] = {"kind": node.kind}
    if node.props:
        result["props"] = node.props.to_dict()
    if node.children:
        result["children"] = [node_to_dict(child) for child in node.children]
    if node.span is not None:
        result["span"] = [node.span.start, node.span.end]
    return result


def node_from_dict(data: Any) -> Node:
    """Rebuild a node from ``node_to_dict`` output.

    Raises
    ------
    InvalidInputError
        If ``data`` does not describe a node tree

    """
    if not isinstance(data, dict):
        raise _invalid(f"Expected a node object, got {type(data).__name__}")
    kind = data.get("kind")
    if not isinstance(kind, str) or not kind:
        raise _invalid("Node is missing a string 'kind'")

    raw_props = data.get("props", {})
    if not isinstance(raw_props, dict):
        raise _invalid(f"Properties of {kind!r} must be an object")
    try:
        node_props = Properties(raw_props)
    except TypeError as e:
        raise _invalid(f"Invalid property on {kind!r}: {e}", e) from e

    raw_children = data.get("children", [])
    if not isinstance(raw_children, list):
        raise _invalid(f"Children of {kind!r} must be a list")

    span = None
    raw_span = data.get("span")
    if raw_span is not None:
        if (
            not isinstance(raw_span, list)
            or len(raw_span) != 2
            or not all(isinstance(v, int) and not isinstance(v, bool) for v in raw_span)
        ):
            raise _invalid(f"Span of {kind!r} must be a pair of integers")
        try:
            span = Span(raw_span[0], raw_span[1])
        except ValueError as e:
            raise _invalid(str(e), e) from e

    return Node(kind, node_props, [node_from_dict(child) for child in raw_children], span)


def _resource_to_dict(resource: Resource) -> dict[str, Any]:
    return {
        "name": resource.name,
        "mime_type": resource.mime_type,
        "data": base64.b64encode(resource.data).decode("ascii"),
        "metadata": resource.metadata.to_dict(),
    }


def _resource_from_dict(resource_id: str, data: Any) -> Resource:
    if not isinstance(data, dict):
        raise _invalid(f"Resource {resource_id!r} must be an object")
    try:
        payload = base64.b64decode(data.get("data", ""), validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise _invalid(f"Resource {resource_id!r} has invalid base64 data", e) from e
    mime_type = data.get("mime_type")
    if not isinstance(mime_type, str):
        raise _invalid(f"Resource {resource_id!r} is missing 'mime_type'")
    try:
        return Resource(data.get("name"), mime_type, payload, Properties(data.get("metadata") or {}))
    except TypeError as e:
        raise _invalid(f"Resource {resource_id!r} has invalid metadata", e) from e


def document_to_dict(document: Document) -> dict[str, Any]:
    """Serialize a document, including resources and source info."""
    result: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "content": node_to_dict(document.content),
        "metadata": document.metadata.to_dict(),
        "resources": {rid: _resource_to_dict(res) for rid, res in document.resources.items()},
    }
    if document.source is not None:
        result["source"] = {"format": document.source.format, "metadata": document.source.metadata.to_dict()}
    return result


def document_from_dict(data: Any) -> Document:
    """Rebuild a document from ``document_to_dict`` output.

    Raises
    ------
    InvalidInputError
        If the payload is malformed or has an unsupported schema version

    """
    if not isinstance(data, dict):
        raise _invalid(f"Expected a document object, got {type(data).__name__}")
    version = data.get("schema_version", SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        raise _invalid(f"Unsupported schema version: {version!r}")

    content = node_from_dict(data.get("content"))
    if content.kind != "document":
        raise _invalid(f"Document content must be a 'document' node, got {content.kind!r}")

    raw_resources = data.get("resources") or {}
    if not isinstance(raw_resources, dict):
        raise _invalid("'resources' must be an object")
    resources = {rid: _resource_from_dict(rid, res) for rid, res in raw_resources.items()}

    raw_metadata = data.get("metadata") or {}
    if not isinstance(raw_metadata, dict):
        raise _invalid("'metadata' must be an object")
    try:
        metadata = Properties(raw_metadata)
    except TypeError as e:
        raise _invalid(f"Invalid document metadata: {e}", e) from e

    source = None
    raw_source = data.get("source")
    if raw_source is not None:
        if not isinstance(raw_source, dict) or not isinstance(raw_source.get("format"), str):
            raise _invalid("'source' must be an object with a 'format'")
        source = SourceInfo(raw_source["format"], Properties(raw_source.get("metadata") or {}))

    return Document(content=content, resources=resources, metadata=metadata, source=source)


def document_to_json(document: Document, indent: Optional[int] = None) -> str:
    return json.dumps(document_to_dict(document), indent=indent, ensure_ascii=False)


def document_from_json(json_str: str) -> Document:
    """Deserialize a document from JSON.

    Raises
    ------
    InvalidInputError
        If the string is not valid JSON or does not describe a document

    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise _invalid(f"Invalid JSON: {e.msg}", e) from e
    logger.debug("Deserializing document payload (%d characters)", len(json_str))
    return document_from_dict(data)


__all__ = [
    "document_from_dict",
    "document_from_json",
    "document_to_dict",
    "document_to_json",
    "node_from_dict",
    "node_to_dict",
]
