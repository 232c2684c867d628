#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/document.py
"""Document container, embedded resources and source information."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Optional

from docweave.ast import kinds
from docweave.ast.nodes import Node, Properties


@dataclass
class Resource:
    """Binary payload embedded in a document (image, attachment).

    Parameters
    ----------
    name : str or None
        Original name or identifier in the source, if any
    mime_type : str
        MIME type of the payload
    data : bytes
        Decoded payload
    metadata : Properties
        Additional format-specific information

    """

    name: Optional[str]
    mime_type: str
    data: bytes
    metadata: Properties = field(default_factory=Properties)

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, Properties):
            self.metadata = Properties(self.metadata)


@dataclass
class SourceInfo:
    """Where a document came from.

    Parameters
    ----------
    format : str
        Registered reader name (``"rst"``, ``"fb2"``...)
    metadata : Properties
        Reader-specific details about the source

    """

    format: str
    metadata: Properties = field(default_factory=Properties)

    def __post_init__(self) -> None:
        if not isinstance(self.metadata, Properties):
            self.metadata = Properties(self.metadata)


def _empty_root() -> Node:
    return Node(kinds.DOCUMENT)


@dataclass
class Document:
    """A parsed document: the IR tree plus resources and metadata.

    Parameters
    ----------
    content : Node
        Root node; its kind is always ``document``
    resources : dict[str, Resource]
        Embedded binaries keyed by resource id
    metadata : Properties
        Document-level metadata (title, author, dialect attributes)
    source : SourceInfo or None
        Reader that produced the document

    Examples
    --------
        >>> doc = Document()
        >>> rid = doc.embed(Resource("cover.png", "image/png", b"..."))
        >>> doc.resource(rid).mime_type
        'image/png'

    """

    content: Node = field(default_factory=_empty_root)
    resources: dict[str, Resource] = field(default_factory=dict)
    metadata: Properties = field(default_factory=Properties)
    source: Optional[SourceInfo] = None

    def __post_init__(self) -> None:
        if self.content.kind != kinds.DOCUMENT:
            raise ValueError(f"document content must be a '{kinds.DOCUMENT}' node, got '{self.content.kind}'")
        if not isinstance(self.metadata, Properties):
            self.metadata = Properties(self.metadata)

    def embed(self, resource: Resource, resource_id: Optional[str] = None) -> str:
        """Store a resource and return its id.

        Without an explicit id, the resource name is used when it is free,
        otherwise an id derived from the payload digest.
        """
        if resource_id is None:
            if resource.name and resource.name not in self.resources:
                resource_id = resource.name
            else:
                resource_id = "res-" + hashlib.sha1(resource.data, usedforsecurity=False).hexdigest()[:12]
                suffix = 1
                base = resource_id
                while resource_id in self.resources:
                    suffix += 1
                    resource_id = f"{base}-{suffix}"
        self.resources[resource_id] = resource
        return resource_id

    def resource(self, resource_id: str) -> Optional[Resource]:
        return self.resources.get(resource_id)

    @property
    def blocks(self) -> list[Node]:
        """Top-level blocks of the document."""
        return self.content.children
