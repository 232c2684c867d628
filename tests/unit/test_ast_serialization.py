#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_ast_serialization.py
"""Unit tests for JSON serialization of documents.

Tests cover:
- Round-trip of nodes, metadata, source info and resources
- Schema version handling
- Rejection of malformed payloads

"""

import json

import pytest

from docweave.ast import kinds, props
from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.nodes import Node, Span, text_node
from docweave.ast.serialization import (
    document_from_dict,
    document_from_json,
    document_to_dict,
    document_to_json,
    node_from_dict,
    node_to_dict,
)
from docweave.exceptions import InvalidInputError


def _sample_document() -> Document:
    root = Node(kinds.DOCUMENT).at(Span(0, 20))
    root.child(Node(kinds.HEADING).prop(props.LEVEL, 2).child(text_node("Hi")).at(Span(0, 5)))
    root.child(Node(kinds.PARAGRAPH).prop(props.CLASSES, "lead note").child(text_node("Body")))
    doc = Document(content=root, metadata={"title": "Hi", "keywords": ["a", "b"]}, source=SourceInfo("asciidoc"))
    doc.embed(Resource("logo.png", "image/png", b"\x89PNG\r\n"))
    return doc


@pytest.mark.unit
class TestNodeSerialization:
    """Tests for node-level serialization."""

    def test_omits_empty_fields(self) -> None:
        """Test that empty props, children and spans are omitted."""
        assert node_to_dict(Node(kinds.HORIZONTAL_RULE)) == {"kind": "horizontal_rule"}

    def test_node_round_trip(self) -> None:
        """Test that a node tree survives a round trip."""
        node = Node(kinds.LINK).prop(props.URL, "https://example.com").child(text_node("x")).at(Span(1, 4))
        assert node_from_dict(node_to_dict(node)) == node

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"props": {}},
            {"kind": "text", "props": []},
            {"kind": "text", "props": {"content": None}},
            {"kind": "text", "children": {}},
            {"kind": "text", "span": [3]},
            {"kind": "text", "span": [5, 1]},
            {"kind": "text", "span": [True, 2]},
        ],
    )
    def test_rejects_malformed_nodes(self, payload: object) -> None:
        """Test that malformed node payloads raise InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            node_from_dict(payload)
        assert exc_info.value.parsing_stage == "deserialization"


@pytest.mark.unit
class TestDocumentSerialization:
    """Tests for document-level serialization."""

    def test_json_round_trip(self) -> None:
        """Test that a full document survives JSON serialization."""
        doc = _sample_document()
        restored = document_from_json(document_to_json(doc, indent=2))
        assert restored == doc
        assert restored.resources["logo.png"].data == b"\x89PNG\r\n"

    def test_schema_version_written(self) -> None:
        """Test that the schema version is included."""
        assert document_to_dict(Document())["schema_version"] == 1

    def test_unsupported_schema_version(self) -> None:
        """Test that another schema version is rejected."""
        data = document_to_dict(Document())
        data["schema_version"] = 99
        with pytest.raises(InvalidInputError, match="schema version"):
            document_from_dict(data)

    def test_non_document_root(self) -> None:
        """Test that the content must be a document node."""
        with pytest.raises(InvalidInputError):
            document_from_dict({"content": {"kind": "paragraph"}})

    def test_invalid_base64(self) -> None:
        """Test that corrupt resource data is rejected."""
        data = document_to_dict(_sample_document())
        data["resources"]["logo.png"]["data"] = "not base64!"
        with pytest.raises(InvalidInputError, match="base64"):
            document_from_dict(data)

    def test_invalid_json(self) -> None:
        """Test that invalid JSON raises InvalidInputError."""
        with pytest.raises(InvalidInputError, match="Invalid JSON"):
            document_from_json("{not json")

    def test_non_ascii_is_kept(self) -> None:
        """Test that non-ASCII text is written unescaped."""
        doc = Document(content=Node(kinds.DOCUMENT).child(text_node("caf\u00e9")))
        payload = document_to_json(doc)
        assert "caf\u00e9" in payload
        assert json.loads(payload)["content"]["children"][0]["props"]["content"] == "caf\u00e9"
