#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_ast_nodes.py
"""Unit tests for the document IR node types.

Tests cover:
- Properties value restrictions and typed getters
- Span validation and containment
- Node chaining helpers and text extraction
- Document construction, resources and blocks

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.nodes import Node, Properties, Span, text_node


@pytest.mark.unit
class TestProperties:
    """Tests for the Properties map."""

    def test_accepts_supported_value_types(self) -> None:
        """Test that every supported value type can be stored."""
        properties = Properties(title="x", level=2, ratio=0.5, flag=True, tags=["a"], attrs={"k": "v"})
        assert len(properties) == 6
        assert properties["tags"] == ["a"]

    def test_rejects_unsupported_value(self) -> None:
        """Test that unsupported values raise TypeError."""
        with pytest.raises(TypeError):
            Properties().set("span", object())
        with pytest.raises(TypeError):
            Properties({"none": None})

    def test_rejects_non_string_key(self) -> None:
        """Test that non-string keys raise TypeError."""
        with pytest.raises(TypeError):
            Properties().set(1, "x")  # type: ignore[arg-type]

    def test_preserves_insertion_order(self) -> None:
        """Test that iteration follows insertion order."""
        properties = Properties()
        for key in ("z", "a", "m"):
            properties[key] = key
        assert list(properties) == ["z", "a", "m"]

    def test_equality_ignores_order(self) -> None:
        """Test that equality does not depend on insertion order."""
        assert Properties({"a": 1, "b": 2}) == Properties({"b": 2, "a": 1})
        assert Properties({"a": 1}) == {"a": 1}

    def test_typed_getters(self) -> None:
        """Test that typed getters only return values of their type."""
        properties = Properties({"s": "text", "i": 3, "b": True})
        assert properties.get_str("s") == "text"
        assert properties.get_str("i") is None
        assert properties.get_int("i") == 3
        assert properties.get_int("b") is None
        assert properties.get_bool("b") is True
        assert properties.get_bool("missing", False) is False

    def test_copy_is_independent(self) -> None:
        """Test that copies do not share state."""
        original = Properties({"a": 1})
        duplicate = original.copy()
        duplicate["a"] = 2
        assert original["a"] == 1


@pytest.mark.unit
class TestSpan:
    """Tests for byte spans."""

    def test_length(self) -> None:
        """Test span length."""
        assert len(Span(3, 10)) == 7

    def test_rejects_inverted_range(self) -> None:
        """Test that start after end raises ValueError."""
        with pytest.raises(ValueError):
            Span(5, 2)

    def test_rejects_negative_start(self) -> None:
        """Test that a negative start raises ValueError."""
        with pytest.raises(ValueError):
            Span(-1, 2)

    def test_contains(self) -> None:
        """Test containment checks."""
        outer = Span(0, 10)
        assert outer.contains(Span(2, 5))
        assert outer.contains(Span(0, 10))
        assert not outer.contains(Span(5, 11))

    def test_clamped(self) -> None:
        """Test that clamped spans stay inside the source."""
        span = Span.clamped(-4, 50, 20)
        assert span == Span(0, 20)


@pytest.mark.unit
class TestNode:
    """Tests for Node construction helpers."""

    def test_chaining(self) -> None:
        """Test that the builder helpers return the node."""
        node = Node(kinds.HEADING).prop(props.LEVEL, 2).child(text_node("Hi")).at(Span(0, 5))
        assert node.get(props.LEVEL) == 2
        assert node.children[0].get(props.CONTENT) == "Hi"
        assert node.span == Span(0, 5)

    def test_plain_mapping_props_are_converted(self) -> None:
        """Test that a plain dict becomes a Properties instance."""
        node = Node(kinds.LINK, {"url": "https://example.com"})
        assert isinstance(node.props, Properties)

    def test_text_content(self) -> None:
        """Test plain text extraction including breaks."""
        paragraph = Node(kinds.PARAGRAPH).extend(
            [
                text_node("a"),
                Node(kinds.SOFT_BREAK),
                Node(kinds.STRONG).child(text_node("b")),
                Node(kinds.LINE_BREAK),
                Node(kinds.CODE).prop(props.CONTENT, "c"),
            ]
        )
        assert paragraph.text_content() == "a b\nc"

    def test_get_default(self) -> None:
        """Test that a missing property returns the default."""
        assert Node(kinds.PARAGRAPH).get("missing", "x") == "x"


@pytest.mark.unit
class TestDocument:
    """Tests for Document and Resource."""

    def test_default_root(self) -> None:
        """Test that a new document has an empty document root."""
        doc = Document()
        assert doc.content.kind == kinds.DOCUMENT
        assert doc.blocks == []

    def test_rejects_non_document_root(self) -> None:
        """Test that the root must be a document node."""
        with pytest.raises(ValueError):
            Document(content=Node(kinds.PARAGRAPH))

    def test_embed_uses_name(self) -> None:
        """Test that a free resource name becomes the id."""
        doc = Document()
        rid = doc.embed(Resource("cover.png", "image/png", b"png"))
        assert rid == "cover.png"
        assert doc.resource(rid).mime_type == "image/png"

    def test_embed_conflicting_names(self) -> None:
        """Test that a taken name falls back to a digest id."""
        doc = Document()
        first = doc.embed(Resource("img", "image/png", b"one"))
        second = doc.embed(Resource("img", "image/png", b"two"))
        assert first == "img"
        assert second.startswith("res-")
        assert len(doc.resources) == 2

    def test_embed_explicit_id(self) -> None:
        """Test embedding under an explicit id."""
        doc = Document()
        assert doc.embed(Resource(None, "image/jpeg", b"x"), resource_id="pic") == "pic"
        assert doc.resource("missing") is None

    def test_metadata_mapping_is_converted(self) -> None:
        """Test that plain metadata mappings are converted."""
        doc = Document(metadata={"title": "T"}, source=SourceInfo("rst", {"dialect": "rst"}))
        assert isinstance(doc.metadata, Properties)
        assert isinstance(doc.source.metadata, Properties)


@pytest.mark.unit
class TestKinds:
    """Tests for the kind vocabulary helpers."""

    def test_known_and_namespaced(self) -> None:
        """Test that vocabulary and dialect-prefixed kinds are known."""
        assert kinds.is_known_kind(kinds.PARAGRAPH)
        assert kinds.is_known_kind("rst:directive")
        assert kinds.is_namespaced("rst:directive")
        assert not kinds.is_known_kind("widget")

    def test_block_and_inline(self) -> None:
        """Test block and inline classification including math."""
        assert kinds.is_block_kind(kinds.TABLE)
        assert kinds.is_block_kind(kinds.MATH_DISPLAY)
        assert not kinds.is_block_kind(kinds.STRONG)
        assert kinds.is_inline_kind(kinds.MATH_INLINE)
        assert kinds.is_inline_kind(kinds.LINK)
        assert not kinds.is_inline_kind(kinds.PARAGRAPH)
