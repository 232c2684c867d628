#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_ast_visitors.py
"""Unit tests for visitors, transformers and tree validation.

Tests cover:
- Dispatch by kind, including namespaced kinds
- NodeTransformer replacement, removal and splicing
- ValidationVisitor checks for kinds, heading levels and spans

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.nodes import Node, Span, text_node
from docweave.ast.visitors import NodeTransformer, NodeVisitor, ValidationVisitor, visitor_method_name


def _sample_tree() -> Node:
    return Node(kinds.DOCUMENT).extend(
        [
            Node(kinds.HEADING).prop(props.LEVEL, 1).child(text_node("Title")),
            Node(kinds.PARAGRAPH).extend([text_node("a"), Node(kinds.IMAGE).prop(props.URL, "x.png")]),
            Node("rst:comment").prop(props.CONTENT, "note"),
        ]
    )


@pytest.mark.unit
class TestNodeVisitor:
    """Tests for NodeVisitor dispatch."""

    def test_method_name(self) -> None:
        """Test method names for plain and namespaced kinds."""
        assert visitor_method_name("heading") == "visit_heading"
        assert visitor_method_name("rst:comment") == "visit_rst_comment"

    def test_dispatch(self) -> None:
        """Test that visit methods are found by kind."""

        class Collector(NodeVisitor):
            def __init__(self) -> None:
                self.seen: list[str] = []

            def visit_heading(self, node: Node) -> None:
                self.seen.append("heading")
                self.generic_visit(node)

            def visit_rst_comment(self, node: Node) -> None:
                self.seen.append(node.get(props.CONTENT))

        collector = Collector()
        _sample_tree().accept(collector)
        assert collector.seen == ["heading", "note"]


@pytest.mark.unit
class TestNodeTransformer:
    """Tests for NodeTransformer."""

    def test_remove_nodes(self) -> None:
        """Test that returning None removes a node."""

        class DropImages(NodeTransformer):
            def visit_image(self, node: Node) -> None:
                return None

        tree = _sample_tree()
        cleaned = DropImages().transform(tree)
        assert [child.kind for child in cleaned.children[1].children] == [kinds.TEXT]
        assert len(tree.children[1].children) == 2

    def test_splice_nodes(self) -> None:
        """Test that returning a list splices nodes in place."""

        class Duplicate(NodeTransformer):
            def visit_heading(self, node: Node) -> list[Node]:
                return [node, Node(kinds.HORIZONTAL_RULE)]

        result = Duplicate().transform(_sample_tree())
        assert [child.kind for child in result.children][:2] == [kinds.HEADING, kinds.HORIZONTAL_RULE]

    def test_root_cannot_become_many(self) -> None:
        """Test that replacing the root with several nodes fails."""

        class Explode(NodeTransformer):
            def visit_document(self, node: Node) -> list[Node]:
                return [node, node]

        with pytest.raises(ValueError):
            Explode().transform(_sample_tree())


@pytest.mark.unit
class TestValidationVisitor:
    """Tests for ValidationVisitor."""

    def test_valid_tree(self) -> None:
        """Test that a well-formed tree passes."""
        assert ValidationVisitor().validate(_sample_tree()) == []

    def test_unknown_kind(self) -> None:
        """Test that a kind outside the vocabulary without namespace is rejected."""
        with pytest.raises(ValueError, match="Unknown node kind"):
            ValidationVisitor().validate(Node(kinds.DOCUMENT).child(Node("mystery")))

    def test_bad_heading_level(self) -> None:
        """Test that heading levels outside 1..6 are reported."""
        tree = Node(kinds.DOCUMENT).child(Node(kinds.HEADING).prop(props.LEVEL, 7))
        errors = ValidationVisitor(strict=False).validate(tree)
        assert len(errors) == 1
        assert "heading level" in errors[0]

    def test_span_beyond_source(self) -> None:
        """Test that spans past the source length are reported."""
        tree = Node(kinds.DOCUMENT).child(Node(kinds.PARAGRAPH).at(Span(0, 50)))
        errors = ValidationVisitor(source_length=10, strict=False).validate(tree)
        assert any("exceeds source length" in error for error in errors)

    def test_child_span_outside_parent(self) -> None:
        """Test that a child span must lie inside its parent span."""
        tree = Node(kinds.DOCUMENT).at(Span(0, 5)).child(Node(kinds.PARAGRAPH).at(Span(3, 8)))
        errors = ValidationVisitor(strict=False).validate(tree)
        assert any("not contained" in error for error in errors)
