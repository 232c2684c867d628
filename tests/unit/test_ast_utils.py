#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_ast_utils.py
"""Unit tests for IR utility functions, including merge idempotence properties."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from docweave.ast import kinds, props
from docweave.ast.nodes import Node, Span, text_node
from docweave.ast.utils import collapse_whitespace, extract_text, iter_nodes, merge_text_nodes, normalize_inlines

_inline_nodes = st.lists(
    st.one_of(
        st.text(max_size=5).map(text_node),
        st.just(Node(kinds.LINE_BREAK)),
        st.text(max_size=5).map(lambda s: Node(kinds.EMPHASIS).child(text_node(s))),
    ),
    max_size=12,
)


def _contents(nodes: list[Node]) -> list:
    return [(node.kind, node.get(props.CONTENT), len(node.children)) for node in nodes]


@pytest.mark.unit
class TestMergeTextNodes:
    """Tests for merge_text_nodes."""

    def test_merges_adjacent_runs(self) -> None:
        """Test that adjacent text nodes become one."""
        merged = merge_text_nodes([text_node("a"), text_node("b"), Node(kinds.LINE_BREAK), text_node("c")])
        assert [node.get(props.CONTENT) for node in merged] == ["ab", None, "c"]

    def test_does_not_mutate_input(self) -> None:
        """Test that input nodes are left untouched."""
        first = text_node("a")
        merge_text_nodes([first, text_node("b")])
        assert first.get(props.CONTENT) == "a"

    def test_merges_spans(self) -> None:
        """Test that merged nodes cover both spans."""
        merged = merge_text_nodes([text_node("a").at(Span(0, 1)), text_node("b").at(Span(1, 2))])
        assert merged[0].span == Span(0, 2)

    def test_drops_span_when_one_is_missing(self) -> None:
        """Test that a merge with an unlocated node has no span."""
        merged = merge_text_nodes([text_node("a").at(Span(0, 1)), text_node("b")])
        assert merged[0].span is None

    @given(_inline_nodes)
    def test_idempotent(self, nodes: list[Node]) -> None:
        """Property: merging twice equals merging once."""
        once = merge_text_nodes(nodes)
        twice = merge_text_nodes(once)
        assert _contents(once) == _contents(twice)

    @given(_inline_nodes)
    def test_no_adjacent_text(self, nodes: list[Node]) -> None:
        """Property: no two adjacent text nodes remain."""
        merged = merge_text_nodes(nodes)
        for left, right in zip(merged, merged[1:]):
            assert not (left.kind == kinds.TEXT and right.kind == kinds.TEXT)

    @given(_inline_nodes)
    def test_preserves_text(self, nodes: list[Node]) -> None:
        """Property: merging never changes the extracted text."""
        assert extract_text(merge_text_nodes(nodes)) == extract_text(nodes)


@pytest.mark.unit
class TestCollapseWhitespace:
    """Tests for collapse_whitespace."""

    def test_collapses_and_trims(self) -> None:
        """Test that runs collapse and the ends are trimmed."""
        nodes = collapse_whitespace([text_node("  Hello \n  "), Node(kinds.STRONG), text_node("   world  ")])
        assert nodes[0].get(props.CONTENT) == "Hello "
        assert nodes[-1].get(props.CONTENT) == " world"

    def test_drops_empty_text(self) -> None:
        """Test that whitespace-only runs at the edges vanish."""
        nodes = collapse_whitespace([text_node("   "), Node(kinds.LINE_BREAK)])
        assert [node.kind for node in nodes] == [kinds.LINE_BREAK]


@pytest.mark.unit
class TestTraversal:
    """Tests for extract_text, iter_nodes and normalize_inlines."""

    def test_extract_text_with_joiner(self) -> None:
        """Test joining sibling text."""
        assert extract_text([text_node("a"), text_node("b")], joiner=" ") == "a b"

    def test_iter_nodes_preorder(self) -> None:
        """Test pre-order traversal."""
        tree = Node(kinds.DOCUMENT).extend(
            [Node(kinds.PARAGRAPH).child(text_node("x")), Node(kinds.HORIZONTAL_RULE)]
        )
        assert [node.kind for node in iter_nodes(tree)] == [
            kinds.DOCUMENT,
            kinds.PARAGRAPH,
            kinds.TEXT,
            kinds.HORIZONTAL_RULE,
        ]

    def test_normalize_inlines_recurses(self) -> None:
        """Test that nested child lists are merged in place."""
        tree = Node(kinds.PARAGRAPH).child(Node(kinds.EMPHASIS).extend([text_node("a"), text_node("b")]))
        normalize_inlines(tree)
        assert tree.children[0].children[0].get(props.CONTENT) == "ab"
