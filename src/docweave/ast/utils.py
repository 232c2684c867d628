#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/utils.py
"""Utility functions for working with IR nodes.

Functions
---------
merge_text_nodes : Concatenate adjacent text nodes in a sibling list
collapse_whitespace : Merge text runs and normalize their whitespace
normalize_inlines : Apply ``merge_text_nodes`` to every child list in a tree
extract_text : Extract plain text from a node or list of nodes
iter_nodes : Pre-order traversal

Examples
--------
    >>> from docweave.ast.nodes import text_node
    >>> merged = merge_text_nodes([text_node("Hello"), text_node(", "), text_node("world")])
    >>> [n.get("content") for n in merged]
    ['Hello, world']

"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Union

from docweave.ast import kinds
from docweave.ast.nodes import Node, Properties, Span
from docweave.ast.props import CONTENT

_WHITESPACE_RE = re.compile(r"[ \t\r\n\f\v]+")


def _merged_span(first: Node, second: Node) -> Span | None:
    if first.span is None or second.span is None:
        return None
    return Span(min(first.span.start, second.span.start), max(first.span.end, second.span.end))


def merge_text_nodes(nodes: Iterable[Node]) -> list[Node]:
    """Concatenate runs of adjacent ``text`` nodes.

    The merge is shallow (children of non-text nodes are not visited) and
    idempotent. The input list and its nodes are left untouched; merged runs
    are replaced by fresh nodes.

    Parameters
    ----------
    nodes : Iterable[Node]
        Sibling nodes

    Returns
    -------
    list[Node]
        New list with no two adjacent ``text`` nodes

    """
    result: list[Node] = []
    for node in nodes:
        if result and node.kind == kinds.TEXT and result[-1].kind == kinds.TEXT:
            previous = result[-1]
            content = (previous.props.get_str(CONTENT, "") or "") + (node.props.get_str(CONTENT, "") or "")
            result[-1] = Node(kinds.TEXT, Properties({CONTENT: content}), span=_merged_span(previous, node))
        else:
            result.append(node)
    return result


def collapse_whitespace(nodes: Iterable[Node]) -> list[Node]:
    """Merge text runs, collapse whitespace inside them and trim both ends of the run.

    Used by readers whose source treats any whitespace run as a single
    space (LaTeX, XML). Text nodes left empty are dropped.
    """
    result: list[Node] = []
    for node in merge_text_nodes(nodes):
        if node.kind == kinds.TEXT:
            content = _WHITESPACE_RE.sub(" ", node.props.get_str(CONTENT, "") or "")
            node = Node(kinds.TEXT, Properties({CONTENT: content}), span=node.span)
        result.append(node)
    if result and result[0].kind == kinds.TEXT:
        result[0].props.set(CONTENT, (result[0].props.get_str(CONTENT, "") or "").lstrip())
    if result and result[-1].kind == kinds.TEXT:
        result[-1].props.set(CONTENT, (result[-1].props.get_str(CONTENT, "") or "").rstrip())
    return [node for node in result if node.kind != kinds.TEXT or node.props.get_str(CONTENT)]


def normalize_inlines(node: Node) -> Node:
    """Merge adjacent text nodes in every child list of ``node``, in place."""
    for child in node.children:
        normalize_inlines(child)
    node.children = merge_text_nodes(node.children)
    return node


def extract_text(node_or_nodes: Union[Node, list[Node]], joiner: str = "") -> str:
    """Extract plain text from a node or list of nodes.

    Parameters
    ----------
    node_or_nodes : Node or list of Node
        A single node or list of nodes to extract text from
    joiner : str, default ""
        String used to join the text of sibling nodes. Text nodes already
        carry their own whitespace, so the default keeps it exact.

    Returns
    -------
    str
        Concatenated text content

    """
    if isinstance(node_or_nodes, list):
        parts = [extract_text(node, joiner=joiner) for node in node_or_nodes]
        return joiner.join(part for part in parts if part)

    node = node_or_nodes
    if node.kind in (kinds.TEXT, kinds.CODE, kinds.MATH_INLINE, kinds.RAW_INLINE):
        return node.props.get_str(CONTENT, "") or ""
    if node.kind == kinds.LINE_BREAK:
        return "\n"
    if node.kind == kinds.SOFT_BREAK:
        return " "
    if not node.children:
        return node.props.get_str(CONTENT, "") or ""
    return extract_text(node.children, joiner=joiner)


def iter_nodes(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


__all__ = [
    "collapse_whitespace",
    "extract_text",
    "iter_nodes",
    "merge_text_nodes",
    "normalize_inlines",
]
