#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/visitors.py
"""Visitor pattern implementation for IR traversal.

Because node kinds are open strings, dispatch is by name: ``visit(node)``
calls ``visit_<kind>`` when the visitor defines it and ``generic_visit``
otherwise. Namespaced kinds map ``:`` to ``_``, so a ``rst:comment`` node
is handled by ``visit_rst_comment``.

"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

from docweave.ast import kinds, props
from docweave.ast.nodes import Node, Span

_METHOD_SANITIZER = re.compile(r"[^0-9a-zA-Z_]")


def visitor_method_name(kind: str) -> str:
    """Return the ``visit_*`` method name handling ``kind``."""
    return "visit_" + _METHOD_SANITIZER.sub("_", kind)


class NodeVisitor:
    """Base class for IR node visitors.

    Examples
    --------
    Count headings:

        >>> class HeadingCounter(NodeVisitor):
        ...     def __init__(self):
        ...         self.count = 0
        ...     def visit_heading(self, node):
        ...         self.count += 1
        ...         self.generic_visit(node)
        >>> counter = HeadingCounter()
        >>> doc.content.accept(counter)

    """

    def visit(self, node: Node) -> Any:
        method = getattr(self, visitor_method_name(node.kind), None)
        if method is None:
            return self.generic_visit(node)
        return method(node)

    def generic_visit(self, node: Node) -> Any:
        """Visit every child of ``node``; returns None."""
        for child in node.children:
            self.visit(child)
        return None


class NodeTransformer(NodeVisitor):
    """Visitor that rebuilds the tree.

    A ``visit_*`` method returns a ``Node`` to replace the visited node,
    ``None`` to remove it, or a list of nodes to splice in its place. The
    default ``generic_visit`` copies the node with transformed children, so
    the input tree is never mutated.

    Examples
    --------
        >>> class DropImages(NodeTransformer):
        ...     def visit_image(self, node):
        ...         return None
        >>> cleaned = DropImages().transform(doc.content)

    """

    def transform(self, node: Node) -> Optional[Node]:
        result = self.visit(node)
        if isinstance(result, list):
            if len(result) != 1:
                raise ValueError("the root node cannot be replaced by a list of nodes")
            return result[0]
        return result

    def transform_children(self, children: list[Node]) -> list[Node]:
        result: list[Node] = []
        for child in children:
            transformed: Union[Node, list[Node], None] = self.visit(child)
            if transformed is None:
                continue
            if isinstance(transformed, list):
                result.extend(transformed)
            else:
                result.append(transformed)
        return result

    def generic_visit(self, node: Node) -> Node:
        return Node(node.kind, node.props.copy(), self.transform_children(node.children), node.span)


class ValidationVisitor(NodeVisitor):
    """Visitor that checks the structural invariants of a parsed tree.

    Checks performed:

    - every span satisfies ``start <= end`` and lies within the source
    - a parent's span contains the spans of its children
    - every kind is in the vocabulary or carries a namespace
    - heading levels are integers between 1 and 6

    Parameters
    ----------
    source_length : int, optional
        Byte length of the UTF-8 source; span bounds are not checked without it
    strict : bool, default True
        Raise ``ValueError`` on the first failure instead of collecting it

    Examples
    --------
        >>> validator = ValidationVisitor(len(text.encode("utf-8")), strict=False)
        >>> validator.validate(result.value.content)
        >>> validator.errors
        []

    """

    def __init__(self, source_length: Optional[int] = None, strict: bool = True):
        self.source_length = source_length
        self.strict = strict
        self.errors: list[str] = []
        self._span_stack: list[Span] = []

    def _add_error(self, message: str) -> None:
        self.errors.append(message)
        if self.strict:
            raise ValueError(message)

    def validate(self, node: Node) -> list[str]:
        """Validate ``node`` and its descendants; return the collected errors."""
        self.visit(node)
        return self.errors

    def visit(self, node: Node) -> None:
        if not kinds.is_known_kind(node.kind):
            self._add_error(f"Unknown node kind without namespace: {node.kind!r}")

        if node.kind == kinds.HEADING:
            level = node.props.get_int(props.LEVEL)
            if level is None or not 1 <= level <= 6:
                self._add_error(f"Invalid heading level: {node.get(props.LEVEL)!r}")

        span = node.span
        if span is not None:
            if span.start > span.end:
                self._add_error(f"Span {span} of {node.kind} has start after end")
            if self.source_length is not None and span.end > self.source_length:
                self._add_error(f"Span {span} of {node.kind} exceeds source length {self.source_length}")
            if self._span_stack and not self._span_stack[-1].contains(span):
                self._add_error(f"Span {span} of {node.kind} is not contained in parent span {self._span_stack[-1]}")
            self._span_stack.append(span)

        try:
            super().generic_visit(node)
        finally:
            if span is not None:
                self._span_stack.pop()
