#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/_block.py
"""Priority-ordered block recognition shared by the hand-written readers.

A reader declares its block grammar as an ordered tuple of ``Recognizer``
objects. ``BlockDispatcher.parse_blocks`` walks the current ``LineCursor``,
offers each non-blank line to the recognizers in order and lets the first
match consume as many lines as it needs. The last recognizer of every
reader is a paragraph fallback that matches any non-blank line.

The loop guarantees progress: if a recognizer returns without moving the
cursor, the line is skipped and the event is logged at DEBUG. Nested bodies
(list items, quotes, directive bodies) are parsed through ``parse_nested``,
which shares reader state and a depth counter with the inline scanner.
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Optional, Union

from docweave.ast import kinds, props
from docweave.ast.fidelity import FidelityCollector, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.parsers._cursor import LineCursor

logger = logging.getLogger(__name__)

ConsumeResult = Union[Node, list[Node], None]
StopCondition = Callable[[LineCursor], bool]


class Recognizer(NamedTuple):
    """A named block rule: a predicate on the dispatcher and a consumer."""

    name: str
    matches: Callable[["BlockDispatcher"], bool]
    consume: Callable[["BlockDispatcher"], ConsumeResult]


def recognizer(
    name: str,
    matches: Callable[["BlockDispatcher"], bool],
    consume: Callable[["BlockDispatcher"], ConsumeResult],
) -> Recognizer:
    """Build a recognizer from two callables taking the dispatcher."""
    return Recognizer(name, matches, consume)


class BlockDispatcher:
    """Block loop, nesting bound and fallback helpers for a single parse.

    Subclasses provide ``format_name`` and ``build_recognizers``. The
    dispatcher owns the mutable parse state: the active cursor, the fidelity
    collector and the nesting depth.

    Parameters
    ----------
    max_nesting_depth : int
        Bound shared by ``parse_nested`` and the inline scanner
    warnings : FidelityCollector
        Sink for fidelity warnings

    """

    format_name: str = "markup"

    def __init__(self, max_nesting_depth: int, warnings: FidelityCollector):
        self.cursor = LineCursor("")
        self.warnings = warnings
        self.max_nesting_depth = max_nesting_depth
        self._depth = 0
        self._depth_exceeded = False
        self._recognizers: Optional[tuple[Recognizer, ...]] = None

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        raise NotImplementedError

    @property
    def recognizers(self) -> tuple[Recognizer, ...]:
        if self._recognizers is None:
            self._recognizers = self.build_recognizers()
        return self._recognizers

    # ------------------------------------------------------------------
    # Block loop
    # ------------------------------------------------------------------

    def parse_blocks(self, cursor: Optional[LineCursor] = None, stop: Optional[StopCondition] = None) -> list[Node]:
        """Parse blocks from ``cursor`` (default: the active cursor) until EOF or ``stop``."""
        if cursor is not None and cursor is not self.cursor:
            saved = self.cursor
            self.cursor = cursor
            try:
                return self._block_loop(stop)
            finally:
                self.cursor = saved
        return self._block_loop(stop)

    def _block_loop(self, stop: Optional[StopCondition]) -> list[Node]:
        cursor = self.cursor
        nodes: list[Node] = []
        while True:
            cursor.skip_blank_lines()
            if cursor.is_eof() or (stop is not None and stop(cursor)):
                break

            start = cursor.position
            produced: ConsumeResult = None
            matched = None
            for rule in self.recognizers:
                if rule.matches(self):
                    matched = rule.name
                    produced = rule.consume(self)
                    break

            if cursor.position <= start:
                logger.debug(
                    "%s: no progress at line %d (recognizer: %s); skipping line",
                    self.format_name,
                    start + 1,
                    matched,
                )
                cursor.position = start + 1

            if produced is None:
                continue
            produced_nodes = produced if isinstance(produced, list) else [produced]
            if cursor.tracks_offsets:
                end = cursor.position
                while end > start + 1 and not cursor.line(end - 1).strip():
                    end -= 1
                span = cursor.span(start, end)
                for node in produced_nodes:
                    if node.span is None:
                        node.span = span
            nodes.extend(produced_nodes)
        return nodes

    def span_list_items(self, items: list[tuple[Node, int, int]]) -> None:
        """Attach line spans to list items consumed from an offset-tracking cursor.

        Parameters
        ----------
        items : list[tuple[Node, int, int]]
            ``(item, level, first_line)`` in document order, called once the
            list is consumed. An item runs until the next item at the same or a
            shallower level, so nested items stay inside their parents.

        """
        cursor = self.cursor
        if not cursor.tracks_offsets:
            return

        def close(entry: tuple[Node, int, int], end: int) -> None:
            item, _level, first_line = entry
            while end > first_line + 1 and not cursor.line(end - 1).strip():
                end -= 1
            if item.span is None:
                item.span = cursor.span(first_line, end)

        open_items: list[tuple[Node, int, int]] = []
        for entry in items:
            while open_items and open_items[-1][1] >= entry[1]:
                close(open_items.pop(), entry[2])
            open_items.append(entry)
        while open_items:
            close(open_items.pop(), cursor.position)

    # ------------------------------------------------------------------
    # Nesting
    # ------------------------------------------------------------------

    def enter_nesting(self) -> bool:
        """Increment the shared depth; return False (and warn once) past the bound."""
        if self._depth >= self.max_nesting_depth:
            if not self._depth_exceeded:
                self._depth_exceeded = True
                self.warnings.major(
                    WarningKind.FEATURE_LOST,
                    "nesting depth exceeded",
                    detail=f"{self.format_name}:max_nesting_depth={self.max_nesting_depth}",
                    span=self.cursor.span(self.cursor.position, self.cursor.position + 1),
                )
            return False
        self._depth += 1
        return True

    def exit_nesting(self) -> None:
        self._depth = max(0, self._depth - 1)

    def parse_nested(self, text: str) -> list[Node]:
        """Parse ``text`` as a nested block sequence with the same reader state.

        Nested cursors never track offsets, so nested nodes carry no spans.
        Past the nesting bound the body becomes a single plain paragraph.
        """
        if not self.enter_nesting():
            return self.flat_paragraph(text)
        try:
            return self.parse_blocks(LineCursor(text))
        finally:
            self.exit_nesting()

    @staticmethod
    def flat_paragraph(text: str) -> list[Node]:
        joined = " ".join(line.strip() for line in text.split("\n") if line.strip())
        if not joined:
            return []
        return [Node(kinds.PARAGRAPH).child(text_node(joined))]

    # ------------------------------------------------------------------
    # Degradation helpers
    # ------------------------------------------------------------------

    def unsupported_block(self, name: str, raw: str, message: Optional[str] = None, parse_body: bool = False) -> Node:
        """Record a MINOR warning for an unknown construct and return a div fallback.

        Parameters
        ----------
        name : str
            Construct name; the warning detail is ``<format>:<name>``
        raw : str
            Source text of the construct; kept as a paragraph (or parsed as
            blocks when ``parse_body`` is set)
        message : str, optional
            Warning message override
        parse_body : bool, default False
            Parse ``raw`` as nested blocks instead of keeping it verbatim

        """
        detail = f"{self.format_name}:{name}"
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            message or f"Unsupported {self.format_name} construct '{name}'",
            detail=detail,
        )
        div = Node(kinds.DIV).prop(f"{self.format_name}:unsupported", name)
        if parse_body:
            div.extend(self.parse_nested(raw))
        elif raw.strip():
            div.child(Node(kinds.PARAGRAPH).child(text_node(raw.strip("\n"))))
        if not div.children:
            div.child(Node(kinds.PARAGRAPH).child(text_node(name)))
        return div

    def feature_lost(self, message: str, detail: str) -> None:
        """Record a MAJOR structural loss at the current line."""
        span = self.cursor.span(self.cursor.position, self.cursor.position + 1)
        self.warnings.major(WarningKind.FEATURE_LOST, message, detail=detail, span=span)

    def collect_until(self, closing: Callable[[str], bool]) -> tuple[list[str], bool]:
        """Collect lines up to a closing line; consume the closer if found.

        Returns
        -------
        tuple[list[str], bool]
            Collected lines and whether the closer was found before EOF

        """
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current()
            if closing(line):
                cursor.advance()
                return lines, True
            lines.append(line)
            cursor.advance()
        return lines, False

    def collect_paragraph_lines(self, interrupts: Callable[[str], bool]) -> list[str]:
        """Collect the current line and following non-blank lines until ``interrupts`` is true."""
        cursor = self.cursor
        lines = [cursor.current()]
        cursor.advance()
        while not cursor.is_eof() and cursor.current().strip() and not interrupts(cursor.current()):
            lines.append(cursor.current())
            cursor.advance()
        return lines


def apply_pending(node: Node, pending: dict[str, object]) -> Node:
    """Copy pending block attributes (id, title, classes) onto ``node`` and clear them."""
    for key in (props.ID, props.TITLE, props.CLASSES):
        value = pending.pop(key, None)
        if value is not None and key not in node.props:
            node.prop(key, value)
    for key in list(pending):
        node.prop(key, pending.pop(key))
    return node
