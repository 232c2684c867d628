#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/_inline.py
"""Inline scanning shared by the hand-written readers.

Each dialect subclasses ``InlineScanner`` and implements ``match_at``, which
tries the dialect's inline rules at one position of the character list and
returns the produced node(s) with the index just past the construct, or
None. The base class accumulates unmatched characters as literal text,
enforces progress, bounds recursion through the reader's shared depth
counter, and finishes every scan with ``merge_text_nodes``.

The conventions every dialect follows:

1. Doubled delimiters are tried before single ones.
2. An opener without a matching closer is literal text.
3. Inner content is scanned recursively with ``scan``.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_left, bisect_right
from typing import TYPE_CHECKING, Optional, Sequence, Union

from docweave.ast import kinds, props
from docweave.ast.nodes import Node, text_node
from docweave.ast.utils import merge_text_nodes

if TYPE_CHECKING:
    from docweave.parsers._block import BlockDispatcher

logger = logging.getLogger(__name__)

MatchResult = Optional[tuple[Union[Node, list[Node]], int]]

_URL_TRAILING_PUNCTUATION = ".,;:!?)'\""
_WHITESPACE_RE = re.compile(r"\s+")


def is_word_char(c: str) -> bool:
    """Alphanumeric test used by constrained markup boundaries."""
    return bool(c) and c.isalnum()


class ClosingIndex:
    """Sorted closer positions for one run of characters.

    Positions are collected once per marker and boundary rule, so finding a
    closer is a binary search and an opener without a closer costs no
    rescan of the run.

    Parameters
    ----------
    chars : Sequence[str]
        Characters being scanned, one per item

    """

    def __init__(self, chars: Sequence[str]):
        self.chars = chars
        self.text = "".join(chars)
        self._positions: dict[tuple, list[int]] = {}

    def positions(
        self,
        marker: str,
        no_space_before: bool = False,
        no_word_after: bool = False,
        followed_by: Optional[frozenset[str]] = None,
    ) -> list[int]:
        """Every index where ``marker`` occurs and satisfies the boundary rules."""
        key = (marker, no_space_before, no_word_after, followed_by)
        found = self._positions.get(key)
        if found is not None:
            return found
        text = self.text
        n = len(text)
        width = len(marker)
        found = []
        i = text.find(marker)
        while i >= 0:
            end = i + width
            if no_space_before and i > 0 and text[i - 1].isspace():
                pass
            elif no_word_after and end < n and is_word_char(text[end]):
                pass
            elif followed_by is not None and end < n and not (text[end].isspace() or text[end] in followed_by):
                pass
            else:
                found.append(i)
            i = text.find(marker, i + 1)
        self._positions[key] = found
        return found

    def find(self, start: int, marker: str) -> int:
        """Index of the next occurrence of ``marker`` at or after ``start``, or -1."""
        found = self.positions(marker)
        k = bisect_left(found, start)
        return found[k] if k < len(found) else -1

    def find_bounded(
        self,
        start: int,
        marker: str,
        *,
        no_space_before: bool = True,
        no_word_after: bool = False,
        followed_by: Optional[frozenset[str]] = None,
    ) -> int:
        """Like ``find`` but skip closers that violate boundary rules.

        Parameters
        ----------
        start : int
            Index of the first content character
        marker : str
            Closing marker
        no_space_before : bool, default True
            Reject a closer preceded by whitespace (RST, Org)
        no_word_after : bool, default False
            Reject a closer followed by an alphanumeric character (Org, Textile)
        followed_by : frozenset of str, optional
            Accept a closer only at the end of the run or before whitespace or
            one of these characters

        Returns
        -------
        int
            Index of the closer, or -1. An empty span (closer at ``start``) is
            never accepted.

        """
        found = self.positions(marker, no_space_before, no_word_after, followed_by)
        k = bisect_right(found, start)
        return found[k] if k < len(found) else -1


def normalize_reference_name(name: str) -> str:
    """Lowercase and collapse whitespace, the form used for reference lookup."""
    return _WHITESPACE_RE.sub(" ", name.strip()).lower()


class ReferenceTable:
    """Named link targets collected before the main pass.

    The table is filled by a pre-pass and frozen before block parsing, so
    forward references resolve exactly like backward ones.
    """

    def __init__(self) -> None:
        self._targets: dict[str, str] = {}
        self._frozen = False

    def define(self, name: str, target: str) -> None:
        """Record ``name``; the first definition of a name wins."""
        if self._frozen:
            raise RuntimeError("reference table is frozen")
        key = normalize_reference_name(name)
        if key in self._targets:
            logger.debug("Ignoring redefinition of reference target %r", name)
            return
        self._targets[key] = target

    def resolve(self, name: str) -> Optional[str]:
        return self._targets.get(normalize_reference_name(name))

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: str) -> bool:
        return normalize_reference_name(name) in self._targets

    def __len__(self) -> int:
        return len(self._targets)


class InlineScanner:
    """Base class for dialect inline scanners.

    Parameters
    ----------
    parser : BlockDispatcher
        Reader whose depth counter and fidelity collector are shared

    """

    def __init__(self, parser: BlockDispatcher):
        self.parser = parser
        self.text = ""
        self.closers: Optional[ClosingIndex] = None

    def scan(self, text: str) -> list[Node]:
        """Scan ``text`` into merged inline nodes."""
        if not text:
            return []
        if not self.parser.enter_nesting():
            return [text_node(text)]
        try:
            nodes = self.scan_chars(list(text))
        finally:
            self.parser.exit_nesting()
        return merge_text_nodes(nodes)

    def scan_chars(self, chars: list[str]) -> list[Node]:
        saved_text, saved_closers = self.text, self.closers
        self.closers = ClosingIndex(chars)
        self.text = self.closers.text
        nodes: list[Node] = []
        buf: list[str] = []
        i = 0
        n = len(chars)
        try:
            while i < n:
                hit = self.match_at(chars, i)
                if hit is None or hit[1] <= i:
                    if chars[i] == "\n":
                        self.emit_text(buf, nodes)
                        nodes.append(Node(kinds.SOFT_BREAK))
                    else:
                        buf.append(chars[i])
                    i += 1
                    continue
                produced, i = hit
                self.emit_text(buf, nodes)
                if isinstance(produced, list):
                    nodes.extend(produced)
                else:
                    nodes.append(produced)
            self.emit_text(buf, nodes)
        finally:
            self.text, self.closers = saved_text, saved_closers
        return nodes

    def closing_index(self, chars: Sequence[str]) -> ClosingIndex:
        """Closer index for ``chars``; the run being scanned reuses its own."""
        if self.closers is not None and self.closers.chars is chars:
            return self.closers
        return ClosingIndex(chars)

    def find_closing(self, chars: Sequence[str], start: int, marker: str) -> int:
        """Index of the next ``marker`` at or after ``start``, or -1."""
        return self.closing_index(chars).find(start, marker)

    def find_closing_bounded(
        self,
        chars: Sequence[str],
        start: int,
        marker: str,
        *,
        no_space_before: bool = True,
        no_word_after: bool = False,
        followed_by: Optional[frozenset[str]] = None,
    ) -> int:
        """First closer after ``start`` that satisfies the boundary rules, or -1."""
        return self.closing_index(chars).find_bounded(
            start,
            marker,
            no_space_before=no_space_before,
            no_word_after=no_word_after,
            followed_by=followed_by,
        )

    def match_pattern(self, pattern: re.Pattern[str], i: int) -> Optional[re.Match[str]]:
        """Match a compiled regex at index ``i`` of the text being scanned."""
        return pattern.match(self.text, i)

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        """Try the dialect's inline rules at ``i``; return ``(node(s), end)`` or None."""
        raise NotImplementedError

    @staticmethod
    def emit_text(buf: list[str], nodes: list[Node]) -> None:
        """Flush accumulated literal characters into ``nodes``."""
        if buf:
            nodes.append(text_node("".join(buf)))
            buf.clear()

    # ------------------------------------------------------------------
    # Shared rule helpers
    # ------------------------------------------------------------------

    def wrap(self, kind: str, chars: Sequence[str], start: int, end: int) -> Node:
        """Node of ``kind`` whose children are the scanned ``chars[start:end]``."""
        return Node(kind, children=self.scan("".join(chars[start:end])))

    def delimited(
        self,
        chars: list[str],
        i: int,
        marker: str,
        kind: str,
        *,
        bounded: bool = False,
        no_word_after: bool = False,
        literal: bool = False,
    ) -> MatchResult:
        """Match ``marker ... marker`` at ``i``.

        With ``bounded`` the opener must not be followed by whitespace and the
        closer must not be preceded by it. With ``literal`` the content is kept
        as the node's ``content`` instead of being scanned, line ends as spaces.
        """
        width = len(marker)
        if "".join(chars[i : i + width]) != marker:
            return None
        start = i + width
        if start >= len(chars):
            return None
        if bounded and chars[start].isspace():
            return None
        if bounded or no_word_after:
            close = self.find_closing_bounded(
                chars, start, marker, no_space_before=bounded, no_word_after=no_word_after
            )
        else:
            close = self.find_closing(chars, start, marker)
            if close == start:
                return None
        if close < 0:
            return None
        if literal:
            return Node(kind).prop(props.CONTENT, "".join(chars[start:close]).replace("\n", " ")), close + width
        return self.wrap(kind, chars, start, close), close + width

    @staticmethod
    def match_bare_url(chars: list[str], i: int) -> MatchResult:
        """Match a bare ``http(s)://`` URL not preceded by a word character."""
        if chars[i] != "h" or (i > 0 and is_word_char(chars[i - 1])):
            return None
        rest = "".join(chars[i : i + 8])
        if not (rest.startswith("http://") or rest.startswith("https://")):
            return None
        end = i
        n = len(chars)
        while end < n and not chars[end].isspace() and chars[end] not in "<>[]":
            end += 1
        while end > i and chars[end - 1] in _URL_TRAILING_PUNCTUATION:
            end -= 1
        url = "".join(chars[i:end])
        if url in ("http://", "https://"):
            return None
        return link_node(url, [text_node(url)]), end


def link_node(url: str, children: list[Node], title: Optional[str] = None) -> Node:
    node = Node(kinds.LINK, children=children).prop(props.URL, url)
    if title:
        node.prop(props.TITLE, title)
    return node


def image_node(url: str, alt: Optional[str] = None, title: Optional[str] = None) -> Node:
    node = Node(kinds.IMAGE).prop(props.URL, url)
    if alt:
        node.prop(props.ALT, alt)
    if title:
        node.prop(props.TITLE, title)
    return node


def code_node(content: str) -> Node:
    return Node(kinds.CODE).prop(props.CONTENT, content)
