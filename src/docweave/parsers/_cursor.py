#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/_cursor.py
"""Line and character cursors used by the hand-written readers.

``LineCursor`` walks a document line by line and, when asked to, maps line
ranges to byte spans in the UTF-8 source. ``CharCursor`` walks a single
string character by character for command-style inline syntax (Texinfo
``@cmd{...}``). Neither raises on out-of-range access; reads past the end
return an empty string.
"""

from __future__ import annotations

from typing import Optional

from docweave.ast.nodes import Span


class LineCursor:
    """Cursor over the lines of a text.

    Parameters
    ----------
    text : str
        Source text; split on ``\\n``. A trailing ``\\r`` is removed from each
        line but still counted in byte offsets.
    track_offsets : bool, default False
        Precompute the byte offset of every line so ``span`` can be answered
        in constant time. Without it ``span`` returns None.

    """

    __slots__ = ("lines", "_pos", "_offsets", "_byte_length")

    def __init__(self, text: str, track_offsets: bool = False):
        raw_lines = text.split("\n")
        if len(raw_lines) > 1 and raw_lines[-1] == "":
            raw_lines.pop()
        self.lines: list[str] = [line[:-1] if line.endswith("\r") else line for line in raw_lines]
        self._pos = 0
        self._offsets: Optional[list[int]] = None
        self._byte_length = 0
        if track_offsets:
            offsets = [0]
            total = 0
            for line in raw_lines:
                total += len(line.encode("utf-8")) + 1
                offsets.append(total)
            self._offsets = offsets
            self._byte_length = len(text.encode("utf-8"))

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def position(self) -> int:
        return self._pos

    @position.setter
    def position(self, value: int) -> None:
        self._pos = max(0, min(value, len(self.lines)))

    @property
    def tracks_offsets(self) -> bool:
        return self._offsets is not None

    def current(self) -> str:
        return self.line(self._pos)

    def peek_ahead(self, n: int = 1) -> str:
        return self.line(self._pos + n)

    def line(self, index: int) -> str:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return ""

    def advance(self, n: int = 1) -> None:
        self.position = self._pos + n

    def is_eof(self) -> bool:
        return self._pos >= len(self.lines)

    def at_blank_line(self) -> bool:
        return not self.is_eof() and not self.current().strip()

    def skip_blank_lines(self) -> None:
        while self.at_blank_line():
            self._pos += 1

    def line_offset(self, index: int) -> int:
        """Return the byte offset at which line ``index`` starts."""
        index = max(0, min(index, len(self.lines)))
        if self._offsets is not None:
            return self._offsets[index]
        return sum(len(line.encode("utf-8")) + 1 for line in self.lines[:index])

    def span(self, start_line: int, end_line: int) -> Optional[Span]:
        """Byte span covering lines ``[start_line, end_line)`` without the final newline."""
        if self._offsets is None:
            return None
        start_line = max(0, min(start_line, len(self.lines)))
        end_line = max(start_line, min(end_line, len(self.lines)))
        start = self._offsets[start_line]
        end = self._offsets[end_line]
        if end_line > start_line:
            end -= 1
        return Span.clamped(start, end, self._byte_length)


class CharCursor:
    """Cursor over the characters of a string."""

    __slots__ = ("chars", "pos")

    def __init__(self, text: str):
        self.chars: list[str] = list(text)
        self.pos = 0

    def current(self) -> str:
        return self.peek(0)

    def peek(self, n: int = 1) -> str:
        index = self.pos + n
        if 0 <= index < len(self.chars):
            return self.chars[index]
        return ""

    def advance(self, n: int = 1) -> None:
        self.pos = max(0, min(self.pos + n, len(self.chars)))

    def is_eof(self) -> bool:
        return self.pos >= len(self.chars)

    def startswith(self, s: str) -> bool:
        return "".join(self.chars[self.pos : self.pos + len(s)]) == s

    def remaining(self) -> str:
        return "".join(self.chars[self.pos :])
