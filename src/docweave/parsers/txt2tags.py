#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/txt2tags.py
"""txt2tags to AST converter.

A txt2tags document opens with an optional three-line header (title,
author, date) followed by the body. Block areas are delimited
by three backticks (verbatim), three double quotes (raw) or three single
quotes (tagged); ``%`` starts a comment line and ``%!`` lines are settings.

"""

from __future__ import annotations

import logging
import re
from typing import Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult
from docweave.ast.nodes import Node, text_node
from docweave.constants import IMAGE_EXTENSIONS, TXT2TAGS_RULE_MIN_LENGTH
from docweave.converter_metadata import ConverterMetadata
from docweave.options.txt2tags import Txt2tagsOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._inline import InlineScanner, MatchResult, code_node, image_node, link_node
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"^[ \t]*(=+|\++)[ \t]*([^=+].*?)[ \t]*(=+|\++)(?:\[([\w-]+)\])?[ \t]*$")
_RULE_RE = re.compile(rf"^[ \t]*([-=_])\1{{{TXT2TAGS_RULE_MIN_LENGTH - 1},}}[ \t]*$")
_LIST_RE = re.compile(r"^( *)([-+:])(?:[ \t]+(.*)|[ \t]*)$")
_SETTING_RE = re.compile(r"^%!\s*([\w-]+)\s*(?:\([^)]*\))?\s*:\s*(.*)$")
_AREA_MARKERS = {"```": "verbatim", '"""': "raw", "'''": "tagged"}

_LINK_RE = re.compile(r"\[([^\[\]]*?)[ \t]+([^\s\[\]]+)\]")
_IMAGE_LINK_RE = re.compile(r"\[\[([^\s\[\]]+)\][ \t]+([^\s\[\]]+)\]")
_IMAGE_RE = re.compile(r"\[([^\s\[\]]+)\]")
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_MARKERS = (
    ("**", kinds.STRONG),
    ("//", kinds.EMPHASIS),
    ("__", kinds.UNDERLINE),
    ("--", kinds.STRIKEOUT),
)


def _is_image(target: str) -> bool:
    return target.lower().endswith(IMAGE_EXTENSIONS)


class Txt2tagsInlineScanner(InlineScanner):
    """Beautifiers, marks, links and images for txt2tags."""

    parser: Txt2tagsParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "`":
            return self.delimited(chars, i, "``", kinds.CODE, bounded=True, literal=True)
        if c == '"':
            return self._area(chars, i, '""', raw=True)
        if c == "'":
            return self._area(chars, i, "''", raw=False)
        if c == "[":
            return self._bracket(i)
        for marker, kind in _MARKERS:
            if c == marker[0]:
                hit = self.delimited(chars, i, marker, kind, bounded=True)
                if hit is not None:
                    return hit
        if c == "h":
            return self.match_bare_url(chars, i)
        if c.isalnum() and (i == 0 or not chars[i - 1].isalnum()):
            return self._email(i)
        return None

    def _area(self, chars: list[str], i: int, marker: str, raw: bool) -> MatchResult:
        hit = self.delimited(chars, i, marker, kinds.RAW_INLINE, bounded=True, literal=True)
        if hit is None:
            return None
        node, end = hit
        assert isinstance(node, Node)
        content = node.props.get_str(props.CONTENT) or ""
        if raw:
            return text_node(content), end
        return node.prop(props.FORMAT, "txt2tags"), end

    def _bracket(self, i: int) -> MatchResult:
        linked = self.match_pattern(_IMAGE_LINK_RE, i)
        if linked and _is_image(linked.group(1)):
            return link_node(linked.group(2), [image_node(linked.group(1))]), linked.end()
        image = self.match_pattern(_IMAGE_RE, i)
        if image and _is_image(image.group(1)):
            return image_node(image.group(1)), image.end()
        link = self.match_pattern(_LINK_RE, i)
        if link is None:
            return None
        label, url = link.group(1).strip(), link.group(2)
        if _is_image(label):
            return link_node(url, [image_node(label)]), link.end()
        return link_node(url, self.scan(label) if label else [text_node(url)]), link.end()

    def _email(self, i: int) -> MatchResult:
        m = self.match_pattern(_EMAIL_RE, i)
        if m is None:
            return None
        address = m.group(0).rstrip(".")
        return link_node(f"mailto:{address}", [text_node(address)]), i + len(address)


class Txt2tagsParser(MarkupParser):
    """Convert txt2tags markup to the document IR.

    Parameters
    ----------
    options : Txt2tagsOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    """

    format_name = "txt2tags"
    options_class = Txt2tagsOptions
    options: Txt2tagsOptions

    def create_inline_scanner(self) -> Txt2tagsInlineScanner:
        return Txt2tagsInlineScanner(self)

    def prepare(self, text: str) -> None:
        cursor = self.cursor
        if not self.options.parse_header or cursor.is_eof() or not cursor.current().strip():
            return
        for key in ("title", "author", "date"):
            if cursor.is_eof():
                break
            value = cursor.current().strip()
            if value:
                self.set_metadata(key, value)
            cursor.advance()

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("area", cls._at_area, cls._consume_area),
            recognizer("title", cls._at_title, cls._consume_title),
            recognizer("separator", cls._at_separator, cls._consume_separator),
            recognizer("quote", cls._at_quote, cls._consume_quote),
            recognizer("list", cls._at_list, cls._consume_list),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_comment(self) -> bool:
        return self.cursor.current().startswith("%")

    def _at_area(self) -> bool:
        return self.cursor.current()[:3] in _AREA_MARKERS

    def _at_title(self) -> bool:
        m = _TITLE_RE.match(self.cursor.current())
        return m is not None and m.group(1) == m.group(3) and len(m.group(1)) <= 5

    def _at_separator(self) -> bool:
        return _RULE_RE.match(self.cursor.current()) is not None

    def _at_quote(self) -> bool:
        return self.cursor.current().startswith("\t")

    def _at_list(self) -> bool:
        m = _LIST_RE.match(self.cursor.current())
        return m is not None and bool(m.group(3))

    def _at_table(self) -> bool:
        return self.cursor.current().lstrip(" ").startswith("|")

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        if line.startswith(("%", "\t")) or line[:3] in _AREA_MARKERS:
            return True
        if _RULE_RE.match(line) or line.lstrip(" ").startswith("|"):
            return True
        title = _TITLE_RE.match(line)
        if title and title.group(1) == title.group(3):
            return True
        item = _LIST_RE.match(line)
        return item is not None and bool(item.group(3))

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_comment(self) -> ConsumeResult:
        cursor = self.cursor
        line = cursor.current()
        cursor.advance()
        if line.rstrip() == "%%%":
            self.collect_until(lambda candidate: candidate.rstrip() == "%%%")
            return None
        setting = _SETTING_RE.match(line)
        if setting is None:
            return None
        name, value = setting.group(1).lower(), setting.group(2).strip()
        if name == "include":
            return self.unsupported_block(name, value, f"txt2tags include of '{value}' is not followed")
        self.set_metadata(f"txt2tags:{name}", value)
        return None

    def _consume_area(self) -> ConsumeResult:
        cursor = self.cursor
        line = cursor.current()
        marker = line[:3]
        area = _AREA_MARKERS[marker]
        rest = line[3:]
        cursor.advance()

        if rest.strip():
            # One-line area: the marker is followed by a space and the content
            lines = [rest[1:] if rest.startswith(" ") else rest]
        else:
            lines, closed = self.collect_until(lambda candidate: candidate.rstrip() == marker)
            if not closed:
                self.feature_lost(f"Unterminated {area} area", detail=f"txt2tags:unterminated:{area}")

        content = "\n".join(lines)
        if area == "verbatim":
            return self.code_block(content)
        if area == "tagged":
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, content).prop(props.FORMAT, "txt2tags")
        return [
            self.plain_paragraph(chunk.strip("\n"))
            for chunk in re.split(r"\n[ \t]*\n", content)
            if chunk.strip()
        ]

    def _consume_title(self) -> ConsumeResult:
        m = _TITLE_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        marks, text, _closing, label = m.groups()
        node = self.heading(len(marks), text)
        if marks[0] == "+":
            node.prop("txt2tags:numbered", True)
        if label:
            node.prop(props.ID, label)
        return node

    def _consume_separator(self) -> ConsumeResult:
        line = self.cursor.current().strip()
        self.cursor.advance()
        node = Node(kinds.HORIZONTAL_RULE)
        if line.startswith("="):
            node.prop("txt2tags:strong", True)
        return node

    def _consume_quote(self) -> ConsumeResult:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof() and cursor.current().startswith("\t"):
            lines.append(cursor.current()[1:])
            cursor.advance()
        return Node(kinds.BLOCKQUOTE, children=self.parse_nested("\n".join(lines)))

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        first = _LIST_RE.match(cursor.current())
        assert first is not None
        if first.group(2) == ":":
            return self._consume_definition_list()

        builder = ListBuilder()
        indents: list[int] = []
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None:
                if not cursor.current().strip() and self._list_continues():
                    cursor.advance()
                    continue
                break
            indent, marker, text = len(m.group(1)), m.group(2), m.group(3)
            if not text:
                # An empty item closes the list
                cursor.advance()
                break
            if marker == ":":
                break
            while indents and indent < indents[-1]:
                indents.pop()
            if not indents or indent > indents[-1]:
                indents.append(indent)
            first_line = cursor.position
            cursor.advance()
            lines = [text]
            while (
                not cursor.is_eof()
                and cursor.current().strip()
                and not self._interrupts_paragraph(cursor.current())
                and not _LIST_RE.match(cursor.current())
            ):
                lines.append(cursor.current().strip())
                cursor.advance()
            list_item = builder.add_item(len(indents), marker == "+", self.inlines("\n".join(lines)))
            spans.append((list_item, len(indents), first_line))
        self.span_list_items(spans)
        return builder.lists

    def _list_continues(self) -> bool:
        """A single blank line between items keeps the list open."""
        following = self.cursor.peek_ahead()
        m = _LIST_RE.match(following)
        return m is not None and bool(m.group(3)) and m.group(2) != ":"

    def _consume_definition_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None or m.group(2) != ":":
                break
            cursor.advance()
            if not m.group(3):
                break
            lines: list[str] = []
            while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.current()):
                lines.append(cursor.current())
                cursor.advance()
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(m.group(3).strip())))
            desc = Node(kinds.DEFINITION_DESC)
            if lines:
                desc.child(self.paragraph(lines))
            definition_list.child(desc)
            if not cursor.is_eof() and not cursor.current().strip():
                following = _LIST_RE.match(cursor.peek_ahead())
                if following and following.group(2) == ":" and following.group(3):
                    cursor.advance()
        return definition_list

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        builder = TableBuilder()
        centered = cursor.current().startswith(" ")
        while not cursor.is_eof() and cursor.current().lstrip(" ").startswith("|"):
            row = cursor.current().strip()
            cursor.advance()
            is_header = row.startswith("||")
            body = row[2:] if is_header else row[1:]
            raw_cells = body.split(" | ")
            if raw_cells and raw_cells[-1].rstrip().endswith("|"):
                raw_cells[-1] = raw_cells[-1].rstrip()[:-1]
            cells = [self.inlines(cell.strip()) for cell in raw_cells]
            row_node = builder.add_row(cells, is_header=is_header)
            for cell_node, raw in zip(row_node.children, raw_cells):
                align = self._cell_alignment(raw)
                if align:
                    cell_node.prop(props.ALIGN, align)
        table = builder.get_table()
        if centered:
            table.prop(props.STYLE_ALIGN, "center")
        return table

    @staticmethod
    def _cell_alignment(raw: str) -> Optional[str]:
        if not raw.strip():
            return None
        left = len(raw) - len(raw.lstrip(" "))
        right = len(raw) - len(raw.rstrip(" "))
        if left > 1 and right > 1:
            return "center"
        if left > 1:
            return "right"
        return None

    def _consume_paragraph(self) -> ConsumeResult:
        return self.paragraph(self.collect_paragraph_lines(self._interrupts_paragraph))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a txt2tags document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        txt2tags source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return Txt2tagsParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: Txt2tagsOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return Txt2tagsParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="txt2tags",
    extensions=[".t2t"],
    mime_types=["text/x-txt2tags"],
    parser_class=Txt2tagsParser,
    parser_options_class=Txt2tagsOptions,
    description="Parse txt2tags documents",
    priority=10,
)
