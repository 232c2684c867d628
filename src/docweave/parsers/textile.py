#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/textile.py
"""Textile to AST converter.

Block signatures (``h1.``, ``bc..``, ``bq.``, ``p(class#id).``) open a
block; the doubled form ``..`` extends it across blank lines until the
next signature. Attribute modifiers on signatures, list markers and table
cells map to ``classes``, ``id``, alignment and ``textile:`` properties.

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
from docweave.converter_metadata import ConverterMetadata
from docweave.options.textile import TextileOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._inline import (
    InlineScanner,
    MatchResult,
    code_node,
    image_node,
    is_word_char,
    link_node,
)
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_ATTRS = r"(?:\([^)\s]*\)|\{[^}]*\}|\[[^\]\s]*\]|<>|[<>=()])*"
_SIGNATURE_RE = re.compile(rf"^(h[1-6]|bc|bq|pre|p|fn\d+|notextile)({_ATTRS})\.(\.)?(?::(\S+))?(?:[ \t]+(.*)|[ \t]*)$")
_ANY_SIGNATURE_RE = re.compile(rf"^([a-z][a-z0-9]*)({_ATTRS})\.(\.)?(?:[ \t]+(.*)|[ \t]*)$")
_LIST_RE = re.compile(rf"^([*#]+)({_ATTRS})[ \t]+(.*)$")
_DEFINITION_RE = re.compile(r"^-[ \t]+(.*?)[ \t]*:=(?:[ \t]+(.*)|[ \t]*)$")
_TABLE_SIGNATURE_RE = re.compile(rf"^table({_ATTRS})\.[ \t]*$")
_CELL_MODIFIER_RE = re.compile(r"^((?:_|\\\d+|/\d+|<>|[<>=^~]|\([^)]*\)|\{[^}]*\})+)\.(?:[ \t]+|$)")
_ATTR_PART_RE = re.compile(r"\(([^)]*)\)|\{([^}]*)\}|\[([^\]]*)\]|(<>|<|>|=)")

_LINK_RE = re.compile(r"\"([^\"\n]+?)(?:\(([^)\n]+)\))?\":([^\s\"<>\]]+)")
_IMAGE_RE = re.compile(r"!([<>]?)([^\s!()]+)(?:\(([^)]*)\))?!(?::([^\s]+))?")
_FOOTNOTE_REF_RE = re.compile(r"\[(\d+)\]")
_SPAN_RE = re.compile(r"%(\{[^}]*\}|\([^)]*\))?([^%\n]+)%")

_ALIGNMENTS = {"<": "left", ">": "right", "=": "center", "<>": "justify"}
_GLYPHS = {"(c)": "\u00a9", "(r)": "\u00ae", "(tm)": "\u2122", "(C)": "\u00a9", "(R)": "\u00ae", "(TM)": "\u2122"}
_URL_TRAILING = ".,;:!?)"
_MARKERS = (
    ("**", kinds.STRONG),
    ("__", kinds.EMPHASIS),
    ("??", kinds.CITE),
    ("*", kinds.STRONG),
    ("_", kinds.EMPHASIS),
    ("-", kinds.STRIKEOUT),
    ("+", kinds.UNDERLINE),
    ("^", kinds.SUPERSCRIPT),
    ("~", kinds.SUBSCRIPT),
)


def _apply_attributes(node: Node, attrs: str) -> Node:
    """Apply ``(class#id)``, ``{style}``, ``[lang]`` and alignment modifiers to ``node``."""
    for m in _ATTR_PART_RE.finditer(attrs or ""):
        class_id, style, lang, align = m.groups()
        if class_id:
            classes, _sep, node_id = class_id.partition("#")
            if classes.strip():
                node.prop(props.CLASSES, " ".join(classes.split()))
            if node_id.strip():
                node.prop(props.ID, node_id.strip())
        elif style:
            node.prop("textile:style", style.strip())
        elif lang:
            node.prop("textile:lang", lang.strip())
        elif align:
            node.prop(props.STYLE_ALIGN, _ALIGNMENTS[align])
    return node


class TextileInlineScanner(InlineScanner):
    """Phrase modifiers, links, images and footnote references for Textile."""

    parser: TextileParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\n":
            return Node(kinds.LINE_BREAK), i + 1
        if c == "@":
            return self._code(chars, i)
        if c == '"':
            return self._link(i)
        if c == "!":
            return self._image(i)
        if c == "[":
            return self._bracket(chars, i)
        if c == "%":
            return self._span(i)
        if c == "(":
            return self._glyph(chars, i)
        for marker, kind in _MARKERS:
            if c == marker[0]:
                hit = self._phrase(chars, i, marker, kind)
                if hit is not None:
                    return hit
        return self.match_bare_url(chars, i) if c == "h" else None

    def _phrase(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        if i > 0 and is_word_char(chars[i - 1]):
            return None
        if len(marker) == 1 and i + 1 < len(chars) and chars[i + 1] == marker:
            return None
        return self.delimited(chars, i, marker, kind, bounded=True, no_word_after=True)

    def _code(self, chars: list[str], i: int) -> MatchResult:
        if i > 0 and is_word_char(chars[i - 1]):
            return None
        close = self.find_closing(chars, i + 1, "@")
        if close <= i + 1:
            return None
        return code_node("".join(chars[i + 1 : close])), close + 1

    def _link(self, i: int) -> MatchResult:
        m = self.match_pattern(_LINK_RE, i)
        if m is None:
            return None
        label, title, url = m.groups()
        end = m.end()
        while url and url[-1] in _URL_TRAILING:
            url = url[:-1]
            end -= 1
        if not url:
            return None
        return link_node(url, self.scan(label.strip()), title), end

    def _image(self, i: int) -> MatchResult:
        m = self.match_pattern(_IMAGE_RE, i)
        if m is None:
            return None
        align, url, alt, href = m.groups()
        image = image_node(url, alt or None, alt or None)
        if align:
            image.prop(props.STYLE_ALIGN, _ALIGNMENTS[align])
        if href:
            end = m.end()
            while href and href[-1] in _URL_TRAILING:
                href = href[:-1]
                end -= 1
            return link_node(href, [image]), end
        return image, m.end()

    def _bracket(self, chars: list[str], i: int) -> MatchResult:
        footnote = self.match_pattern(_FOOTNOTE_REF_RE, i)
        if footnote:
            return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, footnote.group(1)), footnote.end()
        if i + 1 < len(chars) and chars[i + 1] == '"':
            link = self.match_pattern(_LINK_RE, i + 1)
            if link and link.end() < len(chars) and chars[link.end()] == "]":
                label, title, url = link.groups()
                return link_node(url, self.scan(label.strip()), title), link.end() + 1
        return None

    def _span(self, i: int) -> MatchResult:
        m = self.match_pattern(_SPAN_RE, i)
        if m is None:
            return None
        span = Node(kinds.SPAN, children=self.scan(m.group(2)))
        return _apply_attributes(span, m.group(1) or ""), m.end()

    def _glyph(self, chars: list[str], i: int) -> MatchResult:
        for source, glyph in _GLYPHS.items():
            if self.text.startswith(source, i):
                return text_node(glyph), i + len(source)
        return None


class TextileParser(MarkupParser):
    """Convert Textile to the document IR.

    Parameters
    ----------
    options : TextileOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
        >>> result = TextileParser().parse("h2(intro). Welcome\\n\\nSome *strong* text.")
        >>> result.value.blocks[0].get("classes")
        'intro'

    """

    format_name = "textile"
    options_class = TextileOptions
    options: TextileOptions

    def create_inline_scanner(self) -> TextileInlineScanner:
        return TextileInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("block_signature", cls._at_signature, cls._consume_signature),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("unknown_signature", cls._at_unknown_signature, cls._consume_unknown_signature),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("definition_list", cls._at_definition, cls._consume_definition_list),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    def _at_signature(self) -> bool:
        return _SIGNATURE_RE.match(self.cursor.current()) is not None

    def _at_table(self) -> bool:
        line = self.cursor.current()
        return line.lstrip().startswith("|") or _TABLE_SIGNATURE_RE.match(line) is not None

    def _at_unknown_signature(self) -> bool:
        # A bare ``word.`` is prose; modifiers or ``..`` mark a signature
        m = _ANY_SIGNATURE_RE.match(self.cursor.current())
        return m is not None and bool(m.group(2) or m.group(3))

    def _at_list_item(self) -> bool:
        return _LIST_RE.match(self.cursor.current()) is not None

    def _at_definition(self) -> bool:
        return _DEFINITION_RE.match(self.cursor.current()) is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        return (
            _SIGNATURE_RE.match(line) is not None
            or _LIST_RE.match(line) is not None
            or line.lstrip().startswith("|")
        )

    def _block_lines(self, first: str, extended: bool) -> list[str]:
        """Lines of a block; extended blocks run across blank lines to the next signature."""
        cursor = self.cursor
        lines = [first] if first else []
        while not cursor.is_eof():
            line = cursor.current()
            if not line.strip():
                if not extended:
                    break
                following = cursor.position + 1
                while following < len(cursor) and not cursor.line(following).strip():
                    following += 1
                if following >= len(cursor) or _SIGNATURE_RE.match(cursor.line(following)):
                    break
            lines.append(line)
            cursor.advance()
        return lines

    def _consume_signature(self) -> ConsumeResult:
        cursor = self.cursor
        m = _SIGNATURE_RE.match(cursor.current())
        assert m is not None
        tag, attrs, extended, cite, first = m.groups()
        cursor.advance()
        lines = self._block_lines(first or "", bool(extended))

        if tag.startswith("h"):
            node = self.heading(int(tag[1]), " ".join(line.strip() for line in lines))
        elif tag in ("bc", "pre"):
            node = self.code_block("\n".join(lines))
            language = _ATTR_PART_RE.search(attrs or "")
            if tag == "bc" and language and language.group(1):
                node.prop(props.LANGUAGE, language.group(1).partition("#")[0].removeprefix("language-"))
                return node
        elif tag == "bq":
            node = Node(kinds.BLOCKQUOTE, children=self._paragraphs(lines))
            if cite:
                node.prop("textile:cite", cite)
        elif tag == "notextile":
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, "\n".join(lines)).prop(props.FORMAT, "html")
        elif tag.startswith("fn") and self.options.collect_footnotes:
            node = Node(kinds.FOOTNOTE_DEF, children=self._paragraphs(lines)).prop(props.LABEL, tag[2:])
        elif tag.startswith("fn"):
            node = Node(kinds.PARAGRAPH, children=self.inlines(f"[{tag[2:]}] " + "\n".join(lines)))
        else:
            paragraphs = self._paragraphs(lines)
            if len(paragraphs) != 1:
                return [_apply_attributes(paragraph, attrs) for paragraph in paragraphs]
            node = paragraphs[0]
        return _apply_attributes(node, attrs)

    def _consume_unknown_signature(self) -> ConsumeResult:
        cursor = self.cursor
        m = _ANY_SIGNATURE_RE.match(cursor.current())
        assert m is not None
        tag, attrs, extended, first = m.groups()
        cursor.advance()
        lines = self._block_lines(first or "", bool(extended))
        message = f"Unsupported Textile block signature '{tag}.'"
        div = self.unsupported_block(tag, "\n".join(lines), message, parse_body=True)
        return _apply_attributes(div, attrs)

    def _paragraphs(self, lines: list[str]) -> list[Node]:
        paragraphs: list[Node] = []
        current: list[str] = []
        for line in lines + [""]:
            if line.strip():
                current.append(line.strip())
            elif current:
                paragraphs.append(Node(kinds.PARAGRAPH, children=self.inlines("\n".join(current))))
                current = []
        return paragraphs

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        table_attrs = ""
        signature = _TABLE_SIGNATURE_RE.match(cursor.current())
        if signature:
            table_attrs = signature.group(1)
            cursor.advance()

        builder = TableBuilder()
        while not cursor.is_eof() and cursor.current().lstrip().startswith("|"):
            row = cursor.current().strip()
            cursor.advance()
            while not row.endswith("|") and not cursor.is_eof() and cursor.current().strip():
                row += "\n" + cursor.current().strip()
                cursor.advance()
            self._table_row(builder, row)
        return _apply_attributes(builder.get_table(), table_attrs)

    def _table_row(self, builder: TableBuilder, row: str) -> None:
        body = row[1:-1] if row.endswith("|") else row[1:]
        cells: list[list[Node]] = []
        headers: list[bool] = []
        modifiers: list[str] = []
        for raw in body.split("|"):
            cell = raw.strip()
            modifier = _CELL_MODIFIER_RE.match(cell)
            mods = modifier.group(1) if modifier else ""
            if modifier:
                cell = cell[modifier.end() :]
            headers.append("_" in mods)
            modifiers.append(mods)
            cells.append(self.inlines(cell.strip()))

        is_header = bool(headers) and all(headers)
        row_node = builder.add_row(cells, is_header=is_header)
        for cell_node, header, mods in zip(row_node.children, headers, modifiers):
            if header and not is_header:
                cell_node.kind = kinds.TABLE_HEADER
            colspan = re.search(r"\\(\d+)", mods)
            if colspan:
                cell_node.prop(props.COLSPAN, int(colspan.group(1)))
            rowspan = re.search(r"/(\d+)", mods)
            if rowspan:
                cell_node.prop(props.ROWSPAN, int(rowspan.group(1)))
            align = "<>" if "<>" in mods else next((s for s in "<>=" if s in mods), None)
            if align:
                cell_node.prop(props.ALIGN, _ALIGNMENTS[align])

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        spans: list[tuple[Node, int, int]] = []
        first_attrs = ""
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None:
                break
            markers, attrs, text = m.groups()
            if not builder.lists:
                first_attrs = attrs
            first_line = cursor.position
            cursor.advance()
            lines = [text]
            while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.current()):
                lines.append(cursor.current().strip())
                cursor.advance()
            list_item = builder.add_item(len(markers), markers[-1] == "#", self.inlines("\n".join(lines)))
            spans.append((list_item, len(markers), first_line))
        self.span_list_items(spans)
        lists = builder.lists
        if lists and first_attrs:
            _apply_attributes(lists[0], first_attrs)
        return lists

    def _consume_definition_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            m = _DEFINITION_RE.match(cursor.current())
            if m is None:
                break
            cursor.advance()
            lines = [m.group(2) or ""]
            while (
                not cursor.is_eof()
                and cursor.current().strip()
                and not _DEFINITION_RE.match(cursor.current())
                and not self._interrupts_paragraph(cursor.current())
            ):
                lines.append(cursor.current().strip())
                cursor.advance()
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(m.group(1))))
            text = "\n".join(line for line in lines if line)
            definition_list.child(
                Node(kinds.DEFINITION_DESC).child(Node(kinds.PARAGRAPH, children=self.inlines(text)))
            )
        return definition_list

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        return Node(kinds.PARAGRAPH, children=self.inlines("\n".join(line.strip() for line in lines)))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a Textile document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Textile source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return TextileParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: TextileOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return TextileParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="textile",
    extensions=[".textile"],
    mime_types=["text/x-textile"],
    parser_class=TextileParser,
    parser_options_class=TextileOptions,
    description="Parse Textile documents",
    priority=10,
)
