#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/vimwiki.py
"""VimWiki to AST converter.

Covers the default VimWiki syntax: ``= h =`` headings, ``{{{``
preformatted blocks, indentation-nested bullet and numbered lists with
progress checkboxes, ``|`` tables with ``>`` and ``\\/`` span cells,
``Term:: def`` definitions and ``%%`` comments. ``%title`` and
``%date`` placeholders go to metadata.

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
from docweave.constants import IMAGE_EXTENSIONS, VIMWIKI_CHECKED_MARKERS, VIMWIKI_PROGRESS_MARKERS
from docweave.converter_metadata import ConverterMetadata
from docweave.options.vimwiki import VimwikiOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._inline import InlineScanner, MatchResult, image_node, link_node
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^([ \t]*)(={1,6})[ \t]*([^=].*?)[ \t]*(={1,6})[ \t]*$")
_RULE_RE = re.compile(r"^-{4,}[ \t]*$")
_PRE_OPEN_RE = re.compile(r"^[ \t]*\{\{\{(.*)$")
_MATH_OPEN_RE = re.compile(r"^[ \t]*\{\{\$(?:%(\w+)%)?[ \t]*$")
_LIST_RE = re.compile(r"^([ \t]*)([*-]|#|\d+[.)]|[a-zA-Z]\))[ \t]+(.*)$")
_CHECKBOX_RE = re.compile(r"^\[([ .oOX])\][ \t]+")
_DEFINITION_RE = re.compile(r"^(\S.*?)[ \t]*::(?:[ \t]+(.*)|[ \t]*)$")
_DEFINITION_MORE_RE = re.compile(r"^[ \t]*::[ \t]+(.*)$")
_PLACEHOLDER_RE = re.compile(r"^%(title|date|template|nohtml)(?:[ \t]+(.*))?$")
_ANY_PLACEHOLDER_RE = re.compile(r"^%([A-Za-z]\w*)(?:[ \t]+(.*))?$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?[ \t]*$")

_WIKI_LINK_RE = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]*))?\]\]")
_TRANSCLUSION_RE = re.compile(r"\{\{([^}|]+)(?:\|([^}|]*))?(?:\|([^}]*))?\}\}")
_SCHEME_RE = re.compile(r"^[a-zA-Z][\w+.-]*:")
_MARKERS = (
    ("~~", kinds.STRIKEOUT),
    (",,", kinds.SUBSCRIPT),
    ("*", kinds.STRONG),
    ("_", kinds.EMPHASIS),
    ("^", kinds.SUPERSCRIPT),
)


def _ordered_start(marker: str) -> Optional[int]:
    token = marker.rstrip(".)")
    if token.isdigit():
        return int(token)
    return None


class VimwikiInlineScanner(InlineScanner):
    """Typefaces, wiki links, transclusions and inline math for VimWiki."""

    parser: VimwikiParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == "`":
            return self.delimited(chars, i, "`", kinds.CODE, literal=True)
        if c == "$":
            hit = self.delimited(chars, i, "$", kinds.MATH_INLINE, bounded=True, literal=True)
            if hit is not None:
                node, end = hit
                assert isinstance(node, Node)
                source = node.props.pop(props.CONTENT)
                return node.prop(props.MATH_SOURCE, source), end
            return None
        if c == "[":
            return self._wiki_link(i)
        if c == "{":
            return self._transclusion(i)
        for marker, kind in _MARKERS:
            if c == marker[0]:
                if len(marker) == 1 and i > 0 and chars[i - 1].isalnum():
                    continue
                hit = self.delimited(chars, i, marker, kind, bounded=True)
                if hit is not None:
                    return hit
        if c == "h":
            return self.match_bare_url(chars, i)
        return None

    def _wiki_link(self, i: int) -> MatchResult:
        m = self.match_pattern(_WIKI_LINK_RE, i)
        if m is None:
            return None
        target, description = m.group(1).strip(), m.group(2)
        if description and description.startswith("{{"):
            inner = self.scan(description)
            return link_node(target, inner), m.end()
        label = self.scan(description.strip()) if description else [text_node(target)]
        node = link_node(target, label)
        if not _SCHEME_RE.match(target) and not target.startswith("#"):
            node.prop("vimwiki:wiki", True)
        return node, m.end()

    def _transclusion(self, i: int) -> MatchResult:
        m = self.match_pattern(_TRANSCLUSION_RE, i)
        if m is None:
            return None
        url, alt, style = m.group(1).strip(), m.group(2), m.group(3)
        if not (url.lower().endswith(IMAGE_EXTENSIONS) or _SCHEME_RE.match(url)):
            return None
        image = image_node(url, alt.strip() if alt else None)
        if style:
            image.prop("vimwiki:style", style.strip())
        return image, m.end()


class VimwikiParser(MarkupParser):
    """Convert VimWiki markup to the document IR.

    Parameters
    ----------
    options : VimwikiOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    """

    format_name = "vimwiki"
    options_class = VimwikiOptions
    options: VimwikiOptions

    def create_inline_scanner(self) -> VimwikiInlineScanner:
        return VimwikiInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("placeholder", cls._at_placeholder, cls._consume_placeholder),
            recognizer("unknown_placeholder", cls._at_unknown_placeholder, cls._consume_unknown_placeholder),
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("horizontal_rule", cls._at_rule, cls._consume_rule),
            recognizer("math_block", cls._at_math_block, cls._consume_math_block),
            recognizer("preformatted", cls._at_preformatted, cls._consume_preformatted),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("blockquote", cls._at_blockquote, cls._consume_blockquote),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("definition_list", cls._at_definition, cls._consume_definition_list),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_comment(self) -> bool:
        return self.cursor.current().lstrip().startswith("%%")

    def _at_placeholder(self) -> bool:
        return _PLACEHOLDER_RE.match(self.cursor.current()) is not None

    def _at_unknown_placeholder(self) -> bool:
        return _ANY_PLACEHOLDER_RE.match(self.cursor.current()) is not None

    def _at_heading(self) -> bool:
        m = _HEADING_RE.match(self.cursor.current())
        return m is not None and len(m.group(2)) == len(m.group(4))

    def _at_rule(self) -> bool:
        return _RULE_RE.match(self.cursor.current()) is not None

    def _at_math_block(self) -> bool:
        return _MATH_OPEN_RE.match(self.cursor.current()) is not None

    def _at_preformatted(self) -> bool:
        return _PRE_OPEN_RE.match(self.cursor.current()) is not None

    def _at_list_item(self) -> bool:
        return _LIST_RE.match(self.cursor.current()) is not None

    def _at_blockquote(self) -> bool:
        line = self.cursor.current()
        return line.startswith("> ") or line.rstrip() == ">"

    def _at_table(self) -> bool:
        return self.cursor.current().lstrip().startswith("|")

    def _at_definition(self) -> bool:
        return _DEFINITION_RE.match(self.cursor.current()) is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        stripped = line.lstrip()
        if stripped.startswith(("%%", "{{{", "{{$", "|", "> ")):
            return True
        heading = _HEADING_RE.match(line)
        if heading and len(heading.group(2)) == len(heading.group(4)):
            return True
        return _RULE_RE.match(line) is not None or _LIST_RE.match(line) is not None

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_comment(self) -> ConsumeResult:
        cursor = self.cursor
        line = cursor.current().lstrip()
        cursor.advance()
        if line.startswith("%%+") and "+%%" not in line[3:]:
            self.collect_until(lambda candidate: "+%%" in candidate)
        return None

    def _consume_placeholder(self) -> ConsumeResult:
        m = _PLACEHOLDER_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        key, value = m.group(1), (m.group(2) or "").strip()
        if key == "nohtml":
            self.set_metadata("vimwiki:nohtml", True)
        elif value:
            self.set_metadata(key if key != "template" else "vimwiki:template", value)
        return None

    def _consume_unknown_placeholder(self) -> ConsumeResult:
        m = _ANY_PLACEHOLDER_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        name = m.group(1)
        return self.unsupported_block(name, m.group(2) or "", f"Unsupported vimwiki placeholder '%{name}'")

    def _consume_heading(self) -> ConsumeResult:
        m = _HEADING_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        node = self.heading(len(m.group(2)), m.group(3))
        if m.group(1):
            node.prop(props.STYLE_ALIGN, "center")
        return node

    def _consume_rule(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_math_block(self) -> ConsumeResult:
        m = _MATH_OPEN_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        lines, closed = self.collect_until(lambda line: line.strip() == "}}$")
        if not closed:
            self.feature_lost("Unterminated math block", detail="vimwiki:unterminated:math")
        node = Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, "\n".join(lines).strip())
        if m.group(1):
            node.prop("vimwiki:environment", m.group(1))
        return node

    def _consume_preformatted(self) -> ConsumeResult:
        m = _PRE_OPEN_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        info = m.group(1).strip()
        lines, closed = self.collect_until(lambda line: line.strip() == "}}}")
        if not closed:
            self.feature_lost("Unterminated preformatted block", detail="vimwiki:unterminated:preformatted")
        language = None
        if info:
            brush = re.search(r"brush:\s*([\w+#-]+)", info)
            language = brush.group(1) if brush else info.split()[0]
            if "=" in language:
                language = None
        return self.code_block("\n".join(lines), language)

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        indents: list[int] = []
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None:
                break
            indent = len(m.group(1).expandtabs(4))
            marker, text = m.group(2), m.group(3)
            while indents and indent < indents[-1]:
                indents.pop()
            if not indents or indent > indents[-1]:
                indents.append(indent)
            first_line = cursor.position
            cursor.advance()

            lines = [text]
            while not cursor.is_eof():
                line = cursor.current()
                if not line.strip() or _LIST_RE.match(line) or len(line) - len(line.lstrip()) <= indent:
                    break
                lines.append(line.strip())
                cursor.advance()

            checked = None
            progress = None
            content = "\n".join(lines)
            checkbox = _CHECKBOX_RE.match(content)
            if checkbox and checkbox.group(1) in VIMWIKI_PROGRESS_MARKERS:
                progress = checkbox.group(1)
                checked = progress in VIMWIKI_CHECKED_MARKERS
                content = content[checkbox.end() :]

            ordered = marker not in ("*", "-")
            item = builder.add_item(
                len(indents),
                ordered,
                self.inlines(content),
                checked=checked,
                start=_ordered_start(marker),
            )
            if progress is not None and progress not in (" ", "X"):
                item.prop("vimwiki:progress", progress)
            spans.append((item, len(indents), first_line))
        self.span_list_items(spans)
        return builder.lists

    def _consume_blockquote(self) -> ConsumeResult:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current()
            if not (line.startswith("> ") or line.rstrip() == ">"):
                break
            lines.append(line[2:])
            cursor.advance()
        return Node(kinds.BLOCKQUOTE, children=self.parse_nested("\n".join(lines)))

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        builder = TableBuilder()
        above: dict[int, Node] = {}
        row_count = 0
        while not cursor.is_eof() and cursor.current().lstrip().startswith("|"):
            line = cursor.current().strip()
            cursor.advance()
            if _TABLE_SEPARATOR_RE.match(line):
                if row_count == 1:
                    builder.promote_first_row()
                continue

            raw_cells = line[1:-1].split("|") if line.endswith("|") else line[1:].split("|")
            cells: list[list[Node]] = []
            kept_columns: list[int] = []
            spans: list[tuple[int, str]] = []
            for column, raw in enumerate(raw_cells):
                value = raw.strip()
                if value in (">", "\\/"):
                    spans.append((column, value))
                    continue
                kept_columns.append(column)
                cells.append(self.inlines(value))

            row = builder.add_row(cells)
            row_count += 1
            by_column = dict(zip(kept_columns, row.children))
            for column, value in spans:
                if value == ">":
                    left = next((by_column[c] for c in range(column - 1, -1, -1) if c in by_column), None)
                    if left is not None:
                        left.prop(props.COLSPAN, (left.props.get_int(props.COLSPAN) or 1) + 1)
                        by_column[column] = left
                else:
                    upper = above.get(column)
                    if upper is not None:
                        upper.prop(props.ROWSPAN, (upper.props.get_int(props.ROWSPAN) or 1) + 1)
                        by_column[column] = upper
            above = by_column
        return builder.get_table()

    def _consume_definition_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            m = _DEFINITION_RE.match(cursor.current())
            if m is None:
                break
            cursor.advance()
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(m.group(1))))
            descriptions = [m.group(2)] if m.group(2) else []
            while not cursor.is_eof():
                more = _DEFINITION_MORE_RE.match(cursor.current())
                if more is None:
                    break
                descriptions.append(more.group(1))
                cursor.advance()
            for description in descriptions:
                definition_list.child(
                    Node(kinds.DEFINITION_DESC).child(Node(kinds.PARAGRAPH, children=self.inlines(description)))
                )
        return definition_list

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        return Node(kinds.PARAGRAPH, children=self.inlines("\n".join(line.strip() for line in lines)))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a VimWiki document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        VimWiki source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return VimwikiParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: VimwikiOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return VimwikiParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="vimwiki",
    extensions=[".wiki"],
    mime_types=["text/x-vimwiki"],
    parser_class=VimwikiParser,
    parser_options_class=VimwikiOptions,
    description="Parse VimWiki documents",
    priority=5,
)
