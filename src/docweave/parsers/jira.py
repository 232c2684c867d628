#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/jira.py
"""Jira wiki markup to AST converter.

Handles the text-formatting notation used by Jira and Confluence: ``hN.``
headings, ``{code}``/``{noformat}``/``{quote}``/``{panel}`` macros, marker
depth lists, ``||``/``|`` tables and the usual single-character inline
markers.

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
from docweave.options.jira import JiraOptions
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

_HEADING_RE = re.compile(r"^[ \t]*h([1-6])\.[ \t]+(.*?)[ \t]*$")
_MACRO_RE = re.compile(r"^[ \t]*\{(code|noformat|quote|panel|info|note|tip|warning)(?::([^}]*))?\}(.*)$")
_ANY_MACRO_RE = re.compile(r"^[ \t]*\{([A-Za-z][\w-]*)(?::([^}]*))?\}(.*)$")
_BLOCKQUOTE_RE = re.compile(r"^[ \t]*bq\.[ \t]+(.*)$")
_LIST_RE = re.compile(r"^[ \t]*([*#]+|-)[ \t]+(.*)$")
_RULE_RE = re.compile(r"^[ \t]*-{4}[ \t]*$")
_COLOR_RE = re.compile(r"\{color:([^}]+)\}(.*?)\{color\}", re.DOTALL)

_VERBATIM_MACROS = ("code", "noformat")
# Handled by the inline scanner
_INLINE_MACROS = ("color",)
_SIMPLE_MARKERS = {
    "*": kinds.STRONG,
    "_": kinds.EMPHASIS,
    "-": kinds.STRIKEOUT,
    "+": kinds.UNDERLINE,
    "^": kinds.SUPERSCRIPT,
    "~": kinds.SUBSCRIPT,
}


def _is_unknown_macro(line: str) -> bool:
    """Block macro outside the supported set, e.g. ``{expand}`` or ``{toc}``."""
    m = _ANY_MACRO_RE.match(line)
    return m is not None and _MACRO_RE.match(line) is None and m.group(1).lower() not in _INLINE_MACROS


def _parse_macro_params(params: Optional[str]) -> tuple[Optional[str], dict[str, str]]:
    """Split ``lang|key=value|...`` into the bare first parameter and named ones."""
    bare: Optional[str] = None
    named: dict[str, str] = {}
    for part in (params or "").split("|"):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        if sep:
            named[key.strip().lower()] = value.strip()
        elif bare is None:
            bare = part
    return bare, named


def _split_cells(line: str) -> list[tuple[bool, str]]:
    """Split a table row into ``(is_header, text)`` cells, ignoring ``|`` inside links."""
    cells: list[tuple[bool, str]] = []
    i = 0
    n = len(line)
    current: Optional[list[str]] = None
    header = False
    depth = 0
    while i < n:
        c = line[i]
        if c == "[":
            depth += 1
        elif c == "]" and depth:
            depth -= 1
        if c == "|" and depth == 0:
            if current is not None:
                cells.append((header, "".join(current).strip()))
            header = line.startswith("||", i)
            i += 2 if header else 1
            current = []
            continue
        if current is not None:
            current.append(c)
        i += 1
    if current is not None and "".join(current).strip():
        cells.append((header, "".join(current).strip()))
    return cells


class JiraInlineScanner(InlineScanner):
    """Inline markers, monospace, links and images for Jira markup."""

    parser: JiraParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == "\\":
            if i + 1 < len(chars) and chars[i + 1] == "\\":
                return Node(kinds.LINE_BREAK), i + 2
            if i + 1 < len(chars):
                return text_node(chars[i + 1]), i + 2
            return None
        if c == "{":
            if i + 1 < len(chars) and chars[i + 1] == "{":
                close = self.find_closing(chars, i + 2, "}}")
                if close > i + 2:
                    return code_node("".join(chars[i + 2 : close])), close + 2
                return None
            return self._color(i)
        if c == "?" and i + 1 < len(chars) and chars[i + 1] == "?":
            return self._constrained(chars, i, "??", kinds.CITE)
        if c in _SIMPLE_MARKERS:
            return self._constrained(chars, i, c, _SIMPLE_MARKERS[c])
        if c == "[":
            return self._link(chars, i)
        if c == "!":
            return self._image(chars, i)
        return self.match_bare_url(chars, i) if c == "h" else None

    def _constrained(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        if i > 0 and is_word_char(chars[i - 1]):
            return None
        return self.delimited(chars, i, marker, kind, bounded=True, no_word_after=True)

    def _color(self, i: int) -> MatchResult:
        m = self.match_pattern(_COLOR_RE, i)
        if m is None:
            return None
        return Node(kinds.SPAN, children=self.scan(m.group(2))).prop(props.STYLE_COLOR, m.group(1).strip()), m.end()

    def _link(self, chars: list[str], i: int) -> MatchResult:
        close = self.find_closing(chars, i + 1, "]")
        if close <= i + 1:
            return None
        content = "".join(chars[i + 1 : close])
        if "\n" in content:
            return None
        label, sep, url = content.rpartition("|")
        if not sep:
            label, url = "", content
        url = url.strip()
        if url.startswith("~"):
            return Node(kinds.SPAN).child(text_node(f"@{url[1:]}")).prop("jira:mention", url[1:]), close + 1
        if url.startswith("^"):
            url = url[1:]
        if not label and not url.startswith(("#", "mailto:", "file:")) and "://" not in url:
            return None
        return link_node(url, self.scan(label) if label else [text_node(url)]), close + 1

    def _image(self, chars: list[str], i: int) -> MatchResult:
        if i + 1 >= len(chars) or chars[i + 1].isspace():
            return None
        close = self.find_closing(chars, i + 1, "!")
        if close < 0:
            return None
        content = "".join(chars[i + 1 : close])
        if any(ch.isspace() for ch in content.partition("|")[0]):
            return None
        url, _sep, params = content.partition("|")
        alt = None
        for param in params.split(","):
            key, sep, value = param.partition("=")
            if sep and key.strip().lower() == "alt":
                alt = value.strip()
            elif not sep and param.strip() and alt is None:
                alt = param.strip()
        return image_node(url, alt), close + 1


class JiraParser(MarkupParser):
    """Convert Jira wiki markup to the document IR.

    Parameters
    ----------
    options : JiraOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    """

    format_name = "jira"
    options_class = JiraOptions
    options: JiraOptions

    def create_inline_scanner(self) -> JiraInlineScanner:
        return JiraInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("macro", cls._at_macro, cls._consume_macro),
            recognizer("unknown_macro", cls._at_unknown_macro, cls._consume_unknown_macro),
            recognizer("blockquote", cls._at_blockquote, cls._consume_blockquote),
            recognizer("horizontal_rule", cls._at_rule, cls._consume_rule),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    def _at_heading(self) -> bool:
        return _HEADING_RE.match(self.cursor.current()) is not None

    def _at_macro(self) -> bool:
        return _MACRO_RE.match(self.cursor.current()) is not None

    def _at_unknown_macro(self) -> bool:
        return _is_unknown_macro(self.cursor.current())

    def _at_blockquote(self) -> bool:
        return _BLOCKQUOTE_RE.match(self.cursor.current()) is not None

    def _at_rule(self) -> bool:
        return _RULE_RE.match(self.cursor.current()) is not None

    def _at_list_item(self) -> bool:
        return _LIST_RE.match(self.cursor.current()) is not None

    def _at_table(self) -> bool:
        return self.cursor.current().lstrip().startswith("|")

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        return (
            _HEADING_RE.match(line) is not None
            or _MACRO_RE.match(line) is not None
            or _is_unknown_macro(line)
            or _BLOCKQUOTE_RE.match(line) is not None
            or _RULE_RE.match(line) is not None
            or _LIST_RE.match(line) is not None
            or line.lstrip().startswith("|")
        )

    def _consume_heading(self) -> ConsumeResult:
        m = _HEADING_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        return self.heading(int(m.group(1)), m.group(2))

    def _consume_macro(self) -> ConsumeResult:
        cursor = self.cursor
        m = _MACRO_RE.match(cursor.current())
        assert m is not None
        name, params, rest = m.group(1), m.group(2), m.group(3)
        closer = "{" + name + "}"
        cursor.advance()

        lines: list[str] = []
        closed = False
        if closer in rest:
            lines.append(rest[: rest.index(closer)])
            closed = True
        else:
            if rest.strip():
                lines.append(rest)
            more, closed = self._collect_macro_body(closer)
            lines.extend(more)
        if not closed:
            self.feature_lost(f"Unterminated {{{name}}} macro runs to end of document", f"jira:unterminated:{name}")

        bare, named = _parse_macro_params(params)
        body = "\n".join(lines)
        if name in _VERBATIM_MACROS:
            language = named.get("language") or (bare if name == "code" else None)
            node = self.code_block(body.strip("\n"), language)
            if named.get("title"):
                node.prop(props.TITLE, named["title"])
            return node
        if name == "quote":
            return Node(kinds.BLOCKQUOTE, children=self.parse_nested(body))

        div = Node(kinds.DIV).prop("jira:type", name)
        title = named.get("title") or (bare if name != "panel" else None)
        if title:
            div.prop(props.TITLE, title)
            if self.options.panel_title_as_heading:
                div.child(self.heading(4, title))
        for key in ("bgcolor", "bordercolor", "titlebgcolor"):
            if named.get(key):
                div.prop(f"jira:{key}", named[key])
        return div.extend(self.parse_nested(body))

    def _collect_macro_body(self, closer: str) -> tuple[list[str], bool]:
        """Collect lines up to the closing macro tag; text before the tag on its line is kept."""
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current()
            cursor.advance()
            if closer in line:
                before = line[: line.index(closer)]
                if before.strip():
                    lines.append(before)
                return lines, True
            lines.append(line)
        return lines, False

    def _consume_unknown_macro(self) -> ConsumeResult:
        cursor = self.cursor
        m = _ANY_MACRO_RE.match(cursor.current())
        assert m is not None
        name, params, rest = m.group(1), m.group(2), m.group(3)
        closer = "{" + name + "}"
        cursor.advance()
        if closer in rest:
            body = rest[: rest.index(closer)]
        elif self._closes_later(closer):
            lines, _ = self._collect_macro_body(closer)
            body = "\n".join(([rest] if rest.strip() else []) + lines)
        else:
            body = rest
        div = self.unsupported_block(name, body, parse_body=True)
        bare, _ = _parse_macro_params(params)
        if bare:
            div.prop(props.TITLE, bare)
        return div

    def _closes_later(self, closer: str) -> bool:
        cursor = self.cursor
        return any(closer in cursor.line(index) for index in range(cursor.position, len(cursor)))

    def _consume_blockquote(self) -> ConsumeResult:
        m = _BLOCKQUOTE_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        return Node(kinds.BLOCKQUOTE).child(Node(kinds.PARAGRAPH, children=self.inlines(m.group(1))))

    def _consume_rule(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None or _RULE_RE.match(cursor.current()):
                break
            markers, text = m.groups()
            first_line = cursor.position
            cursor.advance()
            lines = [text]
            while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.current()):
                lines.append(cursor.current().strip())
                cursor.advance()
            list_item = builder.add_item(len(markers), markers[-1] == "#", self.inlines("\n".join(lines)))
            spans.append((list_item, len(markers), first_line))
        self.span_list_items(spans)
        return builder.lists

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        builder = TableBuilder()
        while not cursor.is_eof() and cursor.current().lstrip().startswith("|"):
            cells = _split_cells(cursor.current().strip())
            cursor.advance()
            if not cells:
                continue
            is_header = all(header for header, _text in cells)
            row = builder.add_row([self.inlines(text) for _header, text in cells], is_header=is_header)
            if not is_header:
                for cell_node, (header, _text) in zip(row.children, cells):
                    if header:
                        cell_node.kind = kinds.TABLE_HEADER
        return builder.get_table()

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        return Node(kinds.PARAGRAPH, children=self.inlines("\n".join(line.strip() for line in lines)))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse Jira wiki markup with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Jira markup source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return JiraParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: JiraOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return JiraParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="jira",
    extensions=[".jira"],
    mime_types=["text/x-jira"],
    parser_class=JiraParser,
    parser_options_class=JiraOptions,
    description="Parse Jira and Confluence wiki markup",
    priority=5,
)
