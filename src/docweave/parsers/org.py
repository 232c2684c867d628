#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/org.py
"""Org-Mode to AST converter.

This module converts Org-Mode documents to the document IR. Headings keep
their TODO state, priority, tags, planning lines and property drawer as
``org:`` properties; ``#+KEY: value`` lines become document metadata, except
the affiliated keywords ``#+NAME`` and ``#+CAPTION`` which attach to the
next element.

"""

from __future__ import annotations

import logging
import re
from typing import Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.constants import IMAGE_EXTENSIONS
from docweave.converter_metadata import ConverterMetadata
from docweave.options.org import OrgOptions
from docweave.parsers._block import ConsumeResult, Recognizer, apply_pending, recognizer
from docweave.parsers._inline import (
    InlineScanner,
    MatchResult,
    image_node,
    is_word_char,
    link_node,
)
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(r"^[ \t]*#\+([A-Za-z][\w-]*):[ \t]*(.*?)[ \t]*$")
_HEADING_RE = re.compile(r"^(\*+)[ \t]+(.*?)[ \t]*$")
_PRIORITY_RE = re.compile(r"^\[#([A-Za-z0-9])\][ \t]*")
_TAGS_RE = re.compile(r"[ \t]+(:(?:[\w@#%]+:)+)$")
_PLANNING_RE = re.compile(r"\b(SCHEDULED|DEADLINE|CLOSED):[ \t]*([<\[][^>\]]*[>\]])")
_DRAWER_RE = re.compile(r"^[ \t]*:([\w-]+):[ \t]*$")
_DRAWER_END_RE = re.compile(r"^[ \t]*:END:[ \t]*$", re.IGNORECASE)
_PROPERTY_RE = re.compile(r"^[ \t]*:([^:\s]+):[ \t]*(.*?)[ \t]*$")
_BLOCK_BEGIN_RE = re.compile(r"^[ \t]*#\+BEGIN_(\w+)(?:[ \t]+(.*?))?[ \t]*$", re.IGNORECASE)
_LIST_ITEM_RE = re.compile(r"^([ \t]*)([-+]|(?<=[ \t])\*|\d+[.)])[ \t]+(.*)$|^([ \t]*)([-+]|\d+[.)])$")
_COUNTER_RE = re.compile(r"^\[@(\d+)\][ \t]*")
_CHECKBOX_RE = re.compile(r"^\[([ xX-])\](?:[ \t]+|$)")
_DESCRIPTION_RE = re.compile(r"^(.*?)[ \t]+::(?:[ \t]+(.*)|$)")
_TABLE_SEPARATOR_RE = re.compile(r"^[ \t]*\|[-+:]+\|?[ \t]*$")
_RULE_RE = re.compile(r"^[ \t]*-{5,}[ \t]*$")
_FIXED_WIDTH_RE = re.compile(r"^[ \t]*:(?: (.*)|$)")
_FOOTNOTE_DEF_RE = re.compile(r"^\[fn:([\w-]+)\][ \t]*(.*)$")

_LINK_RE = re.compile(r"\[\[((?:[^\]\\]|\\.)+)\](?:\[(.+?)\])?\]")
_FOOTNOTE_REF_RE = re.compile(r"\[fn:([\w-]*)(?::([^\]]*))?\]")
_SCRIPT_RE = re.compile(r"([_^])\{([^{}]*)\}")
_INLINE_MATH_RE = re.compile(r"\\\((.+?)\\\)")

_AFFILIATED_KEYWORDS = ("name", "caption", "attr_html", "attr_latex", "attr_org", "results", "header")
_SKIPPED_KEYWORDS = ("tblfm",)
_EMPHASIS_MARKERS = {
    "*": kinds.STRONG,
    "/": kinds.EMPHASIS,
    "_": kinds.UNDERLINE,
    "+": kinds.STRIKEOUT,
}
_PRE_CHARS = frozenset("-({'\"")
_POST_CHARS = frozenset("-.,;:!?')}\"\\[")


def _match_list_item(line: str) -> Optional[tuple[int, str, str]]:
    """Return ``(indent, marker, text)`` for a plain-list item line."""
    m = _LIST_ITEM_RE.match(line.expandtabs(8))
    if m is None:
        return None
    if m.group(2) is not None:
        return len(m.group(1)), m.group(2), m.group(3)
    return len(m.group(4)), m.group(5), ""


def _indent_of(line: str) -> int:
    expanded = line.expandtabs(8)
    return len(expanded) - len(expanded.lstrip())


def _is_image_target(url: str) -> bool:
    return url.lower().endswith(IMAGE_EXTENSIONS)


def _split_row(line: str) -> list[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


class OrgInlineScanner(InlineScanner):
    """Inline emphasis, verbatim, links and footnote references for Org-Mode."""

    parser: OrgParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == "\\":
            return self._backslash(chars, i)
        if c in "_^" and i > 0 and is_word_char(chars[i - 1]):
            return self._script(i)
        if c in _EMPHASIS_MARKERS:
            return self._emphasis(chars, i, c, _EMPHASIS_MARKERS[c])
        if c in ("=", "~"):
            return self._verbatim(chars, i, c)
        if c == "[":
            return self._bracket(i)
        if c == "h":
            return self.match_bare_url(chars, i)
        return None

    def _backslash(self, chars: list[str], i: int) -> MatchResult:
        n = len(chars)
        if i + 1 < n and chars[i + 1] == "\\" and (i + 2 == n or chars[i + 2] == "\n"):
            return Node(kinds.LINE_BREAK), min(i + 3, n)
        m = self.match_pattern(_INLINE_MATH_RE, i)
        if m:
            return Node(kinds.MATH_INLINE).prop(props.MATH_SOURCE, m.group(1)), m.end()
        return None

    @staticmethod
    def _opens(chars: list[str], i: int) -> bool:
        return i == 0 or chars[i - 1].isspace() or chars[i - 1] in _PRE_CHARS

    def _find_closer(self, chars: list[str], i: int, marker: str) -> int:
        start = i + 1
        if start >= len(chars) or chars[start].isspace():
            return -1
        return self.find_closing_bounded(chars, start, marker, followed_by=_POST_CHARS)

    def _emphasis(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        if not self._opens(chars, i):
            return None
        close = self._find_closer(chars, i, marker)
        if close < 0:
            return None
        return self.wrap(kind, chars, i + 1, close), close + 1

    def _verbatim(self, chars: list[str], i: int, marker: str) -> MatchResult:
        if not self._opens(chars, i):
            return None
        close = self._find_closer(chars, i, marker)
        if close < 0:
            return None
        return Node(kinds.CODE).prop(props.CONTENT, "".join(chars[i + 1 : close])), close + 1

    def _bracket(self, i: int) -> MatchResult:
        link = self.match_pattern(_LINK_RE, i)
        if link:
            return self.link(link.group(1).replace("\\]", "]"), link.group(2)), link.end()
        footnote = self.match_pattern(_FOOTNOTE_REF_RE, i)
        if footnote:
            label, definition = footnote.groups()
            if definition is not None:
                node = Node(kinds.FOOTNOTE_DEF, children=[Node(kinds.PARAGRAPH, children=self.scan(definition))])
                return node.prop(props.LABEL, label) if label else node, footnote.end()
            if label:
                return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, label), footnote.end()
        return None

    def link(self, target: str, description: Optional[str]) -> Node:
        """Link or image for ``[[target][description]]``."""
        url = target[5:] if target.startswith("file:") else target
        if description is None:
            if _is_image_target(url):
                return image_node(url)
            return link_node(url, [text_node(target)])
        if _is_image_target(description) and not description.startswith("["):
            inner = description[5:] if description.startswith("file:") else description
            return link_node(url, [image_node(inner)])
        return link_node(url, self.scan(description))

    def _script(self, i: int) -> MatchResult:
        m = self.match_pattern(_SCRIPT_RE, i)
        if m is None:
            return None
        kind = kinds.SUPERSCRIPT if m.group(1) == "^" else kinds.SUBSCRIPT
        return Node(kind, children=self.scan(m.group(2))), m.end()


class OrgParser(MarkupParser):
    """Convert Org-Mode to the document IR.

    Parameters
    ----------
    options : OrgOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
        >>> result = OrgParser().parse("#+TITLE: Notes\\n\\n* TODO Write docs :work:")
        >>> result.value.metadata["title"]
        'Notes'
        >>> result.value.blocks[0].get("org:todo")
        'TODO'

    """

    format_name = "org"
    options_class = OrgOptions
    options: OrgOptions

    def __init__(self, options: OrgOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self._affiliated: dict[str, str] = {}

    def create_inline_scanner(self) -> OrgInlineScanner:
        return OrgInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("keyword", cls._at_keyword, cls._consume_keyword),
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("block", cls._at_block, cls._consume_block),
            recognizer("drawer", cls._at_drawer, cls._consume_drawer),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("horizontal_rule", cls._at_rule, cls._consume_rule),
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("fixed_width", cls._at_fixed_width, cls._consume_fixed_width),
            recognizer("footnote_definition", cls._at_footnote, cls._consume_footnote),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    def parse_nested(self, text: str) -> list[Node]:
        saved, self._affiliated = self._affiliated, {}
        try:
            return super().parse_nested(text)
        finally:
            self._affiliated = saved

    def _take_affiliated(self, node: Node) -> Node:
        """Attach pending ``#+NAME`` / ``#+CAPTION`` to ``node``."""
        pending, self._affiliated = self._affiliated, {}
        caption = pending.pop("caption", None)
        if caption and node.kind == kinds.TABLE:
            node.children.insert(0, Node(kinds.CAPTION, children=self.inlines(caption)))
        elif caption:
            pending["title"] = caption
        apply_pending(node, {props.ID: pending.get("name"), props.TITLE: pending.get("title")})
        return node

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_keyword(self) -> bool:
        line = self.cursor.current()
        return _KEYWORD_RE.match(line) is not None and not _BLOCK_BEGIN_RE.match(line)

    def _at_heading(self) -> bool:
        return _HEADING_RE.match(self.cursor.current()) is not None

    def _at_block(self) -> bool:
        return _BLOCK_BEGIN_RE.match(self.cursor.current()) is not None

    def _at_drawer(self) -> bool:
        line = self.cursor.current()
        return _DRAWER_RE.match(line) is not None and not _DRAWER_END_RE.match(line)

    def _at_list_item(self) -> bool:
        return _match_list_item(self.cursor.current()) is not None

    def _at_table(self) -> bool:
        return self.cursor.current().lstrip().startswith("|")

    def _at_rule(self) -> bool:
        return _RULE_RE.match(self.cursor.current()) is not None

    def _at_comment(self) -> bool:
        stripped = self.cursor.current().lstrip()
        return stripped == "#" or stripped.startswith("# ")

    def _at_fixed_width(self) -> bool:
        return _FIXED_WIDTH_RE.match(self.cursor.current()) is not None

    def _at_footnote(self) -> bool:
        return _FOOTNOTE_DEF_RE.match(self.cursor.current()) is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        stripped = line.lstrip()
        return (
            _HEADING_RE.match(line) is not None
            or stripped.startswith(("#+", "|"))
            or stripped == "#"
            or stripped.startswith("# ")
            or _RULE_RE.match(line) is not None
            or _match_list_item(line) is not None
            or _FOOTNOTE_DEF_RE.match(line) is not None
        )

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_keyword(self) -> ConsumeResult:
        m = _KEYWORD_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        key, value = m.group(1).lower(), m.group(2)
        if key in _AFFILIATED_KEYWORDS:
            if key in ("name", "caption"):
                self._affiliated[key] = value
            return None
        if key in _SKIPPED_KEYWORDS:
            return None
        self.set_metadata(key, value)
        return None

    def _consume_heading(self) -> ConsumeResult:
        cursor = self.cursor
        m = _HEADING_RE.match(cursor.current())
        assert m is not None
        cursor.advance()
        level = len(m.group(1))
        text = m.group(2) or ""
        node_props: dict[str, object] = {}

        first, _sep, rest = text.partition(" ")
        if first in self.options.todo_keywords:
            node_props["org:todo"] = first
            text = rest.lstrip()
        priority = _PRIORITY_RE.match(text)
        if priority:
            node_props["org:priority"] = priority.group(1)
            text = text[priority.end() :]
        tags = _TAGS_RE.search(text)
        if tags:
            text = text[: tags.start()]
            if self.options.preserve_tags:
                node_props["org:tags"] = [tag for tag in tags.group(1).split(":") if tag]

        heading = self.heading(level, text)
        for key, value in node_props.items():
            heading.prop(key, value)

        planning = list(_PLANNING_RE.finditer(cursor.current()))
        if planning and not _HEADING_RE.match(cursor.current()):
            for item in planning:
                heading.prop(f"org:{item.group(1).lower()}", item.group(2))
            cursor.advance()
        if cursor.current().strip().upper() == ":PROPERTIES:":
            cursor.advance()
            properties: dict[str, str] = {}
            lines, closed = self.collect_until(lambda line: _DRAWER_END_RE.match(line) is not None)
            if not closed:
                self.feature_lost("Unterminated property drawer", "org:unterminated:PROPERTIES")
            for line in lines:
                prop_match = _PROPERTY_RE.match(line)
                if prop_match:
                    properties[prop_match.group(1).lower()] = prop_match.group(2)
            if properties:
                heading.prop("org:properties", properties)
            custom_id = properties.get("custom_id")
            if custom_id:
                heading.prop(props.ID, custom_id)
        return heading

    def _consume_block(self) -> ConsumeResult:
        cursor = self.cursor
        m = _BLOCK_BEGIN_RE.match(cursor.current())
        assert m is not None
        block_type = m.group(1).upper()
        parameters = (m.group(2) or "").strip()
        cursor.advance()
        end_marker = f"#+END_{block_type}"
        lines, closed = self.collect_until(lambda line: line.strip().upper() == end_marker)
        if not closed:
            self.feature_lost(
                f"Unterminated {block_type} block runs to end of document", f"org:unterminated:{block_type}"
            )
        content = "\n".join(lines)

        if block_type == "SRC":
            language = parameters.split()[0] if parameters else None
            return self._take_affiliated(self.code_block(content, language))
        if block_type in ("EXAMPLE", "VERSE"):
            return self._take_affiliated(self.code_block(content))
        if block_type == "QUOTE":
            return self._take_affiliated(Node(kinds.BLOCKQUOTE, children=self.parse_nested(content)))
        if block_type == "CENTER":
            return self._take_affiliated(
                Node(kinds.DIV, children=self.parse_nested(content)).prop(props.CLASSES, "center")
            )
        if block_type == "EXPORT":
            fmt = parameters.split()[0].lower() if parameters else "org"
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, content).prop(props.FORMAT, fmt)
        if block_type == "COMMENT":
            return None
        return self.unsupported_block(
            block_type.lower(), content, f"Unknown Org block type '{block_type}'", parse_body=True
        )

    def _consume_drawer(self) -> ConsumeResult:
        m = _DRAWER_RE.match(self.cursor.current())
        assert m is not None
        start = self.cursor.position
        self.cursor.advance()
        lines, closed = self.collect_until(lambda line: _DRAWER_END_RE.match(line) is not None)
        if not closed:
            self.cursor.position = start
            return self._consume_paragraph()
        name = m.group(1).upper()
        self.warnings.info(WarningKind.SIMPLIFIED, f"Drawer '{name}' omitted", detail=f"org:drawer:{name.lower()}")
        return None

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        first = _match_list_item(cursor.current())
        assert first is not None
        base_indent = first[0]
        if _DESCRIPTION_RE.match(first[2]) and first[1] in ("-", "+", "*"):
            return self._take_affiliated(self._description_list(base_indent))

        builder = ListBuilder()
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            item = _match_list_item(cursor.current())
            if item is None or item[0] != base_indent:
                break
            _indent, marker, text = item
            ordered = marker[0].isalnum()
            first_line = cursor.position
            cursor.advance()
            start = None
            counter = _COUNTER_RE.match(text)
            if counter:
                start = int(counter.group(1))
                text = text[counter.end() :]
            elif ordered and marker[:-1].isdigit():
                start = int(marker[:-1])
            checked = None
            checkbox = _CHECKBOX_RE.match(text)
            if checkbox:
                checked = checkbox.group(1) in "xX"
                text = text[checkbox.end() :]
            body = [text] + self._item_body(base_indent)
            content = self.parse_nested("\n".join(body))
            list_item = builder.add_item(1, ordered, content, checked=checked, start=start, wrap_paragraph=False)
            spans.append((list_item, 1, first_line))
            if not self._continues_list(base_indent):
                break
        self.span_list_items(spans)
        lists = builder.lists
        if lists:
            self._take_affiliated(lists[0])
        return lists

    def _item_body(self, base_indent: int) -> list[str]:
        """Lines indented deeper than the item marker, dedented; trailing blanks stay unconsumed."""
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current()
            if line.strip() and _indent_of(line) <= base_indent:
                break
            lines.append(line.expandtabs(8))
            cursor.advance()
        while lines and not lines[-1].strip():
            lines.pop()
            cursor.position = cursor.position - 1
        cut = min((_indent_of(line) for line in lines if line.strip()), default=0)
        return [line[cut:] if line.strip() else "" for line in lines]

    def _continues_list(self, base_indent: int) -> bool:
        """Skip at most one blank line when the next item is at the same indentation."""
        cursor = self.cursor
        saved = cursor.position
        if cursor.at_blank_line():
            cursor.advance()
        item = _match_list_item(cursor.current()) if not cursor.is_eof() else None
        if item is not None and item[0] == base_indent:
            return True
        cursor.position = saved
        return False

    def _description_list(self, base_indent: int) -> Node:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            item = _match_list_item(cursor.current())
            if item is None or item[0] != base_indent:
                break
            description = _DESCRIPTION_RE.match(item[2])
            if description is None:
                break
            cursor.advance()
            term, first = description.group(1), description.group(2) or ""
            body = [first] + self._item_body(base_indent)
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(term)))
            definition_list.child(Node(kinds.DEFINITION_DESC, children=self.parse_nested("\n".join(body))))
            if not self._continues_list(base_indent):
                break
        return definition_list

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        rows: list[list[str]] = []
        header_rows = 0
        while not cursor.is_eof() and cursor.current().lstrip().startswith("|"):
            line = cursor.current()
            cursor.advance()
            if _TABLE_SEPARATOR_RE.match(line):
                if rows and not header_rows:
                    header_rows = len(rows)
                continue
            rows.append(_split_row(line))

        builder = TableBuilder()
        for index, row in enumerate(rows):
            builder.add_row([self.inlines(cell) for cell in row], is_header=index < header_rows)
        return self._take_affiliated(builder.get_table())

    def _consume_rule(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_comment(self) -> ConsumeResult:
        cursor = self.cursor
        while not cursor.is_eof() and self._at_comment():
            cursor.advance()
        return None

    def _consume_fixed_width(self) -> ConsumeResult:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            m = _FIXED_WIDTH_RE.match(cursor.current())
            if m is None:
                break
            lines.append(m.group(1) or "")
            cursor.advance()
        return self._take_affiliated(self.code_block("\n".join(lines)))

    def _consume_footnote(self) -> ConsumeResult:
        cursor = self.cursor
        m = _FOOTNOTE_DEF_RE.match(cursor.current())
        assert m is not None
        cursor.advance()
        lines = [m.group(2)]
        while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.current()):
            lines.append(cursor.current())
            cursor.advance()
        return Node(kinds.FOOTNOTE_DEF, children=self.parse_nested("\n".join(lines))).prop(props.LABEL, m.group(1))

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        children = self.inlines("\n".join(line.strip() for line in lines))
        if len(children) == 1 and children[0].kind == kinds.IMAGE and "caption" in self._affiliated:
            figure = Node(kinds.FIGURE).child(children[0])
            figure.child(Node(kinds.CAPTION, children=self.inlines(self._affiliated.pop("caption"))))
            return self._take_affiliated(figure)
        return self._take_affiliated(Node(kinds.PARAGRAPH, children=children))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse an Org-Mode document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Org-Mode source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return OrgParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: OrgOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return OrgParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="org",
    extensions=[".org"],
    mime_types=["text/org", "text/x-org"],
    parser_class=OrgParser,
    parser_options_class=OrgOptions,
    description="Parse Org-Mode documents",
    priority=10,
)
