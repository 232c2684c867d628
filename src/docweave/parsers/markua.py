#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/markua.py
"""Markua to AST converter.

Markua is the Markdown dialect used by Leanpub. On top of the familiar
Markdown blocks it adds special blocks (``A>`` asides, ``W>`` warnings,
``T>`` tips and friends, or the ``{aside}``...``{/aside}`` form), scene
breaks and ``{key: value}`` attribute lines that attach to the next block.

"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult
from docweave.ast.nodes import Node, text_node
from docweave.constants import MARKUA_SPECIAL_BLOCKS
from docweave.converter_metadata import ConverterMetadata
from docweave.options.markua import MarkuaOptions
from docweave.parsers._block import ConsumeResult, Recognizer, apply_pending, recognizer
from docweave.parsers._inline import InlineScanner, MatchResult, code_node, image_node, link_node
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$")
_SCENE_BREAK_RE = re.compile(r"^[ \t]*(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$")
_FENCE_RE = re.compile(r"^[ \t]*(`{3,}|~{3,})[ \t]*([\w+#.-]*)[ \t]*$")
_SPECIAL_RE = re.compile(rf"^([{''.join(MARKUA_SPECIAL_BLOCKS)}])>(?:[ \t](.*)|[ \t]*)$")
_SPECIAL_OPEN_RE = re.compile(rf"^\{{({'|'.join(MARKUA_SPECIAL_BLOCKS.values())}|blockquote)\}}[ \t]*$")
_ATTRIBUTE_LINE_RE = re.compile(r"^\{([^{}]*:[^{}]*)\}[ \t]*$")
_ATTRIBUTE_RE = re.compile(r"""([\w-]+)[ \t]*:[ \t]*(?:"([^"]*)"|'([^']*)'|([^,]*))""")
_DIRECTIVE_RE = re.compile(r"^\{(pagebreak|frontmatter|mainmatter|backmatter)\}[ \t]*$")
_ANY_BLOCK_RE = re.compile(r"^\{([A-Za-z][\w-]*)\}[ \t]*$")
_LIST_RE = re.compile(r"^([ \t]*)(?:([-*+])|(\d+)[.)])[ \t]+(.*)$")
_FOOTNOTE_DEF_RE = re.compile(r"^\[\^([^\]\s]+)\]:[ \t]*(.*)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?[ \t]*$")
_DEFINITION_RE = re.compile(r"^:[ \t]+(.*)$")

_LINK_RE = re.compile(r"\[((?:[^\[\]]|\[[^\]]*\])*)\]\(([^)\s]+)(?:[ \t]+\"([^\"]*)\")?\)")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:[ \t]+\"([^\"]*)\")?\)")
_FOOTNOTE_REF_RE = re.compile(r"\[\^([^\]\s]+)\]")
_MARKERS = (
    ("**", kinds.STRONG),
    ("__", kinds.STRONG),
    ("~~", kinds.STRIKEOUT),
    ("*", kinds.EMPHASIS),
    ("_", kinds.EMPHASIS),
    ("^", kinds.SUPERSCRIPT),
    ("~", kinds.SUBSCRIPT),
)


def _parse_attributes(text: str) -> dict[str, str]:
    """Parse ``key: value, key: "quoted value"`` pairs."""
    attributes: dict[str, str] = {}
    for m in _ATTRIBUTE_RE.finditer(text):
        key = m.group(1).lower()
        value = next((group for group in m.groups()[1:] if group is not None), "")
        attributes[key] = value.strip()
    return attributes


def _with_attributes(consume: Callable[[MarkuaParser], ConsumeResult]) -> Callable[[MarkuaParser], ConsumeResult]:
    """Wrap a consumer so the pending attribute line lands on its first node."""

    def consume_with_attributes(parser: MarkuaParser) -> ConsumeResult:
        result = consume(parser)
        pending, parser._attributes = parser._attributes, {}
        if not result:
            return result
        first = result[0] if isinstance(result, list) else result
        mapped: dict[str, object] = {}
        for key, value in pending.items():
            if key == "id":
                mapped[props.ID] = value
            elif key == "class":
                mapped[props.CLASSES] = value
            elif key == "title":
                mapped[props.TITLE] = value
            elif key == "format" and first.kind == kinds.CODE_BLOCK:
                if not first.get(props.LANGUAGE):
                    first.prop(props.LANGUAGE, value)
            elif key == "alt" and first.kind == kinds.FIGURE and first.children:
                first.children[0].prop(props.ALT, value)
            else:
                mapped[f"markua:{key}"] = value
        apply_pending(first, mapped)
        return result

    return consume_with_attributes


class MarkuaInlineScanner(InlineScanner):
    """Emphasis, code spans, links, images and footnote references for Markua."""

    parser: MarkuaParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\\" and i + 1 < len(chars) and not chars[i + 1].isalnum():
            if chars[i + 1] == "\n":
                return Node(kinds.LINE_BREAK), i + 2
            return text_node(chars[i + 1]), i + 2
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == "`":
            return self._code_span(chars, i)
        if c == "!":
            m = self.match_pattern(_IMAGE_RE, i)
            if m is not None:
                return image_node(m.group(2), m.group(1) or None, m.group(3)), m.end()
            return None
        if c == "[":
            footnote = self.match_pattern(_FOOTNOTE_REF_RE, i)
            if footnote is not None:
                return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, footnote.group(1)), footnote.end()
            link = self.match_pattern(_LINK_RE, i)
            if link is not None:
                return link_node(link.group(2), self.scan(link.group(1)), link.group(3)), link.end()
            return None
        for marker, kind in _MARKERS:
            if c == marker[0]:
                if marker[0] == "_" and i > 0 and chars[i - 1].isalnum():
                    return None
                hit = self.delimited(chars, i, marker, kind, bounded=True)
                if hit is not None:
                    return hit
        if c == "h":
            return self.match_bare_url(chars, i)
        return None

    def _code_span(self, chars: list[str], i: int) -> MatchResult:
        run = 1
        while i + run < len(chars) and chars[i + run] == "`":
            run += 1
        fence = "`" * run
        close = self.text.find(fence, i + run)
        while close >= 0 and close + run < len(chars) and chars[close + run] == "`":
            close = self.text.find(fence, close + run + 1)
        if close < 0:
            return None
        content = self.text[i + run : close].replace("\n", " ")
        if content.startswith(" ") and content.endswith(" ") and content.strip():
            content = content[1:-1]
        return code_node(content), close + run


class MarkuaParser(MarkupParser):
    """Convert Markua to the document IR.

    Parameters
    ----------
    options : MarkuaOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
        >>> result = MarkuaParser().parse("W> Mind the gap.")
        >>> result.value.blocks[0].get("classes")
        'warning'

    """

    format_name = "markua"
    options_class = MarkuaOptions
    options: MarkuaOptions

    def __init__(self, options: Optional[MarkuaOptions] = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self._attributes: dict[str, str] = {}

    def create_inline_scanner(self) -> MarkuaInlineScanner:
        return MarkuaInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("attributes", cls._at_attribute_line, cls._consume_attribute_line),
            recognizer("directive", cls._at_directive, cls._consume_directive),
            recognizer("heading", cls._at_heading, _with_attributes(cls._consume_heading)),
            recognizer("scene_break", cls._at_scene_break, _with_attributes(cls._consume_scene_break)),
            recognizer("fence", cls._at_fence, _with_attributes(cls._consume_fence)),
            recognizer("special_block", cls._at_special, _with_attributes(cls._consume_special)),
            recognizer("special_section", cls._at_special_open, _with_attributes(cls._consume_special_section)),
            recognizer("unknown_block", cls._at_unknown_block, cls._consume_unknown_block),
            recognizer("blockquote", cls._at_blockquote, _with_attributes(cls._consume_blockquote)),
            recognizer("footnote_definition", cls._at_footnote_def, cls._consume_footnote_def),
            recognizer("list", cls._at_list_item, _with_attributes(cls._consume_list)),
            recognizer("table", cls._at_table, _with_attributes(cls._consume_table)),
            recognizer("definition_list", cls._at_definition, _with_attributes(cls._consume_definition_list)),
            recognizer("paragraph", cls._at_paragraph, _with_attributes(cls._consume_paragraph)),
        )

    def parse_nested(self, text: str) -> list[Node]:
        saved, self._attributes = self._attributes, {}
        try:
            return super().parse_nested(text)
        finally:
            self._attributes = saved

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_attribute_line(self) -> bool:
        return _ATTRIBUTE_LINE_RE.match(self.cursor.current()) is not None

    def _at_directive(self) -> bool:
        return _DIRECTIVE_RE.match(self.cursor.current()) is not None

    def _at_heading(self) -> bool:
        return _HEADING_RE.match(self.cursor.current()) is not None

    def _at_scene_break(self) -> bool:
        return _SCENE_BREAK_RE.match(self.cursor.current()) is not None

    def _at_fence(self) -> bool:
        return _FENCE_RE.match(self.cursor.current()) is not None

    def _at_special(self) -> bool:
        return _SPECIAL_RE.match(self.cursor.current()) is not None

    def _at_special_open(self) -> bool:
        return _SPECIAL_OPEN_RE.match(self.cursor.current()) is not None

    def _at_unknown_block(self) -> bool:
        line = self.cursor.current()
        return (
            _ANY_BLOCK_RE.match(line) is not None
            and _DIRECTIVE_RE.match(line) is None
            and _SPECIAL_OPEN_RE.match(line) is None
        )

    def _at_blockquote(self) -> bool:
        line = self.cursor.current().lstrip()
        return line.startswith(">")

    def _at_footnote_def(self) -> bool:
        return _FOOTNOTE_DEF_RE.match(self.cursor.current()) is not None

    def _at_list_item(self) -> bool:
        return _LIST_RE.match(self.cursor.current()) is not None

    def _at_table(self) -> bool:
        line = self.cursor.current().strip()
        return line.startswith("|") and _TABLE_SEPARATOR_RE.match(self.cursor.peek_ahead().strip()) is not None

    def _at_definition(self) -> bool:
        return _DEFINITION_RE.match(self.cursor.peek_ahead()) is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        stripped = line.lstrip()
        if stripped.startswith(">") or _SPECIAL_RE.match(line) or _SPECIAL_OPEN_RE.match(line):
            return True
        return bool(
            _HEADING_RE.match(line)
            or _FENCE_RE.match(line)
            or _SCENE_BREAK_RE.match(line)
            or _LIST_RE.match(line)
            or _ATTRIBUTE_LINE_RE.match(line)
            or _ANY_BLOCK_RE.match(line)
        )

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_attribute_line(self) -> ConsumeResult:
        m = _ATTRIBUTE_LINE_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        self._attributes.update(_parse_attributes(m.group(1)))
        return None

    def _consume_directive(self) -> ConsumeResult:
        m = _DIRECTIVE_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        if m.group(1) == "pagebreak":
            return Node(kinds.DIV).prop(props.LAYOUT_PAGE_BREAK, True)
        return Node(kinds.DIV).prop("markua:matter", m.group(1))

    def _consume_heading(self) -> ConsumeResult:
        m = _HEADING_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        return self.heading(len(m.group(1)), m.group(2))

    def _consume_scene_break(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_fence(self) -> ConsumeResult:
        m = _FENCE_RE.match(self.cursor.current())
        assert m is not None
        fence, language = m.group(1), m.group(2)
        self.cursor.advance()

        def closes(line: str) -> bool:
            stripped = line.strip()
            return stripped.startswith(fence) and not stripped.strip(fence[0])

        lines, closed = self.collect_until(closes)
        if not closed:
            self.feature_lost("Unterminated code block", detail="markua:unterminated:code")
        return self.code_block("\n".join(lines), language or None)

    def _consume_special(self) -> ConsumeResult:
        cursor = self.cursor
        m = _SPECIAL_RE.match(cursor.current())
        assert m is not None
        letter = m.group(1)
        prefix = f"{letter}>"
        lines: list[str] = []
        while not cursor.is_eof() and cursor.current().startswith(prefix):
            rest = cursor.current()[len(prefix) :]
            lines.append(rest[1:] if rest.startswith((" ", "\t")) else rest)
            cursor.advance()
        div = Node(kinds.DIV, children=self.parse_nested("\n".join(lines)))
        return div.prop(props.CLASSES, MARKUA_SPECIAL_BLOCKS[letter])

    def _consume_special_section(self) -> ConsumeResult:
        m = _SPECIAL_OPEN_RE.match(self.cursor.current())
        assert m is not None
        name = m.group(1)
        self.cursor.advance()
        closing = f"{{/{name}}}"
        lines, closed = self.collect_until(lambda line: line.strip() == closing)
        if not closed:
            self.feature_lost(f"Unterminated {name} block", detail=f"markua:unterminated:{name}")
        children = self.parse_nested("\n".join(lines))
        if name == "blockquote":
            return Node(kinds.BLOCKQUOTE, children=children)
        return Node(kinds.DIV, children=children).prop(props.CLASSES, name)

    def _consume_unknown_block(self) -> ConsumeResult:
        cursor = self.cursor
        m = _ANY_BLOCK_RE.match(cursor.current())
        assert m is not None
        name = m.group(1)
        cursor.advance()
        closing = f"{{/{name}}}"
        body = ""
        if any(cursor.line(index).strip() == closing for index in range(cursor.position, len(cursor))):
            lines, _ = self.collect_until(lambda line: line.strip() == closing)
            body = "\n".join(lines)
        return self.unsupported_block(name, body, parse_body=True)

    def _consume_blockquote(self) -> ConsumeResult:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current().lstrip()
            if not line.startswith(">"):
                break
            lines.append(line[2:] if line.startswith("> ") else line[1:])
            cursor.advance()
        return Node(kinds.BLOCKQUOTE, children=self.parse_nested("\n".join(lines)))

    def _consume_footnote_def(self) -> ConsumeResult:
        cursor = self.cursor
        m = _FOOTNOTE_DEF_RE.match(cursor.current())
        assert m is not None
        cursor.advance()
        lines = [m.group(2)]
        while not cursor.is_eof():
            line = cursor.current()
            if line.strip() and not line.startswith(("    ", "\t")):
                if self._interrupts_paragraph(line) or _FOOTNOTE_DEF_RE.match(line) or not lines[-1].strip():
                    break
            elif not line.strip():
                following = cursor.peek_ahead()
                if not following.startswith(("    ", "\t")):
                    break
            lines.append(line.strip())
            cursor.advance()
        node = Node(kinds.FOOTNOTE_DEF, children=self.parse_nested("\n".join(lines)))
        return node.prop(props.LABEL, m.group(1))

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        indents: list[int] = []
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None or _SCENE_BREAK_RE.match(cursor.current()):
                break
            indent = len(m.group(1).expandtabs(4))
            while indents and indent < indents[-1]:
                indents.pop()
            if not indents or indent > indents[-1]:
                indents.append(indent)
            first_line = cursor.position
            cursor.advance()

            lines = [m.group(4)]
            while not cursor.is_eof():
                line = cursor.current()
                if not line.strip() or _LIST_RE.match(line):
                    break
                if len(line) - len(line.lstrip()) <= indent and self._interrupts_paragraph(line):
                    break
                lines.append(line.strip())
                cursor.advance()

            number = m.group(3)
            list_item = builder.add_item(
                len(indents),
                number is not None,
                self.inlines("\n".join(lines)),
                start=int(number) if number else None,
            )
            spans.append((list_item, len(indents), first_line))
        self.span_list_items(spans)
        return builder.lists

    def _consume_table(self) -> ConsumeResult:
        cursor = self.cursor
        builder = TableBuilder()
        builder.add_row(self._table_cells(cursor.current()), is_header=True)
        cursor.advance()
        for index, spec in enumerate(self._split_row(cursor.current())):
            spec = spec.strip()
            if spec.startswith(":") and spec.endswith(":"):
                builder.set_column_alignment(index, "center")
            elif spec.endswith(":"):
                builder.set_column_alignment(index, "right")
            elif spec.startswith(":"):
                builder.set_column_alignment(index, "left")
        cursor.advance()
        while not cursor.is_eof() and cursor.current().strip().startswith("|"):
            builder.add_row(self._table_cells(cursor.current()))
            cursor.advance()
        return builder.get_table()

    @staticmethod
    def _split_row(line: str) -> list[str]:
        row = line.strip()
        if row.startswith("|"):
            row = row[1:]
        if row.endswith("|"):
            row = row[:-1]
        return row.split("|")

    def _table_cells(self, line: str) -> list[list[Node]]:
        return [self.inlines(cell.strip()) for cell in self._split_row(line)]

    def _consume_definition_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof() and cursor.current().strip() and _DEFINITION_RE.match(cursor.peek_ahead()):
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(cursor.current().strip())))
            cursor.advance()
            while not cursor.is_eof():
                m = _DEFINITION_RE.match(cursor.current())
                if m is None:
                    break
                definition_list.child(
                    Node(kinds.DEFINITION_DESC).child(Node(kinds.PARAGRAPH, children=self.inlines(m.group(1))))
                )
                cursor.advance()
            if not cursor.is_eof() and not cursor.current().strip():
                cursor.skip_blank_lines()
        return definition_list

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        children = self.inlines("\n".join(line.strip() for line in lines))
        if len(children) == 1 and children[0].kind == kinds.IMAGE:
            image = children[0]
            figure = Node(kinds.FIGURE).child(image)
            caption = image.props.pop(props.ALT, None)
            if caption:
                figure.child(Node(kinds.CAPTION).child(text_node(caption)))
            return figure
        return Node(kinds.PARAGRAPH, children=children)


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a Markua document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Markua source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return MarkuaParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: MarkuaOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return MarkuaParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="markua",
    extensions=[".markua"],
    mime_types=["text/x-markua"],
    parser_class=MarkuaParser,
    parser_options_class=MarkuaOptions,
    description="Parse Markua (Leanpub) documents",
    priority=5,
)
