#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/typst.py
"""Typst markup to AST converter.

Markup mode is read line by line like the other lightweight readers. Code
mode is entered only through ``#name(...)[...]`` function calls, which are
split into positional arguments, named arguments and trailing content
blocks. The calls the document IR can express (image, link, quote,
figure, table, raw) become nodes; any other call is kept as a ``typst``
raw block with a warning.

"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.ast.utils import extract_text
from docweave.constants import TYPST_BLOCK_FUNCTIONS
from docweave.converter_metadata import ConverterMetadata
from docweave.options.typst import TypstOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._inline import InlineScanner, MatchResult, code_node, image_node, link_node
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^[ \t]*(=+)[ \t]+(.*?)[ \t]*(?:<([\w:.-]+)>)?[ \t]*$")
_FENCE_RE = re.compile(r"^[ \t]*(`{3,})[ \t]*([\w+#.-]*)[ \t]*$")
_LIST_RE = re.compile(r"^([ \t]*)(?:([-+])|(\d+)\.)[ \t]+(.*)$")
_TERM_RE = re.compile(r"^[ \t]*/[ \t]+([^:]+?):[ \t]*(.*)$")
_LABEL_LINE_RE = re.compile(r"^[ \t]*<[\w:.-]+>[ \t]*$")
_CALL_RE = re.compile(r"#([A-Za-z_][\w-]*(?:\.[A-Za-z_][\w-]*)*)")
_NAMED_ARG_RE = re.compile(r"^([A-Za-z_][\w-]*)[ \t]*:[ \t]*(.*)$", re.DOTALL)
_LABEL_RE = re.compile(r"<([\w:.-]+)>")
_REFERENCE_RE = re.compile(r"@([\w:.-]*\w)")

_KEYWORDS = ("set", "show", "let", "import", "include")
_INLINE_STYLES = {
    "emph": kinds.EMPHASIS,
    "strong": kinds.STRONG,
    "underline": kinds.UNDERLINE,
    "strike": kinds.STRIKEOUT,
    "super": kinds.SUPERSCRIPT,
    "sub": kinds.SUBSCRIPT,
    "smallcaps": kinds.SMALL_CAPS,
    "highlight": kinds.SPAN,
    "text": kinds.SPAN,
}
_CLOSERS = {"(": ")", "[": "]", "{": "}"}


class _Call(NamedTuple):
    name: str
    args: Optional[str]
    bodies: list[str]
    end: int


def _matching(text: str, start: int) -> int:
    """Index of the bracket closing ``text[start]``, or -1 when unbalanced."""
    code_mode = text[start] != "["
    depth = 0
    in_string = False
    i = start
    while i < len(text):
        c = text[i]
        if in_string:
            if c == "\\":
                i += 2
                continue
            if c == '"':
                in_string = False
        elif c == "\\":
            i += 2
            continue
        elif c == '"' and code_mode:
            in_string = True
        elif c in _CLOSERS:
            depth += 1
        elif c in ")]}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _read_call(text: str, start: int) -> Optional[_Call]:
    """Read ``#name(args)[body]...`` at ``start``; None if absent or unbalanced."""
    m = _CALL_RE.match(text, start)
    if m is None:
        return None
    i = m.end()
    args = None
    bodies: list[str] = []
    if i < len(text) and text[i] == "(":
        close = _matching(text, i)
        if close < 0:
            return None
        args = text[i + 1 : close]
        i = close + 1
    while i < len(text) and text[i] == "[":
        close = _matching(text, i)
        if close < 0:
            return None
        bodies.append(text[i + 1 : close])
        i = close + 1
    return _Call(m.group(1), args, bodies, i)


def _split_args(args: Optional[str]) -> tuple[list[str], dict[str, str]]:
    """Split an argument list at top-level commas into positional and named values."""
    positional: list[str] = []
    named: dict[str, str] = {}
    if not args:
        return positional, named
    parts: list[str] = []
    depth = 0
    in_string = False
    current: list[str] = []
    i = 0
    while i < len(args):
        c = args[i]
        if in_string:
            if c == "\\" and i + 1 < len(args):
                current.append(args[i : i + 2])
                i += 2
                continue
            if c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c in _CLOSERS:
            depth += 1
        elif c in ")]}":
            depth -= 1
        elif c == "," and depth == 0:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(c)
        i += 1
    parts.append("".join(current))

    for part in parts:
        value = part.strip()
        if not value:
            continue
        named_arg = _NAMED_ARG_RE.match(value)
        if named_arg and not value.startswith(('"', "[")):
            named[named_arg.group(1)] = named_arg.group(2).strip()
        else:
            positional.append(value)
    return positional, named


def _string_value(value: Optional[str]) -> Optional[str]:
    if value and len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return None


def _content_value(value: Optional[str]) -> Optional[str]:
    if value and len(value) >= 2 and value[0] == "[" and value[-1] == "]":
        return value[1:-1]
    return None


def _unbalanced(text: str) -> bool:
    return sum(text.count(c) for c in "([") > sum(text.count(c) for c in ")]")


class TypstInlineScanner(InlineScanner):
    """Markup-mode inline rules plus inline function calls."""

    parser: TypstParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\\":
            return self._escape(chars, i)
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == "*":
            return self._styled(chars, i, "*", kinds.STRONG)
        if c == "_":
            return self._styled(chars, i, "_", kinds.EMPHASIS)
        if c == "`":
            return self._raw(chars, i)
        if c == "$":
            return self._math(chars, i)
        if c == "#":
            return self._call(i)
        if c == "@":
            return self._reference(chars, i)
        if c == "<":
            label = self.match_pattern(_LABEL_RE, i)
            return ([], label.end()) if label else None
        if c == "~":
            return text_node("\u00a0"), i + 1
        if c == "-" and self.text.startswith("--", i):
            if self.text.startswith("---", i):
                return text_node("\u2014"), i + 3
            return text_node("\u2013"), i + 2
        if c == "/" and self.text.startswith("//", i) and (i == 0 or chars[i - 1].isspace()):
            end = self.text.find("\n", i)
            return [], len(chars) if end < 0 else end
        if c == "h":
            return self.match_bare_url(chars, i)
        return None

    def _escape(self, chars: list[str], i: int) -> MatchResult:
        if i + 1 >= len(chars) or chars[i + 1] in " \t\n":
            end = i + 1
            while end < len(chars) and chars[end] in " \t\n":
                end += 1
            return Node(kinds.LINE_BREAK), end
        return text_node(chars[i + 1]), i + 2

    def _styled(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        if marker == "_" and i > 0 and chars[i - 1].isalnum():
            return None
        return self.delimited(chars, i, marker, kind, bounded=True)

    def _raw(self, chars: list[str], i: int) -> MatchResult:
        run = 1
        while i + run < len(chars) and chars[i + run] == "`":
            run += 1
        fence = "`" * run
        close = self.text.find(fence, i + run)
        if close < 0:
            return None
        content = self.text[i + run : close]
        if run >= 3:
            language, _sep, rest = content.partition(" ")
            node = code_node(rest.strip() if rest else "")
            if language and rest:
                node.prop(props.LANGUAGE, language)
            elif language:
                node = code_node(language)
            return node, close + run
        return code_node(content), close + run

    def _math(self, chars: list[str], i: int) -> MatchResult:
        j = i + 1
        while j < len(chars):
            if chars[j] == "\\":
                j += 2
                continue
            if chars[j] == "$":
                break
            j += 1
        if j >= len(chars) or j == i + 1:
            return None
        source = "".join(chars[i + 1 : j])
        if len(source) > 1 and source[0].isspace() and source[-1].isspace():
            return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, source.strip()), j + 1
        return Node(kinds.MATH_INLINE).prop(props.MATH_SOURCE, source), j + 1

    def _reference(self, chars: list[str], i: int) -> MatchResult:
        if i > 0 and chars[i - 1].isalnum():
            return None
        m = self.match_pattern(_REFERENCE_RE, i)
        if m is None:
            return None
        return link_node(f"#{m.group(1)}", [text_node(m.group(1))]), m.end()

    def _call(self, i: int) -> MatchResult:
        call = _read_call(self.text, i)
        if call is None:
            return None
        positional, named = _split_args(call.args)
        body = call.bodies[0] if call.bodies else _content_value(positional[-1] if positional else None)
        name = call.name

        if name == "link":
            url = _string_value(positional[0] if positional else None)
            if url is None:
                return None
            return link_node(url, self.scan(body) if body is not None else [text_node(url)]), call.end
        if name == "image":
            path = _string_value(positional[0] if positional else None)
            if path is None:
                return None
            return image_node(path, _string_value(named.get("alt"))), call.end
        if name == "footnote" and body is not None:
            return Node(kinds.FOOTNOTE_DEF, children=self.scan(body)), call.end
        if name == "raw":
            source = _string_value(positional[0] if positional else None)
            if source is not None:
                node = code_node(source)
                language = _string_value(named.get("lang"))
                if language:
                    node.prop(props.LANGUAGE, language)
                return node, call.end
        if name in _INLINE_STYLES and body is not None:
            node = Node(_INLINE_STYLES[name], children=self.scan(body))
            fill = named.get("fill")
            if name in ("text", "highlight") and fill:
                node.prop(props.STYLE_COLOR if name == "text" else props.STYLE_BG_COLOR, fill)
            return node, call.end

        self.parser.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            f"Unsupported Typst function '{name}'",
            detail=f"typst:{name}",
        )
        raw = self.text[i : call.end]
        return Node(kinds.RAW_INLINE).prop(props.CONTENT, raw).prop(props.FORMAT, "typst"), call.end


class TypstParser(MarkupParser):
    """Convert Typst markup to the document IR.

    Parameters
    ----------
    options : TypstOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    """

    format_name = "typst"
    options_class = TypstOptions
    options: TypstOptions

    def create_inline_scanner(self) -> TypstInlineScanner:
        return TypstInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("fence", cls._at_fence, cls._consume_fence),
            recognizer("math_block", cls._at_math_block, cls._consume_math_block),
            recognizer("function", cls._at_function, cls._consume_function),
            recognizer("label", cls._at_label, cls._consume_label),
            recognizer("blockquote", cls._at_blockquote, cls._consume_blockquote),
            recognizer("term_list", cls._at_term, cls._consume_term_list),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_comment(self) -> bool:
        return self.cursor.current().lstrip().startswith(("//", "/*"))

    def _at_heading(self) -> bool:
        return _HEADING_RE.match(self.cursor.current()) is not None

    def _at_fence(self) -> bool:
        return _FENCE_RE.match(self.cursor.current()) is not None

    def _at_math_block(self) -> bool:
        line = self.cursor.current().strip()
        return line.startswith("$") and (line == "$" or line[1] in " \t")

    def _at_function(self) -> bool:
        line = self.cursor.current().lstrip()
        m = _CALL_RE.match(line)
        return m is not None and m.group(1) not in _INLINE_STYLES and m.group(1) != "footnote"

    def _at_label(self) -> bool:
        return _LABEL_LINE_RE.match(self.cursor.current()) is not None

    def _at_blockquote(self) -> bool:
        line = self.cursor.current().lstrip()
        return line.startswith("> ") or line.rstrip() == ">"

    def _at_term(self) -> bool:
        return _TERM_RE.match(self.cursor.current()) is not None

    def _at_list_item(self) -> bool:
        return _LIST_RE.match(self.cursor.current()) is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        stripped = line.lstrip()
        if stripped.startswith(("//", "/*", "> ")):
            return True
        if _HEADING_RE.match(line) or _FENCE_RE.match(line) or _LIST_RE.match(line) or _TERM_RE.match(line):
            return True
        m = _CALL_RE.match(stripped)
        if m is None:
            return False
        name = m.group(1)
        return (name in TYPST_BLOCK_FUNCTIONS and name != "link") or name in _KEYWORDS

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_comment(self) -> ConsumeResult:
        cursor = self.cursor
        line = cursor.current().lstrip()
        cursor.advance()
        if line.startswith("/*") and "*/" not in line[2:]:
            _lines, closed = self.collect_until(lambda candidate: "*/" in candidate)
            if not closed:
                self.feature_lost("Unterminated block comment", detail="typst:unterminated:comment")
        return None

    def _consume_heading(self) -> ConsumeResult:
        m = _HEADING_RE.match(self.cursor.current())
        assert m is not None
        self.cursor.advance()
        node = self.heading(len(m.group(1)), m.group(2))
        if m.group(3):
            node.prop(props.ID, m.group(3))
        return node

    def _consume_fence(self) -> ConsumeResult:
        m = _FENCE_RE.match(self.cursor.current())
        assert m is not None
        fence, language = m.group(1), m.group(2)
        self.cursor.advance()

        def closes(line: str) -> bool:
            stripped = line.strip()
            return stripped.startswith(fence) and not stripped.strip("`")

        lines, closed = self.collect_until(closes)
        if not closed:
            self.feature_lost("Unterminated raw block", detail="typst:unterminated:raw")
        return self.code_block("\n".join(lines), language or None)

    def _consume_math_block(self) -> ConsumeResult:
        cursor = self.cursor
        text = cursor.current().strip()[1:]
        cursor.advance()
        while not text.rstrip().endswith("$") and not cursor.is_eof():
            text += "\n" + cursor.current()
            cursor.advance()
        if not text.rstrip().endswith("$"):
            self.feature_lost("Unterminated math block", detail="typst:unterminated:math")
            return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, text.strip())
        return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, text.rstrip()[:-1].strip())

    def _collect_call_text(self) -> str:
        """Current line plus following lines until brackets balance."""
        cursor = self.cursor
        text = cursor.current().strip()
        cursor.advance()
        while _unbalanced(text) and not cursor.is_eof():
            text += "\n" + cursor.current()
            cursor.advance()
        return text

    def _consume_function(self) -> ConsumeResult:
        text = self._collect_call_text()
        call = _read_call(text, 0)
        if call is None:
            self.feature_lost("Unbalanced function call", detail="typst:unterminated:call")
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, text).prop(props.FORMAT, "typst")
        if call.name in _KEYWORDS:
            return self._raw_function(call.name, text)
        if text[call.end :].strip():
            return Node(kinds.PARAGRAPH, children=self.inlines(text))

        positional, named = _split_args(call.args)
        handler = getattr(self, f"_function_{call.name}", None)
        if handler is None:
            return self._raw_function(call.name, text)
        return handler(positional, named, call.bodies, text)

    def _raw_function(self, name: str, text: str) -> Node:
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            f"Unsupported Typst function '{name}'",
            detail=f"typst:{name}",
        )
        return Node(kinds.RAW_BLOCK).prop(props.CONTENT, text).prop(props.FORMAT, "typst")

    def _function_image(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        path = _string_value(positional[0] if positional else None)
        if path is None:
            return self._raw_function("image", text)
        image = image_node(path, _string_value(named.get("alt")))
        for key in ("width", "height", "fit"):
            if key in named:
                image.prop(f"typst:{key}", named[key].strip('"'))
        return image

    def _function_link(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        return Node(kinds.PARAGRAPH, children=self.inlines(text))

    def _function_quote(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        body = bodies[0] if bodies else _content_value(positional[0] if positional else None)
        if body is None:
            body = _string_value(positional[0] if positional else None) or ""
        quote = Node(kinds.BLOCKQUOTE, children=self.parse_nested(body.strip("\n")))
        attribution = named.get("attribution")
        if attribution:
            source = _content_value(attribution) or _string_value(attribution) or attribution
            quote.prop("typst:attribution", extract_text(self.inlines(source)))
        return quote

    def _function_figure(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        figure = Node(kinds.FIGURE)
        if positional:
            content = positional[0]
            inner = _content_value(content)
            if inner is not None:
                figure.extend(self.parse_nested(inner.strip("\n")))
            else:
                figure.extend(self.parse_nested("#" + content))
        caption = named.get("caption")
        if caption:
            source = _content_value(caption) or _string_value(caption) or caption
            figure.child(Node(kinds.CAPTION, children=self.inlines(source.strip())))
        return figure

    def _function_table(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        columns_arg = named.get("columns", "1").strip()
        if columns_arg.isdigit():
            columns = max(1, int(columns_arg))
        elif columns_arg.startswith("("):
            columns = max(1, len(_split_args(columns_arg[1:-1])[0]))
        else:
            columns = 1

        builder = TableBuilder()
        pending: list[list[Node]] = []
        for value in positional:
            header = _read_call("#" + value, 0) if value.startswith("table.header") else None
            if header is not None:
                cells = [self._cell(cell) for cell in _split_args(header.args)[0]]
                for start in range(0, len(cells), columns):
                    builder.add_row(cells[start : start + columns], is_header=True)
                continue
            if value.startswith("table."):
                continue
            pending.append(self._cell(value))
            if len(pending) == columns:
                builder.add_row(pending)
                pending = []
        if pending:
            builder.add_row(pending + [[] for _ in range(columns - len(pending))])
        return builder.get_table()

    def _cell(self, value: str) -> list[Node]:
        content = _content_value(value)
        if content is None:
            content = _string_value(value) or value
        return self.inlines(content.strip())

    def _function_raw(self, positional: list[str], named: dict[str, str], bodies: list[str], text: str) -> Node:
        source = _string_value(positional[0] if positional else None)
        if source is None:
            return self._raw_function("raw", text)
        return self.code_block(source, _string_value(named.get("lang")))

    def _consume_label(self) -> ConsumeResult:
        self.cursor.advance()
        return None

    def _consume_blockquote(self) -> ConsumeResult:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current().lstrip()
            if not (line.startswith("> ") or line.rstrip() == ">"):
                break
            lines.append(line[2:] if line.startswith("> ") else "")
            cursor.advance()
        return Node(kinds.BLOCKQUOTE, children=self.parse_nested("\n".join(lines)))

    def _consume_term_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            m = _TERM_RE.match(cursor.current())
            if m is None:
                if not cursor.current().strip() and _TERM_RE.match(cursor.peek_ahead()):
                    cursor.advance()
                    continue
                break
            cursor.advance()
            lines = [m.group(2)]
            while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.current()):
                lines.append(cursor.current())
                cursor.advance()
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(m.group(1).strip())))
            definition_list.child(Node(kinds.DEFINITION_DESC).child(self.paragraph(lines)))
        return definition_list

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        indents: list[int] = []
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            m = _LIST_RE.match(cursor.current())
            if m is None:
                if not cursor.current().strip() and _LIST_RE.match(cursor.peek_ahead()):
                    cursor.advance()
                    continue
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
                if not line.strip() or _LIST_RE.match(line) or len(line) - len(line.lstrip()) <= indent:
                    break
                lines.append(line.strip())
                cursor.advance()

            number = m.group(3)
            list_item = builder.add_item(
                len(indents),
                m.group(2) != "-",
                self.inlines("\n".join(lines)),
                start=int(number) if number else None,
            )
            spans.append((list_item, len(indents), first_line))
        self.span_list_items(spans)
        return builder.lists

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        return Node(kinds.PARAGRAPH, children=self.inlines("\n".join(line.strip() for line in lines)))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a Typst document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Typst source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return TypstParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: TypstOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return TypstParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="typst",
    extensions=[".typ"],
    mime_types=["text/x-typst"],
    parser_class=TypstParser,
    parser_options_class=TypstOptions,
    description="Parse Typst markup documents",
    priority=10,
)
