#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/texinfo.py
"""Texinfo to AST converter.

Texinfo is line oriented at the block level: a line starting with
``@command`` (not followed by ``{``) is either a line command such as
``@chapter`` or ``@settitle``, or opens an environment closed by
``@end command``. Everything else is paragraph text whose inline
``@cmd{...}`` commands are read with a character cursor so that braces
nest and ``@{``/``@}`` escapes are honored.

"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.ast.utils import extract_text
from docweave.constants import TEXINFO_HEADING_LEVELS, TEXINFO_SKIPPED_ENVIRONMENTS, TEXINFO_SKIPPED_LINE_COMMANDS
from docweave.converter_metadata import ConverterMetadata
from docweave.options.texinfo import TexinfoOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._cursor import CharCursor
from docweave.parsers._inline import InlineScanner, MatchResult, code_node, image_node, link_node
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_COMMAND_LINE_RE = re.compile(r"^[ \t]*@([a-zA-Z]+)(?:[ \t]+(.*?))?[ \t]*$")
_END_RE = re.compile(r"^[ \t]*@end[ \t]+([a-zA-Z]+)[ \t]*$")

_CODE_ENVIRONMENTS = {
    "example": None,
    "smallexample": None,
    "lisp": "lisp",
    "smalllisp": "lisp",
    "display": None,
    "smalldisplay": None,
    "format": None,
    "smallformat": None,
}
_LIST_ENVIRONMENTS = ("itemize", "enumerate")
_TABLE_ENVIRONMENTS = ("table", "ftable", "vtable")
_QUOTE_ENVIRONMENTS = ("quotation", "smallquotation", "indentedblock", "smallindentedblock")
_TRANSPARENT_ENVIRONMENTS = ("group", "raggedright")
_ALIGN_ENVIRONMENTS = {"flushleft": "left", "flushright": "right"}
_UNNUMBERED_HEADINGS = ("majorheading", "chapheading", "heading", "subheading", "subsubheading")
_KNOWN_ENVIRONMENTS = frozenset(
    (*_CODE_ENVIRONMENTS, *_LIST_ENVIRONMENTS, *_TABLE_ENVIRONMENTS, *_QUOTE_ENVIRONMENTS)
    + _TRANSPARENT_ENVIRONMENTS
    + tuple(_ALIGN_ENVIRONMENTS)
    + TEXINFO_SKIPPED_ENVIRONMENTS
    + ("verbatim", "multitable", "cartouche")
)
_METADATA_COMMANDS = {"settitle": "title", "title": "title", "subtitle": "subtitle", "author": "author"}

_EMPHASIS_COMMANDS = ("emph", "i", "slanted", "var", "dfn", "cite", "sansserif")
_STRONG_COMMANDS = ("strong", "b")
_CODE_COMMANDS = ("code", "samp", "kbd", "key", "file", "command", "option", "env", "t", "indicateurl", "verb")
_TEXT_COMMANDS = ("w", "r", "asis", "titlefont", "headitemfont", "hbox")
_SYMBOLS = {
    "dots": "\u2026",
    "enddots": "...",
    "copyright": "\u00a9",
    "registeredsymbol": "\u00ae",
    "bullet": "\u2022",
    "minus": "\u2212",
    "result": "\u21d2",
    "expansion": "\u21a6",
    "equiv": "\u2261",
    "error": "error\u2192",
    "point": "\u22c6",
    "tie": "\u00a0",
    "TeX": "TeX",
    "LaTeX": "LaTeX",
    "euro": "\u20ac",
    "pounds": "\u00a3",
    "textdegree": "\u00b0",
    "arrow": "\u2192",
}
_ESCAPES = {"@": "@", "{": "{", "}": "}", ".": ".", "!": "!", "?": "?", ",": ",", ":": "", "-": "", "/": "", "|": ""}
_ACCENTS = {"'": "\u0301", "`": "\u0300", '"': "\u0308", "^": "\u0302", "~": "\u0303", "=": "\u0304"}


def _split_arguments(argument: str) -> list[str]:
    """Split a brace argument at top-level commas."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    i = 0
    while i < len(argument):
        c = argument[i]
        if c == "@" and i + 1 < len(argument):
            current.append(argument[i : i + 2])
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        elif c == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            i += 1
            continue
        current.append(c)
        i += 1
    parts.append("".join(current).strip())
    return parts


def _unescape(text: str) -> str:
    return text.replace("@@", "\x00").replace("@{", "{").replace("@}", "}").replace("\x00", "@")


class TexinfoInlineScanner(InlineScanner):
    """Inline ``@cmd{...}`` commands, escapes and accents."""

    parser: TexinfoParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c != "@" or i + 1 >= len(chars):
            return None
        cursor = CharCursor(self.text)
        cursor.advance(i + 1)
        following = cursor.current()
        if following == "*":
            return Node(kinds.LINE_BREAK), i + 2
        if following in _ESCAPES:
            return text_node(_ESCAPES[following]), i + 2
        if following in " \t\n":
            return text_node(" "), i + 2
        if following in _ACCENTS:
            return self._accent(cursor, following)
        if not following.isalpha():
            return None

        start = cursor.pos
        while cursor.current().isalpha():
            cursor.advance()
        name = self.text[start : cursor.pos]
        if cursor.current() != "{":
            return None
        argument = self._read_braced(cursor)
        if argument is None:
            return None
        return self._command(name, argument), cursor.pos

    @staticmethod
    def _read_braced(cursor: CharCursor) -> Optional[str]:
        """Read a balanced ``{...}`` argument; the cursor ends past the closing brace."""
        cursor.advance()
        depth = 1
        parts: list[str] = []
        while not cursor.is_eof():
            c = cursor.current()
            if c == "@" and cursor.peek() in "{}@":
                parts.append(c + cursor.peek())
                cursor.advance(2)
                continue
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    cursor.advance()
                    return "".join(parts)
            parts.append(c)
            cursor.advance()
        return None

    def _accent(self, cursor: CharCursor, accent: str) -> MatchResult:
        cursor.advance()
        if cursor.current() == "{":
            base = self._read_braced(cursor)
            if base is None:
                return None
        elif cursor.current().isalpha():
            base = cursor.current()
            cursor.advance()
        else:
            return None
        return text_node(unicodedata.normalize("NFC", base + _ACCENTS[accent])), cursor.pos

    def _command(self, name: str, argument: str) -> Node:
        if name in _EMPHASIS_COMMANDS:
            return Node(kinds.EMPHASIS, children=self.scan(argument))
        if name in _STRONG_COMMANDS:
            return Node(kinds.STRONG, children=self.scan(argument))
        if name in _CODE_COMMANDS:
            if name == "verb" and len(argument) >= 2:
                return code_node(argument[1:-1])
            return code_node(extract_text(self.scan(argument)))
        if name in _SYMBOLS and not argument:
            return text_node(_SYMBOLS[name])
        if name in _TEXT_COMMANDS:
            return Node(kinds.SPAN, children=self.scan(argument))
        if name in ("uref", "url"):
            parts = _split_arguments(argument)
            label = parts[2] if len(parts) > 2 and parts[2] else (parts[1] if len(parts) > 1 and parts[1] else "")
            url = _unescape(parts[0])
            return link_node(url, self.scan(label) if label else [text_node(url)])
        if name == "email":
            parts = _split_arguments(argument)
            address = _unescape(parts[0])
            label = parts[1] if len(parts) > 1 and parts[1] else ""
            return link_node(f"mailto:{address}", self.scan(label) if label else [text_node(address)])
        if name in ("xref", "pxref", "ref"):
            parts = _split_arguments(argument)
            node_name = parts[0]
            label = parts[2] if len(parts) > 2 and parts[2] else node_name
            return link_node(f"#{node_name}", self.scan(label))
        if name in ("acronym", "abbr"):
            parts = _split_arguments(argument)
            span = Node(kinds.SPAN, children=self.scan(parts[0])).prop(f"texinfo:{name}", True)
            if len(parts) > 1 and parts[1]:
                span.prop(props.TITLE, _unescape(parts[1]))
            return span
        if name == "sc":
            return Node(kinds.SMALL_CAPS, children=self.scan(argument))
        if name == "sub":
            return Node(kinds.SUBSCRIPT, children=self.scan(argument))
        if name == "sup":
            return Node(kinds.SUPERSCRIPT, children=self.scan(argument))
        if name == "math":
            return Node(kinds.MATH_INLINE).prop(props.MATH_SOURCE, _unescape(argument))
        if name == "footnote":
            return Node(kinds.FOOTNOTE_DEF).child(Node(kinds.PARAGRAPH, children=self.scan(argument.strip())))
        if name == "image":
            parts = _split_arguments(argument)
            filename = _unescape(parts[0])
            if len(parts) > 4 and parts[4]:
                filename = f"{filename}.{parts[4].lstrip('.')}"
            alt = parts[3] if len(parts) > 3 and parts[3] else None
            return image_node(filename, _unescape(alt) if alt else None)
        if name == "value":
            value = self.parser.variables.get(argument.strip())
            if value is not None:
                return text_node(value)
            self.parser.warnings.minor(
                WarningKind.SIMPLIFIED,
                f"Undefined flag '{argument.strip()}'",
                detail=f"texinfo:value:{argument.strip()}",
            )
            return text_node(argument)

        self.parser.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            f"Unsupported Texinfo command '@{name}'",
            detail=f"texinfo:{name}",
        )
        return Node(kinds.SPAN, children=self.scan(argument))


class TexinfoParser(MarkupParser):
    """Convert Texinfo source to the document IR.

    Parameters
    ----------
    options : TexinfoOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
        >>> result = TexinfoParser().parse("@settitle Manual\\n@chapter Intro\\nSee @code{main}.")
        >>> result.value.metadata["title"]
        'Manual'

    """

    format_name = "texinfo"
    options_class = TexinfoOptions
    options: TexinfoOptions

    def __init__(self, options: Optional[TexinfoOptions] = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self.variables: dict[str, str] = {}
        self._pending_node: Optional[str] = None

    def create_inline_scanner(self) -> TexinfoInlineScanner:
        return TexinfoInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("environment", cls._at_environment, cls._consume_environment),
            recognizer("line_command", cls._at_line_command, cls._consume_line_command),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _command(self, line: Optional[str] = None) -> Optional[tuple[str, str]]:
        m = _COMMAND_LINE_RE.match(self.cursor.current() if line is None else line)
        if m is None:
            return None
        return m.group(1), m.group(2) or ""

    def _at_comment(self) -> bool:
        command = self._command()
        return command is not None and command[0] in ("c", "comment")

    def _at_heading(self) -> bool:
        command = self._command()
        return command is not None and command[0] in TEXINFO_HEADING_LEVELS

    def _at_environment(self) -> bool:
        command = self._command()
        if command is None:
            return False
        name = command[0]
        return name in _KNOWN_ENVIRONMENTS or (name not in _METADATA_COMMANDS and self._has_end(name))

    def _has_end(self, name: str) -> bool:
        cursor = self.cursor
        for index in range(cursor.position + 1, len(cursor)):
            end = _END_RE.match(cursor.line(index))
            if end and end.group(1) == name:
                return True
        return False

    def _at_line_command(self) -> bool:
        return self._command() is not None

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    def _interrupts_paragraph(self, line: str) -> bool:
        return self._command(line) is not None

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_comment(self) -> ConsumeResult:
        self.cursor.advance()
        return None

    def _consume_heading(self) -> ConsumeResult:
        command = self._command()
        assert command is not None
        self.cursor.advance()
        name, text = command
        node = self.heading(TEXINFO_HEADING_LEVELS[name], text or name.capitalize())
        if self._pending_node:
            node.prop(props.ID, self._pending_node)
            self._pending_node = None
        if name.startswith("unnumbered") or name in _UNNUMBERED_HEADINGS:
            node.prop("texinfo:numbered", False)
        return node

    def _collect_environment(self, name: str) -> list[str]:
        """Lines up to the matching ``@end name``; nested same-name environments are balanced."""
        cursor = self.cursor
        lines: list[str] = []
        depth = 1
        while not cursor.is_eof():
            line = cursor.current()
            end = _END_RE.match(line)
            if end and end.group(1) == name:
                depth -= 1
                if depth == 0:
                    cursor.advance()
                    return lines
            else:
                command = self._command(line)
                if command is not None and command[0] == name:
                    depth += 1
            lines.append(line)
            cursor.advance()
        self.feature_lost(f"Unterminated @{name} environment", detail=f"texinfo:unterminated:{name}")
        return lines

    def _consume_environment(self) -> ConsumeResult:
        command = self._command()
        assert command is not None
        name, argument = command
        self.cursor.advance()
        lines = self._collect_environment(name)

        if name == "titlepage":
            for line in lines:
                inner = self._command(line)
                if inner is not None and inner[0] in _METADATA_COMMANDS:
                    self._record_metadata(*inner)
            return None
        if name in TEXINFO_SKIPPED_ENVIRONMENTS:
            return None
        if name == "verbatim":
            return self.code_block("\n".join(lines))
        if name in _CODE_ENVIRONMENTS:
            content = "\n".join(line for line in lines if not re.match(r"^[ \t]*@(?:c|comment)\b", line))
            return self.code_block(_unescape(content), _CODE_ENVIRONMENTS[name])
        if name in _LIST_ENVIRONMENTS:
            return self._list(name, argument, lines)
        if name in _TABLE_ENVIRONMENTS:
            return self._definition_table(argument, lines)
        if name == "multitable":
            return self._multitable(lines)
        if name in _QUOTE_ENVIRONMENTS:
            quote = Node(kinds.BLOCKQUOTE, children=self.parse_nested("\n".join(lines)))
            if argument:
                quote.prop(props.TITLE, argument)
            return quote
        if name in _TRANSPARENT_ENVIRONMENTS:
            return self.parse_nested("\n".join(lines))
        if name in _ALIGN_ENVIRONMENTS:
            div = Node(kinds.DIV, children=self.parse_nested("\n".join(lines)))
            return div.prop(props.STYLE_ALIGN, _ALIGN_ENVIRONMENTS[name])
        if name == "cartouche":
            return Node(kinds.DIV, children=self.parse_nested("\n".join(lines))).prop(props.CLASSES, "cartouche")

        div = self.unsupported_block(name, "\n".join(lines), parse_body=True)
        if argument:
            div.prop("texinfo:argument", argument)
        return div

    def _split_items(self, lines: list[str], markers: tuple[str, ...]) -> list[tuple[str, str, list[str]]]:
        """Split an environment body at depth-0 item lines into ``(marker, text, body)``."""
        items: list[tuple[str, str, list[str]]] = []
        depth = 0
        for line in lines:
            command = self._command(line)
            if depth == 0 and command is not None and command[0] in markers:
                items.append((command[0], command[1], []))
                continue
            if command is not None and (command[0] in _KNOWN_ENVIRONMENTS):
                depth += 1
            elif _END_RE.match(line):
                depth = max(0, depth - 1)
            if items:
                items[-1][2].append(line)
        return items

    def _list(self, name: str, argument: str, lines: list[str]) -> ConsumeResult:
        builder = ListBuilder()
        ordered = name == "enumerate"
        start: Optional[int] = None
        style: Optional[str] = None
        if ordered and argument.strip().isdigit():
            start = int(argument.strip())
        elif ordered and len(argument.strip()) == 1 and argument.strip().isalpha():
            style = "lower-alpha" if argument.strip().islower() else "upper-alpha"
        for _marker, text, body in self._split_items(lines, ("item",)):
            source = "\n".join([text, *body]) if text else "\n".join(body)
            builder.add_item(1, ordered, self.parse_nested(source), start=start, wrap_paragraph=False)
        lists = builder.lists
        if not lists:
            return Node(kinds.LIST).prop(props.ORDERED, ordered)
        if style:
            lists[0].prop(props.LIST_STYLE, style)
        return lists

    def _definition_table(self, argument: str, lines: list[str]) -> ConsumeResult:
        formatter = argument.strip().lstrip("@")
        definition_list = Node(kinds.DEFINITION_LIST)
        pending_desc: list[str] = []

        def flush() -> None:
            last = definition_list.children[-1] if definition_list.children else None
            if pending_desc or (last is not None and last.kind == kinds.DEFINITION_TERM):
                definition_list.child(Node(kinds.DEFINITION_DESC, children=self.parse_nested("\n".join(pending_desc))))
                pending_desc.clear()

        for marker, text, body in self._split_items(lines, ("item", "itemx")):
            if marker == "item":
                flush()
            term_source = f"@{formatter}{{{text}}}" if formatter and formatter not in ("asis", "") else text
            definition_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(term_source)))
            pending_desc.extend(body)
        flush()
        return definition_list

    def _multitable(self, lines: list[str]) -> ConsumeResult:
        builder = TableBuilder()
        rows: list[tuple[bool, str]] = []
        for marker, text, body in self._split_items(lines, ("item", "headitem")):
            rows.append((marker == "headitem", "\n".join([text, *body])))
        for is_header, row in rows:
            cells = [self.inlines(cell.strip()) for cell in re.split(r"@tab\b", row)]
            builder.add_row(cells, is_header=is_header)
        return builder.get_table()

    def _record_metadata(self, name: str, value: str) -> None:
        key = _METADATA_COMMANDS[name]
        text = extract_text(self.inlines(value)).strip()
        if not text:
            return
        if key == "author":
            existing = self.metadata.get("author")
            if existing is None:
                self.set_metadata("author", text)
            elif isinstance(existing, list):
                self.set_metadata("author", existing + [text])
            elif existing != text:
                self.set_metadata("author", [existing, text])
        elif key not in self.metadata:
            self.set_metadata(key, text)

    def _consume_line_command(self) -> ConsumeResult:
        command = self._command()
        assert command is not None
        name, argument = command
        self.cursor.advance()

        if name in _METADATA_COMMANDS:
            self._record_metadata(name, argument)
            return None
        if name == "node":
            self._pending_node = argument.split(",")[0].strip() or None
            return None
        if name == "bye":
            self.cursor.position = len(self.cursor)
            return None
        if name == "set":
            key, _sep, value = argument.partition(" ")
            self.variables[key] = value.strip()
            return None
        if name == "clear":
            self.variables.pop(argument.strip(), None)
            return None
        if name == "documentlanguage" and argument:
            self.set_metadata("lang", argument.strip())
            return None
        if name in TEXINFO_SKIPPED_LINE_COMMANDS:
            return None
        if name == "center":
            return Node(kinds.PARAGRAPH, children=self.inlines(argument)).prop(props.STYLE_ALIGN, "center")
        if name == "exdent":
            return Node(kinds.PARAGRAPH, children=self.inlines(argument))
        if name in ("item", "itemx", "headitem", "tab", "end"):
            self.warnings.minor(
                WarningKind.SIMPLIFIED,
                f"Stray @{name} outside its environment",
                detail=f"texinfo:stray:{name}",
            )
            return Node(kinds.PARAGRAPH, children=self.inlines(argument)) if argument else None

        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            f"Unsupported Texinfo command '@{name}'",
            detail=f"texinfo:{name}",
        )
        return Node(kinds.PARAGRAPH, children=self.inlines(argument)) if argument else None

    def _consume_paragraph(self) -> ConsumeResult:
        lines = self.collect_paragraph_lines(self._interrupts_paragraph)
        return Node(kinds.PARAGRAPH, children=self.inlines("\n".join(line.strip() for line in lines)))


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a Texinfo document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Texinfo source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return TexinfoParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: TexinfoOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return TexinfoParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="texinfo",
    extensions=[".texi", ".texinfo", ".txi"],
    mime_types=["application/x-texinfo"],
    parser_class=TexinfoParser,
    parser_options_class=TexinfoOptions,
    description="Parse GNU Texinfo documents",
    priority=10,
)
