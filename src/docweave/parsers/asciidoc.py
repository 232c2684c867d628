#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/asciidoc.py
"""AsciiDoc to AST converter.

This module provides conversion from AsciiDoc documents to the document IR
using a hand-written, line-oriented parser. A first pass collects document
attributes (``:name: value``) so that ``{name}`` references resolve wherever
the definition appears; the main pass then offers each block to the
recognizers in order.

Block attribute lines (``[source,python]``, ``[NOTE]``), anchors
(``[[id]]``) and block titles (``.Title``) produce no node of their own.
They are held as pending attributes and consumed by the next block.

"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.constants import ASCIIDOC_ADMONITIONS, ASCIIDOC_METADATA_ATTRIBUTES
from docweave.converter_metadata import ConverterMetadata
from docweave.options.asciidoc import AsciiDocOptions
from docweave.parsers._block import ConsumeResult, Recognizer, apply_pending, recognizer
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

_ATTRIBUTE_RE = re.compile(r"^:(!?)([A-Za-z0-9_][\w-]*)(!?):(?:[ \t]+(.*?))?[ \t]*$")
_ATTRIBUTE_REF_RE = re.compile(r"\{([A-Za-z0-9_][\w-]*)\}")
_HEADING_RE = re.compile(r"^(={1,6})[ \t]+(\S.*?)(?:[ \t]+=+)?[ \t]*$")
_ANCHOR_RE = re.compile(r"^\[\[([A-Za-z_:][\w:.-]*)(?:,[ \t]*(.*?))?\]\]$")
_BLOCK_ATTR_RE = re.compile(r"^\[(?!\[)(.*)\]$")
_BLOCK_TITLE_RE = re.compile(r"^\.([^.\s].*)$")
_DELIMITER_RE = re.compile(r"^(?:-{4,}|={4,}|\*{4,}|_{4,}|\+{4,}|\.{4,}|--)$")
_VERBATIM_DELIMITER_RE = re.compile(r"^(?:-{4,}|\.{4,}|\+{4,}|/{4,})$")
_COMMENT_BLOCK_RE = re.compile(r"^/{4,}$")
_TABLE_DELIMITER = "|==="
_UNORDERED_RE = re.compile(r"^[ \t]*(\*{1,5}|-)[ \t]+(.*)$")
_ORDERED_RE = re.compile(r"^[ \t]*(\.{1,5})[ \t]+(.*)$")
_NUMBERED_RE = re.compile(r"^[ \t]*(\d+)\.[ \t]+(.*)$")
_CHECKBOX_RE = re.compile(r"^\[([ xX*])\][ \t]+(.*)$")
_DLIST_RE = re.compile(r"^(?!image::)(\S.*?)(:{2,4}|;;)(?:[ \t]+(.*))?$")
_RULE_RE = re.compile(r"^(?:'{3,}|---|\*\*\*)$")
_PAGE_BREAK = "<<<"
_BLOCK_IMAGE_RE = re.compile(r"^image::([^\[\s]+)\[(.*)\]$")
_BLOCK_MACRO_RE = re.compile(r"^([a-z][\w-]*)::(\S*?)\[(.*)\]$")
_PREPROCESSOR_RE = re.compile(r"^(ifdef|ifndef|ifeval|endif)::")
_INLINE_ADMONITION_RE = re.compile(r"^(NOTE|TIP|WARNING|IMPORTANT|CAUTION):[ \t]+(.*)$", re.DOTALL)
_AUTHOR_RE = re.compile(r"^([A-Za-z][\w.'-]*(?:[ \t]+[A-Za-z][\w.'-]*){0,3})(?:[ \t]+<([^<>\s]+@[^<>\s]+)>)?[ \t]*$")
_REVISION_RE = re.compile(r"^(?:v(\d[\w.-]*))?(?:,?[ \t]*([^:]+?))?(?::[ \t]*(.*))?$")
_CELL_SEPARATOR_RE = re.compile(r"(?:(?<![^\s])(\d+)\+)?(?<!\\)\|")
_SHORTHAND_RE = re.compile(r"([#.%])([^#.%]+)")

_XREF_RE = re.compile(r"<<([\w:./#-]+)(?:,[ \t]*([^>]*?))?>>")
_INLINE_IMAGE_RE = re.compile(r"image::?([^\s\[]+)\[([^\]]*)\]")
_LINK_MACRO_RE = re.compile(r"(link|mailto|xref):([^\s\[]+)\[([^\]]*)\]")
_URL_WITH_TEXT_RE = re.compile(r"(https?://[^\s\[<>]+)\[([^\]]*)\]")
_FOOTNOTE_RE = re.compile(r"footnote:([\w-]*)\[([^\]]*)\]")
_ROLE_RE = re.compile(r"\[\.([\w-]+(?:\.[\w-]+)*)\](?=#)")
_INLINE_ANCHOR_RE = re.compile(r"\[\[([A-Za-z_:][\w:.-]*)(?:,[^\]]*)?\]\]")

_DELIMITER_KINDS = {
    "-": "listing",
    ".": "literal",
    "=": "example",
    "*": "sidebar",
    "_": "quote",
    "+": "passthrough",
}
_CODE_STYLES = ("source", "listing", "literal")
_MATH_STYLES = ("stem", "latexmath", "asciimath")
_LIST_STYLES = ("arabic", "decimal", "loweralpha", "upperalpha", "lowerroman", "upperroman", "lowergreek")
_KNOWN_STYLES = frozenset(
    _CODE_STYLES
    + _MATH_STYLES
    + _LIST_STYLES
    + ("quote", "verse", "example", "sidebar", "pass", "normal", "discrete", "float", "horizontal", "qanda")
)
_ESCAPABLE = frozenset("*_`#+^~{[<\\")
_BUILTIN_ATTRIBUTES = {
    "empty": "",
    "sp": " ",
    "nbsp": "\u00a0",
    "zwsp": "\u200b",
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "startsb": "[",
    "endsb": "]",
    "vbar": "|",
    "caret": "^",
    "tilde": "~",
    "plus": "+",
    "apos": "'",
    "quot": '"',
}


def _split_attrlist(content: str) -> list[str]:
    """Split an attribute list on commas outside double quotes."""
    parts: list[str] = []
    buf: list[str] = []
    quoted = False
    for ch in content:
        if ch == '"':
            quoted = not quoted
            buf.append(ch)
        elif ch == "," and not quoted:
            parts.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    parts.append("".join(buf).strip())
    return parts


def _parse_attrlist(content: str) -> tuple[list[str], dict[str, str]]:
    """Parse ``a,b,key=value`` into positional and named attributes."""
    positional: list[str] = []
    named: dict[str, str] = {}
    if not content.strip():
        return positional, named
    for part in _split_attrlist(content):
        key, sep, value = part.partition("=")
        if sep and re.fullmatch(r"[A-Za-z][\w-]*", key.strip()):
            named[key.strip()] = value.strip().strip("\"'")
        else:
            positional.append(part.strip('"'))
    return positional, named


def _column_count(spec: Optional[str]) -> int:
    """Number of columns declared by a ``cols`` attribute, or 0."""
    if not spec:
        return 0
    spec = spec.strip()
    if spec.isdigit():
        return int(spec)
    count = 0
    for part in spec.split(","):
        multiplier = re.match(r"\s*(\d+)\*", part)
        count += int(multiplier.group(1)) if multiplier else 1
    return count


def _image_from_macro(target: str, attrlist: str) -> Node:
    """Image node for ``image:target[alt,width,height]``."""
    positional, named = _parse_attrlist(attrlist)
    alt = named.get("alt") or (positional[0] if positional else None)
    image = image_node(target, alt or None, named.get("title"))
    width = named.get("width") or (positional[1] if len(positional) > 1 else None)
    height = named.get("height") or (positional[2] if len(positional) > 2 else None)
    if width:
        image.prop("asciidoc:width", width)
    if height:
        image.prop("asciidoc:height", height)
    return image


def _match_list_item(line: str) -> Optional[tuple[int, bool, Optional[int], str]]:
    """Return ``(level, ordered, start, text)`` for a list item line."""
    m = _UNORDERED_RE.match(line)
    if m:
        marker = m.group(1)
        return (1 if marker == "-" else len(marker)), False, None, m.group(2)
    m = _ORDERED_RE.match(line)
    if m:
        return len(m.group(1)), True, None, m.group(2)
    m = _NUMBERED_RE.match(line)
    if m:
        return 1, True, int(m.group(1)), m.group(2)
    return None


def _with_block_attributes(
    consume: Callable[[AsciiDocParser], ConsumeResult],
) -> Callable[[AsciiDocParser], ConsumeResult]:
    """Wrap a block consumer so pending id, title and roles land on its first node."""

    def consume_with_attributes(parser: AsciiDocParser) -> ConsumeResult:
        result = consume(parser)
        attrs, parser._block_attrs = parser._block_attrs, {}
        if not result:
            return result
        first = result[0] if isinstance(result, list) else result
        roles = attrs.get("roles")
        if roles:
            existing = first.props.get_str(props.CLASSES)
            joined = " ".join(roles)
            first.prop(props.CLASSES, f"{existing} {joined}" if existing else joined)
        apply_pending(first, {props.ID: attrs.get("id"), props.TITLE: attrs.get("title")})
        return result

    return consume_with_attributes


class AsciiDocInlineScanner(InlineScanner):
    """Inline scanner for AsciiDoc quoted text, macros and references."""

    parser: AsciiDocParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\\":
            if i + 1 < len(chars) and chars[i + 1] in _ESCAPABLE:
                return text_node(chars[i + 1]), i + 2
            return None
        if c == "\n":
            return Node(kinds.SOFT_BREAK), i + 1
        if c == " ":
            return self._hard_break(chars, i)
        if c == "{":
            return self._attribute_reference(i)
        if c == "*":
            return self._quoted(chars, i, "*", kinds.STRONG)
        if c == "_":
            return self._quoted(chars, i, "_", kinds.EMPHASIS)
        if c == "`":
            return self._monospace(chars, i)
        if c == "+":
            return self._passthrough(chars, i)
        if c == "#":
            return self._mark(chars, i, "highlight")
        if c == "^":
            return self._script(chars, i, "^", kinds.SUPERSCRIPT)
        if c == "~":
            return self._script(chars, i, "~", kinds.SUBSCRIPT)
        if c == "[":
            return self._bracketed(chars, i)
        if c == "<":
            return self._cross_reference(i)
        if c in "ilmxfh" and not (i > 0 and is_word_char(chars[i - 1])):
            return self._macro(chars, i)
        return None

    @staticmethod
    def _hard_break(chars: list[str], i: int) -> MatchResult:
        n = len(chars)
        if i + 1 < n and chars[i + 1] == "+" and (i + 2 == n or chars[i + 2] == "\n"):
            end = i + 3 if i + 2 < n else i + 2
            return Node(kinds.LINE_BREAK), end
        return None

    def _attribute_reference(self, i: int) -> MatchResult:
        if not self.parser.options.resolve_attribute_refs:
            return None
        m = self.match_pattern(_ATTRIBUTE_REF_RE, i)
        if m is None:
            return None
        value = self.parser.attribute_value(m.group(1))
        if value is None:
            return None
        return ([text_node(value)] if value else []), m.end()

    def _quoted(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        unconstrained = self.delimited(chars, i, marker * 2, kind)
        if unconstrained is not None:
            return unconstrained
        if i > 0 and is_word_char(chars[i - 1]):
            return None
        return self.delimited(chars, i, marker, kind, bounded=True, no_word_after=True)

    def _monospace(self, chars: list[str], i: int) -> MatchResult:
        hit = self.delimited(chars, i, "``", kinds.CODE, literal=True)
        if hit is None:
            if i > 0 and is_word_char(chars[i - 1]):
                return None
            hit = self.delimited(chars, i, "`", kinds.CODE, bounded=True, no_word_after=True, literal=True)
        if hit is None:
            return None
        node, end = hit
        assert isinstance(node, Node)
        content = node.props.get_str(props.CONTENT, "") or ""
        if len(content) > 1 and content.startswith("+") and content.endswith("+"):
            content = content[1:-1]
        return code_node(content), end

    def _passthrough(self, chars: list[str], i: int) -> MatchResult:
        for marker in ("+++", "++"):
            if "".join(chars[i : i + len(marker)]) == marker:
                close = self.find_closing(chars, i + len(marker), marker)
                if close > i + len(marker):
                    return text_node("".join(chars[i + len(marker) : close])), close + len(marker)
        if i > 0 and is_word_char(chars[i - 1]):
            return None
        hit = self.delimited(chars, i, "+", kinds.TEXT, bounded=True, no_word_after=True, literal=True)
        if hit is None:
            return None
        node, end = hit
        assert isinstance(node, Node)
        return text_node(node.props.get_str(props.CONTENT, "") or ""), end

    def _mark(self, chars: list[str], i: int, classes: str) -> MatchResult:
        hit = self.delimited(chars, i, "##", kinds.SPAN)
        if hit is None:
            if i > 0 and is_word_char(chars[i - 1]):
                return None
            hit = self.delimited(chars, i, "#", kinds.SPAN, bounded=True, no_word_after=True)
        if hit is None:
            return None
        node, end = hit
        assert isinstance(node, Node)
        return node.prop(props.CLASSES, classes), end

    def _script(self, chars: list[str], i: int, marker: str, kind: str) -> MatchResult:
        close = self.find_closing(chars, i + 1, marker)
        if close <= i + 1:
            return None
        if any(ch.isspace() for ch in chars[i + 1 : close]):
            return None
        return self.wrap(kind, chars, i + 1, close), close + 1

    def _bracketed(self, chars: list[str], i: int) -> MatchResult:
        anchor = self.match_pattern(_INLINE_ANCHOR_RE, i)
        if anchor is not None:
            return Node(kinds.SPAN).prop(props.ID, anchor.group(1)), anchor.end()
        role = self.match_pattern(_ROLE_RE, i)
        if role is not None:
            hit = self._mark(chars, role.end(), role.group(1).replace(".", " "))
            if hit is not None:
                return hit
        return None

    def _cross_reference(self, i: int) -> MatchResult:
        m = self.match_pattern(_XREF_RE, i)
        if m is None:
            return None
        target, label = m.group(1), m.group(2)
        url = target if "#" in target else f"#{target}"
        children = self.scan(label) if label else [text_node(target)]
        return link_node(url, children), m.end()

    def _macro(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "i":
            m = self.match_pattern(_INLINE_IMAGE_RE, i)
            if m is not None:
                return _image_from_macro(m.group(1), m.group(2)), m.end()
        elif c in "lmx":
            m = self.match_pattern(_LINK_MACRO_RE, i)
            if m is not None:
                return self._link_macro(m.group(1), m.group(2), m.group(3)), m.end()
        elif c == "f":
            m = self.match_pattern(_FOOTNOTE_RE, i)
            if m is not None:
                footnote = Node(kinds.FOOTNOTE_DEF, children=self.scan(m.group(2).strip()))
                if m.group(1):
                    footnote.prop(props.LABEL, m.group(1))
                return footnote, m.end()
        elif c == "h":
            m = self.match_pattern(_URL_WITH_TEXT_RE, i)
            if m is not None:
                url, label = m.group(1), m.group(2).rstrip("^")
                return link_node(url, self.scan(label) if label else [text_node(url)]), m.end()
            return self.match_bare_url(chars, i)
        return None

    def _link_macro(self, macro: str, target: str, label: str) -> Node:
        label = label.rstrip("^")
        if macro == "mailto":
            url = f"mailto:{target}"
        elif macro == "xref":
            url = target if "#" in target else f"#{target}"
        else:
            url = target
        return link_node(url, self.scan(label) if label else [text_node(target)])


class AsciiDocParser(MarkupParser):
    """Convert AsciiDoc to the document IR.

    Parameters
    ----------
    options : AsciiDocOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
    Basic parsing:

        >>> parser = AsciiDocParser()
        >>> result = parser.parse("== Hello ==\\n\\nSome *bold* text.")
        >>> result.value.blocks[0].get("level")
        2

    Resolving attributes defined anywhere in the document:

        >>> result = parse(":product: Widget\\n\\nBuy {product} today.")

    """

    format_name = "asciidoc"
    options_class = AsciiDocOptions
    options: AsciiDocOptions

    def __init__(self, options: AsciiDocOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self.attributes: dict[str, str] = {}
        self._block_attrs: dict[str, Any] = {}
        self._reported_missing: set[str] = set()
        self._header_seen = False

    def create_inline_scanner(self) -> AsciiDocInlineScanner:
        return AsciiDocInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("attribute", cls._at_attribute, cls._consume_attribute),
            recognizer("comment", cls._at_comment, cls._consume_comment),
            recognizer("preprocessor", cls._at_preprocessor, cls._consume_preprocessor),
            recognizer("heading", cls._at_heading, _with_block_attributes(cls._consume_heading)),
            recognizer("anchor", cls._at_anchor, cls._consume_anchor),
            recognizer("block_attributes", cls._at_block_attributes, cls._consume_block_attributes),
            recognizer("block_title", cls._at_block_title, cls._consume_block_title),
            recognizer("delimited_block", cls._at_delimiter, _with_block_attributes(cls._consume_delimited)),
            recognizer("table", cls._at_table, _with_block_attributes(cls._consume_table)),
            recognizer("list", cls._at_list_item, _with_block_attributes(cls._consume_list)),
            recognizer("description_list", cls._at_description, _with_block_attributes(cls._consume_description_list)),
            recognizer("thematic_break", cls._at_rule, _with_block_attributes(cls._consume_rule)),
            recognizer("page_break", cls._at_page_break, _with_block_attributes(cls._consume_page_break)),
            recognizer("block_image", cls._at_block_image, _with_block_attributes(cls._consume_block_image)),
            recognizer("block_macro", cls._at_block_macro, _with_block_attributes(cls._consume_block_macro)),
            recognizer("paragraph", cls._at_paragraph, _with_block_attributes(cls._consume_paragraph)),
        )

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def prepare(self, text: str) -> None:
        """Collect document attributes, skipping verbatim block bodies."""
        verbatim: Optional[str] = None
        for line in self.cursor.lines:
            stripped = line.rstrip()
            if verbatim is not None:
                if stripped == verbatim:
                    verbatim = None
                continue
            if _VERBATIM_DELIMITER_RE.match(stripped):
                verbatim = stripped
                continue
            m = _ATTRIBUTE_RE.match(stripped)
            if m is None:
                continue
            name = m.group(2)
            if m.group(1) or m.group(3):
                self.attributes.pop(name, None)
            else:
                self.attributes[name] = self._substitute_attributes(m.group(4) or "")
        logger.debug("asciidoc: collected %d document attributes", len(self.attributes))

    def _substitute_attributes(self, value: str) -> str:
        return _ATTRIBUTE_REF_RE.sub(lambda ref: self.attributes.get(ref.group(1), ref.group(0)), value)

    def attribute_value(self, name: str) -> Optional[str]:
        """Resolve ``{name}``; None means the reference stays literal."""
        if name in self.attributes:
            return self.attributes[name]
        if name in _BUILTIN_ATTRIBUTES:
            return _BUILTIN_ATTRIBUTES[name]
        policy = self.options.attribute_missing_policy
        if policy == "blank":
            return ""
        if policy == "warn" and name not in self._reported_missing:
            self._reported_missing.add(name)
            self.warnings.minor(
                WarningKind.UNSUPPORTED_PROPERTY,
                f"Reference to undefined attribute '{name}'",
                detail=f"asciidoc:attribute:{name}",
            )
        return None

    def finish(self, blocks: list[Node]) -> list[Node]:
        for name, value in self.attributes.items():
            self.set_metadata(f"asciidoc:{name}", value)
            if name in ASCIIDOC_METADATA_ATTRIBUTES:
                self.set_metadata(name, value)
        if "title" not in self.metadata and "doctitle" in self.attributes:
            self.set_metadata("title", self.attributes["doctitle"])
        return blocks

    def parse_nested(self, text: str) -> list[Node]:
        saved, self._block_attrs = self._block_attrs, {}
        try:
            return super().parse_nested(text)
        finally:
            self._block_attrs = saved

    # ------------------------------------------------------------------
    # Line predicates
    # ------------------------------------------------------------------

    def _at_attribute(self) -> bool:
        return _ATTRIBUTE_RE.match(self.cursor.current().rstrip()) is not None

    def _at_comment(self) -> bool:
        return self.cursor.current().startswith("//")

    def _at_preprocessor(self) -> bool:
        return _PREPROCESSOR_RE.match(self.cursor.current()) is not None

    def _at_heading(self) -> bool:
        return _HEADING_RE.match(self.cursor.current().rstrip()) is not None

    def _at_anchor(self) -> bool:
        return _ANCHOR_RE.match(self.cursor.current().strip()) is not None

    def _at_block_attributes(self) -> bool:
        return _BLOCK_ATTR_RE.match(self.cursor.current().strip()) is not None

    def _at_block_title(self) -> bool:
        return _BLOCK_TITLE_RE.match(self.cursor.current().rstrip()) is not None

    def _at_delimiter(self) -> bool:
        return _DELIMITER_RE.match(self.cursor.current().rstrip()) is not None

    def _at_table(self) -> bool:
        return self.cursor.current().rstrip() == _TABLE_DELIMITER

    def _at_list_item(self) -> bool:
        return _match_list_item(self.cursor.current()) is not None

    def _at_description(self) -> bool:
        return _DLIST_RE.match(self.cursor.current()) is not None

    def _at_rule(self) -> bool:
        return _RULE_RE.match(self.cursor.current().strip()) is not None

    def _at_page_break(self) -> bool:
        return self.cursor.current().strip() == _PAGE_BREAK

    def _at_block_image(self) -> bool:
        return _BLOCK_IMAGE_RE.match(self.cursor.current().strip()) is not None

    def _at_block_macro(self) -> bool:
        return _BLOCK_MACRO_RE.match(self.cursor.current().strip()) is not None

    def _at_paragraph(self) -> bool:
        return True

    def _interrupts_paragraph(self, line: str) -> bool:
        stripped = line.rstrip()
        return bool(
            _HEADING_RE.match(stripped)
            or _BLOCK_ATTR_RE.match(stripped.strip())
            or _ANCHOR_RE.match(stripped.strip())
            or _DELIMITER_RE.match(stripped)
            or stripped == _TABLE_DELIMITER
            or stripped.startswith("image::")
            or _match_list_item(line) is not None
        )

    # ------------------------------------------------------------------
    # Lines without output
    # ------------------------------------------------------------------

    def _consume_attribute(self) -> ConsumeResult:
        self.cursor.advance()
        return None

    def _consume_comment(self) -> ConsumeResult:
        line = self.cursor.current().rstrip()
        self.cursor.advance()
        if _COMMENT_BLOCK_RE.match(line):
            _lines, closed = self.collect_until(lambda candidate: candidate.rstrip() == line)
            if not closed:
                self.feature_lost("Unterminated comment block", "asciidoc:unterminated:////")
        return None

    def _consume_preprocessor(self) -> ConsumeResult:
        directive = _PREPROCESSOR_RE.match(self.cursor.current())
        assert directive is not None
        self.warnings.info(
            WarningKind.SIMPLIFIED,
            "Conditional preprocessor directive ignored; its content is always included",
            detail=f"asciidoc:{directive.group(1)}",
            span=self.cursor.span(self.cursor.position, self.cursor.position + 1),
        )
        self.cursor.advance()
        return None

    def _consume_anchor(self) -> ConsumeResult:
        m = _ANCHOR_RE.match(self.cursor.current().strip())
        assert m is not None
        self._block_attrs["id"] = m.group(1)
        self.cursor.advance()
        return None

    def _consume_block_title(self) -> ConsumeResult:
        m = _BLOCK_TITLE_RE.match(self.cursor.current().rstrip())
        assert m is not None
        self._block_attrs["title"] = self._substitute_attributes(m.group(1).strip())
        self.cursor.advance()
        return None

    def _consume_block_attributes(self) -> ConsumeResult:
        """Parse ``[style,positional,key=value]`` into the pending attributes."""
        content = self.cursor.current().strip()[1:-1].strip()
        line_index = self.cursor.position
        self.cursor.advance()

        attrs = self._block_attrs
        positional, named = _parse_attrlist(content)
        style = ""
        if positional:
            first = positional[0]
            style = re.split(r"[#.%]", first, maxsplit=1)[0].strip()
            for sigil, value in _SHORTHAND_RE.findall(first[len(style) :]):
                if sigil == "#":
                    attrs["id"] = value
                elif sigil == ".":
                    attrs.setdefault("roles", []).append(value)
                else:
                    attrs.setdefault("options", []).append(value)

        if "id" in named:
            attrs["id"] = named.pop("id")
        if "role" in named:
            attrs.setdefault("roles", []).extend(named.pop("role").split())
        for key in ("options", "opts"):
            if key in named:
                attrs.setdefault("options", []).extend(opt.strip() for opt in named.pop(key).split(","))
        if "title" in named:
            attrs["title"] = named.pop("title")
        attrs.setdefault("named", {}).update(named)

        if not style:
            return None
        if style.upper() in ASCIIDOC_ADMONITIONS:
            attrs["admonition"] = style.lower()
        elif style in _KNOWN_STYLES:
            attrs["style"] = style
            if style in ("source", "listing") and len(positional) > 1:
                attrs["language"] = positional[1]
            elif style in ("quote", "verse"):
                if len(positional) > 1 and positional[1]:
                    attrs["attribution"] = positional[1]
                if len(positional) > 2 and positional[2]:
                    attrs["citetitle"] = positional[2]
        else:
            self.warnings.minor(
                WarningKind.UNSUPPORTED_NODE,
                f"Unknown block attribute: [{content}]",
                detail=f"asciidoc:{content}",
                span=self.cursor.span(line_index, line_index + 1),
            )
        return None

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def paragraph(self, lines: list[str]) -> Node:
        """Paragraph whose source lines keep their breaks for the `` +`` rule."""
        text = "\n".join(line.strip() for line in lines if line.strip())
        return Node(kinds.PARAGRAPH, children=self.inlines(text))

    def _verse(self, lines: list[str]) -> Node:
        para = Node(kinds.PARAGRAPH)
        for index, line in enumerate(lines):
            if index:
                para.child(Node(kinds.LINE_BREAK))
            para.extend(self.inlines(line.rstrip()))
        return para

    def _quote(self, children: list[Node]) -> Node:
        quote = Node(kinds.BLOCKQUOTE, children=children)
        attribution = self._block_attrs.get("attribution")
        if attribution:
            quote.prop("asciidoc:attribution", attribution)
        citetitle = self._block_attrs.get("citetitle")
        if citetitle:
            quote.prop("asciidoc:citetitle", citetitle)
        return quote

    @staticmethod
    def _admonition(name: str, children: list[Node]) -> Node:
        return Node(kinds.DIV, children=children).prop(props.CLASSES, f"admonition {name}")

    def _consume_heading(self) -> ConsumeResult:
        m = _HEADING_RE.match(self.cursor.current().rstrip())
        assert m is not None
        level = len(m.group(1))
        self.cursor.advance()
        node = self.heading(level, m.group(2))
        if level == 1 and not self._header_seen and self._depth == 0:
            self._header_seen = True
            self.attributes.setdefault("doctitle", node.text_content())
            self._consume_header_lines()
        return node

    def _consume_header_lines(self) -> None:
        """Read the optional author and revision lines under the document title."""
        cursor = self.cursor
        author = _AUTHOR_RE.match(cursor.current().strip())
        if author is None or not (author.group(2) or " " in author.group(1)):
            return
        self.attributes.setdefault("author", author.group(1).strip())
        if author.group(2):
            self.attributes.setdefault("email", author.group(2))
        cursor.advance()

        line = cursor.current().strip()
        if not re.match(r"v?\d", line):
            return
        revision = _REVISION_RE.match(line)
        if revision is None or not any(revision.groups()):
            return
        number, date, remark = revision.groups()
        if number:
            self.attributes.setdefault("revnumber", number)
        if date:
            self.attributes.setdefault("revdate", date.strip())
        if remark:
            self.attributes.setdefault("revremark", remark.strip())
        cursor.advance()

    def _consume_delimited(self) -> ConsumeResult:
        delimiter = self.cursor.current().rstrip()
        self.cursor.advance()
        lines, closed = self.collect_until(lambda candidate: candidate.rstrip() == delimiter)
        if not closed:
            self.feature_lost(
                f"Unterminated delimited block '{delimiter}' runs to end of document",
                f"asciidoc:unterminated:{delimiter}",
            )
        body = "\n".join(lines)
        block_kind = "open" if delimiter == "--" else _DELIMITER_KINDS[delimiter[0]]
        style = self._block_attrs.get("style", "")

        if block_kind in ("listing", "literal") or style in _CODE_STYLES:
            language = None
            if style in ("source", "listing"):
                language = self._block_attrs.get("language")
                if language is None and style == "source":
                    language = self.attributes.get("source-language")
            return self.code_block(body, language)

        if block_kind == "passthrough" or style == "pass":
            if style in _MATH_STYLES:
                return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, body)
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, body).prop(props.FORMAT, "asciidoc")

        if style in _MATH_STYLES:
            return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, body)

        admonition = self._block_attrs.get("admonition")
        if admonition:
            return self._admonition(admonition, self.parse_nested(body))
        if style == "verse":
            return self._quote([self._verse(lines)])
        if block_kind == "quote" or style == "quote":
            return self._quote(self.parse_nested(body))
        if block_kind == "sidebar" or style == "sidebar":
            return Node(kinds.DIV, children=self.parse_nested(body)).prop(props.CLASSES, "sidebar")
        if block_kind == "example" or style == "example":
            return Node(kinds.DIV, children=self.parse_nested(body)).prop(props.CLASSES, "example")
        return Node(kinds.DIV, children=self.parse_nested(body)).prop(props.CLASSES, "open")

    def _consume_table(self) -> ConsumeResult:
        self.cursor.advance()
        lines, closed = self.collect_until(lambda candidate: candidate.rstrip() == _TABLE_DELIMITER)
        if not closed:
            self.feature_lost("Unterminated table runs to end of document", "asciidoc:unterminated:|===")
        if not self.options.parse_tables:
            return self.code_block("\n".join(lines))
        return self._build_table(lines)

    def _build_table(self, lines: list[str]) -> Node:
        """Build a table from ``|`` separated cells, wrapping rows by column count."""
        cells: list[tuple[str, int]] = []
        first_line_width = 0
        implicit_header = False
        for index, line in enumerate(lines):
            if not line.strip():
                continue
            separators = list(_CELL_SEPARATOR_RE.finditer(line))
            leading = line[: separators[0].start()] if separators else line
            if leading.strip():
                if cells:
                    text, span = cells[-1]
                    cells[-1] = (f"{text} {leading.strip()}".strip(), span)
                else:
                    cells.append((leading.strip(), 1))
            line_cells = []
            for position, separator in enumerate(separators):
                end = separators[position + 1].start() if position + 1 < len(separators) else len(line)
                span = int(separator.group(1)) if separator.group(1) else 1
                line_cells.append((line[separator.end() : end].strip().replace("\\|", "|"), span))
            if line_cells and not first_line_width:
                first_line_width = sum(span for _text, span in line_cells)
                implicit_header = index + 1 < len(lines) and not lines[index + 1].strip()
            cells.extend(line_cells)

        named = self._block_attrs.get("named", {})
        columns = _column_count(named.get("cols")) or first_line_width or 1
        rows: list[list[tuple[str, int]]] = []
        row: list[tuple[str, int]] = []
        width = 0
        for cell in cells:
            row.append(cell)
            width += cell[1]
            if width >= columns:
                rows.append(row)
                row, width = [], 0
        if row:
            rows.append(row)

        options = set(self._block_attrs.get("options", ()))
        has_header = "header" in options or (implicit_header and "noheader" not in options and len(rows) > 1)

        builder = TableBuilder()
        for row_index, row_cells in enumerate(rows):
            row_node = builder.add_row(
                [self.inlines(text) for text, _span in row_cells], is_header=has_header and row_index == 0
            )
            for cell_node, (_text, span) in zip(row_node.children, row_cells):
                if span > 1:
                    cell_node.prop(props.COLSPAN, span)
        title = self._block_attrs.pop("title", None)
        if title:
            builder.set_caption(self.inlines(title))
        return builder.get_table()

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        spans: list[tuple[Node, int, int]] = []
        while not cursor.is_eof():
            item = _match_list_item(cursor.current())
            if item is None:
                if self._continues_after_blank(lambda line: _match_list_item(line) is not None):
                    continue
                break
            level, ordered, start, text = item
            first_line = cursor.position
            cursor.advance()
            text_lines = [text]
            while not cursor.is_eof():
                line = cursor.current()
                if (
                    not line.strip()
                    or line.strip() == "+"
                    or self._interrupts_paragraph(line)
                    or _DLIST_RE.match(line.strip())
                ):
                    break
                text_lines.append(line.strip())
                cursor.advance()

            checked = None
            if not ordered:
                checkbox = _CHECKBOX_RE.match(text_lines[0])
                if checkbox:
                    checked = checkbox.group(1) != " "
                    text_lines[0] = checkbox.group(2)
            list_item = builder.add_item(
                level, ordered, self.inlines("\n".join(text_lines)), checked=checked, start=start
            )
            spans.append((list_item, level, first_line))

            while cursor.current().strip() == "+":
                cursor.advance()
                attached = self._collect_attached_block()
                builder.append_to_last(self.parse_nested("\n".join(attached)))

        self.span_list_items(spans)
        lists = builder.lists
        if lists:
            style = self._block_attrs.get("style")
            if style in _LIST_STYLES:
                lists[0].prop(props.LIST_STYLE, style)
            start_attr = self._block_attrs.get("named", {}).get("start")
            if start_attr and start_attr.isdigit() and lists[0].get(props.ORDERED):
                lists[0].prop(props.START, int(start_attr))
        return lists

    def _continues_after_blank(self, is_continuation: Callable[[str], bool]) -> bool:
        """Skip blank lines if the next non-blank line continues the current list."""
        cursor = self.cursor
        if not cursor.at_blank_line():
            return False
        saved = cursor.position
        cursor.skip_blank_lines()
        if not cursor.is_eof() and is_continuation(cursor.current()):
            return True
        cursor.position = saved
        return False

    def _collect_attached_block(self) -> list[str]:
        """Collect the block joined to a list item by a ``+`` line."""
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof() and (
            _BLOCK_ATTR_RE.match(cursor.current().strip()) or _BLOCK_TITLE_RE.match(cursor.current().rstrip())
        ):
            lines.append(cursor.current())
            cursor.advance()
        if cursor.is_eof():
            return lines

        opener = cursor.current().rstrip()
        if _DELIMITER_RE.match(opener) or opener == _TABLE_DELIMITER:
            lines.append(opener)
            cursor.advance()
            body, closed = self.collect_until(lambda candidate: candidate.rstrip() == opener)
            lines.extend(body)
            if closed:
                lines.append(opener)
            return lines

        while not cursor.is_eof():
            line = cursor.current()
            if not line.strip() or line.strip() == "+" or _match_list_item(line) is not None:
                break
            lines.append(line)
            cursor.advance()
        return lines

    def _consume_description_list(self) -> ConsumeResult:
        cursor = self.cursor
        dlist = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof():
            m = _DLIST_RE.match(cursor.current())
            if m is None:
                if self._continues_after_blank(lambda line: _DLIST_RE.match(line) is not None):
                    continue
                break
            term, _marker, description = m.groups()
            cursor.advance()
            dlist.child(Node(kinds.DEFINITION_TERM, children=self.inlines(term.strip())))

            body: list[Node] = []
            desc_lines = [description] if description else []
            while not cursor.is_eof():
                line = cursor.current()
                if not line.strip() or line.strip() == "+" or _DLIST_RE.match(line):
                    break
                if _match_list_item(line) is not None:
                    if not desc_lines:
                        nested = self._consume_list()
                        if isinstance(nested, list):
                            body.extend(nested)
                    break
                if self._interrupts_paragraph(line):
                    break
                desc_lines.append(line.strip())
                cursor.advance()
            if desc_lines:
                body.insert(0, self.paragraph(desc_lines))
            while cursor.current().strip() == "+":
                cursor.advance()
                body.extend(self.parse_nested("\n".join(self._collect_attached_block())))
            dlist.child(Node(kinds.DEFINITION_DESC, children=body))
        return dlist

    def _consume_rule(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_page_break(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.DIV).prop(props.LAYOUT_PAGE_BREAK, True)

    def _consume_block_image(self) -> ConsumeResult:
        m = _BLOCK_IMAGE_RE.match(self.cursor.current().strip())
        assert m is not None
        self.cursor.advance()
        image = _image_from_macro(m.group(1), m.group(2))
        figure = Node(kinds.FIGURE).child(image)
        title = self._block_attrs.pop("title", None)
        if title:
            figure.child(Node(kinds.CAPTION, children=self.inlines(title)))
        return figure

    def _consume_block_macro(self) -> ConsumeResult:
        line = self.cursor.current().strip()
        m = _BLOCK_MACRO_RE.match(line)
        assert m is not None
        self.cursor.advance()
        name = m.group(1)
        if name == "toc":
            return Node(kinds.DIV).prop(props.CLASSES, "toc")
        return self.unsupported_block(name, line)

    def _consume_paragraph(self) -> ConsumeResult:
        cursor = self.cursor
        first = cursor.current()
        if first[:1] in (" ", "\t") and not self._block_attrs.get("style"):
            lines = [first]
            cursor.advance()
            while not cursor.is_eof() and cursor.current().strip():
                lines.append(cursor.current())
                cursor.advance()
            indent = min(len(line) - len(line.lstrip()) for line in lines if line.strip())
            return self.code_block("\n".join(line[indent:].rstrip() for line in lines))

        lines = [
            line
            for line in self.collect_paragraph_lines(self._interrupts_paragraph)
            if not (line.startswith("//") and not line.startswith("///"))
        ]
        if not lines:
            return None

        style = self._block_attrs.get("style", "")
        admonition = self._block_attrs.get("admonition")
        if style in _CODE_STYLES:
            language = self._block_attrs.get("language") if style != "literal" else None
            return self.code_block("\n".join(line.rstrip() for line in lines), language)
        if style in _MATH_STYLES:
            return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, "\n".join(lines).strip())
        if style == "pass":
            return Node(kinds.RAW_BLOCK).prop(props.CONTENT, "\n".join(lines)).prop(props.FORMAT, "asciidoc")
        if admonition:
            return self._admonition(admonition, [self.paragraph(lines)])

        inline_admonition = _INLINE_ADMONITION_RE.match("\n".join(line.strip() for line in lines))
        if inline_admonition:
            name, rest = inline_admonition.groups()
            return self._admonition(name.lower(), [self.paragraph(rest.split("\n"))])

        if style == "verse":
            return self._quote([self._verse(lines)])
        if style == "quote":
            return self._quote([self.paragraph(lines)])
        if style in ("example", "sidebar"):
            return Node(kinds.DIV).child(self.paragraph(lines)).prop(props.CLASSES, style)
        return self.paragraph(lines)


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse an AsciiDoc document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        AsciiDoc source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return AsciiDocParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: AsciiDocOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return AsciiDocParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="asciidoc",
    extensions=[".adoc", ".asciidoc", ".asc"],
    mime_types=["text/asciidoc", "text/x-asciidoc"],
    parser_class=AsciiDocParser,
    parser_options_class=AsciiDocOptions,
    description="Parse AsciiDoc documents",
    priority=10,
)
