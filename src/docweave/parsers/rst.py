#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/rst.py
"""reStructuredText to AST converter.

This module converts reStructuredText documents to the document IR with a
hand-written, indentation-aware parser. A first pass collects hyperlink
targets (``.. _name: url``) and substitution definitions so that references
resolve regardless of where the target is defined.

Section levels are assigned in the order adornment characters are first
seen. An overlined title and an underline-only title using the same
character share a level.

"""

from __future__ import annotations

import csv
import logging
import re
from typing import Callable, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import ListBuilder, TableBuilder
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, text_node
from docweave.ast.utils import extract_text
from docweave.constants import MAX_HEADING_LEVEL, RST_ADMONITIONS, RST_CODE_DIRECTIVES
from docweave.converter_metadata import ConverterMetadata
from docweave.options.rst import RstOptions
from docweave.parsers._block import ConsumeResult, Recognizer, recognizer
from docweave.parsers._inline import (
    InlineScanner,
    MatchResult,
    ReferenceTable,
    code_node,
    image_node,
    is_word_char,
    link_node,
    normalize_reference_name,
)
from docweave.parsers.base import MarkupParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_TARGET_LINE_RE = re.compile(r"^(?:\.\.[ \t]+_|__(?:[ \t]|$))")
_TARGET_DEF_RE = re.compile(r"^\.\.[ \t]+_(?!_)(?:`([^`]+)`|([^:`][^:]*)):(?:[ \t]+(.*?))?[ \t]*$")
_SUBSTITUTION_DEF_RE = re.compile(r"^\.\.[ \t]+\|([^|]+)\|[ \t]+([\w-]+)::(?:[ \t]+(.*?))?[ \t]*$")
_DIRECTIVE_RE = re.compile(r"^\.\.[ \t]+([A-Za-z0-9][\w:+.-]*)::(?:[ \t]+(.*?))?[ \t]*$")
_FOOTNOTE_DEF_RE = re.compile(r"^\.\.[ \t]+\[([^\]\s]+)\](?:[ \t]+(.*))?$")
_OPTION_RE = re.compile(r"^:([\w][\w .-]*):(?:[ \t]+(.*?))?[ \t]*$")
_FIELD_RE = re.compile(r"^:([^:\s`][^:`]*):(?:[ \t]+(.*)|[ \t]*)$")
_BULLET_RE = re.compile(r"^([*+-])([ \t]+)(.*)$|^([*+-])$")
_ENUMERATED_RE = re.compile(r"^(?:(\d+|#)([.)])|\((\d+|#)\))([ \t]+)(.*)$")
_SIMPLE_BORDER_RE = re.compile(r"^=+(?:[ \t]+=+)+[ \t]*$")
_SIMPLE_UNDERLINE_RE = re.compile(r"^[ \t]*-[- \t]*$")
_GRID_BORDER_RE = re.compile(r"^\+(?:[-=]+\+)+[ \t]*$")
_EMBEDDED_URI_RE = re.compile(r"^(.*?)\s*<([^<>]+)>$", re.DOTALL)
_SLUG_RE = re.compile(r"[^\w]+")

# Inline patterns
_ROLE_PREFIX_RE = re.compile(r":([A-Za-z][\w.+-]*):`")
_ROLE_SUFFIX_RE = re.compile(r":([A-Za-z][\w.+-]*):(?![\w`])")
_FOOTNOTE_REF_RE = re.compile(r"\[(#[\w-]*|\*|\d+|[A-Za-z][\w.-]*)\]_")
_SUBSTITUTION_REF_RE = re.compile(r"\|([^|\s](?:[^|]*[^|\s])?)\|(__?)?")
_BARE_REFERENCE_RE = re.compile(r"([^\W_]+(?:[-._+:][^\W_]+)*)(__?)(?!\w)")

_START_PRECEDERS = frozenset("'\"([{<-/:\u2018\u201c\u00ab")
_MAX_INDIRECTION = 8

_ROLE_KINDS = {
    "emphasis": kinds.EMPHASIS,
    "em": kinds.EMPHASIS,
    "title-reference": kinds.EMPHASIS,
    "title": kinds.EMPHASIS,
    "t": kinds.EMPHASIS,
    "strong": kinds.STRONG,
    "sub": kinds.SUBSCRIPT,
    "subscript": kinds.SUBSCRIPT,
    "sup": kinds.SUPERSCRIPT,
    "superscript": kinds.SUPERSCRIPT,
}
_QUOTE_DIRECTIVES = ("epigraph", "highlights", "pull-quote")
_CONTAINER_DIRECTIVES = ("topic", "sidebar", "container")
_ATTRIBUTION_PREFIXES = ("-- ", "--- ", "\u2014 ")


def _slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-")


def _indent_of(line: str) -> int:
    expanded = line.expandtabs(8)
    return len(expanded) - len(expanded.lstrip())


def _dedent(lines: list[str]) -> list[str]:
    """Remove the common leading indentation of the non-blank lines."""
    expanded = [line.expandtabs(8).rstrip() for line in lines]
    cut = min((_indent_of(line) for line in expanded if line.strip()), default=0)
    return [line[cut:] if line.strip() else "" for line in expanded]


def _match_list_marker(line: str) -> Optional[tuple[str, bool, Optional[int], str, int]]:
    """Return ``(family, ordered, start, text, content_indent)`` for a list item line."""
    m = _BULLET_RE.match(line)
    if m:
        if m.group(4):
            return m.group(4), False, None, "", 2
        return m.group(1), False, None, m.group(3), 1 + len(m.group(2))
    m = _ENUMERATED_RE.match(line)
    if m:
        if m.group(1):
            number, family = m.group(1), "N" + m.group(2)
        else:
            number, family = m.group(3), "(N)"
        start = int(number) if number.isdigit() else None
        return family, True, start, m.group(5), len(line) - len(m.group(5))
    return None


def _can_open(chars: list[str], i: int) -> bool:
    """Inline start-string rule: preceded by whitespace, start or opening punctuation."""
    return i == 0 or chars[i - 1].isspace() or chars[i - 1] in _START_PRECEDERS


def _is_transition(line: str) -> bool:
    stripped = line.rstrip()
    return (
        len(stripped) >= 4
        and not line[0].isspace()
        and not stripped[0].isalnum()
        and stripped == stripped[0] * len(stripped)
    )


class RstInlineScanner(InlineScanner):
    """Inline markup, roles and references for reStructuredText."""

    parser: RstParser

    def match_at(self, chars: list[str], i: int) -> MatchResult:
        c = chars[i]
        if c == "\\":
            if i + 1 >= len(chars):
                return None
            if chars[i + 1].isspace():
                return [], i + 2
            return text_node(chars[i + 1]), i + 2
        if c == "*":
            if not _can_open(chars, i):
                return None
            hit = self.delimited(chars, i, "**", kinds.STRONG, bounded=True, no_word_after=True)
            if hit is not None or (i + 1 < len(chars) and chars[i + 1] == "*"):
                return hit
            return self.delimited(chars, i, "*", kinds.EMPHASIS, bounded=True, no_word_after=True)
        if c == "`":
            if not _can_open(chars, i):
                return None
            if i + 1 < len(chars) and chars[i + 1] == "`":
                return self.delimited(chars, i, "``", kinds.CODE, bounded=True, no_word_after=True, literal=True)
            return self._interpreted(chars, i)
        if c == ":" and _can_open(chars, i):
            return self._prefixed_role(chars, i)
        if c == "[" and (i == 0 or not is_word_char(chars[i - 1])):
            return self._footnote_reference(i)
        if c == "|" and _can_open(chars, i):
            return self._substitution(i)
        if c.isalnum() and (i == 0 or not (is_word_char(chars[i - 1]) or chars[i - 1] in "_-.+:")):
            url = self.match_bare_url(chars, i) if c == "h" else None
            return url or self._bare_reference(i)
        return None

    def _interpreted(self, chars: list[str], i: int) -> MatchResult:
        close = self.find_closing_bounded(chars, i + 1, "`", no_word_after=True)
        if close < 0 or chars[i + 1].isspace():
            return None
        text = "".join(chars[i + 1 : close])
        end = close + 1
        if self.text.startswith("__", end):
            return self._reference(text, anonymous=True), end + 2
        if end < len(chars) and chars[end] == "_":
            return self._reference(text), end + 1
        suffix = self.match_pattern(_ROLE_SUFFIX_RE, end)
        if suffix:
            return self._role(suffix.group(1), text), suffix.end()
        return Node(kinds.EMPHASIS).child(text_node(text)), end

    def _prefixed_role(self, chars: list[str], i: int) -> MatchResult:
        m = self.match_pattern(_ROLE_PREFIX_RE, i)
        if m is None or m.end() >= len(chars) or chars[m.end()].isspace():
            return None
        close = self.find_closing_bounded(chars, m.end(), "`", no_word_after=True)
        if close < 0:
            return None
        return self._role(m.group(1), "".join(chars[m.end() : close])), close + 1

    def _role(self, role: str, text: str) -> Node:
        role = role.lower()
        if role in _ROLE_KINDS:
            return Node(_ROLE_KINDS[role]).child(text_node(text))
        if role in ("code", "literal"):
            return code_node(text)
        if role in ("ref", "doc"):
            embedded = _EMBEDDED_URI_RE.match(text)
            if embedded:
                label, target = embedded.group(1).strip(), embedded.group(2).strip()
                return link_node(f"#{target}", [text_node(label or target)])
            return link_node(f"#{text}", [text_node(text)])
        if role == "math":
            return Node(kinds.MATH_INLINE).prop(props.MATH_SOURCE, text)
        return Node(kinds.SPAN).child(text_node(text)).prop("rst:role", role)

    def _reference(self, text: str, anonymous: bool = False) -> Node:
        """Link for `` `text`_ ``, `` `text <url>`_ `` and their anonymous forms."""
        embedded = _EMBEDDED_URI_RE.match(text)
        if embedded:
            label, target = embedded.group(1).strip(), embedded.group(2).strip()
            url = target
            if target.endswith("_") and "://" not in target:
                url = self.parser.resolve_reference(target[:-1].strip("`")) or target[:-1]
            return link_node(url, [text_node(label or target)])
        return link_node(self.parser.reference_url(text, anonymous), [text_node(text)])

    def _bare_reference(self, i: int) -> MatchResult:
        m = self.match_pattern(_BARE_REFERENCE_RE, i)
        if m is None:
            return None
        name = m.group(1)
        url = self.parser.reference_url(name, anonymous=m.group(2) == "__")
        return link_node(url, [text_node(name)]), m.end()

    def _footnote_reference(self, i: int) -> MatchResult:
        m = self.match_pattern(_FOOTNOTE_REF_RE, i)
        if m is None:
            return None
        label = m.group(1)
        if label[0].isalpha():
            return Node(kinds.CITE).prop(props.LABEL, label), m.end()
        return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, self.parser.footnote_label(label, defining=False)), m.end()

    def _substitution(self, i: int) -> MatchResult:
        m = self.match_pattern(_SUBSTITUTION_REF_RE, i)
        if m is None:
            return None
        name = m.group(1)
        definition = self.parser.substitutions.get(normalize_reference_name(name))
        if definition is None:
            return None
        directive, value = definition
        if directive == "image":
            produced = [image_node(value, alt=name)]
        else:
            produced = self.scan(value)
        if m.group(2):
            url = self.parser.reference_url(name, anonymous=m.group(2) == "__")
            produced = [link_node(url, produced)]
        return produced, m.end()


class RstParser(MarkupParser):
    """Convert reStructuredText to the document IR.

    Parameters
    ----------
    options : RstOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Examples
    --------
    Section levels follow the order adornments are first used:

        >>> result = RstParser().parse("Hello World\\n===========\\n\\nText.")
        >>> result.value.blocks[0].get("level")
        1

    References may point forward:

        >>> result = parse("See `docs`_.\\n\\n.. _docs: https://example.com")

    """

    format_name = "rst"
    options_class = RstOptions
    options: RstOptions

    def __init__(self, options: RstOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self.references = ReferenceTable()
        self.substitutions: dict[str, tuple[str, str]] = {}
        self._heading_styles: list[str] = []
        self._default_language: Optional[str] = None
        self._auto_footnote_refs = 0
        self._auto_footnote_defs = 0
        self._directives: dict[str, Callable[[str, str, dict[str, str], list[str]], ConsumeResult]] = {
            "image": self._directive_image,
            "figure": self._directive_figure,
            "raw": self._directive_raw,
            "contents": self._directive_contents,
            "toc": self._directive_contents,
            "math": self._directive_math,
            "admonition": self._directive_admonition,
            "highlight": self._directive_highlight,
            "title": self._directive_title,
            "meta": self._directive_meta,
            "rubric": self._directive_rubric,
            "list-table": self._directive_list_table,
            "csv-table": self._directive_csv_table,
        }

    def create_inline_scanner(self) -> RstInlineScanner:
        return RstInlineScanner(self)

    def build_recognizers(self) -> tuple[Recognizer, ...]:
        cls = type(self)
        return (
            recognizer("target", cls._at_target, cls._consume_target),
            recognizer("heading", cls._at_heading, cls._consume_heading),
            recognizer("explicit_markup", cls._at_explicit, cls._consume_explicit),
            recognizer("field_list", cls._at_field, cls._consume_field_list),
            recognizer("list", cls._at_list_item, cls._consume_list),
            recognizer("definition_list", cls._at_definition, cls._consume_definition_list),
            recognizer("table", cls._at_table, cls._consume_table),
            recognizer("transition", cls._at_transition, cls._consume_transition),
            recognizer("block_quote", cls._at_block_quote, cls._consume_block_quote),
            recognizer("paragraph", cls._at_paragraph, cls._consume_paragraph),
        )

    # ------------------------------------------------------------------
    # Reference pre-pass and lookups
    # ------------------------------------------------------------------

    def prepare(self, text: str) -> None:
        """Collect hyperlink targets and substitution definitions, then freeze the table."""
        lines = self.cursor.lines
        for index, line in enumerate(lines):
            stripped = line.strip()
            target = _TARGET_DEF_RE.match(stripped)
            if target:
                name = target.group(1) or target.group(2)
                value = target.group(3) or ""
                indent = _indent_of(line)
                follow = index + 1
                while follow < len(lines) and lines[follow].strip() and _indent_of(lines[follow]) > indent:
                    value += lines[follow].strip()
                    follow += 1
                self.references.define(name, value.replace(" ", "") if value else f"#{_slugify(name)}")
                continue
            substitution = _SUBSTITUTION_DEF_RE.match(stripped)
            if substitution:
                name, directive, value = substitution.groups()
                key = normalize_reference_name(name)
                if key not in self.substitutions:
                    self.substitutions[key] = (directive.lower(), value or "")
        self.references.freeze()
        logger.debug("rst: collected %d reference targets", len(self.references))

    def resolve_reference(self, name: str) -> Optional[str]:
        """Resolve ``name``, following indirect targets (``.. _a: b_``)."""
        target = self.references.resolve(name)
        hops = 0
        while target and target.endswith("_") and "://" not in target and hops < _MAX_INDIRECTION:
            target = self.references.resolve(target[:-1].strip("`"))
            hops += 1
        return target

    def reference_url(self, name: str, anonymous: bool = False) -> str:
        """URL for a reference; unresolved and anonymous references fall back to the name."""
        url = None if anonymous else self.resolve_reference(name)
        if url is None:
            self.warnings.info(
                WarningKind.SIMPLIFIED,
                f"Reference '{name}' has no matching target",
                detail="rst:unresolved-reference",
            )
            return name
        return url

    def footnote_label(self, label: str, defining: bool) -> str:
        """Number ``#`` auto footnotes in order; ``#name`` becomes ``name``."""
        if label == "#":
            if defining:
                self._auto_footnote_defs += 1
                return str(self._auto_footnote_defs)
            self._auto_footnote_refs += 1
            return str(self._auto_footnote_refs)
        if label.startswith("#"):
            return label[1:]
        return label

    # ------------------------------------------------------------------
    # Docinfo and document title
    # ------------------------------------------------------------------

    def finish(self, blocks: list[Node]) -> list[Node]:
        index = 0
        while index < len(blocks) and blocks[index].kind == kinds.HEADING:
            index += 1
        if (
            self.options.parse_docinfo
            and index < len(blocks)
            and blocks[index].kind == kinds.DEFINITION_LIST
            and blocks[index].get(props.CLASSES) == "field-list"
        ):
            self._apply_docinfo(blocks.pop(index))
        if blocks and blocks[0].kind == kinds.HEADING and "title" not in self.metadata:
            self.set_metadata("title", extract_text(blocks[0]))
        return blocks

    def _apply_docinfo(self, field_list: Node) -> None:
        name: Optional[str] = None
        for child in field_list.children:
            if child.kind == kinds.DEFINITION_TERM:
                name = extract_text(child).strip().lower()
            elif child.kind == kinds.DEFINITION_DESC and name:
                self.set_metadata(name, " ".join(extract_text(block).strip() for block in child.children))
                name = None

    # ------------------------------------------------------------------
    # Line classification
    # ------------------------------------------------------------------

    def _is_adornment(self, line: str) -> bool:
        stripped = line.rstrip()
        return (
            bool(stripped)
            and not line[0].isspace()
            and stripped[0] in self.options.heading_chars
            and stripped == stripped[0] * len(stripped)
        )

    def _title_at(self, index: int) -> Optional[tuple[str, str, int]]:
        """Return ``(adornment_char, title, line_count)`` if a section title starts at ``index``."""
        cursor = self.cursor
        line = cursor.line(index)
        if self._is_adornment(line):
            title = cursor.line(index + 1)
            under = cursor.line(index + 2)
            if (
                title.strip()
                and not self._is_adornment(title)
                and self._is_adornment(under)
                and under[0] == line[0]
                and len(under.rstrip()) >= len(title.strip())
            ):
                return line[0], title.strip(), 3
            return None
        if not line.strip() or line[0].isspace():
            return None
        under = cursor.line(index + 1)
        if self._is_adornment(under) and len(under.rstrip()) >= len(line.rstrip()):
            return under[0], line.strip(), 2
        return None

    def _definition_at(self, index: int) -> bool:
        cursor = self.cursor
        line = cursor.line(index)
        following = cursor.line(index + 1)
        return (
            bool(line.strip())
            and not line[0].isspace()
            and bool(following.strip())
            and following[0].isspace()
            and not line.startswith("..")
            and _FIELD_RE.match(line) is None
            and _match_list_marker(line) is None
        )

    def _collect_indented(self) -> list[str]:
        """Consume blank or indented lines; trailing blank lines stay unconsumed."""
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof():
            line = cursor.current()
            if line.strip() and not line[0].isspace():
                break
            lines.append(line)
            cursor.advance()
        while lines and not lines[-1].strip():
            lines.pop()
            cursor.position = cursor.position - 1
        return lines

    def _continues_after_blank(self, is_continuation: Callable[[int], bool]) -> bool:
        cursor = self.cursor
        saved = cursor.position
        cursor.skip_blank_lines()
        if not cursor.is_eof() and is_continuation(cursor.position):
            return True
        cursor.position = saved
        return False

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _at_target(self) -> bool:
        return bool(_TARGET_LINE_RE.match(self.cursor.current()))

    def _at_heading(self) -> bool:
        return self._title_at(self.cursor.position) is not None

    def _at_explicit(self) -> bool:
        line = self.cursor.current().rstrip()
        return line == ".." or line.startswith((".. ", "..\t"))

    def _at_field(self) -> bool:
        return _FIELD_RE.match(self.cursor.current()) is not None

    def _at_list_item(self) -> bool:
        return _match_list_marker(self.cursor.current()) is not None

    def _at_definition(self) -> bool:
        return self._definition_at(self.cursor.position)

    def _at_table(self) -> bool:
        line = self.cursor.current()
        return bool(_GRID_BORDER_RE.match(line) or _SIMPLE_BORDER_RE.match(line))

    def _at_transition(self) -> bool:
        cursor = self.cursor
        position = cursor.position
        return (
            _is_transition(cursor.current())
            and (position == 0 or not cursor.line(position - 1).strip())
            and not cursor.peek_ahead().strip()
        )

    def _at_block_quote(self) -> bool:
        return self.cursor.current()[:1] in (" ", "\t")

    def _at_paragraph(self) -> bool:
        return bool(self.cursor.current().strip())

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def _consume_target(self) -> ConsumeResult:
        self.cursor.advance()
        self._collect_indented()
        return None

    def _consume_heading(self) -> ConsumeResult:
        title_info = self._title_at(self.cursor.position)
        assert title_info is not None
        char, title, line_count = title_info
        self.cursor.advance(line_count)
        if char not in self._heading_styles:
            self._heading_styles.append(char)
        level = min(self._heading_styles.index(char) + 1, MAX_HEADING_LEVEL)
        node = self.heading(level, title)
        slug = _slugify(title)
        if slug:
            node.prop(props.ID, slug)
        return node

    def _consume_explicit(self) -> ConsumeResult:
        cursor = self.cursor
        line = cursor.current().strip()
        cursor.advance()

        if _SUBSTITUTION_DEF_RE.match(line):
            self._collect_indented()
            return None

        footnote = _FOOTNOTE_DEF_RE.match(line)
        if footnote:
            label, first = footnote.groups()
            body = [first or ""] + _dedent(self._collect_indented())
            node = Node(kinds.FOOTNOTE_DEF, children=self.parse_nested("\n".join(body).strip("\n")))
            if label[0].isalpha():
                return node.prop(props.LABEL, label).prop("rst:citation", True)
            return node.prop(props.LABEL, self.footnote_label(label, defining=True))

        directive = _DIRECTIVE_RE.match(line)
        if directive is None:
            self._collect_indented()
            return None

        name = directive.group(1).lower()
        argument = directive.group(2) or ""
        body = _dedent(self._collect_indented())
        options: dict[str, str] = {}
        while body:
            option = _OPTION_RE.match(body[0])
            if option is None:
                break
            options[option.group(1).lower()] = option.group(2) or ""
            body.pop(0)
        return self._directive(name, argument, options, body)

    def _directive(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        if name in RST_ADMONITIONS:
            text = "\n".join(([argument] if argument else []) + body)
            return Node(kinds.DIV, children=self.parse_nested(text)).prop(props.CLASSES, f"admonition {name}")
        while body and not body[0].strip():
            body = body[1:]
        if name in RST_CODE_DIRECTIVES:
            node = self.code_block("\n".join(body), argument.strip() or None)
            if options.get("caption"):
                node.prop(props.TITLE, options["caption"])
            return node
        if name in _QUOTE_DIRECTIVES:
            return self._block_quote(body).prop(props.CLASSES, name)
        if name in _CONTAINER_DIRECTIVES:
            div = Node(kinds.DIV, children=self.parse_nested("\n".join(body)))
            if name == "container":
                return div.prop(props.CLASSES, " ".join(["container", *argument.split()]))
            div.prop(props.CLASSES, name)
            if argument:
                div.prop(props.TITLE, argument)
            return div
        handler = self._directives.get(name)
        if handler is not None:
            return handler(name, argument, options, body)

        raw = "\n".join(body) if body else argument
        div = self.unsupported_block(name, raw, f"Unsupported reStructuredText directive '{name}'", parse_body=True)
        div.prop("rst:directive", name)
        if argument:
            div.prop("rst:argument", argument)
        return div

    def _directive_image(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        image = image_node(argument.strip().replace(" ", ""), options.get("alt"), options.get("title"))
        for key in ("width", "height", "scale", "align"):
            if options.get(key):
                image.prop(f"rst:{key}", options[key])
        if options.get("target"):
            return link_node(options["target"], [image])
        return image

    def _directive_figure(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        figure = Node(kinds.FIGURE).child(self._directive_image("image", argument, options, []))
        content = self.parse_nested("\n".join(body))
        if content and content[0].kind == kinds.PARAGRAPH:
            figure.child(Node(kinds.CAPTION, children=content.pop(0).children))
        if content:
            figure.child(Node(kinds.DIV, children=content).prop(props.CLASSES, "legend"))
        return figure

    def _directive_raw(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        return Node(kinds.RAW_BLOCK).prop(props.CONTENT, "\n".join(body)).prop(props.FORMAT, argument.strip().lower())

    def _directive_contents(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        div = Node(kinds.DIV).prop(props.CLASSES, "toc")
        if argument:
            div.prop(props.TITLE, argument)
        if options.get("depth", "").isdigit():
            div.prop("rst:depth", int(options["depth"]))
        return div

    def _directive_math(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        source = "\n".join(body).strip() or argument
        return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, source)

    def _directive_admonition(
        self, name: str, argument: str, options: dict[str, str], body: list[str]
    ) -> ConsumeResult:
        div = Node(kinds.DIV, children=self.parse_nested("\n".join(body))).prop(props.CLASSES, "admonition")
        if argument:
            div.prop(props.TITLE, argument)
        return div

    def _directive_highlight(
        self, name: str, argument: str, options: dict[str, str], body: list[str]
    ) -> ConsumeResult:
        self._default_language = argument.strip() or None
        return None

    def _directive_title(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        self.set_metadata("title", argument)
        return None

    def _directive_meta(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        for key, value in options.items():
            self.set_metadata(key, value)
        return None

    def _directive_rubric(self, name: str, argument: str, options: dict[str, str], body: list[str]) -> ConsumeResult:
        return Node(kinds.PARAGRAPH, children=self.inlines(argument)).prop(props.CLASSES, "rubric")

    def _directive_list_table(
        self, name: str, argument: str, options: dict[str, str], body: list[str]
    ) -> ConsumeResult:
        content = self.parse_nested("\n".join(body))
        outer = next((node for node in content if node.kind == kinds.LIST), None)
        if outer is None:
            return self.unsupported_block(name, "\n".join(body), "list-table without a bullet list", parse_body=True)

        header_rows = int(options["header-rows"]) if options.get("header-rows", "").isdigit() else 0
        builder = TableBuilder()
        for row_index, item in enumerate(outer.children):
            inner = next((child for child in item.children if child.kind == kinds.LIST), None)
            cells = inner.children if inner is not None else [item]
            builder.add_row([self._cell_content(cell) for cell in cells], is_header=row_index < header_rows)
        if argument:
            builder.set_caption(self.inlines(argument))
        return builder.get_table()

    @staticmethod
    def _cell_content(item: Node) -> list[Node]:
        if len(item.children) == 1 and item.children[0].kind == kinds.PARAGRAPH:
            return item.children[0].children
        return item.children

    def _directive_csv_table(
        self, name: str, argument: str, options: dict[str, str], body: list[str]
    ) -> ConsumeResult:
        if not body:
            return self.unsupported_block(name, argument, "csv-table without inline data")
        builder = TableBuilder()
        if options.get("header"):
            for header in csv.reader([options["header"]], skipinitialspace=True):
                builder.add_row([self.inlines(cell.strip()) for cell in header], is_header=True)
        header_rows = int(options["header-rows"]) if options.get("header-rows", "").isdigit() else 0
        for row_index, row in enumerate(csv.reader(body, skipinitialspace=True)):
            if row:
                builder.add_row([self.inlines(cell.strip()) for cell in row], is_header=row_index < header_rows)
        if argument:
            builder.set_caption(self.inlines(argument))
        return builder.get_table()

    def _consume_field_list(self) -> ConsumeResult:
        cursor = self.cursor
        field_list = Node(kinds.DEFINITION_LIST).prop(props.CLASSES, "field-list")
        while not cursor.is_eof():
            m = _FIELD_RE.match(cursor.current())
            if m is None:
                break
            cursor.advance()
            body = [m.group(2) or ""] + _dedent(self._collect_indented())
            field_list.child(Node(kinds.DEFINITION_TERM, children=self.inlines(m.group(1).strip())))
            field_list.child(Node(kinds.DEFINITION_DESC, children=self.parse_nested("\n".join(body).strip("\n"))))
        return field_list

    def _consume_list(self) -> ConsumeResult:
        cursor = self.cursor
        builder = ListBuilder()
        spans: list[tuple[Node, int, int]] = []
        first = _match_list_marker(cursor.current())
        assert first is not None
        family = first[0]

        def same_family(index: int) -> bool:
            marker = _match_list_marker(cursor.line(index))
            return marker is not None and marker[0] == family

        while not cursor.is_eof():
            marker = _match_list_marker(cursor.current())
            if marker is None or marker[0] != family:
                break
            _family, ordered, start, text, _content_indent = marker
            first_line = cursor.position
            cursor.advance()
            body = [text] + _dedent(self._collect_indented())
            content = self.parse_nested("\n".join(body))
            list_item = builder.add_item(1, ordered, content, start=start, wrap_paragraph=False)
            spans.append((list_item, 1, first_line))
            if not cursor.is_eof() and cursor.at_blank_line() and not self._continues_after_blank(same_family):
                break
        self.span_list_items(spans)
        return builder.lists

    def _consume_definition_list(self) -> ConsumeResult:
        cursor = self.cursor
        definition_list = Node(kinds.DEFINITION_LIST)
        while not cursor.is_eof() and self._definition_at(cursor.position):
            term, _sep, classifier = cursor.current().strip().partition(" : ")
            cursor.advance()
            body = _dedent(self._collect_indented())
            term_node = Node(kinds.DEFINITION_TERM, children=self.inlines(term))
            if classifier:
                term_node.prop("rst:classifier", classifier.strip())
            definition_list.child(term_node)
            definition_list.child(Node(kinds.DEFINITION_DESC, children=self.parse_nested("\n".join(body))))
            if not self._continues_after_blank(self._definition_at):
                break
        return definition_list

    def _consume_table(self) -> ConsumeResult:
        if _GRID_BORDER_RE.match(self.cursor.current()):
            return self._grid_table()
        return self._simple_table()

    def _grid_table(self) -> Node:
        cursor = self.cursor
        lines: list[str] = []
        while not cursor.is_eof() and cursor.current()[:1] in ("+", "|"):
            lines.append(cursor.current().rstrip())
            cursor.advance()

        boundaries = [index for index, char in enumerate(lines[0]) if char == "+"]
        has_header = any(_GRID_BORDER_RE.match(line) and "=" in line for line in lines[1:-1])
        builder = TableBuilder()
        in_header = has_header
        row_lines: list[str] = []
        for line in lines[1:]:
            if not _GRID_BORDER_RE.match(line):
                row_lines.append(line)
                continue
            if row_lines:
                self._grid_row(builder, row_lines, boundaries, in_header)
                row_lines = []
            if "=" in line:
                in_header = False
        if row_lines:
            self._grid_row(builder, row_lines, boundaries, in_header)
        return builder.get_table()

    def _grid_row(self, builder: TableBuilder, row_lines: list[str], boundaries: list[int], is_header: bool) -> None:
        first = row_lines[0]
        present = [b for b in boundaries if b < len(first) and first[b] == "|"]
        cells: list[list[Node]] = []
        spans: list[int] = []
        for left, right in zip(present, present[1:]):
            text = " ".join(line[left + 1 : right].strip() for line in row_lines if line[left + 1 : right].strip())
            cells.append(self.inlines(text))
            spans.append(sum(1 for b in boundaries if left < b <= right))
        row = builder.add_row(cells, is_header=is_header)
        for cell, span in zip(row.children, spans):
            if span > 1:
                cell.prop(props.COLSPAN, span)

    def _simple_table(self) -> Node:
        cursor = self.cursor
        border = cursor.current()
        columns = [m.start() for m in re.finditer(r"=+", border)]
        cursor.advance()

        rows: list[list[str]] = []
        header_rows = 0
        while not cursor.is_eof():
            line = cursor.current().rstrip()
            cursor.advance()
            if _SIMPLE_BORDER_RE.match(line):
                if cursor.is_eof() or not cursor.current().strip():
                    break
                header_rows = len(rows)
                continue
            if not line.strip() or _SIMPLE_UNDERLINE_RE.match(line):
                continue
            cells = [
                line[start : columns[index + 1] if index + 1 < len(columns) else len(line)].strip()
                for index, start in enumerate(columns)
            ]
            if rows and not cells[0]:
                rows[-1] = [f"{old} {new}".strip() for old, new in zip(rows[-1], cells)]
            else:
                rows.append(cells)

        builder = TableBuilder()
        for index, row in enumerate(rows):
            builder.add_row([self.inlines(cell) for cell in row], is_header=index < header_rows)
        return builder.get_table()

    def _consume_transition(self) -> ConsumeResult:
        self.cursor.advance()
        return Node(kinds.HORIZONTAL_RULE)

    def _consume_block_quote(self) -> ConsumeResult:
        return self._block_quote(_dedent(self._collect_indented()))

    def _block_quote(self, lines: list[str]) -> Node:
        children = self.parse_nested("\n".join(lines))
        quote = Node(kinds.BLOCKQUOTE, children=children)
        if children and children[-1].kind == kinds.PARAGRAPH:
            last_text = extract_text(children[-1])
            for prefix in _ATTRIBUTION_PREFIXES:
                if last_text.startswith(prefix):
                    children.pop()
                    quote.prop("rst:attribution", last_text[len(prefix) :].strip())
                    break
        return quote

    def _interrupts_paragraph(self, index: int) -> bool:
        line = self.cursor.line(index)
        return line.startswith("..") or self._title_at(index) is not None

    def _consume_paragraph(self) -> ConsumeResult:
        cursor = self.cursor
        lines = [cursor.current()]
        cursor.advance()
        while not cursor.is_eof() and cursor.current().strip() and not self._interrupts_paragraph(cursor.position):
            lines.append(cursor.current())
            cursor.advance()

        text = "\n".join(line.strip() for line in lines)
        if not text.endswith("::"):
            return Node(kinds.PARAGRAPH, children=self.inlines(text))

        if text == "::":
            text = ""
        elif text.endswith((" ::", "\n::")):
            text = text[:-3].rstrip()
        else:
            text = text[:-1]
        nodes = [Node(kinds.PARAGRAPH, children=self.inlines(text))] if text else []
        literal = self._literal_block()
        if literal is not None:
            nodes.append(literal)
        return nodes

    def _literal_block(self) -> Optional[Node]:
        """Indented block following a ``::`` paragraph, dedented by its minimum indent."""
        cursor = self.cursor
        saved = cursor.position
        cursor.skip_blank_lines()
        if cursor.is_eof() or not cursor.current()[:1] in (" ", "\t"):
            cursor.position = saved
            return None
        lines = _dedent(self._collect_indented())
        return self.code_block("\n".join(lines), self._default_language)


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a reStructuredText document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        reStructuredText source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return RstParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: RstOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return RstParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="rst",
    extensions=[".rst", ".rest"],
    mime_types=["text/x-rst", "text/prs.fallenstein.rst"],
    parser_class=RstParser,
    parser_options_class=RstOptions,
    description="Parse reStructuredText documents",
    priority=10,
)
