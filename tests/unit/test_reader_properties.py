#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_reader_properties.py
"""Property tests shared by every hand-written reader.

Tests cover:
- Termination on arbitrary and markup-heavy text
- Pathological inputs: unterminated blocks, deep nesting and lone markers
- Span containment when source info is preserved, and no spans otherwise
- Order-independent resolution of RST reference targets
- Order-dependent RST heading levels
- Soft breaks between paragraph lines

"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from docweave.ast import kinds, props
from docweave.ast.utils import iter_nodes
from docweave.ast.visitors import ValidationVisitor
from docweave.parsers.asciidoc import AsciiDocParser
from docweave.parsers.jira import JiraParser
from docweave.parsers.markua import MarkuaParser
from docweave.parsers.org import OrgParser
from docweave.parsers.rst import RstParser
from docweave.parsers.texinfo import TexinfoParser
from docweave.parsers.textile import TextileParser
from docweave.parsers.txt2tags import Txt2tagsParser
from docweave.parsers.typst import TypstParser
from docweave.parsers.vimwiki import VimwikiParser

MARKUP_READERS = [
    AsciiDocParser,
    RstParser,
    OrgParser,
    JiraParser,
    TextileParser,
    Txt2tagsParser,
    TypstParser,
    VimwikiParser,
    MarkuaParser,
    TexinfoParser,
]

MARKUP_ALPHABET = list("=*-_#[]{}()<>|`~^:.,;@+/\\!$%&'\"?0123 \n\tabcxyzAB")

markup_text = st.text(alphabet=st.sampled_from(MARKUP_ALPHABET), max_size=300)

PATHOLOGICAL_INPUTS = [
    "",
    "\n\n\n",
    "```\nunterminated",
    "----\nunterminated listing",
    "#+BEGIN_SRC python\nunterminated",
    "@example\nunterminated",
    "{code}\nunterminated",
    ".. code-block:: python\n",
    "> " * 200 + "deep",
    "* " * 200 + "deep",
    "#box[" * 200,
    "[" * 500,
    "*" * 500,
    "_" * 500,
    "`" * 500,
    "@" * 500,
    "{" * 500,
    "|" * 500,
    "=" * 500,
    "\\" * 500,
    "\r\n\r\n\r\n",
    "\ufeff= Title",
]


def _parse(parser_class, text: str, **options):
    options_obj = parser_class.options_class(**options) if options else None
    return parser_class(options_obj).parse(text)


def _assert_well_formed(parser_class, text: str) -> None:
    result = _parse(parser_class, text, preserve_source_info=True)
    validator = ValidationVisitor(len(text.encode("utf-8")), strict=False)
    assert validator.validate(result.value.content) == []


@pytest.mark.unit
class TestTermination:
    """Tests that every reader returns a document for any text."""

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    @given(text=st.text(max_size=200))
    def test_arbitrary_text(self, parser_class, text: str) -> None:
        """Test that arbitrary text parses into a document."""
        result = _parse(parser_class, text)
        assert result.value.content.kind == kinds.DOCUMENT

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    @given(text=markup_text)
    def test_markup_heavy_text(self, parser_class, text: str) -> None:
        """Test that text dense in markup characters yields a valid tree."""
        _assert_well_formed(parser_class, text)

    @pytest.mark.parametrize("text", PATHOLOGICAL_INPUTS)
    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_pathological_input(self, parser_class, text: str) -> None:
        """Test unterminated blocks, deep nesting and runs of lone markers."""
        _assert_well_formed(parser_class, text)

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_low_nesting_bound(self, parser_class) -> None:
        """Test that a nesting bound of one still produces a document."""
        result = _parse(parser_class, "> " * 20 + "x\n\n" + "* " * 20 + "y", max_nesting_depth=1)
        assert result.value.content.kind == kinds.DOCUMENT


@pytest.mark.unit
class TestSourceSpans:
    """Tests for source span tracking."""

    SAMPLE = "Title\n=====\n\nFirst *paragraph* with text.\n\n* item one\n* item two\n\nLast line.\n"

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_spans_contained(self, parser_class) -> None:
        """Test that spans nest inside their parents and the source."""
        _assert_well_formed(parser_class, self.SAMPLE)

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_root_span_covers_source(self, parser_class) -> None:
        """Test that the document span covers the whole source."""
        result = _parse(parser_class, self.SAMPLE, preserve_source_info=True)
        span = result.value.content.span
        assert span is not None
        assert (span.start, span.end) == (0, len(self.SAMPLE.encode("utf-8")))

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_top_level_blocks_have_spans(self, parser_class) -> None:
        """Test that every top-level block carries a span."""
        result = _parse(parser_class, self.SAMPLE, preserve_source_info=True)
        assert result.value.blocks
        assert all(block.span is not None for block in result.value.blocks)

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_no_spans_by_default(self, parser_class) -> None:
        """Test that no node carries a span unless source info is preserved."""
        result = _parse(parser_class, self.SAMPLE)
        assert all(node.span is None for node in iter_nodes(result.value.content))

    @pytest.mark.parametrize(
        "parser_class,text",
        [
            (AsciiDocParser, "* one\n** two\n* three\n"),
            (VimwikiParser, "* one\n  * two\n* three\n"),
        ],
    )
    def test_nested_list_item_spans(self, parser_class, text: str) -> None:
        """Test that list items carry spans and nested items sit inside their parents."""
        result = _parse(parser_class, text, preserve_source_info=True)
        source = text.encode("utf-8")
        items = [node for node in iter_nodes(result.value.content) if node.kind == kinds.LIST_ITEM]
        assert [source[item.span.start : item.span.end] for item in items] == [
            source[: source.index(b"\n* three")],
            source[source.index(b"\n") + 1 : source.index(b"\n* three")],
            b"* three",
        ]
        assert ValidationVisitor(len(source), strict=False).validate(result.value.content) == []

    @pytest.mark.parametrize("parser_class", MARKUP_READERS)
    def test_list_items_have_spans(self, parser_class) -> None:
        """Test that items of a top-level list carry spans within the list."""
        result = _parse(parser_class, self.SAMPLE, preserve_source_info=True)
        lists = [block for block in result.value.blocks if block.kind == kinds.LIST]
        for lst in lists:
            for item in lst.children:
                assert item.span is not None
                assert lst.span.contains(item.span)

    def test_multibyte_offsets(self) -> None:
        """Test that spans are byte offsets into the UTF-8 source."""
        text = "caf\u00e9 one\n\nsecond\n"
        result = _parse(AsciiDocParser, text, preserve_source_info=True)
        first, second = result.value.blocks
        assert (first.span.start, first.span.end) == (0, 9)
        assert (second.span.start, second.span.end) == (11, 17)


@pytest.mark.unit
class TestReferenceOrder:
    """Tests for order-independent reference resolution."""

    @staticmethod
    def _link_urls(result) -> list:
        return [node.get(props.URL) for node in iter_nodes(result.value.content) if node.kind == kinds.LINK]

    def test_rst_target_before_and_after_use(self) -> None:
        """Test that a target defined before or after its use resolves the same way."""
        before = _parse(RstParser, ".. _docs: https://example.com\n\nSee `docs`_.\n")
        after = _parse(RstParser, "See `docs`_.\n\n.. _docs: https://example.com\n")
        assert self._link_urls(before) == self._link_urls(after) == ["https://example.com"]
        assert before.warnings == after.warnings == ()

    def test_rst_substitution_before_and_after_use(self) -> None:
        """Test that substitution definitions are order independent."""
        before = _parse(RstParser, ".. |name| replace:: docweave\n\nUse |name|.\n")
        after = _parse(RstParser, "Use |name|.\n\n.. |name| replace:: docweave\n")
        assert before.value.blocks[-1].text_content() == after.value.blocks[0].text_content() == "Use docweave."


@pytest.mark.unit
class TestHeadingOrder:
    """Tests for RST heading levels assigned by first use."""

    @pytest.mark.parametrize(
        "order",
        [("=", "-", "~"), ("~", "=", "-")],
    )
    def test_first_use_assigns_levels(self, order: tuple) -> None:
        """Test that adornment characters take levels in the order they appear."""
        titles = ["Alpha", "Beta", "Gamma"]
        text = "".join(f"{title}\n{char * len(title)}\n\n" for title, char in zip(titles, order))
        result = _parse(RstParser, text)
        headings = [block for block in result.value.blocks if block.kind == kinds.HEADING]
        assert [heading.get(props.LEVEL) for heading in headings] == [1, 2, 3]
        assert [heading.text_content() for heading in headings] == titles


@pytest.mark.unit
class TestSoftBreaks:
    """Tests for line ends inside paragraphs."""

    @pytest.mark.parametrize("parser_class", [reader for reader in MARKUP_READERS if reader is not TextileParser])
    def test_line_end_is_soft_break(self, parser_class) -> None:
        """Test that a line end inside a paragraph becomes a soft break."""
        paragraph = _parse(parser_class, "\nfirst line\nsecond line\n").value.blocks[-1]
        assert paragraph.kind == kinds.PARAGRAPH
        assert [child.kind for child in paragraph.children] == [kinds.TEXT, kinds.SOFT_BREAK, kinds.TEXT]
        assert paragraph.text_content() == "first line second line"

    def test_textile_line_end_is_hard_break(self) -> None:
        """Test that Textile keeps its hard break for a line end."""
        paragraph = _parse(TextileParser, "first line\nsecond line\n").value.blocks[0]
        assert [child.kind for child in paragraph.children] == [kinds.TEXT, kinds.LINE_BREAK, kinds.TEXT]

    def test_code_span_across_lines(self) -> None:
        """Test that a line end inside inline code is kept as a space."""
        paragraph = _parse(RstParser, "Use ``a\nb`` here.\n").value.blocks[0]
        code = [child for child in paragraph.children if child.kind == kinds.CODE][0]
        assert code.get(props.CONTENT) == "a b"
