#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_rst_parser.py
"""Unit tests for the reStructuredText reader.

Tests cover:
- Section levels assigned in order of first use
- Docinfo field lists and the document title
- Hyperlink targets, forward references and substitutions
- Inline markup, roles and footnotes
- Lists, definition lists, literal blocks and block quotes
- Simple and grid tables
- Directives, including graceful handling of unknown ones

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import Severity, WarningKind
from docweave.options.rst import RstOptions
from docweave.parsers.rst import RstParser


def _parse(text: str, **options):
    return RstParser(RstOptions(**options) if options else None).parse(text)


def _levels(result) -> list[int]:
    return [block.get(props.LEVEL) for block in result.value.blocks if block.kind == kinds.HEADING]


@pytest.mark.unit
class TestSections:
    """Tests for section titles."""

    def test_first_style_is_level_one(self) -> None:
        """Test the underline-only title example."""
        result = _parse("Hello World\n===========\n\nText.")
        heading = result.value.blocks[0]
        assert heading.get(props.LEVEL) == 1
        assert heading.get(props.ID) == "hello-world"
        assert result.value.metadata["title"] == "Hello World"

    def test_levels_follow_first_use(self) -> None:
        """Test that the same characters in a different order give the same levels."""
        first = _parse("Alpha\n=====\n\nBeta\n-----\n\nGamma\n~~~~~\n")
        second = _parse("Alpha\n~~~~~\n\nBeta\n=====\n\nGamma\n-----\n")
        assert _levels(first) == [1, 2, 3]
        assert _levels(second) == [1, 2, 3]

    def test_style_reuse(self) -> None:
        """Test that returning to a seen style returns to its level."""
        assert _levels(_parse("A\n===\n\nB\n---\n\nC\n===\n")) == [1, 2, 1]

    def test_overline_shares_level_with_underline(self) -> None:
        """Test that overlined and underline-only titles with one character share a level."""
        result = _parse("=====\nTitle\n=====\n\nSub\n===\n\nSection\n-------\n")
        assert _levels(result) == [1, 1, 2]
        assert result.value.blocks[0].text_content() == "Title"

    def test_heading_chars_option(self) -> None:
        """Test that characters outside heading_chars do not adorn titles."""
        result = _parse("Title\n-----\n", heading_chars="=")
        assert result.value.blocks[0].kind == kinds.PARAGRAPH


@pytest.mark.unit
class TestDocinfo:
    """Tests for the docinfo field list."""

    def test_docinfo_becomes_metadata(self) -> None:
        """Test that a field list after the title is moved to metadata."""
        result = _parse("Title\n=====\n\n:author: Ann\n:version: 1.0\n\nBody.")
        metadata = result.value.metadata
        assert metadata["author"] == "Ann"
        assert metadata["version"] == "1.0"
        assert [block.kind for block in result.value.blocks] == [kinds.HEADING, kinds.PARAGRAPH]

    def test_docinfo_disabled(self) -> None:
        """Test that the field list stays in the body when docinfo is off."""
        result = _parse("Title\n=====\n\n:author: Ann\n", parse_docinfo=False)
        field_list = result.value.blocks[1]
        assert field_list.kind == kinds.DEFINITION_LIST
        assert field_list.get(props.CLASSES) == "field-list"
        assert "author" not in result.value.metadata


@pytest.mark.unit
class TestReferences:
    """Tests for hyperlink references and substitutions."""

    def test_forward_reference(self) -> None:
        """Test a reference used before its target is defined."""
        result = _parse("See `docs`_.\n\n.. _docs: https://example.com\n")
        assert len(result.value.blocks) == 1
        link = result.value.blocks[0].children[1]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "https://example.com"
        assert link.text_content() == "docs"
        assert result.warnings == ()

    def test_bare_reference(self) -> None:
        """Test a single-word reference."""
        result = _parse("Visit python_ today.\n\n.. _python: https://python.org\n")
        link = result.value.blocks[0].children[1]
        assert link.get(props.URL) == "https://python.org"

    def test_embedded_uri(self) -> None:
        """Test a reference with an embedded URI."""
        link = _parse("`Python <https://python.org>`_").value.blocks[0].children[0]
        assert link.get(props.URL) == "https://python.org"
        assert link.text_content() == "Python"

    def test_unresolved_reference(self) -> None:
        """Test that a missing target is recorded as an informational warning."""
        result = _parse("Go `nowhere`_.")
        link = result.value.blocks[0].children[1]
        assert link.get(props.URL) == "nowhere"
        assert result.warnings[0].severity == Severity.INFO
        assert result.warnings[0].detail == "rst:unresolved-reference"

    def test_substitution(self) -> None:
        """Test a replace substitution defined after use."""
        result = _parse("Hello |name|!\n\n.. |name| replace:: World\n")
        assert len(result.value.blocks) == 1
        assert result.value.blocks[0].text_content() == "Hello World!"


@pytest.mark.unit
class TestInline:
    """Tests for inline markup and roles."""

    def test_emphasis_strong_literal(self) -> None:
        """Test the three basic inline styles."""
        paragraph = _parse("**bold** and *em* and ``co*de``").value.blocks[0]
        assert [child.kind for child in paragraph.children] == [
            kinds.STRONG,
            kinds.TEXT,
            kinds.EMPHASIS,
            kinds.TEXT,
            kinds.CODE,
        ]
        assert paragraph.children[4].get(props.CONTENT) == "co*de"

    def test_code_role(self) -> None:
        """Test the code role."""
        code = _parse("Use :code:`x = 1` here.").value.blocks[0].children[1]
        assert code.kind == kinds.CODE
        assert code.get(props.CONTENT) == "x = 1"

    def test_math_role(self) -> None:
        """Test the math role."""
        math = _parse(":math:`a^2`").value.blocks[0].children[0]
        assert math.kind == kinds.MATH_INLINE
        assert math.get(props.MATH_SOURCE) == "a^2"

    def test_unknown_role(self) -> None:
        """Test that an unknown role becomes a span naming the role."""
        span = _parse("Press :kbd:`Ctrl`.").value.blocks[0].children[1]
        assert span.kind == kinds.SPAN
        assert span.get("rst:role") == "kbd"

    def test_auto_numbered_footnote(self) -> None:
        """Test that auto-numbered references and definitions share numbers."""
        result = _parse("Text [#]_ more.\n\n.. [#] The note.\n")
        paragraph, footnote = result.value.blocks
        assert paragraph.children[1].kind == kinds.FOOTNOTE_REF
        assert paragraph.children[1].get(props.LABEL) == "1"
        assert footnote.kind == kinds.FOOTNOTE_DEF
        assert footnote.get(props.LABEL) == "1"
        assert footnote.text_content() == "The note."

    def test_citation_reference(self) -> None:
        """Test a citation reference."""
        cite = _parse("As shown [CIT2002]_.").value.blocks[0].children[1]
        assert cite.kind == kinds.CITE
        assert cite.get(props.LABEL) == "CIT2002"


@pytest.mark.unit
class TestBlocks:
    """Tests for block constructs."""

    def test_bullet_list(self) -> None:
        """Test a bullet list."""
        lst = _parse("- a\n- b\n- c").value.blocks[0]
        assert lst.kind == kinds.LIST
        assert lst.get(props.ORDERED) is False
        assert [item.text_content() for item in lst.children] == ["a", "b", "c"]

    def test_enumerated_list(self) -> None:
        """Test an enumerated list."""
        lst = _parse("1. one\n2. two").value.blocks[0]
        assert lst.get(props.ORDERED) is True
        assert len(lst.children) == 2

    def test_definition_list(self) -> None:
        """Test a definition list with a classifier."""
        dl = _parse("term : kind\n   Definition here.\n").value.blocks[0]
        assert dl.kind == kinds.DEFINITION_LIST
        term, desc = dl.children
        assert term.text_content() == "term"
        assert term.get("rst:classifier") == "kind"
        assert desc.text_content() == "Definition here."

    def test_literal_block(self) -> None:
        """Test a paragraph ending in a double colon."""
        paragraph, code = _parse("Example::\n\n    x = 1\n    y = 2\n").value.blocks
        assert paragraph.text_content() == "Example:"
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.CONTENT) == "x = 1\ny = 2"

    def test_highlight_sets_default_language(self) -> None:
        """Test that the highlight directive applies to later literal blocks."""
        code = _parse(".. highlight:: python\n\nCode::\n\n   pass\n").value.blocks[1]
        assert code.get(props.LANGUAGE) == "python"

    def test_block_quote_attribution(self) -> None:
        """Test an indented block quote with an attribution."""
        quote = _parse("Para.\n\n   Quoted text.\n\n   -- Author\n").value.blocks[1]
        assert quote.kind == kinds.BLOCKQUOTE
        assert quote.get("rst:attribution") == "Author"
        assert quote.text_content() == "Quoted text."

    def test_transition(self) -> None:
        """Test a transition between paragraphs."""
        result = _parse("Para one.\n\n----------\n\nPara two.")
        assert [block.kind for block in result.value.blocks] == [
            kinds.PARAGRAPH,
            kinds.HORIZONTAL_RULE,
            kinds.PARAGRAPH,
        ]

    def test_simple_table(self) -> None:
        """Test a simple table with a header row."""
        table = _parse("=====  =====\nA      B\n=====  =====\n1      2\n=====  =====\n").value.blocks[0]
        assert table.kind == kinds.TABLE
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in row.children] == ["1", "2"]

    def test_grid_table(self) -> None:
        """Test a grid table with a header separator."""
        text = "+-----+-----+\n| A   | B   |\n+=====+=====+\n| 1   | 2   |\n+-----+-----+\n"
        table = _parse(text).value.blocks[0]
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in head.children[0].children] == ["A", "B"]
        assert [cell.text_content() for cell in row.children] == ["1", "2"]


@pytest.mark.unit
class TestDirectives:
    """Tests for directives."""

    def test_admonition(self) -> None:
        """Test a note admonition."""
        div = _parse(".. note::\n\n   Be careful.\n").value.blocks[0]
        assert div.kind == kinds.DIV
        assert div.get(props.CLASSES) == "admonition note"
        assert div.text_content() == "Be careful."

    def test_code_block(self) -> None:
        """Test a code-block directive."""
        code = _parse(".. code-block:: python\n\n   print(1)\n").value.blocks[0]
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.LANGUAGE) == "python"
        assert code.get(props.CONTENT) == "print(1)"

    def test_image_options(self) -> None:
        """Test an image directive with alt text."""
        image = _parse(".. image:: pic.png\n   :alt: A picture\n").value.blocks[0]
        assert image.kind == kinds.IMAGE
        assert image.get(props.URL) == "pic.png"
        assert image.get(props.ALT) == "A picture"

    def test_figure_caption(self) -> None:
        """Test that the first paragraph of a figure is its caption."""
        figure = _parse(".. figure:: pic.png\n\n   The caption.\n").value.blocks[0]
        assert figure.kind == kinds.FIGURE
        assert [child.kind for child in figure.children] == [kinds.IMAGE, kinds.CAPTION]

    def test_math(self) -> None:
        """Test the math directive."""
        math = _parse(".. math::\n\n   E = mc^2\n").value.blocks[0]
        assert math.kind == kinds.MATH_DISPLAY
        assert math.get(props.MATH_SOURCE) == "E = mc^2"

    def test_unknown_directive(self) -> None:
        """Test that an unknown directive keeps its body and records a warning."""
        result = _parse(".. frobnicate:: arg\n\n   Some *body*.\n")
        div = result.value.blocks[0]
        assert div.kind == kinds.DIV
        assert div.get("rst:unsupported") == "frobnicate"
        assert div.get("rst:argument") == "arg"
        assert div.text_content() == "Some body."
        warning = result.warnings[0]
        assert warning.severity == Severity.MINOR
        assert warning.kind == WarningKind.UNSUPPORTED_NODE
        assert warning.detail == "rst:frobnicate"


@pytest.mark.unit
class TestSpans:
    """Tests for source spans."""

    def test_spans_when_enabled(self) -> None:
        """Test that top-level blocks map back to their source lines."""
        text = "Title\n=====\n\nText."
        heading, paragraph = _parse(text, preserve_source_info=True).value.blocks
        assert text[heading.span.start : heading.span.end].startswith("Title")
        assert text[paragraph.span.start : paragraph.span.end] == "Text."

    def test_no_spans_by_default(self) -> None:
        """Test that spans are omitted unless requested."""
        assert all(block.span is None for block in _parse("Title\n=====\n\nText.").value.blocks)
