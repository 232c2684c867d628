#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_org_parser.py
"""Unit tests for the Org-Mode reader.

Tests cover:
- Headings with TODO keywords, priorities, tags, planning and properties
- Keywords as metadata and affiliated NAME / CAPTION keywords
- Inline emphasis, verbatim, links, footnotes and scripts
- Source, quote, export and unknown blocks
- Plain lists, checkboxes, description lists and tables
- Drawers, comments and fixed-width areas

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import Severity, WarningKind
from docweave.options.org import OrgOptions
from docweave.parsers.org import OrgParser


def _parse(text: str, **options):
    return OrgParser(OrgOptions(**options) if options else None).parse(text)


def _first(text: str, **options):
    return _parse(text, **options).value.blocks[0]


@pytest.mark.unit
class TestHeadings:
    """Tests for headings and their planning data."""

    def test_todo_and_title(self) -> None:
        """Test the keyword title and a TODO heading."""
        result = _parse("#+TITLE: Notes\n\n* TODO Write docs :work:")
        heading = result.value.blocks[0]
        assert result.value.metadata["title"] == "Notes"
        assert heading.get(props.LEVEL) == 1
        assert heading.get("org:todo") == "TODO"
        assert heading.text_content() == "Write docs"
        assert "org:tags" not in heading.props

    def test_tags_preserved(self) -> None:
        """Test that tags are kept when requested."""
        heading = _first("** Meeting :work:urgent:", preserve_tags=True)
        assert heading.get(props.LEVEL) == 2
        assert heading.get("org:tags") == ["work", "urgent"]

    def test_priority(self) -> None:
        """Test a priority cookie."""
        heading = _first("* TODO [#A] Ship it")
        assert heading.get("org:priority") == "A"
        assert heading.text_content() == "Ship it"

    def test_custom_keywords(self) -> None:
        """Test that only configured keywords are recognized."""
        assert _first("* NEXT Thing", todo_keywords=("NEXT",)).get("org:todo") == "NEXT"
        heading = _first("* TODO Thing", todo_keywords=("NEXT",))
        assert heading.get("org:todo") is None
        assert heading.text_content() == "TODO Thing"

    def test_planning_line(self) -> None:
        """Test that a planning line attaches to the heading."""
        result = _parse("* Task\nSCHEDULED: <2024-01-01 Mon>\n")
        assert len(result.value.blocks) == 1
        assert result.value.blocks[0].get("org:scheduled") == "<2024-01-01 Mon>"

    def test_property_drawer(self) -> None:
        """Test that CUSTOM_ID becomes the heading id."""
        heading = _first("* Task\n:PROPERTIES:\n:CUSTOM_ID: task-1\n:Effort: 2h\n:END:\n")
        assert heading.get(props.ID) == "task-1"
        assert heading.get("org:properties") == {"custom_id": "task-1", "effort": "2h"}


@pytest.mark.unit
class TestInline:
    """Tests for inline markup."""

    def test_emphasis_markers(self) -> None:
        """Test the six emphasis and verbatim markers."""
        paragraph = _first("*bold* /it/ _u_ +s+ =code= ~v~")
        styled = [child.kind for child in paragraph.children if child.kind != kinds.TEXT]
        assert styled == [kinds.STRONG, kinds.EMPHASIS, kinds.UNDERLINE, kinds.STRIKEOUT, kinds.CODE, kinds.CODE]

    def test_link_with_description(self) -> None:
        """Test a bracket link."""
        link = _first("[[https://orgmode.org][Org]]").children[0]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "https://orgmode.org"
        assert link.text_content() == "Org"

    def test_image_link(self) -> None:
        """Test that a link to an image file is an image."""
        image = _first("[[file:img.png]]").children[0]
        assert image.kind == kinds.IMAGE
        assert image.get(props.URL) == "img.png"

    def test_footnote(self) -> None:
        """Test a footnote reference and its definition."""
        paragraph, footnote = _parse("Text[fn:1] here.\n\n[fn:1] The note.").value.blocks
        assert paragraph.children[1].kind == kinds.FOOTNOTE_REF
        assert paragraph.children[1].get(props.LABEL) == "1"
        assert footnote.kind == kinds.FOOTNOTE_DEF
        assert footnote.text_content() == "The note."

    def test_inline_footnote(self) -> None:
        """Test an inline footnote definition."""
        note = _first("Claim[fn:n:Inline note].").children[1]
        assert note.kind == kinds.FOOTNOTE_DEF
        assert note.get(props.LABEL) == "n"
        assert note.text_content() == "Inline note"

    def test_subscript(self) -> None:
        """Test a braced subscript."""
        paragraph = _first("H_{2}O")
        assert [child.kind for child in paragraph.children] == [kinds.TEXT, kinds.SUBSCRIPT, kinds.TEXT]

    def test_line_break(self) -> None:
        """Test a trailing double backslash."""
        paragraph = _first("line one \\\\\nline two")
        assert [child.kind for child in paragraph.children] == [kinds.TEXT, kinds.LINE_BREAK, kinds.TEXT]

    def test_inline_math(self) -> None:
        """Test LaTeX-style inline math."""
        math = _first("\\(x^2\\)").children[0]
        assert math.kind == kinds.MATH_INLINE
        assert math.get(props.MATH_SOURCE) == "x^2"

    def test_soft_wrap_joins_lines(self) -> None:
        """Test that paragraph lines are joined with a space."""
        assert _first("one\ntwo").text_content() == "one two"


@pytest.mark.unit
class TestBlocks:
    """Tests for greater blocks."""

    def test_src_block_with_name(self) -> None:
        """Test a named source block."""
        code = _first("#+NAME: ex\n#+BEGIN_SRC python\nprint(1)\n#+END_SRC")
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.LANGUAGE) == "python"
        assert code.get(props.CONTENT) == "print(1)"
        assert code.get(props.ID) == "ex"

    def test_quote_block(self) -> None:
        """Test a quote block."""
        quote = _first("#+BEGIN_QUOTE\nWise words.\n#+END_QUOTE")
        assert quote.kind == kinds.BLOCKQUOTE
        assert quote.text_content() == "Wise words."

    def test_export_block(self) -> None:
        """Test an export block."""
        raw = _first("#+BEGIN_EXPORT html\n<b>x</b>\n#+END_EXPORT")
        assert raw.kind == kinds.RAW_BLOCK
        assert raw.get(props.FORMAT) == "html"

    def test_comment_block_dropped(self) -> None:
        """Test that comment blocks produce nothing."""
        result = _parse("#+BEGIN_COMMENT\nhidden\n#+END_COMMENT\nShown.")
        assert [block.text_content() for block in result.value.blocks] == ["Shown."]

    def test_unknown_block(self) -> None:
        """Test that an unknown block keeps its content and warns."""
        result = _parse("#+BEGIN_FOO\ntext\n#+END_FOO")
        div = result.value.blocks[0]
        assert div.kind == kinds.DIV
        assert div.get("org:unsupported") == "foo"
        assert div.text_content() == "text"
        assert result.warnings[0].severity == Severity.MINOR
        assert result.warnings[0].detail == "org:foo"

    def test_unterminated_block(self) -> None:
        """Test that an unterminated block runs to the end and records a major warning."""
        result = _parse("#+BEGIN_SRC\ncode")
        assert result.value.blocks[0].get(props.CONTENT) == "code"
        warning = result.warnings[0]
        assert warning.severity == Severity.MAJOR
        assert warning.kind == WarningKind.FEATURE_LOST
        assert warning.detail == "org:unterminated:SRC"


@pytest.mark.unit
class TestListsAndTables:
    """Tests for plain lists and tables."""

    def test_unordered_and_ordered(self) -> None:
        """Test bullet and numbered lists."""
        assert _first("- a\n- b").get(props.ORDERED) is False
        assert _first("1. one\n2. two").get(props.ORDERED) is True

    def test_checkboxes(self) -> None:
        """Test checkbox state on items."""
        lst = _first("- [X] done\n- [ ] todo")
        assert [item.get(props.CHECKED) for item in lst.children] == [True, False]
        assert lst.children[0].text_content() == "done"

    def test_nested_list(self) -> None:
        """Test an indented sub-list."""
        lst = _first("- a\n  - b\n- c")
        assert len(lst.children) == 2
        assert [child.kind for child in lst.children[0].children] == [kinds.PARAGRAPH, kinds.LIST]

    def test_description_list(self) -> None:
        """Test a description list."""
        dl = _first("- Term :: Definition")
        assert dl.kind == kinds.DEFINITION_LIST
        assert [child.text_content() for child in dl.children] == ["Term", "Definition"]

    def test_table_with_header(self) -> None:
        """Test a table whose first row is separated by a rule."""
        table = _first("| a | b |\n|---+---|\n| 1 | 2 |")
        assert table.kind == kinds.TABLE
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in row.children] == ["1", "2"]

    def test_table_caption(self) -> None:
        """Test that a caption keyword attaches to the table."""
        table = _first("#+CAPTION: Data\n| a | b |")
        assert table.children[0].kind == kinds.CAPTION
        assert table.children[0].text_content() == "Data"


@pytest.mark.unit
class TestOtherElements:
    """Tests for drawers, comments, rules and figures."""

    def test_drawer_omitted(self) -> None:
        """Test that a drawer is dropped with an informational warning."""
        result = _parse(":LOGBOOK:\nstuff\n:END:\nText")
        assert [block.kind for block in result.value.blocks] == [kinds.PARAGRAPH]
        assert result.warnings[0].severity == Severity.INFO
        assert result.warnings[0].detail == "org:drawer:logbook"

    def test_comment_line(self) -> None:
        """Test that comment lines are dropped."""
        assert [block.text_content() for block in _parse("# note\nText").value.blocks] == ["Text"]

    def test_horizontal_rule(self) -> None:
        """Test five dashes."""
        assert _first("-----").kind == kinds.HORIZONTAL_RULE

    def test_fixed_width(self) -> None:
        """Test a fixed-width area."""
        code = _first(": code line")
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.CONTENT) == "code line"

    def test_captioned_image_is_figure(self) -> None:
        """Test that a captioned image paragraph becomes a figure."""
        figure = _first("#+CAPTION: A cat\n[[./cat.png]]")
        assert figure.kind == kinds.FIGURE
        assert [child.kind for child in figure.children] == [kinds.IMAGE, kinds.CAPTION]

    def test_keyword_metadata(self) -> None:
        """Test that other keywords become metadata."""
        assert _parse("#+AUTHOR: Ann\n\nText").value.metadata["author"] == "Ann"
