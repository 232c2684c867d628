#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_txt2tags_parser.py
"""Unit tests for the txt2tags reader.

Tests cover:
- The three-line document header
- Titles, numbered titles and labels
- Beautifiers, raw and tagged marks, links, images and e-mail addresses
- Verbatim, raw and tagged areas
- Comments, settings, separators and quotes
- Lists, definition lists and tables

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import Severity, WarningKind
from docweave.options.txt2tags import Txt2tagsOptions
from docweave.parsers.txt2tags import Txt2tagsParser


def _parse(text: str, parse_header: bool = False):
    return Txt2tagsParser(Txt2tagsOptions(parse_header=parse_header)).parse(text)


def _first(text: str):
    return _parse(text).value.blocks[0]


@pytest.mark.unit
class TestHeader:
    """Tests for the document header."""

    def test_header_lines_are_metadata(self) -> None:
        """Test title, author and date lines."""
        result = _parse("My Title\nAnn\n2024-01-01\n\nBody text.", parse_header=True)
        metadata = result.value.metadata
        assert metadata["title"] == "My Title"
        assert metadata["author"] == "Ann"
        assert metadata["date"] == "2024-01-01"
        assert [block.kind for block in result.value.blocks] == [kinds.PARAGRAPH]

    def test_blank_first_line_means_no_header(self) -> None:
        """Test that an empty first line skips the header."""
        result = _parse("\nBody text.", parse_header=True)
        assert "title" not in result.value.metadata
        assert result.value.blocks[0].text_content() == "Body text."


@pytest.mark.unit
class TestTitles:
    """Tests for titles."""

    def test_levels(self) -> None:
        """Test that the number of marks is the level."""
        result = _parse("= Title =\n\n== Sub ==")
        assert [block.get(props.LEVEL) for block in result.value.blocks] == [1, 2]

    def test_label(self) -> None:
        """Test a title label."""
        assert _first("== Sub ==[sub-id]").get(props.ID) == "sub-id"

    def test_numbered(self) -> None:
        """Test a numbered title."""
        heading = _first("+ Numbered +")
        assert heading.kind == kinds.HEADING
        assert heading.get("txt2tags:numbered") is True


@pytest.mark.unit
class TestInline:
    """Tests for inline marks."""

    def test_beautifiers(self) -> None:
        """Test bold, italic, underline, strike and monospace."""
        paragraph = _first("**b** //i// __u__ --s-- ``c``")
        styled = [child.kind for child in paragraph.children if child.kind != kinds.TEXT]
        assert styled == [kinds.STRONG, kinds.EMPHASIS, kinds.UNDERLINE, kinds.STRIKEOUT, kinds.CODE]

    def test_named_link(self) -> None:
        """Test a labelled link."""
        link = _first("[Docs http://example.com]").children[0]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "http://example.com"
        assert link.text_content() == "Docs"

    def test_image(self) -> None:
        """Test an image mark."""
        image = _first("[pic.png]").children[0]
        assert image.kind == kinds.IMAGE
        assert image.get(props.URL) == "pic.png"

    def test_linked_image(self) -> None:
        """Test an image used as a link label."""
        link = _first("[[pic.png] http://x.com]").children[0]
        assert link.kind == kinds.LINK
        assert link.children[0].kind == kinds.IMAGE

    def test_email(self) -> None:
        """Test that e-mail addresses become mailto links."""
        paragraph = _first("mail ann@example.com.")
        link = paragraph.children[1]
        assert link.get(props.URL) == "mailto:ann@example.com"
        assert paragraph.children[2].text_content() == "."

    def test_raw_mark(self) -> None:
        """Test that raw marks keep their content as text."""
        paragraph = _first('""**not bold**""')
        assert [child.kind for child in paragraph.children] == [kinds.TEXT]
        assert paragraph.text_content() == "**not bold**"

    def test_tagged_mark(self) -> None:
        """Test that tagged marks are raw inline content."""
        raw = _first("''<b>''").children[0]
        assert raw.kind == kinds.RAW_INLINE
        assert raw.get(props.FORMAT) == "txt2tags"


@pytest.mark.unit
class TestAreas:
    """Tests for verbatim, raw and tagged areas."""

    def test_verbatim(self) -> None:
        """Test a verbatim area."""
        code = _first("```\ncode here\n```")
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.CONTENT) == "code here"

    def test_one_line_verbatim(self) -> None:
        """Test a one-line verbatim area."""
        assert _first("``` x = 1").get(props.CONTENT) == "x = 1"

    def test_raw_area(self) -> None:
        """Test that a raw area is unformatted text."""
        paragraph = _first('"""\nraw **text**\n"""')
        assert paragraph.kind == kinds.PARAGRAPH
        assert paragraph.text_content() == "raw **text**"

    def test_tagged_area(self) -> None:
        """Test a tagged area."""
        raw = _first("'''\n<div/>\n'''")
        assert raw.kind == kinds.RAW_BLOCK
        assert raw.get(props.CONTENT) == "<div/>"

    def test_unterminated(self) -> None:
        """Test that an unterminated area records a major warning."""
        result = _parse("```\ncode")
        assert result.value.blocks[0].get(props.CONTENT) == "code"
        assert result.warnings[0].severity == Severity.MAJOR
        assert result.warnings[0].detail == "txt2tags:unterminated:verbatim"


@pytest.mark.unit
class TestOtherBlocks:
    """Tests for comments, separators and quotes."""

    def test_comment(self) -> None:
        """Test that comment lines are dropped."""
        assert [block.text_content() for block in _parse("% note\nText").value.blocks] == ["Text"]

    def test_comment_block(self) -> None:
        """Test a comment area."""
        assert [block.text_content() for block in _parse("%%%\nhidden\n%%%\nShown").value.blocks] == ["Shown"]

    def test_setting(self) -> None:
        """Test that settings are kept as metadata."""
        assert _parse("%!target: html\n\nText").value.metadata["txt2tags:target"] == "html"

    def test_separators(self) -> None:
        """Test thin and strong separators."""
        result = _parse("-" * 20 + "\n\n" + "=" * 20)
        thin, strong = result.value.blocks
        assert thin.kind == kinds.HORIZONTAL_RULE
        assert thin.get("txt2tags:strong") is None
        assert strong.get("txt2tags:strong") is True

    def test_quote(self) -> None:
        """Test a tab-indented quote."""
        quote = _first("\tQuoted")
        assert quote.kind == kinds.BLOCKQUOTE
        assert quote.text_content() == "Quoted"


@pytest.mark.unit
class TestListsAndTables:
    """Tests for lists and tables."""

    def test_bullet_and_numbered(self) -> None:
        """Test bullet and numbered lists."""
        assert _first("- a\n- b").get(props.ORDERED) is False
        assert _first("+ one\n+ two").get(props.ORDERED) is True

    def test_nested_by_indent(self) -> None:
        """Test that deeper indentation nests."""
        lst = _first("- a\n  - b\n- c")
        assert len(lst.children) == 2
        assert [child.kind for child in lst.children[0].children] == [kinds.PARAGRAPH, kinds.LIST]

    def test_empty_item_closes_list(self) -> None:
        """Test that a bare marker ends the list."""
        result = _parse("- a\n-\nText")
        lst, paragraph = result.value.blocks
        assert [item.text_content() for item in lst.children] == ["a"]
        assert paragraph.text_content() == "Text"

    def test_definition_list(self) -> None:
        """Test a definition list."""
        dl = _first(": Term\nDefinition text")
        assert dl.kind == kinds.DEFINITION_LIST
        assert [child.text_content() for child in dl.children] == ["Term", "Definition text"]

    def test_table_header(self) -> None:
        """Test a header row."""
        table = _first("|| A | B |\n| 1 | 2 |")
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in head.children[0].children] == ["A", "B"]
        assert [cell.text_content() for cell in row.children] == ["1", "2"]

    def test_centered_table(self) -> None:
        """Test that a leading space centers the table."""
        assert _first(" | a | b |").get(props.STYLE_ALIGN) == "center"


@pytest.mark.unit
class TestIncludes:
    """Tests for include settings."""

    def test_include_is_not_followed(self) -> None:
        """Test that an include keeps its target with a warning."""
        result = _parse("%!include: chapter.t2t\n\nText")
        div, paragraph = result.value.blocks
        assert div.get("txt2tags:unsupported") == "include"
        assert div.text_content() == "chapter.t2t"
        assert paragraph.text_content() == "Text"
        assert "txt2tags:include" not in result.value.metadata
        warning = result.warnings[0]
        assert warning.severity == Severity.MINOR
        assert warning.kind == WarningKind.UNSUPPORTED_NODE
        assert warning.detail == "txt2tags:include"
