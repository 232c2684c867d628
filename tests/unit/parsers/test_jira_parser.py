#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_jira_parser.py
"""Unit tests for the Jira wiki markup reader.

Tests cover:
- hN. headings, bq. quotes and rules
- Inline markers, monospace, colors, links, mentions and images
- {code}, {noformat}, {quote} and panel macros
- Marker-depth lists and header cells in tables

"""

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import Severity, WarningKind
from docweave.options.jira import JiraOptions
from docweave.parsers.jira import JiraParser


def _parse(text: str, **options):
    return JiraParser(JiraOptions(**options) if options else None).parse(text)


def _first(text: str, **options):
    return _parse(text, **options).value.blocks[0]


@pytest.mark.unit
class TestBlocks:
    """Tests for simple block elements."""

    def test_heading(self) -> None:
        """Test an h2 heading."""
        heading = _first("h2. Title")
        assert heading.kind == kinds.HEADING
        assert heading.get(props.LEVEL) == 2
        assert heading.text_content() == "Title"

    def test_paragraph_lines_join(self) -> None:
        """Test that paragraph lines are joined with a space."""
        assert _first("one\ntwo").text_content() == "one two"

    def test_bq(self) -> None:
        """Test a one-line quote."""
        quote = _first("bq. Quoted")
        assert quote.kind == kinds.BLOCKQUOTE
        assert quote.text_content() == "Quoted"

    def test_rule(self) -> None:
        """Test four dashes."""
        assert _first("----").kind == kinds.HORIZONTAL_RULE


@pytest.mark.unit
class TestInline:
    """Tests for inline markup."""

    def test_markers(self) -> None:
        """Test every single-character marker plus monospace and citation."""
        paragraph = _first("*bold* _it_ -del- +ins+ ^sup^ ~sub~ {{mono}} ??cite??")
        styled = [child.kind for child in paragraph.children if child.kind != kinds.TEXT]
        assert styled == [
            kinds.STRONG,
            kinds.EMPHASIS,
            kinds.STRIKEOUT,
            kinds.UNDERLINE,
            kinds.SUPERSCRIPT,
            kinds.SUBSCRIPT,
            kinds.CODE,
            kinds.CITE,
        ]

    def test_marker_inside_word_is_literal(self) -> None:
        """Test that markers within words are plain text."""
        paragraph = _first("snake_case_name")
        assert [child.kind for child in paragraph.children] == [kinds.TEXT]

    def test_labelled_link(self) -> None:
        """Test a link with a label."""
        link = _first("[Google|https://google.com]").children[0]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "https://google.com"
        assert link.text_content() == "Google"

    def test_bare_link(self) -> None:
        """Test a bracketed URL without a label."""
        link = _first("[https://example.com]").children[0]
        assert link.text_content() == "https://example.com"

    def test_mention(self) -> None:
        """Test a user mention."""
        mention = _first("Ping [~jdoe] please").children[1]
        assert mention.kind == kinds.SPAN
        assert mention.get("jira:mention") == "jdoe"
        assert mention.text_content() == "@jdoe"

    def test_image(self) -> None:
        """Test an image with alt text."""
        image = _first("!pic.png|alt=Pic!").children[0]
        assert image.kind == kinds.IMAGE
        assert image.get(props.URL) == "pic.png"
        assert image.get(props.ALT) == "Pic"

    def test_color(self) -> None:
        """Test colored text."""
        span = _first("{color:red}hot{color}").children[0]
        assert span.kind == kinds.SPAN
        assert span.get(props.STYLE_COLOR) == "red"
        assert span.text_content() == "hot"

    def test_line_break(self) -> None:
        """Test a double backslash."""
        paragraph = _first("a\\\\b")
        assert [child.kind for child in paragraph.children] == [kinds.TEXT, kinds.LINE_BREAK, kinds.TEXT]


@pytest.mark.unit
class TestMacros:
    """Tests for block macros."""

    def test_code(self) -> None:
        """Test a code macro with a language."""
        code = _first("{code:python}\nprint(1)\n{code}")
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.LANGUAGE) == "python"
        assert code.get(props.CONTENT) == "print(1)"

    def test_code_named_params(self) -> None:
        """Test named language and title parameters."""
        code = _first("{code:title=Example.java|language=java}\nclass A {}\n{code}")
        assert code.get(props.LANGUAGE) == "java"
        assert code.get(props.TITLE) == "Example.java"

    def test_noformat_is_verbatim(self) -> None:
        """Test that noformat content is not scanned."""
        code = _first("{noformat}\nraw *text*\n{noformat}")
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.CONTENT) == "raw *text*"
        assert code.get(props.LANGUAGE) is None

    def test_quote(self) -> None:
        """Test a quote macro."""
        quote = _first("{quote}\nSaid it.\n{quote}")
        assert quote.kind == kinds.BLOCKQUOTE
        assert quote.text_content() == "Said it."

    def test_panel(self) -> None:
        """Test a panel with a title and colors."""
        panel = _first("{panel:title=My Panel|bgcolor=#fff}\nBody\n{panel}")
        assert panel.kind == kinds.DIV
        assert panel.get("jira:type") == "panel"
        assert panel.get(props.TITLE) == "My Panel"
        assert panel.get("jira:bgcolor") == "#fff"
        assert [child.kind for child in panel.children] == [kinds.PARAGRAPH]

    def test_panel_title_as_heading(self) -> None:
        """Test that the title can be emitted as a heading."""
        panel = _first("{panel:title=My Panel}\nBody\n{panel}", panel_title_as_heading=True)
        assert panel.children[0].kind == kinds.HEADING
        assert panel.children[0].get(props.LEVEL) == 4

    def test_info_title(self) -> None:
        """Test that the bare parameter of an info macro is its title."""
        info = _first("{info:Heads up}\nBody\n{info}")
        assert info.get("jira:type") == "info"
        assert info.get(props.TITLE) == "Heads up"

    def test_unterminated(self) -> None:
        """Test that an unterminated macro records a major warning."""
        result = _parse("{code}\nx")
        assert result.value.blocks[0].get(props.CONTENT) == "x"
        assert result.warnings[0].severity == Severity.MAJOR
        assert result.warnings[0].detail == "jira:unterminated:code"


@pytest.mark.unit
class TestListsAndTables:
    """Tests for lists and tables."""

    def test_nested_bullets(self) -> None:
        """Test that marker depth is nesting depth."""
        lst = _first("* a\n** b\n* c")
        assert lst.kind == kinds.LIST
        assert len(lst.children) == 2
        assert [child.kind for child in lst.children[0].children] == [kinds.PARAGRAPH, kinds.LIST]

    def test_numbered(self) -> None:
        """Test a numbered list."""
        lst = _first("# one\n# two")
        assert lst.get(props.ORDERED) is True
        assert len(lst.children) == 2

    def test_table_header_row(self) -> None:
        """Test a header row followed by a body row."""
        table = _first("||A||B||\n|1|2|")
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in row.children] == ["1", "2"]

    def test_row_header_cell(self) -> None:
        """Test a header cell inside a body row."""
        table = _first("||Name|Ann|")
        row = table.children[0]
        assert [cell.kind for cell in row.children] == [kinds.TABLE_HEADER, kinds.TABLE_CELL]

    def test_link_pipe_not_a_cell(self) -> None:
        """Test that a pipe inside a link does not split the cell."""
        table = _first("|[Site|https://example.com]|x|")
        assert len(table.children[0].children) == 2


@pytest.mark.unit
class TestUnknownMacros:
    """Tests for block macros outside the supported set."""

    def test_paired_macro(self) -> None:
        """Test that a paired unknown macro keeps its body as blocks."""
        result = _parse("{expand:Details}\nhidden body\n{expand}")
        div = result.value.blocks[0]
        assert [block.kind for block in result.value.blocks] == [kinds.DIV]
        assert div.get("jira:unsupported") == "expand"
        assert div.get(props.TITLE) == "Details"
        assert div.children[0].kind == kinds.PARAGRAPH
        assert div.text_content() == "hidden body"
        warning = result.warnings[0]
        assert warning.severity == Severity.MINOR
        assert warning.kind == WarningKind.UNSUPPORTED_NODE
        assert warning.detail == "jira:expand"

    def test_single_macro(self) -> None:
        """Test that a macro without a closing tag falls back to its name."""
        result = _parse("{toc}\n\nText")
        assert [block.kind for block in result.value.blocks] == [kinds.DIV, kinds.PARAGRAPH]
        assert result.value.blocks[0].text_content() == "toc"
        assert result.warnings[0].detail == "jira:toc"

    def test_color_is_not_a_block_macro(self) -> None:
        """Test that a paragraph opening with a color macro stays a paragraph."""
        result = _parse("{color:red}Red{color} text")
        assert result.value.blocks[0].kind == kinds.PARAGRAPH
        assert result.warnings == ()
