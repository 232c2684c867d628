#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_pandoc_json_parser.py
"""Unit tests for the pandoc JSON reader.

Tests cover:
- Block elements: paragraphs, headers, code, lists, tables and figures
- Inline elements: styles, links, images, math, notes and citations
- Attribute triples copied onto nodes
- Metadata flattening
- Malformed and unknown elements, and invalid documents

"""

import json

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import Severity, WarningKind
from docweave.exceptions import InvalidInputError
from docweave.options.pandoc_json import PandocJsonOptions
from docweave.parsers.pandoc_json import PandocJsonParser

NO_ATTR = ["", [], []]


def _doc(blocks, meta=None) -> str:
    return json.dumps({"pandoc-api-version": [1, 23, 1], "meta": meta or {}, "blocks": blocks})


def _para(*inlines):
    return {"t": "Para", "c": list(inlines)}


def _str(text: str):
    return {"t": "Str", "c": text}


def _parse(blocks, meta=None, **options):
    return PandocJsonParser(PandocJsonOptions(**options) if options else None).parse(_doc(blocks, meta))


def _first(block):
    return _parse([block]).value.blocks[0]


def _cell(text: str, align: str = "AlignDefault", rowspan: int = 1, colspan: int = 1):
    return [NO_ATTR, {"t": align}, rowspan, colspan, [{"t": "Plain", "c": [_str(text)]}]]


def _row(*cells):
    return [NO_ATTR, list(cells)]


@pytest.mark.unit
class TestBlocks:
    """Tests for block elements."""

    def test_paragraph(self) -> None:
        """Test that words and spaces merge into one text node."""
        paragraph = _first(_para(_str("Hello"), {"t": "Space"}, _str("world")))
        assert paragraph.kind == kinds.PARAGRAPH
        assert [child.kind for child in paragraph.children] == [kinds.TEXT]
        assert paragraph.text_content() == "Hello world"

    def test_header_with_attributes(self) -> None:
        """Test a header carrying an id, classes and key-value pairs."""
        heading = _first({"t": "Header", "c": [2, ["intro", ["main"], [["lang", "en"]]], [_str("Intro")]]})
        assert heading.get(props.LEVEL) == 2
        assert heading.get(props.ID) == "intro"
        assert heading.get(props.CLASSES) == "main"
        assert heading.get("pandoc:attributes") == {"lang": "en"}

    def test_code_block(self) -> None:
        """Test that the first class names the language."""
        code = _first({"t": "CodeBlock", "c": [["", ["python", "numberLines"], []], "print(1)"]})
        assert code.kind == kinds.CODE_BLOCK
        assert code.get(props.LANGUAGE) == "python"
        assert code.get(props.CONTENT) == "print(1)"
        assert code.get(props.CLASSES) is None

    def test_bullet_list(self) -> None:
        """Test a tight bullet list."""
        lst = _first({"t": "BulletList", "c": [[{"t": "Plain", "c": [_str("a")]}], [{"t": "Plain", "c": [_str("b")]}]]})
        assert lst.get(props.ORDERED) is False
        assert lst.get(props.TIGHT) is True
        assert [item.text_content() for item in lst.children] == ["a", "b"]

    def test_loose_list(self) -> None:
        """Test that Para items make a loose list."""
        assert _first({"t": "BulletList", "c": [[_para(_str("a"))]]}).get(props.TIGHT) is False

    def test_ordered_list(self) -> None:
        """Test an ordered list with a start number and style."""
        lst = _first(
            {
                "t": "OrderedList",
                "c": [[3, {"t": "LowerAlpha"}, {"t": "Period"}], [[{"t": "Plain", "c": [_str("x")]}]]],
            }
        )
        assert lst.get(props.ORDERED) is True
        assert lst.get(props.START) == 3
        assert lst.get(props.LIST_STYLE) == "lower-alpha"

    def test_definition_list(self) -> None:
        """Test a term with two definitions."""
        dl = _first({"t": "DefinitionList", "c": [[[_str("Term")], [[_para(_str("One"))], [_para(_str("Two"))]]]]})
        assert [child.kind for child in dl.children] == [
            kinds.DEFINITION_TERM,
            kinds.DEFINITION_DESC,
            kinds.DEFINITION_DESC,
        ]

    def test_block_quote_and_rule(self) -> None:
        """Test a block quote and a horizontal rule."""
        result = _parse([{"t": "BlockQuote", "c": [_para(_str("q"))]}, {"t": "HorizontalRule"}])
        assert [block.kind for block in result.value.blocks] == [kinds.BLOCKQUOTE, kinds.HORIZONTAL_RULE]

    def test_div(self) -> None:
        """Test a div with classes."""
        div = _first({"t": "Div", "c": [["", ["note"], []], [_para(_str("Inside"))]]})
        assert div.kind == kinds.DIV
        assert div.get(props.CLASSES) == "note"
        assert div.text_content() == "Inside"

    def test_raw_block(self) -> None:
        """Test raw block content."""
        raw = _first({"t": "RawBlock", "c": ["html", "<hr>"]})
        assert raw.kind == kinds.RAW_BLOCK
        assert raw.get(props.FORMAT) == "html"
        assert raw.get(props.CONTENT) == "<hr>"

    def test_line_block(self) -> None:
        """Test that line block lines are joined by line breaks."""
        paragraph = _first({"t": "LineBlock", "c": [[_str("one")], [_str("two")]]})
        assert paragraph.get("pandoc:line_block") is True
        assert paragraph.text_content() == "one\ntwo"

    def test_null_block(self) -> None:
        """Test that Null produces nothing."""
        assert _parse([{"t": "Null"}]).value.blocks == []


@pytest.mark.unit
class TestTablesAndFigures:
    """Tests for tables and figures."""

    TABLE = {
        "t": "Table",
        "c": [
            NO_ATTR,
            [None, [{"t": "Plain", "c": [_str("Data")]}]],
            [[{"t": "AlignLeft"}, {"t": "ColWidthDefault"}], [{"t": "AlignRight"}, {"t": "ColWidthDefault"}]],
            [NO_ATTR, [_row(_cell("A"), _cell("B"))]],
            [[NO_ATTR, 0, [], [_row(_cell("1"), _cell("2")), _row(_cell("wide", colspan=2))]]],
            [NO_ATTR, []],
        ],
    }

    def test_table_structure(self) -> None:
        """Test caption, head and body rows."""
        table = _first(self.TABLE)
        caption, head, first, second = table.children
        assert caption.kind == kinds.CAPTION
        assert caption.text_content() == "Data"
        assert head.kind == kinds.TABLE_HEAD
        assert [cell.text_content() for cell in head.children[0].children] == ["A", "B"]
        assert [cell.text_content() for cell in first.children] == ["1", "2"]
        assert second.children[0].get(props.COLSPAN) == 2

    def test_column_alignment(self) -> None:
        """Test that column specs align cells."""
        first = _first(self.TABLE).children[2]
        assert [cell.get(props.ALIGN) for cell in first.children] == ["left", "right"]

    def test_plain_cell_is_inline(self) -> None:
        """Test that a single Plain cell holds inline content directly."""
        first = _first(self.TABLE).children[2]
        assert first.children[0].children[0].kind == kinds.TEXT

    def test_figure(self) -> None:
        """Test that the figure image is unwrapped and captioned."""
        image = {"t": "Image", "c": [NO_ATTR, [_str("cat")], ["cat.png", ""]]}
        figure = _first(
            {
                "t": "Figure",
                "c": [["fig", [], []], [None, [{"t": "Plain", "c": [_str("A cat")]}]], [{"t": "Plain", "c": [image]}]],
            }
        )
        assert figure.kind == kinds.FIGURE
        assert figure.get(props.ID) == "fig"
        img, caption = figure.children
        assert img.kind == kinds.IMAGE
        assert img.get(props.URL) == "cat.png"
        assert img.get(props.ALT) == "cat"
        assert caption.text_content() == "A cat"


@pytest.mark.unit
class TestInlines:
    """Tests for inline elements."""

    def test_styles(self) -> None:
        """Test the simple wrapping inlines."""
        paragraph = _first(
            _para(
                {"t": "Emph", "c": [_str("e")]},
                {"t": "Strong", "c": [_str("s")]},
                {"t": "Strikeout", "c": [_str("x")]},
                {"t": "SmallCaps", "c": [_str("c")]},
            )
        )
        assert [child.kind for child in paragraph.children] == [
            kinds.EMPHASIS,
            kinds.STRONG,
            kinds.STRIKEOUT,
            kinds.SMALL_CAPS,
        ]

    def test_breaks(self) -> None:
        """Test soft and hard breaks."""
        paragraph = _first(_para(_str("a"), {"t": "SoftBreak"}, _str("b"), {"t": "LineBreak"}, _str("c")))
        assert paragraph.text_content() == "a b\nc"

    def test_quoted(self) -> None:
        """Test quote type."""
        quoted = _first(_para({"t": "Quoted", "c": [{"t": "SingleQuote"}, [_str("hi")]]})).children[0]
        assert quoted.kind == kinds.QUOTED
        assert quoted.get(props.QUOTE_TYPE) == "single"

    def test_code(self) -> None:
        """Test inline code."""
        code = _first(_para({"t": "Code", "c": [NO_ATTR, "x = 1"]})).children[0]
        assert code.kind == kinds.CODE
        assert code.get(props.CONTENT) == "x = 1"

    def test_link(self) -> None:
        """Test a link with a title."""
        link = _first(_para({"t": "Link", "c": [NO_ATTR, [_str("Site")], ["http://x.com", "Tip"]]})).children[0]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "http://x.com"
        assert link.get(props.TITLE) == "Tip"
        assert link.text_content() == "Site"

    def test_link_without_title(self) -> None:
        """Test that an empty title is not set."""
        link = _first(_para({"t": "Link", "c": [NO_ATTR, [_str("Site")], ["http://x.com", ""]]})).children[0]
        assert link.get(props.TITLE) is None

    def test_math(self) -> None:
        """Test inline and display math."""
        paragraph = _first(
            _para(
                {"t": "Math", "c": [{"t": "InlineMath"}, "x^2"]},
                {"t": "Math", "c": [{"t": "DisplayMath"}, "E = mc^2"]},
            )
        )
        inline, display = paragraph.children
        assert inline.kind == kinds.MATH_INLINE
        assert inline.get(props.MATH_SOURCE) == "x^2"
        assert display.kind == kinds.MATH_DISPLAY

    def test_raw_inline(self) -> None:
        """Test raw inline content."""
        raw = _first(_para({"t": "RawInline", "c": ["tex", "\\LaTeX"]})).children[0]
        assert raw.kind == kinds.RAW_INLINE
        assert raw.get(props.FORMAT) == "tex"

    def test_notes_numbered(self) -> None:
        """Test that notes become inline definitions numbered in order."""
        paragraph = _first(
            _para(
                _str("a"),
                {"t": "Note", "c": [_para(_str("first"))]},
                _str("b"),
                {"t": "Note", "c": [_para(_str("second"))]},
            )
        )
        notes = [child for child in paragraph.children if child.kind == kinds.FOOTNOTE_DEF]
        assert [note.get(props.LABEL) for note in notes] == ["1", "2"]
        assert notes[1].text_content() == "second"

    def test_span(self) -> None:
        """Test a span with an id."""
        span = _first(_para({"t": "Span", "c": [["s1", [], []], [_str("x")]]})).children[0]
        assert span.kind == kinds.SPAN
        assert span.get(props.ID) == "s1"

    def test_cite(self) -> None:
        """Test that citation ids are joined into the label."""
        citations = [{"citationId": "knuth"}, {"citationId": "lamport"}]
        cite = _first(_para({"t": "Cite", "c": [citations, [_str("[@knuth; @lamport]")]]})).children[0]
        assert cite.kind == kinds.CITE
        assert cite.get(props.LABEL) == "knuth,lamport"
        assert cite.text_content() == "[@knuth; @lamport]"


@pytest.mark.unit
class TestMetadata:
    """Tests for metadata flattening."""

    META = {
        "title": {"t": "MetaInlines", "c": [_str("My"), {"t": "Space"}, {"t": "Emph", "c": [_str("Doc")]}]},
        "draft": {"t": "MetaBool", "c": True},
        "version": {"t": "MetaString", "c": "1.0"},
        "author": {"t": "MetaList", "c": [{"t": "MetaInlines", "c": [_str("Ann")]}, {"t": "MetaString", "c": "Bob"}]},
        "extra": {"t": "MetaMap", "c": {}},
    }

    def test_values_flattened(self) -> None:
        """Test that meta values become strings."""
        metadata = _parse([], self.META).value.metadata
        assert metadata["title"] == "My Doc"
        assert metadata["draft"] == "true"
        assert metadata["version"] == "1.0"
        assert metadata["author"] == "Ann, Bob"
        assert "extra" not in metadata

    def test_list_separator(self) -> None:
        """Test the configurable list separator."""
        metadata = _parse([], self.META, meta_list_separator="; ").value.metadata
        assert metadata["author"] == "Ann; Bob"

    def test_meta_blocks(self) -> None:
        """Test that block metadata keeps paragraph breaks."""
        meta = {"abstract": {"t": "MetaBlocks", "c": [_para(_str("One")), _para(_str("Two"))]}}
        assert _parse([], meta).value.metadata["abstract"] == "One\n\nTwo"


@pytest.mark.unit
class TestDegradation:
    """Tests for malformed, unknown and invalid input."""

    def test_unknown_block(self) -> None:
        """Test that an unknown block type is dropped with a warning."""
        result = _parse([{"t": "Mystery", "c": []}, _para(_str("kept"))])
        assert [block.text_content() for block in result.value.blocks] == ["kept"]
        warning = result.warnings[0]
        assert warning.severity == Severity.MINOR
        assert warning.kind == WarningKind.UNSUPPORTED_NODE
        assert warning.detail == "pandoc:Mystery"

    def test_unknown_inline(self) -> None:
        """Test that an unknown inline type is dropped with a warning."""
        result = _parse([_para(_str("a"), {"t": "Wobble"})])
        assert result.value.blocks[0].text_content() == "a"
        assert result.warnings[0].detail == "pandoc:Wobble"

    def test_malformed_header(self) -> None:
        """Test that a header with the wrong shape is dropped."""
        result = _parse([{"t": "Header", "c": ["one", NO_ATTR, []]}])
        assert result.value.blocks == []
        assert result.warnings[0].kind == WarningKind.SIMPLIFIED
        assert result.warnings[0].detail == "pandoc:Header"

    def test_malformed_inline_keeps_paragraph(self) -> None:
        """Test that a malformed inline drops only itself."""
        result = _parse([_para(_str("a"), {"t": "Str", "c": 5})])
        assert result.value.blocks[0].text_content() == "a"
        assert result.warnings[0].detail == "pandoc:Str"

    def test_nesting_limit(self) -> None:
        """Test that elements nested past the limit are dropped once with a major warning."""
        block = _para(_str("deep"))
        for _ in range(5):
            block = {"t": "BlockQuote", "c": [block]}
        result = _parse([block], max_nesting_depth=3)
        assert "deep" not in result.value.blocks[0].text_content()
        assert [warning.severity for warning in result.warnings] == [Severity.MAJOR]

    def test_invalid_json(self) -> None:
        """Test that invalid JSON raises."""
        with pytest.raises(InvalidInputError):
            PandocJsonParser().parse("{not json")

    def test_missing_blocks(self) -> None:
        """Test that a document without blocks raises."""
        with pytest.raises(InvalidInputError, match="blocks"):
            PandocJsonParser().parse(json.dumps({"meta": {}}))
