#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/parsers/test_fb2_parser.py
"""Unit tests for the defusedxml-backed FB2 reader.

Tests cover:
- Metadata from title-info, document-info and publish-info
- Bodies and nested sections as divs with depth-based headings
- Paragraph inline markup, links and note references
- Notes bodies as footnote definitions
- Binaries as resources and images referring to them
- Poems, tables and epigraphs
- Zipped documents and invalid input

"""

import io
import zipfile

import pytest

from docweave.ast import kinds, props
from docweave.ast.fidelity import WarningKind
from docweave.exceptions import InvalidInputError
from docweave.options.fb2 import Fb2Options
from docweave.parsers.fb2 import Fb2Parser

FB2_HEADER = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0" xmlns:l="http://www.w3.org/1999/xlink">\n'
)

DESCRIPTION = """
<description>
  <title-info>
    <genre>sf</genre>
    <author><first-name>Ann</first-name><last-name>Smith</last-name></author>
    <book-title>The Book</book-title>
    <lang>en</lang>
    <date value="2024-01-01">2024</date>
    <keywords>space, ships</keywords>
  </title-info>
  <document-info><id>book-1</id></document-info>
  <publish-info><publisher>Press</publisher></publish-info>
</description>
"""


def _fb2(body: str, extra: str = "", description: str = "") -> bytes:
    return (FB2_HEADER + description + body + extra + "</FictionBook>").encode("utf-8")


def _parse(data: bytes, **options):
    return Fb2Parser(Fb2Options(**options) if options else None).parse(data)


def _main_body(data: bytes, **options):
    return _parse(data, **options).value.blocks[0]


@pytest.mark.unit
class TestMetadata:
    """Tests for description metadata."""

    def test_title_info(self) -> None:
        """Test title, author, language, genre, keywords and date."""
        metadata = _parse(_fb2("<body><section><p>x</p></section></body>", description=DESCRIPTION)).value.metadata
        assert metadata["title"] == "The Book"
        assert metadata["author"] == "Ann Smith"
        assert metadata["lang"] == "en"
        assert metadata["genre"] == ["sf"]
        assert metadata["keywords"] == ["space", "ships"]
        assert metadata["date"] == "2024-01-01"

    def test_document_and_publish_info(self) -> None:
        """Test identifier and publisher."""
        metadata = _parse(_fb2("<body/>", description=DESCRIPTION)).value.metadata
        assert metadata["identifier"] == "book-1"
        assert metadata["publisher"] == "Press"

    def test_metadata_disabled(self) -> None:
        """Test that metadata can be switched off."""
        result = _parse(_fb2("<body/>", description=DESCRIPTION), extract_metadata=False)
        assert "title" not in result.value.metadata


@pytest.mark.unit
class TestStructure:
    """Tests for bodies, sections and blocks."""

    def test_body_and_sections(self) -> None:
        """Test that section titles become headings at the section depth."""
        body = _main_body(
            _fb2(
                "<body><section id='ch1'><title><p>Chapter</p></title>"
                "<section><title><p>Part</p></title><p>Text</p></section></section></body>"
            )
        )
        assert body.kind == kinds.DIV
        assert body.get("fb2:body") == "main"
        chapter = body.children[0]
        assert chapter.get(props.CLASSES) == "section"
        assert chapter.get(props.ID) == "ch1"
        heading, part = chapter.children
        assert heading.get(props.LEVEL) == 2
        assert part.children[0].get(props.LEVEL) == 3
        assert part.children[1].text_content() == "Text"

    def test_title_paragraphs_joined_by_break(self) -> None:
        """Test a multi-paragraph title."""
        body = _main_body(_fb2("<body><title><p>One</p><p>Two</p></title></body>"))
        heading = body.children[0]
        assert heading.get(props.LEVEL) == 1
        assert [child.kind for child in heading.children] == [kinds.TEXT, kinds.LINE_BREAK, kinds.TEXT]

    def test_blocks(self) -> None:
        """Test empty lines, subtitles, cites and epigraphs."""
        body = _main_body(
            _fb2(
                "<body><section><empty-line/><subtitle>Sub</subtitle>"
                "<cite><p>Quoted</p><text-author>Ann</text-author></cite>"
                "<epigraph><p>Motto</p></epigraph></section></body>"
            )
        )
        empty, subtitle, cite, epigraph = body.children[0].children
        assert empty.get("fb2:empty_line") is True
        assert subtitle.kind == kinds.HEADING
        assert cite.kind == kinds.BLOCKQUOTE
        assert cite.children[1].get("fb2:type") == "text-author"
        assert epigraph.get("fb2:type") == "epigraph"

    def test_poem(self) -> None:
        """Test that verse lines are joined by line breaks."""
        body = _main_body(_fb2("<body><poem><stanza><v>Line one</v><v>Line two</v></stanza></poem></body>"))
        poem = body.children[0]
        assert poem.get("fb2:type") == "poem"
        lines = poem.children[0].children[0]
        assert [child.kind for child in lines.children] == [kinds.SPAN, kinds.LINE_BREAK, kinds.SPAN]

    def test_table(self) -> None:
        """Test a table with a header row and a colspan."""
        body = _main_body(
            _fb2("<body><table><tr><th>A</th><th>B</th></tr><tr><td colspan='2'>wide</td></tr></table></body>")
        )
        table = body.children[0]
        head, row = table.children
        assert head.kind == kinds.TABLE_HEAD
        assert row.children[0].get(props.COLSPAN) == 2

    def test_unknown_element(self) -> None:
        """Test that an unknown block keeps its text with a warning."""
        result = _parse(_fb2("<body><section><widget>Kept</widget></section></body>"))
        section = result.value.blocks[0].children[0]
        assert section.children[0].text_content() == "Kept"
        assert result.warnings[0].kind == WarningKind.UNSUPPORTED_NODE
        assert result.warnings[0].detail == "fb2:widget"


@pytest.mark.unit
class TestInline:
    """Tests for inline markup."""

    def test_styles(self) -> None:
        """Test emphasis, strong, strikethrough, sub, sup and code."""
        body = _main_body(
            _fb2(
                "<body><p><emphasis>e</emphasis> <strong>s</strong> <strikethrough>x</strikethrough> "
                "<sub>1</sub> <sup>2</sup> <code>c</code></p></body>"
            )
        )
        styled = [child.kind for child in body.children[0].children if child.kind != kinds.TEXT]
        assert styled == [
            kinds.EMPHASIS,
            kinds.STRONG,
            kinds.STRIKEOUT,
            kinds.SUBSCRIPT,
            kinds.SUPERSCRIPT,
            kinds.CODE,
        ]

    def test_whitespace_collapsed(self) -> None:
        """Test that XML whitespace collapses to single spaces."""
        body = _main_body(_fb2("<body><p>  one\n   two  </p></body>"))
        assert body.children[0].text_content() == "one two"

    def test_link(self) -> None:
        """Test an external link."""
        body = _main_body(_fb2('<body><p><a l:href="http://example.com">Site</a></p></body>'))
        link = body.children[0].children[0]
        assert link.kind == kinds.LINK
        assert link.get(props.URL) == "http://example.com"
        assert link.text_content() == "Site"


@pytest.mark.unit
class TestNotes:
    """Tests for notes bodies."""

    SOURCE = _fb2(
        '<body><p>Claim<a l:href="#n1" type="note">1</a></p></body>'
        '<body name="notes"><section id="n1"><title><p>1</p></title><p>The note.</p></section></body>'
    )

    def test_note_reference(self) -> None:
        """Test that a note link is a footnote reference."""
        body = _main_body(self.SOURCE)
        ref = body.children[0].children[1]
        assert ref.kind == kinds.FOOTNOTE_REF
        assert ref.get(props.LABEL) == "n1"

    def test_note_definition(self) -> None:
        """Test that note sections become footnote definitions without their titles."""
        notes = _parse(self.SOURCE).value.blocks[1]
        assert notes.get("fb2:body") == "notes"
        definition = notes.children[0]
        assert definition.kind == kinds.FOOTNOTE_DEF
        assert definition.get(props.LABEL) == "n1"
        assert definition.text_content() == "The note."

    def test_notes_excluded(self) -> None:
        """Test that notes can be left out."""
        assert len(_parse(self.SOURCE, include_notes=False).value.blocks) == 1


@pytest.mark.unit
class TestBinaries:
    """Tests for embedded binaries."""

    SOURCE = _fb2(
        '<body><image l:href="#pic.png" title="A picture"/></body>',
        extra='<binary id="pic.png" content-type="image/png">aGk=</binary>',
    )

    def test_binary_resource(self) -> None:
        """Test that binaries are decoded into resources."""
        document = _parse(self.SOURCE).value
        resource = document.resource("pic.png")
        assert resource is not None
        assert resource.mime_type == "image/png"
        assert resource.data == b"hi"

    def test_block_image_figure(self) -> None:
        """Test that a block image is a figure referring to the resource."""
        figure = _main_body(self.SOURCE).children[0]
        assert figure.kind == kinds.FIGURE
        image, caption = figure.children
        assert image.get(props.RESOURCE) == "pic.png"
        assert caption.text_content() == "A picture"

    def test_binaries_not_extracted(self) -> None:
        """Test that binaries can be skipped."""
        document = _parse(self.SOURCE, extract_binaries=False).value
        assert document.resources == {}
        assert document.blocks[0].children[0].children[0].get(props.RESOURCE) is None

    def test_invalid_base64(self) -> None:
        """Test that an undecodable binary records a warning."""
        data = _fb2("<body/>", extra='<binary id="bad" content-type="image/png">!!!</binary>')
        result = _parse(data)
        assert result.value.resources == {}
        assert result.warnings[0].kind == WarningKind.RESOURCE_FAILED

    def test_missing_binary(self) -> None:
        """Test that an image pointing at a missing binary records a warning."""
        result = _parse(_fb2('<body><p><image l:href="#nope"/></p></body>'))
        assert result.warnings[0].detail == "fb2:binary:nope"


@pytest.mark.unit
class TestInput:
    """Tests for zipped and invalid input."""

    def test_zipped(self) -> None:
        """Test that a zipped FB2 is read."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("book.fb2", _fb2("<body><p>Zipped</p></body>"))
        body = _main_body(buffer.getvalue())
        assert body.children[0].text_content() == "Zipped"

    def test_zip_without_fb2(self) -> None:
        """Test that an archive without an FB2 file is rejected."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("readme.txt", "nothing")
        with pytest.raises(InvalidInputError):
            _parse(buffer.getvalue())

    def test_malformed_xml(self) -> None:
        """Test that malformed XML raises."""
        with pytest.raises(InvalidInputError):
            _parse(b"<FictionBook><body>")

    def test_wrong_root(self) -> None:
        """Test that a non-FictionBook root raises."""
        with pytest.raises(InvalidInputError, match="Not a FictionBook"):
            _parse(b"<html><body/></html>")
