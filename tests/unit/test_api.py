#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_api.py
"""Unit tests for the top-level parse and detect_format functions.

Tests cover:
- Parsing with an explicit format and with detection
- Option objects and keyword overrides
- Errors for unknown formats, bad options and undecodable input
- Lazy access to option classes from the package

"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

import docweave
from docweave import detect_format, list_formats, parse
from docweave.ast import kinds, props
from docweave.exceptions import FormatError, InvalidInputError, InvalidOptionsError
from docweave.options.asciidoc import AsciiDocOptions
from docweave.options.org import OrgOptions


@pytest.mark.unit
class TestParse:
    """Tests for docweave.parse."""

    def test_explicit_format(self) -> None:
        """Test parsing with a named format."""
        result = parse("== Hello ==\n\nSome text.\n", source_format="asciidoc")
        assert [block.kind for block in result.value.blocks] == [kinds.HEADING, kinds.PARAGRAPH]
        assert result.value.source.format == "asciidoc"

    def test_detect_from_path(self, tmp_path: Path) -> None:
        """Test parsing a file whose format comes from its extension."""
        target = tmp_path / "notes.org"
        target.write_text("* Heading\n\nBody text.\n", encoding="utf-8")
        result = parse(target)
        assert result.value.source.format == "org"
        assert result.value.blocks[0].kind == kinds.HEADING

    def test_detect_from_content(self) -> None:
        """Test parsing pandoc JSON detected from its content."""
        payload = json.dumps(
            {
                "pandoc-api-version": [1, 23],
                "meta": {},
                "blocks": [{"t": "Para", "c": [{"t": "Str", "c": "Hi"}]}],
            }
        )
        result = parse(payload)
        assert result.value.source.format == "pandoc_json"
        assert result.value.blocks[0].text_content() == "Hi"

    def test_unknown_format(self) -> None:
        """Test that an unknown format name raises FormatError."""
        with pytest.raises(FormatError) as exc_info:
            parse("text", source_format="docx")
        assert exc_info.value.format_type == "docx"

    def test_undetectable_input(self) -> None:
        """Test that plain text with auto detection raises FormatError."""
        with pytest.raises(FormatError):
            parse("Just some words.")

    def test_kwargs_build_options(self) -> None:
        """Test that keyword arguments become reader options."""
        result = parse("Title\n=====\n", source_format="rst", preserve_source_info=True)
        assert result.value.blocks[0].span is not None

    def test_kwargs_update_options(self) -> None:
        """Test that keyword arguments override a given options object."""
        options = OrgOptions(preserve_tags=False)
        result = parse("* TODO Task :work:\n", source_format="org", options=options, preserve_source_info=True)
        heading = result.value.blocks[0]
        assert heading.span is not None
        assert "org:tags" not in heading.props

    def test_unknown_kwarg(self) -> None:
        """Test that an unknown option name raises FormatError."""
        with pytest.raises(FormatError, match="Invalid options"):
            parse("x", source_format="rst", not_an_option=True)

    def test_wrong_options_class(self) -> None:
        """Test that another reader's options are rejected."""
        with pytest.raises(InvalidOptionsError):
            parse("x", source_format="rst", options=AsciiDocOptions())

    def test_undecodable_bytes(self) -> None:
        """Test that bytes that cannot be decoded raise InvalidInputError."""
        with patch("docweave.utils.encoding.chardet.detect", return_value={"encoding": None, "confidence": 0.0}):
            with pytest.raises(InvalidInputError):
                parse(b"caf\xe9 \x81\x82", source_format="rst")

    def test_bytes_with_bom(self) -> None:
        """Test that UTF-8 bytes with a BOM parse cleanly."""
        result = parse(b"\xef\xbb\xbfTitle\n=====\n", source_format="rst")
        assert result.value.blocks[0].kind == kinds.HEADING
        assert result.value.blocks[0].text_content() == "Title"


@pytest.mark.unit
class TestPackageSurface:
    """Tests for the package namespace."""

    def test_detect_format(self) -> None:
        """Test detect_format from a path."""
        assert detect_format(Path("chapter.adoc")) == "asciidoc"

    def test_list_formats(self) -> None:
        """Test that fourteen formats are listed."""
        assert len(list_formats()) == 14

    def test_lazy_options(self) -> None:
        """Test that option classes load on first access."""
        assert docweave.AsciiDocOptions is AsciiDocOptions
        assert docweave.OrgOptions().todo_keywords == ("TODO", "DONE")

    def test_unknown_attribute(self) -> None:
        """Test that unknown attributes raise AttributeError."""
        with pytest.raises(AttributeError):
            docweave.NoSuchOptions  # noqa: B018

    def test_heading_scenario(self) -> None:
        """Test the AsciiDoc heading example from the package docstring."""
        result = parse("== Hello ==\n", source_format="asciidoc")
        assert result.value.blocks[0].get(props.LEVEL) == 2
