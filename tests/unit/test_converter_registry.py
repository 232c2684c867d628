#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_converter_registry.py
"""Unit tests for the converter registry.

Tests cover:
- Auto-discovery of the built-in readers
- Priority ordering and unregistering
- Format detection by hint, extension, MIME type and content
- Option and parser class lookup
- Dependency checks

"""

import importlib
import io
import json
import pkgutil
from pathlib import Path

import pytest

import docweave.parsers
from docweave.converter_metadata import ConverterMetadata
from docweave.converter_registry import ConverterRegistry, registry
from docweave.exceptions import FormatError
from docweave.options.rst import RstOptions
from docweave.parsers.rst import RstParser

BUILTIN_FORMATS = [
    "asciidoc",
    "fb2",
    "jira",
    "latex",
    "markdown",
    "markua",
    "org",
    "pandoc_json",
    "rst",
    "texinfo",
    "textile",
    "txt2tags",
    "typst",
    "vimwiki",
]

PANDOC_SAMPLE = json.dumps({"pandoc-api-version": [1, 23], "meta": {}, "blocks": []})
FB2_SAMPLE = '<?xml version="1.0"?><FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0"></FictionBook>'


@pytest.fixture
def isolated_registry():
    """Restore the registered readers after a test that changes them."""
    saved = {name: list(entries) for name, entries in registry._converters.items()}
    yield registry
    registry._converters.clear()
    registry._converters.update(saved)


@pytest.mark.unit
class TestDiscovery:
    """Tests for built-in reader discovery."""

    def test_singleton(self) -> None:
        """Test that the registry is a singleton."""
        assert ConverterRegistry() is registry

    def test_builtin_formats(self) -> None:
        """Test that every built-in reader is registered."""
        assert registry.list_formats() == BUILTIN_FORMATS

    @pytest.mark.parametrize(
        "module_name",
        sorted(info.name for info in pkgutil.iter_modules(docweave.parsers.__path__)),
    )
    def test_parser_module_imports(self, module_name: str) -> None:
        """Test that every module in the parsers package imports cleanly."""
        module = importlib.import_module(f"docweave.parsers.{module_name}")
        if not module_name.startswith("_") and module_name != "base":
            assert isinstance(module.CONVERTER_METADATA, ConverterMetadata)

    def test_auto_discover_is_idempotent(self) -> None:
        """Test that running discovery again registers nothing twice."""
        registry.auto_discover()
        assert len(registry.get_format_info("rst")) == 1

    def test_extensions(self) -> None:
        """Test the union of claimed extensions."""
        extensions = registry.get_all_extensions()
        assert {".rst", ".adoc", ".org", ".fb2.zip", ".pandoc.json", ".typ"} <= extensions


@pytest.mark.unit
class TestRegistration:
    """Tests for registering and unregistering readers."""

    def test_priority_order(self, isolated_registry: ConverterRegistry) -> None:
        """Test that higher priority readers come first."""
        isolated_registry.register(ConverterMetadata("demo", extensions=[".demo"], priority=1))
        isolated_registry.register(ConverterMetadata("demo", extensions=[".demo"], priority=9))
        assert [m.priority for m in isolated_registry.get_format_info("demo")] == [9, 1]

    def test_unregister(self, isolated_registry: ConverterRegistry) -> None:
        """Test removing a format."""
        isolated_registry.register(ConverterMetadata("demo"))
        assert isolated_registry.unregister("demo") is True
        assert isolated_registry.unregister("demo") is False
        assert "demo" not in isolated_registry.list_formats()

    def test_parser_class_by_name(self, isolated_registry: ConverterRegistry) -> None:
        """Test that a dotted class name is imported on demand."""
        isolated_registry.register(
            ConverterMetadata(
                "demo",
                parser_class="docweave.parsers.rst.RstParser",
                parser_options_class="RstOptions",
            )
        )
        assert isolated_registry.get_parser("demo") is RstParser
        assert isolated_registry.get_parser_options_class("demo") is RstOptions

    def test_unloadable_parser(self, isolated_registry: ConverterRegistry) -> None:
        """Test that a parser class that cannot be imported raises FormatError."""
        isolated_registry.register(ConverterMetadata("demo", parser_class="no.such.module.Parser"))
        with pytest.raises(FormatError, match="No parser available"):
            isolated_registry.get_parser("demo")

    def test_unknown_format(self) -> None:
        """Test lookups for unregistered formats."""
        with pytest.raises(FormatError) as exc_info:
            registry.get_parser("docx")
        assert exc_info.value.format_type == "docx"
        assert registry.get_format_info("docx") is None

    def test_check_dependencies(self, isolated_registry: ConverterRegistry) -> None:
        """Test reporting of missing packages."""
        isolated_registry.register(
            ConverterMetadata("demo", parser_required_packages=[("not-a-real-pkg", "not_a_real_pkg_xyz", "")])
        )
        assert isolated_registry.check_dependencies("demo") == {"demo": ["not-a-real-pkg"]}
        assert "rst" not in isolated_registry.check_dependencies()


@pytest.mark.unit
class TestDetectFormat:
    """Tests for format detection."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("guide.adoc", "asciidoc"),
            ("README.rst", "rst"),
            ("notes.org", "org"),
            ("ticket.jira", "jira"),
            ("page.textile", "textile"),
            ("doc.t2t", "txt2tags"),
            ("paper.typ", "typst"),
            ("index.wiki", "vimwiki"),
            ("book.markua", "markua"),
            ("manual.texi", "texinfo"),
            ("README.md", "markdown"),
            ("paper.tex", "latex"),
            ("novel.fb2", "fb2"),
            ("novel.fb2.zip", "fb2"),
            ("doc.pandoc.json", "pandoc_json"),
            ("UPPER.RST", "rst"),
        ],
    )
    def test_by_extension(self, filename: str, expected: str) -> None:
        """Test detection from a path that does not exist."""
        assert registry.detect_format(Path(filename)) == expected

    def test_hint(self) -> None:
        """Test that a registered hint wins."""
        assert registry.detect_format(Path("x.rst"), hint="org") == "org"

    def test_unknown_hint_ignored(self) -> None:
        """Test that an unregistered hint is ignored."""
        assert registry.detect_format(Path("x.rst"), hint="docx") == "rst"

    def test_content_pandoc(self) -> None:
        """Test detection of pandoc JSON from text."""
        assert registry.detect_format(PANDOC_SAMPLE) == "pandoc_json"

    def test_content_fb2_bytes(self) -> None:
        """Test detection of FictionBook from bytes."""
        assert registry.detect_format(FB2_SAMPLE.encode("utf-8")) == "fb2"

    def test_stream_name(self) -> None:
        """Test detection from a stream's name without consuming it."""
        stream = io.BytesIO(b"Title\n=====\n")
        stream.name = "chapter.rst"
        assert registry.detect_format(stream) == "rst"
        assert stream.tell() == 0

    def test_str_is_not_a_path(self) -> None:
        """Test that a string naming a file is not treated as a path."""
        with pytest.raises(FormatError, match="Could not detect"):
            registry.detect_format("notes.org")

    def test_extension_rejected_by_content(self, tmp_path: Path) -> None:
        """Test that a content detector can veto an extension match."""
        target = tmp_path / "fake.fb2"
        target.write_text("just text", encoding="utf-8")
        with pytest.raises(FormatError):
            registry.detect_format(target)

    def test_undetectable(self) -> None:
        """Test that plain text without markers is not guessed."""
        with pytest.raises(FormatError) as exc_info:
            registry.detect_format(b"hello world")
        assert exc_info.value.supported_formats == BUILTIN_FORMATS
