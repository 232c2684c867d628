#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_progress_callbacks.py
"""Unit tests for progress reporting and the parser life cycle.

Tests cover:
- ProgressEvent rendering
- started and finished events with the warning count
- Callbacks that raise are ignored
- Single-use parser instances
- Metadata suppression and source info

"""

import pytest

from docweave.parsers.asciidoc import AsciiDocParser
from docweave.parsers.rst import RstParser
from docweave.progress import ProgressEvent


@pytest.mark.unit
class TestProgressEvent:
    """Tests for ProgressEvent."""

    def test_str(self) -> None:
        """Test rendering without totals."""
        assert str(ProgressEvent("started", "Parsing rst document")) == "[STARTED] Parsing rst document"

    def test_str_with_totals(self) -> None:
        """Test rendering with totals."""
        assert str(ProgressEvent("item_done", "Block", current=2, total=5)) == "[ITEM_DONE] Block (2/5)"


@pytest.mark.unit
class TestParserProgress:
    """Tests for progress events emitted by readers."""

    def test_started_and_finished(self) -> None:
        """Test the event sequence of a successful parse."""
        events: list[ProgressEvent] = []
        AsciiDocParser(progress_callback=events.append).parse("= Title\n\nText.\n")
        assert events[0].event_type == "started"
        assert events[-1].event_type == "finished"
        assert events[-1].metadata["warnings"] == 0

    def test_warning_count_reported(self) -> None:
        """Test that the finished event carries the warning count."""
        events: list[ProgressEvent] = []
        result = RstParser(progress_callback=events.append).parse(".. frobnicate::\n\n   body\n")
        assert events[-1].metadata["warnings"] == len(result.warnings)
        assert len(result.warnings) >= 1

    def test_raising_callback_is_ignored(self) -> None:
        """Test that a failing callback does not stop parsing."""

        def explode(event: ProgressEvent) -> None:
            raise RuntimeError("callback failure")

        result = AsciiDocParser(progress_callback=explode).parse("Text.\n")
        assert len(result.value.blocks) == 1


@pytest.mark.unit
class TestParserLifecycle:
    """Tests for the single-use parser contract."""

    def test_second_parse_raises(self) -> None:
        """Test that a parser instance can be used once."""
        parser = RstParser()
        parser.parse("Text.\n")
        with pytest.raises(RuntimeError, match="single-use"):
            parser.parse("Again.\n")

    def test_source_info(self) -> None:
        """Test that the source format is recorded."""
        assert RstParser().parse("Text.\n").value.source.format == "rst"

    def test_metadata_suppressed(self) -> None:
        """Test that extract_metadata=False leaves the metadata empty."""
        from docweave.options.asciidoc import AsciiDocOptions

        text = "= My Title\n:author: Ann\n\nBody.\n"
        assert AsciiDocParser().parse(text).value.metadata
        result = AsciiDocParser(AsciiDocOptions(extract_metadata=False)).parse(text)
        assert len(result.value.metadata) == 0
