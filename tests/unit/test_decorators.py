#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_decorators.py
"""Unit tests for the dependency guard and the debug timer."""

import logging

import pytest

from docweave.exceptions import DependencyError
from docweave.utils.decorators import debug_timer, requires_dependencies


@pytest.mark.unit
class TestRequiresDependencies:
    """Tests for requires_dependencies."""

    def test_missing_package(self) -> None:
        """Test that a missing import raises DependencyError with an install hint."""

        @requires_dependencies("demo", [("docweave-absent", "docweave_absent_module", ">=1.0")])
        def convert():
            return "converted"

        with pytest.raises(DependencyError) as exc_info:
            convert()
        error = exc_info.value
        assert error.converter_name == "demo"
        assert error.missing_packages == [("docweave-absent", ">=1.0")]
        assert 'Install with: pip install --upgrade "docweave-absent>=1.0"' in str(error)
        assert isinstance(error.__cause__, ImportError)

    def test_version_mismatch(self) -> None:
        """Test that an installed package below the required version raises."""

        @requires_dependencies("demo", [("pytest", "pytest", ">=999")])
        def convert():
            return "converted"

        with pytest.raises(DependencyError) as exc_info:
            convert()
        assert exc_info.value.missing_packages == []
        assert exc_info.value.version_mismatches[0][:2] == ("pytest", ">=999")

    def test_satisfied(self) -> None:
        """Test that the wrapped function runs when dependencies are present."""

        @requires_dependencies("demo", [("pytest", "pytest", "")])
        def convert(value):
            return value * 2

        assert convert(21) == 42
        assert convert.__name__ == "convert"


@pytest.mark.unit
class TestDebugTimer:
    """Tests for debug_timer."""

    def test_logs_at_debug(self, caplog) -> None:
        """Test that elapsed time is logged when DEBUG is enabled."""
        logger = logging.getLogger("docweave.tests.timer")
        with caplog.at_level(logging.DEBUG, logger="docweave.tests.timer"):
            with debug_timer(logger, "Parsing (demo)"):
                pass
        assert any("Parsing (demo) completed in" in record.getMessage() for record in caplog.records)

    def test_silent_above_debug(self, caplog) -> None:
        """Test that nothing is logged when DEBUG is disabled."""
        logger = logging.getLogger("docweave.tests.timer_quiet")
        logger.setLevel(logging.INFO)
        with caplog.at_level(logging.INFO, logger="docweave.tests.timer_quiet"):
            with debug_timer(logger, "Parsing (demo)"):
                pass
        assert caplog.records == []
