#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_exceptions.py
"""Unit tests for the exception hierarchy."""

import pytest

from docweave.exceptions import (
    DependencyError,
    DocweaveError,
    FormatError,
    InputReadError,
    InvalidInputError,
    InvalidOptionsError,
    ParseError,
    ValidationError,
)


@pytest.mark.unit
class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class,parent",
        [
            (ValidationError, DocweaveError),
            (InvalidOptionsError, ValidationError),
            (ParseError, DocweaveError),
            (InvalidInputError, ParseError),
            (FormatError, ParseError),
            (InputReadError, ParseError),
            (DependencyError, DocweaveError),
        ],
    )
    def test_subclassing(self, exc_class: type, parent: type) -> None:
        """Test that every exception derives from its documented parent."""
        assert issubclass(exc_class, parent)

    def test_original_error_kept(self) -> None:
        """Test that the wrapped error is available."""
        cause = ValueError("bad")
        error = ParseError("failed", parsing_stage="tokenizing", original_error=cause)
        assert error.original_error is cause
        assert error.parsing_stage == "tokenizing"
        assert str(error) == "failed"


@pytest.mark.unit
class TestFormatError:
    """Tests for FormatError messages."""

    def test_default_message(self) -> None:
        """Test the message when nothing is known."""
        error = FormatError()
        assert "could not be determined" in str(error)
        assert error.parsing_stage == "format_detection"

    def test_lists_supported_formats(self) -> None:
        """Test that long format lists are abbreviated."""
        formats = ["a", "b", "c", "d", "e", "f", "g"]
        error = FormatError(format_type="docx", supported_formats=formats)
        assert "Unsupported format: 'docx'" in str(error)
        assert "(and 2 more)" in str(error)
        assert error.supported_formats == formats


@pytest.mark.unit
class TestDependencyError:
    """Tests for DependencyError messages."""

    def test_missing_packages(self) -> None:
        """Test the message for missing packages."""
        error = DependencyError("latex", [("pylatexenc", ">=2.10")])
        assert "LATEX format requires" in str(error)
        assert 'pip install --upgrade "pylatexenc>=2.10"' in str(error)

    def test_version_mismatch(self) -> None:
        """Test the message for an outdated package."""
        error = DependencyError("markdown", [], version_mismatches=[("mistune", ">=3.0.0", "2.0.5")])
        assert "requires >=3.0.0, but 2.0.5 is installed" in str(error)

    def test_custom_install_command(self) -> None:
        """Test that an explicit install command is used."""
        error = DependencyError("fb2", [("defusedxml", "")], install_command="pip install docweave")
        assert str(error).endswith("Install with: pip install docweave")

    def test_input_read_error_path(self) -> None:
        """Test that read errors keep the path."""
        error = InputReadError("cannot read", file_path="/tmp/missing.rst")
        assert error.file_path == "/tmp/missing.rst"
        assert error.parsing_stage == "input_loading"
