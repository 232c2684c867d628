"""Pytest configuration and shared fixtures for the docweave test suite.

This module registers the Hypothesis profiles and test markers, and provides
fixtures shared by the reader and IR tests.
"""

import os
from pathlib import Path
from typing import Callable

import pytest
from hypothesis import Phase, Verbosity, settings

from docweave.ast.fidelity import ConversionResult, FidelityWarning, Severity
from docweave.ast.utils import iter_nodes

# Register custom Hypothesis profiles
settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose, deadline=None)
settings.register_profile("dev", max_examples=20, deadline=None)
settings.register_profile(
    "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
)

# Load profile from environment or use default
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "slow: Slow tests that may take several seconds")


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def kinds_of() -> Callable:
    """Return a helper listing the kinds of a document's top-level blocks."""

    def _kinds_of(result: ConversionResult) -> list[str]:
        return [block.kind for block in result.value.blocks]

    return _kinds_of


@pytest.fixture
def find_all() -> Callable:
    """Return a helper collecting every node of a kind in a parsed document."""

    def _find_all(result: ConversionResult, kind: str) -> list:
        return [node for node in iter_nodes(result.value.content) if node.kind == kind]

    return _find_all


@pytest.fixture
def warnings_with() -> Callable:
    """Return a helper filtering warnings by severity and detail prefix."""

    def _warnings_with(result: ConversionResult, severity: Severity, detail_prefix: str = "") -> list[FidelityWarning]:
        return [
            warning
            for warning in result.warnings
            if warning.severity == severity and (warning.detail or "").startswith(detail_prefix)
        ]

    return _warnings_with
