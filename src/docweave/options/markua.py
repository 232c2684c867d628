#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/markua.py
"""Configuration options for Markua manuscripts."""

from __future__ import annotations

from dataclasses import dataclass

from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class MarkuaOptions(BaseParserOptions):
    """Configuration options for Markua-to-AST parsing.

    The Markua reader has no settings beyond the shared parser options.
    """
