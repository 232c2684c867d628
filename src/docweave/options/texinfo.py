#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/texinfo.py
"""Configuration options for Texinfo sources."""

from __future__ import annotations

from dataclasses import dataclass

from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class TexinfoOptions(BaseParserOptions):
    """Configuration options for Texinfo-to-AST parsing.

    The Texinfo reader has no settings beyond the shared parser options.
    """
