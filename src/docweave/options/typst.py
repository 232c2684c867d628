#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/typst.py
"""Configuration options for Typst markup."""

from __future__ import annotations

from dataclasses import dataclass

from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class TypstOptions(BaseParserOptions):
    """Configuration options for Typst-to-AST parsing.

    The Typst reader has no settings beyond the shared parser options.
    """
