#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/vimwiki.py
"""Configuration options for VimWiki markup."""

from __future__ import annotations

from dataclasses import dataclass

from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class VimwikiOptions(BaseParserOptions):
    """Configuration options for VimWiki-to-AST parsing.

    The VimWiki reader has no settings beyond the shared parser options.
    """
