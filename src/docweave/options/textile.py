#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/textile.py
"""Configuration options for Textile parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_TEXTILE_COLLECT_FOOTNOTES
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class TextileOptions(BaseParserOptions):
    """Configuration options for Textile-to-AST parsing.

    Parameters
    ----------
    collect_footnotes : bool, default True
        Turn ``fn1.`` blocks into ``footnote_def`` nodes. When False they are
        kept as ordinary paragraphs.

    """

    collect_footnotes: bool = field(
        default=DEFAULT_TEXTILE_COLLECT_FOOTNOTES,
        metadata={"help": "Parse fnN. footnote definitions", "importance": "core"},
    )
