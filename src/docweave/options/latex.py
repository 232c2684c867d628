#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/latex.py
"""Configuration options for LaTeX parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_LATEX_PARSE_MATH, DEFAULT_LATEX_PARSE_PREAMBLE
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class LatexOptions(BaseParserOptions):
    """Configuration options for LaTeX-to-AST parsing.

    Parameters
    ----------
    parse_preamble : bool, default True
        Read ``\\title``, ``\\author`` and ``\\date`` into document metadata.
    parse_math : bool, default True
        Produce ``math_inline`` / ``math_display`` nodes. When False math is
        kept as ``code`` / ``code_block`` with language ``latex``.

    Notes
    -----
    ``strict_mode`` makes walker failures raise ``InvalidInputError``
    instead of degrading to a single paragraph of the raw source.

    """

    parse_preamble: bool = field(
        default=DEFAULT_LATEX_PARSE_PREAMBLE,
        metadata={"help": "Parse document preamble for metadata", "importance": "core"},
    )
    parse_math: bool = field(
        default=DEFAULT_LATEX_PARSE_MATH,
        metadata={"help": "Parse math into math nodes", "importance": "core"},
    )
