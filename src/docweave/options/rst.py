#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/rst.py
"""Configuration options for reStructuredText parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_RST_HEADING_CHARS, DEFAULT_RST_PARSE_DOCINFO
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class RstOptions(BaseParserOptions):
    """Configuration options for reStructuredText-to-AST parsing.

    Parameters
    ----------
    heading_chars : str
        Characters accepted as section underline/overline adornment. Heading
        levels are assigned in the order styles are first seen in the
        document, not in the order of this string.
    parse_docinfo : bool, default True
        Treat a field list at the top of the document (``:Author: ...``) as
        document metadata instead of content.

    """

    heading_chars: str = field(
        default=DEFAULT_RST_HEADING_CHARS,
        metadata={"help": "Characters accepted as section adornment", "importance": "advanced"},
    )
    parse_docinfo: bool = field(
        default=DEFAULT_RST_PARSE_DOCINFO,
        metadata={"help": "Read a leading field list as document metadata", "importance": "core"},
    )

    def __post_init__(self) -> None:
        """Validate the adornment character set."""
        super().__post_init__()
        if not self.heading_chars:
            raise ValueError("heading_chars must not be empty")
        if any(ch.isalnum() or ch.isspace() for ch in self.heading_chars):
            raise ValueError(f"heading_chars must contain only punctuation, got {self.heading_chars!r}")
