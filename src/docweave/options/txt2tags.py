#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/txt2tags.py
"""Configuration options for txt2tags parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_TXT2TAGS_PARSE_HEADER
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class Txt2tagsOptions(BaseParserOptions):
    """Configuration options for txt2tags-to-AST parsing.

    Parameters
    ----------
    parse_header : bool, default True
        Read the first three lines as the title, author and date header.
        A blank first line always means the document has no header.

    """

    parse_header: bool = field(
        default=DEFAULT_TXT2TAGS_PARSE_HEADER,
        metadata={"help": "Read the three-line document header", "importance": "core"},
    )
