#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/pandoc_json.py
"""Configuration options for Pandoc JSON AST documents."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class PandocJsonOptions(BaseParserOptions):
    """Configuration options for Pandoc-JSON-to-AST parsing.

    Parameters
    ----------
    meta_list_separator : str, default ", "
        Separator used when flattening a ``MetaList`` value into a string.

    """

    meta_list_separator: str = field(
        default=", ",
        metadata={"help": "Separator for flattened MetaList values", "importance": "advanced"},
    )
