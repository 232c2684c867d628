#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/fb2.py
"""Configuration options for FB2 (FictionBook 2.0) parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_FB2_EXTRACT_BINARIES, DEFAULT_FB2_INCLUDE_NOTES
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class Fb2Options(BaseParserOptions):
    """Configuration options for FB2-to-AST conversion.

    Parameters
    ----------
    extract_binaries : bool, default True
        Decode ``<binary>`` elements into ``Document.resources``. Has no effect
        when ``embed_resources`` is False.
    include_notes : bool, default True
        Include bodies marked ``name="notes"`` in the output.

    """

    extract_binaries: bool = field(
        default=DEFAULT_FB2_EXTRACT_BINARIES,
        metadata={"help": "Decode embedded binaries into resources", "importance": "core"},
    )
    include_notes: bool = field(
        default=DEFAULT_FB2_INCLUDE_NOTES,
        metadata={"help": "Include bodies/sections marked as notes in the output", "importance": "core"},
    )
