#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/asciidoc.py
"""Configuration options for AsciiDoc parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import (
    DEFAULT_ASCIIDOC_ATTRIBUTE_MISSING_POLICY,
    DEFAULT_ASCIIDOC_PARSE_TABLES,
    DEFAULT_ASCIIDOC_RESOLVE_ATTRIBUTE_REFS,
    AttributeMissingPolicy,
)
from docweave.options.base import BaseParserOptions

_MISSING_POLICIES = ("keep", "blank", "warn")


@dataclass(frozen=True)
class AsciiDocOptions(BaseParserOptions):
    """Configuration options for AsciiDoc-to-AST parsing.

    Parameters
    ----------
    resolve_attribute_refs : bool, default True
        Substitute ``{name}`` references with values collected from
        ``:name: value`` attribute lines.
    attribute_missing_policy : {"keep", "blank", "warn"}, default "keep"
        What to do with a ``{name}`` reference that has no definition:
        keep it verbatim, replace it with nothing, or keep it and record a
        MINOR fidelity warning.
    parse_tables : bool, default True
        Parse ``|===`` delimited tables. When False, table bodies are kept as
        literal code blocks.

    Examples
    --------
        >>> options = AsciiDocOptions(attribute_missing_policy="warn")
        >>> parser = AsciiDocParser(options)

    """

    resolve_attribute_refs: bool = field(
        default=DEFAULT_ASCIIDOC_RESOLVE_ATTRIBUTE_REFS,
        metadata={"help": "Resolve {attribute} references", "importance": "core"},
    )
    attribute_missing_policy: AttributeMissingPolicy = field(
        default=DEFAULT_ASCIIDOC_ATTRIBUTE_MISSING_POLICY,
        metadata={
            "help": "Handling of references to undefined attributes",
            "choices": list(_MISSING_POLICIES),
            "importance": "advanced",
        },
    )
    parse_tables: bool = field(
        default=DEFAULT_ASCIIDOC_PARSE_TABLES,
        metadata={"help": "Parse |=== delimited tables", "importance": "core"},
    )

    def __post_init__(self) -> None:
        """Validate the missing-attribute policy."""
        super().__post_init__()
        if self.attribute_missing_policy not in _MISSING_POLICIES:
            raise ValueError(
                f"attribute_missing_policy must be one of {_MISSING_POLICIES}, got {self.attribute_missing_policy!r}"
            )
