#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/base.py
"""Base classes for parser options.

This module defines the foundation classes for all reader-specific options
used throughout the docweave parsing pipeline.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

from docweave.constants import (
    DEFAULT_EMBED_RESOURCES,
    DEFAULT_EXTRACT_METADATA,
    DEFAULT_MAX_NESTING_DEPTH,
    DEFAULT_PRESERVE_SOURCE_INFO,
    DEFAULT_STRICT_MODE,
    MAX_NESTING_DEPTH_LIMIT,
)


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)


@dataclass(frozen=True)
class BaseParserOptions(CloneFrozenMixin):
    """Base class for all parser options.

    Every reader accepts an instance of this class or of its own subclass.
    Hand-written readers consult the first four fields; ``strict_mode`` is only
    honoured by the library-backed readers, since hand-written readers never
    raise on markup.

    Parameters
    ----------
    preserve_source_info : bool, default False
        Attach byte-offset spans to top-level blocks. When False no offset
        table is built and no node carries a span.
    embed_resources : bool, default True
        Store decoded binary payloads (FB2 binaries) in ``Document.resources``.
    max_nesting_depth : int, default 32
        Bound on nested container and inline recursion. Content beyond the
        bound is flattened and a single MAJOR warning is recorded.
    extract_metadata : bool, default True
        Populate ``Document.metadata`` from titles, attributes and front matter.
    strict_mode : bool, default False
        Raise ``InvalidInputError`` instead of degrading when a library-backed
        reader fails to tokenize its input.

    """

    preserve_source_info: bool = field(
        default=DEFAULT_PRESERVE_SOURCE_INFO,
        metadata={"help": "Attach byte-offset spans to top-level blocks", "importance": "core"},
    )
    embed_resources: bool = field(
        default=DEFAULT_EMBED_RESOURCES,
        metadata={"help": "Store decoded binary resources in the document", "importance": "core"},
    )
    max_nesting_depth: int = field(
        default=DEFAULT_MAX_NESTING_DEPTH,
        metadata={
            "help": "Maximum nesting depth for containers and inline markup",
            "type": int,
            "importance": "advanced",
        },
    )
    extract_metadata: bool = field(
        default=DEFAULT_EXTRACT_METADATA,
        metadata={"help": "Extract document metadata (titles, attributes, front matter)", "importance": "core"},
    )
    strict_mode: bool = field(
        default=DEFAULT_STRICT_MODE,
        metadata={"help": "Raise on tokenizer failures in library-backed readers", "importance": "advanced"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges for base parser options.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if not isinstance(self.max_nesting_depth, int) or isinstance(self.max_nesting_depth, bool):
            raise ValueError(f"max_nesting_depth must be an integer, got {self.max_nesting_depth!r}")
        if not 1 <= self.max_nesting_depth <= MAX_NESTING_DEPTH_LIMIT:
            raise ValueError(
                f"max_nesting_depth must be between 1 and {MAX_NESTING_DEPTH_LIMIT}, got {self.max_nesting_depth}"
            )
