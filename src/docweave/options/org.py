#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/org.py
"""Configuration options for Org-Mode parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_ORG_PRESERVE_TAGS, DEFAULT_ORG_TODO_KEYWORDS
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class OrgOptions(BaseParserOptions):
    """Configuration options for Org-Mode-to-AST parsing.

    Parameters
    ----------
    todo_keywords : tuple[str, ...], default ("TODO", "DONE")
        Keywords recognized at the start of a heading. A matching keyword is
        removed from the heading text and stored as ``org:todo``.
    preserve_tags : bool, default False
        Store trailing heading tags (``:work:urgent:``) as ``org:tags``.
        Tags are always removed from the heading text.

    Examples
    --------
    Custom TODO keywords:
        >>> options = OrgOptions(todo_keywords=("TODO", "WAITING", "DONE"))

    """

    todo_keywords: tuple[str, ...] = field(
        default=DEFAULT_ORG_TODO_KEYWORDS,
        metadata={"help": "TODO keywords to recognize in headings", "importance": "core"},
    )
    preserve_tags: bool = field(
        default=DEFAULT_ORG_PRESERVE_TAGS,
        metadata={"help": "Keep heading tags as org:tags", "importance": "core"},
    )

    def __post_init__(self) -> None:
        """Normalize keyword sequences to a tuple."""
        super().__post_init__()
        if isinstance(self.todo_keywords, str):
            raise ValueError("todo_keywords must be a sequence of keywords, not a string")
        object.__setattr__(self, "todo_keywords", tuple(self.todo_keywords))
