#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/markdown.py
"""Configuration options for Markdown parsing.

The Markdown reader delegates tokenizing to mistune; these options select
which mistune plugins are enabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import (
    DEFAULT_MARKDOWN_PARSE_DEFINITION_LISTS,
    DEFAULT_MARKDOWN_PARSE_FOOTNOTES,
    DEFAULT_MARKDOWN_PARSE_FRONTMATTER,
    DEFAULT_MARKDOWN_PARSE_MATH,
    DEFAULT_MARKDOWN_PARSE_STRIKETHROUGH,
    DEFAULT_MARKDOWN_PARSE_TABLES,
    DEFAULT_MARKDOWN_PARSE_TASK_LISTS,
)
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class MarkdownOptions(BaseParserOptions):
    """Configuration options for Markdown-to-AST parsing.

    Parameters
    ----------
    parse_tables : bool, default True
        Enable the mistune ``table`` plugin (GFM pipe tables).
    parse_strikethrough : bool, default True
        Enable ``~~strikethrough~~``.
    parse_footnotes : bool, default True
        Enable ``[^1]`` footnote references and definitions.
    parse_task_lists : bool, default True
        Enable ``- [ ]`` / ``- [x]`` list items, stored as ``checked``.
    parse_math : bool, default True
        Enable ``$inline$`` and ``$$display$$`` math.
    parse_definition_lists : bool, default True
        Enable ``term`` / ``: definition`` lists.
    parse_frontmatter : bool, default True
        Read a leading ``---`` YAML block into document metadata.

    """

    parse_tables: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_TABLES,
        metadata={"help": "Parse GFM tables", "importance": "core"},
    )
    parse_strikethrough: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_STRIKETHROUGH,
        metadata={"help": "Parse ~~strikethrough~~", "importance": "core"},
    )
    parse_footnotes: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_FOOTNOTES,
        metadata={"help": "Parse footnote references and definitions", "importance": "core"},
    )
    parse_task_lists: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_TASK_LISTS,
        metadata={"help": "Parse task list checkboxes", "importance": "core"},
    )
    parse_math: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_MATH,
        metadata={"help": "Parse $ and $$ math", "importance": "core"},
    )
    parse_definition_lists: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_DEFINITION_LISTS,
        metadata={"help": "Parse definition lists", "importance": "advanced"},
    )
    parse_frontmatter: bool = field(
        default=DEFAULT_MARKDOWN_PARSE_FRONTMATTER,
        metadata={"help": "Read YAML front matter into metadata", "importance": "core"},
    )
