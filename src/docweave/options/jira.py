#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/options/jira.py
"""Configuration options for Jira wiki markup parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

from docweave.constants import DEFAULT_JIRA_PANEL_TITLE_AS_HEADING
from docweave.options.base import BaseParserOptions


@dataclass(frozen=True)
class JiraOptions(BaseParserOptions):
    """Configuration options for Jira-to-AST parsing.

    Parameters
    ----------
    panel_title_as_heading : bool, default False
        Emit a ``{panel:title=...}`` title as a level-4 heading at the top of
        the panel body, in addition to the ``title`` property on the div.

    """

    panel_title_as_heading: bool = field(
        default=DEFAULT_JIRA_PANEL_TITLE_AS_HEADING,
        metadata={"help": "Render panel titles as headings inside the panel", "importance": "advanced"},
    )
