#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Configuration options for docweave readers.

Each reader has its own frozen Options dataclass extending
``BaseParserOptions``. Options are immutable; use ``create_updated`` (or
``create_updated_options``) to derive a modified copy.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from docweave.options.asciidoc import AsciiDocOptions
from docweave.options.base import BaseParserOptions, CloneFrozenMixin
from docweave.options.fb2 import Fb2Options
from docweave.options.jira import JiraOptions
from docweave.options.latex import LatexOptions
from docweave.options.markdown import MarkdownOptions
from docweave.options.markua import MarkuaOptions
from docweave.options.org import OrgOptions
from docweave.options.pandoc_json import PandocJsonOptions
from docweave.options.rst import RstOptions
from docweave.options.texinfo import TexinfoOptions
from docweave.options.textile import TextileOptions
from docweave.options.txt2tags import Txt2tagsOptions
from docweave.options.typst import TypstOptions
from docweave.options.vimwiki import VimwikiOptions


def create_updated_options(options: Any, **kwargs: Any) -> Any:
    """Create a new options instance with updated values.

    Parameters
    ----------
    options : Any
        The original options instance (must be a dataclass)
    **kwargs
        Keyword arguments with the field names and new values to update

    Returns
    -------
    Any
        A new options instance with the updated values

    """
    return replace(options, **kwargs)


__all__ = [
    "AsciiDocOptions",
    "BaseParserOptions",
    "CloneFrozenMixin",
    "Fb2Options",
    "JiraOptions",
    "LatexOptions",
    "MarkdownOptions",
    "MarkuaOptions",
    "OrgOptions",
    "PandocJsonOptions",
    "RstOptions",
    "TexinfoOptions",
    "TextileOptions",
    "Txt2tagsOptions",
    "TypstOptions",
    "VimwikiOptions",
    "create_updated_options",
]
