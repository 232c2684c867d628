#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/props.py
"""Reserved property keys.

Un-namespaced keys below have a fixed meaning across every reader.
Presentational hints live under ``style:``, positioning under ``layout:``,
and format-specific data under the format's own prefix (``rst:role``,
``org:tags``, ``fb2:type``).
"""

from __future__ import annotations

# Semantic properties
CONTENT = "content"
LEVEL = "level"
ORDERED = "ordered"
LANGUAGE = "language"
URL = "url"
TITLE = "title"
ALT = "alt"
RESOURCE = "resource"
ID = "id"
CLASSES = "classes"
START = "start"
LIST_STYLE = "list_style"
TIGHT = "tight"
FORMAT = "format"
QUOTE_TYPE = "quote_type"
LABEL = "label"
ALIGN = "align"
COLSPAN = "colspan"
ROWSPAN = "rowspan"
CHECKED = "checked"

# Style properties
STYLE_FONT = "style:font"
STYLE_SIZE = "style:size"
STYLE_COLOR = "style:color"
STYLE_ALIGN = "style:align"
STYLE_BG_COLOR = "style:bg_color"
STYLE_WEIGHT = "style:weight"

# Layout properties
LAYOUT_PAGE_BREAK = "layout:page_break"
LAYOUT_COLUMN = "layout:column"
LAYOUT_FLOAT = "layout:float"

# Format-specific prefixes
HTML_PREFIX = "html:"
LATEX_PREFIX = "latex:"
DOCX_PREFIX = "docx:"

# Cross-dialect extension keys
MATH_SOURCE = "math:source"

RESERVED_KEYS = frozenset(
    {
        CONTENT,
        LEVEL,
        ORDERED,
        LANGUAGE,
        URL,
        TITLE,
        ALT,
        RESOURCE,
        ID,
        CLASSES,
        START,
        LIST_STYLE,
        TIGHT,
        FORMAT,
        QUOTE_TYPE,
        LABEL,
        ALIGN,
        COLSPAN,
        ROWSPAN,
        CHECKED,
    }
)


def namespaced(prefix: str, name: str) -> str:
    """Build a ``prefix:name`` key, e.g. ``namespaced("rst", "role")``."""
    return f"{prefix.rstrip(':')}:{name}"
