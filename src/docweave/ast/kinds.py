#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/kinds.py
"""Node kind vocabulary shared by every reader.

Kinds are plain strings so that readers can introduce dialect-specific
kinds without touching this module. A dialect-specific kind must carry a
namespace (``"rst:comment"``, ``"fb2:poem"``); un-namespaced kinds are
reserved for the vocabulary below.
"""

from __future__ import annotations

NAMESPACE_SEPARATOR = ":"

# Block-level kinds
DOCUMENT = "document"
PARAGRAPH = "paragraph"
HEADING = "heading"
CODE_BLOCK = "code_block"
BLOCKQUOTE = "blockquote"
LIST = "list"
LIST_ITEM = "list_item"
TABLE = "table"
TABLE_ROW = "table_row"
TABLE_CELL = "table_cell"
TABLE_HEADER = "table_header"
TABLE_HEAD = "table_head"
TABLE_BODY = "table_body"
TABLE_FOOT = "table_foot"
FIGURE = "figure"
CAPTION = "caption"
HORIZONTAL_RULE = "horizontal_rule"
DIV = "div"
RAW_BLOCK = "raw_block"
DEFINITION_LIST = "definition_list"
DEFINITION_TERM = "definition_term"
DEFINITION_DESC = "definition_desc"

# Inline-level kinds
TEXT = "text"
EMPHASIS = "emphasis"
STRONG = "strong"
STRIKEOUT = "strikeout"
UNDERLINE = "underline"
SUBSCRIPT = "subscript"
SUPERSCRIPT = "superscript"
CODE = "code"
LINK = "link"
IMAGE = "image"
LINE_BREAK = "line_break"
SOFT_BREAK = "soft_break"
SPAN = "span"
RAW_INLINE = "raw_inline"
FOOTNOTE_REF = "footnote_ref"
FOOTNOTE_DEF = "footnote_def"
SMALL_CAPS = "small_caps"
QUOTED = "quoted"
CITE = "cite"

# Extension kinds
MATH_INLINE = "math_inline"
MATH_DISPLAY = "math_display"

BLOCK_KINDS = frozenset(
    {
        DOCUMENT,
        PARAGRAPH,
        HEADING,
        CODE_BLOCK,
        BLOCKQUOTE,
        LIST,
        LIST_ITEM,
        TABLE,
        TABLE_ROW,
        TABLE_CELL,
        TABLE_HEADER,
        TABLE_HEAD,
        TABLE_BODY,
        TABLE_FOOT,
        FIGURE,
        CAPTION,
        HORIZONTAL_RULE,
        DIV,
        RAW_BLOCK,
        DEFINITION_LIST,
        DEFINITION_TERM,
        DEFINITION_DESC,
    }
)

INLINE_KINDS = frozenset(
    {
        TEXT,
        EMPHASIS,
        STRONG,
        STRIKEOUT,
        UNDERLINE,
        SUBSCRIPT,
        SUPERSCRIPT,
        CODE,
        LINK,
        IMAGE,
        LINE_BREAK,
        SOFT_BREAK,
        SPAN,
        RAW_INLINE,
        FOOTNOTE_REF,
        FOOTNOTE_DEF,
        SMALL_CAPS,
        QUOTED,
        CITE,
    }
)

EXTENSION_KINDS = frozenset({MATH_INLINE, MATH_DISPLAY})

KNOWN_KINDS = BLOCK_KINDS | INLINE_KINDS | EXTENSION_KINDS


def is_namespaced(kind: str) -> bool:
    """Return True if ``kind`` carries a ``dialect:`` prefix."""
    return NAMESPACE_SEPARATOR in kind


def is_known_kind(kind: str) -> bool:
    """Return True if ``kind`` is in the vocabulary or is namespaced.

    Parameters
    ----------
    kind : str
        Node kind to check

    Returns
    -------
    bool
        Whether a consumer can expect to recognize the kind

    """
    return kind in KNOWN_KINDS or is_namespaced(kind)


def is_block_kind(kind: str) -> bool:
    return kind in BLOCK_KINDS or kind == MATH_DISPLAY


def is_inline_kind(kind: str) -> bool:
    return kind in INLINE_KINDS or kind == MATH_INLINE
