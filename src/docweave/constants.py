#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the docweave library.

Constants are organized by category:
1. Type Definitions - Literal types used by options
2. General Parsing Behavior - defaults shared by every reader
3. Dependencies - third-party packages required by library-backed readers
4. Format-Specific Constants - settings and vocabularies for each dialect
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

AttributeMissingPolicy = Literal["keep", "blank", "warn"]

# =============================================================================
# General Parsing Behavior
# =============================================================================

DEFAULT_PRESERVE_SOURCE_INFO = False
DEFAULT_EMBED_RESOURCES = True
DEFAULT_EXTRACT_METADATA = True
DEFAULT_STRICT_MODE = False

# Bound shared by block recursion (nested containers) and inline recursion
# (nested delimiters). Exceeding it flattens the remaining content.
DEFAULT_MAX_NESTING_DEPTH = 32
MAX_NESTING_DEPTH_LIMIT = 512

# Headings are clamped to this range by every reader.
MIN_HEADING_LEVEL = 1
MAX_HEADING_LEVEL = 6

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".bmp", ".tif", ".tiff")

# Encoding detection for byte input
ENCODING_SAMPLE_SIZE = 8192
ENCODING_CONFIDENCE_THRESHOLD = 0.7

# =============================================================================
# Dependencies
# =============================================================================

DEPS_MARKDOWN = [("mistune", "mistune", ">=3.0.0")]
DEPS_MARKDOWN_FRONTMATTER = [("pyyaml", "yaml", ">=6.0")]
DEPS_LATEX = [("pylatexenc", "pylatexenc", ">=2.10")]
DEPS_FB2 = [("defusedxml", "defusedxml", ">=0.7.1")]

# =============================================================================
# Format-Specific Constants - AsciiDoc
# =============================================================================

DEFAULT_ASCIIDOC_RESOLVE_ATTRIBUTE_REFS = True
DEFAULT_ASCIIDOC_ATTRIBUTE_MISSING_POLICY: AttributeMissingPolicy = "keep"
DEFAULT_ASCIIDOC_PARSE_TABLES = True

ASCIIDOC_ADMONITIONS = ("NOTE", "TIP", "WARNING", "IMPORTANT", "CAUTION")
ASCIIDOC_METADATA_ATTRIBUTES = ("title", "author", "email", "revnumber", "revdate", "description", "keywords")

# =============================================================================
# Format-Specific Constants - reStructuredText
# =============================================================================

# Characters accepted as section adornment. Levels come from the order in
# which styles are first seen, not from this sequence.
DEFAULT_RST_HEADING_CHARS = "=-~^\"`#*+_:'."
RST_ADMONITIONS = ("note", "warning", "tip", "important", "caution", "danger", "error", "hint", "attention")
RST_CODE_DIRECTIVES = ("code", "code-block", "sourcecode")
DEFAULT_RST_PARSE_DOCINFO = True

# =============================================================================
# Format-Specific Constants - Org-mode
# =============================================================================

DEFAULT_ORG_TODO_KEYWORDS = ("TODO", "DONE")
DEFAULT_ORG_PRESERVE_TAGS = False

# =============================================================================
# Format-Specific Constants - Jira
# =============================================================================

DEFAULT_JIRA_PANEL_TITLE_AS_HEADING = False

# =============================================================================
# Format-Specific Constants - Textile
# =============================================================================

DEFAULT_TEXTILE_COLLECT_FOOTNOTES = True

# =============================================================================
# Format-Specific Constants - txt2tags
# =============================================================================

DEFAULT_TXT2TAGS_PARSE_HEADER = True
TXT2TAGS_RULE_MIN_LENGTH = 20

# =============================================================================
# Format-Specific Constants - Typst
# =============================================================================

TYPST_BLOCK_FUNCTIONS = ("image", "link", "quote", "figure", "table")

# =============================================================================
# Format-Specific Constants - VimWiki
# =============================================================================

VIMWIKI_CHECKED_MARKERS = ("X",)
VIMWIKI_PROGRESS_MARKERS = (" ", ".", "o", "O", "X")

# =============================================================================
# Format-Specific Constants - Markua
# =============================================================================

MARKUA_SPECIAL_BLOCKS = {
    "A": "aside",
    "B": "blurb",
    "W": "warning",
    "T": "tip",
    "E": "error",
    "D": "discussion",
    "Q": "question",
    "I": "information",
    "X": "exercise",
}

# =============================================================================
# Format-Specific Constants - Texinfo
# =============================================================================

TEXINFO_HEADING_LEVELS = {
    "top": 1,
    "chapter": 1,
    "unnumbered": 1,
    "appendix": 1,
    "majorheading": 1,
    "chapheading": 1,
    "section": 2,
    "unnumberedsec": 2,
    "appendixsec": 2,
    "heading": 2,
    "subsection": 3,
    "unnumberedsubsec": 3,
    "appendixsubsec": 3,
    "subheading": 3,
    "subsubsection": 4,
    "unnumberedsubsubsec": 4,
    "appendixsubsubsec": 4,
    "subsubheading": 4,
}
TEXINFO_SKIPPED_LINE_COMMANDS = (
    "setfilename",
    "node",
    "bye",
    "insertcopying",
    "contents",
    "shortcontents",
    "summarycontents",
    "printindex",
    "cindex",
    "findex",
    "vindex",
    "kindex",
    "pindex",
    "tindex",
    "setchapternewpage",
    "paragraphindent",
    "firstparagraphindent",
    "documentencoding",
    "documentlanguage",
    "dircategory",
    "finalout",
    "smallbook",
    "headings",
    "page",
    "need",
    "sp",
    "vskip",
    "noindent",
    "indent",
    "refill",
    "anchor",
)
TEXINFO_SKIPPED_ENVIRONMENTS = (
    "ifinfo",
    "iftex",
    "ifhtml",
    "ifplaintext",
    "ifdocbook",
    "ifxml",
    "iflatex",
    "ignore",
    "titlepage",
    "copying",
    "direntry",
    "menu",
    "detailmenu",
    "tex",
    "html",
    "documentdescription",
)

# =============================================================================
# Format-Specific Constants - Markdown
# =============================================================================

DEFAULT_MARKDOWN_PARSE_TABLES = True
DEFAULT_MARKDOWN_PARSE_STRIKETHROUGH = True
DEFAULT_MARKDOWN_PARSE_FOOTNOTES = True
DEFAULT_MARKDOWN_PARSE_TASK_LISTS = True
DEFAULT_MARKDOWN_PARSE_MATH = True
DEFAULT_MARKDOWN_PARSE_DEFINITION_LISTS = True
DEFAULT_MARKDOWN_PARSE_FRONTMATTER = True

# =============================================================================
# Format-Specific Constants - LaTeX
# =============================================================================

DEFAULT_LATEX_PARSE_PREAMBLE = True
DEFAULT_LATEX_PARSE_MATH = True
LATEX_SECTION_LEVELS = {
    "part": 1,
    "chapter": 1,
    "section": 1,
    "subsection": 2,
    "subsubsection": 3,
    "paragraph": 4,
    "subparagraph": 5,
}
LATEX_MATH_ENVIRONMENTS = ("equation", "equation*", "align", "align*", "displaymath", "eqnarray", "gather", "multline")

# =============================================================================
# Format-Specific Constants - FB2
# =============================================================================

DEFAULT_FB2_EXTRACT_BINARIES = True
DEFAULT_FB2_INCLUDE_NOTES = True
FB2_NAMESPACE = "http://www.gribuser.ru/xml/fictionbook/2.0"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
