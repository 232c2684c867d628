"""docweave - read lightweight markup and document formats into one document IR.

docweave parses fourteen source formats into a single, format-neutral tree of
``Node`` objects held by a ``Document``. Every parse returns a
``ConversionResult`` that pairs the document with the fidelity warnings
recorded while reading it: markup that could not be represented exactly is
reported, never silently dropped, and never fatal.

Supported Formats
-----------------
- **Hand-written readers**: AsciiDoc, reStructuredText, Org, Jira wiki
  markup, Textile, txt2tags, Typst, VimWiki, Markua, Texinfo
- **Library-backed readers**: Markdown (mistune), LaTeX (pylatexenc),
  FictionBook 2 (defusedxml), pandoc JSON

Requirements
------------
- Python 3.10+

Examples
--------
Parse with an explicit format:

    >>> from docweave import parse
    >>> result = parse("== Hello ==\\n", source_format="asciidoc")
    >>> result.value.blocks[0].get("level")
    2

Detect the format from a path:

    >>> from pathlib import Path
    >>> result = parse(Path("chapter.rst"))  # doctest: +SKIP

Inspect the warnings:

    >>> for warning in result.warnings:  # doctest: +SKIP
    ...     print(warning.severity, warning.message)

See Also
--------
docweave.ast : Document IR, builders, visitors and serialization
docweave.options : Per-reader options

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

# Check Python version before any imports
import sys

if sys.version_info < (3, 10):
    raise ImportError(
        "docweave requires Python 3.10 or later. "
        f"You are using Python {sys.version_info.major}.{sys.version_info.minor}."
    )

__version__ = "0.4.0"

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docweave.options.asciidoc import AsciiDocOptions  # noqa: F401
    from docweave.options.fb2 import Fb2Options  # noqa: F401
    from docweave.options.jira import JiraOptions  # noqa: F401
    from docweave.options.latex import LatexOptions  # noqa: F401
    from docweave.options.markdown import MarkdownOptions  # noqa: F401
    from docweave.options.markua import MarkuaOptions  # noqa: F401
    from docweave.options.org import OrgOptions  # noqa: F401
    from docweave.options.pandoc_json import PandocJsonOptions  # noqa: F401
    from docweave.options.rst import RstOptions  # noqa: F401
    from docweave.options.texinfo import TexinfoOptions  # noqa: F401
    from docweave.options.textile import TextileOptions  # noqa: F401
    from docweave.options.txt2tags import Txt2tagsOptions  # noqa: F401
    from docweave.options.typst import TypstOptions  # noqa: F401
    from docweave.options.vimwiki import VimwikiOptions  # noqa: F401

from docweave.api import detect_format, list_formats, parse
from docweave.ast import ConversionResult, Document, FidelityWarning, Node, Severity, WarningKind
from docweave.converter_registry import registry
from docweave.exceptions import (
    DependencyError,
    DocweaveError,
    FormatError,
    InvalidInputError,
    InvalidOptionsError,
    ParseError,
)
from docweave.options.base import BaseParserOptions
from docweave.progress import ProgressCallback, ProgressEvent

# Option classes are loaded on first access
_lazy_options = {
    "AsciiDocOptions": "docweave.options.asciidoc",
    "Fb2Options": "docweave.options.fb2",
    "JiraOptions": "docweave.options.jira",
    "LatexOptions": "docweave.options.latex",
    "MarkdownOptions": "docweave.options.markdown",
    "MarkuaOptions": "docweave.options.markua",
    "OrgOptions": "docweave.options.org",
    "PandocJsonOptions": "docweave.options.pandoc_json",
    "RstOptions": "docweave.options.rst",
    "TexinfoOptions": "docweave.options.texinfo",
    "TextileOptions": "docweave.options.textile",
    "Txt2tagsOptions": "docweave.options.txt2tags",
    "TypstOptions": "docweave.options.typst",
    "VimwikiOptions": "docweave.options.vimwiki",
}

__all__ = [
    "__version__",
    "parse",
    "detect_format",
    "list_formats",
    # Registry system
    "registry",
    # Document IR
    "ConversionResult",
    "Document",
    "FidelityWarning",
    "Node",
    "Severity",
    "WarningKind",
    # Progress system
    "ProgressCallback",
    "ProgressEvent",
    # Exceptions
    "DocweaveError",
    "DependencyError",
    "FormatError",
    "InvalidInputError",
    "InvalidOptionsError",
    "ParseError",
    # Options
    "BaseParserOptions",
    *_lazy_options,
]


def __getattr__(name: str) -> Any:
    """Load option classes lazily on first access."""
    if name in _lazy_options:
        # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
        module = importlib.import_module(_lazy_options[name])
        cls = getattr(module, name)
        globals()[name] = cls
        return cls

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
