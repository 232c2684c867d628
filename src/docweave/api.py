#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/api.py
"""Top-level entry points: format detection and parsing to the document IR."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Any, List, Optional, Union

from docweave import parsers  # noqa: F401  # registers the built-in readers
from docweave.ast.document import Document
from docweave.ast.fidelity import ConversionResult
from docweave.converter_registry import registry
from docweave.exceptions import DocweaveError, FormatError, ParseError
from docweave.options.base import BaseParserOptions
from docweave.progress import ProgressCallback
from docweave.utils.decorators import debug_timer

logger = logging.getLogger(__name__)

InputSource = Union[str, bytes, Path, IO[bytes]]


def detect_format(input_data: InputSource, hint: Optional[str] = None) -> str:
    """Detect the format of a document.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Document to inspect. A ``str`` is document text, never a path.
    hint : str, optional
        Format name to use if it is registered

    Returns
    -------
    str
        Registered format name

    Raises
    ------
    FormatError
        If neither the hint, the file extension nor the content identifies a format

    Examples
    --------
    >>> detect_format(Path("notes.org"))
    'org'
    >>> detect_format('{"pandoc-api-version": [1, 23], "meta": {}, "blocks": []}')
    'pandoc_json'

    """
    return registry.detect_format(input_data, hint=hint)


def list_formats() -> List[str]:
    """Names of every registered format, sorted."""
    return registry.list_formats()


def _resolve_options(
    format_name: str, options: Optional[BaseParserOptions], kwargs: dict[str, Any]
) -> Optional[BaseParserOptions]:
    """Merge keyword overrides into the given options, or into the format's defaults."""
    if not kwargs:
        return options
    if options is not None:
        return options.create_updated(**kwargs)

    options_class = registry.get_parser_options_class(format_name) or BaseParserOptions
    try:
        return options_class(**kwargs)
    except TypeError as e:
        raise FormatError(f"Invalid options for format '{format_name}': {e}", format_type=format_name) from e


def parse(
    input_data: InputSource,
    source_format: str = "auto",
    options: Optional[BaseParserOptions] = None,
    progress_callback: Optional[ProgressCallback] = None,
    **kwargs: Any,
) -> ConversionResult[Document]:
    """Parse a document into the document IR.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Document text, raw bytes, a path or a binary stream
    source_format : str, default "auto"
        Registered format name, or "auto" to detect it from the path
        extension and then the content
    options : BaseParserOptions, optional
        Reader options; must be an instance of the reader's options class
    progress_callback : ProgressCallback, optional
        Callback receiving progress events
    **kwargs
        Individual option fields, applied on top of ``options``

    Returns
    -------
    ConversionResult[Document]
        The document and the fidelity warnings recorded while reading it

    Raises
    ------
    FormatError
        If the format is unknown or cannot be detected
    InvalidOptionsError
        If ``options`` belongs to another reader
    DependencyError
        If a library-backed reader's packages are missing
    ParseError
        If the reader fails; hand-written readers only fail on undecodable input

    Examples
    --------
    >>> result = parse("* a\\n* b\\n", source_format="rst")
    >>> result.value.blocks[0].kind
    'list'

    """
    if source_format == "auto":
        format_name = detect_format(input_data)
    else:
        format_name = source_format
        if registry.get_format_info(format_name) is None:
            raise FormatError(format_type=format_name, supported_formats=registry.list_formats())

    parser_options = _resolve_options(format_name, options, kwargs)
    parser_class = registry.get_parser(format_name)
    logger.debug(f"Parsing input as '{format_name}' with {parser_class.__name__}")

    try:
        with debug_timer(logger, f"{format_name} parse"):
            return parser_class(options=parser_options, progress_callback=progress_callback).parse(input_data)
    except DocweaveError:
        raise
    except Exception as e:
        raise ParseError(f"Parsing failed: {e!r}", parsing_stage="parse", original_error=e) from e
