#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/base.py
"""Base classes for document parsers.

``BaseParser`` defines the contract every reader follows: construct it with
options and an optional progress callback, call ``parse`` once, and receive a
``ConversionResult[Document]`` carrying the tree and the fidelity warnings
recorded on the way.

``MarkupParser`` is the template shared by the hand-written readers. It
loads and decodes the input, builds the line cursor, runs the reader's
pre-pass hook, drives the block dispatcher and assembles the document.

"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, Optional, Union

from docweave.ast import kinds, props
from docweave.ast.document import Document, SourceInfo
from docweave.ast.fidelity import ConversionResult, FidelityCollector
from docweave.ast.nodes import Node, Properties, Span, text_node
from docweave.constants import MAX_HEADING_LEVEL, MIN_HEADING_LEVEL
from docweave.exceptions import DocweaveError, InputReadError, InvalidOptionsError, ValidationError
from docweave.options.base import BaseParserOptions
from docweave.parsers._block import BlockDispatcher
from docweave.parsers._cursor import LineCursor
from docweave.parsers._inline import InlineScanner
from docweave.progress import ProgressCallback, ProgressEvent
from docweave.utils.decorators import debug_timer
from docweave.utils.encoding import decode_bytes, read_stream, read_stream_bytes

logger = logging.getLogger(__name__)

ParserInput = Union[str, bytes, Path, IO[bytes]]


class BaseParser(ABC):
    """Abstract base class for all document parsers.

    Parameters
    ----------
    options : BaseParserOptions or None, default = None
        Reader-specific parsing options; defaults are used when None
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates during parsing

    Notes
    -----
    Parser instances are single-use: a second call to ``parse`` raises
    ``RuntimeError``. The module-level ``parse`` functions of each reader
    create a fresh instance per call.

    The input may be:

    - ``str``: always the document text, never a file path
    - ``bytes``: decoded as UTF-8, then through chardet detection
    - ``pathlib.Path``: read from disk
    - a binary (or text) file-like object

    """

    format_name: str = ""
    options_class: type[BaseParserOptions] = BaseParserOptions

    def __init__(self, options: BaseParserOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        self._validate_options_type(options, self.options_class, self.format_name or type(self).__name__)
        self.options: BaseParserOptions = options if options is not None else self.options_class()
        self.progress_callback: Optional[ProgressCallback] = progress_callback
        self.warnings = FidelityCollector()
        self._used = False

    @staticmethod
    def _validate_options_type(options: BaseParserOptions | None, expected_type: type, parser_name: str) -> None:
        """Validate that options are of the correct type for this parser.

        Raises
        ------
        InvalidOptionsError
            If options are not None and not an instance of expected_type

        """
        if options is not None and not isinstance(options, expected_type):
            raise InvalidOptionsError(
                converter_name=parser_name,
                expected_type=expected_type,
                received_type=type(options),
            )

    def parse(self, input_data: ParserInput) -> ConversionResult[Document]:
        """Parse the input document into the IR.

        Parameters
        ----------
        input_data : str, bytes, Path or IO[bytes]
            The document to parse

        Returns
        -------
        ConversionResult[Document]
            The parsed document and the fidelity warnings recorded

        Raises
        ------
        RuntimeError
            If this instance has already parsed a document
        InvalidInputError
            If bytes cannot be decoded, or a library-backed reader receives
            structurally invalid input
        DependencyError
            If a library-backed reader's package is missing

        """
        if self._used:
            raise RuntimeError(
                f"{type(self).__name__} instances are single-use; create a new parser for each document"
            )
        self._used = True

        self._emit_progress("started", f"Parsing {self.format_name} document")
        try:
            with debug_timer(logger, f"Parsing ({self.format_name})"):
                document = self.parse_document(input_data)
        except DocweaveError as e:
            self._emit_progress("error", f"Failed to parse {self.format_name} document", error=str(e))
            raise

        if document.source is None:
            document.source = SourceInfo(self.format_name)
        if not self.options.extract_metadata:
            document.metadata = Properties()

        result = ConversionResult(document, self.warnings.freeze())
        self._emit_progress(
            "finished", f"Parsed {self.format_name} document", warnings=len(result.warnings)
        )
        return result

    @abstractmethod
    def parse_document(self, input_data: ParserInput) -> Document:
        """Build the document; warnings go to ``self.warnings``."""
        raise NotImplementedError

    def _emit_progress(self, event_type: str, message: str, current: int = 0, total: int = 0, **metadata: Any) -> None:
        """Emit a progress event to the callback if registered.

        If the callback raises an exception, it is logged and parsing
        continues.
        """
        if not self.progress_callback:
            return

        try:
            event = ProgressEvent(
                event_type=event_type,  # type: ignore[arg-type]
                message=message,
                current=current,
                total=total,
                metadata=metadata,
            )
            self.progress_callback(event)
        except Exception as e:
            logger.warning(f"Progress callback raised exception: {e}", exc_info=True)

    @staticmethod
    def _load_text_content(input_data: ParserInput) -> str:
        """Load text from any supported input type.

        Raises
        ------
        InputReadError
            If a path cannot be read
        InvalidInputError
            If bytes cannot be decoded
        ValidationError
            If the input type is not supported

        """
        if isinstance(input_data, str):
            return input_data
        if isinstance(input_data, (bytes, bytearray)):
            return decode_bytes(bytes(input_data))
        if isinstance(input_data, Path):
            try:
                data = input_data.read_bytes()
            except OSError as e:
                raise InputReadError(f"Could not read {input_data}: {e}", str(input_data), e) from e
            return decode_bytes(data)
        if hasattr(input_data, "read"):
            return read_stream(input_data)
        raise ValidationError(
            f"Unsupported input type: {type(input_data).__name__}",
            parameter_name="input_data",
            parameter_value=input_data,
        )

    @staticmethod
    def _load_bytes_content(input_data: ParserInput) -> bytes:
        """Load raw bytes from any supported input type; text is encoded as UTF-8."""
        if isinstance(input_data, str):
            return input_data.encode("utf-8")
        if isinstance(input_data, (bytes, bytearray)):
            return bytes(input_data)
        if isinstance(input_data, Path):
            try:
                return input_data.read_bytes()
            except OSError as e:
                raise InputReadError(f"Could not read {input_data}: {e}", str(input_data), e) from e
        if hasattr(input_data, "read"):
            return read_stream_bytes(input_data)
        raise ValidationError(
            f"Unsupported input type: {type(input_data).__name__}",
            parameter_name="input_data",
            parameter_value=input_data,
        )


class MarkupParser(BaseParser, BlockDispatcher):
    """Template for hand-written, line-oriented markup readers.

    Subclasses set ``format_name`` and ``options_class``, implement
    ``build_recognizers`` and ``create_inline_scanner``, and may override
    ``prepare`` (pre-pass over the whole text) and ``finish`` (post-process
    the top-level blocks).

    Byte spans refer to the UTF-8 encoding of the decoded text with any
    leading byte order mark removed.
    """

    def __init__(self, options: BaseParserOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        BaseParser.__init__(self, options, progress_callback)
        BlockDispatcher.__init__(self, self.options.max_nesting_depth, self.warnings)
        self.metadata = Properties()
        self.inline = self.create_inline_scanner()

    @abstractmethod
    def create_inline_scanner(self) -> InlineScanner:
        raise NotImplementedError

    def prepare(self, text: str) -> None:
        """Pre-pass over the full text before block parsing."""

    def finish(self, blocks: list[Node]) -> list[Node]:
        """Post-process the top-level blocks."""
        return blocks

    def parse_document(self, input_data: ParserInput) -> Document:
        text = self._load_text_content(input_data)
        if text.startswith("\ufeff"):
            text = text[1:]
        self.cursor = LineCursor(text, track_offsets=self.options.preserve_source_info)
        self.prepare(text)
        blocks = self.finish(self.parse_blocks())

        root = Node(kinds.DOCUMENT, children=blocks)
        if self.cursor.tracks_offsets:
            root.span = Span(0, len(text.encode("utf-8")))
        logger.debug("%s: parsed %d top-level blocks", self.format_name, len(blocks))
        return Document(content=root, metadata=self.metadata, source=SourceInfo(self.format_name))

    # ------------------------------------------------------------------
    # Node helpers used by the readers
    # ------------------------------------------------------------------

    def inlines(self, text: str) -> list[Node]:
        return self.inline.scan(text)

    def paragraph(self, lines: list[str]) -> Node:
        """Paragraph from non-blank source lines; line ends become soft breaks."""
        text = "\n".join(line.strip() for line in lines if line.strip())
        return Node(kinds.PARAGRAPH, children=self.inlines(text))

    def heading(self, level: int, text: str) -> Node:
        level = max(MIN_HEADING_LEVEL, min(MAX_HEADING_LEVEL, level))
        return Node(kinds.HEADING, children=self.inlines(text.strip())).prop(props.LEVEL, level)

    @staticmethod
    def code_block(content: str, language: Optional[str] = None) -> Node:
        node = Node(kinds.CODE_BLOCK).prop(props.CONTENT, content)
        if language:
            node.prop(props.LANGUAGE, language)
        return node

    @staticmethod
    def plain_paragraph(text: str) -> Node:
        return Node(kinds.PARAGRAPH).child(text_node(text))

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata.set(key, value)
