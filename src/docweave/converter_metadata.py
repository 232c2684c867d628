#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/converter_metadata.py
"""Converter metadata definitions for the docweave library.

This module defines the dataclass that describes a reader's capabilities,
requirements and registration information for the converter registry.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Union


@dataclass
class ConverterMetadata:
    """Metadata describing a reader's capabilities and requirements.

    Parameters
    ----------
    format_name : str
        Unique identifier for the format (e.g., "rst", "fb2")
    extensions : list[str]
        File extensions supported (e.g., [".rst"])
    mime_types : list[str]
        MIME types that indicate this format
    magic_bytes : list[tuple[bytes, int]]
        Magic byte patterns and their offset for content detection.
        Each tuple is (pattern, offset) where offset is position in file
    content_detector : Callable[[bytes], bool], optional
        Custom content-based detection function that receives file content bytes
        and returns True if this reader should handle the content
    parser_class : Union[str, type, None], optional
        Parser class specification. Can be:
        - Simple class name (e.g., "RstParser") - looks in docweave.parsers.{format}
        - Fully qualified name (e.g., "myplugin.parsers.MyParser")
        - Direct class reference (e.g., MyParserClass)
    parser_required_packages : list[tuple[str, str, str]]
        Required packages for the parser as (install_name, import_name, version_spec) tuples.
        e.g., [("pylatexenc", "pylatexenc", ">=2.10")]
    optional_packages : list[tuple[str, str]]
        Optional packages that enhance functionality
    import_error_message : str
        Custom error message for missing dependencies
    parser_options_class : Union[str, type, None]
        Parser options class specification. Can be:
        - Simple class name (e.g., "RstOptions") - looks in docweave.options
        - Fully qualified name (e.g., "myplugin.options.MyOptions")
        - Direct class reference (e.g., MyOptionsClass)
    description : str
        Human-readable description of the reader
    priority : int
        Priority for format detection (higher = checked first)

    """

    format_name: str
    extensions: list[str] = field(default_factory=list)
    mime_types: list[str] = field(default_factory=list)
    magic_bytes: list[tuple[bytes, int]] = field(default_factory=list)
    content_detector: Optional[Callable[[bytes], bool]] = None
    parser_class: Optional[Union[str, type]] = None
    parser_required_packages: list[tuple[str, str, str]] = field(default_factory=list)
    optional_packages: list[tuple[str, str]] = field(default_factory=list)
    import_error_message: str = ""
    parser_options_class: Optional[Union[str, type]] = None
    description: str = ""
    priority: int = 0

    def matches_extension(self, filename: str) -> bool:
        """Check if filename ends with any supported extension (case-insensitive).

        Compound extensions such as ``.fb2.zip`` are matched as suffixes.
        """
        if not filename:
            return False

        name = os.path.basename(filename.lower())
        return any(name.endswith(ext) for ext in self.extensions)

    def matches_mime_type(self, mime_type: str) -> bool:
        return mime_type in self.mime_types if mime_type else False

    def matches_magic_bytes(self, content: bytes, max_check: int = 512) -> bool:
        """Check if content matches any magic byte pattern.

        Parameters
        ----------
        content : bytes
            File content to check
        max_check : int
            Maximum bytes to check

        Returns
        -------
        bool
            True if any magic byte pattern matches

        """
        if not content or not self.magic_bytes:
            return False

        head = content[:max_check]
        for pattern, offset in self.magic_bytes:
            if head[offset : offset + len(pattern)] == pattern:
                return True
        return False

    def matches_content(self, content: bytes) -> bool:
        """Check magic bytes, then the custom content detector."""
        if self.matches_magic_bytes(content):
            return True
        if self.content_detector is not None and content:
            return bool(self.content_detector(content))
        return False

    def get_parser_display_name(self) -> str:
        """Get a dotted display name for the parser class."""
        if self.parser_class is None:
            return "N/A"

        if isinstance(self.parser_class, type):
            return f"{self.parser_class.__module__}.{self.parser_class.__qualname__}"

        if "." in self.parser_class:
            return self.parser_class
        return f"docweave.parsers.{self.format_name}.{self.parser_class}"
