#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/converter_registry.py
"""Converter registry for dynamic reader management.

This module implements a registry pattern for readers, enabling:
- Discovery of reader modules through their ``CONVERTER_METADATA``
- Registration of third-party readers through entry points
- Format detection from file names and content
- Priority-based reader selection
"""

from __future__ import annotations

import importlib
import importlib.metadata
import io
import logging
import mimetypes
from pathlib import Path
from typing import IO, Dict, List, Optional, Union

from docweave.converter_metadata import ConverterMetadata
from docweave.exceptions import FormatError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "docweave.converters"
DETECTION_SAMPLE_SIZE = 4096


def _sanitize_for_log(value: str) -> str:
    """Escape line breaks so user-supplied names cannot forge log lines."""
    return value.replace("\n", "\\n").replace("\r", "\\r")


def check_package_installed(import_name: str) -> bool:
    """Check if a package is installed and importable.

    Parameters
    ----------
    import_name : str
        Name to use in the import statement (e.g., 'yaml' for pyyaml)

    Returns
    -------
    bool
        True if the package can be imported

    """
    try:
        # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
        importlib.import_module(import_name)
        return True
    except ImportError:
        return False


def _load_class(class_spec: Union[str, type, None], default_module_path: str, class_type_name: str) -> Optional[type]:
    """Load parser and options classes from their specification.

    Parameters
    ----------
    class_spec : Union[str, type, None]
        Class specification. Can be:
        - Simple class name (e.g., "RstOptions") - looks in default_module_path
        - Fully qualified name (e.g., "myplugin.options.MyOptions")
        - Direct class reference
        - None
    default_module_path : str
        Module path to use for simple class names (e.g., "docweave.options")
    class_type_name : str
        Type name for error messages ("options" or "parser")

    Returns
    -------
    Optional[type]
        The loaded class or None

    """
    if class_spec is None:
        return None
    if isinstance(class_spec, type):
        return class_spec

    if "." in class_spec:
        module_path, class_name = class_spec.rsplit(".", 1)
    else:
        module_path, class_name = default_module_path, class_spec
    try:
        # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
        module = importlib.import_module(module_path)
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        logger.warning(
            f"Could not load {class_type_name} class '{_sanitize_for_log(class_spec)}' "
            f"from {module_path}: {_sanitize_for_log(str(e))}"
        )
        return None


class ConverterRegistry:
    """Registry for managing document readers.

    This class provides a central registry for all readers, handling:
    - Reader registration and discovery
    - Priority-based reader selection
    - Format detection from files and content

    The registry supports multiple readers for the same format, with
    priority-based selection. Higher priority readers are tried first,
    allowing plugins to override built-in readers.

    Attributes
    ----------
    _instance : ConverterRegistry or None
        Singleton instance of the registry
    _converters : dict
        Registered readers by format name, each mapping to a priority-sorted
        list of ConverterMetadata objects
    _initialized : bool
        Whether auto-discovery has been run

    """

    _instance: Optional[ConverterRegistry] = None
    _converters: Dict[str, List[ConverterMetadata]] = {}
    _initialized: bool = False

    def __new__(cls) -> ConverterRegistry:
        """Create or return singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._converters = {}
            cls._instance._initialized = False
        return cls._instance

    def register(self, metadata: ConverterMetadata) -> None:
        """Register a reader with its metadata.

        Parameters
        ----------
        metadata : ConverterMetadata
            Reader metadata to register

        Notes
        -----
        Several readers can be registered for one format_name; they are kept
        sorted by priority, highest first.

        """
        if metadata.format_name not in self._converters:
            self._converters[metadata.format_name] = []
            logger.debug(f"Registered converter: {metadata.format_name} (priority={metadata.priority})")
        else:
            logger.debug(f"Adding additional converter for '{metadata.format_name}' (priority={metadata.priority})")

        self._converters[metadata.format_name].append(metadata)
        self._converters[metadata.format_name].sort(key=lambda m: m.priority, reverse=True)

    def unregister(self, format_name: str) -> bool:
        """Unregister every reader for a format; return False if none was registered."""
        if format_name in self._converters:
            del self._converters[format_name]
            logger.debug(f"Unregistered converter: {format_name}")
            return True
        return False

    def _require_format(self, format_name: str) -> List[ConverterMetadata]:
        if format_name not in self._converters:
            raise FormatError(format_type=format_name, supported_formats=self.list_formats())
        return self._converters[format_name]

    def get_parser_options_class(self, format_name: str) -> Optional[type]:
        """Get the options class for a format.

        Parameters
        ----------
        format_name : str
            Format name to get the options class for

        Returns
        -------
        type or None
            Options class from the highest priority reader that declares one

        Raises
        ------
        FormatError
            If the format is not registered

        """
        for metadata in self._require_format(format_name):
            if metadata.parser_options_class is not None:
                options_class = _load_class(metadata.parser_options_class, "docweave.options", "options")
                if options_class is not None:
                    return options_class
        return None

    def get_parser(self, format_name: str) -> type:
        """Get the parser class for a format with priority-based selection.

        Parameters
        ----------
        format_name : str
            Format name to get a parser for

        Returns
        -------
        type
            Parser class (subclass of BaseParser)

        Raises
        ------
        FormatError
            If the format is not registered or no parser class can be loaded

        Notes
        -----
        Missing third-party packages are not checked here; the parser raises
        ``DependencyError`` when it runs.

        """
        candidates = self._require_format(format_name)
        for metadata in candidates:
            parser_class = _load_class(metadata.parser_class, f"docweave.parsers.{format_name}", "parser")
            if parser_class is not None:
                logger.debug(
                    f"Selected parser for '{format_name}': {metadata.get_parser_display_name()} "
                    f"(priority={metadata.priority})"
                )
                return parser_class

        raise FormatError(
            f"No parser available for format '{format_name}'. Tried {len(candidates)} converter(s).",
            format_type=format_name,
        )

    def detect_format(self, input_data: Union[str, Path, IO[bytes], bytes], hint: Optional[str] = None) -> str:
        """Detect the format of the input.

        Strategies, in order:
        1. Explicit hint, if it names a registered format
        2. File name extension (validated by the content detector if the
           reader has one), then MIME type
        3. Content detectors and magic bytes

        A ``str`` is document text and is only inspected by content.

        Parameters
        ----------
        input_data : str, Path, IO[bytes] or bytes
            Input to detect the format of
        hint : str, optional
            Format name to prefer

        Returns
        -------
        str
            Detected format name

        Raises
        ------
        FormatError
            If no strategy identifies the format

        """
        if hint:
            if hint in self._converters:
                return hint
            logger.debug(f"Ignoring unknown format hint '{_sanitize_for_log(hint)}'")

        filename: Optional[str] = None
        if isinstance(input_data, Path):
            filename = str(input_data)
        elif not isinstance(input_data, (str, bytes)):
            file_obj_name = getattr(input_data, "name", None)
            if isinstance(file_obj_name, str) and file_obj_name:
                filename = file_obj_name

        content = self._read_sample(input_data)

        if filename:
            format_name = self._detect_by_filename(filename, content)
            if format_name:
                logger.debug(f"Format detected from filename: {format_name}")
                return format_name

        if content:
            format_name = self._detect_by_content(content)
            if format_name:
                logger.debug(f"Format detected from content: {format_name}")
                return format_name

        raise FormatError(
            "Could not detect the input format; pass source_format explicitly",
            supported_formats=self.list_formats(),
        )

    @staticmethod
    def _read_sample(input_data: Union[str, Path, IO[bytes], bytes]) -> Optional[bytes]:
        """Leading bytes of the input, without consuming a stream."""
        if isinstance(input_data, bytes):
            return input_data[:DETECTION_SAMPLE_SIZE]
        if isinstance(input_data, str):
            return input_data[:DETECTION_SAMPLE_SIZE].encode("utf-8", errors="ignore")
        if isinstance(input_data, Path):
            try:
                with open(input_data, "rb") as f:
                    return f.read(DETECTION_SAMPLE_SIZE)
            except OSError as e:
                logger.debug(f"Could not read {input_data} for detection: {e!r}")
                return None
        if isinstance(input_data, io.IOBase) or hasattr(input_data, "seek"):
            try:
                pos = input_data.tell()
                sample = input_data.read(DETECTION_SAMPLE_SIZE)
                input_data.seek(pos)
            except (OSError, ValueError) as e:
                logger.debug(f"Error reading input as file: {e!r}")
                return None
            if isinstance(sample, str):
                return sample.encode("utf-8", errors="ignore")
            return sample
        return None

    def _sorted_converters(self) -> List[tuple[str, ConverterMetadata]]:
        all_converters = [
            (format_name, metadata)
            for format_name, metadata_list in self._converters.items()
            for metadata in metadata_list
        ]
        return sorted(all_converters, key=lambda x: x[1].priority, reverse=True)

    def _detect_by_filename(self, filename: str, content: Optional[bytes] = None) -> Optional[str]:
        """Detect format from a file name, validated by content detectors when possible.

        Notes
        -----
        A reader with a content_detector only claims a matching file when its
        content passes the detector, which keeps ambiguous extensions from
        producing false positives.

        """
        sorted_converters = self._sorted_converters()
        for format_name, metadata in sorted_converters:
            if not metadata.matches_extension(filename):
                continue
            if content and metadata.content_detector:
                if metadata.content_detector(content):
                    return format_name
                logger.debug(f"Format '{format_name}' matched extension but failed content_detector validation")
                continue
            return format_name

        mime_type, _ = mimetypes.guess_type(filename)
        if mime_type:
            for format_name, metadata in sorted_converters:
                if metadata.matches_mime_type(mime_type):
                    return format_name
        return None

    def _detect_by_content(self, content: bytes) -> Optional[str]:
        for format_name, metadata in self._sorted_converters():
            if metadata.matches_content(content):
                return format_name
        return None

    def list_formats(self) -> List[str]:
        """Registered format names, sorted."""
        return sorted(self._converters.keys())

    def get_format_info(self, format_name: str) -> Optional[List[ConverterMetadata]]:
        return self._converters.get(format_name)

    def get_all_extensions(self) -> set[str]:
        """Every file extension claimed by a registered reader.

        Examples
        --------
        >>> ".rst" in registry.get_all_extensions()
        True

        """
        all_extensions: set[str] = set()
        for metadata_list in self._converters.values():
            for metadata in metadata_list:
                all_extensions.update(metadata.extensions)
        return all_extensions

    def check_dependencies(self, format_name: Optional[str] = None) -> Dict[str, List[str]]:
        """Map format names to the packages their highest priority reader is missing.

        Parameters
        ----------
        format_name : str, optional
            Check one format, or all formats if None

        Returns
        -------
        dict
            Format names mapped to missing install names; formats with nothing
            missing are omitted

        """
        missing: Dict[str, List[str]] = {}
        formats_to_check = [format_name] if format_name else list(self._converters.keys())
        for fmt in formats_to_check:
            metadata_list = self._converters.get(fmt)
            if not metadata_list:
                continue
            format_missing = [
                pkg_name
                for pkg_name, import_name, _ in metadata_list[0].parser_required_packages
                if not check_package_installed(import_name)
            ]
            if format_missing:
                missing[fmt] = format_missing
        return missing

    def auto_discover(self) -> None:
        """Discover and register readers.

        This method:
        1. Scans the ``docweave.parsers`` package for modules with CONVERTER_METADATA
        2. Discovers plugins via the ``docweave.converters`` entry point group

        Running it again is a no-op.
        """
        if self._initialized:
            return
        self._initialized = True

        for module_name in self._discover_converter_modules():
            module_path = f"docweave.parsers.{module_name}"
            try:
                # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
                module = importlib.import_module(module_path)
            except ImportError as e:
                logger.debug(f"Could not load parser {module_name}: {e}")
                continue

            metadata = getattr(module, "CONVERTER_METADATA", None)
            if isinstance(metadata, ConverterMetadata):
                self.register(metadata)
                logger.debug(f"Auto-registered parser converter: {module_name}")

        self._discover_plugins()

    @staticmethod
    def _discover_converter_modules() -> List[str]:
        """Public module names in the ``docweave.parsers`` package directory."""
        # nosemgrep: python.lang.security.audit.non-literal-import.non-literal-import
        package = importlib.import_module("docweave.parsers")
        if package.__file__ is None:
            logger.warning("Package docweave.parsers has no __file__ attribute")
            return []

        package_path = Path(package.__file__).parent
        converter_modules = sorted(
            file_path.stem for file_path in package_path.glob("*.py") if not file_path.stem.startswith("_")
        )
        logger.debug(f"Discovered parser modules: {converter_modules}")
        return converter_modules

    def _discover_plugins(self) -> None:
        """Register third-party readers exposed through the entry point group."""
        for entry_point in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            dist_name = entry_point.dist.name if entry_point.dist else "unknown"
            try:
                converter_metadata = entry_point.load()
            except Exception as e:
                logger.warning(f"Failed to load plugin '{entry_point.name}' from '{dist_name}': {e}")
                continue

            if isinstance(converter_metadata, ConverterMetadata):
                self.register(converter_metadata)
                logger.info(
                    f"Registered plugin converter: {converter_metadata.format_name} "
                    f"(priority={converter_metadata.priority}) from package '{dist_name}'"
                )
            else:
                logger.warning(
                    f"Entry point '{entry_point.name}' from '{dist_name}' did not return a ConverterMetadata instance"
                )


# Global registry instance
registry = ConverterRegistry()
