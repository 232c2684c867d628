#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/exceptions.py
"""Custom exceptions for the docweave library.

Parsing in docweave has two tiers of failure. Markup that a reader cannot
represent never raises: it is recorded as a ``FidelityWarning`` on the
returned ``ConversionResult``. The exceptions below are reserved for hard
failures, where the input cannot be tokenized at all or the caller asked for
something the library cannot do.

Exception Hierarchy
-------------------
- DocweaveError (base exception)

  - ValidationError (parameter/option validation)
    - InvalidOptionsError (wrong options class for parser)

  - ParseError (hard parse failures)
    - InvalidInputError (malformed XML/JSON, undecodable bytes, bad IR payloads)
    - FormatError (unsupported or undetectable formats)
    - InputReadError (I/O failures while loading input)

  - DependencyError (missing/incompatible packages)

"""

from __future__ import annotations

from typing import Any


class DocweaveError(Exception):
    """Base exception class for all docweave-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(DocweaveError):
    """Exception raised for invalid input parameters or options.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class InvalidOptionsError(ValidationError):
    """Exception raised when incorrect options class is provided to a parser.

    For example, passing ``RstOptions`` to the AsciiDoc parser.

    Parameters
    ----------
    converter_name : str
        Name of the parser that received invalid options
    expected_type : type
        The expected options class type
    received_type : type
        The actual options class type that was received
    message : str, optional
        Custom error message. If not provided, generates a helpful message
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        converter_name: str,
        expected_type: type,
        received_type: type,
        message: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the invalid options error."""
        if message is None:
            message = (
                f"{converter_name} expected options of type '{expected_type.__name__}' "
                f"but received '{received_type.__name__}'. "
                f"Please provide the correct options type for the parser."
            )
        super().__init__(
            message, parameter_name="options", parameter_value=received_type, original_error=original_error
        )
        self.converter_name = converter_name
        self.expected_type = expected_type
        self.received_type = received_type


class ParseError(DocweaveError):
    """Base exception for unrecoverable parse failures.

    Hand-written markup readers never raise this for unexpected markup;
    they record fidelity warnings instead. It is raised for inputs that
    cannot be tokenized at all.

    Parameters
    ----------
    message : str
        Description of the parsing failure
    parsing_stage : str, optional
        The stage of parsing where the error occurred
    original_error : Exception, optional
        The underlying exception that caused the parsing failure

    Attributes
    ----------
    parsing_stage : str or None
        Where in the parsing process the error occurred

    """

    def __init__(self, message: str, parsing_stage: str | None = None, original_error: Exception | None = None):
        """Initialize the parse error."""
        super().__init__(message, original_error)
        self.parsing_stage = parsing_stage


class InvalidInputError(ParseError):
    """Exception raised when the input is structurally invalid.

    Covers malformed XML handed to the FB2 reader, malformed JSON handed to
    the Pandoc JSON reader, bytes that cannot be decoded as text, and
    serialized IR payloads that do not describe a node tree.
    """


class FormatError(ParseError):
    """Exception raised when a format is unsupported or cannot be detected.

    Parameters
    ----------
    message : str, optional
        Custom error message
    format_type : str, optional
        The unsupported format name
    supported_formats : list[str], optional
        List of supported formats for reference
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str | None = None,
        format_type: str | None = None,
        supported_formats: list[str] | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the format error."""
        if message is None:
            if format_type:
                message = f"Unsupported format: '{format_type}'"
                if supported_formats:
                    formats_str = ", ".join(supported_formats[:5])
                    if len(supported_formats) > 5:
                        formats_str += f" (and {len(supported_formats) - 5} more)"
                    message += f". Supported formats include: {formats_str}"
            else:
                message = "Input format could not be determined"

        super().__init__(message, parsing_stage="format_detection", original_error=original_error)
        self.format_type = format_type
        self.supported_formats = supported_formats


class InputReadError(ParseError):
    """Exception raised when input cannot be read from its source.

    Parameters
    ----------
    message : str
        Description of the failure
    file_path : str, optional
        Path to the file that could not be read
    original_error : Exception, optional
        The underlying OS error

    """

    def __init__(self, message: str, file_path: str | None = None, original_error: Exception | None = None):
        """Initialize the read error with the offending path."""
        super().__init__(message, parsing_stage="input_loading", original_error=original_error)
        self.file_path = file_path


class DependencyError(DocweaveError):
    """Exception raised when required dependencies are not available.

    Library-backed readers (Markdown, LaTeX, FB2) raise this when the
    package that does their tokenizing is missing or too old.

    Parameters
    ----------
    converter_name : str
        Name of the converter requiring dependencies
    missing_packages : list[tuple[str, str]]
        List of (package_name, version_spec) tuples for missing packages
    version_mismatches : list[tuple[str, str, str]], optional
        List of (package_name, required_version, installed_version) tuples
    install_command : str, optional
        Suggested pip install command to resolve the issue
    message : str, optional
        Custom error message. If not provided, generates a helpful message
    original_import_error : ImportError, optional
        The import error raised when probing the package

    """

    def __init__(
        self,
        converter_name: str,
        missing_packages: list[tuple[str, str]],
        version_mismatches: list[tuple[str, str, str]] | None = None,
        install_command: str = "",
        message: str | None = None,
        original_import_error: ImportError | None = None,
    ):
        """Initialize the dependency error with package details."""
        version_mismatches = version_mismatches or []
        self.original_import_error = original_import_error
        if message is None:
            message_parts = []

            if missing_packages:
                pkg_list = ", ".join(f"'{name}{spec}'" if spec else f"'{name}'" for name, spec in missing_packages)
                message_parts.append(f"{converter_name.upper()} format requires the following packages: {pkg_list}")

            if version_mismatches:
                mismatch_str = ", ".join(
                    f"'{name}' (requires {required}, but {installed} is installed)"
                    for name, required, installed in version_mismatches
                )
                message_parts.append(f"{converter_name.upper()} format has version mismatches: {mismatch_str}")

            message = "\n".join(message_parts)

            if install_command:
                message += f"\nInstall with: {install_command}"
            else:
                all_packages = missing_packages + [(name, req) for name, req, _ in version_mismatches]
                if all_packages:
                    packages_str = " ".join(f'"{name}{spec}"' if spec else name for name, spec in all_packages)
                    message += f"\nInstall with: pip install --upgrade {packages_str}"

        super().__init__(message, original_error=original_import_error)
        self.converter_name = converter_name
        self.missing_packages = missing_packages
        self.version_mismatches = version_mismatches
        self.install_command = install_command
