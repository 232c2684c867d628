"""Centralized logging utilities for applications embedding docweave."""

from __future__ import annotations

import logging
import sys
from typing import Optional

PARSERS_LOGGER_NAME = "docweave.parsers"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
    parser_log_level: int | str | None = None,
) -> logging.Logger:
    """Configure root logging handlers for docweave consumers.

    The library only creates module loggers and never installs handlers on
    import; call this from an application entry point.

    Parameters
    ----------
    log_level : int | str
        Numeric logging level or string name (e.g., "INFO").
    log_file : str, optional
        Optional path to a log file for teeing log output.
    trace_mode : bool, default False
        When true, emit timestamps and logger names for debugging traces.
    parser_log_level : int | str, optional
        Separate level for the ``docweave.parsers`` logger hierarchy. Useful
        to see recognizer fallbacks and recorded fidelity warnings (both
        logged at DEBUG) without turning on DEBUG for everything else.

    Returns
    -------
    logging.Logger
        The configured root logger instance.

    """
    resolved_level = _resolve_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()

    format_str = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s" if trace_mode else "%(levelname)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S" if trace_mode else None
    formatter = logging.Formatter(format_str, datefmt=date_format)

    handler_level = resolved_level
    if parser_log_level is not None:
        parser_level = _resolve_level(parser_log_level)
        logging.getLogger(PARSERS_LOGGER_NAME).setLevel(parser_level)
        handler_level = min(resolved_level, parser_level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(handler_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(handler_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            root_logger.info("Logging to file: %s", log_file)
        except OSError as exc:  # pragma: no cover - handled at runtime
            root_logger.warning("Could not create log file %s: %s", log_file, exc)

    return root_logger
