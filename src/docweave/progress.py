#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/progress.py
"""Progress callback system for document parsing.

Readers report progress to an optional callback. Every reader emits
``started`` and ``finished``; library-backed readers also emit
``item_done`` after each stage (tokenizing, metadata, tree building).
A callback that raises is logged and ignored; parsing continues.

Examples
--------
    >>> from docweave import parse
    >>> from docweave.progress import ProgressEvent
    >>>
    >>> def on_progress(event: ProgressEvent) -> None:
    ...     print(event)
    >>>
    >>> result = parse("= Title\\n", source_format="asciidoc", progress_callback=on_progress)
    [STARTED] Parsing asciidoc document
    [FINISHED] Parsed asciidoc document

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

EventType = Literal["started", "item_done", "detected", "finished", "error"]


@dataclass
class ProgressEvent:
    """Progress event emitted while parsing.

    Parameters
    ----------
    event_type : EventType
        One of:

        - "started": parsing has begun
        - "item_done": a stage has completed; ``metadata["item_type"]`` names it
        - "detected": something notable was found; ``metadata["detected_type"]`` names it
        - "finished": parsing completed; ``metadata["warnings"]`` holds the warning count
        - "error": a hard failure is about to be raised

    message : str
        Human-readable description of the event
    current : int, default 0
        Current progress position
    total : int, default 0
        Total items to process, or 0 if unknown
    metadata : dict, default empty
        Additional event-specific information

    """

    event_type: EventType
    message: str
    current: int = 0
    total: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        progress = f"({self.current}/{self.total})" if self.total > 0 else ""
        return f"[{self.event_type.upper()}] {self.message} {progress}".strip()


ProgressCallback = Callable[[ProgressEvent], None]
"""Any callable accepting a ProgressEvent and returning None."""
