#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/fidelity.py
"""Fidelity warnings and conversion results.

Readers never raise on markup they cannot represent. They record a
``FidelityWarning`` instead and keep going, so a caller always receives a
``ConversionResult`` holding the best-effort document plus an account of
what was simplified or lost.

    >>> collector = FidelityCollector()
    >>> collector.minor(WarningKind.UNSUPPORTED_NODE, "unknown directive", detail="rst:foo")
    >>> result = ConversionResult("converted", collector.freeze())
    >>> result.has_warnings(), result.has_errors()
    (True, False)

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Generic, Iterable, Iterator, Optional, TypeVar

from docweave.ast.nodes import Span

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Severity(IntEnum):
    """Ordered severity of a fidelity loss."""

    INFO = 0
    MINOR = 1
    MAJOR = 2
    ERROR = 3


class WarningKind(str, Enum):
    """Category of a fidelity loss."""

    UNSUPPORTED_PROPERTY = "unsupported_property"
    UNSUPPORTED_NODE = "unsupported_node"
    SIMPLIFIED = "simplified"
    RESOURCE_FAILED = "resource_failed"
    FEATURE_LOST = "feature_lost"


@dataclass(frozen=True)
class FidelityWarning:
    """A single recorded loss of fidelity.

    Parameters
    ----------
    severity : Severity
        How much was lost
    kind : WarningKind
        What kind of loss it was
    message : str
        Human-readable description
    detail : str, optional
        Variant payload: the namespaced construct name (``"rst:foo"``), a
        property key, or a resource id
    span : Span, optional
        Source location, when known

    """

    severity: Severity
    kind: WarningKind
    message: str
    detail: Optional[str] = None
    span: Optional[Span] = None

    def __str__(self) -> str:
        text = f"[{self.severity.name}] {self.message}"
        if self.detail:
            text += f" ({self.detail})"
        return text


@dataclass(frozen=True)
class ConversionResult(Generic[T]):
    """Value produced by a conversion plus the warnings recorded on the way.

    Parameters
    ----------
    value : T
        The converted value, usually a ``Document``
    warnings : tuple[FidelityWarning, ...]
        Recorded warnings in the order they were raised

    """

    value: T
    warnings: tuple[FidelityWarning, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.warnings, tuple):
            object.__setattr__(self, "warnings", tuple(self.warnings))

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def has_errors(self) -> bool:
        """Return True if any warning is MAJOR or worse."""
        return any(w.severity >= Severity.MAJOR for w in self.warnings)

    def with_warning(self, warning: FidelityWarning) -> ConversionResult[T]:
        """Return a new result with ``warning`` appended."""
        return ConversionResult(self.value, self.warnings + (warning,))

    def warnings_at_least(self, severity: Severity) -> tuple[FidelityWarning, ...]:
        return tuple(w for w in self.warnings if w.severity >= severity)


class FidelityCollector:
    """Append-only sink for warnings raised during a single parse."""

    def __init__(self) -> None:
        self._warnings: list[FidelityWarning] = []

    def warn(
        self,
        severity: Severity,
        kind: WarningKind,
        message: str,
        detail: Optional[str] = None,
        span: Optional[Span] = None,
    ) -> FidelityWarning:
        """Record a warning and return it."""
        warning = FidelityWarning(severity, kind, message, detail, span)
        logger.debug("Fidelity warning recorded: %s", warning)
        self._warnings.append(warning)
        return warning

    def info(self, kind: WarningKind, message: str, detail: Optional[str] = None, span: Optional[Span] = None) -> None:
        self.warn(Severity.INFO, kind, message, detail, span)

    def minor(self, kind: WarningKind, message: str, detail: Optional[str] = None, span: Optional[Span] = None) -> None:
        self.warn(Severity.MINOR, kind, message, detail, span)

    def major(self, kind: WarningKind, message: str, detail: Optional[str] = None, span: Optional[Span] = None) -> None:
        self.warn(Severity.MAJOR, kind, message, detail, span)

    def extend(self, warnings: Iterable[FidelityWarning]) -> None:
        for warning in warnings:
            logger.debug("Fidelity warning recorded: %s", warning)
            self._warnings.append(warning)

    def __len__(self) -> int:
        return len(self._warnings)

    def __iter__(self) -> Iterator[FidelityWarning]:
        return iter(self._warnings)

    def freeze(self) -> tuple[FidelityWarning, ...]:
        """Return the recorded warnings as an immutable tuple."""
        return tuple(self._warnings)
