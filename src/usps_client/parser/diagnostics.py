"""Diagnostics attached to parsed addresses."""

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(StrEnum):
    """Stable machine identifiers emitted by the parser."""

    EMPTY_INPUT = "empty_input"
    INSUFFICIENT_SEGMENTS = "insufficient_segments"
    MISSING_STREET = "missing_street"
    EMPTY_STREET = "empty_street"
    MISSING_CITY = "missing_city"
    MISSING_STATE_ZIP = "missing_state_zip"
    INVALID_STATE_ZIP = "invalid_state_zip"
    UNKNOWN_STATE = "unknown_state"
    UNKNOWN_SECONDARY = "unknown_secondary"


@dataclass(frozen=True)
class TextSpan:
    """Byte offsets [start, end) into the original UTF-8 input."""

    start: int
    end: int


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    code: DiagnosticCode
    message: str
    span: TextSpan | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        data = {
            "severity": self.severity.value,
            "code": self.code.value,
            "message": self.message,
        }
        if self.span is not None:
            data["span"] = {"start": self.span.start, "end": self.span.end}
        return data


def _sort_key(diagnostic: Diagnostic) -> tuple[int, str, int, int]:
    span = diagnostic.span
    return (
        0 if diagnostic.is_error else 1,
        diagnostic.code.value,
        span.start if span else -1,
        span.end if span else -1,
    )


def sort_diagnostics(diagnostics: list[Diagnostic]) -> tuple[Diagnostic, ...]:
    """Errors before warnings, then code, span start, span end. Stable."""
    return tuple(sorted(diagnostics, key=_sort_key))


__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "TextSpan",
    "sort_diagnostics",
]
