"""Lint models - diagnostics and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class Severity(Enum):
    """Diagnostic severity level."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic produced by an analyzer."""

    path: str
    line: int
    message: str
    source: str  # analyzer that produced this
    severity: Severity = Severity.ERROR
    column: int | None = None
    end_line: int | None = None
    end_column: int | None = None
    code: str | None = None  # "unknown-class", "syntax"
    start_offset: int | None = None
    end_offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "start": self.start_offset,
            "end": self.end_offset,
            "message": self.message,
            "source": self.source,
            "severity": self.severity.value,
            "code": self.code,
        }


@dataclass
class AnalyzerResult:
    """Result from running a single analyzer."""

    analyzer_id: str
    status: Literal["clean", "dirty", "error", "skipped"]
    diagnostics: list[Diagnostic] = field(default_factory=list)
    duration_seconds: float = 0.0
    error_detail: str | None = None  # If status=="error"


@dataclass
class LintResult:
    """Aggregated result from linting one file."""

    path: str
    analyzers_run: list[AnalyzerResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_diagnostics(self) -> int:
        return sum(len(a.diagnostics) for a in self.analyzers_run)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """All diagnostics, ordered by position."""
        found = [d for a in self.analyzers_run for d in a.diagnostics]
        return sorted(found, key=lambda d: (d.line, d.column or 0))

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(
            d.severity == Severity.ERROR for a in self.analyzers_run for d in a.diagnostics
        )

    @property
    def status(self) -> Literal["clean", "dirty", "error"]:
        if any(a.status == "error" for a in self.analyzers_run):
            return "error"
        if any(a.status == "dirty" for a in self.analyzers_run):
            return "dirty"
        return "clean"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
            "analyzers": [
                {
                    "id": a.analyzer_id,
                    "status": a.status,
                    "diagnostics": len(a.diagnostics),
                    "error_detail": a.error_detail,
                }
                for a in self.analyzers_run
            ],
            "duration_seconds": self.duration_seconds,
        }
