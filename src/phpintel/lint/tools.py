"""Lint analyzer registry - definitions for all built-in analyzers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from phpintel.lint.models import Diagnostic, Severity

if TYPE_CHECKING:
    from phpintel.config.models import LintConfig
    from phpintel.index._internal.db.storage import IndexStorage
    from phpintel.index._internal.deduction.document import TextDocument
    from phpintel.index._internal.deduction.engine import TypeDeductionEngine
    from phpintel.index._internal.naming.resolver import NameResolver
    from phpintel.index._internal.resolution.classlike import ClasslikeResolver


@dataclass
class LintContext:
    """Everything an analyzer may look at for one file."""

    path: str
    document: TextDocument
    storage: IndexStorage
    names: NameResolver
    classlikes: ClasslikeResolver
    engine: TypeDeductionEngine

    def diagnostic(
        self,
        node: Any,
        message: str,
        source: str,
        *,
        severity: Severity = Severity.ERROR,
        code: str | None = None,
    ) -> Diagnostic:
        """Diagnostic spanning ``node``."""
        return Diagnostic(
            path=self.path,
            line=int(node.start_point[0]) + 1,
            column=int(node.start_point[1]),
            end_line=int(node.end_point[0]) + 1,
            end_column=int(node.end_point[1]),
            message=message,
            source=source,
            severity=severity,
            code=code,
            start_offset=int(node.start_byte),
            end_offset=int(node.end_byte),
        )


@dataclass
class LintAnalyzer:
    """Definition of a built-in analyzer."""

    analyzer_id: str
    name: str
    # Field of LintConfig that toggles this analyzer
    config_key: str
    description: str = ""

    # Check function (set by register)
    _check: Callable[[LintContext], list[Diagnostic]] | None = None

    def run(self, context: LintContext) -> list[Diagnostic]:
        """Run the analyzer against one file."""
        if self._check is None:
            return []
        return self._check(context)


class AnalyzerRegistry:
    """Registry of lint analyzers."""

    def __init__(self) -> None:
        self._analyzers: dict[str, LintAnalyzer] = {}

    def register(
        self,
        analyzer: LintAnalyzer,
        check: Callable[[LintContext], list[Diagnostic]] | None = None,
    ) -> None:
        """Register an analyzer."""
        if check is not None:
            analyzer._check = check
        self._analyzers[analyzer.analyzer_id] = analyzer

    def get(self, analyzer_id: str) -> LintAnalyzer | None:
        """Get analyzer by ID."""
        return self._analyzers.get(analyzer_id)

    def all(self) -> list[LintAnalyzer]:
        """Get all registered analyzers."""
        return list(self._analyzers.values())

    def enabled(self, config: LintConfig) -> list[LintAnalyzer]:
        """Analyzers switched on in ``config``; unknown keys count as on."""
        return [a for a in self._analyzers.values() if getattr(config, a.config_key, True)]

    def clear(self) -> None:
        """Clear all registered analyzers."""
        self._analyzers.clear()


# Global registry
registry = AnalyzerRegistry()
