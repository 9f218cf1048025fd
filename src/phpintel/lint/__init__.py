"""Lint module - syntax and semantic checks against the index."""

# Import definitions to register all analyzers
from phpintel.lint import definitions as _definitions  # noqa: F401
from phpintel.lint.models import AnalyzerResult, Diagnostic, LintResult, Severity
from phpintel.lint.ops import LintOps
from phpintel.lint.tools import AnalyzerRegistry, LintAnalyzer, LintContext, registry

__all__ = [
    "AnalyzerRegistry",
    "AnalyzerResult",
    "Diagnostic",
    "LintAnalyzer",
    "LintContext",
    "LintOps",
    "LintResult",
    "Severity",
    "registry",
]
