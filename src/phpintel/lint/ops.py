"""Lint operations - run the enabled analyzers over one file."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog

from phpintel.core.errors import PhpIntelError
from phpintel.index._internal.deduction.document import TextDocument
from phpintel.lint.models import AnalyzerResult, LintResult
from phpintel.lint.tools import LintAnalyzer, LintContext, registry

if TYPE_CHECKING:
    from phpintel.index.ops import IndexCoordinator

logger = structlog.get_logger()


class LintOps:
    """Lint operations backed by the index.

    Analyzers only read the index: a file is linted against whatever has been
    indexed, including its own declarations if it was indexed first.
    """

    def __init__(self, coordinator: IndexCoordinator) -> None:
        self._coordinator = coordinator

    def check(
        self,
        path: str,
        source: str | bytes,
        *,
        analyzers: list[str] | None = None,
    ) -> LintResult:
        """Run lint analyzers against ``source``.

        Args:
            path: Path the source belongs to, used in diagnostics.
            source: PHP source text.
            analyzers: Specific analyzer IDs to run (default: all enabled in config).

        Returns:
            LintResult with diagnostics from every analyzer run.
        """
        start_time = time.time()
        coordinator = self._coordinator
        document = TextDocument(path, source, parser=coordinator.parser)
        context = LintContext(
            path=path,
            document=document,
            storage=coordinator.storage,
            names=coordinator.names,
            classlikes=coordinator.classlikes,
            engine=coordinator.engine,
        )

        results = [self._run(analyzer, context) for analyzer in self._resolve(analyzers)]
        result = LintResult(
            path=path,
            analyzers_run=results,
            duration_seconds=time.time() - start_time,
        )
        logger.debug(
            "lint_complete",
            path=path,
            status=result.status,
            diagnostics=result.total_diagnostics,
        )
        return result

    def _resolve(self, analyzer_ids: list[str] | None) -> list[LintAnalyzer]:
        if analyzer_ids:
            selected = []
            for aid in analyzer_ids:
                analyzer = registry.get(aid)
                if analyzer is None:
                    logger.warning("lint_unknown_analyzer", analyzer_id=aid)
                    continue
                selected.append(analyzer)
            return selected
        return registry.enabled(self._coordinator.config.lint)

    @staticmethod
    def _run(analyzer: LintAnalyzer, context: LintContext) -> AnalyzerResult:
        start_time = time.time()
        try:
            diagnostics = analyzer.run(context)
        except PhpIntelError as e:
            logger.warning(
                "lint_analyzer_failed",
                analyzer_id=analyzer.analyzer_id,
                path=context.path,
                error=str(e),
            )
            return AnalyzerResult(
                analyzer_id=analyzer.analyzer_id,
                status="error",
                duration_seconds=time.time() - start_time,
                error_detail=e.message,
            )
        return AnalyzerResult(
            analyzer_id=analyzer.analyzer_id,
            status="dirty" if diagnostics else "clean",
            diagnostics=diagnostics,
            duration_seconds=time.time() - start_time,
        )
