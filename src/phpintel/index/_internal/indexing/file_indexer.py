"""Per-file indexing pipeline.

A file is the unit of atomicity:

1. parse, rejecting undecodable or unrecoverable sources;
2. delete the previous record of the file (committed);
3. pass 1: namespace scopes and imports (committed);
4. pass 2: declarations, resolved against the imports read back from the
   store (committed).

If pass 1 or 2 fails the file record is removed, so a file is either fully
indexed or absent.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from phpintel.core.errors import ParseDiagnostic
from phpintel.index._internal.db.storage import IndexStorage
from phpintel.index._internal.deduction.document import TextDocument
from phpintel.index._internal.indexing.declarations import DeclarationIndexer, DeclarationStats
from phpintel.index._internal.naming.scopes import collect_namespace_scopes
from phpintel.index._internal.parsing.treesitter import PhpParser

if TYPE_CHECKING:
    from phpintel.index._internal.deduction.engine import TypeDeductionEngine

logger = structlog.get_logger()


@dataclass
class IndexResult:
    """Outcome of indexing one file."""

    path: str
    file_id: int
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)
    stats: DeclarationStats = field(default_factory=DeclarationStats)
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "file_id": self.file_id,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "classlikes": self.stats.classlikes,
            "functions": self.stats.functions,
            "constants": self.stats.constants,
            "members": self.stats.members,
            "duration_ms": self.duration_ms,
        }


class FileIndexer:
    """Indexes one file at a time into ``IndexStorage``."""

    def __init__(
        self,
        storage: IndexStorage,
        parser: PhpParser,
        declarations: DeclarationIndexer,
        engine: TypeDeductionEngine,
    ) -> None:
        self._storage = storage
        self._parser = parser
        self._declarations = declarations
        self._engine = engine

    def index(self, path: str, source: str | bytes, indexed_at: float | None = None) -> IndexResult:
        """Index ``source`` as the content of ``path``.

        Raises:
            IndexingFailedError: If the source is unreadable or unparseable.
        """
        started = time.perf_counter()
        parsed = self._parser.parse_for_indexing(path, source)

        with self._storage.transaction():
            self._storage.delete_file(path)

        try:
            with self._storage.transaction():
                file_id = self._storage.insert_file(path, indexed_at)
                for scope in collect_namespace_scopes(parsed.root_node):
                    namespace_id = self._storage.insert_namespace(
                        file_id, scope.name, scope.start_line, scope.end_line
                    )
                    for imp in scope.imports:
                        self._storage.insert_import(
                            namespace_id, imp.line, imp.alias, imp.name, imp.kind
                        )

            document = TextDocument(path, parsed.source, parse_result=parsed)

            def deduce(node: Any) -> list[str]:
                return self._engine.deduce(node, document).to_list()

            with self._storage.transaction():
                scopes = self._storage.get_namespace_scopes(path)
                stats = self._declarations.index(file_id, parsed.root_node, scopes, deduce)
                self._storage.update_file(file_id, diagnostic_count=len(parsed.diagnostics))
        except Exception as e:
            logger.error("indexing_failed", path=path, error=str(e))
            with self._storage.transaction():
                self._storage.delete_file(path)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "file_indexed",
            path=path,
            classlikes=stats.classlikes,
            functions=stats.functions,
            constants=stats.constants,
            diagnostics=len(parsed.diagnostics),
            duration_ms=round(duration_ms, 2),
        )
        return IndexResult(
            path=path,
            file_id=file_id,
            diagnostics=list(parsed.diagnostics),
            stats=stats,
            duration_ms=duration_ms,
        )
