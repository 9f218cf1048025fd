"""High-level orchestration of the PHP index.

This module implements the IndexCoordinator - the entry point for all index
operations. It owns the database and wires the components together:

    Parser -> FileIndexer (namespaces/imports, declarations) -> IndexStorage
    IndexStorage -> ClasslikeResolver / TypeDeductionEngine -> queries

Writes (indexing) and reads (resolution, deduction, linting) share one
``IndexStorage``. Writes are serialized by a lock; each file is indexed in
its own transactions so a failing file never touches the rows of another.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from phpintel.config.loader import get_index_path, load_config
from phpintel.config.models import PhpIntelConfig
from phpintel.core.errors import (
    IndexingFailedError,
    MissingContextError,
    UnknownConstantError,
    UnknownFunctionError,
)
from phpintel.core.logging import configure_logging, request_scope
from phpintel.index._internal.db import Database, IndexStorage
from phpintel.index._internal.db.database import MEMORY_PATH
from phpintel.index._internal.deduction import TextDocument, TypeDeductionEngine, TypeList
from phpintel.index._internal.docblock import DocblockParser
from phpintel.index._internal.indexing import (
    DeclarationIndexer,
    FileIndexer,
    IndexResult,
    ProjectIndexer,
    ProjectIndexStats,
)
from phpintel.index._internal.naming import NameLocalizer, NameResolver, NamespaceContext
from phpintel.index._internal.parsing import PhpParser
from phpintel.index._internal.resolution import ClasslikeResolver, FlattenedClasslike
from phpintel.index.models import ConstantDef, FunctionDef, ImportKind

if TYPE_CHECKING:
    from phpintel.lint.models import LintResult
    from phpintel.lint.ops import LintOps

logger = structlog.get_logger()


class IndexCoordinator:
    """Entry point for indexing and querying a PHP code base.

    Usage::

        coordinator = IndexCoordinator(repo_root)
        coordinator.index_project()

        flat = coordinator.resolve_classlike("\\\\App\\\\User")
        doc = TextDocument("src/a.php", source)
        types = coordinator.deduce_type_at(doc, doc.offset_of("$user", 2))

    Pass ``db_path=":memory:"`` for a throwaway index (tests, one-off lint runs)
    and ``configure_logs=True`` to install the outputs of ``config.logging``.
    """

    def __init__(
        self,
        repo_root: Path,
        db_path: Path | str | None = None,
        *,
        config: PhpIntelConfig | None = None,
        configure_logs: bool = False,
    ) -> None:
        self.repo_root = repo_root
        self.config = config or load_config(repo_root)
        if configure_logs:
            configure_logging(self.config.logging)
        self.db_path = db_path if db_path is not None else get_index_path(repo_root, self.config)

        if str(self.db_path) != MEMORY_PATH:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        database_config = self.config.database
        self.db = Database(
            self.db_path,
            max_retries=database_config.max_retries,
            retry_base_delay=database_config.retry_base_delay_sec,
            busy_timeout_ms=database_config.busy_timeout_ms,
        )
        self.db.create_all()

        # Single writer
        self._write_lock = threading.Lock()

        analysis = self.config.analysis
        self.storage = IndexStorage(self.db)
        self.parser = PhpParser()
        self.docblocks = DocblockParser()
        self.names = NameResolver(oracle=self.storage)
        self.localizer = NameLocalizer(self.names)
        self.classlikes = ClasslikeResolver(self.storage, analysis)
        self.engine = TypeDeductionEngine(
            self.storage, self.names, self.classlikes, self.docblocks, analysis
        )
        self._declarations = DeclarationIndexer(self.storage, self.engine.types, self.docblocks)
        self._file_indexer = FileIndexer(
            self.storage, self.parser, self._declarations, self.engine
        )
        self._project_indexer = ProjectIndexer(
            self.storage,
            self._file_indexer,
            max_file_size_mb=self.config.index.max_file_size_mb,
        )
        self._lint_ops: LintOps | None = None
        logger.debug("coordinator_ready", db_path=str(self.db_path))

    # =========================================================================
    # Indexing
    # =========================================================================

    def index_file(self, file_path: str | Path, source: str | bytes | None = None) -> IndexResult:
        """Index one file, replacing whatever was indexed for it before.

        Args:
            file_path: Path recorded for the file.
            source: Content to index. Read from disk when omitted.

        Raises:
            IndexingFailedError: If the file is unreadable or unparseable.
        """
        path = str(file_path)
        with request_scope("index_file"):
            if source is None:
                try:
                    source = Path(file_path).read_bytes()
                except OSError as e:
                    raise IndexingFailedError.unreadable(path, str(e)) from e
            with self._write_lock:
                return self._file_indexer.index(path, source)

    def index_project(
        self,
        paths: list[Path] | None = None,
        *,
        source_overrides: dict[str, str] | None = None,
        on_progress: Callable[[int, int, str], None] | None = None,
    ) -> ProjectIndexStats:
        """Index every PHP file under ``paths`` (default: the repository root)."""
        index_config = self.config.index
        with request_scope("index_project"), self._write_lock:
            return self._project_indexer.index(
                paths or [self.repo_root],
                extensions=index_config.extensions,
                excluded_globs=index_config.excluded_paths,
                source_overrides=source_overrides,
                on_progress=on_progress,
            )

    def prune_removed_files(self) -> list[str]:
        """Drop indexed files that no longer exist on disk."""
        with request_scope("prune_removed_files"), self._write_lock:
            return self._project_indexer.prune_removed_files()

    # =========================================================================
    # Queries
    # =========================================================================

    def resolve_classlike(self, fqcn: str) -> FlattenedClasslike:
        """Flattened view of a classlike.

        Raises:
            UnknownClasslikeError: If ``fqcn`` is not indexed.
            CircularDependencyError: If its inheritance or trait graph loops.
        """
        with request_scope("resolve_classlike"):
            return self.classlikes.resolve(fqcn)

    def find_function(self, fqsen: str) -> FunctionDef:
        """Indexed global function ``fqsen`` (case-insensitive).

        Raises:
            UnknownFunctionError: If it is not indexed.
        """
        row = self.storage.find_function(fqsen)
        if row is None:
            raise UnknownFunctionError.for_fqsen(fqsen)
        return row

    def find_constant(self, fqsen: str) -> ConstantDef:
        """Indexed global constant ``fqsen`` (the constant name is case-sensitive).

        Raises:
            UnknownConstantError: If it is not indexed.
        """
        row = self.storage.find_constant(fqsen)
        if row is None:
            raise UnknownConstantError.for_fqsen(fqsen)
        return row

    def deduce_type(
        self,
        node: Any,
        document: TextDocument,
        position: int | None = None,
    ) -> TypeList:
        """Types the expression ``node`` may evaluate to at ``position``.

        ``position`` defaults to the start of ``node``. Pass ``node=None`` with
        a byte ``position`` to deduce the expression found there instead.
        """
        with request_scope("deduce_type"):
            if node is None:
                if position is None:
                    return TypeList()
                return self.engine.deduce_at(document, position)
            return self.engine.deduce(node, document, position)

    def deduce_type_at(self, document: TextDocument, offset: int) -> TypeList:
        with request_scope("deduce_type"):
            return self.engine.deduce_at(document, offset)

    def resolve_name(
        self,
        name: str,
        context: NamespaceContext | None,
        kind: ImportKind = ImportKind.CLASSLIKE,
    ) -> str:
        """Fully qualified form of ``name``.

        Raises:
            MissingContextError: If ``context`` is None.
        """
        return self.names.resolve(name, context, kind)

    def namespace_context(self, file_path: str | Path, line: int) -> NamespaceContext:
        """Namespace and imports in effect at ``line`` of an indexed file.

        Raises:
            MissingContextError: If the file is not indexed.
        """
        context = self.storage.get_namespace_context(str(file_path), line)
        if context is None:
            raise MissingContextError.for_name(f"{file_path}:{line}")
        return context

    def localize_type(
        self,
        fqcn: str,
        file_path: str | Path,
        line: int,
        kind: ImportKind = ImportKind.CLASSLIKE,
    ) -> str:
        """Shortest spelling of ``fqcn`` that resolves back to it at ``line``."""
        context = self.namespace_context(file_path, line)
        if kind == ImportKind.CLASSLIKE:
            return self.localizer.localize_type(fqcn, context)
        return self.localizer.localize(fqcn, context, kind)

    def lint(
        self,
        file_path: str | Path,
        source: str | bytes,
        *,
        analyzers: list[str] | None = None,
    ) -> LintResult:
        """Lint ``source`` against the current index."""
        if self._lint_ops is None:
            from phpintel.lint.ops import LintOps

            self._lint_ops = LintOps(self)
        with request_scope("lint"):
            return self._lint_ops.check(str(file_path), source, analyzers=analyzers)

    def close(self) -> None:
        """Close all resources."""
        # Dispose DB engine to release file handles
        self.db.dispose()
