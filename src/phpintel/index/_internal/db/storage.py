"""Storage handle for the symbol index.

``IndexStorage`` is the single object every component receives to read or
write the index. Writes happen inside ``transaction()``; while a transaction
is open every read goes through the same session, so readers see the rows
written so far in that transaction.
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func
from sqlmodel import Session, col, select

from phpintel.index._internal.naming.context import (
    ImportAlias,
    NamespaceContext,
    NamespaceScope,
    context_for_line,
)
from phpintel.index.models import (
    Classlike,
    ConstantDef,
    File,
    FileImport,
    FileNamespace,
    FunctionDef,
    ImportKind,
    ParameterDef,
    PropertyDef,
)

if TYPE_CHECKING:
    from phpintel.index._internal.db.database import Database

logger = structlog.get_logger()


class IndexStorage:
    """Reads and writes index rows.

    Usage::

        storage = IndexStorage(db)
        with storage.transaction():
            file_id = storage.insert_file("src/Foo.php")
            ...
        row = storage.find_classlike("\\\\App\\\\Foo")
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._active: Session | None = None

    @property
    def db(self) -> Database:
        return self._db

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Open a write transaction, or join the one already open."""
        if self._active is not None:
            yield self._active
            return
        with self._db.immediate_transaction() as session:
            self._active = session
            try:
                yield session
            finally:
                self._active = None

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        if self._active is not None:
            yield self._active
            return
        with self._db.session() as session:
            yield session

    def _add(self, row: Any) -> Any:
        with self.transaction() as session:
            session.add(row)
            session.flush()
            return row

    # =========================================================================
    # Files
    # =========================================================================

    def find_file(self, path: str) -> File | None:
        with self._session() as session:
            return session.exec(select(File).where(File.path == path)).first()

    def insert_file(self, path: str, indexed_at: float | None = None) -> int:
        row = self._add(File(path=path, indexed_at=indexed_at or time.time()))
        return int(row.id)

    def update_file(self, file_id: int, *, diagnostic_count: int) -> None:
        with self.transaction() as session:
            row = session.get(File, file_id)
            if row is not None:
                row.diagnostic_count = diagnostic_count
                session.add(row)
                session.flush()

    def delete_file(self, path: str) -> bool:
        """Delete a file and, by cascade, everything declared in it."""
        with self.transaction() as session:
            row = session.exec(select(File).where(File.path == path)).first()
            if row is None:
                return False
            session.delete(row)
            session.flush()
            # Cascaded child rows are gone in the database; forget them here too
            session.expunge_all()
            return True

    def get_indexed_files(self) -> dict[str, float]:
        """Map of indexed path to the time it was last indexed."""
        with self._session() as session:
            rows = session.exec(select(File.path, File.indexed_at)).all()
            return {path: indexed_at for path, indexed_at in rows}

    # =========================================================================
    # Namespaces and imports
    # =========================================================================

    def insert_namespace(self, file_id: int, name: str, start_line: int, end_line: int) -> int:
        row = self._add(
            FileNamespace(file_id=file_id, name=name, start_line=start_line, end_line=end_line)
        )
        return int(row.id)

    def insert_import(
        self, namespace_id: int, line: int, alias: str, name: str, kind: ImportKind
    ) -> int:
        """Insert an import; a previous alias of the same kind in the scope is replaced."""
        with self.transaction() as session:
            existing = session.exec(
                select(FileImport).where(
                    FileImport.namespace_id == namespace_id,
                    FileImport.kind == kind.value,
                )
            ).all()
            for row in existing:
                same = row.alias == alias if kind == ImportKind.CONSTANT else (
                    row.alias.lower() == alias.lower()
                )
                if same:
                    session.delete(row)
            session.flush()
        row = self._add(
            FileImport(
                namespace_id=namespace_id, line=line, alias=alias, name=name, kind=kind.value
            )
        )
        return int(row.id)

    def get_namespace_scopes(self, path: str) -> list[NamespaceScope]:
        with self._session() as session:
            file_row = session.exec(select(File).where(File.path == path)).first()
            if file_row is None:
                return []
            namespaces = session.exec(
                select(FileNamespace)
                .where(FileNamespace.file_id == file_row.id)
                .order_by(col(FileNamespace.start_line))
            ).all()
            scopes: list[NamespaceScope] = []
            for ns in namespaces:
                imports = session.exec(
                    select(FileImport)
                    .where(FileImport.namespace_id == ns.id)
                    .order_by(col(FileImport.line), col(FileImport.id))
                ).all()
                scopes.append(
                    NamespaceScope(
                        name=ns.name,
                        start_line=ns.start_line,
                        end_line=ns.end_line,
                        imports=[
                            ImportAlias(
                                alias=imp.alias,
                                name=imp.name,
                                kind=ImportKind(imp.kind),
                                line=imp.line,
                            )
                            for imp in imports
                        ],
                    )
                )
            return scopes

    def get_namespace_context(self, path: str, line: int) -> NamespaceContext | None:
        """Namespace context in effect at ``line`` of an indexed file."""
        if self.find_file(path) is None:
            return None
        return context_for_line(self.get_namespace_scopes(path), line)

    # =========================================================================
    # Declarations (writes)
    # =========================================================================

    def insert_classlike(self, row: Classlike) -> int:
        """Insert a classlike.

        Rows other files hold for the same FQCN are left alone; lookups pick
        the most recently indexed one.
        """
        with self.transaction() as session:
            others = session.exec(
                select(Classlike.file_id).where(func.lower(Classlike.fqcn) == row.fqcn.lower())
            ).all()
            if others:
                logger.warning(
                    "duplicate_classlike", fqcn=row.fqcn, other_file_ids=sorted(set(others))
                )
        return int(self._add(row).id)

    def insert_constant(self, row: ConstantDef) -> int:
        return int(self._add(row).id)

    def insert_property(self, row: PropertyDef) -> int:
        return int(self._add(row).id)

    def insert_function(self, row: FunctionDef) -> int:
        return int(self._add(row).id)

    def insert_parameter(self, row: ParameterDef) -> int:
        return int(self._add(row).id)

    # =========================================================================
    # Declarations (reads)
    # =========================================================================

    def find_classlike(self, fqcn: str) -> Classlike | None:
        """Classlike by FQCN (class names are case-insensitive).

        When several files declare the FQCN, the most recently indexed file
        wins, then the latest declaration within it.
        """
        with self._session() as session:
            return session.exec(
                select(Classlike)
                .join(File, col(File.id) == col(Classlike.file_id))
                .where(func.lower(Classlike.fqcn) == fqcn.lower())
                .order_by(col(File.indexed_at).desc(), col(Classlike.id).desc())
            ).first()

    def find_function(self, fqsen: str) -> FunctionDef | None:
        with self._session() as session:
            return session.exec(
                select(FunctionDef).where(
                    col(FunctionDef.classlike_id).is_(None),
                    func.lower(FunctionDef.fqsen) == fqsen.lower(),
                )
            ).first()

    def find_constant(self, fqsen: str) -> ConstantDef | None:
        """Global constant by FQSEN.

        The namespace part matches case-insensitively, the constant name exactly.
        """
        name = fqsen.rsplit("\\", 1)[-1]
        with self._session() as session:
            return session.exec(
                select(ConstantDef).where(
                    col(ConstantDef.classlike_id).is_(None),
                    ConstantDef.name == name,
                    func.lower(ConstantDef.fqsen) == fqsen.lower(),
                )
            ).first()

    def classlike_exists(self, fqcn: str) -> bool:
        return self.find_classlike(fqcn) is not None

    def function_exists(self, fqsen: str) -> bool:
        return self.find_function(fqsen) is not None

    def constant_exists(self, fqsen: str) -> bool:
        return self.find_constant(fqsen) is not None

    def get_class_constants(self, classlike_id: int) -> list[ConstantDef]:
        with self._session() as session:
            return list(
                session.exec(
                    select(ConstantDef)
                    .where(ConstantDef.classlike_id == classlike_id)
                    .order_by(col(ConstantDef.id))
                ).all()
            )

    def get_properties(self, classlike_id: int) -> list[PropertyDef]:
        with self._session() as session:
            return list(
                session.exec(
                    select(PropertyDef)
                    .where(PropertyDef.classlike_id == classlike_id)
                    .order_by(col(PropertyDef.id))
                ).all()
            )

    def get_methods(self, classlike_id: int) -> list[FunctionDef]:
        with self._session() as session:
            return list(
                session.exec(
                    select(FunctionDef)
                    .where(FunctionDef.classlike_id == classlike_id)
                    .order_by(col(FunctionDef.id))
                ).all()
            )

    def get_parameters(self, function_id: int) -> list[ParameterDef]:
        with self._session() as session:
            return list(
                session.exec(
                    select(ParameterDef)
                    .where(ParameterDef.function_id == function_id)
                    .order_by(col(ParameterDef.position))
                ).all()
            )

    def get_file_path(self, file_id: int) -> str | None:
        with self._session() as session:
            row = session.get(File, file_id)
            return row.path if row is not None else None

    def list_classlikes(self, path: str | None = None) -> list[Classlike]:
        with self._session() as session:
            stmt = select(Classlike)
            if path is not None:
                stmt = stmt.join(File, col(File.id) == col(Classlike.file_id)).where(
                    File.path == path
                )
            return list(session.exec(stmt.order_by(col(Classlike.id))).all())

    def list_functions(self, path: str | None = None) -> list[FunctionDef]:
        """Global functions, optionally limited to one file."""
        with self._session() as session:
            stmt = select(FunctionDef).where(col(FunctionDef.classlike_id).is_(None))
            if path is not None:
                stmt = stmt.join(File, col(File.id) == col(FunctionDef.file_id)).where(
                    File.path == path
                )
            return list(session.exec(stmt.order_by(col(FunctionDef.id))).all())

    def list_constants(self, path: str | None = None) -> list[ConstantDef]:
        """Global constants, optionally limited to one file."""
        with self._session() as session:
            stmt = select(ConstantDef).where(col(ConstantDef.classlike_id).is_(None))
            if path is not None:
                stmt = stmt.join(File, col(File.id) == col(ConstantDef.file_id)).where(
                    File.path == path
                )
            return list(session.exec(stmt.order_by(col(ConstantDef.id))).all())
