"""Shared fixtures for index tests."""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from phpintel.config.models import PhpIntelConfig

if TYPE_CHECKING:
    from phpintel.index._internal.db import Database, IndexStorage
    from phpintel.index._internal.deduction import TextDocument, TypeList
    from phpintel.index.ops import IndexCoordinator


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    """In-memory database with schema."""
    from phpintel.index._internal.db import Database

    db = Database(":memory:")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def storage(memory_db: Database) -> IndexStorage:
    from phpintel.index._internal.db import IndexStorage

    return IndexStorage(memory_db)


@pytest.fixture
def coordinator(temp_dir: Path) -> Generator[IndexCoordinator, None, None]:
    """Coordinator over an in-memory index with default config."""
    from phpintel.index.ops import IndexCoordinator

    coord = IndexCoordinator(temp_dir, ":memory:", config=PhpIntelConfig())
    yield coord
    coord.close()


@pytest.fixture
def deduce_at(
    coordinator: IndexCoordinator,
) -> Callable[..., TypeList]:
    """Deduce the expression at the n-th occurrence of ``needle`` in ``source``.

    The source is not indexed; index declarations it depends on first.
    """
    from phpintel.index._internal.deduction import TextDocument

    def _deduce(source: str, needle: str, occurrence: int = 1) -> TypeList:
        document = TextDocument("/query.php", source)
        offset = document.offset_of(needle, occurrence)
        assert offset >= 0, f"{needle!r} #{occurrence} not found"
        return coordinator.deduce_type_at(document, offset)

    return _deduce


@pytest.fixture
def document_factory() -> Callable[[str], TextDocument]:
    from phpintel.index._internal.deduction import TextDocument

    def _make(source: str, path: str = "/query.php") -> TextDocument:
        return TextDocument(path, source)

    return _make
