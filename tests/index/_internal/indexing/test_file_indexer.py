"""Tests for per-file indexing."""

from __future__ import annotations

from typing import Any

import pytest

from phpintel.core.errors import ErrorCode, IndexingFailedError
from phpintel.index.ops import IndexCoordinator


class TestFileIndexer:
    """Tests for FileIndexer via IndexCoordinator.index_file()."""

    def test_result(self, coordinator: IndexCoordinator) -> None:
        result = coordinator.index_file(
            "/src/a.php", "<?php\nclass A { function f() {} }\nfunction g() {}\n"
        )
        assert result.path == "/src/a.php"
        assert result.stats.classlikes == 1
        assert result.stats.functions == 1
        assert result.stats.members == 1
        assert result.diagnostics == []
        assert result.to_dict()["classlikes"] == 1

    def test_reindexing_replaces_previous_rows(self, coordinator: IndexCoordinator) -> None:
        coordinator.index_file("/src/a.php", "<?php\nclass A {}\nclass B {}\n")
        coordinator.index_file("/src/a.php", "<?php\nclass A {}\n")

        assert coordinator.storage.classlike_exists("\\A")
        assert not coordinator.storage.classlike_exists("\\B")
        assert len(coordinator.storage.list_classlikes("/src/a.php")) == 1

    def test_reindexing_same_source_is_idempotent(self, coordinator: IndexCoordinator) -> None:
        source = "<?php\nnamespace App;\nuse Lib\\X;\nclass A { const C = 1; }\n"
        coordinator.index_file("/src/a.php", source)
        first = coordinator.resolve_classlike("\\App\\A").to_dict()
        coordinator.index_file("/src/a.php", source)
        second = coordinator.resolve_classlike("\\App\\A").to_dict()

        assert first == second
        scopes = coordinator.storage.get_namespace_scopes("/src/a.php")
        assert [len(s.imports) for s in scopes if s.name == "App"] == [1]

    def test_recoverable_syntax_errors_are_counted(self, coordinator: IndexCoordinator) -> None:
        result = coordinator.index_file("/src/a.php", "<?php\nclass A {}\n$x = ;\n")
        assert result.diagnostics
        row = coordinator.storage.find_file("/src/a.php")
        assert row is not None and row.diagnostic_count == len(result.diagnostics)
        assert coordinator.storage.classlike_exists("\\A")

    def test_undecodable_source_is_rejected(self, coordinator: IndexCoordinator) -> None:
        with pytest.raises(IndexingFailedError) as exc_info:
            coordinator.index_file("/src/a.php", b"<?php \xff\xfe")
        assert exc_info.value.code == ErrorCode.INDEXING_UNREADABLE
        assert coordinator.storage.find_file("/src/a.php") is None

    def test_failure_leaves_file_absent(
        self, coordinator: IndexCoordinator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failure part way through removes the file rather than leaving half of it."""
        coordinator.index_file("/src/a.php", "<?php\nclass Old {}\n")

        def boom(*args: Any, **kwargs: Any) -> Any:
            raise RuntimeError("declaration pass failed")

        monkeypatch.setattr(coordinator._declarations, "index", boom)
        with pytest.raises(RuntimeError):
            coordinator.index_file("/src/a.php", "<?php\nclass New {}\n")

        assert coordinator.storage.find_file("/src/a.php") is None
        assert not coordinator.storage.classlike_exists("\\Old")
        assert coordinator.storage.get_namespace_scopes("/src/a.php") == []

    def test_failure_does_not_touch_other_files(
        self, coordinator: IndexCoordinator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        coordinator.index_file("/src/keep.php", "<?php\nclass Keep {}\n")

        def boom(*args: Any, **kwargs: Any) -> Any:
            raise RuntimeError("declaration pass failed")

        monkeypatch.setattr(coordinator._declarations, "index", boom)
        with pytest.raises(RuntimeError):
            coordinator.index_file("/src/broken.php", "<?php\nclass Broken {}\n")

        assert coordinator.storage.classlike_exists("\\Keep")

    def test_reads_file_from_disk(self, coordinator: IndexCoordinator) -> None:
        path = coordinator.repo_root / "Disk.php"
        path.write_text("<?php\nclass Disk {}\n")
        coordinator.index_file(path)
        assert coordinator.storage.classlike_exists("\\Disk")

    def test_missing_file_is_unreadable(self, coordinator: IndexCoordinator) -> None:
        with pytest.raises(IndexingFailedError) as exc_info:
            coordinator.index_file(coordinator.repo_root / "missing.php")
        assert exc_info.value.code == ErrorCode.INDEXING_UNREADABLE
