"""Tests for IndexCoordinator, the public entry point of the index."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from phpintel.config.models import AnalysisConfig, PhpIntelConfig
from phpintel.core.errors import (
    CircularDependencyError,
    IndexingFailedError,
    MissingContextError,
    UnknownClasslikeError,
    UnknownConstantError,
    UnknownFunctionError,
    UnsupportedNodeError,
)
from phpintel.index import IndexCoordinator, ImportKind, TextDocument

MODELS = """<?php
namespace App\\Models;

use App\\Support\\Str;
use function App\\Support\\slug;

class User {
    public function name(): string { return ''; }
}
"""

SUPPORT = """<?php
namespace App\\Support;

class Str {}

function slug(string $s): string { return $s; }
"""


@pytest.fixture
def indexed(coordinator: IndexCoordinator) -> IndexCoordinator:
    coordinator.index_file("/src/Models/User.php", MODELS)
    coordinator.index_file("/src/Support/Str.php", SUPPORT)
    return coordinator


class TestConstruction:
    """Tests for building a coordinator."""

    def test_file_database_is_created_under_project(self, temp_dir: Path) -> None:
        clean_env = {k: v for k, v in os.environ.items() if not k.upper().startswith("PHPINTEL__")}
        with (
            patch("phpintel.config.loader.GLOBAL_CONFIG_PATH", temp_dir / "none.yaml"),
            patch.dict(os.environ, clean_env, clear=True),
        ):
            coord = IndexCoordinator(temp_dir)
        try:
            assert coord.db_path == temp_dir / ".phpintel" / "index.db"
            assert coord.db_path.parent.is_dir()
            assert coord.config.analysis.max_deduction_depth == 64
        finally:
            coord.close()

    def test_index_survives_reopen(self, temp_dir: Path) -> None:
        db_path = temp_dir / "state" / "index.db"
        first = IndexCoordinator(temp_dir, db_path, config=PhpIntelConfig())
        first.index_file("/a.php", SUPPORT)
        first.close()

        second = IndexCoordinator(temp_dir, db_path, config=PhpIntelConfig())
        try:
            assert second.resolve_classlike("\\App\\Support\\Str").fqcn == "\\App\\Support\\Str"
        finally:
            second.close()


class TestIndexing:
    """Tests for index_file and index_project."""

    def test_index_file_from_source(self, coordinator: IndexCoordinator) -> None:
        result = coordinator.index_file("/src/Support/Str.php", SUPPORT)
        assert result.path == "/src/Support/Str.php"
        assert coordinator.storage.classlike_exists("\\App\\Support\\Str")

    def test_index_file_reads_disk(self, coordinator: IndexCoordinator, temp_dir: Path) -> None:
        path = temp_dir / "Str.php"
        path.write_text(SUPPORT)
        coordinator.index_file(path)
        assert coordinator.storage.function_exists("\\App\\Support\\slug")

    def test_missing_file_is_unreadable(
        self, coordinator: IndexCoordinator, temp_dir: Path
    ) -> None:
        with pytest.raises(IndexingFailedError):
            coordinator.index_file(temp_dir / "nope.php")

    def test_index_project_uses_repo_root(
        self, coordinator: IndexCoordinator, temp_dir: Path
    ) -> None:
        (temp_dir / "src").mkdir()
        (temp_dir / "src" / "Str.php").write_text(SUPPORT)
        stats = coordinator.index_project()
        assert stats.indexed == 1
        assert coordinator.storage.classlike_exists("\\App\\Support\\Str")

    def test_prune_removed_files(self, coordinator: IndexCoordinator, temp_dir: Path) -> None:
        path = temp_dir / "Str.php"
        path.write_text(SUPPORT)
        coordinator.index_file(path)
        path.unlink()
        assert coordinator.prune_removed_files() == [str(path)]
        assert not coordinator.storage.classlike_exists("\\App\\Support\\Str")

    def test_duplicate_class_survives_other_file_changes(
        self, coordinator: IndexCoordinator
    ) -> None:
        """A class declared in two files stays indexed for each of them."""
        coordinator.index_file("/a.php", "<?php class X { function a() {} }")
        coordinator.index_file("/b.php", "<?php class X { function b() {} }")
        assert set(coordinator.resolve_classlike("\\X").methods) == {"b"}

        coordinator.index_file("/a.php", "<?php class X { function a() {} }")
        assert set(coordinator.resolve_classlike("\\X").methods) == {"a"}

        coordinator.index_file("/b.php", "<?php class Y {}")
        flattened = coordinator.resolve_classlike("\\X")
        assert flattened.file_path == "/a.php"
        assert set(flattened.methods) == {"a"}

    def test_pruned_duplicate_reveals_remaining_declaration(
        self, coordinator: IndexCoordinator, temp_dir: Path
    ) -> None:
        kept = temp_dir / "Kept.php"
        gone = temp_dir / "Gone.php"
        kept.write_text("<?php class X { function kept() {} }")
        gone.write_text("<?php class X { function gone() {} }")
        coordinator.index_file(kept)
        coordinator.index_file(gone)
        gone.unlink()

        assert coordinator.prune_removed_files() == [str(gone)]
        assert set(coordinator.resolve_classlike("\\X").methods) == {"kept"}


class TestQueries:
    """Tests for name, classlike and type queries."""

    def test_resolve_classlike(self, indexed: IndexCoordinator) -> None:
        flat = indexed.resolve_classlike("\\App\\Models\\User")
        assert flat.get_method("name") is not None

    def test_resolve_unknown_classlike(self, indexed: IndexCoordinator) -> None:
        with pytest.raises(UnknownClasslikeError):
            indexed.resolve_classlike("\\App\\Nope")

    def test_resolve_cycle(self, coordinator: IndexCoordinator) -> None:
        coordinator.index_file("/c.php", "<?php\nclass A extends B {}\nclass B extends A {}\n")
        with pytest.raises(CircularDependencyError):
            coordinator.resolve_classlike("\\A")

    def test_find_function(self, indexed: IndexCoordinator) -> None:
        row = indexed.find_function("\\app\\support\\SLUG")
        assert row.fqsen == "\\App\\Support\\slug"
        with pytest.raises(UnknownFunctionError):
            indexed.find_function("\\App\\Support\\missing")

    def test_find_constant_is_case_sensitive(self, coordinator: IndexCoordinator) -> None:
        coordinator.index_file("/k.php", "<?php\nnamespace App;\nconst LIMIT = 10;\n")
        assert coordinator.find_constant("\\App\\LIMIT").name == "LIMIT"
        assert coordinator.find_constant("\\app\\LIMIT").name == "LIMIT"
        with pytest.raises(UnknownConstantError):
            coordinator.find_constant("\\App\\limit")

    def test_namespace_context(self, indexed: IndexCoordinator) -> None:
        context = indexed.namespace_context("/src/Models/User.php", 7)
        assert context.namespace == "App\\Models"

    def test_namespace_context_of_unindexed_file(self, indexed: IndexCoordinator) -> None:
        with pytest.raises(MissingContextError):
            indexed.namespace_context("/nowhere.php", 1)

    def test_resolve_name(self, indexed: IndexCoordinator) -> None:
        context = indexed.namespace_context("/src/Models/User.php", 7)
        assert indexed.resolve_name("Str", context) == "\\App\\Support\\Str"
        assert indexed.resolve_name("Post", context) == "\\App\\Models\\Post"
        assert indexed.resolve_name("slug", context, ImportKind.FUNCTION) == "\\App\\Support\\slug"

    def test_resolve_name_without_context(self, indexed: IndexCoordinator) -> None:
        with pytest.raises(MissingContextError):
            indexed.resolve_name("Str", None)

    def test_localize_type(self, indexed: IndexCoordinator) -> None:
        path = "/src/Models/User.php"
        assert indexed.localize_type("\\App\\Support\\Str", path, 7) == "Str"
        assert indexed.localize_type("\\App\\Models\\User[]", path, 7) == "User[]"
        assert indexed.localize_type("\\Other\\Thing", path, 7) == "\\Other\\Thing"

    def test_localize_function(self, indexed: IndexCoordinator) -> None:
        localized = indexed.localize_type(
            "\\App\\Support\\slug", "/src/Models/User.php", 7, ImportKind.FUNCTION
        )
        assert localized == "slug"

    def test_deduce_type_for_node(self, indexed: IndexCoordinator) -> None:
        document = TextDocument("/q.php", "<?php\n$u = new \\App\\Models\\User();\n$u->name();\n")
        node = indexed.engine.expression_at(document, document.offset_of("name()"))
        assert indexed.deduce_type(node, document) == ["string"]

    def test_deduce_type_by_position(self, indexed: IndexCoordinator) -> None:
        document = TextDocument("/q.php", "<?php\n$u = new \\App\\Models\\User();\n$u;\n")
        offset = document.offset_of("$u;")
        assert indexed.deduce_type(None, document, offset) == ["\\App\\Models\\User"]
        assert indexed.deduce_type(None, document) == []

    def test_deduce_type_for_node_at_later_position(self, indexed: IndexCoordinator) -> None:
        document = TextDocument("/q.php", "<?php\n$x = 1;\n$x;\n$x = 'a';\n$x;\n")
        node = indexed.engine.expression_at(document, document.offset_of("$x;"))
        later = document.offset_of("$x;", 2)
        assert indexed.deduce_type(node, document) == ["int"]
        assert indexed.deduce_type(node, document, later) == ["string"]
        assert indexed.deduce_type(node, document, later) == indexed.deduce_type_at(
            document, later
        )

    def test_later_position_keeps_assigned_values(self, indexed: IndexCoordinator) -> None:
        """Right-hand sides are read where they appear, not at the position."""
        document = TextDocument("/q.php", "<?php\n$y = 1;\n$x = $y;\n$y = 'a';\n$x;\n$y;\n")
        node = indexed.engine.expression_at(document, document.offset_of("$x;"))
        later = document.offset_of("$y;", 2)
        assert indexed.deduce_type(node, document, later) == ["int"]

    def test_deduce_type_rejects_statements(self, indexed: IndexCoordinator) -> None:
        document = TextDocument("/q.php", "<?php\necho 1;\n")
        statement = document.root.named_children[-1]
        with pytest.raises(UnsupportedNodeError):
            indexed.deduce_type(statement, document)

    def test_lint_delegates(self, indexed: IndexCoordinator) -> None:
        result = indexed.lint("/q.php", "<?php\nnew \\App\\Models\\Missing();\n")
        assert [d.code for d in result.diagnostics] == ["unknown-class"]


class TestLimits:
    """Analysis limits flow from config into the resolvers."""

    def test_resolution_depth(self, temp_dir: Path) -> None:
        config = PhpIntelConfig(analysis=AnalysisConfig(max_resolution_depth=1))
        coord = IndexCoordinator(temp_dir, ":memory:", config=config)
        try:
            coord.index_file(
                "/c.php", "<?php\nclass A {}\nclass B extends A {}\nclass C extends B {}\n"
            )
            with pytest.raises(CircularDependencyError):
                coord.resolve_classlike("\\C")
        finally:
            coord.close()
