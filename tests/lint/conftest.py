"""Shared fixtures for lint tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from phpintel.config.models import PhpIntelConfig
from phpintel.index.ops import IndexCoordinator
from phpintel.lint.models import LintResult

LIBRARY = """<?php
namespace Lib;

const VERSION = '1.0';

function helper(): int { return 1; }

interface Named {
    public function name(): string;
}

/**
 * @property string $label
 * @method static self build()
 */
class User implements Named {
    public string $email = '';
    public static int $count = 0;

    public function name(): string { return ''; }
    public static function create(): static { return new static(); }
}

class Dynamic {
    public function __call($name, $args) {}
    public static function __callStatic($name, $args) {}
    public function __get($name) {}
}
"""


@pytest.fixture
def coordinator(tmp_path: Path) -> Generator[IndexCoordinator, None, None]:
    """Coordinator with a small library already indexed."""
    coord = IndexCoordinator(tmp_path, ":memory:", config=PhpIntelConfig())
    coord.index_file("/lib/Lib.php", LIBRARY)
    yield coord
    coord.close()


@pytest.fixture
def lint(coordinator: IndexCoordinator) -> Callable[..., LintResult]:
    """Lint a snippet with one analyzer (all enabled ones when omitted)."""

    def _lint(source: str, analyzer: str | None = None) -> LintResult:
        return coordinator.lint(
            "/src/query.php", source, analyzers=[analyzer] if analyzer else None
        )

    return _lint
