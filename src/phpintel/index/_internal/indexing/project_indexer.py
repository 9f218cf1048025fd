"""Sequential indexing of a directory tree."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from phpintel.core.errors import IndexingFailedError
from phpintel.index._internal.db.storage import IndexStorage
from phpintel.index._internal.indexing.file_indexer import FileIndexer

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, str], None]


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    if pattern.startswith("**/"):
        return fnmatch.fnmatch(rel_path, pattern[3:])
    return False


@dataclass
class ProjectIndexStats:
    """Counters for one ``ProjectIndexer.index`` run."""

    discovered: int = 0
    indexed: int = 0
    skipped_unchanged: int = 0
    skipped_too_large: int = 0
    failed: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    diagnostics: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "discovered": self.discovered,
            "indexed": self.indexed,
            "skipped_unchanged": self.skipped_unchanged,
            "skipped_too_large": self.skipped_too_large,
            "failed": self.failed,
            "failures": dict(self.failures),
            "diagnostics": self.diagnostics,
        }


class ProjectIndexer:
    """Walks paths and feeds every matching file to a ``FileIndexer``.

    Usage::

        indexer = ProjectIndexer(storage, file_indexer)
        stats = indexer.index([Path("src")], extensions=["php"])
    """

    def __init__(
        self,
        storage: IndexStorage,
        file_indexer: FileIndexer,
        *,
        max_file_size_mb: int = 10,
    ) -> None:
        self._storage = storage
        self._file_indexer = file_indexer
        self._max_file_size = max_file_size_mb * 1024 * 1024

    def index(
        self,
        paths: list[Path],
        extensions: list[str] | None = None,
        excluded_globs: list[str] | None = None,
        source_overrides: dict[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ProjectIndexStats:
        """Index every matching file under ``paths``.

        Files whose stored index time is not older than their modification
        time are skipped unless ``source_overrides`` supplies their content.
        A file that fails to index is logged and counted; the run continues.

        Args:
            paths: Files or directories to index.
            extensions: File extensions to include, without the dot.
            excluded_globs: Glob patterns matched against paths relative to
                each root.
            source_overrides: Map of path to source text used instead of the
                file content on disk.
            on_progress: Called as ``(done, total, path)`` after each file.

        Returns:
            ProjectIndexStats for the run.
        """
        wanted = {e.lower().lstrip(".") for e in (extensions or ["php"])}
        excluded = excluded_globs or []
        overrides = source_overrides or {}

        discovered = set(self._discover(paths, wanted, excluded))
        discovered.update(Path(p) for p in overrides)
        files = sorted(discovered)
        stats = ProjectIndexStats(discovered=len(files))
        indexed_at = self._storage.get_indexed_files()

        for done, file_path in enumerate(files, start=1):
            key = str(file_path)
            self._index_one(file_path, key, overrides.get(key), indexed_at.get(key), stats)
            if on_progress is not None:
                on_progress(done, len(files), key)

        logger.info("project_indexed", **stats.to_dict())
        return stats

    def _index_one(
        self,
        file_path: Path,
        key: str,
        override: str | None,
        previous: float | None,
        stats: ProjectIndexStats,
    ) -> None:
        try:
            stat = file_path.stat()
        except OSError as e:
            if override is None:
                stats.failed += 1
                stats.failures[key] = str(e)
                logger.warning("file_stat_failed", path=key, error=str(e))
                return
            stat = None

        if override is None and stat is not None:
            if stat.st_size > self._max_file_size:
                stats.skipped_too_large += 1
                logger.debug("file_too_large", path=key, size=stat.st_size)
                return
            if previous is not None and previous >= stat.st_mtime:
                stats.skipped_unchanged += 1
                return

        try:
            source: str | bytes = override if override is not None else file_path.read_bytes()
            result = self._file_indexer.index(key, source)
        except IndexingFailedError as e:
            stats.failed += 1
            stats.failures[key] = e.message
            logger.warning("file_index_skipped", path=key, error=e.message)
            return
        except OSError as e:
            stats.failed += 1
            stats.failures[key] = str(e)
            logger.warning("file_read_failed", path=key, error=str(e))
            return

        stats.indexed += 1
        stats.diagnostics += len(result.diagnostics)

    def _discover(
        self, paths: list[Path], extensions: set[str], excluded: list[str]
    ) -> Iterator[Path]:
        for root in paths:
            if root.is_file():
                if root.suffix.lower().lstrip(".") in extensions:
                    yield root
                continue
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames.sort()
                base = Path(dirpath)
                rel_dir = base.relative_to(root).as_posix()
                dirnames[:] = [
                    d
                    for d in dirnames
                    if not any(
                        matches_glob(f"{rel_dir}/{d}/" if rel_dir != "." else f"{d}/", p)
                        for p in excluded
                    )
                ]
                for name in sorted(filenames):
                    if Path(name).suffix.lower().lstrip(".") not in extensions:
                        continue
                    rel = (base / name).relative_to(root).as_posix()
                    if any(matches_glob(rel, p) for p in excluded):
                        continue
                    yield base / name

    def prune_removed_files(self) -> list[str]:
        """Delete index records of files that no longer exist on disk."""
        removed: list[str] = []
        for path in self._storage.get_indexed_files():
            if not Path(path).exists():
                with self._storage.transaction():
                    self._storage.delete_file(path)
                removed.append(path)
        if removed:
            logger.info("removed_files_pruned", count=len(removed))
        return removed
