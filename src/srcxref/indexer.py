"""Concurrent indexing pipeline.

One discovery thread walks the inputs and feeds a bounded queue; a fixed
pool of worker threads parses, extracts and merges each file into the
project index. A failing file is logged and skipped, never fatal.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from .adapters import AdapterRegistry
from .index import ProjectIndex
from .symbols import FileExtraction, normalize_path

logger = logging.getLogger("srcxref.indexer")


# Directories pruned during discovery (matched on the base name, case-insensitive)
DEFAULT_SKIP_DIRS = [
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
    "venv",
    ".venv",
    "node_modules",
]

DEFAULT_WORKERS = 4

# Max file size to index (1 MB)
MAX_FILE_SIZE = 1_000_000

WORKERS_ENV = "SRCXREF_WORKERS"

# Per-file outcomes
INDEXED = "indexed"
SKIPPED = "skipped"
ERROR = "error"


def _default_workers() -> int:
    raw = os.environ.get(WORKERS_ENV)
    if not raw:
        return DEFAULT_WORKERS
    try:
        workers = int(raw)
    except ValueError:
        workers = 0
    if workers < 1:
        logger.warning("Ignoring invalid %s=%r", WORKERS_ENV, raw)
        return DEFAULT_WORKERS
    return workers


@dataclass
class IndexStats:
    files_scanned: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    errors: int = 0
    definitions: int = 0
    references: int = 0
    occurrences: int = 0
    elapsed_seconds: float = 0.0
    by_language: dict[str, int] = field(default_factory=dict)


@dataclass
class IndexConfig:
    workers: int = field(default_factory=_default_workers)
    queue_size: int = 512
    skip_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_SKIP_DIRS))
    max_file_size: int = MAX_FILE_SIZE
    languages: list[str] | None = None  # adapter tags; None = all

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {self.queue_size}")


def _should_skip_dir(name: str, patterns: list[str]) -> bool:
    """Check if a directory base name matches any skip pattern."""
    name = name.lower()
    return any(fnmatch.fnmatch(name, pattern.lower()) for pattern in patterns)


class Indexer:
    """Fills a ProjectIndex from files and directory trees."""

    def __init__(
        self,
        index: ProjectIndex,
        adapters: AdapterRegistry,
        config: IndexConfig | None = None,
    ):
        self.project_index = index
        self.adapters = adapters
        self.config = config or IndexConfig()

    def discover(self, paths: Iterable[str | Path]) -> Iterator[str]:
        """Yield normalized file paths under ``paths``, pruning skipped directories."""
        seen: set[str] = set()
        for raw in paths:
            path = Path(raw)
            if path.is_dir():
                for dirpath, dirnames, filenames in os.walk(path):
                    # Prune in place so os.walk never descends into them
                    dirnames[:] = sorted(
                        d for d in dirnames
                        if not _should_skip_dir(d, self.config.skip_dirs)
                    )
                    for filename in sorted(filenames):
                        file = normalize_path(os.path.join(dirpath, filename))
                        if file not in seen:
                            seen.add(file)
                            yield file
            elif path.exists():
                file = normalize_path(path)
                if file not in seen:
                    seen.add(file)
                    yield file
            else:
                logger.warning("Path does not exist: %s", raw)

    def index(self, paths: Iterable[str | Path]) -> IndexStats:
        """Index every file under ``paths``. Returns statistics."""
        paths = list(paths)
        stats = IndexStats()
        stats_lock = threading.Lock()
        start = time.monotonic()
        workers = self.config.workers
        files: queue.Queue[str | None] = queue.Queue(maxsize=self.config.queue_size)

        logger.info("Indexing %s with %d workers", ", ".join(map(str, paths)), workers)

        def produce() -> None:
            try:
                for file in self.discover(paths):
                    with stats_lock:
                        stats.files_scanned += 1
                    files.put(file)
            except Exception as e:
                logger.error("File discovery failed: %s", e)
            finally:
                # One sentinel per worker closes the queue
                for _ in range(workers):
                    files.put(None)

        def consume() -> None:
            while True:
                file = files.get()
                if file is None:
                    return
                try:
                    outcome, extraction = self.index_file(file)
                except Exception as e:
                    logger.warning("Error indexing %s: %s", file, e)
                    outcome, extraction = ERROR, None
                with stats_lock:
                    _record(stats, outcome, extraction)

        threads = [threading.Thread(target=produce, name="srcxref-discovery", daemon=True)]
        threads += [
            threading.Thread(target=consume, name=f"srcxref-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats.elapsed_seconds = time.monotonic() - start
        logger.info(
            "Indexed %d/%d files (%d definitions, %d references) in %.2fs. %d skipped, %d errors.",
            stats.files_indexed, stats.files_scanned, stats.definitions, stats.references,
            stats.elapsed_seconds, stats.files_skipped, stats.errors,
        )
        return stats

    def index_file(self, path: str | Path) -> tuple[str, FileExtraction | None]:
        """Parse, extract and merge one file. Returns (outcome, extraction)."""
        file = normalize_path(path)
        adapter = self.adapters.pick(file)
        if adapter is None:
            logger.debug("No adapter for %s", file)
            return SKIPPED, None
        if self.config.languages and adapter.lang not in self.config.languages:
            return SKIPPED, None

        try:
            if os.path.getsize(file) > self.config.max_file_size:
                logger.debug("Skipping %s: larger than %d bytes", file, self.config.max_file_size)
                return SKIPPED, None
            source = Path(file).read_bytes()
        except OSError as e:
            logger.warning("Cannot read %s: %s", file, e)
            return ERROR, None

        try:
            tree = adapter.parse(file, source)
        except Exception as e:
            logger.warning("Failed to parse %s: %s", file, e)
            return ERROR, None
        if tree is None:
            logger.warning("Failed to parse %s: no tree", file)
            return ERROR, None

        try:
            extraction = adapter.extract(file, source, tree)
        except Exception as e:
            logger.warning("Failed to extract symbols from %s: %s", file, e)
            return ERROR, None

        self.project_index.merge(extraction)
        return INDEXED, extraction


def _record(stats: IndexStats, outcome: str, extraction: FileExtraction | None) -> None:
    if outcome == SKIPPED:
        stats.files_skipped += 1
    elif outcome == ERROR:
        stats.errors += 1
    elif extraction is not None:
        stats.files_indexed += 1
        stats.definitions += len(extraction.definitions)
        stats.references += sum(len(r) for r in extraction.references.values())
        stats.occurrences += len(extraction.occurrences)
        stats.by_language[extraction.lang] = stats.by_language.get(extraction.lang, 0) + 1
