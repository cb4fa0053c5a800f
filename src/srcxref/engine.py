"""Engine facade: indexing entry points and point queries.

    engine = Engine()                       # Go, TypeScript and Python adapters
    engine.index_root("some/project")
    result = engine.find_definition_at("some/project/pkg/foo.go", 42, 17)
    if result.found:
        print(result.definition.file, result.definition.range.start)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .adapters import AdapterRegistry, LanguageAdapter, default_adapters
from .errors import ResolutionError
from .index import ProjectIndex
from .indexer import IndexConfig, Indexer, IndexStats
from .symbols import (
    DefinitionLocation,
    Occurrence,
    Position,
    ReferenceLocation,
    normalize_path,
)

logger = logging.getLogger("srcxref.engine")

NO_IDENTIFIER_AT_POSITION = "no identifier at position"
NO_ADAPTER_FOR_FILE = "no adapter for file"
DEFINITION_NOT_FOUND = "definition not found"


@dataclass(frozen=True)
class DefinitionResult:
    """Outcome of a go-to-definition query.

    ``candidates`` is None when resolution never ran (no identifier at the
    position, or no adapter); otherwise it lists every identity tried, even
    when none of them had a definition.
    """
    definition: DefinitionLocation | None
    candidates: list[str] | None
    error: str | None = None
    occurrence: Occurrence | None = None

    @property
    def found(self) -> bool:
        return self.error is None and self.definition is not None

    def raise_for_error(self) -> DefinitionLocation:
        if not self.found:
            raise ResolutionError(self.error or DEFINITION_NOT_FOUND, self.candidates)
        return self.definition


def definition_sort_key(d: DefinitionLocation) -> tuple:
    """Listing order for definitions: file, kind, name, then position."""
    return (d.file, d.kind, d.name, d.range.start)


def pick_occurrence(occurrences: list[Occurrence], line: int, col: int) -> Occurrence | None:
    """The occurrence containing (line, col).

    When several contain it (a reference nested in a wider span), the one
    with the smallest span wins; ties keep extraction order.
    """
    pos = Position(line, col)
    best = None
    for occ in occurrences:
        if not occ.range.contains(pos):
            continue
        if best is None or occ.range.span < best.range.span:
            best = occ
    return best


class Engine:
    """Cross-file symbol index with go-to-definition over several languages."""

    def __init__(
        self,
        adapters: Iterable[LanguageAdapter] | None = None,
        config: IndexConfig | None = None,
    ):
        adapters = list(adapters or ())
        if not adapters:
            # AdapterInitError propagates: a broken adapter must not go unnoticed
            adapters = default_adapters()
        self.adapters = AdapterRegistry(adapters)
        self.index = ProjectIndex()
        self.config = config or IndexConfig()
        self._indexer = Indexer(self.index, self.adapters, self.config)

    def __repr__(self) -> str:
        return f"<Engine languages={self.adapters.languages}>"

    # -- indexing ----------------------------------------------------------

    def index_root(self, root: str | Path) -> IndexStats:
        return self.index_paths(root)

    def index_paths(self, *paths: str | Path) -> IndexStats:
        """Index files and directory trees. Per-file failures are skipped."""
        return self._indexer.index(paths)

    def remove_file(self, file: str | Path) -> bool:
        """Drop everything a file contributed to the index."""
        with self.index.writer() as w:
            return w.evict_file(normalize_path(file))

    # -- queries -----------------------------------------------------------

    def find_definition_at(self, file: str | Path, line: int, col: int) -> DefinitionResult:
        """Go to definition for the identifier at a 1-based (line, col)."""
        normalized = normalize_path(file)
        try:
            source = Path(normalized).read_bytes()
        except OSError:
            source = None
        with self.index.reader() as r:
            occ = pick_occurrence(r.occurrences(normalized), line, col)
            if occ is None:
                return DefinitionResult(None, None, NO_IDENTIFIER_AT_POSITION)

            adapter = self.adapters.pick(normalized)
            if adapter is None:
                return DefinitionResult(None, None, NO_ADAPTER_FOR_FILE, occ)

            candidates = adapter.resolve_at(normalized, source, occ, r)
            for sid in candidates:
                definition = r.definition(sid)
                if definition is not None:
                    return DefinitionResult(definition, candidates, None, occ)

        logger.debug("No definition for %r at %s:%d:%d", occ.name, normalized, line, col)
        return DefinitionResult(None, candidates, DEFINITION_NOT_FOUND, occ)

    def find_references(self, symbol_id: str) -> list[ReferenceLocation]:
        with self.index.reader() as r:
            return r.references(symbol_id)

    def get_definitions(self) -> dict[str, DefinitionLocation]:
        with self.index.reader() as r:
            return r.definitions()

    def get_definition_tree(self) -> list[DefinitionLocation]:
        """All definitions sorted by file, then kind, then name."""
        defs = self.get_definitions().values()
        return sorted(defs, key=definition_sort_key)

    def definitions_in_file(self, file: str | Path) -> list[tuple[str, DefinitionLocation]]:
        with self.index.reader() as r:
            return r.file_definitions(normalize_path(file))

    def get_file_occurrences(self, file: str | Path) -> list[Occurrence]:
        with self.index.reader() as r:
            return r.occurrences(normalize_path(file))

    def get_imports(self, file: str | Path) -> dict[str, str]:
        with self.index.reader() as r:
            return r.imports(normalize_path(file))

    def stats(self) -> dict:
        with self.index.reader() as r:
            return r.stats()
