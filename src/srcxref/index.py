"""Thread-safe, in-memory project index.

All mutation goes through :class:`IndexWriter` (exclusive lock); all queries
go through :class:`IndexReader` (shared lock). Handles are only valid inside
the ``with`` block that produced them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from .symbols import (
    DefinitionLocation,
    FileExtraction,
    Occurrence,
    ReferenceLocation,
    lookup_key,
    normalize_path,
)


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class _IndexState:
    """The raw tables. Never handed out directly."""

    def __init__(self):
        self.definitions: dict[str, DefinitionLocation] = {}
        self.references: dict[str, list[ReferenceLocation]] = {}
        self.name_lookup: dict[str, set[str]] = {}
        self.file_occurrences: dict[str, list[Occurrence]] = {}
        self.file_imports: dict[str, dict[str, str]] = {}
        self.file_langs: dict[str, str] = {}
        # Per-file bookkeeping so a file's contribution can be evicted
        self.file_definitions: dict[str, set[str]] = {}
        self.file_reference_ids: dict[str, set[str]] = {}


class IndexReader:
    """Read-only view of the project index. Returns copies, never live tables."""

    def __init__(self, state: _IndexState):
        self._state = state

    def definition(self, sid: str) -> DefinitionLocation | None:
        return self._state.definitions.get(sid)

    def definitions(self) -> dict[str, DefinitionLocation]:
        return dict(self._state.definitions)

    def references(self, sid: str) -> list[ReferenceLocation]:
        return list(self._state.references.get(sid, ()))

    def lookup(self, lang: str, name: str) -> list[str]:
        """All identities for ``lang:name``, sorted for deterministic output."""
        return sorted(self._state.name_lookup.get(lookup_key(lang, name), ()))

    def occurrences(self, file: str) -> list[Occurrence]:
        return list(self._state.file_occurrences.get(normalize_path(file), ()))

    def imports(self, file: str) -> dict[str, str]:
        return dict(self._state.file_imports.get(normalize_path(file), {}))

    def file_definitions(self, file: str) -> list[tuple[str, DefinitionLocation]]:
        """(identity, definition) pairs for one file, in source order."""
        file = normalize_path(file)
        defs = self._state.definitions
        pairs = [(sid, defs[sid]) for sid in self._state.file_definitions.get(file, ())]
        pairs.sort(key=lambda p: (p[1].range.start, p[0]))
        return pairs

    def local_definitions(self, lang: str, file: str, name: str) -> list[str]:
        """Identities defined in ``file`` with this language and name."""
        return [
            sid for sid, d in self.file_definitions(file)
            if d.lang == lang and d.name == name
        ]

    def files(self) -> list[str]:
        return sorted(self._state.file_occurrences)

    def file_language(self, file: str) -> str | None:
        return self._state.file_langs.get(normalize_path(file))

    def stats(self) -> dict:
        state = self._state
        languages: dict[str, int] = {}
        for lang in state.file_langs.values():
            languages[lang] = languages.get(lang, 0) + 1
        return {
            "files": len(state.file_occurrences),
            "definitions": len(state.definitions),
            "references": sum(len(refs) for refs in state.references.values()),
            "occurrences": sum(len(o) for o in state.file_occurrences.values()),
            "languages": dict(sorted(languages.items())),
        }


class IndexWriter(IndexReader):
    """Mutating handle. Only obtainable under the exclusive lock."""

    def merge(self, extraction: FileExtraction) -> None:
        """Fold one file's extraction into the index.

        A file that was merged before is evicted first, so the index always
        reflects the latest extraction of each file.
        """
        state = self._state
        file = normalize_path(extraction.file)
        if file in state.file_occurrences:
            self.evict_file(file)

        own_defs = state.file_definitions.setdefault(file, set())
        for sid, d in extraction.definitions.items():
            state.definitions[sid] = d
            state.name_lookup.setdefault(lookup_key(d.lang, d.name), set()).add(sid)
            own_defs.add(sid)

        ref_ids = state.file_reference_ids.setdefault(file, set())
        for sid, refs in extraction.references.items():
            if not refs:
                continue
            state.references.setdefault(sid, []).extend(refs)
            ref_ids.add(sid)

        state.file_occurrences[file] = list(extraction.occurrences)
        state.file_imports[file] = dict(extraction.imports)
        state.file_langs[file] = extraction.lang

    def evict_file(self, file: str) -> bool:
        """Remove everything a file contributed. Returns False if unknown."""
        state = self._state
        file = normalize_path(file)
        if file not in state.file_occurrences:
            return False

        for sid in state.file_definitions.pop(file, set()):
            d = state.definitions.pop(sid, None)
            if d is None:
                continue
            key = lookup_key(d.lang, d.name)
            ids = state.name_lookup.get(key)
            if ids is not None:
                ids.discard(sid)
                if not ids:
                    del state.name_lookup[key]

        for sid in state.file_reference_ids.pop(file, set()):
            kept = [r for r in state.references.get(sid, ()) if r.file != file]
            if kept:
                state.references[sid] = kept
            else:
                state.references.pop(sid, None)

        del state.file_occurrences[file]
        state.file_imports.pop(file, None)
        state.file_langs.pop(file, None)
        return True


class ProjectIndex:
    """The single shared store aggregating every file's extraction."""

    def __init__(self):
        self._state = _IndexState()
        self._lock = ReadWriteLock()

    @contextmanager
    def reader(self) -> Iterator[IndexReader]:
        with self._lock.shared():
            yield IndexReader(self._state)

    @contextmanager
    def writer(self) -> Iterator[IndexWriter]:
        with self._lock.exclusive():
            yield IndexWriter(self._state)

    def merge(self, extraction: FileExtraction) -> None:
        with self.writer() as w:
            w.merge(extraction)
