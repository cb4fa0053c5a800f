"""Positions, occurrences, definition/reference records and symbol identities.

Identity format: ``lang::file::name`` or ``lang::file::container.name``.
The file component is normalized (forward slashes, no leading ``./``) so the
same file always yields the same keys regardless of how it was reached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import NamedTuple

# Occurrence kind tags
DEF = "def"
REF = "ref"
IMPORT = "import"

OCCURRENCE_KINDS = (DEF, REF, IMPORT)

ID_SEPARATOR = "::"


@dataclass(frozen=True, order=True)
class Position:
    """1-based cursor location. Ordered by line, then column."""
    line: int
    col: int


@dataclass(frozen=True)
class Range:
    """Inclusive span between two positions."""
    start: Position
    end: Position

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"range end {self.end} precedes start {self.start}")

    @classmethod
    def from_points(
        cls, start_point: tuple[int, int], end_point: tuple[int, int],
    ) -> Range:
        """Build a Range from 0-based (row, column) points."""
        return cls(
            Position(start_point[0] + 1, start_point[1] + 1),
            Position(end_point[0] + 1, end_point[1] + 1),
        )

    def contains(self, pos: Position) -> bool:
        return self.start <= pos <= self.end

    @property
    def span(self) -> tuple[int, int]:
        """(line span, column span), used to rank nested ranges."""
        return (self.end.line - self.start.line, self.end.col - self.start.col)


@dataclass(frozen=True)
class Occurrence:
    name: str
    kind: str  # def | ref | import
    range: Range
    symbol_id: str | None = None  # set only when known at extraction time


@dataclass(frozen=True)
class DefinitionLocation:
    lang: str
    file: str
    range: Range
    name: str
    kind: str  # func, type, var, const, class, interface, enum


@dataclass(frozen=True)
class ReferenceLocation:
    lang: str
    file: str
    range: Range


@dataclass
class FileExtraction:
    """Everything one adapter invocation found in one file."""
    lang: str
    file: str
    definitions: dict[str, DefinitionLocation] = field(default_factory=dict)
    references: dict[str, list[ReferenceLocation]] = field(default_factory=dict)
    occurrences: list[Occurrence] = field(default_factory=list)
    imports: dict[str, str] = field(default_factory=dict)  # alias -> target

    def __post_init__(self):
        self.file = normalize_path(self.file)

    def add_definition(
        self, name: str, kind: str, rng: Range, container: str | None = None,
    ) -> str:
        sid = symbol_id(self.lang, self.file, name, container)
        self.definitions[sid] = DefinitionLocation(
            lang=self.lang, file=self.file, range=rng, name=name, kind=kind,
        )
        self.occurrences.append(Occurrence(name, DEF, rng, sid))
        return sid

    def add_reference(self, name: str, rng: Range, sid: str | None = None) -> None:
        self.occurrences.append(Occurrence(name, REF, rng))
        if sid is not None:
            self.references.setdefault(sid, []).append(
                ReferenceLocation(lang=self.lang, file=self.file, range=rng)
            )

    def add_import(self, alias: str, target: str, rng: Range) -> None:
        self.imports[alias] = target
        self.occurrences.append(Occurrence(alias, IMPORT, rng))


class SymbolKey(NamedTuple):
    lang: str
    file: str
    qualified_name: str  # "name" or "container.name"


def normalize_path(path: str | PurePosixPath) -> str:
    """Normalize a file path the same way at index time and query time."""
    text = str(path).replace("\\", "/")
    return PurePosixPath(text).as_posix()


def symbol_id(lang: str, file: str, name: str, container: str | None = None) -> str:
    """Build the global identity for a symbol.

    >>> symbol_id("go", "./pkg/server.go", "Start", "Server")
    'go::pkg/server.go::Server.Start'
    """
    qualified = f"{container}.{name}" if container else name
    return ID_SEPARATOR.join((lang, normalize_path(file), qualified))


def parse_symbol_id(sid: str) -> SymbolKey:
    """Split an identity back into (lang, file, qualified name)."""
    lang, _, rest = sid.partition(ID_SEPARATOR)
    file, sep, qualified = rest.rpartition(ID_SEPARATOR)
    if not lang or not sep:
        raise ValueError(f"malformed symbol id: {sid!r}")
    return SymbolKey(lang, file, qualified)


def lookup_key(lang: str, name: str) -> str:
    """Reverse-lookup key shared by all same-named symbols of a language."""
    return f"{lang}:{name}"
