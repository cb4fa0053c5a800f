"""Language adapter contract and the shared tree-sitter implementation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, Protocol, runtime_checkable

from tree_sitter import Node, Parser, Query, QueryCursor, Tree

from ..errors import AdapterInitError
from ..languages import LANGUAGES, LanguageConfig, get_language
from ..symbols import FileExtraction, Occurrence, Range, normalize_path

if TYPE_CHECKING:
    from ..index import IndexReader

logger = logging.getLogger("srcxref.adapters")


@runtime_checkable
class LanguageAdapter(Protocol):
    """Interface that all language adapters must implement."""

    lang: str

    def can_handle(self, path: str) -> bool:
        ...

    def parse(self, path: str, source: bytes) -> Tree | None:
        ...

    def extract(self, path: str, source: bytes, tree: Tree) -> FileExtraction:
        ...

    def resolve_at(
        self,
        path: str,
        source: bytes | None,
        occurrence: Occurrence,
        index: IndexReader,
    ) -> list[str]:
        """Ordered candidate identities for an occurrence. Must not mutate."""
        ...


@dataclass(frozen=True)
class Capture:
    """One named capture of a query match, detached from the tree."""
    name: str
    text: str
    start_byte: int
    end_byte: int
    start_point: tuple[int, int]  # 0-based (row, column)
    end_point: tuple[int, int]

    @classmethod
    def from_node(cls, name: str, node: Node) -> Capture:
        return cls(
            name=name,
            text=node.text.decode("utf-8", errors="replace"),
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            start_point=(node.start_point[0], node.start_point[1]),
            end_point=(node.end_point[0], node.end_point[1]),
        )

    @property
    def span(self) -> tuple[int, int]:
        return (self.start_byte, self.end_byte)

    @property
    def range(self) -> Range:
        return Range.from_points(self.start_point, self.end_point)


def run_query(query: Query, node: Node) -> Iterator[dict[str, Capture]]:
    """Yield one ``{capture name: Capture}`` dict per match."""
    cursor = QueryCursor(query)
    for _pattern_idx, match_captures in cursor.matches(node):
        yield {
            name: Capture.from_node(name, nodes[0])
            for name, nodes in match_captures.items()
            if nodes
        }


def _kind_from_capture(prefix: str) -> str:
    """Map capture name prefixes to definition kinds."""
    mapping = {
        "fn": "func",
        "method": "func",
        "cls": "class",
        "iface": "interface",
        "enum": "enum",
        "type": "type",
        "var": "var",
        "const": "const",
    }
    return mapping.get(prefix, "var")


def _definition_from_captures(
    captures: dict[str, Capture],
) -> tuple[str, str, str | None, Capture] | None:
    """(name, kind, container, name capture) for a definitions-query match."""
    name_cap = None
    kind = None
    container = None
    for capture_name, cap in captures.items():
        prefix, _, role = capture_name.partition(".")
        if role == "name":
            name_cap = cap
            kind = _kind_from_capture(prefix)
        elif role == "container":
            container = cap.text
    if name_cap is None or not name_cap.text:
        return None
    return name_cap.text, kind, container, name_cap


class TreeSitterAdapter:
    """Adapter driven by three tree-sitter queries: definitions, references, imports.

    Subclasses set ``language`` (a key of ``LANGUAGES``) and implement
    :meth:`import_binding`. Queries are compiled eagerly so a broken grammar
    or query fails at construction, not on the first file.
    """

    language: str = ""

    def __init__(self):
        config: LanguageConfig | None = LANGUAGES.get(self.language)
        if config is None:
            raise AdapterInitError(self.language, "unknown language")
        self.config = config
        self.lang = config.tag

        ts_language = get_language(config.name)
        if ts_language is None:
            raise AdapterInitError(
                self.lang, f"grammar package {config.loader!r} is not installed",
            )
        self._ts_language = ts_language
        self._defs_query = self._compile("defs", config.defs_query)
        self._refs_query = self._compile("refs", config.refs_query)
        self._imports_query = self._compile("imports", config.imports_query)
        # Parsers are not safe to share between threads
        self._local = threading.local()

    def _compile(self, label: str, source: str) -> Query:
        try:
            return Query(self._ts_language, source)
        except Exception as e:
            raise AdapterInitError(self.lang, f"failed to compile {label} query: {e}") from e

    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(self._ts_language)
            self._local.parser = parser
        return parser

    def __repr__(self) -> str:
        return f"<{type(self).__name__} lang={self.lang}>"

    def can_handle(self, path: str) -> bool:
        return str(path).lower().endswith(self.config.extensions)

    def parse(self, path: str, source: bytes) -> Tree | None:
        return self._parser().parse(source)

    # -- extraction --------------------------------------------------------

    def import_binding(
        self, captures: dict[str, Capture],
    ) -> tuple[str, str, Capture] | None:
        """(alias, target, capture locating the alias) for an imports match."""
        raise NotImplementedError

    def imported_name(self, target: str) -> str | None:
        """Name of the symbol an import target refers to, if it names one."""
        return None

    def extract(self, path: str, source: bytes, tree: Tree) -> FileExtraction:
        result = FileExtraction(lang=self.lang, file=normalize_path(path))
        if tree is None:
            return result
        root = tree.root_node

        # Byte spans whose identifiers are not references
        import_spans: list[tuple[int, int]] = []
        seen_imports: set[tuple[str, tuple[int, int]]] = set()
        for captures in run_query(self._imports_query, root):
            stmt = captures.get("import.stmt")
            if stmt is not None:
                import_spans.append(stmt.span)
            binding = self.import_binding(captures)
            if binding is None:
                continue
            alias, target, cap = binding
            if (alias, cap.span) in seen_imports:
                continue
            seen_imports.add((alias, cap.span))
            result.add_import(alias, target, cap.range)

        # A name matched by both a plain and a qualified pattern keeps the
        # qualified one (e.g. a method also matches the function pattern).
        found: dict[tuple[int, int], tuple[str, str, str | None, Capture]] = {}
        for captures in run_query(self._defs_query, root):
            definition = _definition_from_captures(captures)
            if definition is None:
                continue
            span = definition[3].span
            previous = found.get(span)
            if previous is not None and previous[2] and not definition[2]:
                continue
            found[span] = definition

        local_ids: dict[str, str] = {}
        for span in sorted(found):
            name, kind, container, cap = found[span]
            sid = result.add_definition(name, kind, cap.range, container)
            local_ids.setdefault(name, sid)

        for captures in run_query(self._refs_query, root):
            cap = captures.get("ref")
            if cap is None or cap.span in found:
                continue
            if any(start <= cap.start_byte and cap.end_byte <= end for start, end in import_spans):
                continue
            result.add_reference(cap.text, cap.range, local_ids.get(cap.text))

        logger.debug(
            "%s: %d definitions, %d occurrences, %d imports",
            result.file, len(result.definitions), len(result.occurrences), len(result.imports),
        )
        return result

    # -- resolution --------------------------------------------------------

    def resolve_at(
        self,
        path: str,
        source: bytes | None,
        occurrence: Occurrence,
        index: IndexReader,
    ) -> list[str]:
        return resolve_by_name(self.lang, path, occurrence, index, self.imported_name)


def resolve_by_name(
    lang: str,
    path: str,
    occurrence: Occurrence,
    index: IndexReader,
    imported_name: Callable[[str], str | None] | None = None,
) -> list[str]:
    """Default resolution policy. Candidate identities, most likely first.

    A definition occurrence resolves to itself. Otherwise a same-file
    definition with the same name shadows everything else; failing that,
    every definition of that name in this language is a candidate,
    followed by definitions of the name an import alias stands for.
    """
    if occurrence.symbol_id and index.definition(occurrence.symbol_id):
        return [occurrence.symbol_id]

    local = index.local_definitions(lang, path, occurrence.name)
    if local:
        return local[:1]

    candidates = index.lookup(lang, occurrence.name)
    if imported_name is None:
        return candidates
    target = index.imports(path).get(occurrence.name)
    if target is not None:
        original = imported_name(target)
        if original and original != occurrence.name:
            candidates += [
                sid for sid in index.lookup(lang, original)
                if sid not in candidates
            ]
    return candidates
