"""Shared fixtures: a grammar-free adapter for exercising the pipeline."""

import pytest

from srcxref.adapters import resolve_by_name
from srcxref.symbols import FileExtraction, Position, Range


class ToyAdapter:
    """Line-based adapter for ``.toy`` files.

    ``def NAME`` on its own line defines NAME; every other word is a
    reference. Sources containing ``SYNTAX ERROR`` fail to parse,
    ``NO TREE`` parses to None and ``EXPLODE`` fails extraction.
    """

    lang = "toy"

    def can_handle(self, path):
        return str(path).endswith(".toy")

    def parse(self, path, source):
        if b"SYNTAX ERROR" in source:
            raise ValueError("unexpected token")
        if b"NO TREE" in source:
            return None
        return source.decode().splitlines()

    def extract(self, path, source, tree):
        if b"EXPLODE" in source:
            raise RuntimeError("extractor crashed")
        fx = FileExtraction(lang=self.lang, file=path)
        local = {}
        for lineno, line in enumerate(tree, start=1):
            words = line.split()
            if len(words) == 2 and words[0] == "def":
                col = line.index(words[1]) + 1
                rng = Range(Position(lineno, col), Position(lineno, col + len(words[1]) - 1))
                local.setdefault(words[1], fx.add_definition(words[1], "func", rng))
        for lineno, line in enumerate(tree, start=1):
            words = line.split()
            if words[:1] == ["def"]:
                continue
            col = 0
            for word in words:
                col = line.index(word, col)
                rng = Range(Position(lineno, col + 1), Position(lineno, col + len(word)))
                fx.add_reference(word, rng, local.get(word))
                col += len(word)
        return fx

    def resolve_at(self, path, source, occurrence, index):
        return resolve_by_name(self.lang, path, occurrence, index)


@pytest.fixture
def toy_adapter():
    return ToyAdapter()
