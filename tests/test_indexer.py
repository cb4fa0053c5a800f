"""Tests for discovery and the concurrent indexing pipeline."""

import pytest

from srcxref.adapters import AdapterRegistry, PythonAdapter
from srcxref.index import ProjectIndex
from srcxref.indexer import (
    DEFAULT_WORKERS,
    ERROR,
    INDEXED,
    SKIPPED,
    IndexConfig,
    Indexer,
    _should_skip_dir,
)
from srcxref.symbols import normalize_path


def _indexer(*adapters, **config):
    return Indexer(ProjectIndex(), AdapterRegistry(adapters), IndexConfig(**config))


def _write(root, rel, text):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def toy_project(tmp_path):
    _write(tmp_path, "lib.toy", "def helper\ndef shared\n")
    _write(tmp_path, "app/main.toy", "def main\nhelper main\nshared\n")
    _write(tmp_path, "app/util.toy", "def shared\nshared shared\n")
    _write(tmp_path, "README.md", "# not code\n")
    _write(tmp_path, ".git/hooks/x.toy", "def hidden\n")
    _write(tmp_path, "node_modules/pkg/y.toy", "def hidden\n")
    _write(tmp_path, "Node_Modules/pkg/z.toy", "def hidden\n")
    _write(tmp_path, "__pycache__/w.toy", "def hidden\n")
    return tmp_path


def test_should_skip_dir():
    patterns = [".git", "node_modules", "*.egg-info"]
    assert _should_skip_dir(".git", patterns)
    assert _should_skip_dir("NODE_MODULES", patterns)
    assert _should_skip_dir("srcxref.egg-info", patterns)
    assert not _should_skip_dir("src", patterns)


def test_discover_prunes_skipped_directories(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    files = list(indexer.discover([toy_project]))
    names = sorted(f.rsplit("/", 1)[-1] for f in files)
    assert names == ["README.md", "lib.toy", "main.toy", "util.toy"]
    assert all(f == normalize_path(f) for f in files)


def test_discover_deduplicates_overlapping_inputs(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    files = list(indexer.discover([toy_project, toy_project / "lib.toy", toy_project / "app"]))
    assert len(files) == len(set(files)) == 4


def test_discover_missing_path_is_not_fatal(tmp_path, toy_adapter, caplog):
    indexer = _indexer(toy_adapter)
    assert list(indexer.discover([tmp_path / "nope"])) == []
    assert "does not exist" in caplog.text


def test_index_counts(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    stats = indexer.index([toy_project])

    assert stats.files_scanned == 4
    assert stats.files_indexed == 3
    assert stats.files_skipped == 1  # README.md has no adapter
    assert stats.errors == 0
    assert stats.definitions == 4
    assert stats.by_language == {"toy": 3}
    assert stats.elapsed_seconds >= 0

    with indexer.project_index.reader() as r:
        assert len(r.lookup("toy", "shared")) == 2
        assert r.lookup("toy", "hidden") == []


def test_index_can_run_repeatedly_into_one_store(tmp_path, toy_adapter):
    _write(tmp_path, "a/one.toy", "def one\n")
    _write(tmp_path, "b/two.toy", "def two\n")
    store = ProjectIndex()
    indexer = Indexer(store, AdapterRegistry([toy_adapter]), IndexConfig(workers=2))

    assert indexer.index([tmp_path / "a"]).files_indexed == 1
    assert indexer.index([tmp_path / "b"]).files_indexed == 1
    assert indexer.project_index is store
    with store.reader() as r:
        assert len(r.files()) == 2


def test_same_file_references_are_recorded(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    stats = indexer.index([toy_project])
    util = normalize_path(toy_project / "app" / "util.toy")
    main = normalize_path(toy_project / "app" / "main.toy")

    with indexer.project_index.reader() as r:
        assert len(r.references(f"toy::{util}::shared")) == 2
        assert len(r.references(f"toy::{main}::main")) == 1
    assert stats.references == 3


def test_single_file_input(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    stats = indexer.index([toy_project / "lib.toy"])
    assert stats.files_indexed == 1
    with indexer.project_index.reader() as r:
        assert r.files() == [normalize_path(toy_project / "lib.toy")]


def test_failing_files_are_counted_and_skipped(tmp_path, toy_adapter):
    _write(tmp_path, "good.toy", "def fine\n")
    _write(tmp_path, "syntax.toy", "def a\nSYNTAX ERROR\n")
    _write(tmp_path, "notree.toy", "NO TREE\n")
    _write(tmp_path, "crash.toy", "def b\nEXPLODE\n")

    indexer = _indexer(toy_adapter)
    stats = indexer.index([tmp_path])

    assert stats.files_scanned == 4
    assert stats.files_indexed == 1
    assert stats.errors == 3
    with indexer.project_index.reader() as r:
        assert r.files() == [normalize_path(tmp_path / "good.toy")]
        assert r.lookup("toy", "a") == []


def test_index_file_outcomes(tmp_path, toy_adapter):
    good = _write(tmp_path, "good.toy", "def fine\n")
    bad = _write(tmp_path, "bad.toy", "SYNTAX ERROR\n")
    other = _write(tmp_path, "other.txt", "text\n")
    indexer = _indexer(toy_adapter)

    outcome, extraction = indexer.index_file(good)
    assert outcome == INDEXED
    assert list(extraction.definitions) == [f"toy::{normalize_path(good)}::fine"]
    assert indexer.index_file(bad) == (ERROR, None)
    assert indexer.index_file(other) == (SKIPPED, None)
    assert indexer.index_file(tmp_path / "vanished.toy") == (ERROR, None)


def test_large_files_are_skipped(tmp_path, toy_adapter):
    _write(tmp_path, "small.toy", "def small\n")
    _write(tmp_path, "big.toy", "def big\n" + "x " * 500)
    indexer = _indexer(toy_adapter, max_file_size=100)
    stats = indexer.index([tmp_path])
    assert stats.files_indexed == 1
    assert stats.files_skipped == 1


def test_language_filter(tmp_path, toy_adapter):
    _write(tmp_path, "a.toy", "def a\n")
    _write(tmp_path, "b.py", "def b():\n    pass\n")
    indexer = _indexer(toy_adapter, PythonAdapter(), languages=["py"])
    stats = indexer.index([tmp_path])
    assert stats.by_language == {"py": 1}
    assert stats.files_skipped == 1


def _snapshot(index):
    with index.reader() as r:
        defs = r.definitions()
        return (
            defs,
            {sid: sorted(map(repr, r.references(sid))) for sid in defs},
            {f: r.occurrences(f) for f in r.files()},
        )


def test_worker_count_does_not_change_results(tmp_path, toy_adapter):
    for i in range(40):
        body = f"def f{i}\ndef common\nf{i} common f{(i + 1) % 40}\n"
        _write(tmp_path, f"pkg{i % 5}/m{i}.toy", body)

    serial = _indexer(toy_adapter, workers=1)
    parallel = _indexer(toy_adapter, workers=8, queue_size=2)
    serial_stats = serial.index([tmp_path])
    parallel_stats = parallel.index([tmp_path])

    assert serial_stats.files_indexed == parallel_stats.files_indexed == 40
    assert serial_stats.definitions == parallel_stats.definitions == 80
    assert _snapshot(serial.project_index) == _snapshot(parallel.project_index)
    with parallel.project_index.reader() as r:
        assert len(r.lookup("toy", "common")) == 40


def test_reindex_is_idempotent(toy_project, toy_adapter):
    indexer = _indexer(toy_adapter)
    indexer.index([toy_project])
    before = _snapshot(indexer.project_index)
    indexer.index([toy_project])
    assert _snapshot(indexer.project_index) == before


def test_config_validation():
    with pytest.raises(ValueError):
        IndexConfig(workers=0)
    with pytest.raises(ValueError):
        IndexConfig(queue_size=0)


def test_workers_from_environment(monkeypatch):
    monkeypatch.setenv("SRCXREF_WORKERS", "2")
    assert IndexConfig().workers == 2
    monkeypatch.setenv("SRCXREF_WORKERS", "lots")
    assert IndexConfig().workers == DEFAULT_WORKERS
    monkeypatch.setenv("SRCXREF_WORKERS", "-3")
    assert IndexConfig().workers == DEFAULT_WORKERS
    monkeypatch.delenv("SRCXREF_WORKERS")
    assert IndexConfig().workers == DEFAULT_WORKERS
