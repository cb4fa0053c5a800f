"""srcxref CLI.

Usage:
    srcxref index PATH...                 Index files/directories and print statistics
    srcxref definition FILE LINE COL      Go to definition at a cursor position
    srcxref defs PATH...                  List definitions
    srcxref references SYMBOL_ID          List references to a symbol

The index lives in memory, so every command indexes before querying.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

import click

from . import __version__
from .errors import AdapterInitError
from .indexer import IndexConfig


def _find_repo_root(start: Path) -> Path:
    """Walk up from start to find .git directory."""
    check = start.resolve()
    while check != check.parent:
        if (check / ".git").exists():
            return check
        check = check.parent
    return start.resolve()


def _build_engine(workers: int | None):
    from .engine import Engine

    config = IndexConfig(workers=workers) if workers else IndexConfig()
    try:
        return Engine(config=config)
    except AdapterInitError as e:
        click.echo(f"Error: cannot initialize language adapter {e}", err=True)
        sys.exit(1)


def _fmt_location(file: str, rng) -> str:
    return f"{file}:{rng.start.line}:{rng.start.col}"


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
def main(verbose: bool):
    """srcxref: cross-file go-to-definition for Go, TypeScript and Python."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


workers_option = click.option(
    "--workers", "-w", type=click.IntRange(min=1), default=None,
    help="Parallel indexing workers (default: 4 or $SRCXREF_WORKERS)",
)
json_option = click.option("--json-output", "-j", is_flag=True, help="Output as JSON")


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@workers_option
@json_option
def index(paths: tuple[str, ...], workers: int | None, json_output: bool):
    """Index files and directories and report what was found."""
    engine = _build_engine(workers)
    stats = engine.index_paths(*paths)

    if json_output:
        click.echo(json.dumps(asdict(stats), indent=2))
        return

    click.echo(f"  Files scanned:   {stats.files_scanned}")
    click.echo(f"  Files indexed:   {stats.files_indexed}")
    click.echo(f"  Files skipped:   {stats.files_skipped}")
    click.echo(f"  Definitions:     {stats.definitions}")
    click.echo(f"  References:      {stats.references}")
    click.echo(f"  Errors:          {stats.errors}")
    click.echo(f"  Time:            {stats.elapsed_seconds:.2f}s")
    if stats.by_language:
        click.echo(f"\n  Languages:")
        for lang, count in sorted(stats.by_language.items()):
            click.echo(f"    {lang:<15} {count} files")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=click.IntRange(min=1))
@click.argument("col", type=click.IntRange(min=1))
@click.option("--root", "-r", "roots", multiple=True, type=click.Path(exists=True),
              help="Paths to index (default: enclosing git repository)")
@workers_option
@json_option
def definition(file: str, line: int, col: int, roots: tuple[str, ...],
               workers: int | None, json_output: bool):
    """Find the definition of the identifier at FILE:LINE:COL."""
    if not roots:
        roots = (str(_find_repo_root(Path(file).parent)),)
    # Index and query with the same path spelling
    roots = tuple(os.path.realpath(r) for r in roots)
    engine = _build_engine(workers)
    engine.index_paths(*roots)
    result = engine.find_definition_at(os.path.realpath(file), line, col)

    if json_output:
        click.echo(json.dumps({
            "definition": asdict(result.definition) if result.definition else None,
            "candidates": result.candidates,
            "error": result.error,
        }, indent=2))
        if not result.found:
            sys.exit(1)
        return

    if not result.found:
        click.echo(f"No definition: {result.error}", err=True)
        for sid in result.candidates or ():
            click.echo(f"  candidate: {sid}", err=True)
        sys.exit(1)

    d = result.definition
    click.echo(f"{d.name}  {d.kind}  {_fmt_location(d.file, d.range)}")


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--file", "-f", "file_filter", help="Only definitions in this file")
@workers_option
@json_option
def defs(paths: tuple[str, ...], file_filter: str | None, workers: int | None, json_output: bool):
    """List definitions, grouped by file."""
    from .engine import definition_sort_key

    engine = _build_engine(workers)
    engine.index_paths(*paths)

    if file_filter:
        pairs = engine.definitions_in_file(file_filter)
    else:
        pairs = sorted(
            engine.get_definitions().items(), key=lambda p: definition_sort_key(p[1]),
        )

    if json_output:
        click.echo(json.dumps({sid: asdict(d) for sid, d in pairs}, indent=2))
        return

    if not pairs:
        click.echo("No definitions found")
        return

    current = None
    for sid, d in pairs:
        if d.file != current:
            current = d.file
            click.echo(f"{d.file}:")
        click.echo(f"  L{d.range.start.line:<5} {d.kind:<10} {d.name:<30} {sid}")


@main.command()
@click.argument("symbol_id")
@click.option("--root", "-r", "roots", multiple=True, required=True,
              type=click.Path(exists=True), help="Paths to index")
@workers_option
@json_option
def references(symbol_id: str, roots: tuple[str, ...], workers: int | None, json_output: bool):
    """List recorded references to SYMBOL_ID."""
    engine = _build_engine(workers)
    engine.index_paths(*roots)
    refs = engine.find_references(symbol_id)

    if json_output:
        click.echo(json.dumps([asdict(r) for r in refs], indent=2))
        return

    if not refs:
        click.echo(f"No references to '{symbol_id}'")
        return
    click.echo(f"{len(refs)} references to {symbol_id}:\n")
    for r in refs:
        click.echo(f"  {_fmt_location(r.file, r.range)}")


if __name__ == "__main__":
    main()
