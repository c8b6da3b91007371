"""
CLI utility helpers: output formatting and error reporting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from bsonspine.core.errors import BsonSpineError

console = Console()
err_console = Console(stderr=True)


def read_input(path: Path) -> bytes:
    """Read a document file, exiting with a readable message on failure."""
    try:
        return path.read_bytes()
    except OSError as e:
        err_console.print(f"[bold red]Error[/bold red]: cannot read {path}: {e.strerror}")
        raise typer.Exit(code=1) from e


def fail(error: BsonSpineError) -> None:
    """Report a codec error and exit non-zero."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1) from error


def output_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def output_table(title: str, columns: list[str], rows: list[list[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row))
    console.print(table)
