"""
CLI utility helpers - output formatting, settings and adapter management.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from schemashift.core.adapters import DatabaseAdapter
from schemashift.core.connection import create_adapter
from schemashift.core.errors import MigrationFailure, SchemaShiftError
from schemashift.core.settings import MigrationSettings
from schemashift.migrations import RunResult

console = Console()
err_console = Console(stderr=True)


# ── Settings / connection helpers ────────────────────────────────────────


def load_settings(**overrides: Any) -> MigrationSettings:
    """Settings from env/.env, with non-``None`` CLI options taking precedence."""
    return MigrationSettings(**{k: v for k, v in overrides.items() if v is not None})


@contextmanager
def open_adapter(database: str | None, settings: MigrationSettings) -> Iterator[DatabaseAdapter]:
    """Connected adapter for ``--database`` (or settings), disconnected on exit."""
    adapter = create_adapter(database, settings)
    adapter.connect()
    try:
        yield adapter
    finally:
        adapter.disconnect()


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print schemashift/settings errors to stderr and exit 1."""
    try:
        yield
    except SchemaShiftError as e:
        err_console.print(
            f"[bold red]Error[/bold red] ({e.category.value}): {escape(e.message)}", soft_wrap=True
        )
        if isinstance(e, MigrationFailure):
            err_console.print(f"[dim]Statement:[/dim] {escape(e.statement)}", soft_wrap=True)
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        err_console.print(f"[bold red]Error[/bold red] (CONFIG): {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def run_result_payload(result: RunResult) -> dict[str, Any]:
    return {
        "state": result.state.value,
        "dry_run": result.dry_run,
        "applied": result.applied,
        "skipped": result.skipped,
        "pending": result.pending,
        "outcomes": [
            {
                "name": o.name,
                "executed": o.executed,
                "tolerated": [t.message for t in o.tolerated],
            }
            for o in result.outcomes
        ],
    }


def output_run(result: RunResult, *, as_json: bool = False) -> None:
    """Render a ``RunResult`` to the terminal."""
    if as_json:
        print_json(run_result_payload(result))
        return

    if not result.applied and not result.pending:
        console.print(f"[dim]Nothing to apply ({len(result.skipped)} already applied).[/dim]")
        return

    if result.dry_run:
        console.print("[bold]Would apply:[/bold]")
        for name in result.pending:
            console.print(f"  [cyan]{name}[/cyan]")
        return

    print_table(
        [
            {"migration": o.name, "statements": o.executed, "tolerated": len(o.tolerated)}
            for o in result.outcomes
        ],
        title="Applied Migrations",
    )
    console.print(
        f"\n[green]Applied {len(result.applied)}[/green], "
        f"skipped {len(result.skipped)}, tolerated {result.tolerated_count} statement(s)"
    )


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render rows sharing the same keys as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
