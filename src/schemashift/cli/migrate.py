"""
CLI: ``schemashift up|status|check|mark-applied|split`` - migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from schemashift.cli.utils import (
    console,
    handle_errors,
    load_settings,
    open_adapter,
    output_run,
    print_json,
    print_table,
)
from schemashift.core.errors import SchemaShiftError
from schemashift.migrations import (
    DirectorySource,
    MigrationLedger,
    MigrationRunner,
    MigrationSource,
    split_statements,
)


def _runner(adapter, settings) -> MigrationRunner:
    return MigrationRunner(
        adapter,
        DirectorySource(settings.migrations_dir),
        ledger=MigrationLedger(adapter, settings.migrations_table),
    )


def up(
    migrations_dir: Path | None = typer.Option(None, "--dir", "-m", help="Migrations directory"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="List pending migrations without applying"
    ),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply pending migrations in name order."""
    with handle_errors():
        settings = load_settings(migrations_dir=migrations_dir)
        with open_adapter(database, settings) as adapter:
            runner = _runner(adapter, settings)
            try:
                result = runner.run(dry_run=dry_run)
            except SchemaShiftError:
                partial = runner.last_result
                if partial is not None and partial.applied:
                    console.print(f"Applied before failure: {', '.join(partial.applied)}")
                raise
    output_run(result, as_json=json_out)


def status(
    migrations_dir: Path | None = typer.Option(None, "--dir", "-m", help="Migrations directory"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show applied and pending migrations."""
    with handle_errors():
        settings = load_settings(migrations_dir=migrations_dir)
        with open_adapter(database, settings) as adapter:
            runner = _runner(adapter, settings)
            pending = [s.name for s in runner.pending()]
            records = runner.ledger.records() if runner.ledger.exists() else []

    if json_out:
        print_json({
            "applied": [{"name": r.name, "applied_at": r.applied_at} for r in records],
            "pending": pending,
        })
        return

    print_table(
        [{"migration": r.name, "status": "applied", "applied_at": r.applied_at} for r in records]
        + [{"migration": name, "status": "pending", "applied_at": ""} for name in pending],
        title="Migrations",
    )
    console.print(f"\n{len(records)} applied, {len(pending)} pending")


def check(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
) -> None:
    """Check database connectivity (``SELECT 1``)."""
    with handle_errors():
        settings = load_settings()
        with open_adapter(database, settings) as adapter:
            adapter.ping()
            backend = adapter.dialect.name
            target = adapter.config.to_connection_string()
    console.print(
        f"[green]OK[/green] {backend} database reachable ({escape(target)})", soft_wrap=True
    )


def mark_applied(
    name: str = typer.Argument(..., help="Migration file name, e.g. 2025-01-01-001-init.sql"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
) -> None:
    """Record a migration as applied without running it."""
    with handle_errors():
        settings = load_settings()
        with open_adapter(database, settings) as adapter:
            ledger = MigrationLedger(adapter, settings.migrations_table)
            ledger.ensure_table()
            ledger.mark_applied(name)
    console.print(f"Marked [cyan]{name}[/cyan] as applied")


def split(
    file: Path = typer.Argument(..., help="SQL file to split"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Print the statements a migration file splits into."""
    with handle_errors():
        statements = split_statements(MigrationSource(name=file.name, path=file).read_text())

    if json_out:
        print_json(statements)
        return
    for i, statement in enumerate(statements, 1):
        console.print(f"[dim]-- {i}[/dim]")
        console.print(f"{statement};", markup=False, highlight=False)
