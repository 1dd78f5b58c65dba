"""
Root Typer application for the schemashift CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from schemashift.cli import migrate
from schemashift.core.logging import configure_logging
from schemashift.core.settings import MigrationSettings

app = Typer(
    name="schemashift",
    help="schemashift - ordered, exactly-once SQL schema migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from schemashift import __version__

        typer.echo(f"schemashift {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    """schemashift CLI - apply, inspect and record SQL migrations."""
    try:
        settings = MigrationSettings()
        level = log_level or settings.log_level
        json_logs = settings.json_logs
    except ValueError:
        # Invalid settings are reported by the command that needs them.
        level, json_logs = log_level or "INFO", None
    try:
        configure_logging(level=level, json_format=json_logs)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


# ── Command registration ─────────────────────────────────────────────────

app.command(name="up")(migrate.up)
app.command(name="status")(migrate.status)
app.command(name="check")(migrate.check)
app.command(name="mark-applied")(migrate.mark_applied)
app.command(name="split")(migrate.split)
