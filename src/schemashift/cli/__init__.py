"""
CLI layer for schemashift.

Provides a Typer application whose commands delegate to the migration
engine (``schemashift.migrations``).  This package handles only terminal
transport: argument parsing, coloured output, and table formatting.

Entry point::

    schemashift --help
"""

from schemashift.cli.app import app

__all__ = ["app"]
