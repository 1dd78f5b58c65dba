"""``python -m schemashift`` entry point."""

from schemashift.cli import app

app()
