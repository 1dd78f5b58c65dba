"""
schemashift - ordered, exactly-once SQL schema migrations.

Applies versioned ``.sql`` change-sets to MySQL, PostgreSQL or SQLite,
records each one in a ledger table, and tolerates "already exists" errors
left behind by partial earlier runs.

    from schemashift import run_migrations
    result = run_migrations()
"""

__version__ = "0.3.0"

from schemashift.migrations import (  # noqa: E402
    MigrationRunner,
    RunResult,
    run_migrations,
    split_statements,
)

__all__ = [
    "MigrationRunner",
    "RunResult",
    "run_migrations",
    "split_statements",
    "__version__",
]
