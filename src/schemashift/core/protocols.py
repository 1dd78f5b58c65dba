"""
Canonical protocol definitions for schemashift.

The engine talks to databases through the DB-API 2.0 surface that
``sqlite3``, ``mysql.connector`` and ``psycopg2`` all share: a connection
hands out cursors, cursors execute one statement at a time, and the
connection commits or rolls back. Depending on that shape rather than on a
driver keeps the migration modules engine-agnostic and lets tests pass
in-memory fakes.

Tags:
    protocol, connection, cursor, dbapi, schemashift
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Cursor(Protocol):
    """Minimal DB-API cursor used by the ledger and applier."""

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Execute a single SQL statement."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from the last query."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface.

    ::

        cursor()   → Cursor for statement execution
        commit()   → Commit current transaction
        rollback() → Roll back current transaction
        close()    → Close (or return to pool)
    """

    def cursor(self) -> Cursor:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "Connection",
    "Cursor",
]
