"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from schemashift.core.errors import DatabaseConnectionError
from schemashift.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module with a single shared connection.
    The connection runs with ``isolation_level=None`` so that ``begin()``
    issues an explicit ``BEGIN`` and DDL participates in the transaction
    (the stdlib's implicit transactions only cover DML).

    Suitable for:
    - Development and testing
    - Single-process applications
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Connect to SQLite database."""
        path = self._config.path or ":memory:"
        uri = path.startswith("file:")

        if path != ":memory:" and not uri:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                isolation_level=None,
                check_same_thread=False,
                uri=uri,
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._connected = True

        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ).with_context(backend="sqlite") from e

    def disconnect(self) -> None:
        """Close SQLite connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._connected = False

    def get_connection(self) -> Connection:
        """Get the SQLite connection."""
        if not self._conn:
            self.connect()
        return self._conn

    def begin(self, conn: Connection) -> None:
        conn.execute("BEGIN")


__all__ = [
    "SQLiteAdapter",
]
