"""Database adapter base class.

Manifesto:
    The migration engine never owns a global connection. It is handed an
    adapter, and the adapter is the only thing that knows how to acquire a
    connection, start a transaction and give the connection back. Tests hand
    in a fake adapter; production hands in a pooled MySQL or PostgreSQL one.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``get_connection()``
    - ``connection()`` scoped acquisition: released on every exit path
    - ``transaction()``: begin, commit on success, rollback and re-raise on error
    - ``ping()`` connectivity check
    - Property-based dialect and connection-state introspection

Tags:
    schemashift, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from schemashift.core.dialect import Dialect, get_dialect
from schemashift.core.protocols import Connection

from .types import DatabaseConfig, DatabaseType


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Provides scoped acquisition and transaction handling on top of the
    driver-specific ``get_connection()`` / ``release()`` pair.
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    @abstractmethod
    def connect(self) -> None:
        """Establish connection (or pool) to the database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection (or pool)."""
        ...

    @abstractmethod
    def get_connection(self) -> Connection:
        """Acquire a connection (may be from pool)."""
        ...

    def release(self, conn: Connection) -> None:
        """Give a connection back. Default: nothing to do."""

    def begin(self, conn: Connection) -> None:
        """Start a transaction on ``conn``.

        Default: nothing, for drivers that open a transaction implicitly on
        the first statement when autocommit is off.
        """

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Scoped acquisition: the connection is released on every exit path."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            self.release(conn)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Context manager for a transaction on a dedicated connection."""
        with self.connection() as conn:
            self.begin(conn)
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def ping(self) -> bool:
        """Run ``SELECT 1``; raises if the database cannot be reached."""
        with self.connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT 1")
                cursor.fetchall()
            finally:
                cursor.close()
        return True

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


__all__ = [
    "DatabaseAdapter",
]
