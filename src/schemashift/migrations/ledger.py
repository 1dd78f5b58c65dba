"""Migration ledger: the table recording which sources have been processed.

One row per migration name. Rows are written with insert-or-ignore, so
recording the same name twice is a no-op and the ledger can never hold
duplicates. Nothing in normal operation updates or deletes a row.

Table layout (MySQL shown)::

    CREATE TABLE IF NOT EXISTS _migrations (
        id INT AUTO_INCREMENT PRIMARY KEY,
        name VARCHAR(255) NOT NULL UNIQUE,
        applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from schemashift.core.adapters import DatabaseAdapter
from schemashift.core.errors import (
    InvalidConfigError,
    SchemaShiftError,
    StorageError,
    first_line,
)
from schemashift.core.logging import get_logger
from schemashift.core.protocols import Connection

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")


@dataclass(frozen=True)
class MigrationRecord:
    """A persisted "this source has been processed" fact."""

    name: str
    applied_at: datetime | str


class MigrationLedger:
    """Reads and writes the migration tracking table.

    Parameters
    ----------
    adapter
        Database adapter the table lives in.
    table
        Table name; must be a plain SQL identifier since it is interpolated
        into DDL.

    Raises
    ------
    InvalidConfigError
        ``table`` is not a plain identifier.
    """

    def __init__(self, adapter: DatabaseAdapter, table: str = "_migrations") -> None:
        if not _IDENTIFIER.match(table):
            raise InvalidConfigError(
                "migrations_table",
                table,
                f"Ledger table name must be a plain identifier: {table!r}",
            )
        self._adapter = adapter
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    def ensure_table(self) -> None:
        """Create the tracking table if it does not exist. Safe to call every run."""
        dialect = self._adapter.dialect
        ddl = (
            f"CREATE TABLE IF NOT EXISTS {self._table} ("
            f"id {dialect.auto_increment()}, "
            "name VARCHAR(255) NOT NULL UNIQUE, "
            f"applied_at TIMESTAMP NOT NULL {dialect.timestamp_default_now()}"
            f") {dialect.table_options()}"
        ).rstrip()
        with self._storage_errors("create"), self._adapter.transaction() as conn:
            self._execute(conn, ddl)

    def exists(self) -> bool:
        """Whether the tracking table has been created."""
        query = self._adapter.dialect.table_exists_query()
        with self._storage_errors("lookup"), self._adapter.transaction() as conn:
            rows = self._execute(conn, query, (self._table,), fetch=True)
        return bool(rows)

    def applied_names(self) -> list[str]:
        """Names of all recorded migrations, oldest first."""
        return [record.name for record in self.records()]

    def records(self) -> list[MigrationRecord]:
        """All ledger rows ordered by ``applied_at`` (ties broken by ``id``)."""
        query = f"SELECT name, applied_at FROM {self._table} ORDER BY applied_at, id"
        with self._storage_errors("read"), self._adapter.transaction() as conn:
            rows = self._execute(conn, query, fetch=True)
        return [MigrationRecord(name=row[0], applied_at=row[1]) for row in rows]

    def mark_applied(self, name: str, conn: Connection | None = None) -> None:
        """Record ``name`` as applied; recording an existing name does nothing.

        With ``conn`` the insert joins the caller's transaction and is not
        committed here. Without it the insert runs in its own transaction.
        """
        sql = self._adapter.dialect.insert_or_ignore(self._table, ["name"])
        with self._storage_errors("write"):
            if conn is not None:
                self._execute(conn, sql, (name,))
            else:
                with self._adapter.transaction() as own:
                    self._execute(own, sql, (name,))
        logger.debug("ledger.marked", migration=name, table=self._table)

    @staticmethod
    def _execute(conn: Connection, sql: str, params: tuple = (), *, fetch: bool = False) -> list:
        cursor = conn.cursor()
        try:
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
            return cursor.fetchall() if fetch else []
        finally:
            cursor.close()

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SchemaShiftError:
            raise
        except Exception as e:
            raise StorageError(
                f"Ledger {action} failed on {self._table}: {first_line(e)}",
                cause=e,
            ).with_context(backend=self._adapter.dialect.name, table=self._table) from e

    def __repr__(self) -> str:
        return f"MigrationLedger(table={self._table!r}, backend={self._adapter.dialect.name!r})"


__all__ = [
    "MigrationLedger",
    "MigrationRecord",
]
