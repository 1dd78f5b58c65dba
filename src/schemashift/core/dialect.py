"""SQL dialect abstraction for the migration ledger.

The ledger and applier are engine-agnostic; every backend-specific SQL
fragment they need (placeholders, insert-or-ignore, DDL defaults, savepoint
behaviour) comes from a ``Dialect``.

Architecture::

    ┌──────────────┐ ┌──────────────────┐ ┌────────────────────┐
    │ SQLite       │ │ MySQL            │ │ PostgreSQL         │
    │ ?            │ │ %s               │ │ %s                 │
    │ INSERT OR    │ │ INSERT IGNORE    │ │ ON CONFLICT        │
    │   IGNORE     │ │                  │ │   DO NOTHING       │
    │ datetime()   │ │ CURRENT_TIMESTAMP│ │ NOW()              │
    │              │ │ ENGINE=InnoDB    │ │ savepoint per stmt │
    └──────────────┘ └──────────────────┘ └────────────────────┘

Examples:
    >>> from schemashift.core.dialect import get_dialect
    >>> d = get_dialect("mysql")
    >>> d.insert_or_ignore("_migrations", ["name"])
    'INSERT IGNORE INTO _migrations (name) VALUES (%s)'

Tags:
    dialect, sql, portability, schemashift
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.

    Every method returns a **SQL fragment** valid for the target database.
    """

    @property
    def name(self) -> str:
        """Dialect name (e.g. ``'sqlite'``)."""
        ...

    @property
    def statement_savepoints(self) -> bool:
        """Whether a failed statement poisons the enclosing transaction.

        When ``True`` the applier wraps each statement in a savepoint so a
        tolerated error can be rolled back to without losing the rest of the
        transaction.
        """
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        """``INSERT … ON CONFLICT DO NOTHING`` (or equivalent) with placeholders."""
        ...

    def auto_increment(self) -> str:
        """DDL fragment for an auto-incrementing primary key column type."""
        ...

    def timestamp_default_now(self) -> str:
        """DDL ``DEFAULT`` clause giving a timestamp column the insertion time."""
        ...

    def table_options(self) -> str:
        """Trailing ``CREATE TABLE`` options (may be empty)."""
        ...

    def table_exists_query(self) -> str:
        """Query taking one table-name placeholder, returning rows if it exists."""
        ...


class SQLiteDialect:
    """SQLite dialect - ``?`` placeholders, ``datetime('now')``."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def statement_savepoints(self) -> bool:
        # A failing statement only undoes itself.
        return False

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT OR IGNORE INTO {table} ({cols}) VALUES ({ph})"

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def timestamp_default_now(self) -> str:
        return "DEFAULT (datetime('now'))"

    def table_options(self) -> str:
        return ""

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"


class MySQLDialect:
    """MySQL dialect - ``%s`` placeholders, ``INSERT IGNORE``.

    Compatible with ``mysql.connector`` and ``PyMySQL`` (both use the
    ``%s`` format paramstyle).
    """

    @property
    def name(self) -> str:
        return "mysql"

    @property
    def statement_savepoints(self) -> bool:
        return False

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT IGNORE INTO {table} ({cols}) VALUES ({ph})"

    def auto_increment(self) -> str:
        return "INT AUTO_INCREMENT PRIMARY KEY"

    def timestamp_default_now(self) -> str:
        return "DEFAULT CURRENT_TIMESTAMP"

    def table_options(self) -> str:
        return "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"

    def table_exists_query(self) -> str:
        return (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s"
        )


class PostgreSQLDialect:
    """PostgreSQL dialect - ``%s`` placeholders (psycopg2), ``NOW()``.

    Any error inside a PostgreSQL transaction aborts it until rollback, so
    tolerated statements need a savepoint around them.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def statement_savepoints(self) -> bool:
        return True

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        cols = ", ".join(columns)
        ph = self.placeholders(len(columns))
        return f"INSERT INTO {table} ({cols}) VALUES ({ph}) ON CONFLICT DO NOTHING"

    def auto_increment(self) -> str:
        return "SERIAL PRIMARY KEY"

    def timestamp_default_now(self) -> str:
        return "DEFAULT NOW()"

    def table_options(self) -> str:
        return ""

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = %s"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Dialects are stateless
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
