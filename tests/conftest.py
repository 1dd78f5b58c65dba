"""
Shared pytest fixtures for schemashift tests.

This module provides:
- structlog / context cleanup between tests
- In-memory and file-backed SQLite adapters
- A temporary migrations directory with a ``write`` helper
- ``FakeAdapter`` test doubles whose cursors fail on chosen statements,
  for exercising tolerated and fatal errors without a server
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from schemashift.core.adapters import DatabaseAdapter, DatabaseConfig, DatabaseType, SQLiteAdapter
from schemashift.core.dialect import get_dialect


# =============================================================================
# Test doubles
# =============================================================================


class FakeCursor:
    def __init__(self, conn: FakeConnection):
        self._conn = conn
        self.description = None
        self.closed = False

    def execute(self, sql: str, params: Any = ()) -> None:
        self._conn.executed.append(sql)
        for fragment, error in self._conn.failures.items():
            if fragment in sql:
                raise error
        if params:
            self._conn.params.append(tuple(params))

    def fetchall(self) -> list:
        return []

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Records statements; raises ``failures[fragment]`` when a statement contains it."""

    def __init__(self, failures: dict[str, BaseException] | None = None):
        self.failures = failures or {}
        self.executed: list[str] = []
        self.params: list[tuple] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class FakeAdapter(DatabaseAdapter):
    """Adapter handing out one ``FakeConnection``; dialect is selectable."""

    def __init__(self, dialect: str = "sqlite", failures: dict[str, BaseException] | None = None):
        super().__init__(DatabaseConfig(db_type=DatabaseType.SQLITE))
        self._dialect = get_dialect(dialect)
        self.conn = FakeConnection(failures)
        self.acquired = 0
        self.released = 0
        self.begun = 0

    def connect(self) -> None:
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    def get_connection(self) -> FakeConnection:
        self.acquired += 1
        return self.conn

    def release(self, conn) -> None:
        self.released += 1

    def begin(self, conn) -> None:
        self.begun += 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo ``configure_logging`` and clear bound context after each test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep a developer's DB_* variables and .env out of the tests."""
    for key in (
        "DB_BACKEND", "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME",
        "DB_SSL", "DB_PATH", "DB_POOL_SIZE", "DB_CONNECT_TIMEOUT",
        "MIGRATIONS_DIR", "MIGRATIONS_TABLE", "LOG_LEVEL", "JSON_LOGS",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def sqlite_adapter() -> Iterator[SQLiteAdapter]:
    """Connected in-memory SQLite adapter."""
    adapter = SQLiteAdapter(":memory:")
    adapter.connect()
    yield adapter
    adapter.disconnect()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "app.db"


@pytest.fixture()
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture()
def make_fake_adapter():
    """Factory: ``make_fake_adapter("postgresql", {"ADD COLUMN": error})``."""
    return FakeAdapter


class MigrationsDir:
    """Temporary migrations directory."""

    def __init__(self, path: Path):
        self.path = path

    def write(self, name: str, sql: str) -> Path:
        target = self.path / name
        target.write_text(sql, encoding="utf-8")
        return target


@pytest.fixture()
def migrations(tmp_path: Path) -> MigrationsDir:
    d = tmp_path / "migrations"
    d.mkdir()
    return MigrationsDir(d)
