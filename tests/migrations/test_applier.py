"""Tests for ``schemashift.migrations.applier`` - one migration, one transaction."""

from __future__ import annotations

import sqlite3

import pytest
from structlog.testing import capture_logs

from schemashift.core.errors import MigrationFailure, StorageError, TolerableSchemaConflict
from schemashift.migrations.applier import ApplyOutcome, MigrationApplier
from schemashift.migrations.ledger import MigrationLedger


class _PgError(Exception):
    def __init__(self, pgcode: str, msg: str):
        super().__init__(msg)
        self.pgcode = pgcode


def _applier(adapter, **kwargs) -> MigrationApplier:
    return MigrationApplier(adapter, MigrationLedger(adapter), **kwargs)


class TestSuccessfulApply:
    def test_executes_in_order_then_marks_and_commits(self, fake_adapter):
        outcome = _applier(fake_adapter).apply(["CREATE TABLE a (id INT)", "INSERT INTO a VALUES (1)"], "001.sql")

        assert fake_adapter.conn.executed == [
            "CREATE TABLE a (id INT)",
            "INSERT INTO a VALUES (1)",
            "INSERT OR IGNORE INTO _migrations (name) VALUES (?)",
        ]
        assert fake_adapter.conn.params == [("001.sql",)]
        assert fake_adapter.conn.commits == 1
        assert fake_adapter.conn.rollbacks == 0
        assert outcome == ApplyOutcome(name="001.sql", executed=2, tolerated=[])
        assert outcome.fully_applied is True

    def test_connection_released(self, fake_adapter):
        _applier(fake_adapter).apply(["SELECT 1"], "001.sql")
        assert fake_adapter.acquired == fake_adapter.released == 1
        assert fake_adapter.begun == 1

    def test_empty_migration_is_still_recorded(self, fake_adapter):
        outcome = _applier(fake_adapter).apply([], "000-empty.sql")
        assert outcome.executed == 0
        assert fake_adapter.conn.params == [("000-empty.sql",)]

    def test_real_sqlite(self, sqlite_adapter):
        ledger = MigrationLedger(sqlite_adapter)
        ledger.ensure_table()
        MigrationApplier(sqlite_adapter, ledger).apply(
            ["CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)", "INSERT INTO users (name) VALUES ('ada')"],
            "001.sql",
        )
        conn = sqlite_adapter.get_connection()
        assert conn.execute("SELECT name FROM users").fetchall() == [("ada",)]
        assert ledger.applied_names() == ["001.sql"]


class TestToleratedErrors:
    def test_continues_and_marks_applied(self, make_fake_adapter):
        adapter = make_fake_adapter(
            "sqlite", {"ADD COLUMN level": sqlite3.OperationalError("duplicate column name: level")}
        )
        with capture_logs() as logs:
            outcome = _applier(adapter).apply(
                ["ALTER TABLE s ADD COLUMN level TEXT", "UPDATE s SET level = 'x'"],
                "010-level.sql",
            )

        assert outcome.executed == 1
        assert len(outcome.tolerated) == 1
        conflict = outcome.tolerated[0]
        assert isinstance(conflict, TolerableSchemaConflict)
        assert conflict.statement == "ALTER TABLE s ADD COLUMN level TEXT"
        assert "duplicate column name" in conflict.message
        assert adapter.conn.executed[1] == "UPDATE s SET level = 'x'"
        assert adapter.conn.params == [("010-level.sql",)]
        assert adapter.conn.commits == 1

        [warning] = [e for e in logs if e["event"] == "migration.statement_skipped"]
        assert warning["log_level"] == "warning"
        assert warning["migration"] == "010-level.sql"
        assert warning["error"] == "duplicate column name: level"

    def test_savepoint_per_statement_on_postgresql(self, make_fake_adapter):
        adapter = make_fake_adapter(
            "postgresql", {"ADD COLUMN": _PgError("42701", 'column "level" already exists')}
        )
        outcome = _applier(adapter).apply(
            ["ALTER TABLE s ADD COLUMN level TEXT", "UPDATE s SET level = 'x'"], "010.sql"
        )
        assert adapter.conn.executed == [
            "SAVEPOINT schemashift_stmt",
            "ALTER TABLE s ADD COLUMN level TEXT",
            "ROLLBACK TO SAVEPOINT schemashift_stmt",
            "SAVEPOINT schemashift_stmt",
            "UPDATE s SET level = 'x'",
            "RELEASE SAVEPOINT schemashift_stmt",
            "INSERT INTO _migrations (name) VALUES (%s) ON CONFLICT DO NOTHING",
        ]
        assert len(outcome.tolerated) == 1

    def test_mysql_errno(self, make_fake_adapter):
        class _MySQLError(Exception):
            errno = 1061

        adapter = make_fake_adapter("mysql", {"CREATE INDEX": _MySQLError("Duplicate key name 'idx'")})
        outcome = _applier(adapter).apply(["CREATE INDEX idx ON t (c)"], "011.sql")
        assert outcome.executed == 0
        assert outcome.fully_applied is False

    def test_custom_predicate(self, make_fake_adapter):
        adapter = make_fake_adapter("sqlite", {"DROP": RuntimeError("whatever")})
        outcome = _applier(adapter, is_tolerable=lambda e: isinstance(e, RuntimeError)).apply(
            ["DROP TABLE t"], "012.sql"
        )
        assert len(outcome.tolerated) == 1

    def test_real_sqlite_rerun_of_partial_migration(self, sqlite_adapter):
        ledger = MigrationLedger(sqlite_adapter)
        ledger.ensure_table()
        conn = sqlite_adapter.get_connection()
        conn.execute("CREATE TABLE s (id INTEGER PRIMARY KEY, level TEXT)")
        conn.execute("INSERT INTO s (id) VALUES (1)")

        outcome = MigrationApplier(sqlite_adapter, ledger).apply(
            ["ALTER TABLE s ADD COLUMN level TEXT", "UPDATE s SET level = 'primary'"],
            "010.sql",
        )

        assert len(outcome.tolerated) == 1
        assert conn.execute("SELECT level FROM s").fetchall() == [("primary",)]
        assert ledger.applied_names() == ["010.sql"]


class TestFatalErrors:
    def test_rolls_back_and_raises(self, make_fake_adapter):
        cause = sqlite3.OperationalError('near "ALTR": syntax error')
        adapter = make_fake_adapter("sqlite", {"ALTR": cause})

        with capture_logs() as logs, pytest.raises(MigrationFailure) as exc_info:
            _applier(adapter).apply(["CREATE TABLE a (id INT)", "ALTR TABLE a", "SELECT 1"], "002.sql")

        err = exc_info.value
        assert err.name == "002.sql"
        assert err.statement == "ALTR TABLE a"
        assert err.cause is cause
        assert err.context.migration == "002.sql"
        assert adapter.conn.rollbacks == 1
        assert adapter.conn.commits == 0
        assert "SELECT 1" not in adapter.conn.executed
        assert adapter.conn.params == []
        assert adapter.released == 1
        assert any(e["event"] == "migration.failed" and e["statement"] == "ALTR TABLE a" for e in logs)

    def test_strict_predicate_makes_conflicts_fatal(self, make_fake_adapter):
        from schemashift.migrations.tolerance import never_tolerable

        adapter = make_fake_adapter(
            "sqlite", {"ADD COLUMN": sqlite3.OperationalError("duplicate column name: x")}
        )
        with pytest.raises(MigrationFailure):
            _applier(adapter, is_tolerable=never_tolerable).apply(["ALTER TABLE t ADD COLUMN x"], "003.sql")

    def test_real_sqlite_rollback(self, sqlite_adapter):
        ledger = MigrationLedger(sqlite_adapter)
        ledger.ensure_table()
        with pytest.raises(MigrationFailure):
            MigrationApplier(sqlite_adapter, ledger).apply(
                ["CREATE TABLE t (id INTEGER)", "INSERT INTO missing VALUES (1)"], "004.sql"
            )
        conn = sqlite_adapter.get_connection()
        tables = conn.execute("SELECT name FROM sqlite_master WHERE name = 't'").fetchall()
        assert tables == []
        assert ledger.applied_names() == []


class TestStorageFailures:
    def test_commit_failure_becomes_storage_error(self, fake_adapter):
        def _fail():
            raise RuntimeError("lost connection")

        fake_adapter.conn.commit = _fail
        with pytest.raises(StorageError, match="lost connection") as exc_info:
            _applier(fake_adapter).apply(["SELECT 1"], "005.sql")
        assert exc_info.value.context.migration == "005.sql"
        assert fake_adapter.conn.rollbacks == 1
