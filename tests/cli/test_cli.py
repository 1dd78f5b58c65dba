"""
Tests for the schemashift CLI.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from schemashift import __version__
from schemashift.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logs(_isolated_env, monkeypatch):
    """Keep info logs off stderr so --json output parses on any click version."""
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture()
def project(tmp_path, migrations):
    """Migrations directory plus a SQLite database URL."""
    migrations.write("2025-01-01-001-users.sql", "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);")
    migrations.write("2025-01-02-001-seed.sql", "INSERT INTO users (name) VALUES ('ada');")
    return migrations.path, f"sqlite:///{tmp_path / 'app.db'}"


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "schemashift" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"schemashift {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer returns exit code 0 or 2 for no_args_is_help
        assert result.exit_code in (0, 2)

    @pytest.mark.parametrize("command", ["up", "status", "check", "mark-applied", "split"])
    def test_commands_registered(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0

    def test_bad_log_level(self, project):
        result = runner.invoke(app, ["--log-level", "LOUD", "check", "-d", project[1]])
        assert result.exit_code != 0


class TestUp:
    def test_applies(self, project):
        migrations_dir, db = project
        result = runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db])
        assert result.exit_code == 0, result.output
        assert "Applied 2" in result.stdout

    def test_json(self, project):
        migrations_dir, db = project
        result = runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db, "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["state"] == "COMPLETED"
        assert payload["applied"] == ["2025-01-01-001-users.sql", "2025-01-02-001-seed.sql"]
        assert payload["outcomes"][0]["executed"] == 1

    def test_second_run_is_noop(self, project):
        migrations_dir, db = project
        runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db])
        result = runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db, "--json"])
        payload = json.loads(result.stdout)
        assert payload["applied"] == []
        assert len(payload["skipped"]) == 2

    def test_dry_run(self, project):
        migrations_dir, db = project
        result = runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db, "--dry-run"])
        assert result.exit_code == 0
        assert "Would apply" in result.stdout
        assert "2025-01-01-001-users.sql" in result.stdout

        status = runner.invoke(app, ["status", "--dir", str(migrations_dir), "-d", db, "--json"])
        assert json.loads(status.stdout)["applied"] == []

    def test_dry_run_json_lists_pending(self, project):
        migrations_dir, db = project
        result = runner.invoke(
            app, ["up", "--dir", str(migrations_dir), "-d", db, "--dry-run", "--json"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["dry_run"] is True
        assert payload["applied"] == []
        assert payload["pending"] == ["2025-01-01-001-users.sql", "2025-01-02-001-seed.sql"]

    def test_failure_exits_1(self, project, migrations):
        migrations_dir, db = project
        migrations.write("2025-01-03-001-broken.sql", "INSERT INTO nowhere VALUES (1);")
        result = runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db])
        assert result.exit_code == 1
        assert "2025-01-03-001-broken.sql" in result.output
        assert "no such table" in result.output

    def test_missing_directory_succeeds(self, tmp_path):
        result = runner.invoke(
            app, ["up", "--dir", str(tmp_path / "none"), "-d", f"sqlite:///{tmp_path / 'x.db'}"]
        )
        assert result.exit_code == 0
        assert "Nothing to apply" in result.stdout

    def test_settings_from_env(self, project, monkeypatch, tmp_path):
        migrations_dir, _ = project
        monkeypatch.setenv("DB_BACKEND", "sqlite")
        monkeypatch.setenv("DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("MIGRATIONS_DIR", str(migrations_dir))
        result = runner.invoke(app, ["up", "--json"])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)["applied"]) == 2

    def test_invalid_settings_exit_1(self, monkeypatch):
        monkeypatch.setenv("DB_BACKEND", "oracle")
        result = runner.invoke(app, ["up"])
        assert result.exit_code == 1
        assert "CONFIG" in result.output


class TestStatus:
    def test_applied_and_pending(self, project, migrations):
        migrations_dir, db = project
        runner.invoke(app, ["up", "--dir", str(migrations_dir), "-d", db])
        migrations.write("2025-01-03-001-more.sql", "SELECT 1;")

        result = runner.invoke(app, ["status", "--dir", str(migrations_dir), "-d", db, "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [r["name"] for r in payload["applied"]] == [
            "2025-01-01-001-users.sql",
            "2025-01-02-001-seed.sql",
        ]
        assert payload["pending"] == ["2025-01-03-001-more.sql"]

    def test_table_output(self, project):
        migrations_dir, db = project
        result = runner.invoke(app, ["status", "--dir", str(migrations_dir), "-d", db])
        assert result.exit_code == 0
        assert "0 applied, 2 pending" in result.stdout


class TestCheck:
    def test_sqlite_reachable(self, tmp_path):
        result = runner.invoke(app, ["check", "-d", f"sqlite:///{tmp_path / 'c.db'}"])
        assert result.exit_code == 0
        assert "sqlite database reachable" in result.stdout

    def test_unsupported_url(self):
        result = runner.invoke(app, ["check", "-d", "oracle://x/y"])
        assert result.exit_code == 1


class TestMarkApplied:
    def test_mark_then_skip(self, project):
        migrations_dir, db = project
        result = runner.invoke(app, ["mark-applied", "2025-01-01-001-users.sql", "-d", db])
        assert result.exit_code == 0, result.output

        status = runner.invoke(app, ["status", "--dir", str(migrations_dir), "-d", db, "--json"])
        payload = json.loads(status.stdout)
        assert [r["name"] for r in payload["applied"]] == ["2025-01-01-001-users.sql"]
        assert payload["pending"] == ["2025-01-02-001-seed.sql"]


class TestSplit:
    def test_json(self, tmp_path):
        path = tmp_path / "m.sql"
        path.write_text("-- header\nSELECT 'a;b'; /* x; */ SELECT 2;", encoding="utf-8")
        result = runner.invoke(app, ["split", str(path), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["SELECT 'a;b'", "SELECT 2"]

    def test_text(self, tmp_path):
        path = tmp_path / "m.sql"
        path.write_text("SELECT 1; SELECT 2", encoding="utf-8")
        result = runner.invoke(app, ["split", str(path)])
        assert result.exit_code == 0
        assert "SELECT 1;" in result.stdout
        assert "SELECT 2;" in result.stdout

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["split", str(tmp_path / "gone.sql")])
        assert result.exit_code == 1
