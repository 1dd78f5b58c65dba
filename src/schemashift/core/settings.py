"""Settings for schemashift.

Connection parameters and the migrations location come from environment
variables or a ``.env`` file in the working directory, using the same names
the host application already uses for its database (``DB_HOST``,
``DB_USER``, ``DB_PASSWORD``, ``DB_NAME``, ``DB_PORT``, ``DB_SSL``).

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** a bad port or unknown backend fails at startup
    - **Environment-driven:** env vars and ``.env`` via pydantic-settings
    - **Extra ignore:** unrelated env vars (JWT secrets, SMTP, ...) are ignored
    - **Sensible defaults:** a local MySQL with a ``migrations/`` directory

Examples:
    >>> from schemashift.core.settings import MigrationSettings
    >>> settings = MigrationSettings(db_backend="sqlite", db_path="dev.db")
    >>> settings.db_backend
    'sqlite'

Tags:
    settings, configuration, pydantic, environment, schemashift
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKENDS = {"sqlite", "mysql", "mariadb", "postgresql", "postgres"}


class MigrationSettings(BaseSettings):
    """Settings for a migration run.

    Fields
    ──────
    db_backend        : ``mysql`` (default), ``postgresql`` or ``sqlite``
    db_host .. db_ssl : server connection parameters
    db_path           : SQLite database file
    migrations_dir    : directory holding ``*.sql`` migration files
    migrations_table  : ledger table name
    log_level         : structlog log level
    json_logs         : force JSON (True) / console (False) logs; None = auto
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    db_backend: str = "mysql"
    db_host: str = "localhost"
    db_port: int | None = Field(default=None, gt=0, lt=65536)  # None: backend default
    db_user: str = "root"
    db_password: str = ""
    db_name: str = ""
    db_ssl: bool = False
    db_path: str = "schemashift.db"
    db_pool_size: int = Field(default=10, ge=1, le=32)
    db_connect_timeout: int = Field(default=20, ge=1)

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Field(
        default=Path("migrations"),
        description="Directory containing migration .sql files",
    )
    migrations_table: str = "_migrations"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("db_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in _BACKENDS:
            raise ValueError(f"unknown backend {value!r}, expected one of {sorted(_BACKENDS)}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value
