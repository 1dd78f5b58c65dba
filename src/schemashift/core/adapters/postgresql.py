"""PostgreSQL database adapter."""

from __future__ import annotations

from typing import Any

from schemashift.core.errors import ConfigError, DatabaseConnectionError
from schemashift.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Uses a psycopg2 ``ThreadedConnectionPool``. psycopg2 opens a transaction
    on the first statement, and DDL is transactional, so a rolled-back
    migration leaves no trace.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 10,
        ssl: bool = False,
        connect_timeout: int = 20,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            ssl=ssl,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._pool: Any = None

    def connect(self) -> None:
        """Create the PostgreSQL connection pool."""
        try:
            import psycopg2
            import psycopg2.pool
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. "
                "Install with: pip install schemashift[postgresql]"
            ) from None

        try:
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=self._config.pool_size,
                host=self._config.host,
                port=self._config.port,
                dbname=self._config.database,
                user=self._config.username,
                password=self._config.password,
                sslmode="require" if self._config.ssl else "prefer",
                connect_timeout=self._config.connect_timeout,
            )
            self._connected = True
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ).with_context(backend="postgresql") from e

    def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._connected = False

    def get_connection(self) -> Connection:
        """Get connection from pool."""
        if not self._pool:
            self.connect()
        try:
            return self._pool.getconn()
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to acquire PostgreSQL connection: {e}",
                cause=e,
            ).with_context(backend="postgresql") from e

    def release(self, conn: Connection) -> None:
        """Return connection to pool (the pool rolls back unfinished work)."""
        if self._pool:
            self._pool.putconn(conn)


__all__ = [
    "PostgreSQLAdapter",
]
