"""MySQL database adapter.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package.
MySQL uses **format** (``%s``) placeholder style.

Install the driver::

    pip install schemashift[mysql]

The driver is imported at ``connect()`` time: if ``mysql.connector`` is not
installed a :class:`~schemashift.core.errors.ConfigError` is raised then.

.. note::
    MySQL commits DDL implicitly. A fatal error after an ``ALTER TABLE`` in
    the same file rolls back the DML around it but not the ``ALTER`` itself;
    the tolerated-error policy is what makes re-running such a file safe.
"""

from __future__ import annotations

from typing import Any

from schemashift.core.errors import ConfigError, DatabaseConnectionError
from schemashift.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class MySQLAdapter(DatabaseAdapter):
    """MySQL / MariaDB database adapter.

    Uses a ``mysql.connector`` connection pool with autocommit off, so each
    acquired connection opens a transaction on its first statement.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        pool_size: int = 10,
        ssl: bool = False,
        connect_timeout: int = 20,
        charset: str = "utf8mb4",
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.MYSQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            pool_size=pool_size,
            ssl=ssl,
            connect_timeout=connect_timeout,
            options={**(kwargs or {}), "charset": charset},
        )
        super().__init__(config)
        self._pool: Any = None

    def connect(self) -> None:
        """Create the MySQL connection pool."""
        try:
            from mysql.connector import pooling
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install schemashift[mysql]"
            ) from None

        options: dict[str, Any] = {
            "host": self._config.host,
            "port": self._config.port,
            "database": self._config.database,
            "user": self._config.username,
            "password": self._config.password,
            "charset": self._config.options.get("charset", "utf8mb4"),
            "connection_timeout": self._config.connect_timeout,
            "autocommit": False,
        }
        if self._config.ssl:
            options["ssl_disabled"] = False
            options["ssl_verify_cert"] = False
        else:
            options["ssl_disabled"] = True

        try:
            self._pool = pooling.MySQLConnectionPool(
                pool_name="schemashift_pool",
                pool_size=self._config.pool_size,
                **options,
            )
            self._connected = True
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                cause=e,
            ).with_context(backend="mysql") from e

    def disconnect(self) -> None:
        """Drop the pool; pooled connections close as they are released."""
        self._pool = None
        self._connected = False

    def get_connection(self) -> Connection:
        """Get connection from pool."""
        if not self._pool:
            self.connect()
        try:
            return self._pool.get_connection()
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to acquire MySQL connection: {e}",
                cause=e,
            ).with_context(backend="mysql") from e

    def release(self, conn: Connection) -> None:
        """Return connection to pool (``close()`` on a pooled connection)."""
        conn.close()


__all__ = [
    "MySQLAdapter",
]
