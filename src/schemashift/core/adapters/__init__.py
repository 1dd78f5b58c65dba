"""Database adapters -- the storage handle the migration engine is given.

Manifesto:
    The engine needs three things from a database: acquire a connection,
    run statements inside a transaction, give the connection back.  Each
    adapter provides exactly that for one backend, so the ledger, applier
    and runner never import a driver.

    Server drivers are **import-guarded**: they are only required at
    ``connect()`` time.  Install the corresponding extra::

        pip install schemashift[mysql]        # mysql-connector-python
        pip install schemashift[postgresql]   # psycopg2-binary

Architecture::

    DatabaseAdapter (base.py)        connection() / transaction() / ping()
        |-- SQLiteAdapter            stdlib sqlite3 (always available)
        |-- MySQLAdapter             mysql.connector pool (optional)
        |-- PostgreSQLAdapter        psycopg2 pool (optional)

    AdapterRegistry (registry.py)    name -> adapter class
    DatabaseConfig (types.py)        connection parameters
    DatabaseType (types.py)          enum of supported backends

Tags:
    schemashift, database, adapters, multi-backend, import-guarded
"""

from schemashift.core.dialect import Dialect, get_dialect
from schemashift.core.protocols import Connection

from .base import DatabaseAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_registry, get_adapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Dialect",
    "get_dialect",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "SQLiteAdapter",
    "MySQLAdapter",
    "PostgreSQLAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
]
