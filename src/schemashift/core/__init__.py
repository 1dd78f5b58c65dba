"""schemashift core -- the infrastructure the migration engine runs on.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (SchemaShiftError, ...)
        protocols.py       DB-API Connection / Cursor protocols

    Layer 2 -- Database
        dialect.py         SQL dialect abstraction (SQLite, MySQL, PostgreSQL)
        adapters/          Connection/pool handles with scoped transactions
        connection.py      Adapter factory (create_adapter)

    Layer 3 -- Ambient
        settings.py        pydantic-settings configuration
        logging.py         structlog configuration

Tags:
    schemashift, core, package-overview
"""
