"""
Structured error types for schemashift.

Every failure the migration engine can surface is a ``SchemaShiftError``
subclass carrying a category, a retry hint, structured context and the
chained driver exception. Callers (the CLI, an application's startup hook)
can branch on the type, log ``to_dict()`` and map the outcome to an exit
code without parsing messages.

Manifesto:
    - **Typed hierarchy:** storage problems, bad migration content and bad
      source files are different failures with different remedies
    - **Context travels with the error:** migration name, statement and
      backend are attached where the error is raised
    - **Chaining:** the driver exception is kept as ``cause`` and ``__cause__``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      SchemaShiftError                         │
        │        (category, retryable, context, cause)                  │
        ├──────────────────────────────────────────────────────────────┤
        │  StorageError          MigrationFailure    SourceReadError   │
        │  (STORAGE)             (MIGRATION)         (SOURCE)          │
        │       │                                                      │
        │  DatabaseConnectionError                                     │
        │  (DATABASE, retryable)                                       │
        │                                                              │
        │  TolerableSchemaConflict    ConfigError                      │
        │  (VALIDATION, recovered)    (CONFIG)                         │
        │                                  │                           │
        │                        MissingConfigError                    │
        │                        InvalidConfigError                    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = MigrationFailure("2025-01-01-001-init.sql", "ALTER TABLE x", cause=ValueError("boom"))
    >>> err.context.migration
    '2025-01-01-001-init.sql'
    >>> err.to_dict()["category"]
    'MIGRATION'

Tags:
    error-handling, exception-hierarchy, migrations, schemashift

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories map onto the remedies an operator has:
    - **Infrastructure:** DATABASE, STORAGE (fix connectivity or permissions)
    - **Content:** MIGRATION, VALIDATION (fix the SQL or mark applied)
    - **Input:** SOURCE (fix the file), CONFIG (fix settings)
    """

    DATABASE = "DATABASE"         # Connection, pool acquisition
    STORAGE = "STORAGE"           # Ledger table, permissions
    MIGRATION = "MIGRATION"       # Statement execution failed
    VALIDATION = "VALIDATION"     # Schema already in requested state
    SOURCE = "SOURCE"             # Migration file unreadable
    CONFIG = "CONFIG"             # Missing or invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only non-``None`` fields are emitted by ``to_dict()``; anything that has no
    dedicated field goes into ``metadata``.

    Attributes:
        migration: Name of the migration source being processed
        statement: The SQL statement that failed
        source_path: Filesystem path of the migration source
        backend: Database backend name (``sqlite``, ``mysql``, ...)
        metadata: Additional key-value pairs
    """

    migration: str | None = None
    statement: str | None = None
    source_path: str | None = None
    backend: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration", "statement", "source_path", "backend"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SchemaShiftError(Exception):
    """
    Base exception for all schemashift errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that the
    common case needs nothing but a message.

    Examples:
        >>> error = SchemaShiftError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(migration="001.sql").context.migration
        '001.sql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SchemaShiftError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("Ledger unreachable").with_context(backend="mysql")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(SchemaShiftError):
    """
    The ledger or target database cannot be reached, or a ledger-table
    operation failed for reasons unrelated to migration content.

    Always fatal: a run aborts before any migration is attempted.
    """

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class DatabaseConnectionError(StorageError):
    """Database connection or pool acquisition error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# =============================================================================
# MIGRATION CONTENT ERRORS
# =============================================================================


class TolerableSchemaConflict(SchemaShiftError):
    """
    A statement failed because the requested change already took effect.

    Duplicate column/table/key, or removal of an already-absent field or key.
    The applier records these on its outcome and keeps going; they are never
    raised out of it.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(self, name: str, statement: str, *, cause: BaseException | None = None):
        self.name = name
        self.statement = statement
        detail = first_line(cause) if cause is not None else "already applied"
        super().__init__(
            f"Skipped statement in {name}: {detail}",
            context=ErrorContext(migration=name, statement=statement),
            cause=cause,
        )


class MigrationFailure(SchemaShiftError):
    """
    A statement failed with a non-tolerated error.

    The enclosing transaction has been rolled back, the migration is not
    recorded, and the run stops.
    """

    default_category = ErrorCategory.MIGRATION
    default_retryable = False

    def __init__(self, name: str, statement: str, *, cause: BaseException | None = None):
        self.name = name
        self.statement = statement
        detail = first_line(cause) if cause is not None else "statement failed"
        super().__init__(
            f"Migration {name} failed: {detail}",
            context=ErrorContext(migration=name, statement=statement),
            cause=cause,
        )


class SourceReadError(SchemaShiftError):
    """Migration file cannot be read or decoded as text."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False

    def __init__(
        self,
        name: str,
        *,
        path: str | None = None,
        cause: BaseException | None = None,
    ):
        self.name = name
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Cannot read migration {name}{detail}",
            context=ErrorContext(migration=name, source_path=path),
            cause=cause,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SchemaShiftError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def first_line(error: BaseException) -> str:
    """First line of an error's message, for one-line log entries."""
    text = str(error).strip()
    return text.splitlines()[0] if text else error.__class__.__name__


__all__ = [
    # Category enum
    "ErrorCategory",
    # Context
    "ErrorContext",
    # Base
    "SchemaShiftError",
    # Storage
    "StorageError",
    "DatabaseConnectionError",
    # Migration content
    "TolerableSchemaConflict",
    "MigrationFailure",
    "SourceReadError",
    # Config
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    # Utilities
    "first_line",
]
