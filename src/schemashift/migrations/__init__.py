"""Migration engine: split, apply and record versioned SQL change-sets.

Leaf-first::

    splitter   raw SQL text -> statements
    ledger     the ``_migrations`` tracking table
    tolerance  which statement errors mean "already in place"
    applier    one migration, one transaction
    runner     discovery, ordering, skip-applied, halt on failure
"""

from .applier import ApplyOutcome, MigrationApplier
from .ledger import MigrationLedger, MigrationRecord
from .runner import MigrationRunner, RunResult, RunState, run_migrations
from .source import DirectorySource, MigrationSource, SourceProvider
from .splitter import split_statements
from .tolerance import (
    get_tolerance_predicate,
    mysql_is_tolerable,
    never_tolerable,
    postgresql_is_tolerable,
    register_tolerance,
    sqlite_is_tolerable,
)

__all__ = [
    "ApplyOutcome",
    "DirectorySource",
    "MigrationApplier",
    "MigrationLedger",
    "MigrationRecord",
    "MigrationRunner",
    "MigrationSource",
    "RunResult",
    "RunState",
    "SourceProvider",
    "get_tolerance_predicate",
    "mysql_is_tolerable",
    "never_tolerable",
    "postgresql_is_tolerable",
    "register_tolerance",
    "run_migrations",
    "split_statements",
    "sqlite_is_tolerable",
]
