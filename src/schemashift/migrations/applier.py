"""Apply one migration's statements inside a single transaction.

Each statement is executed in order. A failing statement is classified by
an ``is_tolerable(error)`` predicate:

* tolerated: the change is already in place; log a warning, keep the
  error on the outcome and move on in the same transaction;
* fatal: roll back, raise :class:`MigrationFailure`; later statements do
  not run and the migration is not recorded.

When every statement has been processed the ledger row is written on the
same connection and the transaction commits, so "schema changed" and
"migration recorded" land together (except on MySQL, where DDL commits
implicitly).

On dialects where one failed statement aborts the whole transaction
(PostgreSQL) every statement runs inside a savepoint, and a tolerated
failure rolls back to it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from schemashift.core.adapters import DatabaseAdapter
from schemashift.core.errors import (
    MigrationFailure,
    SchemaShiftError,
    StorageError,
    TolerableSchemaConflict,
    first_line,
)
from schemashift.core.logging import get_logger
from schemashift.core.protocols import Cursor

from .ledger import MigrationLedger
from .tolerance import TolerancePredicate, get_tolerance_predicate

logger = get_logger(__name__)

_SAVEPOINT = "schemashift_stmt"


@dataclass
class ApplyOutcome:
    """Result of applying one migration."""

    name: str
    executed: int = 0
    tolerated: list[TolerableSchemaConflict] = field(default_factory=list)

    @property
    def fully_applied(self) -> bool:
        return not self.tolerated


class MigrationApplier:
    """Executes a migration's statements with per-statement tolerance.

    Parameters
    ----------
    adapter
        Database adapter providing the connection and transaction.
    ledger
        Ledger the migration is recorded in on success.
    is_tolerable
        Error classifier. Defaults to the predicate registered for the
        adapter's dialect.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        ledger: MigrationLedger,
        is_tolerable: TolerancePredicate | None = None,
    ) -> None:
        self._adapter = adapter
        self._ledger = ledger
        self._is_tolerable = is_tolerable or get_tolerance_predicate(adapter.dialect.name)
        self._savepoints = adapter.dialect.statement_savepoints

    def apply(self, statements: Sequence[str], name: str) -> ApplyOutcome:
        """Apply ``statements`` as migration ``name`` and record it.

        Raises:
            MigrationFailure: a statement failed with a non-tolerated error;
                the transaction was rolled back.
            StorageError: acquiring, beginning or committing failed.
        """
        outcome = ApplyOutcome(name=name)
        try:
            with self._adapter.transaction() as conn:
                cursor = conn.cursor()
                try:
                    for statement in statements:
                        self._execute(cursor, statement, outcome)
                finally:
                    cursor.close()
                self._ledger.mark_applied(name, conn=conn)
        except SchemaShiftError:
            raise
        except Exception as e:
            raise StorageError(
                f"Transaction for {name} failed: {first_line(e)}",
                cause=e,
            ).with_context(migration=name, backend=self._adapter.dialect.name) from e
        return outcome

    def _execute(self, cursor: Cursor, statement: str, outcome: ApplyOutcome) -> None:
        if self._savepoints:
            cursor.execute(f"SAVEPOINT {_SAVEPOINT}")
        try:
            cursor.execute(statement)
            # Drain result sets; mysql.connector refuses the next execute otherwise.
            if getattr(cursor, "description", None) is not None:
                cursor.fetchall()
        except Exception as e:
            if not self._is_tolerable(e):
                logger.error(
                    "migration.failed",
                    migration=outcome.name,
                    statement=statement,
                    error=first_line(e),
                )
                raise MigrationFailure(outcome.name, statement, cause=e) from e
            if self._savepoints:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
            outcome.tolerated.append(TolerableSchemaConflict(outcome.name, statement, cause=e))
            logger.warning(
                "migration.statement_skipped",
                migration=outcome.name,
                statement=statement,
                error=first_line(e),
            )
            return
        if self._savepoints:
            cursor.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")
        outcome.executed += 1


__all__ = [
    "ApplyOutcome",
    "MigrationApplier",
]
