"""SQL migration runner.

Reads ``.sql`` files from the migrations directory, tracks applied
migrations in the ledger table, and applies pending ones in filename order.
The first non-tolerated failure stops the run; migrations applied before it
stay committed and recorded, and the next run picks up from the failed one.

State machine::

    NOT_STARTED ──▶ ENSURING_LEDGER ──▶ LOADING ──▶ APPLYING ──▶ COMPLETED
                          │                │           │
                          └────────────────┴───────────┴──▶ FAILED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from schemashift.core.adapters import DatabaseAdapter
from schemashift.core.connection import adapter_from_settings
from schemashift.core.errors import MigrationFailure, first_line
from schemashift.core.logging import LogContext, get_logger
from schemashift.core.settings import MigrationSettings

from .applier import ApplyOutcome, MigrationApplier
from .ledger import MigrationLedger
from .source import DirectorySource, MigrationSource, SourceProvider
from .splitter import split_statements
from .tolerance import TolerancePredicate

logger = get_logger(__name__)


class RunState(str, Enum):
    """Lifecycle of a single run."""

    NOT_STARTED = "NOT_STARTED"
    ENSURING_LEDGER = "ENSURING_LEDGER"
    LOADING = "LOADING"
    APPLYING = "APPLYING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class RunResult:
    """Result of a migration run."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)  # dry run only
    outcomes: list[ApplyOutcome] = field(default_factory=list)
    state: RunState = RunState.NOT_STARTED
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return self.state is RunState.COMPLETED

    @property
    def tolerated_count(self) -> int:
        return sum(len(o.tolerated) for o in self.outcomes)


class MigrationRunner:
    """Applies pending SQL migrations from a source.

    Parameters
    ----------
    adapter
        Database adapter for both the ledger and the migrations.
    source
        Where migrations come from; a path is wrapped in
        :class:`DirectorySource`.
    ledger
        Ledger to use. Defaults to ``MigrationLedger(adapter)``.
    applier
        Applier to use. Defaults to one built on ``adapter`` and ``ledger``.
    is_tolerable
        Error classifier for the default applier.

    Example::

        from schemashift.core.adapters import SQLiteAdapter
        from schemashift.migrations import MigrationRunner

        with SQLiteAdapter("app.db") as adapter:
            result = MigrationRunner(adapter, "migrations").run()
            print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        source: SourceProvider | Path | str,
        *,
        ledger: MigrationLedger | None = None,
        applier: MigrationApplier | None = None,
        is_tolerable: TolerancePredicate | None = None,
    ) -> None:
        self._adapter = adapter
        self._source = source if isinstance(source, SourceProvider) else DirectorySource(source)
        self._ledger = ledger or MigrationLedger(adapter)
        self._applier = applier or MigrationApplier(adapter, self._ledger, is_tolerable)
        self._state = RunState.NOT_STARTED
        self._result: RunResult | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def ledger(self) -> MigrationLedger:
        return self._ledger

    @property
    def last_result(self) -> RunResult | None:
        """Result of the latest run, including partial progress of a failed one."""
        return self._result

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, dry_run: bool = False) -> RunResult:
        """Apply every pending migration in name order.

        With ``dry_run`` the unapplied names are reported in ``pending``
        without reading, executing or recording anything; ``applied`` stays
        empty.

        Raises:
            StorageError: the ledger cannot be created or read.
            SourceReadError: a migration file cannot be read.
            MigrationFailure: a statement failed with a non-tolerated error.
        """
        result = RunResult(dry_run=dry_run)
        self._result = result
        try:
            self._transition(RunState.ENSURING_LEDGER, result)
            self._ledger.ensure_table()
            applied = set(self._ledger.applied_names())

            self._transition(RunState.LOADING, result)
            sources = self._load_sources()

            self._transition(RunState.APPLYING, result)
            for source in sources:
                if source.name in applied:
                    result.skipped.append(source.name)
                    logger.debug("migration.already_applied", migration=source.name)
                    continue
                if dry_run:
                    result.pending.append(source.name)
                    continue
                outcome = self._apply(source)
                result.applied.append(source.name)
                result.outcomes.append(outcome)
        except Exception:
            self._transition(RunState.FAILED, result)
            raise

        self._transition(RunState.COMPLETED, result)
        logger.info(
            "migrations.complete",
            applied=len(result.applied),
            skipped=len(result.skipped),
            pending=len(result.pending),
            tolerated=result.tolerated_count,
            dry_run=dry_run,
        )
        return result

    def pending(self) -> list[MigrationSource]:
        """Sources not yet recorded in the ledger, in apply order. Read-only."""
        applied = set(self._ledger.applied_names()) if self._ledger.exists() else set()
        return [s for s in self._load_sources() if s.name not in applied]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, source: MigrationSource) -> ApplyOutcome:
        with LogContext(migration=source.name):
            try:
                statements = split_statements(source.read_text())
                outcome = self._applier.apply(statements, source.name)
            except MigrationFailure:
                # already logged with its statement
                raise
            except Exception as e:
                logger.error("migration.failed", migration=source.name, error=first_line(e))
                raise
            logger.info(
                "migration.applied",
                migration=source.name,
                statements=outcome.executed,
                tolerated=len(outcome.tolerated),
            )
        return outcome

    def _load_sources(self) -> list[MigrationSource]:
        if not self._source.exists():
            logger.info("migrations.directory_missing", source=repr(self._source))
            return []
        return sorted(self._source.list_sources(), key=lambda s: s.name)

    def _transition(self, state: RunState, result: RunResult) -> None:
        logger.debug("runner.state", previous=self._state.value, state=state.value)
        self._state = state
        result.state = state


def run_migrations(
    settings: MigrationSettings | None = None,
    *,
    adapter: DatabaseAdapter | None = None,
    dry_run: bool = False,
) -> RunResult:
    """Run all pending migrations using settings from the environment.

    An adapter built here is disconnected before returning; an injected
    one is left as it was.

    Example::

        from schemashift import run_migrations

        result = run_migrations()  # DB_* / MIGRATIONS_DIR from env or .env
    """
    settings = settings or MigrationSettings()
    owned = adapter is None
    if adapter is None:
        adapter = adapter_from_settings(settings)
        adapter.connect()
    try:
        runner = MigrationRunner(
            adapter,
            DirectorySource(settings.migrations_dir),
            ledger=MigrationLedger(adapter, settings.migrations_table),
        )
        return runner.run(dry_run=dry_run)
    finally:
        if owned:
            adapter.disconnect()


__all__ = [
    "MigrationRunner",
    "RunResult",
    "RunState",
    "run_migrations",
]
