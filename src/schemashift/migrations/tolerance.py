"""Which statement errors mean "this change is already in place".

A migration file re-run against a database that already received part of
it fails on its first ``ALTER TABLE ... ADD COLUMN``. Those errors are
tolerated one statement at a time so the rest of the file (typically data
backfills) still runs. What counts as "already in place" is engine
vocabulary, so each backend registers an ``is_tolerable(error) -> bool``
predicate and the applier only ever sees the predicate.

==============  ==============================================================
Backend         Tolerated
==============  ==============================================================
``mysql``       1060 ER_DUP_FIELDNAME, 1050 ER_TABLE_EXISTS_ERROR,
                1061 ER_DUP_KEYNAME, 1091 ER_CANT_DROP_FIELD_OR_KEY
``postgresql``  SQLSTATE 42701 duplicate_column, 42P07 duplicate_table,
                42710 duplicate_object, 42P06 duplicate_schema;
                42703 / 42704 only in their DROP form: ``column "x" of
                relation "t" does not exist``, ``index "x" does not exist``,
                ``constraint "x" of relation "t" does not exist``
``sqlite``      "duplicate column name", "... already exists",
                "no such index", ``no such column: "x"`` (DROP COLUMN)
==============  ==============================================================
"""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Callable

from schemashift.core.errors import ConfigError

TolerancePredicate = Callable[[BaseException], bool]

MYSQL_TOLERATED_ERRNOS = frozenset({
    1050,  # ER_TABLE_EXISTS_ERROR
    1060,  # ER_DUP_FIELDNAME
    1061,  # ER_DUP_KEYNAME
    1091,  # ER_CANT_DROP_FIELD_OR_KEY
})

POSTGRESQL_TOLERATED_SQLSTATES = frozenset({
    "42701",  # duplicate_column
    "42P07",  # duplicate_table (tables, indexes, sequences, views)
    "42710",  # duplicate_object (constraints, types)
    "42P06",  # duplicate_schema
})

POSTGRESQL_MISSING_OBJECT_SQLSTATES = frozenset({
    "42703",  # undefined_column
    "42704",  # undefined_object
})

# Plain lookups (column "x" does not exist) share the codes; only the
# messages ALTER TABLE ... DROP and DROP INDEX produce are tolerated.
_POSTGRESQL_DROP_MESSAGES = re.compile(
    r'\b(?:column|constraint) "[^"]+" of relation "[^"]+" does not exist'
    r'|\bindex "[^"]+" does not exist'
)

# DROP COLUMN quotes the name; the query resolver does not.
_SQLITE_PREFIXES = ("duplicate column name", "no such index", 'no such column: "')


def _mysql_errno(error: BaseException) -> int | None:
    errno = getattr(error, "errno", None)
    if isinstance(errno, int):
        return errno
    # PyMySQL: args == (code, message)
    if error.args and isinstance(error.args[0], int):
        return error.args[0]
    return None


def mysql_is_tolerable(error: BaseException) -> bool:
    return _mysql_errno(error) in MYSQL_TOLERATED_ERRNOS


def postgresql_is_tolerable(error: BaseException) -> bool:
    pgcode = getattr(error, "pgcode", None)
    if pgcode in POSTGRESQL_TOLERATED_SQLSTATES:
        return True
    if pgcode in POSTGRESQL_MISSING_OBJECT_SQLSTATES:
        return _POSTGRESQL_DROP_MESSAGES.search(str(error)) is not None
    return False


def sqlite_is_tolerable(error: BaseException) -> bool:
    if not isinstance(error, sqlite3.OperationalError):
        return False
    message = str(error).lower()
    return message.startswith(_SQLITE_PREFIXES) or "already exists" in message


def never_tolerable(error: BaseException) -> bool:  # noqa: ARG001
    """Strict mode: every statement error is fatal."""
    return False


_PREDICATES: dict[str, TolerancePredicate] = {
    "mysql": mysql_is_tolerable,
    "mariadb": mysql_is_tolerable,
    "postgresql": postgresql_is_tolerable,
    "postgres": postgresql_is_tolerable,
    "sqlite": sqlite_is_tolerable,
}


def get_tolerance_predicate(name: str) -> TolerancePredicate:
    """Predicate registered for a backend/dialect name.

    Raises:
        ConfigError: no predicate is registered under ``name``.
    """
    try:
        return _PREDICATES[name.lower()]
    except KeyError:
        raise ConfigError(f"No tolerance policy registered for backend: {name}") from None


def register_tolerance(name: str, predicate: TolerancePredicate) -> None:
    """Register (or replace) the predicate for a backend."""
    _PREDICATES[name.lower()] = predicate


__all__ = [
    "MYSQL_TOLERATED_ERRNOS",
    "POSTGRESQL_MISSING_OBJECT_SQLSTATES",
    "POSTGRESQL_TOLERATED_SQLSTATES",
    "TolerancePredicate",
    "get_tolerance_predicate",
    "mysql_is_tolerable",
    "never_tolerable",
    "postgresql_is_tolerable",
    "register_tolerance",
    "sqlite_is_tolerable",
]
