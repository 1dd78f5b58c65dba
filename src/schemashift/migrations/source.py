"""Migration sources: named SQL change-sets discovered on disk."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from schemashift.core.errors import SourceReadError


@dataclass(frozen=True, order=True)
class MigrationSource:
    """One versioned SQL change-set.

    ``name`` is the file name, e.g. ``2025-11-17-010-add-level-support.sql``;
    its lexicographic order is the apply order.
    """

    name: str
    path: Path

    def read_text(self) -> str:
        """Read the SQL body as UTF-8 text.

        Raises:
            SourceReadError: the file is missing, unreadable or not UTF-8.
        """
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(self.name, path=str(self.path), cause=e) from e


@runtime_checkable
class SourceProvider(Protocol):
    """Anything that can list migration sources."""

    def exists(self) -> bool:
        ...

    def list_sources(self) -> list[MigrationSource]:
        ...


class DirectorySource:
    """Lists ``*.sql`` migration files in a directory.

    Parameters
    ----------
    directory
        Directory containing migration files.
    suffixes
        Recognised file extensions (case-insensitive).
    """

    def __init__(self, directory: Path | str, suffixes: Iterable[str] = (".sql",)) -> None:
        self._directory = Path(directory)
        self._suffixes = tuple(s.lower() for s in suffixes)

    @property
    def directory(self) -> Path:
        return self._directory

    def exists(self) -> bool:
        return self._directory.is_dir()

    def list_sources(self) -> list[MigrationSource]:
        """Return sources sorted by name; a missing directory yields ``[]``."""
        if not self.exists():
            return []
        try:
            entries = list(self._directory.iterdir())
        except OSError as e:
            raise SourceReadError(
                self._directory.name, path=str(self._directory), cause=e
            ) from e
        return sorted(
            MigrationSource(name=p.name, path=p)
            for p in entries
            if p.is_file() and p.suffix.lower() in self._suffixes
        )

    def __repr__(self) -> str:
        return f"DirectorySource({str(self._directory)!r})"


__all__ = [
    "DirectorySource",
    "MigrationSource",
    "SourceProvider",
]
