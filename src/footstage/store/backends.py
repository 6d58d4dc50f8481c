"""
Storage backends for the referential store.

The store keeps its rows and key indexes in memory. A backend decides
whether those rows also live somewhere durable:

- ``MemoryBackend``: nothing is written, contents vanish with the process.
- ``SQLiteBackend``: every change is mirrored into a SQLite file and
  committed on ``commit()``. Opening an existing file hydrates the store.
"""

import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from footstage.errors import IOFailure
from footstage.schemas.relations import LOAD_ORDER, Relation, RelationDef, Row, get_relation
from footstage.utils.logging import get_logger

log = get_logger(__name__)

# Keys and references are declared for documentation and external readers.
# FK enforcement stays off: deletes are administrative, inserts are checked
# by the store itself.
SQLITE_DDL: dict[Relation, str] = {
    Relation.RESULT: """
        CREATE TABLE IF NOT EXISTS results (
            date TEXT NOT NULL,
            home_team TEXT NOT NULL,
            away_team TEXT NOT NULL,
            home_goals INTEGER NOT NULL,
            away_goals INTEGER NOT NULL,
            tournament TEXT NOT NULL,
            city TEXT NOT NULL,
            country TEXT NOT NULL,
            neutral INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (date, home_team, away_team)
        )
    """,
    Relation.GOALSCORER: """
        CREATE TABLE IF NOT EXISTS goalscorers (
            date TEXT NOT NULL,
            home_team TEXT NOT NULL,
            away_team TEXT NOT NULL,
            scorer TEXT NOT NULL,
            minute INTEGER,
            own_goal INTEGER NOT NULL DEFAULT 0,
            penalty INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (date, home_team, away_team)
                REFERENCES results (date, home_team, away_team)
        )
    """,
    Relation.SHOOTOUT: """
        CREATE TABLE IF NOT EXISTS shootouts (
            date TEXT NOT NULL,
            home_team TEXT NOT NULL,
            away_team TEXT NOT NULL,
            winner TEXT NOT NULL,
            PRIMARY KEY (date, home_team, away_team),
            FOREIGN KEY (date, home_team, away_team)
                REFERENCES results (date, home_team, away_team)
        )
    """,
    Relation.FORMER_NAME: """
        CREATE TABLE IF NOT EXISTS former_names (
            current_name TEXT NOT NULL,
            former_name TEXT NOT NULL,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            PRIMARY KEY (current_name, former_name)
        )
    """,
}

SQLITE_MAGIC = b"SQLite format 3\x00"


def _to_sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    return value


class StoreBackend(ABC):
    """Abstract base class for store backends."""

    is_durable: bool = False

    @abstractmethod
    def rows(self, relation: Relation) -> Iterator[Row]:
        """Yield rows already persisted for a relation, in insertion order."""
        ...

    @abstractmethod
    def added(self, definition: RelationDef, row: Row) -> None:
        """Record a newly added row."""
        ...

    @abstractmethod
    def replaced(self, definition: RelationDef, old: Row, new: Row) -> None:
        """Record that ``old`` was replaced by ``new`` under the same key."""
        ...

    @abstractmethod
    def cleared(self, relation: Relation) -> None:
        """Record that all rows of a relation were deleted."""
        ...

    def commit(self) -> None:  # noqa: B027
        """Make pending changes durable. No-op by default."""

    def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""

    @property
    def location(self) -> Path | None:
        """Path of the durable file, if any."""
        return None


class MemoryBackend(StoreBackend):
    """Ephemeral backend: the store's in-memory rows are the only copy."""

    def rows(self, relation: Relation) -> Iterator[Row]:
        return iter(())

    def added(self, definition: RelationDef, row: Row) -> None:
        pass

    def replaced(self, definition: RelationDef, old: Row, new: Row) -> None:
        pass

    def cleared(self, relation: Relation) -> None:
        pass

    def __repr__(self) -> str:
        return "MemoryBackend()"


class SQLiteBackend(StoreBackend):
    """
    Durable backend writing through to a SQLite database file.

    Assumes a single writer; changes accumulate in one transaction
    until ``commit()``.
    """

    is_durable = True

    def __init__(self, path: Path) -> None:
        """
        Open (or create) the database file.

        Args:
            path: Path to the SQLite file. Parent directories are created.

        Raises:
            IOFailure: If the file cannot be opened as a SQLite database.
        """
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path)
            for relation in LOAD_ORDER:
                self._conn.execute(SQLITE_DDL[relation])
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            msg = f"Cannot open SQLite store {self.path}: {e}"
            raise IOFailure(msg, self.path) from e
        log.info("Opened SQLite store", path=str(self.path))

    @property
    def location(self) -> Path | None:
        return self.path

    def rows(self, relation: Relation) -> Iterator[Row]:
        definition = get_relation(relation)
        columns = definition.row_type.field_names()
        cursor = self._conn.execute(
            f"SELECT {', '.join(columns)} FROM {definition.name} ORDER BY rowid"
        )
        for values in cursor:
            yield definition.row_type.from_mapping(dict(zip(columns, values)))

    def _insert(self, definition: RelationDef, row: Row, verb: str = "INSERT") -> None:
        data = row.as_dict()
        columns = list(data)
        placeholders = ", ".join("?" for _ in columns)
        self._conn.execute(
            f"{verb} INTO {definition.name} ({', '.join(columns)}) VALUES ({placeholders})",
            [_to_sql_value(v) for v in data.values()],
        )

    def added(self, definition: RelationDef, row: Row) -> None:
        self._insert(definition, row)

    def replaced(self, definition: RelationDef, old: Row, new: Row) -> None:
        if definition.primary_key is None:
            # Unkeyed rows are only ever replaced by an identical copy
            return
        self._insert(definition, new, verb="INSERT OR REPLACE")

    def cleared(self, relation: Relation) -> None:
        self._conn.execute(f"DELETE FROM {Relation(relation).value}")

    def commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            msg = f"Cannot commit SQLite store {self.path}: {e}"
            raise IOFailure(msg, self.path) from e

    def copy_to(self, target: Path) -> Path:
        """
        Copy the committed database to ``target`` using the online backup API.

        Args:
            target: Destination file path (overwritten).

        Returns:
            The destination path.

        Raises:
            IOFailure: If the destination cannot be written.
        """
        target = Path(target)
        self.commit()
        if target.exists() and target.resolve() == self.path.resolve():
            return target
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.unlink(missing_ok=True)
            dest = sqlite3.connect(target)
            try:
                self._conn.backup(dest)
            finally:
                dest.close()
        except (OSError, sqlite3.Error) as e:
            msg = f"Cannot copy SQLite store to {target}: {e}"
            raise IOFailure(msg, target) from e
        return target

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SQLiteBackend(path={str(self.path)!r})"
