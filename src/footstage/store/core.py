"""
Referential store.

Holds rows per relation in insertion order and enforces primary-key
uniqueness and foreign-key existence at insert time.
"""

from collections import Counter
from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any

import pandas as pd

from footstage.schemas.relations import (
    DELETE_ORDER,
    LOAD_ORDER,
    Relation,
    RelationDef,
    Row,
    get_relation,
)
from footstage.store.backends import MemoryBackend, SQLiteBackend, StoreBackend
from footstage.utils.logging import get_logger

log = get_logger(__name__)


class InsertStatus(str, Enum):
    """Outcome of an insert or upsert."""

    INSERTED = "inserted"
    REPLACED = "replaced"
    DUPLICATE_KEY = "duplicate_key"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"


@dataclass(frozen=True)
class InsertResult:
    """
    Result of writing one row.

    Attributes:
        status: What happened.
        relation: Relation written to.
        key: Primary key of the row (None for unkeyed relations).
        parent: Referenced relation, set on foreign-key violations.
        parent_key: Referenced key tuple, set on foreign-key violations.
    """

    status: InsertStatus
    relation: Relation
    key: tuple[Any, ...] | None = None
    parent: Relation | None = None
    parent_key: tuple[Any, ...] | None = None

    @property
    def ok(self) -> bool:
        return self.status in (InsertStatus.INSERTED, InsertStatus.REPLACED)


class ReferentialStore:
    """
    In-memory relational store with primary/foreign-key checks.

    Keyed relations index rows by their primary-key tuple, which doubles
    as the foreign-key index for dependents, so parent lookups are O(1).
    Unkeyed (append-only) relations index rows by ``(row, occurrence)``
    so identical rows can coexist and still be upserted idempotently.

    The store assumes a single writer and is not thread-safe.
    """

    def __init__(self, backend: StoreBackend | None = None) -> None:
        """
        Initialize the store.

        Args:
            backend: Storage backend. Defaults to an ephemeral MemoryBackend.
                Rows already held by the backend are loaded immediately.
        """
        self.backend = backend if backend is not None else MemoryBackend()
        self._rows: dict[Relation, dict[Hashable, Row]] = {r: {} for r in Relation}
        self._copies: dict[Relation, Counter[Row]] = {r: Counter() for r in Relation}
        self._hydrate()

    @classmethod
    def in_memory(cls) -> "ReferentialStore":
        """Create an ephemeral store."""
        return cls(MemoryBackend())

    @classmethod
    def open(cls, path: Path | str) -> "ReferentialStore":
        """Open (or create) a durable store backed by a SQLite file."""
        return cls(SQLiteBackend(Path(path)))

    @property
    def is_durable(self) -> bool:
        return self.backend.is_durable

    def _hydrate(self) -> None:
        n_rows = 0
        for relation in LOAD_ORDER:
            definition = get_relation(relation)
            for row in self.backend.rows(relation):
                self._add(definition, row, self._free_slot(definition, row))
                n_rows += 1
        if n_rows:
            log.info("Hydrated store from backend", backend=repr(self.backend), rows=n_rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_type(definition: RelationDef, row: Row) -> None:
        if not isinstance(row, definition.row_type):
            msg = (
                f"Relation '{definition.name}' expects {definition.row_type.__name__} "
                f"rows, got {type(row).__name__}"
            )
            raise TypeError(msg)

    def _free_slot(self, definition: RelationDef, row: Row) -> Hashable:
        """Slot for a newly added row."""
        key = definition.key_of(row)
        if key is not None:
            return key
        occurrence = self._copies[definition.relation][row]
        while (row, occurrence) in self._rows[definition.relation]:
            occurrence += 1
        return (row, occurrence)

    def _missing_parent(self, definition: RelationDef, row: Row) -> InsertResult | None:
        fk = definition.foreign_key
        if fk is None:
            return None
        parent_key = definition.parent_key_of(row)
        if parent_key in self._rows[fk.references]:
            return None
        return InsertResult(
            status=InsertStatus.FOREIGN_KEY_VIOLATION,
            relation=definition.relation,
            key=definition.key_of(row),
            parent=fk.references,
            parent_key=parent_key,
        )

    def _add(self, definition: RelationDef, row: Row, slot: Hashable) -> None:
        self._rows[definition.relation][slot] = row
        self._copies[definition.relation][row] += 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, relation: Relation | str, row: Row) -> InsertResult:
        """
        Insert a row, never overwriting an existing one.

        Args:
            relation: Target relation.
            row: Row of the relation's row type.

        Returns:
            InsertResult with status INSERTED, DUPLICATE_KEY or
            FOREIGN_KEY_VIOLATION.

        Raises:
            TypeError: If the row type does not match the relation.
        """
        definition = get_relation(relation)
        self._check_type(definition, row)

        violation = self._missing_parent(definition, row)
        if violation is not None:
            return violation

        key = definition.key_of(row)
        if key is not None and key in self._rows[definition.relation]:
            return InsertResult(
                status=InsertStatus.DUPLICATE_KEY, relation=definition.relation, key=key
            )

        self._add(definition, row, self._free_slot(definition, row))
        self.backend.added(definition, row)
        return InsertResult(status=InsertStatus.INSERTED, relation=definition.relation, key=key)

    def upsert(self, relation: Relation | str, row: Row, *, occurrence: int = 0) -> InsertResult:
        """
        Insert a row, replacing any existing row with the same key.

        Only used when restoring snapshots. Foreign keys are still checked.

        Args:
            relation: Target relation.
            row: Row of the relation's row type.
            occurrence: For unkeyed relations, which copy of an identical
                row this is (0 for the first). Ignored for keyed relations.

        Returns:
            InsertResult with status INSERTED, REPLACED or FOREIGN_KEY_VIOLATION.
        """
        definition = get_relation(relation)
        self._check_type(definition, row)

        violation = self._missing_parent(definition, row)
        if violation is not None:
            return violation

        key = definition.key_of(row)
        slot: Hashable = key if key is not None else (row, occurrence)
        rows = self._rows[definition.relation]
        existing = rows.get(slot)

        if existing is None:
            self._add(definition, row, slot)
            self.backend.added(definition, row)
            return InsertResult(status=InsertStatus.INSERTED, relation=definition.relation, key=key)

        if existing != row:
            rows[slot] = row
            copies = self._copies[definition.relation]
            copies[existing] -= 1
            if copies[existing] <= 0:
                del copies[existing]
            copies[row] += 1
            self.backend.replaced(definition, existing, row)
        return InsertResult(status=InsertStatus.REPLACED, relation=definition.relation, key=key)

    def clear(self, relation: Relation | str) -> int:
        """
        Delete every row of one relation.

        Foreign keys are not checked on delete.

        Returns:
            Number of rows deleted.
        """
        definition = get_relation(relation)
        n_deleted = len(self._rows[definition.relation])
        self._rows[definition.relation].clear()
        self._copies[definition.relation].clear()
        self.backend.cleared(definition.relation)
        log.debug("Cleared relation", relation=definition.name, deleted=n_deleted)
        return n_deleted

    def clear_all(self) -> dict[Relation, int]:
        """Delete every row, dependents before parents."""
        deleted = {relation: self.clear(relation) for relation in DELETE_ORDER}
        self.commit()
        log.info("Cleared store", deleted={r.value: n for r, n in deleted.items()})
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, relation: Relation | str, key: Sequence[Any]) -> Row | None:
        """
        Point lookup by primary key.

        Raises:
            ValueError: If the relation has no primary key.
        """
        definition = get_relation(relation)
        if definition.primary_key is None:
            msg = f"Relation '{definition.name}' has no primary key"
            raise ValueError(msg)
        return self._rows[definition.relation].get(tuple(key))

    def contains(self, relation: Relation | str, key: Sequence[Any]) -> bool:
        return self.get(relation, key) is not None

    def scan(self, relation: Relation | str) -> list[Row]:
        """All rows of a relation in insertion order."""
        return list(self._rows[get_relation(relation).relation].values())

    def counts(self) -> dict[Relation, int]:
        """Row count per relation."""
        return {relation: len(self._rows[relation]) for relation in Relation}

    def rows_as_frame(self, relation: Relation | str) -> pd.DataFrame:
        """
        Relation contents as a DataFrame (one column per row field).

        Args:
            relation: Relation to export.

        Returns:
            DataFrame in insertion order; empty with the right columns if
            the relation has no rows.
        """
        definition = get_relation(relation)
        return pd.DataFrame(
            [row.as_dict() for row in self.scan(relation)],
            columns=list(definition.row_type.field_names()),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def commit(self) -> None:
        """Flush pending changes to the backend."""
        self.backend.commit()

    def close(self) -> None:
        self.backend.commit()
        self.backend.close()

    def __enter__(self) -> "ReferentialStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        counts = ", ".join(f"{r.value}={n}" for r, n in self.counts().items())
        return f"ReferentialStore({self.backend!r}, {counts})"
