"""
Store persistence (save/restore).

Two on-disk forms are supported:
    - native: a SQLite database file, produced by copying a durable store
    - portable: one JSON document mapping relation name to its row list

``load_store`` detects the form from the first bytes of the file and
restores through ``upsert``, so loading the same file twice leaves the
store unchanged.
"""

import json
import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import pandas as pd
import pandera.errors

from footstage.errors import IOFailure, SnapshotFormatError
from footstage.schemas.frames import LEGACY_TABLE_NAMES
from footstage.schemas.registry import SchemaRegistry
from footstage.schemas.relations import LOAD_ORDER, Relation, get_relation
from footstage.store.backends import SQLITE_MAGIC, SQLiteBackend
from footstage.store.core import InsertStatus, ReferentialStore
from footstage.utils.logging import get_logger

log = get_logger(__name__)


class SnapshotFormat(str, Enum):
    """On-disk snapshot form."""

    PORTABLE = "portable"
    NATIVE = "native"


@dataclass
class RelationRestore:
    """Per-relation restore counts."""

    restored: int = 0
    replaced: int = 0
    rejected: int = 0


@dataclass
class RestoreReport:
    """
    Result of restoring a snapshot into a store.

    Attributes:
        source: Snapshot path.
        format: Detected snapshot form.
        relations: Counts per relation.
    """

    source: Path
    format: SnapshotFormat
    relations: dict[Relation, RelationRestore] = field(default_factory=dict)

    @property
    def n_rejected(self) -> int:
        return sum(r.rejected for r in self.relations.values())


def detect_format(source: Path) -> SnapshotFormat:
    """
    Detect the snapshot form of a file.

    A portable document starts with ``{`` after optional whitespace; a
    native file starts with the SQLite header.

    Raises:
        IOFailure: If the file cannot be read.
        SnapshotFormatError: If neither marker is found.
    """
    source = Path(source)
    try:
        with source.open("rb") as f:
            head = f.read(1024)
    except OSError as e:
        msg = f"Cannot read snapshot {source}: {e}"
        raise IOFailure(msg, source) from e

    if head.startswith(SQLITE_MAGIC):
        return SnapshotFormat.NATIVE
    if head.lstrip(b"\xef\xbb\xbf \t\r\n").startswith(b"{"):
        return SnapshotFormat.PORTABLE

    msg = f"Unrecognised snapshot format: {source}"
    raise SnapshotFormatError(msg, source)


def export_document(store: ReferentialStore) -> dict[str, list[dict[str, Any]]]:
    """Build the portable document for a store's full contents."""
    return {
        relation.value: [row.as_dict() for row in store.scan(relation)]
        for relation in LOAD_ORDER
    }


def save_store(
    store: ReferentialStore,
    target: Path,
    *,
    portable: bool | None = None,
) -> tuple[Path, SnapshotFormat]:
    """
    Save a store's full contents.

    A durable store is copied in its native SQLite form; an in-memory
    store is written as a portable JSON document.

    Args:
        store: Store to save.
        target: Output file path (overwritten).
        portable: Force the portable (True) or native (False) form.
            Defaults to native for durable stores, portable otherwise.

    Returns:
        Tuple of (written path, snapshot format).

    Raises:
        IOFailure: If the target cannot be written.
        ValueError: If the native form is requested for an in-memory store.
    """
    target = Path(target)
    use_portable = (not store.is_durable) if portable is None else portable

    if not use_portable:
        backend = store.backend
        if not isinstance(backend, SQLiteBackend):
            msg = "Native snapshots require a durable (SQLite) store"
            raise ValueError(msg)
        backend.copy_to(target)
        log.info("Saved native snapshot", path=str(target), **_count_fields(store))
        return target, SnapshotFormat.NATIVE

    document = export_document(store)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")
    except OSError as e:
        msg = f"Cannot write snapshot {target}: {e}"
        raise IOFailure(msg, target) from e

    log.info("Saved portable snapshot", path=str(target), **_count_fields(store))
    return target, SnapshotFormat.PORTABLE


def load_store(store: ReferentialStore, source: Path) -> RestoreReport:
    """
    Restore a snapshot into a store.

    Rows are written with ``upsert`` in dependency order (results before
    goalscorers and shootouts), so reloading the same snapshot is a no-op.
    All relations are validated first; an invalid one leaves the store
    untouched.

    Args:
        store: Target store (not cleared first).
        source: Portable JSON document or native SQLite file.

    Returns:
        RestoreReport with per-relation counts.

    Raises:
        IOFailure: If the source cannot be read.
        SnapshotFormatError: If the source is malformed.
    """
    source = Path(source)
    fmt = detect_format(source)
    log.info("Restoring snapshot", path=str(source), format=fmt.value)

    if fmt is SnapshotFormat.PORTABLE:
        frames = _read_portable(source)
    else:
        frames = _read_native(source)

    validated: dict[Relation, pd.DataFrame] = {}
    for relation in LOAD_ORDER:
        frame = frames.get(relation)
        if frame is None:
            log.warning("Relation missing from snapshot", relation=relation.value)
            continue
        validated[relation] = frame if frame.empty else _validate_frame(relation, frame, source)

    report = RestoreReport(source=source, format=fmt)
    for relation, frame in validated.items():
        report.relations[relation] = _restore_frame(store, relation, frame)

    store.commit()
    log.info(
        "Restored snapshot",
        path=str(source),
        rejected=report.n_rejected,
        **_count_fields(store),
    )
    return report


def _count_fields(store: ReferentialStore) -> dict[str, int]:
    return {f"{relation.value}_count": n for relation, n in store.counts().items()}


def _read_portable(source: Path) -> dict[Relation, pd.DataFrame]:
    try:
        with open(source, encoding="utf-8-sig") as f:
            document = json.load(f)
    except OSError as e:
        msg = f"Cannot read snapshot {source}: {e}"
        raise IOFailure(msg, source) from e
    except json.JSONDecodeError as e:
        msg = f"Malformed portable snapshot {source}: {e}"
        raise SnapshotFormatError(msg, source) from e

    if not isinstance(document, dict):
        msg = f"Portable snapshot {source} must be a JSON object"
        raise SnapshotFormatError(msg, source)

    frames: dict[Relation, pd.DataFrame] = {}
    for relation in Relation:
        rows = document.get(relation.value)
        if rows is None:
            continue
        if not isinstance(rows, list):
            msg = f"Snapshot entry '{relation.value}' must be a list of rows"
            raise SnapshotFormatError(msg, source)
        frames[relation] = pd.DataFrame(rows)
    return frames


def _read_native(source: Path) -> dict[Relation, pd.DataFrame]:
    try:
        conn = sqlite3.connect(f"{source.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        msg = f"Cannot open SQLite snapshot {source}: {e}"
        raise IOFailure(msg, source) from e

    frames: dict[Relation, pd.DataFrame] = {}
    try:
        tables = {
            name
            for (name,) in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        for relation in Relation:
            candidates = (relation.value, *LEGACY_TABLE_NAMES.get(relation.value, ()))
            table = next((t for t in candidates if t in tables), None)
            if table is None:
                continue
            frames[relation] = pd.read_sql_query(
                f'SELECT * FROM "{table}" ORDER BY rowid', conn
            )
    except (sqlite3.Error, pd.errors.DatabaseError) as e:
        msg = f"Cannot read SQLite snapshot {source}: {e}"
        raise SnapshotFormatError(msg, source) from e
    finally:
        conn.close()
    return frames


def _python_value(value: Any) -> Any:
    """Turn numpy/pandas scalars into plain Python values (NA -> None)."""
    if value is None or value is pd.NA:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def _validate_frame(relation: Relation, frame: pd.DataFrame, source: Path) -> pd.DataFrame:
    try:
        return SchemaRegistry.validate(frame, relation)
    except (pandera.errors.SchemaError, pandera.errors.SchemaErrors) as e:
        msg = f"Invalid '{relation.value}' rows in snapshot {source}: {_schema_failure(e)}"
        raise SnapshotFormatError(msg, source) from e


def _schema_failure(error: Exception) -> str:
    """First failure of a pandera error as one line."""
    cases = getattr(error, "failure_cases", None)
    if isinstance(cases, pd.DataFrame) and not cases.empty and "column" in cases.columns:
        first = cases.iloc[0]
        return (
            f"column '{first['column']}' failed {first['check']} "
            f"(value {first['failure_case']!r})"
        )
    lines = str(error).strip().splitlines()
    return lines[0] if lines else type(error).__name__


def _restore_frame(
    store: ReferentialStore,
    relation: Relation,
    validated: pd.DataFrame,
) -> RelationRestore:
    counts = RelationRestore()
    if validated.empty:
        return counts

    row_type = get_relation(relation).row_type
    seen: Counter[Any] = Counter()
    for record in validated.to_dict(orient="records"):
        row = row_type.from_mapping({k: _python_value(v) for k, v in record.items()})
        occurrence = seen[row]
        seen[row] += 1

        result = store.upsert(relation, row, occurrence=occurrence)
        if result.status is InsertStatus.INSERTED:
            counts.restored += 1
        elif result.status is InsertStatus.REPLACED:
            counts.replaced += 1
        else:
            counts.rejected += 1
            log.warning(
                "Snapshot row references missing parent",
                relation=relation.value,
                parent=result.parent.value if result.parent else None,
                parent_key=list(result.parent_key or ()),
            )

    log.info(
        "Restored relation",
        relation=relation.value,
        restored=counts.restored,
        replaced=counts.replaced,
        rejected=counts.rejected,
    )
    return counts
