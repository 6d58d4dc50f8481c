"""
Referential store and its persistence.

The store enforces primary/foreign keys in memory; backends decide
whether rows are also kept in a durable SQLite file.
"""

from footstage.store.backends import MemoryBackend, SQLiteBackend, StoreBackend
from footstage.store.core import InsertResult, InsertStatus, ReferentialStore
from footstage.store.persistence import (
    RestoreReport,
    SnapshotFormat,
    detect_format,
    load_store,
    save_store,
)

__all__ = [
    "InsertResult",
    "InsertStatus",
    "MemoryBackend",
    "ReferentialStore",
    "RestoreReport",
    "SQLiteBackend",
    "SnapshotFormat",
    "StoreBackend",
    "detect_format",
    "load_store",
    "save_store",
]
