"""
Exception types and the per-record issue taxonomy.

Only fatal conditions are exceptions. Per-record problems found while
staging are reported as ``LoadIssue`` values (see ``footstage.etl.loader``)
so one bad row never aborts a load.
"""

from enum import Enum
from pathlib import Path


class FootstageError(Exception):
    """Base class for all footstage errors."""


class IOFailure(FootstageError):
    """
    A source or persistence target could not be read or written.

    Aborts the current load, save or restore call entirely.
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class SnapshotFormatError(IOFailure):
    """Snapshot file is neither a portable document nor a SQLite database, or is malformed."""


class IssueKind(str, Enum):
    """Classification of a recoverable per-record problem."""

    MISSING_FIELDS = "missing_fields"
    INVALID_VALUE = "invalid_value"
    DUPLICATE_RECORD = "duplicate_record"
    REFERENTIAL_ERROR = "referential_error"

    @property
    def severity(self) -> str:
        """Duplicates are warnings; everything else is an error."""
        return "warning" if self is IssueKind.DUPLICATE_RECORD else "error"
