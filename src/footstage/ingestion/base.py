"""
Base classes and utilities for record transformation.

Provides the transformer contract shared by all relations and the
CSV reader that turns a source file into raw records.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

import pandas as pd

from footstage.errors import IOFailure, IssueKind
from footstage.ingestion.validator import RecordValidator, is_blank
from footstage.schemas.relations import Relation, RelationDef, get_relation
from footstage.utils.logging import get_logger

log = get_logger(__name__)

R = TypeVar("R")

# Header occupies line 1, so the first record sits on line 2
FIRST_DATA_LINE = 2


@dataclass(frozen=True)
class Skip:
    """
    Signal that a record should not be inserted.

    Attributes:
        reason: Human-readable reason.
        kind: Issue classification, or None for a silent skip.
        fields: Names of the offending fields.
    """

    reason: str
    kind: IssueKind | None = IssueKind.INVALID_VALUE
    fields: tuple[str, ...] = ()

    @property
    def silent(self) -> bool:
        return self.kind is None


class TransformError(ValueError):
    """A field value could not be parsed during transformation."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        super().__init__(f"{field}={value!r}: {message}")
        self.field = field
        self.value = value


def parse_int(record: Mapping[str, Any], field: str) -> int:
    """
    Parse a required integer field.

    Raises:
        TransformError: If the value is not an integer literal.
    """
    value = record.get(field)
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise TransformError(field, value, "not an integer") from e


def parse_optional_int(record: Mapping[str, Any], field: str) -> int | None:
    """Parse an integer field that may be absent or blank."""
    if is_blank(record.get(field)):
        return None
    return parse_int(record, field)


def parse_flag(value: Any) -> bool:
    """Two-valued external encoding: the literal ``TRUE`` is true, anything else false."""
    return isinstance(value, str) and value.strip() == "TRUE"


class RecordTransformer(ABC, Generic[R]):
    """
    Abstract base class for per-relation record transformers.

    A transformer receives a raw record that already passed required-field
    validation and returns a typed row or a ``Skip``.
    """

    relation: Relation

    def __init__(self) -> None:
        self.definition: RelationDef = get_relation(self.relation)
        self.validator = RecordValidator(self.definition.required_fields)

    @abstractmethod
    def transform(self, record: Mapping[str, Any], line: int) -> R | Skip:
        """
        Convert a raw record into a row.

        Args:
            record: Raw field mapping from the source.
            line: 1-based source line number.

        Returns:
            The typed row, or a Skip describing why it was rejected.

        Raises:
            TransformError: If a field value cannot be parsed.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(relation={self.relation.value!r})"


def read_records(path: Path) -> list[dict[str, str]]:
    """
    Read a CSV file with a header row into raw records.

    Every cell is kept as a string and empty cells stay empty strings, so
    the validator sees values exactly as written.

    Args:
        path: Path to the CSV file.

    Returns:
        One dict per data row, in file order.

    Raises:
        IOFailure: If the file is missing, unreadable or not parseable.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Source file not found: {path}"
        raise IOFailure(msg, path)

    read_kwargs: dict[str, Any] = {
        "dtype": str,
        "keep_default_na": False,
        "skip_blank_lines": True,
    }
    try:
        try:
            df = pd.read_csv(path, encoding="utf-8", **read_kwargs)
        except UnicodeDecodeError:
            # Older extracts are not always UTF-8
            log.warning("UTF-8 decode failed, retrying with Latin-1", path=str(path))
            df = pd.read_csv(path, encoding="latin-1", **read_kwargs)
    except pd.errors.EmptyDataError:
        log.warning("Source file is empty", path=str(path))
        return []
    except (OSError, pd.errors.ParserError) as e:
        msg = f"Cannot read source file {path}: {e}"
        raise IOFailure(msg, path) from e

    df.columns = [str(c).strip() for c in df.columns]
    log.debug("Read source records", path=str(path), rows=len(df), columns=list(df.columns))
    return df.to_dict(orient="records")
