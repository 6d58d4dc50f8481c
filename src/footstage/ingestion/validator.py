"""
Required-field validation for raw source records.

Runs before any transformation so diagnostics show the raw values
exactly as they appear in the source file.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


def is_blank(value: Any) -> bool:
    """
    Check whether a raw cell counts as absent.

    Absent means None, NaN, or a string that is empty after trimming.
    """
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def find_missing_fields(record: Mapping[str, Any], required: Sequence[str]) -> list[str]:
    """
    Return the required field names that are missing from a record.

    Args:
        record: Raw field mapping (column name -> cell value).
        required: Field names that must be present and non-blank.

    Returns:
        Missing field names, in the order given by ``required``.
    """
    return [name for name in required if is_blank(record.get(name))]


@dataclass(frozen=True)
class RecordValidator:
    """Required-field contract of one relation."""

    required_fields: tuple[str, ...]

    def missing(self, record: Mapping[str, Any]) -> list[str]:
        """Missing required fields of ``record`` (empty when valid)."""
        return find_missing_fields(record, self.required_fields)

    def is_valid(self, record: Mapping[str, Any]) -> bool:
        return not self.missing(record)
