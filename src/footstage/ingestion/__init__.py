"""
Source ingestion: CSV reading, required-field validation and
per-relation record transformation.
"""

from footstage.ingestion.base import RecordTransformer, Skip, TransformError, read_records
from footstage.ingestion.transformers import (
    FormerNameTransformer,
    GoalscorerTransformer,
    ResultTransformer,
    ShootoutTransformer,
    transformer_for,
)
from footstage.ingestion.validator import RecordValidator, find_missing_fields

__all__ = [
    "FormerNameTransformer",
    "GoalscorerTransformer",
    "RecordTransformer",
    "RecordValidator",
    "ResultTransformer",
    "ShootoutTransformer",
    "Skip",
    "TransformError",
    "find_missing_fields",
    "read_records",
    "transformer_for",
]
