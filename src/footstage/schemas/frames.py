"""
Pandera schemas for relation frames.

Used at the snapshot boundary: every relation read back from a portable
document or a SQLite file is validated (and coerced) before any row is
written into a store.
"""

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

# Column names used by the earlier camelCase on-disk schema
LEGACY_COLUMN_NAMES: dict[str, str] = {
    "homeTeam": "home_team",
    "awayTeam": "away_team",
    "homeGoals": "home_goals",
    "awayGoals": "away_goals",
    "ownGoal": "own_goal",
    "currentName": "current_name",
    "formerName": "former_name",
    "startDate": "start_date",
    "endDate": "end_date",
}

# Earlier table names, keyed by the current relation name
LEGACY_TABLE_NAMES: dict[str, tuple[str, ...]] = {
    "former_names": ("formerNames",),
}

# Columns the earlier on-disk schema did not have, filled when absent
LEGACY_COLUMN_DEFAULTS: dict[str, dict[str, str]] = {
    "former_names": {"start_date": "", "end_date": ""},
}


class ResultFrameSchema(pa.DataFrameModel):
    """Schema for the results relation."""

    date: Series[str] = pa.Field(str_length={"min_value": 1})
    home_team: Series[str] = pa.Field(str_length={"min_value": 1})
    away_team: Series[str] = pa.Field(str_length={"min_value": 1})
    home_goals: Series[int] = pa.Field(ge=0)
    away_goals: Series[int] = pa.Field(ge=0)
    tournament: Series[str]
    city: Series[str]
    country: Series[str]
    neutral: Series[bool]

    class Config:
        """Schema configuration."""

        name = "ResultFrameSchema"
        strict = "filter"  # Drop columns outside the relation
        coerce = True
        unique = ["date", "home_team", "away_team"]


class GoalscorerFrameSchema(pa.DataFrameModel):
    """
    Schema for the goalscorers relation.

    ``minute`` is nullable; rows are append-only so no uniqueness check.
    """

    date: Series[str] = pa.Field(str_length={"min_value": 1})
    home_team: Series[str] = pa.Field(str_length={"min_value": 1})
    away_team: Series[str] = pa.Field(str_length={"min_value": 1})
    scorer: Series[str] = pa.Field(str_length={"min_value": 1})
    minute: Series[pd.Int64Dtype] = pa.Field(nullable=True, ge=0)
    own_goal: Series[bool]
    penalty: Series[bool]

    class Config:
        """Schema configuration."""

        name = "GoalscorerFrameSchema"
        strict = "filter"
        coerce = True


class ShootoutFrameSchema(pa.DataFrameModel):
    """Schema for the shootouts relation."""

    date: Series[str] = pa.Field(str_length={"min_value": 1})
    home_team: Series[str] = pa.Field(str_length={"min_value": 1})
    away_team: Series[str] = pa.Field(str_length={"min_value": 1})
    winner: Series[str] = pa.Field(str_length={"min_value": 1})

    class Config:
        """Schema configuration."""

        name = "ShootoutFrameSchema"
        strict = "filter"
        coerce = True
        unique = ["date", "home_team", "away_team"]


class FormerNameFrameSchema(pa.DataFrameModel):
    """Schema for the former_names relation."""

    current_name: Series[str] = pa.Field(str_length={"min_value": 1})
    former_name: Series[str] = pa.Field(str_length={"min_value": 1})
    start_date: Series[str]
    end_date: Series[str]

    class Config:
        """Schema configuration."""

        name = "FormerNameFrameSchema"
        strict = "filter"
        coerce = True
        unique = ["current_name", "former_name"]


def normalize_legacy_columns(df: pd.DataFrame, relation: str | None = None) -> pd.DataFrame:
    """
    Rename camelCase columns from older database files.

    The oldest former-names table used ``name`` for the current name and
    had no validity dates; those come back as empty strings.

    Args:
        df: Frame read from a snapshot.
        relation: Relation name, used to fill columns the old schema lacked.

    Returns:
        Frame with snake_case column names.
    """
    mapping = {k: v for k, v in LEGACY_COLUMN_NAMES.items() if k in df.columns}
    if "name" in df.columns and "current_name" not in df.columns:
        mapping["name"] = "current_name"
    df = df.rename(columns=mapping)

    missing = {
        column: default
        for column, default in LEGACY_COLUMN_DEFAULTS.get(relation or "", {}).items()
        if column not in df.columns
    }
    if missing:
        df = df.assign(**missing)
    return df
