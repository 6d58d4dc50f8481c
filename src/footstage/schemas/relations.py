"""
Relation definitions and row types.

Four relations make up the store. Each has a frozen row dataclass,
an optional primary key and an optional foreign key into ``results``.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Union


class Relation(str, Enum):
    """Identifier of a stored relation (also the snapshot key and table name)."""

    RESULT = "results"
    GOALSCORER = "goalscorers"
    SHOOTOUT = "shootouts"
    FORMER_NAME = "former_names"

    def __str__(self) -> str:
        return self.value


def _as_bool(value: Any) -> bool:
    """Coerce snapshot booleans (true/false, 0/1, "TRUE")."""
    if isinstance(value, str):
        return value.strip().upper() in {"TRUE", "1"}
    return bool(value)


def _as_optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


class _RowMixin:
    """Shared helpers for row dataclasses."""

    def as_dict(self) -> dict[str, Any]:
        """Return the row as a plain dict (snake_case keys)."""
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        """Names of the row fields in declaration order."""
        return tuple(f.name for f in fields(cls))  # type: ignore[arg-type]


@dataclass(frozen=True)
class Result(_RowMixin):
    """One international match result."""

    date: str
    home_team: str
    away_team: str
    home_goals: int
    away_goals: int
    tournament: str
    city: str
    country: str
    neutral: bool

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Result":
        return cls(
            date=str(data["date"]),
            home_team=str(data["home_team"]),
            away_team=str(data["away_team"]),
            home_goals=int(data["home_goals"]),
            away_goals=int(data["away_goals"]),
            tournament=str(data["tournament"]),
            city=str(data["city"]),
            country=str(data["country"]),
            neutral=_as_bool(data["neutral"]),
        )


@dataclass(frozen=True)
class Goalscorer(_RowMixin):
    """A goal scored in a match; ``minute`` is None when unknown."""

    date: str
    home_team: str
    away_team: str
    scorer: str
    minute: int | None
    own_goal: bool
    penalty: bool

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Goalscorer":
        return cls(
            date=str(data["date"]),
            home_team=str(data["home_team"]),
            away_team=str(data["away_team"]),
            scorer=str(data["scorer"]),
            minute=_as_optional_int(data.get("minute")),
            own_goal=_as_bool(data["own_goal"]),
            penalty=_as_bool(data["penalty"]),
        )


@dataclass(frozen=True)
class Shootout(_RowMixin):
    """Winner of a penalty shootout."""

    date: str
    home_team: str
    away_team: str
    winner: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Shootout":
        return cls(
            date=str(data["date"]),
            home_team=str(data["home_team"]),
            away_team=str(data["away_team"]),
            winner=str(data["winner"]),
        )


@dataclass(frozen=True)
class FormerName(_RowMixin):
    """A former name of a national team, valid between two dates."""

    current_name: str
    former_name: str
    start_date: str
    end_date: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FormerName":
        return cls(
            current_name=str(data["current_name"]).strip(),
            former_name=str(data["former_name"]).strip(),
            start_date=str(data["start_date"]),
            end_date=str(data["end_date"]),
        )


Row = Union[Result, Goalscorer, Shootout, FormerName]

MATCH_KEY: tuple[str, str, str] = ("date", "home_team", "away_team")


@dataclass(frozen=True)
class ForeignKey:
    """Foreign key from ``fields`` of a row to the primary key of ``references``."""

    fields: tuple[str, ...]
    references: Relation


@dataclass(frozen=True)
class RelationDef:
    """
    Static definition of a relation.

    Attributes:
        relation: Relation identifier.
        row_type: Frozen dataclass used for rows.
        primary_key: Key field names, or None for append-only relations.
        foreign_key: Optional reference to a parent relation.
        required_fields: Source CSV columns that must be present and non-blank.
        source_file: Default CSV file name in the data directory.
    """

    relation: Relation
    row_type: type
    primary_key: tuple[str, ...] | None
    foreign_key: ForeignKey | None
    required_fields: tuple[str, ...]
    source_file: str

    @property
    def name(self) -> str:
        return self.relation.value

    def key_of(self, row: Row) -> tuple[Any, ...] | None:
        """Primary-key tuple of a row, or None if the relation is unkeyed."""
        if self.primary_key is None:
            return None
        return tuple(getattr(row, f) for f in self.primary_key)

    def parent_key_of(self, row: Row) -> tuple[Any, ...] | None:
        """Foreign-key tuple of a row, or None if the relation has no parent."""
        if self.foreign_key is None:
            return None
        return tuple(getattr(row, f) for f in self.foreign_key.fields)


RELATIONS: dict[Relation, RelationDef] = {
    Relation.RESULT: RelationDef(
        relation=Relation.RESULT,
        row_type=Result,
        primary_key=MATCH_KEY,
        foreign_key=None,
        required_fields=(
            "date",
            "home_team",
            "away_team",
            "home_score",
            "away_score",
            "tournament",
            "city",
            "country",
            "neutral",
        ),
        source_file="results.csv",
    ),
    Relation.GOALSCORER: RelationDef(
        relation=Relation.GOALSCORER,
        row_type=Goalscorer,
        primary_key=None,
        foreign_key=ForeignKey(fields=MATCH_KEY, references=Relation.RESULT),
        required_fields=("date", "home_team", "away_team", "scorer"),
        source_file="goalscorers.csv",
    ),
    Relation.SHOOTOUT: RelationDef(
        relation=Relation.SHOOTOUT,
        row_type=Shootout,
        primary_key=MATCH_KEY,
        foreign_key=ForeignKey(fields=MATCH_KEY, references=Relation.RESULT),
        required_fields=("date", "home_team", "away_team", "winner"),
        source_file="shootouts.csv",
    ),
    Relation.FORMER_NAME: RelationDef(
        relation=Relation.FORMER_NAME,
        row_type=FormerName,
        primary_key=("current_name", "former_name"),
        foreign_key=None,
        # Name columns double as optional markers, see FormerNameTransformer
        required_fields=("start_date", "end_date"),
        source_file="former_names.csv",
    ),
}

# Dependents before their parents, so deletes never orphan rows mid-way
DELETE_ORDER: tuple[Relation, ...] = (
    Relation.GOALSCORER,
    Relation.SHOOTOUT,
    Relation.RESULT,
    Relation.FORMER_NAME,
)

# Parents first; results and former_names are independent of each other
LOAD_ORDER: tuple[Relation, ...] = (
    Relation.RESULT,
    Relation.FORMER_NAME,
    Relation.GOALSCORER,
    Relation.SHOOTOUT,
)


def get_relation(relation: Relation | str) -> RelationDef:
    """
    Look up a relation definition.

    Args:
        relation: Relation enum member or its string value.

    Returns:
        The matching RelationDef.

    Raises:
        KeyError: If the relation name is unknown.
    """
    try:
        key = Relation(relation)
    except ValueError as e:
        available = ", ".join(r.value for r in Relation)
        msg = f"Unknown relation '{relation}'. Available: {available}"
        raise KeyError(msg) from e
    return RELATIONS[key]
