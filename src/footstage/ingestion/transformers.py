"""
Record transformers for the four relations.

Each transformer applies the parsing and defaulting rules of its
relation's source file.
"""

from collections.abc import Mapping
from typing import Any

from footstage.errors import IssueKind
from footstage.ingestion.base import (
    RecordTransformer,
    Skip,
    TransformError,
    parse_flag,
    parse_int,
    parse_optional_int,
)
from footstage.schemas.relations import (
    FormerName,
    Goalscorer,
    Relation,
    Result,
    Shootout,
)


class ResultTransformer(RecordTransformer[Result]):
    """Transformer for results.csv."""

    relation = Relation.RESULT

    def transform(self, record: Mapping[str, Any], line: int) -> Result | Skip:
        # A present but non-numeric score is a value problem, not a missing field
        try:
            home_goals = parse_int(record, "home_score")
            away_goals = parse_int(record, "away_score")
        except TransformError:
            return Skip(
                reason=(
                    f"invalid score: home_score={record.get('home_score')!r}, "
                    f"away_score={record.get('away_score')!r}"
                ),
                kind=IssueKind.INVALID_VALUE,
                fields=("home_score", "away_score"),
            )

        return Result(
            date=record["date"],
            home_team=record["home_team"],
            away_team=record["away_team"],
            home_goals=home_goals,
            away_goals=away_goals,
            tournament=record["tournament"],
            city=record["city"],
            country=record["country"],
            neutral=parse_flag(record["neutral"]),
        )


class GoalscorerTransformer(RecordTransformer[Goalscorer]):
    """Transformer for goalscorers.csv; blank minutes become None."""

    relation = Relation.GOALSCORER

    def transform(self, record: Mapping[str, Any], line: int) -> Goalscorer | Skip:
        return Goalscorer(
            date=record["date"],
            home_team=record["home_team"],
            away_team=record["away_team"],
            scorer=record["scorer"],
            minute=parse_optional_int(record, "minute"),
            own_goal=parse_flag(record.get("own_goal")),
            penalty=parse_flag(record.get("penalty")),
        )


class ShootoutTransformer(RecordTransformer[Shootout]):
    """Transformer for shootouts.csv."""

    relation = Relation.SHOOTOUT

    def transform(self, record: Mapping[str, Any], line: int) -> Shootout | Skip:
        return Shootout(
            date=record["date"],
            home_team=record["home_team"],
            away_team=record["away_team"],
            winner=record["winner"],
        )


class FormerNameTransformer(RecordTransformer[FormerName]):
    """
    Transformer for former_names.csv.

    Accepts the current ``current``/``former`` columns as well as the
    older ``name``/``formerName`` layout. Some exports leave a name cell
    empty as a marker, so a blank name is skipped without an issue.
    """

    relation = Relation.FORMER_NAME

    CURRENT_COLUMNS = ("current", "name", "current_name", "currentName")
    FORMER_COLUMNS = ("former", "formerName", "former_name")

    @staticmethod
    def _resolve(record: Mapping[str, Any], columns: tuple[str, ...]) -> str:
        for column in columns:
            value = record.get(column)
            if isinstance(value, str):
                return value.strip()
        return ""

    def transform(self, record: Mapping[str, Any], line: int) -> FormerName | Skip:
        current_name = self._resolve(record, self.CURRENT_COLUMNS)
        former_name = self._resolve(record, self.FORMER_COLUMNS)

        if not current_name or not former_name:
            return Skip(reason="blank team name", kind=None)

        return FormerName(
            current_name=current_name,
            former_name=former_name,
            start_date=record["start_date"],
            end_date=record["end_date"],
        )


TRANSFORMERS: dict[Relation, type[RecordTransformer[Any]]] = {
    Relation.RESULT: ResultTransformer,
    Relation.GOALSCORER: GoalscorerTransformer,
    Relation.SHOOTOUT: ShootoutTransformer,
    Relation.FORMER_NAME: FormerNameTransformer,
}


def transformer_for(relation: Relation | str) -> RecordTransformer[Any]:
    """Instantiate the transformer registered for a relation."""
    return TRANSFORMERS[Relation(relation)]()
