"""
Schema registry for relations.

Ties each relation definition to its frame schema and gives one place
to look both up by name.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from footstage.schemas.frames import (
    FormerNameFrameSchema,
    GoalscorerFrameSchema,
    ResultFrameSchema,
    ShootoutFrameSchema,
    normalize_legacy_columns,
)
from footstage.schemas.relations import RELATIONS, Relation, RelationDef, get_relation

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class SchemaInfo:
    """Metadata about a registered relation schema."""

    definition: RelationDef
    frame_schema: type[pa.DataFrameModel]
    version: str
    description: str

    @property
    def name(self) -> str:
        return self.definition.name


class SchemaRegistry:
    """
    Centralized registry of relation schemas.

    Provides version tracking and frame validation by relation name.
    """

    _version = "2.0.0"

    _schemas: ClassVar[dict[Relation, SchemaInfo]] = {
        Relation.RESULT: SchemaInfo(
            definition=RELATIONS[Relation.RESULT],
            frame_schema=ResultFrameSchema,
            version="2.0.0",
            description="International match results keyed by date and teams",
        ),
        Relation.GOALSCORER: SchemaInfo(
            definition=RELATIONS[Relation.GOALSCORER],
            frame_schema=GoalscorerFrameSchema,
            version="2.0.0",
            description="Goals per match, append-only, referencing results",
        ),
        Relation.SHOOTOUT: SchemaInfo(
            definition=RELATIONS[Relation.SHOOTOUT],
            frame_schema=ShootoutFrameSchema,
            version="2.0.0",
            description="Penalty shootout winners, referencing results",
        ),
        Relation.FORMER_NAME: SchemaInfo(
            definition=RELATIONS[Relation.FORMER_NAME],
            frame_schema=FormerNameFrameSchema,
            # 1.x stored only name/formerName without validity dates
            version="2.0.0",
            description="Former national team names with validity period",
        ),
    }

    @classmethod
    def registry_version(cls) -> str:
        """Get the registry version."""
        return cls._version

    @classmethod
    def get_info(cls, relation: Relation | str) -> SchemaInfo:
        """
        Get full schema info by relation.

        Args:
            relation: Relation enum member or name.

        Returns:
            SchemaInfo with metadata.

        Raises:
            KeyError: If relation not found.
        """
        return cls._schemas[get_relation(relation).relation]

    @classmethod
    def get(cls, relation: Relation | str) -> type[pa.DataFrameModel]:
        """Get the frame schema for a relation."""
        return cls.get_info(relation).frame_schema

    @classmethod
    def list_schemas(cls) -> list[str]:
        """List all registered relation names."""
        return [r.value for r in cls._schemas]

    @classmethod
    def validate(cls, df: "pd.DataFrame", relation: Relation | str) -> "pd.DataFrame":
        """
        Validate a relation frame, renaming legacy columns first.

        Args:
            df: DataFrame to validate.
            relation: Relation the frame belongs to.

        Returns:
            Validated (coerced, column-filtered) DataFrame.

        Raises:
            pandera.errors.SchemaError: If validation fails.
            pandera.errors.SchemaErrors: If coercion fails.
        """
        schema = cls.get(relation)
        name = get_relation(relation).relation.value
        return schema.validate(normalize_legacy_columns(df, name))
