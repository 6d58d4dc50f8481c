"""
Relation schemas.

Row types and key metadata live in ``relations``; Pandera frame schemas
used to validate snapshots live in ``frames``.
"""

from footstage.schemas.frames import (
    FormerNameFrameSchema,
    GoalscorerFrameSchema,
    ResultFrameSchema,
    ShootoutFrameSchema,
)
from footstage.schemas.registry import SchemaRegistry
from footstage.schemas.relations import (
    DELETE_ORDER,
    LOAD_ORDER,
    RELATIONS,
    FormerName,
    Goalscorer,
    Relation,
    RelationDef,
    Result,
    Row,
    Shootout,
    get_relation,
)

__all__ = [
    "DELETE_ORDER",
    "LOAD_ORDER",
    "RELATIONS",
    "FormerName",
    "FormerNameFrameSchema",
    "Goalscorer",
    "GoalscorerFrameSchema",
    "Relation",
    "RelationDef",
    "Result",
    "ResultFrameSchema",
    "Row",
    "SchemaRegistry",
    "Shootout",
    "ShootoutFrameSchema",
    "get_relation",
]
