"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
File names and store locations never appear as literals in processing code.
"""

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from footstage.schemas.relations import Relation, get_relation

if TYPE_CHECKING:
    from footstage.store.core import ReferentialStore


class StoreConfig(BaseModel):
    """Store backend configuration."""

    model_config = ConfigDict(frozen=True)

    path: Path | None = Field(
        default=None,
        description="SQLite file for a durable store; None keeps the store in memory",
    )

    @property
    def is_durable(self) -> bool:
        return self.path is not None


class SourcesConfig(BaseModel):
    """Source CSV locations.

    All file paths are relative to root. Use resolve() to get full paths.
    """

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default=Path("./data"), description="Directory holding the CSV files")
    results: Path = Field(default=Path(get_relation(Relation.RESULT).source_file))
    goalscorers: Path = Field(default=Path(get_relation(Relation.GOALSCORER).source_file))
    shootouts: Path = Field(default=Path(get_relation(Relation.SHOOTOUT).source_file))
    former_names: Path = Field(default=Path(get_relation(Relation.FORMER_NAME).source_file))

    def resolve(self, relation: Relation | str) -> Path:
        """Resolve a relation's source file against root."""
        return self.root / getattr(self, Relation(relation).value)

    def resolve_all(self) -> dict[Relation, Path]:
        """Source path for every relation."""
        return {relation: self.resolve(relation) for relation in Relation}


class SnapshotConfig(BaseModel):
    """Default snapshot target for export/restore."""

    model_config = ConfigDict(frozen=True)

    path: Path | None = Field(default=None, description="Snapshot file path")
    portable: bool = Field(
        default=False,
        description="Always write the portable JSON form, even for durable stores",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Ensure level is a standard logging level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v!r}"
            raise ValueError(msg)
        return level


class PipelineConfig(BaseModel):
    """Complete staging pipeline configuration."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'international-football')")

    store: StoreConfig = Field(default_factory=StoreConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def open_store(self) -> "ReferentialStore":
        """Build the store for the configured backend."""
        from footstage.store.core import ReferentialStore

        if self.store.path is None:
            return ReferentialStore.in_memory()
        return ReferentialStore.open(self.store.path)
