"""
Staging pipeline implementation.

Entry points used by callers (CLI, services): load one relation or all
of them from CSV, take count snapshots, clear, save and restore.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from footstage.config.settings import PipelineConfig
from footstage.errors import IOFailure
from footstage.etl.loader import LoadReport, StagingLoader
from footstage.ingestion.base import RecordTransformer, read_records
from footstage.ingestion.transformers import transformer_for
from footstage.schemas.relations import LOAD_ORDER, Relation
from footstage.store.core import ReferentialStore
from footstage.store.persistence import RestoreReport, SnapshotFormat, load_store, save_store
from footstage.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Per-relation row counts at a point in time.

    Attributes:
        results_count: Rows in results.
        goalscorers_count: Rows in goalscorers.
        shootouts_count: Rows in shootouts.
        former_names_count: Rows in former_names.
        last_updated: When the snapshot was taken (UTC).
    """

    results_count: int
    goalscorers_count: int
    shootouts_count: int
    former_names_count: int
    last_updated: datetime

    @classmethod
    def of(cls, store: ReferentialStore) -> "StoreSnapshot":
        counts = store.counts()
        return cls(
            results_count=counts[Relation.RESULT],
            goalscorers_count=counts[Relation.GOALSCORER],
            shootouts_count=counts[Relation.SHOOTOUT],
            former_names_count=counts[Relation.FORMER_NAME],
            last_updated=datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, int | str]:
        return {
            "results_count": self.results_count,
            "goalscorers_count": self.goalscorers_count,
            "shootouts_count": self.shootouts_count,
            "former_names_count": self.former_names_count,
            "last_updated": self.last_updated.isoformat(),
        }


class StagingPipeline:
    """
    Staging pipeline over an explicitly constructed store.

    Results are always loaded before goalscorers and shootouts so their
    foreign keys can be satisfied.
    """

    def __init__(
        self,
        store: ReferentialStore,
        *,
        transformers: Mapping[Relation, RecordTransformer] | None = None,
    ) -> None:
        """
        Initialize staging pipeline.

        Args:
            store: Store to load into. Owned by the caller.
            transformers: Optional per-relation transformer overrides.
        """
        self.store = store
        self._transformers: dict[Relation, RecordTransformer] = {
            relation: transformer_for(relation) for relation in Relation
        }
        if transformers:
            self._transformers.update(transformers)
        self.reports: dict[Relation, LoadReport] = {}

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "StagingPipeline":
        """Build a pipeline with the store described by ``config``."""
        return cls(config.open_store())

    def loader_for(self, relation: Relation | str) -> StagingLoader:
        return StagingLoader(self.store, self._transformers[Relation(relation)])

    def stage(self, relation: Relation | str, source_path: Path) -> LoadReport:
        """
        Load one relation from a CSV file and return the full report.

        Args:
            relation: Relation to load.
            source_path: CSV file with a header row.

        Returns:
            LoadReport for the relation.

        Raises:
            IOFailure: If the source cannot be read. Nothing is inserted.
        """
        relation = Relation(relation)
        source_path = Path(source_path)

        with log_context(relation=relation.value):
            log.info("Staging relation", source=str(source_path))
            records = read_records(source_path)
            report = self.loader_for(relation).load(records, source=source_path)

        self.reports[relation] = report
        return report

    def load_relation(self, relation: Relation | str, source_path: Path) -> int:
        """Load one relation from CSV and return the number of inserted rows."""
        return self.stage(relation, source_path).inserted

    def load_all(self, sources: Mapping[Relation | str, Path]) -> dict[Relation, int]:
        """
        Load several relations in dependency order.

        Args:
            sources: Source CSV path per relation. Relations without a
                source are left untouched.

        Returns:
            Inserted row count per loaded relation.

        Raises:
            IOFailure: If a source cannot be read. Relations loaded
                before the failing one keep their rows.
        """
        by_relation = {Relation(k): Path(v) for k, v in sources.items()}
        inserted: dict[Relation, int] = {}

        log.info("Loading relations", relations=[r.value for r in by_relation])
        for relation in LOAD_ORDER:
            if relation in by_relation:
                inserted[relation] = self.load_relation(relation, by_relation[relation])

        log.info("Load complete", **{f"{r.value}_inserted": n for r, n in inserted.items()})
        return inserted

    def load_directory(self, config: PipelineConfig) -> dict[Relation, int]:
        """
        Load every configured source that exists on disk.

        Missing files are logged and skipped; unreadable ones still fail.
        """
        available: dict[Relation | str, Path] = {}
        for relation, path in config.sources.resolve_all().items():
            if path.exists():
                available[relation] = path
            else:
                log.warning("Source file not found, skipping", relation=relation.value, path=str(path))
        if not available:
            msg = f"No source files found under {config.sources.root}"
            raise IOFailure(msg, config.sources.root)
        return self.load_all(available)

    def snapshot(self) -> StoreSnapshot:
        """Current per-relation row counts with a timestamp."""
        return StoreSnapshot.of(self.store)

    def clear_all(self) -> None:
        """Delete all rows from the store."""
        self.store.clear_all()
        self.reports.clear()

    def save(self, path: Path, *, portable: bool | None = None) -> tuple[Path, SnapshotFormat]:
        """Persist the store (see ``save_store``)."""
        return save_store(self.store, Path(path), portable=portable)

    def load(self, path: Path) -> RestoreReport:
        """Restore a snapshot into the store (see ``load_store``)."""
        return load_store(self.store, Path(path))


def run_staging(config: PipelineConfig, *, save_to: Path | None = None) -> StagingPipeline:
    """
    Convenience function to stage every configured source.

    Args:
        config: Pipeline configuration.
        save_to: Optional snapshot path written after loading.

    Returns:
        The pipeline, with its store and per-relation reports.
    """
    pipeline = StagingPipeline.from_config(config)
    pipeline.load_directory(config)
    if save_to is not None:
        pipeline.save(save_to, portable=True if config.snapshot.portable else None)
    return pipeline
