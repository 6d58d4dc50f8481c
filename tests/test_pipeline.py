"""Tests for the staging pipeline."""

from collections.abc import Callable
from pathlib import Path

import pytest

from footstage.config import build_config
from footstage.errors import IOFailure, IssueKind
from footstage.etl.pipeline import StagingPipeline, StoreSnapshot, run_staging
from footstage.schemas.relations import Relation
from footstage.store.core import ReferentialStore
from footstage.store.persistence import SnapshotFormat

RESULTS_HEADER = [
    "date",
    "home_team",
    "away_team",
    "home_score",
    "away_score",
    "tournament",
    "city",
    "country",
    "neutral",
]
GOALSCORERS_HEADER = ["date", "home_team", "away_team", "team", "scorer", "minute", "own_goal", "penalty"]

# --- Test Fixtures ---


@pytest.fixture
def pipeline(memory_store: ReferentialStore) -> StagingPipeline:
    """Pipeline over an empty in-memory store."""
    return StagingPipeline(memory_store)


# --- Tests ---


class TestFirstMatchScenario:
    """End-to-end checks on the first recorded international."""

    def test_result_then_goal(
        self, pipeline: StagingPipeline, write_csv: Callable[..., Path]
    ) -> None:
        """A result followed by its goal yields one row in each relation."""
        results = write_csv(
            "results.csv",
            RESULTS_HEADER,
            [["1872-03-30", "Scotland", "England", "0", "0", "Friendly", "Glasgow", "Scotland", "FALSE"]],
        )
        goals = write_csv(
            "goalscorers.csv",
            GOALSCORERS_HEADER,
            [["1872-03-30", "Scotland", "England", "Scotland", "A. Rhind", "23", "FALSE", "FALSE"]],
        )

        assert pipeline.load_relation("results", results) == 1
        assert pipeline.load_relation("goalscorers", goals) == 1

        snapshot = pipeline.snapshot()
        assert snapshot.results_count == 1
        assert snapshot.goalscorers_count == 1

        # Same goal against an empty results table
        pipeline.clear_all()
        assert pipeline.load_relation("goalscorers", goals) == 0
        report = pipeline.reports[Relation.GOALSCORER]
        assert pipeline.snapshot().goalscorers_count == 0
        assert report.count(IssueKind.REFERENTIAL_ERROR) == 1

    def test_non_numeric_score(
        self, pipeline: StagingPipeline, write_csv: Callable[..., Path]
    ) -> None:
        """A score of 'abc' is an invalid value and leaves results empty."""
        results = write_csv(
            "results.csv",
            RESULTS_HEADER,
            [["1872-03-30", "Scotland", "England", "abc", "0", "Friendly", "Glasgow", "Scotland", "FALSE"]],
        )

        report = pipeline.stage(Relation.RESULT, results)

        assert report.count(IssueKind.INVALID_VALUE) == 1
        assert report.issues[0].line == 2
        assert pipeline.snapshot().results_count == 0

    def test_blank_tournament(
        self, pipeline: StagingPipeline, write_csv: Callable[..., Path]
    ) -> None:
        """A blank required field is reported and the record skipped."""
        results = write_csv(
            "results.csv",
            RESULTS_HEADER,
            [
                ["1872-03-30", "Scotland", "England", "0", "0", "", "Glasgow", "Scotland", "FALSE"],
                ["1873-03-08", "England", "Scotland", "4", "2", "Friendly", "London", "England", "FALSE"],
            ],
        )

        report = pipeline.stage("results", results)

        assert report.inserted == 1
        assert report.skipped == 1
        assert report.issues[0].kind is IssueKind.MISSING_FIELDS
        assert report.issues[0].fields == ("tournament",)
        assert pipeline.store.get("results", ("1872-03-30", "Scotland", "England")) is None


class TestStagingPipeline:
    """Tests for multi-relation loading."""

    def test_load_all_orders_parents_first(
        self, pipeline: StagingPipeline, data_dir: Path
    ) -> None:
        """Dependents listed before parents still load after them."""
        inserted = pipeline.load_all(
            {
                "shootouts": data_dir / "shootouts.csv",
                "goalscorers": data_dir / "goalscorers.csv",
                "results": data_dir / "results.csv",
            }
        )

        assert list(inserted) == [Relation.RESULT, Relation.GOALSCORER, Relation.SHOOTOUT]
        assert inserted == {Relation.RESULT: 3, Relation.GOALSCORER: 3, Relation.SHOOTOUT: 1}
        assert pipeline.snapshot().former_names_count == 0

    def test_load_directory_skips_missing_files(
        self, pipeline: StagingPipeline, data_dir: Path
    ) -> None:
        """Sources that do not exist are skipped."""
        (data_dir / "shootouts.csv").unlink()
        config = build_config({"project": "test", "sources": {"root": str(data_dir)}})

        inserted = pipeline.load_directory(config)

        assert Relation.SHOOTOUT not in inserted
        assert inserted[Relation.FORMER_NAME] == 2

    def test_load_directory_without_sources(
        self, pipeline: StagingPipeline, tmp_path: Path
    ) -> None:
        """An empty source directory is an IO failure."""
        config = build_config({"project": "test", "sources": {"root": str(tmp_path / "none")}})
        with pytest.raises(IOFailure, match="No source files"):
            pipeline.load_directory(config)

    def test_unreadable_source_inserts_nothing(
        self, pipeline: StagingPipeline, tmp_path: Path
    ) -> None:
        """A missing file aborts the call before any insert."""
        with pytest.raises(IOFailure):
            pipeline.stage("results", tmp_path / "missing.csv")
        assert pipeline.snapshot().results_count == 0
        assert Relation.RESULT not in pipeline.reports

    def test_save_and_load(self, pipeline: StagingPipeline, data_dir: Path, tmp_path: Path) -> None:
        """The pipeline saves and restores through the persistence layer."""
        pipeline.load_all({"results": data_dir / "results.csv"})
        path, fmt = pipeline.save(tmp_path / "snap.json")
        assert fmt is SnapshotFormat.PORTABLE

        other = StagingPipeline(ReferentialStore.in_memory())
        report = other.load(path)

        assert report.relations[Relation.RESULT].restored == 3
        assert other.snapshot().results_count == 3


class TestStoreSnapshot:
    """Tests for StoreSnapshot."""

    def test_to_dict(self, populated_store: ReferentialStore) -> None:
        """Snapshots serialize counts and an ISO timestamp."""
        data = StoreSnapshot.of(populated_store).to_dict()

        assert data["results_count"] == 1
        assert data["goalscorers_count"] == 2
        assert data["shootouts_count"] == 1
        assert data["former_names_count"] == 1
        assert "T" in str(data["last_updated"])


class TestRunStaging:
    """Tests for the run_staging convenience function."""

    def test_run_staging_with_save(self, data_dir: Path, tmp_path: Path) -> None:
        """Staging every source and saving produces a portable snapshot."""
        config = build_config(
            {
                "project": "test",
                "sources": {"root": str(data_dir)},
                "snapshot": {"portable": True},
            }
        )
        target = tmp_path / "out" / "football.json"

        pipeline = run_staging(config, save_to=target)

        assert target.exists()
        assert set(pipeline.reports) == set(Relation)
        counts = pipeline.store.counts()
        assert counts[Relation.RESULT] == 3
        assert counts[Relation.GOALSCORER] == 3
