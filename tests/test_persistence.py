"""Tests for snapshot save and restore."""

import json
import sqlite3
from pathlib import Path

import pytest

from footstage.errors import FootstageError, IOFailure, SnapshotFormatError
from footstage.schemas.relations import Goalscorer, Relation, Result
from footstage.store.core import ReferentialStore
from footstage.store.persistence import (
    SnapshotFormat,
    detect_format,
    export_document,
    load_store,
    save_store,
)

# --- Test Fixtures ---


@pytest.fixture
def legacy_db(tmp_path: Path) -> Path:
    """SQLite file written with the earlier camelCase schema."""
    path = tmp_path / "legacy.sqlite"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE results (
            date TEXT, homeTeam TEXT, awayTeam TEXT, homeGoals INTEGER,
            awayGoals INTEGER, tournament TEXT, city TEXT, country TEXT, neutral INTEGER
        );
        CREATE TABLE goalscorers (
            date TEXT, homeTeam TEXT, awayTeam TEXT, scorer TEXT,
            minute INTEGER, ownGoal INTEGER, penalty INTEGER
        );
        CREATE TABLE formerNames (name TEXT, formerName TEXT, startDate TEXT, endDate TEXT);
        INSERT INTO results VALUES
            ('1872-03-30', 'Scotland', 'England', 0, 0, 'Friendly', 'Glasgow', 'Scotland', 0);
        INSERT INTO goalscorers VALUES
            ('1872-03-30', 'Scotland', 'England', 'A. Rhind', NULL, 0, 1);
        INSERT INTO formerNames VALUES ('Benin', 'Dahomey', '1960-01-01', '1975-11-30');
        """
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def original_db(tmp_path: Path) -> Path:
    """SQLite file with the first on-disk layout, which had no former-name dates."""
    path = tmp_path / "original.sqlite"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE results (
            date TEXT NOT NULL,
            homeTeam TEXT NOT NULL,
            awayTeam TEXT NOT NULL,
            homeGoals INTEGER NOT NULL,
            awayGoals INTEGER NOT NULL,
            tournament TEXT NOT NULL,
            city TEXT,
            country TEXT,
            neutral INTEGER DEFAULT 0,
            PRIMARY KEY (date, homeTeam, awayTeam)
        );
        CREATE TABLE goalscorers (
            date TEXT NOT NULL,
            homeTeam TEXT NOT NULL,
            awayTeam TEXT NOT NULL,
            scorer TEXT NOT NULL,
            minute INTEGER NOT NULL,
            ownGoal INTEGER DEFAULT 0,
            penalty INTEGER DEFAULT 0,
            FOREIGN KEY (date, homeTeam, awayTeam) REFERENCES results(date, homeTeam, awayTeam)
        );
        CREATE TABLE shootouts (
            date TEXT NOT NULL,
            homeTeam TEXT NOT NULL,
            awayTeam TEXT NOT NULL,
            winner TEXT NOT NULL,
            PRIMARY KEY (date, homeTeam, awayTeam),
            FOREIGN KEY (date, homeTeam, awayTeam) REFERENCES results(date, homeTeam, awayTeam)
        );
        CREATE TABLE formerNames (
            name TEXT PRIMARY KEY,
            formerName TEXT NOT NULL
        );
        INSERT INTO results VALUES
            ('1872-03-30', 'Scotland', 'England', 0, 0, 'Friendly', 'Glasgow', 'Scotland', 0);
        INSERT INTO goalscorers VALUES
            ('1872-03-30', 'Scotland', 'England', 'A. Rhind', 44, 0, 0);
        INSERT INTO formerNames VALUES ('Benin', 'Dahomey');
        """
    )
    conn.commit()
    conn.close()
    return path


def _write_document(path: Path, document: dict) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


# --- Tests ---


class TestDetectFormat:
    """Tests for snapshot format detection."""

    def test_portable(self, tmp_path: Path) -> None:
        """JSON documents are detected after leading whitespace."""
        path = tmp_path / "snap.json"
        path.write_text('\n  {"results": []}', encoding="utf-8")
        assert detect_format(path) is SnapshotFormat.PORTABLE

    def test_native(self, legacy_db: Path) -> None:
        """SQLite files are detected by their header."""
        assert detect_format(legacy_db) is SnapshotFormat.NATIVE

    def test_unrecognised(self, tmp_path: Path) -> None:
        """Anything else is a format error."""
        path = tmp_path / "snap.csv"
        path.write_text("date,home_team\n", encoding="utf-8")
        with pytest.raises(SnapshotFormatError, match="Unrecognised"):
            detect_format(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Unreadable files raise IOFailure."""
        with pytest.raises(IOFailure):
            detect_format(tmp_path / "missing.json")


class TestPortableSnapshot:
    """Tests for the portable JSON form."""

    def test_in_memory_store_saves_portable(
        self, populated_store: ReferentialStore, tmp_path: Path
    ) -> None:
        """In-memory stores default to the portable form."""
        path, fmt = save_store(populated_store, tmp_path / "out" / "snap.json")

        assert fmt is SnapshotFormat.PORTABLE
        document = json.loads(path.read_text(encoding="utf-8"))
        assert set(document) == {"results", "goalscorers", "shootouts", "former_names"}
        assert document["results"][0]["home_team"] == "Scotland"
        assert document["results"][0]["neutral"] is False
        assert len(document["goalscorers"]) == 2

    def test_round_trip(self, populated_store: ReferentialStore, tmp_path: Path) -> None:
        """A saved snapshot restores to identical contents."""
        path, _ = save_store(populated_store, tmp_path / "snap.json")
        target = ReferentialStore.in_memory()

        report = load_store(target, path)

        assert report.format is SnapshotFormat.PORTABLE
        assert report.n_rejected == 0
        assert report.relations[Relation.GOALSCORER].restored == 2
        for relation in Relation:
            assert target.scan(relation) == populated_store.scan(relation)

    def test_reload_is_idempotent(self, populated_store: ReferentialStore, tmp_path: Path) -> None:
        """Loading the same snapshot twice leaves counts unchanged."""
        path, _ = save_store(populated_store, tmp_path / "snap.json")
        target = ReferentialStore.in_memory()

        load_store(target, path)
        report = load_store(target, path)

        assert target.counts() == populated_store.counts()
        assert report.relations[Relation.RESULT].restored == 0
        assert report.relations[Relation.RESULT].replaced == 1

    def test_restore_overwrites_by_key(
        self, populated_store: ReferentialStore, scotland_england: Result, tmp_path: Path
    ) -> None:
        """Restored rows replace existing rows with the same key."""
        path, _ = save_store(populated_store, tmp_path / "snap.json")
        target = ReferentialStore.in_memory()
        target.insert("results", Result(**{**scotland_england.as_dict(), "home_goals": 9}))

        load_store(target, path)

        assert target.get("results", ("1872-03-30", "Scotland", "England")) == scotland_england

    def test_orphans_are_rejected(self, tmp_path: Path) -> None:
        """Rows whose parent is absent from the snapshot are counted as rejected."""
        path = tmp_path / "snap.json"
        path.write_text(
            json.dumps(
                {
                    "results": [],
                    "goalscorers": [
                        {
                            "date": "1872-03-30",
                            "home_team": "Scotland",
                            "away_team": "England",
                            "scorer": "A. Rhind",
                            "minute": None,
                            "own_goal": False,
                            "penalty": False,
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )
        target = ReferentialStore.in_memory()

        report = load_store(target, path)

        assert report.relations[Relation.GOALSCORER].rejected == 1
        assert target.counts()[Relation.GOALSCORER] == 0

    def test_null_minute_survives(
        self, memory_store: ReferentialStore, scotland_england: Result, tmp_path: Path
    ) -> None:
        """Unknown minutes round-trip as None."""
        memory_store.insert("results", scotland_england)
        goal = Goalscorer(
            date="1872-03-30",
            home_team="Scotland",
            away_team="England",
            scorer="A. Rhind",
            minute=None,
            own_goal=False,
            penalty=False,
        )
        memory_store.insert("goalscorers", goal)
        path, _ = save_store(memory_store, tmp_path / "snap.json")

        target = ReferentialStore.in_memory()
        load_store(target, path)
        assert target.scan("goalscorers") == [goal]

    def test_malformed_json(self, tmp_path: Path) -> None:
        """Broken JSON is a format error."""
        path = tmp_path / "snap.json"
        path.write_text('{"results": [', encoding="utf-8")
        with pytest.raises(SnapshotFormatError):
            load_store(ReferentialStore.in_memory(), path)

    def test_invalid_rows(self, tmp_path: Path) -> None:
        """Rows that fail schema validation abort the restore."""
        path = tmp_path / "snap.json"
        path.write_text(
            json.dumps(
                {
                    "results": [
                        {
                            "date": "1872-03-30",
                            "home_team": "Scotland",
                            "away_team": "England",
                            "home_goals": "lots",
                            "away_goals": 0,
                            "tournament": "Friendly",
                            "city": "Glasgow",
                            "country": "Scotland",
                            "neutral": False,
                        }
                    ]
                }
            ),
            encoding="utf-8",
        )
        target = ReferentialStore.in_memory()
        with pytest.raises(SnapshotFormatError, match="results.*home_goals") as excinfo:
            load_store(target, path)

        assert isinstance(excinfo.value, FootstageError)
        assert sum(target.counts().values()) == 0

    def test_invalid_dependent_leaves_store_untouched(
        self, scotland_england: Result, tmp_path: Path
    ) -> None:
        """A bad relation after a good one aborts before any row is written."""
        path = _write_document(
            tmp_path / "snap.json",
            {
                "results": [scotland_england.as_dict()],
                "goalscorers": [
                    {
                        "date": "1872-03-30",
                        "home_team": "Scotland",
                        "away_team": "England",
                        "scorer": "A. Rhind",
                        "minute": "late",
                        "own_goal": False,
                        "penalty": False,
                    }
                ],
            },
        )
        target = ReferentialStore.in_memory()

        with pytest.raises(SnapshotFormatError, match="goalscorers"):
            load_store(target, path)

        assert target.counts()[Relation.RESULT] == 0

    def test_export_document_order(self, populated_store: ReferentialStore) -> None:
        """Documents list parents before dependents."""
        assert list(export_document(populated_store)) == [
            "results",
            "former_names",
            "goalscorers",
            "shootouts",
        ]


class TestNativeSnapshot:
    """Tests for the native SQLite form."""

    def test_durable_store_saves_native(
        self, tmp_path: Path, scotland_england: Result, rhind_goal: Goalscorer
    ) -> None:
        """Durable stores are copied as SQLite files and restore cleanly."""
        with ReferentialStore.open(tmp_path / "live.sqlite") as store:
            store.insert("results", scotland_england)
            store.insert("goalscorers", rhind_goal)
            path, fmt = save_store(store, tmp_path / "backup.sqlite")

        assert fmt is SnapshotFormat.NATIVE
        assert detect_format(path) is SnapshotFormat.NATIVE

        target = ReferentialStore.in_memory()
        report = load_store(target, path)
        assert report.format is SnapshotFormat.NATIVE
        assert target.scan("results") == [scotland_england]
        assert target.scan("goalscorers") == [rhind_goal]

    def test_durable_store_forced_portable(
        self, tmp_path: Path, scotland_england: Result
    ) -> None:
        """portable=True writes JSON even for a durable store."""
        with ReferentialStore.open(tmp_path / "live.sqlite") as store:
            store.insert("results", scotland_england)
            path, fmt = save_store(store, tmp_path / "snap.json", portable=True)

        assert fmt is SnapshotFormat.PORTABLE
        assert detect_format(path) is SnapshotFormat.PORTABLE

    def test_native_needs_durable_store(
        self, populated_store: ReferentialStore, tmp_path: Path
    ) -> None:
        """The native form cannot be produced from memory."""
        with pytest.raises(ValueError, match="durable"):
            save_store(populated_store, tmp_path / "snap.sqlite", portable=False)

    def test_legacy_schema(self, legacy_db: Path) -> None:
        """camelCase columns and the formerNames table are accepted."""
        target = ReferentialStore.in_memory()
        report = load_store(target, legacy_db)

        assert report.relations[Relation.RESULT].restored == 1
        assert Relation.SHOOTOUT not in report.relations
        goal = target.scan("goalscorers")[0]
        assert goal.minute is None
        assert goal.penalty is True
        former = target.scan("former_names")[0]
        assert former.current_name == "Benin"
        assert former.end_date == "1975-11-30"

    def test_original_layout(self, original_db: Path) -> None:
        """A formerNames table without dates restores with empty dates."""
        target = ReferentialStore.in_memory()
        report = load_store(target, original_db)

        assert report.n_rejected == 0
        assert report.relations[Relation.SHOOTOUT].restored == 0
        assert target.scan("goalscorers")[0].minute == 44
        former = target.scan("former_names")[0]
        assert former.current_name == "Benin"
        assert former.former_name == "Dahomey"
        assert former.start_date == ""
        assert former.end_date == ""

    def test_path_with_uri_characters(
        self, tmp_path: Path, scotland_england: Result
    ) -> None:
        """Snapshot paths containing '#', '?' or '%' are opened as given."""
        with ReferentialStore.open(tmp_path / "live.sqlite") as store:
            store.insert("results", scotland_england)
            path, _ = save_store(store, tmp_path / "run #1%20" / "backup?.sqlite")

        target = ReferentialStore.in_memory()
        report = load_store(target, path)

        assert report.format is SnapshotFormat.NATIVE
        assert target.counts()[Relation.RESULT] == 1
