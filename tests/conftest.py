"""Pytest configuration and shared fixtures."""

import csv
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest
import structlog

from footstage.schemas.relations import FormerName, Goalscorer, Result, Shootout
from footstage.store.core import ReferentialStore

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
GOALSCORERS_HEADER = [
    "date",
    "home_team",
    "away_team",
    "team",
    "scorer",
    "minute",
    "own_goal",
    "penalty",
]
SHOOTOUTS_HEADER = ["date", "home_team", "away_team", "winner", "first_shooter"]
FORMER_NAMES_HEADER = ["current", "former", "start_date", "end_date"]

CsvWriter = Callable[[str, Sequence[str], Sequence[Sequence[str]]], Path]


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_csv(tmp_path: Path) -> CsvWriter:
    """Return a helper that writes a CSV file with a header row."""

    def _write(name: str, header: Sequence[str], rows: Sequence[Sequence[str]]) -> Path:
        path = tmp_path / name
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def data_dir(write_csv: CsvWriter, tmp_path: Path) -> Path:
    """Write a small but complete set of source CSVs and return their directory."""
    write_csv(
        "results.csv",
        RESULTS_HEADER,
        [
            ["1872-03-30", "Scotland", "England", "0", "0", "Friendly", "Glasgow", "Scotland", "FALSE"],
            ["1873-03-08", "England", "Scotland", "4", "2", "Friendly", "London", "England", "FALSE"],
            ["1982-07-05", "Germany", "France", "3", "3", "FIFA World Cup", "Seville", "Spain", "TRUE"],
        ],
    )
    write_csv(
        "goalscorers.csv",
        GOALSCORERS_HEADER,
        [
            ["1873-03-08", "England", "Scotland", "England", "William Kenyon-Slaney", "1", "FALSE", "FALSE"],
            ["1873-03-08", "England", "Scotland", "Scotland", "Henry Renny-Tailyour", "", "FALSE", "FALSE"],
            ["1982-07-05", "Germany", "France", "France", "Marius Trésor", "92", "FALSE", "FALSE"],
        ],
    )
    write_csv(
        "shootouts.csv",
        SHOOTOUTS_HEADER,
        [["1982-07-05", "Germany", "France", "Germany", "France"]],
    )
    write_csv(
        "former_names.csv",
        FORMER_NAMES_HEADER,
        [
            ["Benin", "Dahomey", "1960-01-01", "1975-11-30"],
            ["DR Congo", "Zaïre", "1971-10-27", "1997-05-17"],
        ],
    )
    return tmp_path


@pytest.fixture
def scotland_england() -> Result:
    """The first international match on record."""
    return Result(
        date="1872-03-30",
        home_team="Scotland",
        away_team="England",
        home_goals=0,
        away_goals=0,
        tournament="Friendly",
        city="Glasgow",
        country="Scotland",
        neutral=False,
    )


@pytest.fixture
def rhind_goal() -> Goalscorer:
    """A goalscorer row referencing the Scotland v England match."""
    return Goalscorer(
        date="1872-03-30",
        home_team="Scotland",
        away_team="England",
        scorer="A. Rhind",
        minute=23,
        own_goal=False,
        penalty=False,
    )


@pytest.fixture
def memory_store() -> Iterator[ReferentialStore]:
    """Create an empty in-memory store."""
    store = ReferentialStore.in_memory()
    yield store
    store.close()


@pytest.fixture
def populated_store(
    memory_store: ReferentialStore, scotland_england: Result, rhind_goal: Goalscorer
) -> ReferentialStore:
    """In-memory store with one row in every relation (and a repeated goal)."""
    memory_store.insert("results", scotland_england)
    memory_store.insert("goalscorers", rhind_goal)
    memory_store.insert("goalscorers", rhind_goal)
    memory_store.insert(
        "shootouts",
        Shootout(date="1872-03-30", home_team="Scotland", away_team="England", winner="Scotland"),
    )
    memory_store.insert(
        "former_names",
        FormerName(
            current_name="Benin",
            former_name="Dahomey",
            start_date="1960-01-01",
            end_date="1975-11-30",
        ),
    )
    return memory_store


@pytest.fixture
def config_file(tmp_path: Path, data_dir: Path) -> Path:
    """Write a pipeline config pointing at ``data_dir`` with a durable store."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "project: international-football\n"
        "store:\n"
        f"  path: {tmp_path / 'output' / 'football.sqlite'}\n"
        "sources:\n"
        f"  root: {data_dir}\n"
        "logging:\n"
        "  level: WARNING\n",
        encoding="utf-8",
    )
    return path
