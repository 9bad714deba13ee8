"""
Shared test setup.

Points the application at a throwaway SQLite file before any tabulator
module creates its engine.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="tabulator-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/tabulator.db"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from tabulator.features.competitions.types import (  # noqa: E402
    Contestant,
    Criterion,
    Judge,
    RankingConfig,
    Segment,
)
from tabulator.shared.constants import Gender  # noqa: E402


@pytest.fixture
def two_criteria_config():
    """One segment with two criteria, max 10 each."""
    return RankingConfig(segments=(
        Segment(
            id="seg",
            name="Evening Gown",
            criteria=(
                Criterion(id="c1", name="Poise", max_score=10),
                Criterion(id="c2", name="Elegance", max_score=10),
            ),
        ),
    ))


@pytest.fixture
def two_judges():
    return [Judge(id="j1", name="Judge 1"), Judge(id="j2", name="Judge 2")]


@pytest.fixture
def contestants_ab():
    return [
        Contestant(id="A", name="Alice", current_segment_id="seg", gender=Gender.FEMALE),
        Contestant(id="B", name="Bea", current_segment_id="seg", gender=Gender.FEMALE),
    ]


@pytest.fixture
def scenario_scores():
    """Judge1: A=(8,9) B=(7,7); Judge2: A=(7,9) B=(7,8)."""
    return {
        "seg": {
            "A": {"j1": {"c1": 8, "c2": 9}, "j2": {"c1": 7, "c2": 9}},
            "B": {"j1": {"c1": 7, "c2": 7}, "j2": {"c1": 7, "c2": 8}},
        }
    }
