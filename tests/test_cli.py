"""
Tests for the tabulator command line.
"""

import asyncio

import pytest
from click.testing import CliRunner
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tabulator import cli as cli_module
from tabulator.db import session as session_module
from tabulator.features.competitions.models import Competition
from tabulator.features.scores.models import Score
from tabulator.models.base import Base

DOCUMENT = {
    "competitionSettings": {
        "segments": [
            {"id": "seg", "name": "Final", "criteria": [{"id": "c1", "name": "Overall", "maxScore": 10}]},
        ],
    },
    "contestants": [
        {"id": "A", "name": "Alice", "currentSegmentId": "seg"},
        {"id": "B", "name": "Bianca", "currentSegmentId": "seg"},
    ],
    "judges": [{"id": "j1", "name": "Judge 1"}],
}


@pytest.fixture
def local_db(tmp_path, monkeypatch):
    """Point the CLI at its own SQLite file; returns a seeding helper."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/cli.db")
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(session_module, "AsyncSessionLocal", session_factory)
    monkeypatch.setattr(session_module, "dispose_db", engine.dispose)

    def seed(*competitions):
        async def _seed():
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            async with session_factory() as db:
                for competition, scores in competitions:
                    db.add(competition)
                    await db.flush()
                    for contestant_id, value in scores.items():
                        db.add(Score(
                            competition_id=competition.id, segment_id="seg", contestant_id=contestant_id,
                            judge_id="j1", criterion_id="c1", score=value,
                        ))
                await db.commit()
            await engine.dispose()

        asyncio.run(_seed())

    yield seed
    asyncio.run(engine.dispose())


# =============================================================================
# rankings
# =============================================================================

class TestRankingsCommand:

    def test_defaults_to_active_competition(self, local_db):
        local_db(
            (Competition(name="Old Pageant", is_active=False, data=DOCUMENT), {"A": 2.0, "B": 3.0}),
            (Competition(name="Current Pageant", is_active=True, data=DOCUMENT), {"A": 9.0, "B": 7.0}),
        )

        result = CliRunner().invoke(cli_module.cli, ["rankings", "--segment-id", "seg"])

        assert result.exit_code == 0, result.output
        assert "Current Pageant" in result.output
        assert "Old Pageant" not in result.output
        assert result.output.index("Alice") < result.output.index("Bianca")
        assert "9.00" in result.output

    def test_explicit_competition(self, local_db):
        local_db(
            (Competition(name="Old Pageant", is_active=False, data=DOCUMENT), {"A": 2.0, "B": 3.0}),
        )

        result = CliRunner().invoke(cli_module.cli, ["rankings", "--competition-id", "1", "--segment-id", "seg"])

        assert result.exit_code == 0, result.output
        assert result.output.index("Bianca") < result.output.index("Alice")

    def test_no_active_competition(self, local_db):
        local_db()

        result = CliRunner().invoke(cli_module.cli, ["rankings", "--segment-id", "seg"])

        assert result.exit_code != 0
        assert "No active competition" in result.output

    def test_unknown_segment(self, local_db):
        local_db((Competition(name="Current Pageant", is_active=True, data=DOCUMENT), {}))

        result = CliRunner().invoke(cli_module.cli, ["rankings", "--segment-id", "nope"])

        assert result.exit_code != 0
        assert "Segment not found" in result.output
