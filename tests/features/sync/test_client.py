"""
Tests for ScoresClient (aiohttp session mocked).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tabulator.features.ledger import ScoreKey
from tabulator.features.sync import ScoresClient
from tabulator.shared.exceptions import SnapshotFetchError

ROWS = [
    {"segmentId": "seg", "criterionId": "c1", "contestantId": "A", "judgeId": "j1", "score": 8.5,
     "updatedAt": "2026-03-01T10:00:00"},
]


def _response(status: int, body=None, etag=None):
    """Async context manager yielding a fake aiohttp response."""
    resp = MagicMock()
    resp.status = status
    resp.headers = {"ETag": etag} if etag else {}
    resp.json = AsyncMock(return_value=body)

    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=resp)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


@pytest.fixture
def session():
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.fixture
def client(session):
    client = ScoresClient(base_url="http://scores.test/", timeout=5)
    client._session = session
    return client


# =============================================================================
# Tests
# =============================================================================

class TestFetchSnapshot:

    async def test_returns_snapshot(self, client, session):
        session.get = MagicMock(return_value=_response(200, ROWS, etag='"abc"'))

        snapshot = await client.fetch_snapshot(3)

        assert snapshot.competition_id == 3
        assert snapshot.get(ScoreKey("seg", "A", "j1", "c1")) == 8.5
        url = session.get.call_args.args[0]
        kwargs = session.get.call_args.kwargs
        assert url == "http://scores.test/api/v1/scores"
        assert kwargs["params"] == {"competitionId": "3"}
        assert "If-None-Match" not in kwargs["headers"]

    async def test_sends_etag_and_handles_304(self, client, session):
        session.get = MagicMock(side_effect=[
            _response(200, ROWS, etag='"abc"'),
            _response(304, etag='"abc"'),
        ])

        await client.fetch_snapshot(3)
        result = await client.fetch_snapshot(3)

        assert result is None
        assert session.get.call_args.kwargs["headers"] == {"If-None-Match": '"abc"'}

    async def test_forget_drops_etag(self, client, session):
        session.get = MagicMock(side_effect=[
            _response(200, ROWS, etag='"abc"'),
            _response(200, ROWS, etag='"abc"'),
        ])

        await client.fetch_snapshot(3)
        client.forget(3)
        await client.fetch_snapshot(3)

        assert "If-None-Match" not in session.get.call_args.kwargs["headers"]

    async def test_error_status_raises(self, client, session):
        session.get = MagicMock(return_value=_response(500, {"detail": "database unavailable"}))

        with pytest.raises(SnapshotFetchError) as exc_info:
            await client.fetch_snapshot(3)

        assert exc_info.value.status == 500
        assert exc_info.value.detail == "database unavailable"

    async def test_unexpected_body_raises(self, client, session):
        session.get = MagicMock(return_value=_response(200, {"rows": ROWS}))

        with pytest.raises(SnapshotFetchError):
            await client.fetch_snapshot(3)

    async def test_close(self, client, session):
        await client.close()

        session.close.assert_awaited_once()
        assert client._session is None
