"""
Tests for LedgerPoller.
"""

import asyncio

import pytest

from tabulator.features.ledger import LedgerSnapshot, ScoreKey
from tabulator.features.sync import LedgerPoller, SyncMode
from tabulator.shared.constants import SCORE_UPDATED, SCORES_RESET
from tabulator.shared.events import EventChannel, ScoreUpdated, ScoresReset

KEY_1 = ScoreKey("seg", "A", "j1", "c1")
KEY_2 = ScoreKey("seg", "A", "j1", "c2")
KEY_3 = ScoreKey("seg", "B", "j1", "c1")
KEY_PRE = ScoreKey("seg", "B", "j1", "pre")


class ScriptedFetcher:
    """Returns queued results in order; repeats the last one when exhausted."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.gate = asyncio.Event()
        self.gate.set()

    async def __call__(self, competition_id: int):
        self.calls += 1
        await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def _snapshot(values: dict) -> LedgerSnapshot:
    return LedgerSnapshot(competition_id=1, values=values)


async def _wait_until(predicate, timeout: float = 2.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(_poll(), timeout)


BASE = {KEY_1: 8.0, KEY_2: 9.0, KEY_3: 7.0}


# =============================================================================
# Manual refresh
# =============================================================================

class TestRefresh:

    async def test_first_fetch_fills_ledger(self):
        poller = LedgerPoller(1, ScriptedFetcher(_snapshot(BASE)), interval=60)

        outcome = await poller.refresh()

        assert outcome.mode == SyncMode.FULL
        assert poller.ledger.snapshot().fingerprint == _snapshot(BASE).fingerprint
        assert poller.status.last_update is not None
        assert poller.last_snapshot is not None

    async def test_later_fetch_is_selective(self):
        fetcher = ScriptedFetcher(_snapshot(BASE), _snapshot({**BASE, KEY_2: 9.5}))
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.refresh()

        outcome = await poller.refresh()

        assert outcome.mode == SyncMode.SELECTIVE
        assert [c.key for c in outcome.changes] == [KEY_2]
        assert poller.ledger.get(KEY_2) == 9.5
        assert len(poller.history) == 4

    async def test_not_modified_leaves_ledger(self):
        fetcher = ScriptedFetcher(_snapshot(BASE), None)
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.refresh()
        mutations = []
        poller.ledger.subscribe(mutations.append)

        outcome = await poller.refresh()

        assert outcome.mode == SyncMode.NOOP
        assert mutations == []

    async def test_failure_keeps_last_snapshot_and_error(self):
        error = ConnectionError("offline")
        fetcher = ScriptedFetcher(_snapshot(BASE), error, _snapshot({**BASE, KEY_1: 1.0}))
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.refresh()
        before = poller.last_snapshot

        with pytest.raises(ConnectionError):
            await poller.refresh()

        assert poller.status.error is error
        assert poller.last_snapshot is before
        assert poller.ledger.get(KEY_1) == 8.0
        assert poller.status.is_updating is False

        await poller.refresh()
        assert poller.status.error is None
        assert poller.ledger.get(KEY_1) == 1.0

    async def test_refresh_during_fetch_is_skipped(self):
        fetcher = ScriptedFetcher(_snapshot(BASE))
        fetcher.gate.clear()
        poller = LedgerPoller(1, fetcher, interval=60)

        first = asyncio.ensure_future(poller.refresh())
        await _wait_until(lambda: fetcher.calls == 1)

        assert poller.status.is_updating is True
        assert await poller.refresh() is None

        fetcher.gate.set()
        assert (await first).mode == SyncMode.FULL
        assert fetcher.calls == 1

    async def test_sync_callback(self):
        outcomes = []
        poller = LedgerPoller(1, ScriptedFetcher(_snapshot(BASE)), interval=60, on_sync=outcomes.append)

        await poller.refresh()
        await poller.refresh()

        assert [o.mode for o in outcomes] == [SyncMode.FULL]

    async def test_server_reset_replaces_ledger(self):
        fetcher = ScriptedFetcher(_snapshot({**BASE, KEY_PRE: 6.0}), _snapshot({KEY_PRE: 6.0}))
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.refresh()

        outcome = await poller.refresh()

        assert outcome.mode == SyncMode.FULL
        assert outcome.changes == ()
        assert poller.ledger.keys_for() == [KEY_PRE]

    async def test_single_server_deletion_is_reflected(self):
        remaining = {k: v for k, v in BASE.items() if k != KEY_3}
        fetcher = ScriptedFetcher(_snapshot(BASE), _snapshot(remaining))
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.refresh()

        outcome = await poller.refresh()

        assert outcome.changed
        assert poller.ledger.get(KEY_3) is None
        assert poller.ledger.snapshot().fingerprint == _snapshot(remaining).fingerprint


# =============================================================================
# Polling loop
# =============================================================================

class TestLoop:

    async def test_start_fetches_immediately(self):
        fetcher = ScriptedFetcher(_snapshot(BASE))
        poller = LedgerPoller(1, fetcher, interval=60)

        await poller.start()
        await _wait_until(lambda: len(poller.ledger) == 3)

        assert poller.status.is_polling is True
        await poller.stop()
        assert poller.status.is_polling is False

    async def test_error_does_not_stop_loop(self):
        fetcher = ScriptedFetcher(RuntimeError("500"), _snapshot(BASE))
        poller = LedgerPoller(1, fetcher, interval=0.01)

        await poller.start()
        await _wait_until(lambda: len(poller.ledger) == 3)
        await poller.stop()

        assert fetcher.calls >= 2
        assert poller.status.error is None

    async def test_hidden_view_is_not_polled(self):
        fetcher = ScriptedFetcher(_snapshot(BASE))
        poller = LedgerPoller(1, fetcher, interval=0.01)
        poller.set_visible(False)

        await poller.start()
        await asyncio.sleep(0.05)
        assert fetcher.calls == 0

        poller.set_visible(True)
        await _wait_until(lambda: fetcher.calls >= 1)
        await poller.stop()

    async def test_becoming_visible_fetches_at_once(self):
        fetcher = ScriptedFetcher(_snapshot(BASE))
        poller = LedgerPoller(1, fetcher, interval=60)
        await poller.start()
        await _wait_until(lambda: fetcher.calls == 1)

        poller.set_visible(False)
        poller.set_visible(True)
        await _wait_until(lambda: fetcher.calls == 2)

        assert poller.status.visible is True
        await poller.stop()


# =============================================================================
# Push events
# =============================================================================

class TestAttach:

    @pytest.fixture
    async def attached(self):
        channel = EventChannel()
        poller = LedgerPoller(1, ScriptedFetcher(_snapshot({**BASE, KEY_PRE: 6.0})), interval=60)
        await poller.refresh()
        poller.attach(channel)
        yield poller, channel
        await poller.stop()
        await channel.close()

    async def test_deletion_event_removes_leaf(self, attached):
        poller, channel = attached

        channel.publish(SCORE_UPDATED, ScoreUpdated(1, "seg", "A", "j1", "c1", deleted=True))
        await channel.join()

        assert poller.ledger.get(KEY_1) is None

    async def test_update_event_sets_leaf(self, attached):
        poller, channel = attached

        channel.publish(SCORE_UPDATED, ScoreUpdated(1, "seg", "A", "j1", "c2", score=4.0))
        await channel.join()

        assert poller.ledger.get(KEY_2) == 4.0

    async def test_other_competition_ignored(self, attached):
        poller, channel = attached

        channel.publish(SCORE_UPDATED, ScoreUpdated(2, "seg", "A", "j1", "c1", deleted=True))
        await channel.join()

        assert poller.ledger.get(KEY_1) == 8.0

    async def test_reset_keeps_preserved_criteria(self, attached):
        poller, channel = attached

        channel.publish(SCORES_RESET, ScoresReset(1, deleted_count=3, preserved_criterion_ids=("pre",)))
        await channel.join()

        assert poller.ledger.keys_for() == [KEY_PRE]

    async def test_stop_detaches(self, attached):
        poller, channel = attached

        await poller.stop()

        assert channel.subscriber_count(SCORE_UPDATED) == 0
