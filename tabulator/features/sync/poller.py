"""
Live view poller.

Each viewing client owns one LedgerPoller: a loop that fetches the score
snapshot of its competition on a fixed interval, diffs it against the last
known snapshot and applies only the changed leaves to its ledger.

Usage:
    poller = LedgerPoller(competition_id, fetcher=client.fetch_snapshot)
    await poller.start()
    poller.set_visible(False)   # view hidden: polling suspended
    poller.set_visible(True)    # fetches immediately, then resumes
    await poller.refresh()      # manual refresh
    await poller.stop()
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from tabulator.config import settings
from tabulator.features.ledger import LedgerSnapshot, ScoreKey, ScoreLedger
from tabulator.shared.constants import SCORE_UPDATED, SCORES_RESET
from tabulator.shared.events import EventChannel, ScoreUpdated, ScoresReset

from .detector import LeafChange, SyncMode, SyncOutcome, apply_changes, detect_changes

logger = logging.getLogger(__name__)

# Returns None when the snapshot has not changed since the last fetch (HTTP 304)
SnapshotFetcher = Callable[[int], Awaitable[Optional[LedgerSnapshot]]]

# Number of recent leaf changes kept for display
CHANGE_HISTORY_SIZE = 50


@dataclass
class PollingStatus:
    is_polling: bool = False
    is_updating: bool = False
    visible: bool = True
    last_update: Optional[datetime] = None
    error: Optional[Exception] = None


class LedgerPoller:
    """
    Polling loop keeping one ScoreLedger in sync with the server.

    A tick either completes or records its error, and the next tick is
    always scheduled. There is no retry inside a tick.
    """

    def __init__(
        self,
        competition_id: int,
        fetcher: SnapshotFetcher,
        ledger: Optional[ScoreLedger] = None,
        interval: Optional[float] = None,
        bulk_ratio: Optional[float] = None,
        on_sync: Optional[Callable[[SyncOutcome], None]] = None,
    ):
        self.competition_id = competition_id
        self.ledger = ledger if ledger is not None else ScoreLedger(competition_id)
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.bulk_ratio = bulk_ratio if bulk_ratio is not None else settings.bulk_replace_ratio
        self.status = PollingStatus()
        self.history: deque[LeafChange] = deque(maxlen=CHANGE_HISTORY_SIZE)

        self._fetcher = fetcher
        self._on_sync = on_sync
        self._snapshot: Optional[LedgerSnapshot] = None
        self._in_flight = False
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._visible = asyncio.Event()
        self._visible.set()
        self._wake = asyncio.Event()
        self._detach: list[Callable[[], None]] = []

    @property
    def last_snapshot(self) -> Optional[LedgerSnapshot]:
        return self._snapshot

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self):
        """Start the polling loop; the first fetch happens immediately."""
        if self._running:
            return

        self._running = True
        self.status.is_polling = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Polling competition {self.competition_id} every {self.interval}s")

    async def stop(self):
        """Stop polling and detach from any event channel."""
        self._running = False
        self.status.is_polling = False
        for detach in self._detach:
            detach()
        self._detach = []
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Polling competition {self.competition_id} stopped")

    def set_visible(self, visible: bool):
        """Suspend polling while hidden; fetch at once when shown again."""
        if visible == self.status.visible:
            return
        self.status.visible = visible
        if visible:
            self._visible.set()
            self._wake.set()
        else:
            self._visible.clear()

    async def refresh(self) -> Optional[SyncOutcome]:
        """
        Fetch and apply now.

        Returns:
            The sync outcome, or None if a fetch was already in flight

        Raises:
            Whatever the fetcher raised; the error is also kept in status
        """
        if self._in_flight:
            logger.debug(f"Refresh of competition {self.competition_id} skipped, fetch in flight")
            return None
        return await self._sync()

    # =========================================================================
    # Push events
    # =========================================================================

    def attach(self, channel: EventChannel) -> Callable[[], None]:
        """
        Apply score events of this competition straight to the ledger.

        Deletions never show up in snapshot diffs, so a poller that should
        reflect them must be attached to the channel that announces them.

        Returns:
            Callable that detaches the poller
        """
        unsubscribers = [
            channel.subscribe(SCORE_UPDATED, self._on_score_event),
            channel.subscribe(SCORES_RESET, self._on_score_event),
        ]

        def detach():
            for unsubscribe in unsubscribers:
                unsubscribe()

        self._detach.append(detach)
        return detach

    def _on_score_event(self, event):
        if event.competition_id != self.competition_id:
            return

        if isinstance(event, ScoresReset):
            preserved = set(event.preserved_criterion_ids)
            for key in self.ledger.keys_for():
                if key.criterion_id not in preserved:
                    self.ledger.delete(key)
            return

        if isinstance(event, ScoreUpdated):
            key = ScoreKey(event.segment_id, event.contestant_id, event.judge_id, event.criterion_id)
            if event.deleted:
                self.ledger.delete(key)
            elif event.score is not None:
                self.ledger.set(key, event.score)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run_loop(self):
        """Main polling loop."""
        while self._running:
            await self._visible.wait()

            try:
                if not self._in_flight:
                    await self._sync()
            except Exception as e:
                logger.error(f"Poll of competition {self.competition_id} failed: {e}")

            # Wait for the next tick, or less if the view became visible again
            self._wake.clear()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def _sync(self) -> SyncOutcome:
        self._in_flight = True
        self.status.is_updating = True
        try:
            snapshot = await self._fetcher(self.competition_id)
        except Exception as e:
            self.status.error = e
            raise
        finally:
            self._in_flight = False
            self.status.is_updating = False

        self.status.error = None
        self.status.last_update = datetime.now(timezone.utc)

        if snapshot is None:
            return SyncOutcome(SyncMode.NOOP)

        previous = self._snapshot if self._snapshot is not None else self.ledger.snapshot()
        changes = detect_changes(previous, snapshot)
        outcome = apply_changes(self.ledger, changes, snapshot, self.bulk_ratio)
        self._snapshot = snapshot
        self.history.extend(changes)

        if outcome.changed:
            logger.debug(
                f"Competition {self.competition_id}: {len(changes)} changes applied ({outcome.mode.value})"
            )
            if self._on_sync:
                try:
                    self._on_sync(outcome)
                except Exception as e:
                    logger.error(f"Sync callback failed: {e}")
        return outcome
