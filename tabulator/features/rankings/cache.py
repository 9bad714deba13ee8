"""
Ranking cache.

Holds one score snapshot per competition and memoizes rank calculations
on top of it. Entries have no TTL: they live until invalidate(), clear()
or a forced refresh. Concurrent reads of a competition that is being
fetched share that fetch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Sequence

from tabulator.features.competitions.types import Contestant, Judge, RankingConfig
from tabulator.features.ledger import LedgerSnapshot

from .breakdown import RankingBreakdown, compute_breakdown
from .calculator import RankingEntry, compute_rankings

logger = logging.getLogger(__name__)

Fetcher = Callable[[int], Awaitable[LedgerSnapshot]]


@dataclass(eq=False)
class RankingData:
    """Cached snapshot of a competition plus memoized calculations."""

    scores: LedgerSnapshot
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _rankings: dict = field(default_factory=dict, repr=False)
    _breakdowns: dict = field(default_factory=dict, repr=False)

    def rankings_for(
        self,
        contestants: Sequence[Contestant],
        judges: Iterable[Judge],
        segment_id: str,
        config: RankingConfig,
    ) -> dict[str, RankingEntry]:
        """compute_rankings over this snapshot, memoized per input set."""
        key = (segment_id, tuple(contestants), tuple(judges), config)
        if key not in self._rankings:
            self._rankings[key] = compute_rankings(key[1], key[2], self.scores, segment_id, config)
        return self._rankings[key]

    def breakdown_for(
        self,
        contestants: Sequence[Contestant],
        judges: Iterable[Judge],
        segment_id: str,
        config: RankingConfig,
    ) -> RankingBreakdown:
        """compute_breakdown over this snapshot, memoized per input set."""
        key = (segment_id, tuple(contestants), tuple(judges), config)
        if key not in self._breakdowns:
            self._breakdowns[key] = compute_breakdown(key[1], key[2], self.scores, segment_id, config)
        return self._breakdowns[key]


class RankingCache:
    """
    Per-competition snapshot cache with request coalescing.

    Concurrent gets share one outstanding fetch per competition, with one
    exception: invalidate() detaches the running fetch (its waiters still get
    its result, which is not stored), so a get() after the invalidation
    starts a second fetch while the stale one may still be running. At most
    one fetch per competition is ever current.

    Usage:
        cache = RankingCache(fetcher=load_snapshot)
        data = await cache.get(competition_id)
        rankings = data.rankings_for(contestants, judges, segment_id, config)
        cache.invalidate(competition_id)
    """

    def __init__(self, fetcher: Fetcher):
        self._fetcher = fetcher
        self._entries: dict[int, RankingData] = {}
        self._pending: dict[int, asyncio.Task] = {}
        # Bumped on invalidation; a fetch only stores if its generation is current
        self._generations: dict[int, int] = {}

    async def get(self, competition_id: int, force_refresh: bool = False) -> RankingData:
        """
        Cached data for a competition, fetching it if needed.

        Args:
            competition_id: Competition ID
            force_refresh: Ignore the cached entry and fetch again

        Raises:
            Whatever the fetcher raises; every waiter of a failed fetch
            receives the same exception.
        """
        if not force_refresh:
            entry = self._entries.get(competition_id)
            if entry is not None:
                return entry

        task = self._pending.get(competition_id)
        if task is None:
            generation = self._generations.get(competition_id, 0)
            task = asyncio.get_running_loop().create_task(self._fetch(competition_id, generation))
            self._pending[competition_id] = task
            task.add_done_callback(lambda t: self._release(competition_id, t))
        else:
            logger.debug(f"Joining in-flight ranking fetch for competition {competition_id}")

        return await asyncio.shield(task)

    def invalidate(self, competition_id: int) -> bool:
        """
        Drop the cached entry of a competition.

        A fetch in flight keeps running for its waiters but its result is
        not stored.

        Returns:
            True if an entry or a pending fetch was dropped
        """
        self._generations[competition_id] = self._generations.get(competition_id, 0) + 1
        had_entry = self._entries.pop(competition_id, None) is not None
        had_pending = self._pending.pop(competition_id, None) is not None
        if had_entry or had_pending:
            logger.debug(f"Invalidated ranking cache for competition {competition_id}")
        return had_entry or had_pending

    def clear(self):
        """Drop every entry."""
        for competition_id in set(self._entries) | set(self._pending):
            self.invalidate(competition_id)

    def get_cache_status(self) -> list[dict]:
        """Cached competitions with their last update time, by id."""
        return [
            {"competition_id": competition_id, "last_updated": entry.last_updated}
            for competition_id, entry in sorted(self._entries.items())
        ]

    def __contains__(self, competition_id: object) -> bool:
        return competition_id in self._entries

    # =========================================================================
    # Internals
    # =========================================================================

    async def _fetch(self, competition_id: int, generation: int) -> RankingData:
        try:
            snapshot = await self._fetcher(competition_id)
        except Exception as e:
            logger.error(f"Ranking fetch for competition {competition_id} failed: {e}")
            raise

        data = RankingData(scores=snapshot)
        if self._generations.get(competition_id, 0) == generation:
            self._entries[competition_id] = data
        else:
            logger.debug(f"Competition {competition_id} invalidated during fetch, result not cached")
        return data

    def _release(self, competition_id: int, task: asyncio.Task):
        if self._pending.get(competition_id) is task:
            del self._pending[competition_id]
        # Waiters may all have been cancelled; mark the exception retrieved
        if not task.cancelled():
            task.exception()
