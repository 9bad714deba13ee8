"""
Ranking Service

Wires the ranking cache to the score database and the score event
channel: every published score mutation invalidates the affected
competition, so the next read recomputes from fresh data.
"""

import logging
from typing import Callable, Optional

from tabulator.db.session import AsyncSessionLocal
from tabulator.features.competitions.types import CompetitionRoster
from tabulator.features.ledger import LedgerSnapshot
from tabulator.features.scores.repository import ScoreRepository
from tabulator.features.scores.service import snapshot_from_models
from tabulator.shared.constants import SCORE_UPDATED, SCORES_RESET
from tabulator.shared.events import EventChannel, score_events

from .breakdown import RankingBreakdown
from .cache import Fetcher, RankingCache, RankingData

logger = logging.getLogger(__name__)


async def load_snapshot(competition_id: int) -> LedgerSnapshot:
    """Fetch a competition's scores from the database."""
    async with AsyncSessionLocal() as db:
        scores = await ScoreRepository(db).list_scores(competition_id)
        return snapshot_from_models(competition_id, scores)


class RankingService:
    """
    Cached rankings kept fresh by score events.

    start() must be called from a running event loop (app lifespan).
    """

    def __init__(self, fetcher: Fetcher = load_snapshot, channel: Optional[EventChannel] = None):
        self.cache = RankingCache(fetcher)
        self.channel = channel if channel is not None else score_events
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def is_running(self) -> bool:
        return bool(self._unsubscribers)

    def start(self):
        """Subscribe to score events."""
        if self.is_running:
            return
        self._unsubscribers = [
            self.channel.subscribe(SCORE_UPDATED, self._on_score_event),
            self.channel.subscribe(SCORES_RESET, self._on_score_event),
        ]
        logger.info("Ranking service subscribed to score events")

    def stop(self):
        """Unsubscribe from score events and drop cached rankings."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.cache.clear()
        logger.info("Ranking service stopped")

    def _on_score_event(self, event):
        self.cache.invalidate(event.competition_id)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_ranking_scores(self, competition_id: int, force_refresh: bool = False) -> RankingData:
        return await self.cache.get(competition_id, force_refresh=force_refresh)

    def invalidate_ranking_cache(self, competition_id: Optional[int] = None):
        """Invalidate one competition, or everything when no id is given."""
        if competition_id is None:
            self.cache.clear()
        else:
            self.cache.invalidate(competition_id)

    async def get_segment_rankings(
        self,
        roster: CompetitionRoster,
        segment_id: str,
        force_refresh: bool = False,
    ) -> tuple[RankingData, RankingBreakdown]:
        """
        Rankings and breakdown of one segment.

        Returns:
            Tuple of (cached data, breakdown). The breakdown is empty when
            the segment is unknown or has no criteria.
        """
        data = await self.get_ranking_scores(roster.competition_id, force_refresh=force_refresh)
        breakdown = data.breakdown_for(
            roster.contestants, roster.judges, segment_id, roster.config
        )
        return data, breakdown


# Global service instance (started by the app lifespan)
ranking_service = RankingService()


async def get_ranking_scores(competition_id: int, force_refresh: bool = False) -> RankingData:
    """Cached score snapshot of a competition."""
    return await ranking_service.get_ranking_scores(competition_id, force_refresh)


def invalidate_ranking_cache(competition_id: Optional[int] = None):
    ranking_service.invalidate_ranking_cache(competition_id)
