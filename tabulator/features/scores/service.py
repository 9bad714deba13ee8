"""
Score Service

Validates score writes against the competition document, commits them
through ScoreRepository and announces every mutation on the score event
channel so cached rankings can be invalidated.
"""

import logging
import math
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tabulator.features.competitions.repository import CompetitionRepository
from tabulator.features.competitions.types import CompetitionRoster
from tabulator.features.ledger import LedgerSnapshot, content_hash
from tabulator.shared.constants import SCORE_UPDATED, SCORES_RESET
from tabulator.shared.events import EventChannel, ScoreUpdated, ScoresReset, score_events
from tabulator.shared.exceptions import ScoreValidationError
from .models import Score
from .repository import ScoreRepository
from .schemas import ScoreRow

logger = logging.getLogger(__name__)


def compute_etag(rows: list[dict]) -> str:
    """Quoted fingerprint of a serialized row list."""
    return f'"{content_hash(rows)}"'


class ScoreService:
    """
    Score writes and reads for the HTTP layer.

    One instance per request (bound to that request's session).
    """

    def __init__(self, db: AsyncSession, channel: Optional[EventChannel] = None):
        self.db = db
        self.scores = ScoreRepository(db)
        self.competitions = CompetitionRepository(db)
        self.channel = channel if channel is not None else score_events

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_rows(self, competition_id: int) -> tuple[list[dict], str]:
        """
        Serialized score rows of a competition with their ETag.

        Returns:
            Tuple of (camelCase rows, quoted ETag)
        """
        scores = await self.scores.list_scores(competition_id)
        rows = [
            ScoreRow.from_model(score).model_dump(by_alias=True, mode="json")
            for score in scores
        ]
        return rows, compute_etag(rows)

    async def load_snapshot(self, competition_id: int) -> LedgerSnapshot:
        scores = await self.scores.list_scores(competition_id)
        return snapshot_from_models(competition_id, scores)

    # =========================================================================
    # Writes
    # =========================================================================

    async def submit_score(
        self,
        competition_id: int,
        segment_id: str,
        contestant_id: str,
        judge_id: str,
        criterion_id: str,
        value: float,
    ) -> Score:
        """
        Validate, upsert and commit a score, then publish SCORE_UPDATED.

        Raises:
            CompetitionNotFoundError: Unknown competition
            ScoreValidationError: Unknown criterion or value out of range
        """
        roster = await self.competitions.load_roster(competition_id)
        self._validate(roster, segment_id, criterion_id, value)

        score = await self.scores.upsert_score(
            competition_id, segment_id, contestant_id, judge_id, criterion_id, value
        )
        await self.db.commit()

        self.channel.publish(SCORE_UPDATED, ScoreUpdated(
            competition_id=competition_id,
            segment_id=segment_id,
            contestant_id=contestant_id,
            judge_id=judge_id,
            criterion_id=criterion_id,
            score=score.score,
        ))
        return score

    async def remove_score(
        self,
        competition_id: int,
        segment_id: str,
        contestant_id: str,
        judge_id: str,
        criterion_id: str,
    ) -> bool:
        """Delete a score; publishes a deletion event if a row was removed."""
        deleted = await self.scores.delete_score(
            competition_id, segment_id, contestant_id, judge_id, criterion_id
        )
        await self.db.commit()

        if deleted:
            self.channel.publish(SCORE_UPDATED, ScoreUpdated(
                competition_id=competition_id,
                segment_id=segment_id,
                contestant_id=contestant_id,
                judge_id=judge_id,
                criterion_id=criterion_id,
                deleted=True,
            ))
        return deleted

    async def reset_competition(self, competition_id: int) -> tuple[int, list[str]]:
        """
        Delete all scores except those of pre-judged criteria.

        Returns:
            Tuple of (deleted count, preserved criterion ids)
        """
        roster = await self.competitions.load_roster(competition_id)
        preserved = roster.config.prejudged_criterion_ids()

        deleted_count = await self.scores.reset_scores(competition_id, preserved)
        await self.db.commit()

        self.channel.publish(SCORES_RESET, ScoresReset(
            competition_id=competition_id,
            deleted_count=deleted_count,
            preserved_criterion_ids=tuple(preserved),
        ))
        return deleted_count, preserved

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate(roster: CompetitionRoster, segment_id: str, criterion_id: str, value: float):
        if not math.isfinite(value) or value < 0:
            raise ScoreValidationError(f"Score must be a non-negative number, got {value}")

        # Documents without segments carry no criteria to check against
        if not roster.config.segments:
            return

        criterion = roster.find_criterion(segment_id, criterion_id)
        if criterion is None:
            raise ScoreValidationError(
                f"Unknown criterion {criterion_id!r} in segment {segment_id!r}"
            )
        if value > criterion.max_score:
            raise ScoreValidationError(
                f"Score {value} exceeds max {criterion.max_score} for {criterion.name or criterion.id}"
            )


def snapshot_from_models(competition_id: int, scores: list[Score]) -> LedgerSnapshot:
    """Build a ledger snapshot from ORM rows."""
    return LedgerSnapshot.from_rows(
        competition_id,
        (
            {
                "segment_id": s.segment_id,
                "contestant_id": s.contestant_id,
                "judge_id": s.judge_id,
                "criterion_id": s.criterion_id,
                "score": s.score,
            }
            for s in scores
        ),
    )
