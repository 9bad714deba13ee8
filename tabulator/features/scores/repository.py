"""
Score repository.

Persistence gateway for judge scores. Writes are single-statement upserts
(INSERT ... ON CONFLICT DO UPDATE) so concurrent resubmissions of the same
key never produce duplicates.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tabulator.shared.repository import BaseRepository
from .models import Score

logger = logging.getLogger(__name__)

_KEY_COLUMNS = ["competition_id", "segment_id", "contestant_id", "judge_id", "criterion_id"]

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class ScoreRepository(BaseRepository[Score]):
    """Repository for Score operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Score)

    async def list_scores(
        self,
        competition_id: int,
        segment_id: Optional[str] = None,
    ) -> list[Score]:
        """
        Get all scores of a competition, ordered by score key.

        Args:
            competition_id: Competition ID
            segment_id: Restrict to one segment

        Returns:
            List of Score rows
        """
        query = select(Score).where(Score.competition_id == competition_id)
        if segment_id is not None:
            query = query.where(Score.segment_id == segment_id)
        query = query.order_by(
            Score.segment_id, Score.contestant_id, Score.judge_id, Score.criterion_id
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_score(
        self,
        competition_id: int,
        segment_id: str,
        contestant_id: str,
        judge_id: str,
        criterion_id: str,
    ) -> Score | None:
        result = await self.db.execute(
            select(Score)
            .where(
                Score.competition_id == competition_id,
                Score.segment_id == segment_id,
                Score.contestant_id == contestant_id,
                Score.judge_id == judge_id,
                Score.criterion_id == criterion_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_score(
        self,
        competition_id: int,
        segment_id: str,
        contestant_id: str,
        judge_id: str,
        criterion_id: str,
        value: float,
    ) -> Score:
        """
        Insert a score or replace the value stored for its key.

        Caller is responsible for committing.

        Returns:
            The stored Score row
        """
        now = datetime.utcnow()
        key = {
            "competition_id": competition_id,
            "segment_id": segment_id,
            "contestant_id": contestant_id,
            "judge_id": judge_id,
            "criterion_id": criterion_id,
        }

        insert = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(Score).values(**key, score=float(value), created_at=now, updated_at=now)
            stmt = stmt.on_conflict_do_update(
                index_elements=_KEY_COLUMNS,
                set_={"score": stmt.excluded.score, "updated_at": stmt.excluded.updated_at},
            )
            await self.db.execute(stmt)
        else:
            existing = await self.get_score(**key)
            if existing is None:
                self.db.add(Score(**key, score=float(value), created_at=now, updated_at=now))
            else:
                existing.score = float(value)
                existing.updated_at = now
            await self.db.flush()

        return await self.get_score(**key)

    async def delete_score(
        self,
        competition_id: int,
        segment_id: str,
        contestant_id: str,
        judge_id: str,
        criterion_id: str,
    ) -> bool:
        """
        Delete a single score.

        Returns:
            True if a row was deleted
        """
        result = await self.db.execute(
            delete(Score).where(
                Score.competition_id == competition_id,
                Score.segment_id == segment_id,
                Score.contestant_id == contestant_id,
                Score.judge_id == judge_id,
                Score.criterion_id == criterion_id,
            )
        )
        return result.rowcount > 0

    async def reset_scores(
        self,
        competition_id: int,
        preserve_criterion_ids: Iterable[str] = (),
    ) -> int:
        """
        Delete all scores of a competition except pre-judged criteria.

        Args:
            competition_id: Competition ID
            preserve_criterion_ids: Criteria whose scores are kept

        Returns:
            Number of deleted rows
        """
        preserved = sorted(set(preserve_criterion_ids))
        stmt = delete(Score).where(Score.competition_id == competition_id)
        if preserved:
            stmt = stmt.where(Score.criterion_id.not_in(preserved))
        result = await self.db.execute(stmt)
        logger.info(
            f"Reset competition {competition_id}: deleted {result.rowcount} scores, "
            f"preserved criteria {preserved}"
        )
        return result.rowcount
