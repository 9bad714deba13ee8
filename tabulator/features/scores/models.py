"""
Score model.

One row per (competition, segment, contestant, judge, criterion). Writes
are upserts against the unique constraint, so a resubmission replaces the
previous value and the last write to arrive wins.
"""

from datetime import datetime
from sqlalchemy import Column, String, Float, DateTime, Integer, ForeignKey, UniqueConstraint, Index

from tabulator.models.base import Base


class Score(Base):
    """A single judge's score for one criterion of one contestant."""

    __tablename__ = "scores"
    __table_args__ = (
        UniqueConstraint(
            "competition_id", "segment_id", "contestant_id", "judge_id", "criterion_id",
            name="uq_score_key",
        ),
        Index("ix_scores_competition_segment", "competition_id", "segment_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    competition_id = Column(Integer, ForeignKey("competitions.id", ondelete="CASCADE"), nullable=False)

    # Score key (ids from the competition document)
    segment_id = Column(String(64), nullable=False)
    contestant_id = Column(String(64), nullable=False)
    judge_id = Column(String(64), nullable=False)
    criterion_id = Column(String(64), nullable=False)

    score = Column(Float, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return (
            f"<Score {self.competition_id}:{self.segment_id}/{self.contestant_id}"
            f"/{self.judge_id}/{self.criterion_id} = {self.score}>"
        )
