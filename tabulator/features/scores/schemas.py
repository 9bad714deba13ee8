"""
Pydantic schemas for score API requests and responses.

Field names travel as camelCase on the wire; both spellings are accepted
on input.
"""

import math
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from tabulator.features.competitions.schemas import CamelModel


class ScoreRow(CamelModel):
    """One stored score as returned by GET /scores."""

    segment_id: str
    criterion_id: str
    contestant_id: str
    judge_id: str
    score: float
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, score) -> "ScoreRow":
        return cls(
            segment_id=score.segment_id,
            criterion_id=score.criterion_id,
            contestant_id=score.contestant_id,
            judge_id=score.judge_id,
            score=score.score,
            updated_at=score.updated_at,
        )


class ScoreUpsertRequest(CamelModel):
    competition_id: int
    segment_id: str = Field(..., min_length=1)
    contestant_id: str = Field(..., min_length=1)
    judge_id: str = Field(..., min_length=1)
    criterion_id: str = Field(..., min_length=1)
    score: float

    @field_validator("score")
    @classmethod
    def finite_score(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("score must be a finite number")
        return v


class ResetRequest(CamelModel):
    competition_id: int


class ResetResponse(CamelModel):
    success: bool = True
    deleted_count: int
    preserved_criteria: List[str] = []
