"""
Competition domain types used by the rank calculator.

Plain frozen dataclasses (no DB dependency), hashable so ranking results
can be memoized per input set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tabulator.shared.constants import (
    DEFAULT_TRIM_PERCENTAGE,
    Gender,
    RankingMethod,
)


@dataclass(frozen=True)
class Criterion:
    """Scored dimension of a segment."""

    id: str
    name: str
    max_score: float
    is_prejudged: bool = False
    description: str = ""
    weight: float = 1.0


@dataclass(frozen=True)
class Segment:
    """Competition phase ("Swimsuit", "Evening Gown") with ordered criteria."""

    id: str
    name: str
    criteria: tuple[Criterion, ...] = ()
    advancing_candidates: int = 0


@dataclass(frozen=True)
class Contestant:
    id: str
    name: str
    current_segment_id: str
    gender: Gender = Gender.UNSPECIFIED
    display_order: Optional[int] = None


@dataclass(frozen=True)
class Judge:
    id: str
    name: str
    access_code: str = ""


@dataclass(frozen=True)
class RankingConfig:
    """How a competition is ranked."""

    segments: tuple[Segment, ...] = ()
    separate_ranking_by_gender: bool = False
    method: RankingMethod = RankingMethod.AVG
    trim_percentage: float = DEFAULT_TRIM_PERCENTAGE

    def get_segment(self, segment_id: str) -> Segment | None:
        for segment in self.segments:
            if segment.id == segment_id:
                return segment
        return None

    def prejudged_criterion_ids(self) -> list[str]:
        """Criteria whose scores survive a competition reset."""
        return sorted({
            criterion.id
            for segment in self.segments
            for criterion in segment.criteria
            if criterion.is_prejudged
        })


@dataclass(frozen=True)
class CompetitionRoster:
    """Everything the ranking engine needs to know about a competition."""

    competition_id: int
    name: str
    config: RankingConfig
    contestants: tuple[Contestant, ...] = ()
    judges: tuple[Judge, ...] = ()

    def find_criterion(self, segment_id: str, criterion_id: str) -> Criterion | None:
        segment = self.config.get_segment(segment_id)
        if segment is None:
            return None
        for criterion in segment.criteria:
            if criterion.id == criterion_id:
                return criterion
        return None
