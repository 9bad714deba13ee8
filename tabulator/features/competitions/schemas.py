"""
Competition document schemas.

Pydantic schemas for the camelCase competition document stored in
Competition.data, converted to the frozen domain types in types.py.
"""

import logging
import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tabulator.shared.constants import DEFAULT_TRIM_PERCENTAGE, Gender, RankingMethod

from .types import CompetitionRoster, Contestant, Criterion, Judge, RankingConfig, Segment

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Base schema accepting both camelCase and snake_case field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CriterionSchema(CamelModel):
    id: str
    name: str = ""
    description: str = ""
    max_score: float = 10.0
    is_prejudged: bool = False
    weight: float = 1.0

    @field_validator("weight", mode="before")
    @classmethod
    def default_weight(cls, v):
        """Missing, non-numeric or negative weights count as 1."""
        if v is None:
            return 1.0
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v) or v < 0:
            logger.warning(f"Invalid criterion weight {v!r}, using 1")
            return 1.0
        return v


class SegmentSchema(CamelModel):
    id: str
    name: str = ""
    advancing_candidates: int = Field(default=0, ge=0)
    criteria: List[CriterionSchema] = []


class RankingSchema(CamelModel):
    method: RankingMethod = RankingMethod.AVG
    trim_percentage: Optional[float] = None

    @field_validator("method", mode="before")
    @classmethod
    def fallback_method(cls, v):
        """Methods this engine does not implement fall back to the mean."""
        if isinstance(v, RankingMethod) or (isinstance(v, str) and v in {m.value for m in RankingMethod}):
            return v
        logger.warning(f"Unsupported ranking method {v!r}, using mean")
        return RankingMethod.AVG


class CompetitionSettingsSchema(CamelModel):
    name: str = ""
    separate_ranking_by_gender: bool = False
    segments: List[SegmentSchema] = []
    ranking: RankingSchema = RankingSchema()


class ContestantSchema(CamelModel):
    id: str
    name: str = ""
    gender: Gender = Gender.UNSPECIFIED
    current_segment_id: str = ""
    display_order: Optional[int] = None

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v):
        """Missing or unknown genders are unspecified."""
        if isinstance(v, str):
            for gender in Gender:
                if v.lower() == gender.value.lower():
                    return gender
        if isinstance(v, Gender):
            return v
        return Gender.UNSPECIFIED


class JudgeSchema(CamelModel):
    id: str
    name: str = ""
    access_code: str = ""


class CompetitionDocument(CamelModel):
    """Full competition document as stored by the admin screens."""

    competition_settings: CompetitionSettingsSchema = CompetitionSettingsSchema()
    contestants: List[ContestantSchema] = []
    judges: List[JudgeSchema] = []

    def to_roster(self, competition_id: int, name: str = "") -> CompetitionRoster:
        settings = self.competition_settings
        trim = settings.ranking.trim_percentage
        config = RankingConfig(
            segments=tuple(
                Segment(
                    id=segment.id,
                    name=segment.name,
                    advancing_candidates=segment.advancing_candidates,
                    criteria=tuple(
                        Criterion(
                            id=criterion.id,
                            name=criterion.name,
                            max_score=criterion.max_score,
                            is_prejudged=criterion.is_prejudged,
                            description=criterion.description,
                            weight=criterion.weight,
                        )
                        for criterion in segment.criteria
                    ),
                )
                for segment in settings.segments
            ),
            separate_ranking_by_gender=settings.separate_ranking_by_gender,
            method=settings.ranking.method,
            trim_percentage=trim if trim is not None else DEFAULT_TRIM_PERCENTAGE,
        )
        return CompetitionRoster(
            competition_id=competition_id,
            name=name or settings.name,
            config=config,
            contestants=tuple(
                Contestant(
                    id=c.id,
                    name=c.name,
                    gender=c.gender,
                    current_segment_id=c.current_segment_id,
                    display_order=c.display_order,
                )
                for c in self.contestants
            ),
            judges=tuple(
                Judge(id=j.id, name=j.name, access_code=j.access_code)
                for j in self.judges
            ),
        )
