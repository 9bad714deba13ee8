"""
Rankings API Routes

Endpoints for segment rankings and ranking cache diagnostics.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tabulator.db.session import get_async_db
from tabulator.features.competitions.repository import CompetitionRepository
from tabulator.features.competitions.schemas import CamelModel
from tabulator.features.rankings.service import ranking_service
from tabulator.shared.exceptions import CompetitionNotFoundError

router = APIRouter()


# === Pydantic schemas ===


class RankingEntrySchema(CamelModel):
    contestant_id: str
    aggregate_score: float
    rank: int
    group: str


class SegmentRankingsResponse(CamelModel):
    competition_id: int
    segment_id: str
    rankings: list[RankingEntrySchema] = []
    judge_scores: dict[str, dict[str, float]] = {}
    judge_rankings: dict[str, dict[str, int]] = {}
    total_scores: dict[str, float] = {}
    avg_scores: dict[str, float] = {}
    criteria_averages: dict[str, dict[str, float]] = {}
    last_updated: datetime


class CacheStatusSchema(CamelModel):
    competition_id: int
    last_updated: datetime


# === Endpoints ===


@router.get(
    "/rankings/{competition_id}/segments/{segment_id}",
    response_model=SegmentRankingsResponse,
)
async def get_segment_rankings(
    competition_id: int,
    segment_id: str,
    force_refresh: bool = Query(False, alias="forceRefresh"),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Rankings and breakdown of one segment.

    Served from the ranking cache; forceRefresh=true refetches the scores.
    """
    try:
        roster = await CompetitionRepository(db).load_roster(competition_id)
    except CompetitionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if roster.config.get_segment(segment_id) is None:
        raise HTTPException(status_code=404, detail=f"Segment not found: {segment_id}")

    data, breakdown = await ranking_service.get_segment_rankings(
        roster, segment_id, force_refresh=force_refresh
    )

    return SegmentRankingsResponse(
        competition_id=competition_id,
        segment_id=segment_id,
        rankings=[
            RankingEntrySchema(
                contestant_id=entry.contestant_id,
                aggregate_score=entry.aggregate_score,
                rank=entry.rank,
                group=entry.group,
            )
            for entry in breakdown.rankings.values()
        ],
        judge_scores=breakdown.judge_scores,
        judge_rankings=breakdown.judge_rankings,
        total_scores=breakdown.total_scores,
        avg_scores=breakdown.avg_scores,
        criteria_averages=breakdown.criteria_averages,
        last_updated=data.last_updated,
    )


@router.get("/rankings/cache", response_model=list[CacheStatusSchema])
async def get_cache_status():
    """Competitions currently held in the ranking cache."""
    return [
        CacheStatusSchema(**entry)
        for entry in ranking_service.cache.get_cache_status()
    ]


@router.delete("/rankings/{competition_id}/cache")
async def invalidate_cache(competition_id: int):
    """Drop the cached rankings of a competition."""
    ranking_service.invalidate_ranking_cache(competition_id)
    return {"success": True, "competitionId": competition_id}
