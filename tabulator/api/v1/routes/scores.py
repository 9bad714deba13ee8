"""
Scores API Routes

Endpoints for listing, submitting, deleting and resetting judge scores.
Every write is announced on the score event channel.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tabulator.db.session import get_async_db
from tabulator.features.scores.schemas import ResetRequest, ResetResponse, ScoreRow, ScoreUpsertRequest
from tabulator.features.scores.service import ScoreService
from tabulator.shared.exceptions import CompetitionNotFoundError, ScoreValidationError

router = APIRouter()


@router.get("/scores")
async def list_scores(
    request: Request,
    competition_id: int = Query(..., alias="competitionId"),
    db: AsyncSession = Depends(get_async_db),
):
    """
    All scores of a competition.

    The response carries an ETag; a request whose If-None-Match matches it
    gets 304 Not Modified with no body.
    """
    rows, etag = await ScoreService(db).list_rows(competition_id)

    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag})

    return JSONResponse(content=rows, headers={"ETag": etag, "Cache-Control": "no-cache"})


@router.post("/scores", response_model=ScoreRow)
async def submit_score(
    request: ScoreUpsertRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create or replace a score."""
    service = ScoreService(db)
    try:
        score = await service.submit_score(
            request.competition_id,
            request.segment_id,
            request.contestant_id,
            request.judge_id,
            request.criterion_id,
            request.score,
        )
    except CompetitionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ScoreValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ScoreRow.from_model(score)


@router.delete("/scores")
async def delete_score(
    competition_id: int = Query(..., alias="competitionId"),
    segment_id: str = Query(..., alias="segmentId"),
    contestant_id: str = Query(..., alias="contestantId"),
    judge_id: str = Query(..., alias="judgeId"),
    criterion_id: str = Query(..., alias="criterionId"),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a single score."""
    deleted = await ScoreService(db).remove_score(
        competition_id, segment_id, contestant_id, judge_id, criterion_id
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Score not found")
    return {"success": True}


@router.post("/scores/reset", response_model=ResetResponse)
async def reset_scores(
    request: ResetRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Delete every score of a competition except pre-judged criteria."""
    try:
        deleted_count, preserved = await ScoreService(db).reset_competition(request.competition_id)
    except CompetitionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ResetResponse(deleted_count=deleted_count, preserved_criteria=preserved)
