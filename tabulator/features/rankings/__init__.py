"""
Rankings module.

Usage:
    from tabulator.features.rankings import compute_rankings, get_ranking_scores

    data = await get_ranking_scores(competition_id)
    rankings = data.rankings_for(contestants, judges, segment_id, config)

Available components:
- compute_rankings / assign_competition_ranks: pure rank calculation
- compute_breakdown: per-judge and per-criterion detail
- RankingCache / RankingData: coalescing snapshot cache with memoized results
- RankingService: cache invalidated by score events
"""
from .calculator import RankingEntry, assign_competition_ranks, compute_rankings
from .breakdown import RankingBreakdown, compute_breakdown
from .cache import RankingCache, RankingData
from .service import (
    RankingService,
    get_ranking_scores,
    invalidate_ranking_cache,
    ranking_service,
)

__all__ = [
    "RankingEntry",
    "assign_competition_ranks",
    "compute_rankings",
    "RankingBreakdown",
    "compute_breakdown",
    "RankingCache",
    "RankingData",
    "RankingService",
    "get_ranking_scores",
    "invalidate_ranking_cache",
    "ranking_service",
]
