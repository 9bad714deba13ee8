"""
Unified constants for competitions, rankings and score events.

This module provides a single source of truth for enum values that travel
over the wire (competition documents, API payloads, event topics).
"""

from enum import Enum


class Gender(str, Enum):
    """
    Contestant gender.

    Used as the partition key when rankings are separated by gender.
    Competition documents may omit it; missing values map to UNSPECIFIED.
    """
    MALE = "Male"
    FEMALE = "Female"
    UNSPECIFIED = "Unspecified"


class RankingMethod(str, Enum):
    """
    How judge scores are turned into a contestant's aggregate.

    AVG, MEDIAN and TRIMMED combine the judges per criterion and sum over
    criteria. WEIGHTED averages the per-criterion means by criterion weight.
    AVG_RANK, RANK_AVG_RANK and BORDA work on places instead of scores.
    """
    AVG = "avg"
    MEDIAN = "median"
    TRIMMED = "trimmed"
    WEIGHTED = "weighted"
    AVG_RANK = "avg-rank"
    RANK_AVG_RANK = "rank-avg-rank"
    BORDA = "borda"


# Methods whose aggregate is a place: lower ranks higher
RANK_BASED_METHODS = frozenset({RankingMethod.AVG_RANK, RankingMethod.RANK_AVG_RANK})


# Group name used when rankings are not separated by gender
ALL_CONTESTANTS_GROUP = "all"

# Default share of scores trimmed for RankingMethod.TRIMMED (both ends total)
DEFAULT_TRIM_PERCENTAGE = 20.0

# Score values are stored and compared with this many decimals
SCORE_DECIMALS = 2


# =============================================================================
# Event topics
# =============================================================================

SCORE_UPDATED = "score-updated"
SCORES_RESET = "scores-reset"
