"""
Ranking breakdown for results screens.

Alongside the rankings, reports how each judge scored and ranked the
contestants, and the per-criterion averages behind each aggregate.
All numbers are rounded to 2 decimals.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from tabulator.features.competitions.types import Contestant, Judge, RankingConfig
from tabulator.shared.formulas import mean, round_score

from .calculator import (
    RankingEntry,
    ScoreSource,
    assign_competition_ranks,
    compute_rankings,
    contestant_scores,
    criterion_scores,
    judge_values,
    scorable_criteria,
    segment_contestants,
    segment_scores,
)


@dataclass(frozen=True)
class RankingBreakdown:
    rankings: dict[str, RankingEntry] = field(default_factory=dict)
    # judge → contestant → total of that judge's scores
    judge_scores: dict[str, dict[str, float]] = field(default_factory=dict)
    # judge → contestant → rank by that judge's totals
    judge_rankings: dict[str, dict[str, int]] = field(default_factory=dict)
    # contestant → sum of judge totals
    total_scores: dict[str, float] = field(default_factory=dict)
    # contestant → mean judge total over judges who scored
    avg_scores: dict[str, float] = field(default_factory=dict)
    # contestant → criterion → mean over judges who scored it
    criteria_averages: dict[str, dict[str, float]] = field(default_factory=dict)


def compute_breakdown(
    contestants: Sequence[Contestant],
    judges: Iterable[Judge],
    scores: ScoreSource,
    segment_id: str,
    config: RankingConfig,
) -> RankingBreakdown:
    """
    Rankings plus per-judge and per-criterion detail for one segment.

    Returns an empty breakdown for unknown segments or segments without
    criteria.
    """
    judges = list(judges)
    criteria = scorable_criteria(config, segment_id)
    if not criteria:
        return RankingBreakdown()

    rankings = compute_rankings(contestants, judges, scores, segment_id, config)
    members = segment_contestants(contestants, segment_id)
    by_contestant = segment_scores(scores, segment_id)
    judge_ids = sorted({judge.id for judge in judges})

    judge_scores: dict[str, dict[str, float]] = {judge_id: {} for judge_id in judge_ids}
    scored_by: dict[str, list[float]] = {c.id: [] for c in members}

    for contestant in members:
        by_judge = contestant_scores(by_contestant, contestant.id)
        for judge_id in judge_ids:
            values = judge_values(by_judge, judge_id, criteria)
            total = round_score(math.fsum(values))
            judge_scores[judge_id][contestant.id] = total
            if values:
                scored_by[contestant.id].append(total)

    criteria_averages = {
        contestant.id: {
            criterion.id: round_score(mean(criterion_scores(
                contestant_scores(by_contestant, contestant.id), judge_ids, criterion
            )))
            for criterion in criteria
        }
        for contestant in members
    }

    return RankingBreakdown(
        rankings=rankings,
        judge_scores=judge_scores,
        judge_rankings={
            judge_id: assign_competition_ranks(totals)
            for judge_id, totals in judge_scores.items()
        },
        total_scores={cid: round_score(math.fsum(totals)) for cid, totals in scored_by.items()},
        avg_scores={cid: round_score(mean(totals)) for cid, totals in scored_by.items()},
        criteria_averages=criteria_averages,
    )
