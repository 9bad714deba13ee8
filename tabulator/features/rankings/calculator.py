"""
Rank calculator.

Pure functions: contestants, judges, raw scores and a ranking config in,
per-contestant aggregate score and rank out. Nothing here raises on bad
data; dangling references, malformed nesting and out-of-range scores are
dropped and logged.

Aggregate score of a contestant in a segment:
    avg / median / trimmed: sum over the segment's criteria of the
        per-criterion combined score, where the combined score is the mean
        (or median / trimmed mean) of the scores of the judges who scored
        that criterion. Judges who did not score a criterion are not counted
        in its denominator.
    weighted: per-criterion means averaged with the criterion weights.
    avg-rank: the contestant's place by mean aggregate, ties averaged.
    rank-avg-rank: mean over judges of the place each judge gives the
        contestant by that judge's own total, ties averaged.
    borda: sum over judges of (group size - place + 1).

Ranks use standard competition ranking: 90, 90, 80 → 1, 1, 3. For avg-rank
and rank-avg-rank lower aggregates rank higher, and contestants nobody
scored get 0 and rank last.
"""

import logging
import math
from dataclasses import dataclass
from itertools import groupby
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from tabulator.features.competitions.types import Contestant, Criterion, Judge, RankingConfig
from tabulator.features.ledger import LedgerSnapshot
from tabulator.shared.constants import ALL_CONTESTANTS_GROUP, RANK_BASED_METHODS, RankingMethod
from tabulator.shared.formulas import mean, median, round_score, trimmed_mean

logger = logging.getLogger(__name__)

# segment → contestant → judge → criterion → score
ScoreSource = Union[LedgerSnapshot, Mapping[str, Mapping[str, Mapping[str, Mapping[str, float]]]]]


@dataclass(frozen=True)
class RankingEntry:
    contestant_id: str
    aggregate_score: float
    rank: int
    group: str = ALL_CONTESTANTS_GROUP


# =============================================================================
# Input normalization
# =============================================================================

def _mapping(value: Any, where: str) -> Mapping:
    """value if it is a mapping; {} (logged) for anything else."""
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return value
    logger.warning(f"Expected a mapping of scores for {where}, got {type(value).__name__}, dropped")
    return {}


def segment_scores(scores: ScoreSource, segment_id: str) -> Mapping:
    """contestant → judge → criterion → score for one segment."""
    if isinstance(scores, LedgerSnapshot):
        return scores.as_nested().get(segment_id, {})
    scores = _mapping(scores, "competition")
    return _mapping(scores.get(segment_id), f"segment {segment_id!r}")


def contestant_scores(by_contestant: Mapping, contestant_id: str) -> Mapping:
    """judge → criterion → score for one contestant."""
    return _mapping(by_contestant.get(contestant_id), f"contestant {contestant_id!r}")


def scorable_criteria(config: RankingConfig, segment_id: str) -> list[Criterion]:
    """Criteria of the segment that can be aggregated; [] for unknown segments."""
    segment = config.get_segment(segment_id)
    if segment is None:
        return []

    criteria = []
    for criterion in segment.criteria:
        if criterion.max_score <= 0:
            logger.warning(
                f"Criterion {criterion.id!r} in segment {segment_id!r} has max score "
                f"{criterion.max_score}, excluded from ranking"
            )
            continue
        criteria.append(criterion)
    return criteria


def segment_contestants(contestants: Iterable[Contestant], segment_id: str) -> list[Contestant]:
    """Contestants currently in the segment, unique by id, sorted by id."""
    by_id = {c.id: c for c in contestants if c.current_segment_id == segment_id}
    return [by_id[cid] for cid in sorted(by_id)]


def valid_score(value, criterion: Criterion) -> Optional[float]:
    """The score as float, or None if it cannot count for the criterion."""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not 0 <= value <= criterion.max_score:
        logger.warning(
            f"Score {value!r} outside [0, {criterion.max_score}] for criterion "
            f"{criterion.id!r}, dropped"
        )
        return None
    return float(value)


def judge_values(by_judge: Mapping, judge_id: str, criteria: Sequence[Criterion]) -> list[float]:
    """Valid scores one judge gave one contestant, in criteria order."""
    judged = _mapping(by_judge.get(judge_id), f"judge {judge_id!r}")
    values = [valid_score(judged.get(criterion.id), criterion) for criterion in criteria]
    return [value for value in values if value is not None]


def criterion_scores(
    by_judge: Mapping[str, Mapping[str, float]],
    judge_ids: Sequence[str],
    criterion: Criterion,
) -> list[float]:
    """Valid scores for one criterion, one per judge that scored it."""
    values = []
    for judge_id in judge_ids:
        values.extend(judge_values(by_judge, judge_id, (criterion,)))
    return values


def combiner(config: RankingConfig) -> Callable[[Sequence[float]], float]:
    """Per-criterion combination function for the configured method."""
    if config.method == RankingMethod.MEDIAN:
        return median
    if config.method == RankingMethod.TRIMMED:
        return lambda values: trimmed_mean(values, config.trim_percentage)
    return mean


# =============================================================================
# Ranking
# =============================================================================

def assign_competition_ranks(
    scores_by_id: Mapping[str, float],
    lower_is_better: bool = False,
) -> dict[str, int]:
    """
    Standard competition ranking, highest score first (lowest if
    lower_is_better).

    Equal scores share a rank and consume rank slots:
    {a: 90, b: 90, c: 80} → {a: 1, b: 1, c: 3}

    Returned dict is ordered by (rank, id).
    """
    sign = 1 if lower_is_better else -1
    ordered = sorted(scores_by_id.items(), key=lambda item: (sign * item[1], item[0]))
    ranks: dict[str, int] = {}
    previous_score = None
    rank = 0
    for position, (item_id, score) in enumerate(ordered, start=1):
        if score != previous_score:
            rank = position
            previous_score = score
        ranks[item_id] = rank
    return ranks


def average_ranks(scores_by_id: Mapping[str, float]) -> dict[str, float]:
    """
    Places by score, highest first, tied scores sharing the mean of the
    places they cover.

    {a: 90, b: 90, c: 80} → {a: 1.5, b: 1.5, c: 3.0}
    """
    ordered = sorted(scores_by_id.items(), key=lambda item: (-item[1], item[0]))
    ranks: dict[str, float] = {}
    position = 1
    for _, tied in groupby(ordered, key=lambda item: item[1]):
        tied_ids = [item_id for item_id, _ in tied]
        place = position + (len(tied_ids) - 1) / 2
        for item_id in tied_ids:
            ranks[item_id] = place
        position += len(tied_ids)
    return ranks


def weighted_aggregate(by_judge: Mapping, judge_ids: Sequence[str], criteria: Sequence[Criterion]) -> float:
    """Weighted mean of the per-criterion means; 0 when all weights are 0."""
    total_weight = math.fsum(criterion.weight for criterion in criteria)
    if total_weight <= 0:
        return 0.0
    weighted = math.fsum(
        mean(criterion_scores(by_judge, judge_ids, criterion)) * criterion.weight
        for criterion in criteria
    )
    return round_score(weighted / total_weight)


def aggregate_scores(
    contestants: Sequence[Contestant],
    judges: Iterable[Judge],
    scores: ScoreSource,
    segment_id: str,
    config: RankingConfig,
) -> dict[str, float]:
    """
    Rounded score-based aggregate per contestant of the segment.

    Rank-based methods start from the mean aggregate.
    """
    criteria = scorable_criteria(config, segment_id)
    if not criteria:
        return {}

    judge_ids = sorted({judge.id for judge in judges})
    by_contestant = segment_scores(scores, segment_id)
    combine = combiner(config)

    aggregates = {}
    for contestant in segment_contestants(contestants, segment_id):
        by_judge = contestant_scores(by_contestant, contestant.id)
        if config.method == RankingMethod.WEIGHTED:
            aggregates[contestant.id] = weighted_aggregate(by_judge, judge_ids, criteria)
            continue
        per_criterion = [
            combine(criterion_scores(by_judge, judge_ids, criterion))
            for criterion in criteria
        ]
        aggregates[contestant.id] = round_score(math.fsum(per_criterion))
    return aggregates


def judge_places(
    member_ids: Sequence[str],
    by_contestant: Mapping,
    judge_ids: Sequence[str],
    criteria: Sequence[Criterion],
) -> dict[str, dict[str, float]]:
    """judge → contestant → place by that judge's total, over contestants the judge scored."""
    places = {}
    for judge_id in judge_ids:
        totals = {}
        for contestant_id in member_ids:
            values = judge_values(contestant_scores(by_contestant, contestant_id), judge_id, criteria)
            if values:
                totals[contestant_id] = round_score(math.fsum(values))
        places[judge_id] = average_ranks(totals)
    return places


def group_scores(
    member_ids: Sequence[str],
    aggregates: Mapping[str, float],
    by_contestant: Mapping,
    judge_ids: Sequence[str],
    criteria: Sequence[Criterion],
    method: RankingMethod,
) -> dict[str, float]:
    """
    Method score per contestant of one ranking group.

    For rank-based methods contestants without any valid score are left out.
    """
    if method == RankingMethod.AVG_RANK:
        scored = {
            contestant_id: aggregates[contestant_id]
            for contestant_id in member_ids
            if any(
                judge_values(contestant_scores(by_contestant, contestant_id), judge_id, criteria)
                for judge_id in judge_ids
            )
        }
        return {cid: round_score(place) for cid, place in average_ranks(scored).items()}

    if method == RankingMethod.RANK_AVG_RANK:
        places = judge_places(member_ids, by_contestant, judge_ids, criteria)
        result = {}
        for contestant_id in member_ids:
            received = [places[judge_id][contestant_id] for judge_id in judge_ids if contestant_id in places[judge_id]]
            if received:
                result[contestant_id] = round_score(mean(received))
        return result

    if method == RankingMethod.BORDA:
        places = judge_places(member_ids, by_contestant, judge_ids, criteria)
        points = {contestant_id: [] for contestant_id in member_ids}
        for by_place in places.values():
            for contestant_id, place in by_place.items():
                points[contestant_id].append(len(member_ids) - place + 1)
        return {contestant_id: round_score(math.fsum(p)) for contestant_id, p in points.items()}

    return {contestant_id: aggregates[contestant_id] for contestant_id in member_ids}


def compute_rankings(
    contestants: Sequence[Contestant],
    judges: Iterable[Judge],
    scores: ScoreSource,
    segment_id: str,
    config: RankingConfig,
) -> dict[str, RankingEntry]:
    """
    Rank the contestants of a segment.

    Args:
        contestants: Competition contestants (only those in the segment count)
        judges: Competition judges (scores of other judges are ignored)
        scores: Nested score mapping or LedgerSnapshot
        segment_id: Segment to rank
        config: Ranking configuration

    Returns:
        contestant_id → RankingEntry, ordered by (group, rank, contestant_id).
        Empty for unknown segments or segments without criteria.
    """
    judges = list(judges)
    aggregates = aggregate_scores(contestants, judges, scores, segment_id, config)
    if not aggregates:
        return {}

    criteria = scorable_criteria(config, segment_id)
    judge_ids = sorted({judge.id for judge in judges})
    by_contestant = segment_scores(scores, segment_id)
    lower_is_better = config.method in RANK_BASED_METHODS

    groups: dict[str, list[str]] = {}
    for contestant in segment_contestants(contestants, segment_id):
        group = contestant.gender.value if config.separate_ranking_by_gender else ALL_CONTESTANTS_GROUP
        groups.setdefault(group, []).append(contestant.id)

    rankings: dict[str, RankingEntry] = {}
    for group in sorted(groups):
        member_ids = groups[group]
        values = group_scores(member_ids, aggregates, by_contestant, judge_ids, criteria, config.method)
        ranks = assign_competition_ranks(values, lower_is_better=lower_is_better)

        # Unscored contestants under a rank-based method share the last place
        unscored = [cid for cid in member_ids if cid not in values]
        for contestant_id in unscored:
            ranks[contestant_id] = len(values) + 1

        for contestant_id, rank in ranks.items():
            rankings[contestant_id] = RankingEntry(
                contestant_id=contestant_id,
                aggregate_score=values.get(contestant_id, 0.0),
                rank=rank,
                group=group,
            )
    return rankings
