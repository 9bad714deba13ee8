"""Immutable point-in-time copy of a competition's scores."""

from __future__ import annotations

import hashlib
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional

from .models import ScoreKey

logger = logging.getLogger(__name__)

NestedScores = dict[str, dict[str, dict[str, dict[str, float]]]]

# Row field names accepted by from_rows: API (camelCase) and DB (snake_case)
_ROW_FIELDS = {
    "segment_id": ("segmentId", "segment_id"),
    "contestant_id": ("contestantId", "contestant_id"),
    "judge_id": ("judgeId", "judge_id"),
    "criterion_id": ("criterionId", "criterion_id"),
}


def content_hash(payload: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of payload."""
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def nest(values: Iterable[tuple[ScoreKey, float]]) -> NestedScores:
    """Build segment → contestant → judge → criterion → score."""
    nested: NestedScores = {}
    for key, value in values:
        (
            nested.setdefault(key.segment_id, {})
            .setdefault(key.contestant_id, {})
            .setdefault(key.judge_id, {})
        )[key.criterion_id] = value
    return nested


def flatten(nested: Mapping[str, Mapping[str, Mapping[str, Mapping[str, float]]]]) -> dict[ScoreKey, float]:
    """Inverse of nest()."""
    flat: dict[ScoreKey, float] = {}
    for segment_id, contestants in nested.items():
        for contestant_id, judges in contestants.items():
            for judge_id, criteria in judges.items():
                for criterion_id, value in criteria.items():
                    flat[ScoreKey(segment_id, contestant_id, judge_id, criterion_id)] = value
    return flat


def _row_value(row: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if row.get(name) not in (None, ""):
            return row[name]
    return None


@dataclass(frozen=True, eq=False)
class LedgerSnapshot:
    """
    Immutable copy of all score values of one competition.

    Values are keyed by ScoreKey and kept sorted by key, so iteration and
    the fingerprint are independent of the order rows arrived in.
    """

    competition_id: int
    values: Mapping[ScoreKey, float]
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    fingerprint: str = field(init=False)

    def __post_init__(self):
        ordered = dict(sorted(self.values.items()))
        object.__setattr__(self, "values", MappingProxyType(ordered))
        object.__setattr__(
            self,
            "fingerprint",
            content_hash([[*key, value] for key, value in ordered.items()]),
        )

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls, competition_id: int) -> LedgerSnapshot:
        return cls(competition_id=competition_id, values={})

    @classmethod
    def from_rows(
        cls,
        competition_id: int,
        rows: Iterable[Mapping[str, Any]],
        taken_at: Optional[datetime] = None,
    ) -> LedgerSnapshot:
        """
        Build a snapshot from gateway rows.

        Rows with a missing key part or a non-numeric score are skipped.
        If a key appears twice the later row wins.
        """
        values: dict[ScoreKey, float] = {}
        skipped = 0
        for row in rows:
            parts = {name: _row_value(row, aliases) for name, aliases in _ROW_FIELDS.items()}
            raw_score = row.get("score")
            if any(part is None for part in parts.values()) or isinstance(raw_score, bool):
                skipped += 1
                continue
            try:
                score = float(raw_score)
            except (TypeError, ValueError):
                skipped += 1
                continue
            if not math.isfinite(score):
                skipped += 1
                continue
            key = ScoreKey(**{name: str(part) for name, part in parts.items()})
            values[key] = score

        if skipped:
            logger.warning(f"Skipped {skipped} malformed score rows for competition {competition_id}")

        if taken_at is None:
            return cls(competition_id=competition_id, values=values)
        return cls(competition_id=competition_id, values=values, taken_at=taken_at)

    @classmethod
    def from_nested(cls, competition_id: int, nested: Mapping) -> LedgerSnapshot:
        return cls(competition_id=competition_id, values=flatten(nested))

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get(self, key: ScoreKey) -> Optional[float]:
        return self.values.get(key)

    def keys(self):
        return self.values.keys()

    def items(self):
        return self.values.items()

    def as_nested(self) -> NestedScores:
        return nest(self.values.items())

    def rows(self) -> list[dict[str, Any]]:
        """Rows in API field naming, sorted by key."""
        return [
            {
                "segmentId": key.segment_id,
                "contestantId": key.contestant_id,
                "judgeId": key.judge_id,
                "criterionId": key.criterion_id,
                "score": value,
            }
            for key, value in self.values.items()
        ]

    @property
    def is_empty(self) -> bool:
        return not self.values

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[ScoreKey]:
        return iter(self.values)

    def __contains__(self, key: object) -> bool:
        return key in self.values
