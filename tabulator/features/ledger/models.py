"""Data models for the score ledger (no DB dependency)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

KEY_SEPARATOR = "|"


class ScoreKey(NamedTuple):
    """Identity of a single score: one judge, one criterion, one contestant."""

    segment_id: str
    contestant_id: str
    judge_id: str
    criterion_id: str

    @property
    def composite(self) -> str:
        """Flattened key: "segmentId|contestantId|judgeId|criterionId"."""
        return KEY_SEPARATOR.join(self)

    @classmethod
    def parse(cls, composite: str) -> ScoreKey:
        parts = composite.split(KEY_SEPARATOR)
        if len(parts) != 4 or not all(parts):
            raise ValueError(f"Invalid score key: {composite!r}")
        return cls(*parts)


class MutationKind(str, Enum):
    SET = "set"
    DELETE = "delete"
    REPLACE = "replace"


@dataclass(frozen=True)
class LedgerMutation:
    """Notification delivered to ledger listeners after every change."""

    kind: MutationKind
    key: Optional[ScoreKey] = None  # None for REPLACE
    old_value: Optional[float] = None
    new_value: Optional[float] = None
