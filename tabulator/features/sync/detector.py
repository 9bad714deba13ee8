"""
Change detection between two score snapshots.

detect_changes() walks the leaves of the new snapshot and reports every
leaf whose value differs from the old one. Keys missing from the new
snapshot are not reported: deletions reach live views as explicit events.

apply_changes() writes the changes into a ScoreLedger one leaf at a time,
so listeners bound to untouched leaves see nothing. When most of the
snapshot changed, or the ledger holds leaves the snapshot no longer has
(a reset or a deletion on the server), it replaces the whole ledger instead.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from tabulator.features.ledger import LedgerSnapshot, ScoreKey, ScoreLedger, flatten

logger = logging.getLogger(__name__)

DEFAULT_BULK_RATIO = 0.5

SnapshotLike = Union[LedgerSnapshot, Mapping]


@dataclass(frozen=True)
class LeafChange:
    key: ScoreKey
    old_score: Optional[float]
    new_score: float

    @property
    def segment_id(self) -> str:
        return self.key.segment_id

    @property
    def contestant_id(self) -> str:
        return self.key.contestant_id

    @property
    def judge_id(self) -> str:
        return self.key.judge_id

    @property
    def criterion_id(self) -> str:
        return self.key.criterion_id


class SyncMode(str, Enum):
    NOOP = "noop"
    SELECTIVE = "selective"
    FULL = "full"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of applying one snapshot to a ledger."""

    mode: SyncMode
    changes: tuple[LeafChange, ...] = ()

    @property
    def changed(self) -> bool:
        return self.mode != SyncMode.NOOP


def _leaves(snapshot: Optional[SnapshotLike]) -> Mapping[ScoreKey, float]:
    if snapshot is None:
        return {}
    if isinstance(snapshot, LedgerSnapshot):
        return snapshot.values
    return flatten(snapshot)


def detect_changes(old: Optional[SnapshotLike], new: SnapshotLike) -> list[LeafChange]:
    """
    Leaves of `new` whose value differs from `old`, ordered by key.

    Args:
        old: Last known snapshot (None or empty for a first fetch)
        new: Freshly fetched snapshot

    Returns:
        One LeafChange per differing leaf; old_score is None for new leaves
    """
    old_leaves = _leaves(old)
    new_leaves = _leaves(new)

    changes = []
    for key in sorted(new_leaves):
        new_score = new_leaves[key]
        old_score = old_leaves.get(key)
        if old_score != new_score:
            changes.append(LeafChange(key=key, old_score=old_score, new_score=new_score))
    return changes


def apply_changes(
    ledger: ScoreLedger,
    changes: list[LeafChange],
    new_snapshot: LedgerSnapshot,
    bulk_ratio: float = DEFAULT_BULK_RATIO,
) -> SyncOutcome:
    """
    Bring the ledger up to date with the changed leaves.

    Falls back to ledger.replace_all(new_snapshot) when the number of changes
    exceeds bulk_ratio times the number of leaves in new_snapshot, or when
    any ledger leaf is missing from new_snapshot.
    """
    vanished = [key for key in ledger.keys_for() if key not in new_snapshot]
    if not changes and not vanished:
        return SyncOutcome(SyncMode.NOOP)

    if vanished or len(changes) > bulk_ratio * len(new_snapshot):
        logger.debug(
            f"{len(changes)} of {len(new_snapshot)} leaves changed, {len(vanished)} gone, "
            f"replacing ledger {ledger.competition_id}"
        )
        ledger.replace_all(new_snapshot)
        return SyncOutcome(SyncMode.FULL, tuple(changes))

    for change in changes:
        ledger.set(change.key, change.new_score)
    return SyncOutcome(SyncMode.SELECTIVE, tuple(changes))
