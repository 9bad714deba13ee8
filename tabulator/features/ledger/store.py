"""
Score ledger: the live, mutable score map of one selected competition.

Scores are held in a normalized store keyed by ScoreKey, with index maps
per dimension so lookups by segment, contestant or judge never walk the
whole map. Every mutation is delivered to subscribed listeners.

Usage:
    ledger = ScoreLedger(competition_id=1)
    unsubscribe = ledger.subscribe(on_mutation)
    ledger.set(ScoreKey("seg", "c1", "j1", "crit"), 8.5)
    ledger.replace_all(snapshot)
"""

import logging
from typing import Callable, Iterable, Optional

from .models import LedgerMutation, MutationKind, ScoreKey
from .snapshot import LedgerSnapshot, NestedScores, nest

logger = logging.getLogger(__name__)

Listener = Callable[[LedgerMutation], None]


class ScoreLedger:
    """Mutable score store for one competition."""

    def __init__(self, competition_id: int, snapshot: Optional[LedgerSnapshot] = None):
        self.competition_id = competition_id
        self._values: dict[ScoreKey, float] = {}
        self._by_segment: dict[str, set[ScoreKey]] = {}
        self._by_contestant: dict[str, set[ScoreKey]] = {}
        self._by_judge: dict[str, set[ScoreKey]] = {}
        self._listeners: list[Listener] = []
        if snapshot is not None:
            self._load(snapshot.items())

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, key: ScoreKey) -> Optional[float]:
        return self._values.get(key)

    def keys_for(
        self,
        segment_id: Optional[str] = None,
        contestant_id: Optional[str] = None,
        judge_id: Optional[str] = None,
    ) -> list[ScoreKey]:
        """
        Keys matching every given dimension, sorted.

        With no filters, returns all keys.
        """
        selected: Optional[set[ScoreKey]] = None
        for index, value in (
            (self._by_segment, segment_id),
            (self._by_contestant, contestant_id),
            (self._by_judge, judge_id),
        ):
            if value is None:
                continue
            matches = index.get(value, set())
            selected = set(matches) if selected is None else selected & matches
        if selected is None:
            selected = set(self._values)
        return sorted(selected)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(competition_id=self.competition_id, values=dict(self._values))

    def as_nested(self) -> NestedScores:
        return nest(sorted(self._values.items()))

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    # =========================================================================
    # Mutations
    # =========================================================================

    def set(self, key: ScoreKey, value: float) -> bool:
        """
        Store a score, replacing any previous value for the key.

        Returns:
            True if the ledger changed
        """
        value = float(value)
        old = self._values.get(key)
        if old == value:
            return False
        self._put(key, value)
        self._notify(LedgerMutation(MutationKind.SET, key, old, value))
        return True

    def delete(self, key: ScoreKey) -> bool:
        """
        Remove a score.

        Returns:
            True if the key was present
        """
        if key not in self._values:
            return False
        old = self._values.pop(key)
        self._unindex(key)
        self._notify(LedgerMutation(MutationKind.DELETE, key, old, None))
        return True

    def replace_all(self, snapshot: LedgerSnapshot):
        """Swap the whole content for the snapshot's."""
        self._values.clear()
        self._by_segment.clear()
        self._by_contestant.clear()
        self._by_judge.clear()
        self._load(snapshot.items())
        logger.debug(f"Ledger {self.competition_id} replaced: {len(self._values)} scores")
        self._notify(LedgerMutation(MutationKind.REPLACE))

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a mutation listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, items: Iterable[tuple[ScoreKey, float]]):
        for key, value in items:
            self._put(key, float(value))

    def _put(self, key: ScoreKey, value: float):
        self._values[key] = value
        self._by_segment.setdefault(key.segment_id, set()).add(key)
        self._by_contestant.setdefault(key.contestant_id, set()).add(key)
        self._by_judge.setdefault(key.judge_id, set()).add(key)

    def _unindex(self, key: ScoreKey):
        for index, value in (
            (self._by_segment, key.segment_id),
            (self._by_contestant, key.contestant_id),
            (self._by_judge, key.judge_id),
        ):
            keys = index.get(value)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del index[value]

    def _notify(self, mutation: LedgerMutation):
        for listener in list(self._listeners):
            try:
                listener(mutation)
            except Exception as e:
                logger.error(f"Ledger listener {listener!r} failed: {e}")
