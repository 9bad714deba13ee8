"""
Score ledger module.

Usage:
    from tabulator.features.ledger import ScoreKey, ScoreLedger, LedgerSnapshot

Available components:
- ScoreKey: (segment, contestant, judge, criterion) identity of a score
- LedgerSnapshot: immutable, fingerprinted copy of a competition's scores
- ScoreLedger: mutable normalized store with per-dimension indexes
"""
from .models import ScoreKey, LedgerMutation, MutationKind
from .snapshot import LedgerSnapshot, NestedScores, content_hash, nest, flatten
from .store import ScoreLedger

__all__ = [
    "ScoreKey",
    "LedgerMutation",
    "MutationKind",
    "LedgerSnapshot",
    "NestedScores",
    "ScoreLedger",
    "content_hash",
    "nest",
    "flatten",
]
