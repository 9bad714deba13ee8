"""
Live synchronization module.

Keeps a viewing client's ScoreLedger consistent with the server by
polling snapshots and applying only the leaves that changed.

Available components:
- detect_changes / apply_changes: snapshot diff and selective apply
- LedgerPoller: per-view polling loop with visibility suspension
- ScoresClient: aiohttp client with ETag support
"""
from .detector import LeafChange, SyncMode, SyncOutcome, apply_changes, detect_changes
from .poller import LedgerPoller, PollingStatus
from .client import ScoresClient

__all__ = [
    "LeafChange",
    "SyncMode",
    "SyncOutcome",
    "apply_changes",
    "detect_changes",
    "LedgerPoller",
    "PollingStatus",
    "ScoresClient",
]
