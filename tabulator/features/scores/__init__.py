"""
Scores module.

Persistence gateway and write path for judge scores.

Available components:
- Score: SQLAlchemy model, unique per score key
- ScoreRepository: list / upsert / delete / reset
- ScoreService: validation, commit and event publishing
"""
from .models import Score
from .repository import ScoreRepository
from .service import ScoreService, compute_etag, snapshot_from_models

__all__ = [
    "Score",
    "ScoreRepository",
    "ScoreService",
    "compute_etag",
    "snapshot_from_models",
]
