"""
Competition module.

Competitions are created and edited by the admin screens; this module only
reads them and turns the stored document into ranking inputs.

Available components:
- Competition: SQLAlchemy model holding the competition document
- CompetitionDocument: Pydantic schema of the camelCase document
- CompetitionRepository: lookups and roster loading
- Criterion, Segment, Contestant, Judge, RankingConfig, CompetitionRoster: domain types
"""
from .models import Competition
from .schemas import CompetitionDocument
from .repository import CompetitionRepository
from .types import (
    CompetitionRoster,
    Contestant,
    Criterion,
    Judge,
    RankingConfig,
    Segment,
)

__all__ = [
    "Competition",
    "CompetitionDocument",
    "CompetitionRepository",
    "CompetitionRoster",
    "Contestant",
    "Criterion",
    "Judge",
    "RankingConfig",
    "Segment",
]
