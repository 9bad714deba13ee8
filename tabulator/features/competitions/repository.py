"""
Competition repository.

Read-only data access for competition documents.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from tabulator.shared.exceptions import CompetitionNotFoundError
from tabulator.shared.repository import BaseRepository
from .models import Competition
from .schemas import CompetitionDocument
from .types import CompetitionRoster


class CompetitionRepository(BaseRepository[Competition]):
    """Repository for Competition lookups."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Competition)

    async def get_active(self) -> Competition | None:
        """Get the competition currently marked active, if any."""
        return await self.get_by(is_active=True)

    async def load_roster(self, competition_id: int) -> CompetitionRoster:
        """
        Load and parse a competition document.

        Args:
            competition_id: Competition primary key

        Returns:
            Parsed roster (segments, criteria, contestants, judges)

        Raises:
            CompetitionNotFoundError: If the competition does not exist
        """
        competition = await self.get_by_id(competition_id)
        if competition is None:
            raise CompetitionNotFoundError(competition_id)
        document = CompetitionDocument.model_validate(competition.data or {})
        return document.to_roster(competition.id, name=competition.name)
