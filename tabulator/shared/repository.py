"""
Base repository for feature repositories.

Lookups shared by the competition and score repositories, over an async
SQLAlchemy session. Writes stay in the feature repositories, which know
their own conflict rules.

Usage:
    class CompetitionRepository(BaseRepository[Competition]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, Competition)

        async def get_active(self) -> Competition | None:
            return await self.get_by(is_active=True)
"""

from typing import TypeVar, Generic, Type
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Generic lookups for one model class."""

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: int) -> T | None:
        """Entity with this primary key, or None."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by(self, **kwargs) -> T | None:
        """
        First entity (lowest id) whose fields equal the given values.

        Args:
            **kwargs: Field name-value pairs to filter by
        """
        query = select(self.model)
        for key, value in kwargs.items():
            query = query.where(getattr(self.model, key) == value)
        result = await self.db.execute(query.order_by(self.model.id).limit(1))
        return result.scalars().first()
