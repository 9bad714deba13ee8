"""
Competition model.

Competitions are managed by the admin screens (out of scope here); this
table is read to resolve segments, criteria, contestants and judges.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, JSON

from tabulator.models.base import Base


class Competition(Base):
    """
    Competition with its document.

    `data` holds the camelCase competition document:
    {competitionSettings: {...}, contestants: [...], judges: [...]}
    """

    __tablename__ = "competitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=False)
    data = Column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Competition {self.id} ({self.name})>"
