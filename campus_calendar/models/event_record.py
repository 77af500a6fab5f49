"""SQLAlchemy model for events stored in the relational backend."""

from typing import Dict, Any
from sqlalchemy import Column, Date, DateTime, String, Text

from .base import Base
from .event import Event
from ..utils.timezone import ensure_utc, now_utc

class EventRecord(Base):
    """
    Row of the ``events`` table.

    Columns follow the snake_case mapping of the event fields
    (``club_name``, ``start_time``, ``end_time``, ``created_at``, ``updated_at``).
    The id is a string so that client-generated ids are stored unchanged.
    """
    __tablename__ = 'events'

    # Required fields
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    club_name = Column(String, nullable=False)
    date = Column(Date, nullable=False, index=True)

    # Optional fields
    description = Column(Text, nullable=False, default="")
    start_time = Column(String(5), nullable=False, default="")
    end_time = Column(String(5), nullable=False, default="")
    location = Column(String, nullable=False, default="")
    image = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    def __init__(self, **kwargs):
        """Initialize EventRecord with the given attributes."""
        # Ensure timezone-aware datetimes
        for key in ('created_at', 'updated_at'):
            if kwargs.get(key) is not None:
                kwargs[key] = ensure_utc(kwargs[key])

        super().__init__(**kwargs)

    @classmethod
    def from_event(cls, event: Event) -> 'EventRecord':
        """Create a row from an Event."""
        return cls(**event.to_row())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a snake_case dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'club_name': self.club_name,
            'date': self.date,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'location': self.location,
            'image': self.image,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def to_event(self) -> Event:
        """Convert to an Event."""
        return Event.from_row(self.to_dict())

    def __str__(self) -> str:
        """String representation."""
        return f"EventRecord(id={self.id}, title={self.title}, date={self.date})"
