"""Models package initialization."""

from .base import Base
from .event import Event, EventFormData, EventValidationError
from .event_record import EventRecord

__all__ = ['Base', 'Event', 'EventFormData', 'EventValidationError', 'EventRecord']
