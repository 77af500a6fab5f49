"""Routes package initialization."""

from . import (
    backend_config,
    calendar_feed,
    events,
    health,
    sync
)

__all__ = [
    'backend_config',
    'calendar_feed',
    'events',
    'health',
    'sync'
]
