"""Simulated local backend: the event collection as a JSON document on disk.

Stands in for browser persistent storage. The whole collection is read and
written at once, and every write also refreshes a backup copy that is used
when the primary document cannot be parsed.
"""

import asyncio
import json
import logging
import os
from datetime import date
from pathlib import Path
from typing import List, Optional

from .base import EventStorage
from ..errors import BackendUnavailableError
from ..models.event import Event
from ..utils.timezone import now_utc

logger = logging.getLogger(__name__)


def demo_events() -> List[Event]:
    """Events used to seed an empty local calendar."""
    now = now_utc()
    return [
        Event(
            id="1",
            title="Computer Science Club Meeting",
            description="Weekly meeting to discuss upcoming hackathon and projects.",
            club_name="CS Club",
            date=date(2025, 5, 10),
            start_time="15:00",
            end_time="16:30",
            location="Engineering Building, Room 201",
            image="/placeholder.svg",
            created_at=now,
            updated_at=now,
        ),
        Event(
            id="2",
            title="Student Government Elections",
            description="Cast your vote for next year's student representatives.",
            club_name="Student Government",
            date=date(2025, 5, 15),
            start_time="10:00",
            end_time="16:00",
            location="Student Center",
            created_at=now,
            updated_at=now,
        ),
        Event(
            id="3",
            title="Photography Workshop",
            description="Learn portrait photography techniques with professional equipment.",
            club_name="Photography Club",
            date=date(2025, 5, 12),
            start_time="14:00",
            end_time="17:00",
            location="Arts Building, Studio 3",
            image="/placeholder.svg",
            created_at=now,
            updated_at=now,
        ),
        Event(
            id="4",
            title="Basketball Tournament",
            description="Inter-class basketball tournament. Sign up your team!",
            club_name="Sports Association",
            date=date(2025, 5, 20),
            start_time="09:00",
            end_time="18:00",
            location="Gymnasium",
            created_at=now,
            updated_at=now,
        ),
    ]


class LocalEventStorage(EventStorage):
    """Event collection stored as one JSON document plus a backup copy."""

    backend_name = "local"

    def __init__(self, path: Path, seed_demo_events: bool = False):
        """
        Args:
            path: Location of the primary JSON document
            seed_demo_events: Write the demo events when no document exists yet
        """
        self.path = Path(path)
        self.backup_path = self.path.with_name(self.path.name + '.bak')
        self.seed_demo_events = seed_demo_events

    @classmethod
    def from_settings(cls, backend_settings, sync_settings) -> 'LocalEventStorage':
        return cls(sync_settings.local_events_path, seed_demo_events=sync_settings.seed_demo_events)

    # ==================== File access (runs in a worker thread) ====================

    def _read_document(self, path: Path) -> List[Event]:
        data = json.loads(path.read_text(encoding='utf-8'))
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of events, got {type(data).__name__}")
        return [Event.from_dict(item) for item in data]

    def _write_document(self, path: Path, events: List[Event]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + '.tmp')
        tmp_path.write_text(
            json.dumps([event.to_dict() for event in events], indent=2, ensure_ascii=False),
            encoding='utf-8'
        )
        os.replace(tmp_path, path)

    def _load(self) -> List[Event]:
        if not self.path.exists() and not self.backup_path.exists():
            if self.seed_demo_events:
                events = demo_events()
                self._store(events)
                logger.info(f"Seeded {len(events)} demo events into {self.path}")
                return events
            return []

        for candidate in (self.path, self.backup_path):
            if not candidate.exists():
                continue
            try:
                return self._read_document(candidate)
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Error reading stored events from {candidate}: {e}")

        logger.warning(f"No readable copy of {self.path}, treating the collection as empty")
        return []

    def _store(self, events: List[Event]) -> None:
        try:
            self._write_document(self.path, events)
            self._write_document(self.backup_path, events)
        except OSError as e:
            raise BackendUnavailableError(f"Failed to write events to {self.path}: {e}") from e

    def _create(self, event: Event) -> Event:
        events = self._load()
        events.append(event)
        self._store(events)
        return event

    def _delete(self, event_id: str) -> bool:
        events = self._load()
        remaining = [event for event in events if event.id != event_id]
        if len(remaining) == len(events):
            return False
        self._store(remaining)
        return True

    # ==================== EventStorage interface ====================

    async def list_events(self) -> List[Event]:
        return await asyncio.to_thread(self._load)

    async def create_event(self, event: Event) -> Event:
        return await asyncio.to_thread(self._create, event)

    async def delete_event(self, event_id: str) -> bool:
        return await asyncio.to_thread(self._delete, event_id)

    async def save_events(self, events: List[Event]) -> List[Event]:
        """Overwrite the whole document with ``events``."""
        events = list(events)
        await asyncio.to_thread(self._store, events)
        return events

    def __str__(self) -> str:
        """String representation."""
        return f"LocalEventStorage(path={self.path})"
