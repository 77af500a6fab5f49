"""Base interface that all event storage backends must implement."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List

from ..models.event import Event

logger = logging.getLogger(__name__)

# Push callbacks receive the full, freshly loaded collection
ChangeCallback = Callable[[List[Event]], Any]
Unsubscribe = Callable[[], None]


def sort_events(events: List[Event]) -> List[Event]:
    """Order events by date, then start time (all-day first), then creation time."""
    return sorted(events, key=lambda e: (e.date, e.start_time or "", e.created_at))


class EventStorage(ABC):
    """
    Base interface for all storage backends.

    Each backend is responsible for:
    1. Listing, creating and deleting events in its system of record
    2. Converting the system's record format to and from our Event model
    3. Raising StorageError subclasses (never library exceptions) on failure

    Required Methods:
        list_events(): Return the whole collection
        create_event(event): Store one event, return the stored record
        delete_event(event_id): Remove one event, return whether it existed

    Push-capable backends set ``supports_push`` and implement ``subscribe``.
    """

    backend_name = "base"
    supports_push = False

    @abstractmethod
    async def list_events(self) -> List[Event]:
        """
        Return every stored event.

        Raises:
            BackendUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def create_event(self, event: Event) -> Event:
        """
        Store a new event.

        The backend may assign its own id and timestamps; the returned event
        is the stored version.
        """
        pass

    @abstractmethod
    async def delete_event(self, event_id: str) -> bool:
        """
        Delete an event by id.

        Returns:
            bool: False if no event had that id
        """
        pass

    async def save_events(self, events: List[Event]) -> List[Event]:
        """
        Persist ``events`` as the whole collection.

        The default implementation reads the current collection, deletes what
        is not in ``events`` and creates what is missing. Whoever saves last
        wins: rows created concurrently by another writer are deleted.

        Returns:
            List[Event]: The stored events, in the same order as ``events``
        """
        current = {event.id: event for event in await self.list_events()}
        wanted_ids = {event.id for event in events}

        for event_id in current:
            if event_id not in wanted_ids:
                await self.delete_event(event_id)

        stored = []
        for event in events:
            if event.id in current:
                stored.append(current[event.id])
            else:
                stored.append(await self.create_event(event))
        return stored

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """
        Register ``callback`` to receive the collection after every change.

        Returns:
            Unsubscribe: Call it to stop receiving updates

        Raises:
            NotImplementedError: If the backend has no push notifications
        """
        raise NotImplementedError(f"The {self.backend_name} backend does not support push updates")

    @classmethod
    def from_settings(cls, backend_settings, sync_settings) -> 'EventStorage':
        """Build the backend from the active BackendSettings and SyncSettings."""
        raise NotImplementedError(f"{cls.__name__} cannot be built from settings")

    async def close(self) -> None:
        """Release clients and connections held by the backend."""
        pass

    def __str__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}(backend={self.backend_name})"
