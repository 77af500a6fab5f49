"""
Event synchronizer: the in-memory event cache kept in step with the active backend.

The synchronizer owns a local copy of the shared event collection and keeps
it eventually consistent with the storage backend:

1. A background loop pulls the whole collection on a fixed interval, and
   immediately when the UI reports a focus/online/visibility change
2. Every pull unconditionally replaces the cache (last-write-wins on the
   whole collection, no field-level merge)
3. Writes are read-modify-write of the whole collection: re-fetch, change,
   persist everything, update the cache

Concurrent writers can lose each other's changes. Two ``add_event`` calls that
both read the collection before either persists it leave only the second
event in storage. A boolean flag keeps background passes from overlapping; it
does not serialize writes.

The instance is created and started by the application root and injected
where needed.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Set, Union

from .errors import StorageError
from .models.event import Event, EventFormData
from .storage.base import EventStorage, Unsubscribe
from .storage.local import LocalEventStorage
from .utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Sync status values reported to listeners
STATUS_IDLE = "idle"
STATUS_SYNCING = "syncing"
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

# UI events that request an immediate pass
SYNC_TRIGGERS = ("focus", "online", "visibility")

DEFAULT_SYNC_INTERVAL = 30.0
DEFAULT_INITIAL_WAIT = 0.5

StatusListener = Callable[[str], Any]


class EventSynchronizer:
    """
    Locally readable, eventually-consistent copy of the shared event collection.

    State:
        events: Cached collection, replaced wholesale on every successful pass
        is_initialized: False until the first load attempt finishes (success or fallback)
        sync_in_progress: Re-entrancy guard for sync passes
        last_sync_time: When the cache was last refreshed from the backend
    """

    def __init__(
        self,
        storage: EventStorage,
        offline_cache: Optional[LocalEventStorage] = None,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        initial_wait: float = DEFAULT_INITIAL_WAIT
    ):
        """
        Args:
            storage: The active storage backend
            offline_cache: Local mirror of the last known collection, used when
                         the backend is unreachable at startup
            sync_interval: Seconds between background passes
            initial_wait: Seconds ``get_all_events`` waits for the first load
        """
        self.storage = storage
        self.offline_cache = offline_cache
        self.sync_interval = sync_interval
        self.initial_wait = initial_wait

        self.events: List[Event] = []
        self.is_initialized = False
        self.sync_in_progress = False
        self.last_sync_time: Optional[datetime] = None
        self.status = STATUS_IDLE

        # Prefix for ids generated by this process
        self.session_id = uuid.uuid4().hex[:8]

        self._status_listeners: List[StatusListener] = []
        self._sync_task: Optional[asyncio.Task] = None
        self._background_tasks: Set[asyncio.Task] = set()
        self._force_sync_event = asyncio.Event()
        self._unsubscribe: Optional[Unsubscribe] = None

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Load the collection, subscribe to push updates and start the sync loop."""
        if not self.is_initialized:
            await self.initialize()

        if self.storage.supports_push and self._unsubscribe is None:
            self._unsubscribe = self.storage.subscribe(self._on_remote_change)
            logger.info(f"Subscribed to push updates from the {self.storage.backend_name} backend")

        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.create_task(self._run_sync_loop(), name="event-sync-loop")
            logger.info(f"Event sync loop started (interval={self.sync_interval}s)")

    async def stop(self) -> None:
        """Stop the sync loop and drop the push subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = list(self._background_tasks)
        if self._sync_task is not None:
            tasks.append(self._sync_task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._sync_task = None
        self._background_tasks.clear()
        logger.info("Event sync loop stopped")

    async def initialize(self) -> None:
        """
        First load of the collection.

        - Backend has events: they become the cache and the offline snapshot
        - Backend is empty: the offline snapshot is used and pushed to the backend
        - Backend unreachable: the offline snapshot is used

        Marks the synchronizer ready whatever the outcome.
        """
        if self.sync_in_progress:
            return

        self.sync_in_progress = True
        self._set_status(STATUS_SYNCING)
        try:
            logger.info(f"Loading events from the {self.storage.backend_name} backend...")
            remote_events = await self.storage.list_events()
            if remote_events:
                self.events = list(remote_events)
                await self._save_offline(remote_events)
                logger.info(f"{len(remote_events)} events loaded from the backend")
            else:
                local_events = await self._load_offline()
                if local_events:
                    self.events = await self.storage.save_events(local_events)
                    logger.info(f"{len(local_events)} offline events pushed to the empty backend")
                else:
                    self.events = []
            self.last_sync_time = now_utc()
            self._set_status(STATUS_SUCCESS)
        except StorageError as e:
            logger.error(f"Error loading events: {e}")
            self.events = await self._load_offline()
            self._set_status(STATUS_ERROR)
        finally:
            self.sync_in_progress = False
            self.is_initialized = True

    # ==================== Reads ====================

    async def get_all_events(self) -> List[Event]:
        """
        Return the cached collection.

        Before the first load, waits ``initial_wait`` seconds and then loads
        directly. Afterwards, schedules a background pass and returns the
        current cache, which may be one round-trip stale. Never raises on
        backend failure.
        """
        if not self.is_initialized:
            await asyncio.sleep(self.initial_wait)
            if not self.is_initialized:
                await self.initialize()
        else:
            self._spawn(self._sync())
        return list(self.events)

    def get_event(self, event_id: str) -> Optional[Event]:
        """Return the cached event with ``event_id``, if any."""
        return next((event for event in self.events if event.id == event_id), None)

    def events_for_date(self, day: date) -> List[Event]:
        """Cached events on ``day``."""
        return [event for event in self.events if event.date == day]

    def events_for_month(self, year: int, month: int) -> List[Event]:
        """Cached events in the given month."""
        return [
            event for event in self.events
            if event.date.year == year and event.date.month == month
        ]

    # ==================== Writes ====================

    async def add_event(self, form_data: Union[EventFormData, Dict[str, Any]]) -> Event:
        """
        Create an event from form data.

        The id and timestamps are assigned here (``updated_at == created_at``).
        The collection is re-fetched, the event appended and the whole
        collection persisted.

        Returns:
            Event: The stored event (the backend may have reassigned its id)

        Raises:
            EventValidationError: If the form data is invalid; nothing is written
            StorageError: If the backend fails; the cache is left unchanged
        """
        if not isinstance(form_data, EventFormData):
            form_data = EventFormData.from_dict(form_data)
        form_data.raise_for_errors()

        event = Event.from_form(form_data, event_id=self._new_event_id())
        remote_events = await self.storage.list_events()
        stored = await self.storage.save_events(remote_events + [event])
        await self._apply_remote(stored)

        created = stored[-1]
        logger.info(f"Created event {created.id} ({created.title})")
        return created

    async def delete_event(self, event_id: str) -> bool:
        """
        Delete an event by id.

        Returns:
            bool: False if no event had that id (not an error)

        Raises:
            StorageError: If the backend fails; the cache is left unchanged
        """
        remote_events = await self.storage.list_events()
        remaining = [event for event in remote_events if event.id != event_id]
        if len(remaining) == len(remote_events):
            logger.info(f"Event {event_id} not found, nothing to delete")
            await self._apply_remote(remote_events)
            return False

        stored = await self.storage.save_events(remaining)
        await self._apply_remote(stored)
        logger.info(f"Deleted event {event_id}")
        return True

    # ==================== Synchronization ====================

    async def force_sync_now(self) -> bool:
        """
        Run one synchronization pass immediately.

        Returns:
            bool: True if the cache was refreshed from the backend
        """
        if not self.is_initialized:
            await self.initialize()
            return self.status == STATUS_SUCCESS
        return await self._sync()

    def request_sync(self, reason: str = "manual") -> None:
        """Wake the sync loop for an immediate pass (focus, online, visibility...)."""
        logger.debug(f"Sync requested ({reason})")
        if self._sync_task is not None and not self._sync_task.done():
            self._force_sync_event.set()
        else:
            self._spawn(self._sync())

    async def _sync(self) -> bool:
        """One pass: replace the cache with the backend's collection."""
        if self.sync_in_progress:
            logger.debug("Sync already in progress, skipping")
            return False

        self.sync_in_progress = True
        self._set_status(STATUS_SYNCING)
        try:
            remote_events = await self.storage.list_events()
        except StorageError as e:
            logger.error(f"Error syncing with the {self.storage.backend_name} backend: {e}")
            self._set_status(STATUS_ERROR)
            return False
        finally:
            self.sync_in_progress = False

        await self._apply_remote(remote_events)
        self._set_status(STATUS_SUCCESS)
        return True

    async def _run_sync_loop(self) -> None:
        """Background task: sync every ``sync_interval`` seconds or when woken."""
        while True:
            try:
                await asyncio.wait_for(self._force_sync_event.wait(), timeout=self.sync_interval)
                self._force_sync_event.clear()
            except asyncio.TimeoutError:
                # Normal timer expiry
                pass

            try:
                await self._sync()
            except Exception as e:
                logger.error(f"Event sync loop error: {e}", exc_info=True)

    async def _on_remote_change(self, events: List[Event]) -> None:
        """Push callback: the backend sent the new collection."""
        logger.info(f"Push update received ({len(events)} events)")
        await self._apply_remote(events)
        self._set_status(STATUS_SUCCESS)

    async def _apply_remote(self, events: List[Event]) -> None:
        self.events = list(events)
        self.last_sync_time = now_utc()
        await self._save_offline(self.events)

    # ==================== Offline snapshot ====================

    async def _save_offline(self, events: List[Event]) -> None:
        if self.offline_cache is None:
            return
        try:
            await self.offline_cache.save_events(events)
        except StorageError as e:
            logger.warning(f"Could not update the offline snapshot: {e}")

    async def _load_offline(self) -> List[Event]:
        if self.offline_cache is None:
            return list(self.events)
        try:
            return await self.offline_cache.list_events()
        except StorageError as e:
            logger.warning(f"Could not read the offline snapshot: {e}")
            return list(self.events)

    # ==================== Status ====================

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def remove_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners = [registered for registered in self._status_listeners if registered != listener]

    def _set_status(self, status: str) -> None:
        self.status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Sync status listener failed: {e}", exc_info=True)

    def time_since_last_sync(self) -> Optional[float]:
        """Seconds since the last refresh, or None if never synced."""
        if self.last_sync_time is None:
            return None
        return (now_utc() - self.last_sync_time).total_seconds()

    def badge_status(self) -> str:
        """Summary for the sync indicator: synced, syncing, error, outdated or not-configured."""
        if self.storage.backend_name == "local":
            return "not-configured"
        if self.status == STATUS_SYNCING:
            return "syncing"
        if self.status == STATUS_ERROR:
            return "error"
        elapsed = self.time_since_last_sync()
        if elapsed is None or elapsed > self.sync_interval * 2:
            return "outdated"
        return "synced"

    def get_sync_status(self) -> Dict[str, Any]:
        return {
            'isSyncing': self.sync_in_progress,
            'isInitialized': self.is_initialized,
            'lastSyncTime': self.last_sync_time.isoformat() if self.last_sync_time else None,
            'secondsSinceLastSync': self.time_since_last_sync(),
            'status': self.status,
            'badge': self.badge_status(),
            'eventCount': len(self.events),
            'backend': self.storage.backend_name,
        }

    # ==================== Helpers ====================

    def _new_event_id(self) -> str:
        return f"{self.session_id}-{uuid.uuid4().hex[:12]}"

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task
