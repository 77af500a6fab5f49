"""Relational backend with push notifications.

Events live in the ``events`` table (see ``EventRecord``). SQLAlchemy calls
block, so each operation runs in a worker thread.

Push updates: writes made through this instance notify its subscribers
directly. On PostgreSQL, writes also ``pg_notify`` the ``events_changes``
channel and a listener thread relays notifications from other processes,
so every instance sees changes made anywhere.
"""

import asyncio
import inspect as pyinspect
import logging
import threading
from typing import Callable, List, Optional

import psycopg
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .base import ChangeCallback, EventStorage, Unsubscribe
from ..db import Database, DatabaseConfig, DatabaseError, with_retry
from ..errors import BackendUnavailableError, ConfigurationError, StorageError
from ..models.event import Event
from ..models.event_record import EventRecord

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = 'events_changes'


class PostgresChangeListener(threading.Thread):
    """
    Thread that LISTENs on a PostgreSQL channel and calls ``on_notify``
    with each notification payload.

    Reconnects after ``reconnect_delay`` seconds when the connection drops.
    """

    def __init__(
        self,
        dsn: str,
        on_notify: Callable[[str], None],
        channel: str = NOTIFY_CHANNEL,
        reconnect_delay: float = 5.0
    ):
        super().__init__(name=f"{channel}-listener", daemon=True)
        self.dsn = dsn
        self.channel = channel
        self.on_notify = on_notify
        self.reconnect_delay = reconnect_delay
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                with psycopg.connect(self.dsn, autocommit=True) as conn:
                    conn.execute(f"LISTEN {self.channel}")
                    logger.info(f"Listening for changes on channel '{self.channel}'")
                    while not self._stop_event.is_set():
                        for notify in conn.notifies(timeout=1.0):
                            self.on_notify(notify.payload)
            except psycopg.Error as e:
                logger.warning(
                    f"Change listener connection lost: {e}. Reconnecting in {self.reconnect_delay}s..."
                )
                self._stop_event.wait(self.reconnect_delay)

    def stop(self) -> None:
        self._stop_event.set()


class RelationalEventStorage(EventStorage):
    """Events stored in a SQL database (PostgreSQL in production, SQLite locally)."""

    backend_name = "postgres"
    supports_push = True

    def __init__(self, database: Database, listen_for_changes: bool = True):
        """
        Args:
            database: Database manager bound to the events database
            listen_for_changes: Start a LISTEN thread on PostgreSQL when someone subscribes
        """
        self.database = database
        self.listen_for_changes = listen_for_changes and database.config.is_postgres
        self._subscribers: List[ChangeCallback] = []
        self._listener: Optional[PostgresChangeListener] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_settings(cls, backend_settings, sync_settings) -> 'RelationalEventStorage':
        """
        Raises:
            ConfigurationError: If no engine can be built for the database url
        """
        try:
            database = Database(DatabaseConfig(backend_settings.database.url))
        except (ValueError, DatabaseError) as e:
            raise ConfigurationError(f"Invalid database url: {e}") from e
        return cls(database)

    # ==================== Blocking operations (run in a worker thread) ====================

    def _notify_channel(self, session: Session, payload: str) -> None:
        if self.database.config.is_postgres:
            session.execute(
                text("SELECT pg_notify(:channel, :payload)"),
                {'channel': NOTIFY_CHANNEL, 'payload': payload}
            )

    @with_retry()
    def _list(self) -> List[Event]:
        with self.database.session() as session:
            records = session.query(EventRecord).order_by(
                EventRecord.date, EventRecord.start_time, EventRecord.created_at
            ).all()
            return [record.to_event() for record in records]

    @with_retry()
    def _create(self, event: Event) -> Event:
        with self.database.session() as session:
            record = EventRecord.from_event(event)
            session.add(record)
            session.flush()
            self._notify_channel(session, record.id)
            return record.to_event()

    @with_retry()
    def _delete(self, event_id: str) -> bool:
        with self.database.session() as session:
            deleted = session.query(EventRecord).filter(EventRecord.id == event_id).delete()
            if deleted:
                self._notify_channel(session, event_id)
            return deleted > 0

    async def _run(self, func, *args):
        """Run a blocking database operation and map its failures to StorageError."""
        try:
            return await asyncio.to_thread(func, *args)
        except OperationalError as e:
            raise BackendUnavailableError(f"Database unavailable: {e}") from e
        except DatabaseError as e:
            raise StorageError(f"Database error: {e}") from e

    # ==================== EventStorage interface ====================

    async def list_events(self) -> List[Event]:
        return await self._run(self._list)

    async def create_event(self, event: Event) -> Event:
        created = await self._run(self._create, event)
        await self._after_write()
        return created

    async def delete_event(self, event_id: str) -> bool:
        deleted = await self._run(self._delete, event_id)
        if deleted:
            await self._after_write()
        return deleted

    # ==================== Push notifications ====================

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """Register ``callback``; it receives the full collection after every change."""
        self._subscribers.append(callback)
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

        if self.listen_for_changes and self._listener is None and self._loop is not None:
            self._listener = PostgresChangeListener(self.database.config.libpq_dsn, self._on_notify)
            self._listener.start()

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
            if not self._subscribers:
                self._stop_listener()

        return unsubscribe

    def _stop_listener(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def _on_notify(self, payload: str) -> None:
        """Called from the listener thread."""
        logger.debug(f"Change notification received for event {payload}")
        if self._loop is not None and not self._loop.is_closed():
            asyncio.run_coroutine_threadsafe(self._broadcast(), self._loop)

    async def _after_write(self) -> None:
        # With a listener running, our own pg_notify comes back through it
        if self._listener is None:
            await self._broadcast()

    async def _broadcast(self) -> None:
        if not self._subscribers:
            return
        try:
            events = await self.list_events()
        except StorageError as e:
            logger.error(f"Failed to reload events after a change: {e}")
            return

        for callback in list(self._subscribers):
            try:
                result = callback(events)
                if pyinspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Change subscriber failed: {e}", exc_info=True)

    async def close(self) -> None:
        self._subscribers.clear()
        self._stop_listener()
        await asyncio.to_thread(self.database.dispose)

    def __str__(self) -> str:
        """String representation."""
        return f"RelationalEventStorage(url={self.database.config.url.split('@')[-1]})"
