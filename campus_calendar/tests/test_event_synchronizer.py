import asyncio
from datetime import date

import pytest

from campus_calendar.db import Database, DatabaseConfig
from campus_calendar.errors import BackendUnavailableError
from campus_calendar.event_synchronizer import (
    STATUS_ERROR,
    STATUS_SUCCESS,
    STATUS_SYNCING,
    EventSynchronizer,
)
from campus_calendar.models.event import Event, EventValidationError
from campus_calendar.storage.local import LocalEventStorage
from campus_calendar.storage.relational import RelationalEventStorage


class FlakyStorage(LocalEventStorage):
    """Local storage that can be switched offline, reported as a remote backend."""

    backend_name = "airtable"

    def __init__(self, path):
        super().__init__(path)
        self.available = True

    def _check(self):
        if not self.available:
            raise BackendUnavailableError("backend offline")

    async def list_events(self):
        self._check()
        return await super().list_events()

    async def save_events(self, events):
        self._check()
        return await super().save_events(events)


class InterleavingStorage(LocalEventStorage):
    """Holds every reader until ``readers`` reads are in flight."""

    def __init__(self, path, readers=2):
        super().__init__(path)
        self.readers = readers
        self.arrived = 0
        self.all_read = asyncio.Event()

    async def list_events(self):
        events = await super().list_events()
        self.arrived += 1
        if self.arrived >= self.readers:
            self.all_read.set()
        await self.all_read.wait()
        return events


async def wait_for(condition, timeout=2.0):
    for _ in range(int(timeout / 0.02)):
        if condition():
            return True
        await asyncio.sleep(0.02)
    return condition()


@pytest.mark.asyncio
async def test_add_list_delete_round_trip(synchronizer, club_meeting):
    created = await synchronizer.add_event(club_meeting)

    events = await synchronizer.get_all_events()
    assert [event.id for event in events] == [created.id]
    assert events[0].title == "Club Meeting"
    assert events[0].club_name == "CS Club"
    assert events[0].date == date(2025, 5, 10)
    assert events[0].start_time == "15:00"
    assert events[0].end_time == "16:30"

    assert await synchronizer.delete_event(created.id) is True
    assert await synchronizer.get_all_events() == []
    assert await synchronizer.storage.list_events() == []


@pytest.mark.asyncio
async def test_new_events_get_unique_ids_and_equal_timestamps(synchronizer, club_meeting):
    first = await synchronizer.add_event(club_meeting)
    second = await synchronizer.add_event(club_meeting)

    assert first.id != second.id
    assert first.id.startswith(synchronizer.session_id)
    assert first.updated_at == first.created_at
    assert len(await synchronizer.storage.list_events()) == 2


@pytest.mark.asyncio
async def test_invalid_form_writes_nothing(synchronizer, club_meeting):
    club_meeting['title'] = ""
    with pytest.raises(EventValidationError) as exc_info:
        await synchronizer.add_event(club_meeting)

    assert exc_info.value.errors == {'title': "Title is required"}
    assert await synchronizer.storage.list_events() == []
    assert synchronizer.events == []


@pytest.mark.asyncio
async def test_deleting_an_unknown_id_changes_nothing(synchronizer, club_meeting):
    created = await synchronizer.add_event(club_meeting)

    assert await synchronizer.delete_event("does-not-exist") is False
    assert [event.id for event in await synchronizer.storage.list_events()] == [created.id]
    assert [event.id for event in synchronizer.events] == [created.id]


@pytest.mark.asyncio
async def test_force_sync_is_idempotent(synchronizer, club_meeting):
    await synchronizer.storage.create_event(
        Event(id="x", title="Workshop", club_name="Photo Club", date=date(2025, 5, 12))
    )

    assert await synchronizer.force_sync_now() is True
    first = list(synchronizer.events)
    assert await synchronizer.force_sync_now() is True
    assert synchronizer.events == first
    assert [event.id for event in first] == ["x"]


@pytest.mark.asyncio
async def test_pull_overwrites_the_cache(synchronizer, club_meeting):
    await synchronizer.add_event(club_meeting)
    await synchronizer.storage.save_events([])

    assert await synchronizer.force_sync_now() is True
    assert synchronizer.events == []


@pytest.mark.asyncio
async def test_overlapping_passes_are_skipped(synchronizer):
    synchronizer.sync_in_progress = True
    assert await synchronizer.force_sync_now() is False
    synchronizer.sync_in_progress = False
    assert await synchronizer.force_sync_now() is True


@pytest.mark.asyncio
async def test_concurrent_adds_lose_one_event(tmp_path, club_meeting):
    storage = InterleavingStorage(tmp_path / 'events.json')
    sync = EventSynchronizer(storage, sync_interval=3600, initial_wait=0)
    sync.is_initialized = True

    other = dict(club_meeting, title="Photography Workshop", clubName="Photography Club")
    first, second = await asyncio.gather(sync.add_event(club_meeting), sync.add_event(other))

    stored = await storage.list_events()
    assert len(stored) == 1
    assert stored[0].id in {first.id, second.id}
    await sync.stop()


@pytest.mark.asyncio
async def test_first_read_waits_then_initializes(local_storage, club_meeting):
    await local_storage.save_events([
        Event(id="a", title="Club Meeting", club_name="CS Club", date=date(2025, 5, 10))
    ])
    sync = EventSynchronizer(local_storage, initial_wait=0.01)

    events = await sync.get_all_events()
    assert sync.is_initialized is True
    assert [event.id for event in events] == ["a"]
    await sync.stop()


@pytest.mark.asyncio
async def test_unreachable_backend_uses_offline_snapshot(tmp_path):
    offline = LocalEventStorage(tmp_path / 'offline.json')
    snapshot = [Event(id="a", title="Club Meeting", club_name="CS Club", date=date(2025, 5, 10))]
    await offline.save_events(snapshot)

    storage = FlakyStorage(tmp_path / 'remote.json')
    storage.available = False
    sync = EventSynchronizer(storage, offline_cache=offline, initial_wait=0)

    await sync.initialize()
    assert sync.is_initialized is True
    assert sync.events == snapshot
    assert sync.status == STATUS_ERROR
    assert sync.badge_status() == "error"


@pytest.mark.asyncio
async def test_empty_backend_receives_offline_snapshot(tmp_path):
    offline = LocalEventStorage(tmp_path / 'offline.json')
    snapshot = [Event(id="a", title="Club Meeting", club_name="CS Club", date=date(2025, 5, 10))]
    await offline.save_events(snapshot)

    storage = FlakyStorage(tmp_path / 'remote.json')
    sync = EventSynchronizer(storage, offline_cache=offline, initial_wait=0)

    await sync.initialize()
    assert await storage.list_events() == snapshot
    assert sync.events == snapshot
    assert sync.badge_status() == "synced"


@pytest.mark.asyncio
async def test_backend_failures_keep_the_cache(tmp_path, club_meeting):
    storage = FlakyStorage(tmp_path / 'remote.json')
    sync = EventSynchronizer(storage, sync_interval=3600, initial_wait=0)
    await sync.initialize()
    created = await sync.add_event(club_meeting)

    storage.available = False
    assert await sync.force_sync_now() is False
    assert [event.id for event in await sync.get_all_events()] == [created.id]

    with pytest.raises(BackendUnavailableError):
        await sync.add_event(club_meeting)
    assert [event.id for event in sync.events] == [created.id]
    await sync.stop()


@pytest.mark.asyncio
async def test_status_listeners_follow_a_pass(synchronizer):
    seen = []
    synchronizer.add_status_listener(seen.append)
    await synchronizer.force_sync_now()
    synchronizer.remove_status_listener(seen.append)
    await synchronizer.force_sync_now()

    assert seen == [STATUS_SYNCING, STATUS_SUCCESS]
    status = synchronizer.get_sync_status()
    assert status['isInitialized'] is True
    assert status['isSyncing'] is False
    assert status['badge'] == "not-configured"
    assert status['secondsSinceLastSync'] >= 0


@pytest.mark.asyncio
async def test_request_sync_wakes_the_loop(local_storage):
    sync = EventSynchronizer(local_storage, sync_interval=3600, initial_wait=0)
    await sync.start()
    try:
        await local_storage.create_event(
            Event(id="late", title="Workshop", club_name="Photo Club", date=date(2025, 5, 12))
        )
        assert sync.events == []

        sync.request_sync("focus")
        assert await wait_for(lambda: [event.id for event in sync.events] == ["late"])
    finally:
        await sync.stop()


@pytest.mark.asyncio
async def test_push_updates_replace_the_cache():
    storage = RelationalEventStorage(Database(DatabaseConfig("sqlite://")))
    sync = EventSynchronizer(storage, sync_interval=3600, initial_wait=0)
    await sync.start()
    try:
        # A write that does not go through the synchronizer
        await storage.create_event(
            Event(id="pushed", title="Workshop", club_name="Photo Club", date=date(2025, 5, 12))
        )
        assert [event.id for event in sync.events] == ["pushed"]
    finally:
        await sync.stop()
        await storage.close()
