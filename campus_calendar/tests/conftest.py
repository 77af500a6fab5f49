"""Shared fixtures for the campus calendar tests."""

import pytest
import pytest_asyncio

from campus_calendar.event_synchronizer import EventSynchronizer
from campus_calendar.storage.local import LocalEventStorage

CLUB_MEETING = {
    'title': "Club Meeting",
    'clubName': "CS Club",
    'date': "2025-05-10",
    'startTime': "15:00",
    'endTime': "16:30",
}


@pytest.fixture
def club_meeting():
    return dict(CLUB_MEETING)


@pytest.fixture
def local_storage(tmp_path):
    return LocalEventStorage(tmp_path / 'events.json')


@pytest_asyncio.fixture
async def synchronizer(local_storage):
    sync = EventSynchronizer(local_storage, sync_interval=3600, initial_wait=0)
    await sync.initialize()
    yield sync
    await sync.stop()
