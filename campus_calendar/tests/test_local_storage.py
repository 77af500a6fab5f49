from datetime import date

import pytest

from campus_calendar.models.event import Event
from campus_calendar.storage.local import LocalEventStorage


def make_event(event_id, day=date(2025, 5, 10), title="Club Meeting"):
    return Event(id=event_id, title=title, club_name="CS Club", date=day, start_time="15:00")


@pytest.mark.asyncio
async def test_missing_document_is_an_empty_collection(local_storage):
    assert await local_storage.list_events() == []


@pytest.mark.asyncio
async def test_create_list_delete(local_storage):
    first = await local_storage.create_event(make_event("a"))
    await local_storage.create_event(make_event("b", title="Workshop"))

    events = await local_storage.list_events()
    assert [event.id for event in events] == ["a", "b"]
    assert events[0] == first

    assert await local_storage.delete_event("a") is True
    assert [event.id for event in await local_storage.list_events()] == ["b"]


@pytest.mark.asyncio
async def test_delete_unknown_id_returns_false(local_storage):
    await local_storage.create_event(make_event("a"))
    assert await local_storage.delete_event("missing") is False
    assert len(await local_storage.list_events()) == 1


@pytest.mark.asyncio
async def test_save_events_overwrites_the_collection(local_storage):
    await local_storage.save_events([make_event("a"), make_event("b")])
    stored = await local_storage.save_events([make_event("c")])
    assert [event.id for event in stored] == ["c"]
    assert [event.id for event in await local_storage.list_events()] == ["c"]


@pytest.mark.asyncio
async def test_corrupted_document_falls_back_to_backup(local_storage):
    await local_storage.save_events([make_event("a")])
    local_storage.path.write_text("{not json", encoding='utf-8')

    events = await local_storage.list_events()
    assert [event.id for event in events] == ["a"]


@pytest.mark.asyncio
async def test_unreadable_document_and_backup_read_as_empty(local_storage):
    await local_storage.save_events([make_event("a")])
    local_storage.path.write_text("[{\"id\": 1}]", encoding='utf-8')
    local_storage.backup_path.write_text("garbage", encoding='utf-8')

    assert await local_storage.list_events() == []


@pytest.mark.asyncio
async def test_demo_events_are_seeded_once(tmp_path):
    storage = LocalEventStorage(tmp_path / 'events.json', seed_demo_events=True)
    events = await storage.list_events()
    assert len(events) == 4
    assert events[0].title == "Computer Science Club Meeting"
    assert storage.path.exists()

    await storage.delete_event("1")
    assert len(await storage.list_events()) == 3
