import json

import pytest
from fastapi.testclient import TestClient

from campus_calendar.api.app import create_application
from campus_calendar.config.backends import BackendSettings, SyncSettings


@pytest.fixture
def sync_settings(tmp_path):
    return SyncSettings(
        interval_seconds=3600,
        local_events_path=tmp_path / 'events.json',
        offline_cache_path=tmp_path / 'offline.json',
        settings_path=tmp_path / 'backend_settings.json',
        seed_demo_events=False,
        timezone='UTC',
    )


@pytest.fixture
def client(sync_settings):
    app = create_application(sync_settings=sync_settings, backend_settings=BackendSettings())
    with TestClient(app) as test_client:
        yield test_client


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()['status'] == "healthy"
    assert response.json()['backend'] == "local"


def test_create_get_delete_event(client, club_meeting):
    response = client.post("/api/events", json=club_meeting)
    assert response.status_code == 201
    created = response.json()
    assert created['title'] == "Club Meeting"
    assert created['clubName'] == "CS Club"
    assert created['createdAt'] == created['updatedAt']

    events = client.get("/api/events").json()
    assert [event['id'] for event in events] == [created['id']]
    assert client.get(f"/api/events/{created['id']}").json()['startTime'] == "15:00"

    assert client.delete(f"/api/events/{created['id']}").status_code == 204
    assert client.get(f"/api/events/{created['id']}").status_code == 404
    assert client.get("/api/events").json() == []


def test_invalid_event_returns_field_errors(client, club_meeting):
    club_meeting['startTime'] = "25:00"
    club_meeting['clubName'] = ""
    response = client.post("/api/events", json=club_meeting)
    assert response.status_code == 422
    assert response.json()['detail']['errors'] == {
        'clubName': "Club name is required",
        'startTime': "Use format HH:MM (24-hour)",
    }
    assert client.get("/api/events").json() == []


def test_deleting_unknown_event_succeeds(client):
    assert client.delete("/api/events/missing").status_code == 204


def test_filters_by_day_and_month(client, club_meeting):
    client.post("/api/events", json=club_meeting)
    client.post("/api/events", json=dict(club_meeting, title="Elections", date="2025-06-02"))

    by_day = client.get("/api/events", params={'date': "2025-05-10"}).json()
    assert [event['title'] for event in by_day] == ["Club Meeting"]

    by_month = client.get("/api/events", params={'month': "2025-06"}).json()
    assert [event['title'] for event in by_month] == ["Elections"]

    assert client.get("/api/events", params={'month': "2025-13"}).status_code == 400
    assert client.get("/api/events", params={'date': "tomorrow"}).status_code == 400


def test_sync_endpoints(client):
    response = client.post("/api/sync")
    assert response.status_code == 200
    assert response.json()['synced'] is True

    response = client.post("/api/sync", params={'reason': "focus"})
    assert response.status_code == 202
    assert response.json() == {'status': "scheduled", 'reason': "focus"}

    assert client.post("/api/sync", params={'reason': "bogus"}).status_code == 400

    status = client.get("/api/sync/status").json()
    assert status['isInitialized'] is True
    assert status['badge'] == "not-configured"
    assert status['backend'] == "local"


def test_calendar_feed(client, club_meeting):
    client.post("/api/events", json=dict(club_meeting, location="Room 201"))
    client.post("/api/events", json=dict(club_meeting, title="Open Day", startTime="", endTime=""))

    response = client.get("/calendar.ics")
    assert response.status_code == 200
    assert response.headers['content-type'].startswith("text/calendar")
    body = response.text
    assert "SUMMARY:Club Meeting" in body
    assert "20250510T150000" in body
    assert "20250510T163000" in body
    assert "VALUE=DATE:20250510" in body
    assert "LOCATION:Room 201" in body


def test_backend_config_rejects_incomplete_airtable_settings(client, sync_settings):
    response = client.put("/api/config/backend", json={'backend': "airtable", 'airtable': {'apiKey': "key"}})
    assert response.status_code == 422
    assert not sync_settings.settings_path.exists()
    assert client.get("/api/config/backend").json()['active'] == "local"


def test_backend_config_rejects_unknown_backend(client):
    assert client.put("/api/config/backend", json={'backend': "mongo"}).status_code == 422


def test_backend_config_switches_backend(client, sync_settings, tmp_path, club_meeting):
    client.post("/api/events", json=club_meeting)
    url = f"sqlite:///{tmp_path / 'events.db'}"

    response = client.put("/api/config/backend", json={'backend': "postgres", 'database': {'url': url}})
    assert response.status_code == 200
    assert response.json()['active'] == "postgres"
    assert sync_settings.settings_path.exists()

    config = client.get("/api/config/backend").json()
    assert config['backend'] == "postgres"
    assert config['active'] == "postgres"

    # The new backend starts empty
    assert client.get("/api/events").json() == []
    created = client.post("/api/events", json=club_meeting).json()
    assert [event['id'] for event in client.get("/api/events").json()] == [created['id']]


def test_backend_config_rejects_unusable_database_url(client, sync_settings, club_meeting):
    created = client.post("/api/events", json=club_meeting).json()

    response = client.put("/api/config/backend", json={'backend': "postgres", 'database': {'url': "not a url"}})
    assert response.status_code == 422
    assert not sync_settings.settings_path.exists()

    # The running backend keeps serving
    assert client.get("/api/config/backend").json()['active'] == "local"
    assert [event['id'] for event in client.get("/api/events").json()] == [created['id']]
    assert client.post("/api/sync").json()['synced'] is True


def test_unusable_persisted_settings_fall_back_to_local(sync_settings):
    sync_settings.settings_path.write_text(
        json.dumps({'backend': "postgres", 'database': {'url': "not a url"}}), encoding='utf-8'
    )
    app = create_application(sync_settings=sync_settings)
    with TestClient(app) as test_client:
        assert test_client.get("/").json()['backend'] == "local"
        assert test_client.get("/api/events").json() == []
