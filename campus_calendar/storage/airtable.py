"""Airtable backend.

Talks to the Airtable REST API with an async httpx client. Airtable assigns
record ids (``rec...``), so events created through this backend get the
Airtable id instead of the client-generated one.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .base import EventStorage, sort_events
from ..config.backends import AirtableSettings
from ..errors import BackendUnavailableError, MalformedDataError
from ..models.event import Event, parse_event_date
from ..utils.timezone import now_utc, parse_timestamp

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"

# Defaults for records edited by hand in the Airtable UI
DEFAULT_TITLE = "Sans titre"
DEFAULT_CLUB_NAME = "Inconnu"


def record_to_event(record: Dict[str, Any]) -> Event:
    """
    Convert an Airtable record to an Event.

    Raises:
        MalformedDataError: If the record has no id or an unparsable date
    """
    if not isinstance(record, dict) or not isinstance(record.get('fields') or {}, dict):
        raise MalformedDataError(f"Invalid Airtable record: {record!r}")
    fields = record.get('fields') or {}
    try:
        created_at = parse_timestamp(fields['createdAt']) if fields.get('createdAt') else now_utc()
        updated_at = parse_timestamp(fields['updatedAt']) if fields.get('updatedAt') else created_at
        return Event(
            id=record['id'],
            title=fields.get('title') or DEFAULT_TITLE,
            description=fields.get('description') or "",
            club_name=fields.get('clubName') or DEFAULT_CLUB_NAME,
            date=parse_event_date(fields.get('date')),
            start_time=fields.get('startTime') or "",
            end_time=fields.get('endTime') or "",
            location=fields.get('location') or "",
            image=fields.get('image') or "",
            created_at=created_at,
            updated_at=updated_at,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedDataError(f"Invalid Airtable record {record.get('id')}: {e}") from e


def event_to_fields(event: Event) -> Dict[str, Any]:
    """Convert an Event to Airtable fields."""
    return {
        'title': event.title,
        'description': event.description,
        'clubName': event.club_name,
        'date': event.date.isoformat(),
        'startTime': event.start_time,
        'endTime': event.end_time,
        'location': event.location,
        'image': event.image,
        'createdAt': event.created_at.isoformat(),
        'updatedAt': event.updated_at.isoformat(),
    }


class AirtableEventStorage(EventStorage):
    """Events stored as rows of an Airtable table."""

    backend_name = "airtable"

    def __init__(
        self,
        settings: AirtableSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            settings: Airtable credentials and table location
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used to stub the API in tests)
        """
        settings.validate()
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=AIRTABLE_API_URL,
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, backend_settings, sync_settings) -> 'AirtableEventStorage':
        return cls(backend_settings.airtable)

    @property
    def table_path(self) -> str:
        return f"/{self.settings.base_id}/{quote(self.settings.table_name, safe='')}"

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        """Send a request to the table endpoint, wrapping transport and HTTP errors."""
        try:
            response = await self._client.request(method, self.table_path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.error(f"Airtable {method} request failed: {e}")
            raise BackendUnavailableError(f"Airtable request failed: {e}") from e

    @staticmethod
    def _payload(response: httpx.Response) -> Dict[str, Any]:
        """Decode a JSON object response body.

        Raises:
            MalformedDataError: If the body is not JSON or not an object with a records list
        """
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedDataError(f"Airtable returned a non-JSON response: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get('records', []), list):
            raise MalformedDataError(f"Unexpected Airtable response: {type(payload).__name__}")
        return payload

    async def list_events(self) -> List[Event]:
        """Fetch all records, following Airtable's offset pagination."""
        records: List[Dict[str, Any]] = []
        params: Dict[str, str] = {}
        while True:
            payload = self._payload(await self._request("GET", params=params))
            records.extend(payload.get('records', []))
            offset = payload.get('offset')
            if not offset:
                break
            params = {'offset': offset}

        events = []
        for record in records:
            try:
                events.append(record_to_event(record))
            except MalformedDataError as e:
                logger.warning(f"Skipping record: {e}")
        logger.debug(f"Fetched {len(events)} events from Airtable")
        return sort_events(events)

    async def create_event(self, event: Event) -> Event:
        response = await self._request(
            "POST",
            json={'records': [{'fields': event_to_fields(event)}]}
        )
        created = self._payload(response).get('records') or []
        if not created:
            raise MalformedDataError("Airtable returned no record for the created event")
        return record_to_event(created[0])

    async def delete_event(self, event_id: str) -> bool:
        try:
            response = await self._client.request(
                "DELETE", self.table_path, params={'records[]': event_id}
            )
            if response.status_code == 404:
                return False
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Airtable DELETE request failed: {e}")
            raise BackendUnavailableError(f"Airtable request failed: {e}") from e

        deleted = self._payload(response).get('records') or []
        return any(isinstance(record, dict) and record.get('deleted') for record in deleted)

    async def close(self) -> None:
        await self._client.aclose()

    def __str__(self) -> str:
        """String representation."""
        return f"AirtableEventStorage(base={self.settings.base_id}, table={self.settings.table_name})"
