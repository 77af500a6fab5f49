"""Events router module."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from ...errors import StorageError
from ...event_synchronizer import EventSynchronizer
from ...models.event import EventValidationError
from ..dependencies import get_synchronizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

def _parse_month(value: str) -> tuple:
    """Parse ``YYYY-MM`` into (year, month)."""
    year, month = value.split('-', 1)
    year, month = int(year), int(month)
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    return year, month

@router.get("/events", response_model=List[Dict])
async def list_events(
    day: Optional[str] = Query(None, alias="date"),
    month: Optional[str] = None,
    synchronizer: EventSynchronizer = Depends(get_synchronizer)
):
    """Get all events, optionally limited to one day (YYYY-MM-DD) or one month (YYYY-MM)."""
    events = await synchronizer.get_all_events()
    try:
        if day:
            events = synchronizer.events_for_date(date.fromisoformat(day))
        elif month:
            events = synchronizer.events_for_month(*_parse_month(month))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid filter: {e}")
    return [event.to_dict() for event in events]

@router.get("/events/{event_id}", response_model=Dict)
async def get_event(event_id: str, synchronizer: EventSynchronizer = Depends(get_synchronizer)):
    """Get a single event by ID."""
    event = synchronizer.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event.to_dict()

@router.post("/events", response_model=Dict, status_code=201)
async def create_event(
    form_data: Dict[str, Any] = Body(...),
    synchronizer: EventSynchronizer = Depends(get_synchronizer)
):
    """Create an event from the submitted form fields."""
    try:
        event = await synchronizer.add_event(form_data)
    except EventValidationError as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    except StorageError as e:
        logger.error(f"Failed to create event: {e}")
        raise HTTPException(status_code=502, detail=f"Storage error: {str(e)}")
    return event.to_dict()

@router.delete("/events/{event_id}", status_code=204)
async def delete_event(event_id: str, synchronizer: EventSynchronizer = Depends(get_synchronizer)):
    """Delete an event. Deleting an unknown id succeeds without changes."""
    try:
        await synchronizer.delete_event(event_id)
    except StorageError as e:
        logger.error(f"Failed to delete event {event_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Storage error: {str(e)}")
    return Response(status_code=204)
