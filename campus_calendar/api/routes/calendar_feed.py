"""iCalendar feed of all events."""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Response
from icalendar import Calendar, Event as ICalEvent

from ...config.backends import SyncSettings
from ...event_synchronizer import EventSynchronizer
from ...models.event import Event
from ..dependencies import get_sync_settings, get_synchronizer

router = APIRouter(tags=["calendar"])

def _at(event: Event, hhmm: str, tz) -> datetime:
    hours, minutes = hhmm.split(':')
    return datetime.combine(event.date, time(int(hours), int(minutes)), tzinfo=tz)

def build_calendar(events, timezone_name: str = 'UTC') -> Calendar:
    """Build an iCalendar document; events without a start time become all-day entries."""
    tz = timezone.utc if timezone_name == "UTC" else ZoneInfo(timezone_name)

    # Create calendar
    cal = Calendar()
    cal.add('prodid', '-//Campus Calendar//campus-calendar//')
    cal.add('version', '2.0')
    cal.add('x-wr-calname', 'Campus Events')
    cal.add('x-wr-timezone', timezone_name)

    # Add events to calendar
    for event in events:
        cal_event = ICalEvent()
        cal_event.add('uid', f"{event.id}@campus-calendar")
        cal_event.add('summary', event.title)
        cal_event.add('dtstamp', event.updated_at)

        if event.start_time:
            cal_event.add('dtstart', _at(event, event.start_time, tz))
            if event.end_time:
                cal_event.add('dtend', _at(event, event.end_time, tz))
        else:
            cal_event.add('dtstart', event.date)

        description = f"{event.club_name}\n\n{event.description}".strip()
        cal_event.add('description', description)

        if event.location:
            cal_event.add('location', event.location)

        cal.add_component(cal_event)

    return cal

@router.get("/calendar.ics")
async def ics_feed(
    synchronizer: EventSynchronizer = Depends(get_synchronizer),
    sync_settings: SyncSettings = Depends(get_sync_settings)
):
    """Generate an iCalendar feed of all events."""
    events = await synchronizer.get_all_events()
    cal = build_calendar(events, sync_settings.timezone)

    # Generate response
    return Response(
        content=cal.to_ical(),
        media_type='text/calendar; charset=utf-8',
        headers={'Content-Disposition': 'attachment; filename=calendar.ics'}
    )
