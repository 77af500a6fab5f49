"""Event model definition."""

import base64
import binascii
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..utils.timezone import now_utc, parse_timestamp

# HH:MM, 24-hour, leading zero on the hour optional
TIME_PATTERN = re.compile(r'^([01]?\d|2[0-3]):[0-5]\d$')

# Inlined uploads are limited to 5MB of decoded image data
MAX_IMAGE_BYTES = 5 * 1024 * 1024

DATA_URL_PATTERN = re.compile(r'^data:(?P<mime>[^;,]*)(?P<params>(;[^,]*)*),(?P<data>.*)$', re.DOTALL)

# Row/column backends use snake_case column names
ROW_FIELD_MAPPING = {
    'title': 'title',
    'description': 'description',
    'clubName': 'club_name',
    'date': 'date',
    'startTime': 'start_time',
    'endTime': 'end_time',
    'location': 'location',
    'image': 'image',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}


class EventValidationError(ValueError):
    """Raised when submitted form data fails validation.

    ``errors`` maps the form field name (camelCase, as the UI names it)
    to a human readable message.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(
            "Invalid event data: " + ", ".join(f"{k}: {v}" for k, v in self.errors.items())
        )


def parse_event_date(value: Any) -> date:
    """Parse a calendar date from a date, datetime or ISO string.

    Full ISO datetimes (``2025-05-10T15:00:00.000Z``) keep only their date part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValueError("Date is empty")
    return date.fromisoformat(str(value).strip()[:10])


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def validate_image(image: str) -> Optional[str]:
    """Return an error message for an invalid inlined image, or None.

    Plain URLs are accepted as is. ``data:`` URLs must carry an image
    content type and stay under the upload limit.
    """
    if not image or not image.startswith('data:'):
        return None
    match = DATA_URL_PATTERN.match(image)
    if not match or not match.group('mime').startswith('image/'):
        return "Please upload an image file"
    payload = match.group('data')
    if ';base64' in match.group('params'):
        try:
            size = len(base64.b64decode(payload, validate=False))
        except (binascii.Error, ValueError):
            return "Error reading file"
    else:
        size = len(payload.encode('utf-8'))
    if size > MAX_IMAGE_BYTES:
        return "Image must be less than 5MB"
    return None


@dataclass
class EventFormData:
    """Data submitted through the event form, before an id is assigned."""
    title: str = ""
    club_name: str = ""
    date: Optional[date] = None
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    location: str = ""
    image: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventFormData':
        """Build form data from a camelCase JSON payload.

        An unparsable date is kept as missing so that validation reports it.
        """
        try:
            event_date = parse_event_date(data.get('date'))
        except (TypeError, ValueError):
            event_date = None
        return cls(
            title=_text(data.get('title')),
            club_name=_text(data.get('clubName')),
            date=event_date,
            description=_text(data.get('description')),
            start_time=_text(data.get('startTime')).strip(),
            end_time=_text(data.get('endTime')).strip(),
            location=_text(data.get('location')),
            image=_text(data.get('image')),
        )

    def validate(self) -> Dict[str, str]:
        """Return per-field errors; an empty dict means the form is valid."""
        errors = {}
        if not self.title.strip():
            errors['title'] = "Title is required"
        if not self.club_name.strip():
            errors['clubName'] = "Club name is required"
        if not self.date:
            errors['date'] = "Date is required"
        if self.start_time and not TIME_PATTERN.match(self.start_time):
            errors['startTime'] = "Use format HH:MM (24-hour)"
        if self.end_time and not TIME_PATTERN.match(self.end_time):
            errors['endTime'] = "Use format HH:MM (24-hour)"
        image_error = validate_image(self.image)
        if image_error:
            errors['imageFile'] = image_error
        return errors

    def raise_for_errors(self) -> None:
        """Raise EventValidationError if the form is invalid."""
        errors = self.validate()
        if errors:
            raise EventValidationError(errors)


@dataclass
class Event:
    """
    Event published by a club.

    Fields:
        id: Unique identifier within the collection
        title: Event title
        club_name: Name of the club publishing the event
        date: Calendar date of the event
        description: Free text description
        start_time: Start of the event as HH:MM (optional)
        end_time: End of the event as HH:MM (optional)
        location: Where the event takes place (optional)
        image: Image URL or inlined data URL (optional)
        created_at: When the event was created
        updated_at: When the event was last written
    """
    id: str
    title: str
    club_name: str
    date: date
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    location: str = ""
    image: str = ""
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    @classmethod
    def from_form(cls, form: EventFormData, event_id: str, now: Optional[datetime] = None) -> 'Event':
        """Create a new event from validated form data.

        ``created_at`` and ``updated_at`` share the same instant.
        """
        timestamp = now or now_utc()
        return cls(
            id=event_id,
            title=form.title.strip(),
            club_name=form.club_name.strip(),
            date=form.date,
            description=form.description,
            start_time=form.start_time,
            end_time=form.end_time,
            location=form.location,
            image=form.image,
            created_at=timestamp,
            updated_at=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary with camelCase keys."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'clubName': self.club_name,
            'date': self.date.isoformat(),
            'startTime': self.start_time,
            'endTime': self.end_time,
            'location': self.location,
            'image': self.image,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        """
        Build an event from a camelCase dictionary (see ``to_dict``).

        Raises:
            KeyError: If ``id`` is missing
            ValueError: If the date or timestamps cannot be parsed
        """
        created_at = parse_timestamp(data['createdAt']) if data.get('createdAt') else now_utc()
        updated_at = parse_timestamp(data['updatedAt']) if data.get('updatedAt') else created_at
        return cls(
            id=str(data['id']),
            title=_text(data.get('title')),
            club_name=_text(data.get('clubName')),
            date=parse_event_date(data.get('date')),
            description=_text(data.get('description')),
            start_time=_text(data.get('startTime')),
            end_time=_text(data.get('endTime')),
            location=_text(data.get('location')),
            image=_text(data.get('image')),
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_row(self) -> Dict[str, Any]:
        """Convert to a snake_case row for relational storage."""
        camel = self.to_dict()
        row = {ROW_FIELD_MAPPING[key]: camel[key] for key in ROW_FIELD_MAPPING}
        row.update({
            'id': self.id,
            'date': self.date,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        })
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Event':
        """Build an event from a snake_case row (see ``to_row``)."""
        camel = {key: row.get(column) for key, column in ROW_FIELD_MAPPING.items()}
        camel['id'] = row['id']
        return cls.from_dict(camel)

    def __str__(self) -> str:
        """String representation."""
        return f"Event(id={self.id}, title={self.title}, club={self.club_name}, date={self.date})"
