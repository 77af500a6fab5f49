"""
Command-line interface for managing events through the calendar API.

Common use cases:
    # List all events, or the events of one month
    python scripts/events.py list
    python scripts/events.py list --month 2025-05

    # Publish an event
    python scripts/events.py add "Club Meeting" "CS Club" 2025-05-10 --start 15:00 --end 16:30

    # Delete an event
    python scripts/events.py delete <event-id>

    # Force a synchronization pass on the server
    python scripts/events.py sync
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import requests

from .client import CalendarAPIClient

logger = logging.getLogger(__name__)

DEFAULT_API_URL = os.environ.get('CALENDAR_API_URL', 'http://localhost:8000')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage campus calendar events")
    parser.add_argument('--api-url', default=DEFAULT_API_URL, help="Base URL of the calendar API")
    parser.add_argument('--timeout', type=int, default=30, help="Request timeout in seconds")
    subparsers = parser.add_subparsers(dest='command', required=True)

    list_parser = subparsers.add_parser('list', help="List events")
    list_parser.add_argument('--date', help="Only events on this day (YYYY-MM-DD)")
    list_parser.add_argument('--month', help="Only events in this month (YYYY-MM)")

    add_parser = subparsers.add_parser('add', help="Publish an event")
    add_parser.add_argument('title')
    add_parser.add_argument('club_name')
    add_parser.add_argument('date', help="YYYY-MM-DD")
    add_parser.add_argument('--start', default="", help="Start time (HH:MM)")
    add_parser.add_argument('--end', default="", help="End time (HH:MM)")
    add_parser.add_argument('--location', default="")
    add_parser.add_argument('--description', default="")
    add_parser.add_argument('--image', default="", help="Image URL")

    delete_parser = subparsers.add_parser('delete', help="Delete an event")
    delete_parser.add_argument('event_id')

    subparsers.add_parser('sync', help="Force a synchronization pass")
    return parser


def _print_event(event) -> None:
    times = f" {event.start_time}-{event.end_time}" if event.start_time else ""
    print(f"{event.date}{times}  {event.title} ({event.club_name})  [{event.id}]")


def main(argv: Optional[List[str]] = None, client: Optional[CalendarAPIClient] = None) -> int:
    args = build_parser().parse_args(argv)
    client = client or CalendarAPIClient(args.api_url, timeout=args.timeout)

    try:
        if args.command == 'list':
            events = client.get_events(day=args.date, month=args.month)
            for event in events:
                _print_event(event)
            print(f"{len(events)} events")
        elif args.command == 'add':
            event = client.add_event({
                'title': args.title,
                'clubName': args.club_name,
                'date': args.date,
                'startTime': args.start,
                'endTime': args.end,
                'location': args.location,
                'description': args.description,
                'image': args.image,
            })
            print(f"Created event {event.id}")
            _print_event(event)
        elif args.command == 'delete':
            client.delete_event(args.event_id)
            print(f"Deleted event {args.event_id}")
        elif args.command == 'sync':
            print(json.dumps(client.sync(), indent=2))
    except requests.RequestException as e:
        logger.error(f"Request failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    sys.exit(main())
