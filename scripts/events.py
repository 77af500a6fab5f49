#!/usr/bin/env python3

"""
Command-line interface for managing campus calendar events.

Talks to a running calendar API (``CALENDAR_API_URL`` or ``--api-url``).
For usage information, run:
    python events.py --help
"""

import logging
import sys
from pathlib import Path

# Add project root to Python path
sys.path.append(str(Path(__file__).parent.parent))

from campus_calendar.cli import main

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)

if __name__ == '__main__':
    sys.exit(main())
