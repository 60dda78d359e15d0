# crawler/processor/date_parser.py
import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from dateutil import parser as dateutil_parser

from crawler.utils import utcnow

logger = logging.getLogger(__name__)

# epoch values above this are milliseconds (Lever createdAt, Ashby publishedAt)
EPOCH_MILLIS_THRESHOLD = 10 ** 11


class DateParser:
    """Parse posting dates from ISO strings, epoch numbers and relative phrases"""

    RELATIVE_PATTERNS = {
        r'(\d+)\s*(?:minute|min)s?\s*ago': lambda m: timedelta(minutes=int(m.group(1))),
        r'(\d+)\s*(?:hour|hr)s?\s*ago': lambda m: timedelta(hours=int(m.group(1))),
        r'(\d+)\s*(?:days?|d)\s*ago': lambda m: timedelta(days=int(m.group(1))),
        r'(\d+)\s*(?:weeks?|w)\s*ago': lambda m: timedelta(weeks=int(m.group(1))),
        r'(\d+)\s*(?:months?|mo)\s*ago': lambda m: timedelta(days=int(m.group(1)) * 30),
        r'^\s*(\d+)\s*d\s*$': lambda m: timedelta(days=int(m.group(1))),
        r'yesterday': lambda m: timedelta(days=1),
        r'today|just\s+(?:now|posted)': lambda m: timedelta(days=0),
    }

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._now = now or utcnow

    def parse(self, value: Any) -> Optional[datetime]:
        """
        Parse a date into a naive UTC datetime

        Supported inputs:
        - datetime objects (aware ones converted to UTC)
        - epoch seconds or milliseconds (int/float or digit strings)
        - ISO 8601 and most human formats via dateutil
        - relative phrases: "3 days ago", "2w ago", "yesterday"

        Returns None when nothing can be parsed.
        """
        if value is None or value == '':
            return None

        if isinstance(value, datetime):
            return self._to_naive_utc(value)

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return self._from_epoch(value)

        text = str(value).strip()
        if text.isdigit():
            return self._from_epoch(int(text))

        for pattern, delta_func in self.RELATIVE_PATTERNS.items():
            match = re.search(pattern, text, re.IGNORECASE)
            if match:
                return self._now() - delta_func(match)

        try:
            parsed = dateutil_parser.parse(text)
        except (ValueError, OverflowError, TypeError) as e:
            logger.debug(f"Failed to parse date '{text}': {e}")
            return None
        return self._to_naive_utc(parsed)

    @staticmethod
    def _from_epoch(value: float) -> Optional[datetime]:
        seconds = value / 1000 if value > EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Epoch value out of range: {value}")
            return None

    @staticmethod
    def _to_naive_utc(value: datetime) -> datetime:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
