"""Datetime utilities with consistent local-time handling.

Tasks store naive local datetimes, the same way they are written to and
read from the JSON export format (ISO-8601 local date-time strings).
This module centralizes "now", the sorting sentinels and the string
conversions so that every caller agrees on that representation.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

import parsedatetime

logger = logging.getLogger(__name__)

# A zero-argument callable returning the current moment.
Clock = Callable[[], datetime]


def now_local() -> datetime:
    """Return the current local datetime without timezone info.

    Returns:
        Current naive local datetime truncated to whole seconds
    """
    return datetime.now().replace(microsecond=0)


def ensure_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive local time.

    Args:
        dt: Datetime to convert, or None

    Returns:
        Naive local datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt

    return dt.astimezone().replace(tzinfo=None)


def min_local() -> datetime:
    """Return datetime.min for sorting fallbacks."""
    return datetime.min


def max_local() -> datetime:
    """Return datetime.max for sorting fallbacks."""
    return datetime.max


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to an ISO-8601 local date-time string.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO string such as ``2024-05-01T09:00:00``, or None if input was None
    """
    if dt is None:
        return None

    return ensure_naive(dt).isoformat()


def from_iso_string(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string back into a naive local datetime.

    Malformed values degrade to None instead of raising.
    """
    if not value or not isinstance(value, str):
        return None

    try:
        return ensure_naive(datetime.fromisoformat(value))
    except ValueError:
        logger.debug(f"Ignoring unparseable datetime string: {value!r}")
        return None


def parse_datetime_input(text: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse an explicit date/time typed by the user.

    Tries ISO-8601 and a few fixed formats first, then falls back to
    parsedatetime for expressions like "next week 5pm".

    Args:
        text: User supplied date string
        now: Reference moment for relative expressions

    Returns:
        Naive local datetime, or None if nothing could be parsed
    """
    if not text or not text.strip():
        return None

    text = text.strip()

    parsed = from_iso_string(text)
    if parsed:
        return parsed

    for fmt in ("%Y-%m-%d %H:%M", "%m/%d/%Y %H:%M", "%m/%d/%Y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    calendar = parsedatetime.Calendar()
    source = now or now_local()
    time_struct, parse_status = calendar.parse(text, sourceTime=source.timetuple())
    if parse_status > 0:
        return datetime(*time_struct[:6])

    return None
