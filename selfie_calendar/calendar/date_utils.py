"""Date helpers for recurrence expansion - selfie_calendar.

All values are naive local wall-clock dates and times. Nothing in this module
raises on bad input: parsers return ``None`` and callers decide to skip.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Union

from dateutil import parser as date_parser

from ..models import Weekday

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

_WEEKDAY_LOOKUP: dict[str, int] = {day.name.lower(): int(day) for day in Weekday}


def parse_date_only(value: Optional[Any]) -> Optional[date]:
    """Parse a date string into a midnight-normalized ``date``.

    Accepts ``date``/``datetime`` instances and ISO 8601 strings, either
    date-only ("2025-06-01") or full timestamps ("2025-06-01T10:00:00"), in
    which case the time part is dropped.

    Args:
        value: Raw value from an event or activity row

    Returns:
        The calendar date, or None when the value is missing or unparsable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        logger.debug("Unparsable date value %r", value)
        return None


def _time_component(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def combine(day: date, time_of_day: Optional[str]) -> datetime:
    """Combine a date with an optional ``HH:MM[:SS]`` wall-clock time.

    Missing seconds default to 0 and any unparsable component defaults to 0.
    Out-of-range components roll over instead of raising, so "24:30" lands at
    00:30 on the following day.

    Args:
        day: Occurrence date
        time_of_day: Time string or None for midnight

    Returns:
        Naive timestamp
    """
    midnight = datetime.combine(day, time.min)
    if not time_of_day:
        return midnight

    parts = str(time_of_day).split(":")
    hours = _time_component(parts[0]) if len(parts) > 0 else 0
    minutes = _time_component(parts[1]) if len(parts) > 1 else 0
    seconds = _time_component(parts[2]) if len(parts) > 2 else 0

    return midnight + timedelta(hours=hours, minutes=minutes, seconds=seconds)


def weekday_index(name: Optional[str]) -> Optional[int]:
    """Map an English weekday name to its Sunday-based index (Sunday=0..Saturday=6).

    Lookup is case-insensitive and ignores surrounding whitespace. Unknown names
    return None.
    """
    if not isinstance(name, str):
        return None
    return _WEEKDAY_LOOKUP.get(name.strip().lower())


def weekday_of(day: date) -> int:
    """Return the Sunday-based weekday index of ``day``."""
    return day.isoweekday() % 7


def week_start(day: date) -> date:
    """Return the Sunday that opens the week containing ``day``."""
    return day - timedelta(days=weekday_of(day))


def parse_weekdays(value: Union[str, Iterable[str], None]) -> list[int]:
    """Turn weekday names into indices, keeping declaration order.

    ``value`` may be a comma-separated string ("Monday,Wednesday") or an
    iterable of names. Unrecognized names and repeats are dropped.
    """
    if value is None:
        return []
    names = value.split(",") if isinstance(value, str) else list(value)

    indices: list[int] = []
    for name in names:
        idx = weekday_index(name)
        if idx is None:
            if isinstance(name, str) and name.strip():
                logger.debug("Ignoring unrecognized weekday name %r", name)
            continue
        if idx not in indices:
            indices.append(idx)
    return indices


def to_iso_date(day: Optional[date]) -> Optional[str]:
    """Serialize a date as YYYY-MM-DD (None passes through)."""
    return day.isoformat() if day is not None else None


def to_iso_timestamp(moment: datetime) -> str:
    """Serialize a naive timestamp as YYYY-MM-DDTHH:MM:SS."""
    return moment.isoformat(timespec="seconds")
