"""Helpers for the wall-clock times events are stored in.

Event times are kept as naive datetimes in the configured ``TIMEZONE``.
Aware values coming from outside are converted into that zone first.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from calagator.config import get_settings

# Accepted in addition to ISO 8601
FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
)


def local_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def now() -> datetime:
    """Current local time, naive and truncated to whole seconds."""
    return datetime.now(local_zone()).replace(tzinfo=None, microsecond=0)


def today() -> datetime:
    """Local midnight at the start of today."""
    return datetime.combine(now().date(), time.min)


def to_local(value: datetime) -> datetime:
    """Convert an aware datetime to a naive local one; naive input passes through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(local_zone()).replace(tzinfo=None)


def localize(value: datetime) -> datetime:
    """Attach the local timezone to a naive local datetime."""
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=local_zone())


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max).replace(microsecond=0)


def coerce_time(value: Union[None, str, date, datetime]) -> Optional[datetime]:
    """Turn user input into a naive local datetime.

    Raises:
        ValueError: If a string cannot be read as a date or time
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return to_local(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        for fmt in FALLBACK_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        raise ValueError(f"Invalid date or time: {value!r}")
    raise ValueError(f"Unsupported time value: {value!r}")


def date_span(start: datetime, end: Optional[datetime]) -> int:
    """Number of day boundaries between start and end."""
    if end is None:
        return 0
    return (end.date() - start.date()).days


ONE_HOUR = timedelta(hours=1)
