"""Event filters and orderings.

Each scope is a plain predicate over a loaded event so scopes can be
combined freely with ``filter_events``.
"""
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, List, Optional, Union

from calagator.models.event import Event
from calagator.time_utils import today

Predicate = Callable[[Event], bool]

UI_ORDER_FIELDS = ("date", "name", "title", "venue")


def _start_of(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def is_future(event: Event, current: Optional[datetime] = None) -> bool:
    """Still running or starting at or after the beginning of today."""
    midnight = _start_of(current) if current is not None else today()
    return event.start_time >= midnight or (event.end_time is not None and event.end_time >= midnight)


def is_within_dates(event: Event, start: Union[date, datetime], end: Union[date, datetime]) -> bool:
    """
    Whether the event overlaps the days from ``start`` up to ``end``.

    The range starts at the beginning of ``start`` and stops at the beginning
    of ``end``; a range of a single day covers that whole day.
    """
    range_start = _start_of(start)
    range_end = _start_of(end)
    if range_end == range_start:
        range_end += timedelta(days=1)
    on_or_after = event.start_time >= range_start or (
        event.end_time is not None and event.end_time > range_start
    )
    return on_or_after and event.start_time < range_end


def is_tagged_with(event: Event, tag: str) -> bool:
    return tag in event.tag_list


def is_non_duplicate(event: Event) -> bool:
    return event.duplicate_of_id is None


def filter_events(events: Iterable[Event], *predicates: Predicate) -> List[Event]:
    return [event for event in events if all(predicate(event) for predicate in predicates)]


def ordered_by_ui_field(events: Iterable[Event], field: Optional[str] = None) -> List[Event]:
    """
    Sort events the way listing pages offer.

    Args:
        events: Events to sort
        field: ``None`` or ``"date"`` for start time, ``"name"`` for title,
            ``"venue"`` for venue title (events without a venue last)

    Returns:
        A new sorted list; ties fall back to start time
    """
    events = list(events)
    if field in (None, "", "date"):
        return sorted(events, key=lambda e: (e.start_time, e.id or 0))
    if field in ("name", "title"):
        return sorted(events, key=lambda e: ((e.title or "").lower(), e.start_time))
    if field == "venue":
        return sorted(
            events,
            key=lambda e: (
                e.venue is None,
                (e.venue.title or "").lower() if e.venue is not None else "",
                e.start_time,
            ),
        )
    raise ValueError(f"Unknown order field: {field!r}, expected one of {UI_ORDER_FIELDS}")
