"""
Render events as an iCalendar (RFC 5545) document.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union

from icalendar import Calendar, Event as ICalEvent

from calagator.config import get_settings
from calagator.models.event import Event
from calagator.services.html_cleaner import strip_html
from calagator.time_utils import ONE_HOUR, localize, now

UrlHelper = Callable[[Event], str]


def render(events: Union[Event, Iterable[Event]], url_helper: Optional[UrlHelper] = None) -> str:
    """
    Render one or many events as a single VCALENDAR.

    Args:
        events: An event or a sequence of events
        url_helper: Optional function returning an event's permalink; used as
            the UID and noted in the description of events without a url

    Returns:
        The iCalendar document text
    """
    settings = get_settings()
    if isinstance(events, Event):
        events = [events]

    calendar = Calendar()
    calendar.add("prodid", settings.ICAL_PRODID)
    calendar.add("version", "2.0")
    calendar.add("x-wr-calname", settings.SITE_TITLE)
    calendar.add("method", "PUBLISH")
    calendar.add("calscale", "GREGORIAN")

    for event in events:
        calendar.add_component(render_event(event, url_helper))

    return calendar.to_ical().decode("utf-8")


def render_event(event: Event, url_helper: Optional[UrlHelper] = None) -> ICalEvent:
    component = ICalEvent()
    component.add("summary", event.title or "")

    if event.is_multiday:
        # All-day span; DTEND is exclusive
        component.add("dtstart", event.start_time.date())
        component.add("dtend", event.end_time.date() + timedelta(days=1))
    else:
        component.add("dtstart", _utc(event.start_time))
        component.add("dtend", _utc(event.end_time or event.start_time + ONE_HOUR))

    permalink = url_helper(event) if url_helper else None

    description = _description(event, permalink)
    if description:
        component.add("description", description)

    if event.url:
        component.add("url", event.url)

    venue = event.venue
    if venue is not None:
        location = ": ".join(part for part in (venue.title, venue.full_address) if part)
        if location:
            component.add("location", location)
        if venue.has_location:
            component.add("geo", (venue.latitude, venue.longitude))

    component.add("uid", permalink or _uid(event))

    if event.created_at:
        component.add("created", _utc(event.created_at))
    component.add("dtstamp", _utc(event.created_at or now()))
    if event.updated_at:
        component.add("last-modified", _utc(event.updated_at))

    component.add("sequence", event.sequence or 1)
    return component


def _description(event: Event, permalink: Optional[str]) -> str:
    parts = []
    text = strip_html(event.description)
    if text:
        parts.append(text)
    if event.tag_list:
        parts.append(f"Tags: {event.tag_list_str}")
    if permalink and not event.url:
        parts.append(f"Imported from: {permalink}")
    return "\n\n".join(parts)


def _uid(event: Event) -> str:
    """Identifier stable across renders of the same event."""
    settings = get_settings()
    if event.id is not None:
        name = f"{settings.SITE_URL}events/{event.id}"
    else:
        start = event.start_time.isoformat() if event.start_time else ""
        name = f"{settings.SITE_URL}events/{event.title}/{start}"
    return str(uuid.uuid5(uuid.NAMESPACE_URL, name))


def _utc(value: datetime) -> datetime:
    return localize(value).astimezone(timezone.utc)
