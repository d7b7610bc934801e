"""
Parse iCalendar (RFC 5545) documents into unsaved events.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from icalendar import Calendar
from sqlalchemy.ext.asyncio import AsyncSession

from calagator.crud.event import save_event
from calagator.crud.venue import get_venue_by_title
from calagator.exceptions import ParseError
from calagator.logging_config import get_logger
from calagator.models.event import Event
from calagator.models.venue import Venue
from calagator.services.network import fetch_url
from calagator.time_utils import end_of_day, to_local

logger = get_logger("services.ical.parser")


async def parse(text: Optional[str] = None, url: Optional[str] = None) -> List[Event]:
    """
    Parse iCalendar text, or fetch and parse it from a URL.

    Args:
        text: iCalendar document
        url: Address to fetch the document from when ``text`` is not given

    Returns:
        One unsaved event per VEVENT, in document order

    Raises:
        ParseError: If the document is malformed
        FetchError: If the URL cannot be retrieved
    """
    if text is None:
        if not url:
            raise ValueError("Either text or url is required")
        logger.info(f"Fetching calendar from {url}")
        text = await fetch_url(url)
    return parse_text(text)


def parse_text(text: str) -> List[Event]:
    """Parse iCalendar text into unsaved events."""
    try:
        components = Calendar.from_ical(text, multiple=True)
    except Exception as e:
        raise ParseError(f"Malformed calendar: {e}") from e

    calendars = [component for component in components if component.name == "VCALENDAR"]
    if not calendars:
        raise ParseError("No VCALENDAR found")

    events = []
    index = 0
    for calendar in calendars:
        for component in calendar.walk("VEVENT"):
            summary = str(component.get("summary", "")) or None
            try:
                events.append(_to_event(component))
            except (ValueError, TypeError, AttributeError) as e:
                raise ParseError(str(e), index=index, summary=summary) from e
            index += 1

    logger.info(f"Parsed {len(events)} event(s) from calendar")
    return events


async def to_events(
    db: AsyncSession,
    text: Optional[str] = None,
    url: Optional[str] = None,
    save: bool = False,
) -> List[Event]:
    """
    Parse a calendar and optionally persist the events.

    Parsed venues reuse an existing venue with the same title. Saving is
    all or nothing: if any event fails, the whole import is rolled back.
    """
    events = await parse(text=text, url=url)
    if not save:
        return events

    try:
        for event in events:
            venue = event.venue
            if venue is not None:
                existing = await get_venue_by_title(db, venue.title)
                if existing is not None:
                    event.venue = existing
            await save_event(db, event, commit=False)
        await db.commit()
    except Exception as e:
        logger.error(f"Import failed, rolling back {len(events)} event(s): {e}")
        await db.rollback()
        raise

    logger.info(f"Imported {len(events)} event(s)")
    return events


def _to_event(component) -> Event:
    if component.errors:
        problems = ", ".join(f"{name}: {message}" for name, message in component.errors)
        raise ValueError(f"Invalid properties ({problems})")

    start = _time_value(component, "dtstart")
    if start is None:
        raise ValueError("Missing DTSTART")
    end = _time_value(component, "dtend")

    if isinstance(start, datetime):
        start_time = to_local(start)
    else:
        start_time = datetime.combine(start, time.min)

    end_time = None
    if end is not None:
        if isinstance(end, datetime):
            end_time = to_local(end)
        else:
            # All-day DTEND is exclusive: end at the close of the previous day
            end_time = end_of_day(datetime.combine(end - timedelta(days=1), time.min))
            end_time = max(end_time, start_time)
    elif component.get("duration") is not None:
        end_time = start_time + component.decoded("duration")

    url = component.get("url")
    description = component.get("description")

    return Event(
        title=str(component.get("summary", "")),
        description=str(description) if description is not None else None,
        url=str(url) if url is not None else None,
        start_time=start_time,
        end_time=end_time,
        venue=_to_venue(component),
    )


def _time_value(component, name: str) -> Optional[date]:
    prop = component.get(name)
    if prop is None:
        return None
    value = getattr(prop, "dt", None)
    if not isinstance(value, date):
        raise ValueError(f"Unparseable {name.upper()}: {prop!r}")
    return value


def _to_venue(component) -> Optional[Venue]:
    """Build a venue from LOCATION and GEO.

    A location written as ``"name: address"`` keeps the whole text as the
    title and the part after the colon as the address.
    """
    location = str(component.get("location", "")).strip()
    geo = component.get("geo")
    latitude = longitude = None
    if geo is not None:
        latitude, longitude = float(geo.latitude), float(geo.longitude)

    if not location and latitude is None:
        return None

    address = None
    if ": " in location:
        address = location.split(": ", 1)[1]

    return Venue(
        title=location or f"{latitude}, {longitude}",
        address=address,
        latitude=latitude,
        longitude=longitude,
    )
