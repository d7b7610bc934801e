from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from calagator.crud.venue import refresh_events_count
from calagator.exceptions import LockedRecordError, ValidationError
from calagator.logging_config import get_logger
from calagator.models.event import Event
from calagator.models.version import EventVersion
from calagator.schemas.event import EventCreate, EventUpdate
from calagator.services import scopes
from calagator.time_utils import now

logger = get_logger("crud.event")


async def get_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    """
    Get a specific event by ID.

    Args:
        db: Database session
        event_id: ID of the event to retrieve

    Returns:
        Event or None if not found
    """
    result = await db.execute(select(Event).where(Event.id == event_id))
    return result.scalars().first()


async def get_events(
    db: AsyncSession,
    skip: int = 0,
    limit: Optional[int] = None,
    include_duplicates: bool = True,
    venue_id: Optional[int] = None,
) -> List[Event]:
    """
    Get a list of events ordered by start time.

    Args:
        db: Database session
        skip: Number of records to skip
        limit: Maximum number of records to return
        include_duplicates: Whether events marked as duplicates are returned
        venue_id: Optional venue filter

    Returns:
        List of events
    """
    query = select(Event).order_by(Event.start_time, Event.id).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    if not include_duplicates:
        query = query.where(Event.duplicate_of_id.is_(None))
    if venue_id is not None:
        query = query.where(Event.venue_id == venue_id)

    result = await db.execute(query)
    return list(result.scalars().all())


async def save_event(db: AsyncSession, event: Event, commit: bool = True) -> Event:
    """
    Validate and persist an event.

    New events start at sequence 1; every later save that changes the event
    bumps the sequence. Each save appends a version snapshot and recounts the
    affected venues in the same transaction.

    Args:
        db: Database session
        event: Event to persist
        commit: Commit the transaction when done

    Returns:
        The saved event

    Raises:
        ValidationError: If the event is invalid; nothing is written
    """
    errors = event.validation_errors()
    if errors:
        logger.warning(f"Event {event.id} failed validation: {errors}")
        raise ValidationError(errors)

    state = inspect(event)
    is_new = not state.has_identity
    if not is_new and not db.is_modified(event):
        return event

    # Venues the event is leaving also need recounting
    venue_ids = set(state.attrs.venue_id.history.deleted or ())
    venue_ids.update(venue.id for venue in state.attrs.venue.history.deleted or () if venue is not None)
    reload_venue = "venue" in state.unloaded or state.attrs.venue_id.history.has_changes()

    timestamp = now()
    if is_new:
        event.sequence = 1
        event.created_at = event.created_at or timestamp
        db.add(event)
    else:
        event.sequence = (event.sequence or 0) + 1
    event.updated_at = timestamp

    await db.flush()
    if reload_venue:
        await db.refresh(event, attribute_names=["venue"])
    db.add(EventVersion(
        event_id=event.id,
        sequence=event.sequence,
        action="create" if is_new else "update",
        snapshot=event.snapshot(),
    ))
    venue_ids.add(event.venue_id)
    await refresh_events_count(db, venue_ids)

    if commit:
        await db.commit()

    logger.info(f"{'Created' if is_new else 'Updated'} event: {event.id} - {event.title} (sequence {event.sequence})")
    return event


async def create_event(db: AsyncSession, event: EventCreate) -> Event:
    """
    Create a new event.

    Args:
        db: Database session
        event: Event data

    Returns:
        Created event

    Raises:
        ValidationError: If the event data is invalid
    """
    db_event = Event(**event.model_dump())
    return await save_event(db, db_event)


async def update_event(db: AsyncSession, event_id: int, event: EventUpdate) -> Optional[Event]:
    """
    Update an existing event.

    Args:
        db: Database session
        event_id: ID of the event to update
        event: Updated event data, only fields that were set are applied

    Returns:
        Updated event or None if not found

    Raises:
        LockedRecordError: If the event is locked
        ValidationError: If the result would be invalid; the event is reloaded
    """
    db_event = await get_event(db, event_id)
    if not db_event:
        return None

    if db_event.locked:
        logger.warning(f"Attempted to update locked event: {event_id}")
        raise LockedRecordError(event_id, "update")

    update_data = event.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_event, field, value)

    try:
        return await save_event(db, db_event)
    except ValidationError:
        await discard_changes(db, db_event)
        raise


async def discard_changes(db: AsyncSession, event: Event) -> None:
    """Reload an event from the store, dropping unsaved assignments."""
    event.__dict__.pop("_time_errors", None)
    await db.refresh(event)


async def destroy_event(db: AsyncSession, event: Event) -> bool:
    """
    Delete an event unless it is locked.

    Args:
        db: Database session
        event: Event to delete

    Returns:
        True if the event was deleted, False if it is locked
    """
    if event.locked:
        logger.warning(f"Refusing to delete locked event: {event.id}")
        return False

    venue_id = event.venue_id
    db.add(EventVersion(
        event_id=event.id,
        sequence=(event.sequence or 0) + 1,
        action="destroy",
        snapshot=event.snapshot(),
    ))
    await db.delete(event)
    await db.flush()
    await refresh_events_count(db, [venue_id])
    await db.commit()

    logger.info(f"Deleted event: {event.id}")
    return True


async def delete_event(db: AsyncSession, event_id: int) -> bool:
    """
    Delete an event.

    Args:
        db: Database session
        event_id: ID of the event to delete

    Returns:
        True if the event was deleted, False otherwise
    """
    db_event = await get_event(db, event_id)
    if not db_event:
        logger.warning(f"Attempted to delete non-existent event: {event_id}")
        return False
    return await destroy_event(db, db_event)


async def lock_event(db: AsyncSession, event: Event) -> Event:
    """Lock an event against editing and deletion."""
    event.locked = True
    return await save_event(db, event)


async def unlock_event(db: AsyncSession, event: Event) -> Event:
    event.locked = False
    return await save_event(db, event)


async def get_versions(db: AsyncSession, event: Event) -> List[EventVersion]:
    """
    Get the version history of an event, oldest first.

    Unsaved events have no history.
    """
    if event.id is None or not inspect(event).has_identity:
        return []
    result = await db.execute(
        select(EventVersion)
        .where(EventVersion.event_id == event.id)
        .order_by(EventVersion.sequence, EventVersion.id)
    )
    return list(result.scalars().all())


async def search_tag(db: AsyncSession, tag: str, order: Optional[str] = None) -> List[Event]:
    """
    Find non-duplicate events carrying a tag.

    Args:
        db: Database session
        tag: Exact, case-sensitive tag
        order: Ordering accepted by ``scopes.ordered_by_ui_field``

    Returns:
        Matching events
    """
    events = await get_events(db, include_duplicates=False)
    tagged = scopes.filter_events(events, lambda e: scopes.is_tagged_with(e, tag))
    return scopes.ordered_by_ui_field(tagged, order)


async def get_future_events(
    db: AsyncSession,
    venue_id: Optional[int] = None,
    current: Optional[datetime] = None,
) -> List[Event]:
    """Non-duplicate events that have not finished before today."""
    events = await get_events(db, include_duplicates=False, venue_id=venue_id)
    return scopes.filter_events(events, lambda e: scopes.is_future(e, current))


async def get_events_within_dates(
    db: AsyncSession,
    start: Union[date, datetime],
    end: Union[date, datetime],
) -> List[Event]:
    """Non-duplicate events overlapping the given days."""
    events = await get_events(db, include_duplicates=False)
    return scopes.filter_events(events, lambda e: scopes.is_within_dates(e, start, end))
