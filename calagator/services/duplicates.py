"""
Duplicate event detection and squashing.

Events are grouped by a duplicate-check type: ``"na"`` (everything in one
group), ``"all"`` (every content column must match) or a comma separated
list of column names. Squashing marks one event as a duplicate of another
and folds its tags into the master.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calagator.crud.event import save_event
from calagator.exceptions import LockedRecordError, ValidationError
from calagator.logging_config import get_logger
from calagator.models.event import BOOKKEEPING_COLUMNS, Event
from calagator.services import scopes

logger = get_logger("services.duplicates")

# Upper bound on duplicate_of hops when looking for a progenitor
MAX_PROGENITOR_DEPTH = 100

# Columns ignored when comparing whole records
ALL_EXCLUDED_COLUMNS = BOOKKEEPING_COLUMNS + ("tags",)

DuplicateGroups = Dict[Tuple[Any, ...], List[Event]]


def duplicate_fields(type_: str) -> Optional[List[str]]:
    """
    Resolve a duplicate-check type to the columns it compares.

    Returns:
        ``None`` for ``"na"``, otherwise the list of column names

    Raises:
        ValueError: If a named column does not exist
    """
    type_ = (type_ or "na").strip()
    if type_ == "na":
        return None
    columns = [column.name for column in Event.__table__.columns]
    if type_ == "all":
        return [name for name in columns if name not in ALL_EXCLUDED_COLUMNS]

    fields = [field.strip() for field in type_.split(",") if field.strip()]
    unknown = [field for field in fields if field not in columns]
    if unknown or not fields:
        raise ValueError(f"Unknown duplicate check field(s): {', '.join(unknown) or type_!r}")
    return fields


def group_duplicates(events: Sequence[Event], type_: str) -> DuplicateGroups:
    """
    Group events sharing the same key, keeping only groups of two or more.

    Pure function over already loaded events; each group is ordered oldest
    first.

    Args:
        events: Candidate events
        type_: Duplicate-check type

    Returns:
        Mapping from key tuple to events; ``(None,)`` is the key for ``"na"``
    """
    fields = duplicate_fields(type_)
    groups: DuplicateGroups = {}
    for event in sorted(events, key=lambda e: (e.created_at or datetime.min, e.id or 0)):
        if fields is None:
            key: Tuple[Any, ...] = (None,)
        else:
            key = tuple(_hashable(getattr(event, field)) for field in fields)
        groups.setdefault(key, []).append(event)
    return {key: group for key, group in groups.items() if len(group) > 1}


def _hashable(value: Any) -> Any:
    # JSON columns such as tags load as lists
    if isinstance(value, list):
        return tuple(value)
    return value


async def non_duplicates(db: AsyncSession) -> List[Event]:
    """Events that have not been marked as a duplicate of another."""
    result = await db.execute(
        select(Event).where(Event.duplicate_of_id.is_(None)).order_by(Event.created_at, Event.id)
    )
    return list(result.scalars().all())


async def marked_duplicates(db: AsyncSession) -> List[Event]:
    """Events already carrying a duplicate marker."""
    result = await db.execute(
        select(Event).where(Event.duplicate_of_id.is_not(None)).order_by(Event.created_at, Event.id)
    )
    return list(result.scalars().all())


async def find_duplicates_by_type(
    db: AsyncSession,
    type_: str = "na",
    current: Optional[datetime] = None,
) -> DuplicateGroups:
    """
    Find groups of future, non-duplicate events that look alike.

    Args:
        db: Database session
        type_: ``"na"``, ``"all"`` or comma separated column names
        current: Reference time for the future scope, defaults to now

    Returns:
        Mapping from key tuple to events oldest first; empty when nothing matches
    """
    candidates = scopes.filter_events(
        await non_duplicates(db),
        lambda e: scopes.is_future(e, current),
    )
    groups = group_duplicates(candidates, type_)
    logger.info(f"Found {len(groups)} duplicate group(s) by {type_!r} among {len(candidates)} events")
    return groups


def is_slave(event: Event) -> bool:
    """Whether the event is marked as a duplicate of another."""
    return event.duplicate_of_id is not None


async def is_master(db: AsyncSession, event: Event) -> bool:
    """Whether any other event is marked as a direct duplicate of this one."""
    if event.id is None:
        return False
    result = await db.execute(
        select(Event.id).where(Event.duplicate_of_id == event.id, Event.id != event.id).limit(1)
    )
    return result.first() is not None


async def get_duplicates_of(db: AsyncSession, event: Event) -> List[Event]:
    """Events directly marked as duplicates of ``event``."""
    result = await db.execute(
        select(Event).where(Event.duplicate_of_id == event.id).order_by(Event.created_at, Event.id)
    )
    return list(result.scalars().all())


async def progenitor(db: AsyncSession, event: Event) -> Event:
    """
    Follow duplicate markers up to the root event.

    The walk stops at an event with no marker. A marker pointing at a
    missing event, a cycle or a chain longer than ``MAX_PROGENITOR_DEPTH``
    makes the starting event its own progenitor.
    """
    seen = {event.id}
    current = event
    for _ in range(MAX_PROGENITOR_DEPTH):
        parent_id = current.duplicate_of_id
        if parent_id is None:
            return current
        if parent_id in seen:
            logger.warning(f"Duplicate cycle detected starting at event {event.id}")
            return event
        parent = await db.get(Event, parent_id)
        if parent is None:
            return event
        seen.add(parent_id)
        current = parent
    logger.warning(f"Duplicate chain from event {event.id} exceeds {MAX_PROGENITOR_DEPTH} hops")
    return event


async def squash(db: AsyncSession, master: Event, slave: Event) -> Event:
    """
    Mark ``slave`` as a duplicate of ``master`` in one transaction.

    The master gains the slave's tags (its own first, then new ones in the
    slave's order), events pointing at the slave are repointed to the master,
    the slave is marked and the venue counters are recounted. Squashing a
    slave already marked as a duplicate of the same master changes nothing.

    Every path ends the transaction so the slave's row lock is released:
    success and the no-op case commit, a rejection rolls back. After a
    rollback the session's objects are expired and must be refreshed.

    Args:
        db: Database session
        master: Event to keep
        slave: Event to mark as a duplicate

    Returns:
        The squashed slave

    Raises:
        ValidationError: If either event is unsaved, the events are the
            same, or the slave already duplicates another event
        LockedRecordError: If the slave is locked
    """
    master_id, slave_id = master.id, slave.id
    if master_id is None or slave_id is None:
        raise ValidationError({"duplicate_of": ["requires saved events"]})
    if master_id == slave_id:
        raise ValidationError({"duplicate_of": ["cannot be squashed into itself"]})

    try:
        # Lock the slave row and read its latest state
        result = await db.execute(
            select(Event)
            .where(Event.id == slave_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        slave = result.scalars().one()

        if slave.locked:
            logger.warning(f"Refusing to squash locked event {slave_id} into {master_id}")
            raise LockedRecordError(slave_id, "squash")
        if slave.duplicate_of_id == master_id:
            logger.info(f"Event {slave_id} is already a duplicate of {master_id}")
            await db.commit()
            return slave
        if slave.duplicate_of_id is not None:
            raise ValidationError({"duplicate_of": [f"already a duplicate of event {slave.duplicate_of_id}"]})

        master.add_tags(slave.tag_list)
        await save_event(db, master, commit=False)

        for child in await get_duplicates_of(db, slave):
            child.duplicate_of_id = master_id
            await save_event(db, child, commit=False)

        slave.duplicate_of_id = master_id
        await save_event(db, slave, commit=False)
        await db.commit()
    except Exception as e:
        logger.warning(f"Squash of event {slave_id} into {master_id} rolled back: {e}")
        await db.rollback()
        raise

    logger.info(f"Squashed event {slave_id} into {master_id}")
    return slave


async def squash_many(db: AsyncSession, master: Event, slaves: Sequence[Event]) -> List[Event]:
    """Squash several events into one master, in order."""
    return [await squash(db, master, slave) for slave in slaves]
