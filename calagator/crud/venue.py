from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from calagator.models.event import Event
from calagator.models.venue import Venue
from calagator.schemas.venue import VenueCreate
from calagator.logging_config import get_logger

logger = get_logger("crud.venue")


async def get_venue(db: AsyncSession, venue_id: int) -> Optional[Venue]:
    """
    Get a specific venue by ID.

    Args:
        db: Database session
        venue_id: ID of the venue to retrieve

    Returns:
        Venue or None if not found
    """
    return await db.get(Venue, venue_id)


async def get_venue_by_title(db: AsyncSession, title: str) -> Optional[Venue]:
    result = await db.execute(select(Venue).where(Venue.title == title).order_by(Venue.id))
    return result.scalars().first()


async def get_venues(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Venue]:
    result = await db.execute(select(Venue).order_by(Venue.title).offset(skip).limit(limit))
    return list(result.scalars().all())


async def create_venue(db: AsyncSession, venue: VenueCreate) -> Venue:
    """
    Create a new venue.

    Args:
        db: Database session
        venue: Venue data

    Returns:
        Created venue
    """
    db_venue = Venue(**venue.model_dump())
    db.add(db_venue)
    await db.commit()

    logger.info(f"Created new venue: {db_venue.id} - {db_venue.title}")
    return db_venue


async def refresh_events_count(db: AsyncSession, venue_ids: Iterable[Optional[int]]) -> None:
    """
    Recount non-duplicate events for each venue.

    Runs inside the caller's transaction and does not commit.

    Args:
        db: Database session
        venue_ids: Venues to recount; ``None`` entries are skipped
    """
    for venue_id in {venue_id for venue_id in venue_ids if venue_id is not None}:
        result = await db.execute(
            select(func.count())
            .select_from(Event)
            .where(Event.venue_id == venue_id, Event.duplicate_of_id.is_(None))
        )
        count = result.scalar_one()
        venue = await db.get(Venue, venue_id)
        if venue is None:
            logger.warning(f"Cannot recount events for missing venue: {venue_id}")
            continue
        if venue.events_count != count:
            logger.debug(f"Venue {venue_id} events_count {venue.events_count} -> {count}")
        venue.events_count = count
    await db.flush()
