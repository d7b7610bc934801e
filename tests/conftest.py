import os
import logging
from datetime import timedelta

# Point settings at an in-memory database before the package is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TIMEZONE"] = "America/Los_Angeles"
os.environ["BLACKLIST_FILE"] = ""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from calagator.database import Base
from calagator import models  # noqa: F401
from calagator.crud.event import save_event
from calagator.models import Event, Venue
from calagator.time_utils import now

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Create a logger
logger = logging.getLogger(__name__)


@pytest.fixture
async def db():
    """Fresh in-memory database and session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    test_async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with test_async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def create_test_event(db):
    """Factory saving events with sensible defaults (tomorrow, 'Event title')."""
    async def create(**attributes) -> Event:
        data = {
            "title": "Event title",
            "start_time": now() + timedelta(days=1),
        }
        data.update(attributes)
        event = await save_event(db, Event(**data))
        logger.info(f"Created test event: {event.id} - {event.title}")
        return event

    return create


@pytest.fixture
def create_test_venue(db):
    async def create(**attributes) -> Venue:
        data = {"title": "Test venue"}
        data.update(attributes)
        venue = Venue(**data)
        db.add(venue)
        await db.commit()
        return venue

    return create
