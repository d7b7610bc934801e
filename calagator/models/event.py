from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship, validates

from calagator.database import Base
from calagator.time_utils import coerce_time, date_span, now, today
from calagator.validators import BlacklistValidator, is_valid_url, normalize_url

# Columns left out of snapshots and whole-record comparisons
BOOKKEEPING_COLUMNS = ("id", "created_at", "updated_at", "sequence")


def parse_tag_list(value: Union[None, str, List[str]]) -> List[str]:
    """Split a comma separated string or clean a list, keeping first-seen order."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags = []
    for tag in value:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime)
    url = Column(String(2048))

    # Locked events cannot be edited or destroyed
    locked = Column(Boolean, nullable=False, default=False)

    # Points at the master this event duplicates. Deliberately not a foreign
    # key: the master may have been removed, leaving an orphan.
    duplicate_of_id = Column(Integer, nullable=True, index=True)

    tags = Column(JSON, nullable=False, default=list)

    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=True, index=True)
    venue = relationship("Venue", lazy="selectin")

    # Revision counter, surfaced as the iCalendar SEQUENCE
    sequence = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=now, nullable=False)
    updated_at = Column(DateTime, default=now, onupdate=now)

    @validates("start_time", "end_time")
    def _coerce_time(self, key, value):
        errors = self.__dict__.setdefault("_time_errors", {})
        errors.pop(key, None)
        try:
            return coerce_time(value)
        except ValueError:
            errors[key] = "is invalid"
            return None

    @validates("url")
    def _normalize_url(self, key, value):
        return normalize_url(value)

    # Tags

    @property
    def tag_list(self) -> List[str]:
        return list(self.tags or [])

    @tag_list.setter
    def tag_list(self, value: Union[None, str, List[str]]):
        # Assign a new list so the JSON column registers the change
        self.tags = parse_tag_list(value)

    @property
    def tag_list_str(self) -> str:
        return ", ".join(self.tag_list)

    def add_tags(self, tags: List[str]) -> None:
        self.tag_list = self.tag_list + list(tags)

    # Validation

    def validation_errors(self, blacklist: Optional[BlacklistValidator] = None) -> Dict[str, List[str]]:
        """Collect per-field validation messages; empty when the event is valid."""
        errors: Dict[str, List[str]] = {}

        def add(field, message):
            errors.setdefault(field, []).append(message)

        if not (self.title or "").strip():
            add("title", "can't be blank")

        time_errors = self.__dict__.get("_time_errors", {})
        if "start_time" in time_errors:
            add("start_time", time_errors["start_time"])
        elif self.start_time is None:
            add("start_time", "can't be blank")

        if "end_time" in time_errors:
            add("end_time", time_errors["end_time"])
        elif self.end_time is not None and self.start_time is not None and self.end_time < self.start_time:
            add("end_time", "cannot be before start")

        if self.url and not is_valid_url(self.url):
            add("url", "is invalid")

        blacklist = blacklist or BlacklistValidator()
        for field in ("title", "description", "url"):
            if blacklist.is_blacklisted(getattr(self, field)):
                add(field, "contains blacklisted content")

        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()

    # Time helpers

    @property
    def duration(self) -> int:
        """Length of the event in seconds, zero without both times."""
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time).total_seconds())

    @property
    def dates(self) -> List[date]:
        """Every calendar date the event touches."""
        if self.start_time is None:
            return []
        days = max(date_span(self.start_time, self.end_time), 0)
        first = self.start_time.date()
        return [first + timedelta(days=offset) for offset in range(days + 1)]

    @property
    def is_multiday(self) -> bool:
        return self.start_time is not None and date_span(self.start_time, self.end_time) > 1

    def is_old(self, current: Optional[datetime] = None) -> bool:
        """Ended before the start of today."""
        midnight = _midnight(current)
        return (self.end_time or self.start_time) < midnight

    def is_current(self, current: Optional[datetime] = None) -> bool:
        """Has not finished before today."""
        midnight = _midnight(current)
        return (self.end_time or self.start_time) >= midnight

    def is_ongoing(self, current: Optional[datetime] = None) -> bool:
        """Began before today and runs into today or later."""
        midnight = _midnight(current)
        return self.start_time < midnight and self.end_time is not None and self.end_time >= midnight

    # Duplicates

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of_id is not None

    def attributes(self, exclude=BOOKKEEPING_COLUMNS) -> Dict[str, Any]:
        """Column values keyed by name."""
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
            if column.name not in exclude
        }

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe copy of the event's columns for the version log."""
        data = {}
        for name, value in self.attributes(exclude=()).items():
            if isinstance(value, datetime):
                value = value.isoformat()
            data[name] = value
        return data

    def __repr__(self):
        return f"<Event {self.id}: {self.title}>"


def _midnight(current: Optional[datetime]) -> datetime:
    if current is None:
        return today()
    return datetime.combine(current.date(), datetime.min.time())
