"""
Event schema definitions.

Input schemas accept loosely typed times and tags; the model coerces and
validates them so that errors are reported per field in one place.
"""

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from calagator.models.event import parse_tag_list
from calagator.validators import normalize_url

TimeInput = Optional[Union[datetime, date, str]]


class EventBase(BaseModel):
    """Base Event Schema - common to all operations."""
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    venue_id: Optional[int] = None
    locked: bool = False

    @field_validator("url")
    @classmethod
    def normalize(cls, v):
        return normalize_url(v)


class EventCreate(EventBase):
    """
    Schema for creating an event.

    Times may be given as datetimes, dates or strings; tags as a list or a
    comma separated string.
    """
    start_time: TimeInput = None
    end_time: TimeInput = None
    tag_list: Union[List[str], str] = Field(default_factory=list)

    @field_validator("tag_list")
    @classmethod
    def split_tags(cls, v):
        return parse_tag_list(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Web 2.0 Conference",
                "start_time": "2008-04-12 09:00",
                "url": "http://www.web2con.com/",
                "tag_list": "web, conference",
            }
        }
    )


class EventUpdate(BaseModel):
    """
    Schema for updating an event.

    All fields are optional; only the fields that were set are applied.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    venue_id: Optional[int] = None
    start_time: TimeInput = None
    end_time: TimeInput = None
    tag_list: Optional[Union[List[str], str]] = None

    @field_validator("url")
    @classmethod
    def normalize(cls, v):
        return normalize_url(v)


class EventResponse(EventBase):
    """Event as returned from the store."""
    id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    tag_list: List[str] = []
    duplicate_of_id: Optional[int] = None
    sequence: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
