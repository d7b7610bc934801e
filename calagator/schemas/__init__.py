"""
Schema definitions for calendar records.

These pydantic models are the input and output contract of the CRUD layer.
"""

from .event import EventBase, EventCreate, EventUpdate, EventResponse
from .venue import VenueBase, VenueCreate, VenueResponse

__all__ = [
    "EventBase", "EventCreate", "EventUpdate", "EventResponse",
    "VenueBase", "VenueCreate", "VenueResponse",
]
