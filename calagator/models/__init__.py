from calagator.database import Base
from .venue import Venue
from .event import Event
from .version import EventVersion

__all__ = ["Base", "Event", "Venue", "EventVersion"]
