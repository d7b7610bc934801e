"""Event calendar core: events, venues, duplicate squashing and iCalendar."""

__version__ = "0.1.0"
