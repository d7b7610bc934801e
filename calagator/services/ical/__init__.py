"""iCalendar export and import."""

from .renderer import render
from .parser import parse, parse_text, to_events

__all__ = ["render", "parse", "parse_text", "to_events"]
