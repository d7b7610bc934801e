"""Shared exceptions for calendar operations."""
from typing import Dict, List, Optional


class CalagatorError(Exception):
    """Base exception for all calendar errors."""
    pass


class ValidationError(CalagatorError):
    """Raised when a record fails validation.

    ``errors`` maps each offending field to its list of messages.
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        details = "; ".join(
            f"{field} {message}" for field, messages in errors.items() for message in messages
        )
        super().__init__(f"Validation failed: {details}")


class LockedRecordError(CalagatorError):
    """Raised when a locked record would be changed or destroyed."""

    def __init__(self, record_id: Optional[int], action: str = "modify"):
        self.record_id = record_id
        self.action = action
        super().__init__(f"Cannot {action} locked event {record_id}")


class ParseError(CalagatorError):
    """Raised when iCalendar content cannot be parsed."""

    def __init__(self, message: str, index: Optional[int] = None, summary: Optional[str] = None):
        self.index = index
        self.summary = summary
        if index is not None:
            message = f"VEVENT #{index}" + (f" ({summary!r})" if summary else "") + f": {message}"
        super().__init__(message)


class FetchError(CalagatorError):
    """Raised when a remote calendar cannot be retrieved."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"Failed to fetch {url}: {message}")
