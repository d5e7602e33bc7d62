"""
Domain Errors

Every core error is raised synchronously and before any mutation,
so a failed call leaves the ledgers exactly as they were.
"""

from typing import Optional


class TrackerError(Exception):
    """Base exception for expense tracker operations."""
    pass


class ValidationError(TrackerError):
    """
    Input rejected before mutation.

    Raised for non-positive amounts, empty split sets, payers or
    splitters outside the group, and missing required fields.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(TrackerError):
    """Operation referenced an unknown entry, friend, group or budget."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class MalformedImportError(TrackerError):
    """
    Import document could not be accepted as-is.

    Carries a human-readable reason plus counts of valid and dropped
    records so the caller can offer a partial import.
    """

    def __init__(
        self,
        reason: str,
        valid_count: int = 0,
        dropped_count: int = 0,
        dropped: Optional[dict[str, int]] = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.valid_count = valid_count
        self.dropped_count = dropped_count
        self.dropped = dropped or {}
