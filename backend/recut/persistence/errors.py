"""
Persistence-specific errors.
"""


class PersistenceError(Exception):
    """Base exception for persistence operations."""

    pass


class SaveError(PersistenceError):
    """Failed to save state to storage."""

    pass
