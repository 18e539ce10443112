"""
Edit-specific error types.

All errors inherit from EditError for easy catching.
"""


class EditError(Exception):
    """Base exception for all edit-related failures."""
    pass


class InvalidEditError(EditError):
    """Raised when a requested edit violates the edit model's constraints."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid edit for '{field}': {reason}")


class UnsupportedSourceError(EditError):
    """Raised when the selected source is not a video file."""

    def __init__(self, filename: str, reason: str = "not a video file"):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Unsupported source {filename}: {reason}")
