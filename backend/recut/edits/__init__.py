"""
Edit model: the validated set of user-chosen edits for one source file.
"""

from .errors import (
    EditError,
    InvalidEditError,
    UnsupportedSourceError,
)
from .models import (
    AspectTarget,
    AudioMode,
    CropRect,
    EditModel,
    Rotation,
    DEFAULT_EDIT_MODEL,
    format_timestamp,
)
from .state import EditState

__all__ = [
    # Errors
    "EditError",
    "InvalidEditError",
    "UnsupportedSourceError",
    # Models
    "AspectTarget",
    "AudioMode",
    "CropRect",
    "EditModel",
    "Rotation",
    "DEFAULT_EDIT_MODEL",
    "format_timestamp",
    # State
    "EditState",
]
