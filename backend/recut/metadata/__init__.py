"""
Media metadata needed before compiling a trimmed render.
"""

from .errors import (
    MetadataError,
    MetadataExtractionError,
    FFProbeNotFoundError,
)
from .probe import probe_duration, find_ffprobe

__all__ = [
    "MetadataError",
    "MetadataExtractionError",
    "FFProbeNotFoundError",
    "probe_duration",
    "find_ffprobe",
]
