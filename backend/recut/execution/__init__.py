"""
Execution: compile edits into engine commands and run them one at a time.

FFmpeg is the sole engine implementation. Tests inject their own
EngineBoundary.
"""

from .errors import (
    ExecutionError,
    EngineLoadFailedError,
    InvalidStateError,
    BusyError,
    RenderFailedError,
    EngineExecutionError,
    WorkspaceFileNotFoundError,
    WorkspaceCleanupError,
)
from .command import (
    Command,
    INPUT_NAME,
    OUTPUT_NAME,
    CAPTION_FILE_NAME,
)
from .compiler import compile_command
from .base import EngineBoundary
from .ffmpeg import FFmpegEngine
from .progress import MonotonicProgress, ProgressParser
from .session import EngineSession, SessionState, SessionStatus
from .runner import JobRunner
from .naming import output_filename, output_path

__all__ = [
    # Errors
    "ExecutionError",
    "EngineLoadFailedError",
    "InvalidStateError",
    "BusyError",
    "RenderFailedError",
    "EngineExecutionError",
    "WorkspaceFileNotFoundError",
    "WorkspaceCleanupError",
    # Command
    "Command",
    "INPUT_NAME",
    "OUTPUT_NAME",
    "CAPTION_FILE_NAME",
    "compile_command",
    # Engines
    "EngineBoundary",
    "FFmpegEngine",
    # Progress
    "MonotonicProgress",
    "ProgressParser",
    # Session and runner
    "EngineSession",
    "SessionState",
    "SessionStatus",
    "JobRunner",
    # Naming
    "output_filename",
    "output_path",
]
