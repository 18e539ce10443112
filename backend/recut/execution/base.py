"""
Engine boundary.

The transcoding engine is an opaque collaborator reached only through
this interface:
- load: make the engine ready (locate binaries / core assets)
- write/read/delete_workspace_file: the engine's private file namespace
- execute: run one invocation with a flat argument vector
- progress/log event channels

Implementations must not interpret Commands. They receive argv only.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

ProgressCallback = Callable[[float], None]
LogCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class EngineBoundary(ABC):
    """
    Abstract base class for transcoding engines.

    Subscriptions are handled here; subclasses call _emit_progress()
    and _emit_log() from execute().
    """

    def __init__(self) -> None:
        self._progress_subscribers: List[ProgressCallback] = []
        self._log_subscribers: List[LogCallback] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name for logs and UI."""
        pass

    @abstractmethod
    async def load(self, core_asset_locations: Optional[Sequence[str]] = None) -> None:
        """
        Load the engine.

        Raises:
            EngineLoadFailedError: If the engine cannot be made ready
        """
        pass

    @abstractmethod
    async def write_workspace_file(self, name: str, data: bytes) -> None:
        pass

    @abstractmethod
    async def read_workspace_file(self, name: str) -> bytes:
        """
        Raises:
            WorkspaceFileNotFoundError: If name is not in the workspace
        """
        pass

    @abstractmethod
    async def delete_workspace_file(self, name: str) -> None:
        """
        Raises:
            WorkspaceFileNotFoundError: If name is not in the workspace
        """
        pass

    @abstractmethod
    async def execute(self, argv: Sequence[str]) -> None:
        """
        Run one invocation.

        Raises:
            EngineExecutionError: On non-zero exit or engine-reported error
        """
        pass

    # =========================================================================
    # Event channels
    # =========================================================================

    def subscribe_progress(self, callback: ProgressCallback) -> Unsubscribe:
        """Receive fractional progress (0.0 - 1.0). Returns an unsubscribe handle."""
        self._progress_subscribers.append(callback)
        return lambda: self._remove(self._progress_subscribers, callback)

    def subscribe_log(self, callback: LogCallback) -> Unsubscribe:
        """Receive raw engine log lines. Returns an unsubscribe handle."""
        self._log_subscribers.append(callback)
        return lambda: self._remove(self._log_subscribers, callback)

    @staticmethod
    def _remove(subscribers: list, callback) -> None:
        if callback in subscribers:
            subscribers.remove(callback)

    def _emit_progress(self, fraction: float) -> None:
        for callback in list(self._progress_subscribers):
            callback(fraction)

    def _emit_log(self, line: str) -> None:
        for callback in list(self._log_subscribers):
            callback(line)
