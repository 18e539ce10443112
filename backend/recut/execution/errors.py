"""
Execution errors.

Taxonomy:
- EngineLoadFailedError: fatal to the session, manual reload required
- InvalidStateError: sequencing error (compile before metadata, run before ready)
- BusyError: a job already holds the busy slot, caller should wait
- RenderFailedError: engine reported an execution error, workspace already cleaned

Every error carries a human-readable cause. None are swallowed.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..jobs.models import Job


class ExecutionError(Exception):
    """
    Base exception for execution failures.

    All execution errors inherit from this.
    """

    pass


class EngineLoadFailedError(ExecutionError):
    """
    Engine could not be loaded.

    The session moves to FAULTED. No automatic retry.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to load video processing engine: {reason}")


class InvalidStateError(ExecutionError):
    """Operation invoked before its preconditions were met."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class BusyError(ExecutionError):
    """A job is already running. Submissions are rejected, never queued."""

    def __init__(self, job_id: Optional[str] = None):
        self.job_id = job_id
        message = "A render is already in progress"
        if job_id:
            message += f" (job {job_id})"
        super().__init__(message)


class EngineExecutionError(ExecutionError):
    """
    Raised by an engine boundary when an invocation fails.

    The runner converts this into RenderFailedError after cleanup.
    """

    def __init__(self, diagnostic: str, exit_code: Optional[int] = None):
        self.diagnostic = diagnostic
        self.exit_code = exit_code
        message = "Engine execution failed"
        if exit_code is not None:
            message += f" (exit code: {exit_code})"
        if diagnostic:
            message += f": {diagnostic}"
        super().__init__(message)


class WorkspaceFileNotFoundError(ExecutionError):
    """A workspace file was read or deleted but does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Workspace file not found: {name}")


class RenderFailedError(ExecutionError):
    """
    Render failed.

    Workspace entries staged for the job have been removed. The caller
    may retry the same or a revised command.
    """

    def __init__(self, diagnostic: str, job: Optional["Job"] = None):
        self.diagnostic = diagnostic
        self.job = job
        super().__init__(f"Failed to render video: {diagnostic}")


class WorkspaceCleanupError(ExecutionError):
    """One or more staged workspace entries could not be removed."""

    def __init__(self, names: list[str], reason: str):
        self.names = names
        self.reason = reason
        super().__init__(
            f"Failed to clean workspace entries {', '.join(names)}: {reason}"
        )
