"""
Render job model.

A Job is transient: created at render-request time, one at a time,
discarded once its terminal state has been reported. It owns no
persistent storage.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """
    Job lifecycle.

    IDLE -> PREPARING -> RUNNING -> SUCCEEDED | FAILED
    """

    IDLE = "idle"  # Created, nothing staged
    PREPARING = "preparing"  # Staging input and auxiliary files
    RUNNING = "running"  # Engine invocation in flight
    SUCCEEDED = "succeeded"  # Output retrieved, workspace cleaned
    FAILED = "failed"  # Engine error or staging failure, workspace cleaned


class Job(BaseModel):
    """A single render request moving through the runner."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.IDLE

    # 0 - 100, non-decreasing while RUNNING
    progress_percent: int = 0
    message: str = ""

    command_line: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    output_bytes: Optional[bytes] = Field(default=None, repr=False)
    failure_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> str:
        """Human-readable summary for logs and status endpoints."""
        duration = self.duration_seconds()
        duration_str = f" ({duration:.1f}s)" if duration is not None else ""

        if self.status == JobStatus.SUCCEEDED:
            size = len(self.output_bytes or b"")
            return f"SUCCEEDED{duration_str}: {size} bytes"
        if self.status == JobStatus.FAILED:
            return f"FAILED{duration_str}: {self.failure_reason}"
        if self.status == JobStatus.RUNNING:
            return f"RUNNING: {self.progress_percent}%"
        return self.status.value.upper()
