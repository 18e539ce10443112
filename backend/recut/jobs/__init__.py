"""
Render job lifecycle: model and legal transitions.
"""

from .errors import (
    JobError,
    InvalidStateTransitionError,
)
from .models import (
    Job,
    JobStatus,
)
from .state import (
    TERMINAL_JOB_STATES,
    can_transition_job,
    is_job_terminal,
    transition_job,
)

__all__ = [
    # Errors
    "JobError",
    "InvalidStateTransitionError",
    # Models
    "Job",
    "JobStatus",
    # State validation
    "TERMINAL_JOB_STATES",
    "can_transition_job",
    "is_job_terminal",
    "transition_job",
]
