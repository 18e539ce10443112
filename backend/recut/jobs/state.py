"""
State transition validation for render jobs.

Job lifecycle: IDLE -> PREPARING -> RUNNING -> SUCCEEDED | FAILED
Staging can fail before the engine runs: PREPARING -> FAILED.

INVARIANT: Terminal states (SUCCEEDED, FAILED) are immutable.
No retry transitions: a retry is a new Job.
"""

from typing import FrozenSet, Set, Tuple
from .models import Job, JobStatus
from .errors import InvalidStateTransitionError


TERMINAL_JOB_STATES: FrozenSet[JobStatus] = frozenset({
    JobStatus.SUCCEEDED,
    JobStatus.FAILED,
})


_JOB_TRANSITIONS: Set[Tuple[JobStatus, JobStatus]] = {
    (JobStatus.IDLE, JobStatus.PREPARING),
    (JobStatus.PREPARING, JobStatus.RUNNING),
    (JobStatus.PREPARING, JobStatus.FAILED),
    (JobStatus.RUNNING, JobStatus.SUCCEEDED),
    (JobStatus.RUNNING, JobStatus.FAILED),
}


def is_job_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_JOB_STATES


def can_transition_job(from_status: JobStatus, to_status: JobStatus) -> bool:
    """
    Check if a job state transition is legal.

    Staying in the same non-terminal state is allowed (progress updates).
    """
    if is_job_terminal(from_status):
        return False

    if from_status == to_status:
        return True

    return (from_status, to_status) in _JOB_TRANSITIONS


def transition_job(job: Job, to_status: JobStatus) -> Job:
    """
    Move a job to a new status.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(job.status, to_status):
        raise InvalidStateTransitionError(job.status.value, to_status.value)
    job.status = to_status
    return job
