"""
Render job runner.

Stage -> execute -> drain -> clean, one job at a time.

Pipeline:
1. STAGE: write the input under its fixed name, then every auxiliary file
2. EXECUTE: invoke the engine with the command's argv while subscribed
   to progress (clamped to a non-decreasing percentage)
3. DRAIN: read the output bytes
4. CLEAN: delete input, auxiliaries and output from the workspace

Cleanup runs on every exit path, including failures during staging.
A leaked workspace entry must never be visible to a later job.
The busy slot is released as the very last step.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Set

from ..jobs.models import Job, JobStatus
from ..jobs.state import transition_job
from .base import EngineBoundary
from .command import Command
from .errors import (
    EngineExecutionError,
    RenderFailedError,
    WorkspaceCleanupError,
    WorkspaceFileNotFoundError,
)
from .progress import MonotonicProgress
from .session import EngineSession

logger = logging.getLogger(__name__)


# Stage messages reported through on_status
MSG_PREPARING = "Preparing video..."
MSG_BUILDING = "Building filter pipeline..."
MSG_PROCESSING = "Processing video..."
MSG_FINALIZING = "Finalizing..."
MSG_SUCCEEDED = "Video rendered successfully!"

ProgressReporter = Callable[[int], None]
StatusReporter = Callable[[str], None]


class JobRunner:
    """
    Runs compiled commands against a session's engine.

    Only the runner writes to or deletes from the engine workspace,
    and only while holding the session's busy slot.
    """

    def __init__(self, session: EngineSession):
        self._session = session
        self._current_job: Optional[Job] = None

    @property
    def session(self) -> EngineSession:
        return self._session

    @property
    def current_job(self) -> Optional[Job]:
        """The in-flight job, if any."""
        return self._current_job

    async def run(
        self,
        command: Command,
        input_bytes: bytes,
        on_progress: Optional[ProgressReporter] = None,
        on_status: Optional[StatusReporter] = None,
    ) -> Job:
        """
        Execute one render.

        Args:
            command: Compiled command
            input_bytes: Source media bytes
            on_progress: Receives integer percentages, non-decreasing
            on_status: Receives human-readable stage messages

        Returns:
            Job in SUCCEEDED with output_bytes set

        Raises:
            BusyError: If another job is running (raised before anything is staged)
            InvalidStateError: If the session is not READY
            RenderFailedError: If staging or the engine failed (workspace cleaned)
            WorkspaceCleanupError: If a staged entry could not be removed
        """
        job = Job(command_line=command.command_line())

        async with self._session.busy_slot(job.id) as engine:
            self._current_job = job
            try:
                return await self._run_job(engine, job, command, input_bytes, on_progress, on_status)
            finally:
                self._current_job = None

    async def _run_job(
        self,
        engine: EngineBoundary,
        job: Job,
        command: Command,
        input_bytes: bytes,
        on_progress: Optional[ProgressReporter],
        on_status: Optional[StatusReporter],
    ) -> Job:
        def report_status(message: str) -> None:
            job.message = message
            if on_status:
                try:
                    on_status(message)
                except Exception:
                    logger.exception(f"[Runner] Status observer failed for job {job.id}")

        def report_progress(percent: int) -> None:
            job.progress_percent = percent
            if on_progress:
                try:
                    on_progress(percent)
                except Exception:
                    logger.exception(f"[Runner] Progress observer failed for job {job.id}")

        tracker = MonotonicProgress(on_change=report_progress)
        staged: List[str] = []
        written: Set[str] = set()
        output: Optional[bytes] = None
        failure: Optional[str] = None
        failure_cause: Optional[BaseException] = None

        transition_job(job, JobStatus.PREPARING)
        job.started_at = datetime.now()
        report_status(MSG_PREPARING)
        logger.info(f"[Runner] Job {job.id}: {command.command_line()}")

        try:
            # ================================================================
            # STAGE
            # ================================================================
            # Names are recorded before writing so a partial write is still removed
            staged.append(command.input_name)
            await engine.write_workspace_file(command.input_name, input_bytes)
            written.add(command.input_name)

            report_status(MSG_BUILDING)
            for name, data in command.auxiliary_files.items():
                staged.append(name)
                await engine.write_workspace_file(name, data)
                written.add(name)

            # ================================================================
            # EXECUTE
            # ================================================================
            transition_job(job, JobStatus.RUNNING)
            report_status(MSG_PROCESSING)

            unsubscribe_progress = engine.subscribe_progress(tracker.update)
            unsubscribe_log = engine.subscribe_log(
                lambda line: logger.debug(f"[{engine.name}] {line}")
            )
            try:
                await engine.execute(command.argv())
            finally:
                # No progress for this job may arrive after execute returns
                unsubscribe_progress()
                unsubscribe_log()

            # ================================================================
            # DRAIN
            # ================================================================
            report_status(MSG_FINALIZING)
            output = await engine.read_workspace_file(command.output_name)

        except EngineExecutionError as e:
            failure = e.diagnostic or str(e)
            failure_cause = e
        except WorkspaceFileNotFoundError as e:
            failure = f"Engine produced no output: {e}"
            failure_cause = e
        except Exception as e:
            failure = f"{type(e).__name__}: {e}"
            failure_cause = e
        finally:
            cleanup_error = await self._clean_workspace(
                engine, staged, written, command.output_name
            )

        job.completed_at = datetime.now()

        if failure is None and cleanup_error is not None:
            failure = str(cleanup_error)
            failure_cause = cleanup_error
        elif failure is not None and cleanup_error is not None:
            failure = f"{failure} ({cleanup_error})"

        if failure is not None:
            transition_job(job, JobStatus.FAILED)
            job.failure_reason = failure
            job.progress_percent = 0
            job.message = ""
            logger.error(f"[Runner] Job {job.id} {job.summary()}")

            if failure_cause is cleanup_error:
                raise cleanup_error
            raise RenderFailedError(failure, job=job) from failure_cause

        tracker.complete()
        transition_job(job, JobStatus.SUCCEEDED)
        job.output_bytes = output
        report_status(MSG_SUCCEEDED)
        logger.info(f"[Runner] Job {job.id} {job.summary()}")
        return job

    async def _clean_workspace(
        self,
        engine: EngineBoundary,
        staged: List[str],
        written: Set[str],
        output_name: str,
    ) -> Optional[WorkspaceCleanupError]:
        """
        Delete every staged name and the output.

        All deletions are attempted even if some fail. A name whose write
        never completed may be absent, and so may the output (the engine
        may have failed before writing it).

        Returns:
            WorkspaceCleanupError describing failures, or None
        """
        failed: List[str] = []
        reasons: List[str] = []

        for name in [*staged, output_name]:
            try:
                await engine.delete_workspace_file(name)
            except WorkspaceFileNotFoundError:
                if name not in written:
                    logger.debug(f"[Runner] Nothing to remove for {name}")
                    continue
                failed.append(name)
                reasons.append(f"{name}: missing")
            except Exception as e:
                failed.append(name)
                reasons.append(f"{name}: {e}")

        if failed:
            error = WorkspaceCleanupError(failed, "; ".join(reasons))
            logger.error(f"[Runner] {error}")
            return error
        return None
