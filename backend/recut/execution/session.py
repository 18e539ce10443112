"""
Engine session.

Owns the single engine connection and its busy slot.

State machine:
    UNINITIALIZED -> LOADING -> READY
                         \\-> FAULTED -> (manual reload) -> LOADING

Design rules:
- Loading happens once at startup; no automatic retry after FAULTED
- Only READY sessions accept jobs
- One job at a time: a second submission fails with BusyError immediately,
  nothing is queued
- Observers are notified on every state change and busy toggle
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, List, Optional, Sequence

from .base import EngineBoundary
from .errors import BusyError, EngineLoadFailedError, InvalidStateError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAULTED = "faulted"


@dataclass(frozen=True)
class SessionStatus:
    """Observable snapshot of the session."""

    state: SessionState
    busy: bool
    failure_reason: Optional[str] = None
    active_job_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "busy": self.busy,
            "failure_reason": self.failure_reason,
            "active_job_id": self.active_job_id,
        }


SessionObserver = Callable[[SessionStatus], None]


class EngineSession:
    """
    Single owned engine session.

    Args:
        engine: Engine boundary implementation (injectable for tests)
        core_asset_locations: Passed through to engine.load()
    """

    def __init__(
        self,
        engine: EngineBoundary,
        core_asset_locations: Optional[Sequence[str]] = None,
    ):
        self._engine = engine
        self._core_asset_locations = list(core_asset_locations or [])
        self._state = SessionState.UNINITIALIZED
        self._failure_reason: Optional[str] = None
        self._busy = False
        self._active_job_id: Optional[str] = None
        self._observers: List[SessionObserver] = []

    @property
    def engine(self) -> EngineBoundary:
        return self._engine

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def failure_reason(self) -> Optional[str]:
        return self._failure_reason

    @property
    def active_job_id(self) -> Optional[str]:
        return self._active_job_id

    def status(self) -> SessionStatus:
        return SessionStatus(
            state=self._state,
            busy=self._busy,
            failure_reason=self._failure_reason,
            active_job_id=self._active_job_id,
        )

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register an observer. Returns an unsubscribe handle."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        status = self.status()
        for observer in list(self._observers):
            try:
                observer(status)
            except Exception:
                # Observer failures never change session state
                logger.exception("[Session] Observer failed")

    def _set_state(self, state: SessionState, failure_reason: Optional[str] = None) -> None:
        previous = self._state
        self._state = state
        self._failure_reason = failure_reason
        logger.info(f"[Session] {previous.value} -> {state.value}")
        self._notify()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def load(self) -> None:
        """
        Load the engine. Valid only from UNINITIALIZED.

        Raises:
            InvalidStateError: If load was already triggered
            EngineLoadFailedError: If the engine could not be loaded
                (session is FAULTED afterwards)
        """
        if self._state != SessionState.UNINITIALIZED:
            raise InvalidStateError(
                f"Engine load already triggered (state: {self._state.value}); use reload()"
            )
        await self._load()

    async def reload(self) -> None:
        """
        Manual reload after a fault.

        Raises:
            InvalidStateError: If the session is LOADING or READY
            EngineLoadFailedError: If loading fails again
        """
        if self._state not in (SessionState.FAULTED, SessionState.UNINITIALIZED):
            raise InvalidStateError(
                f"Engine session cannot be reloaded from state {self._state.value}"
            )
        await self._load()

    async def _load(self) -> None:
        self._set_state(SessionState.LOADING)
        logger.info(f"[Session] Loading {self._engine.name} engine")

        try:
            await self._engine.load(self._core_asset_locations)
        except EngineLoadFailedError as e:
            logger.error(f"[Session] {e}")
            self._set_state(SessionState.FAULTED, failure_reason=str(e))
            raise
        except Exception as e:
            error = EngineLoadFailedError(str(e) or type(e).__name__)
            logger.error(f"[Session] {error}")
            self._set_state(SessionState.FAULTED, failure_reason=str(error))
            raise error from e

        self._set_state(SessionState.READY)

    # =========================================================================
    # Busy slot
    # =========================================================================

    @asynccontextmanager
    async def busy_slot(self, job_id: Optional[str] = None) -> AsyncIterator[EngineBoundary]:
        """
        Hold the single job slot.

        The check-and-acquire runs without suspending, so two submissions
        on the same event loop can never both acquire it.

        Raises:
            BusyError: If another job holds the slot
            InvalidStateError: If the session is not READY
        """
        if self._busy:
            raise BusyError(self._active_job_id)
        if self._state != SessionState.READY:
            reason = f"Engine session is not ready (state: {self._state.value})"
            if self._failure_reason:
                reason += f": {self._failure_reason}"
            raise InvalidStateError(reason)

        self._busy = True
        self._active_job_id = job_id
        self._notify()
        try:
            yield self._engine
        finally:
            self._busy = False
            self._active_job_id = None
            self._notify()
