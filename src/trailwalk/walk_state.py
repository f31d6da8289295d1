"""Walk status bookkeeping and the shared run-state flag."""

from __future__ import annotations

import logging
from enum import Enum
from threading import Condition, Lock

logger = logging.getLogger(__name__)


class WalkStatus(Enum):
    SUCCESSFUL_STEP = "successful_step"
    PAGE_NOT_FOUND = "page_not_found"
    PERMISSION_DENIED = "permission_denied"
    PAGE_TIMED_OUT = "page_timed_out"
    FAILED_STEP = "failed_step"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self in (WalkStatus.FAILED_STEP, WalkStatus.COMPLETE)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class WalkStateMachine:
    def __init__(self) -> None:
        self._lock = Lock()
        self._status = WalkStatus.SUCCESSFUL_STEP
        self._failure_count = 0

    def set_status(self, status: WalkStatus) -> None:
        with self._lock:
            if status is WalkStatus.SUCCESSFUL_STEP:
                self._failure_count = 0
            else:
                self._failure_count += 1
            self._status = status
            count = self._failure_count
        logger.debug("status=%s failures=%d", status.value, count)

    def check_status(self) -> WalkStatus:
        with self._lock:
            return self._status

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count


class RunStateFlag:
    """Run state shared by the loop thread and command-issuing threads.

    Only the transition methods change the state; waiters in ``sleep`` wake
    as soon as the state leaves RUNNING.
    """

    def __init__(self) -> None:
        self._cond = Condition()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        with self._cond:
            return self._state

    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def begin(self) -> bool:
        with self._cond:
            if self._state is RunState.RUNNING:
                return False
            self._state = RunState.RUNNING
            self._cond.notify_all()
            return True

    def pause(self) -> bool:
        with self._cond:
            if self._state is not RunState.RUNNING:
                return False
            self._state = RunState.PAUSED
            self._cond.notify_all()
            return True

    def stop(self) -> RunState:
        with self._cond:
            previous = self._state
            self._state = RunState.STOPPED
            self._cond.notify_all()
            return previous

    def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``; True when still RUNNING afterwards."""
        with self._cond:
            self._cond.wait_for(lambda: self._state is not RunState.RUNNING, timeout=max(0.0, seconds))
            return self._state is RunState.RUNNING
