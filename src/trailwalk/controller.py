"""Walk controller: autonomous loop, pacing, recovery and operator commands."""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable

from trailwalk.recovery import (
    RecoveryAction,
    exceeds_failure_ceiling,
    needs_recovery,
    recovery_actions,
)
from trailwalk.runner import WalkRunner
from trailwalk.serializer import CommandSerializer
from trailwalk.walk_state import RunState, RunStateFlag, WalkStatus

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_SECONDS = 25
PACING_SLICE_SECONDS = 0.1

Perform = Callable[[str, Callable[[], Any]], Any]


class WalkDisplay:
    """Front-end hooks; the default implementation shows nothing."""

    def on_status_text(self, text: str) -> None:
        return

    def on_select_position(self, index: int) -> None:
        return

    def on_play_state_changed(self, is_playing: bool) -> None:
        return


class WalkAborted(Exception):
    """A serialized browser command failed with an unclassified error."""


class WalkController:
    def __init__(
        self,
        runner: WalkRunner,
        *,
        sleep_seconds: float | None = DEFAULT_SLEEP_SECONDS,
        display: WalkDisplay | None = None,
        serializer: CommandSerializer | None = None,
    ) -> None:
        self._runner = runner
        self.sleep_seconds = float(sleep_seconds) if sleep_seconds and sleep_seconds > 0 else DEFAULT_SLEEP_SECONDS
        self._display = display or WalkDisplay()
        self._serializer = serializer or CommandSerializer()
        self._state = RunStateFlag()
        self._lock = threading.RLock()
        self._thread: threading.Thread | None = None

    # -- control surface -------------------------------------------------

    @property
    def run_state(self) -> RunState:
        return self._state.state

    def walk_status(self) -> WalkStatus:
        with self._lock:
            return self._runner.check_status()

    def start(self) -> bool:
        previous = self._thread
        if previous is not None and previous.is_alive():
            if self._state.is_running():
                logger.info("walk already running")
                return False
            # A paused loop exits once its in-flight command returns.
            previous.join()
        with self._lock:
            if not self._state.begin():
                return False
            logger.info("walk starting")
            self._display.on_play_state_changed(True)
            self._thread = threading.Thread(target=self.run, name="trailwalk-loop", daemon=True)
            self._thread.start()
        return True

    resume = start

    def pause(self) -> None:
        logger.info("pause requested")
        self._pause("Walking paused")

    def stop(self) -> None:
        with self._lock:
            logger.info("stopping")
            self._state.stop()
            self._runner.pause()
            self._display.on_play_state_changed(False)
            self._show("Walking stopped")
        self._serializer.submit("stop", self._runner.stop)

    def step_back(self) -> int:
        if not self._take_manual_control("step back"):
            return self.current_position()
        if self._runner.is_at_start():
            logger.info("at start of trail; step back ignored")
            return self.current_position()
        return self._manual_command("step back", self._runner.step_back)

    def step_forward(self) -> int:
        if not self._take_manual_control("step forward"):
            return self.current_position()
        if self._runner.is_at_end():
            logger.info("at end of trail; step forward ignored")
            return self.current_position()
        return self._manual_command("step forward", self._runner.step)

    def step_to(self, index: int) -> int:
        if not self._take_manual_control(f"step to {index}"):
            return self.current_position()
        if not 0 <= index < len(self._runner.trail):
            logger.warning("step to %d outside trail of %d item(s); ignored", index, len(self._runner.trail))
            return self.current_position()
        if index == self.current_position():
            return index
        return self._manual_command(f"step to {index}", lambda: self._runner.step_to(index))

    def is_at_start(self) -> bool:
        return self._runner.is_at_start()

    def is_at_end(self) -> bool:
        return self._runner.is_at_end()

    def current_position(self) -> int:
        return self._runner.current_position()

    def trail_labels(self) -> list[str]:
        return self._runner.trail_labels()

    def join(self, timeout: float | None = None) -> bool:
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def shutdown(self, timeout: float | None = 5.0) -> None:
        if self._state.state is not RunState.STOPPED:
            self.stop()
        self.join(timeout)
        self._serializer.shutdown(timeout)

    # -- autonomous loop -------------------------------------------------

    def run(self) -> None:
        self._show("Walking")
        try:
            if not self._perform("start", self._runner.begin):
                return
            self._select_position()
            self._settle(self._perform)
            if not self._state.is_running() or not self._finish_step():
                return
            while self._state.is_running():
                if self._query("page check", self._runner.has_page_moved):
                    logger.info("page moved outside the walk; pausing")
                    self._halt("Walking paused: page changed in the browser")
                    return
                if not self._perform("step", self._runner.step):
                    break
                self._select_position()
                if not self._state.is_running():
                    break
                self._settle(self._perform)
                if not self._state.is_running() or not self._finish_step():
                    return
        except WalkAborted as exc:
            logger.error("walk aborted: %s failed", exc)
            self._halt("Walking stopped after a browser error")
        except Exception:
            logger.critical("walk loop crashed", exc_info=True)
            self._halt("Walking stopped after an unexpected error")
        finally:
            logger.info("walk loop exited (%s)", self._state.state.value)

    def _finish_step(self) -> bool:
        status = self._runner.check_status()
        if status is WalkStatus.FAILED_STEP:
            self._halt("Walking failed")
            return False
        if status is WalkStatus.COMPLETE:
            self._halt("Walking complete")
            return False
        return self._pace()

    def _pace(self) -> bool:
        slices = max(1, int(round(self.sleep_seconds / PACING_SLICE_SECONDS)))
        per_second = int(round(1 / PACING_SLICE_SECONDS))
        for counter in range(1, slices + 1):
            if not self._state.sleep(PACING_SLICE_SECONDS):
                logger.info("pacing interrupted")
                return False
            if counter % per_second == 0:
                remaining = int(math.ceil((slices - counter) * PACING_SLICE_SECONDS))
                self._show(f"Next page in {remaining}s")
        return self._state.is_running()

    # -- recovery --------------------------------------------------------

    def _settle(self, perform: Perform) -> None:
        status = self._runner.check_status()
        if needs_recovery(status):
            self._recover(status, perform)
        status = self._runner.check_status()
        failures = self._runner.state.failure_count
        if status is not WalkStatus.FAILED_STEP and exceeds_failure_ceiling(status, failures):
            logger.warning("%d consecutive failures; giving up", failures)
            self._runner.set_status(WalkStatus.FAILED_STEP)

    def _recover(self, failure: WalkStatus, perform: Perform) -> None:
        logger.info("recovering from %s", failure.value)
        for action in recovery_actions(failure):
            if self._runner.check_status() is not failure:
                break
            if action is RecoveryAction.REFRESH:
                logger.info("trying refresh")
                perform("refresh", self._runner.refresh)
            elif action is RecoveryAction.GO_BACK:
                logger.info("trying go back")
                perform("go back", lambda: self._runner.go_back(recovering=True))
                self._select_position()
            elif action is RecoveryAction.GIVE_UP:
                logger.info("giving up on %s", failure.value)
                self._runner.set_status(WalkStatus.FAILED_STEP)

    # -- helpers ---------------------------------------------------------

    def _perform(self, name: str, fn: Callable[[], Any]) -> bool:
        """Run one loop unit on the serializer; False when it was skipped.

        The running check happens inside the unit, so a pause or stop that
        returned before the unit reached the worker always wins.
        """
        ran: list[bool] = []

        def unit() -> None:
            if not self._state.is_running():
                logger.info("%s skipped; walk is %s", name, self._state.state.value)
                return
            ran.append(True)
            fn()

        if not self._serializer.submit(name, unit):
            raise WalkAborted(name)
        return bool(ran)

    def _query(self, name: str, fn: Callable[[], bool]) -> bool:
        result: list[bool] = []
        self._perform(name, lambda: result.append(bool(fn())))
        return bool(result and result[0])

    @staticmethod
    def _call_inline(name: str, fn: Callable[[], Any]) -> None:
        logger.debug("inline %s", name)
        fn()

    def _take_manual_control(self, name: str) -> bool:
        state = self._state.state
        if state in (RunState.IDLE, RunState.STOPPED):
            logger.warning("walk not started; %s ignored", name)
            return False
        if state is RunState.RUNNING:
            self.pause()
        return True

    def _manual_command(self, name: str, action: Callable[[], Any]) -> int:
        def unit() -> None:
            action()
            self._settle(self._call_inline)

        if not self._serializer.submit(name, unit):
            self._show(f"Could not {name}")
        elif self._runner.check_status() is WalkStatus.FAILED_STEP:
            self._show(f"Could not {name}: page unavailable")
        position = self.current_position()
        self._display.on_select_position(position)
        return position

    def _pause(self, text: str) -> None:
        with self._lock:
            self._state.pause()
            self._runner.pause()
            self._display.on_play_state_changed(False)
            self._show(text)

    def _halt(self, text: str) -> None:
        if self._state.state is RunState.STOPPED:
            logger.info("%s (already stopped)", text)
            return
        self._pause(text)

    def _select_position(self) -> None:
        self._display.on_select_position(self.current_position())

    def _show(self, text: str) -> None:
        logger.debug("status text: %s", text)
        self._display.on_status_text(text)
