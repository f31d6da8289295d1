"""Basic walking actions: start-up, step, go back, refresh, seek.

Every method here touches the browser backend and is meant to run inside a
command-serializer unit. Failure policy lives in the controller.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from trailwalk.browser import BrowserBackend
from trailwalk.cursor import NavigationCursor
from trailwalk.failures import FailureKind, NavigationError, classify_error, classify_response_status
from trailwalk.trail import Trail
from trailwalk.walk_state import WalkStateMachine, WalkStatus

logger = logging.getLogger(__name__)


class WalkRunner:
    def __init__(
        self,
        trail: Trail,
        browser: BrowserBackend,
        *,
        profile: str = "",
        dump_dir: Path | None = None,
    ) -> None:
        self.trail = trail
        self.browser = browser
        self.profile = profile
        self.dump_dir = dump_dir
        self.cursor = NavigationCursor(len(trail))
        self.state = WalkStateMachine()
        self._started = False
        self._dump_count = 0

    def is_started(self) -> bool:
        return self._started and self.browser.is_alive()

    def begin(self) -> None:
        """Start the walk, or pick it up again after a pause."""
        self.state.set_status(WalkStatus.SUCCESSFUL_STEP)
        if not self.is_started():
            self.stop()
            self.start_up()
        else:
            self.restore()
            if self.cursor.at_end() and self.check_status() is WalkStatus.SUCCESSFUL_STEP:
                logger.info("resumed at end of trail")
                self.state.set_status(WalkStatus.COMPLETE)

    def start_up(self) -> None:
        logger.info("start up")
        self.cursor = NavigationCursor(len(self.trail))
        if not len(self.trail):
            logger.info("trail is empty; nothing to walk")
            self.state.set_status(WalkStatus.COMPLETE)
            return
        status = self._navigate(lambda: self.browser.start_up(self.profile))
        if status is not WalkStatus.SUCCESSFUL_STEP:
            self.state.set_status(status)
            return
        self._started = True
        self.step()

    def restore(self) -> None:
        if not self.browser.has_page_moved():
            return
        logger.info("page moved while paused; restoring last visited page")
        self.state.set_status(self._navigate(self.browser.restore_page))

    def step(self) -> None:
        if self.cursor.at_end():
            logger.info("end of trail reached")
            self.state.set_status(WalkStatus.COMPLETE)
            return
        if self._visit(self.cursor.next_index()):
            self.cursor.advance()

    def step_back(self) -> bool:
        if self.cursor.at_start():
            logger.info("already at start of trail; step back ignored")
            return False
        before = self.cursor.position
        return self.step_to(before - 1) != before

    def step_to(self, index: int) -> int:
        logger.info("step to %d from %d", index, self.cursor.position)
        return self.cursor.seek(index, self._visit)

    def go_back(self, *, recovering: bool = False) -> bool:
        logger.info("go back")
        status = self._navigate(self.browser.go_back)
        self.state.set_status(status)
        if status is not WalkStatus.SUCCESSFUL_STEP:
            return False
        self.cursor.retreat(past_start=recovering)
        return True

    def refresh(self) -> None:
        logger.info("refresh")
        self.state.set_status(self._navigate(self.browser.refresh))

    def has_page_moved(self) -> bool:
        if not self._started:
            return False
        return self.browser.has_page_moved()

    def pause(self) -> None:
        # In-flight failures are dropped; failed/complete stay until begin().
        if not self.state.check_status().is_terminal:
            self.state.set_status(WalkStatus.SUCCESSFUL_STEP)

    def stop(self) -> None:
        logger.info("stop")
        try:
            self.browser.quit()
        except NavigationError as exc:
            logger.info("browser error on shutdown ignored: %s", exc)
        self._started = False
        self.state.set_status(WalkStatus.SUCCESSFUL_STEP)

    def check_status(self) -> WalkStatus:
        return self.state.check_status()

    def set_status(self, status: WalkStatus) -> None:
        self.state.set_status(status)

    def current_position(self) -> int:
        return self.cursor.position

    def is_at_start(self) -> bool:
        return self.cursor.at_start()

    def is_at_end(self) -> bool:
        return self.cursor.at_end()

    def trail_labels(self) -> list[str]:
        return self.trail.labels()

    def _visit(self, index: int) -> bool:
        item = self.trail[index]
        logger.info("visit %d/%d %s", index + 1, len(self.trail), item.target_url)
        status = self._navigate(lambda: self.browser.goto_url(item.target_url))
        if status is WalkStatus.SUCCESSFUL_STEP:
            if item.click_target is not None:
                self._click(item.click_target.to_selector())
            self._dump(index)
        else:
            logger.info("visit %d ended with %s", index + 1, status.value)
        self.state.set_status(status)
        return status is WalkStatus.SUCCESSFUL_STEP

    def _navigate(self, action: Callable[[], int | None]) -> WalkStatus:
        try:
            status_code = action()
        except (NavigationError, TimeoutError) as exc:
            if classify_error(exc) is not FailureKind.TIMEOUT:
                raise
            logger.warning("page load timed out: %s", exc)
            self.browser.stop_page_load()
            return WalkStatus.PAGE_TIMED_OUT
        return classify_response_status(status_code)

    def _click(self, selector: str) -> None:
        try:
            clicked = self.browser.click_element(selector)
        except NavigationError as exc:
            logger.info("click target %s failed: %s", selector, exc)
            return
        if not clicked:
            logger.info("click target %s not clicked", selector)

    def _dump(self, index: int) -> None:
        if self.dump_dir is None:
            return
        self._dump_count += 1
        path = self.dump_dir / f"{self._dump_count:04d}-item{index + 1:03d}.png"
        try:
            self.browser.dump_screen(path)
        except NavigationError as exc:
            logger.warning("screen dump %s failed: %s", path, exc)
