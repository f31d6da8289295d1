"""Browser backend seam and its Playwright implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from trailwalk.failures import NavigationError, NavigationTimeout, is_timeout_error

logger = logging.getLogger(__name__)

CLICK_TIMEOUT_MS = 5000


class BrowserBackend(Protocol):
    def start_up(self, profile: str) -> None: ...

    def goto_url(self, url: str) -> int | None: ...

    def click_element(self, selector: str) -> bool: ...

    def go_back(self) -> int | None: ...

    def refresh(self) -> int | None: ...

    def get_current_page_url(self) -> str: ...

    def has_page_moved(self) -> bool: ...

    def restore_page(self) -> None: ...

    def stop_page_load(self) -> None: ...

    def quit(self) -> None: ...

    def dump_screen(self, path: Path) -> None: ...

    def is_alive(self) -> bool: ...


class PlaywrightBrowser:
    """Drives one Chromium page through the Playwright sync API.

    Playwright sync objects belong to the thread that created them, so every
    call must come from the same thread (the command serializer's worker).
    """

    def __init__(self, *, headless: bool = False, navigation_timeout_seconds: float = 30.0) -> None:
        self.headless = headless
        self.navigation_timeout_ms = int(max(1.0, navigation_timeout_seconds) * 1000)
        self._playwright: Any | None = None
        self._browser: Any | None = None
        self._context: Any | None = None
        self._page: Any | None = None
        self._last_url = ""

    def start_up(self, profile: str) -> None:
        from playwright.sync_api import sync_playwright

        self.quit()
        logger.info("launching browser (profile=%s, headless=%s)", profile or "<fresh>", self.headless)
        try:
            self._playwright = sync_playwright().start()
            if profile:
                Path(profile).mkdir(parents=True, exist_ok=True)
                self._context = _launch_persistent(self._playwright, profile, headless=self.headless)
            else:
                self._browser = _launch_browser(self._playwright, headless=self.headless)
                self._context = self._browser.new_context()
            self._page = self._context.pages[0] if self._context.pages else self._context.new_page()
            self._page.set_default_navigation_timeout(self.navigation_timeout_ms)
            self._last_url = self._page.url
        except NavigationError:
            raise
        except Exception as exc:
            raise _navigation_error(exc) from exc

    def goto_url(self, url: str) -> int | None:
        page = self._require_page()
        try:
            response = page.goto(url, wait_until="load")
        except Exception as exc:
            raise _navigation_error(exc) from exc
        self._last_url = page.url
        return _status_of(response)

    def click_element(self, selector: str) -> bool:
        page = self._require_page()
        try:
            page.locator(f"xpath={selector}").first.click(timeout=CLICK_TIMEOUT_MS)
            page.wait_for_load_state("load")
        except Exception as exc:
            logger.info("click on %s skipped: %s", selector, exc)
            return False
        finally:
            if not _page_is_closed(page):
                self._last_url = page.url
        return True

    def go_back(self) -> int | None:
        page = self._require_page()
        try:
            response = page.go_back(wait_until="load")
        except Exception as exc:
            raise _navigation_error(exc) from exc
        self._last_url = page.url
        return _status_of(response)

    def refresh(self) -> int | None:
        page = self._require_page()
        try:
            response = page.reload(wait_until="load")
        except Exception as exc:
            raise _navigation_error(exc) from exc
        self._last_url = page.url
        return _status_of(response)

    def get_current_page_url(self) -> str:
        if _page_is_closed(self._page):
            return ""
        return str(self._page.url)

    def has_page_moved(self) -> bool:
        if _page_is_closed(self._page):
            return True
        return str(self._page.url) != self._last_url

    def restore_page(self) -> None:
        if self._context is None:
            raise NavigationError("browser not started")
        if _page_is_closed(self._page):
            logger.info("page was closed; opening a new one")
            try:
                self._page = self._context.new_page()
                self._page.set_default_navigation_timeout(self.navigation_timeout_ms)
            except Exception as exc:
                raise _navigation_error(exc) from exc
        if self._last_url and self._last_url != "about:blank" and self._page.url != self._last_url:
            logger.info("restoring %s", self._last_url)
            self.goto_url(self._last_url)

    def stop_page_load(self) -> None:
        if _page_is_closed(self._page):
            return
        try:
            self._page.evaluate("() => window.stop()")
        except Exception as exc:
            logger.debug("window.stop() failed: %s", exc)

    def quit(self) -> None:
        context, browser, playwright = self._context, self._browser, self._playwright
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        errors: list[BaseException] = []
        for closer in (context, browser):
            if closer is None:
                continue
            try:
                closer.close()
            except Exception as exc:
                errors.append(exc)
        if playwright is not None:
            try:
                playwright.stop()
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise NavigationError(f"browser shutdown incomplete: {errors[0]}") from errors[0]

    def dump_screen(self, path: Path) -> None:
        page = self._require_page()
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            page.screenshot(path=str(path), full_page=False)
        except Exception as exc:
            raise _navigation_error(exc) from exc

    def is_alive(self) -> bool:
        if self._context is None:
            return False
        browser = self._browser
        if browser is not None:
            checker = getattr(browser, "is_connected", None)
            if callable(checker) and not checker():
                return False
        return True

    def _require_page(self) -> Any:
        if self._page is None:
            raise NavigationError("browser not started")
        if _page_is_closed(self._page):
            raise NavigationError("page closed")
        return self._page


def _launch_browser(playwright_obj: Any, *, headless: bool) -> Any:
    kwargs: dict[str, Any] = {"headless": headless}
    if not headless:
        kwargs["args"] = ["--window-size=1280,860"]
    try:
        return playwright_obj.chromium.launch(channel="chrome", **kwargs)
    except Exception:
        return playwright_obj.chromium.launch(**kwargs)


def _launch_persistent(playwright_obj: Any, user_data_dir: str, *, headless: bool) -> Any:
    try:
        return playwright_obj.chromium.launch_persistent_context(
            user_data_dir, channel="chrome", headless=headless
        )
    except Exception:
        return playwright_obj.chromium.launch_persistent_context(user_data_dir, headless=headless)


def _navigation_error(exc: BaseException) -> NavigationError:
    if isinstance(exc, NavigationError):
        return exc
    if is_timeout_error(exc):
        return NavigationTimeout(str(exc))
    return NavigationError(str(exc))


def _status_of(response: Any | None) -> int | None:
    if response is None:
        return None
    status = getattr(response, "status", None)
    return int(status) if status is not None else None


def _page_is_closed(page: Any | None) -> bool:
    if page is None:
        return True
    checker = getattr(page, "is_closed", None)
    if callable(checker):
        try:
            return bool(checker())
        except Exception:
            return True
    return False
