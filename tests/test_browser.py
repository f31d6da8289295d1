import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from trailwalk.browser import PlaywrightBrowser, _launch_browser
from trailwalk.failures import NavigationError, NavigationTimeout


class PlaywrightTimeoutError(Exception):
    pass


class _FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status


class _FakePage:
    def __init__(self, url: str = "about:blank") -> None:
        self.url = url
        self.closed = False
        self.scripts: list[str] = []
        self.goto_error: Exception | None = None
        self.timeout_ms = 0

    def is_closed(self) -> bool:
        return self.closed

    def set_default_navigation_timeout(self, ms: int) -> None:
        self.timeout_ms = ms

    def goto(self, url: str, wait_until: str = "load"):
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        return _FakeResponse(404 if url.endswith("/missing") else 200)

    def go_back(self, wait_until: str = "load"):
        return None

    def reload(self, wait_until: str = "load"):
        return _FakeResponse(200)

    def evaluate(self, script: str):
        self.scripts.append(script)

    def screenshot(self, path: str, full_page: bool = False) -> None:
        Path(path).write_bytes(b"png")


class _FakeContext:
    def __init__(self) -> None:
        self.pages: list[_FakePage] = []
        self.close_error: Exception | None = None

    def new_page(self) -> _FakePage:
        page = _FakePage()
        self.pages.append(page)
        return page

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error


def _started(url: str = "https://example.test/a") -> tuple[PlaywrightBrowser, _FakeContext, _FakePage]:
    browser = PlaywrightBrowser(headless=True, navigation_timeout_seconds=2)
    context = _FakeContext()
    page = context.new_page()
    browser._context = context
    browser._page = page
    browser.goto_url(url)
    return browser, context, page


class PlaywrightBrowserTests(unittest.TestCase):
    def test_goto_reports_http_status(self) -> None:
        browser, _context, _page = _started()
        self.assertEqual(browser.goto_url("https://example.test/missing"), 404)
        self.assertEqual(browser.get_current_page_url(), "https://example.test/missing")
        self.assertIsNone(browser.go_back())
        self.assertEqual(browser.refresh(), 200)

    def test_timeouts_map_to_navigation_timeout(self) -> None:
        browser, _context, page = _started()
        page.goto_error = PlaywrightTimeoutError("Timeout 2000ms exceeded.")
        with self.assertRaises(NavigationTimeout):
            browser.goto_url("https://example.test/slow")
        page.goto_error = RuntimeError("net::ERR_NAME_NOT_RESOLVED")
        with self.assertRaises(NavigationError) as ctx:
            browser.goto_url("https://example.test/dns")
        self.assertNotIsInstance(ctx.exception, NavigationTimeout)

    def test_page_moved_and_restore(self) -> None:
        browser, context, page = _started()
        self.assertFalse(browser.has_page_moved())
        page.url = "https://elsewhere.test/"
        self.assertTrue(browser.has_page_moved())
        browser.restore_page()
        self.assertEqual(page.url, "https://example.test/a")
        self.assertFalse(browser.has_page_moved())

        page.closed = True
        self.assertTrue(browser.has_page_moved())
        browser.restore_page()
        self.assertEqual(len(context.pages), 2)
        self.assertEqual(context.pages[1].url, "https://example.test/a")
        self.assertEqual(context.pages[1].timeout_ms, 2000)

    def test_closed_page_raises_navigation_error(self) -> None:
        browser, _context, page = _started()
        page.closed = True
        with self.assertRaises(NavigationError):
            browser.goto_url("https://example.test/b")
        with self.assertRaises(NavigationError):
            PlaywrightBrowser().refresh()

    def test_stop_page_load_and_dump(self) -> None:
        browser, _context, page = _started()
        browser.stop_page_load()
        self.assertEqual(page.scripts, ["() => window.stop()"])
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "shots" / "0001.png"
            browser.dump_screen(target)
            self.assertTrue(target.exists())

    def test_quit_reports_shutdown_errors_and_resets(self) -> None:
        browser, context, _page = _started()
        context.close_error = RuntimeError("already closed")
        with self.assertRaises(NavigationError):
            browser.quit()
        self.assertFalse(browser.is_alive())
        browser.quit()

    def test_start_up_uses_fresh_context_without_profile(self) -> None:
        page = _FakePage()
        context = MagicMock(pages=[page])
        chromium_browser = MagicMock()
        chromium_browser.new_context.return_value = context
        playwright_obj = MagicMock()
        playwright_obj.chromium.launch.return_value = chromium_browser
        with patch("playwright.sync_api.sync_playwright") as sync_playwright:
            sync_playwright.return_value.start.return_value = playwright_obj
            browser = PlaywrightBrowser(headless=True, navigation_timeout_seconds=7)
            browser.start_up("")
        self.assertTrue(browser.is_alive())
        self.assertEqual(page.timeout_ms, 7000)
        playwright_obj.chromium.launch.assert_called_once_with(channel="chrome", headless=True)

    def test_launch_falls_back_without_chrome_channel(self) -> None:
        playwright_obj = MagicMock()
        playwright_obj.chromium.launch.side_effect = [RuntimeError("no chrome"), "bundled"]
        self.assertEqual(_launch_browser(playwright_obj, headless=False), "bundled")
        last = playwright_obj.chromium.launch.call_args
        self.assertNotIn("channel", last.kwargs)


if __name__ == "__main__":
    unittest.main()
