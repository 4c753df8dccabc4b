import pytest
from playwright.sync_api import Error

from ssr_harness.browser.playwright_driver import PlaywrightDriver
from ssr_harness.config import BrowserConfig
from ssr_harness.errors import DriverError


class _Closable:
    def __init__(self, calls: list[str], name: str, error: Exception | None = None) -> None:
        self._calls = calls
        self._name = name
        self._error = error

    def _finish(self) -> None:
        self._calls.append(self._name)
        if self._error:
            raise self._error

    close = _finish
    stop = _finish


def test_stop_translates_playwright_errors_and_releases_everything():
    calls: list[str] = []
    driver = PlaywrightDriver(BrowserConfig())
    driver._context = _Closable(calls, "context", Error("Target page, context or browser has been closed"))
    driver._browser = _Closable(calls, "browser")
    driver._playwright = _Closable(calls, "playwright")

    with pytest.raises(DriverError):
        driver.stop()

    assert calls == ["context", "browser", "playwright"]
    # A second stop is a no-op once the handles are released.
    driver.stop()
    assert calls == ["context", "browser", "playwright"]


def test_driver_calls_require_a_started_browser():
    driver = PlaywrightDriver(BrowserConfig())

    with pytest.raises(DriverError):
        driver.current_url()
