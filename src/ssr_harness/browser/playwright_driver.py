"""Playwright-powered browser driver implementation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from playwright.sync_api import ConsoleMessage, Error, Locator, sync_playwright

from ..config import BrowserConfig
from ..errors import DriverError
from .base import BrowserDriver

LOGGER = logging.getLogger(__name__)

BUTTON_SELECTOR = (
    "button, input[type=submit], input[type=button], input[type=reset], input[type=image]"
)


class PlaywrightDriver(BrowserDriver):
    """Browser driver backed by Playwright."""

    def __init__(self, config: Optional[BrowserConfig] = None, *, javascript: bool = True) -> None:
        self._config = config or BrowserConfig()
        self._javascript = javascript
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self._errors: list[str] = []

    def start(self) -> None:
        LOGGER.debug("Starting Playwright %s browser", self._config.engine)
        with _translate_errors():
            self._playwright = sync_playwright().start()
            engine = getattr(self._playwright, self._config.engine, None)
            if engine is None:
                raise DriverError(f"Unsupported browser engine: {self._config.engine}")
            launch_kwargs: dict[str, Any] = {
                "headless": self._config.headless,
                "slow_mo": self._config.slow_mo,
            }
            if self._config.engine == "chromium":
                launch_kwargs["args"] = [
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ]
            self._browser = engine.launch(**launch_kwargs)
            self._context = self._browser.new_context(
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
                java_script_enabled=self._javascript,
            )
            self._page = self._context.new_page()
            self._page.set_default_timeout(self._config.action_timeout * 1000)
            self._page.set_default_navigation_timeout(self._config.navigation_timeout * 1000)
            self._page.on("pageerror", self._on_page_error)
            self._page.on("console", self._on_console)

    def stop(self) -> None:
        LOGGER.debug("Stopping Playwright browser")
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None
        with _translate_errors():
            try:
                if context:
                    context.close()
            finally:
                try:
                    if browser:
                        browser.close()
                finally:
                    if playwright:
                        playwright.stop()

    def navigate(self, url: str) -> Optional[int]:
        page = self._require_page()
        with _translate_errors():
            response = page.goto(url, wait_until="load")
        return response.status if response else None

    def go_back(self) -> bool:
        page = self._require_page()
        before = page.url
        with _translate_errors():
            response = page.go_back(wait_until="load")
        # pushState history entries produce no response but still move the URL.
        return response is not None or page.url != before

    def go_forward(self) -> bool:
        page = self._require_page()
        before = page.url
        with _translate_errors():
            response = page.go_forward(wait_until="load")
        return response is not None or page.url != before

    def current_url(self) -> str:
        return self._require_page().url

    def find_all(self, selector: str, within: Optional[Locator] = None) -> list[Locator]:
        root = within if within is not None else self._require_page()
        with _translate_errors():
            locator = root.locator(selector)
            return [locator.nth(index) for index in range(locator.count())]

    def links(self, within: Optional[Locator] = None) -> list[Locator]:
        return self.find_all("a[href]", within)

    def buttons(self, within: Optional[Locator] = None) -> list[Locator]:
        return self.find_all(BUTTON_SELECTOR, within)

    def text(self, element: Optional[Locator] = None) -> str:
        with _translate_errors():
            if element is None:
                return self._require_page().locator("body").inner_text()
            return element.inner_text()

    def attribute(self, element: Locator, name: str) -> Optional[str]:
        with _translate_errors():
            return element.get_attribute(name)

    def is_visible(self, element: Locator) -> bool:
        with _translate_errors():
            return element.is_visible()

    def html(self) -> str:
        with _translate_errors():
            return self._require_page().content()

    def fill(self, element: Locator, value: str) -> None:
        with _translate_errors():
            element.fill(value)

    def click(self, element: Locator) -> None:
        with _translate_errors():
            element.click()

    def evaluate(self, script: str) -> Any:
        with _translate_errors():
            return self._require_page().evaluate(script)

    def drain_page_errors(self) -> list[str]:
        errors, self._errors = self._errors, []
        return errors

    def _require_page(self):
        if not self._page:
            raise DriverError("Browser driver is not started")
        return self._page

    def _on_page_error(self, error: Error) -> None:
        LOGGER.debug("Page error: %s", error.message)
        self._errors.append(error.message)

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type == "error":
            LOGGER.debug("Console error: %s", message.text)
            self._errors.append(message.text)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except Error as exc:
        raise DriverError(str(exc)) from exc
