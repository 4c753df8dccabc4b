"""Per-scenario browser session state."""

from __future__ import annotations

import logging
import threading
from typing import Optional
from urllib.parse import urlparse

from ..browser.base import BrowserDriver, Element
from ..config import HarnessConfig
from ..errors import DriverError, ScenarioAborted
from ..models import ScenarioState

LOGGER = logging.getLogger(__name__)


class Session:
    """An active browser tab owned by exactly one scenario.

    The session tracks the navigation history, the scope stack used by
    ``within`` blocks, a cached serialized-HTML snapshot, and where the
    scenario currently stands in its lifecycle. Waits sleep on the
    session's cancellation event so an aborted scenario stops promptly.
    """

    def __init__(
        self,
        driver: BrowserDriver,
        config: Optional[HarnessConfig] = None,
        *,
        javascript: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.driver = driver
        self.config = config or HarnessConfig()
        self.javascript = javascript
        self.cancel_event = cancel_event or threading.Event()
        self.state = ScenarioState.INITIAL
        self.history: list[str] = []
        self.forward_history: list[str] = []
        self._scopes: list[Element] = []
        self._snapshot: Optional[str] = None
        self._started = False

    def __enter__(self) -> Session:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self._started:
            return
        try:
            self.driver.start()
        except Exception:
            self._stop_driver()
            raise
        self._started = True

    def close(self) -> None:
        if not self._started:
            return
        self._started = False
        self._scopes.clear()
        self._snapshot = None
        self._stop_driver()

    @property
    def current_url(self) -> str:
        return self.driver.current_url()

    @property
    def current_path(self) -> str:
        return urlparse(self.current_url).path or "/"

    @property
    def scope(self) -> Optional[Element]:
        return self._scopes[-1] if self._scopes else None

    def push_scope(self, element: Element) -> None:
        self._scopes.append(element)

    def pop_scope(self) -> None:
        self._scopes.pop()

    def html(self, *, refresh: bool = False) -> str:
        if refresh or self._snapshot is None:
            self._snapshot = self.driver.html()
        return self._snapshot

    def record_visit(self) -> None:
        self.history.append(self.current_url)
        self.forward_history.clear()
        self._enter(ScenarioState.NAVIGATED)

    def record_back(self) -> None:
        self.forward_history.append(self.history.pop())
        self._enter(ScenarioState.NAVIGATED)

    def record_forward(self) -> None:
        self.history.append(self.forward_history.pop())
        self._enter(ScenarioState.NAVIGATED)

    def record_interaction(self) -> None:
        url = self.current_url
        if not self.history or self.history[-1] != url:
            self.history.append(url)
            self.forward_history.clear()
        self._enter(ScenarioState.INTERACTING)

    def mark_settled(self) -> None:
        self._enter(ScenarioState.SETTLED)

    def mark_asserting(self) -> None:
        if self.state != ScenarioState.ASSERTING:
            self._enter(ScenarioState.ASSERTING)

    def finish(self, failed: bool = False) -> None:
        self._enter(ScenarioState.FAILED if failed else ScenarioState.DONE)

    @property
    def needs_settle(self) -> bool:
        return self.state in (ScenarioState.NAVIGATED, ScenarioState.INTERACTING)

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ScenarioAborted("Scenario was cancelled")

    def sleep(self, seconds: float) -> None:
        """Pause for ``seconds`` unless the scenario is cancelled meanwhile."""

        if self.cancel_event.wait(max(seconds, 0.0)):
            raise ScenarioAborted("Scenario was cancelled")

    def _stop_driver(self) -> None:
        # A browser that fails to shut down must not replace the scenario outcome.
        try:
            self.driver.stop()
        except DriverError as exc:
            LOGGER.warning("Browser did not stop cleanly: %s", exc)

    def _enter(self, state: ScenarioState) -> None:
        if state in (ScenarioState.NAVIGATED, ScenarioState.INTERACTING):
            self._snapshot = None
        LOGGER.debug("Session state %s -> %s", self.state.value, state.value)
        self.state = state
