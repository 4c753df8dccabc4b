"""Driving a session between pages."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin

from ..errors import DriverError, HistoryError, NavigationError
from .lookup import find_labelled
from .session import Session

LOGGER = logging.getLogger(__name__)


class Navigator:
    """Loads pages, replays history and follows links and buttons.

    None of these operations wait for asynchronous work; the assertion
    layer settles the session before it next inspects the page.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve(self, path: str) -> str:
        base = self._session.config.base_url.rstrip("/") + "/"
        return urljoin(base, path)

    def visit(self, path: str) -> None:
        url = self.resolve(path)
        LOGGER.info("Visiting %s", url)
        try:
            status = self._session.driver.navigate(url)
        except DriverError as exc:
            raise NavigationError(url, str(exc)) from exc
        if status is not None and self._is_unrecoverable(status):
            raise NavigationError(url, f"server responded with {status}", status=status)
        self._session.record_visit()

    def go_back(self) -> None:
        if len(self._session.history) < 2 or not self._session.driver.go_back():
            raise HistoryError("back")
        self._session.record_back()
        LOGGER.info("Went back to %s", self._session.current_url)

    def go_forward(self) -> None:
        if not self._session.forward_history or not self._session.driver.go_forward():
            raise HistoryError("forward")
        self._session.record_forward()
        LOGGER.info("Went forward to %s", self._session.current_url)

    def click_link(self, text: str, *, index: Optional[int] = None) -> None:
        self._click("link", text, index)

    def click_button(self, text: str, *, index: Optional[int] = None) -> None:
        self._click("button", text, index)

    def _click(self, kind: str, text: str, index: Optional[int]) -> None:
        element = find_labelled(self._session, kind, text, index=index)
        LOGGER.info("Clicking %s %r", kind, text)
        self._session.driver.click(element)
        self._session.record_interaction()

    def _is_unrecoverable(self, status: int) -> bool:
        navigation = self._session.config.navigation
        if status in navigation.fail_on_status:
            return True
        return navigation.fail_on_server_error and status >= 500
