"""Inspecting and interacting with the rendered page."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from ..browser.base import Element
from ..models import MatchMode
from .expectation import Expectation
from .lookup import find_css, find_one
from .session import Session
from .settler import AsyncSettler, WaitCondition, wait_until

LOGGER = logging.getLogger(__name__)

FILLABLE_SELECTOR = (
    "input:not([type=hidden]):not([type=submit]):not([type=button])"
    ":not([type=reset]):not([type=image]):not([type=checkbox]):not([type=radio])"
    ":not([type=file]), textarea, [contenteditable=''], [contenteditable=true]"
)


class AssertionLayer:
    """Expectations about the DOM plus the input simulation that drives it.

    Every public method first settles the session when it was freshly
    navigated or interacted with, so no expectation is evaluated against
    a page that still has asynchronous work in flight. Expectations are
    then retried until ``assertions.wait_time`` elapses.
    """

    def __init__(self, session: Session, settler: Optional[AsyncSettler] = None) -> None:
        self._session = session
        self._settler = settler or AsyncSettler(session)

    def prepare(self) -> None:
        if self._session.needs_settle:
            self._settler.await_quiescence()
        self._session.mark_asserting()

    def expect_text(
        self,
        text: str,
        selector: Optional[str] = None,
        mode: MatchMode = MatchMode.SUBSTRING,
    ) -> None:
        self._verify(lambda: Expectation(self._texts(selector), text, mode, selector))

    def expect_no_text(
        self,
        text: str,
        selector: Optional[str] = None,
        mode: MatchMode = MatchMode.SUBSTRING,
    ) -> None:
        self._verify(
            lambda: Expectation(self._texts(selector), text, mode, selector, negated=True)
        )

    def expect_css(
        self,
        selector: str,
        *,
        text: Optional[str] = None,
        visible: bool = True,
    ) -> None:
        driver = self._session.driver

        def _observe() -> Expectation:
            elements = driver.find_all(selector, self._session.scope)
            if visible:
                elements = [element for element in elements if driver.is_visible(element)]
            texts = [driver.text(element) for element in elements]
            if text is not None:
                texts = [value for value in texts if re.search(text, value)]
            return Expectation(texts, selector, MatchMode.CSS)

        self._verify(_observe)

    def expect_element_text(
        self,
        selector: str,
        text: str,
        mode: MatchMode = MatchMode.EXACT,
        *,
        index: Optional[int] = None,
    ) -> None:
        self.prepare()
        element = find_css(self._session, selector, index=index)
        self._verify(
            lambda: Expectation([self._session.driver.text(element)], text, mode, selector)
        )

    def expect_html_contains(self, substring: str) -> None:
        reads = 0

        def _observe() -> Expectation:
            nonlocal reads
            html = self._session.html(refresh=reads > 0)
            reads += 1
            return Expectation([html], substring, MatchMode.SUBSTRING, "document HTML")

        self._verify(_observe)

    def expect_path(self, path: str) -> None:
        self._verify(
            lambda: Expectation([self._session.current_path], path, MatchMode.EXACT, "current path")
        )

    def fill_input(
        self,
        value: str,
        selector: Optional[str] = None,
        *,
        index: Optional[int] = None,
    ) -> None:
        self.prepare()
        driver = self._session.driver
        root = find_css(self._session, selector) if selector else self._session.scope
        element = find_one(
            self._session,
            lambda: driver.find_all(FILLABLE_SELECTOR, root),
            description="fillable field" + (f" within {selector!r}" if selector else ""),
            selector=selector,
            index=index,
        )
        LOGGER.info("Filling in %r", value)
        driver.fill(element, value)
        self._session.record_interaction()

    @contextmanager
    def within(self, selector: str) -> Iterator[Element]:
        """Scope lookups and expectations to the single element matching ``selector``."""

        self.prepare()
        element = find_css(self._session, selector)
        self._session.push_scope(element)
        try:
            yield element
        finally:
            self._session.pop_scope()

    def _texts(self, selector: Optional[str]) -> list[str]:
        driver = self._session.driver
        if selector is None:
            return [driver.text(self._session.scope)]
        return [driver.text(element) for element in driver.find_all(selector, self._session.scope)]

    def _verify(self, observe: Callable[[], Expectation]) -> Expectation:
        self.prepare()
        config = self._session.config.assertions
        last: Optional[Expectation] = None

        def _holds() -> bool:
            nonlocal last
            last = observe()
            return last.holds()

        if wait_until(self._session, WaitCondition(_holds, config.wait_time, config.poll_interval)):
            return last
        raise last.failure(config.nearest_matches)
