"""Waiting for page-initiated asynchronous work to drain."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import SettleTimeoutError
from .session import Session

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitCondition:
    """A predicate polled until it holds or the wait budget runs out."""

    predicate: Callable[[], bool]
    timeout: float
    poll_interval: float


def wait_until(session: Session, condition: WaitCondition) -> bool:
    """Poll ``condition`` and return whether it held before the timeout.

    The predicate is always evaluated at least once, so a zero timeout
    behaves as a single check.
    """

    deadline = time.monotonic() + condition.timeout
    while True:
        session.check_cancelled()
        if condition.predicate():
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        session.sleep(min(condition.poll_interval, remaining))


class AsyncSettler:
    """Block until the page reports no pending asynchronous operations.

    The pending count is read through a JavaScript expression the page
    answers (``jQuery.active`` by default). Once the count reaches zero the
    settler re-reads it one poll interval later, when the remaining budget
    allows, so that work scheduled right after the first drain is caught.
    This narrows the window for races but cannot close it entirely.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._config = session.config.settle

    def pending_count(self) -> int:
        value = self._session.driver.evaluate(self._config.pending_script)
        if value is None:
            return 0
        return int(value)

    def await_quiescence(self, timeout: Optional[float] = None) -> float:
        """Wait for quiescence and return the seconds spent waiting."""

        budget = self._config.timeout if timeout is None else timeout
        interval = self._config.poll_interval
        started = time.monotonic()
        deadline = started + budget
        if not self._session.javascript:
            self._session.mark_settled()
            return 0.0
        while True:
            self._session.check_cancelled()
            pending = self.pending_count()
            now = time.monotonic()
            if pending == 0:
                if not self._config.recheck or deadline - now < interval:
                    break
                self._session.sleep(interval)
                pending = self.pending_count()
                if pending == 0:
                    break
                LOGGER.debug("Async work restarted after drain (%s pending)", pending)
                continue
            if now >= deadline:
                raise SettleTimeoutError(budget, now - started, pending)
            self._session.sleep(min(interval, deadline - now))
        elapsed = time.monotonic() - started
        LOGGER.debug("Page settled after %.3fs", elapsed)
        self._session.mark_settled()
        return elapsed
