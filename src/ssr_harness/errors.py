"""Exceptions raised while driving a scenario against a running application."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class HarnessError(RuntimeError):
    """Base class for every failure surfaced by the harness."""


class DriverError(HarnessError):
    """Raised when the underlying browser automation call fails."""


class NavigationError(HarnessError):
    """Raised when a page cannot be loaded."""

    def __init__(self, url: str, reason: str, *, status: Optional[int] = None) -> None:
        super().__init__(f"Could not navigate to {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class HistoryError(HarnessError):
    """Raised when history navigation has no entry to move to."""

    def __init__(self, direction: str) -> None:
        super().__init__(f"Cannot go {direction}: no history entry available")
        self.direction = direction


class ElementNotFoundError(HarnessError):
    def __init__(
        self,
        description: str,
        *,
        selector: Optional[str] = None,
        waited: float = 0.0,
    ) -> None:
        super().__init__(f"Unable to find {description} (waited {waited:.2f}s)")
        self.description = description
        self.selector = selector
        self.waited = waited


class AmbiguousElementError(HarnessError):
    def __init__(
        self,
        description: str,
        count: int,
        *,
        selector: Optional[str] = None,
    ) -> None:
        super().__init__(f"Ambiguous match, found {count} elements matching {description}")
        self.description = description
        self.count = count
        self.selector = selector


class SettleTimeoutError(HarnessError):
    """Raised when pending asynchronous work does not drain in time."""

    def __init__(self, timeout: float, elapsed: float, pending: int) -> None:
        super().__init__(
            f"Page did not settle within {timeout:.2f}s "
            f"({pending} async operation(s) still pending after {elapsed:.2f}s)"
        )
        self.timeout = timeout
        self.elapsed = elapsed
        self.pending = pending


class AssertionFailure(HarnessError, AssertionError):
    """Raised when an expectation about the rendered page does not hold."""

    def __init__(
        self,
        message: str,
        *,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        mode: Optional[str] = None,
        selector: Optional[str] = None,
        nearest: Sequence[str] = (),
    ) -> None:
        details = message
        if nearest:
            details += "\nNearest matches:\n" + "\n".join(f"  - {item!r}" for item in nearest)
        super().__init__(details)
        self.expected = expected
        self.actual = actual
        self.mode = mode
        self.selector = selector
        self.nearest = list(nearest)


class UnexpectedPageError(HarnessError):
    """Raised when the page reported errors the scenario did not allow."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        listing = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"Page reported {len(self.errors)} unexpected error(s):\n{listing}")


class ScenarioAborted(HarnessError):
    """Raised inside waits once the scenario has been cancelled."""


class SuiteError(HarnessError):
    """Raised when a suite definition cannot be loaded."""
