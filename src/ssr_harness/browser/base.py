"""Browser driver abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

# Opaque handle to a DOM node; each driver decides what it wraps.
Element = Any


class BrowserDriver(ABC):
    """Interface for the remote-control boundary of a single browser tab."""

    @abstractmethod
    def start(self) -> None:
        """Launch the browser and open a tab."""

    @abstractmethod
    def stop(self) -> None:
        """Close the tab and release the browser."""

    @abstractmethod
    def navigate(self, url: str) -> Optional[int]:
        """Load ``url`` and return the response status when one is known.

        Raises :class:`~ssr_harness.errors.DriverError` when the target cannot
        be reached.
        """

    @abstractmethod
    def go_back(self) -> bool:
        """Step back in history, returning ``False`` when nothing happened."""

    @abstractmethod
    def go_forward(self) -> bool:
        """Step forward in history, returning ``False`` when nothing happened."""

    @abstractmethod
    def current_url(self) -> str:
        """Return the URL of the current document."""

    @abstractmethod
    def find_all(self, selector: str, within: Optional[Element] = None) -> list[Element]:
        """Return every element matching the CSS ``selector``."""

    @abstractmethod
    def links(self, within: Optional[Element] = None) -> list[Element]:
        """Return every clickable link."""

    @abstractmethod
    def buttons(self, within: Optional[Element] = None) -> list[Element]:
        """Return every button-like element."""

    @abstractmethod
    def text(self, element: Optional[Element] = None) -> str:
        """Return rendered text of ``element``, or of the document body."""

    @abstractmethod
    def attribute(self, element: Element, name: str) -> Optional[str]:
        """Return an attribute value of ``element``."""

    @abstractmethod
    def is_visible(self, element: Element) -> bool:
        """Return whether ``element`` is rendered and visible."""

    @abstractmethod
    def html(self) -> str:
        """Return the serialized HTML of the current document."""

    @abstractmethod
    def fill(self, element: Element, value: str) -> None:
        """Set the value of an input and dispatch its input/change events."""

    @abstractmethod
    def click(self, element: Element) -> None:
        """Click ``element``."""

    @abstractmethod
    def evaluate(self, script: str) -> Any:
        """Evaluate a JavaScript expression in the page and return its value."""

    @abstractmethod
    def drain_page_errors(self) -> list[str]:
        """Return and forget page errors observed since the last call."""
