"""Locating exactly one element, retrying until the lookup budget runs out."""

from __future__ import annotations

import time
from typing import Callable, Optional

from ..browser.base import Element
from ..errors import AmbiguousElementError, ElementNotFoundError
from .session import Session
from .settler import WaitCondition, wait_until

LABEL_ATTRIBUTES = {
    "link": ("title", "id"),
    "button": ("value", "title", "id"),
}


def find_one(
    session: Session,
    candidates: Callable[[], list[Element]],
    *,
    description: str,
    selector: Optional[str] = None,
    index: Optional[int] = None,
) -> Element:
    """Return the single element produced by ``candidates``.

    When ``index`` is given the n-th candidate is returned instead, which
    is how callers disambiguate repeated labels.
    """

    assertions = session.config.assertions
    found: list[Element] = []

    def _resolved() -> bool:
        nonlocal found
        found = candidates()
        if index is not None:
            return len(found) > index
        return len(found) == 1

    started = time.monotonic()
    if wait_until(
        session,
        WaitCondition(_resolved, assertions.wait_time, assertions.poll_interval),
    ):
        return found[index or 0]
    if len(found) > 1 and index is None:
        raise AmbiguousElementError(description, len(found), selector=selector)
    raise ElementNotFoundError(
        description,
        selector=selector,
        waited=time.monotonic() - started,
    )


def find_css(
    session: Session,
    selector: str,
    *,
    index: Optional[int] = None,
) -> Element:
    return find_one(
        session,
        lambda: session.driver.find_all(selector, session.scope),
        description=f"css {selector!r}",
        selector=selector,
        index=index,
    )


def find_labelled(
    session: Session,
    kind: str,
    label: str,
    *,
    index: Optional[int] = None,
) -> Element:
    """Find a link or button by its visible label.

    Exact label matches take precedence; substring matches are only
    considered when nothing matches exactly.
    """

    driver = session.driver
    wanted = _normalize(label)

    def _candidates() -> list[Element]:
        elements = driver.links(session.scope) if kind == "link" else driver.buttons(session.scope)
        exact: list[Element] = []
        partial: list[Element] = []
        for element in elements:
            labels = [_normalize(driver.text(element))]
            for name in LABEL_ATTRIBUTES[kind]:
                value = driver.attribute(element, name)
                if value:
                    labels.append(_normalize(value))
            if wanted in labels:
                exact.append(element)
            elif any(wanted in item for item in labels):
                partial.append(element)
        return exact or partial

    return find_one(
        session,
        _candidates,
        description=f"{kind} {label!r}",
        index=index,
    )


def _normalize(text: str) -> str:
    return " ".join(text.split())
