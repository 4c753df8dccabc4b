"""Comparing observed DOM values with expected ones."""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass
from typing import Optional

from ..errors import AssertionFailure
from ..models import MatchMode


def matches(mode: MatchMode, actual: str, expected: str) -> bool:
    if mode == MatchMode.EXACT:
        return actual.strip() == expected
    if mode == MatchMode.SUBSTRING:
        return expected in actual
    if mode == MatchMode.REGEX:
        return re.search(expected, actual) is not None
    raise ValueError(f"{mode.value!r} is not a text comparison mode")


def nearest(expected: str, observed: list[str], limit: int) -> list[str]:
    """Return the observed lines closest to ``expected``."""

    if limit <= 0:
        return []
    lines: list[str] = []
    for value in observed:
        for line in value.splitlines():
            line = line.strip()
            if line and line not in lines:
                lines.append(line)
    return difflib.get_close_matches(expected, lines, n=limit, cutoff=0.4)


@dataclass
class Expectation:
    """One comparison between values read from the DOM and an expected value.

    For :attr:`MatchMode.CSS` the observed values are the matched nodes'
    texts and the expectation holds when at least one node matched.
    """

    observed: list[str]
    expected: str
    mode: MatchMode
    selector: Optional[str] = None
    negated: bool = False

    def holds(self) -> bool:
        if self.mode == MatchMode.CSS:
            found = bool(self.observed)
        else:
            found = any(matches(self.mode, value, self.expected) for value in self.observed)
        return found != self.negated

    def failure(self, nearest_limit: int = 3) -> AssertionFailure:
        actual = _summarize(self.observed)
        if self.mode == MatchMode.CSS:
            return AssertionFailure(
                f"expected to find css {self.expected!r} but there were no matches",
                expected=self.expected,
                actual=actual,
                mode=self.mode.value,
                selector=self.expected,
            )
        where = f" in {self.selector!r}" if self.selector else ""
        if self.negated:
            return AssertionFailure(
                f"expected not to find text {self.expected!r} ({self.mode.value}){where}"
                f" but found {actual!r}",
                expected=self.expected,
                actual=actual,
                mode=self.mode.value,
                selector=self.selector,
            )
        return AssertionFailure(
            f"expected to find text {self.expected!r} ({self.mode.value}){where}"
            f" but found {actual!r}",
            expected=self.expected,
            actual=actual,
            mode=self.mode.value,
            selector=self.selector,
            nearest=nearest(self.expected, self.observed, nearest_limit),
        )


def _summarize(observed: list[str], limit: int = 200) -> str:
    if not observed:
        return ""
    text = " | ".join(value.strip() for value in observed)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
