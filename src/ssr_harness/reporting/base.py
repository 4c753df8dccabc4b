"""Reporting channels for scenario runs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from rich.console import Console

from ..models import ReportEvent


class Reporter(ABC):
    """Interface for publishing events emitted while scenarios run."""

    @abstractmethod
    def report(self, event: ReportEvent) -> None:
        """Publish a report event."""


class ConsoleReporter(Reporter):
    """Print scenario progress to the console using Rich."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    def report(self, event: ReportEvent) -> None:
        style = {
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(event.level.value, "white")
        label = {
            "scenario_started": "RUN",
            "scenario_passed": "PASS",
            "scenario_failed": "FAIL",
            "suite_finished": "DONE",
        }.get(event.type, event.level.value.upper())
        self._console.print(f"[{label}] {event.message}", style=style, markup=False)


class CollectingReporter(Reporter):
    """Keep every event in memory."""

    def __init__(self) -> None:
        self.events: list[ReportEvent] = []

    def report(self, event: ReportEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[ReportEvent]:
        return [event for event in self.events if event.type == event_type]


class CompositeReporter(Reporter):
    """Fan-out reporter that propagates events to multiple reporters."""

    def __init__(self, reporters: Iterable[Reporter]) -> None:
        self._reporters = list(reporters)

    def report(self, event: ReportEvent) -> None:
        for reporter in self._reporters:
            reporter.report(event)
