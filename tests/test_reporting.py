from io import StringIO

from rich.console import Console

from ssr_harness.config import ReportingConfig
from ssr_harness.factory import build_reporter
from ssr_harness.models import ReportEvent, ReportLevel
from ssr_harness.reporting.base import (
    CollectingReporter,
    CompositeReporter,
    ConsoleReporter,
)


def test_console_reporter_labels_events():
    buffer = StringIO()
    reporter = ConsoleReporter(Console(file=buffer, width=200))

    reporter.report(ReportEvent(type="scenario_passed", message="Pure component", level=ReportLevel.SUCCESS))
    reporter.report(
        ReportEvent(
            type="scenario_failed",
            message="Broken [x]: AssertionFailure",
            level=ReportLevel.ERROR,
        )
    )

    output = buffer.getvalue()
    assert "[PASS] Pure component" in output
    assert "[FAIL] Broken [x]: AssertionFailure" in output


def test_composite_reporter_fans_out():
    first, second = CollectingReporter(), CollectingReporter()
    event = ReportEvent(type="suite_finished", message="1 passed, 0 failed")

    CompositeReporter([first, second]).report(event)

    assert first.events == [event]
    assert second.events == [event]


def test_build_reporter_channels():
    assert isinstance(build_reporter(ReportingConfig()), ConsoleReporter)
    assert isinstance(build_reporter(ReportingConfig(channel="memory")), CollectingReporter)
