"""Running scenarios against fresh browser sessions."""

from __future__ import annotations

import logging
import re
import threading
import time
import multiprocessing
import pickle
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from typing import Any, Callable, Iterable, Optional

from ..browser.base import BrowserDriver
from ..config import HarnessConfig
from ..errors import HarnessError, UnexpectedPageError
from ..factory import build_driver
from ..harness.assertions import AssertionLayer
from ..harness.navigator import Navigator
from ..harness.session import Session
from ..harness.settler import AsyncSettler
from ..models import (
    MatchMode,
    ReportEvent,
    ReportLevel,
    Scenario,
    ScenarioResult,
    ScenarioState,
    Step,
    StepType,
)
from ..preflight import check_reachable
from ..reporting.base import Reporter

LOGGER = logging.getLogger(__name__)

DriverFactory = Callable[..., BrowserDriver]

# How often the parallel runner looks for cancellation while scenarios run.
_CANCEL_POLL_INTERVAL = 0.1


class ScenarioRunner:
    """Execute one scenario's steps on a started session.

    The first failing step aborts the scenario; there is no
    retry-and-continue.
    """

    def __init__(self, session: Session, reporter: Optional[Reporter] = None) -> None:
        self._session = session
        self._reporter = reporter
        self._settler = AsyncSettler(session)
        self._navigator = Navigator(session)
        self._assertions = AssertionLayer(session, self._settler)
        self._executed = 0

    def run(self, scenario: Scenario) -> ScenarioResult:
        started = time.monotonic()
        self._executed = 0
        self._emit("scenario_started", f"Running {scenario.name}", data={"scenario": scenario.name})
        try:
            self._run_steps(scenario, scenario.steps)
            self._check_page_errors(scenario)
        except HarnessError as exc:
            self._session.finish(failed=True)
            LOGGER.debug("Scenario %s failed", scenario.name, exc_info=True)
            result = ScenarioResult(
                name=scenario.name,
                state=ScenarioState.FAILED,
                steps_executed=self._executed,
                elapsed=time.monotonic() - started,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self._emit(
                "scenario_failed",
                f"{scenario.name}: {type(exc).__name__}: {exc}",
                level=ReportLevel.ERROR,
                data={"scenario": scenario.name},
            )
            return result
        self._session.finish()
        self._emit(
            "scenario_passed",
            scenario.name,
            level=ReportLevel.SUCCESS,
            data={"scenario": scenario.name},
        )
        return ScenarioResult(
            name=scenario.name,
            state=ScenarioState.DONE,
            steps_executed=self._executed,
            elapsed=time.monotonic() - started,
        )

    def _run_steps(self, scenario: Scenario, steps: Iterable[Step]) -> None:
        for step in steps:
            self._session.check_cancelled()
            LOGGER.debug("Step %s", step.describe())
            self._execute(scenario, step)
            self._executed += 1
            self._check_page_errors(scenario)

    def _execute(self, scenario: Scenario, step: Step) -> None:
        navigator = self._navigator
        assertions = self._assertions
        if step.type == StepType.VISIT:
            navigator.visit(step.path)
        elif step.type == StepType.GO_BACK:
            navigator.go_back()
        elif step.type == StepType.GO_FORWARD:
            navigator.go_forward()
        elif step.type == StepType.CLICK_LINK:
            navigator.click_link(step.text, index=step.index)
        elif step.type == StepType.CLICK_BUTTON:
            navigator.click_button(step.text, index=step.index)
        elif step.type == StepType.FILL_IN:
            assertions.fill_input(step.value, step.selector, index=step.index)
        elif step.type == StepType.WITHIN:
            with assertions.within(step.selector):
                self._run_steps(scenario, step.steps)
        elif step.type == StepType.SETTLE:
            self._settler.await_quiescence(step.timeout)
        elif step.type == StepType.EXPECT_TEXT:
            assertions.expect_text(step.text, step.selector, step.mode or MatchMode.SUBSTRING)
        elif step.type == StepType.EXPECT_NO_TEXT:
            assertions.expect_no_text(step.text, step.selector, step.mode or MatchMode.SUBSTRING)
        elif step.type == StepType.EXPECT_CSS:
            assertions.expect_css(step.selector, text=step.text, visible=step.visible)
        elif step.type == StepType.EXPECT_ELEMENT_TEXT:
            assertions.expect_element_text(
                step.selector,
                step.text,
                step.mode or MatchMode.EXACT,
                index=step.index,
            )
        elif step.type == StepType.EXPECT_HTML_CONTAINS:
            assertions.expect_html_contains(step.text)
        elif step.type == StepType.EXPECT_PATH:
            assertions.expect_path(step.path)
        else:  # pragma: no cover - exhaustive over StepType
            raise HarnessError(f"Unsupported step type: {step.type}")

    def _check_page_errors(self, scenario: Scenario) -> None:
        errors = self._session.driver.drain_page_errors()
        if not errors:
            return
        if scenario.ignore_js_errors:
            LOGGER.debug("Ignoring %d page error(s) in %s", len(errors), scenario.name)
            return
        patterns = [re.compile(pattern) for pattern in scenario.allowed_errors]
        unexpected = [
            error for error in errors if not any(pattern.search(error) for pattern in patterns)
        ]
        if unexpected:
            raise UnexpectedPageError(unexpected)

    def _emit(
        self,
        event_type: str,
        message: str,
        *,
        level: ReportLevel = ReportLevel.INFO,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        if self._reporter:
            self._reporter.report(
                ReportEvent(type=event_type, message=message, level=level, data=data or {})
            )


def run_scenario(
    config: HarnessConfig,
    scenario: Scenario,
    *,
    driver_factory: DriverFactory = build_driver,
    cancel_event: Optional[threading.Event] = None,
    reporter: Optional[Reporter] = None,
) -> ScenarioResult:
    """Run ``scenario`` in its own session, closing the browser afterwards."""

    session = Session(
        driver_factory(config.browser, javascript=scenario.javascript),
        config,
        javascript=scenario.javascript,
        cancel_event=cancel_event,
    )
    try:
        session.start()
    except HarnessError as exc:
        LOGGER.error("Could not start browser for %s: %s", scenario.name, exc)
        return ScenarioResult(
            name=scenario.name,
            state=ScenarioState.FAILED,
            error_type=type(exc).__name__,
            error=str(exc),
        )
    try:
        return ScenarioRunner(session, reporter=reporter).run(scenario)
    finally:
        session.close()


def _run_in_worker(
    config_data: dict[str, Any],
    scenario_data: dict[str, Any],
    driver_factory: DriverFactory,
    cancel_event: Any,
) -> dict[str, Any]:
    config = HarnessConfig.model_validate(config_data)
    scenario = Scenario.model_validate(scenario_data)
    result = run_scenario(
        config,
        scenario,
        driver_factory=driver_factory,
        cancel_event=cancel_event,
    )
    return result.model_dump(mode="json")


class SuiteRunner:
    """Run many scenarios, each with an independent session.

    With ``execution.workers`` above one, scenarios run in separate worker
    processes that each launch their own browser.
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        driver_factory: DriverFactory = build_driver,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self._config = config
        self._driver_factory = driver_factory
        self._reporter = reporter
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        LOGGER.info("Cancelling suite run")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def run(self, scenarios: Iterable[Scenario]) -> list[ScenarioResult]:
        scenarios = list(scenarios)
        if self._config.navigation.preflight:
            check_reachable(
                self._config.base_url,
                timeout=self._config.navigation.preflight_timeout,
            )
        if self._config.execution.workers > 1:
            results = self._run_parallel(scenarios)
        else:
            results = self._run_serial(scenarios)
        failed = sum(1 for result in results if not result.passed)
        self._emit_summary(results, failed)
        return results

    def _run_serial(self, scenarios: list[Scenario]) -> list[ScenarioResult]:
        results: list[ScenarioResult] = []
        for scenario in scenarios:
            if self.cancelled:
                break
            result = run_scenario(
                self._config,
                scenario,
                driver_factory=self._driver_factory,
                cancel_event=self._cancel_event,
                reporter=self._reporter,
            )
            results.append(result)
            if not result.passed and self._config.execution.fail_fast:
                LOGGER.info("Stopping after first failure")
                break
        return results

    def _run_parallel(self, scenarios: list[Scenario]) -> list[ScenarioResult]:
        """Run scenarios in worker processes.

        The driver factory is sent to the workers by reference, so it must
        be a module-level callable. Cancellation reaches running workers
        through a manager-backed event that their waits sleep on.
        """

        try:
            pickle.dumps(self._driver_factory)
        except (pickle.PicklingError, AttributeError, TypeError) as exc:
            raise HarnessError("Parallel runs need a module-level driver factory") from exc
        config_data = self._config.model_dump(mode="json")
        fail_fast = self._config.execution.fail_fast
        by_name: dict[str, ScenarioResult] = {}
        with multiprocessing.Manager() as manager:
            shared_cancel = manager.Event()
            executor = ProcessPoolExecutor(max_workers=self._config.execution.workers)
            try:
                pending = {
                    executor.submit(
                        _run_in_worker,
                        config_data,
                        scenario.model_dump(mode="json"),
                        self._driver_factory,
                        shared_cancel,
                    )
                    for scenario in scenarios
                }
                stopping = False
                while pending:
                    done, pending = wait(
                        pending,
                        timeout=_CANCEL_POLL_INTERVAL,
                        return_when=FIRST_COMPLETED,
                    )
                    for future in done:
                        if future.cancelled():
                            continue
                        result = ScenarioResult.model_validate(future.result())
                        by_name[result.name] = result
                        self._report_result(result)
                        if not result.passed and fail_fast and not stopping:
                            LOGGER.info("Stopping after first failure")
                            stopping = True
                    if self.cancelled and not shared_cancel.is_set():
                        shared_cancel.set()
                        stopping = True
                    if stopping:
                        # Queued scenarios are dropped, running ones finish or abort.
                        pending = {future for future in pending if not future.cancel()}
            finally:
                executor.shutdown(wait=True, cancel_futures=True)
        return [by_name[scenario.name] for scenario in scenarios if scenario.name in by_name]

    def _report_result(self, result: ScenarioResult) -> None:
        if not self._reporter:
            return
        if result.passed:
            event = ReportEvent(
                type="scenario_passed",
                message=result.name,
                level=ReportLevel.SUCCESS,
                data={"scenario": result.name},
            )
        else:
            event = ReportEvent(
                type="scenario_failed",
                message=f"{result.name}: {result.error_type}: {result.error}",
                level=ReportLevel.ERROR,
                data={"scenario": result.name},
            )
        self._reporter.report(event)

    def _emit_summary(self, results: list[ScenarioResult], failed: int) -> None:
        if not self._reporter:
            return
        passed = len(results) - failed
        self._reporter.report(
            ReportEvent(
                type="suite_finished",
                message=f"{passed} passed, {failed} failed",
                level=ReportLevel.ERROR if failed else ReportLevel.SUCCESS,
                data={"passed": passed, "failed": failed},
            )
        )
