from __future__ import annotations

from typer.testing import CliRunner

from ssr_harness.cli import app
from ssr_harness.config import HarnessConfig
from ssr_harness.errors import NavigationError
from ssr_harness.models import ScenarioResult, ScenarioState
from ssr_harness.reporting.base import CollectingReporter

SUITE = """\
name: smoke
scenarios:
  - name: Pure component
    tags: [smoke]
    steps:
      - visit: /pure_component
      - expect_text: This is a Pure Component!
  - name: Broken app
    steps:
      - visit: /broken_app
      - expect_html_contains: Exception in rendering!
"""


def _result(name: str, passed: bool = True) -> ScenarioResult:
    return ScenarioResult(
        name=name,
        state=ScenarioState.DONE if passed else ScenarioState.FAILED,
        steps_executed=2,
        elapsed=0.1,
        error_type=None if passed else "AssertionFailure",
        error=None if passed else "Expected text",
    )


def _make_runner(state: dict[str, object], *, failing: tuple[str, ...] = ()):
    class DummySuiteRunner:
        def __init__(self, config, *, reporter=None, **kwargs):
            state["config"] = config
            state["reporter"] = reporter

        def run(self, scenarios):
            state["scenarios"] = [scenario.name for scenario in scenarios]
            return [_result(scenario.name, scenario.name not in failing) for scenario in scenarios]

        def cancel(self) -> None:
            state["cancelled"] = True

    return DummySuiteRunner


def _patch_config(monkeypatch, load_args: dict[str, object]) -> None:
    def fake_load_config(path, *, env_file=None, **overrides):  # type: ignore[no-untyped-def]
        load_args["path"] = path
        load_args["env_file"] = env_file
        load_args["overrides"] = overrides
        return HarnessConfig.model_validate(overrides)

    monkeypatch.setattr("ssr_harness.cli.load_config", fake_load_config)
    monkeypatch.setattr("ssr_harness.cli.build_reporter", lambda config: CollectingReporter())


def test_run_command_success(monkeypatch, tmp_path):
    runner = CliRunner()
    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    config_path = tmp_path / "config.yaml"
    config_path.write_text("browser: {}\n")

    load_args: dict[str, object] = {}
    _patch_config(monkeypatch, load_args)
    state: dict[str, object] = {}
    monkeypatch.setattr("ssr_harness.cli.SuiteRunner", _make_runner(state))

    result = runner.invoke(
        app,
        [
            "run",
            str(suite_path),
            "--config",
            str(config_path),
            "--base-url",
            "http://localhost:5000",
            "--headed",
            "--engine",
            "firefox",
            "--workers",
            "2",
            "--fail-fast",
            "--settle-timeout",
            "3",
        ],
    )

    assert result.exit_code == 0, result.output
    assert load_args["path"] == config_path
    assert load_args["overrides"] == {
        "base_url": "http://localhost:5000",
        "browser": {"headless": False, "engine": "firefox"},
        "execution": {"workers": 2, "fail_fast": True},
        "settle": {"timeout": 3.0},
    }
    assert state["scenarios"] == ["Pure component", "Broken app"]
    assert isinstance(state["reporter"], CollectingReporter)
    assert "Running 2 scenario(s) from smoke against http://localhost:5000" in result.output
    assert "All 2 scenario(s) passed." in result.output


def test_run_command_filters_by_tag_and_name(monkeypatch, tmp_path):
    runner = CliRunner()
    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    _patch_config(monkeypatch, {})
    state: dict[str, object] = {}
    monkeypatch.setattr("ssr_harness.cli.SuiteRunner", _make_runner(state))

    result = runner.invoke(app, ["run", str(suite_path), "--tag", "smoke"])
    assert result.exit_code == 0, result.output
    assert state["scenarios"] == ["Pure component"]

    result = runner.invoke(app, ["run", str(suite_path), "-s", "Broken"])
    assert result.exit_code == 0, result.output
    assert state["scenarios"] == ["Broken app"]


def test_run_command_reports_failures(monkeypatch, tmp_path):
    runner = CliRunner()
    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    _patch_config(monkeypatch, {})
    monkeypatch.setattr(
        "ssr_harness.cli.SuiteRunner",
        _make_runner({}, failing=("Broken app",)),
    )

    result = runner.invoke(app, ["run", str(suite_path)])

    assert result.exit_code == 1
    assert "FAILED Broken app: AssertionFailure" in result.output


def test_run_command_rejects_empty_selection(monkeypatch, tmp_path):
    runner = CliRunner()
    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    _patch_config(monkeypatch, {})
    monkeypatch.setattr("ssr_harness.cli.SuiteRunner", _make_runner({}))

    result = runner.invoke(app, ["run", str(suite_path), "--tag", "missing"])

    assert result.exit_code == 2
    assert "No scenarios selected." in result.output


def test_run_command_rejects_unknown_suite(monkeypatch):
    runner = CliRunner()
    _patch_config(monkeypatch, {})

    result = runner.invoke(app, ["run", "no-such-suite"])

    assert result.exit_code == 2
    assert "no-such-suite" in result.output


def test_run_command_surfaces_preflight_errors(monkeypatch, tmp_path):
    runner = CliRunner()
    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    _patch_config(monkeypatch, {})

    class UnreachableRunner:
        def __init__(self, config, *, reporter=None, **kwargs):
            pass

        def run(self, scenarios):
            raise NavigationError("http://localhost:3000/", "ConnectError: refused")

    monkeypatch.setattr("ssr_harness.cli.SuiteRunner", UnreachableRunner)

    result = runner.invoke(app, ["run", str(suite_path)])

    assert result.exit_code == 1
    assert "NavigationError" in result.output


def test_list_command_shows_bundled_suites_and_scenarios(tmp_path):
    runner = CliRunner()

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0, result.output
    assert "react_on_rails" in result.output

    suite_path = tmp_path / "smoke.yaml"
    suite_path.write_text(SUITE)
    result = runner.invoke(app, ["list", str(suite_path)])
    assert result.exit_code == 0, result.output
    assert "Pure component [smoke]" in result.output
    assert "Broken app" in result.output


def test_check_command(monkeypatch):
    runner = CliRunner()
    _patch_config(monkeypatch, {})
    calls: list[tuple[str, float]] = []

    def fake_check(url, *, timeout):  # type: ignore[no-untyped-def]
        calls.append((url, timeout))
        return 200

    monkeypatch.setattr("ssr_harness.cli.check_reachable", fake_check)

    result = runner.invoke(app, ["check", "--base-url", "http://localhost:5000"])

    assert result.exit_code == 0, result.output
    assert calls == [("http://localhost:5000", 5.0)]
    assert "http://localhost:5000 answered with status 200" in result.output


def test_check_command_fails_when_unreachable(monkeypatch):
    runner = CliRunner()
    _patch_config(monkeypatch, {})

    def fake_check(url, *, timeout):  # type: ignore[no-untyped-def]
        raise NavigationError(url, "ConnectError: refused")

    monkeypatch.setattr("ssr_harness.cli.check_reachable", fake_check)

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 1
    assert "refused" in result.output
