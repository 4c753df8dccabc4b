"""Command line interface for ssr-harness."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .config import load_config
from .errors import HarnessError
from .factory import build_reporter
from .preflight import check_reachable
from .scenarios.runner import SuiteRunner
from .scenarios.suite import bundled_suites, load_suite

app = typer.Typer(help="Browser-driven checks for server-rendered, client-hydrated pages")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("ssr-harness"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def run(
    suite: Annotated[
        str,
        typer.Argument(help="Suite file, or the name of a bundled suite."),
    ],
    scenario: Annotated[
        Optional[list[str]],
        typer.Option("--scenario", "-s", help="Only run scenarios whose name contains this."),
    ] = None,
    tag: Annotated[
        Optional[list[str]],
        typer.Option("--tag", "-t", help="Only run scenarios carrying this tag."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", help="Root URL of the application under test."),
    ] = None,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser in headless mode (or headed)."),
    ] = None,
    engine: Annotated[
        Optional[str],
        typer.Option("--engine", help="Browser engine: chromium, firefox or webkit."),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", help="Number of parallel worker processes."),
    ] = None,
    fail_fast: Annotated[
        Optional[bool],
        typer.Option("--fail-fast/--no-fail-fast", help="Stop after the first failing scenario."),
    ] = None,
    settle_timeout: Annotated[
        Optional[float],
        typer.Option("--settle-timeout", help="Seconds to wait for pending async work."),
    ] = None,
) -> None:
    """Run the scenarios of a suite."""

    overrides: dict[str, Any] = {}
    if base_url:
        overrides["base_url"] = base_url
    if headless is not None or engine:
        overrides.setdefault("browser", {})
        if headless is not None:
            overrides["browser"]["headless"] = headless
        if engine:
            overrides["browser"]["engine"] = engine
    if workers is not None or fail_fast is not None:
        overrides.setdefault("execution", {})
        if workers is not None:
            overrides["execution"]["workers"] = workers
        if fail_fast is not None:
            overrides["execution"]["fail_fast"] = fail_fast
    if settle_timeout is not None:
        overrides["settle"] = {"timeout": settle_timeout}

    config = load_config(config_path, env_file=env_file, **overrides)
    try:
        loaded = load_suite(suite)
    except HarnessError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    selected = loaded.select(scenario, tag)
    if not selected:
        typer.echo("No scenarios selected.", err=True)
        raise typer.Exit(code=2)
    typer.echo(f"Running {len(selected)} scenario(s) from {loaded.name} against {config.base_url}")

    runner = SuiteRunner(config, reporter=build_reporter(config.reporting))
    try:
        results = runner.run(selected)
    except KeyboardInterrupt:
        runner.cancel()
        typer.echo("Interrupted.", err=True)
        raise typer.Exit(code=130)
    except HarnessError as exc:
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    failed = [result for result in results if not result.passed]
    if failed:
        for result in failed:
            typer.echo(f"FAILED {result.name}: {result.error_type}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"All {len(results)} scenario(s) passed.")


@app.command("list")
def list_scenarios(
    suite: Annotated[
        Optional[str],
        typer.Argument(help="Suite file, or the name of a bundled suite."),
    ] = None,
) -> None:
    """List bundled suites, or the expanded scenarios of one suite."""

    if suite is None:
        for name in bundled_suites():
            typer.echo(name)
        return
    try:
        loaded = load_suite(suite)
    except HarnessError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    for scenario in loaded.scenarios:
        tags = f" [{', '.join(scenario.tags)}]" if scenario.tags else ""
        typer.echo(f"{scenario.name}{tags}")


@app.command()
def check(
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", help="Root URL of the application under test."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option("--env-file", help="Path to an .env file."),
    ] = None,
) -> None:
    """Check that the application under test answers HTTP requests."""

    overrides: dict[str, Any] = {"base_url": base_url} if base_url else {}
    config = load_config(config_path, env_file=env_file, **overrides)
    try:
        status = check_reachable(config.base_url, timeout=config.navigation.preflight_timeout)
    except HarnessError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"{config.base_url} answered with status {status}")


if __name__ == "__main__":
    app()
