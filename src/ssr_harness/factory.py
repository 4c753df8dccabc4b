"""Factories for constructing components from configuration."""

from __future__ import annotations

from .browser.base import BrowserDriver
from .browser.playwright_driver import PlaywrightDriver
from .config import BrowserConfig, ReportingConfig
from .reporting.base import CollectingReporter, ConsoleReporter, Reporter


def build_driver(config: BrowserConfig, *, javascript: bool = True) -> BrowserDriver:
    return PlaywrightDriver(config, javascript=javascript)


def build_reporter(config: ReportingConfig) -> Reporter:
    channel = config.channel.lower()
    if channel == "console":
        return ConsoleReporter()
    if channel in {"memory", "collect"}:
        return CollectingReporter()
    raise ValueError(f"Unsupported reporting channel: {config.channel}")
