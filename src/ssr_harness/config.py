"""Configuration models for the SSR harness."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PENDING_SCRIPT = "typeof window.jQuery === 'undefined' ? 0 : window.jQuery.active"


class BrowserConfig(BaseModel):
    """Settings for the browser backend."""

    engine: str = Field(default="chromium", description="chromium, firefox or webkit")
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    navigation_timeout: float = Field(default=30.0, description="Seconds allowed for page loads.")
    action_timeout: float = Field(default=5.0, description="Seconds allowed for clicks and fills.")
    slow_mo: float = Field(default=0.0, description="Milliseconds to pause between operations.")


class SettleConfig(BaseModel):
    """Settings for waiting on page-initiated asynchronous work."""

    timeout: float = Field(default=10.0, ge=0)
    poll_interval: float = Field(default=0.05, gt=0)
    recheck: bool = Field(
        default=True,
        description="Re-read the pending count one poll interval after it first reaches zero.",
    )
    pending_script: str = DEFAULT_PENDING_SCRIPT


class AssertionConfig(BaseModel):
    """Settings for element lookup and DOM expectations."""

    wait_time: float = Field(default=2.0, ge=0)
    poll_interval: float = Field(default=0.05, gt=0)
    nearest_matches: int = Field(default=3, ge=0)


class NavigationConfig(BaseModel):
    """Settings controlling which responses abort a visit."""

    fail_on_server_error: bool = True
    fail_on_status: list[int] = Field(default_factory=list)
    preflight: bool = Field(
        default=False,
        description="Check that the base URL answers before launching any browser.",
    )
    preflight_timeout: float = 5.0


class ExecutionConfig(BaseModel):
    """Settings for running a suite of scenarios."""

    workers: int = Field(default=1, ge=1)
    fail_fast: bool = False


class ReportingConfig(BaseModel):
    """Reporting channel settings."""

    channel: str = Field(default="console")


class HarnessConfig(BaseSettings):
    """Top-level configuration for running scenarios."""

    model_config = SettingsConfigDict(
        env_prefix="SSR_HARNESS_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    base_url: str = Field(default="http://localhost:3000")
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    settle: SettleConfig = Field(default_factory=SettleConfig)
    assertions: AssertionConfig = Field(default_factory=AssertionConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> HarnessConfig:
    """Load configuration from an optional file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = HarnessConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return HarnessConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
