"""Shared models used across the SSR harness."""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class MatchMode(str, enum.Enum):
    """How an observed DOM value is compared with the expected one."""

    EXACT = "exact"
    SUBSTRING = "substring"
    REGEX = "regex"
    CSS = "css"


class ScenarioState(str, enum.Enum):
    """Lifecycle of a single scenario's session."""

    INITIAL = "initial"
    NAVIGATED = "navigated"
    SETTLED = "settled"
    ASSERTING = "asserting"
    INTERACTING = "interacting"
    DONE = "done"
    FAILED = "failed"


class StepType(str, enum.Enum):
    """Enumerated scenario steps the runner can execute."""

    VISIT = "visit"
    GO_BACK = "go_back"
    GO_FORWARD = "go_forward"
    CLICK_LINK = "click_link"
    CLICK_BUTTON = "click_button"
    FILL_IN = "fill_in"
    WITHIN = "within"
    SETTLE = "settle"
    EXPECT_TEXT = "expect_text"
    EXPECT_NO_TEXT = "expect_no_text"
    EXPECT_CSS = "expect_css"
    EXPECT_ELEMENT_TEXT = "expect_element_text"
    EXPECT_HTML_CONTAINS = "expect_html_contains"
    EXPECT_PATH = "expect_path"


# Field filled by the scalar form of a step, e.g. ``- visit: /``.
_SHORTHAND_FIELDS: dict[StepType, Optional[str]] = {
    StepType.VISIT: "path",
    StepType.GO_BACK: None,
    StepType.GO_FORWARD: None,
    StepType.CLICK_LINK: "text",
    StepType.CLICK_BUTTON: "text",
    StepType.FILL_IN: "value",
    StepType.WITHIN: "selector",
    StepType.SETTLE: "timeout",
    StepType.EXPECT_TEXT: "text",
    StepType.EXPECT_NO_TEXT: "text",
    StepType.EXPECT_CSS: "selector",
    StepType.EXPECT_ELEMENT_TEXT: "selector",
    StepType.EXPECT_HTML_CONTAINS: "text",
    StepType.EXPECT_PATH: "path",
}

_REQUIRED_FIELDS: dict[StepType, tuple[str, ...]] = {
    StepType.VISIT: ("path",),
    StepType.CLICK_LINK: ("text",),
    StepType.CLICK_BUTTON: ("text",),
    StepType.FILL_IN: ("value",),
    StepType.WITHIN: ("selector",),
    StepType.EXPECT_TEXT: ("text",),
    StepType.EXPECT_NO_TEXT: ("text",),
    StepType.EXPECT_CSS: ("selector",),
    StepType.EXPECT_ELEMENT_TEXT: ("selector", "text"),
    StepType.EXPECT_HTML_CONTAINS: ("text",),
    StepType.EXPECT_PATH: ("path",),
}


class Step(BaseModel):
    """A single instruction within a scenario.

    Steps accept a compact form where the step type is the only key, for
    example ``{"visit": "/"}`` or ``{"expect_css": {"selector": "h1"}}``.
    """

    type: StepType
    path: Optional[str] = None
    text: Optional[str] = None
    selector: Optional[str] = Field(
        default=None,
        description="CSS selector the step targets or is scoped to.",
    )
    value: Optional[str] = None
    mode: Optional[MatchMode] = None
    visible: bool = True
    index: Optional[int] = Field(
        default=None,
        description="Pick the n-th match when a label or selector is ambiguous.",
    )
    timeout: Optional[float] = None
    steps: list[Step] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            data = {data: None}
        if not isinstance(data, Mapping) or "type" in data or len(data) != 1:
            return data
        ((key, value),) = data.items()
        step_type = StepType(key)
        if isinstance(value, Mapping):
            return {"type": step_type, **value}
        payload: dict[str, Any] = {"type": step_type}
        if value is not None:
            field_name = _SHORTHAND_FIELDS[step_type]
            if field_name is None:
                raise ValueError(f"Step '{key}' does not take an argument")
            payload[field_name] = value
        return payload

    @model_validator(mode="after")
    def _check_required(self) -> Step:
        missing = [
            name for name in _REQUIRED_FIELDS.get(self.type, ()) if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(f"Step '{self.type.value}' requires: {', '.join(missing)}")
        if self.steps and self.type != StepType.WITHIN:
            raise ValueError("Only 'within' steps may contain nested steps")
        if self.text is not None and (
            self.mode == MatchMode.REGEX or self.type == StepType.EXPECT_CSS
        ):
            _check_pattern(self.text)
        return self

    def describe(self) -> str:
        argument = next(
            (
                getattr(self, name)
                for name in ("path", "text", "value", "selector")
                if getattr(self, name) is not None
            ),
            None,
        )
        if argument is None:
            return self.type.value
        return f"{self.type.value} {argument!r}"


class Scenario(BaseModel):
    """An ordered list of steps run against one fresh browser session."""

    name: str
    tags: list[str] = Field(default_factory=list)
    javascript: bool = True
    ignore_js_errors: bool = Field(
        default=False,
        description="Explicit opt-in to tolerate every page error in this scenario.",
    )
    allowed_errors: list[str] = Field(
        default_factory=list,
        description="Regular expressions for page errors this scenario expects.",
    )
    steps: list[Step] = Field(default_factory=list)

    @field_validator("allowed_errors")
    @classmethod
    def _check_allowed_errors(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            _check_pattern(pattern)
        return patterns


def _check_pattern(pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"Invalid regular expression {pattern!r}: {exc}") from exc


class ScenarioResult(BaseModel):
    """Outcome of running a scenario."""

    name: str
    state: ScenarioState
    steps_executed: int = 0
    elapsed: float = 0.0
    error_type: Optional[str] = None
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.state == ScenarioState.DONE


class ReportLevel(str, enum.Enum):
    """Severity of report events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class ReportEvent(BaseModel):
    """Event emitted while scenarios run."""

    type: str
    message: str
    level: ReportLevel = ReportLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
