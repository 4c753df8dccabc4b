"""Loading scenario suites from YAML.

A suite file holds reusable ``templates`` and a list of ``scenarios``. A
template is a named list of steps with ``$param`` placeholders; scenarios
pull one in with an ``include`` step::

    templates:
      react_component:
        params: [dom_selector]
        steps:
          - expect_css: $dom_selector

    scenarios:
      - name: Pages/Index
        background:
          - visit: /
        steps:
          - include: {template: react_component, dom_selector: $dom_selector}
        cases:
          - {label: Redux app, dom_selector: "div#ReduxApp-react-component-0"}

Each entry in ``cases`` expands the scenario once, substituting the case's
parameters and appending its label to the scenario name.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..errors import SuiteError
from ..models import Scenario

LOGGER = logging.getLogger(__name__)

BUNDLED_SUITES_DIR = Path(__file__).resolve().parent.parent / "suites"

_MAX_INCLUDE_DEPTH = 8


class TemplateDefinition(BaseModel):
    """Reusable steps parameterised by name."""

    params: list[str] = Field(default_factory=list)
    steps: list[Any] = Field(default_factory=list)


class ScenarioDefinition(BaseModel):
    """Raw scenario entry before templates and cases are expanded."""

    name: str
    tags: list[str] = Field(default_factory=list)
    javascript: bool = True
    ignore_js_errors: bool = False
    allowed_errors: list[str] = Field(default_factory=list)
    background: list[Any] = Field(default_factory=list)
    steps: list[Any] = Field(default_factory=list)
    cases: list[dict[str, Any]] = Field(default_factory=list)


class SuiteDefinition(BaseModel):
    name: str = "suite"
    templates: dict[str, TemplateDefinition] = Field(default_factory=dict)
    scenarios: list[ScenarioDefinition] = Field(default_factory=list)


class Suite(BaseModel):
    """A named, fully expanded list of scenarios."""

    name: str
    scenarios: list[Scenario] = Field(default_factory=list)

    def names(self) -> list[str]:
        return [scenario.name for scenario in self.scenarios]

    def select(
        self,
        names: Optional[Iterable[str]] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> list[Scenario]:
        """Return scenarios whose name contains any of ``names`` and carry any of ``tags``."""

        wanted_names = list(names or [])
        wanted_tags = set(tags or [])
        selected = []
        for scenario in self.scenarios:
            if wanted_names and not any(name in scenario.name for name in wanted_names):
                continue
            if wanted_tags and not wanted_tags.intersection(scenario.tags):
                continue
            selected.append(scenario)
        return selected


def resolve_suite_path(reference: str | Path) -> Path:
    """Return the path of a suite file, falling back to the bundled suites."""

    path = Path(reference)
    if path.is_file():
        return path
    bundled = BUNDLED_SUITES_DIR / f"{path.stem}.yaml"
    if bundled.is_file():
        return bundled
    raise SuiteError(f"Suite not found: {reference}")


def bundled_suites() -> list[str]:
    return sorted(path.stem for path in BUNDLED_SUITES_DIR.glob("*.yaml"))


def load_suite(reference: str | Path) -> Suite:
    path = resolve_suite_path(reference)
    LOGGER.debug("Loading suite from %s", path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SuiteError(f"Invalid YAML in {path}: {exc}") from exc
    data.setdefault("name", path.stem)
    return parse_suite(data)


def parse_suite(data: dict[str, Any]) -> Suite:
    try:
        definition = SuiteDefinition.model_validate(data)
    except ValidationError as exc:
        raise SuiteError(f"Invalid suite definition: {exc}") from exc
    scenarios: list[Scenario] = []
    for entry in definition.scenarios:
        scenarios.extend(_expand_scenario(entry, definition.templates))
    seen: set[str] = set()
    for scenario in scenarios:
        if scenario.name in seen:
            raise SuiteError(f"Duplicate scenario name: {scenario.name}")
        seen.add(scenario.name)
    return Suite(name=definition.name, scenarios=scenarios)


def _expand_scenario(
    entry: ScenarioDefinition,
    templates: dict[str, TemplateDefinition],
) -> list[Scenario]:
    raw_steps = [*entry.background, *entry.steps]
    variants: list[tuple[str, dict[str, Any]]] = []
    if entry.cases:
        for case in entry.cases:
            params = dict(case)
            label = str(params.pop("label", "") or "")
            if not label:
                label = ", ".join(str(value) for value in params.values())
            variants.append((f"{entry.name} [{label}]", params))
    else:
        variants.append((entry.name, {}))

    scenarios = []
    for name, params in variants:
        steps = _substitute(raw_steps, params)
        steps = _expand_includes(steps, templates, context=name, depth=0)
        try:
            scenarios.append(
                Scenario(
                    name=name,
                    tags=entry.tags,
                    javascript=entry.javascript,
                    ignore_js_errors=entry.ignore_js_errors,
                    allowed_errors=entry.allowed_errors,
                    steps=steps,
                )
            )
        except ValidationError as exc:
            raise SuiteError(f"Invalid steps in scenario '{name}': {exc}") from exc
    return scenarios


def _expand_includes(
    steps: list[Any],
    templates: dict[str, TemplateDefinition],
    *,
    context: str,
    depth: int,
) -> list[Any]:
    if depth > _MAX_INCLUDE_DEPTH:
        raise SuiteError(f"Templates nested too deeply in scenario '{context}'")
    expanded: list[Any] = []
    for step in steps:
        if isinstance(step, dict) and set(step) == {"include"}:
            invocation = step["include"]
            if isinstance(invocation, str):
                invocation = {"template": invocation}
            params = dict(invocation)
            template_name = params.pop("template", None)
            template = templates.get(template_name) if template_name else None
            if template is None:
                raise SuiteError(f"Unknown template '{template_name}' in scenario '{context}'")
            missing = [name for name in template.params if name not in params]
            unknown = [name for name in params if name not in template.params]
            if unknown:
                raise SuiteError(
                    f"Unknown parameter(s) for template '{template_name}' in scenario '{context}': "
                    f"{', '.join(unknown)}"
                )
            if missing:
                raise SuiteError(
                    f"Template '{template_name}' in scenario '{context}' "
                    f"is missing parameters: {', '.join(missing)}"
                )
            body = _substitute(template.steps, params)
            expanded.extend(_expand_includes(body, templates, context=context, depth=depth + 1))
        elif isinstance(step, dict) and isinstance(step.get("within"), dict):
            within = dict(step["within"])
            within["steps"] = _expand_includes(
                within.get("steps", []), templates, context=context, depth=depth
            )
            expanded.append({"within": within})
        else:
            expanded.append(step)
    return expanded


def _substitute(value: Any, params: dict[str, Any]) -> Any:
    """Replace ``$name`` and ``${name}`` for the given parameter names only.

    Any other dollar sign, such as a regex anchor or a price, is left as is.
    """

    if not params:
        return value
    if isinstance(value, str):
        pattern = _placeholder_pattern(params)
        return pattern.sub(lambda match: str(params[match.group("braced") or match.group("bare")]), value)
    if isinstance(value, list):
        return [_substitute(item, params) for item in value]
    if isinstance(value, dict):
        return {key: _substitute(item, params) for key, item in value.items()}
    return value


def _placeholder_pattern(params: dict[str, Any]) -> re.Pattern[str]:
    names = "|".join(re.escape(name) for name in sorted(params, key=len, reverse=True))
    return re.compile(r"\$(?:\{(?P<braced>" + names + r")\}|(?P<bare>" + names + r")(?!\w))")
