# src/config/workflow_config.py (v1)
"""Workflow configuration: record, file parser, cascade and isolation stack.

Config files keep the familiar shell-like assignment syntax::

    MODEL="claude-opus-4-5"
    TEMPERATURE=0.4
    DEPENDS_ON=(outline research)
    CONTEXT_FILES+=(notes/extra.md)

They are parsed, never executed. Each tier (builtin, global, project,
workflow, cli) yields a plain dict of overrides; layering them produces a
frozen WorkflowConfig plus the tier each key came from.
"""

from __future__ import annotations

import logging
import re
import shlex
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Literal, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from wireflow.config.settings import ConfigurationError
from wireflow.storage import layout

logger = logging.getLogger(__name__)

# Keys that belong to a single workflow and are never inherited.
WORKFLOW_ONLY_KEYS: frozenset[str] = frozenset(
    {"depends_on", "input_pattern", "input_files", "export_file"}
)

# Keys whose values change what the model produces.
HASHED_KEYS: tuple[str, ...] = (
    "profile",
    "model",
    "temperature",
    "max_tokens",
    "enable_thinking",
    "thinking_budget",
    "effort",
    "enable_citations",
    "output_format",
    "system_prompts",
)

_ASSIGNMENT_RE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)(\+?=)(.*)$")


class WorkflowConfig(BaseModel):
    """Resolved configuration for one workflow execution."""

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    # === Model selection ===
    profile: Literal["fast", "balanced", "deep"] = "balanced"
    model_fast: str = "claude-haiku-4-5"
    model_balanced: str = "claude-sonnet-4-5"
    model_deep: str = "claude-opus-4-5"
    model: str = ""

    # === Generation parameters ===
    enable_thinking: bool = False
    thinking_budget: int = 10000
    effort: Literal["low", "medium", "high"] = "high"
    temperature: float = 1.0
    max_tokens: int = 16000
    enable_citations: bool = False
    output_format: str = "md"
    system_prompts: list[str] = ["base"]

    # === Project-level context ===
    context_pattern: str = ""
    context_files: list[str] = []

    # === Workflow-only ===
    depends_on: list[str] = []
    input_pattern: str = ""
    input_files: list[str] = []
    export_file: str = ""

    @field_validator(
        "system_prompts", "context_files", "depends_on", "input_files", mode="before"
    )
    @classmethod
    def split_scalar_lists(cls, v: Any) -> Any:  # noqa: N805
        """Accept `KEY=a b` as well as `KEY=(a b)` for list keys."""
        if isinstance(v, str):
            return v.split()
        return v

    @property
    def resolved_model(self) -> str:
        """Explicit MODEL wins; otherwise the profile picks a tier."""
        if self.model:
            return self.model
        return {
            "fast": self.model_fast,
            "balanced": self.model_balanced,
            "deep": self.model_deep,
        }[self.profile]

    def hashed_snapshot(self) -> dict[str, Any]:
        """Config values that participate in the execution hash."""
        snapshot = {key: getattr(self, key) for key in HASHED_KEYS}
        snapshot["model"] = self.resolved_model
        snapshot["system_prompts"] = list(self.system_prompts)
        return snapshot


@dataclass(frozen=True)
class ListAppend:
    """Value of a `KEY+=(...)` assignment: extend the inherited list."""

    items: tuple[str, ...]


# =====================================================================
#  PARSING
# =====================================================================


def parse_config_text(text: str, source: str = "<string>") -> dict[str, Any]:
    """Parse shell-like config text into a dict of overrides.

    Keys are lower-cased field names of WorkflowConfig. Unknown keys and
    malformed lines are logged and skipped.
    """
    overrides: dict[str, Any] = {}
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        lineno = i + 1
        line = lines[i].strip()
        i += 1
        if not line or line.startswith("#"):
            continue

        match = _ASSIGNMENT_RE.match(line)
        if not match:
            logger.warning("%s:%d: ignoring unparsable line: %s", source, lineno, line)
            continue
        raw_key, operator, raw_value = match.groups()
        raw_value = raw_value.strip()

        # Arrays may span several lines until the closing parenthesis.
        if raw_value.startswith("("):
            while not _closes_array(raw_value) and i < len(lines):
                raw_value += "\n" + lines[i]
                i += 1
            if not _closes_array(raw_value):
                logger.warning("%s:%d: unterminated array for %s", source, lineno, raw_key)
                continue

        try:
            value = _parse_value(raw_value)
        except ValueError as exc:
            logger.warning("%s:%d: cannot parse value of %s: %s", source, lineno, raw_key, exc)
            continue

        key = raw_key.lower()
        if key not in WorkflowConfig.model_fields:
            logger.warning("%s:%d: unknown config key %s", source, lineno, raw_key)
            continue

        if operator == "+=":
            items = value if isinstance(value, list) else value.split()
            previous = overrides.get(key)
            if isinstance(previous, list):
                overrides[key] = previous + items
            else:
                overrides[key] = ListAppend(tuple(items))
        else:
            overrides[key] = value

    return overrides


def _closes_array(raw_value: str) -> bool:
    body = raw_value.split("#", 1)[0] if "\n" not in raw_value else raw_value
    return body.rstrip().endswith(")")


def _parse_value(raw_value: str) -> str | list[str]:
    if raw_value.startswith("("):
        inner = raw_value.strip()[1:]
        inner = inner[: inner.rfind(")")]
        return shlex.split(inner, comments=True)
    return " ".join(shlex.split(raw_value, comments=True))


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file; a missing file means no overrides."""
    if not path.is_file():
        return {}
    return parse_config_text(path.read_text(encoding="utf-8"), source=str(path))


def extract_dependencies(path: Path) -> list[str]:
    """Return the DEPENDS_ON list declared in a workflow config file.

    An absent or empty declaration means the workflow is a leaf.
    """
    value = load_config_file(path).get("depends_on")
    if value is None:
        return []
    if isinstance(value, ListAppend):
        return list(value.items)
    if isinstance(value, str):
        return value.split()
    return list(value)


# =====================================================================
#  CASCADE
# =====================================================================


@dataclass(frozen=True)
class ResolvedConfig:
    """A WorkflowConfig plus the tier each key was last set by."""

    config: WorkflowConfig
    sources: dict[str, str] = field(default_factory=dict)


def apply_overrides(
    base: ResolvedConfig,
    overrides: Mapping[str, Any],
    source: str,
) -> ResolvedConfig:
    """Layer one tier of overrides on top of a resolved config."""
    if not overrides:
        return base

    data = base.config.model_dump()
    sources = dict(base.sources)
    for key, value in overrides.items():
        current = data.get(key)
        if isinstance(value, ListAppend):
            data[key] = list(current or []) + list(value.items)
        elif value == "" and not isinstance(current, list):
            # Empty scalar inherits from the previous tier.
            continue
        else:
            data[key] = value
        sources[key] = source

    try:
        config = WorkflowConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {source} configuration: {exc}") from exc
    return ResolvedConfig(config=config, sources=sources)


def builtin_config() -> ResolvedConfig:
    """Builtin defaults, every key attributed to the builtin tier."""
    return ResolvedConfig(
        config=WorkflowConfig(),
        sources={key: "builtin" for key in WorkflowConfig.model_fields},
    )


def load_baseline(
    project_root: Path,
    global_config_file: Path | None = None,
) -> ResolvedConfig:
    """Resolve builtin -> global -> project into the project baseline."""
    resolved = builtin_config()
    if global_config_file is not None:
        resolved = apply_overrides(resolved, load_config_file(global_config_file), "global")
    resolved = apply_overrides(
        resolved, load_config_file(layout.project_config_path(project_root)), "project"
    )
    return resolved


# =====================================================================
#  ISOLATION
# =====================================================================


class ConfigState(Enum):
    BASELINE = "baseline"
    NODE_ACTIVE = "node_active"


class ConfigStack:
    """Value-passed configuration with push/apply/pop semantics.

    The baseline never carries workflow-only keys. Applying a workflow's
    overrides yields a fresh ResolvedConfig; leaving the context returns
    to the baseline, so no workflow can observe another's leftovers.
    """

    def __init__(self, baseline: ResolvedConfig) -> None:
        self._baseline = _strip_workflow_keys(baseline)
        self._active: ResolvedConfig | None = None

    @property
    def state(self) -> ConfigState:
        return ConfigState.BASELINE if self._active is None else ConfigState.NODE_ACTIVE

    @property
    def baseline(self) -> ResolvedConfig:
        return self._baseline

    @property
    def current(self) -> ResolvedConfig:
        return self._active if self._active is not None else self._baseline

    def push(self, layers: Sequence[tuple[str, Mapping[str, Any]]]) -> ResolvedConfig:
        """Apply (source, overrides) layers on top of the baseline."""
        if self._active is not None:
            raise RuntimeError("Configuration already has workflow overrides applied")
        resolved = self._baseline
        for source, overrides in layers:
            resolved = apply_overrides(resolved, overrides, source)
        self._active = resolved
        return resolved

    def pop(self) -> ResolvedConfig:
        """Discard workflow overrides and return to the baseline."""
        self._active = None
        return self._baseline

    @contextmanager
    def applied(
        self, *layers: tuple[str, Mapping[str, Any]]
    ) -> Iterator[ResolvedConfig]:
        resolved = self.push(layers)
        try:
            yield resolved
        finally:
            self.pop()


def _strip_workflow_keys(resolved: ResolvedConfig) -> ResolvedConfig:
    defaults = WorkflowConfig()
    reset = {key: getattr(defaults, key) for key in WORKFLOW_ONLY_KEYS}
    sources = dict(resolved.sources)
    for key in WORKFLOW_ONLY_KEYS:
        sources[key] = "builtin"
    return ResolvedConfig(
        config=resolved.config.model_copy(update=reset),
        sources=sources,
    )
