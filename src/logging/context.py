# src/logging/context.py (v1)
"""Contextual logging support: attach run_id, workflow and step to records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set once per pipeline invocation.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
# Set per workflow while it is being checked or executed.
_workflow: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "workflow", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    run_id: str | None = None
    workflow: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields, for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        run_id=_run_id.get(),
        workflow=_workflow.get(),
        step=_step.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set the invocation-level context."""
    _run_id.set(run_id)


def set_workflow_context(workflow: str | None, step: str | None = None) -> None:
    """Set the workflow-level context (called per workflow)."""
    _workflow.set(workflow)
    _step.set(step)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _workflow.set(None)
    _step.set(None)
