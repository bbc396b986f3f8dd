# src/pipeline/status.py (v1)
"""Per-workflow status for display: pending, fresh or stale (with reason)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

from wireflow.config.settings import Settings
from wireflow.config.workflow_config import ConfigStack, load_baseline, load_config_file
from wireflow.core.hashing import DEFAULT_DIGEST_LENGTH
from wireflow.pipeline.graph import MissingDependency
from wireflow.pipeline.staleness import StalenessDetector, StalenessReason
from wireflow.pipeline.workflow import list_workflows, load_workflow_node
from wireflow.storage.execution_log import ExecutionLog


@dataclass
class WorkflowStatus:
    name: str
    reason: StalenessReason
    executed_at: datetime | None = None

    @property
    def state(self) -> str:
        if self.reason is StalenessReason.NOT_RUN:
            return "pending"
        if self.reason is StalenessReason.FRESH:
            return "fresh"
        return "stale"

    @property
    def label(self) -> str:
        if self.state == "stale":
            return f"[stale: {self.reason.value}]"
        return f"[{self.state}]"

    def render(self) -> str:
        when = (
            self.executed_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
            if self.executed_at is not None
            else "(not run)"
        )
        return f"  {self.name:24s} {self.label:32s} {when}"


def collect_status(
    project_root: Path,
    settings: Settings | None = None,
    names: Iterable[str] | None = None,
) -> list[WorkflowStatus]:
    """Check every requested workflow (all by default) against its record.

    Each workflow is judged against the recorded outputs of its
    dependencies, as a run with `--no-auto-deps` would see them.

    Raises:
        MissingDependency: If a requested workflow does not exist.
    """
    digest_length = settings.digest_length if settings is not None else DEFAULT_DIGEST_LENGTH
    log = ExecutionLog(project_root, digest_length)
    detector = StalenessDetector(project_root, log, digest_length)
    stack = ConfigStack(
        load_baseline(
            project_root,
            settings.global_config_file if settings is not None else None,
        )
    )

    statuses: list[WorkflowStatus] = []
    for name in names if names is not None else list_workflows(project_root):
        node = load_workflow_node(project_root, name)
        if node is None:
            raise MissingDependency(name)
        with stack.applied(("workflow", load_config_file(node.config_path))) as resolved:
            report = detector.check(node, resolved)
        statuses.append(
            WorkflowStatus(
                name=name,
                reason=report.reason,
                executed_at=report.record.executed_at if report.record is not None else None,
            )
        )
    return statuses
