# src/pipeline/workflow.py (v1)
"""Workflow nodes: the named units of work under `.workflow/run/`."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wireflow.config.workflow_config import extract_dependencies
from wireflow.storage import layout


@dataclass(frozen=True)
class WorkflowNode:
    """A workflow as seen by the pipeline (read-only).

    Attributes:
        name: Unique name within the project.
        depends_on: Declared dependency names, in declaration order.
        task_path: Task definition file, or None if not created yet.
        config_path: The workflow's own config overrides file.
    """

    name: str
    config_path: Path
    task_path: Path | None = None
    depends_on: tuple[str, ...] = field(default_factory=tuple)


def load_workflow_node(project_root: Path, name: str) -> WorkflowNode | None:
    """Load a workflow by name; None if its directory does not exist."""
    if not name or "/" in name or name.startswith("."):
        return None
    wf_dir = layout.workflow_dir(project_root, name)
    if not wf_dir.is_dir():
        return None
    config_path = layout.workflow_config_path(project_root, name)
    return WorkflowNode(
        name=name,
        config_path=config_path,
        task_path=layout.find_task_file(project_root, name),
        depends_on=tuple(extract_dependencies(config_path)),
    )


def list_workflows(project_root: Path) -> list[str]:
    """Names of all workflows in a project, sorted."""
    run = layout.run_dir(project_root)
    if not run.is_dir():
        return []
    return sorted(
        entry.name
        for entry in run.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )
