# tests/conftest.py (v1)
"""Shared test fixtures for all unit and integration tests.

Provides throwaway projects on tmp_path and a recording run callback.
No external tools or network: the run callback writes output files itself.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from wireflow.logging.context import clear_context
from wireflow.pipeline.executor import RunContext, RunOutcome
from wireflow.storage import layout


# === HELPERS ===


def _make_workflow(
    project_root: Path,
    name: str,
    task: str = "Do the thing.",
    config: str = "",
) -> Path:
    """Create `.workflow/run/<name>/` with a task and a config file."""
    wf_dir = layout.workflow_dir(project_root, name)
    wf_dir.mkdir(parents=True, exist_ok=True)
    (wf_dir / "task.txt").write_text(task, encoding="utf-8")
    (wf_dir / "config").write_text(config, encoding="utf-8")
    return wf_dir


def _bump_mtime(path: Path, seconds: float = 5.0) -> None:
    """Move a file's mtime forward so edits are visible on coarse filesystems."""
    st = path.stat()
    delta = int(seconds * 1_000_000_000)
    os.utime(path, ns=(st.st_atime_ns + delta, st.st_mtime_ns + delta))


class RecordingRunner:
    """Run callback that writes the task text (plus dependency outputs) as output."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.contexts: list[RunContext] = []
        self._fail = fail or set()

    async def __call__(self, ctx: RunContext) -> RunOutcome:
        self.calls.append(ctx.name)
        self.contexts.append(ctx)
        if ctx.name in self._fail:
            return RunOutcome(success=False, error=f"{ctx.name} exploded")

        parts = [ctx.node.task_path.read_text(encoding="utf-8") if ctx.node.task_path else ""]
        for dep, path in sorted(ctx.dependency_outputs.items()):
            parts.append(f"[{dep}] {path.read_text(encoding='utf-8')}")
        ctx.output_path.parent.mkdir(parents=True, exist_ok=True)
        ctx.output_path.write_text("\n".join(parts), encoding="utf-8")
        return RunOutcome(success=True, output_path=ctx.output_path)


# === FIXTURES ===


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project with the standard `.workflow/` directories."""
    root = tmp_path / "project"
    root.mkdir()
    layout.ensure_project_directories(root)
    return root


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def make_workflow():
    """Factory: make_workflow(project_root, name, task=..., config=...)."""
    return _make_workflow


@pytest.fixture
def bump_mtime():
    return _bump_mtime


@pytest.fixture
def failing_runner():
    """Factory: failing_runner({"name", ...}) fails the named workflows."""
    return lambda names: RecordingRunner(fail=set(names))
