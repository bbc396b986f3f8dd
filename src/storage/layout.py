# src/storage/layout.py (v1)
"""Project directory structure definition.

Every path the pipeline reads or writes is derived here from the project
root (the directory that contains `.workflow/`):

    .workflow/config                                  project config
    .workflow/run/<name>/config                       workflow overrides
    .workflow/run/<name>/task.*                       task definition
    .workflow/run/<name>/execution.json               execution record
    .workflow/output/<name>.<ext>                     latest output
    .workflow/cache/conversions/<kind>/<id>.<ext>     cached conversion
    .workflow/cache/conversions/<kind>/<id>.<ext>.meta
"""

from __future__ import annotations

from pathlib import Path


WORKFLOW_DIR = ".workflow"
RUN_DIR = "run"
OUTPUT_DIR = "output"
CACHE_DIR = "cache"
CONVERSIONS_DIR = "conversions"

CONFIG_FILE = "config"
EXECUTION_LOG_FILE = "execution.json"
TASK_STEM = "task"
META_SUFFIX = ".meta"


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` until a directory holding `.workflow/` is found.

    The search stops at the user's home directory and the filesystem root.
    """
    current = (start or Path.cwd()).resolve()
    home = Path.home().resolve()
    while True:
        if (current / WORKFLOW_DIR).is_dir():
            return current
        if current == home or current.parent == current:
            return None
        current = current.parent


def workflow_root(project_root: Path) -> Path:
    return project_root / WORKFLOW_DIR


def project_config_path(project_root: Path) -> Path:
    return workflow_root(project_root) / CONFIG_FILE


def run_dir(project_root: Path) -> Path:
    return workflow_root(project_root) / RUN_DIR


def workflow_dir(project_root: Path, name: str) -> Path:
    """Return the directory of a single workflow."""
    return run_dir(project_root) / name


def workflow_config_path(project_root: Path, name: str) -> Path:
    return workflow_dir(project_root, name) / CONFIG_FILE


def execution_log_path(project_root: Path, name: str) -> Path:
    return workflow_dir(project_root, name) / EXECUTION_LOG_FILE


def find_task_file(project_root: Path, name: str) -> Path | None:
    """Return the workflow's task file (`task.*`), if any.

    `task.txt` is preferred; otherwise the first match in name order.
    """
    wf_dir = workflow_dir(project_root, name)
    preferred = wf_dir / f"{TASK_STEM}.txt"
    if preferred.is_file():
        return preferred
    candidates = sorted(p for p in wf_dir.glob(f"{TASK_STEM}.*") if p.is_file())
    return candidates[0] if candidates else None


def output_dir(project_root: Path) -> Path:
    return workflow_root(project_root) / OUTPUT_DIR


def output_path(project_root: Path, name: str, extension: str) -> Path:
    """Canonical location of a workflow's latest output artifact."""
    return output_dir(project_root) / f"{name}.{extension.lstrip('.')}"


def conversions_dir(project_root: Path) -> Path:
    return workflow_root(project_root) / CACHE_DIR / CONVERSIONS_DIR


def metadata_path(artifact: Path) -> Path:
    """Sidecar describing a cached artifact."""
    return artifact.with_name(artifact.name + META_SUFFIX)


def relative_to_project(project_root: Path, path: Path) -> str:
    """Project-relative POSIX path, or the absolute path if outside."""
    try:
        return path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return path.resolve().as_posix()


def ensure_project_directories(project_root: Path) -> None:
    """Create the standard directories of a project."""
    for dir_fn in [run_dir, output_dir, conversions_dir]:
        dir_fn(project_root).mkdir(parents=True, exist_ok=True)
