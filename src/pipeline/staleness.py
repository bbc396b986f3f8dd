# src/pipeline/staleness.py (v1)
"""Decide whether a workflow's previous result is still valid.

A workflow is stale when it has no usable execution record, when its
recorded output is gone, or when the execution hash computed from its
current inputs differs from the recorded one. The hash covers:

  1. the config values that affect generation, sorted by key
  2. the task file content
  3. every tracked context/input file as (path, content hash)
  4. the recorded output hash of every dependency

Fast path: when config, task and tracked-file metadata (mtime, size) all
match the record and every dependency still has the output hash recorded
at run time, the stored digest is trusted without reading file bytes.
Anything else falls through to a full recompute.
"""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field

from wireflow.config.workflow_config import ResolvedConfig
from wireflow.core.hashing import DEFAULT_DIGEST_LENGTH, compute_execution_hash, hash_file
from wireflow.pipeline.workflow import WorkflowNode
from wireflow.storage import layout
from wireflow.storage.execution_log import ExecutionLog
from wireflow.storage.models import DependencyRef, ExecutionRecord, TrackedFile

logger = logging.getLogger(__name__)


class StalenessReason(str, Enum):
    FRESH = "fresh"
    NOT_RUN = "not run"
    OUTPUT_MISSING = "output missing"
    CONFIG_CHANGED = "config changed"
    TASK_CHANGED = "task changed"
    CONTEXT_CHANGED = "context changed"
    INPUT_CHANGED = "input changed"
    DEPENDENCY_CHANGED = "dependency changed"
    DEPENDENCY_NOT_RUN = "dependency not run"
    HASH_MISMATCH = "hash mismatch"
    FORCED = "forced"


class ExecutionFingerprint(BaseModel):
    """Everything that went into an execution hash."""

    execution_hash: str
    task: TrackedFile | None = None
    context: list[TrackedFile] = Field(default_factory=list)
    input: list[TrackedFile] = Field(default_factory=list)
    depends_on: list[DependencyRef] = Field(default_factory=list)
    config: dict[str, Any] = Field(default_factory=dict)
    config_sources: dict[str, str] = Field(default_factory=dict)


@dataclass
class StalenessReport:
    """Outcome of a staleness check."""

    stale: bool
    reason: StalenessReason
    record: ExecutionRecord | None = None
    fingerprint: ExecutionFingerprint | None = None
    fast_path: bool = False


class StalenessDetector:
    """Staleness checks for the workflows of one project."""

    def __init__(
        self,
        project_root: Path,
        execution_log: ExecutionLog | None = None,
        digest_length: int = DEFAULT_DIGEST_LENGTH,
    ) -> None:
        self._root = Path(project_root)
        self._log = execution_log or ExecutionLog(self._root, digest_length)
        self._digest_length = digest_length

    # --- Tracked inputs ---

    def tracked_paths(self, resolved: ResolvedConfig) -> tuple[list[Path], list[Path]]:
        """Context and input files that currently exist, sorted by path."""
        cfg = resolved.config
        return (
            self._collect(cfg.context_files, cfg.context_pattern),
            self._collect(cfg.input_files, cfg.input_pattern),
        )

    def _collect(self, files: list[str], pattern: str) -> list[Path]:
        found: dict[str, Path] = {}
        for entry in files:
            path = (self._root / entry).resolve()
            if path.is_file():
                found[layout.relative_to_project(self._root, path)] = path
            else:
                logger.debug("Tracked file not found, skipping: %s", entry)
        for pat in pattern.split():
            for match in glob.glob(pat, root_dir=str(self._root), recursive=True):
                path = (self._root / match).resolve()
                if path.is_file():
                    found[layout.relative_to_project(self._root, path)] = path
        return [found[key] for key in sorted(found)]

    def _track(self, path: Path, with_hash: bool = True) -> TrackedFile:
        st = path.stat()
        return TrackedFile(
            path=layout.relative_to_project(self._root, path),
            hash=hash_file(path, self._digest_length) if with_hash else "",
            mtime=st.st_mtime,
            size=st.st_size,
        )

    def dependency_output_hash(
        self, name: str, overrides: Mapping[str, str] | None = None
    ) -> str:
        """Last-known output hash of a dependency ("" if it never ran)."""
        if overrides and name in overrides:
            return overrides[name]
        record = self._log.read(name)
        return record.output.hash if record is not None else ""

    def _dependency_ref(
        self, name: str, overrides: Mapping[str, str] | None
    ) -> DependencyRef:
        record = self._log.read(name)
        if overrides and name in overrides:
            digest = overrides[name]
        else:
            digest = record.output.hash if record is not None else ""
        return DependencyRef(
            workflow=name,
            output_hash=digest,
            output_path=record.output.path if record is not None else "",
        )

    # --- Hashing ---

    def compute_fingerprint(
        self,
        node: WorkflowNode,
        resolved: ResolvedConfig,
        dependency_hashes: Mapping[str, str] | None = None,
    ) -> ExecutionFingerprint:
        """Hash every input of `node` under the given configuration."""
        context_paths, input_paths = self.tracked_paths(resolved)
        context = [self._track(p) for p in context_paths]
        inputs = [self._track(p) for p in input_paths]
        task = (
            self._track(node.task_path)
            if node.task_path is not None and node.task_path.is_file()
            else None
        )
        depends_on = [self._dependency_ref(dep, dependency_hashes) for dep in node.depends_on]
        config = resolved.config.hashed_snapshot()

        execution_hash = compute_execution_hash(
            config=config,
            task_hash=task.hash if task is not None else "",
            files=[(f.path, f.hash) for f in context + inputs],
            dependencies=[(d.workflow, d.output_hash) for d in depends_on],
            length=self._digest_length,
        )
        return ExecutionFingerprint(
            execution_hash=execution_hash,
            task=task,
            context=context,
            input=inputs,
            depends_on=depends_on,
            config=config,
            config_sources={k: resolved.sources.get(k, "builtin") for k in config},
        )

    def compute_execution_hash(
        self,
        node: WorkflowNode,
        resolved: ResolvedConfig,
        dependency_hashes: Mapping[str, str] | None = None,
    ) -> str:
        return self.compute_fingerprint(node, resolved, dependency_hashes).execution_hash

    # --- Staleness ---

    def check(
        self,
        node: WorkflowNode,
        resolved: ResolvedConfig,
        dependency_hashes: Mapping[str, str] | None = None,
    ) -> StalenessReport:
        """Full staleness decision for one workflow."""
        record = self._log.read(node.name)
        if record is None:
            return StalenessReport(stale=True, reason=StalenessReason.NOT_RUN)

        if not self._log.resolve_output(record).is_file():
            return StalenessReport(
                stale=True, reason=StalenessReason.OUTPUT_MISSING, record=record
            )

        current_deps = {
            dep: self.dependency_output_hash(dep, dependency_hashes)
            for dep in node.depends_on
        }
        for dep, digest in current_deps.items():
            if not digest:
                return StalenessReport(
                    stale=True, reason=StalenessReason.DEPENDENCY_NOT_RUN, record=record
                )

        if self._fast_path_fresh(node, resolved, record, current_deps):
            return StalenessReport(
                stale=False, reason=StalenessReason.FRESH, record=record, fast_path=True
            )

        fingerprint = self.compute_fingerprint(node, resolved, current_deps)
        if fingerprint.execution_hash == record.execution_hash:
            return StalenessReport(
                stale=False,
                reason=StalenessReason.FRESH,
                record=record,
                fingerprint=fingerprint,
            )

        reason = _diagnose(record, fingerprint)
        logger.debug(
            "'%s' is stale (%s): %s != %s",
            node.name,
            reason.value,
            fingerprint.execution_hash,
            record.execution_hash,
        )
        return StalenessReport(
            stale=True, reason=reason, record=record, fingerprint=fingerprint
        )

    def is_stale(
        self,
        node: WorkflowNode,
        resolved: ResolvedConfig,
        dependency_hashes: Mapping[str, str] | None = None,
    ) -> tuple[bool, StalenessReason]:
        report = self.check(node, resolved, dependency_hashes)
        return report.stale, report.reason

    def _fast_path_fresh(
        self,
        node: WorkflowNode,
        resolved: ResolvedConfig,
        record: ExecutionRecord,
        current_deps: Mapping[str, str],
    ) -> bool:
        if record.config != resolved.config.hashed_snapshot():
            return False

        executed_at = record.executed_at.timestamp()
        if node.task_path is None or not node.task_path.is_file():
            if record.task is not None:
                return False
        else:
            task_mtime = node.task_path.stat().st_mtime
            if (
                record.task is None
                or record.task.mtime != task_mtime
                or task_mtime > executed_at
            ):
                return False

        context_paths, input_paths = self.tracked_paths(resolved)
        if not self._unchanged_on_disk(context_paths, record.context):
            return False
        if not self._unchanged_on_disk(input_paths, record.input):
            return False

        if [d.workflow for d in record.depends_on] != list(node.depends_on):
            return False
        return all(
            d.output_hash == current_deps.get(d.workflow) for d in record.depends_on
        )

    def _unchanged_on_disk(self, paths: list[Path], recorded: list[TrackedFile]) -> bool:
        if len(paths) != len(recorded):
            return False
        for path, entry in zip(paths, recorded):
            current = self._track(path, with_hash=False)
            if current.path != entry.path:
                return False
            if current.mtime != entry.mtime or current.size != entry.size:
                return False
        return True


def _diagnose(record: ExecutionRecord, fingerprint: ExecutionFingerprint) -> StalenessReason:
    if record.config != fingerprint.config:
        return StalenessReason.CONFIG_CHANGED
    if _file_hash(record.task) != _file_hash(fingerprint.task):
        return StalenessReason.TASK_CHANGED
    if _pairs(record.context) != _pairs(fingerprint.context):
        return StalenessReason.CONTEXT_CHANGED
    if _pairs(record.input) != _pairs(fingerprint.input):
        return StalenessReason.INPUT_CHANGED
    recorded_deps = [(d.workflow, d.output_hash) for d in record.depends_on]
    current_deps = [(d.workflow, d.output_hash) for d in fingerprint.depends_on]
    if recorded_deps != current_deps:
        return StalenessReason.DEPENDENCY_CHANGED
    return StalenessReason.HASH_MISMATCH


def _file_hash(entry: TrackedFile | None) -> str:
    return entry.hash if entry is not None else ""


def _pairs(entries: list[TrackedFile]) -> list[tuple[str, str]]:
    return [(e.path, e.hash) for e in entries]
