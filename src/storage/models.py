# src/storage/models.py (v1)
"""Storage domain models: ExecutionRecord and its parts.

The record is the persisted proof of a workflow's last successful run and
is serialised verbatim to `.workflow/run/<name>/execution.json`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

EXECUTION_RECORD_VERSION = 1


class TrackedFile(BaseModel):
    """A file whose content participates in the execution hash."""

    path: str
    hash: str
    mtime: float | None = None
    size: int | None = None


class DependencyRef(BaseModel):
    """A dependency and the output hash it had when this run was made."""

    workflow: str
    output_hash: str = ""
    output_path: str = ""


class OutputRef(BaseModel):
    """The artifact produced by a run."""

    path: str
    size: int = 0
    hash: str = ""


class ExecutionRecord(BaseModel):
    """Full record of a successful run, written to execution.json."""

    version: int = EXECUTION_RECORD_VERSION
    workflow: str
    executed_at: datetime
    execution_hash: str
    task: TrackedFile | None = None
    context: list[TrackedFile] = Field(default_factory=list)
    input: list[TrackedFile] = Field(default_factory=list)
    depends_on: list[DependencyRef] = Field(default_factory=list)
    output: OutputRef
    config: dict[str, Any] = Field(default_factory=dict)
    config_sources: dict[str, str] = Field(default_factory=dict)
