# src/storage/execution_log.py (v1)
"""Persist and read the last-successful-run record of each workflow.

Writes are atomic (temp file in the same directory, then rename), so a
crash mid-write never leaves a record behind that points at a missing or
partial output. Reads never raise: a missing, unparsable or
wrong-version record is reported as absent and the workflow re-runs.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from wireflow.core.hashing import DEFAULT_DIGEST_LENGTH, hash_file
from wireflow.storage import layout
from wireflow.storage.atomic import atomic_write_text
from wireflow.storage.models import EXECUTION_RECORD_VERSION, ExecutionRecord, OutputRef

if TYPE_CHECKING:
    from wireflow.pipeline.staleness import ExecutionFingerprint

logger = logging.getLogger(__name__)


class ExecutionLogError(Exception):
    """Raised when a record cannot be written."""


class ExecutionLog:
    """Reads and writes `execution.json` for the workflows of one project."""

    def __init__(
        self, project_root: Path, digest_length: int = DEFAULT_DIGEST_LENGTH
    ) -> None:
        self._root = Path(project_root)
        self._digest_length = digest_length

    @property
    def project_root(self) -> Path:
        return self._root

    def path_for(self, workflow: str) -> Path:
        return layout.execution_log_path(self._root, workflow)

    def read(self, workflow: str) -> ExecutionRecord | None:
        """Return the stored record, or None when absent or unusable."""
        path = self.path_for(workflow)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable execution log %s: %s", path, exc)
            return None

        if not isinstance(data, dict) or data.get("version") != EXECUTION_RECORD_VERSION:
            logger.warning(
                "Ignoring execution log %s with unsupported version %r",
                path,
                data.get("version") if isinstance(data, dict) else None,
            )
            return None

        try:
            return ExecutionRecord.model_validate(data)
        except ValidationError as exc:
            logger.warning("Ignoring corrupt execution log %s: %s", path, exc)
            return None

    def write(
        self,
        workflow: str,
        fingerprint: ExecutionFingerprint,
        output_path: Path,
        executed_at: datetime | None = None,
    ) -> ExecutionRecord:
        """Record a successful run, replacing any previous record.

        Args:
            workflow: Workflow name.
            fingerprint: Hash and tracked inputs computed before the run.
            output_path: Artifact produced by the run; must exist.
            executed_at: Override of the execution timestamp (tests).

        Raises:
            ExecutionLogError: If the output artifact does not exist.
        """
        output_path = Path(output_path)
        if not output_path.is_file():
            raise ExecutionLogError(
                f"Refusing to record '{workflow}': output {output_path} does not exist"
            )

        record = ExecutionRecord(
            workflow=workflow,
            executed_at=executed_at or datetime.now(timezone.utc),
            execution_hash=fingerprint.execution_hash,
            task=fingerprint.task,
            context=fingerprint.context,
            input=fingerprint.input,
            depends_on=fingerprint.depends_on,
            output=OutputRef(
                path=layout.relative_to_project(self._root, output_path),
                size=output_path.stat().st_size,
                hash=hash_file(output_path, self._digest_length),
            ),
            config=fingerprint.config,
            config_sources=fingerprint.config_sources,
        )

        atomic_write_text(self.path_for(workflow), record.model_dump_json(indent=2))
        logger.debug("Wrote execution log for '%s' (%s)", workflow, record.execution_hash)
        return record

    def resolve_output(self, record: ExecutionRecord) -> Path:
        """Absolute path of a record's output artifact."""
        path = Path(record.output.path)
        return path if path.is_absolute() else self._root / path

