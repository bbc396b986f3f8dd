# src/pipeline/executor.py (v1)
"""Pipeline executor: run a workflow and its dependencies in order.

For every workflow in the resolved order:

  1. configuration returns to the project baseline
  2. the workflow's own overrides (and, for the requested workflow, CLI
     overrides) are applied on top
  3. staleness is checked; fresh workflows are skipped
  4. the external run callback is awaited
  5. on success the execution record is written

Execution is sequential. A workflow's output hash, fresh or just
recorded, is passed on to its dependents' hash computation.

Failures: with `fail_fast` (default) the first failure aborts everything
that remains; otherwise only workflows that transitively depend on the
failed one are aborted. Cancellation propagates immediately and the
in-flight workflow gets no execution record.
"""

from __future__ import annotations

import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Union

from wireflow.cache.conversion_cache import ConversionCache
from wireflow.config.settings import Settings
from wireflow.config.workflow_config import (
    ConfigStack,
    ResolvedConfig,
    WorkflowConfig,
    load_baseline,
    load_config_file,
)
from wireflow.conversion.converter_factory import converter_for
from wireflow.core.hashing import DEFAULT_DIGEST_LENGTH
from wireflow.logging.context import set_run_context, set_workflow_context
from wireflow.pipeline.graph import DependencyGraphResolver, build_digraph, dependents_of
from wireflow.pipeline.staleness import StalenessDetector, StalenessReason
from wireflow.pipeline.workflow import WorkflowNode
from wireflow.storage import layout
from wireflow.storage.execution_log import ExecutionLog, ExecutionLogError

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Everything the external run callback needs for one workflow."""

    node: WorkflowNode
    resolved: ResolvedConfig
    project_root: Path
    output_path: Path
    dependency_outputs: dict[str, Path] = field(default_factory=dict)
    context_files: list[Path] = field(default_factory=list)
    input_files: list[Path] = field(default_factory=list)
    cache: ConversionCache | None = None
    settings: Settings | None = None

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def config(self) -> WorkflowConfig:
        return self.resolved.config

    async def prepare(self, path: Path) -> Path | None:
        """Path to feed the model for `path`, converting through the cache.

        Files that need no conversion are returned unchanged. Returns None
        when a needed conversion could not be done; the caller skips it.
        """
        converter = converter_for(path, self.settings)
        if converter is None or self.cache is None:
            return path
        return await self.cache.get_or_convert(path, converter)


@dataclass
class RunOutcome:
    """What the external run callback reports back."""

    success: bool
    output_path: Path | None = None
    error: str | None = None


RunCallback = Callable[[RunContext], Union[Awaitable[RunOutcome], RunOutcome]]


@dataclass
class PipelineResult:
    """Result of one pipeline invocation."""

    root: str
    order: list[str] = field(default_factory=list)
    executed: list[str] = field(default_factory=list)
    fresh: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    aborted: list[str] = field(default_factory=list)
    reasons: dict[str, StalenessReason] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.failed and not self.aborted


class PipelineExecutor:
    """Execute a workflow and, by default, its stale dependencies.

    Args:
        project_root: Directory containing `.workflow/`.
        runner: External callback producing a workflow's output.
        settings: Process settings (global config location, hashing).
        force: Re-run the requested workflow even when fresh.
        auto_deps: Execute stale dependencies first. When False only the
            requested workflow runs, against its dependencies' last outputs.
        fail_fast: Abort everything remaining on the first failure.
        cli_overrides: Config overrides applied to the requested workflow.
        cache: Conversion cache handed to the run callback.
    """

    def __init__(
        self,
        project_root: Path,
        runner: RunCallback,
        settings: Settings | None = None,
        *,
        force: bool = False,
        auto_deps: bool = True,
        fail_fast: bool = True,
        cli_overrides: Mapping[str, Any] | None = None,
        cache: ConversionCache | None = None,
    ) -> None:
        self._root = Path(project_root)
        self._runner = runner
        self._settings = settings
        self._force = force
        self._auto_deps = auto_deps
        self._fail_fast = fail_fast
        self._cli_overrides = dict(cli_overrides or {})

        digest_length = settings.digest_length if settings is not None else DEFAULT_DIGEST_LENGTH
        self._log = ExecutionLog(self._root, digest_length)
        self._detector = StalenessDetector(self._root, self._log, digest_length)
        self._resolver = DependencyGraphResolver(self._root)
        self._cache = cache or ConversionCache.for_project(self._root, settings)

    @property
    def resolver(self) -> DependencyGraphResolver:
        return self._resolver

    @property
    def detector(self) -> StalenessDetector:
        return self._detector

    def baseline(self) -> ResolvedConfig:
        global_file = self._settings.global_config_file if self._settings is not None else None
        return load_baseline(self._root, global_file)

    def layers_for(self, node: WorkflowNode, root: str) -> list[tuple[str, Mapping[str, Any]]]:
        """Config layers applied on top of the baseline for `node`."""
        layers: list[tuple[str, Mapping[str, Any]]] = [
            ("workflow", load_config_file(node.config_path))
        ]
        if node.name == root and self._cli_overrides:
            layers.append(("cli", self._cli_overrides))
        return layers

    async def run(self, root: str) -> PipelineResult:
        """Bring `root` up to date.

        Raises:
            DAGError: On a dependency cycle or a missing workflow.
            ConfigurationError: If a config tier holds invalid values.
        """
        start_ns = time.monotonic_ns()
        set_run_context(uuid.uuid4().hex[:8])

        nodes = self._resolver.resolve_nodes(root)
        graph = build_digraph(nodes)
        if not self._auto_deps:
            nodes = nodes[-1:]

        result = PipelineResult(root=root, order=[n.name for n in nodes])
        logger.info("Execution order for '%s': %s", root, " -> ".join(result.order))

        stack = ConfigStack(self.baseline())
        output_hashes: dict[str, str] = {}
        blocked: set[str] = set()

        try:
            for index, node in enumerate(nodes):
                if node.name in blocked:
                    logger.warning("Skipping '%s': a dependency failed", node.name)
                    result.aborted.append(node.name)
                    continue

                ok = await self._run_node(node, root, stack, output_hashes, result)
                if ok:
                    continue

                if self._fail_fast:
                    remaining = [n.name for n in nodes[index + 1:]]
                    if remaining:
                        logger.error(
                            "Aborting after '%s' failed; not run: %s",
                            node.name,
                            ", ".join(remaining),
                        )
                    result.aborted.extend(remaining)
                    break
                blocked |= dependents_of(graph, node.name)
        finally:
            set_workflow_context(None)
            result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

        logger.info(
            "Pipeline '%s' complete: %d executed, %d fresh, %d failed, %d aborted, %dms",
            root,
            len(result.executed),
            len(result.fresh),
            len(result.failed),
            len(result.aborted),
            result.duration_ms,
        )
        return result

    async def _run_node(
        self,
        node: WorkflowNode,
        root: str,
        stack: ConfigStack,
        output_hashes: dict[str, str],
        result: PipelineResult,
    ) -> bool:
        """Check and, if needed, execute one workflow. False on failure."""
        set_workflow_context(node.name, "check")
        with stack.applied(*self.layers_for(node, root)) as resolved:
            report = self._detector.check(node, resolved, output_hashes)
            forced = self._force and node.name == root

            if not report.stale and not forced:
                logger.info("'%s' is up to date", node.name)
                result.fresh.append(node.name)
                result.reasons[node.name] = StalenessReason.FRESH
                if report.record is not None:
                    output_hashes[node.name] = report.record.output.hash
                return True

            reason = report.reason if report.stale else StalenessReason.FORCED
            result.reasons[node.name] = reason
            logger.info("Running '%s' (%s)", node.name, reason.value)

            fingerprint = report.fingerprint or self._detector.compute_fingerprint(
                node, resolved, output_hashes
            )
            context = self._build_context(node, resolved)

            set_workflow_context(node.name, "run")
            outcome = await self._invoke(context)
            if not outcome.success:
                return self._record_failure(node.name, outcome.error or "run failed", result)

            set_workflow_context(node.name, "record")
            try:
                record = self._log.write(
                    node.name, fingerprint, outcome.output_path or context.output_path
                )
            except ExecutionLogError as exc:
                return self._record_failure(node.name, str(exc), result)

        output_hashes[node.name] = record.output.hash
        result.executed.append(node.name)
        logger.info("'%s' done (%s)", node.name, record.execution_hash)
        return True

    async def _invoke(self, context: RunContext) -> RunOutcome:
        try:
            outcome = self._runner(context)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as exc:
            logger.exception("Run callback for '%s' raised", context.name)
            return RunOutcome(success=False, error=f"{type(exc).__name__}: {exc}")
        if not isinstance(outcome, RunOutcome):
            return RunOutcome(
                success=False,
                error=f"run callback returned {type(outcome).__name__}, expected RunOutcome",
            )
        return outcome

    def _build_context(self, node: WorkflowNode, resolved: ResolvedConfig) -> RunContext:
        dependency_outputs: dict[str, Path] = {}
        for dep in node.depends_on:
            record = self._log.read(dep)
            if record is None:
                logger.warning("'%s' depends on '%s', which has no output", node.name, dep)
                continue
            dependency_outputs[dep] = self._log.resolve_output(record)

        context_files, input_files = self._detector.tracked_paths(resolved)
        return RunContext(
            node=node,
            resolved=resolved,
            project_root=self._root,
            output_path=layout.output_path(self._root, node.name, resolved.config.output_format),
            dependency_outputs=dependency_outputs,
            context_files=context_files,
            input_files=input_files,
            cache=self._cache,
            settings=self._settings,
        )

    @staticmethod
    def _record_failure(name: str, error: str, result: PipelineResult) -> bool:
        logger.error("Workflow '%s' failed: %s", name, error)
        result.failed[name] = error
        return False
