# tests/unit/pipeline/test_unit_executor.py (v1)
"""Tests for pipeline/executor.py: PipelineExecutor orchestration."""

from __future__ import annotations

import asyncio

import pytest

from wireflow.config.settings import ConfigurationError
from wireflow.pipeline.executor import PipelineExecutor, RunContext, RunOutcome
from wireflow.pipeline.graph import CycleDetected, MissingDependency
from wireflow.pipeline.staleness import StalenessReason
from wireflow.storage import layout
from wireflow.storage.execution_log import ExecutionLog


class TestRun:
    @pytest.mark.asyncio
    async def test_runs_dependencies_first(self, project, make_workflow, runner):
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        result = await PipelineExecutor(project, runner).run("b")
        assert runner.calls == ["a", "b"]
        assert result.executed == ["a", "b"]
        assert result.success
        assert result.reasons["a"] is StalenessReason.NOT_RUN

    @pytest.mark.asyncio
    async def test_skips_fresh(self, project, make_workflow, runner):
        make_workflow(project, "a")
        await PipelineExecutor(project, runner).run("a")
        result = await PipelineExecutor(project, runner).run("a")
        assert runner.calls == ["a"]
        assert result.fresh == ["a"]

    @pytest.mark.asyncio
    async def test_force_only_root(self, project, make_workflow, runner):
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        await PipelineExecutor(project, runner).run("b")
        result = await PipelineExecutor(project, runner, force=True).run("b")
        assert runner.calls == ["a", "b", "b"]
        assert result.reasons["b"] is StalenessReason.FORCED
        assert result.fresh == ["a"]

    @pytest.mark.asyncio
    async def test_no_auto_deps(self, project, make_workflow, runner):
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        result = await PipelineExecutor(project, runner, auto_deps=False).run("b")
        assert runner.calls == ["b"]
        assert result.order == ["b"]
        assert result.reasons["b"] is StalenessReason.NOT_RUN
        assert runner.contexts[0].dependency_outputs == {}

    @pytest.mark.asyncio
    async def test_no_auto_deps_still_validates_graph(self, project, make_workflow, runner):
        make_workflow(project, "a", config="DEPENDS_ON=(b)\n")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        with pytest.raises(CycleDetected):
            await PipelineExecutor(project, runner, auto_deps=False).run("b")
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_missing_dependency_aborts_before_running(self, project, make_workflow, runner):
        make_workflow(project, "b", config="DEPENDS_ON=(ghost)\n")
        with pytest.raises(MissingDependency):
            await PipelineExecutor(project, runner).run("b")
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_sync_runner_accepted(self, project, make_workflow):
        make_workflow(project, "a")

        def sync_runner(ctx: RunContext) -> RunOutcome:
            ctx.output_path.write_text("sync")
            return RunOutcome(success=True)

        result = await PipelineExecutor(project, sync_runner).run("a")
        assert result.executed == ["a"]
        assert ExecutionLog(project).read("a").output.path == ".workflow/output/a.md"


class TestConfigIsolation:
    @pytest.mark.asyncio
    async def test_overrides_do_not_leak(self, project, make_workflow, runner):
        make_workflow(project, "a", config="TEMPERATURE=0.1\nMODEL=special\n")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        await PipelineExecutor(project, runner).run("b")
        ctx_a, ctx_b = runner.contexts
        assert ctx_a.config.temperature == 0.1
        assert ctx_b.config.temperature == 1.0
        assert ctx_b.config.model == ""
        assert ctx_a.config.depends_on == []
        assert ctx_b.config.depends_on == ["a"]

    @pytest.mark.asyncio
    async def test_project_baseline(self, project, make_workflow, runner):
        layout.project_config_path(project).write_text("PROFILE=deep\n")
        make_workflow(project, "a")
        await PipelineExecutor(project, runner).run("a")
        ctx = runner.contexts[0]
        assert ctx.config.profile == "deep"
        assert ctx.resolved.sources["profile"] == "project"

    @pytest.mark.asyncio
    async def test_cli_overrides_root_only(self, project, make_workflow, runner):
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        await PipelineExecutor(
            project, runner, cli_overrides={"output_format": "json"}
        ).run("b")
        ctx_a, ctx_b = runner.contexts
        assert ctx_a.output_path.name == "a.md"
        assert ctx_b.output_path.name == "b.json"

    @pytest.mark.asyncio
    async def test_cli_override_makes_root_stale(self, project, make_workflow, runner):
        make_workflow(project, "a")
        await PipelineExecutor(project, runner).run("a")
        result = await PipelineExecutor(
            project, runner, cli_overrides={"temperature": 0.3}
        ).run("a")
        assert result.reasons["a"] is StalenessReason.CONFIG_CHANGED

    @pytest.mark.asyncio
    async def test_invalid_config(self, project, make_workflow, runner):
        make_workflow(project, "a", config="TEMPERATURE=warm\n")
        with pytest.raises(ConfigurationError):
            await PipelineExecutor(project, runner).run("a")


class TestRunContext:
    @pytest.mark.asyncio
    async def test_dependency_outputs_and_files(self, project, make_workflow, runner):
        (project / "notes.md").write_text("ctx")
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\nCONTEXT_FILES=(notes.md)\n")
        await PipelineExecutor(project, runner).run("b")
        ctx_b = runner.contexts[1]
        assert ctx_b.dependency_outputs == {"a": layout.output_path(project, "a", "md")}
        assert ctx_b.context_files == [(project / "notes.md").resolve()]
        assert "[a] Do the thing." in ctx_b.output_path.read_text()

    @pytest.mark.asyncio
    async def test_prepare_passthrough(self, project, make_workflow, runner):
        make_workflow(project, "a")
        await PipelineExecutor(project, runner).run("a")
        ctx = runner.contexts[0]
        plain = project / "plain.md"
        assert await ctx.prepare(plain) == plain


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_aborts_chain(self, project, make_workflow, failing_runner):
        make_workflow(project, "a")
        make_workflow(project, "b", config="DEPENDS_ON=(a)\n")
        runner = failing_runner({"a"})
        result = await PipelineExecutor(project, runner).run("b")
        assert runner.calls == ["a"]
        assert result.failed == {"a": "a exploded"}
        assert result.aborted == ["b"]
        assert not result.success
        assert ExecutionLog(project).read("a") is None

    @pytest.mark.asyncio
    async def test_keep_going_spares_siblings(self, project, make_workflow, failing_runner):
        make_workflow(project, "left")
        make_workflow(project, "mid", config="DEPENDS_ON=(left)\n")
        make_workflow(project, "right")
        make_workflow(project, "top", config="DEPENDS_ON=(mid right)\n")
        runner = failing_runner({"left"})
        result = await PipelineExecutor(project, runner, fail_fast=False).run("top")
        assert runner.calls == ["left", "right"]
        assert result.executed == ["right"]
        assert result.aborted == ["mid", "top"]

    @pytest.mark.asyncio
    async def test_raising_runner_is_failure(self, project, make_workflow):
        make_workflow(project, "a")

        async def broken(ctx):
            raise RuntimeError("api down")

        result = await PipelineExecutor(project, broken).run("a")
        assert "api down" in result.failed["a"]
        assert ExecutionLog(project).read("a") is None

    @pytest.mark.asyncio
    async def test_success_without_output_is_failure(self, project, make_workflow):
        make_workflow(project, "a")

        async def lazy(ctx):
            return RunOutcome(success=True)

        result = await PipelineExecutor(project, lazy).run("a")
        assert "does not exist" in result.failed["a"]
        assert ExecutionLog(project).read("a") is None

    @pytest.mark.asyncio
    async def test_cancellation_writes_no_record(self, project, make_workflow):
        make_workflow(project, "a")

        async def slow(ctx):
            ctx.output_path.write_text("partial")
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await PipelineExecutor(project, slow).run("a")
        assert ExecutionLog(project).read("a") is None

    @pytest.mark.asyncio
    async def test_wrong_return_type(self, project, make_workflow):
        make_workflow(project, "a")

        async def sloppy(ctx):
            return True

        result = await PipelineExecutor(project, sloppy).run("a")
        assert "expected RunOutcome" in result.failed["a"]
