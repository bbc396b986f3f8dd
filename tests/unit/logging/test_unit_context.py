# tests/unit/logging/test_unit_context.py (v1)
"""Tests for logging/context.py: contextual logging variables."""

from __future__ import annotations

from wireflow.logging.context import (
    clear_context,
    get_context,
    set_run_context,
    set_workflow_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.workflow is None
        assert ctx.step is None

    def test_set_run_context(self):
        set_run_context("run1")
        assert get_context().run_id == "run1"

    def test_set_workflow_context(self):
        set_workflow_context("outline", "check")
        ctx = get_context()
        assert ctx.workflow == "outline"
        assert ctx.step == "check"

    def test_workflow_context_resets_step(self):
        set_workflow_context("outline", "run")
        set_workflow_context("memo")
        assert get_context().step is None

    def test_as_dict_filters_none(self):
        set_run_context("run1")
        d = get_context().as_dict()
        assert d == {"run_id": "run1"}

    def test_clear(self):
        set_run_context("run1")
        set_workflow_context("outline")
        clear_context()
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.workflow is None
