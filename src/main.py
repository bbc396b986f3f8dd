# src/main.py (v1)
"""CLI entry point: run, status, order commands.

Usage:
    wireflow run <workflow> [--force] [--no-auto-deps] [--keep-going] [options]
    wireflow status [<workflow> ...]
    wireflow order <workflow>

The model call itself is delegated to a runner callable given as
`package.module:function` (`--runner` or WIREFLOW_RUNNER). It receives a
RunContext and returns a RunOutcome.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import sys
from pathlib import Path
from typing import Any

from wireflow.config.settings import ConfigurationError, Settings, load_settings
from wireflow.pipeline.graph import DAGError, DependencyGraphResolver
from wireflow.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class CLIError(Exception):
    """User-facing error reported without a traceback."""


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FAILURE

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Error: invalid settings: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED
    except (CLIError, ConfigurationError, DAGError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FAILURE


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="wireflow",
        description=f"wireflow v{__version__}: incremental LLM workflow pipeline",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-C", "--project", type=Path, default=None,
        help="Project directory (default: nearest parent containing .workflow/)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser(
        "run", help="Run a workflow and its stale dependencies",
    )
    p_run.add_argument("workflow", help="Workflow name")
    p_run.add_argument(
        "--force", action="store_true",
        help="Re-run the workflow even if it is up to date",
    )
    p_run.add_argument(
        "--no-auto-deps", action="store_true",
        help="Do not execute dependencies, only the named workflow",
    )
    p_run.add_argument(
        "--keep-going", action="store_true",
        help="After a failure, keep running workflows that do not depend on it",
    )
    p_run.add_argument(
        "--runner", default=None,
        help="Run callback as 'package.module:function' (default: WIREFLOW_RUNNER)",
    )
    p_run.add_argument("--profile", choices=["fast", "balanced", "deep"], default=None)
    p_run.add_argument("--model", default=None)
    p_run.add_argument("--temperature", type=float, default=None)
    p_run.add_argument("--max-tokens", type=int, default=None)
    p_run.add_argument("--output-format", default=None)
    p_run.set_defaults(func=_cmd_run)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show whether workflows are fresh or stale",
    )
    p_status.add_argument(
        "workflows", nargs="*",
        help="Workflows to inspect (default: all)",
    )
    p_status.set_defaults(func=_cmd_status)

    # --- order ---
    p_order = subparsers.add_parser(
        "order", help="Print the execution order for a workflow",
    )
    p_order.add_argument("workflow", help="Workflow name")
    p_order.set_defaults(func=_cmd_order)

    return parser


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a workflow pipeline."""
    from wireflow.pipeline.executor import PipelineExecutor

    project_root = _project_root(args)
    runner = load_runner(args.runner or settings.runner)

    executor = PipelineExecutor(
        project_root,
        runner,
        settings,
        force=args.force,
        auto_deps=not args.no_auto_deps,
        fail_fast=not args.keep_going,
        cli_overrides=_cli_overrides(args),
    )
    result = await executor.run(args.workflow)

    for name in result.order:
        if name in result.failed:
            line = f"failed: {result.failed[name]}"
        elif name in result.aborted:
            line = "not run"
        elif name in result.executed:
            line = f"executed ({result.reasons[name].value})"
        else:
            line = "up to date"
        print(f"  {name:24s} {line}")

    return EXIT_OK if result.success else EXIT_FAILURE


async def _cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    """Print one status line per workflow."""
    from wireflow.pipeline.status import collect_status

    project_root = _project_root(args)
    for line in collect_status(project_root, settings, args.workflows or None):
        print(line.render())
    return EXIT_OK


async def _cmd_order(args: argparse.Namespace, settings: Settings) -> int:
    """Print the resolved execution order, one name per line."""
    resolver = DependencyGraphResolver(_project_root(args))
    for name in resolver.resolve_order(args.workflow):
        print(name)
    return EXIT_OK


def load_runner(target: str) -> Any:
    """Import a run callback given as 'package.module:function'.

    Raises:
        CLIError: If the target is empty, malformed or cannot be imported.
    """
    if not target:
        raise CLIError("No runner configured: pass --runner or set WIREFLOW_RUNNER")
    module_path, sep, attr = target.partition(":")
    if not sep or not module_path or not attr:
        raise CLIError(f"Invalid runner {target!r}: expected 'package.module:function'")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise CLIError(f"Cannot import module {module_path}: {exc}") from exc

    runner = getattr(module, attr, None)
    if runner is None or not callable(runner):
        raise CLIError(f"{attr} not found in {module_path} or not callable")
    return runner


def _project_root(args: argparse.Namespace) -> Path:
    from wireflow.storage import layout

    root = layout.find_project_root(args.project)
    if root is None:
        start = args.project or Path.cwd()
        raise CLIError(f"Not inside a wireflow project (no .workflow/ above {start})")
    return root


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides = {
        "profile": args.profile,
        "model": args.model,
        "temperature": args.temperature,
        "max_tokens": args.max_tokens,
        "output_format": args.output_format,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from wireflow.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
