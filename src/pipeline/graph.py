# src/pipeline/graph.py (v1)
"""Dependency graph resolution for workflows.

Produces a topological order (dependencies first, requested workflow last)
by an iterative depth-first traversal with three-state colouring and an
explicit path stack, so a cycle is reported exactly as the path that
closes it.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator

import networkx as nx

from wireflow.config.workflow_config import extract_dependencies
from wireflow.pipeline.workflow import WorkflowNode, load_workflow_node

logger = logging.getLogger(__name__)

__all__ = [
    "CycleDetected",
    "DAGError",
    "DependencyGraphResolver",
    "MissingDependency",
    "build_digraph",
    "dependents_of",
    "extract_dependencies",
    "resolve_order",
]


class DAGError(Exception):
    """Raised when the dependency graph is not a valid DAG."""


class CycleDetected(DAGError):
    """A workflow depends, directly or transitively, on itself."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")


class MissingDependency(DAGError):
    """A declared dependency has no corresponding workflow."""

    def __init__(self, name: str, required_by: str | None = None) -> None:
        self.name = name
        self.required_by = required_by
        if required_by is None:
            message = f"Workflow not found: '{name}'"
        else:
            message = f"Dependency workflow not found: '{name}' (required by '{required_by}')"
        super().__init__(message)


class _Mark(Enum):
    IN_PROGRESS = 1
    FINISHED = 2


NodeLookup = Callable[[str], "WorkflowNode | None"]


def resolve_order(root: str, lookup: NodeLookup) -> list[WorkflowNode]:
    """Topologically order `root` and everything it depends on.

    Each node is emitted right after all of its dependencies. Independent
    subgraphs keep each node's declared dependency order, so the result is
    deterministic for a fixed graph.

    Args:
        root: Name of the requested workflow.
        lookup: Returns the node for a name, or None if it does not exist.

    Returns:
        Nodes in execution order; `root` is always last.

    Raises:
        MissingDependency: If `root` or any reachable dependency is missing.
        CycleDetected: If a reachable dependency cycle exists.
    """
    root_node = lookup(root)
    if root_node is None:
        raise MissingDependency(root)

    marks: dict[str, _Mark] = {root: _Mark.IN_PROGRESS}
    path: list[str] = [root]
    stack: list[tuple[WorkflowNode, Iterator[str]]] = [
        (root_node, iter(root_node.depends_on))
    ]
    order: list[WorkflowNode] = []

    while stack:
        node, deps = stack[-1]
        dep = next(deps, None)

        if dep is None:
            stack.pop()
            path.pop()
            marks[node.name] = _Mark.FINISHED
            order.append(node)
            continue

        mark = marks.get(dep)
        if mark is _Mark.FINISHED:
            continue
        if mark is _Mark.IN_PROGRESS:
            raise CycleDetected(path[path.index(dep):] + [dep])

        dep_node = lookup(dep)
        if dep_node is None:
            raise MissingDependency(dep, required_by=node.name)

        marks[dep] = _Mark.IN_PROGRESS
        path.append(dep)
        stack.append((dep_node, iter(dep_node.depends_on)))

    logger.debug("Resolved order for '%s': %s", root, [n.name for n in order])
    return order


class DependencyGraphResolver:
    """Resolve workflow execution order within a project.

    Nodes are loaded from disk once per resolver and memoised, so every
    query made during a pipeline invocation sees the same graph.
    """

    def __init__(self, project_root: Path) -> None:
        self._root = Path(project_root)
        self._nodes: dict[str, WorkflowNode | None] = {}

    def node(self, name: str) -> WorkflowNode | None:
        if name not in self._nodes:
            self._nodes[name] = load_workflow_node(self._root, name)
        return self._nodes[name]

    def resolve_order(self, root: str) -> list[str]:
        """Names in execution order, dependencies before dependents."""
        return [n.name for n in resolve_order(root, self.node)]

    def resolve_nodes(self, root: str) -> list[WorkflowNode]:
        return resolve_order(root, self.node)

    @staticmethod
    def extract_dependencies(node: WorkflowNode) -> list[str]:
        """Re-read the dependency list from the node's config file."""
        return extract_dependencies(node.config_path)


def build_digraph(nodes: Iterable[WorkflowNode]) -> nx.DiGraph:
    """Directed graph with an edge dependency -> dependent."""
    graph = nx.DiGraph()
    for node in nodes:
        graph.add_node(node.name)
        for dep in node.depends_on:
            graph.add_edge(dep, node.name)
    return graph


def dependents_of(graph: nx.DiGraph, name: str) -> set[str]:
    """All workflows that transitively depend on `name`."""
    if name not in graph:
        return set()
    return set(nx.descendants(graph, name))
