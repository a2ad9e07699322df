"""
Dependency Graph Resolution
===========================

Builds the dependency graph for a feature list and answers structural
queries over it.

- resolve_dependencies(): nodes, dependents back-edges, dangling references,
  Kahn's topological sort and cycle reporting
- topological_sort(): deterministic Kahn's algorithm, ties broken by input order
- detect_cycles(): iterative DFS with visited / on-stack tracking
- would_create_circular_dependency(): reachability check for a proposed edge
- dependency_exists(): direct edge membership
- get_execution_order(): execution order restricted to selected features

Edge direction: "A depends on B" is stored as B in A.dependencies and A in
B.dependents. B must come before A in the execution order.
"""
from __future__ import annotations

import heapq
import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Any

from featuredeps.config import CycleOrderPolicy, coerce_cycle_order_policy, get_settings
from featuredeps.models import DependencyGraph, DependencyNode, Feature
from featuredeps.schemas import parse_features

_logger = logging.getLogger(__name__)


def resolve_dependencies(
    features: Iterable[Feature | Mapping[str, Any]],
    *,
    cycle_order_policy: CycleOrderPolicy | str | None = None,
) -> DependencyGraph:
    """
    Build the dependency graph for a feature list.

    Dangling dependency ids stay in the declaring node's dependencies and are
    listed in ``graph.dangling``; they never receive a back-edge and never
    hold up the execution order. Cycles are reported in ``graph.cycles``.

    Args:
        features: Feature objects or feature dicts
        cycle_order_policy: What execution_order holds when cycles exist.
            Defaults to FEATUREDEPS_CYCLE_ORDER_POLICY.

    Returns:
        A fresh DependencyGraph snapshot.

    Raises:
        InvalidFeatureError: If a record is malformed.
        DuplicateFeatureError: If a feature id occurs more than once.
        InvalidSettingError: If cycle_order_policy names no policy.

    Example:
        >>> graph = resolve_dependencies([
        ...     {"id": "A"},
        ...     {"id": "B", "dependencies": ["A"]},
        ...     {"id": "C", "dependencies": ["A", "B"]},
        ... ])
        >>> graph.execution_order
        ['A', 'B', 'C']
        >>> graph.has_cycles
        False
    """
    if cycle_order_policy is None:
        policy = get_settings().cycle_order_policy
    else:
        policy = coerce_cycle_order_policy(cycle_order_policy)

    parsed = parse_features(features)
    known = {feature.id for feature in parsed}

    dependents: dict[str, list[str]] = {feature.id: [] for feature in parsed}
    dangling: dict[str, list[str]] = {}

    for feature in parsed:
        for dep_id in feature.dependencies:
            if dep_id in known:
                dependents[dep_id].append(feature.id)
            else:
                dangling.setdefault(feature.id, []).append(dep_id)

    nodes = {
        feature.id: DependencyNode(
            feature_id=feature.id,
            title=feature.title,
            status=feature.status,
            dependencies=list(feature.dependencies),
            dependents=dependents[feature.id],
            description=feature.description,
            summary=feature.summary,
        )
        for feature in parsed
    }

    order, remaining = topological_sort(nodes)

    cycles: list[list[str]] = []
    if remaining:
        cycles = detect_cycles(nodes, remaining)
        _logger.warning(
            "Circular dependencies detected among %d feature(s): %s",
            len(remaining),
            [" -> ".join(cycle) for cycle in cycles],
        )
        if policy is CycleOrderPolicy.EMPTY:
            order = []

    if dangling:
        _logger.warning(
            "Dangling dependency references (no such feature): %s", dangling
        )

    _logger.debug(
        "Resolved %d feature(s), %d edge(s), %d cycle(s)",
        len(nodes),
        sum(len(ids) for ids in dependents.values()),
        len(cycles),
    )

    return DependencyGraph(
        nodes=nodes,
        execution_order=order,
        has_cycles=bool(remaining),
        cycles=cycles,
        dangling=dangling,
    )


def topological_sort(nodes: Mapping[str, DependencyNode]) -> tuple[list[str], list[str]]:
    """
    Order nodes so every dependency precedes its dependents (Kahn's algorithm).

    Among nodes that are ready at the same time the one that came first in
    ``nodes`` is emitted first, so identical input always yields identical
    output. Dependencies on unknown ids are ignored.

    Returns:
        (order, remaining) where remaining lists, in input order, the nodes
        that could not be emitted because they are on or behind a cycle.
    """
    position = {feature_id: index for index, feature_id in enumerate(nodes)}

    in_degree: dict[str, int] = {}
    for feature_id, node in nodes.items():
        in_degree[feature_id] = sum(1 for dep_id in node.dependencies if dep_id in nodes)

    ready = [position[feature_id] for feature_id, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ids = list(nodes)

    order: list[str] = []
    while ready:
        current = ids[heapq.heappop(ready)]
        order.append(current)

        for dependent_id in nodes[current].dependents:
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                heapq.heappush(ready, position[dependent_id])

    if len(order) == len(nodes):
        return order, []

    emitted = set(order)
    remaining = [feature_id for feature_id in nodes if feature_id not in emitted]
    return order, remaining


def detect_cycles(
    nodes: Mapping[str, DependencyNode],
    candidates: Iterable[str] | None = None,
) -> list[list[str]]:
    """
    Find circular dependencies with an iterative depth-first search.

    Each cycle is the path from the node where the cycle was re-entered,
    closed with that node again, e.g. ``["A", "B", "A"]`` for A -> B -> A.
    A self-reference is reported as ``["A", "A"]``.

    Args:
        nodes: Graph nodes keyed by feature id
        candidates: Start nodes, in order (defaults to every node)

    Returns:
        List of cycles; empty when the graph is acyclic.
    """
    start_ids = list(nodes) if candidates is None else list(candidates)

    cycles: list[list[str]] = []
    visited: set[str] = set()

    for start_id in start_ids:
        if start_id in visited or start_id not in nodes:
            continue

        path: list[str] = [start_id]
        on_stack: set[str] = {start_id}
        visited.add(start_id)
        stack = [iter(nodes[start_id].dependencies)]

        while stack:
            dep_id = next(stack[-1], None)
            if dep_id is None:
                stack.pop()
                on_stack.discard(path.pop())
                continue

            if dep_id not in nodes:
                continue

            if dep_id in on_stack:
                cycle = path[path.index(dep_id):]
                cycle.append(dep_id)
                cycles.append(cycle)
            elif dep_id not in visited:
                visited.add(dep_id)
                on_stack.add(dep_id)
                path.append(dep_id)
                stack.append(iter(nodes[dep_id].dependencies))

    return cycles


def would_create_circular_dependency(
    dependent_id: str,
    dependency_id: str,
    graph: DependencyGraph,
) -> bool:
    """
    Check whether making ``dependent_id`` depend on ``dependency_id`` closes a cycle.

    True when the ids are equal or when ``dependency_id`` already depends,
    directly or transitively, on ``dependent_id``. The graph is not modified.

    Example:
        >>> graph = resolve_dependencies([{"id": "A"}, {"id": "B", "dependencies": ["A"]}])
        >>> would_create_circular_dependency("A", "B", graph)
        True
        >>> would_create_circular_dependency("B", "A", graph)
        False
    """
    if dependent_id == dependency_id:
        return True

    visited: set[str] = {dependency_id}
    queue: deque[str] = deque([dependency_id])

    while queue:
        node = graph.nodes.get(queue.popleft())
        if node is None:
            continue
        for dep_id in node.dependencies:
            if dep_id == dependent_id:
                return True
            if dep_id not in visited:
                visited.add(dep_id)
                queue.append(dep_id)

    return False


def dependency_exists(a_id: str, b_id: str, graph: DependencyGraph) -> bool:
    """Return True if feature ``a_id`` directly declares ``b_id`` as a dependency."""
    node = graph.nodes.get(a_id)
    if node is None:
        return False
    return b_id in node.dependencies


def get_execution_order(
    feature_ids: Iterable[str],
    all_features: Iterable[Feature | Mapping[str, Any]],
) -> list[str]:
    """
    Execution order of the selected features.

    The whole feature list is resolved so transitive constraints through
    unselected features are respected; the result is then filtered down to
    ``feature_ids``.
    """
    selected = set(feature_ids)
    graph = resolve_dependencies(all_features)
    return [feature_id for feature_id in graph.execution_order if feature_id in selected]
