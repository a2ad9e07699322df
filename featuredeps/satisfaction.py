"""
Dependency Satisfaction
=======================

Status-aware checks over a feature list: can a feature start, and if not,
which dependencies are holding it back.

A dependency is satisfied only when it names a known feature whose status is
terminal (completed or verified). Unknown dependency ids fail closed.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypedDict

from featuredeps.config import CycleOrderPolicy
from featuredeps.graph import resolve_dependencies
from featuredeps.models import BlockingDependency, Feature, FeatureStatus, is_terminal
from featuredeps.schemas import index_features, parse_feature


class DependencyValidation(TypedDict):
    """Result of validate_dependencies()."""

    satisfied: bool
    unsatisfied: list[str]
    missing: list[str]


@dataclass(frozen=True)
class BlockedFeature:
    """A feature that cannot start, with the dependencies blocking it."""

    feature: Feature
    blocked_by: list[BlockingDependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = self.feature.to_dict()
        data["blocked_by"] = [blocker.to_dict() for blocker in self.blocked_by]
        return data


def get_blocking_dependencies(
    feature: Feature | Mapping[str, Any],
    all_features: Iterable[Feature | Mapping[str, Any]],
) -> list[BlockingDependency]:
    """
    List the direct dependencies of a feature that are not done yet.

    Args:
        feature: The feature whose dependencies are checked
        all_features: Every known feature (supplies live statuses)

    Returns:
        Blocking dependencies in declared order. Ids matching no known
        feature are included with ``missing=True``.
    """
    feature = parse_feature(feature)
    by_id = index_features(all_features)
    if not feature.dependencies:
        return []

    return _find_blockers(feature, by_id)


def _find_blockers(feature: Feature, by_id: Mapping[str, Feature]) -> list[BlockingDependency]:
    blocking: list[BlockingDependency] = []
    for dep_id in feature.dependencies:
        dep = by_id.get(dep_id)
        if dep is None:
            blocking.append(BlockingDependency(id=dep_id, missing=True))
        elif not is_terminal(dep.status):
            blocking.append(BlockingDependency(id=dep.id, title=dep.title, status=dep.status))

    return blocking


def are_dependencies_satisfied(
    feature: Feature | Mapping[str, Any],
    all_features: Iterable[Feature | Mapping[str, Any]],
) -> bool:
    """
    Check whether every direct dependency of a feature is done.

    A feature without dependencies is trivially satisfied.
    """
    return not get_blocking_dependencies(feature, all_features)


def validate_dependencies(
    feature_id: str,
    all_features: Iterable[Feature | Mapping[str, Any]],
) -> DependencyValidation:
    """
    Split a feature's dependencies into unsatisfied and missing ids.

    An unknown feature_id, or a feature with no dependencies, is reported
    as satisfied.

    Example:
        >>> validate_dependencies("B", [
        ...     {"id": "A", "status": "in_progress"},
        ...     {"id": "B", "dependencies": ["A", "Z"]},
        ... ])
        {'satisfied': False, 'unsatisfied': ['A'], 'missing': ['Z']}
    """
    by_id = index_features(all_features)
    feature = by_id.get(feature_id)

    unsatisfied: list[str] = []
    missing: list[str] = []

    if feature is not None:
        for blocker in _find_blockers(feature, by_id):
            if blocker.missing:
                missing.append(blocker.id)
            else:
                unsatisfied.append(blocker.id)

    return {
        "satisfied": not unsatisfied and not missing,
        "unsatisfied": unsatisfied,
        "missing": missing,
    }


def get_ready_features(
    features: Iterable[Feature | Mapping[str, Any]],
) -> list[Feature]:
    """
    Features that can be started right now.

    A feature is ready when it is not done, not in progress, and all of its
    dependencies are done. Results follow the execution order; features the
    order could not place (on or behind a cycle) come last, in input order.
    """
    by_id = index_features(features)
    graph = resolve_dependencies(by_id.values(), cycle_order_policy=CycleOrderPolicy.PARTIAL)

    placed = set(graph.execution_order)
    candidates = graph.execution_order + [
        feature_id for feature_id in by_id if feature_id not in placed
    ]

    ready: list[Feature] = []
    for feature_id in candidates:
        feature = by_id[feature_id]
        if is_terminal(feature.status) or feature.status is FeatureStatus.IN_PROGRESS:
            continue
        if not _find_blockers(feature, by_id):
            ready.append(feature)

    return ready


def get_blocked_features(
    features: Iterable[Feature | Mapping[str, Any]],
) -> list[BlockedFeature]:
    """Features that are not done and have at least one blocking dependency, in input order."""
    by_id = index_features(features)

    blocked: list[BlockedFeature] = []
    for feature in by_id.values():
        if is_terminal(feature.status):
            continue
        blockers = _find_blockers(feature, by_id)
        if blockers:
            blocked.append(BlockedFeature(feature=feature, blocked_by=blockers))

    return blocked
