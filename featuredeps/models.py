"""
Resolver Data Model
===================

Plain data types shared by every resolver component.

- FeatureStatus / is_terminal: the closed status enumeration and the single
  definition of which statuses count as "done"
- Feature: a work item with known fields plus an opaque extras mapping
- DependencyNode / DependencyGraph: the snapshot produced by
  resolve_dependencies()
- BlockingDependency: why a feature cannot start yet
- AncestorSummary / AncestorContext: transitive prerequisites used to prime
  an agent prompt
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FeatureStatus(str, Enum):
    """Lifecycle states a feature can be in."""

    PENDING = "pending"
    READY = "ready"
    BACKLOG = "backlog"
    IN_PROGRESS = "in_progress"
    WAITING_APPROVAL = "waiting_approval"
    VERIFIED = "verified"
    COMPLETED = "completed"
    FAILED = "failed"


# Statuses that satisfy a dependency edge
TERMINAL_STATUSES: frozenset[FeatureStatus] = frozenset({
    FeatureStatus.COMPLETED,
    FeatureStatus.VERIFIED,
})


def is_terminal(status: FeatureStatus | str | None) -> bool:
    """
    Check whether a status counts as done for dependency satisfaction.

    Examples:
        >>> is_terminal(FeatureStatus.COMPLETED)
        True
        >>> is_terminal("verified")
        True
        >>> is_terminal("in_progress")
        False
        >>> is_terminal(None)
        False
    """
    if status is None:
        return False
    try:
        return FeatureStatus(status) in TERMINAL_STATUSES
    except ValueError:
        return False


# Keys Feature stores as attributes; everything else goes to extras
FEATURE_FIELDS = (
    "id",
    "dependencies",
    "status",
    "title",
    "description",
    "summary",
    "category",
    "priority",
)


@dataclass
class Feature:
    """
    A unit of planned work.

    Unrecognized attributes of the source record are kept untouched in
    ``extras`` and written back by ``to_dict()``.
    """

    id: str
    dependencies: list[str] = field(default_factory=list)
    status: FeatureStatus = FeatureStatus.PENDING
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    category: str | None = None
    priority: int | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        return is_terminal(self.status)

    def to_dict(self) -> dict[str, Any]:
        """Convert feature to dictionary for JSON serialization."""
        data = dict(self.extras)
        data.update({
            "id": self.id,
            "dependencies": list(self.dependencies),
            "status": self.status.value,
        })
        for key in ("title", "description", "summary", "category", "priority"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class DependencyNode:
    """One feature in a dependency graph with edges in both directions."""

    feature_id: str
    title: str | None = None
    status: FeatureStatus | None = None
    # Declared order; may include dangling ids
    dependencies: list[str] = field(default_factory=list)
    # Features declaring this node as a dependency, in input order
    dependents: list[str] = field(default_factory=list)
    description: str | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert node to dictionary for JSON serialization."""
        return {
            "feature_id": self.feature_id,
            "title": self.title,
            "status": self.status.value if self.status else None,
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
        }


@dataclass(frozen=True)
class DependencyGraph:
    """
    Snapshot of the dependency structure of one feature list.

    Built fresh by resolve_dependencies() and never modified afterwards.
    ``execution_order`` is complete when ``has_cycles`` is False; otherwise
    its content follows the configured CycleOrderPolicy.
    """

    nodes: dict[str, DependencyNode] = field(default_factory=dict)
    execution_order: list[str] = field(default_factory=list)
    has_cycles: bool = False
    cycles: list[list[str]] = field(default_factory=list)
    # feature id -> dependency ids that match no feature
    dangling: dict[str, list[str]] = field(default_factory=dict)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self.nodes

    def get(self, feature_id: str) -> DependencyNode | None:
        return self.nodes.get(feature_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert graph to dictionary for JSON serialization."""
        return {
            "nodes": {
                feature_id: node.to_dict()
                for feature_id, node in self.nodes.items()
            },
            "execution_order": list(self.execution_order),
            "has_cycles": self.has_cycles,
            "cycles": [list(cycle) for cycle in self.cycles],
            "dangling": {
                feature_id: list(missing)
                for feature_id, missing in self.dangling.items()
            },
        }


@dataclass(frozen=True)
class BlockingDependency:
    """A direct dependency that is not done yet."""

    id: str
    title: str | None = None
    status: FeatureStatus | None = None
    # True when the id matches no known feature
    missing: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value if self.status else None,
            "missing": self.missing,
        }


@dataclass(frozen=True)
class AncestorSummary:
    """What an agent needs to know about one prerequisite feature."""

    id: str
    title: str | None = None
    status: FeatureStatus | None = None
    description: str | None = None
    summary: str | None = None
    # 1 = direct dependency, 2 = dependency of a dependency, ...
    depth: int = 1


@dataclass(frozen=True)
class AncestorContext:
    """All transitive prerequisites of one feature plus their prompt rendering."""

    feature_id: str
    ancestors: list[AncestorSummary] = field(default_factory=list)
    formatted: str = ""

    @property
    def ancestor_ids(self) -> list[str]:
        return [ancestor.id for ancestor in self.ancestors]

    def __len__(self) -> int:
        return len(self.ancestors)
