"""
Dependency Graph Health Check
=============================

Structured diagnostics for a feature list, meant to run before work starts
(e.g. at agent startup) so broken dependency data is surfaced instead of
silently stalling the queue.

Issue types:
- self_reference: a feature lists itself (auto-fixable: drop the entry)
- missing_target: a dependency names no known feature (auto-fixable: drop it)
- cycle: features depend on each other in a loop (requires user action)

repair_features() applies the auto-fixes to a copy of the feature list.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any, TypedDict

from featuredeps.graph import detect_cycles, resolve_dependencies
from featuredeps.models import Feature
from featuredeps.schemas import parse_features

_logger = logging.getLogger(__name__)

HEALTHY_SUMMARY = "Dependency graph is healthy"
HEALTH_CHECK_HEADER = "=== DEPENDENCY HEALTH CHECK ==="


class DependencyIssue(TypedDict):
    """One problem found in the dependency graph."""

    feature_id: str
    issue_type: str
    details: dict[str, Any]
    auto_fixable: bool


class ValidationResult(TypedDict):
    """Result of validate_dependency_graph()."""

    is_valid: bool
    self_references: list[str]
    cycles: list[list[str]]
    missing_targets: dict[str, list[str]]
    issues: list[DependencyIssue]
    summary: str


class RepairResult(TypedDict):
    """Result of repair_features()."""

    features: list[Feature]
    self_references_removed: list[str]
    missing_targets_removed: dict[str, list[str]]


def validate_dependency_graph(
    features: Iterable[Feature | Mapping[str, Any]],
) -> ValidationResult:
    """
    Check a feature list for self-references, missing targets and cycles.

    Self-references are reported only as self_reference issues, not also as
    cycles. Every member of a cycle gets its own cycle issue carrying the
    full cycle_path.

    Raises:
        InvalidFeatureError: If a record is malformed.
        DuplicateFeatureError: If a feature id occurs more than once.
    """
    parsed = parse_features(features)
    graph = resolve_dependencies(parsed)

    issues: list[DependencyIssue] = []

    self_references = [feature.id for feature in parsed if feature.id in feature.dependencies]
    for feature_id in self_references:
        issues.append({
            "feature_id": feature_id,
            "issue_type": "self_reference",
            "details": {
                "message": f"Feature {feature_id} depends on itself",
            },
            "auto_fixable": True,
        })

    missing_targets = {
        feature_id: list(missing) for feature_id, missing in graph.dangling.items()
    }
    for feature_id, missing in missing_targets.items():
        issues.append({
            "feature_id": feature_id,
            "issue_type": "missing_target",
            "details": {
                "message": (
                    f"Feature {feature_id} depends on unknown feature(s): "
                    f"{', '.join(missing)}"
                ),
                "missing_ids": list(missing),
            },
            "auto_fixable": True,
        })

    cycles: list[list[str]] = []
    if graph.has_cycles:
        # Search again without self-edges so a self-reference cannot mask a
        # longer cycle through the same node
        stripped = {
            feature_id: replace(
                node,
                dependencies=[dep_id for dep_id in node.dependencies if dep_id != feature_id],
            )
            for feature_id, node in graph.nodes.items()
        }
        cycles = detect_cycles(stripped)

    for cycle in cycles:
        path = " -> ".join(cycle)
        for feature_id in cycle[:-1]:
            issues.append({
                "feature_id": feature_id,
                "issue_type": "cycle",
                "details": {
                    "message": f"Feature {feature_id} is part of a circular dependency: {path}",
                    "cycle_path": list(cycle),
                },
                "auto_fixable": False,
            })

    return {
        "is_valid": not issues,
        "self_references": self_references,
        "cycles": cycles,
        "missing_targets": missing_targets,
        "issues": issues,
        "summary": _build_summary(self_references, cycles, missing_targets),
    }


def _build_summary(
    self_references: list[str],
    cycles: list[list[str]],
    missing_targets: dict[str, list[str]],
) -> str:
    parts = []
    if self_references:
        parts.append(f"{len(self_references)} self-reference(s) (auto-fixable)")
    if missing_targets:
        count = sum(len(missing) for missing in missing_targets.values())
        parts.append(f"{count} missing target(s) (auto-fixable)")
    if cycles:
        parts.append(f"{len(cycles)} cycle(s) (requires user action)")

    if not parts:
        return HEALTHY_SUMMARY
    return "Found " + ", ".join(parts)


def repair_features(
    features: Iterable[Feature | Mapping[str, Any]],
) -> RepairResult:
    """
    Remove self-references and missing targets from a copy of the feature list.

    Cycles are left untouched; breaking one means choosing which edge to
    drop, which is a user decision. The input records are not modified.
    """
    parsed = parse_features(features)
    known = {feature.id for feature in parsed}

    repaired: list[Feature] = []
    self_references_removed: list[str] = []
    missing_targets_removed: dict[str, list[str]] = {}

    for feature in parsed:
        kept: list[str] = []
        for dep_id in feature.dependencies:
            if dep_id == feature.id:
                if feature.id not in self_references_removed:
                    self_references_removed.append(feature.id)
            elif dep_id not in known:
                missing_targets_removed.setdefault(feature.id, []).append(dep_id)
            else:
                kept.append(dep_id)

        if kept != list(feature.dependencies):
            feature = replace(feature, dependencies=kept, extras=dict(feature.extras))
        repaired.append(feature)

    if self_references_removed:
        _logger.info("Removed self-references from features: %s", self_references_removed)
    if missing_targets_removed:
        _logger.info("Removed missing dependency targets: %s", missing_targets_removed)

    return {
        "features": repaired,
        "self_references_removed": self_references_removed,
        "missing_targets_removed": missing_targets_removed,
    }


def format_health_report(result: ValidationResult) -> str:
    """
    Render a validation result as a human-readable health check block.

    Example output:
        === DEPENDENCY HEALTH CHECK ===
        Self-references (auto-fixable):
          - feature-a
        Cycles (require user action):
          - feature-b -> feature-c -> feature-b
        Summary: 1 issues auto-fixable, 2 issues require attention
    """
    lines = [HEALTH_CHECK_HEADER]

    if result["is_valid"]:
        lines.append(HEALTHY_SUMMARY)
        return "\n".join(lines)

    if result["self_references"]:
        lines.append("Self-references (auto-fixable):")
        lines.extend(f"  - {feature_id}" for feature_id in result["self_references"])

    if result["missing_targets"]:
        lines.append("Missing dependency targets (auto-fixable):")
        for feature_id, missing in result["missing_targets"].items():
            lines.append(f"  - {feature_id} -> {', '.join(missing)}")

    if result["cycles"]:
        lines.append("Cycles (require user action):")
        lines.extend(f"  - {' -> '.join(cycle)}" for cycle in result["cycles"])

    fixable = sum(1 for issue in result["issues"] if issue["auto_fixable"])
    attention = len(result["issues"]) - fixable
    lines.append(
        f"Summary: {fixable} issues auto-fixable, {attention} issues require attention"
    )
    return "\n".join(lines)
