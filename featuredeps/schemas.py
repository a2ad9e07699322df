"""
Resolver Pydantic Schemas
=========================

Input validation for feature records and the JSON response shape of a
dependency graph.

These schemas provide:
- FeatureRecord: validation of loosely-typed feature dicts (unknown keys are
  kept as extras)
- parse_feature / parse_features: conversion of records into Feature objects,
  raising InvalidFeatureError / DuplicateFeatureError on bad input
- DependencyGraphResponse: serialization of a DependencyGraph for the route
  layer
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from featuredeps.exceptions import DuplicateFeatureError, InvalidFeatureError
from featuredeps.models import DependencyGraph, DependencyNode, Feature, FeatureStatus


# =============================================================================
# Input Schemas
# =============================================================================

class FeatureRecord(BaseModel):
    """A feature record as supplied by the persistence layer."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Unique feature id")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Ids of features that must be done first"
    )
    status: FeatureStatus = Field(
        default=FeatureStatus.PENDING,
        description="Lifecycle status"
    )
    title: str | None = Field(default=None, description="Display title")
    description: str | None = Field(default=None, description="What to build")
    summary: str | None = Field(default=None, description="Summary of completed work")
    category: str | None = Field(default=None, description="Board category")
    priority: int | None = Field(default=None, description="Lower = sooner")

    @field_validator("dependencies", mode="before")
    @classmethod
    def validate_dependencies_none(cls, value: Any) -> Any:
        # NULL/missing dependencies are treated as no dependencies
        return [] if value is None else value

    @field_validator("dependencies")
    @classmethod
    def dedupe_dependencies(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @field_validator("status", mode="before")
    @classmethod
    def validate_status_none(cls, value: Any) -> Any:
        return FeatureStatus.PENDING if value is None else value


def parse_feature(record: Feature | Mapping[str, Any], index: int | None = None) -> Feature:
    """
    Convert a feature record into a Feature.

    Feature instances are validated the same way as dicts and come back as a
    new, normalized Feature; the instance passed in is not modified.

    Raises:
        InvalidFeatureError: If the record is not a mapping or fails validation.
    """
    if isinstance(record, Feature):
        record = _feature_fields(record)

    where = f"Feature record {index}" if index is not None else "Feature record"

    if not isinstance(record, Mapping):
        raise InvalidFeatureError(
            f"{where} must be a mapping, got {type(record).__name__}",
            index=index,
        )

    try:
        model = FeatureRecord.model_validate(dict(record))
    except ValidationError as e:
        raise InvalidFeatureError(
            f"{where} is invalid: {e.error_count()} validation error(s)",
            index=index,
            errors=e.errors(include_url=False, include_context=False),
        ) from e

    return Feature(
        id=model.id,
        dependencies=model.dependencies,
        status=model.status,
        title=model.title,
        description=model.description,
        summary=model.summary,
        category=model.category,
        priority=model.priority,
        extras=dict(model.model_extra or {}),
    )


def _feature_fields(feature: Feature) -> dict[str, Any]:
    # Raw attribute values, so a wrongly-typed field reaches validation as-is
    data = dict(feature.extras or {})
    data.update(
        id=feature.id,
        dependencies=feature.dependencies,
        status=feature.status,
        title=feature.title,
        description=feature.description,
        summary=feature.summary,
        category=feature.category,
        priority=feature.priority,
    )
    return data


def parse_features(records: Iterable[Feature | Mapping[str, Any]]) -> list[Feature]:
    """
    Validate a whole feature list.

    Raises:
        InvalidFeatureError: If any record is malformed.
        DuplicateFeatureError: If a feature id occurs more than once.
    """
    features = [parse_feature(record, index) for index, record in enumerate(records)]

    seen: set[str] = set()
    duplicates: list[str] = []
    for feature in features:
        if feature.id in seen and feature.id not in duplicates:
            duplicates.append(feature.id)
        seen.add(feature.id)

    if duplicates:
        raise DuplicateFeatureError(duplicates)

    return features


def index_features(records: Iterable[Feature | Mapping[str, Any]]) -> dict[str, Feature]:
    """Validate a feature list and key it by id, preserving input order."""
    return {feature.id: feature for feature in parse_features(records)}


# =============================================================================
# Response Schemas
# =============================================================================

class DependencyNodeResponse(BaseModel):
    """One node of a dependency graph response."""

    feature_id: str
    title: str | None = None
    status: FeatureStatus | None = None
    dependencies: list[str] = Field(default_factory=list)
    dependents: list[str] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: DependencyNode) -> DependencyNodeResponse:
        return cls(
            feature_id=node.feature_id,
            title=node.title,
            status=node.status,
            dependencies=list(node.dependencies),
            dependents=list(node.dependents),
        )


class DependencyGraphResponse(BaseModel):
    """
    Response schema for a complete dependency graph.

    Example:
        {
            "nodes": {"feature-auth": {"feature_id": "feature-auth", ...}},
            "execution_order": ["feature-auth", "feature-api"],
            "has_cycles": false,
            "cycles": [],
            "dangling": {}
        }
    """

    nodes: dict[str, DependencyNodeResponse] = Field(default_factory=dict)
    execution_order: list[str] = Field(
        default_factory=list,
        description="Topologically sorted feature ids"
    )
    has_cycles: bool = False
    cycles: list[list[str]] = Field(
        default_factory=list,
        description="Detected circular dependencies, each closed on its first id"
    )
    dangling: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Dependency ids that match no feature, keyed by declaring feature"
    )

    @classmethod
    def from_graph(cls, graph: DependencyGraph) -> DependencyGraphResponse:
        return cls(
            nodes={
                feature_id: DependencyNodeResponse.from_node(node)
                for feature_id, node in graph.nodes.items()
            },
            execution_order=list(graph.execution_order),
            has_cycles=graph.has_cycles,
            cycles=[list(cycle) for cycle in graph.cycles],
            dangling={
                feature_id: list(missing)
                for feature_id, missing in graph.dangling.items()
            },
        )
