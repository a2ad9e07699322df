"""
featuredeps
===========

Feature dependency resolution: dependency graphs, cycle detection, execution
ordering, satisfaction checks and ancestor context for agent prompts.
"""

from featuredeps.ancestors import format_ancestor_context_for_prompt, get_ancestors
from featuredeps.config import CycleOrderPolicy, ResolverSettings, get_settings
from featuredeps.detection import detect_dependencies
from featuredeps.exceptions import (
    DuplicateFeatureError,
    InvalidFeatureError,
    InvalidSettingError,
    ResolverError,
)
from featuredeps.graph import (
    dependency_exists,
    detect_cycles,
    get_execution_order,
    resolve_dependencies,
    topological_sort,
    would_create_circular_dependency,
)
from featuredeps.models import (
    TERMINAL_STATUSES,
    AncestorContext,
    AncestorSummary,
    BlockingDependency,
    DependencyGraph,
    DependencyNode,
    Feature,
    FeatureStatus,
    is_terminal,
)
from featuredeps.satisfaction import (
    BlockedFeature,
    DependencyValidation,
    are_dependencies_satisfied,
    get_blocked_features,
    get_blocking_dependencies,
    get_ready_features,
    validate_dependencies,
)
from featuredeps.schemas import (
    DependencyGraphResponse,
    DependencyNodeResponse,
    FeatureRecord,
    parse_feature,
    parse_features,
)
from featuredeps.validation import (
    DependencyIssue,
    RepairResult,
    ValidationResult,
    format_health_report,
    repair_features,
    validate_dependency_graph,
)

__all__ = [
    # Data model
    "Feature",
    "FeatureStatus",
    "TERMINAL_STATUSES",
    "is_terminal",
    "DependencyNode",
    "DependencyGraph",
    "BlockingDependency",
    "BlockedFeature",
    "AncestorSummary",
    "AncestorContext",
    # Graph
    "resolve_dependencies",
    "topological_sort",
    "detect_cycles",
    "would_create_circular_dependency",
    "dependency_exists",
    "get_execution_order",
    # Satisfaction
    "are_dependencies_satisfied",
    "get_blocking_dependencies",
    "validate_dependencies",
    "DependencyValidation",
    "get_ready_features",
    "get_blocked_features",
    # Ancestors
    "get_ancestors",
    "format_ancestor_context_for_prompt",
    # Health check
    "validate_dependency_graph",
    "repair_features",
    "format_health_report",
    "DependencyIssue",
    "ValidationResult",
    "RepairResult",
    # Detection
    "detect_dependencies",
    # Schemas
    "FeatureRecord",
    "parse_feature",
    "parse_features",
    "DependencyGraphResponse",
    "DependencyNodeResponse",
    # Config
    "CycleOrderPolicy",
    "ResolverSettings",
    "get_settings",
    # Errors
    "ResolverError",
    "InvalidFeatureError",
    "DuplicateFeatureError",
    "InvalidSettingError",
]
