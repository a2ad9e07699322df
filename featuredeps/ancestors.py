"""
Ancestor Context
================

Collects every feature a given feature transitively depends on and renders
them as a compact prompt block, so the coding agent knows what was already
built underneath it.

Usage:
    from featuredeps import resolve_dependencies, get_ancestors

    graph = resolve_dependencies(features)
    context = get_ancestors("feature-ui", graph)
    prompt = base_prompt + "\\n\\n" + context.formatted
"""
from __future__ import annotations

import re
from collections import deque

from featuredeps.config import get_settings, require_positive_limit
from featuredeps.models import AncestorContext, AncestorSummary, DependencyGraph


# =============================================================================
# Constants
# =============================================================================

CONTEXT_HEADER = "## Ancestor Feature Context"
CONTEXT_INTRO = "This feature builds on the following features:"

# Ellipsis suffix when truncation occurs
ELLIPSIS = "..."

TRUNCATED_MARKER = "\n... (ancestor context truncated)"

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# Ancestor Resolution
# =============================================================================

def get_ancestors(
    feature_id: str,
    graph: DependencyGraph,
    *,
    max_depth: int | None = None,
) -> AncestorContext:
    """
    Collect the transitive dependencies of a feature.

    Breadth-first from the feature, visiting each node's dependencies in
    declared order, so direct dependencies come first. Every ancestor is
    listed once and the walk terminates on cyclic graphs. Dangling ids are
    skipped.

    Args:
        feature_id: The feature whose ancestors are wanted
        graph: Graph from resolve_dependencies()
        max_depth: Optional limit (1 = direct dependencies only)

    Returns:
        AncestorContext with ancestors and the formatted prompt block.
        Empty when feature_id is not in the graph.
    """
    if feature_id not in graph.nodes:
        return AncestorContext(feature_id=feature_id)

    ancestors: list[AncestorSummary] = []
    visited: set[str] = {feature_id}
    queue: deque[tuple[str, int]] = deque([(feature_id, 0)])

    while queue:
        current_id, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue

        for dep_id in graph.nodes[current_id].dependencies:
            if dep_id in visited:
                continue
            visited.add(dep_id)

            node = graph.nodes.get(dep_id)
            if node is None:
                continue

            ancestors.append(AncestorSummary(
                id=node.feature_id,
                title=node.title,
                status=node.status,
                description=node.description,
                summary=node.summary,
                depth=depth + 1,
            ))
            queue.append((dep_id, depth + 1))

    context = AncestorContext(feature_id=feature_id, ancestors=ancestors)
    return AncestorContext(
        feature_id=feature_id,
        ancestors=ancestors,
        formatted=format_ancestor_context_for_prompt(context),
    )


# =============================================================================
# Prompt Formatting
# =============================================================================

def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return text[:limit]
    return text[:limit - len(ELLIPSIS)].rstrip() + ELLIPSIS


def _format_entry(ancestor: AncestorSummary, max_description_chars: int) -> str:
    status = ancestor.status.value if ancestor.status else "unknown"
    if ancestor.title:
        line = f"- **{ancestor.title}** (`{ancestor.id}`, {status})"
    else:
        line = f"- `{ancestor.id}` ({status})"

    text = ancestor.summary or ancestor.description
    if text:
        text = _WHITESPACE.sub(" ", text).strip()
        if text:
            line += f": {_truncate(text, max_description_chars)}"

    return line


def format_ancestor_context_for_prompt(
    context: AncestorContext,
    *,
    max_ancestors: int | None = None,
    max_chars: int | None = None,
    max_description_chars: int | None = None,
) -> str:
    """
    Render ancestors as a bounded markdown block for an agent prompt.

    Each ancestor is one line carrying its title, id, status and either its
    completion summary or, failing that, its description. Limits default to
    the FEATUREDEPS_PROMPT_* settings.

    Returns:
        The formatted block, or an empty string when there are no ancestors.

    Raises:
        InvalidSettingError: If an explicit limit is not a positive integer.

    Examples:
        >>> format_ancestor_context_for_prompt(AncestorContext(feature_id="x"))
        ''
    """
    settings = get_settings()
    max_ancestors = _limit("max_ancestors", max_ancestors, settings.prompt_max_ancestors)
    max_chars = _limit("max_chars", max_chars, settings.prompt_max_chars)
    max_description_chars = _limit(
        "max_description_chars", max_description_chars, settings.prompt_max_description_chars
    )

    if not context.ancestors:
        return ""

    shown = context.ancestors[:max_ancestors]
    omitted = len(context.ancestors) - len(shown)

    lines = [CONTEXT_HEADER, "", CONTEXT_INTRO, ""]
    lines.extend(_format_entry(ancestor, max_description_chars) for ancestor in shown)
    if omitted > 0:
        lines.append(f"- ... and {omitted} more ancestor features omitted")

    block = "\n".join(lines)
    if len(block) <= max_chars:
        return block

    if max_chars <= len(TRUNCATED_MARKER):
        return block[:max_chars]
    return block[:max_chars - len(TRUNCATED_MARKER)].rstrip() + TRUNCATED_MARKER


def _limit(name: str, value: int | None, default: int) -> int:
    if value is None:
        return default
    return require_positive_limit(name, value)
