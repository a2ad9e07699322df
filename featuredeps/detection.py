"""
Dependency Detection
====================

Suggests dependencies for a feature by scanning its description and spec for
references to other features.

Recognized references (case-insensitive):
- Feature ids: "feature-auth"
- Hash references: "#auth" (resolved as "feature-auth")
- Keyword phrases: "depends on X", "requires X", "needs X", "after X", where
  X is a feature id, an id without its "feature-" prefix, or a feature title

Usage:
    from featuredeps.detection import detect_dependencies

    detected = detect_dependencies(
        "feature-ui",
        "Build the UI. Requires Authentication System to be complete.",
        None,
        all_features,
    )
    # Returns: ["feature-auth"]
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from featuredeps.models import Feature
from featuredeps.schemas import parse_features

_logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

FEATURE_ID_PATTERN = re.compile(r"feature-[a-z0-9-]+")
HASH_REFERENCE_PATTERN = re.compile(r"#([a-z0-9-]+)")

DEPENDENCY_KEYWORDS = ("depends on", "requires", "needs", "after")

# Reference text after a keyword runs until a sentence/clause boundary
KEYWORD_REFERENCE_PATTERN = re.compile(
    r"^(the\s+)?([a-z0-9\s-]+?)(\s+(feature|to be|before)|\.| to |,|$)"
)

FEATURE_ID_PREFIX = "feature-"


def _build_lookup(feature_id: str, features: list[Feature]) -> dict[str, str]:
    """Map lowercased ids and titles of every other feature to their id."""
    lookup: dict[str, str] = {}
    for feature in features:
        if feature.id == feature_id:
            continue
        lookup[feature.id.lower()] = feature.id
        if feature.title:
            lookup[feature.title.lower()] = feature.id
    return lookup


def detect_dependencies(
    feature_id: str,
    description: str,
    spec: str | None,
    all_features: Iterable[Feature | Mapping[str, Any]],
) -> list[str]:
    """
    Detect likely dependencies from free text.

    Args:
        feature_id: The feature being analysed (never returned)
        description: Feature description
        spec: Optional feature spec text
        all_features: Known features to match references against

    Returns:
        Ids of referenced features, in the order first found, without
        duplicates. Empty when nothing matches.
    """
    lookup = _build_lookup(feature_id, parse_features(all_features))
    text = f"{description or ''} {spec or ''}".lower()

    found: dict[str, None] = {}

    for match in FEATURE_ID_PATTERN.findall(text):
        actual_id = lookup.get(match)
        if actual_id:
            found[actual_id] = None

    for ref in HASH_REFERENCE_PATTERN.findall(text):
        actual_id = lookup.get(f"{FEATURE_ID_PREFIX}{ref}")
        if actual_id:
            found[actual_id] = None

    for keyword in DEPENDENCY_KEYWORDS:
        idx = text.find(keyword)
        if idx == -1:
            continue

        after_keyword = text[idx + len(keyword):].strip()
        match = KEYWORD_REFERENCE_PATTERN.match(after_keyword)
        if not match:
            continue

        ref_text = match.group(2).strip()
        actual_id = lookup.get(ref_text) or lookup.get(f"{FEATURE_ID_PREFIX}{ref_text}")
        if actual_id:
            found[actual_id] = None

    detected = list(found)
    if detected:
        _logger.info(
            "Detected %d dependencies for %s: %s",
            len(detected), feature_id, ", ".join(detected),
        )
    return detected
