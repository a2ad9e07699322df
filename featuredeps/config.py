"""
Resolver Configuration
======================

Environment variable configuration for the dependency resolver.

Usage:
    from featuredeps.config import get_settings

    settings = get_settings()
    if settings.cycle_order_policy is CycleOrderPolicy.EMPTY:
        print("Cyclic graphs get an empty execution order")

Environment variables:
- FEATUREDEPS_CYCLE_ORDER_POLICY: "partial" (default) or "empty"
- FEATUREDEPS_PROMPT_MAX_ANCESTORS: ancestors rendered into a prompt (default 20)
- FEATUREDEPS_PROMPT_MAX_CHARS: hard limit for the ancestor block (default 8000)
- FEATUREDEPS_PROMPT_MAX_DESCRIPTION_CHARS: per-ancestor text limit (default 500)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

from featuredeps.exceptions import InvalidSettingError

_logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

CYCLE_ORDER_POLICY_ENV = "FEATUREDEPS_CYCLE_ORDER_POLICY"
PROMPT_MAX_ANCESTORS_ENV = "FEATUREDEPS_PROMPT_MAX_ANCESTORS"
PROMPT_MAX_CHARS_ENV = "FEATUREDEPS_PROMPT_MAX_CHARS"
PROMPT_MAX_DESCRIPTION_CHARS_ENV = "FEATUREDEPS_PROMPT_MAX_DESCRIPTION_CHARS"

DEFAULT_PROMPT_MAX_ANCESTORS = 20
DEFAULT_PROMPT_MAX_CHARS = 8000
DEFAULT_PROMPT_MAX_DESCRIPTION_CHARS = 500


class CycleOrderPolicy(str, Enum):
    """
    What execution_order holds when the graph contains a cycle.

    PARTIAL keeps every feature Kahn's algorithm could still emit, i.e. all
    features that are neither on a cycle nor downstream of one.
    EMPTY discards the order entirely.
    """

    PARTIAL = "partial"
    EMPTY = "empty"


DEFAULT_CYCLE_ORDER_POLICY = CycleOrderPolicy.PARTIAL


@dataclass(frozen=True)
class ResolverSettings:
    """Resolved configuration values."""

    cycle_order_policy: CycleOrderPolicy = DEFAULT_CYCLE_ORDER_POLICY
    prompt_max_ancestors: int = DEFAULT_PROMPT_MAX_ANCESTORS
    prompt_max_chars: int = DEFAULT_PROMPT_MAX_CHARS
    prompt_max_description_chars: int = DEFAULT_PROMPT_MAX_DESCRIPTION_CHARS


# =============================================================================
# Environment Variable Reading
# =============================================================================

def parse_cycle_order_policy(raw: str | None) -> CycleOrderPolicy:
    """
    Parse a cycle order policy value.

    Unknown values log a warning and fall back to the default.

    Examples:
        >>> parse_cycle_order_policy("EMPTY")
        <CycleOrderPolicy.EMPTY: 'empty'>
        >>> parse_cycle_order_policy(None)
        <CycleOrderPolicy.PARTIAL: 'partial'>
    """
    value = (raw or "").strip().lower()
    if not value:
        return DEFAULT_CYCLE_ORDER_POLICY

    try:
        return CycleOrderPolicy(value)
    except ValueError:
        _logger.warning(
            "Unknown value for %s: '%s'. Defaulting to '%s'. Valid values: %s",
            CYCLE_ORDER_POLICY_ENV,
            value,
            DEFAULT_CYCLE_ORDER_POLICY.value,
            [policy.value for policy in CycleOrderPolicy],
        )
        return DEFAULT_CYCLE_ORDER_POLICY


def coerce_cycle_order_policy(value: CycleOrderPolicy | str) -> CycleOrderPolicy:
    """
    Convert an explicitly passed cycle order policy.

    Strings are matched case-insensitively, like the environment variable,
    but unknown values raise instead of falling back to the default.

    Raises:
        InvalidSettingError: If the value names no policy.
    """
    if isinstance(value, CycleOrderPolicy):
        return value

    normalized = value.strip().lower() if isinstance(value, str) else value
    try:
        return CycleOrderPolicy(normalized)
    except ValueError:
        raise InvalidSettingError(
            "cycle_order_policy",
            value,
            f"Unknown cycle_order_policy {value!r}. "
            f"Valid values: {[policy.value for policy in CycleOrderPolicy]}",
        ) from None


def require_positive_limit(name: str, value: int) -> int:
    """
    Check an explicitly passed size limit.

    Raises:
        InvalidSettingError: If the value is not a positive integer.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidSettingError(name, value, f"{name} must be a positive integer, got {value!r}")
    return value


def _read_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer from the environment, warning on bad values."""
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError:
        _logger.warning(
            "Invalid integer for %s: '%s'. Defaulting to %d",
            env_var, raw, default,
        )
        return default

    if value < 1:
        _logger.warning(
            "%s must be positive, got %d. Defaulting to %d",
            env_var, value, default,
        )
        return default

    return value


def get_settings() -> ResolverSettings:
    """
    Read resolver settings from the environment.

    The environment is read on every call so tests and long-running callers
    see changes immediately.
    """
    return ResolverSettings(
        cycle_order_policy=parse_cycle_order_policy(
            os.environ.get(CYCLE_ORDER_POLICY_ENV)
        ),
        prompt_max_ancestors=_read_positive_int(
            PROMPT_MAX_ANCESTORS_ENV, DEFAULT_PROMPT_MAX_ANCESTORS
        ),
        prompt_max_chars=_read_positive_int(
            PROMPT_MAX_CHARS_ENV, DEFAULT_PROMPT_MAX_CHARS
        ),
        prompt_max_description_chars=_read_positive_int(
            PROMPT_MAX_DESCRIPTION_CHARS_ENV, DEFAULT_PROMPT_MAX_DESCRIPTION_CHARS
        ),
    )
