"""
Resolver Error Handling
=======================

Exception types raised for invalid resolver input.

Structural problems in a dependency graph (cycles, dangling references,
self-references) are reported as data on the returned graph or validation
result. Exceptions are reserved for input that cannot be turned into a graph
at all.

Error Codes:
- INVALID_FEATURE: A feature record is malformed (missing id, bad status, ...)
- DUPLICATE_FEATURE: Two records share the same feature id
- INVALID_SETTING: An explicit resolver option has an unusable value
"""

from typing import Any


class ErrorCode:
    """
    Machine-readable error codes carried by resolver exceptions.

    Callers (e.g. the route layer) can map these to user-facing messages.
    """
    INVALID_FEATURE = "INVALID_FEATURE"
    DUPLICATE_FEATURE = "DUPLICATE_FEATURE"
    INVALID_SETTING = "INVALID_SETTING"


class ResolverError(Exception):
    """
    Base class for all resolver exceptions.

    All custom resolver exceptions should inherit from this class.
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a JSON-serializable error payload."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidFeatureError(ResolverError):
    """
    A feature record could not be validated.

    Example:
        raise InvalidFeatureError(
            "Feature record 2 is invalid",
            index=2,
            errors=[{"loc": ["id"], "msg": "Field required"}],
        )
    """

    def __init__(
        self,
        message: str,
        index: int | None = None,
        errors: list[dict[str, Any]] | None = None
    ):
        details: dict[str, Any] = {}
        if index is not None:
            details["index"] = index
        if errors:
            details["errors"] = errors

        super().__init__(
            error_code=ErrorCode.INVALID_FEATURE,
            message=message,
            details=details or None
        )
        self.index = index
        self.errors = errors or []


class DuplicateFeatureError(ResolverError):
    """
    The same feature id appears more than once in one resolution call.

    Example:
        raise DuplicateFeatureError(["feature-auth"])
        # message: "Duplicate feature ids: feature-auth"
    """

    def __init__(self, feature_ids: list[str]):
        self.feature_ids = list(feature_ids)
        super().__init__(
            error_code=ErrorCode.DUPLICATE_FEATURE,
            message=f"Duplicate feature ids: {', '.join(self.feature_ids)}",
            details={"feature_ids": self.feature_ids}
        )


class InvalidSettingError(ResolverError):
    """
    An option passed explicitly to a resolver function is unusable.

    Environment values never raise; they fall back to defaults instead.

    Example:
        raise InvalidSettingError("max_chars", 0, "max_chars must be positive, got 0")
    """

    def __init__(self, setting: str, value: Any, message: str):
        self.setting = setting
        self.value = value
        super().__init__(
            error_code=ErrorCode.INVALID_SETTING,
            message=message,
            details={"setting": setting, "value": repr(value)}
        )
