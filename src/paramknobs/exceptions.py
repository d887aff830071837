"""Exception hierarchy for paramknobs.

Input problems are never raised: they are reported as
:class:`~paramknobs.issues.Issue` values on a
:class:`~paramknobs.result.ValidationResult`. The exceptions here cover the
small set of programmer errors that surface while a schema is being declared
or loaded, so misconfiguration is caught at boot rather than per request.

Example:
    ```python
    from paramknobs.exceptions import ParamknobsError, SchemaDefinitionError

    try:
        ShapeBuilder().literal("kind").build()
    except SchemaDefinitionError as e:
        logger.error(f"Error: {e}")
        logger.error(f"Context: {e.context}")
    ```
"""

from __future__ import annotations

from typing import Any, Dict, List


class ParamknobsError(Exception):
    """Base exception for all paramknobs errors.

    Attributes:
        context: Dictionary containing contextual information about the error

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context (field names, types, etc.)

    Example:
        ```python
        error = ParamknobsError(
            "Operation failed",
            context={"field": "status", "scope": "global"}
        )
        str(error)
        # 'Operation failed'
        error.context
        # {'field': 'status', 'scope': 'global'}
        ```
    """

    def __init__(self, message: str, context: Dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class SchemaDefinitionError(ParamknobsError):
    """Raised when a shape, param or union is declared incorrectly.

    Common scenarios include:
    - A literal param declared without its value
    - A discriminated union variant without a tag
    - Duplicate field names or duplicate registrations in one scope
    - Bounds where min is greater than max

    Example:
        ```python
        raise SchemaDefinitionError(
            "Literal param requires a value",
            context={"field": "kind"}
        )
        ```
    """

    pass


class ConfigurationError(ParamknobsError):
    """Raised when settings or a schema document are invalid or missing.

    Example:
        ```python
        raise ConfigurationError(
            "Schema file not found",
            context={"path": "/app/schemas/invoice.yaml"}
        )
        ```
    """

    pass


class NotFoundError(ParamknobsError):
    """Raised when a requested definition is not registered.

    Example:
        ```python
        raise NotFoundError(
            "Definition not found",
            context={"contract": "invoice", "action": "create", "direction": "request"}
        )
        ```
    """

    pass


class ParamValidationError(ParamknobsError):
    """Raised on request when a validation result carries issues.

    The validator itself never raises; this exists for callers that prefer
    exception flow, via :meth:`ValidationResult.raise_for_issues`.

    Attributes:
        issues: The issues of the failed result
    """

    def __init__(self, issues: List[Any], message: str | None = None):
        self.issues = list(issues)
        super().__init__(
            message or f"Validation failed with {len(self.issues)} issue(s)",
            context={"issues": [issue.to_dict() for issue in self.issues]},
        )


__all__ = [
    "ParamknobsError",
    "SchemaDefinitionError",
    "ConfigurationError",
    "NotFoundError",
    "ParamValidationError",
]
