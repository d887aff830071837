"""Validation result type with consistent, predictable behavior.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .exceptions import ParamValidationError
from .issues import Issue, IssueCode


@dataclass
class ValidationResult:
    """Outcome of validating data against a shape.

    ``params`` only reflects acceptance of the complete input when ``issues``
    is empty; subtrees that failed have no entry in their parent.
    """

    issues: List[Issue] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        """True when no issues were reported."""
        return not self.issues

    @property
    def invalid(self) -> bool:
        return bool(self.issues)

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check validity."""
        return self.valid

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Combine two results, concatenating issues and params.

        Args:
            other: Another ValidationResult to merge with this one

        Returns:
            New ValidationResult with combined state
        """
        return ValidationResult(
            issues=self.issues + other.issues,
            params={**self.params, **other.params},
        )

    def codes(self) -> List[IssueCode]:
        """Issue codes in report order."""
        return [issue.code for issue in self.issues]

    def issues_at(self, *path: Any) -> List[Issue]:
        """Issues whose path equals the given path."""
        return [issue for issue in self.issues if issue.path == tuple(path)]

    def raise_for_issues(self) -> ValidationResult:
        """Raise ParamValidationError when invalid, else return self.

        Raises:
            ParamValidationError: If the result carries issues
        """
        if self.issues:
            raise ParamValidationError(self.issues)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": [issue.to_dict() for issue in self.issues],
            "params": self.params,
        }

    @classmethod
    def success(cls, params: Dict[str, Any]) -> ValidationResult:
        """Create a successful validation result."""
        return cls(issues=[], params=params)

    @classmethod
    def failure(cls, issues: List[Issue]) -> ValidationResult:
        """Create a failed validation result with empty params."""
        return cls(issues=list(issues), params={})
