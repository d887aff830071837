"""Issue values: the failure currency shared by every pass.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PathSegment = Union[str, int]


class IssueCode(str, Enum):
    """Fixed taxonomy of validation issue codes."""

    FIELD_MISSING = "field_missing"
    FIELD_UNKNOWN = "field_unknown"
    VALUE_INVALID = "value_invalid"
    VALUE_NULL = "value_null"
    TYPE_INVALID = "type_invalid"
    STRING_TOO_SHORT = "string_too_short"
    STRING_TOO_LONG = "string_too_long"
    NUMBER_TOO_SMALL = "number_too_small"
    NUMBER_TOO_LARGE = "number_too_large"
    ARRAY_TOO_SMALL = "array_too_small"
    ARRAY_TOO_LARGE = "array_too_large"
    DEPTH_EXCEEDED = "depth_exceeded"


ISSUE_DETAILS: Dict[IssueCode, str] = {
    IssueCode.ARRAY_TOO_LARGE: "Too many items",
    IssueCode.ARRAY_TOO_SMALL: "Too few items",
    IssueCode.DEPTH_EXCEEDED: "Too deeply nested",
    IssueCode.FIELD_MISSING: "Required",
    IssueCode.FIELD_UNKNOWN: "Unknown field",
    IssueCode.NUMBER_TOO_LARGE: "Too large",
    IssueCode.NUMBER_TOO_SMALL: "Too small",
    IssueCode.STRING_TOO_LONG: "Too long",
    IssueCode.STRING_TOO_SHORT: "Too short",
    IssueCode.TYPE_INVALID: "Invalid type",
    IssueCode.VALUE_INVALID: "Invalid value",
    IssueCode.VALUE_NULL: "Cannot be null",
}


@dataclass(frozen=True)
class Issue:
    """A single structured validation failure.

    Attributes:
        code: Issue code from the fixed taxonomy
        detail: Human readable detail (overridable through a MessageCatalog)
        path: Ordered field path, e.g. ``("filter", "age")`` or ``("items", 2)``
        meta: Structured facts such as expected/actual values and bounds
    """

    code: IssueCode
    detail: str
    path: Tuple[PathSegment, ...] = ()
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def pointer(self) -> str:
        """The path rendered as a JSON pointer (``/filter/age``)."""
        if not self.path:
            return ""
        return "".join(
            "/" + str(segment).replace("~", "~0").replace("/", "~1")
            for segment in self.path
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary."""
        return {
            "code": self.code.value,
            "detail": self.detail,
            "path": list(self.path),
            "pointer": self.pointer,
            "meta": dict(self.meta),
        }

    def __str__(self) -> str:
        location = ".".join(str(segment) for segment in self.path) or "<root>"
        return f"{location}: {self.detail} ({self.code.value})"


class MessageCatalog:
    """Detail lookup by issue code and optional locale.

    Overrides are keyed by locale first, with ``None`` (or ``"default"`` when
    loaded from a file) holding locale-less entries. Lookups fall back to the
    locale-less overrides and then to :data:`ISSUE_DETAILS`.

    Example:
        ```python
        catalog = MessageCatalog({"de": {"field_missing": "Pflichtfeld"}})
        catalog.detail(IssueCode.FIELD_MISSING, locale="de")
        # 'Pflichtfeld'
        catalog.detail(IssueCode.FIELD_MISSING)
        # 'Required'
        ```
    """

    def __init__(self, overrides: Mapping[str | None, Mapping[str, str]] | None = None):
        self._overrides: Dict[str | None, Dict[str, str]] = {}
        for locale, details in (overrides or {}).items():
            key = None if locale in (None, "default") else locale
            self._overrides[key] = {str(code): str(detail) for code, detail in details.items()}

    def detail(self, code: IssueCode, locale: str | None = None) -> str:
        """Return the detail string for a code."""
        if locale is not None:
            localized = self._overrides.get(locale, {}).get(code.value)
            if localized is not None:
                return localized

        fallback = self._overrides.get(None, {}).get(code.value)
        if fallback is not None:
            return fallback

        return ISSUE_DETAILS[code]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> MessageCatalog:
        """Load overrides from a YAML or JSON file.

        Args:
            path: Path to a ``locale -> code -> detail`` mapping

        Returns:
            MessageCatalog instance

        Raises:
            ConfigurationError: If the file is missing or has an unsupported format
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigurationError(
                f"Message catalog not found: {path}", context={"path": str(path)}
            )

        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f) or {}
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported file format: {suffix}", context={"path": str(path)}
                )

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Message catalog must be a mapping of locale to details",
                context={"path": str(path)},
            )

        logger.debug(f"Loaded message catalog from {path} ({len(data)} locale(s))")
        return cls(data)


DEFAULT_CATALOG = MessageCatalog()
