"""Per-tag structural checks and best-effort parsers for primitive values.

Parsers return ``None`` when a value cannot be parsed; they never raise, so
the coercer can leave the original value in place and let the validator
report a clean ``type_invalid``.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping

from .shapes import PrimitiveType

UUID_PATTERN = re.compile(
    r"\A[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\Z", re.IGNORECASE
)
INTEGER_PATTERN = re.compile(r"\A-?\d+\Z")
TIME_PATTERN = re.compile(r"\A\d{2}:\d{2}(:\d{2})?\Z")

TRUE_TOKENS = frozenset({"true", "1", "yes"})
FALSE_TOKENS = frozenset({"false", "0", "no"})

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
]

DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y/%m/%d %H:%M:%S",
]


def is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_finite(value: Any) -> bool:
    """False for NaN and infinities of float or Decimal values."""
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return True


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def type_name_of(value: Any) -> str:
    """Wire-level name of a value's type, used in ``meta.actual``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, Decimal):
        return "decimal"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    if isinstance(value, time):
        return "time"
    if isinstance(value, uuid.UUID):
        return "uuid"
    return type(value).__name__.lower()


def matches(primitive: PrimitiveType, value: Any) -> bool:
    """Structural check of a value against a primitive tag."""
    if primitive is PrimitiveType.STRING:
        return isinstance(value, str)
    if primitive is PrimitiveType.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if primitive in (PrimitiveType.NUMBER, PrimitiveType.DECIMAL):
        return is_numeric(value) and is_finite(value)
    if primitive is PrimitiveType.BOOLEAN:
        return isinstance(value, bool)
    if primitive is PrimitiveType.DATE:
        return isinstance(value, date) and not isinstance(value, datetime)
    if primitive is PrimitiveType.DATETIME:
        return isinstance(value, datetime)
    if primitive is PrimitiveType.TIME:
        return isinstance(value, time)
    if primitive is PrimitiveType.UUID:
        if isinstance(value, uuid.UUID):
            return True
        return isinstance(value, str) and UUID_PATTERN.match(value) is not None
    return True


def parse_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    return None


def parse_integer(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())
    return None


def parse_number(value: Any) -> int | float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value if is_finite(value) else None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_decimal(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def parse_string(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return None


def parse_date(value: Any) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    # Try parsing as ISO format
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_time(value: Any) -> time | None:
    if isinstance(value, time):
        return value
    if isinstance(value, str) and TIME_PATTERN.match(value.strip()):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def parse_uuid(value: Any) -> str | None:
    if isinstance(value, str) and UUID_PATTERN.match(value):
        return value
    return None


PRIMITIVE_PARSERS: Dict[PrimitiveType, Callable[[Any], Any]] = {
    PrimitiveType.BOOLEAN: parse_boolean,
    PrimitiveType.DATE: parse_date,
    PrimitiveType.DATETIME: parse_datetime,
    PrimitiveType.DECIMAL: parse_decimal,
    PrimitiveType.INTEGER: parse_integer,
    PrimitiveType.NUMBER: parse_number,
    PrimitiveType.STRING: parse_string,
    PrimitiveType.TIME: parse_time,
    PrimitiveType.UUID: parse_uuid,
}


def parse(primitive: PrimitiveType, value: Any) -> Any:
    """Parse a value for a primitive tag, or None when it cannot be parsed."""
    if value is None:
        return None
    parser = PRIMITIVE_PARSERS.get(primitive)
    if parser is None:
        return None
    return parser(value)
