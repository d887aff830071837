"""Shape-directed, best-effort type coercion.

Used mostly on string-origin input (query strings) before validation. The
coercer never fails and never discards data: a value it cannot parse is left
exactly as it was, so the validator reports a clean ``type_invalid`` for it.
"""

from __future__ import annotations

import logging
from typing import Any

from .primitives import is_mapping, is_sequence, parse, parse_boolean, parse_integer, parse_number
from .registry import EMPTY_RESOLVER, ScopeResolver
from .shapes import (
    ArrayOf,
    Content,
    Literal,
    ObjectOf,
    ParamSpec,
    Primitive,
    Reference,
    Shape,
    UnionOf,
    UnionSpec,
)
from .validator import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)


class Coercer:
    """Type coercion with predictable results.

    Never raises for bad input; values that cannot be converted are returned
    unchanged. Named types resolve through the same resolver the validator
    uses for the shape.
    """

    def __init__(self, resolver: ScopeResolver | None = None):
        self.resolver = resolver or EMPTY_RESOLVER

    def coerce(self, shape: Shape, data: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
        """Coerce the declared fields of a mapping.

        Args:
            shape: Shape describing the data
            data: Input mapping; anything else is returned as-is
            max_depth: Nesting depth beyond which values pass through untouched

        Returns:
            A new mapping with coerced values (undeclared keys are kept)
        """
        return self._coerce_shape(shape, data, 0, max_depth)

    def coerce_union(self, union: UnionSpec, value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
        """Coerce a value against a union."""
        return self._coerce_union(union, value, 0, max_depth)

    def _coerce_shape(self, shape: Shape, data: Any, depth: int, max_depth: int) -> Any:
        if depth > max_depth or not is_mapping(data):
            return data

        coerced = dict(data)
        for key, value in data.items():
            spec = shape.get(str(key))
            if spec is None:
                continue
            coerced[key] = self._coerce_value(spec, value, depth, max_depth)
        return coerced

    def _coerce_value(self, spec: ParamSpec, value: Any, depth: int, max_depth: int) -> Any:
        if value is None:
            return None
        return self._coerce_content(spec.content, value, depth, max_depth)

    def _coerce_content(self, content: Content, value: Any, depth: int, max_depth: int) -> Any:
        if isinstance(content, UnionOf):
            return self._coerce_union(content.union, value, depth, max_depth)

        if isinstance(content, ArrayOf):
            if content.of is None or not is_sequence(value) or depth + 1 > max_depth:
                return value
            return [self._coerce_value(content.of, item, depth + 1, max_depth) for item in value]

        if isinstance(content, ObjectOf):
            return self._coerce_shape(content.shape, value, depth + 1, max_depth)

        if isinstance(content, Reference):
            registration = self.resolver.resolve(content.name)
            if registration is None:
                logger.debug(f"Unresolved type '{content.name}', value left as-is")
                return value
            if registration.is_union:
                return self._coerce_union(
                    registration.payload, value, depth + 1, max_depth  # type: ignore[arg-type]
                )
            return self._coerce_shape(
                registration.payload, value, depth + 1, max_depth  # type: ignore[arg-type]
            )

        if isinstance(content, Literal):
            return self._coerce_literal(content.value, value)

        parsed = parse(content.type, value)
        return value if parsed is None else parsed

    def _coerce_literal(self, expected: Any, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if isinstance(expected, bool):
            parsed = parse_boolean(value)
        elif isinstance(expected, int):
            parsed = parse_integer(value)
        elif isinstance(expected, float):
            parsed = parse_number(value)
        else:
            return value
        return value if parsed is None or parsed != expected else parsed

    def _coerce_union(self, union: UnionSpec, value: Any, depth: int, max_depth: int) -> Any:
        if value is None or depth > max_depth:
            return value

        if union.has_boolean_variant():
            parsed = parse_boolean(value)
            if parsed is not None:
                return parsed

        if is_mapping(value):
            variant = self.resolver.select_variant(union, value)
            shape = self.resolver.variant_shape(variant) if variant is not None else None
            if shape is None:
                return value
            return self._coerce_shape(shape, value, depth + 1, max_depth)

        for variant in union.variants:
            content = variant.content
            if isinstance(content, ArrayOf) and is_sequence(value):
                return self._coerce_content(content, value, depth, max_depth)
            if isinstance(content, Primitive) and not is_sequence(value):
                parsed = parse(content.type, value)
                if parsed is not None:
                    return parsed

        return value


def coerce(shape: Shape, data: Any, resolver: ScopeResolver | None = None) -> Any:
    """Coerce with a one-off Coercer."""
    return Coercer(resolver).coerce(shape, data)
