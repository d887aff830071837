"""Decode hooks for outgoing values.

The deserializer walks domain values with a shape and lets each field's
``attribute`` descriptor decode its value before nested values are visited.
It performs no checks of its own; pair it with the validator when response
data must be verified.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from .primitives import is_mapping, is_sequence
from .registry import EMPTY_RESOLVER, ScopeResolver
from .shapes import ArrayOf, Content, ObjectOf, ParamSpec, Reference, Shape, UnionOf, UnionSpec

logger = logging.getLogger(__name__)


@runtime_checkable
class AttributeDescriptor(Protocol):
    """External description of a stored attribute.

    ``decode`` turns a stored value into its wire value; ``encode`` is the
    reverse and is used by renderers outside this package.
    """

    def decode(self, value: Any) -> Any:
        ...

    def encode(self, value: Any) -> Any:
        ...


class Deserializer:
    """Runs attribute decode hooks over a value tree."""

    def __init__(self, resolver: ScopeResolver | None = None):
        self.resolver = resolver or EMPTY_RESOLVER

    def deserialize(self, shape: Shape, data: Any) -> Any:
        """Decode the declared fields of a mapping; other input is returned as-is."""
        if not is_mapping(data):
            return data

        decoded = dict(data)
        for spec in shape:
            if spec.name in decoded:
                decoded[spec.name] = self._deserialize_spec(spec, decoded[spec.name])
        return decoded

    def _deserialize_spec(self, spec: ParamSpec, value: Any) -> Any:
        decode = getattr(spec.attribute, "decode", None)
        if decode is not None and value is not None:
            value = decode(value)
        return self._deserialize_content(spec.content, value)

    def _deserialize_content(self, content: Content, value: Any) -> Any:
        if value is None:
            return None

        if isinstance(content, ObjectOf):
            return self.deserialize(content.shape, value)

        if isinstance(content, ArrayOf):
            if content.of is None or not is_sequence(value):
                return value
            return [self._deserialize_spec(content.of, item) for item in value]

        if isinstance(content, UnionOf):
            return self._deserialize_union(content.union, value)

        if isinstance(content, Reference):
            registration = self.resolver.resolve(content.name)
            if registration is None:
                logger.debug(f"Unresolved type '{content.name}', value left as-is")
                return value
            if registration.is_union:
                return self._deserialize_union(registration.payload, value)  # type: ignore[arg-type]
            return self.deserialize(registration.payload, value)  # type: ignore[arg-type]

        return value

    def _deserialize_union(self, union: UnionSpec, value: Any) -> Any:
        variant = self.resolver.select_variant(union, value)
        if variant is None:
            return value
        return self._deserialize_content(variant.content, value)


def deserialize(shape: Shape, data: Any, resolver: ScopeResolver | None = None) -> Any:
    """Deserialize with a one-off Deserializer."""
    return Deserializer(resolver).deserialize(shape, data)
