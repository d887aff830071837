"""Post-validation rewriting of params into their internal representation.

Runs on data the validator has accepted. Two walks are made over the data:

1. Renaming and substitution. Each declared field present in the data is
   moved to its ``as_`` name, nested values are transformed recursively, and
   then the field's ``store`` value or ``transform`` callable is applied.
2. Discriminator retargeting. For union payloads whose union declares a
   ``tag_mapping``, the discriminator value is replaced by its mapped storage
   value (for example ``"card"`` becoming ``"CardPayment"``).

Undeclared keys are carried over untouched.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict

from .primitives import is_mapping, is_sequence
from .registry import EMPTY_RESOLVER, ScopeResolver
from .shapes import (
    MISSING,
    ArrayOf,
    Content,
    ObjectOf,
    ParamSpec,
    Reference,
    Shape,
    UnionOf,
    UnionSpec,
    to_text,
)

logger = logging.getLogger(__name__)


class Transformer:
    """Applies renames, substitutions and discriminator mappings."""

    def __init__(self, resolver: ScopeResolver | None = None):
        self.resolver = resolver or EMPTY_RESOLVER

    def transform(self, shape: Shape, data: Any) -> Any:
        """Transform a mapping described by ``shape``.

        Args:
            shape: Shape the data was validated against
            data: Validated params

        Returns:
            A new mapping keyed by output names
        """
        transformed = self._apply_shape(shape, data)
        return self._retarget_shape(shape, transformed)

    # Renaming and substitution

    def _apply_shape(self, shape: Shape, data: Any) -> Any:
        if not is_mapping(data):
            return data

        transformed: Dict[Any, Any] = dict(data)
        for spec in shape:
            if spec.name not in transformed:
                continue
            value = transformed.pop(spec.name)
            transformed[spec.output_name] = self._apply_spec(spec, value)
        return transformed

    def _apply_spec(self, spec: ParamSpec, value: Any) -> Any:
        value = self._apply_content(spec.content, value)
        if spec.store is not MISSING:
            return copy.deepcopy(spec.store)
        if spec.transform is not None and value is not None:
            return spec.transform(value)
        return value

    def _apply_content(self, content: Content, value: Any) -> Any:
        if value is None:
            return None

        if isinstance(content, ObjectOf):
            return self._apply_shape(content.shape, value)

        if isinstance(content, ArrayOf):
            if content.of is None or not is_sequence(value):
                return value
            return [self._apply_spec(content.of, item) for item in value]

        if isinstance(content, UnionOf):
            return self._apply_union(content.union, value)

        if isinstance(content, Reference):
            registration = self.resolver.resolve(content.name)
            if registration is None:
                logger.debug(f"Unresolved type '{content.name}', value left as-is")
                return value
            if registration.is_union:
                return self._apply_union(registration.payload, value)  # type: ignore[arg-type]
            return self._apply_shape(registration.payload, value)  # type: ignore[arg-type]

        return value

    def _apply_union(self, union: UnionSpec, value: Any) -> Any:
        variant = self.resolver.select_variant(union, value)
        if variant is None:
            return value
        return self._apply_content(variant.content, value)

    # Discriminator retargeting

    def _retarget_shape(self, shape: Shape, data: Any) -> Any:
        if not is_mapping(data):
            return data

        retargeted = dict(data)
        for spec in shape:
            key = spec.output_name
            if key in retargeted:
                retargeted[key] = self._retarget_content(spec.content, retargeted[key])
        return retargeted

    def _retarget_content(self, content: Content, value: Any) -> Any:
        if value is None:
            return None

        if isinstance(content, ObjectOf):
            return self._retarget_shape(content.shape, value)

        if isinstance(content, ArrayOf):
            if content.of is None or not is_sequence(value):
                return value
            return [self._retarget_content(content.of.content, item) for item in value]

        if isinstance(content, UnionOf):
            return self._retarget_union(content.union, value)

        if isinstance(content, Reference):
            registration = self.resolver.resolve(content.name)
            if registration is None:
                return value
            if registration.is_union:
                return self._retarget_union(registration.payload, value)  # type: ignore[arg-type]
            return self._retarget_shape(registration.payload, value)  # type: ignore[arg-type]

        return value

    def _retarget_union(self, union: UnionSpec, value: Any) -> Any:
        variant = self.resolver.select_variant(union, value, renamed=True)
        if variant is None:
            return value

        retargeted = self._retarget_content(variant.content, value)
        discriminator = union.discriminator
        if discriminator is None or not union.tag_mapping or not is_mapping(retargeted):
            return retargeted
        if discriminator not in retargeted:
            return retargeted

        mapped = _map_tag(union.tag_mapping, retargeted[discriminator])
        if mapped is MISSING:
            return retargeted
        retargeted = dict(retargeted)
        retargeted[discriminator] = mapped
        return retargeted


def _map_tag(tag_mapping: Any, tag: Any) -> Any:
    wanted = to_text(tag)
    for candidate, mapped in tag_mapping.items():
        if to_text(candidate) == wanted:
            return mapped
    return MISSING


def transform(shape: Shape, data: Any, resolver: ScopeResolver | None = None) -> Any:
    """Transform with a one-off Transformer."""
    return Transformer(resolver).transform(shape, data)
