"""Field declarations and the shapes built from them.

A :class:`ParamSpec` carries exactly one *content* value describing what the
field holds, plus the modifiers that apply to any field. Contents are small
frozen dataclasses, each carrying only the attributes relevant to it:

- :class:`Primitive` - a scalar tag (string, integer, date, ...)
- :class:`ObjectOf` - a nested :class:`Shape`
- :class:`ArrayOf` - an optional element spec plus item-count bounds
- :class:`UnionOf` - a :class:`UnionSpec`
- :class:`Literal` - a fixed value
- :class:`Reference` - the name of a registered type or union

Self-referential structures must use :class:`Reference`, so that the depth
bound of the validator, not structural sharing, terminates recursion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Tuple, Union

from .exceptions import SchemaDefinitionError


class _Missing:
    """Sentinel for "not configured", distinct from ``None``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class PrimitiveType(str, Enum):
    """Supported scalar tags."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    UUID = "uuid"


NUMERIC_TYPES = frozenset({PrimitiveType.INTEGER, PrimitiveType.NUMBER, PrimitiveType.DECIMAL})


@dataclass(frozen=True)
class Primitive:
    type: PrimitiveType

    def __post_init__(self) -> None:
        if not isinstance(self.type, PrimitiveType):
            try:
                object.__setattr__(self, "type", PrimitiveType(str(self.type).lower()))
            except ValueError as e:
                raise SchemaDefinitionError(
                    f"Unknown primitive type: {self.type}", context={"type": self.type}
                ) from e

    @property
    def type_name(self) -> str:
        return self.type.value


@dataclass(frozen=True)
class ObjectOf:
    shape: Shape

    @property
    def type_name(self) -> str:
        return "object"


@dataclass(frozen=True)
class ArrayOf:
    of: ParamSpec | None = None
    min_items: int | None = None
    max_items: int | None = None

    def __post_init__(self) -> None:
        if (
            self.min_items is not None
            and self.max_items is not None
            and self.min_items > self.max_items
        ):
            raise SchemaDefinitionError(
                "Array min cannot be greater than max",
                context={"min": self.min_items, "max": self.max_items},
            )

    @property
    def type_name(self) -> str:
        return "array"


@dataclass(frozen=True)
class UnionOf:
    union: UnionSpec

    @property
    def type_name(self) -> str:
        return "union"


@dataclass(frozen=True)
class Literal:
    value: Any

    @property
    def type_name(self) -> str:
        return "literal"


@dataclass(frozen=True)
class Reference:
    name: str

    @property
    def type_name(self) -> str:
        return self.name


Content = Union[Primitive, ObjectOf, ArrayOf, UnionOf, Literal, Reference]
CONTENT_TYPES = (Primitive, ObjectOf, ArrayOf, UnionOf, Literal, Reference)


@dataclass(frozen=True)
class EnumRef:
    """Reference to a registered enum, resolved through the scope chain."""

    name: str


def to_text(value: Any) -> Any:
    """String form used for enum and tag comparisons.

    Booleans render as ``"true"``/``"false"`` so that a ``"true"`` tag and a
    ``True`` discriminator compare equal.
    """
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return ""
    return str(value)


def normalize_tag(value: Any) -> Any:
    """Normalize a discriminator value; only booleans are rewritten."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    return value


@dataclass(frozen=True)
class ParamSpec:
    """One declared field.

    Attributes:
        name: Field name (``None`` for array element specs)
        content: Exactly one content kind
        optional: Whether the field may be absent
        nullable: Whether an explicit ``None`` is accepted
        default: Value substituted when the key is absent
        enum: Allowed values, inline or by reference
        min: Lower bound (string length or numeric value)
        max: Upper bound (string length or numeric value)
        as_: Rename target applied by the transformer
        store: Fixed value substituted by the transformer
        transform: Value mapping applied by the transformer
        attribute: External descriptor whose ``decode`` hook the deserializer uses
        description: Free-form documentation
    """

    name: str | None
    content: Content
    optional: bool = False
    nullable: bool = False
    default: Any = MISSING
    enum: Tuple[Any, ...] | EnumRef | None = None
    min: Any = None
    max: Any = None
    as_: str | None = None
    store: Any = MISSING
    transform: Callable[[Any], Any] | None = None
    attribute: Any = None
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.content, CONTENT_TYPES):
            raise SchemaDefinitionError(
                f"Param '{self.name}' has invalid content {self.content!r}",
                context={"field": self.name},
            )
        if isinstance(self.enum, (list, set, frozenset)):
            object.__setattr__(self, "enum", tuple(self.enum))
        if isinstance(self.content, Literal) and self.content.value is None:
            raise SchemaDefinitionError(
                f"Literal param '{self.name}' requires a value",
                context={"field": self.name},
            )
        if self.min is not None and self.max is not None and self.min > self.max:
            raise SchemaDefinitionError(
                f"Param '{self.name}' min cannot be greater than max",
                context={"field": self.name, "min": self.min, "max": self.max},
            )
        if self.store is not MISSING and self.transform is not None:
            raise SchemaDefinitionError(
                f"Param '{self.name}' cannot declare both store and transform",
                context={"field": self.name},
            )

    @property
    def type_name(self) -> str:
        return self.content.type_name

    @property
    def primitive(self) -> PrimitiveType | None:
        if isinstance(self.content, Primitive):
            return self.content.type
        return None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def output_name(self) -> str | None:
        """Key under which the transformer writes this field."""
        return self.as_ or self.name


@dataclass(frozen=True)
class Shape:
    """An ordered, closed collection of field declarations."""

    params: Tuple[ParamSpec, ...] = ()
    _index: Dict[str, ParamSpec] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        params = tuple(self.params)
        object.__setattr__(self, "params", params)

        index: Dict[str, ParamSpec] = {}
        for spec in params:
            if not spec.name:
                raise SchemaDefinitionError("Shape params must be named")
            if spec.name in index:
                raise SchemaDefinitionError(
                    f"Duplicate param '{spec.name}'", context={"field": spec.name}
                )
            index[spec.name] = spec
        object.__setattr__(self, "_index", index)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._index)

    def get(self, name: str) -> ParamSpec | None:
        return self._index.get(name)

    def without(self, name: str) -> Shape:
        """A copy of this shape with one field removed."""
        if name not in self._index:
            return self
        return Shape(tuple(spec for spec in self.params if spec.name != name))

    def __iter__(self) -> Iterator[ParamSpec]:
        return iter(self.params)

    def __len__(self) -> int:
        return len(self.params)

    def __contains__(self, name: object) -> bool:
        return name in self._index


@dataclass(frozen=True)
class VariantSpec:
    """One alternative of a union."""

    content: Content
    tag: Any = None
    enum: Tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.content, CONTENT_TYPES):
            raise SchemaDefinitionError(
                f"Variant has invalid content {self.content!r}", context={"tag": self.tag}
            )
        if isinstance(self.enum, (list, set, frozenset)):
            object.__setattr__(self, "enum", tuple(self.enum))

    @property
    def type_name(self) -> str:
        return self.content.type_name


@dataclass(frozen=True)
class UnionSpec:
    """Ordered variants with an optional discriminator field.

    Attributes:
        variants: Candidate variants, tried in order when undiscriminated
        discriminator: Name of the selecting field
        tag_mapping: Tag to storage value table used by the transformer
    """

    variants: Tuple[VariantSpec, ...]
    discriminator: str | None = None
    tag_mapping: Mapping[Any, Any] | None = None

    def __post_init__(self) -> None:
        variants = tuple(self.variants)
        object.__setattr__(self, "variants", variants)

        if not variants:
            raise SchemaDefinitionError("Union requires at least one variant")

        seen = set()
        for variant in variants:
            if self.discriminator is None and variant.tag is not None:
                raise SchemaDefinitionError(
                    "tag can only be used when union has a discriminator",
                    context={"tag": variant.tag},
                )
            if self.discriminator is not None:
                if variant.tag is None or variant.tag == "":
                    raise SchemaDefinitionError(
                        "tag is required for all variants when union has a discriminator",
                        context={"discriminator": self.discriminator},
                    )
                key = normalize_tag(variant.tag)
                if key in seen:
                    raise SchemaDefinitionError(
                        f"Duplicate union tag '{variant.tag}'",
                        context={"discriminator": self.discriminator, "tag": variant.tag},
                    )
                seen.add(key)

    @property
    def tags(self) -> list[Any]:
        return [variant.tag for variant in self.variants if variant.tag is not None]

    @property
    def type_names(self) -> list[str]:
        return [variant.type_name for variant in self.variants]

    def has_boolean_variant(self) -> bool:
        return any(
            isinstance(variant.content, Primitive)
            and variant.content.type is PrimitiveType.BOOLEAN
            for variant in self.variants
        )

    def variant_for(self, tag: Any) -> VariantSpec | None:
        """Variant whose tag matches, booleans normalized."""
        wanted = normalize_tag(tag)
        for variant in self.variants:
            if normalize_tag(variant.tag) == wanted:
                return variant
        return None

    def variant_for_text(self, tag: Any) -> VariantSpec | None:
        """Variant whose tag matches by string form, used on string input."""
        wanted = to_text(tag)
        for variant in self.variants:
            if to_text(variant.tag) == wanted:
                return variant
        return None
