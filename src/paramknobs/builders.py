"""Fluent API for declaring shapes and unions.

Example:
    ```python
    address = (
        ShapeBuilder()
        .string("street")
        .string("city")
        .string("zip", optional=True, min=5, max=10)
        .build()
    )

    payment = (
        UnionBuilder(discriminator="kind")
        .variant(ShapeBuilder().string("number"), tag="card", store="CardPayment")
        .variant(ShapeBuilder().string("iban"), tag="bank", store="BankPayment")
    )

    order = (
        ShapeBuilder()
        .object("shipping", address)
        .union("payment", payment)
        .array("items", of="string", min=1)
        .build()
    )
    ```

Any ``type`` argument accepts a primitive name or :class:`PrimitiveType`,
``"object"``/``"array"``/``"union"``/``"literal"``, a :class:`Shape` or
:class:`ShapeBuilder`, a :class:`UnionSpec` or :class:`UnionBuilder`, or the
name of a registered type.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List

from .exceptions import SchemaDefinitionError
from .shapes import (
    MISSING,
    ArrayOf,
    Content,
    EnumRef,
    Literal,
    ObjectOf,
    ParamSpec,
    Primitive,
    PrimitiveType,
    Reference,
    Shape,
    UnionOf,
    UnionSpec,
    VariantSpec,
)

STRUCTURAL_TYPES = frozenset({"object", "array", "union", "literal"})


def build_content(
    type: Any,
    *,
    of: Any = None,
    shape: Any = None,
    union: Any = None,
    value: Any = MISSING,
    discriminator: str | None = None,
    min_items: int | None = None,
    max_items: int | None = None,
) -> Content:
    """Turn a type designation into a content value.

    Raises:
        SchemaDefinitionError: If the designation is incomplete or inconsistent
    """
    if isinstance(type, (Shape, ShapeBuilder)):
        shape, type = type, "object"
    elif isinstance(type, (UnionSpec, UnionBuilder)):
        union, type = type, "union"
    elif isinstance(type, PrimitiveType):
        type = type.value

    if discriminator is not None and type != "union":
        raise SchemaDefinitionError(
            "discriminator can only be used with union types",
            context={"type": str(type), "discriminator": discriminator},
        )
    if value is not MISSING and type != "literal":
        raise SchemaDefinitionError(
            "value can only be used with literal types", context={"type": str(type)}
        )

    if not isinstance(type, str) or not type:
        raise SchemaDefinitionError(f"Invalid type: {type!r}")

    if type == "object":
        if shape is None:
            raise SchemaDefinitionError("object type requires a shape")
        return ObjectOf(_as_shape(shape))

    if type == "array":
        return ArrayOf(_element_spec(of), min_items, max_items)

    if type == "union":
        if union is None:
            raise SchemaDefinitionError("union type requires variants")
        return UnionOf(_as_union(union, discriminator))

    if type == "literal":
        if value is MISSING or value is None:
            raise SchemaDefinitionError("literal type requires value option")
        return Literal(value)

    if type.lower() in PrimitiveType._value2member_map_:
        return Primitive(PrimitiveType(type.lower()))

    return Reference(type)


def _as_shape(shape: Any) -> Shape:
    if isinstance(shape, ShapeBuilder):
        return shape.build()
    if isinstance(shape, Shape):
        return shape
    raise SchemaDefinitionError(f"Expected a Shape, got {shape!r}")


def _as_union(union: Any, discriminator: str | None) -> UnionSpec:
    if isinstance(union, UnionBuilder):
        union = union.build(discriminator=union.discriminator or discriminator)
    if not isinstance(union, UnionSpec):
        raise SchemaDefinitionError(f"Expected a UnionSpec, got {union!r}")
    if discriminator is not None and union.discriminator != discriminator:
        raise SchemaDefinitionError(
            "discriminator does not match the union's discriminator",
            context={"discriminator": discriminator, "union": union.discriminator},
        )
    return union


def _element_spec(of: Any) -> ParamSpec | None:
    if of is None or isinstance(of, ParamSpec):
        return of
    return ParamSpec(None, build_content(of))


def _enum(enum: Any) -> Any:
    if enum is None or isinstance(enum, EnumRef):
        return enum
    if isinstance(enum, str):
        return EnumRef(enum)
    return tuple(enum)


def build_param(
    name: str | None,
    type: Any,
    *,
    of: Any = None,
    shape: Any = None,
    union: Any = None,
    value: Any = MISSING,
    discriminator: str | None = None,
    optional: bool = False,
    nullable: bool = False,
    default: Any = MISSING,
    enum: Any = None,
    min: Any = None,
    max: Any = None,
    as_: str | None = None,
    store: Any = MISSING,
    transform: Callable[[Any], Any] | None = None,
    attribute: Any = None,
    description: str | None = None,
) -> ParamSpec:
    """Build one param spec.

    Args:
        name: Param name (``None`` for array elements)
        type: Type designation (see module docs)
        of: Element type for arrays
        shape: Nested shape for objects
        union: Union for union params
        value: Constant for literals
        discriminator: Discriminator field for unions
        optional: Whether the param may be absent
        nullable: Whether an explicit None is accepted
        default: Value used when the key is absent
        enum: Allowed values, or the name of a registered enum
        min: Minimum length, value or item count
        max: Maximum length, value or item count
        as_: Output name used by the transformer
        store: Fixed value substituted by the transformer
        transform: Callable applied by the transformer
        attribute: Descriptor with a ``decode`` hook for the deserializer
        description: Free-form documentation

    Returns:
        The ParamSpec

    Raises:
        SchemaDefinitionError: If the declaration is inconsistent
    """
    is_array = type == "array"
    content = build_content(
        type,
        of=of,
        shape=shape,
        union=union,
        value=value,
        discriminator=discriminator,
        min_items=min if is_array else None,
        max_items=max if is_array else None,
    )
    if is_array:
        min = max = None

    return ParamSpec(
        name,
        content,
        optional=optional,
        nullable=nullable,
        default=default,
        enum=_enum(enum),
        min=min,
        max=max,
        as_=as_,
        store=store,
        transform=transform,
        attribute=attribute,
        description=description,
    )


class ShapeBuilder:
    """Collects param declarations and builds a :class:`Shape`.

    Every declaration method returns the builder for chaining. Declarations
    are checked as they are made; duplicate names are reported by
    :meth:`build`.
    """

    def __init__(self, description: str | None = None):
        self.description = description
        self._params: List[ParamSpec] = []

    def param(self, name: str, type: Any, **options: Any) -> ShapeBuilder:
        """Declare a param; options are those of :func:`build_param`.

        Returns:
            Self for chaining
        """
        self._params.append(build_param(name, type, **options))
        return self

    def string(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.STRING, **options)

    def integer(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.INTEGER, **options)

    def number(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.NUMBER, **options)

    def decimal(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.DECIMAL, **options)

    def boolean(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.BOOLEAN, **options)

    def date(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.DATE, **options)

    def datetime(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.DATETIME, **options)

    def time(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.TIME, **options)

    def uuid(self, name: str, **options: Any) -> ShapeBuilder:
        return self.param(name, PrimitiveType.UUID, **options)

    def object(self, name: str, shape: Any, **options: Any) -> ShapeBuilder:
        return self.param(name, "object", shape=shape, **options)

    def array(self, name: str, of: Any = None, **options: Any) -> ShapeBuilder:
        return self.param(name, "array", of=of, **options)

    def union(self, name: str, union: Any, **options: Any) -> ShapeBuilder:
        return self.param(name, "union", union=union, **options)

    def literal(self, name: str, value: Any, **options: Any) -> ShapeBuilder:
        return self.param(name, "literal", value=value, **options)

    def reference(self, name: str, type_name: str, **options: Any) -> ShapeBuilder:
        """Declare a param whose type is a registered type or union."""
        if type_name in STRUCTURAL_TYPES or type_name.lower() in PrimitiveType._value2member_map_:
            raise SchemaDefinitionError(
                f"'{type_name}' is a built-in type, not a registered name",
                context={"field": name},
            )
        return self.param(name, type_name, **options)

    def extend(self, params: Iterable[ParamSpec]) -> ShapeBuilder:
        """Add already-built param specs."""
        self._params.extend(params)
        return self

    def build(self) -> Shape:
        """Build the shape.

        Raises:
            SchemaDefinitionError: On duplicate or unnamed params
        """
        return Shape(tuple(self._params))


class UnionBuilder:
    """Collects variants and builds a :class:`UnionSpec`."""

    def __init__(self, discriminator: str | None = None):
        self.discriminator = discriminator
        self._variants: List[VariantSpec] = []
        self._tag_mapping: Dict[Any, Any] = {}

    def variant(
        self,
        type: Any,
        tag: Any = None,
        *,
        enum: Iterable[Any] | None = None,
        of: Any = None,
        shape: Any = None,
        union: Any = None,
        value: Any = MISSING,
        store: Any = MISSING,
        min: int | None = None,
        max: int | None = None,
    ) -> UnionBuilder:
        """Add a variant.

        Args:
            type: Type designation of the variant
            tag: Discriminator value selecting this variant
            enum: Allowed values for a primitive variant
            of: Element type for array variants
            shape: Shape for object variants
            union: Nested union
            value: Constant for literal variants
            store: Value the transformer writes in place of the tag
            min: Minimum item count for array variants
            max: Maximum item count for array variants

        Returns:
            Self for chaining
        """
        content = build_content(
            type, of=of, shape=shape, union=union, value=value, min_items=min, max_items=max
        )
        self._variants.append(
            VariantSpec(content, tag=tag, enum=tuple(enum) if enum is not None else None)
        )
        if store is not MISSING:
            if tag is None:
                raise SchemaDefinitionError("store requires a tag", context={"type": str(type)})
            self._tag_mapping[tag] = store
        return self

    def build(self, discriminator: str | None = None) -> UnionSpec:
        """Build the union.

        Args:
            discriminator: Used when the builder was created without one

        Raises:
            SchemaDefinitionError: On missing, stray or duplicate tags
        """
        return UnionSpec(
            tuple(self._variants),
            discriminator=self.discriminator or discriminator,
            tag_mapping=dict(self._tag_mapping) or None,
        )
