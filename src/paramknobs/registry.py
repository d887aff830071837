"""Named type, union and enum registry with lexical scoping.

Registration happens in two phases. A :class:`TypeRegistryBuilder` collects
declarations while a schema is being configured; :meth:`build` freezes them
into a :class:`TypeRegistry`, which is never mutated afterwards and can be
read from any number of threads without locking.

Every declaration is tagged with the :class:`Scope` it was made in. A
:class:`ScopeResolver` answers "what does this name mean here" by walking the
scope chain innermost first, so a name declared in an action shadows the same
name declared on its contract or globally.

Example:
    ```python
    builder = TypeRegistryBuilder()
    builder.register_type("address", address_shape)
    builder.register_type("address", billing_address_shape,
                          scope=Scope.for_action("invoice", "create"))
    registry = builder.build()

    registry.resolver(Scope.request("invoice", "create")).resolve("address")
    # TypeRegistration(name='address', scope=Scope(level=<ScopeLevel.ACTION...
    registry.resolver(Scope.for_contract("invoice")).resolve("address")
    # TypeRegistration(name='address', scope=Scope(level=<ScopeLevel.GLOBAL...
    ```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from .exceptions import SchemaDefinitionError
from .primitives import is_mapping, is_sequence
from .shapes import ArrayOf, ObjectOf, Reference, Shape, UnionSpec, VariantSpec

logger = logging.getLogger(__name__)


class ScopeLevel(IntEnum):
    """Scope levels, outer to inner. A response sees its request's names."""

    GLOBAL = 0
    CONTRACT = 1
    ACTION = 2
    REQUEST = 3
    RESPONSE = 4


@dataclass(frozen=True)
class Scope:
    """A lexical region in which names are declared."""

    level: ScopeLevel = ScopeLevel.GLOBAL
    contract: str | None = None
    action: str | None = None

    def __post_init__(self) -> None:
        if self.level >= ScopeLevel.CONTRACT and not self.contract:
            raise SchemaDefinitionError(
                f"{self.level.name.lower()} scope requires a contract name"
            )
        if self.level >= ScopeLevel.ACTION and not self.action:
            raise SchemaDefinitionError(
                f"{self.level.name.lower()} scope requires an action name",
                context={"contract": self.contract},
            )
        if self.level == ScopeLevel.GLOBAL and (self.contract or self.action):
            raise SchemaDefinitionError("global scope cannot name a contract or action")

    @classmethod
    def global_(cls) -> Scope:
        return cls()

    @classmethod
    def for_contract(cls, contract: str) -> Scope:
        return cls(ScopeLevel.CONTRACT, contract)

    @classmethod
    def for_action(cls, contract: str, action: str) -> Scope:
        return cls(ScopeLevel.ACTION, contract, action)

    @classmethod
    def request(cls, contract: str, action: str) -> Scope:
        return cls(ScopeLevel.REQUEST, contract, action)

    @classmethod
    def response(cls, contract: str, action: str) -> Scope:
        return cls(ScopeLevel.RESPONSE, contract, action)

    @property
    def parent(self) -> Scope | None:
        """The directly enclosing scope."""
        if self.level == ScopeLevel.GLOBAL:
            return None
        if self.level == ScopeLevel.CONTRACT:
            return GLOBAL
        if self.level == ScopeLevel.ACTION:
            return Scope(ScopeLevel.CONTRACT, self.contract)
        if self.level == ScopeLevel.RESPONSE:
            return Scope(ScopeLevel.REQUEST, self.contract, self.action)
        return Scope(ScopeLevel.ACTION, self.contract, self.action)

    def chain(self) -> List[Scope]:
        """This scope and its enclosing scopes, innermost first."""
        scopes: List[Scope] = []
        scope: Scope | None = self
        while scope is not None:
            scopes.append(scope)
            scope = scope.parent
        return scopes

    def __str__(self) -> str:
        parts = [self.level.name.lower()]
        if self.contract:
            parts.append(self.contract)
        if self.action:
            parts.append(self.action)
        return ":".join(parts)


GLOBAL = Scope()


@dataclass(frozen=True)
class TypeRegistration:
    """A named object type or union."""

    name: str
    scope: Scope
    payload: Union[Shape, UnionSpec]

    @property
    def is_object(self) -> bool:
        return isinstance(self.payload, Shape)

    @property
    def is_union(self) -> bool:
        return isinstance(self.payload, UnionSpec)


@dataclass(frozen=True)
class EnumRegistration:
    """A named list of allowed values."""

    name: str
    scope: Scope
    values: Tuple[Any, ...]


_Key = Tuple[Scope, str]


class TypeRegistryBuilder:
    """Collects declarations during configuration.

    Duplicate names within one scope are rejected; the same name in
    different scopes is allowed and resolved by precedence.
    """

    def __init__(self) -> None:
        self._types: Dict[_Key, TypeRegistration] = {}
        self._enums: Dict[_Key, EnumRegistration] = {}

    def register_type(self, name: str, shape: Shape, scope: Scope = GLOBAL) -> TypeRegistryBuilder:
        """Register a named object type.

        Args:
            name: Type name
            shape: Shape of the type
            scope: Scope the type is declared in

        Returns:
            Self for chaining

        Raises:
            SchemaDefinitionError: If the name is already registered in this scope
        """
        if not isinstance(shape, Shape):
            raise SchemaDefinitionError(
                f"Type '{name}' must be registered with a Shape", context={"type": name}
            )
        self._add_type(TypeRegistration(name, scope, shape))
        return self

    def register_union(self, name: str, union: UnionSpec, scope: Scope = GLOBAL) -> TypeRegistryBuilder:
        """Register a named union; shares the type namespace."""
        if not isinstance(union, UnionSpec):
            raise SchemaDefinitionError(
                f"Union '{name}' must be registered with a UnionSpec", context={"type": name}
            )
        self._add_type(TypeRegistration(name, scope, union))
        return self

    def register_enum(self, name: str, values: Iterable[Any], scope: Scope = GLOBAL) -> TypeRegistryBuilder:
        """Register a named enum."""
        values = tuple(values)
        if not values:
            raise SchemaDefinitionError(
                f"Enum '{name}' requires at least one value", context={"enum": name}
            )
        key = (scope, name)
        if key in self._enums:
            raise SchemaDefinitionError(
                f"Enum '{name}' already registered in {scope}",
                context={"enum": name, "scope": str(scope)},
            )
        self._enums[key] = EnumRegistration(name, scope, values)
        logger.debug(f"Registered enum {name} in {scope}")
        return self

    def _add_type(self, registration: TypeRegistration) -> None:
        key = (registration.scope, registration.name)
        if key in self._types:
            raise SchemaDefinitionError(
                f"Type '{registration.name}' already registered in {registration.scope}",
                context={"type": registration.name, "scope": str(registration.scope)},
            )
        self._types[key] = registration
        logger.debug(f"Registered type {registration.name} in {registration.scope}")

    def build(self) -> TypeRegistry:
        """Freeze the collected declarations."""
        registry = TypeRegistry(dict(self._types), dict(self._enums))
        logger.info(
            f"Built type registry with {len(self._types)} type(s) and {len(self._enums)} enum(s)"
        )
        return registry


class TypeRegistry:
    """Immutable table of named declarations, each tagged with its scope."""

    def __init__(
        self,
        types: Mapping[_Key, TypeRegistration] | None = None,
        enums: Mapping[_Key, EnumRegistration] | None = None,
    ):
        self._types = MappingProxyType(dict(types or {}))
        self._enums = MappingProxyType(dict(enums or {}))

    @classmethod
    def empty(cls) -> TypeRegistry:
        return cls()

    @property
    def types(self) -> Mapping[_Key, TypeRegistration]:
        return self._types

    @property
    def enums(self) -> Mapping[_Key, EnumRegistration]:
        return self._enums

    def lookup(self, name: str, scope: Scope = GLOBAL) -> TypeRegistration | None:
        """Exact lookup in one scope, without walking the chain."""
        return self._types.get((scope, name))

    def resolver(self, scope: Scope = GLOBAL) -> ScopeResolver:
        """Build a resolver for names used within the given scope."""
        return ScopeResolver(self, scope)

    def __len__(self) -> int:
        return len(self._types) + len(self._enums)


class ScopeResolver:
    """Resolves names for one scope, innermost declaration winning.

    The flattened lookup tables are computed once, here, so resolution during
    validation is a single dictionary lookup.
    """

    def __init__(self, registry: TypeRegistry, scope: Scope = GLOBAL):
        self._registry = registry
        self._scope = scope
        chain = scope.chain()

        types: Dict[str, TypeRegistration] = {}
        enums: Dict[str, Tuple[Any, ...]] = {}
        # Outermost first so inner scopes overwrite.
        for level_scope in reversed(chain):
            for (registered_scope, name), registration in registry.types.items():
                if registered_scope == level_scope:
                    types[name] = registration
            for (registered_scope, name), enum_registration in registry.enums.items():
                if registered_scope == level_scope:
                    enums[name] = enum_registration.values

        self._types = MappingProxyType(types)
        self._enums = MappingProxyType(enums)

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    def resolve(self, name: str) -> TypeRegistration | None:
        """Resolve a type or union name, or None when not declared."""
        return self._types.get(name)

    def resolve_enum(self, name: str) -> Tuple[Any, ...] | None:
        """Resolve an enum name to its values, or None when not declared."""
        return self._enums.get(name)

    def resolve_shape(self, name: str) -> Shape | None:
        registration = self._types.get(name)
        if registration is not None and registration.is_object:
            return registration.payload  # type: ignore[return-value]
        return None

    def resolve_union(self, name: str) -> UnionSpec | None:
        registration = self._types.get(name)
        if registration is not None and registration.is_union:
            return registration.payload  # type: ignore[return-value]
        return None

    def variant_shape(self, variant: VariantSpec) -> Shape | None:
        """Object shape of a variant, inline or by reference."""
        if isinstance(variant.content, ObjectOf):
            return variant.content.shape
        if isinstance(variant.content, Reference):
            return self.resolve_shape(variant.content.name)
        return None

    def select_variant(self, union: UnionSpec, value: Any, renamed: bool = False) -> VariantSpec | None:
        """Pick the variant a structural value belongs to.

        Discriminated unions select by tag. Otherwise a mapping goes to the
        first object variant declaring every key (falling back to the first
        object variant) and a sequence to the first array variant. With
        ``renamed`` the keys are compared against output names.
        """
        if is_sequence(value):
            for variant in union.variants:
                if isinstance(variant.content, ArrayOf):
                    return variant
            return None
        if not is_mapping(value):
            return None

        if union.discriminator is not None:
            for key, tag in value.items():
                if str(key) == union.discriminator:
                    return union.variant_for_text(tag)
            return None

        keys = {str(key) for key in value}
        first: VariantSpec | None = None
        for variant in union.variants:
            shape = self.variant_shape(variant)
            if shape is None:
                continue
            names = {spec.output_name for spec in shape} if renamed else set(shape.names)
            if keys.issubset(names):
                return variant
            if first is None:
                first = variant
        return first

    def type_names(self) -> List[str]:
        return sorted(self._types)


EMPTY_RESOLVER = ScopeResolver(TypeRegistry.empty())
