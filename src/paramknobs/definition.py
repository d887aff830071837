"""A shape bound to a registry scope, with the full request and response flows.

A :class:`Definition` builds one :class:`~paramknobs.registry.ScopeResolver`
and hands it to every pass, so coercion, validation, transformation and
deserialization always agree on what a type name means.

Example:
    ```python
    registry = (
        TypeRegistryBuilder()
        .register_enum("status", ["draft", "sent"])
        .build()
    )
    shape = (
        ShapeBuilder()
        .string("number")
        .string("status", enum="status", as_="state")
        .build()
    )
    definition = Definition(shape, registry, Scope.request("invoice", "create"))

    result = definition.parse({"number": "INV-1", "status": "draft"})
    result.params
    # {'number': 'INV-1', 'state': 'draft'}
    ```
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

from .coercer import Coercer
from .deserializer import Deserializer
from .exceptions import NotFoundError, SchemaDefinitionError
from .issues import MessageCatalog
from .registry import GLOBAL, Scope, ScopeResolver, TypeRegistry
from .result import ValidationResult
from .settings import EngineSettings
from .shapes import Shape
from .transformer import Transformer
from .validator import Validator

logger = logging.getLogger(__name__)


class Definition:
    """Request or response params of one scope.

    Args:
        shape: The params shape
        registry: Registry holding named types and enums
        scope: Scope the shape is declared in
        settings: Engine defaults (depth bound, locale, coercion)
        catalog: Message catalog for issue details
    """

    def __init__(
        self,
        shape: Shape,
        registry: TypeRegistry | None = None,
        scope: Scope = GLOBAL,
        settings: EngineSettings | None = None,
        catalog: MessageCatalog | None = None,
    ):
        self.shape = shape
        self.registry = registry or TypeRegistry.empty()
        self.scope = scope
        self.settings = settings or EngineSettings()
        self.resolver = ScopeResolver(self.registry, scope)

        self.validator = Validator(self.resolver, catalog, self.settings.locale)
        self.coercer = Coercer(self.resolver)
        self.transformer = Transformer(self.resolver)
        self.deserializer = Deserializer(self.resolver)

    def validate(self, data: Any, max_depth: int | None = None) -> ValidationResult:
        """Validate data against the shape."""
        if max_depth is None:
            max_depth = self.settings.max_depth
        return self.validator.validate(self.shape, data, max_depth=max_depth)

    def coerce(self, data: Any) -> Any:
        return self.coercer.coerce(self.shape, data, max_depth=self.settings.max_depth)

    def transform(self, data: Any) -> Any:
        return self.transformer.transform(self.shape, data)

    def deserialize(self, data: Any) -> Any:
        return self.deserializer.deserialize(self.shape, data)

    def parse(self, data: Any, coerce: bool | None = None) -> ValidationResult:
        """Run the request flow: coerce (optional), validate, transform.

        Args:
            data: Raw input
            coerce: Whether to coerce first; defaults to the settings

        Returns:
            The validation result; when valid, its params are transformed,
            otherwise they are empty
        """
        if coerce is None:
            coerce = self.settings.coerce
        if coerce:
            data = self.coerce(data)

        result = self.validate(data)
        if result.invalid:
            logger.debug(f"Rejected params for {self.scope} with {len(result.issues)} issue(s)")
            return ValidationResult.failure(result.issues)
        return ValidationResult.success(self.transform(result.params))

    def parse_response(self, data: Any) -> ValidationResult:
        """Run the response flow: deserialize, then validate.

        Args:
            data: The response payload as produced by the application

        Returns:
            When valid, the validated params; otherwise the issues alongside
            the untouched payload, so the caller can still render it
        """
        result = self.validate(self.deserialize(data))
        if result.invalid:
            logger.warning(f"Response for {self.scope} failed validation with {len(result.issues)} issue(s)")
            return ValidationResult(issues=result.issues, params=data)
        return ValidationResult.success(result.params)

    def __repr__(self) -> str:
        return f"Definition(scope={self.scope}, params={list(self.shape.names)})"


class Direction(str, Enum):
    """Which side of an action a definition describes."""

    REQUEST = "request"
    RESPONSE = "response"


class DefinitionCatalog:
    """Definitions keyed by contract, action and direction.

    Built once, typically by :class:`~paramknobs.config.builder.SchemaBuilder`,
    and only read afterwards.
    """

    def __init__(self, registry: TypeRegistry | None = None):
        self.registry = registry or TypeRegistry.empty()
        self._definitions: Dict[Tuple[str, str, Direction], Definition] = {}

    def add(
        self, contract: str, action: str, direction: Direction | str, definition: Definition
    ) -> DefinitionCatalog:
        """Register a definition.

        Raises:
            SchemaDefinitionError: If one is already registered under the key
        """
        key = (contract, action, Direction(direction))
        if key in self._definitions:
            raise SchemaDefinitionError(
                f"Definition already registered for {contract}.{action} {key[2].value}",
                context={"contract": contract, "action": action, "direction": key[2].value},
            )
        self._definitions[key] = definition
        return self

    def get(self, contract: str, action: str, direction: Direction | str = Direction.REQUEST) -> Definition:
        """Look up a definition.

        Raises:
            NotFoundError: If nothing is registered under the key
        """
        try:
            key = (contract, action, Direction(direction))
        except ValueError as e:
            raise NotFoundError(
                f"Unknown direction: {direction}", context={"direction": str(direction)}
            ) from e

        definition = self._definitions.get(key)
        if definition is None:
            raise NotFoundError(
                f"Definition not found: {contract}.{action} {key[2].value}",
                context={"contract": contract, "action": action, "direction": key[2].value},
            )
        return definition

    def find(self, contract: str, action: str, direction: Direction | str = Direction.REQUEST) -> Definition | None:
        """Like :meth:`get`, returning None when missing."""
        try:
            return self.get(contract, action, direction)
        except NotFoundError:
            return None

    def contracts(self) -> List[str]:
        return sorted({contract for contract, _, _ in self._definitions})

    def actions(self, contract: str) -> List[str]:
        return sorted({action for name, action, _ in self._definitions if name == contract})

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 3:
            return False
        contract, action, direction = key
        try:
            return (contract, action, Direction(direction)) in self._definitions
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Tuple[str, str, Direction]]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)
