"""Build a type registry and bound definitions from a schema document."""

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from paramknobs.builders import ShapeBuilder, UnionBuilder, build_param
from paramknobs.config.loader import SchemaLoader
from paramknobs.config.schema import (
    ParamConfig,
    SchemaDocument,
    ScopeConfig,
    SectionConfig,
    UnionConfig,
    VariantConfig,
)
from paramknobs.definition import Definition, DefinitionCatalog, Direction
from paramknobs.exceptions import ConfigurationError, SchemaDefinitionError
from paramknobs.issues import MessageCatalog
from paramknobs.registry import GLOBAL, Scope, TypeRegistryBuilder
from paramknobs.settings import EngineSettings
from paramknobs.shapes import MISSING, ParamSpec, Shape

logger = logging.getLogger(__name__)


def import_callable(path: str) -> Callable[[Any], Any]:
    """Import ``module:function``.

    Raises:
        ConfigurationError: If the module or attribute cannot be imported
    """
    module_name, _, attr = path.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Cannot import module '{module_name}'", context={"transform": path}
        ) from e

    func = getattr(module, attr, None)
    if not callable(func):
        raise ConfigurationError(
            f"'{path}' is not a callable", context={"transform": path}
        )
    return func


class SchemaBuilder:
    """Turns a :class:`SchemaDocument` into a :class:`DefinitionCatalog`.

    All names are registered first, across every scope, so params can refer
    to types declared anywhere in their scope chain regardless of document
    order. Definitions are then bound to the frozen registry.

    Args:
        document: Validated schema document
        settings: Overrides the document's settings when given
        catalog: Overrides the document's messages when given
    """

    def __init__(
        self,
        document: SchemaDocument,
        settings: EngineSettings | None = None,
        catalog: MessageCatalog | None = None,
    ):
        self.document = document
        self.settings = settings or document.settings
        self.catalog = catalog or MessageCatalog(document.messages)

    @classmethod
    def from_file(cls, file_path: Union[str, Path], **kwargs: Any) -> "SchemaBuilder":
        return cls(SchemaLoader().load_from_file(file_path), **kwargs)

    @classmethod
    def from_dict(cls, config: Dict[str, Any], **kwargs: Any) -> "SchemaBuilder":
        return cls(SchemaLoader().load_from_dict(config), **kwargs)

    def build(self) -> DefinitionCatalog:
        """Build the registry and every request/response definition.

        Raises:
            SchemaDefinitionError: If a declaration is invalid; the message
                names the scope it was declared in
            ConfigurationError: If a transform cannot be imported
        """
        registry_builder = TypeRegistryBuilder()
        self._declare(registry_builder, GLOBAL, self.document)
        for contract_name, contract in self.document.contracts.items():
            self._declare(registry_builder, Scope.for_contract(contract_name), contract)
            for action_name, action in contract.actions.items():
                self._declare(registry_builder, Scope.for_action(contract_name, action_name), action)
                if action.request is not None:
                    self._declare(registry_builder, Scope.request(contract_name, action_name), action.request)
                if action.response is not None:
                    self._declare(registry_builder, Scope.response(contract_name, action_name), action.response)

        registry = registry_builder.build()
        definitions = DefinitionCatalog(registry)

        for contract_name, contract in self.document.contracts.items():
            for action_name, action in contract.actions.items():
                sections = [
                    (Direction.REQUEST, action.request, Scope.request(contract_name, action_name)),
                    (Direction.RESPONSE, action.response, Scope.response(contract_name, action_name)),
                ]
                for direction, section, scope in sections:
                    if section is None:
                        continue
                    shape = self._scoped(scope, self._section_shape, section)
                    definitions.add(
                        contract_name,
                        action_name,
                        direction,
                        Definition(shape, registry, scope, self.settings, self.catalog),
                    )

        logger.info(
            f"Built {len(definitions)} definition(s) for {len(self.document.contracts)} contract(s)"
        )
        return definitions

    def _declare(self, builder: TypeRegistryBuilder, scope: Scope, config: ScopeConfig) -> None:
        for name, values in config.enums.items():
            self._scoped(scope, builder.register_enum, name, values, scope)
        for name, type_config in config.types.items():
            shape = self._scoped(scope, self._shape, type_config.params)
            self._scoped(scope, builder.register_type, name, shape, scope)
        for name, union_config in config.unions.items():
            union = self._scoped(scope, self._union, union_config)
            self._scoped(scope, builder.register_union, name, union, scope)

    def _scoped(self, scope: Scope, func: Callable[..., Any], *args: Any) -> Any:
        """Call ``func``, adding the scope to any definition error."""
        try:
            return func(*args)
        except SchemaDefinitionError as e:
            e.context.setdefault("scope", str(scope))
            raise

    def _section_shape(self, section: SectionConfig) -> Shape:
        return self._shape(section.params)

    def _shape(self, params: List[ParamConfig]) -> Shape:
        return ShapeBuilder().extend(self._param(config) for config in params).build()

    def _param(self, config: ParamConfig) -> ParamSpec:
        fields_set = config.model_fields_set
        options: Dict[str, Any] = {
            "optional": config.optional,
            "nullable": config.nullable,
            "enum": config.enum,
            "min": config.min,
            "max": config.max,
            "as_": config.as_,
            "discriminator": config.discriminator,
            "description": config.description,
            "default": config.default if "default" in fields_set else MISSING,
            "store": config.store if "store" in fields_set else MISSING,
            "value": config.value if "value" in fields_set else MISSING,
        }
        if config.transform is not None:
            options["transform"] = import_callable(config.transform)
        if config.params is not None:
            options["shape"] = self._shape(config.params)
        if config.variants is not None:
            options["union"] = self._union_builder(None, config.variants)
        if config.of is not None:
            options["of"] = self._element(config.of)

        return build_param(config.name, config.type, **options)

    def _element(self, of: Union[str, ParamConfig]) -> Any:
        if isinstance(of, str):
            return of
        return self._param(of)

    def _union(self, config: UnionConfig) -> Any:
        return self._union_builder(config.discriminator, config.variants).build()

    def _union_builder(self, discriminator: str | None, variants: List[VariantConfig]) -> UnionBuilder:
        builder = UnionBuilder(discriminator)
        for variant in variants:
            fields_set = variant.model_fields_set
            builder.variant(
                variant.type,
                variant.tag,
                enum=variant.enum,
                of=self._element(variant.of) if variant.of is not None else None,
                shape=self._shape(variant.params) if variant.params is not None else None,
                value=variant.value if "value" in fields_set else MISSING,
                store=variant.store if "store" in fields_set else MISSING,
                min=variant.min,
                max=variant.max,
            )
        return builder


def build_catalog(
    source: Union[str, Path, Dict[str, Any], SchemaDocument],
    settings: EngineSettings | None = None,
) -> DefinitionCatalog:
    """Load (when needed) and build a document in one step."""
    if isinstance(source, SchemaDocument):
        builder = SchemaBuilder(source, settings=settings)
    elif isinstance(source, dict):
        builder = SchemaBuilder.from_dict(source, settings=settings)
    else:
        builder = SchemaBuilder.from_file(source, settings=settings)
    return builder.build()
