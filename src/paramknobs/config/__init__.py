"""Declarative schema documents: models, loading and building."""

from paramknobs.config.builder import SchemaBuilder, build_catalog, import_callable
from paramknobs.config.loader import SchemaLoader, load_schema
from paramknobs.config.schema import (
    ActionConfig,
    ContractConfig,
    ParamConfig,
    SchemaDocument,
    ScopeConfig,
    SectionConfig,
    TypeConfig,
    UnionConfig,
    VariantConfig,
    validate_document,
)

__all__ = [
    # Models
    "SchemaDocument",
    "ScopeConfig",
    "ContractConfig",
    "ActionConfig",
    "SectionConfig",
    "ParamConfig",
    "TypeConfig",
    "UnionConfig",
    "VariantConfig",
    "validate_document",
    # Loading
    "SchemaLoader",
    "load_schema",
    # Building
    "SchemaBuilder",
    "build_catalog",
    "import_callable",
]
