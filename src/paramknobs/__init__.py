"""paramknobs: schema-directed parameter validation and transformation.

Turns loosely-typed nested input into validated, typed parameter trees, and
moves data between wire and internal representation through coercion,
renaming, value substitution and decoding.
"""

__version__ = "0.1.0"

# Declarations
from .shapes import (
    MISSING,
    ArrayOf,
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
from .builders import ShapeBuilder, UnionBuilder, build_param

# Registry
from .registry import (
    GLOBAL,
    Scope,
    ScopeLevel,
    ScopeResolver,
    TypeRegistry,
    TypeRegistryBuilder,
)

# Passes
from .validator import Validator, validate
from .coercer import Coercer, coerce
from .transformer import Transformer, transform
from .deserializer import AttributeDescriptor, Deserializer, deserialize

# Results and errors
from .issues import Issue, IssueCode, MessageCatalog
from .result import ValidationResult
from .exceptions import (
    ConfigurationError,
    NotFoundError,
    ParamknobsError,
    ParamValidationError,
    SchemaDefinitionError,
)

# Definitions and configuration
from .definition import Definition, DefinitionCatalog, Direction
from .settings import EngineSettings

__all__ = [
    "__version__",
    # Declarations
    "MISSING",
    "ArrayOf",
    "EnumRef",
    "Literal",
    "ObjectOf",
    "ParamSpec",
    "Primitive",
    "PrimitiveType",
    "Reference",
    "Shape",
    "UnionOf",
    "UnionSpec",
    "VariantSpec",
    "ShapeBuilder",
    "UnionBuilder",
    "build_param",
    # Registry
    "GLOBAL",
    "Scope",
    "ScopeLevel",
    "ScopeResolver",
    "TypeRegistry",
    "TypeRegistryBuilder",
    # Passes
    "Validator",
    "validate",
    "Coercer",
    "coerce",
    "Transformer",
    "transform",
    "AttributeDescriptor",
    "Deserializer",
    "deserialize",
    # Results and errors
    "Issue",
    "IssueCode",
    "MessageCatalog",
    "ValidationResult",
    "ParamknobsError",
    "SchemaDefinitionError",
    "ConfigurationError",
    "NotFoundError",
    "ParamValidationError",
    # Definitions
    "Definition",
    "DefinitionCatalog",
    "Direction",
    "EngineSettings",
]
