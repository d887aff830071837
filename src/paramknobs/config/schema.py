"""Schema document definitions using Pydantic.

A schema document declares named enums, types and unions at every scope plus
the request and response params of each action:

```yaml
settings:
  max_depth: 8
enums:
  currency: [EUR, USD]
types:
  money:
    params:
      - {name: amount, type: decimal, min: 0}
      - {name: currency, type: string, enum: currency}
contracts:
  invoice:
    unions:
      payment:
        discriminator: kind
        variants:
          - {tag: card, type: object, store: CardPayment, params: [{name: number, type: string}]}
          - {tag: bank, type: object, store: BankPayment, params: [{name: iban, type: string}]}
    actions:
      create:
        request:
          params:
            - {name: total, type: money}
            - {name: payment, type: payment}
            - {name: lines, type: array, of: string, min: 1, as: line_items}
```
"""

import re
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from paramknobs.settings import EngineSettings

CALLABLE_PATH = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$")


class VariantConfig(BaseModel):
    """One union variant."""

    model_config = ConfigDict(extra="forbid")

    type: str
    tag: Any = None
    enum: List[Any] | None = None
    of: Union[str, "ParamConfig", None] = None
    params: List["ParamConfig"] | None = None
    value: Any = None
    store: Any = None
    min: int | None = None
    max: int | None = None

    @model_validator(mode="after")
    def validate_variant(self) -> "VariantConfig":
        _check_structure(self.type, self.params, None)
        return self


class ParamConfig(BaseModel):
    """One param declaration.

    ``as`` is accepted as the document key for the rename target.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = None
    type: str
    of: Union[str, "ParamConfig", None] = None
    optional: bool = False
    nullable: bool = False
    default: Any = None
    enum: Union[List[Any], str, None] = None
    min: Any = None
    max: Any = None
    as_: str | None = Field(default=None, alias="as")
    value: Any = None
    store: Any = None
    transform: str | None = None
    discriminator: str | None = None
    variants: List[VariantConfig] | None = None
    params: List["ParamConfig"] | None = None
    description: str | None = None

    @field_validator("transform")
    @classmethod
    def validate_transform(cls, value: str | None) -> str | None:
        if value is not None and not CALLABLE_PATH.match(value):
            raise ValueError(f"transform must be a 'module:function' path, got '{value}'")
        return value

    @model_validator(mode="after")
    def validate_param(self) -> "ParamConfig":
        _check_structure(self.type, self.params, self.variants)
        if "store" in self.model_fields_set and self.transform is not None:
            raise ValueError(f"Param '{self.name}' cannot declare both store and transform")
        return self


def _check_structure(type_name: str, params: Any, variants: Any) -> None:
    if type_name == "object" and params is None:
        raise ValueError("object type requires params")
    if type_name != "object" and params is not None:
        raise ValueError("params can only be used with object types")
    if type_name == "union" and not variants:
        raise ValueError("union type requires variants")
    if type_name != "union" and variants is not None:
        raise ValueError("variants can only be used with union types")


class TypeConfig(BaseModel):
    """A named object type."""

    model_config = ConfigDict(extra="forbid")

    params: List[ParamConfig] = Field(default_factory=list)
    description: str | None = None


class UnionConfig(BaseModel):
    """A named union."""

    model_config = ConfigDict(extra="forbid")

    discriminator: str | None = None
    variants: List[VariantConfig] = Field(min_length=1)
    description: str | None = None


class ScopeConfig(BaseModel):
    """Declarations made in one scope."""

    model_config = ConfigDict(extra="forbid")

    enums: Dict[str, List[Any]] = Field(default_factory=dict)
    types: Dict[str, TypeConfig] = Field(default_factory=dict)
    unions: Dict[str, UnionConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_names(self) -> "ScopeConfig":
        clashes = set(self.types) & set(self.unions)
        if clashes:
            raise ValueError(f"Names declared as both type and union: {sorted(clashes)}")
        return self


class SectionConfig(ScopeConfig):
    """Request or response params of an action."""

    params: List[ParamConfig] = Field(default_factory=list)


class ActionConfig(ScopeConfig):
    """An action with optional request and response sections."""

    request: SectionConfig | None = None
    response: SectionConfig | None = None


class ContractConfig(ScopeConfig):
    """A contract and its actions."""

    actions: Dict[str, ActionConfig] = Field(default_factory=dict)


class SchemaDocument(ScopeConfig):
    """Complete schema document.

    Top-level ``enums``, ``types`` and ``unions`` are global. ``messages``
    overrides issue details as ``locale -> code -> detail``.
    """

    settings: EngineSettings = Field(default_factory=EngineSettings)
    messages: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    contracts: Dict[str, ContractConfig] = Field(default_factory=dict)


VariantConfig.model_rebuild()
ParamConfig.model_rebuild()
TypeConfig.model_rebuild()
UnionConfig.model_rebuild()
SectionConfig.model_rebuild()
ActionConfig.model_rebuild()
ContractConfig.model_rebuild()
SchemaDocument.model_rebuild()


def validate_document(config: Dict[str, Any]) -> SchemaDocument:
    """Validate a raw document dictionary.

    Raises:
        pydantic.ValidationError: If the document is invalid
    """
    return SchemaDocument.model_validate(config)
