"""Engine-wide defaults."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PARAMKNOBS_"


class EngineSettings(BaseModel):
    """Defaults applied by a :class:`~paramknobs.definition.Definition`.

    Attributes:
        max_depth: Maximum nesting depth before ``depth_exceeded``
        locale: Locale used to look up issue details
        coerce: Whether ``Definition.parse`` coerces before validating
    """

    max_depth: int = Field(default=10, ge=0)
    locale: str | None = None
    coerce: bool = False

    @field_validator("locale")
    @classmethod
    def blank_locale_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides: Any) -> EngineSettings:
        """Build settings from ``<prefix>MAX_DEPTH``, ``<prefix>LOCALE`` and ``<prefix>COERCE``.

        Explicit keyword overrides win over the environment.

        Raises:
            ConfigurationError: If an environment value is invalid
        """
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            env_name = f"{prefix}{name.upper()}"
            if env_name in os.environ:
                values[name] = os.environ[env_name]
        values.update(overrides)

        try:
            settings = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid engine settings: {e}", context={"prefix": prefix, "values": values}
            ) from e
        if values:
            logger.debug(f"Engine settings from environment: {settings}")
        return settings
