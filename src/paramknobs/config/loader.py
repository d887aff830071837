"""Load schema documents from files and dictionaries.

Supports JSON and YAML files. String values may reference environment
variables:

- ``${VAR}`` - required variable
- ``${VAR:default}`` or ``${VAR:-default}`` - variable with a default

A value that is exactly one reference is converted to a bool, int or float
when it looks like one, so ``max_depth: ${SCHEMA_DEPTH:8}`` yields an int.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from paramknobs.config.schema import SchemaDocument, validate_document
from paramknobs.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SchemaLoader:
    """Load and validate schema documents."""

    # ${VAR}, ${VAR:default} or ${VAR:-default}
    VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::(-)?([^}]*))?\}")

    def load_from_file(self, file_path: Union[str, Path], resolve_env: bool = True) -> SchemaDocument:
        """Load a schema document from a file.

        Args:
            file_path: Path to a JSON or YAML document
            resolve_env: Whether to resolve environment variable references

        Returns:
            Validated SchemaDocument

        Raises:
            ConfigurationError: If the file is missing, unsupported or invalid
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(
                f"Schema file not found: {file_path}", context={"path": str(file_path)}
            )

        raw_config = self._load_file(file_path)
        logger.info(f"Loading schema document from {file_path}")
        return self.load_from_dict(raw_config, resolve_env=resolve_env, source=str(file_path))

    def load_from_dict(
        self,
        config_dict: Dict[str, Any],
        resolve_env: bool = True,
        source: str | None = None,
    ) -> SchemaDocument:
        """Load a schema document from a dictionary.

        Args:
            config_dict: Raw document
            resolve_env: Whether to resolve environment variable references
            source: Where the document came from, for error context

        Returns:
            Validated SchemaDocument

        Raises:
            ConfigurationError: If the document is invalid
        """
        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                "Schema document must be a mapping", context={"source": source}
            )

        processed_config = config_dict.copy()
        if resolve_env:
            processed_config = self._resolve_environment_vars(processed_config)

        try:
            return validate_document(processed_config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid schema document: {e}",
                context={"source": source, "errors": e.errors(include_url=False)},
            ) from e

    def _load_file(self, file_path: Path) -> Dict[str, Any]:
        suffix = file_path.suffix.lower()

        with open(file_path) as f:
            try:
                if suffix == ".json":
                    data = json.load(f)
                elif suffix in [".yaml", ".yml"]:
                    data = yaml.safe_load(f)
                else:
                    raise ConfigurationError(
                        f"Unsupported file format: {suffix}", context={"path": str(file_path)}
                    )
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Could not parse {file_path}: {e}", context={"path": str(file_path)}
                ) from e

        return data if data is not None else {}

    def _resolve_environment_vars(self, config: Any) -> Any:
        if isinstance(config, str):
            return self._substitute_string(config)
        elif isinstance(config, dict):
            return {key: self._resolve_environment_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._resolve_environment_vars(item) for item in config]
        else:
            return config

    def _substitute_string(self, text: str) -> Any:
        # A single whole-value reference can become a non-string
        match = self.VAR_PATTERN.fullmatch(text)
        if match:
            return _convert_type(self._lookup(match))

        return self.VAR_PATTERN.sub(self._lookup, text)

    def _lookup(self, match: "re.Match[str]") -> str:
        var_name = match.group(1)
        has_default = match.group(2) is not None or match.group(3) is not None

        if var_name in os.environ:
            return os.environ[var_name]
        if has_default:
            return match.group(3) or ""
        raise ConfigurationError(
            f"Environment variable not found: {var_name}", context={"variable": var_name}
        )


def _convert_type(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def load_schema(source: Union[str, Path, Dict[str, Any]], resolve_env: bool = True) -> SchemaDocument:
    """Load a schema document from a path or a dictionary."""
    loader = SchemaLoader()
    if isinstance(source, dict):
        return loader.load_from_dict(source, resolve_env=resolve_env)
    return loader.load_from_file(source, resolve_env=resolve_env)
