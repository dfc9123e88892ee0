"""Turning user-authored config text into a kind's config value.

Parsing (YAML -> structured value) and validation (structured value -> the
kind's config) fail with distinct errors so replies can say which step broke.
"""

from __future__ import annotations

from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from core.errors import ConfigParseError, ConfigSchemaError
from core.registry import ConfigSchema


def parse_config_text(text: str) -> Any:
    """Parse a YAML block into plain Python values."""

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ConfigParseError(str(err)) from err


def validate_config(schema: ConfigSchema, raw_config: Any) -> Any:
    """Run a kind's schema over a raw value, normalizing its failures."""

    try:
        return schema(raw_config)
    except ValidationError as err:
        raise ConfigSchemaError(_summarize_validation_error(err)) from err
    except (ValueError, TypeError, KeyError) as err:
        raise ConfigSchemaError(str(err)) from err


def model_schema(model: type[BaseModel]) -> ConfigSchema:
    """Build a config schema from a pydantic model.

    The normalized config is the model's JSON-compatible dump, which is what
    the storage adapters persist. A missing config block validates as ``{}``.
    """

    def schema(raw_config: Any) -> Any:
        payload = {} if raw_config is None else raw_config
        return model.model_validate(payload).model_dump(mode="json")

    return schema


def dump_config(config: Any) -> str:
    """Render a stored config back as YAML for display."""

    return yaml.safe_dump(config, indent=2, allow_unicode=True, sort_keys=False)


def _summarize_validation_error(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "config"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)
