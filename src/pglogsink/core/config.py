"""Helpers shared by components that accept a config model or keyword overrides."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ConfigurationError

ConfigT = TypeVar("ConfigT", bound=BaseModel)


def parse_config(
    model: type[ConfigT], config: ConfigT | dict[str, Any] | None, **overrides: Any
) -> ConfigT:
    """Resolve a component configuration.

    Accepts a ready model instance, a plain dict, or keyword overrides. Mixing
    a config object with keyword overrides is ambiguous and rejected.

    Raises:
        ConfigurationError: On conflicting inputs or validation failure.
    """
    if config is not None and overrides:
        raise ConfigurationError(
            f"Pass either a {model.__name__} or keyword overrides, not both"
        )
    if isinstance(config, model):
        return config
    try:
        if isinstance(config, dict):
            return model.model_validate(config)
        return model(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid {model.__name__}", cause=exc
        ) from exc


__all__ = ["parse_config"]
