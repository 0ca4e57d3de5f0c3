"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. Field defaults in :class:`~chunkwise.config.settings.Settings`
  2. ``config/config.yaml``: static tuning checked into the repo
  3. ``.env`` file and environment variables

YAML sections are flattened into setting names, so

    splitter:
      chunk_size: 500

becomes ``splitter_chunk_size``.  Top-level scalars map to the field of the
same name.  Only values that were explicitly set in the environment
override the YAML file; untouched defaults never do.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from chunkwise.config.settings import Settings
from chunkwise.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def load_settings(path: str | Path = "config/config.yaml") -> Settings:
    """Load YAML config and merge it under environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not an
              error; the environment and defaults are used alone.

    Returns:
        Fully resolved :class:`Settings`.

    Raises:
        ConfigurationError: If the YAML is malformed, names an unknown
            setting, or a value fails validation.
    """
    config_path = Path(path)
    yaml_config: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                # safe_load never constructs arbitrary Python objects.
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed YAML in {config_path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"Top level of {config_path} must be a mapping")

    file_values = _flatten_sections(yaml_config)
    unknown = sorted(set(file_values) - set(Settings.model_fields))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys in {config_path}: {', '.join(unknown)}")

    try:
        env_settings = Settings()
        env_overrides = {name: getattr(env_settings, name) for name in env_settings.model_fields_set}
        settings = Settings(**{**file_values, **env_overrides})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    logger.debug(
        "settings_loaded",
        config_file=str(config_path) if config_path.exists() else None,
        file_keys=len(file_values),
        env_keys=len(env_overrides),
    )
    return settings


def _flatten_sections(config: dict[str, Any]) -> dict[str, Any]:
    """Flatten one level of YAML sections into ``section_key`` names."""
    flat: dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                flat[f"{key}_{sub_key}"] = sub_value
        else:
            flat[key] = value
    return flat
