"""Configuration: environment-backed settings plus the YAML loader."""

from chunkwise.config.loader import load_settings
from chunkwise.config.settings import Settings

__all__ = ["Settings", "load_settings"]
