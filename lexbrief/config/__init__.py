"""Configuration module: exports Settings and load_config."""

from lexbrief.config.loader import load_config
from lexbrief.config.settings import Settings

__all__ = ["Settings", "load_config"]
