"""Configuration loading and shared error types."""

from .config_loader import ConfigLoader, get_config, merge_profiles
from .errors import ConfigurationError, EmptyInputError

__all__ = [
    "ConfigLoader",
    "get_config",
    "merge_profiles",
    "ConfigurationError",
    "EmptyInputError",
]
