"""
Configuration loader for map profiles and environment variables.

Profiles live in ``configs/<name>.yaml``. Every profile other than
``default`` is layered on top of ``default.yaml``, so a profile only has to
list the values it changes.
"""

import os
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
import yaml


DEFAULT_PROFILE = "default"
PROFILE_ENV_VAR = "CLUSTER_PROFILE"


def merge_profiles(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_profiles(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Load map profiles from YAML files and the environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"

    @classmethod
    def available_profiles(cls) -> list:
        return sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))

    @classmethod
    def _read(cls, profile_name: str) -> Dict[str, Any]:
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = cls.available_profiles()
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a map profile, layered over the default profile.

        Args:
            profile_name: Name of the profile (default, dense-points, world)

        Returns:
            Dictionary with ``clustering``, ``viewport`` and ``press`` sections

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile = cls._read(profile_name)
        if profile_name == DEFAULT_PROFILE:
            return profile
        return merge_profiles(cls._read(DEFAULT_PROFILE), profile)

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get map profile name from the CLUSTER_PROFILE environment variable."""
        return os.getenv(PROFILE_ENV_VAR)

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """
        Load the profile named by CLUSTER_PROFILE, or the default profile.

        Returns:
            Configuration dictionary
        """
        profile = cls.get_profile_from_env() or DEFAULT_PROFILE
        return cls.load_profile(profile)


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()
