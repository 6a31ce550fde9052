"""Harvest profile loading from YAML."""

from pathlib import Path
from typing import Any

import yaml

from harvestd.errors import ConfigurationError


def load_profile(path: Path) -> dict[str, Any]:
    """Load a harvest profile from YAML.

    Args:
        path: Path to profile YAML file.

    Returns:
        Profile dict with keys ``harvesters`` and ``listeners``. Empty dict if the
        profile doesn't exist.

    Raises:
        ConfigurationError: If the YAML is invalid or not a mapping.
    """
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to load profile from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile {path} must contain a mapping at the top level.")
    return data
