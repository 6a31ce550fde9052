"""Parsing of operator attribute overrides."""

from __future__ import annotations

from collections.abc import Iterable

from harvestd.errors import ConfigurationError


def parse_attribute_overrides(pairs: Iterable[str]) -> dict[str, list[str]]:
    """Parse ``key=value`` strings into an attribute -> values mapping.

    Repeated keys accumulate, producing a multi-valued override.

    Raises:
        ConfigurationError: If a pair does not contain exactly one ``=`` or has an empty key or value
    """
    overrides: dict[str, list[str]] = {}
    for pair in pairs:
        parts = pair.split("=")
        if len(parts) != 2 or not parts[0].strip() or not parts[1]:
            raise ConfigurationError(f"Invalid attribute override key value pair of [{pair}].")
        key, value = parts[0].strip(), parts[1]
        overrides.setdefault(key, []).append(value)
    return overrides
