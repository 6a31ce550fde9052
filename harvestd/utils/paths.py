"""Path utilities for directory and location handling."""

from __future__ import annotations

import os
from pathlib import Path


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME directory, defaulting to ~/.config."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def strip_ending_slash(location: str) -> str:
    """Strip a single trailing slash from a harvest location.

    ``/foo/bar`` and ``/foo/bar/`` are treated as the same location for
    persistence tracking. A bare ``/`` is left untouched.
    """
    if len(location) > 1 and location.endswith("/"):
        return location[:-1]
    return location


def relative_posix(path: Path, base: Path) -> str:
    """Return ``path`` relative to ``base`` using forward slashes."""
    return path.relative_to(base).as_posix()


def canonical_directory_root(root: str) -> str:
    """Return ``root`` as an absolute, user-expanded, symlink-free path.

    Relative roots are anchored at the current working directory.
    """
    return str(Path(root).expanduser().resolve())
