"""Tree lister port interface and listing DTOs."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class Fingerprint(BaseModel):
    """Cheap, comparable summary of a resource used to detect change."""

    model_config = ConfigDict(frozen=True)

    size: int = Field(..., ge=0, description="Resource size in bytes")
    modified: str = Field(..., description="Modification marker (mtime_ns, HTTP date, ...)")
    etag: str | None = Field(default=None, description="Optional entity tag")


class TreeEntry(BaseModel):
    """One resource seen by a tree lister during a poll."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path relative to the harvest root")
    fingerprint: Fingerprint


class TreeListerPort(Protocol):
    """Port interface for walking a resource tree.

    Side effects: Reads the filesystem or issues network requests.
    """

    def validate(self, root: str) -> None:
        """Check that ``root`` exists, is a container, and is readable.

        Raises:
            ConfigurationError: If the root is unusable
        """
        ...

    def list_entries(self, root: str) -> list[TreeEntry]:
        """Return the current listing of ``root`` ordered by relative path.

        Raises:
            UnreachableError: If the root cannot be reached right now
        """
        ...

    def location(self, root: str, path: str) -> str:
        """Return the canonical location string of ``path`` under ``root``."""
        ...

    def read(self, root: str, path: str) -> bytes:
        """Read the bytes of ``path`` under ``root``.

        Raises:
            ResourceUnavailableError: If the resource vanished or cannot be read
        """
        ...
