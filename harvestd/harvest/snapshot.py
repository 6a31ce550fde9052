"""Versioned, serializable view of one poll of a resource tree."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from harvestd.app.ports.tree_lister import Fingerprint, TreeEntry
from harvestd.errors import SnapshotFormatError

SNAPSHOT_SCHEMA_ID = "tree_snapshot"
SNAPSHOT_SCHEMA_VERSION = 1


class TreeSnapshot(BaseModel):
    """Ordered table of relative path -> fingerprint.

    The table is replaced wholesale after every completed poll, never patched.
    It is only meaningful relative to the tree lister that produced it.
    """

    model_config = ConfigDict(frozen=True)

    schema_id: Literal["tree_snapshot"] = SNAPSHOT_SCHEMA_ID
    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    root: str = Field(..., description="Canonical root the listing was taken from")
    produced_at: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="ISO 8601 timestamp of the poll that produced this snapshot",
    )
    entries: dict[str, Fingerprint] = Field(default_factory=dict)

    @classmethod
    def from_listing(cls, root: str, listing: Iterable[TreeEntry]) -> TreeSnapshot:
        """Build a snapshot from a lister's output, keeping listing order."""
        entries: dict[str, Fingerprint] = {}
        for entry in listing:
            entries[entry.path] = entry.fingerprint
        return cls(root=root, entries=entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.entries)

    def get(self, path: str) -> Fingerprint | None:
        return self.entries.get(path)

    def encode(self) -> bytes:
        """Serialize to the persisted blob format (UTF-8 JSON)."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def decode(cls, blob: bytes) -> TreeSnapshot:
        """Parse a persisted blob.

        Raises:
            SnapshotFormatError: If the blob is not a snapshot this version can read
        """
        try:
            payload = json.loads(blob.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SnapshotFormatError(f"Snapshot blob is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("schema_id") != SNAPSHOT_SCHEMA_ID:
            raise SnapshotFormatError("Persisted blob is not a tree snapshot.")

        version = payload.get("schema_version")
        if version != SNAPSHOT_SCHEMA_VERSION:
            raise SnapshotFormatError(
                f"Unsupported tree snapshot version {version!r} "
                f"(expected {SNAPSHOT_SCHEMA_VERSION})."
            )

        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise SnapshotFormatError(f"Invalid tree snapshot: {exc}") from exc
