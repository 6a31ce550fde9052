"""Persistence port interface for crash-durable key/blob storage."""

from typing import Protocol


class PersistencePort(Protocol):
    """Port interface for a durable key -> blob map.

    Keys are derived by callers (typically a SHA-256 of a logical name) and are
    never generated by the store. Each write touches exactly one key; no
    multi-key atomicity is offered.

    Side effects: Reads/writes durable storage.
    """

    def store(self, key: str, blob: bytes) -> None:
        """Persist ``blob`` under ``key``, replacing any previous value.

        Raises:
            PersistenceError: If the write did not complete
        """
        ...

    def load(self, key: str) -> bytes | None:
        """Return the blob stored under ``key`` or None when absent."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; deleting an absent key is a no-op."""
        ...

    def list_keys(self) -> set[str]:
        """Return every key currently stored."""
        ...
