"""Hashing utilities for correlation ids and persistence keys."""

import hashlib


def compute_sha256(content: bytes) -> str:
    """Compute SHA-256 hash of content.

    Args:
        content: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(content).hexdigest()


def compute_sha256_text(value: str) -> str:
    """Compute SHA-256 hash of a UTF-8 encoded string."""
    return compute_sha256(value.encode("utf-8"))


def correlation_id_for(location: str) -> str:
    """Return the stable correlation id for a canonical resource location.

    The same location always yields the same id, across processes and restarts.
    """
    return compute_sha256_text(location)


def persistence_key_for(name: str) -> str:
    """Derive a persistence key from a logical name (root location, listener id)."""
    return compute_sha256_text(name)
