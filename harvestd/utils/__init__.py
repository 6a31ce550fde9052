"""Utility modules for common operations."""

from harvestd.utils.atomic import atomic_write_bytes
from harvestd.utils.hashing import (
    compute_sha256,
    compute_sha256_text,
    correlation_id_for,
    persistence_key_for,
)
from harvestd.utils.paths import canonical_directory_root, relative_posix, strip_ending_slash

__all__ = [
    "atomic_write_bytes",
    "canonical_directory_root",
    "compute_sha256",
    "compute_sha256_text",
    "correlation_id_for",
    "persistence_key_for",
    "relative_posix",
    "strip_ending_slash",
]
