"""Exception taxonomy shared by harvesters, listeners, and adapters."""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for all harvest failures."""


class ConfigurationError(HarvestError, ValueError):
    """Raised when a harvester or listener is configured with unusable values.

    Configuration errors are fatal at start-up: the affected harvester does not start.
    """


class UnreachableError(HarvestError):
    """Raised when a tree lister cannot reach the harvest root.

    Treated as transient; the poll cycle is abandoned and retried next interval.
    """


class PersistenceError(HarvestError):
    """Raised when persisted state cannot be read or written."""


class SnapshotFormatError(PersistenceError):
    """Raised when a persisted tree snapshot cannot be decoded."""


class IngestError(HarvestError):
    """Raised by adapters when a downstream create/update/delete did not happen."""


class ResourceUnavailableError(HarvestError):
    """Raised when a harvested resource's content can no longer be read."""
