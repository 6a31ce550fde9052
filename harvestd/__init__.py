"""harvestd - change-detecting harvester that keeps a downstream catalog in sync.

Polls a directory or WebDAV collection, diffs it against the last persisted
snapshot, and reflects every create/modify/delete exactly once downstream.
"""

__version__ = "0.1.0"
__author__ = "harvestd Contributors"

from harvestd.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
