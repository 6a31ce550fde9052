"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .catalog import LocalCatalogAdapter
from .filesystem_lister import FileSystemTreeLister
from .persistence import FileSystemPersistenceStore, MemoryPersistenceStore
from .transformer import (
    DEFAULT_ATTRIBUTES,
    AttributeDescriptor,
    DefaultTransformer,
    apply_attribute_overrides,
)
from .webdav_lister import WebDavTreeLister

__all__ = [
    "AttributeDescriptor",
    "DEFAULT_ATTRIBUTES",
    "DefaultTransformer",
    "FileSystemPersistenceStore",
    "FileSystemTreeLister",
    "LocalCatalogAdapter",
    "MemoryPersistenceStore",
    "WebDavTreeLister",
    "apply_attribute_overrides",
]
