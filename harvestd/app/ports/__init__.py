"""Port interfaces for the harvestd application layer.

These protocol interfaces define contracts for adapters.
Harvest logic depends on these ports, never on concrete implementations.
"""

__all__ = [
    "AdapterPort",
    "CatalogRecord",
    "Fingerprint",
    "ListenerPort",
    "PersistencePort",
    "TransformerPort",
    "TreeEntry",
    "TreeListerPort",
]

from harvestd.app.ports.adapter import AdapterPort
from harvestd.app.ports.listener import ListenerPort
from harvestd.app.ports.persistence import PersistencePort
from harvestd.app.ports.transformer import CatalogRecord, TransformerPort
from harvestd.app.ports.tree_lister import Fingerprint, TreeEntry, TreeListerPort
