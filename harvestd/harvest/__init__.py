"""Change detection and idempotent synchronization engine."""

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "ContentAccessor",
    "DiffResult",
    "HarvestedResource",
    "Harvester",
    "HarvesterRegistry",
    "HarvesterState",
    "Observer",
    "PersistentListener",
    "PollResult",
    "PollingScheduler",
    "ResourceContent",
    "ResourceStub",
    "TreeSnapshot",
    "parse_attribute_overrides",
]

from harvestd.harvest.harvester import Harvester, HarvesterState, PollResult
from harvestd.harvest.listener import PersistentListener
from harvestd.harvest.observer import ChangeEvent, ChangeKind, DiffResult, Observer
from harvestd.harvest.overrides import parse_attribute_overrides
from harvestd.harvest.registry import HarvesterRegistry
from harvestd.harvest.resource import (
    ContentAccessor,
    HarvestedResource,
    ResourceContent,
    ResourceStub,
)
from harvestd.harvest.scheduler import PollingScheduler
from harvestd.harvest.snapshot import TreeSnapshot
