"""Application bootstrap wiring settings, stores, listers, harvesters, and listeners."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from harvestd.app.adapters import (
    FileSystemPersistenceStore,
    FileSystemTreeLister,
    LocalCatalogAdapter,
    WebDavTreeLister,
)
from harvestd.app.ports import AdapterPort, PersistencePort, TreeListerPort
from harvestd.config import HarvesterConfig, ListenerConfig, Settings, get_settings
from harvestd.errors import ConfigurationError, HarvestError
from harvestd.harvest import (
    Harvester,
    HarvesterRegistry,
    HarvesterState,
    PersistentListener,
    PollingScheduler,
    PollResult,
)
from harvestd.utils.profiles import load_profile

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired harvesters, listeners, and their shared stores for the CLI layer."""

    settings: Settings
    registry: HarvesterRegistry
    scheduler: PollingScheduler
    snapshot_store: PersistencePort
    catalog: LocalCatalogAdapter
    harvesters: list[Harvester] = field(default_factory=list)
    listeners: list[PersistentListener] = field(default_factory=list)

    def start(self, *, schedule: bool = True) -> list[Harvester]:
        """Start every harvester, scheduling the ones that came up.

        A harvester that fails to start is logged and left stopped; the others
        still run.
        """
        started: list[Harvester] = []
        for harvester in self.harvesters:
            try:
                harvester.start()
            except HarvestError as exc:
                logger.error("Harvester [%s] failed to start: %s", harvester.id, exc)
                continue
            started.append(harvester)
            if schedule:
                self.scheduler.schedule(harvester)
        return started

    def poll_once(self) -> dict[str, PollResult | None]:
        """Run a single guarded poll of every started harvester."""
        return {
            harvester.id: PollingScheduler.run_once(harvester)
            for harvester in self.harvesters
            if harvester.state is HarvesterState.POLLING
        }

    def stop(self) -> None:
        self.scheduler.shutdown()
        for harvester in self.harvesters:
            harvester.stop()


def default_harvester_config(settings: Settings, **fields: Any) -> HarvesterConfig:
    """Build a ``HarvesterConfig`` using ``settings`` for every field not given.

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    values: dict[str, Any] = {
        "listener_policy": settings.listener_policy,
        "skip_poll_without_listeners": settings.skip_poll_without_listeners,
        "poll_interval_seconds": settings.poll_interval_seconds,
        "attribute_overrides": list(settings.attribute_overrides),
    }
    values.update({key: value for key, value in fields.items() if value is not None})
    try:
        return HarvesterConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid harvester configuration: {exc}") from exc


def load_harvest_profile(
    path: Path, settings: Settings | None = None
) -> tuple[list[HarvesterConfig], list[ListenerConfig]]:
    """Read harvester and listener definitions from a YAML profile.

    Args:
        path: Profile file; a missing file yields empty lists
        settings: Source of defaults for harvester fields the profile omits

    Returns:
        Harvester configurations and listener configurations, in file order

    Raises:
        ConfigurationError: If the profile is malformed or declares duplicate ids
    """
    active_settings = settings or get_settings()
    data = load_profile(path)

    raw_harvesters = data.get("harvesters") or []
    raw_listeners = data.get("listeners") or []
    if not isinstance(raw_harvesters, list) or not isinstance(raw_listeners, list):
        raise ConfigurationError(f"Profile {path}: 'harvesters' and 'listeners' must be lists.")

    harvesters: list[HarvesterConfig] = []
    for entry in raw_harvesters:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Profile {path}: harvester entries must be mappings.")
        harvesters.append(default_harvester_config(active_settings, **entry))

    listeners: list[ListenerConfig] = []
    for entry in raw_listeners:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Profile {path}: listener entries must be mappings.")
        try:
            listeners.append(ListenerConfig(**entry))
        except ValidationError as exc:
            raise ConfigurationError(f"Profile {path}: invalid listener entry: {exc}") from exc

    _reject_duplicates("harvester", (config.harvester_id for config in harvesters))
    _reject_duplicates("listener", (config.id for config in listeners))
    return harvesters, listeners


def _reject_duplicates(kind: str, ids: Iterable[str]) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ConfigurationError(f"Duplicate {kind} id [{item}] in harvest profile.")
        seen.add(item)


def create_tree_lister(config: HarvesterConfig, settings: Settings) -> TreeListerPort:
    if config.kind == "webdav":
        return WebDavTreeLister(timeout=settings.webdav_timeout_seconds)
    return FileSystemTreeLister()


def create_harvester(
    config: HarvesterConfig, settings: Settings, store: PersistencePort
) -> Harvester:
    return Harvester(config, lister=create_tree_lister(config, settings), store=store)


def create_persistent_listener(
    config: ListenerConfig, settings: Settings, adapter: AdapterPort
) -> PersistentListener:
    """Create a listener whose correlation map is scoped to ``config.id``."""
    store = FileSystemPersistenceStore(settings.get_correlation_dir(config.id))
    return PersistentListener(adapter, store, listener_id=config.id, watch=config.watch)


def bootstrap_application(
    settings: Settings | None = None,
    *,
    harvesters: Sequence[HarvesterConfig] = (),
    listeners: Sequence[ListenerConfig] = (),
) -> ApplicationContainer:
    """Instantiate stores, harvesters, and listeners and bind them through the registry."""

    active_settings = settings or get_settings()

    snapshot_store = FileSystemPersistenceStore(active_settings.get_snapshot_dir())
    catalog = LocalCatalogAdapter(active_settings.get_catalog_dir())
    registry = HarvesterRegistry()

    container = ApplicationContainer(
        settings=active_settings,
        registry=registry,
        scheduler=PollingScheduler(),
        snapshot_store=snapshot_store,
        catalog=catalog,
    )

    for listener_config in listeners:
        listener = create_persistent_listener(listener_config, active_settings, catalog)
        registry.register_listener(listener)
        container.listeners.append(listener)

    for harvester_config in harvesters:
        harvester = create_harvester(harvester_config, active_settings, snapshot_store)
        registry.register_harvester(harvester)
        container.harvesters.append(harvester)

    logger.debug(
        "Bootstrapped %d harvester(s) and %d listener(s)",
        len(container.harvesters),
        len(container.listeners),
    )
    return container
