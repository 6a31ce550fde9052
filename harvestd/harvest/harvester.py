"""Polling harvester: owns an observer, its persisted snapshot, and its listeners."""

from __future__ import annotations

import copy
import functools
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from harvestd.app.ports import ListenerPort, PersistencePort, TreeListerPort
from harvestd.config import HarvesterConfig
from harvestd.errors import ConfigurationError, HarvestError, PersistenceError
from harvestd.harvest.observer import ChangeEvent, ChangeKind, Observer
from harvestd.harvest.overrides import parse_attribute_overrides
from harvestd.harvest.resource import (
    ATTRIBUTE_OVERRIDES_KEY,
    ContentAccessor,
    HarvestedResource,
    ResourceStub,
    name_from_location,
)
from harvestd.harvest.snapshot import TreeSnapshot
from harvestd.utils.hashing import persistence_key_for

logger = logging.getLogger(__name__)


class HarvesterState(str, Enum):
    """Lifecycle states of a harvester."""

    STOPPED = "stopped"
    INITIALIZING = "initializing"
    POLLING = "polling"


@dataclass(slots=True)
class PollResult:
    """Summary of a single poll cycle."""

    created: int = 0
    modified: int = 0
    deleted: int = 0
    listener_failures: int = 0
    skipped: bool = False

    @property
    def changes(self) -> int:
        return self.created + self.modified + self.deleted


class Harvester:
    """Detects changes under one root and dispatches them to listeners.

    ``poll()`` is a unit of work driven by an external scheduler. The snapshot
    is persisted only after every event of the cycle has been dispatched, so a
    crash in between re-delivers the same events on the next poll.
    """

    def __init__(
        self,
        config: HarvesterConfig,
        *,
        lister: TreeListerPort,
        store: PersistencePort,
    ) -> None:
        self._config = config
        # Registry binding key; fixed for the lifetime of the harvester.
        self._id = config.harvester_id
        self._lister = lister
        self._store = store
        self._observer = Observer(config.root)
        self._state = HarvesterState.STOPPED
        self._snapshot: TreeSnapshot | None = None
        self._persistence_key = persistence_key_for(config.root)
        self._attribute_overrides: dict[str, list[str]] = {}

        # Serializes polls with start/stop/reconfigure.
        self._poll_lock = threading.RLock()
        # Guards structural changes; readers use the current tuple without locking.
        self._listeners_lock = threading.Lock()
        self._listeners: tuple[ListenerPort, ...] = ()

    # ------------------------------------------------------------------#
    # Properties
    # ------------------------------------------------------------------#

    @property
    def id(self) -> str:
        return self._id

    @property
    def root(self) -> str:
        return self._config.root

    @property
    def config(self) -> HarvesterConfig:
        return self._config

    @property
    def state(self) -> HarvesterState:
        return self._state

    @property
    def persistence_key(self) -> str:
        return self._persistence_key

    @property
    def listeners(self) -> tuple[ListenerPort, ...]:
        return self._listeners

    # ------------------------------------------------------------------#
    # Lifecycle
    # ------------------------------------------------------------------#

    def start(self) -> None:
        """Validate the root and load (or create) the persisted snapshot.

        Raises:
            ConfigurationError: If the root or overrides are unusable
            PersistenceError: If the persisted snapshot cannot be read
        """
        with self._poll_lock:
            if self._state is HarvesterState.POLLING:
                return

            self._state = HarvesterState.INITIALIZING
            try:
                overrides = parse_attribute_overrides(self._config.attribute_overrides)
                self._lister.validate(self.root)
                snapshot = self._load_snapshot()
            except Exception:
                self._state = HarvesterState.STOPPED
                raise

            self._attribute_overrides = overrides
            self._snapshot = snapshot
            self._state = HarvesterState.POLLING

        logger.info(
            "Harvester [%s] started on [%s] (%s persisted entries)",
            self.id,
            self.root,
            len(snapshot) if snapshot is not None else "no",
        )

    def stop(self) -> None:
        """Stop the harvester, waiting for an in-flight poll to finish."""
        with self._poll_lock:
            if self._state is HarvesterState.STOPPED:
                return
            self._state = HarvesterState.STOPPED
            self._snapshot = None
        logger.info("Harvester [%s] stopped", self.id)

    def reconfigure(self, config: HarvesterConfig) -> None:
        """Tear down and re-initialize with ``config``.

        Registered listeners and the harvester id are kept; a config without an
        explicit id inherits the current one. A root change switches to the
        snapshot persisted for the new root.

        Raises:
            ConfigurationError: If ``config`` names a different harvester id
        """
        if config.id is not None and config.id != self._id:
            raise ConfigurationError(
                f"Cannot change id of harvester [{self._id}] to [{config.id}]; "
                "register a new harvester instead."
            )
        config = config.model_copy(update={"id": self._id})

        with self._poll_lock:
            self.stop()
            self._config = config
            self._observer = Observer(config.root)
            self._persistence_key = persistence_key_for(config.root)
            logger.info("Harvester [%s] reconfigured for [%s]", self.id, self.root)
            self.start()

    def reset_state(self) -> None:
        """Delete the persisted snapshot so the next start re-harvests everything."""
        with self._poll_lock:
            if self._state is not HarvesterState.STOPPED:
                raise HarvestError(f"Harvester [{self.id}] must be stopped to reset its state.")
            self._store.delete(self._persistence_key)

    # ------------------------------------------------------------------#
    # Listeners
    # ------------------------------------------------------------------#

    def register_listener(self, listener: ListenerPort) -> None:
        """Add ``listener`` to the dispatch set.

        Raises:
            ConfigurationError: Under the single-listener policy when one is already registered
        """
        with self._listeners_lock:
            if any(existing is listener for existing in self._listeners):
                return
            if self._config.listener_policy == "single" and self._listeners:
                raise ConfigurationError(
                    f"Only 1 registered listener is currently supported for harvester [{self.id}]."
                )
            self._listeners = (*self._listeners, listener)

    def unregister_listener(self, listener: ListenerPort) -> None:
        with self._listeners_lock:
            self._listeners = tuple(
                existing for existing in self._listeners if existing is not listener
            )

    # ------------------------------------------------------------------#
    # Polling
    # ------------------------------------------------------------------#

    def poll(self) -> PollResult:
        """Run one detect-dispatch-persist cycle.

        Raises:
            HarvestError: If the harvester is not started
            UnreachableError: If the root cannot be listed; nothing is dispatched
            PersistenceError: If the new snapshot cannot be persisted
        """
        with self._poll_lock:
            if self._state is not HarvesterState.POLLING:
                raise HarvestError(f"Harvester [{self.id}] is not started.")

            listeners = self._listeners
            if not listeners and self._config.skip_poll_without_listeners:
                logger.debug("Harvester [%s] has no listeners, skipping poll", self.id)
                return PollResult(skipped=True)

            listing = self._lister.list_entries(self.root)
            diff = self._observer.diff(self._snapshot, listing)

            result = PollResult(
                created=diff.count(ChangeKind.CREATED),
                modified=diff.count(ChangeKind.MODIFIED),
                deleted=diff.count(ChangeKind.DELETED),
            )
            for event in diff.events:
                result.listener_failures += self._dispatch(event, listeners)

            self._persist_snapshot(diff.snapshot)
            self._snapshot = diff.snapshot

        if result.changes:
            logger.info(
                "Harvester [%s] poll: %d created, %d modified, %d deleted",
                self.id,
                result.created,
                result.modified,
                result.deleted,
            )
        return result

    def _dispatch(self, event: ChangeEvent, listeners: tuple[ListenerPort, ...]) -> int:
        """Deliver ``event`` to every listener; return the number of listener faults."""
        location = self._lister.location(self.root, event.path)

        payload: Any
        if event.kind is ChangeKind.DELETED:
            callback_name = "on_delete"
            payload = ResourceStub.for_location(location)
        else:
            callback_name = "on_create" if event.kind is ChangeKind.CREATED else "on_update"
            payload = self._build_resource(event.path, location)

        failures = 0
        for listener in listeners:
            try:
                getattr(listener, callback_name)(payload)
            except Exception:
                failures += 1
                logger.exception(
                    "Listener [%r] failed handling %s event for [%s]",
                    listener,
                    event.kind.value,
                    location,
                )
        return failures

    def _build_resource(self, path: str, location: str) -> HarvestedResource:
        loader = functools.partial(self._lister.read, self.root, path)
        return HarvestedResource(
            location=location,
            content=ContentAccessor(loader, name_from_location(location)),
            properties={ATTRIBUTE_OVERRIDES_KEY: copy.deepcopy(self._attribute_overrides)},
        )

    # ------------------------------------------------------------------#
    # Persistence
    # ------------------------------------------------------------------#

    def _load_snapshot(self) -> TreeSnapshot | None:
        blob = self._store.load(self._persistence_key)
        if blob is None:
            logger.debug(
                "No snapshot for persistence key [%s], starting fresh", self._persistence_key
            )
            return None
        logger.debug("Loaded snapshot for persistence key [%s]", self._persistence_key)
        return TreeSnapshot.decode(blob)

    def _persist_snapshot(self, snapshot: TreeSnapshot) -> None:
        try:
            self._store.store(self._persistence_key, snapshot.encode())
        except PersistenceError:
            logger.error(
                "Failed to persist snapshot for harvester [%s]; events will be re-delivered",
                self.id,
            )
            raise

    def __repr__(self) -> str:
        return f"Harvester(id={self.id!r}, root={self.root!r}, state={self._state.value})"
