"""In-process matching of harvesters to the listeners configured to watch them."""

from __future__ import annotations

import logging
import threading

from harvestd.app.ports import ListenerPort
from harvestd.errors import ConfigurationError
from harvestd.harvest.harvester import Harvester

logger = logging.getLogger(__name__)


class HarvesterRegistry:
    """Binds harvesters and listeners that share a configured id.

    Either side may appear first; whichever arrives later is caught up with
    every existing match. Removal unbinds symmetrically.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._harvesters: list[Harvester] = []
        self._listeners: list[tuple[str, ListenerPort]] = []

    def register_harvester(self, harvester: Harvester) -> None:
        with self._lock:
            if any(existing is harvester for existing in self._harvesters):
                return
            self._harvesters.append(harvester)
            for watch_id, listener in self._listeners:
                if watch_id == harvester.id:
                    self._bind(harvester, listener)

    def unregister_harvester(self, harvester: Harvester) -> None:
        with self._lock:
            self._harvesters = [h for h in self._harvesters if h is not harvester]
            for watch_id, listener in self._listeners:
                if watch_id == harvester.id:
                    harvester.unregister_listener(listener)

    def register_listener(self, listener: ListenerPort, watch_id: str | None = None) -> None:
        """Register ``listener`` for harvesters with id ``watch_id``.

        ``watch_id`` defaults to the listener's own ``watch_id`` attribute.
        """
        target = watch_id if watch_id is not None else getattr(listener, "watch_id", None)
        if not target:
            raise ConfigurationError(f"Listener [{listener!r}] has no harvester id to watch.")

        with self._lock:
            if any(existing is listener for _, existing in self._listeners):
                return
            self._listeners.append((target, listener))
            for harvester in self._harvesters:
                if harvester.id == target:
                    self._bind(harvester, listener)

    def unregister_listener(self, listener: ListenerPort) -> None:
        with self._lock:
            removed = [(w, l) for w, l in self._listeners if l is listener]
            self._listeners = [(w, l) for w, l in self._listeners if l is not listener]
            for watch_id, _ in removed:
                for harvester in self._harvesters:
                    if harvester.id == watch_id:
                        harvester.unregister_listener(listener)

    def harvesters(self) -> tuple[Harvester, ...]:
        with self._lock:
            return tuple(self._harvesters)

    def listeners_for(self, watch_id: str) -> tuple[ListenerPort, ...]:
        with self._lock:
            return tuple(listener for w, listener in self._listeners if w == watch_id)

    @staticmethod
    def _bind(harvester: Harvester, listener: ListenerPort) -> None:
        try:
            harvester.register_listener(listener)
        except ConfigurationError as exc:
            logger.error("Could not bind listener [%r] to harvester [%s]: %s", listener, harvester.id, exc)
