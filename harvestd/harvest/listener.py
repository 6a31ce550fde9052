"""Listener that keeps a durable correlation id -> downstream id map."""

from __future__ import annotations

import logging
import threading

from harvestd.app.ports import AdapterPort, PersistencePort
from harvestd.errors import IngestError
from harvestd.harvest.resource import HarvestedResource, ResourceStub

logger = logging.getLogger(__name__)


class PersistentListener:
    """Makes downstream create/update/delete idempotent across re-delivery and restarts.

    The correlation map is the single source of truth for whether a
    downstream record exists. It only moves forward after the adapter
    confirms success; absence of a mapping turns update and delete into no-ops.
    """

    def __init__(
        self,
        adapter: AdapterPort,
        store: PersistencePort,
        *,
        listener_id: str,
        watch: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._store = store
        self._id = listener_id
        self._watch = watch
        self._lock = threading.Lock()

    @property
    def id(self) -> str:
        return self._id

    @property
    def watch_id(self) -> str | None:
        """Id of the harvester this listener is configured to follow."""
        return self._watch

    def on_create(self, resource: HarvestedResource) -> None:
        key = resource.correlation_id
        with self._lock:
            if self._lookup(key) is not None:
                logger.debug("Already created resource [%s]. Doing nothing", resource.location)
                return

            try:
                downstream_id = self._adapter.create(resource)
            except IngestError:
                logger.debug("Failed to create resource [%s].", resource.location, exc_info=True)
                return

            if not downstream_id:
                logger.debug("Adapter returned no id for created resource [%s].", resource.location)
                return

            self._store.store(key, downstream_id.encode("utf-8"))

    def on_update(self, resource: HarvestedResource) -> None:
        key = resource.correlation_id
        with self._lock:
            downstream_id = self._lookup(key)
            if downstream_id is None:
                logger.debug(
                    "No record of resource [%s]; ignoring update.", resource.location
                )
                return

            try:
                new_id = self._adapter.update(resource, downstream_id)
            except IngestError:
                logger.debug(
                    "Failed to update resource [%s] using id [%s].",
                    resource.location,
                    downstream_id,
                    exc_info=True,
                )
                return

            if new_id and new_id != downstream_id:
                self._store.store(key, new_id.encode("utf-8"))

    def on_delete(self, resource: ResourceStub | str) -> None:
        """Delete the downstream record of ``resource``.

        Accepts a resource stub or a bare correlation id.
        """
        key = resource if isinstance(resource, str) else resource.correlation_id
        with self._lock:
            downstream_id = self._lookup(key)
            if downstream_id is None:
                logger.debug("No record for correlation id [%s]; ignoring delete.", key)
                return

            try:
                self._adapter.delete(downstream_id)
            except IngestError:
                logger.debug(
                    "Failed to delete resource [%s] using id [%s]. "
                    "Resources in this listener's cache may be out of sync.",
                    key,
                    downstream_id,
                    exc_info=True,
                )
                return

            self._store.delete(key)

    def lookup(self, correlation_id: str) -> str | None:
        """Return the downstream id mapped to ``correlation_id``, if any."""
        with self._lock:
            return self._lookup(correlation_id)

    def mappings(self) -> dict[str, str]:
        """Return a copy of the full correlation map."""
        with self._lock:
            result: dict[str, str] = {}
            for key in sorted(self._store.list_keys()):
                downstream_id = self._lookup(key)
                if downstream_id is not None:
                    result[key] = downstream_id
            return result

    def _lookup(self, key: str) -> str | None:
        blob = self._store.load(key)
        if not blob:
            return None
        return blob.decode("utf-8")

    def __repr__(self) -> str:
        return f"PersistentListener(id={self._id!r}, watch={self._watch!r})"
