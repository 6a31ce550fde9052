"""Listener port interface for harvest event consumers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from harvestd.harvest.resource import HarvestedResource, ResourceStub


class ListenerPort(Protocol):
    """Port interface for consumers of harvest events.

    Callbacks are invoked synchronously from the harvester's poll. On delete
    the resource no longer exists; listeners must identify it by correlation id.
    """

    def on_create(self, resource: HarvestedResource) -> None:
        """Called for a resource first seen in this poll."""
        ...

    def on_update(self, resource: HarvestedResource) -> None:
        """Called for a resource whose fingerprint changed."""
        ...

    def on_delete(self, resource: ResourceStub) -> None:
        """Called for a resource that disappeared."""
        ...
