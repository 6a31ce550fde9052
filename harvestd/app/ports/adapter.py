"""Adapter port interface for the downstream catalog store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from harvestd.harvest.resource import HarvestedResource


class AdapterPort(Protocol):
    """Port interface for create/update/delete against a downstream store.

    No method may partially apply: either the downstream effect happened and
    the returned id is usable, or an ``IngestError`` is raised.
    """

    def create(self, resource: HarvestedResource) -> str:
        """Store ``resource`` downstream.

        Returns:
            The downstream id assigned to the new record

        Raises:
            IngestError: If the record was not created
        """
        ...

    def update(self, resource: HarvestedResource, downstream_id: str) -> str:
        """Replace the downstream record ``downstream_id`` with ``resource``.

        Returns:
            The downstream id after the update (may differ if ids are reassigned)

        Raises:
            IngestError: If the record was not updated
        """
        ...

    def delete(self, downstream_id: str) -> None:
        """Delete the downstream record ``downstream_id``.

        Raises:
            IngestError: If the record was not deleted
        """
        ...
