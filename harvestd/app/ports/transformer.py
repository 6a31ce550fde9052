"""Transformer port interface and catalog record DTO."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:  # pragma: no cover
    from harvestd.harvest.resource import HarvestedResource


class CatalogRecord(BaseModel):
    """Downstream representation of a harvested resource."""

    id: str | None = Field(default=None, description="Downstream id, None before creation")
    attributes: dict[str, Any] = Field(default_factory=dict)


class TransformerPort(Protocol):
    """Port interface turning raw resource bytes into a catalog record."""

    def transform(
        self,
        resource: HarvestedResource,
        *,
        downstream_id: str | None = None,
    ) -> CatalogRecord:
        """Build a catalog record for ``resource``.

        Args:
            resource: Harvested resource whose content is read lazily
            downstream_id: Id of the record being updated, if any

        Raises:
            IngestError: If the resource cannot be transformed
        """
        ...
