"""Default transformer from harvested resources to catalog records."""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from harvestd.app.ports import CatalogRecord, TransformerPort
from harvestd.errors import IngestError, ResourceUnavailableError
from harvestd.harvest.resource import HarvestedResource
from harvestd.utils.hashing import compute_sha256

logger = logging.getLogger(__name__)

AttributeFormat = Literal[
    "string", "short", "integer", "long", "float", "double", "boolean", "date", "binary"
]


def _parse_boolean(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_date(value: str) -> str:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat()


def _parse_binary(value: str) -> str:
    # Records are stored as JSON; keep binary overrides as their UTF-8 hex form.
    return value.encode("utf-8").hex()


_COERCIONS: dict[str, Callable[[str], Any]] = {
    "string": str,
    "short": int,
    "integer": int,
    "long": int,
    "float": float,
    "double": float,
    "boolean": _parse_boolean,
    "date": _parse_date,
    "binary": _parse_binary,
}


@dataclass(frozen=True, slots=True)
class AttributeDescriptor:
    """Registered catalog attribute: name, value format, and cardinality."""

    name: str
    format: AttributeFormat = "string"
    multi_valued: bool = False

    def coerce(self, value: str) -> Any:
        """Convert an override string to this attribute's format.

        Raises:
            ValueError: If ``value`` is not valid for the format
        """
        return _COERCIONS[self.format](value)


DEFAULT_ATTRIBUTES: tuple[AttributeDescriptor, ...] = (
    AttributeDescriptor("title"),
    AttributeDescriptor("description"),
    AttributeDescriptor("resource_uri"),
    AttributeDescriptor("resource_size", "long"),
    AttributeDescriptor("mime_type"),
    AttributeDescriptor("checksum"),
    AttributeDescriptor("checksum_algorithm"),
    AttributeDescriptor("created", "date"),
    AttributeDescriptor("modified", "date"),
    AttributeDescriptor("effective", "date"),
    AttributeDescriptor("expiration", "date"),
    AttributeDescriptor("point_of_contact"),
    AttributeDescriptor("language", multi_valued=True),
    AttributeDescriptor("keywords", multi_valued=True),
    AttributeDescriptor("security_classification"),
    AttributeDescriptor("version", "integer"),
    AttributeDescriptor("priority", "short"),
    AttributeDescriptor("rating", "double"),
    AttributeDescriptor("geo_accuracy", "float"),
    AttributeDescriptor("published", "boolean"),
    AttributeDescriptor("thumbnail", "binary"),
)


def apply_attribute_overrides(
    attributes: dict[str, Any],
    overrides: Mapping[str, list[str]],
    registry: Mapping[str, AttributeDescriptor],
) -> dict[str, Any]:
    """Apply operator overrides to ``attributes`` in place.

    Unknown attribute names are ignored. Several values for a single-valued
    attribute are ignored. A value that fails coercion drops that override.

    Raises:
        ValueError: If an override carries an empty value list
    """
    for name, values in overrides.items():
        if not values:
            raise ValueError("Attribute overrides must contain override values, not empty lists")

        descriptor = registry.get(name)
        if descriptor is None:
            logger.debug("Attribute name [%s] was not found in the registry. Not setting it", name)
            continue

        if len(values) > 1 and not descriptor.multi_valued:
            logger.debug(
                "Unable to override attribute [%s] with values [%s]: not multi-valued",
                name,
                ", ".join(values),
            )
            continue

        try:
            coerced = [descriptor.coerce(value) for value in values]
        except ValueError as exc:
            logger.debug("Dropping override of attribute [%s]: %s", name, exc)
            continue

        attributes[name] = coerced if descriptor.multi_valued else coerced[0]
    return attributes


class DefaultTransformer(TransformerPort):
    """Builds a catalog record from resource bytes and harvest properties."""

    def __init__(self, attributes: tuple[AttributeDescriptor, ...] = DEFAULT_ATTRIBUTES) -> None:
        self._registry = {descriptor.name: descriptor for descriptor in attributes}

    @property
    def registry(self) -> Mapping[str, AttributeDescriptor]:
        return self._registry

    def transform(
        self,
        resource: HarvestedResource,
        *,
        downstream_id: str | None = None,
    ) -> CatalogRecord:
        try:
            content = resource.content.get()
        except ResourceUnavailableError as exc:
            raise IngestError(f"Resource [{resource.location}] is not available: {exc}") from exc

        now = datetime.now(UTC).isoformat()
        mime_type, _ = mimetypes.guess_type(content.name)
        attributes: dict[str, Any] = {
            "title": content.name or resource.name,
            "resource_uri": resource.location,
            "resource_size": content.size,
            "mime_type": mime_type or "application/octet-stream",
            "checksum": compute_sha256(content.data),
            "checksum_algorithm": "SHA-256",
            "created": now,
            "modified": now,
        }

        try:
            apply_attribute_overrides(attributes, resource.attribute_overrides, self._registry)
        except ValueError as exc:
            raise IngestError(f"Invalid attribute overrides for [{resource.location}]: {exc}") from exc

        return CatalogRecord(id=downstream_id, attributes=attributes)
