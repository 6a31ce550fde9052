"""Filesystem-backed downstream catalog used as the default adapter."""

from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from pathlib import Path
from typing import Any

from harvestd.app.ports import AdapterPort, CatalogRecord, TransformerPort
from harvestd.app.adapters.transformer import DefaultTransformer
from harvestd.errors import IngestError
from harvestd.harvest.resource import HarvestedResource
from harvestd.utils.atomic import atomic_write_bytes

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class LocalCatalogAdapter(AdapterPort):
    """Stores catalog records as JSON files, one per downstream id.

    Each record is written atomically, so an operation either fully applies or
    raises ``IngestError``.
    """

    def __init__(self, catalog_dir: Path, transformer: TransformerPort | None = None) -> None:
        self._catalog_dir = Path(catalog_dir)
        self._transformer = transformer or DefaultTransformer()
        self._lock = threading.Lock()

    @property
    def catalog_dir(self) -> Path:
        return self._catalog_dir

    def create(self, resource: HarvestedResource) -> str:
        downstream_id = uuid.uuid4().hex
        record = self._transformer.transform(resource, downstream_id=downstream_id)
        with self._lock:
            self._write(downstream_id, record)
        logger.debug("Created catalog record [%s] for [%s]", downstream_id, resource.location)
        return downstream_id

    def update(self, resource: HarvestedResource, downstream_id: str) -> str:
        path = self._record_path(downstream_id)
        record = self._transformer.transform(resource, downstream_id=downstream_id)
        with self._lock:
            if not path.exists():
                raise IngestError(f"Catalog record [{downstream_id}] does not exist.")
            previous = self._read(path)
            created = previous.get("attributes", {}).get("created")
            if created:
                record.attributes["created"] = created
            self._write(downstream_id, record)
        logger.debug("Updated catalog record [%s] for [%s]", downstream_id, resource.location)
        return downstream_id

    def delete(self, downstream_id: str) -> None:
        path = self._record_path(downstream_id)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError as exc:
                raise IngestError(f"Catalog record [{downstream_id}] does not exist.") from exc
            except OSError as exc:
                raise IngestError(f"Failed to delete catalog record [{downstream_id}]: {exc}") from exc
        logger.debug("Deleted catalog record [%s]", downstream_id)

    def get(self, downstream_id: str) -> CatalogRecord | None:
        """Return the stored record for ``downstream_id``, or None."""
        path = self._record_path(downstream_id)
        if not path.exists():
            return None
        return CatalogRecord.model_validate(self._read(path))

    def list_ids(self) -> list[str]:
        if not self._catalog_dir.is_dir():
            return []
        return sorted(
            entry.stem
            for entry in self._catalog_dir.glob("*.json")
            if _ID_PATTERN.match(entry.stem)
        )

    def _record_path(self, downstream_id: str) -> Path:
        if not _ID_PATTERN.match(downstream_id):
            raise IngestError(f"Invalid catalog record id [{downstream_id}].")
        return self._catalog_dir / f"{downstream_id}.json"

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise IngestError(f"Cannot read catalog record [{path.name}]: {exc}") from exc

    def _write(self, downstream_id: str, record: CatalogRecord) -> None:
        payload = json.dumps(
            record.model_dump(mode="json"), sort_keys=True, ensure_ascii=False, indent=2
        ).encode("utf-8")
        try:
            atomic_write_bytes(self._record_path(downstream_id), payload)
        except OSError as exc:
            raise IngestError(f"Failed to write catalog record [{downstream_id}]: {exc}") from exc
