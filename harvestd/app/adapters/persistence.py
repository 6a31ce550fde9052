"""Persistence store adapters for snapshots and correlation maps."""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from harvestd.app.ports import PersistencePort
from harvestd.errors import PersistenceError
from harvestd.utils.atomic import atomic_write_bytes

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def _check_key(key: str) -> str:
    if not _KEY_PATTERN.match(key):
        raise PersistenceError(f"Invalid persistence key [{key}].")
    return key


class FileSystemPersistenceStore(PersistencePort):
    """One file per key under ``directory``, each write atomic.

    A crash mid-write leaves either the previous blob or the new one.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def store(self, key: str, blob: bytes) -> None:
        path = self._directory / _check_key(key)
        try:
            atomic_write_bytes(path, blob)
        except OSError as exc:
            logger.error("Failed to write persisted state [%s]: %s", path, exc)
            raise PersistenceError(f"Failed to store key [{key}]: {exc}") from exc

    def load(self, key: str) -> bytes | None:
        path = self._directory / _check_key(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read persisted state [%s]: %s", path, exc)
            raise PersistenceError(f"Failed to load key [{key}]: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._directory / _check_key(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to delete persisted state [%s]: %s", path, exc)
            raise PersistenceError(f"Failed to delete key [{key}]: {exc}") from exc

    def list_keys(self) -> set[str]:
        if not self._directory.is_dir():
            return set()
        try:
            return {
                entry.name
                for entry in self._directory.iterdir()
                if entry.is_file() and not entry.name.startswith(".")
            }
        except OSError as exc:
            raise PersistenceError(f"Failed to list keys in [{self._directory}]: {exc}") from exc


class MemoryPersistenceStore(PersistencePort):
    """In-process store, used by tests and ``--once`` dry runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}

    def store(self, key: str, blob: bytes) -> None:
        with self._lock:
            self._blobs[_check_key(key)] = bytes(blob)

    def load(self, key: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(_check_key(key))

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(_check_key(key), None)

    def list_keys(self) -> set[str]:
        with self._lock:
            return set(self._blobs)
