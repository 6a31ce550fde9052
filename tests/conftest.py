"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from harvestd.app.adapters import MemoryPersistenceStore
from harvestd.app.ports import Fingerprint, TreeEntry
from harvestd.config import HarvesterConfig, Settings
from harvestd.errors import (
    ConfigurationError,
    IngestError,
    ResourceUnavailableError,
    UnreachableError,
)
from harvestd.harvest import Harvester, HarvestedResource, ResourceStub


class InMemoryTreeLister:
    """Tree lister over a dict of path -> bytes, with controllable failures."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, str]] = {}
        self.invalid_roots: set[str] = set()
        self.unreachable = False
        self.reads: list[str] = []
        self.list_calls = 0
        self._clock = 0

    def put(self, path: str, data: bytes = b"data") -> None:
        self._clock += 1
        self.files[path] = (data, str(self._clock))

    def remove(self, path: str) -> None:
        del self.files[path]

    def validate(self, root: str) -> None:
        if root in self.invalid_roots:
            raise ConfigurationError(f"File [{root}] does not exist.")

    def list_entries(self, root: str) -> list[TreeEntry]:
        self.list_calls += 1
        if self.unreachable:
            raise UnreachableError(f"[{root}] is unreachable")
        return [
            TreeEntry(path=path, fingerprint=Fingerprint(size=len(data), modified=modified))
            for path, (data, modified) in sorted(self.files.items())
        ]

    def location(self, root: str, path: str) -> str:
        return f"mem:{root}/{path}"

    def read(self, root: str, path: str) -> bytes:
        self.reads.append(path)
        try:
            return self.files[path][0]
        except KeyError as exc:
            raise ResourceUnavailableError(f"[{path}] vanished") from exc


class BlockingTreeLister(InMemoryTreeLister):
    """Tree lister whose first listing blocks until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()
        self.entries = 0
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def list_entries(self, root: str) -> list[TreeEntry]:
        with self._guard:
            self.entries += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            self.release.wait(timeout=5)
            return super().list_entries(root)
        finally:
            with self._guard:
                self.active -= 1


class RecordingListener:
    """Listener that records every callback it receives."""

    def __init__(self, watch_id: str | None = None, *, fail: bool = False) -> None:
        self.watch_id = watch_id
        self.fail = fail
        self.events: list[tuple[str, str]] = []
        self.resources: list[HarvestedResource] = []

    def on_create(self, resource: HarvestedResource) -> None:
        self._record("create", resource.location)
        self.resources.append(resource)

    def on_update(self, resource: HarvestedResource) -> None:
        self._record("update", resource.location)
        self.resources.append(resource)

    def on_delete(self, resource: ResourceStub) -> None:
        self._record("delete", resource.location)

    def _record(self, kind: str, location: str) -> None:
        if self.fail:
            raise RuntimeError(f"listener failure on {kind}")
        self.events.append((kind, location))


class RecordingAdapter:
    """Downstream adapter keeping records in memory and counting calls."""

    def __init__(self) -> None:
        self.records: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.return_empty_id = False
        self.reassign_on_update = False
        self._next = 0

    def _new_id(self) -> str:
        self._next += 1
        return f"id-{self._next}"

    def create(self, resource: HarvestedResource) -> str:
        self.calls.append(("create", resource.location))
        if "create" in self.fail_on:
            raise IngestError("create failed")
        if self.return_empty_id:
            return ""
        downstream_id = self._new_id()
        self.records[downstream_id] = resource.location
        return downstream_id

    def update(self, resource: HarvestedResource, downstream_id: str) -> str:
        self.calls.append(("update", downstream_id))
        if "update" in self.fail_on:
            raise IngestError("update failed")
        if self.reassign_on_update:
            del self.records[downstream_id]
            downstream_id = self._new_id()
        self.records[downstream_id] = resource.location
        return downstream_id

    def delete(self, downstream_id: str) -> None:
        self.calls.append(("delete", downstream_id))
        if "delete" in self.fail_on:
            raise IngestError("delete failed")
        self.records.pop(downstream_id, None)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        time.sleep(0.05)
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated harvestd settings scoped to tests."""

    import harvestd.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    config_dir = temp_dir / "appconfig"
    data_dir.mkdir(parents=True, exist_ok=True)
    config_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(data_dir=data_dir, config_dir=config_dir)

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def tree_lister() -> InMemoryTreeLister:
    return InMemoryTreeLister()


@pytest.fixture
def memory_store() -> MemoryPersistenceStore:
    return MemoryPersistenceStore()


@pytest.fixture
def recording_adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture
def make_listener() -> Callable[..., RecordingListener]:
    """Factory for recording listeners."""
    return RecordingListener


@pytest.fixture
def make_harvester(
    tree_lister: InMemoryTreeLister, memory_store: MemoryPersistenceStore
) -> Callable[..., Harvester]:
    """Factory for harvesters over the shared in-memory tree and store."""

    def _make(root: str = "/data", **fields) -> Harvester:
        config = HarvesterConfig(root=root, **fields)
        return Harvester(config, lister=tree_lister, store=memory_store)

    return _make


@pytest.fixture
def blocking_lister() -> BlockingTreeLister:
    return BlockingTreeLister()


@pytest.fixture
def blocking_harvester(
    blocking_lister: BlockingTreeLister, memory_store: MemoryPersistenceStore
) -> Harvester:
    """Harvester on ``/data`` whose first poll blocks inside the listing."""
    return Harvester(HarvesterConfig(root="/data"), lister=blocking_lister, store=memory_store)
