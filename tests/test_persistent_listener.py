"""Tests for the idempotent persistent listener."""

from harvestd.app.adapters import MemoryPersistenceStore
from harvestd.harvest import ContentAccessor, HarvestedResource, PersistentListener


def _resource(location: str = "file:///srv/a.txt") -> HarvestedResource:
    return HarvestedResource(location, ContentAccessor(lambda: b"content", "a.txt"))


def _listener(adapter, store=None) -> PersistentListener:
    return PersistentListener(
        adapter, store or MemoryPersistenceStore(), listener_id="catalog", watch="share"
    )


def test_create_stores_mapping(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()

    listener.on_create(resource)

    assert listener.lookup(resource.correlation_id) == "id-1"
    assert recording_adapter.records == {"id-1": resource.location}


def test_repeated_create_is_idempotent(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()

    listener.on_create(resource)
    listener.on_create(_resource())

    assert recording_adapter.calls == [("create", resource.location)]
    assert len(recording_adapter.records) == 1


def test_create_is_idempotent_across_restarts(recording_adapter) -> None:
    store = MemoryPersistenceStore()
    _listener(recording_adapter, store).on_create(_resource())

    _listener(recording_adapter, store).on_create(_resource())

    assert [call[0] for call in recording_adapter.calls] == ["create"]


def test_failed_create_records_nothing(recording_adapter) -> None:
    recording_adapter.fail_on.add("create")
    listener = _listener(recording_adapter)
    resource = _resource()

    listener.on_create(resource)

    assert listener.lookup(resource.correlation_id) is None

    recording_adapter.fail_on.clear()
    listener.on_create(resource)
    assert listener.lookup(resource.correlation_id) == "id-1"


def test_empty_downstream_id_is_not_stored(recording_adapter) -> None:
    recording_adapter.return_empty_id = True
    listener = _listener(recording_adapter)

    listener.on_create(_resource())

    assert listener.mappings() == {}


def test_update_without_mapping_is_a_noop(recording_adapter) -> None:
    listener = _listener(recording_adapter)

    listener.on_update(_resource())

    assert recording_adapter.calls == []


def test_update_uses_mapped_id(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()
    listener.on_create(resource)

    listener.on_update(resource)

    assert recording_adapter.calls[-1] == ("update", "id-1")
    assert listener.lookup(resource.correlation_id) == "id-1"


def test_update_records_reassigned_id(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()
    listener.on_create(resource)
    recording_adapter.reassign_on_update = True

    listener.on_update(resource)

    assert listener.lookup(resource.correlation_id) == "id-2"


def test_failed_update_keeps_mapping(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()
    listener.on_create(resource)
    recording_adapter.fail_on.add("update")

    listener.on_update(resource)

    assert listener.lookup(resource.correlation_id) == "id-1"


def test_delete_without_mapping_is_a_noop(recording_adapter) -> None:
    listener = _listener(recording_adapter)

    listener.on_delete(_resource().stub)

    assert recording_adapter.calls == []


def test_delete_removes_record_and_mapping(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()
    listener.on_create(resource)

    listener.on_delete(resource.stub)
    listener.on_delete(resource.stub)

    assert recording_adapter.records == {}
    assert listener.lookup(resource.correlation_id) is None
    assert [call[0] for call in recording_adapter.calls] == ["create", "delete"]


def test_failed_delete_keeps_mapping_for_retry(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    resource = _resource()
    listener.on_create(resource)
    recording_adapter.fail_on.add("delete")

    listener.on_delete(resource.stub)

    assert listener.lookup(resource.correlation_id) == "id-1"

    recording_adapter.fail_on.clear()
    listener.on_delete(resource.correlation_id)
    assert listener.lookup(resource.correlation_id) is None


def test_mappings_lists_every_correlation(recording_adapter) -> None:
    listener = _listener(recording_adapter)
    first = _resource("file:///srv/a.txt")
    second = _resource("file:///srv/b.txt")

    listener.on_create(first)
    listener.on_create(second)

    assert listener.mappings() == {
        first.correlation_id: "id-1",
        second.correlation_id: "id-2",
    }
    assert listener.id == "catalog"
    assert listener.watch_id == "share"
