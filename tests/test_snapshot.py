"""Tests for the persisted tree snapshot format."""

import json

import pytest

from harvestd.app.ports import Fingerprint, TreeEntry
from harvestd.errors import PersistenceError, SnapshotFormatError
from harvestd.harvest import TreeSnapshot


def _snapshot() -> TreeSnapshot:
    return TreeSnapshot.from_listing(
        "/srv/share",
        [
            TreeEntry(path="b.txt", fingerprint=Fingerprint(size=3, modified="10")),
            TreeEntry(path="a/c.txt", fingerprint=Fingerprint(size=0, modified="11", etag='"e1"')),
        ],
    )


def test_encode_decode_preserves_entries_and_order() -> None:
    snapshot = _snapshot()

    decoded = TreeSnapshot.decode(snapshot.encode())

    assert decoded == snapshot
    assert list(decoded) == ["b.txt", "a/c.txt"]
    assert decoded.get("a/c.txt").etag == '"e1"'


def test_encoded_blob_is_versioned_json() -> None:
    payload = json.loads(_snapshot().encode())

    assert payload["schema_id"] == "tree_snapshot"
    assert payload["schema_version"] == 1
    assert payload["root"] == "/srv/share"


@pytest.mark.parametrize(
    "blob",
    [
        b"\x00\xffnot json",
        b"[1, 2, 3]",
        json.dumps({"schema_id": "manifest", "schema_version": 1}).encode(),
        json.dumps({"schema_id": "tree_snapshot", "schema_version": 2, "root": "/x"}).encode(),
        json.dumps(
            {
                "schema_id": "tree_snapshot",
                "schema_version": 1,
                "root": "/x",
                "entries": {"a": {"size": -1, "modified": "1"}},
            }
        ).encode(),
    ],
    ids=["garbage", "not-a-mapping", "wrong-schema", "future-version", "invalid-entry"],
)
def test_decode_rejects_unreadable_blobs(blob: bytes) -> None:
    with pytest.raises(SnapshotFormatError):
        TreeSnapshot.decode(blob)


def test_snapshot_format_error_is_a_persistence_error() -> None:
    with pytest.raises(PersistenceError):
        TreeSnapshot.decode(b"{}")


def test_snapshot_supports_len_and_membership() -> None:
    snapshot = _snapshot()

    assert len(snapshot) == 2
    assert "b.txt" in snapshot
    assert "missing" not in snapshot
    assert snapshot.get("missing") is None
