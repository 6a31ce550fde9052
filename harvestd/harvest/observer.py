"""Snapshot diffing: turns two views of a tree into change events."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from harvestd.app.ports.tree_lister import TreeEntry
from harvestd.harvest.snapshot import TreeSnapshot


class ChangeKind(str, Enum):
    """Kind of change detected for a path."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A single detected change."""

    kind: ChangeKind
    path: str


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Events of one poll plus the snapshot that replaces the previous one."""

    events: list[ChangeEvent]
    snapshot: TreeSnapshot

    def count(self, kind: ChangeKind) -> int:
        return sum(1 for event in self.events if event.kind is kind)


class Observer:
    """Computes created/modified/deleted events for one harvest root.

    Renames surface as an independent delete and create. A path that vanishes
    and reappears between two polls with the same fingerprint surfaces as a
    delete followed (next poll) by a create.
    """

    def __init__(self, root: str) -> None:
        self.root = root

    def diff(
        self,
        previous: TreeSnapshot | None,
        listing: Iterable[TreeEntry],
    ) -> DiffResult:
        """Diff ``listing`` against ``previous``.

        Creates and modifies are emitted in listing order, followed by
        deletes in the previous snapshot's order.
        """
        current = TreeSnapshot.from_listing(self.root, listing)
        events: list[ChangeEvent] = []

        if previous is None:
            events.extend(ChangeEvent(ChangeKind.CREATED, path) for path in current)
            return DiffResult(events=events, snapshot=current)

        for path, fingerprint in current.entries.items():
            prior = previous.get(path)
            if prior is None:
                events.append(ChangeEvent(ChangeKind.CREATED, path))
            elif prior != fingerprint:
                events.append(ChangeEvent(ChangeKind.MODIFIED, path))

        events.extend(
            ChangeEvent(ChangeKind.DELETED, path) for path in previous if path not in current
        )

        return DiffResult(events=events, snapshot=current)
