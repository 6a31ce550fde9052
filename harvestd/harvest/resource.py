"""Harvested resource values handed to listeners."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlsplit

from harvestd.errors import ResourceUnavailableError
from harvestd.utils.hashing import correlation_id_for

logger = logging.getLogger(__name__)

ATTRIBUTE_OVERRIDES_KEY = "attribute_overrides"


def name_from_location(location: str) -> str:
    """Return the last path segment of ``location`` (URL-decoded)."""
    path = urlsplit(location).path or location
    return PurePosixPath(unquote(path)).name


@dataclass(frozen=True, slots=True)
class ResourceStub:
    """Identity of a resource without access to its content.

    Delivered on delete events, when the resource no longer exists.
    """

    correlation_id: str
    location: str

    @classmethod
    def for_location(cls, location: str) -> ResourceStub:
        return cls(correlation_id=correlation_id_for(location), location=location)


@dataclass(frozen=True, slots=True)
class ResourceContent:
    """Bytes of a harvested resource, read at most once."""

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


_UNSET = object()


class ContentAccessor:
    """Deferred access to a resource's bytes.

    The loader runs at most once per accessor. Its outcome (content or
    unavailability) is cached, so every later call observes the same result.
    """

    def __init__(self, loader: Callable[[], bytes], name: str) -> None:
        self._loader = loader
        self._name = name
        self._lock = threading.Lock()
        self._outcome: Any = _UNSET

    @property
    def loaded(self) -> bool:
        """Return True once the loader has run."""
        return self._outcome is not _UNSET

    @property
    def available(self) -> bool:
        """Return True when content could be read (loads on first access)."""
        try:
            self.get()
        except ResourceUnavailableError:
            return False
        return True

    def get(self) -> ResourceContent:
        """Return the resource content.

        Raises:
            ResourceUnavailableError: If the resource vanished between detection and read
        """
        with self._lock:
            if self._outcome is _UNSET:
                try:
                    self._outcome = ResourceContent(name=self._name, data=self._loader())
                except (ResourceUnavailableError, OSError) as exc:
                    logger.debug("Error reading resource [%s]. Was it deleted?", self._name)
                    self._outcome = ResourceUnavailableError(
                        f"Resource [{self._name}] is not available: {exc}"
                    )
            outcome = self._outcome

        if isinstance(outcome, ResourceUnavailableError):
            raise outcome
        return outcome


@dataclass(slots=True)
class HarvestedResource:
    """A created or modified resource detected by a harvester.

    ``properties`` carries harvest-time directives (such as attribute
    overrides); it is not derived from the resource itself.
    """

    location: str
    content: ContentAccessor
    properties: dict[str, Any] = field(default_factory=dict)
    correlation_id: str = field(init=False)

    def __post_init__(self) -> None:
        self.correlation_id = correlation_id_for(self.location)

    @property
    def name(self) -> str:
        return name_from_location(self.location)

    @property
    def attribute_overrides(self) -> dict[str, list[str]]:
        return dict(self.properties.get(ATTRIBUTE_OVERRIDES_KEY) or {})

    @property
    def stub(self) -> ResourceStub:
        return ResourceStub(correlation_id=self.correlation_id, location=self.location)
