"""Tree lister over a WebDAV collection."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from urllib.parse import quote, unquote, urljoin, urlsplit

import requests

from harvestd.app.ports import Fingerprint, TreeEntry, TreeListerPort
from harvestd.errors import ConfigurationError, ResourceUnavailableError, UnreachableError

logger = logging.getLogger(__name__)

DAV_NS = "{DAV:}"
MULTI_STATUS = 207

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<D:propfind xmlns:D="DAV:"><D:prop>'
    "<D:resourcetype/><D:getcontentlength/><D:getlastmodified/><D:getetag/>"
    "</D:prop></D:propfind>"
)


@dataclass(slots=True)
class DavEntry:
    """One ``<D:response>`` element of a PROPFIND multistatus body."""

    url: str
    is_collection: bool
    size: int
    modified: str
    etag: str | None


def _collection_url(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def parse_multistatus(base_url: str, body: bytes) -> list[DavEntry]:
    """Parse a PROPFIND multistatus document.

    Args:
        base_url: URL the request was sent to; relative hrefs resolve against it
        body: Raw response body

    Returns:
        One entry per ``<D:response>`` carrying a successful propstat

    Raises:
        UnreachableError: If the body is not well-formed XML
    """
    try:
        document = ET.fromstring(body)
    except ET.ParseError as exc:
        raise UnreachableError(f"Malformed PROPFIND response from [{base_url}]: {exc}") from exc

    entries: list[DavEntry] = []
    for response in document.iter(f"{DAV_NS}response"):
        href = response.findtext(f"{DAV_NS}href")
        if not href:
            continue

        prop = None
        for propstat in response.findall(f"{DAV_NS}propstat"):
            status = propstat.findtext(f"{DAV_NS}status") or ""
            if " 200 " in f"{status} ":
                prop = propstat.find(f"{DAV_NS}prop")
                break
        if prop is None:
            continue

        resourcetype = prop.find(f"{DAV_NS}resourcetype")
        is_collection = (
            resourcetype is not None and resourcetype.find(f"{DAV_NS}collection") is not None
        )
        length = (prop.findtext(f"{DAV_NS}getcontentlength") or "0").strip()
        entries.append(
            DavEntry(
                url=urljoin(base_url, href.strip()),
                is_collection=is_collection,
                size=int(length) if length.isdigit() else 0,
                modified=(prop.findtext(f"{DAV_NS}getlastmodified") or "").strip(),
                etag=(prop.findtext(f"{DAV_NS}getetag") or "").strip() or None,
            )
        )
    return entries


class WebDavTreeLister(TreeListerPort):
    """Lists non-collection resources under a WebDAV collection.

    Collections are walked one ``Depth: 1`` PROPFIND at a time, since many
    servers refuse ``Depth: infinity``.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 30.0,
        auth: tuple[str, str] | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        if auth is not None:
            self.session.auth = auth

    def validate(self, root: str) -> None:
        try:
            entries = self._propfind(root, depth="0")
        except UnreachableError as exc:
            raise ConfigurationError(f"Unable to reach WebDAV root [{root}]: {exc}") from exc

        own = self._find_self(root, entries)
        if own is None or not own.is_collection:
            raise ConfigurationError(f"WebDAV location [{root}] is not a collection.")

    def list_entries(self, root: str) -> list[TreeEntry]:
        root_url = _collection_url(root)
        root_path = urlsplit(root_url).path

        entries: list[TreeEntry] = []
        pending = [root_url]
        seen: set[str] = set()
        while pending:
            collection = pending.pop()
            if collection in seen:
                continue
            seen.add(collection)

            for item in self._propfind(collection, depth="1"):
                item_path = urlsplit(item.url).path
                if _collection_url(item_path) == _collection_url(urlsplit(collection).path):
                    continue
                if not item_path.startswith(root_path):
                    logger.debug("Ignoring resource outside the harvest root: %s", item.url)
                    continue
                if item.is_collection:
                    pending.append(_collection_url(item.url))
                    continue

                relative = unquote(item_path[len(root_path):])
                if not relative:
                    continue
                entries.append(
                    TreeEntry(
                        path=relative,
                        fingerprint=Fingerprint(
                            size=item.size, modified=item.modified, etag=item.etag
                        ),
                    )
                )

        entries.sort(key=lambda entry: entry.path)
        return entries

    def location(self, root: str, path: str) -> str:
        return urljoin(_collection_url(root), quote(path))

    def read(self, root: str, path: str) -> bytes:
        url = self.location(root, path)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ResourceUnavailableError(f"Cannot read [{url}]: {exc}") from exc
        if response.status_code != 200:
            raise ResourceUnavailableError(
                f"Cannot read [{url}]: HTTP {response.status_code}"
            )
        return response.content

    def _propfind(self, url: str, *, depth: str) -> list[DavEntry]:
        try:
            response = self.session.request(
                "PROPFIND",
                url,
                data=PROPFIND_BODY,
                headers={"Depth": depth, "Content-Type": "application/xml; charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UnreachableError(f"PROPFIND [{url}] failed: {exc}") from exc

        if response.status_code != MULTI_STATUS:
            raise UnreachableError(
                f"PROPFIND [{url}] returned HTTP {response.status_code}, expected {MULTI_STATUS}"
            )
        return parse_multistatus(url, response.content)

    @staticmethod
    def _find_self(root: str, entries: list[DavEntry]) -> DavEntry | None:
        wanted = _collection_url(urlsplit(root).path)
        for entry in entries:
            if _collection_url(urlsplit(entry.url).path) == wanted:
                return entry
        return None
