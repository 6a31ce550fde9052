"""Tests for the WebDAV tree lister against a stubbed HTTP session."""

import pytest
import requests

from harvestd.app.adapters import WebDavTreeLister
from harvestd.errors import ConfigurationError, ResourceUnavailableError, UnreachableError

ROOT = "http://dav.example/files"


class StubResponse:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content


class StubSession:
    """Minimal stand-in for ``requests.Session`` keyed by (method, url)."""

    def __init__(self, responses: dict[tuple[str, str], StubResponse]) -> None:
        self.responses = responses
        self.requests: list[tuple[str, str, dict]] = []
        self.auth = None
        self.error: Exception | None = None

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.requests.append((method, url, dict(headers or {})))
        if self.error is not None:
            raise self.error
        return self.responses.get((method, url), StubResponse(404))

    def get(self, url, timeout=None):
        return self.request("GET", url, timeout=timeout)


def _response(href: str, *, collection: bool = False, length: int = 0,
              modified: str = "Mon, 01 Jan 2024 00:00:00 GMT", etag: str | None = None) -> str:
    resourcetype = "<D:collection/>" if collection else ""
    etag_xml = f"<D:getetag>{etag}</D:getetag>" if etag else ""
    return (
        f"<D:response><D:href>{href}</D:href><D:propstat><D:prop>"
        f"<D:resourcetype>{resourcetype}</D:resourcetype>"
        f"<D:getcontentlength>{length}</D:getcontentlength>"
        f"<D:getlastmodified>{modified}</D:getlastmodified>{etag_xml}"
        f"</D:prop><D:status>HTTP/1.1 200 OK</D:status></D:propstat></D:response>"
    )


def _multistatus(*responses: str) -> StubResponse:
    body = '<?xml version="1.0"?><D:multistatus xmlns:D="DAV:">' + "".join(responses)
    return StubResponse(207, (body + "</D:multistatus>").encode("utf-8"))


@pytest.fixture
def dav_tree() -> StubSession:
    return StubSession(
        {
            ("PROPFIND", ROOT): _multistatus(_response("/files/", collection=True)),
            ("PROPFIND", ROOT + "/"): _multistatus(
                _response("/files/", collection=True),
                _response("/files/b.txt", length=5, etag='"b1"'),
                _response("/files/sub/", collection=True),
            ),
            ("PROPFIND", ROOT + "/sub/"): _multistatus(
                _response("/files/sub/", collection=True),
                _response("/files/sub/a%20c.txt", length=3),
            ),
            ("GET", ROOT + "/b.txt"): StubResponse(200, b"hello"),
        }
    )


def test_list_entries_walks_collections(dav_tree: StubSession) -> None:
    lister = WebDavTreeLister(session=dav_tree)

    entries = lister.list_entries(ROOT)

    assert [entry.path for entry in entries] == ["b.txt", "sub/a c.txt"]
    assert entries[0].fingerprint.size == 5
    assert entries[0].fingerprint.etag == '"b1"'
    assert entries[0].fingerprint.modified == "Mon, 01 Jan 2024 00:00:00 GMT"
    assert {headers["Depth"] for method, _, headers in dav_tree.requests} == {"1"}


def test_location_quotes_path_segments() -> None:
    lister = WebDavTreeLister(session=StubSession({}))

    assert lister.location(ROOT, "sub/a c.txt") == "http://dav.example/files/sub/a%20c.txt"


def test_non_multistatus_response_is_unreachable() -> None:
    session = StubSession({("PROPFIND", ROOT + "/"): StubResponse(503)})

    with pytest.raises(UnreachableError, match="503"):
        WebDavTreeLister(session=session).list_entries(ROOT)


def test_network_error_is_unreachable(dav_tree: StubSession) -> None:
    dav_tree.error = requests.ConnectionError("refused")

    with pytest.raises(UnreachableError):
        WebDavTreeLister(session=dav_tree).list_entries(ROOT)


def test_malformed_xml_is_unreachable() -> None:
    session = StubSession({("PROPFIND", ROOT + "/"): StubResponse(207, b"<not-xml")})

    with pytest.raises(UnreachableError, match="Malformed"):
        WebDavTreeLister(session=session).list_entries(ROOT)


def test_validate_accepts_collection(dav_tree: StubSession) -> None:
    WebDavTreeLister(session=dav_tree).validate(ROOT)

    method, url, headers = dav_tree.requests[0]
    assert (method, url, headers["Depth"]) == ("PROPFIND", ROOT, "0")


def test_validate_rejects_non_collection() -> None:
    session = StubSession(
        {("PROPFIND", ROOT + "/b.txt"): _multistatus(_response("/files/b.txt", length=5))}
    )

    with pytest.raises(ConfigurationError, match="not a collection"):
        WebDavTreeLister(session=session).validate(ROOT + "/b.txt")


def test_validate_rejects_unreachable_root(dav_tree: StubSession) -> None:
    dav_tree.error = requests.Timeout("slow")

    with pytest.raises(ConfigurationError):
        WebDavTreeLister(session=dav_tree).validate(ROOT)


def test_read_fetches_content(dav_tree: StubSession) -> None:
    lister = WebDavTreeLister(session=dav_tree)

    assert lister.read(ROOT, "b.txt") == b"hello"
    with pytest.raises(ResourceUnavailableError):
        lister.read(ROOT, "missing.txt")


def test_auth_is_applied_to_session() -> None:
    session = StubSession({})

    WebDavTreeLister(session=session, auth=("user", "secret"))

    assert session.auth == ("user", "secret")
