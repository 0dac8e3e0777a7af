"""Shared fixtures: a fake vendor host, canned archives and a local store."""

import hashlib
import json
from datetime import datetime, timezone

import pytest

from reprise.core.config import GlobalConfig
from reprise.core.kvstore import SqlKeyValueStore
from reprise.db.connection import DatabaseManager
from reprise.descriptors.models import PackageDescriptor

ORIGIN = "https://vendor.example/"
MANIFEST_URL = "https://vendor.example/download/mail/linux/version.json"


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, content: bytes = b"", status_code: int = 200, error=None):
        self.content = content
        self.status_code = status_code
        self.error = error
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def json(self):
        return json.loads(self.content)

    def iter_content(self, chunk_size: int = 1024):
        if self.error is not None:
            raise self.error
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Serves canned responses by URL and records every GET."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests: list[str] = []

    def add_json(self, url: str, document) -> None:
        self.routes[url] = FakeResponse(json.dumps(document).encode("utf-8"))

    def add_bytes(self, url: str, content: bytes) -> None:
        self.routes[url] = FakeResponse(content)

    def get(self, url, stream=False, timeout=None, **kwargs):
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(b"not found", status_code=404)
        if isinstance(route, Exception):
            raise route
        # Fresh response per call so iter_content can be consumed again
        return FakeResponse(route.content, route.status_code, route.error)

    def downloads(self, url: str) -> int:
        return self.requests.count(url)


def sha512_hex(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


def control_stanza(package: str, version: str, architecture: str = "amd64") -> str:
    return (
        f"Package: {package}\n"
        f"Version: {version}\n"
        f"Architecture: {architecture}\n"
        "Maintainer: Vendor Packaging <packages@vendor.example>\n"
        f"Description: {package} desktop client\n"
        " Long description continuation line\n"
        "Section: mail\n"
        "Depends: libc6 (>= 2.31), libgtk-3-0\n"
    )


def manifest_document(files, version: str = "1.9.1") -> dict:
    """Build a vendor manifest with one stable release holding the given files."""
    return {
        "Releases": [
            {
                "CategoryName": "Stable",
                "Version": version,
                "ReleaseDate": "2025-05-20T10:00:00Z",
                "File": [
                    {
                        "Identifier": identifier,
                        "Url": url,
                        "Sha512CheckSum": sha512,
                    }
                    for identifier, url, sha512 in files
                ],
                "ReleaseNotes": ["Bug fixes"],
                "RolloutPercentage": 1,
            }
        ]
    }


def make_descriptor(
    package: str = "vendor-mail",
    version: str = "1.9.1",
    architecture: str = "amd64",
    url: str | None = None,
    content: bytes | None = None,
    **extra,
) -> PackageDescriptor:
    """Build a valid descriptor with digests of some content."""
    url = url or f"{ORIGIN}download/mail/linux/{package}_{version}_{architecture}.deb"
    content = content or f"{package}-{version}-{architecture}".encode()
    values = {
        "url": url,
        "filename": url.rsplit("/", 1)[-1],
        "package": package,
        "version": version,
        "architecture": architecture,
        "maintainer": "Vendor Packaging <packages@vendor.example>",
        "size": len(content),
        "md5": hashlib.md5(content).hexdigest(),
        "sha256": hashlib.sha256(content).hexdigest(),
        "sha512": hashlib.sha512(content).hexdigest(),
        "last_verified": datetime(2025, 5, 20, 12, 0, 0, tzinfo=timezone.utc),
    }
    values.update(extra)
    return PackageDescriptor(**values)


@pytest.fixture
def fake_session():
    """Fake vendor host with no routes."""
    return FakeSession()


@pytest.fixture
def store(tmp_path):
    """SQLite-backed key-value store in a temporary directory."""
    return SqlKeyValueStore(DatabaseManager(f"sqlite:///{tmp_path / 'kv.db'}"))


@pytest.fixture
def config(tmp_path):
    """Configuration for a single-product vendor at vendor.example."""
    return GlobalConfig(
        vendor={"origin": ORIGIN, "products": ["mail"], "identifier_prefixes": [".deb"]},
        kvstore={"backend": "sql", "url": f"sqlite:///{tmp_path / 'kv.db'}"},
        repository={"architectures": ["amd64"], "homepage": "https://vendor.example/"},
    )
