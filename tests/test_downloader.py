"""Tests for the streaming digest engine."""

import hashlib

import pytest
import requests

from conftest import FakeResponse, FakeSession
from reprise.core.config import DownloadConfig, ProxyConfig, SSLConfig
from reprise.core.downloader import DigestEngine, create_session, digest_bytes
from reprise.core.errors import DownloadError

URL = "https://vendor.example/download/app_1.0.0_amd64.deb"


def test_digest_bytes_known_vectors():
    """Test digests of a known input."""
    result = digest_bytes(b"abc")
    assert result.md5 == "900150983cd24fb0d6963f7d28e17f72"
    assert result.sha256 == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert result.sha512 == (
        "ddaf35a193617abacc417349ae20413112e6fa4e89a97ea20a9eeee64b55d39a"
        "2192992a274fc1a836ba3c23a3feebbd454d4423643ce80e2a9ac94fa54ca49f"
    )
    assert result.size == 3
    assert result.raw_bytes is None


def test_digest_bytes_empty():
    """Test digests of empty input."""
    result = digest_bytes(b"")
    assert result.size == 0
    assert result.md5 == "d41d8cd98f00b204e9800998ecf8427e"


def test_compute_digests_streams_in_chunks():
    """Test that chunked streaming yields the same digests as hashing at once."""
    content = bytes(range(256)) * 1000
    session = FakeSession()
    session.add_bytes(URL, content)
    engine = DigestEngine(session, DownloadConfig(chunk_size=1000))

    result = engine.compute_digests(URL)

    assert result.size == len(content)
    assert result.md5 == hashlib.md5(content).hexdigest()
    assert result.sha256 == hashlib.sha256(content).hexdigest()
    assert result.sha512 == hashlib.sha512(content).hexdigest()
    assert result.raw_bytes is None
    assert session.downloads(URL) == 1


def test_compute_digests_captures_bytes():
    """Test capture mode buffers the content from the same download."""
    content = b"debian archive payload" * 50
    session = FakeSession()
    session.add_bytes(URL, content)
    engine = DigestEngine(session, DownloadConfig(chunk_size=7))

    result = engine.compute_digests(URL, capture=True)

    assert result.raw_bytes == content
    assert result.sha512 == hashlib.sha512(content).hexdigest()
    assert session.downloads(URL) == 1


def test_compute_digests_http_error():
    """Test that a non-2xx status raises DownloadError."""
    session = FakeSession({URL: FakeResponse(b"gone", status_code=410)})
    engine = DigestEngine(session)

    with pytest.raises(DownloadError) as exc_info:
        engine.compute_digests(URL)

    assert exc_info.value.status == 410
    assert exc_info.value.url == URL
    assert "HTTP 410" in str(exc_info.value)


def test_compute_digests_transport_error():
    """Test that a connection failure raises DownloadError."""
    session = FakeSession({URL: requests.ConnectionError("connection refused")})
    engine = DigestEngine(session)

    with pytest.raises(DownloadError) as exc_info:
        engine.compute_digests(URL)

    assert exc_info.value.status is None
    assert isinstance(exc_info.value.cause, requests.ConnectionError)


def test_compute_digests_error_mid_stream():
    """Test that a failure while reading the body raises DownloadError."""
    session = FakeSession(
        {URL: FakeResponse(b"partial", error=requests.exceptions.ChunkedEncodingError("reset"))}
    )
    engine = DigestEngine(session)

    with pytest.raises(DownloadError):
        engine.compute_digests(URL)


def test_create_session_proxy_and_ssl():
    """Test proxy, auth and TLS settings on the session."""
    session = create_session(
        DownloadConfig(user_agent="reprise-test/1.0"),
        ProxyConfig(
            http_proxy="http://proxy:3128",
            https_proxy="http://proxy:3128",
            username="user",
            password="secret",
        ),
        SSLConfig(ca_bundle="/etc/ssl/ca.pem"),
    )

    assert session.headers["User-Agent"] == "reprise-test/1.0"
    assert session.proxies["https"] == "http://proxy:3128"
    assert session.auth == ("user", "secret")
    assert session.verify == "/etc/ssl/ca.pem"


def test_create_session_verify_disabled():
    """Test that verify=False disables TLS verification."""
    session = create_session(ssl_config=SSLConfig(verify=False, ca_bundle="/ignored.pem"))
    assert session.verify is False
