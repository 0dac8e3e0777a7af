from __future__ import annotations

"""
Streaming digest engine.

Downloads a remote file exactly once, feeding every chunk into MD5, SHA-256
and SHA-512 accumulators while counting bytes. When archive metadata has to
be extracted as well, the same stream is also buffered in memory so the
file is never downloaded twice.
"""

import hashlib
import logging
from dataclasses import dataclass

import requests

from reprise.core.config import DownloadConfig, ProxyConfig, SSLConfig
from reprise.core.errors import DownloadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DigestResult:
    """Digests and size of one downloaded file."""

    md5: str
    sha256: str
    sha512: str
    size: int
    raw_bytes: bytes | None = None


class _Digester:
    """Running MD5/SHA-256/SHA-512 accumulators with optional capture."""

    def __init__(self, capture: bool = False):
        self.md5 = hashlib.md5()
        self.sha256 = hashlib.sha256()
        self.sha512 = hashlib.sha512()
        self.size = 0
        self._buffer: bytearray | None = bytearray() if capture else None

    def update(self, chunk: bytes) -> None:
        self.md5.update(chunk)
        self.sha256.update(chunk)
        self.sha512.update(chunk)
        self.size += len(chunk)
        if self._buffer is not None:
            self._buffer.extend(chunk)

    def result(self) -> DigestResult:
        return DigestResult(
            md5=self.md5.hexdigest(),
            sha256=self.sha256.hexdigest(),
            sha512=self.sha512.hexdigest(),
            size=self.size,
            raw_bytes=bytes(self._buffer) if self._buffer is not None else None,
        )


def digest_bytes(data: bytes) -> DigestResult:
    """Compute digests of an in-memory byte string.

    Args:
        data: Content to digest

    Returns:
        DigestResult without captured bytes
    """
    digester = _Digester()
    digester.update(data)
    return digester.result()


def create_session(
    download_config: DownloadConfig | None = None,
    proxy_config: ProxyConfig | None = None,
    ssl_config: SSLConfig | None = None,
) -> requests.Session:
    """Setup requests session with proxy and SSL/TLS configuration.

    Args:
        download_config: Download configuration (user agent)
        proxy_config: Optional proxy configuration
        ssl_config: Optional SSL/TLS configuration

    Returns:
        Configured requests session
    """
    download_config = download_config or DownloadConfig()
    session = requests.Session()
    session.headers.update({"User-Agent": download_config.user_agent})

    if proxy_config:
        proxies = {}
        if proxy_config.http_proxy:
            proxies["http"] = proxy_config.http_proxy
        if proxy_config.https_proxy:
            proxies["https"] = proxy_config.https_proxy
        session.proxies.update(proxies)

        if proxy_config.username and proxy_config.password:
            session.auth = (proxy_config.username, proxy_config.password)

    if ssl_config:
        if not ssl_config.verify:
            session.verify = False
        elif ssl_config.ca_bundle:
            session.verify = ssl_config.ca_bundle

    return session


class DigestEngine:
    """Computes digests of remote files in a single streamed read."""

    def __init__(
        self,
        session: requests.Session | None = None,
        download_config: DownloadConfig | None = None,
    ):
        """Initialize digest engine.

        Args:
            session: HTTP session to use (created from download_config if None)
            download_config: Download configuration (timeout, chunk size)
        """
        self.download_config = download_config or DownloadConfig()
        self.session = session or create_session(self.download_config)

    def compute_digests(self, url: str, capture: bool = False) -> DigestResult:
        """Download url once and digest its content.

        No retries are attempted here; retry policy belongs to the caller.

        Args:
            url: Absolute HTTP(S) URL
            capture: Also buffer the full content for archive extraction

        Returns:
            DigestResult (raw_bytes set only when capture is True)

        Raises:
            DownloadError: On non-2xx status or transport failure
        """
        digester = _Digester(capture=capture)

        try:
            response = self.session.get(url, stream=True, timeout=self.download_config.timeout)
        except requests.RequestException as e:
            raise DownloadError(url, cause=e) from e

        try:
            if not 200 <= response.status_code < 300:
                raise DownloadError(url, status=response.status_code)

            for chunk in response.iter_content(chunk_size=self.download_config.chunk_size):
                if chunk:
                    digester.update(chunk)
        except requests.RequestException as e:
            raise DownloadError(url, cause=e) from e
        finally:
            response.close()

        result = digester.result()
        logger.debug(
            f"Digested {url}: {result.size} bytes, sha512 {result.sha512[:16]}..."
        )
        return result
