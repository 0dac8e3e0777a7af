from __future__ import annotations

"""
Release manifest fetching and candidate enumeration.

The manifest is fetched fresh on every pass and validated as a whole: any
shape violation, or a single file URL outside the vendor origin, fails the
load with ManifestError.
"""

import logging
from collections.abc import Iterable

import requests
from pydantic import ValidationError as PydanticValidationError

from reprise.core.config import VendorConfig
from reprise.core.errors import ManifestError
from reprise.descriptors.models import FileRef, ReleaseManifest

logger = logging.getLogger(__name__)


def parse_manifest(data: object, origin: str, product: str | None = None) -> ReleaseManifest:
    """
    Validate a decoded manifest document.

    Args:
        data: Decoded JSON document
        origin: Vendor origin every file URL must be rooted at
        product: Product name (for error messages)

    Returns:
        Validated ReleaseManifest

    Raises:
        ManifestError: If the document fails validation
    """
    try:
        manifest = ReleaseManifest.model_validate(data)
    except PydanticValidationError as e:
        raise ManifestError(f"Invalid release manifest: {e}", product=product) from e

    for release, file_ref in manifest.iter_files():
        if not file_ref.url.startswith(origin):
            raise ManifestError(
                f"File URL {file_ref.url} in release {release.version} "
                f"is not rooted at {origin}",
                product=product,
            )

    return manifest


def fetch_manifest(
    product: str,
    vendor: VendorConfig,
    session: requests.Session,
    timeout: int = 60,
) -> ReleaseManifest:
    """
    Fetch and validate the release manifest of a product.

    Args:
        product: Product name (e.g. "mail")
        vendor: Vendor configuration (origin, manifest path)
        session: HTTP session
        timeout: Request timeout in seconds

    Returns:
        Validated ReleaseManifest

    Raises:
        ManifestError: On transport failure, non-2xx status, invalid JSON or
            failed validation
    """
    url = vendor.manifest_url(product)
    logger.info(f"Fetching release manifest: {url}")

    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise ManifestError(f"Failed to fetch {url}: {e}", product=product, url=url) from e

    if not 200 <= response.status_code < 300:
        raise ManifestError(
            f"Failed to fetch {url}: HTTP {response.status_code}", product=product, url=url
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ManifestError(f"Invalid JSON from {url}: {e}", product=product, url=url) from e

    manifest = parse_manifest(data, vendor.origin, product=product)
    logger.info(f"[{product}] {len(manifest.releases)} release(s) in manifest")
    return manifest


def select_candidates(
    manifest: ReleaseManifest,
    identifier_prefixes: Iterable[str],
    ignored_urls: Iterable[str] = (),
) -> list[FileRef]:
    """
    Enumerate files of interest across all releases.

    A file is kept if its identifier (case-folded) starts with one of the
    allowed prefixes and its URL is not in the denylist. Duplicate URLs
    across releases are kept once.

    Args:
        manifest: Validated release manifest
        identifier_prefixes: Allowed identifier prefixes (e.g. [".deb"])
        ignored_urls: Known placeholder/beta URLs to skip

    Returns:
        Candidate file references in manifest order
    """
    prefixes = tuple(prefix.lower() for prefix in identifier_prefixes)
    ignored = set(ignored_urls)
    seen: set[str] = set()
    candidates: list[FileRef] = []

    for _release, file_ref in manifest.iter_files():
        if not file_ref.identifier.lower().startswith(prefixes):
            continue
        if file_ref.url in ignored:
            logger.debug(f"Ignoring denylisted URL: {file_ref.url}")
            continue
        if file_ref.url in seen:
            continue
        seen.add(file_ref.url)
        candidates.append(file_ref)

    return candidates
