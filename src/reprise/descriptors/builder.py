from __future__ import annotations

"""
Descriptor builder.

Turns one vendor FileRef into a PackageDescriptor: a single download feeds
the digest accumulators and a byte buffer, the buffer feeds the archive
inspector, and the computed SHA-512 is reconciled with the vendor value.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

from reprise.core.downloader import DigestEngine
from reprise.core.errors import DownloadError, ValidationError
from reprise.descriptors.inspector import ArchiveInspector, extract_control_fields
from reprise.descriptors.models import FileRef, PackageDescriptor

logger = logging.getLogger(__name__)


def filename_from_url(url: str) -> str:
    """
    Derive the filename from the last URL path segment.

    Args:
        url: Absolute URL

    Returns:
        Last path segment, or "unknown" if the URL has none

    Example:
        >>> filename_from_url("https://vendor.example/app_1.9.1_amd64.deb?x=1")
        'app_1.9.1_amd64.deb'
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return "unknown"
    segment = path.rsplit("/", 1)[-1]
    return segment or "unknown"


class DescriptorBuilder:
    """Builds validated descriptors for upstream files."""

    def __init__(self, engine: DigestEngine, inspector: ArchiveInspector):
        """Initialize descriptor builder.

        Args:
            engine: Digest engine used for the single download
            inspector: Archive inspector for control field extraction
        """
        self.engine = engine
        self.inspector = inspector

    def build(self, file_ref: FileRef) -> PackageDescriptor:
        """Download, digest, inspect and validate one file.

        Args:
            file_ref: Vendor file reference

        Returns:
            PackageDescriptor with last_verified set to now (UTC)

        Raises:
            DownloadError: If the download fails
            ExtractionError: If control fields cannot be extracted
            ValidationError: If the computed SHA-512 differs from the vendor value
        """
        filename = filename_from_url(file_ref.url)
        logger.info(f"Processing {filename}")

        digests = self.engine.compute_digests(file_ref.url, capture=True)

        expected = file_ref.vendor_sha512.lower()
        if digests.sha512 != expected:
            logger.error(f"SHA512 mismatch for {filename} - skipping file")
            logger.error(f"  Expected:   {expected}")
            logger.error(f"  Calculated: {digests.sha512}")
            raise ValidationError(file_ref.url, expected, digests.sha512)

        if digests.size == 0:
            raise DownloadError(file_ref.url, cause=ValueError("empty response body"))

        control = extract_control_fields(digests.raw_bytes or b"", self.inspector, filename)

        descriptor = PackageDescriptor(
            url=file_ref.url,
            filename=filename,
            size=digests.size,
            md5=digests.md5,
            sha256=digests.sha256,
            sha512=digests.sha512,
            last_verified=datetime.now(timezone.utc),
            **control.model_dump(exclude_none=True),
        )
        logger.info(
            f"Built descriptor for {filename}: {descriptor.package} {descriptor.version} "
            f"({descriptor.architecture}, {descriptor.size} bytes)"
        )
        return descriptor
