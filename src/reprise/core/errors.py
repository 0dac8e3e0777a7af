from __future__ import annotations

"""
Exception hierarchy for Reprise.

Per-file errors (DownloadError, ExtractionError, ValidationError) are
collected by the pipeline and never abort a batch. ManifestError and
CacheSaveError are fatal to a run.
"""


class RepriseError(Exception):
    """Base class for all Reprise errors."""


class ManifestError(RepriseError):
    """Vendor release manifest is unreachable, malformed or fails validation."""

    def __init__(self, message: str, product: str | None = None, url: str | None = None):
        super().__init__(message)
        self.product = product
        self.url = url

    def __str__(self) -> str:
        prefix = f"[{self.product}] " if self.product else ""
        return f"{prefix}{super().__str__()}"


class DownloadError(RepriseError):
    """Fetching a single file failed (HTTP status or transport)."""

    def __init__(self, url: str, status: int | None = None, cause: Exception | None = None):
        self.url = url
        self.status = status
        self.cause = cause
        if status is not None:
            message = f"Failed to download {url}: HTTP {status}"
        else:
            message = f"Failed to download {url}: {cause}"
        super().__init__(message)


class ExtractionError(RepriseError):
    """Control fields could not be extracted from a package archive."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ValidationError(RepriseError):
    """Computed SHA-512 disagrees with the vendor-declared value."""

    def __init__(self, url: str, expected: str, computed: str):
        self.url = url
        self.expected = expected
        self.computed = computed
        super().__init__(f"SHA512 mismatch, expected: {expected}, calculated: {computed}")


class StoreError(RepriseError):
    """Key-value store operation failed."""


class CacheLoadError(RepriseError):
    """Descriptor cache could not be read (degrades to an empty cache)."""


class CacheSaveError(RepriseError):
    """Descriptor cache could not be written back to the store.

    The run that computed the descriptors may be attached as ``result`` so
    callers can still report or export what was not persisted.
    """

    def __init__(self, message: str, result: object | None = None):
        super().__init__(message)
        self.result = result


class SigningError(RepriseError):
    """Signing repository metadata failed."""
