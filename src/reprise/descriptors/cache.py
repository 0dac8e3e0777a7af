from __future__ import annotations

"""
Descriptor cache backed by the key-value store.

The whole url -> descriptor map lives as one JSON blob under a single key.
It is loaded once at the start of a run and rewritten whole at the end;
there is no partial persistence and no per-entry expiry.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from reprise.core.errors import CacheLoadError, CacheSaveError, StoreError
from reprise.core.kvstore import KeyValueStore
from reprise.descriptors.models import PackageDescriptor

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Descriptor cache statistics."""

    total_entries: int
    total_size_bytes: int
    oldest_verified: datetime | None
    newest_verified: datetime | None
    packages: dict[str, int]


class DescriptorCache:
    """URL-keyed descriptor cache stored as one JSON blob."""

    def __init__(self, store: KeyValueStore, key: str = "package-descriptors-cache"):
        """Initialize descriptor cache.

        Args:
            store: Key-value store holding the blob
            key: Store key of the blob
        """
        self.store = store
        self.key = key

    def _read(self) -> dict[str, PackageDescriptor]:
        """Read and decode the blob.

        Raises:
            CacheLoadError: If the blob cannot be read or is not a JSON object
        """
        try:
            raw = self.store.get(self.key)
        except StoreError as e:
            raise CacheLoadError(f"Could not read descriptor cache: {e}") from e

        if raw is None:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheLoadError(f"Descriptor cache is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise CacheLoadError(
                f"Descriptor cache must be a JSON object, got {type(data).__name__}"
            )

        descriptors: dict[str, PackageDescriptor] = {}
        for url, entry in data.items():
            try:
                descriptor = PackageDescriptor.from_json_dict(entry)
            except PydanticValidationError as e:
                logger.warning(f"Dropping invalid cache entry for {url}: {e.error_count()} error(s)")
                continue
            if descriptor.url != url:
                logger.warning(f"Dropping cache entry keyed {url} but describing {descriptor.url}")
                continue
            descriptors[url] = descriptor

        return descriptors

    def load(self) -> dict[str, PackageDescriptor]:
        """Load the cached descriptor map.

        Never raises: a missing key, a read error or a corrupt blob all
        degrade to an empty cache.

        Returns:
            Mapping of URL to PackageDescriptor
        """
        try:
            descriptors = self._read()
        except CacheLoadError as e:
            logger.warning(f"{e} - starting from empty cache")
            return {}

        if descriptors:
            logger.info(f"Found {len(descriptors)} cached package descriptor(s)")
        else:
            logger.info("No existing descriptor cache found")
        return descriptors

    def save(self, descriptors: dict[str, PackageDescriptor]) -> None:
        """Overwrite the cached map.

        Args:
            descriptors: Full mapping of URL to PackageDescriptor

        Raises:
            CacheSaveError: If the blob cannot be written
        """
        payload = {
            url: descriptor.to_json_dict()
            for url, descriptor in sorted(descriptors.items())
        }
        try:
            self.store.put(self.key, json.dumps(payload, indent=2))
        except StoreError as e:
            logger.error(f"Failed to upload package descriptors cache: {e}")
            raise CacheSaveError(f"Failed to save descriptor cache: {e}") from e

        logger.info(f"Saved {len(descriptors)} package descriptor(s) to cache")

    def clear(self) -> int:
        """Delete the cache blob.

        Returns:
            Number of descriptors that were cached

        Raises:
            StoreError: If the key cannot be deleted
        """
        count = len(self.load())
        self.store.delete(self.key)
        logger.info(f"Cleared {count} cached descriptor(s)")
        return count

    def stats(self) -> CacheStats:
        """Get cache statistics.

        Raises:
            CacheLoadError: If the cache cannot be read
        """
        descriptors = self._read()

        packages: dict[str, int] = {}
        for descriptor in descriptors.values():
            packages[descriptor.package] = packages.get(descriptor.package, 0) + 1

        verified = [descriptor.last_verified for descriptor in descriptors.values()]
        return CacheStats(
            total_entries=len(descriptors),
            total_size_bytes=sum(descriptor.size for descriptor in descriptors.values()),
            oldest_verified=min(verified) if verified else None,
            newest_verified=max(verified) if verified else None,
            packages=packages,
        )
