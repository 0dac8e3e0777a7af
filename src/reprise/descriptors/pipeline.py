from __future__ import annotations

"""
Descriptor pipeline.

One batch run: load the descriptor cache once, fetch every product's
release manifest, reuse cached descriptors or build new ones with bounded
parallelism, then write the merged map back to the store. Per-file
failures are collected and never abort the batch; a manifest failure or a
cache-save failure is fatal.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from reprise.core.config import GlobalConfig
from reprise.core.downloader import DigestEngine, create_session
from reprise.core.errors import (
    CacheSaveError,
    DownloadError,
    ExtractionError,
    RepriseError,
    ValidationError,
)
from reprise.core.kvstore import KeyValueStore
from reprise.core.output import RunOutputter
from reprise.descriptors.builder import DescriptorBuilder, filename_from_url
from reprise.descriptors.cache import DescriptorCache
from reprise.descriptors.inspector import ArchiveInspector, default_inspector
from reprise.descriptors.manifest import fetch_manifest, select_candidates
from reprise.descriptors.models import FileRef, PackageDescriptor

logger = logging.getLogger(__name__)


@dataclass
class FileFailure:
    """A file that could not be turned into a descriptor."""

    filename: str
    url: str
    error: str
    kind: str  # "download", "extraction", "validation" or "error"
    expected_sha512: str | None = None
    computed_sha512: str | None = None

    @classmethod
    def from_exception(cls, file_ref: FileRef, error: Exception) -> FileFailure:
        """Classify an exception raised while building a descriptor."""
        failure = cls(
            filename=filename_from_url(file_ref.url),
            url=file_ref.url,
            error=str(error),
            kind="error",
        )
        if isinstance(error, ValidationError):
            failure.kind = "validation"
            failure.expected_sha512 = error.expected
            failure.computed_sha512 = error.computed
        elif isinstance(error, DownloadError):
            failure.kind = "download"
        elif isinstance(error, ExtractionError):
            failure.kind = "extraction"
        return failure


@dataclass
class RunResult:
    """Result of a descriptor pipeline run."""

    products: list[str] = field(default_factory=list)
    reused: int = 0
    computed: int = 0
    failures: list[FileFailure] = field(default_factory=list)

    # Descriptors for this run's candidate files, keyed by URL
    descriptors: dict[str, PackageDescriptor] = field(default_factory=dict)

    # Whether the merged map was written back to the store
    saved: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def total(self) -> int:
        return self.reused + self.computed + self.failed


class DescriptorPipeline:
    """Builds and caches descriptors for every configured product."""

    def __init__(
        self,
        config: GlobalConfig,
        store: KeyValueStore,
        engine: DigestEngine | None = None,
        inspector: ArchiveInspector | None = None,
        outputter: RunOutputter | None = None,
    ):
        """Initialize descriptor pipeline.

        Args:
            config: Global configuration
            store: Key-value store holding the descriptor cache
            engine: Digest engine (created from config if None)
            inspector: Archive inspector (dpkg-deb/rpm by suffix if None)
            outputter: Console outputter (normal level if None)
        """
        self.config = config
        self.store = store
        self.engine = engine or DigestEngine(
            create_session(config.download, config.proxy, config.ssl), config.download
        )
        self.inspector = inspector or default_inspector()
        self.outputter = outputter or RunOutputter()
        self.builder = DescriptorBuilder(self.engine, self.inspector)
        self.cache = DescriptorCache(store, config.kvstore.descriptors_key)

    def collect_candidates(self, products: list[str]) -> list[FileRef]:
        """Fetch every product's manifest and enumerate candidate files.

        Raises:
            ManifestError: If any manifest cannot be loaded
        """
        vendor = self.config.vendor
        candidates: list[FileRef] = []
        seen: set[str] = set()

        for product in products:
            manifest = fetch_manifest(
                product, vendor, self.engine.session, timeout=self.config.download.timeout
            )
            selected = select_candidates(manifest, vendor.identifier_prefixes, vendor.ignored_urls)
            self.outputter.info(
                f"  {product}: {len(manifest.releases)} release(s), {len(selected)} file(s)"
            )
            if not selected:
                self.outputter.warning(
                    f"{product}: no files match {', '.join(vendor.identifier_prefixes)}"
                )
            for file_ref in selected:
                if file_ref.url not in seen:
                    seen.add(file_ref.url)
                    candidates.append(file_ref)

        return candidates

    def build_with_retry(self, file_ref: FileRef) -> PackageDescriptor:
        """Build one descriptor, retrying download failures.

        Validation and extraction failures are not retried.
        """
        attempts = self.config.download.retry_attempts + 1
        attempt = 1
        while True:
            try:
                return self.builder.build(file_ref)
            except DownloadError as e:
                if attempt >= attempts:
                    raise
                logger.warning(f"Download failed (attempt {attempt}/{attempts}): {e}")
                attempt += 1

    def run(
        self,
        products: list[str] | None = None,
        use_cache: bool = True,
        upload: bool = True,
    ) -> RunResult:
        """Run the pipeline.

        Args:
            products: Product names (all configured products if None)
            use_cache: Reuse cached descriptors (False forces a rebuild)
            upload: Write the merged cache back to the store

        Returns:
            RunResult with counts, failures and this run's descriptors

        Raises:
            ManifestError: If a manifest cannot be loaded
            CacheSaveError: If the cache cannot be written back
        """
        products = self.config.get_products(products)
        result = RunResult(products=products)

        self.outputter.header(
            "Updating package descriptors",
            products=", ".join(products),
            cache="enabled" if use_cache else "disabled (force rebuild)",
            upload="yes" if upload else "no",
        )

        self.outputter.phase("Loading descriptor cache", 1)
        cached = self.cache.load()
        working = dict(cached)
        self.outputter.info(f"  {len(cached)} cached descriptor(s)")

        self.outputter.phase("Fetching release manifests", 2)
        candidates = self.collect_candidates(products)

        to_build: list[FileRef] = []
        for file_ref in candidates:
            descriptor = cached.get(file_ref.url) if use_cache else None
            if descriptor is not None:
                result.descriptors[file_ref.url] = descriptor
                result.reused += 1
                self.outputter.reused(descriptor.filename)
            else:
                to_build.append(file_ref)

        self.outputter.phase("Building descriptors", 3)
        self.outputter.info(f"  {result.reused} reused, {len(to_build)} to download")
        try:
            self._build_all(to_build, result, working)
        finally:
            self.outputter.summary(
                total_files=len(candidates),
                cached_skipped=result.reused,
                newly_computed=result.computed,
                errors=result.failed,
            )
            self.outputter.failures(result.failures)

        if not upload:
            self.outputter.info("Skipping cache upload (--no-upload)")
            return result

        try:
            self.cache.save(working)
        except CacheSaveError as e:
            self.outputter.error(
                f"{e} - {result.computed} newly computed descriptor(s) were not persisted"
            )
            e.result = result
            raise
        result.saved = True
        self.outputter.success(f"Saved {len(working)} descriptor(s) to cache")
        return result

    def _build_all(
        self,
        to_build: list[FileRef],
        result: RunResult,
        working: dict[str, PackageDescriptor],
    ) -> None:
        """Build descriptors in a bounded worker pool, merging as each completes."""
        if not to_build:
            return

        self.outputter.start_progress(len(to_build), "Downloading")
        try:
            with ThreadPoolExecutor(max_workers=self.config.download.parallel) as executor:
                future_map = {
                    executor.submit(self.build_with_retry, file_ref): file_ref
                    for file_ref in to_build
                }
                for future in as_completed(future_map):
                    file_ref = future_map[future]
                    try:
                        descriptor = future.result()
                    except RepriseError as e:
                        logger.error(f"Error processing {file_ref.url}: {e}")
                        self.outputter.verbose(f"  ✗ {filename_from_url(file_ref.url)}: {e}")
                        result.failures.append(FileFailure.from_exception(file_ref, e))
                        # Only a checksum mismatch invalidates a cached entry
                        if isinstance(e, ValidationError):
                            working.pop(file_ref.url, None)
                    else:
                        working[file_ref.url] = descriptor
                        result.descriptors[file_ref.url] = descriptor
                        result.computed += 1
                        self.outputter.computed(
                            descriptor.filename, descriptor.size, descriptor.sha512
                        )
                    self.outputter.update_progress()
        finally:
            self.outputter.finish_progress()

        # Stable order for reporting
        result.failures.sort(key=lambda failure: failure.url)


def write_descriptors_file(descriptors: dict[str, PackageDescriptor], output_path: Path) -> None:
    """Write descriptors as a JSON map to a local file.

    Args:
        descriptors: Mapping of URL to PackageDescriptor
        output_path: Destination path
    """
    payload = {url: descriptor.to_json_dict() for url, descriptor in sorted(descriptors.items())}
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2) + "\n")
    logger.info(f"Wrote {len(descriptors)} descriptor(s) to {output_path}")
