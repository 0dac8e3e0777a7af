from __future__ import annotations

"""
Publishing rendered metadata.

Rendered files are either written to a directory laid out like a real
repository (``dists/<codename>/...`` and ``repodata/``) or stored in the
key-value store under fixed keys for the serving layer.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from reprise.core.config import RepositoryConfig
from reprise.core.kvstore import KeyValueStore
from reprise.publish.apt import AptRepository
from reprise.publish.rpm import RpmRepository

logger = logging.getLogger(__name__)

# Store keys read by the serving layer
APT_PACKAGES = "apt-packages"
APT_RELEASE = "apt-release"
APT_ARCH_RELEASE = "apt-arch-release"
APT_INRELEASE = "apt-inrelease"
APT_RELEASE_GPG = "apt-release-gpg"
APT_PUBLIC_KEY = "apt-public-key"
RPM_REPOMD = "rpm-repomd"
RPM_PRIMARY = "rpm-primary"
LATEST_VERSIONS = "latest-versions"
LAST_UPDATE_TIMESTAMP = "last-update-timestamp"


@dataclass
class MetadataArtifacts:
    """Everything rendered for one publish."""

    apt: AptRepository
    rpm: RpmRepository | None = None
    release_gpg: str | None = None
    inrelease: str | None = None
    public_key: str | None = None


def arch_key(key: str, architecture: str, primary: str) -> str:
    """Store key for an architecture; the primary architecture uses the bare key."""
    return key if architecture == primary else f"{key}-{architecture}"


class MetadataPublisher:
    """Writes rendered metadata to the key-value store or a directory."""

    def __init__(self, store: KeyValueStore | None, repository: RepositoryConfig):
        """Initialize publisher.

        Args:
            store: Key-value store (only needed for upload)
            repository: Repository configuration
        """
        self.store = store
        self.repository = repository

    def upload(self, artifacts: MetadataArtifacts, now: datetime | None = None) -> list[str]:
        """Store rendered metadata under the serving layer's keys.

        Args:
            artifacts: Rendered metadata
            now: Update timestamp (current time if None)

        Returns:
            Keys written

        Raises:
            ValueError: If no store is configured
            StoreError: If a write fails
        """
        if self.store is None:
            raise ValueError("No key-value store configured for upload")

        now = now or datetime.now(timezone.utc)
        primary = self.repository.architectures[0]
        values: dict[str, str] = {APT_RELEASE: artifacts.apt.release}

        for architecture, content in artifacts.apt.packages.items():
            values[arch_key(APT_PACKAGES, architecture, primary)] = content
        for architecture, content in artifacts.apt.arch_releases.items():
            values[arch_key(APT_ARCH_RELEASE, architecture, primary)] = content

        if artifacts.inrelease is not None:
            values[APT_INRELEASE] = artifacts.inrelease
        if artifacts.release_gpg is not None:
            values[APT_RELEASE_GPG] = artifacts.release_gpg
        if artifacts.public_key is not None:
            values[APT_PUBLIC_KEY] = artifacts.public_key

        if artifacts.rpm is not None:
            values[RPM_REPOMD] = artifacts.rpm.repomd
            values[RPM_PRIMARY] = artifacts.rpm.primary

        # Timestamp last so readers never see it ahead of the content
        values[LAST_UPDATE_TIMESTAMP] = now.isoformat().replace("+00:00", "Z")

        for key, value in values.items():
            self.store.put(key, value)
            logger.info(f"Uploaded {key} ({len(value)} chars)")

        return list(values)

    def upload_latest_versions(self, versions: dict[str, str | None]) -> None:
        """Store the latest release version per product.

        Raises:
            ValueError: If no store is configured
            StoreError: If the write fails
        """
        if self.store is None:
            raise ValueError("No key-value store configured for upload")
        self.store.put(LATEST_VERSIONS, json.dumps(versions, indent=2, sort_keys=True))
        logger.info(f"Uploaded {LATEST_VERSIONS} for {len(versions)} product(s)")

    def write_directory(self, artifacts: MetadataArtifacts, output_dir: Path) -> list[Path]:
        """Write rendered metadata as a repository tree.

        Args:
            artifacts: Rendered metadata
            output_dir: Repository root

        Returns:
            Paths written
        """
        dists_path = output_dir / "dists" / self.repository.codename
        outputs: dict[Path, bytes] = {
            dists_path / path: data for path, data in artifacts.apt.files.items()
        }
        outputs[dists_path / "Release"] = artifacts.apt.release.encode("utf-8")

        if artifacts.release_gpg is not None:
            outputs[dists_path / "Release.gpg"] = artifacts.release_gpg.encode("utf-8")
        if artifacts.inrelease is not None:
            outputs[dists_path / "InRelease"] = artifacts.inrelease.encode("utf-8")
        if artifacts.public_key is not None:
            outputs[output_dir / "public.key"] = artifacts.public_key.encode("utf-8")

        if artifacts.rpm is not None:
            for path, data in artifacts.rpm.files.items():
                outputs[output_dir / path] = data

        for path, data in outputs.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            logger.debug(f"Wrote {path}")

        logger.info(f"Wrote {len(outputs)} metadata file(s) to {output_dir}")
        return list(outputs)
