from __future__ import annotations

"""
RPM repository metadata rendering.

Renders ``repodata/primary.xml`` (compressed) and ``repodata/repomd.xml``
for descriptors of ``.rpm`` files. Package locations are proxy paths, as
for APT.
"""

import hashlib
import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from reprise.core.config import RepositoryConfig
from reprise.descriptors.models import PackageDescriptor
from reprise.descriptors.selection import select_latest_per_package
from reprise.publish.apt import proxy_path
from reprise.publish.compression import CompressionFormat, compress, with_extension

logger = logging.getLogger(__name__)

COMMON_NS = "http://linux.duke.edu/metadata/common"
REPO_NS = "http://linux.duke.edu/metadata/repo"
RPM_NS = "http://linux.duke.edu/metadata/rpm"


@dataclass
class RpmRepository:
    """Rendered RPM metadata."""

    repomd: str
    primary: str
    files: dict[str, bytes] = field(default_factory=dict)  # repo-relative path -> content
    selected: list[PackageDescriptor] = field(default_factory=list)


def _to_xml(root: ET.Element) -> str:
    # Pretty print XML
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def render_primary_xml(
    selected: Iterable[PackageDescriptor],
    repository: RepositoryConfig,
    origin: str,
) -> str:
    """Render primary.xml for the selected descriptors.

    Args:
        selected: Descriptors to list
        repository: Repository configuration (proxy prefix, homepage)
        origin: Vendor origin for proxy path mapping

    Returns:
        primary.xml content
    """
    selected = list(selected)

    metadata = ET.Element("metadata")
    metadata.set("xmlns", COMMON_NS)
    metadata.set("xmlns:rpm", RPM_NS)
    metadata.set("packages", str(len(selected)))

    for descriptor in selected:
        pkg_elem = ET.SubElement(metadata, "package")
        pkg_elem.set("type", "rpm")

        ET.SubElement(pkg_elem, "name").text = descriptor.package
        ET.SubElement(pkg_elem, "arch").text = descriptor.architecture

        version = ET.SubElement(pkg_elem, "version")
        version.set("epoch", "0")
        version.set("ver", descriptor.version)
        version.set("rel", "1")

        checksum = ET.SubElement(pkg_elem, "checksum")
        checksum.set("type", "sha256")
        checksum.set("pkgid", "YES")
        checksum.text = descriptor.sha256

        summary = descriptor.description or descriptor.package
        ET.SubElement(pkg_elem, "summary").text = summary
        ET.SubElement(pkg_elem, "description").text = summary
        ET.SubElement(pkg_elem, "packager").text = descriptor.maintainer

        homepage = descriptor.homepage or repository.homepage
        if homepage:
            ET.SubElement(pkg_elem, "url").text = homepage

        timestamp = str(int(descriptor.last_verified.timestamp()))
        time_elem = ET.SubElement(pkg_elem, "time")
        time_elem.set("file", timestamp)
        time_elem.set("build", timestamp)

        size = ET.SubElement(pkg_elem, "size")
        size.set("package", str(descriptor.size))

        location = ET.SubElement(pkg_elem, "location")
        location.set("href", proxy_path(descriptor.url, origin, repository.proxy_prefix))

    return _to_xml(metadata)


def render_repomd_xml(
    metadata_files: list[tuple[str, str, bytes, bytes]],
    revision: int,
) -> str:
    """Render repomd.xml.

    Args:
        metadata_files: (type, repo-relative path, stored bytes, uncompressed bytes)
        revision: Revision timestamp (seconds since epoch)

    Returns:
        repomd.xml content
    """
    repomd = ET.Element("repomd")
    repomd.set("xmlns", REPO_NS)
    repomd.set("xmlns:rpm", RPM_NS)

    ET.SubElement(repomd, "revision").text = str(revision)

    for file_type, path, stored, opened in metadata_files:
        data = ET.SubElement(repomd, "data")
        data.set("type", file_type)

        checksum = ET.SubElement(data, "checksum")
        checksum.set("type", "sha256")
        checksum.text = hashlib.sha256(stored).hexdigest()

        open_checksum = ET.SubElement(data, "open-checksum")
        open_checksum.set("type", "sha256")
        open_checksum.text = hashlib.sha256(opened).hexdigest()

        location = ET.SubElement(data, "location")
        location.set("href", path)

        ET.SubElement(data, "timestamp").text = str(revision)
        ET.SubElement(data, "size").text = str(len(stored))
        ET.SubElement(data, "open-size").text = str(len(opened))

    return _to_xml(repomd)


def build_rpm_repository(
    descriptors: Iterable[PackageDescriptor],
    repository: RepositoryConfig,
    origin: str,
    now: datetime | None = None,
) -> RpmRepository:
    """
    Render the RPM metadata set for descriptors of .rpm files.

    Args:
        descriptors: All known descriptors
        repository: Repository configuration (compression, proxy prefix)
        origin: Vendor origin for proxy path mapping
        now: Revision time (current time if None)

    Returns:
        RpmRepository with rendered files
    """
    now = now or datetime.now(timezone.utc)
    compression: CompressionFormat = repository.rpm_compression

    rpm_descriptors = [d for d in descriptors if d.filename.lower().endswith(".rpm")]
    latest = select_latest_per_package(rpm_descriptors)
    selected = [latest[name][1] for name in sorted(latest)]

    primary = render_primary_xml(selected, repository, origin)
    primary_data = primary.encode("utf-8")
    primary_path = f"repodata/{with_extension('primary.xml', compression)}"
    primary_stored = compress(primary_data, compression)

    repomd = render_repomd_xml(
        [("primary", primary_path, primary_stored, primary_data)],
        revision=int(now.timestamp()),
    )

    logger.info(f"Generated RPM metadata: {len(selected)} package(s), {compression} compression")
    return RpmRepository(
        repomd=repomd,
        primary=primary,
        files={
            primary_path: primary_stored,
            "repodata/repomd.xml": repomd.encode("utf-8"),
        },
        selected=selected,
    )
