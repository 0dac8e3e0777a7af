from __future__ import annotations

"""
APT repository metadata rendering.

Renders Packages, per-architecture Release and the top-level Release file
from the selected descriptors. Nothing is written to disk here; callers get
the rendered bytes keyed by their path relative to ``dists/<codename>/``.
Package binaries are never referenced directly: every ``Filename`` is a
proxy path that the serving layer redirects to the vendor URL.
"""

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from urllib.parse import urlparse

from reprise.core.config import RepositoryConfig
from reprise.descriptors.models import PackageDescriptor
from reprise.descriptors.selection import select_latest_per_package
from reprise.publish.compression import compress

logger = logging.getLogger(__name__)


@dataclass
class AptRepository:
    """Rendered APT metadata for one distribution."""

    release: str
    files: dict[str, bytes] = field(default_factory=dict)  # dists-relative path -> content
    packages: dict[str, str] = field(default_factory=dict)  # architecture -> Packages text
    arch_releases: dict[str, str] = field(default_factory=dict)  # architecture -> Release text
    selected: dict[str, list[PackageDescriptor]] = field(default_factory=dict)


def proxy_path(url: str, origin: str, prefix: str = "proxy") -> str:
    """
    Map an upstream URL to its stable proxy path.

    Query string and fragment are dropped, so the path does not change when
    the vendor rotates URL parameters.

    Args:
        url: Upstream download URL
        origin: Vendor origin (e.g. "https://proton.me/")
        prefix: Proxy path prefix

    Returns:
        Proxy path relative to the repository root

    Example:
        >>> proxy_path("https://proton.me/download/mail/linux/1.9.1/app.deb?x=1", "https://proton.me/")
        'proxy/download/mail/linux/1.9.1/app.deb'
    """
    path = urlparse(url).path
    origin_path = urlparse(origin).path
    if url.startswith(origin) and path.startswith(origin_path):
        path = path[len(origin_path):]
    return f"{prefix}/{path.lstrip('/')}"


def format_release_date(now: datetime) -> str:
    """Format a timestamp as RFC 2822 with an explicit +0000 offset (never "GMT")."""
    return format_datetime(now.astimezone(timezone.utc), usegmt=False)


def render_packages(
    selected: Iterable[PackageDescriptor],
    repository: RepositoryConfig,
    origin: str,
) -> str:
    """
    Render a Packages file.

    One blank-line separated stanza per descriptor. Section, Priority and
    Homepage fall back to repository defaults; Description falls back to
    the package name.

    Args:
        selected: Descriptors to list (already reduced to latest versions)
        repository: Repository configuration (defaults, proxy prefix)
        origin: Vendor origin for proxy path mapping

    Returns:
        Packages file content
    """
    stanzas = []

    for descriptor in selected:
        stanza = [
            f"Package: {descriptor.package}",
            f"Version: {descriptor.version}",
            f"Architecture: {descriptor.architecture}",
            f"Maintainer: {descriptor.maintainer}",
        ]

        # Dependency fields (only when the control stanza has them)
        if descriptor.depends:
            stanza.append(f"Depends: {descriptor.depends}")
        if descriptor.recommends:
            stanza.append(f"Recommends: {descriptor.recommends}")
        if descriptor.suggests:
            stanza.append(f"Suggests: {descriptor.suggests}")

        stanza.append(
            f"Filename: {proxy_path(descriptor.url, origin, repository.proxy_prefix)}"
        )
        stanza.append(f"Size: {descriptor.size}")
        stanza.append(f"SHA256: {descriptor.sha256}")
        stanza.append(f"Section: {descriptor.section or repository.section}")
        stanza.append(f"Priority: {descriptor.priority or repository.priority}")

        homepage = descriptor.homepage or repository.homepage
        if homepage:
            stanza.append(f"Homepage: {homepage}")

        stanza.append(f"Description: {descriptor.description or descriptor.package}")
        stanzas.append("\n".join(stanza))

    content = "\n\n".join(stanzas)
    if content:
        content += "\n"
    return content


def render_arch_release(repository: RepositoryConfig, architecture: str) -> str:
    """Render the per-architecture Release file (binary-<arch>/Release)."""
    return (
        f"Archive: {repository.suite}\n"
        f"Component: {repository.component}\n"
        f"Origin: {repository.origin}\n"
        f"Label: {repository.label}\n"
        f"Architecture: {architecture}\n"
    )


def render_release(
    repository: RepositoryConfig,
    files: dict[str, bytes],
    now: datetime | None = None,
) -> str:
    """
    Render the top-level Release file.

    Args:
        repository: Repository configuration
        files: Referenced files, dists-relative path -> content
        now: Release date (current time if None)

    Returns:
        Release file content
    """
    now = now or datetime.now(timezone.utc)

    release_lines = [
        f"Origin: {repository.origin}",
        f"Label: {repository.label}",
        f"Suite: {repository.suite}",
        f"Codename: {repository.codename}",
        f"Components: {repository.component}",
        f"Architectures: {' '.join(repository.architectures)}",
        f"Date: {format_release_date(now)}",
        f"Description: {repository.description}",
        "Acquire-By-Hash: no",
    ]

    md5sums = []
    sha1sums = []
    sha256sums = []
    for path in sorted(files):
        data = files[path]
        size = len(data)
        md5sums.append(f" {hashlib.md5(data).hexdigest()}  {size} {path}")
        sha1sums.append(f" {hashlib.sha1(data).hexdigest()}  {size} {path}")
        sha256sums.append(f" {hashlib.sha256(data).hexdigest()}  {size} {path}")

    release_lines.append("MD5Sum:")
    release_lines.extend(md5sums)
    release_lines.append("SHA1:")
    release_lines.extend(sha1sums)
    release_lines.append("SHA256:")
    release_lines.extend(sha256sums)

    return "\n".join(release_lines) + "\n"


def select_for_architecture(
    descriptors: Iterable[PackageDescriptor], architecture: str
) -> list[PackageDescriptor]:
    """Latest descriptor per package for one architecture ("all" included), sorted by name."""
    candidates = [
        descriptor
        for descriptor in descriptors
        if descriptor.architecture in (architecture, "all")
    ]
    latest = select_latest_per_package(candidates)
    return [latest[name][1] for name in sorted(latest)]


def build_apt_repository(
    descriptors: Iterable[PackageDescriptor],
    repository: RepositoryConfig,
    origin: str,
    now: datetime | None = None,
) -> AptRepository:
    """
    Render the complete APT metadata set.

    For every configured architecture: Packages, Packages.gz and the
    architecture Release file; then the top-level Release listing them all.

    Args:
        descriptors: All known descriptors
        repository: Repository configuration
        origin: Vendor origin for proxy path mapping
        now: Release date (current time if None)

    Returns:
        AptRepository with rendered files
    """
    descriptors = list(descriptors)
    files: dict[str, bytes] = {}
    packages: dict[str, str] = {}
    arch_releases: dict[str, str] = {}
    selected: dict[str, list[PackageDescriptor]] = {}

    for architecture in repository.architectures:
        arch_selected = select_for_architecture(descriptors, architecture)
        packages_content = render_packages(arch_selected, repository, origin)
        arch_release = render_arch_release(repository, architecture)

        base = f"{repository.component}/binary-{architecture}"
        packages_data = packages_content.encode("utf-8")
        files[f"{base}/Packages"] = packages_data
        files[f"{base}/Packages.gz"] = compress(packages_data, "gzip")
        files[f"{base}/Release"] = arch_release.encode("utf-8")

        packages[architecture] = packages_content
        arch_releases[architecture] = arch_release
        selected[architecture] = arch_selected

        logger.info(f"Generated Packages for {base}: {len(arch_selected)} package(s)")
        for descriptor in arch_selected:
            logger.debug(f"  - {descriptor.package}: {descriptor.version}")

    release = render_release(repository, files, now)
    return AptRepository(
        release=release,
        files=files,
        packages=packages,
        arch_releases=arch_releases,
        selected=selected,
    )
