"""
Repository metadata publishing.

APT and RPM renderers, compression, GPG signing and upload of the rendered
files to the key-value store.
"""

from reprise.publish.apt import (
    AptRepository,
    build_apt_repository,
    proxy_path,
    render_arch_release,
    render_packages,
    render_release,
)
from reprise.publish.rpm import (
    RpmRepository,
    build_rpm_repository,
    render_primary_xml,
    render_repomd_xml,
)
from reprise.publish.signing import GpgSigner, SignedRelease
from reprise.publish.upload import MetadataArtifacts, MetadataPublisher

__all__ = [
    "AptRepository",
    "GpgSigner",
    "MetadataArtifacts",
    "MetadataPublisher",
    "RpmRepository",
    "SignedRelease",
    "build_apt_repository",
    "build_rpm_repository",
    "proxy_path",
    "render_arch_release",
    "render_packages",
    "render_primary_xml",
    "render_release",
    "render_repomd_xml",
]
