"""
Package descriptor pipeline.

Release enumeration, digesting, archive inspection, descriptor validation
and the URL-keyed descriptor cache.
"""

from reprise.descriptors.builder import DescriptorBuilder, filename_from_url
from reprise.descriptors.cache import CacheStats, DescriptorCache
from reprise.descriptors.inspector import (
    ArchiveInspector,
    DpkgDebInspector,
    RpmQueryInspector,
    StaticInspector,
    SuffixInspector,
    default_inspector,
    extract_control_fields,
    parse_control_output,
)
from reprise.descriptors.manifest import fetch_manifest, parse_manifest, select_candidates
from reprise.descriptors.models import (
    ControlFields,
    FileRef,
    PackageDescriptor,
    Release,
    ReleaseCategory,
    ReleaseManifest,
)
from reprise.descriptors.pipeline import DescriptorPipeline, FileFailure, RunResult
from reprise.descriptors.selection import (
    latest_release_version,
    parse_version,
    select_latest_per_package,
)

__all__ = [
    "ArchiveInspector",
    "CacheStats",
    "ControlFields",
    "DescriptorBuilder",
    "DescriptorCache",
    "DescriptorPipeline",
    "DpkgDebInspector",
    "FileFailure",
    "FileRef",
    "PackageDescriptor",
    "Release",
    "ReleaseCategory",
    "ReleaseManifest",
    "RpmQueryInspector",
    "RunResult",
    "StaticInspector",
    "SuffixInspector",
    "default_inspector",
    "extract_control_fields",
    "fetch_manifest",
    "filename_from_url",
    "latest_release_version",
    "parse_control_output",
    "parse_manifest",
    "parse_version",
    "select_candidates",
    "select_latest_per_package",
]
