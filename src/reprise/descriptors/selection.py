from __future__ import annotations

"""
Latest-wins reduction of package descriptors.

Versions are compared as dot-separated integer sequences, component by
component, with missing trailing components treated as zero. This keeps
1.10.0 ahead of 1.9.1, which a string comparison would get wrong.
"""

import logging
from collections.abc import Iterable

from reprise.descriptors.models import PackageDescriptor

logger = logging.getLogger(__name__)


def parse_version(version: str) -> tuple[int, ...] | None:
    """
    Parse a dotted-integer version.

    Args:
        version: Version string such as "1.10.0"

    Returns:
        Tuple of integer components, or None if any component is not a
        non-negative integer

    Example:
        >>> parse_version("1.10.0")
        (1, 10, 0)
        >>> parse_version("1.9.1-beta") is None
        True
    """
    if not version:
        return None

    parts = version.split(".")
    if not all(part.isascii() and part.isdigit() for part in parts):
        return None
    return tuple(int(part) for part in parts)


def compare_versions(left: tuple[int, ...], right: tuple[int, ...]) -> int:
    """Compare parsed versions, padding the shorter one with zeros.

    Returns:
        Negative if left < right, zero if equal, positive if left > right
    """
    width = max(len(left), len(right))
    left_padded = left + (0,) * (width - len(left))
    right_padded = right + (0,) * (width - len(right))
    return (left_padded > right_padded) - (left_padded < right_padded)


def select_latest_per_package(
    descriptors: Iterable[PackageDescriptor],
) -> dict[str, tuple[str, PackageDescriptor]]:
    """
    Reduce descriptors to the highest version per package name.

    Descriptors with unparseable versions are skipped and logged. On equal
    versions the first one encountered is kept.

    Args:
        descriptors: Descriptors in any order

    Returns:
        Mapping of package name to (version, descriptor)
    """
    latest: dict[str, tuple[str, PackageDescriptor]] = {}
    parsed_latest: dict[str, tuple[int, ...]] = {}

    for descriptor in descriptors:
        parsed = parse_version(descriptor.version)
        if parsed is None:
            logger.warning(
                f"Skipping {descriptor.filename}: unparseable version '{descriptor.version}'"
            )
            continue

        name = descriptor.package
        current = parsed_latest.get(name)
        if current is None or compare_versions(parsed, current) > 0:
            latest[name] = (descriptor.version, descriptor)
            parsed_latest[name] = parsed

    return latest


def latest_release_version(versions: Iterable[str]) -> str | None:
    """
    Get the highest version from a list of release versions.

    Pre-release suffixes ("1.2.0-beta") are ignored for ordering; versions
    that still do not parse are skipped.

    Args:
        versions: Version strings

    Returns:
        Highest version string, or None if nothing parses
    """
    best: str | None = None
    best_parsed: tuple[int, ...] | None = None

    for version in versions:
        parsed = parse_version(version.split("-", 1)[0])
        if parsed is None:
            logger.debug(f"Ignoring unparseable release version '{version}'")
            continue
        if best_parsed is None or compare_versions(parsed, best_parsed) > 0:
            best, best_parsed = version, parsed

    return best
