from __future__ import annotations

"""
Archive metadata extraction.

The control stanza of a Debian archive is obtained through a pluggable
ArchiveInspector. The production inspector shells out to ``dpkg-deb -f``;
StaticInspector serves canned stanzas for tests and dry runs.
"""

import logging
import re
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from reprise.core.errors import ExtractionError
from reprise.descriptors.models import (
    OPTIONAL_CONTROL_FIELDS,
    REQUIRED_CONTROL_FIELDS,
    ControlFields,
)

logger = logging.getLogger(__name__)

CONTROL_LINE = re.compile(r"^([^:]+):\s*(.+)$")


class ArchiveInspector(ABC):
    """Obtains the control stanza of a package archive on disk."""

    @abstractmethod
    def control_stanza(self, path: Path) -> str:
        """Return the control stanza as ``Key: Value`` text.

        Args:
            path: Path to the materialized archive

        Raises:
            ExtractionError: If the archive cannot be inspected
        """
        raise NotImplementedError


class DpkgDebInspector(ArchiveInspector):
    """Runs ``dpkg-deb -f`` against the archive."""

    def __init__(self, binary: str = "dpkg-deb", timeout: int = 120):
        self.binary = binary
        self.timeout = timeout

    def control_stanza(self, path: Path) -> str:
        try:
            result = subprocess.run(
                [self.binary, "-f", str(path)],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise ExtractionError(f"{self.binary} not found", cause=e) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ExtractionError(
                f"{self.binary} exited with status {e.returncode}: {stderr}", cause=e
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExtractionError(f"{self.binary} timed out after {self.timeout}s", cause=e) from e

        return result.stdout


class RpmQueryInspector(ArchiveInspector):
    """Runs ``rpm -qp`` and renders the header as a control-style stanza."""

    QUERY_FORMAT = (
        "Package: %{NAME}\\n"
        "Version: %{VERSION}\\n"
        "Architecture: %{ARCH}\\n"
        "Maintainer: %{PACKAGER}\\n"
        "Description: %{SUMMARY}\\n"
        "Homepage: %{URL}\\n"
    )

    def __init__(self, binary: str = "rpm", timeout: int = 120):
        self.binary = binary
        self.timeout = timeout

    def control_stanza(self, path: Path) -> str:
        try:
            result = subprocess.run(
                [self.binary, "-qp", "--nosignature", "--queryformat", self.QUERY_FORMAT, str(path)],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise ExtractionError(f"{self.binary} not found", cause=e) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise ExtractionError(
                f"{self.binary} exited with status {e.returncode}: {stderr}", cause=e
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExtractionError(f"{self.binary} timed out after {self.timeout}s", cause=e) from e

        # rpm prints "(none)" for unset tags
        return "\n".join(
            line for line in result.stdout.splitlines() if not line.endswith("(none)")
        )


class SuffixInspector(ArchiveInspector):
    """Dispatches to an inspector by archive file suffix."""

    def __init__(self, inspectors: dict[str, ArchiveInspector]):
        """Initialize dispatching inspector.

        Args:
            inspectors: Mapping of lower-case suffix (".deb") to inspector
        """
        self.inspectors = inspectors

    def control_stanza(self, path: Path) -> str:
        inspector = self.inspectors.get(path.suffix.lower())
        if inspector is None:
            raise ExtractionError(f"No inspector for {path.suffix or 'suffix-less'} archives")
        return inspector.control_stanza(path)


def default_inspector() -> ArchiveInspector:
    """Inspector for .deb (dpkg-deb) and .rpm (rpm) archives."""
    return SuffixInspector({".deb": DpkgDebInspector(), ".rpm": RpmQueryInspector()})


class StaticInspector(ArchiveInspector):
    """Returns canned control stanzas keyed by archive content."""

    def __init__(self, stanzas: dict[bytes, str] | None = None, default: str | None = None):
        """Initialize static inspector.

        Args:
            stanzas: Mapping of archive bytes to control stanza text
            default: Stanza returned for unknown content (error if None)
        """
        self.stanzas = dict(stanzas or {})
        self.default = default
        self.inspected: list[Path] = []

    def control_stanza(self, path: Path) -> str:
        self.inspected.append(path)
        content = path.read_bytes()
        if content in self.stanzas:
            return self.stanzas[content]
        if self.default is not None:
            return self.default
        raise ExtractionError(f"Not a known archive: {path.name}")


def parse_control_output(text: str) -> dict[str, str]:
    """
    Parse ``Key: Value`` lines into a field map.

    Keys are lower-cased and values trimmed. Lines that do not match (such
    as description continuation lines) are ignored.

    Args:
        text: Control stanza text

    Returns:
        Dictionary of lower-cased field names to values

    Example:
        >>> parse_control_output("Package: proton-mail\\nVersion: 1.9.1\\n")
        {'package': 'proton-mail', 'version': '1.9.1'}
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        match = CONTROL_LINE.match(line)
        if match:
            fields[match.group(1).lower()] = match.group(2).strip()
    return fields


def extract_control_fields(
    raw_bytes: bytes,
    inspector: ArchiveInspector,
    filename: str = "package.deb",
) -> ControlFields:
    """
    Extract control fields from the bytes of a Debian archive.

    The bytes are written to a temporary directory which is removed on
    every exit path.

    Args:
        raw_bytes: Complete archive content
        inspector: Archive inspector to query
        filename: Name used for the temporary file

    Returns:
        ControlFields (required fields default to "", optional fields only
        set when present)

    Raises:
        ExtractionError: If the archive cannot be inspected
    """
    with tempfile.TemporaryDirectory(prefix="reprise-deb-") as tmpdir:
        tmp_path = Path(tmpdir) / filename
        try:
            tmp_path.write_bytes(raw_bytes)
        except OSError as e:
            raise ExtractionError(f"Failed to materialize archive: {e}", cause=e) from e

        stanza = inspector.control_stanza(tmp_path)

    fields = parse_control_output(stanza)
    result = {key: fields.get(key, "") for key in REQUIRED_CONTROL_FIELDS}
    result.update({key: fields[key] for key in OPTIONAL_CONTROL_FIELDS if fields.get(key)})

    logger.debug(
        f"Extracted {result['package'] or 'unknown'} {result['version'] or 'unknown'} "
        f"({result['architecture'] or 'unknown'})"
    )
    return ControlFields(**result)
