from __future__ import annotations

"""
Pydantic models for vendor release manifests and package descriptors.

Manifest models mirror the vendor's JSON property names through aliases
(``Releases``, ``File``, ``Sha512CheckSum``...). PackageDescriptor is the
validated record for one upstream file and serializes with the camelCase
key ``lastVerified``.
"""

import re
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

SHA512_PATTERN = re.compile(r"^[a-fA-F0-9]{128}$")
VERSION_PATTERN = re.compile(r"^[0-9]+\.[0-9]+\.[0-9]+(-[a-zA-Z0-9]+)?$")

# Control fields that are always present on a descriptor (empty string if missing)
REQUIRED_CONTROL_FIELDS = ("package", "version", "architecture", "maintainer")

# Control fields that are only carried when the control stanza has them
OPTIONAL_CONTROL_FIELDS = (
    "description",
    "section",
    "priority",
    "homepage",
    "depends",
    "recommends",
    "suggests",
)


class ReleaseCategory(str, Enum):
    """Vendor release channel."""

    EARLY_ACCESS = "EarlyAccess"
    ALPHA = "Alpha"
    BETA = "Beta"
    STABLE = "Stable"


class FileRef(BaseModel):
    """One downloadable file of a release, as declared by the vendor."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    identifier: str = Field(..., alias="Identifier", min_length=1, description="Type tag, e.g. .deb")
    url: str = Field(..., alias="Url", description="Absolute download URL (file identity)")
    vendor_sha512: str = Field(..., alias="Sha512CheckSum", description="Vendor-declared SHA-512")
    args: str | None = Field(None, alias="Args", description="Installer arguments")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """URL must be absolute http(s) with a host."""
        match = re.match(r"^https?://[^/\s?#]+(/\S*)?$", v)
        if not match:
            raise ValueError(f"Invalid URL format: {v}")
        return v

    @field_validator("vendor_sha512")
    @classmethod
    def validate_sha512(cls, v: str) -> str:
        """Declared checksum must be 128 hex characters."""
        if not SHA512_PATTERN.match(v):
            raise ValueError("Invalid SHA512 hash format")
        return v


class Release(BaseModel):
    """One release of a product."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    category: ReleaseCategory = Field(..., alias="CategoryName")
    version: str = Field(..., alias="Version")
    release_date: str = Field(..., alias="ReleaseDate")
    files: list[FileRef] = Field(default_factory=list, alias="File")
    release_notes: list[str] | None = Field(None, alias="ReleaseNotes")
    rollout_percentage: float | None = Field(None, alias="RolloutPercentage", ge=0, le=1)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Version must look like X.Y.Z or X.Y.Z-suffix."""
        if not VERSION_PATTERN.match(v):
            raise ValueError(f"Invalid version format (expected X.Y.Z or X.Y.Z-suffix): {v}")
        return v

    @field_validator("release_date")
    @classmethod
    def validate_release_date(cls, v: str) -> str:
        """Release date is an ISO date or an ISO datetime."""
        try:
            if "T" in v:
                datetime.fromisoformat(v.replace("Z", "+00:00"))
            else:
                date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"Invalid release date: {v}")
        return v


class ReleaseManifest(BaseModel):
    """Vendor release manifest for one product."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    releases: list[Release] = Field(..., alias="Releases", min_length=1)
    dependencies: list[str] | None = Field(None, alias="Dependencies")

    def iter_files(self):
        """Yield (release, file) pairs in manifest order."""
        for release in self.releases:
            for file_ref in release.files:
                yield release, file_ref


class ControlFields(BaseModel):
    """Control stanza fields extracted from a Debian archive."""

    model_config = ConfigDict(frozen=True)

    package: str = ""
    version: str = ""
    architecture: str = ""
    maintainer: str = ""

    description: str | None = None
    section: str | None = None
    priority: str | None = None
    homepage: str | None = None
    depends: str | None = None
    recommends: str | None = None
    suggests: str | None = None


class PackageDescriptor(BaseModel):
    """
    Validated, enriched record for one upstream file.

    Combines the identity of the file (URL, filename), its control fields
    and its integrity data. Instances are immutable; the ``sha512`` value
    has been reconciled with the vendor-declared checksum when built.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Identity
    url: str = Field(..., description="Upstream URL (cache key)")
    filename: str = Field(..., min_length=1, description="Last URL path segment")

    # Control fields
    package: str = Field(..., description="Package name")
    version: str = Field(..., description="Package version")
    architecture: str = Field(..., description="Package architecture")
    maintainer: str = Field(..., description="Package maintainer (may be empty)")
    description: str | None = None
    section: str | None = None
    priority: str | None = None
    homepage: str | None = None
    depends: str | None = None
    recommends: str | None = None
    suggests: str | None = None

    # Integrity
    size: int = Field(..., gt=0, description="File size in bytes")
    md5: str = Field(..., pattern=r"^[a-f0-9]{32}$")
    sha256: str = Field(..., pattern=r"^[a-f0-9]{64}$")
    sha512: str = Field(..., pattern=r"^[a-f0-9]{128}$")

    # Provenance
    last_verified: datetime = Field(..., alias="lastVerified")

    @field_validator("last_verified")
    @classmethod
    def validate_last_verified(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_json_dict(self) -> dict:
        """Serialize for the cache blob (optional fields omitted, camelCase provenance)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json_dict(cls, data: dict) -> PackageDescriptor:
        """Deserialize a cache blob entry."""
        return cls.model_validate(data)
