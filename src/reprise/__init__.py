from __future__ import annotations

"""
Reprise - Vendor Release Republisher

A CLI tool that turns a vendor's JSON release manifests into APT and RPM
repository metadata. Package binaries are never mirrored; published
filenames point at a proxy path that redirects to the vendor host.
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Make version accessible
from importlib.metadata import version as _version

try:
    __version__ = _version("reprise")
except Exception:
    # Package not installed yet
    pass
