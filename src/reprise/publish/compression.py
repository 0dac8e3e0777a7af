from __future__ import annotations

"""Compression helpers for rendered repository metadata."""

import bz2
import gzip
from typing import Literal

import zstandard as zstd

CompressionFormat = Literal["gzip", "zstandard", "bzip2", "none"]

_EXTENSIONS: dict[str, str] = {
    "gzip": ".gz",
    "zstandard": ".zst",
    "bzip2": ".bz2",
    "none": "",
}


def compress(data: bytes, compression: CompressionFormat) -> bytes:
    """Compress data with the given format.

    Gzip output carries a zero mtime so identical input renders identical
    bytes (and identical Release checksums).

    Args:
        data: Uncompressed bytes
        compression: Compression format

    Returns:
        Compressed bytes

    Raises:
        ValueError: If compression format is unknown
    """
    if compression == "gzip":
        return gzip.compress(data, compresslevel=9, mtime=0)
    elif compression == "zstandard":
        return zstd.ZstdCompressor(level=3).compress(data)
    elif compression == "bzip2":
        return bz2.compress(data, compresslevel=9)
    elif compression == "none":
        return data
    else:
        raise ValueError(f"Unknown compression format: {compression}")


def decompress(data: bytes, compression: CompressionFormat) -> bytes:
    """Reverse compress().

    Raises:
        ValueError: If compression format is unknown
    """
    if compression == "gzip":
        return gzip.decompress(data)
    elif compression == "zstandard":
        return zstd.ZstdDecompressor().decompress(data)
    elif compression == "bzip2":
        return bz2.decompress(data)
    elif compression == "none":
        return data
    else:
        raise ValueError(f"Unknown compression format: {compression}")


def with_extension(filename: str, compression: CompressionFormat) -> str:
    """Append the compression extension (e.g. "primary.xml" -> "primary.xml.gz").

    Raises:
        ValueError: If compression format is unknown
    """
    if compression not in _EXTENSIONS:
        raise ValueError(f"Unknown compression format: {compression}")
    return f"{filename}{_EXTENSIONS[compression]}"
