"""Shared helpers for the input/output utilities."""

from __future__ import annotations

import bz2
import gzip
import zlib
from enum import Enum
from pathlib import Path

from symseries.algorithms.utils.exceptions import SerializationFormatError


class Compression(Enum):
    """Stream compressors applied around an encoded series."""
    NONE = "none"
    BZIP2 = "bzip2"
    ZLIB = "zlib"
    GZIP = "gzip"


def _ensure_dir(path: Path) -> None:
    """Create ``path`` and its parents if missing."""
    path.mkdir(parents=True, exist_ok=True)


def _compress(data: bytes, compression: Compression, level: int = 6) -> bytes:
    compression = Compression(compression)
    if compression is Compression.NONE:
        return data
    if compression is Compression.BZIP2:
        return bz2.compress(data, compresslevel=max(level, 1))
    if compression is Compression.ZLIB:
        return zlib.compress(data, level)
    return gzip.compress(data, compresslevel=level, mtime=0)


def _decompress(data: bytes, compression: Compression) -> bytes:
    compression = Compression(compression)
    try:
        if compression is Compression.NONE:
            return data
        if compression is Compression.BZIP2:
            return bz2.decompress(data)
        if compression is Compression.ZLIB:
            return zlib.decompress(data)
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise SerializationFormatError(
            f"Cannot decompress {compression.value} stream: {exc}"
        ) from exc
