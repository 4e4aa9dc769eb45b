"""Input/output utilities for series.

This module serializes :class:`~symseries.system.series.Series` objects to
bytes and files and reads them back.

Two encodings are available:

* :attr:`DataFormat.PORTABLE` stores the series as an HDF5 archive written
  with :mod:`h5py`. Symbols, exponents and coefficient literals live in
  self-describing datasets, nested series in sub-groups.
* :attr:`DataFormat.BINARY` is a packed little-endian record stream: format
  version, symbol count, symbol names, term count, then for every term the
  coefficient record (kind tag and payload) followed by its key.

Either encoding can be wrapped in one of the :class:`~symseries.utils.io.common.Compression`
stream compressors.

Notes
-----
Archives carry a format version. Reading an archive written by a newer
version of the library fails before any term is decoded.
"""

import io
import struct
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

import h5py
import numpy as np

from symseries.algorithms.polynomial.coefficients import (kind_by_tag,
                                                          kind_of,
                                                          require_serializable)
from symseries.algorithms.utils.exceptions import (SerializationFormatError,
                                                   SymseriesError,
                                                   UnsupportedCapabilityError)
from symseries.utils.io.common import (Compression, _compress, _decompress,
                                       _ensure_dir)
from symseries.utils.log_config import logger

if TYPE_CHECKING:
    from symseries.system.series import Series

FORMAT_VERSION = 0
"""Latest archive version written and understood by this module."""

_SERIES_TAG = "series"
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


class DataFormat(Enum):
    """Encodings understood by :func:`dumps` and :func:`loads`."""
    PORTABLE = "portable"
    BINARY = "binary"


# ------ capability checks ------

def _check_serializable(series: "Series", data_format: Optional[DataFormat]) -> None:
    formats = tuple(DataFormat) if data_format is None else (DataFormat(data_format),)
    for term in series:
        for e in term.key:
            if not _INT64_MIN <= e <= _INT64_MAX:
                raise UnsupportedCapabilityError(f"Exponent {e} does not fit in 64 bits")
        kind = require_serializable(term.coefficient)
        if kind.tag == _SERIES_TAG:
            _check_serializable(term.coefficient, data_format)
            continue
        for fmt in formats:
            hooks = (kind.to_text, kind.from_text) if fmt is DataFormat.PORTABLE else (kind.to_bytes, kind.from_bytes)
            if None in hooks:
                raise UnsupportedCapabilityError(
                    f"Coefficient kind '{kind.tag}' has no {fmt.value} encoding"
                )


def is_serializable(series: "Series", data_format: Optional[DataFormat] = None) -> bool:
    """Return True if ``series`` can be written.

    Parameters
    ----------
    series : :class:`~symseries.system.series.Series`
        Series to inspect, nested coefficients included.
    data_format : DataFormat, optional
        Restrict the check to one encoding. By default both are required.
    """
    try:
        _check_serializable(series, data_format)
    except UnsupportedCapabilityError:
        return False
    return True


def _check_version(version: int) -> None:
    if version < 0:
        raise SerializationFormatError(f"Invalid series archive version {version}")
    if version > FORMAT_VERSION:
        raise SerializationFormatError(
            f"the series archive version {version} is greater than the latest archive "
            f"version {FORMAT_VERSION} supported by this version of symseries"
        )


def _build(names: Sequence[str], terms: List[Tuple[Tuple[int, ...], Any]]) -> "Series":
    from symseries.system.series import Series

    if len(set(names)) != len(names):
        raise SerializationFormatError(f"Duplicate symbol names {list(names)}")
    return Series(terms, names)


# ------ portable (HDF5) encoding ------

def _create_group(parent: h5py.Group, name: str) -> h5py.Group:
    # Without creation timestamps equal series encode to equal bytes.
    gcpl = h5py.h5p.create(h5py.h5p.GROUP_CREATE)
    gcpl.set_obj_track_times(False)
    return h5py.Group(h5py.h5g.create(parent.id, name.encode("utf-8"), gcpl=gcpl))


def _write_group(grp: h5py.Group, series: "Series") -> None:
    items = series.container.canonical_items()
    names = list(series.symbol_set)
    grp.attrs["n_symbols"] = len(names)
    grp.attrs["n_terms"] = len(items)
    # Zero-sized datasets are not written.
    if names:
        grp.create_dataset("symbols", data=np.array(names, dtype=h5py.string_dtype()), track_times=False)
    if not items:
        return
    if names:
        exps = np.array([key.exponents for key, _ in items], dtype=np.int64)
        grp.create_dataset("exponents", data=exps, track_times=False)

    tags, values = [], []
    nested = None
    for idx, (_, cf) in enumerate(items):
        kind = kind_of(cf)
        tags.append(kind.tag)
        if kind.tag == _SERIES_TAG:
            if nested is None:
                nested = _create_group(grp, "nested")
            _write_group(_create_group(nested, str(idx)), cf)
            values.append("")
        else:
            values.append(kind.to_text(cf))
    grp.create_dataset("tags", data=np.array(tags, dtype=h5py.string_dtype()), track_times=False)
    grp.create_dataset("values", data=np.array(values, dtype=h5py.string_dtype()), track_times=False)


def _read_group(grp: h5py.Group) -> "Series":
    n_symbols = int(grp.attrs["n_symbols"])
    n_terms = int(grp.attrs["n_terms"])
    if n_symbols < 0 or n_terms < 0:
        raise SerializationFormatError(f"Invalid header: {n_symbols} symbols, {n_terms} terms")

    names = [str(s) for s in grp["symbols"].asstr()[()]] if n_symbols else []
    if len(names) != n_symbols:
        raise SerializationFormatError(f"Expected {n_symbols} symbol names, found {len(names)}")
    if n_terms == 0:
        return _build(names, [])

    if n_symbols:
        exps = grp["exponents"][()]
        if not np.issubdtype(exps.dtype, np.integer):
            raise SerializationFormatError(f"Exponents stored as {exps.dtype}, expected integers")
        if exps.ndim != 2 or exps.shape[1] != n_symbols:
            raise SerializationFormatError(
                f"Keys of shape {exps.shape[1:]} in a series over {n_symbols} symbols"
            )
    else:
        exps = np.zeros((n_terms, 0), dtype=np.int64)
    tags = grp["tags"].asstr()[()]
    values = grp["values"].asstr()[()]
    if not exps.shape[0] == len(tags) == len(values) == n_terms:
        raise SerializationFormatError(
            f"Expected {n_terms} terms, found {exps.shape[0]} keys and {len(tags)} coefficients"
        )

    rows = exps.tolist()
    terms = []
    for idx in range(n_terms):
        tag = str(tags[idx])
        if tag == _SERIES_TAG:
            cf = _read_group(grp["nested"][str(idx)])
        else:
            kind = kind_by_tag(tag)
            if kind.from_text is None:
                raise SerializationFormatError(f"Coefficient kind '{tag}' has no portable encoding")
            cf = kind.from_text(str(values[idx]))
        terms.append((tuple(rows[idx]), cf))
    return _build(names, terms)


def _dumps_portable(series: "Series") -> bytes:
    buf = io.BytesIO()
    with h5py.File(buf, "w") as f:
        f.attrs["format_version"] = FORMAT_VERSION
        _write_group(f, series)
    return buf.getvalue()


def _loads_portable(data: bytes) -> "Series":
    try:
        with h5py.File(io.BytesIO(data), "r") as f:
            _check_version(int(f.attrs["format_version"]))
            return _read_group(f)
    except SymseriesError:
        raise
    except (OSError, KeyError, ValueError, TypeError, IndexError) as exc:
        raise SerializationFormatError(f"Malformed portable series archive: {exc}") from exc


# ------ packed binary encoding ------

class _Reader:
    """Cursor over a byte string raising on short reads."""

    def __init__(self, data: bytes):
        self._data = memoryview(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise SerializationFormatError(
                f"Unexpected end of series data: needed {n} bytes at offset {self._pos}"
            )
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk

    def unpack(self, st: struct.Struct) -> Tuple[Any, ...]:
        return st.unpack(self.take(st.size))

    def exhausted(self) -> bool:
        return self._pos == len(self._data)


def _write_binary(out: List[bytes], series: "Series") -> None:
    items = series.container.canonical_items()
    names = list(series.symbol_set)
    out.append(_U64.pack(len(names)))
    for name in names:
        raw = name.encode("utf-8")
        out += [_U32.pack(len(raw)), raw]
    out.append(_U64.pack(len(items)))
    for key, cf in items:
        kind = kind_of(cf)
        if kind.tag == _SERIES_TAG:
            nested: List[bytes] = []
            _write_binary(nested, cf)
            payload = b"".join(nested)
        else:
            payload = kind.to_bytes(cf)
        tag = kind.tag.encode("ascii")
        out += [_U16.pack(len(tag)), tag, _U64.pack(len(payload)), payload]
        out += [_U32.pack(len(key)), struct.pack(f"<{len(key)}q", *key.exponents)]


def _read_binary(reader: _Reader) -> "Series":
    (n_symbols,) = reader.unpack(_U64)
    names = []
    for _ in range(n_symbols):
        (size,) = reader.unpack(_U32)
        names.append(reader.take(size).decode("utf-8"))
    (n_terms,) = reader.unpack(_U64)

    terms = []
    for _ in range(n_terms):
        (tag_size,) = reader.unpack(_U16)
        tag = reader.take(tag_size).decode("ascii")
        (size,) = reader.unpack(_U64)
        payload = reader.take(size)
        if tag == _SERIES_TAG:
            sub = _Reader(payload)
            cf = _read_binary(sub)
            if not sub.exhausted():
                raise SerializationFormatError("Trailing bytes in nested series record")
        else:
            kind = kind_by_tag(tag)
            if kind.from_bytes is None:
                raise SerializationFormatError(f"Coefficient kind '{tag}' has no binary encoding")
            cf = kind.from_bytes(payload)
        (arity,) = reader.unpack(_U32)
        if arity != n_symbols:
            raise SerializationFormatError(
                f"Key of size {arity} in a series over {n_symbols} symbols"
            )
        exps = struct.unpack(f"<{arity}q", reader.take(8 * arity))
        terms.append((exps, cf))
    return _build(names, terms)


def _dumps_binary(series: "Series") -> bytes:
    out = [_U32.pack(FORMAT_VERSION)]
    _write_binary(out, series)
    return b"".join(out)


def _loads_binary(data: bytes) -> "Series":
    reader = _Reader(data)
    try:
        (version,) = reader.unpack(_U32)
        _check_version(version)
        series = _read_binary(reader)
    except SymseriesError:
        raise
    except (ValueError, struct.error) as exc:
        raise SerializationFormatError(f"Malformed binary series data: {exc}") from exc
    if not reader.exhausted():
        raise SerializationFormatError("Trailing bytes after series data")
    return series


# ------ public API ------

def dumps(series: "Series", data_format: DataFormat = DataFormat.BINARY,
          compression: Compression = Compression.NONE) -> bytes:
    """Encode a series to bytes.

    Parameters
    ----------
    series : :class:`~symseries.system.series.Series`
        The series to encode.
    data_format : DataFormat, default DataFormat.BINARY
        Encoding of the terms.
    compression : Compression, default Compression.NONE
        Compressor applied to the encoded stream.

    Returns
    -------
    bytes
        The encoded series.

    Raises
    ------
    UnsupportedCapabilityError
        If a coefficient (nested ones included) cannot be serialized. Nothing
        is encoded in that case.
    """
    data_format = DataFormat(data_format)
    _check_serializable(series, data_format)
    if data_format is DataFormat.PORTABLE:
        raw = _dumps_portable(series)
    else:
        raw = _dumps_binary(series)
    return _compress(raw, compression)


def loads(data: bytes, data_format: DataFormat = DataFormat.BINARY,
          compression: Compression = Compression.NONE) -> "Series":
    """Decode a series produced by :func:`dumps` with the same settings.

    Raises
    ------
    SerializationFormatError
        If the data is malformed, truncated or written by a newer version.
    """
    data_format = DataFormat(data_format)
    raw = _decompress(bytes(data), compression)
    if data_format is DataFormat.PORTABLE:
        return _loads_portable(raw)
    return _loads_binary(raw)


def save_series(series: "Series", path: str | Path, *, data_format: DataFormat = DataFormat.PORTABLE,
                compression: Compression = Compression.NONE) -> None:
    """Save a series to ``path``.

    Parent directories are created when missing.

    Examples
    --------
    >>> from symseries import Series
    >>> x = Series.symbol("x")
    >>> save_series((1 + x) ** 3, "cube.h5")
    """
    data = dumps(series, data_format, compression)
    path = Path(path)
    _ensure_dir(path.parent)
    path.write_bytes(data)
    logger.debug("Saved series with %d terms to %s (%s, %s)", len(series), path,
                 DataFormat(data_format).value, Compression(compression).value)


def load_series(path: str | Path, *, data_format: DataFormat = DataFormat.PORTABLE,
                compression: Compression = Compression.NONE) -> "Series":
    """Load a series saved by :func:`save_series`.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    SerializationFormatError
        If the file content is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return loads(path.read_bytes(), data_format, compression)
