"""
symseries.algorithms.polynomial.coefficients
============================================

Capability registry for coefficient types.

Coefficients are plain Python values combined with ``+`` and ``*``. What the
engine needs beyond that (zero test, serialization hooks) is looked up in a
:class:`CoefficientKind` registered for the value's type.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Callable, Dict, Optional, Tuple

from symseries.algorithms.utils.exceptions import (SerializationFormatError,
                                                   UnsupportedCapabilityError)


def _eq_zero(value: Any) -> bool:
    return value == 0


@dataclass(frozen=True)
class CoefficientKind:
    """
    Capabilities of one family of coefficient types.

    Parameters
    ----------
    tag : str
        Name stored in serialized data to identify the kind.
    types : tuple of type
        Python types belonging to the kind (subclasses included).
    serializable : bool, default False
        Whether values of the kind can be persisted.
    ignorable : Callable[[Any], bool]
        Zero test. Terms whose coefficient is ignorable are removed.
    to_text, from_text : Callable, optional
        Hooks for the portable encoding.
    to_bytes, from_bytes : Callable, optional
        Hooks for the packed binary encoding.
    """
    tag: str
    types: Tuple[type, ...]
    serializable: bool = False
    ignorable: Callable[[Any], bool] = _eq_zero
    to_text: Optional[Callable[[Any], str]] = None
    from_text: Optional[Callable[[str], Any]] = None
    to_bytes: Optional[Callable[[Any], bytes]] = None
    from_bytes: Optional[Callable[[bytes], Any]] = None


_KINDS: Dict[str, CoefficientKind] = {}
_BY_TYPE: Dict[type, Optional[CoefficientKind]] = {}


def register_kind(kind: CoefficientKind) -> CoefficientKind:
    """Register ``kind``, replacing any kind with the same tag."""
    _KINDS[kind.tag] = kind
    _BY_TYPE.clear()
    return kind


def kind_of(value: Any) -> Optional[CoefficientKind]:
    """Return the kind registered for the type of ``value`` or ``None``."""
    tp = type(value)
    try:
        return _BY_TYPE[tp]
    except KeyError:
        pass
    found = None
    for base in tp.__mro__:
        for kind in _KINDS.values():
            if base in kind.types:
                found = kind
                break
        if found is not None:
            break
    _BY_TYPE[tp] = found
    return found


def kind_by_tag(tag: str) -> CoefficientKind:
    try:
        return _KINDS[tag]
    except KeyError:
        raise SerializationFormatError(f"Unknown coefficient kind '{tag}'") from None


def is_ignorable(value: Any) -> bool:
    """Return True if ``value`` is the additive identity of its kind."""
    kind = kind_of(value)
    if kind is None:
        return value == 0
    return kind.ignorable(value)


def require_serializable(value: Any) -> CoefficientKind:
    """
    Return the kind of ``value`` if it supports serialization.

    Raises
    ------
    UnsupportedCapabilityError
        If the type of ``value`` is unregistered or not serializable.
    """
    kind = kind_of(value)
    if kind is None or not kind.serializable:
        raise UnsupportedCapabilityError(
            f"Coefficients of type {type(value).__name__} do not support serialization"
        )
    return kind


# ------ Built-in kinds ------

def _int_to_bytes(value: int) -> bytes:
    n = value.bit_length() // 8 + 1
    return value.to_bytes(n, "little", signed=True)


def _int_from_bytes(data: bytes) -> int:
    if not data:
        raise SerializationFormatError("Empty integer payload")
    return int.from_bytes(data, "little", signed=True)


def _fraction_to_bytes(value: Fraction) -> bytes:
    num = _int_to_bytes(value.numerator)
    return struct.pack("<I", len(num)) + num + _int_to_bytes(value.denominator)


def _fraction_from_bytes(data: bytes) -> Fraction:
    if len(data) < 4:
        raise SerializationFormatError("Truncated rational payload")
    (n,) = struct.unpack_from("<I", data)
    num, den = data[4:4 + n], data[4 + n:]
    if len(num) != n or not den:
        raise SerializationFormatError("Truncated rational payload")
    den = _int_from_bytes(den)
    if den == 0:
        raise SerializationFormatError("Zero denominator in rational payload")
    return Fraction(_int_from_bytes(num), den)


def _parse(fn: Callable[[str], Any], what: str) -> Callable[[str], Any]:
    def parse(text: str) -> Any:
        try:
            return fn(text)
        except (ValueError, ZeroDivisionError) as exc:
            raise SerializationFormatError(f"Invalid {what} literal {text!r}") from exc
    return parse


def _unpack(fmt: str, what: str) -> Callable[[bytes], Any]:
    def unpack(data: bytes) -> Any:
        try:
            return struct.unpack(fmt, data)
        except struct.error as exc:
            raise SerializationFormatError(f"Invalid {what} payload of {len(data)} bytes") from exc
    return unpack


def _complex_from_text(text: str) -> complex:
    re, im = text.split(",")
    return complex(float.fromhex(re), float.fromhex(im))


_unpack_float = _unpack("<d", "real")
_unpack_complex = _unpack("<dd", "complex")

INTEGER = register_kind(CoefficientKind(
    tag="integer",
    types=(int,),
    serializable=True,
    to_text=str,
    from_text=_parse(int, "integer"),
    to_bytes=_int_to_bytes,
    from_bytes=_int_from_bytes,
))

RATIONAL = register_kind(CoefficientKind(
    tag="rational",
    types=(Fraction,),
    serializable=True,
    to_text=str,
    from_text=_parse(Fraction, "rational"),
    to_bytes=_fraction_to_bytes,
    from_bytes=_fraction_from_bytes,
))

REAL = register_kind(CoefficientKind(
    tag="real",
    types=(float,),
    serializable=True,
    to_text=float.hex,
    from_text=_parse(float.fromhex, "real"),
    to_bytes=lambda x: struct.pack("<d", x),
    from_bytes=lambda data: _unpack_float(data)[0],
))

COMPLEX = register_kind(CoefficientKind(
    tag="complex",
    types=(complex,),
    serializable=True,
    to_text=lambda z: f"{z.real.hex()},{z.imag.hex()}",
    from_text=_parse(_complex_from_text, "complex"),
    to_bytes=lambda z: struct.pack("<dd", z.real, z.imag),
    from_bytes=lambda data: complex(*_unpack_complex(data)),
))
