"""
symseries.algorithms.polynomial._kronecker
==========================================

Packed integer codes for exponent vectors.

An exponent vector ``e`` with per-variable bounds ``lo <= e <= hi`` is mapped
to the mixed-radix integer

    code(e) = sum_k (e_k - lo_k) * stride_k,   stride_0 = 1,
    stride_k = stride_{k-1} * (hi_{k-1} - lo_{k-1} + 1)

The map is a bijection onto ``[0, size)``. If the bounds of a product are the
sums of the bounds of its operands, then

    code(a + b) = code_a(a) + code_b(b)

where each operand is offset by its own lower bound, so monomial
multiplication reduces to one integer addition.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
from numba import njit

from symseries.algorithms.utils.config import FASTMATH, MAX_CODE_BITS

_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


@njit(fastmath=FASTMATH, cache=False)
def _encode_rows(exps: np.ndarray, lo: np.ndarray, strides: np.ndarray) -> np.ndarray:
    """Encode each row of ``exps`` (shape ``(n, v)``) into one int64 code."""
    n, v = exps.shape
    out = np.empty(n, dtype=np.int64)
    for i in range(n):
        c = 0
        for k in range(v):
            c += (exps[i, k] - lo[k]) * strides[k]
        out[i] = c
    return out


@njit(fastmath=FASTMATH, cache=False)
def _decode_codes(codes: np.ndarray, lo: np.ndarray, ranges: np.ndarray) -> np.ndarray:
    """Inverse of :func:`_encode_rows` for the product bounds."""
    n = codes.shape[0]
    v = ranges.shape[0]
    out = np.empty((n, v), dtype=np.int64)
    for i in range(n):
        c = codes[i]
        for k in range(v):
            out[i, k] = c % ranges[k] + lo[k]
            c //= ranges[k]
    return out


class _KroneckerCodec:
    """
    Codec for the products of two exponent matrices.

    Parameters
    ----------
    lo_a, hi_a, lo_b, hi_b : numpy.ndarray
        Per-variable exponent bounds of the two operands.
    """

    def __init__(self, lo_a: np.ndarray, hi_a: np.ndarray, lo_b: np.ndarray, hi_b: np.ndarray):
        self.lo_a = lo_a.astype(np.int64)
        self.lo_b = lo_b.astype(np.int64)
        self.lo = self.lo_a + self.lo_b
        hi = hi_a.astype(np.int64) + hi_b.astype(np.int64)
        self.ranges = hi - self.lo + 1
        strides = np.ones(self.ranges.shape[0], dtype=np.int64)
        for k in range(1, strides.shape[0]):
            strides[k] = strides[k - 1] * self.ranges[k - 1]
        self.strides = strides
        self.size = math.prod(int(r) for r in self.ranges)

    @classmethod
    def for_product(cls, exps_a: np.ndarray, exps_b: np.ndarray) -> Optional["_KroneckerCodec"]:
        """
        Build the codec for ``exps_a x exps_b`` or return ``None`` when the
        product code range does not fit into ``MAX_CODE_BITS`` bits or a
        product exponent leaves the int64 range.
        """
        if exps_a.shape[0] == 0 or exps_b.shape[0] == 0:
            return None
        lo_a, hi_a = exps_a.min(axis=0), exps_a.max(axis=0)
        lo_b, hi_b = exps_b.min(axis=0), exps_b.max(axis=0)
        # Bounds and range in Python ints, the int64 arrays could overflow here.
        size = 1
        for k in range(exps_a.shape[1]):
            lo = int(lo_a[k]) + int(lo_b[k])
            hi = int(hi_a[k]) + int(hi_b[k])
            if lo < _INT64_MIN or hi > _INT64_MAX:
                return None
            size *= hi - lo + 1
        if size > (1 << MAX_CODE_BITS):
            return None
        return cls(lo_a, hi_a, lo_b, hi_b)

    def encode_a(self, exps: np.ndarray) -> np.ndarray:
        return _encode_rows(exps, self.lo_a, self.strides)

    def encode_b(self, exps: np.ndarray) -> np.ndarray:
        return _encode_rows(exps, self.lo_b, self.strides)

    def decode(self, codes: np.ndarray) -> np.ndarray:
        return _decode_codes(codes.astype(np.int64), self.lo, self.ranges)
