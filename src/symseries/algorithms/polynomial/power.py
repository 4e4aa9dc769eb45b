"""Integral powers of series by repeated multiplication."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from symseries.algorithms.polynomial.config import MultiplierConfig
from symseries.algorithms.polynomial.multiplier import multiply
from symseries.algorithms.polynomial.truncation import TruncationPolicy

if TYPE_CHECKING:
    from symseries.system.series import Series


def pow_series(base: "Series", exponent: int, truncation: Optional[TruncationPolicy] = None,
               config: Optional[MultiplierConfig] = None) -> "Series":
    """
    Raise a series to a non-negative integer power.

    Binary exponentiation on top of :func:`~symseries.algorithms.polynomial.multiplier.multiply`.

    Parameters
    ----------
    base : :class:`~symseries.system.series.Series`
        The series to raise.
    exponent : int
        Non-negative exponent. ``base ** 0`` is the constant 1 over the
        symbols of ``base``.
    truncation, config
        Forwarded to every multiplication.

    Raises
    ------
    ValueError
        If ``exponent`` is not a non-negative integer.
    """
    if isinstance(exponent, bool) or not isinstance(exponent, int) or exponent < 0:
        raise ValueError("Exponent must be a non-negative integer")

    if exponent == 0:
        return type(base).constant(1, base.symbol_set)

    if truncation is not None:
        base = base.truncated(truncation)
    if exponent == 1:
        return base.copy()

    result = None
    square = base
    while exponent > 0:
        if exponent % 2 == 1:
            result = square if result is None else multiply(result, square, truncation, config)
        exponent //= 2
        if exponent:
            square = multiply(square, square, truncation, config)
    return result
