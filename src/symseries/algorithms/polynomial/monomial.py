"""
symseries.algorithms.polynomial.monomial
========================================

Exponent-vector keys identifying the monomials of a series.
"""

from __future__ import annotations

from operator import add
from typing import Iterable, Optional, Sequence, Tuple

from symseries.algorithms.utils.exceptions import DimensionMismatchError


class Monomial:
    """
    Immutable vector of integer exponents aligned with a symbol set.

    Equal exponent vectors compare and hash equal. Multiplication of two
    monomials is the element-wise sum of their exponents.

    Parameters
    ----------
    exponents : Iterable[int]
        One exponent per symbol. Negative exponents are allowed.
    """

    __slots__ = ("_exps", "_hash")

    def __init__(self, exponents: Iterable[int] = ()):
        exps = tuple(int(e) for e in exponents)
        self._exps: Tuple[int, ...] = exps
        self._hash = hash(exps)

    @classmethod
    def _from_tuple(cls, exps: Tuple[int, ...]) -> "Monomial":
        # No validation, callers already hold a tuple of ints.
        obj = cls.__new__(cls)
        obj._exps = exps
        obj._hash = hash(exps)
        return obj

    @classmethod
    def unit(cls, size: int) -> "Monomial":
        """Return the monomial with ``size`` zero exponents."""
        return cls._from_tuple((0,) * size)

    @property
    def exponents(self) -> Tuple[int, ...]:
        return self._exps

    def __len__(self) -> int:
        return len(self._exps)

    def __iter__(self):
        return iter(self._exps)

    def __getitem__(self, i):
        return self._exps[i]

    def __eq__(self, other) -> bool:
        if isinstance(other, Monomial):
            return self._exps == other._exps
        return NotImplemented

    def __lt__(self, other: "Monomial") -> bool:
        return self._exps < other._exps

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"Monomial({list(self._exps)})"

    def multiply(self, other: "Monomial") -> "Monomial":
        """
        Return the product of two monomials.

        Raises
        ------
        DimensionMismatchError
            If the two exponent vectors have different lengths.
        """
        if len(self._exps) != len(other._exps):
            raise DimensionMismatchError(
                f"Cannot multiply monomials of sizes {len(self._exps)} and {len(other._exps)}"
            )
        return Monomial._from_tuple(tuple(map(add, self._exps, other._exps)))

    __mul__ = multiply

    def degree(self, weights: Optional[Sequence[int]] = None) -> int:
        """
        Total degree, or weighted degree when ``weights`` is given.

        Parameters
        ----------
        weights : Sequence[int], optional
            One weight per exponent.
        """
        if weights is None:
            return sum(self._exps)
        if len(weights) != len(self._exps):
            raise DimensionMismatchError(
                f"Got {len(weights)} weights for a monomial of size {len(self._exps)}"
            )
        return sum(w * e for w, e in zip(weights, self._exps))

    def partial_degree(self, positions: Iterable[int]) -> int:
        """Sum of the exponents found at ``positions``."""
        return sum(self._exps[p] for p in positions)

    def is_unitary(self) -> bool:
        return not any(self._exps)

    def extend(self, positions: Sequence[int], size: int) -> "Monomial":
        """
        Re-express the key under a larger symbol set.

        Parameters
        ----------
        positions : Sequence[int]
            Target position of each current exponent, as returned by
            :meth:`SymbolSet.positions_in`.
        size : int
            Size of the target symbol set.
        """
        if len(positions) != len(self._exps):
            raise DimensionMismatchError(
                f"Got {len(positions)} positions for a monomial of size {len(self._exps)}"
            )
        exps = [0] * size
        for p, e in zip(positions, self._exps):
            exps[p] = e
        return Monomial._from_tuple(tuple(exps))
