"""
symseries.algorithms.polynomial.truncation
==========================================

Degree-based truncation of candidate product terms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

import numpy as np

from symseries.algorithms.polynomial.container import TermContainer
from symseries.algorithms.polynomial.symbols import SymbolSet


@dataclass(frozen=True)
class TruncationPolicy:
    """
    Discard terms whose (partial, weighted) degree exceeds a bound.

    A term is kept iff its degree is at most ``max_degree``.

    Parameters
    ----------
    max_degree : int
        Highest degree kept.
    symbols : tuple of str, optional
        Restrict the degree to these symbols (partial degree). ``None`` means
        the total degree over every symbol of the series.
    weights : Mapping[str, int], optional
        Per-symbol weights. Symbols without an entry weigh 1.

    Notes
    -----
    Symbols named by the policy but absent from a series contribute nothing
    to the degree of its terms.
    """
    max_degree: int
    symbols: Optional[Tuple[str, ...]] = None
    weights: Optional[Mapping[str, int]] = None

    def __post_init__(self):
        if self.symbols is not None:
            object.__setattr__(self, "symbols", tuple(self.symbols))
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self.max_degree, int):
            raise TypeError(f"max_degree must be an int, got {type(self.max_degree).__name__}")
        if self.weights is not None:
            for name, w in self.weights.items():
                if not isinstance(w, int):
                    raise TypeError(f"Weight of symbol '{name}' must be an int")

    @classmethod
    def total(cls, max_degree: int) -> "TruncationPolicy":
        return cls(max_degree)

    @classmethod
    def partial(cls, max_degree: int, symbols: Iterable[str]) -> "TruncationPolicy":
        return cls(max_degree, tuple(symbols))

    def weight_list(self, symbol_set: SymbolSet) -> List[int]:
        """Return the weight of each position of ``symbol_set`` as Python ints."""
        w = [0] * len(symbol_set)
        scope = symbol_set.names if self.symbols is None else self.symbols
        for name in scope:
            if name in symbol_set:
                w[symbol_set.index(name)] = 1 if self.weights is None else self.weights.get(name, 1)
        return w

    def weight_vector(self, symbol_set: SymbolSet) -> np.ndarray:
        """
        Return the int64 weight of each position of ``symbol_set``.

        Raises
        ------
        OverflowError
            If a weight does not fit in int64. Use :meth:`weight_list` for
            arbitrary weights.
        """
        return np.array(self.weight_list(symbol_set), dtype=np.int64)

    def degrees(self, exps: np.ndarray, symbol_set: SymbolSet) -> np.ndarray:
        """Degrees of the rows of an exponent matrix."""
        return exps @ self.weight_vector(symbol_set)

    def keeps(self, degree: int) -> bool:
        return degree <= self.max_degree

    def filter_container(self, container: TermContainer, symbol_set: SymbolSet) -> TermContainer:
        """Return the terms of ``container`` whose degree is kept."""
        weights = self.weight_list(symbol_set)
        return TermContainer._from_dict(
            {key: cf for key, cf in container.items() if self.keeps(key.degree(weights))},
            ignorable=container._ignorable,
        )
