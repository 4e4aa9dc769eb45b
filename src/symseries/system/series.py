"""User-facing sparse multivariate series."""

from __future__ import annotations

import numbers
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

from symseries.algorithms.polynomial.coefficients import (CoefficientKind,
                                                          kind_of,
                                                          register_kind)
from symseries.algorithms.polynomial.config import MultiplierConfig
from symseries.algorithms.polynomial.container import Term, TermContainer
from symseries.algorithms.polynomial.monomial import Monomial
from symseries.algorithms.polynomial.multiplier import multiply
from symseries.algorithms.polynomial.power import pow_series
from symseries.algorithms.polynomial.symbols import SymbolSet
from symseries.algorithms.polynomial.truncation import TruncationPolicy
from symseries.algorithms.utils.exceptions import DimensionMismatchError

_KeyLike = Union[Monomial, Sequence[int]]


class Series:
    """
    Finite sum of ``coefficient * monomial`` terms over a symbol set.

    Parameters
    ----------
    terms : Mapping or Iterable of pairs, optional
        ``{exponents: coefficient}`` or ``[(exponents, coefficient), ...]``.
        Exponents are tuples of ints (or :class:`Monomial`) aligned with
        ``symbols`` as given by the caller. Repeated keys are merged and
        ignorable coefficients dropped.
    symbols : Sequence[str] or SymbolSet, optional
        Names of the variables. Stored sorted; the exponents of ``terms`` are
        permuted accordingly.

    Raises
    ------
    DimensionMismatchError
        If an exponent vector does not have one entry per symbol.
    ValueError
        If ``symbols`` contains duplicates.

    Examples
    --------
    >>> x, y = Series.symbol("x"), Series.symbol("y")
    >>> p = (1 + x + y) ** 2
    >>> len(p)
    6
    """

    __slots__ = ("_symbols", "_container")

    def __init__(self, terms: Optional[Union[Mapping[_KeyLike, Any], Iterable[Tuple[_KeyLike, Any]]]] = None,
                 symbols: Union[SymbolSet, Sequence[str]] = ()):
        if isinstance(symbols, SymbolSet):
            symbol_set = symbols
            perm = None
        else:
            names = tuple(symbols)
            symbol_set = SymbolSet(names)
            if len(symbol_set) != len(names):
                raise ValueError(f"Duplicate symbol names in {list(names)}")
            perm = [symbol_set.index(n) for n in names]
            if perm == list(range(len(names))):
                perm = None

        self._symbols = symbol_set
        self._container = TermContainer()
        if terms is None:
            return
        items = terms.items() if isinstance(terms, Mapping) else terms
        n = len(symbol_set)
        for key, cf in items:
            exps = tuple(key.exponents if isinstance(key, Monomial) else key)
            if len(exps) != n:
                raise DimensionMismatchError(
                    f"Exponent vector of size {len(exps)} for a series over {n} symbols"
                )
            if perm is not None:
                exps = Monomial(exps).extend(perm, n).exponents
            self._container.insert(Monomial(exps), cf)

    @classmethod
    def _from_parts(cls, symbol_set: SymbolSet, container: TermContainer) -> "Series":
        obj = cls.__new__(cls)
        obj._symbols = symbol_set
        obj._container = container
        return obj

    @classmethod
    def from_terms(cls, terms: Iterable[Term], symbols: Union[SymbolSet, Sequence[str]] = ()) -> "Series":
        """Build a series from :class:`Term` records (coefficient first)."""
        return cls(((term.key, term.coefficient) for term in terms), symbols)

    @classmethod
    def symbol(cls, name: str) -> "Series":
        """Return the series made of the single variable ``name``."""
        return cls({(1,): 1}, [name])

    @classmethod
    def constant(cls, value: Any, symbols: Union[SymbolSet, Sequence[str]] = ()) -> "Series":
        """Return ``value`` as a series over ``symbols``."""
        symbol_set = symbols if isinstance(symbols, SymbolSet) else SymbolSet(symbols)
        return cls({(0,) * len(symbol_set): value}, symbol_set)

    # ------ inspection ------

    @property
    def symbol_set(self) -> SymbolSet:
        return self._symbols

    @property
    def container(self) -> TermContainer:
        return self._container

    def __len__(self) -> int:
        return len(self._container)

    def __bool__(self) -> bool:
        return bool(self._container)

    def __iter__(self) -> Iterator[Term]:
        return iter(self._container)

    def coefficient(self, exponents: _KeyLike) -> Any:
        """Coefficient of the monomial ``exponents`` (0 if absent)."""
        key = exponents if isinstance(exponents, Monomial) else Monomial(exponents)
        return self._container.get(key, 0)

    def degree(self, symbols: Optional[Iterable[str]] = None) -> int:
        """
        Highest total degree, or partial degree over ``symbols``.

        The empty series has degree 0.
        """
        if not self._container:
            return 0
        if symbols is None:
            return max(key.degree() for key in self._container.keys())
        positions = [self._symbols.index(s) for s in symbols if s in self._symbols]
        return max(key.partial_degree(positions) for key in self._container.keys())

    def is_constant(self) -> bool:
        return all(key.is_unitary() for key in self._container.keys())

    def copy(self) -> "Series":
        return self._from_parts(self._symbols, self._container.copy())

    # ------ symbol handling ------

    def extend_symbols(self, symbol_set: SymbolSet) -> "Series":
        """Return the same series expressed over the larger ``symbol_set``."""
        if symbol_set == self._symbols:
            return self
        positions = self._symbols.positions_in(symbol_set)
        n = len(symbol_set)
        container = self._container.map_keys(lambda key: key.extend(positions, n))
        return self._from_parts(symbol_set, container)

    def _reconcile(self, other: "Series") -> Tuple["Series", "Series"]:
        symbols = self._symbols.union(other._symbols)
        return self.extend_symbols(symbols), other.extend_symbols(symbols)

    @staticmethod
    def _is_scalar(value: Any) -> bool:
        return not isinstance(value, Series) and (kind_of(value) is not None or isinstance(value, numbers.Number))

    def _coerce(self, other: Any) -> Optional["Series"]:
        if isinstance(other, Series):
            return other
        if self._is_scalar(other):
            return type(self).constant(other, self._symbols)
        return None

    # ------ arithmetic ------

    def _add(self, other: "Series", negate: bool) -> "Series":
        a, b = self._reconcile(other)
        out = a._container.copy()
        for key, cf in b._container.items():
            out.insert(key, -cf if negate else cf)
        return self._from_parts(a._symbols, out)

    def __add__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self._add(other, negate=False)

    def __radd__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return other._add(self, negate=False)

    def __sub__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self._add(other, negate=True)

    def __rsub__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return other._add(self, negate=True)

    def __neg__(self) -> "Series":
        out = TermContainer()
        for key, cf in self._container.items():
            out.insert(key, -cf)
        return self._from_parts(self._symbols, out)

    def __pos__(self) -> "Series":
        return self.copy()

    def multiply(self, other: "Series", truncation: Optional[TruncationPolicy] = None,
                 config: Optional[MultiplierConfig] = None) -> "Series":
        """Product with ``other``, see :func:`~symseries.algorithms.polynomial.multiplier.multiply`."""
        return multiply(self, other, truncation=truncation, config=config)

    def _scale(self, value: Any, left: bool) -> "Series":
        out = TermContainer()
        for key, cf in self._container.items():
            out.insert(key, value * cf if left else cf * value)
        return self._from_parts(self._symbols, out)

    def __mul__(self, other):
        if isinstance(other, Series):
            return multiply(self, other)
        if not self._is_scalar(other):
            return NotImplemented
        return self._scale(other, left=False)

    def __rmul__(self, other):
        if not self._is_scalar(other):
            return NotImplemented
        return self._scale(other, left=True)

    def __pow__(self, exponent: int) -> "Series":
        return pow_series(self, exponent)

    def truncated(self, policy: TruncationPolicy) -> "Series":
        """Return the terms whose degree is within ``policy``'s bound."""
        return self._from_parts(self._symbols, policy.filter_container(self._container, self._symbols))

    # ------ comparison and display ------

    def __eq__(self, other) -> bool:
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        a, b = self._reconcile(other)
        return a._container == b._container

    __hash__ = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self)} terms, symbols={list(self._symbols)})"

    def __str__(self) -> str:
        if not self._container:
            return "0"
        parts = []
        for key, cf in self._container.canonical_items():
            factors = [
                name if e == 1 else f"{name}**{e}"
                for name, e in zip(self._symbols, key) if e != 0
            ]
            if not factors:
                parts.append(str(cf))
            else:
                parts.append("*".join([f"({cf})"] + factors) if cf != 1 else "*".join(factors))
        return " + ".join(parts)


register_kind(CoefficientKind(
    tag="series",
    types=(Series,),
    serializable=True,
    ignorable=lambda s: not s,
))
