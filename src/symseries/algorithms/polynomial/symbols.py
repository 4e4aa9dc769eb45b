"""
symseries.algorithms.polynomial.symbols
=======================================

Ordered sets of symbol names shared by all the terms of a series.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from symseries.algorithms.utils.exceptions import IncompatibleSymbolSetError


class SymbolSet:
    """Sorted, deduplicated and immutable sequence of symbol names.

    The position of a name in the set is the position of its exponent in
    every monomial key built against the set.

    Parameters
    ----------
    names : Iterable[str], optional
        Symbol names. Duplicates are collapsed and the names are sorted.

    Raises
    ------
    TypeError
        If a name is not a string.
    """

    __slots__ = ("_names", "_index", "_hash")

    def __init__(self, names: Iterable[str] = ()):
        names = tuple(names)
        for name in names:
            if not isinstance(name, str):
                raise TypeError(f"Symbol names must be strings, got {type(name).__name__}")
        self._names: Tuple[str, ...] = tuple(sorted(set(names)))
        self._index = {name: i for i, name in enumerate(self._names)}
        self._hash = hash(self._names)

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __getitem__(self, i: int) -> str:
        return self._names[i]

    def __contains__(self, name) -> bool:
        return name in self._index

    def __eq__(self, other) -> bool:
        if not isinstance(other, SymbolSet):
            return NotImplemented
        return self._names == other._names

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"SymbolSet({list(self._names)!r})"

    def index(self, name: str) -> int:
        """Position of ``name`` in the set."""
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f"Symbol '{name}' is not in {self!r}") from None

    def union(self, other: "SymbolSet") -> "SymbolSet":
        """Return the set containing the names of both operands."""
        if self == other:
            return self
        return SymbolSet(self._names + other._names)

    def positions_in(self, superset: "SymbolSet") -> Tuple[int, ...]:
        """
        Map each position of this set to its position inside ``superset``.

        Parameters
        ----------
        superset : SymbolSet
            A set containing every name of this one.

        Returns
        -------
        tuple of int
            ``result[i]`` is the index of ``self[i]`` in ``superset``.

        Raises
        ------
        IncompatibleSymbolSetError
            If a name of this set is missing from ``superset``.
        """
        try:
            return tuple(superset._index[name] for name in self._names)
        except KeyError as exc:
            raise IncompatibleSymbolSetError(
                f"Symbol {exc.args[0]!r} of {self!r} is not part of {superset!r}"
            ) from None
