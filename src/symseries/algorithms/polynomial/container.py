"""
symseries.algorithms.polynomial.container
=========================================

Hashed term storage with merge-on-insert semantics.
"""

from __future__ import annotations

from typing import (Any, Callable, Dict, Hashable, Iterable, Iterator, List,
                    NamedTuple, Tuple)

from symseries.algorithms.polynomial.coefficients import is_ignorable


class Term(NamedTuple):
    """One coefficient/key pair of a series."""
    coefficient: Any
    key: Hashable


class TermContainer:
    """
    Mapping from monomial keys to coefficients holding at most one term per key.

    Inserting a term whose key is already present adds the coefficients; if
    the sum is ignorable the entry is removed. An ignorable coefficient is
    never stored.

    Parameters
    ----------
    terms : Iterable[Term], optional
        Terms inserted one by one with :meth:`insert_term`.
    ignorable : Callable[[Any], bool], optional
        Zero test for coefficients. Defaults to the registered kind's test.
    """

    __slots__ = ("_terms", "_ignorable")

    def __init__(self, terms: Iterable[Term] = (), ignorable: Callable[[Any], bool] = is_ignorable):
        self._terms: Dict[Hashable, Any] = {}
        self._ignorable = ignorable
        for term in terms:
            self.insert(term.key, term.coefficient)

    def insert(self, key: Hashable, coefficient: Any) -> None:
        """Insert ``coefficient * key``, merging with a resident term."""
        terms = self._terms
        current = terms.get(key)
        if current is None:
            if not self._ignorable(coefficient):
                terms[key] = coefficient
            return
        total = current + coefficient
        if self._ignorable(total):
            del terms[key]
        else:
            terms[key] = total

    def insert_term(self, term: Term) -> None:
        self.insert(term.key, term.coefficient)

    def merge_container(self, other: "TermContainer") -> None:
        """Insert every term of ``other`` into this container."""
        insert = self.insert
        for key, cf in other._terms.items():
            insert(key, cf)

    def __len__(self) -> int:
        return len(self._terms)

    def __bool__(self) -> bool:
        return bool(self._terms)

    def __iter__(self) -> Iterator[Term]:
        for key, cf in self._terms.items():
            yield Term(cf, key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._terms

    def __eq__(self, other) -> bool:
        if not isinstance(other, TermContainer):
            return NotImplemented
        return self._terms == other._terms

    def __repr__(self) -> str:
        return f"TermContainer({len(self._terms)} terms)"

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._terms.get(key, default)

    def keys(self):
        return self._terms.keys()

    def items(self):
        return self._terms.items()

    def copy(self) -> "TermContainer":
        out = TermContainer(ignorable=self._ignorable)
        out._terms = dict(self._terms)
        return out

    def canonical_items(self) -> List[Tuple[Hashable, Any]]:
        """Return the ``(key, coefficient)`` pairs sorted by key."""
        return sorted(self._terms.items(), key=lambda kv: kv[0])

    def map_keys(self, fn: Callable[[Hashable], Hashable]) -> "TermContainer":
        """
        Return a new container with every key replaced by ``fn(key)``.

        ``fn`` may map distinct keys onto the same key; colliding terms are
        merged.
        """
        out = TermContainer(ignorable=self._ignorable)
        for key, cf in self._terms.items():
            out.insert(fn(key), cf)
        return out

    @classmethod
    def _from_dict(cls, terms: Dict[Hashable, Any], ignorable: Callable[[Any], bool] = is_ignorable) -> "TermContainer":
        # The caller guarantees that no value in ``terms`` is ignorable.
        out = cls(ignorable=ignorable)
        out._terms = terms
        return out
