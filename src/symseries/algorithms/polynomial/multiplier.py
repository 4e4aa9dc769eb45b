"""
symseries.algorithms.polynomial.multiplier
==========================================

Product of two sparse multivariate series.

The pipeline runs in four stages:

1. *configured*: symbol sets are reconciled, keys re-padded and checked,
   operand terms sorted into a canonical order and a strategy chosen;
2. *partitioned*: the larger operand is cut into contiguous blocks whose
   boundaries only depend on the operand sizes;
3. *combined*: every block is multiplied against the full smaller operand
   into a private :class:`~symseries.algorithms.polynomial.container.TermContainer`
   (on a pool of worker threads when requested) and the partial containers
   are folded in block order by the calling thread;
4. *done*: the merged terms are wrapped into a new series.

Because the blocks and the fold order do not depend on the number of workers
nor on the enumeration order of the operand containers, the result is the
same for every worker count, including the rounding of inexact coefficients.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from operator import add
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

import numpy as np

from symseries.algorithms.polynomial._kronecker import _KroneckerCodec
from symseries.algorithms.polynomial.coefficients import (is_ignorable,
                                                          kind_of)
from symseries.algorithms.polynomial.config import (MultiplierConfig,
                                                    get_config,
                                                    resolve_n_threads)
from symseries.algorithms.polynomial.container import TermContainer
from symseries.algorithms.polynomial.monomial import Monomial
from symseries.algorithms.polynomial.truncation import TruncationPolicy
from symseries.algorithms.utils.exceptions import (DimensionMismatchError,
                                                   IncompatibleSymbolSetError)
from symseries.utils.log_config import logger

if TYPE_CHECKING:
    from symseries.system.series import Series

_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


class MultiplierState(Enum):
    CONFIGURED = "configured"
    PARTITIONED = "partitioned"
    COMBINED = "combined"
    DONE = "done"


class Strategy(Enum):
    DENSE = "dense"
    SPARSE = "sparse"
    TUPLE = "tuple"


def _check_arity(series: "Series") -> None:
    n = len(series.symbol_set)
    for key in series.container.keys():
        if len(key) != n:
            raise DimensionMismatchError(
                f"Monomial of size {len(key)} in a series over {n} symbols"
            )


def _check_nested_symbols(series: "Series", names) -> None:
    # A symbol may not appear both in the series and in a nested coefficient.
    for term in series:
        kind = kind_of(term.coefficient)
        if kind is not None and kind.tag == "series":
            clash = set(term.coefficient.symbol_set) & set(names)
            if clash:
                raise IncompatibleSymbolSetError(
                    f"Symbols {sorted(clash)} are used both by the series and by its coefficients"
                )


def _zero_test(cfs_a: List[Any], cfs_b: List[Any]) -> Callable[[Any], bool]:
    """Pick the kind-specific zero test when both operands share one kind."""
    kinds = {kind_of(c) for c in cfs_a} | {kind_of(c) for c in cfs_b}
    if len(kinds) == 1:
        (kind,) = kinds
        if kind is not None:
            return kind.ignorable
    return is_ignorable


class SeriesMultiplier:
    """
    Multiply two series.

    Parameters
    ----------
    a, b : :class:`~symseries.system.series.Series`
        The operands. They are never mutated.
    truncation : :class:`~symseries.algorithms.polynomial.truncation.TruncationPolicy`, optional
        Candidate terms whose degree exceeds the bound are discarded before
        insertion.
    config : :class:`~symseries.algorithms.polynomial.config.MultiplierConfig`, optional
        Defaults to the configuration active in the current context.

    Raises
    ------
    IncompatibleSymbolSetError
        If the operands cannot be expressed over a common symbol set.
    DimensionMismatchError
        If a key does not match the size of its symbol set.

    Notes
    -----
    All checks run in the constructor, before any product is computed.
    Calling the instance runs the multiplication and returns the product.
    Exceptions raised by coefficient arithmetic propagate unchanged and no
    partial product is returned.
    """

    def __init__(self, a: "Series", b: "Series", truncation: Optional[TruncationPolicy] = None,
                 config: Optional[MultiplierConfig] = None):
        self.config = get_config() if config is None else config
        self.truncation = truncation
        self._series_type = type(a)

        _check_arity(a)
        _check_arity(b)
        symbols = a.symbol_set.union(b.symbol_set)
        _check_nested_symbols(a, symbols)
        _check_nested_symbols(b, symbols)
        a = a.extend_symbols(symbols)
        b = b.extend_symbols(symbols)
        self.symbol_set = symbols

        # Coefficients are always multiplied as ``cf_a * cf_b``.
        self._swapped = len(b) > len(a)
        outer, inner = (b, a) if self._swapped else (a, b)
        outer_items = outer.container.canonical_items()
        inner_items = inner.container.canonical_items()
        self._keys_outer = [k.exponents for k, _ in outer_items]
        self._cfs_outer = [cf for _, cf in outer_items]
        self._keys_inner = [k.exponents for k, _ in inner_items]
        self._cfs_inner = [cf for _, cf in inner_items]
        self._ignorable = _zero_test(self._cfs_outer, self._cfs_inner)

        self._codec: Optional[_KroneckerCodec] = None
        self.strategy = self._choose_strategy()
        self.blocks: List[Tuple[int, int]] = []
        self.n_workers = 0
        self.state = MultiplierState.CONFIGURED

    # ------ configuration ------

    def _exponent_matrix(self, keys: List[Tuple[int, ...]]) -> Optional[np.ndarray]:
        try:
            return np.array(keys, dtype=np.int64).reshape(len(keys), len(self.symbol_set))
        except OverflowError:
            return None

    def _choose_strategy(self) -> Strategy:
        n_outer, n_inner = len(self._keys_outer), len(self._keys_inner)
        if n_outer == 0 or n_inner == 0:
            return Strategy.SPARSE
        exps_outer = self._exponent_matrix(self._keys_outer)
        exps_inner = self._exponent_matrix(self._keys_inner)
        if exps_outer is None or exps_inner is None:
            return Strategy.TUPLE
        if self.truncation is not None and not self._degrees_fit(exps_outer, exps_inner):
            return Strategy.TUPLE
        codec = _KroneckerCodec.for_product(exps_outer, exps_inner)
        if codec is None:
            return Strategy.TUPLE
        self._codec = codec
        self._codes_outer = codec.encode_a(exps_outer)
        self._codes_inner = codec.encode_b(exps_inner)
        if self.truncation is not None:
            self._deg_outer = self.truncation.degrees(exps_outer, self.symbol_set)
            self._deg_inner = self.truncation.degrees(exps_inner, self.symbol_set)
        fill = n_outer * n_inner / codec.size
        if codec.size <= self.config.dense_max_size and fill >= self.config.dense_min_fill:
            return Strategy.DENSE
        return Strategy.SPARSE

    def _degrees_fit(self, exps_outer: np.ndarray, exps_inner: np.ndarray) -> bool:
        """Whether every partial sum of a product degree stays within int64."""
        weights = self.truncation.weight_list(self.symbol_set)
        bound = 0
        for k, w in enumerate(weights):
            if w:
                span_outer = max(-int(exps_outer[:, k].min()), int(exps_outer[:, k].max()))
                span_inner = max(-int(exps_inner[:, k].min()), int(exps_inner[:, k].max()))
                bound += abs(w) * (span_outer + span_inner)
        return bound <= _INT64_MAX

    def _partition(self) -> None:
        # An empty operand yields an empty product: no work blocks.
        n = len(self._keys_outer) if self._keys_inner else 0
        size = max(self.config.min_block_size, math.ceil(n / self.config.max_blocks))
        self.blocks = [(start, min(start + size, n)) for start in range(0, n, size)]
        self.n_workers = min(resolve_n_threads(self.config), max(len(self.blocks), 1))
        self.state = MultiplierState.PARTITIONED

    # ------ per-block kernels ------

    def _pairs(self, start: int, stop: int):
        """Yield ``(product_coefficient, candidate_codes, inner_coefficients)`` per outer row."""
        rows = (self._codes_outer[start:stop, None] + self._codes_inner[None, :]).tolist()
        if self.truncation is None:
            for row, cf in zip(rows, self._cfs_outer[start:stop]):
                yield cf, row, self._cfs_inner
            return
        # Degrees are within int64 here, so clamping the bound keeps the comparison exact.
        max_degree = min(max(self.truncation.max_degree, _INT64_MIN), _INT64_MAX)
        keep = (self._deg_outer[start:stop, None] + self._deg_inner[None, :]) <= max_degree
        for row, mask, cf in zip(rows, keep.tolist(), self._cfs_outer[start:stop]):
            yield cf, [c for c, m in zip(row, mask) if m], [c for c, m in zip(self._cfs_inner, mask) if m]

    def _sparse_block(self, start: int, stop: int) -> TermContainer:
        partial = TermContainer(ignorable=self._ignorable)
        insert = partial.insert
        swapped = self._swapped
        for cf, codes, cfs_inner in self._pairs(start, stop):
            for code, other in zip(codes, cfs_inner):
                insert(code, other * cf if swapped else cf * other)
        return partial

    def _dense_block(self, start: int, stop: int) -> TermContainer:
        acc: List[Any] = [None] * self._codec.size
        touched: List[int] = []
        swapped = self._swapped
        for cf, codes, cfs_inner in self._pairs(start, stop):
            for code, other in zip(codes, cfs_inner):
                prod = other * cf if swapped else cf * other
                current = acc[code]
                if current is None:
                    acc[code] = prod
                    touched.append(code)
                else:
                    acc[code] = current + prod
        partial = TermContainer(ignorable=self._ignorable)
        insert = partial.insert
        for code in touched:
            insert(code, acc[code])
        return partial

    def _tuple_block(self, start: int, stop: int) -> TermContainer:
        partial = TermContainer(ignorable=self._ignorable)
        insert = partial.insert
        swapped = self._swapped
        if self.truncation is None:
            keep = None
        else:
            weights = self.truncation.weight_list(self.symbol_set)
            max_degree = self.truncation.max_degree
            keep = lambda key: sum(w * e for w, e in zip(weights, key)) <= max_degree
        inner = list(zip(self._keys_inner, self._cfs_inner))
        for key, cf in zip(self._keys_outer[start:stop], self._cfs_outer[start:stop]):
            for other_key, other in inner:
                prod_key = tuple(map(add, key, other_key))
                if keep is not None and not keep(prod_key):
                    continue
                insert(prod_key, other * cf if swapped else cf * other)
        return partial

    # ------ combination ------

    def _combine(self) -> TermContainer:
        kernel = {
            Strategy.DENSE: self._dense_block,
            Strategy.SPARSE: self._sparse_block,
            Strategy.TUPLE: self._tuple_block,
        }[self.strategy]
        result = TermContainer(ignorable=self._ignorable)
        if self.n_workers <= 1:
            for start, stop in self.blocks:
                result.merge_container(kernel(start, stop))
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers, thread_name_prefix="symseries-mul") as pool:
                futures = [pool.submit(kernel, start, stop) for start, stop in self.blocks]
                try:
                    for fut in futures:
                        result.merge_container(fut.result())
                except BaseException:
                    for fut in futures:
                        fut.cancel()
                    raise
        self.state = MultiplierState.COMBINED
        return result

    def _assemble(self, merged: TermContainer) -> "Series":
        if not merged:
            return self._series_type._from_parts(self.symbol_set, TermContainer())
        if self.strategy is Strategy.TUPLE:
            items = merged.canonical_items()
            terms = {Monomial._from_tuple(k): cf for k, cf in items}
        else:
            codes = np.fromiter(merged.keys(), dtype=np.int64, count=len(merged))
            cfs = list(merged.items())
            exps = self._codec.decode(codes)
            if exps.shape[1]:
                order = np.lexsort(exps.T[::-1]).tolist()
            else:
                order = range(exps.shape[0])
            rows = exps.tolist()
            terms = {Monomial._from_tuple(tuple(rows[i])): cfs[i][1] for i in order}
        return self._series_type._from_parts(self.symbol_set, TermContainer._from_dict(terms))

    def __call__(self) -> "Series":
        if self.state is not MultiplierState.CONFIGURED:
            raise RuntimeError(f"Multiplier already used (state: {self.state.value})")
        self._partition()
        logger.debug(
            "Multiplying %d x %d terms over %d symbols: strategy=%s, blocks=%d, workers=%d",
            len(self._keys_outer), len(self._keys_inner), len(self.symbol_set),
            self.strategy.value, len(self.blocks), self.n_workers,
        )
        merged = self._combine()
        result = self._assemble(merged)
        self.state = MultiplierState.DONE
        return result


def multiply(a: "Series", b: "Series", truncation: Optional[TruncationPolicy] = None,
             config: Optional[MultiplierConfig] = None) -> "Series":
    """
    Return the product of two series.

    Parameters
    ----------
    a, b : :class:`~symseries.system.series.Series`
        Operands.
    truncation : :class:`~symseries.algorithms.polynomial.truncation.TruncationPolicy`, optional
        Degree bound applied to the candidate terms.
    config : :class:`~symseries.algorithms.polynomial.config.MultiplierConfig`, optional
        Worker count and strategy thresholds.

    Returns
    -------
    :class:`~symseries.system.series.Series`
        The product over the union of the operands' symbol sets.
    """
    return SeriesMultiplier(a, b, truncation=truncation, config=config)()
