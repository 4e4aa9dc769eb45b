import os
import random
from dataclasses import replace

import pytest

from symseries.algorithms.polynomial.config import MultiplierConfig, use_config
from symseries.algorithms.polynomial.monomial import Monomial
from symseries.algorithms.polynomial.multiplier import (MultiplierState,
                                                        SeriesMultiplier,
                                                        Strategy, multiply)
from symseries.algorithms.polynomial.truncation import TruncationPolicy
from symseries.algorithms.utils.exceptions import (IncompatibleSymbolSetError,
                                                   SymseriesError)
from symseries.system.series import Series

THREADS = [1, 2, 3, 4]


@pytest.fixture
def many_cpus(monkeypatch):
    monkeypatch.setattr(os, "cpu_count", lambda: 8)


@pytest.fixture(scope="module")
def xyzt():
    return [Series.symbol(s) for s in ("x", "y", "z", "t")]


@pytest.fixture(scope="module")
def dense_f(xyzt):
    x, y, z, t = xyzt
    f = x + y + z + t + 1
    tmp = f
    for _ in range(9):
        f *= tmp
    return f


def _random_series(rng, names, n_terms, max_exp):
    terms = {}
    for _ in range(n_terms):
        key = tuple(rng.randint(0, max_exp) for _ in names)
        terms[key] = rng.uniform(-1.0, 1.0)
    return Series(terms, names)


def _sparse_operands():
    x, y, z, t, u = (Series.symbol(s) for s in ("x", "y", "z", "t", "u"))
    f = x + y + 2 * z ** 2 + 3 * t ** 3 + 5 * u ** 5 + 1
    g = u + t + 2 * z ** 2 + 3 * y ** 3 + 5 * x ** 5 + 1
    h = -u + t + 2 * z ** 2 + 3 * y ** 3 + 5 * x ** 5 + 1
    tmp_f, tmp_g, tmp_h = f, g, h
    for _ in range(7):
        f *= tmp_f
        g *= tmp_g
        h *= tmp_h
    return f, g, h


class _Mat2:
    """2x2 integer matrix, a non-commutative coefficient."""

    def __init__(self, a, b, c, d):
        self.m = (a, b, c, d)

    def __mul__(self, other):
        a, b, c, d = self.m
        e, f, g, h = other.m
        return _Mat2(a * e + b * g, a * f + b * h, c * e + d * g, c * f + d * h)

    def __add__(self, other):
        return _Mat2(*(p + q for p, q in zip(self.m, other.m)))

    def __eq__(self, other):
        return isinstance(other, _Mat2) and self.m == other.m

    __hash__ = None


class _Exploding:
    def __mul__(self, other):
        raise OverflowError("coefficient overflow")

    __rmul__ = __mul__

    def __add__(self, other):
        return self


def test_dense_product_term_count(dense_f):
    assert len(dense_f) == 1001
    assert dense_f.coefficient((0, 0, 0, 0)) == 1
    assert dense_f.coefficient((10, 0, 0, 0)) == 1
    assert dense_f.coefficient((1, 1, 1, 1)) == 10 * 9 * 8 * 7


@pytest.mark.parametrize("n_threads", THREADS)
def test_dense_scenario_thread_counts(dense_f, n_threads, many_cpus):
    cfg = MultiplierConfig(n_threads=n_threads)
    assert len(multiply(dense_f, dense_f + 1, config=cfg)) == 10626


@pytest.mark.parametrize("n_threads", THREADS)
def test_dense_scenario_with_cancellations(dense_f, xyzt, n_threads, many_cpus):
    x, y, z, t = xyzt
    h = 1 - x + y + z + t
    tmp = h
    for _ in range(9):
        h *= tmp
    cfg = MultiplierConfig(n_threads=n_threads)
    assert len(multiply(dense_f, h, config=cfg)) == 5786


@pytest.mark.slow
def test_sparse_scenario_thread_counts(many_cpus):
    f, g, h = _sparse_operands()
    reference = None
    for n_threads in THREADS:
        cfg = MultiplierConfig(n_threads=n_threads)
        fg = multiply(f, g, config=cfg)
        assert len(fg) == 591235
        assert len(multiply(f, h, config=cfg)) == 591184
        if reference is None:
            reference = fg
        else:
            assert fg == reference


@pytest.mark.parametrize("n_threads", THREADS)
def test_float_results_identical_across_threads(n_threads, many_cpus):
    rng = random.Random(42)
    a = _random_series(rng, ["x", "y", "z"], 300, 6)
    b = _random_series(rng, ["x", "y", "z"], 150, 6)
    cfg = MultiplierConfig(min_block_size=4)
    reference = multiply(a, b, config=cfg).container.canonical_items()
    with use_config(cfg, n_threads=n_threads):
        result = multiply(a, b).container.canonical_items()
    assert result == reference


def test_operand_enumeration_order_does_not_matter():
    rng = random.Random(7)
    a = _random_series(rng, ["x", "y"], 120, 9)
    b = _random_series(rng, ["x", "y"], 80, 9)
    items_a = [(k.exponents, cf) for k, cf in a.container.items()]
    items_b = [(k.exponents, cf) for k, cf in b.container.items()]
    rng.shuffle(items_a)
    rng.shuffle(items_b)
    a2 = Series(items_a, ["x", "y"])
    b2 = Series(items_b, ["x", "y"])
    cfg = MultiplierConfig(min_block_size=8)
    assert multiply(a, b, config=cfg).container.canonical_items() == \
        multiply(a2, b2, config=cfg).container.canonical_items()


def test_dense_and_sparse_strategies_agree():
    rng = random.Random(3)
    a = _random_series(rng, ["x", "y"], 60, 5)
    b = _random_series(rng, ["x", "y"], 60, 5)
    dense = SeriesMultiplier(a, b)
    sparse = SeriesMultiplier(a, b, config=MultiplierConfig(dense_max_size=0))
    assert dense.strategy is Strategy.DENSE
    assert sparse.strategy is Strategy.SPARSE
    assert dense().container.canonical_items() == sparse().container.canonical_items()


def test_tuple_strategy_for_huge_exponents():
    big = 1 << 40
    a = Series({(0, 0): 1, (big, big): 1}, ["x", "y"])
    mult = SeriesMultiplier(a, a)
    assert mult.strategy is Strategy.TUPLE
    p = mult()
    assert len(p) == 3
    assert p.coefficient((big, big)) == 2
    assert p.coefficient((2 * big, 2 * big)) == 1


def test_tuple_strategy_beyond_int64():
    e = 1 << 70
    a = Series({(e,): 3}, ["x"])
    b = Series({(1,): 2, (0,): 1}, ["x"])
    p = multiply(a, b)
    assert p.coefficient((e + 1,)) == 6
    assert p.coefficient((e,)) == 3


def test_cancellation_to_few_terms():
    x = Series.symbol("x")
    p = multiply(1 + x, 1 - x)
    assert len(p) == 2
    assert p.coefficient((2,)) == -1
    assert p.coefficient((1,)) == 0


def test_product_with_empty_series():
    x, y = Series.symbol("x"), Series.symbol("y")
    empty = Series(symbols=["y"])
    p = multiply(1 + x, empty)
    assert len(p) == 0
    assert p.symbol_set.names == ("x", "y")
    assert len(multiply(empty, empty)) == 0
    assert multiply(x, y * 0) == 0


def test_symbol_sets_are_merged():
    x, y = Series.symbol("x"), Series.symbol("y")
    p = multiply(1 + x, 1 + y)
    assert p.symbol_set.names == ("x", "y")
    assert p.coefficient((1, 1)) == 1
    assert len(p) == 4


def test_operands_not_mutated(dense_f):
    x = Series.symbol("x")
    a = 1 + x
    before = a.container.canonical_items()
    multiply(a, dense_f)
    assert a.container.canonical_items() == before
    assert len(dense_f) == 1001


def test_non_commutative_coefficients_keep_operand_order():
    A = _Mat2(1, 2, 0, 1)
    B = _Mat2(1, 0, 3, 1)
    assert A * B != B * A
    a = Series({(1,): A}, ["x"])
    b = Series({(0,): B, (2,): B, (5,): B}, ["x"])
    p = multiply(a, b)
    assert p.coefficient((1,)) == A * B
    assert p.coefficient((3,)) == A * B
    q = multiply(b, a)
    assert q.coefficient((6,)) == B * A


def test_nested_series_coefficients():
    s = Series.symbol("s")
    a = Series({(1,): 1 + s}, ["x"])
    p = multiply(a, a)
    assert len(p) == 1
    assert p.coefficient((2,)) == (1 + s) * (1 + s)


def test_nested_symbol_clash():
    inner = Series.symbol("x")
    a = Series({(1,): inner}, ["y"])
    with pytest.raises(IncompatibleSymbolSetError):
        multiply(a, Series.symbol("x"))


@pytest.mark.parametrize("n_threads", [1, 4])
def test_coefficient_arithmetic_failure(n_threads, many_cpus):
    a = Series({(i,): _Exploding() for i in range(200)}, ["x"])
    b = Series({(0,): 1, (1,): 2}, ["x"])
    with pytest.raises(OverflowError, match="coefficient overflow") as excinfo:
        multiply(a, b, config=MultiplierConfig(n_threads=n_threads, min_block_size=8))
    assert type(excinfo.value) is OverflowError
    assert not isinstance(excinfo.value, SymseriesError)


def test_total_truncation():
    x, y = Series.symbol("x"), Series.symbol("y")
    p = multiply(1 + x + y, 1 + x + y, truncation=TruncationPolicy.total(1))
    assert len(p) == 3
    assert p.coefficient((1, 0)) == 2
    assert p.coefficient((0, 1)) == 2


def test_partial_truncation():
    x, y = Series.symbol("x"), Series.symbol("y")
    p = multiply(1 + x + y, 1 + x + y, truncation=TruncationPolicy.partial(1, ["x"]))
    assert p.coefficient((2, 0)) == 0
    assert p.coefficient((1, 1)) == 2
    assert p.coefficient((0, 2)) == 1
    assert len(p) == 5


def test_truncation_matches_across_strategies():
    rng = random.Random(11)
    a = _random_series(rng, ["x", "y"], 50, 6)
    b = _random_series(rng, ["x", "y"], 50, 6)
    policy = TruncationPolicy(6, weights={"x": 2})
    dense = multiply(a, b, truncation=policy)
    sparse = multiply(a, b, truncation=policy, config=MultiplierConfig(dense_max_size=0))
    assert dense.container.canonical_items() == sparse.container.canonical_items()
    assert all(2 * k[0] + k[1] <= 6 for k in dense.container.keys())


def test_state_machine_and_partition(many_cpus):
    rng = random.Random(5)
    a = _random_series(rng, ["x"], 200, 10000)
    b = _random_series(rng, ["x"], 10, 5)
    n_outer = len(a)
    mult = SeriesMultiplier(a, b, config=MultiplierConfig(n_threads=4, min_block_size=64, max_blocks=8))
    assert mult.state is MultiplierState.CONFIGURED
    result = mult()
    assert mult.state is MultiplierState.DONE
    size = max(64, -(-n_outer // 8))
    assert mult.blocks[0] == (0, size)
    assert mult.blocks[-1][1] == n_outer
    assert mult.n_workers == min(4, len(mult.blocks))
    assert len(result) > 0
    with pytest.raises(RuntimeError):
        mult()


def test_context_config_is_used():
    x = Series.symbol("x")
    with use_config(n_threads=2, max_blocks=3):
        mult = SeriesMultiplier(x, x)
    assert mult.config.n_threads == 2
    assert mult.config.max_blocks == 3


def test_result_keys_are_monomials():
    x, y = Series.symbol("x"), Series.symbol("y")
    p = multiply(x + y, x - y)
    assert all(isinstance(k, Monomial) for k in p.container.keys())
    assert [k.exponents for k, _ in p.container.items()] == [(0, 2), (2, 0)]


def test_product_exponents_beyond_int64_use_tuple_keys():
    e = 1 << 62
    a = Series({(e,): 1}, ["x"])
    mult = SeriesMultiplier(a, a)
    assert mult.strategy is Strategy.TUPLE
    p = mult()
    assert len(p) == 1
    assert p.coefficient((1 << 63,)) == 1

    b = Series({(-(e + 1),): 2}, ["x"])
    q = multiply(b, b)
    assert q.coefficient((-(2 * e + 2),)) == 4


def test_product_exponents_at_int64_bounds_stay_packed():
    e = 1 << 62
    a = Series({(-e,): 1, (-e + 1,): 1}, ["x"])
    mult = SeriesMultiplier(a, a)
    assert mult.strategy is not Strategy.TUPLE
    p = mult()
    assert p.coefficient((-(1 << 63),)) == 1
    assert p.coefficient((-(1 << 63) + 1,)) == 2
    assert p.coefficient((-(1 << 63) + 2,)) == 1


def test_large_weight_truncation_uses_exact_degrees():
    a = Series({(1 << 31,): 1, (0,): 1}, ["x"])
    policy = TruncationPolicy(10, weights={"x": 1 << 32})
    mult = SeriesMultiplier(a, a, truncation=policy)
    assert mult.strategy is Strategy.TUPLE
    p = mult()
    assert p == 1
    assert multiply(a, a, truncation=TruncationPolicy(10, weights={"x": 1 << 64})) == 1


@pytest.mark.parametrize("weight, max_degree", [
    (1 << 32, 10),
    (1 << 64, 10),
    (1 << 31, (1 << 61) + 5),
    (1 << 31, (1 << 62) + (1 << 61)),
    (3, 1 << 80),
    (3, -(1 << 80)),
    (-(1 << 20), -(1 << 50)),
])
def test_weighted_truncation_agrees_with_exact_filter(weight, max_degree):
    a = Series({(0, 0): 1, (1 << 30, 1): 2, (1 << 29, 3): -1, (1 << 31, 0): 5}, ["x", "y"])
    b = Series({(0, 1): 1, (1 << 30, 0): 1, (2, 2): 7}, ["x", "y"])
    policy = TruncationPolicy(max_degree, weights={"x": weight})
    expected = multiply(a, b).truncated(policy)
    assert multiply(a, b, truncation=policy) == expected
    assert multiply(a, b, truncation=policy, config=MultiplierConfig(dense_max_size=0)) == expected


@pytest.mark.parametrize("n_threads", THREADS)
def test_truncated_results_identical_across_threads(n_threads, many_cpus):
    rng = random.Random(21)
    a = _random_series(rng, ["x", "y", "z"], 300, 6)
    b = _random_series(rng, ["x", "y", "z"], 150, 6)
    policy = TruncationPolicy(8, ("x", "y"), {"x": 2})
    cfg = MultiplierConfig(min_block_size=4)
    reference = multiply(a, b, truncation=policy, config=cfg).container.canonical_items()
    result = multiply(a, b, truncation=policy,
                      config=replace(cfg, n_threads=n_threads)).container.canonical_items()
    assert result == reference
    assert result
    assert all(2 * key.exponents[0] + key.exponents[1] <= 8 for key, _ in result)


def test_worker_count_bounded_by_blocks(many_cpus):
    a = Series({(7 * i,): 1 + i for i in range(400)}, ["x"])
    b = Series({(0,): 1, (1,): 2, (3,): -1}, ["x"])
    few = SeriesMultiplier(a, b, config=MultiplierConfig(n_threads=8, min_block_size=4, max_blocks=4))
    few()
    assert len(few.blocks) == 4
    assert few.n_workers == 4
    many = SeriesMultiplier(a, b, config=MultiplierConfig(n_threads=8, min_block_size=4, max_blocks=16))
    many()
    assert len(many.blocks) == 16
    assert many.n_workers == 8
