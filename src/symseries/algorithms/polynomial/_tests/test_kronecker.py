import numpy as np
import pytest

from symseries.algorithms.polynomial._kronecker import _KroneckerCodec


def _rand_exps(rng, n, v, lo, hi):
    return rng.integers(lo, hi + 1, size=(n, v)).astype(np.int64)


def test_code_of_sum_is_sum_of_codes():
    rng = np.random.default_rng(0)
    a = _rand_exps(rng, 40, 4, -3, 5)
    b = _rand_exps(rng, 30, 4, 0, 7)
    codec = _KroneckerCodec.for_product(a, b)
    assert codec is not None
    ca, cb = codec.encode_a(a), codec.encode_b(b)
    products = (a[:, None, :] + b[None, :, :]).reshape(-1, 4)
    codes = (ca[:, None] + cb[None, :]).reshape(-1)
    assert np.all(codes >= 0)
    assert np.all(codes < codec.size)
    np.testing.assert_array_equal(codec.decode(codes), products)


def test_codes_are_injective_on_products():
    a = np.array([[0, 0], [1, 0], [0, 1]], dtype=np.int64)
    codec = _KroneckerCodec.for_product(a, a)
    ca, cb = codec.encode_a(a), codec.encode_b(a)
    codes = (ca[:, None] + cb[None, :]).reshape(-1)
    products = (a[:, None, :] + a[None, :, :]).reshape(-1, 2)
    assert len(set(codes.tolist())) == len({tuple(p) for p in products.tolist()})
    assert codec.size == 9


def test_empty_operand_has_no_codec():
    a = np.zeros((0, 2), dtype=np.int64)
    b = np.ones((3, 2), dtype=np.int64)
    assert _KroneckerCodec.for_product(a, b) is None


def test_range_overflow_has_no_codec():
    a = np.array([[0] * 4, [1 << 20] * 4], dtype=np.int64)
    assert _KroneckerCodec.for_product(a, a) is None


@pytest.mark.parametrize("v", [0, 1])
def test_small_arity(v):
    a = np.zeros((2, v), dtype=np.int64)
    if v:
        a[1, 0] = 3
    codec = _KroneckerCodec.for_product(a, a)
    assert codec.size == (7 if v else 1)


def test_product_exponents_outside_int64_have_no_codec():
    e = 1 << 62
    assert _KroneckerCodec.for_product(np.array([[e]], dtype=np.int64), np.array([[e]], dtype=np.int64)) is None
    low = np.array([[-e - 1]], dtype=np.int64)
    assert _KroneckerCodec.for_product(low, low) is None
    edge = np.array([[-e]], dtype=np.int64)
    codec = _KroneckerCodec.for_product(edge, edge)
    assert codec is not None
    assert codec.decode(codec.encode_a(edge) + codec.encode_b(edge))[0, 0] == -(1 << 63)
