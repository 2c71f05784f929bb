import itertools

import numpy as np
import pytest

from fillhist import BinIndexError, DimensionMismatchError, FlatIndexer


def test_axis_zero_varies_fastest():
    ix = FlatIndexer([2, 3])
    assert ix.strides == (1, 2)
    assert ix.size == 6
    assert ix.flatten((0, 1)) == 2
    assert ix.flatten((1, 0)) == 1
    assert ix.flatten((1, 2)) == 5


def test_flatten_is_a_bijection():
    sizes = [3, 1, 4, 2]
    ix = FlatIndexer(sizes)
    offsets = [ix.flatten(t) for t in itertools.product(*(range(n) for n in sizes))]
    assert sorted(offsets) == list(range(ix.size))
    for off in range(ix.size):
        assert ix.flatten(ix.unflatten(off)) == off


def test_arity_mismatch():
    ix = FlatIndexer([2, 3])
    with pytest.raises(DimensionMismatchError):
        ix.flatten((1,))
    with pytest.raises(DimensionMismatchError):
        ix.flatten((1, 1, 1))


@pytest.mark.parametrize("idx", [(2, 0), (0, 3), (-1, 0), (0.5, 0), (True, 0)])
def test_out_of_range_indices(idx):
    with pytest.raises(BinIndexError):
        FlatIndexer([2, 3]).flatten(idx)


def test_unflatten_out_of_range():
    ix = FlatIndexer([2, 3])
    with pytest.raises(BinIndexError):
        ix.unflatten(6)
    with pytest.raises(IndexError):
        ix.unflatten(-1)


def test_flatten_arrays_matches_flatten():
    ix = FlatIndexer([4, 5, 3])
    rng = np.random.default_rng(3)
    cols = [rng.integers(0, n, size=50) for n in ix.sizes]
    flat = ix.flatten_arrays(cols)
    expected = [ix.flatten(tuple(int(c[k]) for c in cols)) for k in range(50)]
    assert flat.tolist() == expected
