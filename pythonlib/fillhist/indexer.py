import numbers

import numpy as np

from .errors import BinIndexError, DimensionMismatchError


class FlatIndexer:
    """
    Mixed-radix composition of per-axis local indices into one flat offset.

    Axis 0 is the fastest-varying digit:
    ``offset = sum_k idx[k] * stride[k]`` with ``stride[k] = prod_{j<k} size[j]``.

    Parameters
    ----------
    sizes : sequence of int
        Local bin count of each axis (flow bins included).
    """

    def __init__(self, sizes):
        self.sizes = tuple(int(s) for s in sizes)
        self.ndim = len(self.sizes)
        strides = []
        acc = 1
        for s in self.sizes:
            strides.append(acc)
            acc *= s
        self.strides = tuple(strides)
        self.size = acc

    def flatten(self, indices):
        if len(indices) != self.ndim:
            raise DimensionMismatchError(
                f"expected {self.ndim} indices, got {len(indices)}"
            )
        offset = 0
        for k, (i, n, stride) in enumerate(zip(indices, self.sizes, self.strides)):
            if not isinstance(i, numbers.Integral) or isinstance(i, bool):
                raise BinIndexError(f"index {i!r} on axis {k} is not an integer")
            if not 0 <= i < n:
                raise BinIndexError(f"index {i} out of range [0, {n}) on axis {k}")
            offset += int(i) * stride
        return offset

    def unflatten(self, offset):
        """Inverse of flatten."""
        if not isinstance(offset, numbers.Integral) or isinstance(offset, bool):
            raise BinIndexError(f"offset {offset!r} is not an integer")
        if not 0 <= offset < self.size:
            raise BinIndexError(f"offset {offset} out of range [0, {self.size})")
        out = []
        rest = int(offset)
        for n in self.sizes:
            rest, i = divmod(rest, n)
            out.append(i)
        return tuple(out)

    def flatten_arrays(self, index_arrays):
        """Flat offsets for per-axis index arrays that are already in range."""
        if len(index_arrays) != self.ndim:
            raise DimensionMismatchError(
                f"expected {self.ndim} index arrays, got {len(index_arrays)}"
            )
        flat = np.zeros_like(np.asarray(index_arrays[0]), dtype=np.int64)
        for b, stride in zip(index_arrays, self.strides):
            flat += np.asarray(b, dtype=np.int64) * stride
        return flat

    def __repr__(self):
        return f"FlatIndexer(sizes={self.sizes})"
