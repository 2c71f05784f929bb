import copy
import enum
import math
import numbers
import operator

import numpy as np

from .errors import (
    BinIndexError,
    CombineKindError,
    ConstructionError,
    ShapeMismatchError,
    WeightTypeError,
)


class _Empty:
    """Marker for a generic bin that has not received any value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __reduce__(self):
        return (_Empty, ())

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __repr__(self):
        return "EMPTY"

    def __bool__(self):
        return False


EMPTY = _Empty()

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class BinKind(enum.Enum):
    FLOAT = "float"
    INT = "int"
    GENERIC = "generic"

    @classmethod
    def parse(cls, kind):
        if isinstance(kind, cls):
            return kind
        if kind is float:
            return cls.FLOAT
        if kind is int:
            return cls.INT
        if kind is object:
            return cls.GENERIC
        if isinstance(kind, str):
            name = kind.strip().lower()
            if name == "object":
                name = "generic"
            try:
                return cls(name)
            except ValueError:
                pass
        raise ConstructionError(
            f"unknown bin kind {kind!r}; use 'float', 'int' or 'generic'"
        )


def _is_real(w):
    return isinstance(w, numbers.Real) and not isinstance(w, bool)


class BinStorage:
    """Flat sequence of bin values addressed by offset."""

    kind = None

    def __len__(self):
        return len(self.data)

    def _check(self, offset):
        if not 0 <= offset < len(self.data):
            raise BinIndexError(f"offset {offset} out of range [0, {len(self.data)})")

    def read(self, offset):
        self._check(offset)
        return self.data[offset]

    def accumulate(self, offset, weight=None, combine=None):
        raise NotImplementedError

    def accumulate_many(self, offsets, weights=None):
        raise NotImplementedError

    def _check_compat(self, other):
        if type(other) is not type(self):
            raise ShapeMismatchError(
                f"cannot merge {type(other).__name__} into {type(self).__name__}"
            )
        if len(other) != len(self):
            raise ShapeMismatchError(
                f"storage sizes differ: {len(self)} vs {len(other)}"
            )

    def merge_(self, other, combine=None):
        raise NotImplementedError

    def values(self):
        return self.data

    def tolist(self):
        return list(self.data)

    def copy(self):
        return copy.deepcopy(self)


class _NumericStorage(BinStorage):
    dtype = None
    unit = None

    def __init__(self, size):
        self.data = np.zeros(int(size), dtype=self.dtype)

    def _weight(self, weight):
        raise NotImplementedError

    def read(self, offset):
        self._check(offset)
        return self.data[offset].item()

    def accumulate(self, offset, weight=None, combine=None):
        if combine is not None:
            raise CombineKindError(
                f"combine functions are only supported for generic bins, not {self.kind.value}"
            )
        self.data[offset] += self.unit if weight is None else self._weight(weight)

    def _weights_array(self, weights, n):
        w = np.asarray(weights)
        if w.dtype.kind not in "iuf":
            raise WeightTypeError(f"weights must be numeric, got dtype {w.dtype}")
        if w.ndim == 0:
            w = np.full(n, w.item())
        return w

    def merge_(self, other, combine=None):
        if combine is not None:
            raise CombineKindError("combine functions are only supported for generic bins")
        self._check_compat(other)
        self.data += other.data

    def tolist(self):
        return self.data.tolist()

    def copy(self):
        out = type(self).__new__(type(self))
        out.data = self.data.copy()
        return out


class FloatStorage(_NumericStorage):
    """Double-precision sums, initially 0.0."""

    kind = BinKind.FLOAT
    dtype = np.float64
    unit = 1.0

    def _weight(self, weight):
        if not _is_real(weight):
            raise WeightTypeError(f"weight {weight!r} is not a real number")
        return float(weight)

    def accumulate_many(self, offsets, weights=None):
        offsets = np.asarray(offsets, dtype=np.int64)
        if weights is None:
            add = np.bincount(offsets, minlength=len(self.data))
        else:
            w = self._weights_array(weights, len(offsets))
            add = np.bincount(offsets, weights=w.astype(float), minlength=len(self.data))
        self.data += add


class IntStorage(_NumericStorage):
    """Signed 64-bit counters, initially 0. Weights are rounded to the nearest integer."""

    kind = BinKind.INT
    dtype = np.int64
    unit = 1

    def _weight(self, weight):
        if not _is_real(weight):
            raise WeightTypeError(f"weight {weight!r} is not a real number")
        if isinstance(weight, numbers.Integral):
            w = int(weight)
        else:
            w = float(weight)
            if not math.isfinite(w):
                raise WeightTypeError(f"weight {weight!r} cannot be rounded to an integer")
            w = int(round(w))
        if not _INT64_MIN <= w <= _INT64_MAX:
            raise WeightTypeError(f"weight {weight!r} does not fit a 64-bit integer")
        return w

    def accumulate(self, offset, weight=None, combine=None):
        if combine is not None:
            raise CombineKindError(
                f"combine functions are only supported for generic bins, not {self.kind.value}"
            )
        w = self.unit if weight is None else self._weight(weight)
        total = int(self.data[offset]) + w
        if not _INT64_MIN <= total <= _INT64_MAX:
            raise WeightTypeError(f"bin {offset} would overflow a 64-bit integer")
        self.data[offset] = total

    def accumulate_many(self, offsets, weights=None):
        offsets = np.asarray(offsets, dtype=np.int64)
        if weights is None:
            w = np.ones(len(offsets), dtype=np.int64)
        else:
            w = self._weights_array(weights, len(offsets))
            if w.dtype.kind == "f":
                if not np.all(np.isfinite(w)):
                    raise WeightTypeError("weights cannot be rounded to integers")
                w = np.rint(w)
                if np.any((w < -(2.0**63)) | (w >= 2.0**63)):
                    raise WeightTypeError("weights do not fit a 64-bit integer")
            elif w.dtype.kind == "u" and w.size and int(w.max()) > _INT64_MAX:
                raise WeightTypeError("weights do not fit a 64-bit integer")
            w = w.astype(np.int64)
        self._check_room(offsets, w)
        np.add.at(self.data, offsets, w)

    def merge_(self, other, combine=None):
        if combine is not None:
            raise CombineKindError("combine functions are only supported for generic bins")
        self._check_compat(other)
        self._check_room(np.arange(len(self.data)), other.data)
        self.data += other.data

    def _check_room(self, offsets, w):
        """Raise WeightTypeError if adding `w` at `offsets` would leave the int64 range."""
        if not len(offsets):
            return
        bound = np.abs(self.data.astype(float)).max() + np.abs(w.astype(float)).sum()
        if bound < 2.0**62:
            return
        sums = {}
        for o, x in zip(offsets.tolist(), w.tolist()):
            sums[o] = sums.get(o, 0) + x
        for o, s in sums.items():
            if not _INT64_MIN <= int(self.data[o]) + s <= _INT64_MAX:
                raise WeightTypeError(f"bin {o} would overflow a 64-bit integer")


class GenericStorage(BinStorage):
    """
    Arbitrary Python objects, one per bin.

    Each slot starts as a deep copy of `default`, or EMPTY when no default is
    given. With a combine function the new value is always
    ``combine(old, weight)``, where `old` may be EMPTY. Without one, an
    EMPTY slot takes a copy of the weight and later weights are added in
    place.
    """

    kind = BinKind.GENERIC

    def __init__(self, size, default=EMPTY):
        if default is EMPTY:
            self.data = [EMPTY] * int(size)
        else:
            self.data = [copy.deepcopy(default) for _ in range(int(size))]

    @staticmethod
    def _add(old, value):
        if old is EMPTY:
            return copy.deepcopy(value)
        try:
            return operator.iadd(old, value)
        except TypeError as e:
            raise WeightTypeError(
                f"cannot add {type(value).__name__} to bin value of type {type(old).__name__}"
            ) from e

    @classmethod
    def _combine(cls, old, weight, combine):
        if weight is None:
            raise WeightTypeError("generic bins need an explicit weight")
        if combine is not None:
            return combine(old, weight)
        return cls._add(old, weight)

    def accumulate(self, offset, weight=None, combine=None):
        self.data[offset] = self._combine(self.data[offset], weight, combine)

    def accumulate_many(self, offsets, weights=None, combine=None):
        """
        Accumulate one weight per offset. Either every row is applied or,
        when one fails, none is.
        """
        if weights is None:
            raise WeightTypeError("generic bins need an explicit weight")
        offsets = np.asarray(offsets, dtype=np.int64)
        staged = {}
        for offset, w in zip(offsets.tolist(), weights):
            if offset not in staged:
                staged[offset] = copy.deepcopy(self.data[offset])
            staged[offset] = self._combine(staged[offset], w, combine)
        for offset, v in staged.items():
            self.data[offset] = v

    def merge_(self, other, combine=None):
        """
        Fold `other`'s bins into these. Bins are accumulated values, not
        weights, so an EMPTY slot here just takes a copy of the other value.
        """
        self._check_compat(other)
        for i, b in enumerate(other.data):
            if b is EMPTY:
                continue
            old = self.data[i]
            if old is EMPTY or combine is None:
                self.data[i] = self._add(old, b)
            else:
                self.data[i] = combine(old, b)

    def values(self):
        # element-wise so list-valued bins are not broadcast into a 2D array
        out = np.empty(len(self.data), dtype=object)
        for i, v in enumerate(self.data):
            out[i] = v
        return out


def make_storage(kind, size, generic_default=EMPTY):
    kind = BinKind.parse(kind)
    if kind is BinKind.FLOAT:
        return FloatStorage(size)
    if kind is BinKind.INT:
        return IntStorage(size)
    return GenericStorage(size, generic_default)
