import enum
import numbers

import numpy as np

from .axis import REJECTED, make_axis
from .errors import (
    BinIndexError,
    CombineKindError,
    ConstructionError,
    DimensionMismatchError,
    ShapeMismatchError,
    WeightTypeError,
)
from .indexer import FlatIndexer
from .storage import EMPTY, BinKind, make_storage


class FillStatus(enum.Enum):
    FILLED = "filled"
    DROPPED = "dropped"

    def __bool__(self):
        return self is FillStatus.FILLED


class Histogram:
    """
    N-D histogram filled one point at a time (or in bulk with `fill_many`).

    Parameters
    ----------
    axes : sequence
        One axis description per dimension; anything `make_axis` accepts.
    kind : {"float", "int", "generic"} or float/int/object, default "float"
        Bin value kind.
    generic_default : object, optional
        Initial value of every generic bin (deep-copied per bin). Bins start
        as EMPTY when omitted.
    default_weight : object, optional
        Weight passed to generic bins when a fill gives none.
    combine : callable, optional
        Default ``combine(old, weight) -> new`` for generic bins. A combine
        passed to `fill` takes precedence.
    """

    def __init__(self, axes, kind="float", *, generic_default=EMPTY, default_weight=None, combine=None):
        if isinstance(axes, (str, bytes, dict)) or not hasattr(axes, "__iter__"):
            raise ConstructionError("axes must be a sequence of axis descriptions")
        self.axes = tuple(make_axis(a) for a in axes)
        if not self.axes:
            raise ConstructionError("Need at least 1 dimension.")

        self.kind = BinKind.parse(kind)
        generic = self.kind is BinKind.GENERIC
        if combine is not None and not generic:
            raise ConstructionError(
                f"a combine function requires generic bins, not {self.kind.value}"
            )
        if combine is not None and not callable(combine):
            raise ConstructionError(f"combine must be callable, got {combine!r}")
        if generic_default is not EMPTY and not generic:
            raise ConstructionError("generic_default is only valid for generic bins")
        if default_weight is not None and not generic:
            raise ConstructionError("default_weight is only valid for generic bins")

        self.combine = combine
        self.default_weight = default_weight
        self.generic_default = generic_default
        self.ndim = len(self.axes)
        self._indexer = FlatIndexer([a.size for a in self.axes])
        self._strides = self._indexer.strides
        self.storage = make_storage(self.kind, self._indexer.size, generic_default)
        self.n_filled = 0
        self.n_dropped = 0

    @property
    def shape(self):
        """Local bin count per axis, flow bins included."""
        return self._indexer.sizes

    @property
    def size(self):
        return self._indexer.size

    @property
    def edges(self):
        return [a.edges for a in self.axes]

    def __len__(self):
        return self.size

    # ---------- filling ----------
    def fill(self, *coords, weight=None, combine=None):
        """
        Fill the bin containing the point `coords`.

        Returns FillStatus.DROPPED (and counts it in `n_dropped`) when any
        coordinate is outside its axis with no catch-bin, or not finite.
        """
        if len(coords) != self.ndim:
            raise DimensionMismatchError(
                f"Expected {self.ndim} coordinates, got {len(coords)}."
            )
        if combine is not None and self.kind is not BinKind.GENERIC:
            raise CombineKindError(
                f"combine functions are only supported for generic bins, not {self.kind.value}"
            )

        indices = [axis.locate(x) for axis, x in zip(self.axes, coords)]
        if REJECTED in indices:
            self.n_dropped += 1
            return FillStatus.DROPPED

        offset = 0
        for i, stride in zip(indices, self._strides):
            offset += i * stride

        if self.kind is BinKind.GENERIC:
            if weight is None:
                weight = self.default_weight
            if combine is None:
                combine = self.combine
        self.storage.accumulate(offset, weight, combine)
        self.n_filled += 1
        return FillStatus.FILLED

    __call__ = fill

    def fill_many(self, *coords, weights=None, mask=None, combine=None):
        """
        Fill with one array (or scalar) per axis. Returns the number of filled rows.
        """
        if len(coords) != self.ndim:
            raise DimensionMismatchError(
                f"Expected {self.ndim} coordinate arrays, got {len(coords)}."
            )
        if combine is not None and self.kind is not BinKind.GENERIC:
            raise CombineKindError(
                f"combine functions are only supported for generic bins, not {self.kind.value}"
            )
        arrs = [np.asarray(c) for c in coords]
        arrs = [a if a.ndim > 0 else a[None] for a in arrs]
        try:
            arrs = np.broadcast_arrays(*arrs)
        except ValueError as e:
            raise DimensionMismatchError(f"coordinate arrays do not broadcast: {e}") from e
        arrs = [a.ravel() for a in arrs]

        w = self._weights_array(weights)
        if w is not None and w.ndim > 0:
            w = w.ravel()
            if len(w) != len(arrs[0]):
                raise DimensionMismatchError(
                    f"got {len(w)} weights for {len(arrs[0])} points"
                )
        if mask is not None:
            m = np.asarray(mask, dtype=bool).ravel()
            arrs = [a[m] for a in arrs]
            if w is not None and w.ndim > 0:
                w = w[m]

        bins = [axis.locate_array(a) for axis, a in zip(self.axes, arrs)]
        ok = np.ones(len(arrs[0]), dtype=bool)
        for b in bins:
            ok &= b != REJECTED
        n_ok = int(np.count_nonzero(ok))
        n_dropped = len(ok) - n_ok

        if n_ok:
            flat = self._indexer.flatten_arrays([b[ok] for b in bins])
            if w is not None and w.ndim > 0:
                w = w[ok]
            if self.kind is BinKind.GENERIC:
                if w is None:
                    if self.default_weight is None:
                        raise WeightTypeError("generic bins need an explicit weight")
                    w = [self.default_weight] * n_ok
                elif w.ndim == 0:
                    w = [w[()]] * n_ok
                self.storage.accumulate_many(flat, list(w), combine or self.combine)
            else:
                self.storage.accumulate_many(flat, w)

        self.n_filled += n_ok
        self.n_dropped += n_dropped
        return n_ok

    def _weights_array(self, weights):
        if weights is None:
            return None
        if self.kind is not BinKind.GENERIC:
            w = np.asarray(weights)
            if w.dtype.kind not in "iuf":
                raise WeightTypeError(f"weights must be numeric, got dtype {w.dtype}")
            return w
        if isinstance(weights, (list, tuple, np.ndarray)):
            # one object per row, even if the objects are sequences themselves
            w = np.empty(len(weights), dtype=object)
            for i, v in enumerate(weights):
                w[i] = v
            return w
        w = np.empty((), dtype=object)
        w[()] = weights
        return w

    # ---------- reading ----------
    def bin_value(self, *indices):
        """Value of the bin at the given per-axis local indices."""
        return self.storage.read(self._indexer.flatten(indices))

    def __getitem__(self, key):
        if isinstance(key, tuple):
            return self.bin_value(*key)
        # a single integer is a flat offset
        if not isinstance(key, numbers.Integral) or isinstance(key, bool):
            raise BinIndexError(f"invalid bin key {key!r}")
        return self.storage.read(int(key))

    def values(self, flow=True):
        """
        Bin values as an array of shape `self.shape` (axis 0 first).

        With ``flow=False`` the underflow/overflow bins are stripped.
        """
        out = self.storage.values().reshape(self.shape, order="F")
        if flow:
            return out
        sl = tuple(
            slice(int(a.underflow), int(a.underflow) + a.nbins) for a in self.axes
        )
        return out[sl]

    # ---------- merging ----------
    def _check_compat(self, other):
        """Ensure histograms have identical binning and bin kind."""
        if not isinstance(other, Histogram):
            raise ShapeMismatchError("Can only combine Histogram with Histogram.")
        if self.ndim != other.ndim:
            raise ShapeMismatchError("Histogram dimensionality mismatch.")
        if self.kind is not other.kind:
            raise ShapeMismatchError(
                f"Histogram bin kinds differ: {self.kind.value} vs {other.kind.value}"
            )
        for k, (a, b) in enumerate(zip(self.axes, other.axes)):
            if a != b:
                raise ShapeMismatchError(f"Histogram axes differ on axis {k}: {a!r} vs {b!r}")

    def merge_(self, other, combine=None):
        """
        In-place merge of `other` into this histogram.

        Numeric bins are added. Generic bins use `combine`, else the default
        combine of this histogram, else in-place addition.
        """
        self._check_compat(other)
        if self.kind is BinKind.GENERIC:
            self.storage.merge_(other.storage, combine or self.combine)
        else:
            self.storage.merge_(other.storage, combine)
        self.n_filled += other.n_filled
        self.n_dropped += other.n_dropped
        return self

    def __iadd__(self, other):
        if not isinstance(other, Histogram):
            return NotImplemented
        return self.merge_(other)

    def __add__(self, other):
        """Return a new histogram that is the merge of self and other."""
        if not isinstance(other, Histogram):
            return NotImplemented
        self._check_compat(other)
        return self.copy().merge_(other)

    def __radd__(self, other):
        # supports sum([hist1, hist2, ...])
        if isinstance(other, int) and other == 0:
            return self.copy()
        return NotImplemented

    # ---------- utilities ----------
    def empty_like(self):
        """Histogram with the same axes and kind, and no fills."""
        return Histogram(
            self.axes,
            self.kind,
            generic_default=self.generic_default,
            default_weight=self.default_weight,
            combine=self.combine,
        )

    def copy(self):
        """Deep copy of the histogram structure and contents."""
        out = self.empty_like()
        out.storage = self.storage.copy()
        out.n_filled = self.n_filled
        out.n_dropped = self.n_dropped
        return out

    def to_state_dict(self):
        return {
            "axes": [a.to_spec() for a in self.axes],
            "kind": self.kind.value,
            "values": self.storage.tolist(),
            "n_filled": int(self.n_filled),
            "n_dropped": int(self.n_dropped),
        }

    @classmethod
    def from_state_dict(cls, state, **kwargs):
        """
        Rebuild a histogram from `to_state_dict` output.

        Extra keyword arguments (e.g. `combine`) are passed to the constructor.
        """
        try:
            axes, kind, values = state["axes"], state["kind"], state["values"]
        except KeyError as e:
            raise ConstructionError(f"state dict is missing {e.args[0]!r}") from None
        out = cls(axes, kind, **kwargs)
        if len(values) != out.size:
            raise ShapeMismatchError(
                f"state has {len(values)} values for {out.size} bins"
            )
        if out.kind is BinKind.GENERIC:
            out.storage.data = list(values)
        else:
            out.storage.data[:] = np.asarray(values, dtype=out.storage.dtype)
        out.n_filled = int(state.get("n_filled", 0))
        out.n_dropped = int(state.get("n_dropped", 0))
        return out

    def __eq__(self, other):
        if not isinstance(other, Histogram):
            return NotImplemented
        if self.kind is not other.kind or self.axes != other.axes:
            return False
        if self.kind is BinKind.GENERIC:
            return self.storage.data == other.storage.data
        return bool(np.array_equal(self.storage.data, other.storage.data))

    __hash__ = None

    def __repr__(self):
        return (
            f"Histogram(shape={self.shape}, kind={self.kind.value}, "
            f"n_filled={self.n_filled}, n_dropped={self.n_dropped})"
        )
