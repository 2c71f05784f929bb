import math
import numbers
from bisect import bisect_right

import numpy as np

from .errors import ConstructionError, CoordinateTypeError

# Local index returned for coordinates that fall in no bin.
REJECTED = -1


def _is_real(x):
    return isinstance(x, numbers.Real) and not isinstance(x, bool)


class Axis:
    """
    Binning rule for one dimension.

    Local index layout: underflow (if enabled) is 0, ordinary bins follow,
    overflow (if enabled) is the last local index.
    """

    kind = None

    def __init__(self, nbins, underflow=True, overflow=True):
        self.nbins = int(nbins)
        self.underflow = bool(underflow)
        self.overflow = bool(overflow)
        self.size = self.nbins + int(self.underflow) + int(self.overflow)
        self._shift = int(self.underflow)
        self._over_index = self.nbins + self._shift if self.overflow else REJECTED
        self._under_index = 0 if self.underflow else REJECTED

    @property
    def low(self):
        raise NotImplementedError

    @property
    def high(self):
        raise NotImplementedError

    @property
    def edges(self):
        raise NotImplementedError

    def _bin(self, x):
        """Ordinary bin index for a finite x in [low, high)."""
        raise NotImplementedError

    def _bin_array(self, x):
        raise NotImplementedError

    def locate(self, x):
        """Local index of coordinate `x`, or REJECTED."""
        if not _is_real(x):
            raise CoordinateTypeError(f"coordinate {x!r} is not a real number")
        if x != x or x == math.inf or x == -math.inf:
            return REJECTED
        if x < self.low:
            return self._under_index
        if x >= self.high:
            return self._over_index
        if self.nbins == 0:
            return REJECTED
        return self._bin(x) + self._shift

    __call__ = locate

    def locate_array(self, values):
        """Vectorised locate: int64 array of local indices, REJECTED where dropped."""
        x = np.asarray(values)
        if x.dtype.kind not in "iuf":
            raise CoordinateTypeError(f"coordinates must be numeric, got dtype {x.dtype}")
        x = x.astype(float, copy=False)
        out = np.full(x.shape, REJECTED, dtype=np.int64)
        finite = np.isfinite(x)
        under = finite & (x < self.low)
        over = finite & (x >= self.high)
        inside = finite & ~under & ~over
        out[under] = self._under_index
        out[over] = self._over_index
        if self.nbins > 0 and inside.any():
            out[inside] = self._bin_array(x[inside]) + self._shift
        return out

    def to_spec(self):
        raise NotImplementedError

    def _key(self):
        raise NotImplementedError

    def __eq__(self, other):
        if not isinstance(other, Axis):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())


class UniformAxis(Axis):
    """`nbins` equal-width bins over [low, high)."""

    kind = "uniform"

    def __init__(self, nbins, low, high, underflow=True, overflow=True):
        if not isinstance(nbins, numbers.Integral) or isinstance(nbins, bool):
            raise ConstructionError(f"number of bins must be an integer, got {nbins!r}")
        if nbins < 0:
            raise ConstructionError(f"number of bins must be non-negative, got {nbins}")
        if not (_is_real(low) and _is_real(high)):
            raise ConstructionError(f"axis limits must be real numbers, got {low!r}, {high!r}")
        low, high = float(low), float(high)
        if not (math.isfinite(low) and math.isfinite(high)):
            raise ConstructionError("axis limits must be finite")
        if not low < high:
            raise ConstructionError(f"axis requires low < high, got [{low}, {high})")
        super().__init__(nbins, underflow, overflow)
        self._low = low
        self._high = high
        # halve everything when high - low overflows; ratios are unchanged
        self._scale = 1.0 if math.isfinite(high - low) else 0.5
        self._low_s = low * self._scale
        self._width_s = high * self._scale - self._low_s

    @property
    def low(self):
        return self._low

    @property
    def high(self):
        return self._high

    @property
    def edges(self):
        if self._scale == 1.0:
            return np.linspace(self._low, self._high, self.nbins + 1)
        e = np.linspace(self._low_s, self._low_s + self._width_s, self.nbins + 1) / self._scale
        e[0], e[-1] = self._low, self._high
        return e

    def _bin(self, x):
        raw = math.floor((x * self._scale - self._low_s) / self._width_s * self.nbins)
        # rounding at the upper edge can push raw to nbins
        return min(max(raw, 0), self.nbins - 1)

    def _bin_array(self, x):
        raw = np.floor((x * self._scale - self._low_s) / self._width_s * self.nbins)
        return np.clip(raw, 0, self.nbins - 1).astype(np.int64)

    def to_spec(self):
        return {
            "bins": self.nbins,
            "low": self._low,
            "high": self._high,
            "underflow": self.underflow,
            "overflow": self.overflow,
        }

    def _key(self):
        return (self.kind, self.nbins, self._low, self._high, self.underflow, self.overflow)

    def __repr__(self):
        return (
            f"UniformAxis({self.nbins}, {self._low!r}, {self._high!r}, "
            f"underflow={self.underflow}, overflow={self.overflow})"
        )


class VariableAxis(Axis):
    """Bins defined by strictly increasing edges; bin i is [e[i], e[i+1])."""

    kind = "variable"

    def __init__(self, edges, underflow=True, overflow=True):
        try:
            e = list(edges)
        except TypeError:
            raise ConstructionError(f"edges must be a sequence of numbers, got {edges!r}") from None
        if not all(_is_real(v) for v in e):
            raise ConstructionError(f"edges must be a sequence of numbers, got {edges!r}")
        e = [float(v) for v in e]
        if len(e) < 2:
            raise ConstructionError("edges must contain at least 2 entries")
        if not all(math.isfinite(v) for v in e):
            raise ConstructionError("edges must be finite")
        if any(b <= a for a, b in zip(e, e[1:])):
            raise ConstructionError("bin edges must be strictly increasing")
        super().__init__(len(e) - 1, underflow, overflow)
        self._edges = tuple(e)
        self._edges_array = np.array(e, dtype=float)

    @property
    def low(self):
        return self._edges[0]

    @property
    def high(self):
        return self._edges[-1]

    @property
    def edges(self):
        return self._edges_array.copy()

    def _bin(self, x):
        return bisect_right(self._edges, x) - 1

    def _bin_array(self, x):
        b = np.searchsorted(self._edges_array, x, side="right") - 1
        return np.clip(b, 0, self.nbins - 1).astype(np.int64)

    def to_spec(self):
        return {
            "edges": list(self._edges),
            "underflow": self.underflow,
            "overflow": self.overflow,
        }

    def _key(self):
        return (self.kind, self._edges, self.underflow, self.overflow)

    def __repr__(self):
        return (
            f"VariableAxis({list(self._edges)!r}, "
            f"underflow={self.underflow}, overflow={self.overflow})"
        )


def make_axis(spec):
    """
    Build an Axis from a loose description.

    Accepted forms
    --------------
    Axis
        returned unchanged.
    (nbins, low, high)
        uniform axis with both flow bins; nbins must be positive.
    sequence of numbers / 1D numpy array
        explicit edges with both flow bins.
    dict
        ``{"bins": n, "low": a, "high": b}`` or ``{"edges": [...]}``, with
        optional ``"underflow"`` and ``"overflow"`` booleans.
    """
    if isinstance(spec, Axis):
        return spec

    if isinstance(spec, dict):
        unknown = set(spec) - {"bins", "low", "high", "edges", "underflow", "overflow"}
        if unknown:
            raise ConstructionError(f"unknown axis keys: {', '.join(sorted(unknown))}")
        flow = {
            "underflow": spec.get("underflow", True),
            "overflow": spec.get("overflow", True),
        }
        if "edges" in spec:
            if any(k in spec for k in ("bins", "low", "high")):
                raise ConstructionError("axis takes either 'edges' or 'bins/low/high', not both")
            return VariableAxis(spec["edges"], **flow)
        missing = [k for k in ("bins", "low", "high") if k not in spec]
        if missing:
            raise ConstructionError(f"uniform axis is missing: {', '.join(missing)}")
        return UniformAxis(spec["bins"], spec["low"], spec["high"], **flow)

    if isinstance(spec, tuple) and len(spec) == 3:
        if isinstance(spec[0], numbers.Integral) and spec[0] == 0:
            raise ConstructionError(
                f"{spec!r} reads as a uniform axis with no bins; pass edges as a "
                "list, or use {'bins': 0, 'low': ..., 'high': ...} for an empty axis"
            )
        return UniformAxis(*spec)

    if isinstance(spec, (list, tuple, np.ndarray)):
        return VariableAxis(spec)

    raise ConstructionError(f"cannot build an axis from {spec!r}")
