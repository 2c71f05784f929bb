class HistogramError(Exception):
    """Base class for every error raised by fillhist."""


class ConstructionError(HistogramError, ValueError):
    """Invalid axis parameters, bin kind or kind/combine pairing."""


class DimensionMismatchError(HistogramError, ValueError):
    """Number of coordinates or indices differs from the histogram dimension."""


class ShapeMismatchError(HistogramError, ValueError):
    """Histograms with different axes or bin kinds cannot be merged."""


class WeightTypeError(HistogramError, TypeError):
    """Weight cannot be applied to the storage kind."""


class CoordinateTypeError(HistogramError, TypeError):
    """Coordinate is not a real number."""


class CombineKindError(HistogramError, TypeError):
    """Combine function given for a numeric bin kind."""


class BinIndexError(HistogramError, IndexError):
    """Local index or flat offset outside the storage."""
