from __future__ import annotations
import multiprocessing as mp
import threading
from typing import List, Tuple

import numpy as np

from fillhist.errors import DimensionMismatchError
from fillhist.histogram import Histogram
from fillhist.merging.merge import merge_histograms


def _split_rows(columns, weights, nrows: int, chunk_size: int) -> List[Tuple]:
    jobs = []
    for start in range(0, nrows, chunk_size):
        stop = min(start + chunk_size, nrows)
        cols = [c[start:stop] for c in columns]
        w = weights[start:stop] if weights is not None and np.ndim(weights) > 0 else weights
        jobs.append((cols, w))
    return jobs


def _worker_fill(args) -> Histogram:
    template, columns, weights = args
    h = template.empty_like()
    h.fill_many(*columns, weights=weights)
    return h


def fill_parallel(
    hist: Histogram,
    *columns,
    weights=None,
    nproc: int | None = None,
    chunk_size: int | None = None,
) -> Histogram:
    """
    Fill `hist` from column arrays by partitioning the rows.

    Each chunk is filled into an empty copy of `hist` (in a process pool when
    `nproc` > 1) and the partial histograms are merged into `hist`.
    """
    if len(columns) != hist.ndim:
        raise DimensionMismatchError(
            f"Expected {hist.ndim} coordinate arrays, got {len(columns)}."
        )
    columns = [np.atleast_1d(np.asarray(c)) for c in columns]
    nrows = len(columns[0])
    if any(len(c) != nrows for c in columns):
        raise DimensionMismatchError("coordinate arrays must have equal length")
    if weights is not None and np.ndim(weights) > 0 and len(weights) != nrows:
        raise DimensionMismatchError(f"got {len(weights)} weights for {nrows} points")
    if nrows == 0:
        return hist

    workers = 1 if nproc is None or nproc <= 1 else int(nproc)
    if chunk_size is None:
        chunk_size = -(-nrows // workers)
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    template = hist.empty_like()
    jobs = [(template, cols, w) for cols, w in _split_rows(columns, weights, nrows, chunk_size)]

    if workers == 1:
        parts = [_worker_fill(j) for j in jobs]
    else:
        with mp.Pool(processes=workers) as pool:
            parts = pool.map(_worker_fill, jobs)

    hist.merge_(merge_histograms(parts))
    return hist


class SynchronizedHistogram:
    """
    Single-owner wrapper: every fill, merge and read on the wrapped
    histogram runs under one lock, so threads can share it.
    """

    def __init__(self, hist: Histogram):
        self.hist = hist
        self._lock = threading.Lock()

    def fill(self, *coords, weight=None, combine=None):
        with self._lock:
            return self.hist.fill(*coords, weight=weight, combine=combine)

    __call__ = fill

    def fill_many(self, *coords, weights=None, mask=None, combine=None):
        with self._lock:
            return self.hist.fill_many(*coords, weights=weights, mask=mask, combine=combine)

    def merge_(self, other: Histogram, combine=None):
        with self._lock:
            self.hist.merge_(other, combine)
        return self

    def bin_value(self, *indices):
        with self._lock:
            return self.hist.bin_value(*indices)

    def snapshot(self) -> Histogram:
        """Copy of the wrapped histogram taken under the lock."""
        with self._lock:
            return self.hist.copy()
