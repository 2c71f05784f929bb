from __future__ import annotations
from typing import Any, Dict, List, Hashable
import copy
import numbers

import numpy as np

from fillhist.histogram import Histogram


def _merge_leaf(a: Any, b: Any, key: Hashable | None) -> Any:
    """
    Histograms merge, counters add, anything else is a label that has to
    agree between the two trees.
    """
    if isinstance(a, Histogram) or isinstance(b, Histogram):
        if not (isinstance(a, Histogram) and isinstance(b, Histogram)):
            raise TypeError(f"cannot merge a histogram with {type(b).__name__} at key {key!r}")
        out = a.copy()
        out.merge_(b)
        return out

    if _is_count(a) and _is_count(b):
        return a + b

    if type(a) is not type(b):
        raise TypeError(
            f"cannot merge values of type {type(a)} and {type(b)} at key {key!r}"
        )
    if not _same(a, b):
        raise ValueError(f"value mismatch at {key!r}: {a!r} vs {b!r}")
    return copy.deepcopy(a)


def _is_count(x) -> bool:
    return isinstance(x, numbers.Number) and not isinstance(x, bool)


def _same(a, b) -> bool:
    if isinstance(a, np.ndarray):
        return a.shape == b.shape and bool(np.array_equal(a, b))
    return a == b


def _merge_any(a: Any, b: Any, key: Hashable | None) -> Any:
    if isinstance(a, dict) and isinstance(b, dict):
        out: Dict[Any, Any] = {}
        for k in list(a.keys()) + [k for k in b.keys() if k not in a]:
            if k in a and k in b:
                out[k] = _merge_any(a[k], b[k], k)
            elif k in a:
                out[k] = copy.deepcopy(a[k])
            else:
                out[k] = copy.deepcopy(b[k])
        return out
    return _merge_leaf(a, b, key)


def merge_two_states(acc: Dict[str, Any], st: Dict[str, Any]) -> Dict[str, Any]:
    """Merge result tree `st` into `acc` (in place) and return `acc`."""
    for name, res in st.items():
        if name in acc:
            acc[name] = _merge_any(acc[name], res, key=name)
        else:
            acc[name] = copy.deepcopy(res)
    return acc


def merge_state_list(states: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not states:
        raise ValueError("merge_state_list: empty state list")

    acc: Dict[str, Any] = {}
    for st in states:
        acc = merge_two_states(acc, st)
    return acc


def merge_histograms(hists: List[Histogram], combine=None) -> Histogram:
    """Merge a list of histograms of identical shape into a new one."""
    if not hists:
        raise ValueError("merge_histograms: empty histogram list")
    out = hists[0].copy()
    for h in hists[1:]:
        out.merge_(h, combine)
    return out
