from __future__ import annotations
from typing import Any, Dict

import yaml

from fillhist.errors import ConstructionError, HistogramError
from fillhist.histogram import Histogram

_HIST_KEYS = {"kind", "axes", "columns", "weight_column", "default", "default_weight"}


def get_by_path(d, dotted, default=None):
    cur = d
    for p in dotted.split("."):
        if not isinstance(cur, dict) or p not in cur:
            return default
        cur = cur[p]
    return cur


def load_config(path) -> Dict[str, Any]:
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ConstructionError(f"{path}: top level of a histogram config must be a mapping")
    return cfg


def histogram_from_definition(name: str, definition: Dict[str, Any]) -> Histogram:
    if not isinstance(definition, dict):
        raise ConstructionError(f"histogram {name!r}: definition must be a mapping")
    unknown = set(definition) - _HIST_KEYS
    if unknown:
        raise ConstructionError(
            f"histogram {name!r}: unknown keys {', '.join(sorted(unknown))}"
        )
    axes = definition.get("axes")
    if not axes:
        raise ConstructionError(f"histogram {name!r}: no axes given")

    kind = definition.get("kind", "float")
    kwargs = {}
    if "default" in definition:
        kwargs["generic_default"] = definition["default"]
    if "default_weight" in definition:
        kwargs["default_weight"] = definition["default_weight"]
    try:
        return Histogram(axes, kind, **kwargs)
    except HistogramError as e:
        raise ConstructionError(f"histogram {name!r}: {e}") from e


def histograms_from_config(cfg: Dict[str, Any]) -> Dict[str, Histogram]:
    """Build every histogram under the `histograms` key, keeping file order."""
    defs = get_by_path(cfg, "histograms")
    if not isinstance(defs, dict) or not defs:
        raise ConstructionError("config has no 'histograms' mapping")
    return {name: histogram_from_definition(name, d) for name, d in defs.items()}


def columns_for(name: str, definition: Dict[str, Any], ndim: int):
    """(columns, weight_column) of a histogram definition; columns default to 0..ndim-1."""
    columns = definition.get("columns")
    if columns is None:
        columns = list(range(ndim))
    if not isinstance(columns, list) or not all(isinstance(c, int) for c in columns):
        raise ConstructionError(f"histogram {name!r}: columns must be a list of integers")
    if len(columns) != ndim:
        raise ConstructionError(
            f"histogram {name!r}: {len(columns)} columns for {ndim} axes"
        )
    weight_column = definition.get("weight_column")
    if weight_column is not None and not isinstance(weight_column, int):
        raise ConstructionError(f"histogram {name!r}: weight_column must be an integer")
    return columns, weight_column
