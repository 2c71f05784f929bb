#!/usr/bin/env python3
import pickle
import pprint
import sys
from pathlib import Path
import numpy as np

from fillhist.histogram import Histogram


def summarize(h: Histogram):
    """Plain dict view of a histogram for printing."""
    return {
        "kind": h.kind.value,
        "shape": h.shape,
        "axes": [repr(a) for a in h.axes],
        "n_filled": h.n_filled,
        "n_dropped": h.n_dropped,
        "values": h.values(),
    }


def truncate(obj, max_items=10, max_depth=4, _depth=0):
    if isinstance(obj, Histogram):
        obj = summarize(obj)

    if _depth >= max_depth:
        return "..."

    if isinstance(obj, dict):
        out = {}
        for i, (k, v) in enumerate(obj.items()):
            if i >= max_items:
                out["..."] = f"{len(obj) - max_items} more items"
                break
            out[k] = truncate(v, max_items, max_depth, _depth + 1)
        return out

    if isinstance(obj, list) and len(obj) > max_items:
        half = max_items // 2
        head = [truncate(x, max_items, max_depth, _depth + 1) for x in obj[:half]]
        tail = [truncate(x, max_items, max_depth, _depth + 1) for x in obj[-half:]]
        return head + ["..."] + tail
    if isinstance(obj, list):
        return [truncate(x, max_items, max_depth, _depth + 1) for x in obj]

    return obj


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: fillhist-print <file.pkl>", file=sys.stderr)
        return 1

    path = Path(argv[0])

    with path.open("rb") as f:
        obj = pickle.load(f)

    np.set_printoptions(
        edgeitems=3,
        threshold=10,
        linewidth=120,
        suppress=True,
    )

    pprint.pprint(truncate(obj), width=120, compact=False, sort_dicts=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
