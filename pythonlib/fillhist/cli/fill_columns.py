#!/usr/bin/env python3
import argparse
import datetime as dt
import pickle
import sys
from pathlib import Path

import numpy as np
from tqdm import tqdm

from fillhist.config import columns_for, histograms_from_config, load_config
from fillhist.errors import HistogramError
from fillhist.parallel import fill_parallel


def timestamp():
    return dt.datetime.now().strftime("%H:%M:%S")


def read_columns(path: Path) -> np.ndarray:
    """Numeric table from a whitespace (or, for .csv, comma) separated file."""
    delimiter = "," if path.suffix.lower() == ".csv" else None
    return np.loadtxt(path, delimiter=delimiter, comments="#", ndmin=2)


def fill_from_table(hist, data, columns, weight_column, chunk_size, nproc=None, progress=False):
    """Fill `hist` from rows of `data`; returns the number of filled rows."""
    before = hist.n_filled
    cols = [data[:, c] for c in columns]
    weights = None if weight_column is None else data[:, weight_column]

    if nproc is not None and nproc > 1:
        fill_parallel(hist, *cols, weights=weights, nproc=nproc, chunk_size=chunk_size)
        return hist.n_filled - before

    nrows = data.shape[0]
    for start in tqdm(
        range(0, nrows, chunk_size),
        total=-(-nrows // chunk_size),
        desc="Filling",
        colour="cyan",
        dynamic_ncols=True,
        disable=not progress,
    ):
        stop = start + chunk_size
        hist.fill_many(
            *[c[start:stop] for c in cols],
            weights=None if weights is None else weights[start:stop],
        )
    return hist.n_filled - before


def main(argv=None):

    parser = argparse.ArgumentParser(
        description="Fill the histograms defined in a YAML config from columns of data files"
    )
    parser.add_argument("--config", "-c", required=True, help="YAML histogram definitions")
    parser.add_argument(
        "--input", "-i", nargs="+", required=True, help="Data files (whitespace or .csv columns)"
    )
    parser.add_argument("--output", "-o", required=True, help="Output pickle file")
    parser.add_argument("--chunk-size", type=int, default=100_000)
    parser.add_argument(
        "--nproc",
        type=int,
        default=None,
        help="Number of processes for multiprocessing (default: no multiprocessing).",
    )
    parser.add_argument(
        "--show-progressbar",
        action="store_true",
        help="Show tqdm progress bar",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)

    if args.chunk_size <= 0:
        parser.error("--chunk-size must be positive")

    try:
        cfg = load_config(Path(args.config).resolve())
        hists = histograms_from_config(cfg)
        layout = {
            name: columns_for(name, cfg["histograms"][name], h.ndim)
            for name, h in hists.items()
        }
    except HistogramError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    if args.verbose:
        print(f"[INFO] Histograms: {list(hists)}", file=sys.stderr)
        print(f"[INFO] Start {timestamp()}", file=sys.stderr)

    for p in args.input:
        p = Path(p).resolve()
        data = read_columns(p)
        for name, h in hists.items():
            columns, weight_column = layout[name]
            needed = max(columns + ([weight_column] if weight_column is not None else []))
            if needed >= data.shape[1]:
                print(
                    f"[ERROR] {p}: histogram {name!r} needs column {needed}, "
                    f"file has {data.shape[1]}",
                    file=sys.stderr,
                )
                return 2
            try:
                n = fill_from_table(
                    h,
                    data,
                    columns,
                    weight_column,
                    args.chunk_size,
                    nproc=args.nproc,
                    progress=args.show_progressbar,
                )
            except HistogramError as e:
                print(f"[ERROR] {p}: histogram {name!r}: {e}", file=sys.stderr)
                return 2
            if args.verbose:
                tqdm.write(f"[INFO] {p.name}: {name} filled {n} of {data.shape[0]} rows", file=sys.stderr)

    output = Path(args.output).resolve()
    with open(output, "wb") as f:
        pickle.dump(hists, f)

    print(f"Filled {len(hists)} histograms from {len(args.input)} files → {output}")
    if args.verbose:
        print(f"[INFO] Done {timestamp()}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
