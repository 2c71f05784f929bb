import argparse
import pickle
import sys
from pathlib import Path

from fillhist.histogram import Histogram
from fillhist.merging.merge import merge_state_list


def load_tree(path: Path):
    with open(path, "rb") as f:
        obj = pickle.load(f)
    # a bare histogram is merged like a one-entry tree
    if isinstance(obj, Histogram):
        return {"histogram": obj}
    if not isinstance(obj, dict):
        raise TypeError(f"{path}: expected a dict or Histogram, got {type(obj).__name__}")
    return obj


def main(argv=None):

    parser = argparse.ArgumentParser(
        description="Merge pickled histogram result trees; histograms are merged bin by bin"
    )
    parser.add_argument(
        "--input", "-i", nargs="+", required=True, help="List of pickle files to merge"
    )
    parser.add_argument("--output", "-o", required=True, help="Output pickle file")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)

    output = Path(args.output).resolve()
    trees = [load_tree(Path(p).resolve()) for p in args.input]
    merged = merge_state_list(trees)

    if args.verbose:
        for name, leaf in merged.items():
            if isinstance(leaf, Histogram):
                print(f"[INFO] {name}: {leaf!r}", file=sys.stderr)

    with open(output, "wb") as f:
        pickle.dump(merged, f)

    print(f"Merged {len(args.input)} files → {output}")


if __name__ == "__main__":
    main()
