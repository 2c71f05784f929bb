import pickle
import pytest

import fillhist as fh
from fillhist.cli.merge_pickle import main


def write_pickle(path, obj):
    """Small helper so we don't repeat boilerplate."""
    with open(path, "wb") as f:
        pickle.dump(obj, f)


def read_pickle(path):
    with open(path, "rb") as f:
        return pickle.load(f)


def filled(*xs, kind="float"):
    h = fh.Histogram([(3, 0, 3)], kind=kind)
    for x in xs:
        h.fill(x)
    return h


def test_main_merges_histograms(tmp_path):
    """End-to-end: 2 files, same histogram name, check against merge_state_list."""
    f1 = tmp_path / "a.pkl"
    f2 = tmp_path / "b.pkl"

    d1 = {"h": filled(0.5, 1.5), "n": 2}
    d2 = {"h": filled(1.5), "n": 1}

    write_pickle(f1, d1)
    write_pickle(f2, d2)

    out = tmp_path / "out.pkl"

    main(["--input", str(f1), str(f2), "--output", str(out)])

    assert out.exists()
    result = read_pickle(out)

    expected = fh.merge_state_list([d1, d2])
    assert result == expected
    assert result["h"].bin_value(2) == 2.0
    assert result["n"] == 3


def test_main_three_files(tmp_path):
    """More inputs, make sure all are considered."""
    paths = []
    for i, x in enumerate((0.5, 1.5, 2.5)):
        p = tmp_path / f"{i}.pkl"
        write_pickle(p, {"h": filled(x, kind="int")})
        paths.append(str(p))

    out = tmp_path / "out.pkl"
    main(["--input", *paths, "--output", str(out)])

    result = read_pickle(out)
    assert [result["h"].bin_value(i) for i in range(5)] == [0, 1, 1, 1, 0]


def test_main_accepts_bare_histograms(tmp_path):
    f1 = tmp_path / "a.pkl"
    f2 = tmp_path / "b.pkl"
    write_pickle(f1, filled(0.5))
    write_pickle(f2, filled(0.5))

    out = tmp_path / "out.pkl"
    main(["--input", str(f1), str(f2), "--output", str(out), "-v"])

    assert read_pickle(out)["histogram"].bin_value(1) == 2.0


def test_main_nested_dicts(tmp_path):
    """Make sure more complex data structures don't break the CLI layer."""
    f1 = tmp_path / "a.pkl"
    f2 = tmp_path / "b.pkl"

    d1 = {"x": {"y": filled(0.5)}}
    d2 = {"x": {"z": 2}, "k": [1, 2, 3]}

    write_pickle(f1, d1)
    write_pickle(f2, d2)

    out = tmp_path / "out.pkl"

    main(["--input", str(f1), str(f2), "--output", str(out)])

    result = read_pickle(out)
    expected = fh.merge_state_list([d1, d2])
    assert result == expected


def test_main_shape_mismatch(tmp_path):
    f1 = tmp_path / "a.pkl"
    f2 = tmp_path / "b.pkl"
    write_pickle(f1, {"h": filled(0.5)})
    write_pickle(f2, {"h": filled(0.5, kind="int")})

    with pytest.raises(fh.ShapeMismatchError):
        main(["--input", str(f1), str(f2), "--output", str(tmp_path / "out.pkl")])


def test_main_rejects_other_objects(tmp_path):
    f1 = tmp_path / "a.pkl"
    write_pickle(f1, [1, 2, 3])

    with pytest.raises(TypeError):
        main(["--input", str(f1), "--output", str(tmp_path / "out.pkl")])


def test_main_fails_when_input_file_missing(tmp_path):
    """Non-existent input should raise an error (FileNotFoundError)."""
    missing = tmp_path / "does_not_exist.pkl"
    out = tmp_path / "out.pkl"

    with pytest.raises(FileNotFoundError):
        main(["--input", str(missing), "--output", str(out)])


def test_main_fails_on_invalid_pickle(tmp_path):
    """If a file is not a valid pickle, we should see an UnpicklingError."""
    bad = tmp_path / "bad.pkl"
    bad.write_text("this is not a pickle\n")

    out = tmp_path / "out.pkl"

    with pytest.raises(pickle.UnpicklingError):
        main(["--input", str(bad), "--output", str(out)])


def test_main_requires_input_arg(tmp_path):
    """argparse should error if --input is missing."""
    out = tmp_path / "out.pkl"

    with pytest.raises(SystemExit) as excinfo:
        main(["--output", str(out)])

    # argparse uses exit code 2 for usage errors
    assert excinfo.value.code == 2


def test_main_overwrites_existing_output(tmp_path):
    """If the output file already exists, it should be overwritten."""
    f1 = tmp_path / "a.pkl"
    write_pickle(f1, {"h": filled(2.5)})

    out = tmp_path / "out.pkl"
    write_pickle(out, {"old": True})

    main(["--input", str(f1), "--output", str(out)])

    result = read_pickle(out)
    assert set(result) == {"h"}
    assert result["h"].bin_value(3) == 1.0
