import pytest
import yaml

from fillhist import ConstructionError, Histogram, UniformAxis, VariableAxis
from fillhist.config import (
    columns_for,
    get_by_path,
    histogram_from_definition,
    histograms_from_config,
    load_config,
)

CONFIG = {
    "histograms": {
        "pt_y": {
            "kind": "float",
            "axes": [
                {"bins": 30, "low": 0.0, "high": 3.0},
                {"edges": [-4, -2, 0, 2, 4], "underflow": False, "overflow": False},
            ],
            "columns": [1, 0],
            "weight_column": 2,
        },
        "counts": {
            "kind": "int",
            "axes": [[0, 1, 10, 100]],
        },
        "labels": {
            "kind": "generic",
            "default": [],
            "axes": [{"bins": 2, "low": 0, "high": 2}],
        },
    }
}


def write_config(path, cfg):
    with open(path, "w") as f:
        yaml.safe_dump(cfg, f, sort_keys=False)


def test_load_and_build(tmp_path):
    p = tmp_path / "hists.yaml"
    write_config(p, CONFIG)
    cfg = load_config(p)
    hists = histograms_from_config(cfg)

    assert list(hists) == ["pt_y", "counts", "labels"]
    pt_y = hists["pt_y"]
    assert pt_y.axes == (
        UniformAxis(30, 0.0, 3.0),
        VariableAxis([-4, -2, 0, 2, 4], underflow=False, overflow=False),
    )
    assert pt_y.kind.value == "float"
    assert hists["counts"].kind.value == "int"
    assert hists["labels"].bin_value(1) == []


def test_columns_for():
    defs = CONFIG["histograms"]
    assert columns_for("pt_y", defs["pt_y"], 2) == ([1, 0], 2)
    assert columns_for("counts", defs["counts"], 1) == ([0], None)
    with pytest.raises(ConstructionError):
        columns_for("pt_y", defs["pt_y"], 3)
    with pytest.raises(ConstructionError):
        columns_for("x", {"columns": ["a"]}, 1)
    with pytest.raises(ConstructionError):
        columns_for("x", {"weight_column": "w"}, 1)


def test_get_by_path():
    assert get_by_path(CONFIG, "histograms.counts.kind") == "int"
    assert get_by_path(CONFIG, "histograms.nope.kind", "NA") == "NA"


@pytest.mark.parametrize(
    "definition",
    [
        {},
        {"axes": []},
        {"axes": [{"bins": 2, "low": 1, "high": 0}]},
        {"axes": [[0, 1]], "kind": "complex"},
        {"axes": [[0, 1]], "colour": "red"},
        {"axes": [[0, 1]], "kind": "float", "default": 0},
        "not a mapping",
    ],
)
def test_bad_definitions_name_the_histogram(definition):
    with pytest.raises(ConstructionError, match="broken"):
        histogram_from_definition("broken", definition)


def test_missing_histograms_section(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("")
    with pytest.raises(ConstructionError):
        histograms_from_config(load_config(p))


def test_top_level_must_be_mapping(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n")
    with pytest.raises(ConstructionError):
        load_config(p)


def test_built_histograms_are_usable():
    h = histograms_from_config(CONFIG)["pt_y"]
    assert isinstance(h, Histogram)
    h.fill(1.05, 0.5, weight=2.0)
    assert h.bin_value(11, 2) == 2.0


def test_generic_default_weight_from_config():
    h = histogram_from_definition(
        "n", {"kind": "generic", "default": 0, "default_weight": 1, "axes": [[0, 1, 2]]}
    )
    h.fill(0.5)
    h.fill(0.5)
    assert h.bin_value(1) == 2
