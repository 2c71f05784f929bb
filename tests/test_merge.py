import numpy as np
import pytest

from fillhist import Histogram, merge_histograms, merge_state_list, merge_two_states


def make_hist(*xs):
    h = Histogram([(4, 0, 4)], kind="int")
    for x in xs:
        h.fill(x)
    return h


def test_merge_state_list_merges_histogram_leafs():
    s1 = {"pt": make_hist(0.5, 1.5), "n_events": 2, "tags": ["a"]}
    s2 = {"pt": make_hist(1.5), "n_events": 1, "tags": ["a"], "extra": np.ones(2)}
    merged = merge_state_list([s1, s2])

    assert merged["pt"].bin_value(2) == 2
    assert merged["pt"].bin_value(1) == 1
    assert merged["n_events"] == 3
    assert merged["tags"] == ["a"]
    assert np.array_equal(merged["extra"], np.ones(2))
    # inputs untouched
    assert s1["pt"].bin_value(2) == 1


def test_nested_dicts():
    s1 = {"run": {"h": make_hist(0.5), "label": "x"}}
    s2 = {"run": {"h": make_hist(0.5), "label": "x"}}
    merged = merge_state_list([s1, s2])
    assert merged["run"]["h"].bin_value(1) == 2
    assert merged["run"]["label"] == "x"


def test_merge_two_states_in_place():
    acc = {}
    merge_two_states(acc, {"h": make_hist(3.5)})
    merge_two_states(acc, {"h": make_hist(3.5)})
    assert acc["h"].bin_value(4) == 2


def test_mismatches_raise():
    with pytest.raises(ValueError):
        merge_state_list([{"label": "x"}, {"label": "y"}])
    with pytest.raises(TypeError):
        merge_state_list([{"v": 1}, {"v": "1"}])
    with pytest.raises(ValueError):
        merge_state_list([{"h": make_hist()}, {"h": Histogram([(5, 0, 4)], kind="int")}])
    with pytest.raises(ValueError):
        merge_state_list([])


def test_partitioned_fills_equal_single_fill():
    rng = np.random.default_rng(5)
    xs = rng.uniform(-1, 5, size=300)
    whole = make_hist(*xs.tolist())
    parts = [make_hist(*chunk.tolist()) for chunk in np.array_split(xs, 4)]
    merged = merge_histograms(parts)
    assert merged == whole
    assert merged.n_filled == whole.n_filled
    assert merged.n_dropped == whole.n_dropped


def test_merge_histograms_generic_combine():
    a = Histogram([(1, 0, 1)], kind="generic")
    b = a.empty_like()
    a.fill(0.5, weight=2)
    b.fill(0.5, weight=9)
    assert merge_histograms([a, b], combine=min).bin_value(1) == 2


def test_non_counter_leaves_must_agree():
    edges = np.array([0.0, 1.0, 2.0])
    merged = merge_state_list([{"edges": edges, "cuts": ["pt>1"]}, {"edges": edges.copy(), "cuts": ["pt>1"]}])
    assert np.array_equal(merged["edges"], edges)
    assert merged["cuts"] == ["pt>1"]

    with pytest.raises(ValueError):
        merge_state_list([{"cuts": ["pt>1"]}, {"cuts": ["pt>2"]}])
    with pytest.raises(ValueError):
        merge_state_list([{"edges": edges}, {"edges": edges[:2]}])
    with pytest.raises(TypeError):
        merge_state_list([{"h": make_hist()}, {"h": 3}])
    with pytest.raises(TypeError):
        merge_state_list([{"flag": True}, {"flag": 1}])
