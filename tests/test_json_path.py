from __future__ import annotations

from imagegen.core.json_path import get_value_at_path, set_value_at_path, split_path


def test_split_path_normalizes_bracket_indices():
    assert split_path("predictions[2].bytesBase64Encoded") == ["predictions", "2", "bytesBase64Encoded"]
    assert split_path("a[0][1].b") == ["a", "0", "1", "b"]


def test_get_reads_nested_value():
    assert get_value_at_path({"a": [{"b": 1}]}, "a[0].b") == 1


def test_get_missing_path_returns_none_without_raising():
    assert get_value_at_path({}, "a[0].b") is None
    assert get_value_at_path({"a": []}, "a[3].b") is None
    assert get_value_at_path({"a": "text"}, "a.b") is None
    assert get_value_at_path(None, "a") is None


def test_get_honors_default():
    assert get_value_at_path({}, "missing", default="fallback") == "fallback"


def test_get_does_not_mutate_root():
    root = {"a": [{"b": 1}]}
    get_value_at_path(root, "a[0].c")
    assert root == {"a": [{"b": 1}]}


def test_set_assigns_existing_path():
    root = {"a": [{}]}
    set_value_at_path(root, "a[0].c", 5)
    assert root == {"a": [{"c": 5}]}


def test_set_overwrites_list_element():
    root = {"a": [1, 2]}
    set_value_at_path(root, "a[1]", 9)
    assert root == {"a": [1, 9]}


def test_set_missing_intermediate_is_noop():
    root = {}
    set_value_at_path(root, "a[0].c", 5)
    assert root == {}


def test_set_out_of_range_list_index_is_noop():
    root = {"a": [1]}
    set_value_at_path(root, "a[4]", 5)
    assert root == {"a": [1]}


def test_set_on_scalar_parent_is_noop():
    root = {"a": "text"}
    set_value_at_path(root, "a.b", 5)
    assert root == {"a": "text"}
