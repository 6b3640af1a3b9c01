"""Tests for config tree addressing and equality"""

import pytest

from context_deploy.models.config_tree import (
    ValueKind,
    delete_at_path,
    get_at_path,
    iter_leaves,
    join_path,
    kind_of,
    parse_path,
    set_at_path,
    values_equal,
)


class TestKinds:

    def test_bool_is_not_number(self):
        assert kind_of(True) == ValueKind.BOOLEAN
        assert kind_of(1) == ValueKind.NUMBER
        assert not values_equal(True, 1)

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            kind_of(object())


class TestEquality:

    def test_object_key_order_ignored(self):
        assert values_equal({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1})

    def test_array_order_matters(self):
        assert not values_equal([1, 2], [2, 1])

    def test_nested_difference(self):
        assert not values_equal({"a": {"b": None}}, {"a": {"b": False}})


class TestPaths:

    def test_join_and_parse(self):
        path = join_path(join_path(join_path("", "editor"), "rulers"), 1)
        assert path == "editor.rulers[1]"
        assert parse_path(path) == ["editor", "rulers", 1]

    def test_keys_with_path_syntax_round_trip(self):
        path = join_path(join_path("settings", "http.proxy"), "a[0]")
        assert path == r"settings.http\.proxy.a\[0\]"
        assert parse_path(path) == ["settings", "http.proxy", "a[0]"]
        assert parse_path(join_path("", "C:\\tmp")) == ["C:\\tmp"]

    def test_dotted_keys_are_addressed_in_place(self):
        tree = {"editor.fontSize": 12}
        path = join_path("", "editor.fontSize")

        set_at_path(tree, path, 14)

        assert tree == {"editor.fontSize": 14}
        assert get_at_path(tree, path) == 14
        assert delete_at_path(tree, path)
        assert tree == {}

    def test_malformed_index(self):
        with pytest.raises(ValueError):
            parse_path("a[x]")
        with pytest.raises(ValueError):
            parse_path("a[1")

    def test_root_index(self):
        assert join_path("", 0) == "[0]"
        assert parse_path("[0].name") == [0, "name"]

    def test_get_missing_returns_default(self):
        tree = {"a": {"b": [10, 20]}}
        assert get_at_path(tree, "a.b[1]") == 20
        assert get_at_path(tree, "a.b[5]", "missing") == "missing"
        assert get_at_path(tree, "a.c") is None

    def test_set_creates_intermediate_objects(self):
        tree = {"a": 1}
        set_at_path(tree, "x.y.z", True)
        set_at_path(tree, "a.b", 2)
        assert tree == {"a": {"b": 2}, "x": {"y": {"z": True}}}

    def test_set_into_existing_array(self):
        tree = {"servers": [{"key": "old"}]}
        set_at_path(tree, "servers[0].key", "new")
        assert tree == {"servers": [{"key": "new"}]}

    def test_delete(self):
        tree = {"a": {"b": 1, "c": 2}, "l": [1, 2]}
        assert delete_at_path(tree, "a.b")
        assert delete_at_path(tree, "l[0]")
        assert not delete_at_path(tree, "a.missing")
        assert tree == {"a": {"c": 2}, "l": [2]}

    def test_iter_leaves(self):
        tree = {"a": {"b": "x"}, "l": [1, {"c": None}]}
        assert list(iter_leaves(tree)) == [("a.b", "x"), ("l[0]", 1), ("l[1].c", None)]
