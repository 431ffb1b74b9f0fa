"""Tests for value classification, normalisation and nested access."""
from __future__ import annotations

import math

import pytest

from src.shared.errors import FieldAccessError
from src.rest_engine.values import (
    INT64_MAX,
    ValueKind,
    comparable_kind,
    copy_json_value,
    generic_to_string,
    get_nested_field,
    kind_of,
    normalize,
    set_nested_field,
)


class TestKindOf:
    @pytest.mark.parametrize(
        "value, kind",
        [
            (None, ValueKind.NULL),
            (True, ValueKind.BOOL),
            (False, ValueKind.BOOL),
            (0, ValueKind.INTEGER),
            (1.5, ValueKind.FLOAT),
            ("x", ValueKind.STRING),
            ([1], ValueKind.ARRAY),
            ((1,), ValueKind.ARRAY),
            ({"a": 1}, ValueKind.OBJECT),
            (object(), ValueKind.OTHER),
        ],
    )
    def test_kinds(self, value, kind):
        assert kind_of(value) is kind

    def test_bool_is_not_a_number(self):
        assert not kind_of(True).is_number
        assert comparable_kind(True) == "bool"

    def test_integers_and_floats_share_comparable_kind(self):
        assert comparable_kind(5) == comparable_kind(5.0) == "number"


class TestNormalize:
    def test_whole_float_becomes_int(self):
        assert normalize(42.0) == 42
        assert isinstance(normalize(42.0), int)

    def test_fractional_float_kept(self):
        assert normalize(42.5) == 42.5

    def test_float_outside_int64_kept(self):
        big = float(INT64_MAX) * 4
        assert isinstance(normalize(big), float)

    def test_non_finite_floats_become_text(self):
        assert normalize(math.nan) == "NaN"
        assert normalize(math.inf) == "+Inf"
        assert normalize(-math.inf) == "-Inf"

    def test_large_integer_kept_exactly(self):
        assert normalize(9007199254740993) == 9007199254740993

    def test_nested_values_are_deep_copied(self):
        source = {"a": {"b": [1.0, {"c": 2.0}]}}
        result = normalize(source)
        assert result == {"a": {"b": [1, {"c": 2}]}}
        result["a"]["b"].append(3)
        assert source["a"]["b"] == [1.0, {"c": 2.0}]

    def test_unknown_kind_rendered_as_text(self):
        class Token:
            def __str__(self) -> str:
                return "token"

        assert normalize({"t": Token()}) == {"t": "token"}

    def test_bool_and_none_untouched(self):
        assert normalize(True) is True
        assert normalize(None) is None


class TestCopyJsonValue:
    def test_keeps_floats(self):
        assert isinstance(copy_json_value(3.0), float)

    def test_non_finite_become_text(self):
        assert copy_json_value([math.nan, math.inf]) == ["NaN", "+Inf"]

    def test_deep_copy(self):
        source = {"tags": ["a"]}
        result = copy_json_value(source)
        result["tags"].append("b")
        assert source == {"tags": ["a"]}


class TestGenericToString:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("abc", "abc"),
            (None, ""),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (42.0, "42"),
            (1.5, "1.5"),
            (9007199254740993, "9007199254740993"),
            ([1, "a"], '[1,"a"]'),
            ({"k": True}, '{"k":true}'),
            (math.nan, "NaN"),
        ],
    )
    def test_rendering(self, value, expected):
        assert generic_to_string(value) == expected


class TestNestedFields:
    def test_get_found(self):
        assert get_nested_field({"a": {"b": 1}}, ["a", "b"]) == (1, True)

    def test_get_missing(self):
        assert get_nested_field({"a": {}}, ["a", "b"]) == (None, False)

    def test_get_none_value_is_found(self):
        assert get_nested_field({"a": None}, ["a"]) == (None, True)

    def test_get_through_scalar_raises(self):
        with pytest.raises(FieldAccessError, match="expected a document"):
            get_nested_field({"a": "text"}, ["a", "b"])

    def test_get_literal_dot_key(self):
        assert get_nested_field({"a.b": 1}, ["a.b"]) == (1, True)

    def test_set_creates_intermediates(self):
        doc: dict = {}
        set_nested_field(doc, 5, ["a", "b", "c"])
        assert doc == {"a": {"b": {"c": 5}}}

    def test_set_keeps_siblings(self):
        doc = {"a": {"x": 1}}
        set_nested_field(doc, 2, ["a", "y"])
        assert doc == {"a": {"x": 1, "y": 2}}

    def test_set_through_scalar_raises(self):
        with pytest.raises(FieldAccessError):
            set_nested_field({"a": 1}, 2, ["a", "b"])

    def test_set_empty_path_raises(self):
        with pytest.raises(FieldAccessError):
            set_nested_field({}, 1, [])
