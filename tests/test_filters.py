"""Tests for filter expression translation."""

import pytest
from conftest import matches_filter
from qdrant_client import models

from nlquery.errors import ValidationError
from nlquery.store.filters import (
    Equals,
    FieldFilter,
    In,
    NotEquals,
    Range,
    TextContains,
    filter_value,
    parse_filter_expr,
    translate_filter,
)


class TestParseFilterExpr:
    """Test parsing of filter expressions into typed conditions."""

    def test_bare_values_are_equality(self):
        assert parse_filter_expr({"name": "Chris Dyer"}) == [FieldFilter("name", Equals("Chris Dyer"))]

    def test_operator_objects(self):
        parsed = parse_filter_expr(
            {"title": {"contains": "sun"}, "tag": {"in": ["a", "b"]}, "kind": {"not": "draft"}}
        )

        assert parsed == [
            FieldFilter("title", TextContains("sun")),
            FieldFilter("tag", In(("a", "b"))),
            FieldFilter("kind", NotEquals("draft")),
        ]

    def test_range_operators(self):
        assert parse_filter_expr({"price": {"gte": 10, "lt": 20}}) == [
            FieldFilter("price", Range("gte", 10)),
            FieldFilter("price", Range("lt", 20)),
        ]

    def test_none_is_empty(self):
        assert parse_filter_expr(None) == []

    def test_nested_arrays_are_rejected(self):
        """Test that arrays may only contain mappings."""
        with pytest.raises(ValidationError):
            parse_filter_expr([{"a": 1}, [{"b": 2}]])

    def test_unknown_operator_is_rejected(self):
        with pytest.raises(ValidationError, match="unknown operator"):
            parse_filter_expr({"price": {"between": [1, 2]}})

    def test_non_numeric_range_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_filter_expr({"price": {"gt": "cheap"}})

    def test_scalar_expression_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_filter_expr("name = Chris")


class TestTranslateFilter:
    """Test translation into native qdrant filters."""

    def test_equality(self):
        result = translate_filter({"name": "Chris Dyer"})

        assert result == models.Filter(
            must=[models.FieldCondition(key="name", match=models.MatchValue(value="Chris Dyer"))]
        )

    def test_array_is_and_of_all_conditions(self):
        """Test that an array of mappings equals the merged mapping."""
        as_array = translate_filter([{"a": 1}, {"b": 2}])
        as_mapping = translate_filter({"a": 1, "b": 2})

        assert as_array == as_mapping
        assert len(as_array.must) == 2

    def test_operators_map_to_native_conditions(self):
        result = translate_filter(
            {"title": {"contains": "sun"}, "tag": {"in": ["a", "b"]}, "kind": {"not": "draft"}}
        )

        title, tag, kind = result.must
        assert title.match == models.MatchText(text="sun")
        assert tag.match == models.MatchAny(any=["a", "b"])
        assert kind.match.except_ == ["draft"]

    def test_range_bounds_on_one_field_are_merged(self):
        result = translate_filter([{"price": {"gte": 10}}, {"price": {"lt": 20}}])

        assert len(result.must) == 1
        assert result.must[0].range == models.Range(gte=10, lt=20)

    def test_fractional_float_equality_becomes_closed_range(self):
        result = translate_filter({"rating": 4.5})

        assert result.must[0].range == models.Range(gte=4.5, lte=4.5)

    def test_integral_float_equality_is_exact_match(self):
        result = translate_filter({"year": 2020.0})

        assert result.must[0].match == models.MatchValue(value=2020)

    def test_fractional_in_becomes_any_of_closed_ranges(self):
        result = translate_filter({"price": {"in": [9.99, 19.99]}})

        assert result.must[0] == models.Filter(
            should=[
                models.FieldCondition(key="price", range=models.Range(gte=9.99, lte=9.99)),
                models.FieldCondition(key="price", range=models.Range(gte=19.99, lte=19.99)),
            ]
        )
        assert matches_filter({"price": 19.99}, result)
        assert not matches_filter({"price": 5.0}, result)

    def test_fractional_not_becomes_excluded_closed_range(self):
        result = translate_filter({"price": {"not": 9.99}})

        assert result.must[0] == models.Filter(
            must_not=[models.FieldCondition(key="price", range=models.Range(gte=9.99, lte=9.99))]
        )
        assert matches_filter({"price": 10}, result)
        assert not matches_filter({"price": 9.99}, result)

    def test_mixed_in_list_matches_each_value(self):
        result = translate_filter({"tag": {"in": [1, "a"]}})

        assert result.must[0] == models.Filter(
            should=[
                models.FieldCondition(key="tag", match=models.MatchValue(value=1)),
                models.FieldCondition(key="tag", match=models.MatchValue(value="a")),
            ]
        )
        assert matches_filter({"tag": "a"}, result)
        assert not matches_filter({"tag": "b"}, result)

    def test_integral_floats_in_list_are_integers(self):
        result = translate_filter({"year": {"in": [2020.0, 2021]}, "rank": {"not": 3.0}})

        year, rank = result.must
        assert year.match == models.MatchAny(any=[2020, 2021])
        assert rank.match.except_ == [3]

    def test_empty_expression(self):
        assert translate_filter(None) is None
        assert translate_filter({}) is None
        assert translate_filter([]) is None


class TestFilterValue:
    """Test lookup of a field's value in a filter."""

    def test_equality_value(self):
        assert filter_value({"name": "Chris Dyer"}, "name") == "Chris Dyer"

    def test_value_in_array(self):
        assert filter_value([{"year": 2020}, {"name": "Ana"}], "name") == "Ana"

    def test_missing_or_invalid(self):
        assert filter_value({"year": 2020}, "name") is None
        assert filter_value("garbage", "name") is None
