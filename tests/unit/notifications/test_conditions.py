# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for rule condition trees."""

import pytest

from src.core.notifications.conditions import (
    ConditionTree,
    as_number,
    conditions_match,
    strict_equals,
)
from src.core.notifications.exceptions import InvalidConditionError


class TestComparisons:
    """Tests for operator semantics."""

    def test_gte_matches_above_threshold(self):
        assert conditions_match({"riskLevel": {"gte": 80}}, {"riskLevel": 85})

    def test_gte_rejects_below_threshold(self):
        assert not conditions_match({"riskLevel": {"gte": 80}}, {"riskLevel": 60})

    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("gt", 10, True),
            ("gt", 5, False),
            ("lt", 5, False),
            ("lte", 5, True),
            ("eq", 5, True),
            ("ne", 5, False),
        ],
    )
    def test_each_operator(self, operator, value, expected):
        assert conditions_match({"n": {operator: 5}}, {"n": value}) is expected

    def test_multiple_operators_are_conjunctive(self):
        tree = {"score": {"gte": 50, "lt": 70}}

        assert conditions_match(tree, {"score": 60})
        assert not conditions_match(tree, {"score": 75})

    def test_literal_means_equality(self):
        assert conditions_match({"status": "LATE"}, {"status": "LATE"})
        assert not conditions_match({"status": "LATE"}, {"status": "ON_TIME"})

    def test_multiple_keys_are_conjunctive(self):
        tree = {"grade": {"lt": 60}, "subject": "math"}

        assert conditions_match(tree, {"grade": 40, "subject": "math"})
        assert not conditions_match(tree, {"grade": 40, "subject": "art"})

    def test_missing_key_fails_ordering(self):
        assert not conditions_match({"riskLevel": {"gte": 80}}, {})

    def test_string_and_number_never_order(self):
        assert not conditions_match({"riskLevel": {"gte": 80}}, {"riskLevel": "90"})

    def test_strings_order_lexicographically(self):
        assert conditions_match({"letter": {"lt": "C"}}, {"letter": "B"})


class TestEdgeCases:
    """Tests for empty and malformed trees."""

    def test_empty_tree_matches(self):
        assert conditions_match({}, {"anything": 1})
        assert conditions_match(None, {})

    def test_empty_operator_object_is_vacuously_true(self):
        assert conditions_match({"x": {}}, {})

    def test_unknown_operator_never_matches(self):
        assert not conditions_match({"riskLevel": {"between": [1, 2]}}, {"riskLevel": 2})

    def test_strict_parse_raises_on_unknown_operator(self):
        with pytest.raises(InvalidConditionError):
            ConditionTree.parse({"riskLevel": {"approx": 80}})

    def test_non_mapping_tree_is_rejected(self):
        with pytest.raises(InvalidConditionError):
            ConditionTree.parse(["not", "a", "mapping"])  # type: ignore[arg-type]


class TestEquality:
    """Tests for strict equality without coercion."""

    def test_bool_is_not_int(self):
        assert not strict_equals(True, 1)

    def test_string_is_not_number(self):
        assert not strict_equals("5", 5)

    def test_int_equals_float(self):
        assert strict_equals(5, 5.0)

    def test_as_number_excludes_bool(self):
        assert as_number(True) is None
        assert as_number(3.5) == 3.5
        assert as_number(None) is None
