# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rule condition trees.

A condition tree is a flat mapping from a metadata key to either a literal
(direct equality) or an operator object such as ``{"gte": 80}``. Every key
must be satisfied; several operators inside one object must all hold.

    {"riskLevel": {"gte": 80}, "category": "academic"}

Values are compared without coercion: ordering is defined only between two
numbers or two strings, equality never treats ``True`` as ``1``, and a
missing key compares as None. A type mismatch makes the comparison false.
"""

import logging
import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from src.core.notifications.exceptions import InvalidConditionError

logger = logging.getLogger(__name__)


class ConditionOperator(str, Enum):
    """Operators accepted inside a condition object."""

    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    NE = "ne"


_ORDERING: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.GT: operator.gt,
    ConditionOperator.LT: operator.lt,
    ConditionOperator.GTE: operator.ge,
    ConditionOperator.LTE: operator.le,
}


def as_number(value: Any) -> int | float | None:
    """Return value if it is a real number, else None.

    Booleans are not numbers here.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    left_num, right_num = as_number(left), as_number(right)
    if left_num is not None or right_num is not None:
        return left_num is not None and right_num is not None and left_num == right_num
    if type(left) is not type(right):
        return False
    return left == right


def _ordered(op: ConditionOperator, actual: Any, expected: Any) -> bool:
    actual_num, expected_num = as_number(actual), as_number(expected)
    if actual_num is not None and expected_num is not None:
        return _ORDERING[op](actual_num, expected_num)
    if isinstance(actual, str) and isinstance(expected, str):
        return _ORDERING[op](actual, expected)
    return False


@dataclass(frozen=True)
class Comparison:
    """One operator applied to one operand."""

    operator: ConditionOperator
    operand: Any

    def holds(self, actual: Any) -> bool:
        """Evaluate against an actual metadata value."""
        match self.operator:
            case ConditionOperator.EQ:
                return strict_equals(actual, self.operand)
            case ConditionOperator.NE:
                return not strict_equals(actual, self.operand)
            case _:
                return _ordered(self.operator, actual, self.operand)


@dataclass(frozen=True)
class KeyCondition:
    """All comparisons attached to one metadata key."""

    key: str
    comparisons: tuple[Comparison, ...]

    def holds(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.key)
        return all(comparison.holds(actual) for comparison in self.comparisons)


@dataclass(frozen=True)
class ConditionTree:
    """Parsed condition tree; an empty tree matches everything."""

    conditions: tuple[KeyCondition, ...] = ()

    def matches(self, metadata: Mapping[str, Any] | None) -> bool:
        """Check every key condition against event metadata."""
        metadata = metadata or {}
        return all(condition.holds(metadata) for condition in self.conditions)

    @classmethod
    def parse(cls, raw: Mapping[str, Any] | None) -> "ConditionTree":
        """Parse a stored condition mapping.

        Args:
            raw: Mapping of metadata key to literal or operator object.

        Returns:
            The parsed tree.

        Raises:
            InvalidConditionError: If an operator object uses an unknown operator.
        """
        if not raw:
            return cls()
        if not isinstance(raw, Mapping):
            raise InvalidConditionError("*", f"expected a mapping, got {type(raw).__name__}")

        parsed = []
        for key, expected in raw.items():
            if isinstance(expected, Mapping):
                comparisons = []
                for op_name, operand in expected.items():
                    try:
                        op = ConditionOperator(op_name)
                    except ValueError:
                        raise InvalidConditionError(
                            key, f"unknown operator '{op_name}'"
                        ) from None
                    comparisons.append(Comparison(op, operand))
                parsed.append(KeyCondition(key, tuple(comparisons)))
            else:
                parsed.append(KeyCondition(key, (Comparison(ConditionOperator.EQ, expected),)))
        return cls(tuple(parsed))


def conditions_match(
    raw: Mapping[str, Any] | None, metadata: Mapping[str, Any] | None
) -> bool:
    """Parse and evaluate a condition mapping, never raising.

    A malformed tree does not match.
    """
    try:
        tree = ConditionTree.parse(raw)
    except InvalidConditionError as e:
        logger.warning("Ignoring malformed rule condition: %s", e)
        return False
    return tree.matches(metadata)
