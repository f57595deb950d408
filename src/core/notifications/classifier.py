# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Priority classification of notifications.

The classifier walks an ordered list of rules and returns the level of
the first rule whose predicate holds. More specific rules come first, so
an assignment due in 12 hours is HIGH even though the 72-hour MEDIUM rule
would also match. Anything unmatched is INFO.

Numeric predicates read metadata through ``as_number``: a missing or
non-numeric value fails the predicate instead of being treated as zero.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from src.core.notifications.conditions import as_number
from src.core.notifications.types import NotificationTypes, PriorityLevel

Metadata = Mapping[str, Any]


@dataclass(frozen=True)
class ClassificationRule:
    """A single (level, type, predicate) entry."""

    level: PriorityLevel
    notification_type: str
    predicate: Callable[[Metadata], bool] | None = None

    def matches(self, notification_type: str, metadata: Metadata) -> bool:
        if notification_type != self.notification_type:
            return False
        return self.predicate is None or self.predicate(metadata)


def _at_most(key: str, bound: float) -> Callable[[Metadata], bool]:
    def predicate(metadata: Metadata) -> bool:
        value = as_number(metadata.get(key))
        return value is not None and value <= bound

    return predicate


def _below(key: str, bound: float) -> Callable[[Metadata], bool]:
    def predicate(metadata: Metadata) -> bool:
        value = as_number(metadata.get(key))
        return value is not None and value < bound

    return predicate


def _above(key: str, bound: float) -> Callable[[Metadata], bool]:
    def predicate(metadata: Metadata) -> bool:
        value = as_number(metadata.get(key))
        return value is not None and value > bound

    return predicate


def _equals(key: str, expected: str) -> Callable[[Metadata], bool]:
    def predicate(metadata: Metadata) -> bool:
        return metadata.get(key) == expected

    return predicate


_T = NotificationTypes
_P = PriorityLevel

DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    # CRITICAL
    ClassificationRule(_P.CRITICAL, _T.SAFETY_ALERT),
    ClassificationRule(_P.CRITICAL, _T.EMERGENCY),
    ClassificationRule(_P.CRITICAL, _T.RISK_ALERT, _equals("riskLevel", "CRITICAL")),
    # HIGH
    ClassificationRule(_P.HIGH, _T.ASSIGNMENT_DUE, _at_most("hoursRemaining", 24)),
    ClassificationRule(_P.HIGH, _T.GRADE_PUBLISHED, _below("grade", 60)),
    ClassificationRule(_P.HIGH, _T.ATTENDANCE_WARNING, _below("attendanceRate", 75)),
    ClassificationRule(_P.HIGH, _T.PAYMENT_DUE, _above("daysOverdue", 7)),
    # MEDIUM
    ClassificationRule(_P.MEDIUM, _T.ASSIGNMENT_DUE, _at_most("hoursRemaining", 72)),
    ClassificationRule(_P.MEDIUM, _T.GRADE_PUBLISHED),
    ClassificationRule(_P.MEDIUM, _T.EVENT_REMINDER, _at_most("daysUntil", 1)),
    ClassificationRule(_P.MEDIUM, _T.PARENT_MESSAGE),
    # LOW
    ClassificationRule(_P.LOW, _T.ASSIGNMENT_CREATED),
    ClassificationRule(_P.LOW, _T.EVENT_REMINDER, _at_most("daysUntil", 7)),
    ClassificationRule(_P.LOW, _T.RESOURCE_RECOMMENDATION),
)


class PriorityClassifier:
    """Maps a notification type and its metadata to a priority level.

    Pure and stateless; safe to share between tasks.

    Example:
        >>> classifier = PriorityClassifier()
        >>> classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": 12})
        <PriorityLevel.HIGH: 4>
    """

    def __init__(self, rules: Sequence[ClassificationRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def classify(
        self, notification_type: str, metadata: Metadata | None = None
    ) -> PriorityLevel:
        """Return the priority for a notification.

        Args:
            notification_type: Notification type identifier.
            metadata: Notification metadata; None is treated as empty.

        Returns:
            The level of the first matching rule, or INFO.
        """
        metadata = metadata or {}
        for rule in self._rules:
            if rule.matches(notification_type, metadata):
                return rule.level
        return PriorityLevel.INFO
