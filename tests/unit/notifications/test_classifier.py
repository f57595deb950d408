# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for priority classification."""

import pytest

from src.core.notifications.classifier import (
    ClassificationRule,
    PriorityClassifier,
)
from src.core.notifications.types import PriorityLevel


@pytest.fixture
def classifier() -> PriorityClassifier:
    return PriorityClassifier()


class TestCriticalRules:
    """Tests for types that are always or conditionally CRITICAL."""

    @pytest.mark.parametrize("notification_type", ["SAFETY_ALERT", "EMERGENCY"])
    def test_unconditional_critical_types(self, classifier, notification_type):
        assert classifier.classify(notification_type, {}) == PriorityLevel.CRITICAL

    def test_risk_alert_critical_only_at_critical_level(self, classifier):
        assert (
            classifier.classify("RISK_ALERT", {"riskLevel": "CRITICAL"})
            == PriorityLevel.CRITICAL
        )
        assert classifier.classify("RISK_ALERT", {"riskLevel": "HIGH"}) == PriorityLevel.INFO


class TestAssignmentDue:
    """Tests for the more-specific-rule-first ordering."""

    def test_due_within_a_day_is_high(self, classifier):
        assert (
            classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": 12}) == PriorityLevel.HIGH
        )

    def test_boundary_24_hours_is_high(self, classifier):
        assert (
            classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": 24}) == PriorityLevel.HIGH
        )

    def test_due_within_three_days_is_medium(self, classifier):
        assert (
            classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": 48})
            == PriorityLevel.MEDIUM
        )

    def test_due_later_is_info(self, classifier):
        assert (
            classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": 100}) == PriorityLevel.INFO
        )

    def test_missing_hours_is_not_treated_as_zero(self, classifier):
        assert classifier.classify("ASSIGNMENT_DUE", {}) == PriorityLevel.INFO

    def test_non_numeric_hours_fail_predicate(self, classifier):
        assert (
            classifier.classify("ASSIGNMENT_DUE", {"hoursRemaining": "soon"})
            == PriorityLevel.INFO
        )


class TestOtherRules:
    """Tests for the remaining default rules."""

    def test_low_grade_is_high(self, classifier):
        assert classifier.classify("GRADE_PUBLISHED", {"grade": 45}) == PriorityLevel.HIGH

    def test_any_other_grade_is_medium(self, classifier):
        assert classifier.classify("GRADE_PUBLISHED", {"grade": 90}) == PriorityLevel.MEDIUM
        assert classifier.classify("GRADE_PUBLISHED", {}) == PriorityLevel.MEDIUM

    def test_attendance_below_threshold_is_high(self, classifier):
        assert (
            classifier.classify("ATTENDANCE_WARNING", {"attendanceRate": 70})
            == PriorityLevel.HIGH
        )
        assert (
            classifier.classify("ATTENDANCE_WARNING", {"attendanceRate": 75})
            == PriorityLevel.INFO
        )

    def test_overdue_payment_is_high(self, classifier):
        assert classifier.classify("PAYMENT_DUE", {"daysOverdue": 8}) == PriorityLevel.HIGH
        assert classifier.classify("PAYMENT_DUE", {"daysOverdue": 7}) == PriorityLevel.INFO

    def test_event_reminder_tiers(self, classifier):
        assert classifier.classify("EVENT_REMINDER", {"daysUntil": 1}) == PriorityLevel.MEDIUM
        assert classifier.classify("EVENT_REMINDER", {"daysUntil": 5}) == PriorityLevel.LOW
        assert classifier.classify("EVENT_REMINDER", {"daysUntil": 30}) == PriorityLevel.INFO

    @pytest.mark.parametrize(
        "notification_type,expected",
        [
            ("PARENT_MESSAGE", PriorityLevel.MEDIUM),
            ("ASSIGNMENT_CREATED", PriorityLevel.LOW),
            ("RESOURCE_RECOMMENDATION", PriorityLevel.LOW),
            ("SYSTEM_UPDATE", PriorityLevel.INFO),
            ("SOMETHING_NEW", PriorityLevel.INFO),
        ],
    )
    def test_unconditional_rules_and_default(self, classifier, notification_type, expected):
        assert classifier.classify(notification_type) == expected

    def test_booleans_are_not_numbers(self, classifier):
        assert classifier.classify("GRADE_PUBLISHED", {"grade": True}) == PriorityLevel.MEDIUM


class TestCustomRules:
    """Tests for injecting a rule table."""

    def test_first_matching_rule_wins(self):
        classifier = PriorityClassifier(
            rules=[
                ClassificationRule(PriorityLevel.LOW, "X"),
                ClassificationRule(PriorityLevel.HIGH, "X"),
            ]
        )

        assert classifier.classify("X") == PriorityLevel.LOW
