# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification admission core.

This package decides whether a candidate notification is sent and at
what priority. It holds no I/O of its own; stores and transports are
injected through the protocols in ``stores``.

Architecture:
    1. PriorityClassifier: maps (type, metadata) to one of five levels
    2. Gates: preferences, daily frequency caps, deduplication, quiet hours
    3. AdmissionPipeline: runs the gates in order, failing open on store errors
    4. RuleEvaluator: expands school events into candidates via stored rules

Quick Start:
    from src.core.notifications import (
        AdmissionPipeline,
        NotificationCandidate,
        NotificationPolicy,
    )

    policy = NotificationPolicy.from_settings(get_settings().notifications)
    pipeline = AdmissionPipeline(preference_store, notification_store, policy)
    decision = await pipeline.should_send(
        NotificationCandidate(
            user_id="student-uuid",
            type="ASSIGNMENT_DUE",
            title="Essay due",
            message="Your essay is due tomorrow",
            metadata={"hoursRemaining": 12, "assignmentId": "a-1"},
        )
    )
"""

from src.core.notifications.admission import AdmissionDecision, AdmissionPipeline
from src.core.notifications.classifier import ClassificationRule, PriorityClassifier
from src.core.notifications.conditions import (
    ConditionOperator,
    ConditionTree,
    conditions_match,
)
from src.core.notifications.exceptions import (
    ChannelNotConfiguredError,
    InvalidConditionError,
    NotificationError,
    NotificationPersistenceError,
    StoreUnavailableError,
)
from src.core.notifications.gates import (
    AdmissionContext,
    AdmissionGate,
    DeduplicationGuard,
    FrequencyLimiter,
    GateResult,
    PreferenceGate,
    QuietHoursGate,
    is_within_quiet_hours,
)
from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.rules import RuleEvaluator, render_template
from src.core.notifications.stores import (
    EmailSender,
    MessageSender,
    NotificationStore,
    PreferenceStore,
    RecipientDirectory,
    RuleStore,
)
from src.core.notifications.types import (
    ChannelType,
    DeliveryResult,
    DigestFrequency,
    DigestSettings,
    NotificationCandidate,
    NotificationFilter,
    NotificationPage,
    NotificationStats,
    NotificationTypes,
    PriorityLevel,
    Recipient,
    Rule,
    SchoolEvent,
    StoredNotification,
    UserNotificationPreferences,
)

__all__ = [
    # Types
    "ChannelType",
    "DeliveryResult",
    "DigestFrequency",
    "DigestSettings",
    "NotificationCandidate",
    "NotificationFilter",
    "NotificationPage",
    "NotificationStats",
    "NotificationTypes",
    "PriorityLevel",
    "Recipient",
    "Rule",
    "SchoolEvent",
    "StoredNotification",
    "UserNotificationPreferences",
    # Policy
    "NotificationPolicy",
    # Errors
    "ChannelNotConfiguredError",
    "InvalidConditionError",
    "NotificationError",
    "NotificationPersistenceError",
    "StoreUnavailableError",
    # Collaborators
    "EmailSender",
    "MessageSender",
    "NotificationStore",
    "PreferenceStore",
    "RecipientDirectory",
    "RuleStore",
    # Classification
    "ClassificationRule",
    "PriorityClassifier",
    # Gates
    "AdmissionContext",
    "AdmissionGate",
    "DeduplicationGuard",
    "FrequencyLimiter",
    "GateResult",
    "PreferenceGate",
    "QuietHoursGate",
    "is_within_quiet_hours",
    # Admission
    "AdmissionDecision",
    "AdmissionPipeline",
    # Rules
    "ConditionOperator",
    "ConditionTree",
    "conditions_match",
    "RuleEvaluator",
    "render_template",
]
