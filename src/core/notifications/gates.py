# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission gates.

Each gate answers one admit/reject question about a candidate:

- PreferenceGate: has the user switched this notification type off?
- FrequencyLimiter: has the user hit today's cap for this priority?
- DeduplicationGuard: was an equivalent notification sent recently?
- QuietHoursGate: is it inside the user's do-not-disturb window?

Gates may raise StoreUnavailableError from their store lookups; the
admission pipeline turns that into a fail-open result. A gate that sees
preferences failed to load fails open itself.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from src.core.notifications.conditions import strict_equals
from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.stores import NotificationStore
from src.core.notifications.types import (
    NotificationCandidate,
    NotificationTypes,
    PriorityLevel,
    UserNotificationPreferences,
)
from src.utils.datetime import start_of_local_day, to_local

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate.

    Attributes:
        allowed: Whether the candidate may proceed.
        reason: Why it was rejected (or why it was allowed degraded).
        degraded: True when the gate allowed only because a store failed.
        error: The store failure behind a degraded result.
    """

    allowed: bool
    reason: str | None = None
    degraded: bool = False
    error: Exception | None = None

    @classmethod
    def allow(cls) -> "GateResult":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: str) -> "GateResult":
        return cls(allowed=False, reason=reason)

    @classmethod
    def fail_open(cls, error: Exception) -> "GateResult":
        return cls(allowed=True, reason=f"store unavailable: {error}", degraded=True, error=error)


@dataclass
class AdmissionContext:
    """Everything the gates need to judge one candidate.

    Preferences are loaded once by the pipeline and shared. ``preferences``
    is None either because the user has none (``preferences_error`` is
    None) or because loading failed.
    """

    candidate: NotificationCandidate
    priority: PriorityLevel
    now: datetime
    timezone: ZoneInfo
    preferences: UserNotificationPreferences | None = None
    preferences_error: StoreUnavailableError | None = None

    @property
    def effective_preferences(self) -> UserNotificationPreferences:
        """Stored preferences, or the documented defaults."""
        if self.preferences is not None:
            return self.preferences
        return UserNotificationPreferences.defaults(self.candidate.user_id)

    @property
    def local_now(self) -> datetime:
        """Current time on the user's clock."""
        return to_local(self.now, self.timezone)


class AdmissionGate(ABC):
    """Base class for a single admission check."""

    name: str = "gate"

    @abstractmethod
    async def check(self, context: AdmissionContext) -> GateResult:
        """Judge the candidate in context.

        Raises:
            StoreUnavailableError: If a backing lookup fails.
        """
        ...


class PreferenceGate(AdmissionGate):
    """Rejects types the user disabled, except critical types."""

    name = "preferences"

    def __init__(self, policy: NotificationPolicy) -> None:
        self._policy = policy

    async def check(self, context: AdmissionContext) -> GateResult:
        notification_type = context.candidate.type
        if self._policy.is_critical_type(notification_type):
            return GateResult.allow()
        if context.preferences_error is not None:
            return GateResult.fail_open(context.preferences_error)
        if context.preferences is None:
            return GateResult.allow()
        if not context.preferences.allows_type(notification_type):
            return GateResult.reject(f"{notification_type} disabled in user preferences")
        return GateResult.allow()


class FrequencyLimiter(AdmissionGate):
    """Caps notifications per user, per priority and per local day.

    The count and the later insert are not atomic, so concurrent
    admissions for one user may overshoot the cap by the number of
    in-flight sends minus one unless the caller serializes per user.
    """

    name = "frequency"

    def __init__(self, store: NotificationStore, policy: NotificationPolicy) -> None:
        self._store = store
        self._policy = policy

    async def check(self, context: AdmissionContext) -> GateResult:
        cap = self._policy.cap_for(context.priority)
        if cap is None:
            return GateResult.allow()

        day_start = start_of_local_day(context.now, context.timezone)
        count = await self._store.count_today(
            context.candidate.user_id, context.priority, day_start
        )
        if count >= cap:
            return GateResult.reject(
                f"daily limit reached for {context.priority.name} ({count}/{cap})"
            )
        return GateResult.allow()


class DeduplicationGuard(AdmissionGate):
    """Rejects a candidate matching a notification inside the dedup window.

    Assignment types are duplicates only for the same ``assignmentId`` and
    GRADE_PUBLISHED only for the same ``submissionId``. When the candidate
    carries no such id, any same-type notification in the window counts.
    """

    name = "deduplication"

    def __init__(self, store: NotificationStore, policy: NotificationPolicy) -> None:
        self._store = store
        self._policy = policy

    async def check(self, context: AdmissionContext) -> GateResult:
        candidate = context.candidate
        since = context.now - self._policy.dedup_window
        recent = await self._store.find_recent(candidate.user_id, candidate.type, since)
        if recent is None:
            return GateResult.allow()

        id_key = self._identity_key(candidate.type)
        if id_key is not None:
            candidate_id = candidate.metadata.get(id_key)
            if candidate_id is not None and not strict_equals(
                recent.metadata.get(id_key), candidate_id
            ):
                return GateResult.allow()

        return GateResult.reject(
            f"duplicate of notification {recent.id} sent at {recent.created_at.isoformat()}"
        )

    @staticmethod
    def _identity_key(notification_type: str) -> str | None:
        if notification_type.startswith(NotificationTypes.ASSIGNMENT_PREFIX):
            return "assignmentId"
        if notification_type == NotificationTypes.GRADE_PUBLISHED:
            return "submissionId"
        return None


def is_within_quiet_hours(hour: int, start: int | None, end: int | None) -> bool:
    """Check whether an hour falls in the [start, end) quiet window.

    A window with start > end spans midnight. A missing bound, or
    start == end, means no quiet hours.

    Example:
        >>> is_within_quiet_hours(23, 22, 7)
        True
        >>> is_within_quiet_hours(12, 22, 7)
        False
    """
    if start is None or end is None or start == end:
        return False
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end


class QuietHoursGate(AdmissionGate):
    """Drops non-critical candidates during the user's quiet hours.

    Suppressed candidates are not queued for later delivery.
    """

    name = "quiet_hours"

    async def check(self, context: AdmissionContext) -> GateResult:
        # CRITICAL ignores quiet hours on purpose (DESIGN.md, "Quiet hours")
        if context.priority == PriorityLevel.CRITICAL:
            return GateResult.allow()
        if context.preferences_error is not None:
            return GateResult.fail_open(context.preferences_error)

        preferences = context.effective_preferences
        hour = context.local_now.hour
        if is_within_quiet_hours(
            hour, preferences.quiet_hours_start, preferences.quiet_hours_end
        ):
            return GateResult.reject(
                f"quiet hours {preferences.quiet_hours_start}:00-"
                f"{preferences.quiet_hours_end}:00 (local hour {hour})"
            )
        return GateResult.allow()
