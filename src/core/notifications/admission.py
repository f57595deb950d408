# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission pipeline.

Composes the admission gates into a single decision. Gates run in a fixed
order and the first rejection wins:

    preferences -> frequency -> deduplication -> quiet hours

Store failures never turn into a rejection. A gate whose lookup raises
StoreUnavailableError is treated as passed, logged, and listed in
``AdmissionDecision.degraded_gates`` so callers can tell a clean admit
from one made despite an outage.

Example:
    >>> pipeline = AdmissionPipeline(preference_store, notification_store, policy)
    >>> decision = await pipeline.should_send(candidate)
    >>> if decision:
    ...     await orchestrator.deliver(candidate, decision.priority)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from src.core.notifications.classifier import PriorityClassifier
from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.gates import (
    AdmissionContext,
    AdmissionGate,
    DeduplicationGuard,
    FrequencyLimiter,
    GateResult,
    PreferenceGate,
    QuietHoursGate,
)
from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.stores import NotificationStore, PreferenceStore
from src.core.notifications.types import (
    NotificationCandidate,
    PriorityLevel,
    UserNotificationPreferences,
)
from src.utils.datetime import resolve_timezone, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of running a candidate through the pipeline.

    Truthy when admitted.

    Attributes:
        admitted: Whether the candidate should be persisted and delivered.
        priority: Priority the candidate was judged at.
        reason: Rejection reason, None when admitted.
        rejected_by: Name of the rejecting gate, None when admitted.
        degraded_gates: Gates that passed only because a store failed.
        preferences: Preferences loaded during admission, if any.
    """

    admitted: bool
    priority: PriorityLevel
    reason: str | None = None
    rejected_by: str | None = None
    degraded_gates: tuple[str, ...] = ()
    preferences: UserNotificationPreferences | None = None

    def __bool__(self) -> bool:
        return self.admitted

    @property
    def degraded(self) -> bool:
        """True when any gate failed open."""
        return bool(self.degraded_gates)


class AdmissionPipeline:
    """Decides whether a candidate notification is sent.

    Args:
        preference_store: Source of user preferences.
        notification_store: Notification log used by frequency and dedup checks.
        policy: Caps, windows and critical types.
        classifier: Used when a candidate has no explicit priority.
        gates: Override the default gate sequence.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        preference_store: PreferenceStore,
        notification_store: NotificationStore,
        policy: NotificationPolicy,
        classifier: PriorityClassifier | None = None,
        gates: Sequence[AdmissionGate] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._preference_store = preference_store
        self._policy = policy
        self._classifier = classifier or PriorityClassifier()
        self._clock = clock
        self._gates: tuple[AdmissionGate, ...] = tuple(
            gates
            if gates is not None
            else (
                PreferenceGate(policy),
                FrequencyLimiter(notification_store, policy),
                DeduplicationGuard(notification_store, policy),
                QuietHoursGate(),
            )
        )

    @property
    def gates(self) -> tuple[AdmissionGate, ...]:
        return self._gates

    def resolve_priority(self, candidate: NotificationCandidate) -> PriorityLevel:
        """Explicit priority if set, otherwise the classified one."""
        if candidate.explicit_priority is not None:
            return candidate.explicit_priority
        return self._classifier.classify(candidate.type, candidate.metadata)

    async def should_send(self, candidate: NotificationCandidate) -> AdmissionDecision:
        """Run every gate in order, stopping at the first rejection.

        Args:
            candidate: The notification under evaluation.

        Returns:
            The admission decision. Never raises for store failures.
        """
        priority = self.resolve_priority(candidate)
        context = await self._build_context(candidate, priority)
        degraded: list[str] = []

        for gate in self._gates:
            result = await self._run_gate(gate, context)
            if result.degraded:
                degraded.append(gate.name)
            if not result.allowed:
                logger.info(
                    "Notification rejected by %s: user=%s type=%s priority=%s reason=%s",
                    gate.name,
                    candidate.user_id,
                    candidate.type,
                    priority.name,
                    result.reason,
                )
                return AdmissionDecision(
                    admitted=False,
                    priority=priority,
                    reason=result.reason,
                    rejected_by=gate.name,
                    degraded_gates=tuple(degraded),
                    preferences=context.preferences,
                )

        logger.debug(
            "Notification admitted: user=%s type=%s priority=%s degraded=%s",
            candidate.user_id,
            candidate.type,
            priority.name,
            degraded,
        )
        return AdmissionDecision(
            admitted=True,
            priority=priority,
            degraded_gates=tuple(degraded),
            preferences=context.preferences,
        )

    async def _build_context(
        self, candidate: NotificationCandidate, priority: PriorityLevel
    ) -> AdmissionContext:
        preferences = None
        preferences_error = None
        try:
            preferences = await self._preference_store.get(candidate.user_id)
        except StoreUnavailableError as e:
            preferences_error = e
            logger.warning(
                "Failed to load preferences for user %s, admitting with defaults",
                candidate.user_id,
                exc_info=True,
            )

        tz_name = preferences.timezone if preferences is not None else None
        return AdmissionContext(
            candidate=candidate,
            priority=priority,
            now=self._clock(),
            timezone=resolve_timezone(tz_name, self._policy.default_timezone),
            preferences=preferences,
            preferences_error=preferences_error,
        )

    async def _run_gate(self, gate: AdmissionGate, context: AdmissionContext) -> GateResult:
        try:
            return await gate.check(context)
        except StoreUnavailableError as e:
            logger.warning(
                "Gate %s failed open for user %s type %s",
                gate.name,
                context.candidate.user_id,
                context.candidate.type,
                exc_info=True,
            )
            return GateResult.fail_open(e)
