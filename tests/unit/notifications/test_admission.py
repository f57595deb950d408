# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the admission pipeline."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.core.notifications.admission import AdmissionPipeline
from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.gates import AdmissionGate, GateResult
from src.core.notifications.types import PriorityLevel, UserNotificationPreferences


@pytest.fixture
def pipeline(preference_store, notification_store, policy, clock):
    return AdmissionPipeline(preference_store, notification_store, policy, clock=clock)


class TestPriorityResolution:
    """Tests for explicit versus classified priority."""

    def test_explicit_priority_wins(self, pipeline, make_candidate):
        candidate = make_candidate(
            "ASSIGNMENT_DUE", metadata={"hoursRemaining": 2}, priority=PriorityLevel.LOW
        )

        assert pipeline.resolve_priority(candidate) == PriorityLevel.LOW

    def test_classified_when_not_explicit(self, pipeline, make_candidate):
        candidate = make_candidate("ASSIGNMENT_DUE", metadata={"hoursRemaining": 2})

        assert pipeline.resolve_priority(candidate) == PriorityLevel.HIGH


class TestShouldSend:
    """Tests for the full gate sequence."""

    @pytest.mark.asyncio
    async def test_admits_clean_candidate(self, pipeline, make_candidate):
        decision = await pipeline.should_send(
            make_candidate("ASSIGNMENT_DUE", metadata={"hoursRemaining": 12})
        )

        assert decision
        assert decision.admitted
        assert decision.priority == PriorityLevel.HIGH
        assert decision.rejected_by is None
        assert not decision.degraded

    @pytest.mark.asyncio
    async def test_preference_rejection_stops_pipeline(
        self, pipeline, preference_store, notification_store, make_candidate
    ):
        preference_store.put(
            UserNotificationPreferences(user_id="user-1", enabled_types=frozenset())
        )

        decision = await pipeline.should_send(make_candidate("ANNOUNCEMENT"))

        assert not decision
        assert decision.rejected_by == "preferences"
        assert notification_store.calls == []

    @pytest.mark.asyncio
    async def test_frequency_rejection_reported(
        self, pipeline, notification_store, make_candidate, make_stored
    ):
        for _ in range(3):
            notification_store.add(make_stored("ASSIGNMENT_CREATED", priority=PriorityLevel.LOW))

        decision = await pipeline.should_send(
            make_candidate("ASSIGNMENT_CREATED", metadata={"assignmentId": "new"})
        )

        assert decision.rejected_by == "frequency"
        assert decision.priority == PriorityLevel.LOW

    @pytest.mark.asyncio
    async def test_duplicate_rejection_reported(
        self, pipeline, notification_store, make_candidate, make_stored, now
    ):
        notification_store.add(
            make_stored(
                "ASSIGNMENT_DUE",
                priority=PriorityLevel.HIGH,
                created_at=now - timedelta(hours=1),
                metadata={"assignmentId": "a-1"},
            )
        )

        decision = await pipeline.should_send(
            make_candidate(
                "ASSIGNMENT_DUE", metadata={"assignmentId": "a-1", "hoursRemaining": 5}
            )
        )

        assert decision.rejected_by == "deduplication"

    @pytest.mark.asyncio
    async def test_quiet_hours_rejection_reported(
        self, preference_store, notification_store, policy, make_candidate, now
    ):
        pipeline = AdmissionPipeline(
            preference_store,
            notification_store,
            policy,
            clock=lambda: now.replace(hour=23),
        )

        decision = await pipeline.should_send(make_candidate("PARENT_MESSAGE"))

        assert decision.rejected_by == "quiet_hours"

    @pytest.mark.asyncio
    async def test_user_timezone_applies_to_quiet_hours(
        self, pipeline, preference_store, make_candidate
    ):
        # 12:00 UTC is 23:00 in Sydney (AEDT)
        preference_store.put(
            UserNotificationPreferences(user_id="user-1", timezone="Australia/Sydney")
        )

        decision = await pipeline.should_send(make_candidate("PARENT_MESSAGE"))

        assert decision.rejected_by == "quiet_hours"

    @pytest.mark.asyncio
    async def test_emergency_passes_everything(
        self, preference_store, notification_store, policy, make_candidate, now
    ):
        preference_store.put(
            UserNotificationPreferences(user_id="user-1", enabled_types=frozenset())
        )
        pipeline = AdmissionPipeline(
            preference_store,
            notification_store,
            policy,
            clock=lambda: now.replace(hour=3),
        )

        decision = await pipeline.should_send(make_candidate("EMERGENCY"))

        assert decision.admitted
        assert decision.priority == PriorityLevel.CRITICAL

    @pytest.mark.asyncio
    async def test_returns_loaded_preferences(self, pipeline, preference_store, make_candidate):
        prefs = UserNotificationPreferences(user_id="user-1")
        preference_store.put(prefs)

        decision = await pipeline.should_send(make_candidate("ASSIGNMENT_DUE"))

        assert decision.preferences is prefs


class TestFailOpen:
    """Tests for store failures never rejecting a candidate."""

    @pytest.mark.asyncio
    async def test_preference_store_down(self, pipeline, preference_store, make_candidate):
        preference_store.failing.add("get")

        decision = await pipeline.should_send(make_candidate("ANNOUNCEMENT"))

        assert decision.admitted
        assert "preferences" in decision.degraded_gates
        assert "quiet_hours" in decision.degraded_gates
        assert decision.preferences is None

    @pytest.mark.asyncio
    async def test_notification_store_down(
        self, pipeline, notification_store, make_candidate, caplog
    ):
        notification_store.failing.update({"count_today", "find_recent"})

        with caplog.at_level("WARNING"):
            decision = await pipeline.should_send(make_candidate("ASSIGNMENT_DUE"))

        assert decision.admitted
        assert decision.degraded_gates == ("frequency", "deduplication")
        assert "failed open" in caplog.text

    @pytest.mark.asyncio
    async def test_store_error_in_custom_gate_fails_open(
        self, preference_store, notification_store, policy, make_candidate
    ):
        class FlakyGate(AdmissionGate):
            name = "flaky"

            async def check(self, context):
                raise StoreUnavailableError("boom")

        pipeline = AdmissionPipeline(
            preference_store, notification_store, policy, gates=[FlakyGate()]
        )

        decision = await pipeline.should_send(make_candidate())

        assert decision.admitted
        assert decision.degraded_gates == ("flaky",)

    @pytest.mark.asyncio
    async def test_first_rejection_short_circuits(
        self, preference_store, notification_store, policy, make_candidate
    ):
        first = AsyncMock()
        first.name = "first"
        first.check.return_value = GateResult.reject("no")
        second = AsyncMock()
        second.name = "second"

        pipeline = AdmissionPipeline(
            preference_store, notification_store, policy, gates=[first, second]
        )

        decision = await pipeline.should_send(make_candidate())

        assert decision.rejected_by == "first"
        second.check.assert_not_called()
