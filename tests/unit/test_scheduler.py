# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the digest scheduler."""

from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from src.infrastructure.background.scheduler import (
    DIGEST_DISPATCH_CRON,
    DigestScheduler,
    parse_cron,
)


class TestParseCron:
    """Tests for cron parsing."""

    def test_hourly_expression(self) -> None:
        """Test the default dispatch expression parses."""
        trigger = parse_cron(DIGEST_DISPATCH_CRON)

        assert isinstance(trigger, CronTrigger)
        assert str(trigger.timezone) == "UTC"

    def test_wrong_field_count_raises(self) -> None:
        """Test that six-field expressions are rejected."""
        with pytest.raises(ValueError, match="Invalid cron expression"):
            parse_cron("0 0 * * * *")


class TestDigestScheduler:
    """Tests for DigestScheduler task bookkeeping."""

    @pytest.fixture
    def actor(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def scheduler(self, actor) -> DigestScheduler:
        actors = {"dispatch_due_digests": actor}
        return DigestScheduler(actor_lookup=actors.get)

    @pytest.mark.asyncio
    async def test_execute_sends_actor_message(self, scheduler, actor) -> None:
        """Test that running a task enqueues the actor."""
        task = scheduler.add_cron_task("Dispatch", "dispatch_due_digests", "0 * * * *")

        await scheduler._execute_task(task.id)

        actor.send.assert_called_once_with()
        assert task.run_count == 1
        assert task.last_run is not None
        assert task.error_count == 0

    @pytest.mark.asyncio
    async def test_missing_actor_counts_error(self, scheduler) -> None:
        """Test that an unknown actor is recorded as an error."""
        task = scheduler.add_cron_task("Ghost", "no_such_actor", "0 * * * *")

        await scheduler._execute_task(task.id)

        assert task.error_count == 1
        assert task.run_count == 0

    @pytest.mark.asyncio
    async def test_send_failure_counts_error(self, scheduler, actor) -> None:
        """Test that broker errors are recorded, not raised."""
        actor.send.side_effect = ConnectionError("redis down")
        task = scheduler.add_cron_task("Dispatch", "dispatch_due_digests", "0 * * * *")

        await scheduler._execute_task(task.id)

        assert task.error_count == 1
        assert task.last_run is None

    @pytest.mark.asyncio
    async def test_disabled_task_not_executed(self, scheduler, actor) -> None:
        """Test that disabled tasks are skipped."""
        task = scheduler.add_cron_task(
            "Dispatch", "dispatch_due_digests", "0 * * * *", enabled=False
        )

        await scheduler._execute_task(task.id)

        actor.send.assert_not_called()

    def test_remove_task(self, scheduler) -> None:
        """Test removing a task that was never started."""
        task = scheduler.add_cron_task("Dispatch", "dispatch_due_digests", "0 * * * *")

        assert scheduler.remove_task(task.id) is True
        assert scheduler.remove_task(task.id) is False
        assert scheduler.list_tasks() == []

    def test_invalid_cron_not_registered(self, scheduler) -> None:
        """Test that a bad expression leaves no task behind."""
        with pytest.raises(ValueError):
            scheduler.add_cron_task("Bad", "dispatch_due_digests", "every hour")

        assert scheduler.list_tasks() == []

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler) -> None:
        """Test lifecycle and stats."""
        await scheduler.start()
        scheduler.add_cron_task("Dispatch", "dispatch_due_digests", DIGEST_DISPATCH_CRON)

        stats = scheduler.get_stats()
        assert stats["is_running"] is True
        assert stats["task_count"] == 1

        await scheduler.stop()
        assert scheduler.is_running is False
