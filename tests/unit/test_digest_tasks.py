# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the digest Dramatiq actors.

Actors run their coroutine on a thread-local event loop, so each test
invokes the actor in a worker thread like Dramatiq does.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.notifications.types import (
    DigestFrequency,
    DigestSettings,
    UserNotificationPreferences,
)
from src.infrastructure.background.tasks import dispatch_due_digests, send_user_digest
from src.infrastructure.notifications.digest import DigestResult

# Monday, 08:00 UTC
NOW = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


def run_in_worker(actor, *args):
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(actor, *args).result()


@pytest.fixture
def worker_sessionmaker():
    with patch(
        "src.infrastructure.database.connection.get_worker_sessionmaker",
        return_value=MagicMock(),
    ) as mock:
        yield mock


class TestDispatchDueDigests:
    """Tests for the hourly dispatcher."""

    def test_enqueues_only_due_subscribers(self, worker_sessionmaker) -> None:
        subscribers = {
            DigestFrequency.DAILY: [
                UserNotificationPreferences(user_id="due", digest=DigestSettings(time="08:00")),
                UserNotificationPreferences(user_id="later", digest=DigestSettings(time="18:00")),
            ],
            DigestFrequency.WEEKLY: [
                UserNotificationPreferences(
                    user_id="weekly",
                    digest=DigestSettings(frequency=DigestFrequency.WEEKLY, time="08:00"),
                ),
            ],
        }
        store = MagicMock()
        store.list_digest_subscribers = AsyncMock(side_effect=lambda f: subscribers[f])

        with (
            patch(
                "src.infrastructure.database.repositories.SqlPreferenceStore",
                return_value=store,
            ),
            patch("src.utils.datetime.utc_now", return_value=NOW),
            patch.object(send_user_digest, "send") as mock_send,
        ):
            result = run_in_worker(dispatch_due_digests)

        assert result["enqueued"] == {"DAILY": 1, "WEEKLY": 1}
        sent = sorted(call.args for call in mock_send.call_args_list)
        assert sent == [("due", "DAILY"), ("weekly", "WEEKLY")]


class TestSendUserDigest:
    """Tests for the per-user digest actor."""

    def test_returns_digest_result(self, worker_sessionmaker) -> None:
        batcher = MagicMock()
        batcher.build_and_send_digest = AsyncMock(
            return_value=DigestResult(sent=True, count=4, marked_read=True)
        )

        with patch(
            "src.infrastructure.notifications.service.build_digest_batcher",
            return_value=batcher,
        ):
            result = run_in_worker(send_user_digest, "user-1", "WEEKLY")

        batcher.build_and_send_digest.assert_awaited_once_with("user-1", DigestFrequency.WEEKLY)
        assert result == {
            "user_id": "user-1",
            "frequency": "WEEKLY",
            "sent": True,
            "count": 4,
            "marked_read": True,
            "reason": None,
        }
