# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Digest background tasks.

Tasks for sending daily and weekly notification digests:
- dispatch_due_digests: hourly fan-out to every subscriber whose digest
  hour has come in their timezone
- send_user_digest: builds and emails one user's digest
"""

import logging
from typing import Any

import dramatiq

from src.core.notifications.types import DigestFrequency
from src.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from src.infrastructure.background.tasks.base import run_async
from src.utils.logging import log_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)


@dramatiq.actor(
    queue_name=Queues.DIGESTS,
    max_retries=3,
    time_limit=120000,  # 2 minutes
    priority=Priority.LOW,
)
def send_user_digest(user_id: str, frequency: str = DigestFrequency.DAILY.value) -> dict[str, Any]:
    """Build and send one user's digest.

    Store read failures propagate so Dramatiq retries the message. A failed
    email send is reported in the result and not retried, since nothing was
    marked read and the next scheduled run picks the items up again.

    Args:
        user_id: Digest recipient.
        frequency: "DAILY" or "WEEKLY".

    Returns:
        Digest result as a dictionary.
    """

    async def _send() -> dict[str, Any]:
        from src.core.config import get_settings
        from src.infrastructure.database.connection import get_worker_sessionmaker
        from src.infrastructure.database.repositories import (
            SqlNotificationStore,
            SqlRecipientDirectory,
        )
        from src.infrastructure.notifications.service import build_digest_batcher

        sessionmaker = get_worker_sessionmaker()
        batcher = build_digest_batcher(
            get_settings(),
            SqlNotificationStore(sessionmaker),
            SqlRecipientDirectory(sessionmaker),
        )
        with log_context(user_id=user_id, digest_frequency=frequency):
            result = await batcher.build_and_send_digest(user_id, DigestFrequency(frequency))

        return {
            "user_id": user_id,
            "frequency": frequency,
            "sent": result.sent,
            "count": result.count,
            "marked_read": result.marked_read,
            "reason": result.reason,
        }

    return run_async(_send())


@dramatiq.actor(
    queue_name=Queues.DIGESTS,
    max_retries=1,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def dispatch_due_digests() -> dict[str, Any]:
    """Enqueue a digest for every subscriber due in the current hour.

    Runs hourly. A subscriber is due when the current hour in their
    timezone equals their configured digest hour; weekly subscribers are
    only due on Mondays.

    Returns:
        Number of enqueued digests per frequency.
    """

    async def _dispatch() -> dict[str, Any]:
        from src.core.config import get_settings
        from src.infrastructure.database.connection import get_worker_sessionmaker
        from src.infrastructure.database.repositories import SqlPreferenceStore
        from src.infrastructure.notifications.digest import is_digest_due
        from src.utils.datetime import utc_now

        settings = get_settings()
        store = SqlPreferenceStore(get_worker_sessionmaker())
        now = utc_now()

        enqueued: dict[str, int] = {}
        for frequency in DigestFrequency:
            subscribers = await store.list_digest_subscribers(frequency)
            due = [
                p
                for p in subscribers
                if is_digest_due(p, now, settings.notifications.default_timezone)
            ]
            for preferences in due:
                send_user_digest.send(preferences.user_id, frequency.value)
            enqueued[frequency.value] = len(due)

        logger.info(
            "Dispatched digests: %d daily, %d weekly",
            enqueued[DigestFrequency.DAILY.value],
            enqueued[DigestFrequency.WEEKLY.value],
        )
        return {"enqueued": enqueued, "dispatched_at": now.isoformat()}

    return run_async(_dispatch())


def get_digest_actors() -> list:
    """Get list of digest actors."""
    return [send_user_digest, dispatch_due_digests]
