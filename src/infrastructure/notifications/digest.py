# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Digest batching of low-priority notifications.

A digest collects a user's unread LOW and INFO notifications from the
last day (DAILY) or week (WEEKLY), groups them by type and sends a single
summary email. Included notifications are marked read only after the
email was accepted, so a failed send leaves everything for the next run.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.stores import EmailSender, NotificationStore, RecipientDirectory
from src.core.notifications.types import (
    DigestFrequency,
    StoredNotification,
    UserNotificationPreferences,
)
from src.infrastructure.notifications.templates import (
    DIGEST_SUBJECTS,
    render_digest_html,
    render_digest_text,
)
from src.utils.datetime import resolve_timezone, to_local, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DigestResult:
    """Outcome of one digest run.

    Attributes:
        sent: Whether a digest email went out.
        count: Number of notifications in the digest.
        marked_read: Whether the included notifications were marked read.
        reason: Why nothing was sent, if applicable.
    """

    sent: bool
    count: int
    marked_read: bool = False
    reason: str | None = None


def group_by_type(
    notifications: list[StoredNotification],
) -> dict[str, list[StoredNotification]]:
    """Group notifications by type, newest first within each group."""
    grouped: dict[str, list[StoredNotification]] = defaultdict(list)
    for notification in sorted(notifications, key=lambda n: n.created_at, reverse=True):
        grouped[notification.type].append(notification)
    return dict(grouped)


def is_digest_due(
    preferences: UserNotificationPreferences,
    now: datetime,
    default_timezone: str = "UTC",
) -> bool:
    """Check whether a user's digest should go out in the current hour.

    Due when the user's local hour equals the configured digest hour;
    WEEKLY digests additionally only on Mondays.
    """
    if not preferences.digest.enabled:
        return False
    local = to_local(now, resolve_timezone(preferences.timezone, default_timezone))
    if local.hour != preferences.digest.hour:
        return False
    if preferences.digest.frequency == DigestFrequency.WEEKLY:
        return local.weekday() == 0
    return True


class DigestBatcher:
    """Builds and sends notification digests.

    Args:
        notification_store: Source of unread notifications.
        recipients: Source of the digest email address.
        email_sender: Transport for the digest email.
        policy: Digest priorities and windows.
        app_name: Product name shown in the footer.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        notification_store: NotificationStore,
        recipients: RecipientDirectory,
        email_sender: EmailSender,
        policy: NotificationPolicy,
        app_name: str = "School Platform",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = notification_store
        self._recipients = recipients
        self._email_sender = email_sender
        self._policy = policy
        self._app_name = app_name
        self._clock = clock

    async def collect(
        self, user_id: str, frequency: DigestFrequency
    ) -> dict[str, list[StoredNotification]]:
        """Return the digest batch for a user without sending it.

        Raises:
            StoreUnavailableError: If the notification store fails.
        """
        now = self._clock()
        since = now - self._policy.digest_window(frequency)
        candidates = await self._store.find_unread_low_priority(
            user_id, since, self._policy.digest_priorities
        )
        eligible = [
            n
            for n in candidates
            if not n.read
            and n.priority in self._policy.digest_priorities
            and since <= n.created_at <= now
        ]
        return group_by_type(eligible)

    async def build_and_send_digest(
        self, user_id: str, frequency: DigestFrequency = DigestFrequency.DAILY
    ) -> DigestResult:
        """Send one digest covering the user's recent low-priority notifications.

        Args:
            user_id: Digest recipient.
            frequency: DAILY (last 24h) or WEEKLY (last 7 days).

        Returns:
            DigestResult describing what happened.

        Raises:
            StoreUnavailableError: If unread notifications or the recipient
                cannot be read; nothing is sent or marked in that case.
        """
        grouped = await self.collect(user_id, frequency)
        count = sum(len(items) for items in grouped.values())
        if count == 0:
            logger.debug("No digest items for user %s (%s)", user_id, frequency.value)
            return DigestResult(sent=False, count=0, reason="nothing to send")

        recipient = await self._recipients.get_recipient(user_id)
        if recipient is None or not recipient.email:
            logger.info("Skipping digest for user %s: no email address", user_id)
            return DigestResult(sent=False, count=count, reason="no email address")

        name = recipient.full_name or "there"
        try:
            await self._email_sender.send(
                recipient.email,
                DIGEST_SUBJECTS[frequency],
                render_digest_html(grouped, name, frequency, self._app_name),
                render_digest_text(grouped, name, frequency),
            )
        except Exception as e:
            logger.error(
                "Failed to send %s digest to user %s: %s",
                frequency.value,
                user_id,
                e,
                exc_info=True,
            )
            return DigestResult(sent=False, count=count, reason=f"send failed: {e}")

        ids = [n.id for items in grouped.values() for n in items]
        try:
            await self._store.mark_read(ids, self._clock())
        except StoreUnavailableError:
            logger.error(
                "Digest sent to user %s but %d notifications could not be marked read",
                user_id,
                len(ids),
                exc_info=True,
            )
            return DigestResult(sent=True, count=count, marked_read=False)

        logger.info(
            "Sent %s digest to user %s with %d notifications",
            frequency.value,
            user_id,
            count,
        )
        return DigestResult(sent=True, count=count, marked_read=True)
