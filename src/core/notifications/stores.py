# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collaborator contracts used by the notification core.

The core never talks to a database or a provider directly. It depends on
the protocols below; the SQL repositories in
``src.infrastructure.database.repositories`` and the transports in
``src.infrastructure.notifications.channels`` implement them.

Store implementations signal any read or write failure by raising
``StoreUnavailableError``. Senders raise whatever their transport raises;
the delivery orchestrator isolates those per channel.
"""

from datetime import datetime
from typing import Protocol, Sequence

from src.core.notifications.types import (
    DigestFrequency,
    NotificationFilter,
    NotificationPage,
    NotificationStats,
    PriorityLevel,
    Recipient,
    Rule,
    StoredNotification,
    UserNotificationPreferences,
)


class PreferenceStore(Protocol):
    """Read access to per-user notification preferences."""

    async def get(self, user_id: str) -> UserNotificationPreferences | None:
        """Return the stored preferences, or None when the user has none."""
        ...

    async def list_digest_subscribers(
        self, frequency: DigestFrequency
    ) -> list[UserNotificationPreferences]:
        """Return preferences of every user with an enabled digest at this frequency."""
        ...


class NotificationStore(Protocol):
    """Append-only notification log with read-receipt updates."""

    async def count_today(
        self, user_id: str, priority: PriorityLevel, day_start: datetime
    ) -> int:
        """Count notifications of one priority created since day_start."""
        ...

    async def find_recent(
        self, user_id: str, notification_type: str, since: datetime
    ) -> StoredNotification | None:
        """Return the newest notification of a type created since a time."""
        ...

    async def insert(self, notification: StoredNotification) -> str:
        """Persist a notification and return its id."""
        ...

    async def find_unread_low_priority(
        self,
        user_id: str,
        since: datetime,
        priorities: frozenset[PriorityLevel],
    ) -> list[StoredNotification]:
        """Return unread notifications of the given priorities since a time."""
        ...

    async def mark_read(self, ids: Sequence[str], read_at: datetime) -> None:
        """Flip the given notifications to read in one transaction."""
        ...

    async def get_stats(self, user_id: str, since: datetime) -> NotificationStats:
        """Aggregate counts for a user since a time."""
        ...

    async def mark_read_for_user(
        self, notification_id: str, user_id: str, read_at: datetime
    ) -> bool:
        """Mark one of the user's notifications read.

        Returns:
            False when the notification does not exist or belongs to
            another user.
        """
        ...

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        """Mark every unread notification of a user read; return the count."""
        ...

    async def list_for_user(
        self, user_id: str, filters: NotificationFilter
    ) -> NotificationPage:
        """Return one filtered page of a user's notifications."""
        ...


class RuleStore(Protocol):
    """Read access to school notification rules."""

    async def active_rules_for(self, school_id: str, event_type: str) -> list[Rule]:
        """Return active rules of a school for an event type."""
        ...


class RecipientDirectory(Protocol):
    """Lookup of contact details for a user."""

    async def get_recipient(self, user_id: str) -> Recipient | None:
        """Return contact details, or None for an unknown user."""
        ...


class EmailSender(Protocol):
    """Transport that sends one email."""

    async def send(
        self, to: str, subject: str, html: str, text: str | None = None
    ) -> None:
        """Send a message, raising on failure."""
        ...


class MessageSender(Protocol):
    """Transport that sends a short message to a phone or device."""

    async def send(
        self, destination: str, message: str, title: str | None = None
    ) -> None:
        """Send a message, raising on failure. SMS transports ignore title."""
        ...
