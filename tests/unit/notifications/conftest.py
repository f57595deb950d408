# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for notification tests.

Provides in-memory stores and recording transports that satisfy the store
protocols, plus a fixed clock. Any store method can be made to fail by
adding its name to the store's ``failing`` set.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.types import (
    ChannelType,
    DigestFrequency,
    NotificationCandidate,
    NotificationFilter,
    NotificationPage,
    NotificationStats,
    PriorityLevel,
    Recipient,
    Rule,
    StoredNotification,
    UserNotificationPreferences,
)

# Monday, 12:00 UTC
FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class _FailingMixin:
    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failing:
            raise StoreUnavailableError(f"{method} unavailable", ConnectionError("db down"))


class InMemoryNotificationStore(_FailingMixin):
    """Notification log kept in a list."""

    def __init__(self) -> None:
        super().__init__()
        self.items: list[StoredNotification] = []

    def add(self, notification: StoredNotification) -> StoredNotification:
        self.items.append(notification)
        return notification

    async def count_today(self, user_id: str, priority: PriorityLevel, day_start: datetime) -> int:
        self._enter("count_today")
        return sum(
            1
            for n in self.items
            if n.user_id == user_id and n.priority == priority and n.created_at >= day_start
        )

    async def find_recent(
        self, user_id: str, notification_type: str, since: datetime
    ) -> StoredNotification | None:
        self._enter("find_recent")
        matches = [
            n
            for n in self.items
            if n.user_id == user_id and n.type == notification_type and n.created_at >= since
        ]
        return max(matches, key=lambda n: n.created_at) if matches else None

    async def insert(self, notification: StoredNotification) -> str:
        self._enter("insert")
        self.items.append(replace(notification))
        return notification.id

    async def find_unread_low_priority(
        self, user_id: str, since: datetime, priorities: frozenset[PriorityLevel]
    ) -> list[StoredNotification]:
        self._enter("find_unread_low_priority")
        return [
            n
            for n in self.items
            if n.user_id == user_id
            and not n.read
            and n.priority in priorities
            and n.created_at >= since
        ]

    async def mark_read(self, ids: Sequence[str], read_at: datetime) -> None:
        self._enter("mark_read")
        wanted = set(ids)
        for n in self.items:
            if n.id in wanted:
                n.read = True
                n.read_at = read_at

    async def get_stats(self, user_id: str, since: datetime) -> NotificationStats:
        self._enter("get_stats")
        stats = NotificationStats()
        for n in self.items:
            if n.user_id != user_id or n.created_at < since:
                continue
            stats.total += 1
            stats.unread += 0 if n.read else 1
            stats.by_type[n.type] = stats.by_type.get(n.type, 0) + 1
            stats.by_priority[n.priority.name] = stats.by_priority.get(n.priority.name, 0) + 1
        return stats

    async def mark_read_for_user(self, notification_id: str, user_id: str, read_at: datetime) -> bool:
        self._enter("mark_read_for_user")
        for n in self.items:
            if n.id == notification_id and n.user_id == user_id:
                n.read = True
                n.read_at = read_at
                return True
        return False

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        self._enter("mark_all_read")
        count = 0
        for n in self.items:
            if n.user_id == user_id and not n.read:
                n.read = True
                n.read_at = read_at
                count += 1
        return count

    async def list_for_user(self, user_id: str, filters: NotificationFilter) -> NotificationPage:
        self._enter("list_for_user")
        mine = [n for n in self.items if n.user_id == user_id]
        matching = sorted(
            (
                n
                for n in mine
                if (filters.read is None or n.read == filters.read)
                and (filters.type is None or n.type == filters.type)
                and (filters.priority is None or n.priority == filters.priority)
            ),
            key=lambda n: n.created_at,
            reverse=True,
        )
        return NotificationPage(
            notifications=matching[filters.offset : filters.offset + filters.limit],
            total=len(matching),
            unread_count=sum(1 for n in mine if not n.read),
            limit=filters.limit,
            offset=filters.offset,
        )


class InMemoryPreferenceStore(_FailingMixin):
    """Preferences keyed by user id."""

    def __init__(self) -> None:
        super().__init__()
        self.items: dict[str, UserNotificationPreferences] = {}

    def put(self, preferences: UserNotificationPreferences) -> None:
        self.items[preferences.user_id] = preferences

    async def get(self, user_id: str) -> UserNotificationPreferences | None:
        self._enter("get")
        return self.items.get(user_id)

    async def list_digest_subscribers(
        self, frequency: DigestFrequency
    ) -> list[UserNotificationPreferences]:
        self._enter("list_digest_subscribers")
        return [
            p
            for p in self.items.values()
            if p.digest.enabled and p.digest.frequency == frequency
        ]


class InMemoryRuleStore(_FailingMixin):
    """Rules kept in a list."""

    def __init__(self) -> None:
        super().__init__()
        self.items: list[Rule] = []

    async def active_rules_for(self, school_id: str, event_type: str) -> list[Rule]:
        self._enter("active_rules_for")
        return [r for r in self.items if r.school_id == school_id and r.event_type == event_type]


class InMemoryRecipientDirectory(_FailingMixin):
    """Recipients keyed by user id."""

    def __init__(self) -> None:
        super().__init__()
        self.items: dict[str, Recipient] = {}

    def put(self, recipient: Recipient) -> None:
        self.items[recipient.user_id] = recipient

    async def get_recipient(self, user_id: str) -> Recipient | None:
        self._enter("get_recipient")
        return self.items.get(user_id)


class RecordingEmailSender:
    """Email transport that records messages instead of sending them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.error = error

    async def send(self, to: str, subject: str, html: str, text: str | None = None) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})


class RecordingMessageSender:
    """SMS or push transport that records messages."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.error = error

    async def send(self, destination: str, message: str, title: str | None = None) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append({"destination": destination, "message": message, "title": title})


@pytest.fixture
def now() -> datetime:
    """The fixed current time."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    """Clock callable returning the fixed time."""
    return lambda: now


@pytest.fixture
def policy() -> NotificationPolicy:
    """Policy with the default caps and windows."""
    return NotificationPolicy()


@pytest.fixture
def notification_store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def preference_store() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def rule_store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def recipients() -> InMemoryRecipientDirectory:
    directory = InMemoryRecipientDirectory()
    directory.put(
        Recipient(
            user_id="user-1",
            email="student@example.com",
            phone="+15550100",
            push_tokens=("device-token-1",),
            full_name="Ada Student",
        )
    )
    return directory


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def sms_sender() -> RecordingMessageSender:
    return RecordingMessageSender()


@pytest.fixture
def push_sender() -> RecordingMessageSender:
    return RecordingMessageSender()


@pytest.fixture
def make_candidate():
    """Factory for notification candidates."""

    def _make(
        notification_type: str = "ASSIGNMENT_DUE",
        user_id: str = "user-1",
        metadata: dict[str, Any] | None = None,
        priority: PriorityLevel | None = None,
        channels: frozenset[ChannelType] = frozenset({ChannelType.IN_APP}),
    ) -> NotificationCandidate:
        return NotificationCandidate(
            user_id=user_id,
            type=notification_type,
            title="Test notification",
            message="Something happened",
            explicit_priority=priority,
            metadata=metadata if metadata is not None else {},
            channels=channels,
            school_id="school-1",
        )

    return _make


@pytest.fixture
def make_stored(now):
    """Factory for stored notifications."""
    counter = iter(range(1, 10_000))

    def _make(
        notification_type: str = "ASSIGNMENT_DUE",
        priority: PriorityLevel = PriorityLevel.LOW,
        created_at: datetime | None = None,
        user_id: str = "user-1",
        metadata: dict[str, Any] | None = None,
        read: bool = False,
    ) -> StoredNotification:
        return StoredNotification(
            id=f"n-{next(counter)}",
            user_id=user_id,
            type=notification_type,
            title=f"{notification_type} title",
            message="Body",
            priority=priority,
            created_at=created_at or now,
            metadata=metadata or {},
            read=read,
        )

    return _make
