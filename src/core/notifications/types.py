# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain types for notification admission and delivery.

Everything flowing between the classifier, the admission gates, the rule
evaluator, delivery and the digest batcher is defined here. The types are
plain dataclasses so they can be built in tests without a database and
mapped to ORM rows by the repositories.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any
from uuid import uuid4

from src.utils.datetime import utc_now


class PriorityLevel(IntEnum):
    """Importance of a notification.

    Values are ordered so that comparisons read naturally:
    ``PriorityLevel.CRITICAL > PriorityLevel.HIGH``.
    """

    INFO = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    CRITICAL = 5

    @classmethod
    def from_name(cls, name: str) -> "PriorityLevel":
        """Look up a level by its upper-case name."""
        return cls[name.upper()]


class ChannelType(str, Enum):
    """Delivery channels a notification can be routed to."""

    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class DigestFrequency(str, Enum):
    """How often a user's digest is sent."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"


class NotificationTypes:
    """Known notification type identifiers.

    Types are free-form strings; these are the ones the classifier and
    the default preferences know about.
    """

    SAFETY_ALERT = "SAFETY_ALERT"
    EMERGENCY = "EMERGENCY"
    RISK_ALERT = "RISK_ALERT"
    GRADE_PUBLISHED = "GRADE_PUBLISHED"
    ASSIGNMENT_DUE = "ASSIGNMENT_DUE"
    ASSIGNMENT_GRADED = "ASSIGNMENT_GRADED"
    ASSIGNMENT_CREATED = "ASSIGNMENT_CREATED"
    ATTENDANCE_WARNING = "ATTENDANCE_WARNING"
    ATTENDANCE_MARKED = "ATTENDANCE_MARKED"
    EVENT_REMINDER = "EVENT_REMINDER"
    PARENT_MESSAGE = "PARENT_MESSAGE"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    TEACHER_MESSAGE = "TEACHER_MESSAGE"
    PEER_ACTIVITY = "PEER_ACTIVITY"
    PAYMENT_DUE = "PAYMENT_DUE"
    RESOURCE_RECOMMENDATION = "RESOURCE_RECOMMENDATION"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"
    GENERAL_INFO = "GENERAL_INFO"

    ASSIGNMENT_PREFIX = "ASSIGNMENT_"

    DEFAULT_ENABLED = (
        ASSIGNMENT_DUE,
        GRADE_PUBLISHED,
        ATTENDANCE_WARNING,
        RISK_ALERT,
        EVENT_REMINDER,
        PARENT_MESSAGE,
    )


@dataclass
class DigestSettings:
    """Digest subscription of a single user.

    Attributes:
        enabled: Whether the user receives digests.
        frequency: DAILY or WEEKLY.
        time: Local delivery time as "HH:MM".
    """

    enabled: bool = True
    frequency: DigestFrequency = DigestFrequency.DAILY
    time: str = "08:00"

    @property
    def hour(self) -> int:
        """Local hour of day the digest is due, 8 if unparseable."""
        try:
            hour = int(self.time.split(":", 1)[0])
        except (AttributeError, ValueError):
            return 8
        return hour if 0 <= hour <= 23 else 8

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DigestSettings":
        """Build from stored JSON, filling gaps with defaults."""
        if not data:
            return cls()
        try:
            frequency = DigestFrequency(str(data.get("frequency", "DAILY")).upper())
        except ValueError:
            frequency = DigestFrequency.DAILY
        return cls(
            enabled=bool(data.get("enabled", True)),
            frequency=frequency,
            time=str(data.get("time", "08:00")),
        )


@dataclass
class UserNotificationPreferences:
    """Per-user channel, type, quiet-hours and digest preferences.

    Quiet hours are whole local hours in 0..23. ``None`` for either bound
    disables quiet hours; 0 is a valid bound.
    """

    user_id: str
    email: bool = True
    push: bool = True
    sms: bool = False
    in_app: bool = True
    quiet_hours_start: int | None = 22
    quiet_hours_end: int | None = 7
    enabled_types: frozenset[str] = field(
        default_factory=lambda: frozenset(NotificationTypes.DEFAULT_ENABLED)
    )
    digest: DigestSettings = field(default_factory=DigestSettings)
    timezone: str | None = None

    @classmethod
    def defaults(cls, user_id: str) -> "UserNotificationPreferences":
        """Preferences a user implicitly has before saving any."""
        return cls(user_id=user_id)

    def allows_type(self, notification_type: str) -> bool:
        """Check whether the user opted into a notification type."""
        return notification_type in self.enabled_types


@dataclass
class NotificationCandidate:
    """A notification proposed for a user, before admission.

    Attributes:
        user_id: Recipient.
        type: Notification type identifier.
        title: Display title.
        message: Display body.
        explicit_priority: Priority fixed by the caller; classified if None.
        metadata: Free-form attributes used by classification and dedup.
        channels: Requested delivery channels.
        school_id: Tenant the notification belongs to.
        action_url: Link rendered as a call to action.
    """

    user_id: str
    type: str
    title: str
    message: str
    explicit_priority: PriorityLevel | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    channels: frozenset[ChannelType] = frozenset({ChannelType.IN_APP})
    school_id: str | None = None
    action_url: str | None = None


@dataclass
class StoredNotification:
    """A persisted notification.

    ``created_at`` is always timezone-aware UTC.
    """

    id: str
    user_id: str
    type: str
    title: str
    message: str
    priority: PriorityLevel
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)
    channels: frozenset[ChannelType] = frozenset({ChannelType.IN_APP})
    school_id: str | None = None
    action_url: str | None = None
    read: bool = False
    read_at: datetime | None = None

    @classmethod
    def from_candidate(
        cls,
        candidate: NotificationCandidate,
        priority: PriorityLevel,
        created_at: datetime | None = None,
    ) -> "StoredNotification":
        """Materialize an admitted candidate with a fresh id."""
        return cls(
            id=str(uuid4()),
            user_id=candidate.user_id,
            type=candidate.type,
            title=candidate.title,
            message=candidate.message,
            priority=priority,
            created_at=created_at or utc_now(),
            metadata=dict(candidate.metadata),
            channels=frozenset(candidate.channels),
            school_id=candidate.school_id,
            action_url=candidate.action_url or candidate.metadata.get("actionUrl"),
        )


@dataclass
class Rule:
    """A school-defined mapping from an event to a notification.

    Attributes:
        id: Rule identifier.
        school_id: Owning school.
        event_type: Event type the rule reacts to.
        notification_type: Type of the produced notification.
        conditions: Operator tree matched against event metadata.
        title_template: Title with ``{{key}}`` placeholders.
        message_template: Message with ``{{key}}`` placeholders.
        is_active: Inactive rules never fire.
        priority: Rule ordering, higher first.
        channels: Channels requested for produced notifications.
    """

    id: str
    school_id: str
    event_type: str
    notification_type: str
    conditions: dict[str, Any] = field(default_factory=dict)
    title_template: str | None = None
    message_template: str | None = None
    is_active: bool = True
    priority: int = 0
    channels: frozenset[ChannelType] = frozenset({ChannelType.IN_APP})


@dataclass
class SchoolEvent:
    """Something that happened at a school and may produce notifications."""

    school_id: str
    event_type: str
    user_id: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Recipient:
    """Contact details of a notification recipient."""

    user_id: str
    email: str | None = None
    phone: str | None = None
    push_tokens: tuple[str, ...] = ()
    full_name: str | None = None


@dataclass
class DeliveryResult:
    """Per-channel outcome of delivering one stored notification.

    A channel that was not requested, or was suppressed by preferences,
    reports False with no entry in ``errors``.
    """

    in_app: bool = False
    email: bool = False
    sms: bool = False
    push: bool = False
    errors: dict[ChannelType, str] = field(default_factory=dict)

    def set(self, channel: ChannelType, delivered: bool) -> None:
        """Record the outcome for a channel."""
        setattr(self, channel.value.lower(), delivered)

    def get(self, channel: ChannelType) -> bool:
        """Read the outcome for a channel."""
        return getattr(self, channel.value.lower())


@dataclass
class NotificationStats:
    """Aggregate counts for one user over a trailing period."""

    total: int = 0
    unread: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


@dataclass
class NotificationFilter:
    """Filters for listing a user's notifications, newest first.

    Attributes:
        read: Only read (True) or unread (False) notifications; None for both.
        type: Only this notification type.
        priority: Only this priority.
        limit: Page size.
        offset: Rows to skip.
    """

    read: bool | None = None
    type: str | None = None
    priority: PriorityLevel | None = None
    limit: int = 50
    offset: int = 0


@dataclass
class NotificationPage:
    """One page of a user's notifications.

    ``total`` counts every row matching the filter; ``unread_count`` counts
    all of the user's unread notifications regardless of the filter.
    """

    notifications: list[StoredNotification]
    total: int
    unread_count: int
    limit: int
    offset: int
