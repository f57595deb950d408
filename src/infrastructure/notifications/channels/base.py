# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for notification channels.

This module defines the abstract base class and shared types
for all notification channels. Each channel handles delivery
through a specific medium (in-app, push, email, SMS).

Channels never raise from send(): transport errors are turned into a
failed ChannelResult so one channel cannot abort another.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.core.notifications.types import (
    ChannelType,
    Recipient,
    StoredNotification,
    UserNotificationPreferences,
)
from src.utils.datetime import utc_now


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class NotificationPayload:
    """Everything a channel needs to deliver one notification.

    Attributes:
        notification: The persisted notification.
        recipient: Contact details, None when the user is unknown.
    """

    notification: StoredNotification
    recipient: Recipient | None = None

    @property
    def email(self) -> str | None:
        return self.recipient.email if self.recipient else None

    @property
    def phone(self) -> str | None:
        return self.recipient.phone if self.recipient else None

    @property
    def push_tokens(self) -> tuple[str, ...]:
        return self.recipient.push_tokens if self.recipient else ()


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        message_id: External message ID (if available).
        error_message: Error message if failed or skipped.
        sent_at: When the attempt finished.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        """True only for a successful send."""
        return self.status == DeliveryStatus.SENT


class BaseChannel(ABC):
    """Abstract base class for notification channels.

    Each channel implementation handles delivery through
    a specific medium. Channels must implement the send
    method and convert their own errors into results.

    Attributes:
        channel_type: The type of this channel.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send a notification through this channel.

        Args:
            payload: The notification payload to send.

        Returns:
            ChannelResult with delivery status.
        """
        ...

    def is_enabled_for_preference(
        self, preferences: UserNotificationPreferences | None
    ) -> bool:
        """Check if this channel is enabled in user preferences.

        In-app is always on. Email is opt-out: it is attempted unless the
        user explicitly turned it off, including when preferences could
        not be loaded. SMS and push are opt-in and need a loaded
        preference record that enables them.

        Args:
            preferences: User's preferences, None if unavailable.

        Returns:
            True if the channel should be attempted.
        """
        if self.channel_type == ChannelType.IN_APP:
            return True
        if self.channel_type == ChannelType.EMAIL:
            return preferences is None or preferences.email
        if preferences is None:
            return False

        channel_map = {
            ChannelType.PUSH: preferences.push,
            ChannelType.SMS: preferences.sms,
        }
        return channel_map.get(self.channel_type, False)

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful channel result.

        Args:
            message_id: External message ID.
            metadata: Additional metadata.

        Returns:
            ChannelResult with SENT status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a failed channel result.

        Args:
            error_message: Error description.
            metadata: Additional metadata.

        Returns:
            ChannelResult with FAILED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_skipped_result(
        self,
        reason: str,
    ) -> ChannelResult:
        """Create a skipped channel result.

        Args:
            reason: Why the send was skipped.

        Returns:
            ChannelResult with SKIPPED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            error_message=reason,
            sent_at=utc_now(),
        )
