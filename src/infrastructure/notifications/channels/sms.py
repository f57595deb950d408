# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SMS notification channel.

No SMS provider is integrated yet. UnconfiguredSmsSender stands in for
one and always reports that the transport is not configured, which the
channel records as an ordinary failed delivery.
"""

import logging

from src.core.notifications.exceptions import ChannelNotConfiguredError
from src.core.notifications.stores import MessageSender
from src.core.notifications.types import ChannelType
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

# Single-segment SMS length
MAX_SMS_LENGTH = 160


class UnconfiguredSmsSender:
    """Placeholder SMS transport."""

    async def send(
        self, destination: str, message: str, title: str | None = None
    ) -> None:
        logger.info("SMS transport not configured, dropping message to %s", destination)
        raise ChannelNotConfiguredError("sms")


class SmsChannel(BaseChannel):
    """SMS notification channel.

    Args:
        sender: SMS transport.
    """

    def __init__(self, sender: MessageSender) -> None:
        super().__init__()
        self._sender = sender

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.SMS

    @staticmethod
    def format_message(title: str, message: str) -> str:
        """Combine title and message into one SMS, truncated to a segment."""
        text = f"{title}: {message}"
        if len(text) <= MAX_SMS_LENGTH:
            return text
        return text[: MAX_SMS_LENGTH - 3] + "..."

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send the notification as a text message.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not payload.phone:
            return self.create_skipped_result("No recipient phone number")

        notification = payload.notification
        try:
            await self._sender.send(
                payload.phone,
                self.format_message(notification.title, notification.message),
            )
        except ChannelNotConfiguredError as e:
            return self.create_failure_result(str(e))
        except Exception as e:
            self.logger.error("Failed to send SMS to %s: %s", payload.phone, e, exc_info=True)
            return self.create_failure_result(f"SMS error: {e}")

        return self.create_success_result(metadata={"recipient": payload.phone})
