# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

The persisted notification record is the in-app notification: the
application's notification center reads it straight from the store.
Delivery therefore needs no external call once the record exists.
"""

from src.core.notifications.types import ChannelType
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    NotificationPayload,
)


class InAppChannel(BaseChannel):
    """In-app notification channel.

    Always succeeds; the delivery orchestrator only calls it after the
    notification has been persisted.
    """

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Acknowledge the already persisted notification.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with SENT status.
        """
        self.logger.debug(
            "In-app notification %s available to user %s",
            payload.notification.id,
            payload.notification.user_id,
        )
        return self.create_success_result(message_id=payload.notification.id)
