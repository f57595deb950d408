# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering notifications.

This package provides channel implementations and their transports:

- InAppChannel: Acknowledges the persisted notification record
- EmailChannel: Renders HTML email and sends it via an EmailSender
  (SmtpEmailSender in production)
- PushChannel: Sends to each device token via a MessageSender
  (FcmPushSender when Firebase is configured)
- SmsChannel: Sends text messages via a MessageSender
  (UnconfiguredSmsSender until a provider exists)

Usage:
    from src.infrastructure.notifications.channels import (
        EmailChannel,
        NotificationPayload,
        SmtpEmailSender,
    )

    email = EmailChannel(SmtpEmailSender(settings.smtp))
    result = await email.send(NotificationPayload(notification, recipient))
"""

from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    NotificationPayload,
)
from src.infrastructure.notifications.channels.email import EmailChannel, SmtpEmailSender
from src.infrastructure.notifications.channels.in_app import InAppChannel
from src.infrastructure.notifications.channels.push import (
    FcmPushSender,
    PushChannel,
    UnconfiguredPushSender,
)
from src.infrastructure.notifications.channels.sms import SmsChannel, UnconfiguredSmsSender

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "SmsChannel",
    # Transports
    "FcmPushSender",
    "SmtpEmailSender",
    "UnconfiguredPushSender",
    "UnconfiguredSmsSender",
]
