# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification delivery for the school platform.

This package turns admitted notifications into deliveries:
- In-app notifications (the persisted record itself)
- Email notifications (SMTP)
- Push notifications (Firebase Cloud Messaging)
- SMS notifications (stub until a provider is integrated)

Key Components:
- NotificationService: send / process_event / send_to_users / get_stats
- DeliveryOrchestrator: persist first, then fan out with per-channel isolation
- DigestBatcher: daily or weekly summaries of low-priority notifications
- Channels: InAppChannel, EmailChannel, PushChannel, SmsChannel

Usage:
    from src.infrastructure.notifications import build_notification_service

    service = build_notification_service(
        settings,
        notification_store=SqlNotificationStore(sessionmaker),
        preference_store=SqlPreferenceStore(sessionmaker),
        rule_store=SqlRuleStore(sessionmaker),
        recipients=SqlRecipientDirectory(sessionmaker),
    )
    outcome = await service.send(candidate)

Configuration (environment variables):
- NOTIFICATION_DAILY_CAP_HIGH / _MEDIUM / _LOW / _INFO: daily caps
- NOTIFICATION_DEDUP_WINDOW_HOURS: dedup window (default: 6)
- NOTIFICATION_CHANNEL_TIMEOUT_SECONDS: per-channel timeout (default: 10)
- FIREBASE_CREDENTIALS_PATH: Path to Firebase service account JSON
- FIREBASE_PROJECT_ID: Firebase project ID
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from src.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    EmailChannel,
    InAppChannel,
    NotificationPayload,
    PushChannel,
    SmsChannel,
)
from src.infrastructure.notifications.delivery import DeliveryOrchestrator
from src.infrastructure.notifications.digest import (
    DigestBatcher,
    DigestResult,
    group_by_type,
    is_digest_due,
)
from src.infrastructure.notifications.service import (
    BulkSendResult,
    NotificationService,
    SendOutcome,
    UserLockRegistry,
    build_digest_batcher,
    build_notification_service,
)

__all__ = [
    # Service
    "BulkSendResult",
    "NotificationService",
    "SendOutcome",
    "UserLockRegistry",
    "build_digest_batcher",
    "build_notification_service",
    # Delivery
    "DeliveryOrchestrator",
    # Digest
    "DigestBatcher",
    "DigestResult",
    "group_by_type",
    "is_digest_due",
    # Channel types
    "BaseChannel",
    "ChannelResult",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "InAppChannel",
    "PushChannel",
    "SmsChannel",
]
