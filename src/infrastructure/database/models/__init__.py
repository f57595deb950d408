# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the notification database."""

from src.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UTCDateTime,
)
from src.infrastructure.database.models.notification import (
    NotificationPreferenceRecord,
    NotificationRecord,
    NotificationRuleRecord,
    RecipientRecord,
)

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UTCDateTime",
    "NotificationPreferenceRecord",
    "NotificationRecord",
    "NotificationRuleRecord",
    "RecipientRecord",
]
