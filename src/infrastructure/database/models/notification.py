# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification ORM models.

Tables:
- notifications: append-only notification log with read receipts
- notification_preferences: per-user channel, type, quiet-hours and digest settings
- notification_rules: school-defined event to notification rules
- notification_recipients: contact details projected from the user directory
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.notifications.types import NotificationTypes
from src.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UTCDateTime,
)
from src.utils.datetime import utc_now


def _new_id() -> str:
    return str(uuid4())


class NotificationRecord(Base):
    """A persisted notification.

    The frequency limiter counts rows by (user_id, priority, created_at) and
    the deduplication guard looks rows up by (user_id, type, created_at);
    both have a covering index.
    """

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    school_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    # "metadata" is reserved on declarative classes
    data: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )
    channels: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    action_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )

    __table_args__ = (
        Index("ix_notifications_user_priority_created", "user_id", "priority", "created_at"),
        Index("ix_notifications_user_type_created", "user_id", "type", "created_at"),
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<NotificationRecord {self.id} {self.type} user={self.user_id}>"


class NotificationPreferenceRecord(Base, TimestampMixin):
    """Notification preferences of one user."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    quiet_hours_start: Mapped[int | None] = mapped_column(Integer, nullable=True, default=22)
    quiet_hours_end: Mapped[int | None] = mapped_column(Integer, nullable=True, default=7)
    enabled_types: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=lambda: list(NotificationTypes.DEFAULT_ENABLED)
    )
    digest_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    digest_frequency: Mapped[str] = mapped_column(String(16), nullable=False, default="DAILY")
    digest_time: Mapped[str] = mapped_column(String(5), nullable=False, default="08:00")
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_notification_preferences_digest", "digest_enabled", "digest_frequency"),
    )


class NotificationRuleRecord(Base, TimestampMixin):
    """A school's rule mapping an event type to a notification."""

    __tablename__ = "notification_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(64), nullable=False)
    conditions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    title_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    message_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    channels: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=lambda: ["IN_APP"]
    )

    __table_args__ = (
        Index("ix_notification_rules_school_event", "school_id", "event_type", "is_active"),
    )


class RecipientRecord(Base, TimestampMixin):
    """Contact details of a notification recipient."""

    __tablename__ = "notification_recipients"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    push_tokens: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
