# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial notification database schema.

Revision ID: 001_notification_schema
Revises: None
Create Date: 2025-01-15

This migration creates the notification tables based on the SQLAlchemy
models in src/infrastructure/database/models/notification.py.
"""

import json
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_notification_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Kept in step with NotificationTypes.DEFAULT_ENABLED
DEFAULT_ENABLED_TYPES = [
    "ASSIGNMENT_DUE",
    "GRADE_PUBLISHED",
    "ATTENDANCE_WARNING",
    "RISK_ALERT",
    "EVENT_REMINDER",
    "PARENT_MESSAGE",
]


def upgrade() -> None:
    """Create notification tables."""
    # ==========================================================================
    # 1. notifications table
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("school_id", sa.String(64), nullable=True),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("channels", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("action_url", sa.String(1024), nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "priority IN ('CRITICAL', 'HIGH', 'MEDIUM', 'LOW', 'INFO')",
            name="valid_notification_priority",
        ),
    )
    op.create_index(
        "ix_notifications_user_priority_created",
        "notifications",
        ["user_id", "priority", "created_at"],
    )
    op.create_index(
        "ix_notifications_user_type_created",
        "notifications",
        ["user_id", "type", "created_at"],
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    # ==========================================================================
    # 2. notification_preferences table
    # ==========================================================================
    op.create_table(
        "notification_preferences",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("email", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("push", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sms", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("in_app", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("quiet_hours_start", sa.Integer, nullable=True, server_default="22"),
        sa.Column("quiet_hours_end", sa.Integer, nullable=True, server_default="7"),
        sa.Column(
            "enabled_types",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text(f"'{json.dumps(DEFAULT_ENABLED_TYPES)}'::jsonb"),
        ),
        sa.Column("digest_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("digest_frequency", sa.String(16), nullable=False, server_default="DAILY"),
        sa.Column("digest_time", sa.String(5), nullable=False, server_default="08:00"),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "digest_frequency IN ('DAILY', 'WEEKLY')",
            name="valid_digest_frequency",
        ),
        sa.CheckConstraint(
            "quiet_hours_start IS NULL OR (quiet_hours_start >= 0 AND quiet_hours_start <= 23)",
            name="valid_quiet_hours_start",
        ),
        sa.CheckConstraint(
            "quiet_hours_end IS NULL OR (quiet_hours_end >= 0 AND quiet_hours_end <= 23)",
            name="valid_quiet_hours_end",
        ),
    )
    op.create_index(
        "ix_notification_preferences_digest",
        "notification_preferences",
        ["digest_enabled", "digest_frequency"],
    )

    # ==========================================================================
    # 3. notification_rules table
    # ==========================================================================
    op.create_table(
        "notification_rules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("school_id", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("notification_type", sa.String(64), nullable=False),
        sa.Column("conditions", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("title_template", sa.Text, nullable=True),
        sa.Column("message_template", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "channels",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[\"IN_APP\"]'::jsonb"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_notification_rules_school_event",
        "notification_rules",
        ["school_id", "event_type", "is_active"],
    )

    # ==========================================================================
    # 4. notification_recipients table
    # ==========================================================================
    op.create_table(
        "notification_recipients",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("push_tokens", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )


def downgrade() -> None:
    """Drop notification tables."""
    op.drop_table("notification_recipients")
    op.drop_index("ix_notification_rules_school_event", table_name="notification_rules")
    op.drop_table("notification_rules")
    op.drop_index("ix_notification_preferences_digest", table_name="notification_preferences")
    op.drop_table("notification_preferences")
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_index("ix_notifications_user_type_created", table_name="notifications")
    op.drop_index("ix_notifications_user_priority_created", table_name="notifications")
    op.drop_table("notifications")
