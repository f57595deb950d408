# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests table definitions, indexes, and the UTC datetime column type.
"""

from datetime import datetime, timedelta, timezone

from src.infrastructure.database.models import (
    Base,
    NotificationPreferenceRecord,
    NotificationRecord,
    NotificationRuleRecord,
    RecipientRecord,
    TimestampMixin,
    UTCDateTime,
)


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_created_at(self):
        """Verify TimestampMixin has created_at field."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_all_tables_registered(self):
        """Verify every notification table is in the metadata."""
        assert set(Base.metadata.tables) == {
            "notifications",
            "notification_preferences",
            "notification_rules",
            "notification_recipients",
        }


class TestNotificationModels:
    """Test notification table definitions."""

    def test_notification_table(self):
        """Verify the notification log columns and indexes."""
        table = NotificationRecord.__table__

        assert NotificationRecord.__tablename__ == "notifications"
        assert "metadata" in table.c
        assert {index.name for index in table.indexes} == {
            "ix_notifications_user_priority_created",
            "ix_notifications_user_type_created",
            "ix_notifications_user_read",
        }

    def test_preferences_keyed_by_user(self):
        """Verify preferences use the user id as primary key."""
        pk = [c.name for c in NotificationPreferenceRecord.__table__.primary_key]

        assert pk == ["user_id"]

    def test_rule_and_recipient_tables(self):
        """Verify rule and recipient table names."""
        assert NotificationRuleRecord.__tablename__ == "notification_rules"
        assert RecipientRecord.__tablename__ == "notification_recipients"

    def test_repr(self):
        """Verify notification repr includes id and type."""
        record = NotificationRecord(id="n-1", user_id="u-1", type="EMERGENCY")

        assert repr(record) == "<NotificationRecord n-1 EMERGENCY user=u-1>"


class TestUTCDateTime:
    """Test UTC normalization."""

    def test_naive_values_treated_as_utc(self):
        """Verify naive values from SQLite come back aware."""
        value = UTCDateTime().process_result_value(datetime(2025, 3, 10, 12, 0), None)

        assert value == datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_offsets_converted_on_bind(self):
        """Verify aware values are stored in UTC."""
        istanbul = timezone(timedelta(hours=3))

        value = UTCDateTime().process_bind_param(
            datetime(2025, 3, 10, 15, 0, tzinfo=istanbul), None
        )

        assert value.utcoffset() == timedelta(0)
        assert value.hour == 12

    def test_none_passes_through(self):
        """Verify None is preserved."""
        assert UTCDateTime().process_bind_param(None, None) is None
