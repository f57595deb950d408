# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the notification schema on PostgreSQL.

Requires PostgreSQL to be running.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect

from src.core.notifications.types import (
    ChannelType,
    PriorityLevel,
    StoredNotification,
    UserNotificationPreferences,
)
from src.infrastructure.database.repositories import SqlNotificationStore, SqlPreferenceStore

# Skip all tests if database is not available
pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("TEST_DATABASE_URL"),
        reason="TEST_DATABASE_URL not set",
    ),
]


class TestNotificationSchema:
    """Test the notification tables."""

    @pytest.mark.asyncio
    async def test_creates_tables(self, notification_db_engine):
        """Verify all notification tables exist."""
        async with notification_db_engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())

        for table in (
            "notifications",
            "notification_preferences",
            "notification_rules",
            "notification_recipients",
        ):
            assert table in tables, f"Table {table} not found"

    @pytest.mark.asyncio
    async def test_notifications_indexes(self, notification_db_engine):
        """Verify the frequency and dedup lookups are indexed."""
        async with notification_db_engine.connect() as conn:
            indexes = await conn.run_sync(
                lambda c: {i["name"] for i in inspect(c).get_indexes("notifications")}
            )

        assert "ix_notifications_user_priority_created" in indexes
        assert "ix_notifications_user_type_created" in indexes


class TestStoresOnPostgres:
    """Smoke tests for the SQL stores with JSONB columns."""

    @pytest.mark.asyncio
    async def test_notification_round_trip(self, notification_sessionmaker):
        """Verify metadata and channels survive JSONB storage."""
        store = SqlNotificationStore(notification_sessionmaker)
        now = datetime.now(timezone.utc).replace(microsecond=0)
        await store.insert(
            StoredNotification(
                id="00000000-0000-0000-0000-000000000001",
                user_id="user-1",
                type="GRADE_PUBLISHED",
                title="Grade",
                message="Posted",
                priority=PriorityLevel.MEDIUM,
                created_at=now,
                metadata={"gradeId": 7, "nested": {"a": [1, 2]}},
                channels=frozenset({ChannelType.IN_APP, ChannelType.PUSH}),
            )
        )

        found = await store.find_recent("user-1", "GRADE_PUBLISHED", now - timedelta(hours=1))

        assert found.metadata == {"gradeId": 7, "nested": {"a": [1, 2]}}
        assert found.channels == frozenset({ChannelType.IN_APP, ChannelType.PUSH})
        assert found.created_at == now

    @pytest.mark.asyncio
    async def test_preferences_round_trip(self, notification_sessionmaker):
        """Verify preferences persist unchanged."""
        store = SqlPreferenceStore(notification_sessionmaker)
        preferences = UserNotificationPreferences(user_id="user-1", timezone="Europe/Istanbul")

        await store.save(preferences)

        assert await store.get("user-1") == preferences
