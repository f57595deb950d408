# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQL implementations of the notification store protocols.

Each repository takes an async_sessionmaker and opens one short session per
call, committing on success. Any SQLAlchemy or connection failure surfaces
as StoreUnavailableError so the admission pipeline can decide whether to
fail open.

Example:
    >>> sessionmaker = get_sessionmaker()
    >>> store = SqlNotificationStore(sessionmaker)
    >>> await store.count_today("user-1", PriorityLevel.HIGH, day_start)
    2
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.notifications.exceptions import StoreUnavailableError
from src.core.notifications.types import (
    ChannelType,
    DigestFrequency,
    DigestSettings,
    NotificationFilter,
    NotificationPage,
    NotificationStats,
    PriorityLevel,
    Recipient,
    Rule,
    StoredNotification,
    UserNotificationPreferences,
)
from src.infrastructure.database.models import (
    NotificationPreferenceRecord,
    NotificationRecord,
    NotificationRuleRecord,
    RecipientRecord,
)

logger = logging.getLogger(__name__)


def _parse_channels(values: Sequence[str] | None) -> frozenset[ChannelType]:
    channels = set()
    for value in values or ():
        try:
            channels.add(ChannelType(str(value).upper()))
        except ValueError:
            logger.warning("Ignoring unknown channel %r", value)
    return frozenset(channels) or frozenset({ChannelType.IN_APP})


def _dump_channels(channels: frozenset[ChannelType]) -> list[str]:
    return sorted(channel.value for channel in channels)


def notification_from_record(record: NotificationRecord) -> StoredNotification:
    """Map a notifications row to the domain type."""
    return StoredNotification(
        id=record.id,
        user_id=record.user_id,
        type=record.type,
        title=record.title,
        message=record.message,
        priority=PriorityLevel.from_name(record.priority),
        created_at=record.created_at,
        metadata=dict(record.data or {}),
        channels=_parse_channels(record.channels),
        school_id=record.school_id,
        action_url=record.action_url,
        read=record.is_read,
        read_at=record.read_at,
    )


def preferences_from_record(
    record: NotificationPreferenceRecord,
) -> UserNotificationPreferences:
    """Map a notification_preferences row to the domain type."""
    return UserNotificationPreferences(
        user_id=record.user_id,
        email=record.email,
        push=record.push,
        sms=record.sms,
        in_app=record.in_app,
        quiet_hours_start=record.quiet_hours_start,
        quiet_hours_end=record.quiet_hours_end,
        enabled_types=frozenset(record.enabled_types or ()),
        digest=DigestSettings.from_dict(
            {
                "enabled": record.digest_enabled,
                "frequency": record.digest_frequency,
                "time": record.digest_time,
            }
        ),
        timezone=record.timezone,
    )


def rule_from_record(record: NotificationRuleRecord) -> Rule:
    """Map a notification_rules row to the domain type."""
    return Rule(
        id=record.id,
        school_id=record.school_id,
        event_type=record.event_type,
        notification_type=record.notification_type,
        conditions=dict(record.conditions or {}),
        title_template=record.title_template,
        message_template=record.message_template,
        is_active=record.is_active,
        priority=record.priority,
        channels=_parse_channels(record.channels),
    )


class _SqlRepository:
    """Shared session handling for the SQL stores."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a session, commit on success, and map failures.

        Raises:
            StoreUnavailableError: If the database cannot be reached or
                the statement fails.
        """
        try:
            async with self._sessionmaker() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(
                f"{type(self).__name__} operation failed", e
            ) from e


class SqlNotificationStore(_SqlRepository):
    """Notification log backed by the notifications table."""

    async def count_today(
        self, user_id: str, priority: PriorityLevel, day_start: datetime
    ) -> int:
        async with self._session() as session:
            stmt = select(func.count(NotificationRecord.id)).where(
                NotificationRecord.user_id == user_id,
                NotificationRecord.priority == priority.name,
                NotificationRecord.created_at >= day_start,
            )
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def find_recent(
        self, user_id: str, notification_type: str, since: datetime
    ) -> StoredNotification | None:
        async with self._session() as session:
            stmt = (
                select(NotificationRecord)
                .where(
                    NotificationRecord.user_id == user_id,
                    NotificationRecord.type == notification_type,
                    NotificationRecord.created_at >= since,
                )
                .order_by(NotificationRecord.created_at.desc())
                .limit(1)
            )
            result = await session.execute(stmt)
            record = result.scalar_one_or_none()
            return notification_from_record(record) if record else None

    async def insert(self, notification: StoredNotification) -> str:
        record = NotificationRecord(
            id=notification.id,
            user_id=notification.user_id,
            school_id=notification.school_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            priority=notification.priority.name,
            data=dict(notification.metadata),
            channels=_dump_channels(notification.channels),
            action_url=notification.action_url,
            is_read=notification.read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )
        async with self._session() as session:
            session.add(record)
        return record.id

    async def find_unread_low_priority(
        self,
        user_id: str,
        since: datetime,
        priorities: frozenset[PriorityLevel],
    ) -> list[StoredNotification]:
        if not priorities:
            return []
        async with self._session() as session:
            stmt = (
                select(NotificationRecord)
                .where(
                    NotificationRecord.user_id == user_id,
                    NotificationRecord.is_read.is_(False),
                    NotificationRecord.priority.in_([p.name for p in priorities]),
                    NotificationRecord.created_at >= since,
                )
                .order_by(NotificationRecord.created_at.desc())
            )
            result = await session.execute(stmt)
            return [notification_from_record(r) for r in result.scalars().all()]

    async def mark_read(self, ids: Sequence[str], read_at: datetime) -> None:
        if not ids:
            return
        async with self._session() as session:
            await session.execute(
                update(NotificationRecord)
                .where(NotificationRecord.id.in_(list(ids)))
                .values(is_read=True, read_at=read_at)
            )

    async def get_stats(self, user_id: str, since: datetime) -> NotificationStats:
        base = (
            NotificationRecord.user_id == user_id,
            NotificationRecord.created_at >= since,
        )
        async with self._session() as session:
            total = (
                await session.execute(
                    select(func.count(NotificationRecord.id)).where(*base)
                )
            ).scalar_one()
            unread = (
                await session.execute(
                    select(func.count(NotificationRecord.id)).where(
                        *base, NotificationRecord.is_read.is_(False)
                    )
                )
            ).scalar_one()
            by_type = await session.execute(
                select(NotificationRecord.type, func.count(NotificationRecord.id))
                .where(*base)
                .group_by(NotificationRecord.type)
            )
            by_priority = await session.execute(
                select(NotificationRecord.priority, func.count(NotificationRecord.id))
                .where(*base)
                .group_by(NotificationRecord.priority)
            )
            return NotificationStats(
                total=int(total),
                unread=int(unread),
                by_type={row[0]: int(row[1]) for row in by_type.all()},
                by_priority={row[0]: int(row[1]) for row in by_priority.all()},
            )

    async def mark_read_for_user(
        self, notification_id: str, user_id: str, read_at: datetime
    ) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(NotificationRecord)
                .where(
                    NotificationRecord.id == notification_id,
                    NotificationRecord.user_id == user_id,
                )
                .values(is_read=True, read_at=read_at)
            )
            return result.rowcount > 0

    async def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        async with self._session() as session:
            result = await session.execute(
                update(NotificationRecord)
                .where(
                    NotificationRecord.user_id == user_id,
                    NotificationRecord.is_read.is_(False),
                )
                .values(is_read=True, read_at=read_at)
            )
            return int(result.rowcount)

    async def list_for_user(
        self, user_id: str, filters: NotificationFilter
    ) -> NotificationPage:
        conditions = [NotificationRecord.user_id == user_id]
        if filters.read is not None:
            conditions.append(NotificationRecord.is_read.is_(filters.read))
        if filters.type:
            conditions.append(NotificationRecord.type == filters.type)
        if filters.priority is not None:
            conditions.append(NotificationRecord.priority == filters.priority.name)

        async with self._session() as session:
            rows = await session.execute(
                select(NotificationRecord)
                .where(*conditions)
                .order_by(NotificationRecord.created_at.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            total = (
                await session.execute(
                    select(func.count(NotificationRecord.id)).where(*conditions)
                )
            ).scalar_one()
            unread = (
                await session.execute(
                    select(func.count(NotificationRecord.id)).where(
                        NotificationRecord.user_id == user_id,
                        NotificationRecord.is_read.is_(False),
                    )
                )
            ).scalar_one()
            return NotificationPage(
                notifications=[notification_from_record(r) for r in rows.scalars().all()],
                total=int(total),
                unread_count=int(unread),
                limit=filters.limit,
                offset=filters.offset,
            )


class SqlPreferenceStore(_SqlRepository):
    """Preference lookups backed by the notification_preferences table."""

    async def get(self, user_id: str) -> UserNotificationPreferences | None:
        async with self._session() as session:
            record = await session.get(NotificationPreferenceRecord, user_id)
            return preferences_from_record(record) if record else None

    async def list_digest_subscribers(
        self, frequency: DigestFrequency
    ) -> list[UserNotificationPreferences]:
        async with self._session() as session:
            stmt = select(NotificationPreferenceRecord).where(
                NotificationPreferenceRecord.digest_enabled.is_(True),
                NotificationPreferenceRecord.digest_frequency == frequency.value,
            )
            result = await session.execute(stmt)
            return [preferences_from_record(r) for r in result.scalars().all()]

    async def save(self, preferences: UserNotificationPreferences) -> None:
        """Insert or replace a user's preferences."""
        async with self._session() as session:
            record = await session.get(NotificationPreferenceRecord, preferences.user_id)
            if record is None:
                record = NotificationPreferenceRecord(user_id=preferences.user_id)
                session.add(record)
            record.email = preferences.email
            record.push = preferences.push
            record.sms = preferences.sms
            record.in_app = preferences.in_app
            record.quiet_hours_start = preferences.quiet_hours_start
            record.quiet_hours_end = preferences.quiet_hours_end
            record.enabled_types = sorted(preferences.enabled_types)
            record.digest_enabled = preferences.digest.enabled
            record.digest_frequency = preferences.digest.frequency.value
            record.digest_time = preferences.digest.time
            record.timezone = preferences.timezone


class SqlRuleStore(_SqlRepository):
    """Rule lookups backed by the notification_rules table."""

    async def active_rules_for(self, school_id: str, event_type: str) -> list[Rule]:
        async with self._session() as session:
            stmt = (
                select(NotificationRuleRecord)
                .where(
                    NotificationRuleRecord.school_id == school_id,
                    NotificationRuleRecord.event_type == event_type,
                    NotificationRuleRecord.is_active.is_(True),
                )
                .order_by(NotificationRuleRecord.priority.desc())
            )
            result = await session.execute(stmt)
            return [rule_from_record(r) for r in result.scalars().all()]


class SqlRecipientDirectory(_SqlRepository):
    """Contact lookups backed by the notification_recipients table."""

    async def get_recipient(self, user_id: str) -> Recipient | None:
        async with self._session() as session:
            record = await session.get(RecipientRecord, user_id)
            if record is None:
                return None
            return Recipient(
                user_id=record.user_id,
                email=record.email,
                phone=record.phone,
                push_tokens=tuple(record.push_tokens or ()),
                full_name=record.full_name,
            )
