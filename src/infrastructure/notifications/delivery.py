# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery of admitted notifications.

The orchestrator persists the notification first and only then fans out
to the requested channels. The persisted record is what later frequency
and dedup checks see, so a notification that cannot be stored is never
delivered anywhere.

Channel sends run concurrently, each under its own timeout. A failing,
slow or misconfigured channel only affects its own flag in the
DeliveryResult.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Callable

from src.core.notifications.exceptions import (
    NotificationPersistenceError,
    StoreUnavailableError,
)
from src.core.notifications.stores import (
    NotificationStore,
    PreferenceStore,
    RecipientDirectory,
)
from src.core.notifications.types import (
    ChannelType,
    DeliveryResult,
    NotificationCandidate,
    PriorityLevel,
    Recipient,
    StoredNotification,
    UserNotificationPreferences,
)
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    NotificationPayload,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

_UNSET = object()


class DeliveryOrchestrator:
    """Persists admitted notifications and delivers them per channel.

    Args:
        notification_store: Where notifications are persisted.
        preference_store: Source of channel toggles.
        recipients: Source of email addresses, phone numbers and push tokens.
        channels: One channel per ChannelType.
        channel_timeout: Seconds before a channel attempt counts as failed.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        notification_store: NotificationStore,
        preference_store: PreferenceStore,
        recipients: RecipientDirectory,
        channels: Iterable[BaseChannel],
        channel_timeout: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._notification_store = notification_store
        self._preference_store = preference_store
        self._recipients = recipients
        self._channels: dict[ChannelType, BaseChannel] = {
            channel.channel_type: channel for channel in channels
        }
        self._channel_timeout = channel_timeout
        self._clock = clock

    async def deliver(
        self,
        candidate: NotificationCandidate,
        priority: PriorityLevel,
        preferences: UserNotificationPreferences | None | object = _UNSET,
    ) -> tuple[StoredNotification, DeliveryResult]:
        """Persist an admitted candidate and fan it out.

        Args:
            candidate: A candidate that passed admission.
            priority: The priority it was admitted at.
            preferences: Preferences already loaded by the caller. When
                omitted they are loaded here.

        Returns:
            The stored notification and the per-channel outcome.

        Raises:
            NotificationPersistenceError: If the notification could not be
                stored. No channel is attempted in that case.
        """
        notification = await self.persist(candidate, priority)
        return notification, await self.dispatch(notification, preferences)

    async def persist(
        self, candidate: NotificationCandidate, priority: PriorityLevel
    ) -> StoredNotification:
        """Store an admitted candidate.

        Raises:
            NotificationPersistenceError: If the store rejects the write.
        """
        notification = StoredNotification.from_candidate(
            candidate, priority, created_at=self._clock()
        )
        try:
            notification.id = await self._notification_store.insert(notification)
        except StoreUnavailableError as e:
            logger.error(
                "Failed to persist %s notification for user %s",
                candidate.type,
                candidate.user_id,
                exc_info=True,
            )
            raise NotificationPersistenceError(
                "Failed to persist notification",
                user_id=candidate.user_id,
                notification_type=candidate.type,
                original_error=e,
            ) from e
        return notification

    async def dispatch(
        self,
        notification: StoredNotification,
        preferences: UserNotificationPreferences | None | object = _UNSET,
    ) -> DeliveryResult:
        """Fan a stored notification out to its requested channels.

        Never raises for channel failures.
        """
        if preferences is _UNSET:
            preferences = await self._load_preferences(notification.user_id)

        result = await self._fan_out(notification, preferences)
        logger.info(
            "Delivered notification %s to user %s: in_app=%s email=%s sms=%s push=%s",
            notification.id,
            notification.user_id,
            result.in_app,
            result.email,
            result.sms,
            result.push,
        )
        return result

    async def _fan_out(
        self,
        notification: StoredNotification,
        preferences: UserNotificationPreferences | None,
    ) -> DeliveryResult:
        result = DeliveryResult()
        attempts: list[BaseChannel] = []

        for channel_type in sorted(notification.channels, key=lambda c: c.value):
            channel = self._channels.get(channel_type)
            if channel is None:
                result.errors[channel_type] = "channel not available"
                continue
            if not channel.is_enabled_for_preference(preferences):
                logger.debug(
                    "%s disabled by preferences for user %s",
                    channel_type.value,
                    notification.user_id,
                )
                continue
            attempts.append(channel)

        if not attempts:
            return result

        recipient = None
        if any(channel.channel_type != ChannelType.IN_APP for channel in attempts):
            recipient = await self._load_recipient(notification.user_id)

        payload = NotificationPayload(notification=notification, recipient=recipient)
        outcomes = await asyncio.gather(
            *(self._attempt(channel, payload) for channel in attempts)
        )
        for outcome in outcomes:
            result.set(outcome.channel, outcome.delivered)
            if outcome.status != DeliveryStatus.SENT:
                result.errors[outcome.channel] = outcome.error_message or outcome.status.value
        return result

    async def _attempt(self, channel: BaseChannel, payload: NotificationPayload) -> ChannelResult:
        try:
            return await asyncio.wait_for(channel.send(payload), timeout=self._channel_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "%s delivery of %s timed out after %ss",
                channel.channel_type.value,
                payload.notification.id,
                self._channel_timeout,
            )
            return channel.create_failure_result(
                f"timed out after {self._channel_timeout}s"
            )
        except Exception as e:
            logger.error(
                "%s delivery of %s failed: %s",
                channel.channel_type.value,
                payload.notification.id,
                e,
                exc_info=True,
            )
            return channel.create_failure_result(str(e))

    async def _load_preferences(self, user_id: str) -> UserNotificationPreferences | None:
        try:
            preferences = await self._preference_store.get(user_id)
        except StoreUnavailableError:
            logger.warning(
                "Failed to load preferences for user %s, only opt-out channels will be tried",
                user_id,
                exc_info=True,
            )
            return None
        return preferences or UserNotificationPreferences.defaults(user_id)

    async def _load_recipient(self, user_id: str) -> Recipient | None:
        try:
            recipient = await self._recipients.get_recipient(user_id)
        except StoreUnavailableError:
            logger.warning("Failed to load contact details for user %s", user_id, exc_info=True)
            return None
        if recipient is None:
            logger.warning("No contact details for user %s", user_id)
        return recipient
