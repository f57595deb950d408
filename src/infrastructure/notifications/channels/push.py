# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Push notification channel using Firebase Cloud Messaging.

FcmPushSender sends to a single device token through the FCM HTTP v1
API. PushChannel fans a notification out to every token of the
recipient and succeeds when at least one device accepted it.

Configuration (via environment variables):
- FIREBASE_CREDENTIALS_PATH: Path to service account JSON file
- FIREBASE_PROJECT_ID: Firebase project ID
"""

import asyncio
import logging
import os
from typing import Any

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from src.core.config.settings import FirebaseSettings
from src.core.notifications.exceptions import ChannelNotConfiguredError
from src.core.notifications.stores import MessageSender
from src.core.notifications.types import ChannelType, PriorityLevel
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

# FCM HTTP v1 API endpoint template
FCM_API_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"


class FcmPushSender:
    """MessageSender for Firebase Cloud Messaging.

    Credentials are loaded on first use. Missing configuration raises
    ChannelNotConfiguredError; FCM rejections raise httpx.HTTPStatusError.
    """

    def __init__(self, settings: FirebaseSettings) -> None:
        self._settings = settings
        self._credentials: service_account.Credentials | None = None

    def _ensure_credentials(self) -> service_account.Credentials:
        if self._credentials is not None:
            return self._credentials

        path = self._settings.credentials_path
        if not self._settings.is_configured:
            raise ChannelNotConfiguredError(
                "push", "FIREBASE_CREDENTIALS_PATH or FIREBASE_PROJECT_ID not set"
            )
        if not os.path.exists(path):
            raise ChannelNotConfiguredError("push", f"Credentials file not found: {path}")

        self._credentials = service_account.Credentials.from_service_account_file(
            path, scopes=[FCM_SCOPE]
        )
        logger.info("FCM push sender initialized for project %s", self._settings.project_id)
        return self._credentials

    async def _get_access_token(self) -> str:
        credentials = self._ensure_credentials()
        if not credentials.valid:
            # google-auth refresh is blocking
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, credentials.refresh, Request())
        return credentials.token

    async def send(
        self, destination: str, message: str, title: str | None = None
    ) -> None:
        """Send a push message to one device token.

        Args:
            destination: FCM device token.
            message: Notification body.
            title: Notification title.

        Raises:
            ChannelNotConfiguredError: If Firebase is not configured.
            httpx.HTTPError: If the request fails.
        """
        access_token = await self._get_access_token()
        url = FCM_API_URL.format(project_id=self._settings.project_id)
        body: dict[str, Any] = {
            "message": {
                "token": destination,
                "notification": {"title": title or "", "body": message},
            }
        }
        async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
            response = await client.post(
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                json=body,
            )
        response.raise_for_status()
        logger.debug("Push sent to %s...", destination[:20])


class UnconfiguredPushSender:
    """Placeholder push transport used when Firebase is not set up."""

    async def send(
        self, destination: str, message: str, title: str | None = None
    ) -> None:
        logger.info("Push transport not configured, dropping message to %s...", destination[:20])
        raise ChannelNotConfiguredError("push")


class PushChannel(BaseChannel):
    """Push notification channel.

    Args:
        sender: Transport for individual device tokens.
    """

    def __init__(self, sender: MessageSender) -> None:
        """Initialize the push channel."""
        super().__init__()
        self._sender = sender

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.PUSH

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send the notification to every registered device.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not payload.push_tokens:
            return self.create_skipped_result("No push tokens available")

        notification = payload.notification
        title = notification.title
        if notification.priority >= PriorityLevel.HIGH:
            title = f"[{notification.priority.name}] {title}"

        success_count = 0
        errors: list[str] = []
        for token in payload.push_tokens:
            try:
                await self._sender.send(token, notification.message, title=title)
                success_count += 1
            except ChannelNotConfiguredError as e:
                return self.create_failure_result(str(e))
            except Exception as e:
                self.logger.error("Failed to send push to token %s...: %s", token[:20], e)
                errors.append(str(e))

        if success_count == 0:
            return self.create_failure_result(
                f"All {len(errors)} push notifications failed",
                metadata={"errors": errors},
            )
        return self.create_success_result(
            metadata={"success_count": success_count, "failure_count": len(errors)}
        )
