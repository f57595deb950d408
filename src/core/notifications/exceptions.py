# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the notification core.

This module defines the exception hierarchy for notification operations:
- NotificationError: Base exception for all notification errors
- StoreUnavailableError: A preference, notification, rule or recipient
  store could not be read or written
- NotificationPersistenceError: An admitted notification could not be saved
- ChannelNotConfiguredError: A transport has no provider behind it
- InvalidConditionError: A rule condition uses an unknown operator
"""


class NotificationError(Exception):
    """Base exception for all notification errors.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the notification error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        self.message = message
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class StoreUnavailableError(NotificationError):
    """A backing store failed to answer a read or accept a write.

    Admission gates catch this error and fail open.
    """


class NotificationPersistenceError(NotificationError):
    """An admitted notification could not be persisted.

    This is the only failure that propagates to callers of the send
    path. No channel delivery happens when it is raised.

    Attributes:
        user_id: Recipient of the notification that was lost.
        notification_type: Type of the notification that was lost.
    """

    def __init__(
        self,
        message: str,
        user_id: str,
        notification_type: str,
        original_error: Exception | None = None,
    ):
        self.user_id = user_id
        self.notification_type = notification_type
        super().__init__(message, original_error)


class ChannelNotConfiguredError(NotificationError):
    """A channel transport has no provider configured.

    Attributes:
        channel: Name of the channel.
    """

    def __init__(self, channel: str, message: str | None = None):
        self.channel = channel
        super().__init__(message or f"{channel} transport is not configured")


class InvalidConditionError(NotificationError):
    """A rule condition could not be parsed.

    Attributes:
        key: Metadata key the bad condition is attached to.
    """

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Invalid condition for '{key}': {message}")
