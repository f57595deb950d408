# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

The channel renders a priority-colored HTML email (with a plain text
alternative) and hands it to an EmailSender. SmtpEmailSender is the
production sender, built on aiosmtplib.

Configuration (via environment variables):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import aiosmtplib

from src.core.config.settings import SmtpSettings
from src.core.notifications.exceptions import ChannelNotConfiguredError
from src.core.notifications.stores import EmailSender
from src.core.notifications.types import ChannelType
from src.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    NotificationPayload,
)
from src.infrastructure.notifications.templates import (
    render_notification_html,
    render_notification_text,
)

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """EmailSender that delivers through an SMTP server.

    Raises ChannelNotConfiguredError when SMTP settings are incomplete,
    and lets aiosmtplib errors propagate to the caller.
    """

    def __init__(self, settings: SmtpSettings) -> None:
        self._settings = settings
        if not settings.is_configured:
            logger.warning(
                "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
            )
        else:
            logger.info("Email transport configured with host %s", settings.host)

    async def send(
        self, to: str, subject: str, html: str, text: str | None = None
    ) -> None:
        """Send a multipart email.

        Args:
            to: Recipient address.
            subject: Subject line.
            html: HTML body.
            text: Plain text alternative.

        Raises:
            ChannelNotConfiguredError: If SMTP is not configured.
            aiosmtplib.SMTPException: If the server rejects the message.
        """
        if not self._settings.is_configured:
            raise ChannelNotConfiguredError("email", "SMTP configuration incomplete")

        message = self._build_message(to, subject, html, text)
        await aiosmtplib.send(
            message,
            hostname=self._settings.host,
            port=self._settings.port,
            username=self._settings.username,
            password=self._settings.password.get_secret_value(),
            start_tls=self._settings.use_tls,
        )
        logger.debug("Email sent to %s: %s", to, subject)

    def _build_message(
        self, to: str, subject: str, html: str, text: str | None
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self._settings.from_name, self._settings.from_email))
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()

        if text:
            message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))
        return message


class EmailChannel(BaseChannel):
    """Email notification channel.

    Args:
        sender: Transport used to deliver rendered emails.
        app_name: Product name shown in the email header and footer.
    """

    def __init__(self, sender: EmailSender, app_name: str = "School Platform") -> None:
        """Initialize the email channel."""
        super().__init__()
        self._sender = sender
        self._app_name = app_name

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Render and send the notification email.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not payload.email:
            return self.create_skipped_result("No recipient email address")

        notification = payload.notification
        try:
            await self._sender.send(
                payload.email,
                notification.title,
                render_notification_html(notification, self._app_name),
                render_notification_text(notification, self._app_name),
            )
        except ChannelNotConfiguredError as e:
            self.logger.warning("Email not sent for %s: %s", notification.id, e)
            return self.create_failure_result(str(e))
        except Exception as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.email,
                str(e),
                exc_info=True,
            )
            return self.create_failure_result(
                f"SMTP error: {str(e)}",
                metadata={"recipient": payload.email},
            )

        self.logger.info("Email sent to %s: %s", payload.email, notification.title)
        return self.create_success_result(metadata={"recipient": payload.email})
