# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email rendering for single notifications and digests.

Both renderers produce an HTML body and a plain text alternative. All
user-supplied text is HTML-escaped; action URLs are escaped as attribute
values.
"""

from collections.abc import Mapping, Sequence
from html import escape

from src.core.notifications.types import (
    DigestFrequency,
    PriorityLevel,
    StoredNotification,
)

PRIORITY_COLORS: dict[PriorityLevel, str] = {
    PriorityLevel.CRITICAL: "#dc2626",
    PriorityLevel.HIGH: "#ea580c",
    PriorityLevel.MEDIUM: "#0891b2",
    PriorityLevel.LOW: "#059669",
    PriorityLevel.INFO: "#6b7280",
}

DIGEST_ACCENT = "#0891b2"

DIGEST_SUBJECTS: dict[DigestFrequency, str] = {
    DigestFrequency.DAILY: "Your Daily Notification Digest",
    DigestFrequency.WEEKLY: "Your Weekly Notification Digest",
}

_DIGEST_PERIODS: dict[DigestFrequency, str] = {
    DigestFrequency.DAILY: "the past 24 hours",
    DigestFrequency.WEEKLY: "the past 7 days",
}


def format_notification_type(notification_type: str) -> str:
    """Turn GRADE_PUBLISHED into "Grade Published"."""
    return " ".join(
        word[:1] + word[1:].lower() for word in notification_type.split("_") if word
    )


def _timestamp(notification: StoredNotification) -> str:
    return notification.created_at.strftime("%Y-%m-%d %H:%M UTC")


def _page(title: str, header: str, body: str, footer_lines: tuple[str, str]) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f3f4f6;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f3f4f6; padding: 20px;">
        <tr>
            <td align="center">
                <table width="600" cellpadding="0" cellspacing="0"
                       style="background-color: #ffffff; border-radius: 8px;
                              box-shadow: 0 2px 4px rgba(0,0,0,0.1);">
                    {header}
                    {body}
                    <tr>
                        <td style="padding: 20px 40px; background-color: #f9fafb;
                                   border-top: 1px solid #e5e7eb; border-radius: 0 0 8px 8px;">
                            <p style="margin: 0; color: #6b7280; font-size: 14px;">
                                {footer_lines[0]}
                            </p>
                            <p style="margin: 10px 0 0 0; color: #9ca3af; font-size: 12px;">
                                {footer_lines[1]}
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
    """.strip()


def render_notification_html(notification: StoredNotification, app_name: str) -> str:
    """Render the HTML body for a single notification email.

    Args:
        notification: The persisted notification.
        app_name: Product name for the header and footer.

    Returns:
        Complete HTML document.
    """
    color = PRIORITY_COLORS.get(notification.priority, PRIORITY_COLORS[PriorityLevel.MEDIUM])
    title = escape(notification.title)
    message = escape(notification.message).replace("\n", "<br>")
    app = escape(app_name)

    header = f"""
                    <tr>
                        <td style="padding: 30px 40px; border-bottom: 3px solid {color};">
                            <h1 style="margin: 0; color: #111827; font-size: 24px;">{app}</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 20px 40px 0 40px;">
                            <span style="display: inline-block; padding: 4px 12px;
                                         background-color: {color}; color: white;
                                         border-radius: 12px; font-size: 12px; font-weight: bold;">
                                {notification.priority.name}
                            </span>
                        </td>
                    </tr>"""

    action_button = ""
    if notification.action_url:
        action_button = f"""
                    <tr>
                        <td style="padding: 0 40px 30px 40px;">
                            <a href="{escape(notification.action_url, quote=True)}"
                               style="display: inline-block; padding: 12px 24px;
                                      background-color: {color}; color: white;
                                      text-decoration: none; border-radius: 6px; font-weight: bold;">
                                View Details
                            </a>
                        </td>
                    </tr>"""

    body = f"""
                    <tr>
                        <td style="padding: 20px 40px;">
                            <h2 style="margin: 0 0 15px 0; color: #111827; font-size: 20px;">{title}</h2>
                            <p style="margin: 0; color: #374151; font-size: 16px; line-height: 1.6;">{message}</p>
                        </td>
                    </tr>{action_button}"""

    return _page(
        title,
        header,
        body,
        (
            f"This is an automated notification from {app}.",
            "To manage your notification preferences, log in to your account.",
        ),
    )


def render_notification_text(notification: StoredNotification, app_name: str) -> str:
    """Render the plain text alternative for a single notification email."""
    lines = [
        f"[{notification.priority.name}] {notification.title}",
        "=" * len(notification.title),
        "",
        notification.message,
        "",
    ]
    if notification.action_url:
        lines.extend([f"View Details: {notification.action_url}", ""])
    lines.extend([
        "---",
        f"This is an automated notification from {app_name}.",
        "To manage your notification preferences, log in to your account.",
    ])
    return "\n".join(lines)


def render_digest_html(
    grouped: Mapping[str, Sequence[StoredNotification]],
    recipient_name: str,
    frequency: DigestFrequency,
    app_name: str,
) -> str:
    """Render the HTML digest with one section per notification type.

    Args:
        grouped: Notifications by type, each list newest first.
        recipient_name: Greeting name.
        frequency: Digest frequency, used in the heading.
        app_name: Product name for the footer.

    Returns:
        Complete HTML document.
    """
    total = sum(len(items) for items in grouped.values())
    plural = "" if total == 1 else "s"
    heading = "Weekly Notification Digest" if frequency == DigestFrequency.WEEKLY else "Daily Notification Digest"

    sections = []
    for notification_type, items in grouped.items():
        entries = "".join(
            f"""
                                    <div style="padding: 12px; background-color: #f9fafb;
                                                border-left: 3px solid {DIGEST_ACCENT}; margin-bottom: 10px;">
                                        <p style="margin: 0 0 5px 0; color: #111827; font-weight: bold;">{escape(n.title)}</p>
                                        <p style="margin: 0; color: #6b7280; font-size: 14px;">{escape(n.message)}</p>
                                        <p style="margin: 8px 0 0 0; color: #9ca3af; font-size: 12px;">{_timestamp(n)}</p>
                                    </div>"""
            for n in items
        )
        sections.append(
            f"""
                                <tr>
                                    <td style="padding: 20px 0;">
                                        <h3 style="margin: 0 0 15px 0; color: #111827; font-size: 18px;
                                                   border-bottom: 2px solid {DIGEST_ACCENT}; padding-bottom: 8px;">
                                            {escape(format_notification_type(notification_type))} ({len(items)})
                                        </h3>{entries}
                                    </td>
                                </tr>"""
        )

    header = f"""
                    <tr>
                        <td style="padding: 30px 40px;
                                   background: linear-gradient(135deg, {DIGEST_ACCENT} 0%, #06b6d4 100%);">
                            <h1 style="margin: 0; color: #ffffff; font-size: 24px;">{heading}</h1>
                            <p style="margin: 5px 0 0 0; color: #f0f9ff; font-size: 14px;">
                                Hello {escape(recipient_name)}, you have {total} notification{plural}
                                from {_DIGEST_PERIODS[frequency]}
                            </p>
                        </td>
                    </tr>"""

    body = f"""
                    <tr>
                        <td style="padding: 30px 40px;">
                            <table width="100%" cellpadding="0" cellspacing="0">{"".join(sections)}
                            </table>
                        </td>
                    </tr>"""

    app = escape(app_name)
    return _page(
        heading,
        header,
        body,
        (
            f"This is your {frequency.value.lower()} digest from {app}.",
            "To change digest preferences, log in to your account.",
        ),
    )


def render_digest_text(
    grouped: Mapping[str, Sequence[StoredNotification]],
    recipient_name: str,
    frequency: DigestFrequency,
) -> str:
    """Render the plain text alternative of a digest."""
    total = sum(len(items) for items in grouped.values())
    lines = [
        f"Hello {recipient_name}, you have {total} notification"
        f"{'' if total == 1 else 's'} from {_DIGEST_PERIODS[frequency]}.",
        "",
    ]
    for notification_type, items in grouped.items():
        header = f"{format_notification_type(notification_type)} ({len(items)})"
        lines.extend([header, "-" * len(header)])
        for n in items:
            lines.append(f"* {n.title}: {n.message} ({_timestamp(n)})")
        lines.append("")
    return "\n".join(lines)
