# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the notification core.

This module provides standardized datetime operations to ensure consistency
across the entire codebase. All datetime operations should use these utilities.

Design Decisions:
-----------------
1. All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ)
2. All Python datetimes are timezone-aware (with timezone.utc)
3. Calendar questions ("today", "this hour") are answered in the
   recipient's own timezone via zoneinfo

Usage:
------
    from src.utils.datetime import utc_now, start_of_local_day

    now = utc_now()
    day_start = start_of_local_day(now, "Europe/Istanbul")
"""

import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    # Already aware - convert to UTC
    return dt.astimezone(timezone.utc)


def resolve_timezone(name: str | None, default: str = "UTC") -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to a default zone.

    Unknown or empty names never raise; they resolve to ``default``
    (and to UTC if the default itself is unknown).

    Args:
        name: IANA zone name such as "America/New_York".
        default: Zone used when name is missing or invalid.

    Returns:
        A ZoneInfo instance.
    """
    for candidate in (name, default):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back", candidate)
    return ZoneInfo("UTC")


def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert a datetime to the given zone, treating naive values as UTC.

    Args:
        dt: Datetime to convert.
        tz: Target zone.

    Returns:
        Timezone-aware datetime in tz.
    """
    return ensure_utc(dt).astimezone(tz)


def start_of_local_day(dt: datetime, tz: ZoneInfo) -> datetime:
    """Get local midnight of the calendar day containing dt, as UTC.

    Args:
        dt: Reference instant.
        tz: Zone defining the calendar day.

    Returns:
        Timezone-aware UTC datetime of the local day start.
    """
    local = to_local(dt, tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


def days_ago(days: int, reference: datetime | None = None) -> datetime:
    """Get a datetime N days before a reference (default: now).

    Args:
        days: Number of days to go back.
        reference: Instant to count back from.

    Returns:
        Timezone-aware UTC datetime.
    """
    return ensure_utc(reference or utc_now()) - timedelta(days=days)


def hours_ago(hours: int, reference: datetime | None = None) -> datetime:
    """Get a datetime N hours before a reference (default: now).

    Args:
        hours: Number of hours to go back.
        reference: Instant to count back from.

    Returns:
        Timezone-aware UTC datetime.
    """
    return ensure_utc(reference or utc_now()) - timedelta(hours=hours)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


# Aliases for convenience
now = utc_now
