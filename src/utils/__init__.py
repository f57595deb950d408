# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the notification core.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from src.utils.datetime import (
    days_ago,
    ensure_utc,
    format_iso,
    hours_ago,
    now,
    parse_iso,
    resolve_timezone,
    start_of_local_day,
    to_local,
    utc_now,
)
from src.utils.logging import log_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "log_context",
    # Datetime
    "utc_now",
    "now",
    "ensure_utc",
    "resolve_timezone",
    "to_local",
    "start_of_local_day",
    "days_ago",
    "hours_ago",
    "format_iso",
    "parse_iso",
]
