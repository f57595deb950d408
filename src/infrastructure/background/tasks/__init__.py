# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for notifications.

- Digest: hourly dispatch and per-user daily or weekly digests

Usage:
    from src.infrastructure.background.tasks import send_user_digest

    send_user_digest.send("user-id", "DAILY")

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4
"""

from src.core.config import get_settings
from src.utils.logging import setup_logging

# Worker processes import this package first
setup_logging(get_settings())

from src.infrastructure.background.tasks.digest import (  # noqa: E402
    dispatch_due_digests,
    get_digest_actors,
    send_user_digest,
)

# Re-export run_async for convenience
from src.infrastructure.background.tasks.base import run_async  # noqa: E402

__all__ = [
    # Digest
    "dispatch_due_digests",
    "send_user_digest",
    # Utilities
    "run_async",
    "get_all_actors",
]


def get_all_actors() -> list:
    """Get list of all defined actors."""
    return list(get_digest_actors())
