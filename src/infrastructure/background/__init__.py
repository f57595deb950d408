# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure for notification digests.

Provides background task processing with Dramatiq:
- Redis broker for message persistence and durability
- Actor-based digest tasks
- APScheduler integration for the hourly digest dispatcher

Quick Start:
    # Setup broker (call once at startup)
    from src.infrastructure.background import setup_dramatiq
    setup_dramatiq()

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4

Scheduler:
    from src.infrastructure.background import start_scheduler, stop_scheduler

    # Start scheduler with the default digest job
    await start_scheduler()

    # Stop at shutdown
    await stop_scheduler()
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)
from src.infrastructure.background.scheduler import (
    DigestScheduler,
    ScheduledTask,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

# Task actors are imported lazily to avoid circular imports
# Use: from src.infrastructure.background.tasks import send_user_digest

__all__ = [
    # Broker
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
    # Scheduler
    "DigestScheduler",
    "ScheduledTask",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
