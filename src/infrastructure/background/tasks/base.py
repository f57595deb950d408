# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Sync-to-async bridge for digest actors.

Dramatiq actors are plain functions executed on worker threads, while the
stores and the email channel are async. Each worker thread keeps one event
loop for its whole life; the async engine behind
:func:`~src.infrastructure.database.connection.get_worker_sessionmaker` is
cached per thread and bound to that loop.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_local = threading.local()


def _worker_loop() -> asyncio.AbstractEventLoop:
    """Return this thread's event loop, creating it on first use.

    A fresh loop invalidates the thread's cached engine, so the worker
    database state is reset whenever a loop is created.
    """
    loop: asyncio.AbstractEventLoop | None = getattr(_local, "loop", None)
    if loop is not None and not loop.is_closed():
        return loop

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    _local.loop = loop

    from src.infrastructure.database.connection import clear_worker_database

    clear_worker_database()
    logger.debug("Worker thread %s got a new event loop", threading.current_thread().name)
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on the calling worker thread's loop.

    Args:
        coro: Coroutine built inside the actor body.

    Returns:
        Whatever the coroutine returns.

    Example:
        @dramatiq.actor(queue_name=Queues.DIGESTS)
        def count_unread(user_id: str) -> int:
            async def _count() -> int:
                store = SqlNotificationStore(get_worker_sessionmaker())
                stats = await store.get_stats(user_id, utc_now() - timedelta(days=1))
                return stats.total
            return run_async(_count())
    """
    return _worker_loop().run_until_complete(coro)
